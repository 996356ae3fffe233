"""Event models for pub/sub audio and speech processing."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass
class AudioEvent:
    """Audio chunk event with metadata."""
    chunk_id: str
    audio_data: bytes
    timestamp: float  # Unix timestamp when chunk was captured
    sequence_number: int
    sample_rate: int = 16000
    channels: int = 1
    chunk_duration_ms: Optional[int] = None
    final: bool = False  # True if this is the last chunk before capture stopped

    def __post_init__(self):
        """Calculate chunk duration if not provided."""
        if self.chunk_duration_ms is None and self.audio_data:
            # 16-bit audio (2 bytes per sample)
            bytes_per_second = self.sample_rate * self.channels * 2
            duration_seconds = len(self.audio_data) / bytes_per_second
            self.chunk_duration_ms = int(duration_seconds * 1000)


@dataclass(frozen=True)
class TranscriptSnapshot:
    """Running speech transcript at one point in time.

    Each snapshot supersedes the previous one; only the snapshot taken when
    capture stops is authoritative for submission.
    """
    text: str
    sequence_number: int
    final: bool = False
    timestamp: datetime = field(default_factory=datetime.now)
