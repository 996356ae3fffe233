"""Data models for the Therabot application."""

from .message import Message, Sender, Transcript
from .session import SessionPhase, SessionState
from .events import AudioEvent, TranscriptSnapshot

__all__ = [
    "Message",
    "Sender",
    "Transcript",
    "SessionPhase",
    "SessionState",
    "AudioEvent",
    "TranscriptSnapshot",
]
