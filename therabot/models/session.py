"""Session-related data models."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class SessionPhase(Enum):
    """Lifecycle phase of the conversation session."""
    IDLE = "idle"
    AWAITING_INITIAL_REPLY = "awaiting_initial_reply"
    READY = "ready"
    AWAITING_TURN_REPLY = "awaiting_turn_reply"
    LISTENING = "listening"  # reported only, never stored as the phase

    @property
    def is_awaiting_reply(self) -> bool:
        return self in (SessionPhase.AWAITING_INITIAL_REPLY, SessionPhase.AWAITING_TURN_REPLY)


@dataclass
class SessionState:
    """Mutable state owned by the session controller."""
    voice_output_enabled: bool = False
    listening: bool = False
    pending_input: str = ""
    phase: SessionPhase = SessionPhase.IDLE
    last_error: Optional[str] = None
