"""Conversation message and transcript models."""

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List


class Sender(Enum):
    """Who produced a message."""
    USER = "user"
    BOT = "bot"


@dataclass(frozen=True)
class Message:
    """A single exchanged message."""
    text: str
    sender: Sender

    @classmethod
    def from_user(cls, text: str) -> "Message":
        return cls(text=text, sender=Sender.USER)

    @classmethod
    def from_bot(cls, text: str) -> "Message":
        return cls(text=text, sender=Sender.BOT)


class Transcript:
    """Append-only, chronologically ordered log of messages."""

    def __init__(self):
        self._messages: List[Message] = []

    def append(self, message: Message) -> None:
        self._messages.append(message)

    def clear(self) -> None:
        self._messages.clear()

    @property
    def messages(self) -> List[Message]:
        """Copy of the messages in display order."""
        return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(list(self._messages))
