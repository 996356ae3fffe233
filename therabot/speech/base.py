"""Abstract base classes for speech capability providers."""

from abc import ABC, abstractmethod
from typing import Callable
import logging

logger = logging.getLogger(__name__)


class AbstractRecognitionBackend(ABC):
    """Abstract base class for speech-to-text backends."""

    def __init__(self, language: str = "en-US"):
        """Initialize backend with language preference."""
        self.language = language

    @abstractmethod
    def transcribe(self, audio: bytes, sample_rate: int = 16000) -> str:
        """Transcribe a buffer of 16-bit PCM audio.

        Args:
            audio: Raw audio data in bytes
            sample_rate: Sample rate of the audio in Hz

        Returns:
            Recognized text, or an empty string if no speech was detected
        """
        pass

    @abstractmethod
    def initialize(self) -> bool:
        """Initialize backend resources and verify configuration.

        Returns:
            True if initialization successful, False otherwise
        """
        pass

    @abstractmethod
    def cleanup(self) -> None:
        """Clean up backend resources."""
        pass


class SpeechRecognitionProvider(ABC):
    """Continuous speech-to-text capability.

    Results are delivered through the ``on_result`` callback, possibly from a
    worker thread. Each result is the text recognized for the audio captured
    since the previous result.
    """

    @abstractmethod
    def is_supported(self) -> bool:
        """Return True if speech input can be used in this environment."""
        pass

    @abstractmethod
    def start(self, continuous: bool, on_result: Callable[[str], None]) -> None:
        """Begin capturing audio.

        Args:
            continuous: Deliver results while capturing instead of once at stop
            on_result: Called with each recognized text fragment
        """
        pass

    @abstractmethod
    def stop(self) -> None:
        """Stop capturing. Blocks until the final result has been delivered."""
        pass


class SpeechSynthesisProvider(ABC):
    """Text-to-speech capability."""

    @abstractmethod
    def say(self, text: str) -> None:
        """Synthesize and play ``text``. Blocks until playback finishes."""
        pass

    def close(self) -> None:
        """Release engine resources."""
