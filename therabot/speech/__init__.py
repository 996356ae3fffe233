"""Speech input and output for Therabot."""

from .base import AbstractRecognitionBackend, SpeechRecognitionProvider, SpeechSynthesisProvider
from .recognizer import SpeechInputAdapter, TranscriptSubscription
from .synthesis import SpeechOutputAdapter, Pyttsx3SpeechProvider

__all__ = [
    "AbstractRecognitionBackend",
    "SpeechRecognitionProvider",
    "SpeechSynthesisProvider",
    "SpeechInputAdapter",
    "TranscriptSubscription",
    "SpeechOutputAdapter",
    "Pyttsx3SpeechProvider",
]
