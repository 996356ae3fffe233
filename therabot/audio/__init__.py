"""Audio capture module for Therabot."""

from .capture import AudioCapture, is_microphone_available
from .audio_pub import AudioPublisher

__all__ = ["AudioCapture", "AudioPublisher", "is_microphone_available"]
