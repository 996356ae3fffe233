"""Pytest configuration and fixtures for Therabot tests."""

import asyncio
import logging
import threading
from typing import List, Optional
from unittest.mock import Mock, patch

import numpy as np
import pytest

from therabot.exceptions import NetworkError
from therabot.speech.base import SpeechRecognitionProvider, SpeechSynthesisProvider


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

GREETING = "Hello, I'm Therabot. How are you feeling today?"


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without network or hardware")
    config.addinivalue_line("markers", "integration: tests that talk to a local HTTP server or threads")


class FakeDialogueClient:
    """Scripted stand-in for DialogueClient."""

    def __init__(self, greeting: str = GREETING, replies: Optional[List[str]] = None):
        self.greeting = greeting
        self.replies = list(replies or [])
        self.start_calls = 0
        self.sent: List[str] = []
        self.fail_start = False
        self.fail_turn = False

    async def start_session(self) -> str:
        self.start_calls += 1
        if self.fail_start:
            raise NetworkError("Dialogue service error: 503 - unavailable", status=503)
        return self.greeting

    async def send_turn(self, message: str) -> str:
        self.sent.append(message)
        if self.fail_turn:
            raise NetworkError("Dialogue service request failed (POST /chat): connection reset")
        if self.replies:
            return self.replies.pop(0)
        return f"You said: {message}"


class GatedDialogueClient(FakeDialogueClient):
    """send_turn blocks until ``release`` is set."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.release = asyncio.Event()

    async def send_turn(self, message: str) -> str:
        self.sent.append(message)
        await self.release.wait()
        return f"Reply to: {message}"


class FakeRecognitionProvider(SpeechRecognitionProvider):
    """Speech input provider driven by the test."""

    def __init__(self, supported: bool = True, final_results: Optional[List[str]] = None):
        self.supported = supported
        self.final_results = list(final_results or [])
        self.on_result = None
        self.continuous = None
        self.start_calls = 0
        self.stop_calls = 0

    def is_supported(self) -> bool:
        return self.supported

    def start(self, continuous, on_result) -> None:
        self.start_calls += 1
        self.continuous = continuous
        self.on_result = on_result

    def emit(self, text: str) -> None:
        self.on_result(text)

    def stop(self) -> None:
        self.stop_calls += 1
        # Flush results still "in recognition" before returning
        for text in self.final_results:
            self.on_result(text)
        self.final_results = []


class FakeSynthesisProvider(SpeechSynthesisProvider):
    """Records utterances instead of playing them."""

    def __init__(self, fail_on: Optional[str] = None):
        self.spoken: List[str] = []
        self.fail_on = fail_on
        self.closed = False
        self.closed_on: Optional[str] = None
        self.lock = threading.Lock()

    def say(self, text: str) -> None:
        if text == self.fail_on:
            raise RuntimeError("audio device busy")
        with self.lock:
            self.spoken.append(text)

    def close(self) -> None:
        self.closed = True
        self.closed_on = threading.current_thread().name


@pytest.fixture
def dialogue_client():
    return FakeDialogueClient()


@pytest.fixture
def recognition_provider():
    return FakeRecognitionProvider()


@pytest.fixture
def synthesis_provider():
    return FakeSynthesisProvider()


@pytest.fixture
def mock_speech_output():
    """Mock SpeechOutputAdapter for controller tests."""
    mock = Mock()
    mock.speak.return_value = None
    mock.shutdown.return_value = True
    return mock


@pytest.fixture
def sample_audio_chunk():
    """Generate a sample audio chunk for testing."""
    # 1024 samples of 16-bit audio (sine wave)
    sample_rate = 16000
    duration = 1024 / sample_rate
    freq = 440  # A4 note

    t = np.linspace(0, duration, 1024, False)
    wave_data = np.sin(2 * np.pi * freq * t)

    audio_data = (wave_data * 32767 * 0.5).astype(np.int16)
    return audio_data.tobytes()


@pytest.fixture
def silent_audio_chunk():
    return np.zeros(1024, dtype=np.int16).tobytes()


@pytest.fixture
def mock_pyaudio(sample_audio_chunk):
    """Mock PyAudio for testing without actual audio hardware."""
    import time

    def slow_read(*args, **kwargs):
        time.sleep(0.005)
        return sample_audio_chunk

    with patch('pyaudio.PyAudio') as mock_pyaudio_class:
        mock_pyaudio_instance = Mock()
        mock_stream = Mock()

        mock_stream.read.side_effect = slow_read
        mock_stream.stop_stream.return_value = None
        mock_stream.close.return_value = None

        mock_pyaudio_instance.open.return_value = mock_stream
        mock_pyaudio_instance.terminate.return_value = None
        mock_pyaudio_instance.get_device_count.return_value = 1
        mock_pyaudio_instance.get_device_info_by_index.return_value = {"maxInputChannels": 1}

        mock_pyaudio_class.return_value = mock_pyaudio_instance

        yield {
            'class': mock_pyaudio_class,
            'instance': mock_pyaudio_instance,
            'stream': mock_stream
        }
