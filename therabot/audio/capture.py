"""Microphone capture with event publishing for speech recognition."""

import pyaudio
import time
import logging
from threading import Thread, Event
from typing import Optional, Callable

from ..models.events import AudioEvent


logger = logging.getLogger(__name__)


def is_microphone_available() -> bool:
    """Return True if PyAudio can see at least one input device."""
    instance = None
    try:
        instance = pyaudio.PyAudio()
        for index in range(instance.get_device_count()):
            info = instance.get_device_info_by_index(index)
            if info.get("maxInputChannels", 0) > 0:
                return True
        return False
    except Exception as e:
        logger.debug(f"Microphone not available: {e}")
        return False
    finally:
        if instance is not None:
            instance.terminate()


class AudioCapture:
    """Reads the microphone on a background thread, one AudioEvent per chunk.

    The stream is opened by ``start_recording`` on the caller's thread, so a
    missing or busy device raises there instead of failing silently later.
    The last event of every capture has ``final=True``.
    """

    def __init__(self,
                 callback: Callable[[AudioEvent], None],
                 sample_rate: int = 16000,
                 chunk_size: int = 1024,
                 channels: int = 1):
        self.callback = callback
        self.sample_rate = sample_rate
        self.chunk_size = chunk_size
        self.channels = channels

        self.recording_thread: Optional[Thread] = None
        self.stop_event = Event()
        self.is_recording = False
        self.started_at: Optional[float] = None
        self.total_chunks = 0

        self._pyaudio: Optional[pyaudio.PyAudio] = None
        self._stream = None

    def start_recording(self) -> None:
        """Open the input stream and start the reader thread.

        Raises:
            OSError: If the input stream cannot be opened
        """
        if self.is_recording:
            logger.warning("Recording already in progress")
            return

        self._pyaudio = pyaudio.PyAudio()
        try:
            self._stream = self._pyaudio.open(
                format=pyaudio.paInt16,
                channels=self.channels,
                rate=self.sample_rate,
                input=True,
                frames_per_buffer=self.chunk_size,
            )
        except Exception:
            self._pyaudio.terminate()
            self._pyaudio = None
            raise
        logger.info(f"Audio stream opened: {self.sample_rate}Hz, {self.chunk_size} samples/chunk")

        self.stop_event.clear()
        self.started_at = time.time()
        self.total_chunks = 0
        self.recording_thread = Thread(target=self._read_loop, daemon=True, name="AudioCaptureThread")
        self.recording_thread.start()
        self.is_recording = True

    def stop_recording(self) -> None:
        """Stop recording; returns once the final chunk has been handed to the callback."""
        if not self.is_recording:
            return

        self.stop_event.set()
        self.recording_thread.join(timeout=2.0)
        if self.recording_thread.is_alive():
            logger.warning("Recording thread did not stop cleanly")
        self.is_recording = False
        logger.info(f"Recording stopped after {self.duration_seconds:.1f}s ({self.total_chunks} chunks)")

    @property
    def duration_seconds(self) -> float:
        return time.time() - self.started_at if self.started_at else 0.0

    def _emit(self, audio_chunk: bytes, final: bool) -> None:
        self.callback(AudioEvent(
            chunk_id=f"chunk_{self.total_chunks}",
            audio_data=audio_chunk,
            timestamp=time.time(),
            sequence_number=self.total_chunks,
            sample_rate=self.sample_rate,
            channels=self.channels,
            final=final,
        ))

    def _read(self) -> bytes:
        chunk = self._stream.read(self.chunk_size, exception_on_overflow=False)
        self.total_chunks += 1
        return chunk

    def _read_loop(self) -> None:
        try:
            while not self.stop_event.is_set():
                self._emit(self._read(), final=False)
            self._emit(self._read(), final=True)
        except Exception as e:
            logger.error(f"Audio capture failed: {e}", exc_info=True)
            # Consumers still need to learn the capture is over
            self._emit(b"", final=True)
        finally:
            self._stream.stop_stream()
            self._stream.close()
            self._stream = None
            self._pyaudio.terminate()
            self._pyaudio = None
