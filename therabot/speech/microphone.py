"""Microphone speech recognition: capture, windowing and recognition glued over pub/sub."""

import logging
import threading
import queue
from typing import Callable, NamedTuple, Optional
import numpy as np
from pubsub import pub

from ..audio.audio_pub import AudioPublisher
from ..audio.capture import AudioCapture, is_microphone_available
from ..models.events import AudioEvent
from .base import AbstractRecognitionBackend, SpeechRecognitionProvider

logger = logging.getLogger(__name__)


class RecognitionTask(NamedTuple):
    """A buffer of audio to be recognized by the worker thread."""
    first_chunk_id: str
    audio_buffer: bytes
    sample_rate: int
    is_final: bool


class RecognitionConsumer:
    """Buffers published audio chunks and recognizes them window by window.

    A single worker thread processes windows in capture order so results are
    delivered in the order the speech was captured.
    """

    def __init__(self,
                 backend: AbstractRecognitionBackend,
                 trigger_chunks: Optional[int],
                 result_callback: Callable[[str], None],
                 silence_threshold: float = 0.01):
        """Initialize consumer.

        Args:
            backend: Recognition backend used by the worker
            trigger_chunks: Chunks per recognition window. None buffers everything
                            until the final chunk.
            result_callback: Receives each non-empty recognized text
            silence_threshold: Windows whose peak level (0.0-1.0) stays below this
                               are not sent to the backend
        """
        self.backend = backend
        self.trigger_chunks = trigger_chunks
        self.result_callback = result_callback
        self.silence_threshold = silence_threshold

        self.audio_buffer = bytearray()
        self.first_chunk_id: Optional[str] = None
        self.chunks_in_buffer = 0

        self.task_queue: "queue.Queue[Optional[RecognitionTask]]" = queue.Queue()
        self.worker_thread = threading.Thread(target=self._worker_loop, daemon=True)
        self.worker_thread.name = "RecognitionWorker"
        self.worker_thread.start()

    def _worker_loop(self) -> None:
        while True:
            task = self.task_queue.get()
            if task is None:
                self.task_queue.task_done()
                break
            try:
                self._recognize(task)
            except Exception as e:
                logger.error(f"Recognition failed for window starting {task.first_chunk_id}: {e}", exc_info=True)
            finally:
                self.task_queue.task_done()
        logger.debug("Recognition worker exiting")

    def _recognize(self, task: RecognitionTask) -> None:
        if self._peak_level(task.audio_buffer) < self.silence_threshold:
            logger.debug(f"Skipping silent window starting {task.first_chunk_id}")
            return
        text = self.backend.transcribe(task.audio_buffer, sample_rate=task.sample_rate)
        suffix = " (final)" if task.is_final else ""
        if not text or not text.strip():
            logger.debug(f"No speech in window starting {task.first_chunk_id}{suffix}")
            return
        logger.info(f"Recognized window starting {task.first_chunk_id}{suffix}: '{text}'")
        self.result_callback(text.strip())

    @staticmethod
    def _peak_level(audio: bytes) -> float:
        samples = np.frombuffer(audio, dtype=np.int16)
        if samples.size == 0:
            return 0.0
        return float(np.abs(samples.astype(np.int32)).max()) / 32768.0

    def on_audio_chunk(self, event: AudioEvent) -> None:
        """Buffer an audio chunk and queue a recognition task when a window is full."""
        if event.audio_data:
            if self.first_chunk_id is None:
                self.first_chunk_id = event.chunk_id
            self.audio_buffer.extend(event.audio_data)
            self.chunks_in_buffer += 1

        window_full = self.trigger_chunks is not None and self.chunks_in_buffer >= self.trigger_chunks
        if (window_full or event.final) and self.chunks_in_buffer > 0:
            task = RecognitionTask(
                first_chunk_id=self.first_chunk_id,
                audio_buffer=bytes(self.audio_buffer),
                sample_rate=event.sample_rate,
                is_final=event.final,
            )
            self.audio_buffer.clear()
            self.first_chunk_id = None
            self.chunks_in_buffer = 0
            logger.debug(f"Queueing recognition task: {len(task.audio_buffer)} bytes, final={task.is_final}")
            self.task_queue.put(task)

    def wait_until_idle(self) -> None:
        """Block until every queued window has been recognized."""
        self.task_queue.join()

    def shutdown(self, timeout: float = 5.0) -> bool:
        """Stop the worker thread after pending windows are processed."""
        self.task_queue.put(None)
        self.worker_thread.join(timeout=timeout)
        if self.worker_thread.is_alive():
            logger.warning("Recognition worker did not stop cleanly")
            return False
        return True


class MicrophoneRecognitionProvider(SpeechRecognitionProvider):
    """Speech input from the default microphone, recognized by a backend."""

    def __init__(self,
                 backend: AbstractRecognitionBackend,
                 sample_rate: int = 16000,
                 chunk_size: int = 1024,
                 channels: int = 1,
                 window_seconds: float = 3.0,
                 topic: str = "therabot.audio",
                 microphone_check: Callable[[], bool] = is_microphone_available):
        self.backend = backend
        self.sample_rate = sample_rate
        self.chunk_size = chunk_size
        self.channels = channels
        self.window_seconds = window_seconds
        self.topic = topic
        self._microphone_check = microphone_check
        self._supported: Optional[bool] = None

        self.capture: Optional[AudioCapture] = None
        self.consumer: Optional[RecognitionConsumer] = None

    def is_supported(self) -> bool:
        if self._supported is None:
            self._supported = self._microphone_check()
            logger.info(f"Microphone available: {self._supported}")
        return self._supported

    def start(self, continuous: bool, on_result: Callable[[str], None]) -> None:
        if self.capture is not None:
            logger.warning("Microphone capture already running")
            return

        trigger_chunks = None
        if continuous:
            chunks_per_second = self.sample_rate / self.chunk_size
            trigger_chunks = max(1, int(chunks_per_second * self.window_seconds))
        logger.info(f"Starting microphone recognition (continuous={continuous}, window={trigger_chunks} chunks)")

        self.consumer = RecognitionConsumer(self.backend, trigger_chunks, on_result)
        pub.subscribe(self.consumer.on_audio_chunk, self.topic)

        publisher = AudioPublisher(self.topic)
        self.capture = AudioCapture(
            callback=publisher.publish_audio_event,
            sample_rate=self.sample_rate,
            chunk_size=self.chunk_size,
            channels=self.channels,
        )
        try:
            self.capture.start_recording()
        except Exception:
            self._release()
            raise

    def _release(self) -> None:
        try:
            pub.unsubscribe(self.consumer.on_audio_chunk, self.topic)
        except Exception as e:
            logger.warning(f"Error during unsubscribe: {e}")
        self.consumer.shutdown()
        self.capture = None
        self.consumer = None

    def stop(self) -> None:
        if self.capture is None:
            return

        # The capture thread publishes the final chunk before join returns
        self.capture.stop_recording()
        self.consumer.wait_until_idle()
        self._release()
        logger.info("Microphone recognition stopped")

