"""Speech output: one-at-a-time text-to-speech playback."""

import logging
import queue
import threading
from typing import Optional

import pyttsx3

from .base import SpeechSynthesisProvider

logger = logging.getLogger(__name__)


class Pyttsx3SpeechProvider(SpeechSynthesisProvider):
    """Offline text-to-speech through pyttsx3.

    The engine is created on first use so it lives on the playback thread.
    """

    def __init__(self, rate: Optional[int] = None, voice_name: Optional[str] = None):
        self.rate = rate
        self.voice_name = voice_name
        self.engine = None

    def _init_engine(self):
        engine = pyttsx3.init()
        if self.rate:
            engine.setProperty('rate', self.rate)
        if self.voice_name:
            for voice in engine.getProperty('voices'):
                if self.voice_name.lower() in voice.name.lower():
                    engine.setProperty('voice', voice.id)
                    break
            else:
                logger.warning(f"Voice '{self.voice_name}' not found, using default")
        logger.info("pyttsx3 engine initialized")
        return engine

    def say(self, text: str) -> None:
        if self.engine is None:
            self.engine = self._init_engine()
        self.engine.say(text)
        self.engine.runAndWait()

    def close(self) -> None:
        if self.engine is not None:
            self.engine.stop()
            self.engine = None


class SpeechOutputAdapter:
    """Fire-and-forget speech output.

    Utterances are queued and played one at a time by a single worker thread;
    a new call never interrupts the one playing.
    """

    def __init__(self, provider: SpeechSynthesisProvider):
        self.provider = provider
        self.utterance_queue: "queue.Queue[Optional[str]]" = queue.Queue()
        self.worker_thread = threading.Thread(target=self._worker_loop, daemon=True)
        self.worker_thread.name = "SpeechOutputWorker"
        self.worker_thread.start()

    def speak(self, text: str) -> None:
        """Queue ``text`` for playback. Blank text is ignored."""
        if not text or not text.strip():
            return
        logger.debug(f"Queueing utterance: {text[:50]}")
        self.utterance_queue.put(text)

    def _worker_loop(self) -> None:
        while True:
            text = self.utterance_queue.get()
            if text is None:
                # The engine belongs to this thread, so it is released here
                try:
                    self.provider.close()
                except Exception as e:
                    logger.warning(f"Error closing speech provider: {e}")
                self.utterance_queue.task_done()
                break
            try:
                self.provider.say(text)
            except Exception as e:
                logger.error(f"Speech synthesis failed: {e}", exc_info=True)
            finally:
                self.utterance_queue.task_done()

    def wait_until_idle(self) -> None:
        """Block until every queued utterance has been played."""
        self.utterance_queue.join()

    def shutdown(self, timeout: float = 5.0) -> bool:
        """Play what is queued, then stop the worker and release the engine."""
        self.utterance_queue.put(None)
        self.worker_thread.join(timeout=timeout)
        if self.worker_thread.is_alive():
            logger.warning("Speech output worker did not stop cleanly")
            return False
        return True
