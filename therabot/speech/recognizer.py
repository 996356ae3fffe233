"""Speech input adapter: running transcript and snapshot subscriptions over a provider."""

import asyncio
import logging
import threading
from typing import List, Optional

from ..exceptions import UnsupportedCapabilityError
from ..models.events import TranscriptSnapshot
from .base import SpeechRecognitionProvider

logger = logging.getLogger(__name__)

_END = object()


class TranscriptSubscription:
    """Cancellable async stream of transcript snapshots.

    Iteration ends after the final snapshot of the current capture, or when
    ``close()`` is called. Must be created from within a running event loop.
    """

    def __init__(self, adapter: "SpeechInputAdapter"):
        self._adapter = adapter
        self._loop = asyncio.get_running_loop()
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False
        self._finished = False

    def _push(self, item) -> None:
        """Hand an item to the subscriber's loop; safe from any thread."""
        if self._closed:
            return
        try:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, item)
        except RuntimeError:
            # Subscriber's loop is gone
            self._closed = True

    def close(self) -> None:
        """Stop receiving snapshots and end iteration."""
        if self._closed:
            return
        self._push(_END)
        self._closed = True
        self._adapter._unsubscribe(self)

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self) -> "TranscriptSubscription":
        return self

    async def __anext__(self) -> TranscriptSnapshot:
        if self._finished:
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _END:
            self._finished = True
            raise StopAsyncIteration
        return item


class SpeechInputAdapter:
    """Wraps a speech recognition provider behind a start/stop/clear contract.

    Recognized fragments are folded into one running transcript. In
    continuous mode fragments are appended; otherwise the latest fragment
    replaces the transcript. ``stop()`` returns only after the provider has
    delivered its last result, so the returned text is the authoritative one.
    """

    def __init__(self, provider: Optional[SpeechRecognitionProvider] = None):
        """Initialize adapter.

        Args:
            provider: Recognition capability. None means speech input is
                      unavailable in this environment.
        """
        self.provider = provider
        self.is_listening = False
        self.continuous = True

        self._lock = threading.Lock()
        self._transcript = ""
        self._sequence = 0
        self._subscriptions: List[TranscriptSubscription] = []

    def is_supported(self) -> bool:
        return self.provider is not None and self.provider.is_supported()

    def require_supported(self) -> None:
        """Raise UnsupportedCapabilityError if speech input cannot be used."""
        if not self.is_supported():
            raise UnsupportedCapabilityError("Speech input is not available in this environment")

    @property
    def transcript(self) -> str:
        with self._lock:
            return self._transcript

    def start(self, continuous: bool = True) -> bool:
        """Begin capture. Returns False (no-op) if unsupported or already capturing."""
        if not self.is_supported():
            logger.warning("Speech input not supported; ignoring start")
            return False
        if self.is_listening:
            logger.warning("Speech capture already in progress")
            return False

        self.continuous = continuous
        self.provider.start(continuous, self._on_result)
        self.is_listening = True
        logger.info(f"Speech capture started (continuous={continuous})")
        return True

    async def stop(self) -> str:
        """End capture and return the final transcript.

        A provider failure while stopping is logged and yields an empty
        transcript.
        """
        if not self.is_listening:
            return self.transcript

        loop = asyncio.get_running_loop()
        failed = False
        try:
            await loop.run_in_executor(None, self.provider.stop)
        except Exception as e:
            logger.error(f"Speech capture failed to stop cleanly: {e}", exc_info=True)
            failed = True
        finally:
            self.is_listening = False

        with self._lock:
            if failed:
                self._transcript = ""
            self._sequence += 1
            final = TranscriptSnapshot(text=self._transcript, sequence_number=self._sequence, final=True)

        self._dispatch(final)
        for subscription in list(self._subscriptions):
            subscription.close()

        logger.info(f"Speech capture stopped; final transcript: '{final.text}'")
        return final.text

    def clear(self) -> None:
        """Discard any buffered transcript."""
        with self._lock:
            self._transcript = ""
        logger.debug("Speech transcript cleared")

    def subscribe(self) -> TranscriptSubscription:
        """Start a new snapshot stream; see TranscriptSubscription."""
        subscription = TranscriptSubscription(self)
        self._subscriptions.append(subscription)
        return subscription

    def _unsubscribe(self, subscription: TranscriptSubscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    def _on_result(self, text: str) -> None:
        """Provider callback; may run on a worker thread."""
        text = text.strip()
        if not text:
            return

        with self._lock:
            if self.continuous and self._transcript:
                self._transcript = f"{self._transcript} {text}"
            else:
                self._transcript = text
            self._sequence += 1
            snapshot = TranscriptSnapshot(text=self._transcript, sequence_number=self._sequence)

        logger.debug(f"Transcript snapshot #{snapshot.sequence_number}: '{snapshot.text}'")
        self._dispatch(snapshot)

    def _dispatch(self, snapshot: TranscriptSnapshot) -> None:
        for subscription in list(self._subscriptions):
            subscription._push(snapshot)
