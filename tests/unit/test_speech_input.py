"""Unit tests for SpeechInputAdapter and transcript subscriptions."""

import asyncio

import pytest

from therabot.exceptions import UnsupportedCapabilityError
from therabot.speech.recognizer import SpeechInputAdapter

from ..conftest import FakeRecognitionProvider


@pytest.mark.unit
class TestSpeechInputAdapter:
    """Test cases for start/stop/clear semantics."""

    def test_supported_follows_provider(self):
        assert SpeechInputAdapter(FakeRecognitionProvider()).is_supported() is True
        assert SpeechInputAdapter(FakeRecognitionProvider(supported=False)).is_supported() is False
        assert SpeechInputAdapter(None).is_supported() is False

    def test_require_supported(self):
        with pytest.raises(UnsupportedCapabilityError):
            SpeechInputAdapter(None).require_supported()
        SpeechInputAdapter(FakeRecognitionProvider()).require_supported()

    def test_start_unsupported_is_noop(self):
        provider = FakeRecognitionProvider(supported=False)
        adapter = SpeechInputAdapter(provider)

        assert adapter.start() is False
        assert adapter.is_listening is False
        assert provider.start_calls == 0

    def test_start_twice_is_noop(self, recognition_provider):
        adapter = SpeechInputAdapter(recognition_provider)

        assert adapter.start() is True
        assert adapter.start() is False
        assert recognition_provider.start_calls == 1

    def test_continuous_results_accumulate(self, recognition_provider):
        adapter = SpeechInputAdapter(recognition_provider)
        adapter.start(continuous=True)

        recognition_provider.emit("I am")
        recognition_provider.emit("  ")
        recognition_provider.emit("stressed")

        assert adapter.transcript == "I am stressed"

    def test_non_continuous_keeps_latest(self, recognition_provider):
        adapter = SpeechInputAdapter(recognition_provider)
        adapter.start(continuous=False)

        recognition_provider.emit("first guess")
        recognition_provider.emit("second guess")

        assert recognition_provider.continuous is False
        assert adapter.transcript == "second guess"

    def test_stop_returns_flushed_transcript(self, recognition_provider):
        adapter = SpeechInputAdapter(recognition_provider)
        adapter.start()
        recognition_provider.emit("I am")
        recognition_provider.final_results = ["stressed"]

        final = asyncio.run(adapter.stop())

        assert final == "I am stressed"
        assert adapter.is_listening is False
        assert recognition_provider.stop_calls == 1

    def test_stop_when_idle_does_not_touch_provider(self, recognition_provider):
        adapter = SpeechInputAdapter(recognition_provider)

        assert asyncio.run(adapter.stop()) == ""
        assert recognition_provider.stop_calls == 0

    def test_stop_failure_yields_empty_transcript(self, recognition_provider):
        def broken_stop():
            raise RuntimeError("stream closed")

        recognition_provider.stop = broken_stop
        adapter = SpeechInputAdapter(recognition_provider)
        adapter.start()
        recognition_provider.emit("lost words")

        assert asyncio.run(adapter.stop()) == ""
        assert adapter.is_listening is False

    def test_clear_while_capturing(self, recognition_provider):
        adapter = SpeechInputAdapter(recognition_provider)
        adapter.start()
        recognition_provider.emit("discard this")

        adapter.clear()
        recognition_provider.emit("keep this")

        assert adapter.transcript == "keep this"

    def test_restart_after_stop(self, recognition_provider):
        adapter = SpeechInputAdapter(recognition_provider)

        async def scenario():
            adapter.start()
            recognition_provider.emit("one")
            await adapter.stop()
            adapter.clear()
            assert adapter.start() is True
            recognition_provider.emit("two")
            return await adapter.stop()

        assert asyncio.run(scenario()) == "two"
        assert recognition_provider.start_calls == 2


@pytest.mark.unit
class TestTranscriptSubscription:
    """Snapshot streams."""

    def test_snapshots_in_order_ending_with_final(self, recognition_provider):
        adapter = SpeechInputAdapter(recognition_provider)

        async def scenario():
            subscription = adapter.subscribe()
            adapter.start()
            recognition_provider.emit("I am")
            recognition_provider.final_results = ["stressed"]
            await adapter.stop()
            return [snapshot async for snapshot in subscription]

        snapshots = asyncio.run(scenario())

        assert [s.text for s in snapshots] == ["I am", "I am stressed", "I am stressed"]
        assert [s.final for s in snapshots] == [False, False, True]
        numbers = [s.sequence_number for s in snapshots]
        assert numbers == sorted(numbers)

    def test_close_ends_iteration(self, recognition_provider):
        adapter = SpeechInputAdapter(recognition_provider)

        async def scenario():
            subscription = adapter.subscribe()
            adapter.start()
            recognition_provider.emit("before close")
            subscription.close()
            recognition_provider.emit("after close")
            received = [snapshot.text async for snapshot in subscription]
            return subscription, received

        subscription, received = asyncio.run(scenario())

        assert subscription.closed is True
        assert received == ["before close"]
        assert adapter._subscriptions == []

    def test_new_subscription_per_capture(self, recognition_provider):
        adapter = SpeechInputAdapter(recognition_provider)

        async def scenario():
            first = adapter.subscribe()
            adapter.start()
            recognition_provider.emit("first capture")
            await adapter.stop()
            first_texts = [s.text async for s in first]

            adapter.clear()
            second = adapter.subscribe()
            adapter.start()
            recognition_provider.emit("second capture")
            await adapter.stop()
            second_texts = [s.text async for s in second]
            return first_texts, second_texts

        first_texts, second_texts = asyncio.run(scenario())

        assert first_texts == ["first capture", "first capture"]
        assert second_texts == ["second capture", "second capture"]

    def test_snapshots_from_worker_thread(self, recognition_provider):
        adapter = SpeechInputAdapter(recognition_provider)

        async def scenario():
            subscription = adapter.subscribe()
            adapter.start()
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, recognition_provider.emit, "from a thread")
            await adapter.stop()
            return [s.text async for s in subscription]

        assert asyncio.run(scenario()) == ["from a thread", "from a thread"]
