"""Unit tests for the terminal chat screen."""

import asyncio
import io
import time
from unittest.mock import Mock

import pytest
from rich.console import Console

from therabot.models import Message
from therabot.services.session_controller import SessionController
from therabot.speech.recognizer import SpeechInputAdapter
from therabot.ui.chat_screen import ChatScreen

from ..conftest import GREETING, FakeDialogueClient, FakeRecognitionProvider, GatedDialogueClient


def make_screen(provider=None, client=None):
    controller = SessionController(
        dialogue_client=client or FakeDialogueClient(),
        speech_input=SpeechInputAdapter(provider) if provider is not None else None,
    )
    console = Console(file=io.StringIO(), width=120, force_terminal=False)
    return ChatScreen(controller, console=console)


def output_of(screen: ChatScreen) -> str:
    return screen.console.file.getvalue()


@pytest.mark.unit
class TestChatScreen:
    """Command handling and rendering."""

    def test_text_only_header_shows_notice(self):
        screen = make_screen()

        screen.show_header()

        assert screen.text_only is True
        assert "text-only mode" in output_of(screen)
        assert "/listen" not in output_of(screen)

    def test_voice_header_lists_listen_command(self):
        screen = make_screen(provider=FakeRecognitionProvider())

        screen.show_header()

        assert screen.text_only is False
        assert "/listen" in output_of(screen)
        assert "Text-only mode" not in output_of(screen)

    def test_typed_line_is_sent_and_rendered(self):
        screen = make_screen()

        async def scenario():
            await screen.controller.mount()
            return await screen.handle_line("I need to talk")

        assert asyncio.run(scenario()) is True

        output = output_of(screen)
        assert GREETING in output
        assert "You: I need to talk" in output
        assert "You said: I need to talk" in output

    def test_quit_commands(self):
        screen = make_screen()

        assert asyncio.run(screen.handle_line("/quit")) is False
        assert asyncio.run(screen.handle_line(" /EXIT ")) is False

    def test_voice_command_toggles_output(self):
        screen = make_screen()

        asyncio.run(screen.handle_line("/voice"))
        assert screen.controller.session_state.voice_output_enabled is True
        asyncio.run(screen.handle_line("/voice"))
        assert screen.controller.session_state.voice_output_enabled is False

        output = output_of(screen)
        assert "Spoken replies enabled" in output
        assert "Spoken replies disabled" in output

    def test_unknown_command_not_sent(self):
        client = FakeDialogueClient()
        screen = make_screen(client=client)

        assert asyncio.run(screen.handle_line("/dance")) is True

        assert client.sent == []
        assert "Unknown command: /dance" in output_of(screen)

    def test_refresh_restarts_conversation(self):
        client = FakeDialogueClient()
        screen = make_screen(client=client)

        async def scenario():
            await screen.controller.mount()
            await screen.handle_line("hello")
            await screen.handle_line("/refresh")

        asyncio.run(scenario())

        assert client.start_calls == 2
        assert [m.text for m in screen.controller.transcript] == [GREETING]

    def test_listen_in_text_only_mode(self):
        screen = make_screen()

        asyncio.run(screen.handle_line("/listen"))

        assert "not available in text-only mode" in output_of(screen)
        assert screen.controller.session_state.listening is False

    def test_listen_shows_snapshots_and_sends(self):
        provider = FakeRecognitionProvider()
        screen = make_screen(provider=provider)

        async def scenario():
            await screen.controller.mount()
            await screen.handle_line("/listen")
            provider.emit("I can't sleep")
            # Let the snapshot reach the display task
            for _ in range(5):
                await asyncio.sleep(0)
            await screen.handle_line("/listen")

        asyncio.run(scenario())

        output = output_of(screen)
        assert "Listening..." in output
        assert "… I can't sleep" in output
        assert "You said: I can't sleep" in output
        assert screen._snapshot_task is None

    def test_network_error_rendered(self):
        client = FakeDialogueClient()
        client.fail_turn = True
        screen = make_screen(client=client)

        async def scenario():
            await screen.controller.mount()
            await screen.handle_line("are you there?")

        asyncio.run(scenario())

        output = output_of(screen)
        assert "You: are you there?" in output
        assert "Message could not be delivered" in output

    def test_status_line(self):
        screen = make_screen()
        state = screen.controller.session_state

        assert screen.status_line(state) == "[voice off]"
        state.voice_output_enabled = True
        state.listening = True
        assert screen.status_line(state) == "[voice on | 🔴 listening]"

    def test_run_until_quit(self):
        client = FakeDialogueClient()
        screen = make_screen(client=client)
        screen.console.input = Mock(side_effect=["I feel anxious", "/quit"])

        asyncio.run(screen.run())

        assert client.sent == ["I feel anxious"]
        assert screen.running is False
        assert "Goodbye!" in output_of(screen)

    def test_run_ends_on_eof(self):
        screen = make_screen()
        screen.console.input = Mock(side_effect=EOFError)

        asyncio.run(screen.run())

        assert GREETING in output_of(screen)
        assert "Goodbye!" in output_of(screen)


@pytest.mark.unit
class TestChatScreenWhileWaiting:
    """Commands stay available while a reply is outstanding."""

    @staticmethod
    def feed(lines):
        """Console.input stand-in that paces lines like a typing user."""
        remaining = list(lines)

        def read(prompt=""):
            time.sleep(0.02)
            return remaining.pop(0)
        return read

    def test_commands_accepted_while_reply_pending(self):
        client = GatedDialogueClient()
        screen = make_screen(client=client)
        screen.console.input = self.feed(["hello", "/voice", "/refresh", "/quit"])

        asyncio.run(screen.run())

        assert client.sent == ["hello"]
        assert client.start_calls == 2
        assert screen.controller.session_state.voice_output_enabled is True
        assert screen.controller.transcript.messages == [Message.from_bot(GREETING)]
        assert screen._tasks == set()
        assert "Goodbye!" in output_of(screen)

    def test_second_message_refused_while_reply_pending(self):
        client = GatedDialogueClient()
        screen = make_screen(client=client)
        screen.console.input = self.feed(["first", "second", "/quit"])

        asyncio.run(screen.run())

        assert client.sent == ["first"]
        assert screen.controller.session_state.pending_input == "second"
        assert "still replying" in output_of(screen)
        assert [m.text for m in screen.controller.transcript] == [GREETING, "first"]
