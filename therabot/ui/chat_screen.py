"""Terminal chat screen for Therabot."""

import asyncio
import logging
from typing import Optional, Set
from pubsub import pub
from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from ..models.message import Message, Sender
from ..models.session import SessionState
from ..services.session_controller import (
    SessionController,
    MESSAGE_TOPIC,
    RESET_TOPIC,
    ERROR_TOPIC,
)


logger = logging.getLogger(__name__)

BOT_NAME = "Therabot"
QUIT_COMMANDS = ("/quit", "/exit")

UNSUPPORTED_SPEECH_NOTICE = (
    "Speech recognition is not available, so Therabot is running in text-only mode.\n"
    "To enable voice input:\n"
    "  1. Connect a microphone.\n"
    "  2. Set google_cloud.credentials_path in your configuration file.\n"
    "  3. Restart Therabot."
)


class ChatScreen:
    """Line-based chat interface.

    Plain lines are sent as messages; commands start with a slash.
    """

    def __init__(self, controller: SessionController, console: Optional[Console] = None):
        self.controller = controller
        self.console = console or Console()
        self.running = False
        self._snapshot_task: Optional[asyncio.Task] = None
        self._tasks: Set[asyncio.Task] = set()

        # pubsub keeps weak references; bound methods live as long as self
        pub.subscribe(self.on_message, MESSAGE_TOPIC)
        pub.subscribe(self.on_reset, RESET_TOPIC)
        pub.subscribe(self.on_error, ERROR_TOPIC)

    @property
    def text_only(self) -> bool:
        return not self.controller.voice_input_supported

    def on_message(self, message: Message) -> None:
        if message.sender is Sender.USER:
            self.console.print(Text.assemble(("You: ", "bold cyan"), message.text))
        else:
            self.console.print(Text.assemble((f"{BOT_NAME}: ", "bold magenta"), message.text))

    def on_reset(self) -> None:
        self.console.clear()
        self.show_header()

    def on_error(self, error: str) -> None:
        self.console.print(f"⚠️  {error}", style="bold red")

    def show_header(self) -> None:
        self.console.print(Panel(Text(BOT_NAME, style="bold blue", justify="center"), style="bright_blue"))
        if self.text_only:
            self.console.print(Panel(UNSUPPORTED_SPEECH_NOTICE, title="Text-only mode", border_style="yellow"))
        self.show_help()

    def show_help(self) -> None:
        self.console.print("Commands:")
        if not self.text_only:
            self.console.print("  [bold yellow]/listen[/bold yellow] - Start or stop listening (stopping sends what was heard)")
        self.console.print("  [bold blue]/voice[/bold blue]  - Enable or disable spoken replies")
        self.console.print("  [bold green]/refresh[/bold green] - Start a new conversation")
        self.console.print("  [bold red]/quit[/bold red]   - Quit")

    def status_line(self, state: SessionState) -> str:
        voice = "on" if state.voice_output_enabled else "off"
        listening = " | 🔴 listening" if state.listening else ""
        return f"[voice {voice}{listening}]"

    async def handle_line(self, line: str) -> bool:
        """Handle one input line. Returns False when the user quits."""
        command = line.strip().lower()

        if command in QUIT_COMMANDS:
            return False
        if command == "/help":
            self.show_help()
        elif command == "/refresh":
            await self.controller.refresh()
        elif command == "/voice":
            enabled = self.controller.toggle_voice_output()
            self.console.print(f"Spoken replies {'enabled' if enabled else 'disabled'}", style="dim")
        elif command == "/listen":
            await self._toggle_listening()
        elif command.startswith("/"):
            self.console.print(f"Unknown command: {command}", style="yellow")
        elif not self.controller.can_submit:
            self.controller.set_pending_input(line)
            self.console.print("Therabot is still replying; please send that again after the reply arrives",
                               style="yellow")
        else:
            await self.controller.submit(line)
        return True

    async def _toggle_listening(self) -> None:
        if self.text_only:
            self.console.print("Voice input is not available in text-only mode", style="yellow")
            return

        if self.controller.session_state.listening:
            await self.controller.toggle_listening()
            await self._stop_snapshot_display()
            return

        subscription = self.controller.speech_input.subscribe()
        if await self.controller.toggle_listening():
            self.console.print("🎙️  Listening... type /listen again to send", style="bold green")
            self._snapshot_task = asyncio.create_task(self._show_snapshots(subscription))
        else:
            subscription.close()

    async def _show_snapshots(self, subscription) -> None:
        async for snapshot in subscription:
            if not snapshot.final:
                self.console.print(f"   … {snapshot.text}", style="dim italic")

    async def _stop_snapshot_display(self) -> None:
        # Stopping capture closes the subscription, which ends the task
        task, self._snapshot_task = self._snapshot_task, None
        if task is not None:
            await task

    def _spawn(self, coro) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def run(self) -> None:
        """Mount the session and process input until the user quits.

        Each line is handled in its own task so commands stay available while
        a reply is outstanding.
        """
        loop = asyncio.get_running_loop()
        self.running = True
        self.show_header()
        self._spawn(self.controller.mount())

        try:
            while self.running:
                prompt = f"{self.status_line(self.controller.session_state)} > "
                try:
                    line = await loop.run_in_executor(None, self.console.input, prompt)
                except EOFError:
                    break
                if line.strip().lower() in QUIT_COMMANDS:
                    break
                self._spawn(self.handle_line(line))
        finally:
            self.running = False
            for task in list(self._tasks):
                task.cancel()
            await asyncio.gather(*self._tasks, return_exceptions=True)
            await self.controller.shutdown()
            await self._stop_snapshot_display()
            self.console.print("\n👋 Goodbye!")
