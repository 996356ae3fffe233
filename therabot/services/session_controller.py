"""Conversation session controller.

Owns the transcript, drives the request/reply cycle with the dialogue
service and keeps it in step with optional speech input and output.

Phases::

    IDLE -> AWAITING_INITIAL_REPLY -> READY <-> AWAITING_TURN_REPLY

``listening`` is tracked separately; ``state`` reports LISTENING while the
microphone is capturing and no reply is pending. Only one request is in
flight per session; ``refresh()`` starts a new session generation and any
reply belonging to an older generation is dropped when it arrives.
"""

import logging
from typing import Optional
from pubsub import pub

from ..dialogue.client import DialogueClient
from ..exceptions import NetworkError, UnsupportedCapabilityError
from ..models.message import Message, Transcript
from ..models.session import SessionPhase, SessionState
from ..speech.recognizer import SpeechInputAdapter
from ..speech.synthesis import SpeechOutputAdapter

logger = logging.getLogger(__name__)

MESSAGE_TOPIC = "therabot.session.message"
RESET_TOPIC = "therabot.session.reset"
STATE_TOPIC = "therabot.session.state"
ERROR_TOPIC = "therabot.session.error"


class SessionController:
    """Coordinates transcript, dialogue client and speech adapters."""

    def __init__(self,
                 dialogue_client: DialogueClient,
                 speech_input: Optional[SpeechInputAdapter] = None,
                 speech_output: Optional[SpeechOutputAdapter] = None,
                 voice_output_enabled: bool = False,
                 continuous: bool = True):
        """Initialize session controller.

        Args:
            dialogue_client: Client for the remote dialogue service
            speech_input: Speech input adapter, None for text-only use
            speech_output: Speech output adapter, None disables playback
            voice_output_enabled: Whether replies are spoken initially
            continuous: Continuous recognition mode for voice capture
        """
        self.dialogue_client = dialogue_client
        self.speech_input = speech_input
        self.speech_output = speech_output
        self.continuous = continuous

        self.transcript = Transcript()
        self.session_state = SessionState(voice_output_enabled=voice_output_enabled)
        self._generation = 0

        # Detected once; the front end shows text-only mode when False
        self.voice_input_supported = speech_input is not None and speech_input.is_supported()
        logger.info(f"SessionController initialized (voice input supported: {self.voice_input_supported})")

    @property
    def state(self) -> SessionPhase:
        phase = self.session_state.phase
        if self.session_state.listening and phase is SessionPhase.READY:
            return SessionPhase.LISTENING
        return phase

    @property
    def can_submit(self) -> bool:
        """False while a reply is outstanding."""
        return not self.session_state.phase.is_awaiting_reply

    async def mount(self) -> bool:
        """Open a session and append the service's greeting.

        Returns:
            True if the greeting was appended
        """
        self._generation += 1
        generation = self._generation
        self._set_phase(SessionPhase.AWAITING_INITIAL_REPLY)

        try:
            reply = await self.dialogue_client.start_session()
        except NetworkError as e:
            if generation == self._generation:
                self._report_error(f"Could not start the conversation: {e}")
                self._set_phase(SessionPhase.READY)
            return False

        if generation != self._generation:
            logger.info("Discarding greeting from a superseded session")
            return False

        self._append_bot_reply(reply)
        self._set_phase(SessionPhase.READY)
        return True

    async def submit(self, text: Optional[str] = None) -> bool:
        """Send the staged input (or ``text``) as one turn.

        Whitespace-only input is ignored without a network call. While a reply
        is outstanding the submission is refused and the text stays staged.

        Returns:
            True if the turn completed with a bot reply
        """
        if text is not None:
            self.session_state.pending_input = text

        message_text = self.session_state.pending_input.strip()
        if not message_text:
            logger.debug("Ignoring empty input")
            return False
        if not self.can_submit:
            logger.warning("A reply is still pending; submission refused")
            return False

        generation = self._generation
        self._append(Message.from_user(message_text))
        self.session_state.pending_input = ""
        self._set_phase(SessionPhase.AWAITING_TURN_REPLY)

        try:
            reply = await self.dialogue_client.send_turn(message_text)
        except NetworkError as e:
            if generation == self._generation:
                self._report_error(f"Message could not be delivered: {e}")
                self._set_phase(SessionPhase.READY)
            return False

        if generation != self._generation:
            logger.info("Discarding reply from a superseded session")
            return False

        self._append_bot_reply(reply)
        self._set_phase(SessionPhase.READY)
        return True

    def set_pending_input(self, text: str) -> None:
        self.session_state.pending_input = text

    async def toggle_listening(self) -> bool:
        """Start voice capture, or stop it and submit what was heard.

        Returns:
            Whether the controller is listening afterwards

        Raises:
            UnsupportedCapabilityError: If speech input is unavailable
        """
        if not self.voice_input_supported:
            raise UnsupportedCapabilityError("Speech input is not available in this environment")

        if self.session_state.listening:
            await self._stop_listening_and_submit()
        else:
            self._start_listening()
        return self.session_state.listening

    def _start_listening(self) -> None:
        self.speech_input.clear()
        try:
            started = self.speech_input.start(continuous=self.continuous)
        except Exception as e:
            logger.error(f"Failed to start voice capture: {e}", exc_info=True)
            self._report_error(f"Could not start listening: {e}")
            started = False

        self.session_state.listening = started
        self._publish_state()

    async def _stop_listening_and_submit(self) -> None:
        # Cleared first so a second toggle during the flush cannot stop twice
        self.session_state.listening = False
        final_text = await self.speech_input.stop()
        self.session_state.pending_input = final_text
        self._publish_state()

        if not final_text.strip():
            logger.info("Voice capture ended with an empty transcript; nothing to send")
            return
        await self.submit()

    async def refresh(self) -> bool:
        """Clear everything and open a new session."""
        logger.info("Refreshing conversation")
        self.transcript.clear()
        if self.speech_input is not None:
            self.speech_input.clear()
        self.session_state.last_error = None
        pub.sendMessage(RESET_TOPIC)
        return await self.mount()

    def toggle_voice_output(self) -> bool:
        """Flip voice output for future replies; returns the new setting."""
        self.session_state.voice_output_enabled = not self.session_state.voice_output_enabled
        logger.info(f"Voice output enabled: {self.session_state.voice_output_enabled}")
        self._publish_state()
        return self.session_state.voice_output_enabled

    async def shutdown(self) -> None:
        """Stop capture if active and release the speech output worker."""
        if self.session_state.listening:
            self.session_state.listening = False
            await self.speech_input.stop()
        if self.speech_output is not None:
            self.speech_output.shutdown()
        logger.info("SessionController shut down")

    def _append(self, message: Message) -> None:
        self.transcript.append(message)
        pub.sendMessage(MESSAGE_TOPIC, message=message)

    def _append_bot_reply(self, reply: str) -> None:
        message = Message.from_bot(reply)
        self._append(message)
        if self.session_state.voice_output_enabled and self.speech_output is not None:
            self.speech_output.speak(message.text)

    def _set_phase(self, phase: SessionPhase) -> None:
        self.session_state.phase = phase
        self._publish_state()

    def _publish_state(self) -> None:
        pub.sendMessage(STATE_TOPIC, state=self.session_state)

    def _report_error(self, error: str) -> None:
        logger.error(error)
        self.session_state.last_error = error
        pub.sendMessage(ERROR_TOPIC, error=error)
