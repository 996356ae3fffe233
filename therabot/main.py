"""Main application entry point for Therabot."""

import sys
import asyncio
import argparse
import logging
from pathlib import Path
from typing import Optional

from .config import TherabotConfig
from .dialogue.client import DialogueClient
from .services.session_controller import SessionController
from .speech.recognizer import SpeechInputAdapter
from .speech.synthesis import SpeechOutputAdapter, Pyttsx3SpeechProvider

logger = logging.getLogger(__name__)


def setup_logging(config: TherabotConfig, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    log_file_path = config.get('logging.file_path', 'logs/therabot.log')
    console_output = config.get('logging.console_output', True)

    log_dir = Path(log_file_path).parent
    log_dir.mkdir(parents=True, exist_ok=True)

    handlers = []

    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(logging.DEBUG)
    file_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    )
    file_handler.setFormatter(file_formatter)
    handlers.append(file_handler)

    # Console handler - only warnings, the chat owns the terminal
    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.WARNING)
        console_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        console_handler.setFormatter(console_formatter)
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger.info("=" * 50)
    logger.info("Therabot starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("=" * 50)


def build_speech_input(config: TherabotConfig) -> SpeechInputAdapter:
    """Create the speech input adapter; without credentials it reports unsupported."""
    credentials_path = config.get_google_credentials_path()
    if not credentials_path:
        logger.info("No Google credentials configured; speech input disabled")
        return SpeechInputAdapter(provider=None)

    # Imported here so text-only use does not need the Google or PyAudio stacks loaded
    from .speech.google_backend import GoogleSpeechBackend
    from .speech.microphone import MicrophoneRecognitionProvider

    sample_rate = config.get('audio.sample_rate', 16000)
    backend = GoogleSpeechBackend(
        credentials_path=credentials_path,
        sample_rate=sample_rate,
        language=config.get('speech.language', 'en-US'),
        use_enhanced=config.get('google_cloud.use_enhanced_model', True),
        enable_automatic_punctuation=config.get('google_cloud.enable_automatic_punctuation', True),
    )
    if not backend.initialize():
        raise RuntimeError("Google Speech backend failed to initialize")

    provider = MicrophoneRecognitionProvider(
        backend=backend,
        sample_rate=sample_rate,
        chunk_size=config.get('audio.chunk_size', 1024),
        channels=config.get('audio.channels', 1),
        window_seconds=config.get('audio.recognition_window_seconds', 3.0),
    )
    return SpeechInputAdapter(provider=provider)


def build_speech_output(config: TherabotConfig) -> SpeechOutputAdapter:
    provider = Pyttsx3SpeechProvider(
        rate=config.get('speech.rate'),
        voice_name=config.get('speech.voice_name'),
    )
    return SpeechOutputAdapter(provider)


def build_controller(config: TherabotConfig) -> SessionController:
    """Wire the dialogue client and speech adapters into a session controller."""
    client = DialogueClient(
        base_url=config.get_base_url(),
        timeout_seconds=config.get('dialogue.timeout_seconds'),
    )
    return SessionController(
        dialogue_client=client,
        speech_input=build_speech_input(config),
        speech_output=build_speech_output(config),
        voice_output_enabled=config.get('speech.voice_output_enabled', False),
        continuous=config.get('speech.continuous', True),
    )


async def run_chat(config: TherabotConfig) -> None:
    from .ui.chat_screen import ChatScreen

    controller = build_controller(config)
    screen = ChatScreen(controller)
    await screen.run()


def main(argv: Optional[list] = None) -> None:
    """Main entry point for Therabot."""
    parser = argparse.ArgumentParser(
        description="Therabot - talk to a therapy chatbot by keyboard or voice",
        epilog="Commands: /listen, /voice, /refresh, /help, /quit"
    )

    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration YAML file (default: built-in settings)"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (overrides config)"
    )

    parser.add_argument(
        "--base-url",
        type=str,
        help="Dialogue service base URL (overrides config)"
    )

    parser.add_argument(
        "--voice-output",
        action="store_true",
        help="Speak replies from the start"
    )

    parser.add_argument(
        "--version",
        action="version",
        version="Therabot v0.1.0"
    )

    args = parser.parse_args(argv)

    try:
        config = TherabotConfig(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"❌ Configuration error: {e}", file=sys.stderr)
        sys.exit(2)

    if args.base_url:
        config.set('dialogue.base_url', args.base_url)
    if args.voice_output:
        config.set('speech.voice_output_enabled', True)

    setup_logging(config, args.log_level or config.get('logging.level', 'INFO'))

    try:
        asyncio.run(run_chat(config))
    except KeyboardInterrupt:
        print("\n👋 Goodbye!")
    except Exception as e:
        print(f"❌ Error: {e}", file=sys.stderr)
        logger.error(f"Application error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
