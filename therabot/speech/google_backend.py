"""Google Speech-to-Text recognition backend."""

import time
import logging
from typing import Optional

from .base import AbstractRecognitionBackend

from google.cloud import speech
from google.api_core import exceptions as gax_exceptions
from google.oauth2 import service_account

logger = logging.getLogger(__name__)


class GoogleSpeechBackend(AbstractRecognitionBackend):
    """Google Speech-to-Text API backend for recognizing short utterances."""

    def __init__(self,
                 credentials_path: Optional[str] = None,
                 sample_rate: int = 16000,
                 language: str = "en-US",
                 use_enhanced: bool = True,
                 enable_automatic_punctuation: bool = True,
                 request_timeout: float = 5.0):
        """Initialize Google Speech backend.

        Args:
            credentials_path: Path to Google Cloud service account JSON file
            sample_rate: Sample rate of the audio that will be sent
            language: Language code (e.g., 'en-US', 'es-ES')
            use_enhanced: Whether to use enhanced model (costs more but better quality)
            enable_automatic_punctuation: Enable automatic punctuation
            request_timeout: Per-request deadline in seconds
        """
        super().__init__(language)
        self.credentials_path = credentials_path
        if not self.credentials_path:
            raise ValueError("Google credentials path is required - cannot initialize without credentials")
        self.sample_rate = sample_rate
        self.use_enhanced = use_enhanced
        self.enable_automatic_punctuation = enable_automatic_punctuation
        self.request_timeout = request_timeout
        self.client = None
        self.project_id = None
        self.service_name = "Google Speech-to-Text"
        self.config = speech.RecognitionConfig(
                encoding=speech.RecognitionConfig.AudioEncoding.LINEAR16,
                sample_rate_hertz=sample_rate,
                language_code=self.language,
                use_enhanced=self.use_enhanced,
                enable_automatic_punctuation=self.enable_automatic_punctuation,
                model="latest_short",
            )

    def initialize(self) -> bool:
        """Initialize Google Speech client and verify credentials."""
        logger.info(f"Loading Google credentials from: {self.credentials_path}")
        credentials = service_account.Credentials.from_service_account_file(self.credentials_path)

        self.client = speech.SpeechClient(credentials=credentials)
        self.project_id = credentials.project_id
        logger.info(f"Using Google Cloud project: {self.project_id}")

        logger.info("Google Speech-to-Text backend initialized successfully")
        return True

    def transcribe(self, audio: bytes, sample_rate: int = 16000) -> str:
        """Transcribe audio using Google Speech-to-Text."""
        if self.client is None:
            raise RuntimeError("Google Speech backend used before initialize()")
        if sample_rate != self.sample_rate:
            raise ValueError(f"Backend configured for {self.sample_rate}Hz, got {sample_rate}Hz")

        start_time = time.time()
        logger.debug(f"Audio size: {len(audio)} bytes; Language: {self.language}")

        recognition_audio = speech.RecognitionAudio(content=audio)
        try:
            response = self.client.recognize(config=self.config, audio=recognition_audio,
                                             timeout=self.request_timeout)
        except gax_exceptions.DeadlineExceeded as e:
            logger.error("Google STT recognize deadline exceeded")
            raise RuntimeError(f"Google Speech recognize timeout: {e}") from e
        except gax_exceptions.ServiceUnavailable as e:
            logger.error("Google STT service unavailable")
            raise RuntimeError(f"Google Speech service unavailable: {e}") from e
        except gax_exceptions.GoogleAPICallError as e:
            logger.error("Google STT API call error: %s", e)
            raise RuntimeError(f"Google Speech API error: {e}") from e
        processing_time = time.time() - start_time

        if not response.results:
            logger.debug(f"--- NO SPEECH DETECTED --- ({processing_time:.3f}s)")
            return ""

        # Long buffers can come back split into several results
        text = " ".join(
            result.alternatives[0].transcript.strip()
            for result in response.results
            if result.alternatives
        ).strip()
        logger.debug(f"Recognized '{text}' in {processing_time:.3f}s")
        return text

    def cleanup(self) -> None:
        """Clean up Google Speech client resources."""
        self.client = None
