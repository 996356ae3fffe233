"""Audio publisher module for pub/sub event publishing."""

import logging
from pubsub import pub
from ..models.events import AudioEvent

logger = logging.getLogger(__name__)


class AudioPublisher:
    """Publishes captured microphone chunks on a pypubsub topic."""

    def __init__(self, topic: str = "therabot.audio"):
        """Initialize audio publisher.

        Args:
            topic: Pub/sub topic name for audio events
        """
        self.topic = topic
        logger.info(f"AudioPublisher initialized with topic: {topic}")

    def publish_audio_event(self, audio_event: AudioEvent) -> None:
        """Publish an audio event to the pub/sub topic."""
        pub.sendMessage(self.topic, event=audio_event)
        if audio_event.final:
            logger.debug(f"Published final audio event: {audio_event.chunk_id}")
