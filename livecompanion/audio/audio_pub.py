"""Audio sample publisher for pub/sub fan-out to presentation surfaces."""

import logging
from pubsub import pub
from ..models.audio import AudioSample

logger = logging.getLogger(__name__)

AUDIO_SAMPLE_TOPIC = "audio_samples"


class AudioSamplePublisher:
    """Publishes analyzer samples using pubsub.pub."""

    def __init__(self, topic: str = AUDIO_SAMPLE_TOPIC):
        """Initialize audio sample publisher.

        Args:
            topic: Pub/sub topic name for audio samples
        """
        self.topic = topic
        logger.info(f"AudioSamplePublisher initialized with topic: {topic}")

    def publish_audio_sample(self, sample: AudioSample) -> None:
        """Publish an audio sample to the pub/sub topic."""
        pub.sendMessage(self.topic, sample=sample)
