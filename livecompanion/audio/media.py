"""Media sources that play audio and announce their playback lifecycle."""

import asyncio
import logging
import uuid
import wave
from abc import ABC, abstractmethod
from typing import Optional

import numpy as np
from pubsub import pub

from ..models.events import MediaEvent, MediaEventKind

logger = logging.getLogger(__name__)

MEDIA_LIFECYCLE_TOPIC = "media_lifecycle"


class MediaSource(ABC):
    """A playable audio source.

    Sources publish MediaEvents on the media lifecycle topic and give readers
    access to the samples around the current playback position. Readers never
    mutate the source.
    """

    def __init__(self, sample_rate: int, topic: str = MEDIA_LIFECYCLE_TOPIC):
        self.source_id = f"src_{uuid.uuid4().hex[:12]}"
        self.sample_rate = sample_rate
        self.topic = topic

    @property
    @abstractmethod
    def is_playing(self) -> bool:
        """True while the source is actively playing."""
        pass

    @abstractmethod
    def read_window(self, num_samples: int) -> np.ndarray:
        """Return the most recently played num_samples as float32 in [-1, 1].

        Shorter arrays are returned near the start of playback.
        """
        pass

    def publish(self, kind: MediaEventKind) -> None:
        """Announce a lifecycle transition on the pub/sub bus."""
        event = MediaEvent(source_id=self.source_id, kind=kind)
        logger.debug(f"Media {self.source_id}: {kind.value}")
        pub.sendMessage(self.topic, event=event)


class ArrayMediaSource(MediaSource):
    """Plays an in-memory mono buffer against the event loop clock."""

    def __init__(self,
                 samples: np.ndarray,
                 sample_rate: int,
                 topic: str = MEDIA_LIFECYCLE_TOPIC,
                 loop: Optional[asyncio.AbstractEventLoop] = None):
        """Initialize array media source.

        Args:
            samples: Mono samples, float in [-1, 1]
            sample_rate: Sample rate in Hz
            topic: Pub/sub topic for lifecycle events
            loop: Event loop providing the playback clock. If None, the
                  running loop is used.
        """
        super().__init__(sample_rate, topic)
        self.samples = np.asarray(samples, dtype=np.float32)
        self._loop = loop
        self._offset_samples = 0
        self._started_at: Optional[float] = None
        self._end_handle: Optional[asyncio.TimerHandle] = None

    @property
    def duration_seconds(self) -> float:
        return len(self.samples) / self.sample_rate

    @property
    def is_playing(self) -> bool:
        return self._started_at is not None

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is not None:
            return self._loop
        return asyncio.get_running_loop()

    def position(self) -> int:
        """Current playback position in samples."""
        if self._started_at is None:
            return self._offset_samples
        elapsed = self._get_loop().time() - self._started_at
        return min(len(self.samples), self._offset_samples + int(elapsed * self.sample_rate))

    def play(self) -> None:
        if self.is_playing:
            return
        if self._offset_samples >= len(self.samples):
            self._offset_samples = 0

        loop = self._get_loop()
        self._started_at = loop.time()
        remaining = (len(self.samples) - self._offset_samples) / self.sample_rate
        self._end_handle = loop.call_later(remaining, self._on_end)
        self.publish(MediaEventKind.PLAY)

    def pause(self) -> None:
        if not self.is_playing:
            return
        self._offset_samples = self.position()
        self._stop_clock()
        self.publish(MediaEventKind.PAUSE)

    def _on_end(self) -> None:
        self._end_handle = None
        self._offset_samples = len(self.samples)
        self._stop_clock()
        self.publish(MediaEventKind.ENDED)

    def _stop_clock(self) -> None:
        self._started_at = None
        if self._end_handle is not None:
            self._end_handle.cancel()
            self._end_handle = None

    async def wait_until_ended(self, poll_interval: float = 0.05) -> None:
        """Wait until playback has stopped."""
        while self.is_playing:
            await asyncio.sleep(poll_interval)

    def read_window(self, num_samples: int) -> np.ndarray:
        end = self.position()
        start = max(0, end - num_samples)
        return self.samples[start:end]


class WavFileSource(ArrayMediaSource):
    """Plays a PCM WAV file, mixed down to mono."""

    def __init__(self, file_path: str, topic: str = MEDIA_LIFECYCLE_TOPIC,
                 loop: Optional[asyncio.AbstractEventLoop] = None):
        self.file_path = file_path
        samples, sample_rate = self._load(file_path)
        super().__init__(samples, sample_rate, topic=topic, loop=loop)
        logger.info(f"Loaded {file_path}: {sample_rate}Hz, {self.duration_seconds:.1f}s")

    @staticmethod
    def _load(file_path: str):
        with wave.open(file_path, 'rb') as wf:
            sample_width = wf.getsampwidth()
            channels = wf.getnchannels()
            sample_rate = wf.getframerate()
            raw = wf.readframes(wf.getnframes())

        if sample_width == 1:
            data = (np.frombuffer(raw, dtype=np.uint8).astype(np.float32) - 128.0) / 128.0
        elif sample_width == 2:
            data = np.frombuffer(raw, dtype=np.int16).astype(np.float32) / 32768.0
        elif sample_width == 4:
            data = np.frombuffer(raw, dtype=np.int32).astype(np.float32) / 2147483648.0
        else:
            raise ValueError(f"Unsupported WAV sample width: {sample_width} bytes")

        if channels > 1:
            data = data.reshape(-1, channels).mean(axis=1)
        return data, sample_rate
