"""Frame-synchronised audio analyzer driving avatar reactivity."""

import asyncio
import logging
from contextlib import ExitStack
from typing import Callable, Dict, Optional, Set

import numpy as np
from pubsub import pub

from ..errors import InitializationError
from ..models.audio import AnalyzerState, AnalyzerStats, AudioSample, SILENT_SAMPLE
from ..models.events import MediaEvent, MediaEventKind
from .frame_clock import FrameScheduler
from .graph import AudioGraph, MAX_BYTE_MAGNITUDE
from .media import MediaSource

logger = logging.getLogger(__name__)


# Legal state transitions
_TRANSITIONS: Dict[AnalyzerState, Set[AnalyzerState]] = {
    AnalyzerState.UNINITIALIZED: {AnalyzerState.INITIALIZING, AnalyzerState.CLOSED},
    AnalyzerState.INITIALIZING: {AnalyzerState.ACTIVE, AnalyzerState.UNINITIALIZED, AnalyzerState.CLOSED},
    AnalyzerState.ACTIVE: {AnalyzerState.SUSPENDED, AnalyzerState.INITIALIZING, AnalyzerState.CLOSED},
    AnalyzerState.SUSPENDED: {AnalyzerState.ACTIVE, AnalyzerState.INITIALIZING, AnalyzerState.CLOSED},
    AnalyzerState.CLOSED: set(),
}


def compute_volume(bins: np.ndarray) -> float:
    """Root-mean-square over all bins, normalized by the maximum bin magnitude."""
    if bins.size == 0:
        return 0.0
    values = bins.astype(np.float64)
    rms = float(np.sqrt(np.mean(values * values)))
    return min(max(rms / MAX_BYTE_MAGNITUDE, 0.0), 1.0)


def compute_dominant_frequency(bins: np.ndarray, nyquist_frequency: float) -> float:
    """Frequency of the loudest bin: index * nyquist / bin_count."""
    if bins.size == 0:
        return 0.0
    max_index = int(np.argmax(bins))
    return (max_index * nyquist_frequency) / bins.size


class AudioAnalyzer:
    """Extracts volume and dominant frequency from a playing media source.

    Lifecycle:
        UNINITIALIZED -> INITIALIZING -> ACTIVE <-> SUSPENDED -> CLOSED

    Samples are taken once per presentation frame while ACTIVE and the bound
    source is playing. A new frame is requested only after the previous
    tick has finished, and any pending frame is cancelled on pause, end or
    teardown.
    """

    def __init__(self,
                 callback: Optional[Callable[[AudioSample], None]] = None,
                 scheduler: Optional[FrameScheduler] = None,
                 fft_size: int = 256,
                 smoothing_time_constant: float = 0.8,
                 monitor_output: bool = False):
        """Initialize audio analyzer.

        Args:
            callback: Receives every AudioSample, including the silent reset sample on stop
            scheduler: Frame scheduler (60 fps if None)
            fft_size: FFT window size in samples
            smoothing_time_constant: Averaging constant between snapshots
            monitor_output: Route analysed audio to the default output device
        """
        self.sample_callback = callback
        self.scheduler = scheduler or FrameScheduler()
        self.fft_size = fft_size
        self.smoothing_time_constant = smoothing_time_constant
        self.monitor_output = monitor_output

        self._state = AnalyzerState.UNINITIALIZED
        self._source: Optional[MediaSource] = None
        self._graph: Optional[AudioGraph] = None
        self._resources = ExitStack()
        self._frame_handle: Optional[asyncio.TimerHandle] = None

        self.latest_sample = SILENT_SAMPLE
        self.total_ticks = 0

    # ── State ───────────────────────────────────────────────────────────

    @property
    def state(self) -> AnalyzerState:
        return self._state

    @property
    def source(self) -> Optional[MediaSource]:
        return self._source

    @property
    def is_sampling(self) -> bool:
        return self._frame_handle is not None

    @property
    def volume_level(self) -> float:
        return self.latest_sample.volume_level

    @property
    def dominant_frequency_hz(self) -> float:
        return self.latest_sample.dominant_frequency_hz

    def _transition(self, target: AnalyzerState, reason: str = "") -> None:
        if target == self._state:
            return
        if target not in _TRANSITIONS[self._state]:
            raise ValueError(f"Illegal analyzer transition: {self._state.value} -> {target.value}")
        logger.debug(f"Analyzer {self._state.value} -> {target.value}" + (f" ({reason})" if reason else ""))
        self._state = target

    # ── Binding ─────────────────────────────────────────────────────────

    def bind(self, source: MediaSource) -> None:
        """Build the analysis graph for a media source.

        Binding the already-bound source is a no-op. Binding a different
        source releases the previous graph first.

        Raises:
            InitializationError: If the audio subsystem is unavailable. The
                analyzer is left UNINITIALIZED and holds no resources.
            ValueError: If the analyzer has been closed
        """
        if self._state is AnalyzerState.CLOSED:
            raise ValueError("Cannot bind a closed analyzer")
        if source is self._source and self._graph is not None:
            logger.debug(f"Analyzer already bound to {source.source_id}")
            return

        self._release()
        self._transition(AnalyzerState.INITIALIZING, reason=f"bind {source.source_id}")

        resources = ExitStack()
        try:
            graph = resources.enter_context(AudioGraph(
                source,
                fft_size=self.fft_size,
                smoothing_time_constant=self.smoothing_time_constant,
                monitor_output=self.monitor_output,
            ))
            pub.subscribe(self._on_media_event, source.topic)
            resources.callback(self._unsubscribe, source.topic)
        except InitializationError as e:
            resources.close()
            self._state = AnalyzerState.UNINITIALIZED
            logger.warning(f"Audio analyzer unavailable, continuing without reactivity: {e}")
            raise
        except BaseException:
            resources.close()
            self._state = AnalyzerState.UNINITIALIZED
            raise

        self._resources = resources
        self._source = source
        self._graph = graph
        self._transition(AnalyzerState.ACTIVE, reason="graph ready")
        logger.info(f"Audio analyzer bound to {source.source_id}")

        if source.is_playing:
            self._start_sampling()

    def _unsubscribe(self, topic: str) -> None:
        try:
            pub.unsubscribe(self._on_media_event, topic)
        except Exception as e:
            logger.warning(f"Error during unsubscribe: {e}")

    def _release(self) -> None:
        """Cancel sampling and release every resource held for the bound source."""
        self._stop_sampling()
        try:
            self._resources.close()
        finally:
            self._resources = ExitStack()
            self._graph = None
            self._source = None

    # ── Playback events ─────────────────────────────────────────────────

    def _on_media_event(self, event: MediaEvent) -> None:
        if self._source is None or event.source_id != self._source.source_id:
            return

        if event.kind is MediaEventKind.PLAY:
            if self._state in (AnalyzerState.ACTIVE, AnalyzerState.SUSPENDED):
                logger.debug("Starting audio analysis")
                self._transition(AnalyzerState.ACTIVE, reason="play")
                self._start_sampling()
        elif event.kind in (MediaEventKind.PAUSE, MediaEventKind.ENDED):
            logger.debug(f"Stopping audio analysis ({event.kind.value})")
            if self._state is AnalyzerState.ACTIVE:
                self._transition(AnalyzerState.SUSPENDED, reason=event.kind.value)
            self._stop_sampling()

    # ── Sampling loop ───────────────────────────────────────────────────

    def _start_sampling(self) -> None:
        if self._frame_handle is not None or self._graph is None:
            return
        self._graph.reset()
        self._frame_handle = self.scheduler.request_frame(self._tick)

    def _stop_sampling(self) -> None:
        was_running = self._frame_handle is not None
        self.scheduler.cancel_frame(self._frame_handle)
        self._frame_handle = None
        if was_running or self.latest_sample != SILENT_SAMPLE:
            self._emit(SILENT_SAMPLE)

    def _tick(self, frame_time: float) -> None:
        self._frame_handle = None
        if (self._state is not AnalyzerState.ACTIVE
                or self._graph is None
                or self._source is None
                or not self._source.is_playing):
            return

        self._emit(self.sample(frame_time))

        # The callback may have torn us down or paused the source
        if (self._state is AnalyzerState.ACTIVE
                and self._source is not None
                and self._source.is_playing
                and self._frame_handle is None):
            self._frame_handle = self.scheduler.request_frame(self._tick)

    def sample(self, timestamp: float) -> AudioSample:
        """Take one frequency-domain snapshot and reduce it to an AudioSample."""
        bins = self._graph.get_byte_frequency_data(now=timestamp)
        self.total_ticks += 1
        return AudioSample(
            volume_level=compute_volume(bins),
            dominant_frequency_hz=compute_dominant_frequency(bins, self._graph.nyquist_frequency),
            timestamp=timestamp,
        )

    def _emit(self, sample: AudioSample) -> None:
        self.latest_sample = sample
        if self.sample_callback:
            self.sample_callback(sample)

    # ── Teardown ────────────────────────────────────────────────────────

    def close(self) -> None:
        """Cancel any pending frame and release the audio graph. Terminal."""
        if self._state is AnalyzerState.CLOSED:
            return
        try:
            self._release()
        finally:
            self._state = AnalyzerState.CLOSED
            logger.info("Audio analyzer closed")

    def get_stats(self) -> AnalyzerStats:
        """Get current analyzer statistics."""
        return AnalyzerStats(
            state=self._state,
            is_sampling=self.is_sampling,
            sample_rate=self._source.sample_rate if self._source else 0,
            fft_size=self.fft_size,
            total_ticks=self.total_ticks,
            source_id=self._source.source_id if self._source else "",
        )

    def __enter__(self) -> "AudioAnalyzer":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
