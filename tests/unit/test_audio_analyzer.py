"""Unit tests for AudioAnalyzer class."""

import pytest
import numpy as np
from pubsub import pub

from livecompanion.audio.analyzer import AudioAnalyzer, compute_dominant_frequency, compute_volume
from livecompanion.audio.audio_pub import AUDIO_SAMPLE_TOPIC, AudioSamplePublisher
from livecompanion.errors import InitializationError
from livecompanion.models.audio import AnalyzerState, SILENT_SAMPLE


@pytest.mark.unit
class TestSpectrumReductions:
    """Test cases for volume and dominant frequency reductions."""

    def test_volume_of_silence_is_zero(self):
        assert compute_volume(np.zeros(128, dtype=np.uint8)) == 0.0

    def test_volume_of_full_scale_bins_is_one(self):
        assert compute_volume(np.full(128, 255, dtype=np.uint8)) == pytest.approx(1.0)

    def test_volume_is_rms_over_bins(self):
        bins = np.array([255, 0, 0, 0], dtype=np.uint8)
        # sqrt(255^2 / 4) / 255
        assert compute_volume(bins) == pytest.approx(0.5)

    def test_volume_of_empty_bins_is_zero(self):
        assert compute_volume(np.array([], dtype=np.uint8)) == 0.0

    def test_dominant_frequency_uses_bin_index(self):
        bins = np.zeros(128, dtype=np.uint8)
        bins[16] = 200
        assert compute_dominant_frequency(bins, 8000.0) == pytest.approx(1000.0)

    def test_dominant_frequency_ties_resolve_to_lowest_bin(self):
        bins = np.zeros(128, dtype=np.uint8)
        bins[10] = 200
        bins[20] = 200
        assert compute_dominant_frequency(bins, 8000.0) == pytest.approx(10 * 8000.0 / 128)

    def test_dominant_frequency_of_silence_is_zero(self):
        assert compute_dominant_frequency(np.zeros(128, dtype=np.uint8), 8000.0) == 0.0


@pytest.mark.unit
class TestAudioAnalyzer:
    """Test cases for AudioAnalyzer lifecycle and sampling."""

    def test_initialization(self, frame_scheduler):
        """Test AudioAnalyzer initialization with default parameters."""
        analyzer = AudioAnalyzer(scheduler=frame_scheduler)

        assert analyzer.state is AnalyzerState.UNINITIALIZED
        assert analyzer.source is None
        assert analyzer.is_sampling is False
        assert analyzer.volume_level == 0.0
        assert analyzer.dominant_frequency_hz == 0.0
        assert analyzer.total_ticks == 0

    def test_bind_paused_source(self, mock_pyaudio, frame_scheduler, fake_source):
        """Binding a paused source activates the graph without sampling."""
        analyzer = AudioAnalyzer(scheduler=frame_scheduler)
        analyzer.bind(fake_source)

        assert analyzer.state is AnalyzerState.ACTIVE
        assert analyzer.source is fake_source
        assert analyzer.is_sampling is False
        assert frame_scheduler.requests == 0
        mock_pyaudio['class'].assert_called_once()

    def test_bind_playing_source_starts_sampling(self, mock_pyaudio, frame_scheduler, fake_source):
        fake_source.playing = True
        analyzer = AudioAnalyzer(scheduler=frame_scheduler)
        analyzer.bind(fake_source)

        assert analyzer.is_sampling is True
        assert frame_scheduler.requests == 1

    def test_bind_same_source_is_noop(self, mock_pyaudio, frame_scheduler, fake_source):
        analyzer = AudioAnalyzer(scheduler=frame_scheduler)
        analyzer.bind(fake_source)
        analyzer.bind(fake_source)

        mock_pyaudio['class'].assert_called_once()
        mock_pyaudio['instance'].terminate.assert_not_called()

    def test_bind_new_source_releases_previous(self, mock_pyaudio, frame_scheduler, make_source, sine_wave):
        first = make_source(sine_wave(1000.0, 0.016))
        second = make_source(sine_wave(500.0, 0.016))
        analyzer = AudioAnalyzer(scheduler=frame_scheduler)

        analyzer.bind(first)
        first.play()
        analyzer.bind(second)

        assert analyzer.source is second
        assert analyzer.is_sampling is False
        mock_pyaudio['instance'].terminate.assert_called_once()

        # Events from the released source are ignored
        first.pause()
        first.play()
        assert analyzer.is_sampling is False

    def test_bind_failure_leaves_analyzer_uninitialized(self, mock_pyaudio, frame_scheduler, fake_source):
        """An unavailable audio subsystem raises and holds no resources."""
        mock_pyaudio['class'].side_effect = OSError("No audio device")
        analyzer = AudioAnalyzer(scheduler=frame_scheduler)

        with pytest.raises(InitializationError):
            analyzer.bind(fake_source)

        assert analyzer.state is AnalyzerState.UNINITIALIZED
        assert analyzer.source is None

        # Never subscribed, so playback does not start sampling
        fake_source.play()
        assert frame_scheduler.requests == 0

    def test_bind_failure_opening_output_releases_pyaudio(self, mock_pyaudio, frame_scheduler, fake_source):
        mock_pyaudio['instance'].open.side_effect = OSError("Output device busy")
        analyzer = AudioAnalyzer(scheduler=frame_scheduler, monitor_output=True)

        with pytest.raises(InitializationError):
            analyzer.bind(fake_source)

        mock_pyaudio['instance'].terminate.assert_called_once()
        assert analyzer.state is AnalyzerState.UNINITIALIZED

    def test_bind_after_close_raises(self, mock_pyaudio, frame_scheduler, fake_source):
        analyzer = AudioAnalyzer(scheduler=frame_scheduler)
        analyzer.close()

        with pytest.raises(ValueError):
            analyzer.bind(fake_source)

    def test_play_starts_sampling(self, mock_pyaudio, frame_scheduler, fake_source):
        samples = []
        analyzer = AudioAnalyzer(callback=samples.append, scheduler=frame_scheduler)
        analyzer.bind(fake_source)

        fake_source.play()
        assert analyzer.is_sampling is True

        frame_scheduler.advance()

        assert len(samples) == 1
        assert samples[0].volume_level > 0.0
        assert samples[0].dominant_frequency_hz == pytest.approx(1000.0)
        assert samples[0].timestamp == pytest.approx(frame_scheduler.time)
        assert analyzer.total_ticks == 1

    def test_next_frame_requested_only_after_tick_completes(self, mock_pyaudio, frame_scheduler, fake_source):
        """At most one frame is pending, and never while a tick is running."""
        pending_during_callback = []

        def on_sample(sample):
            pending_during_callback.append((analyzer.is_sampling, len(frame_scheduler.live_handles)))

        analyzer = AudioAnalyzer(callback=on_sample, scheduler=frame_scheduler)
        analyzer.bind(fake_source)
        fake_source.play()

        frame_scheduler.advance(frames=5)

        assert pending_during_callback == [(False, 0)] * 5
        assert len(frame_scheduler.live_handles) == 1
        assert frame_scheduler.requests == 6

    def test_pause_cancels_pending_frame_and_reports_silence(self, mock_pyaudio, frame_scheduler, fake_source):
        samples = []
        analyzer = AudioAnalyzer(callback=samples.append, scheduler=frame_scheduler)
        analyzer.bind(fake_source)
        fake_source.play()
        frame_scheduler.advance(frames=3)

        pending = frame_scheduler.live_handles[0]
        fake_source.pause()

        assert pending.cancelled is True
        assert analyzer.is_sampling is False
        assert analyzer.state is AnalyzerState.SUSPENDED
        assert samples[-1] == SILENT_SAMPLE
        assert analyzer.volume_level == 0.0
        assert analyzer.dominant_frequency_hz == 0.0

        frame_scheduler.advance(frames=3)
        assert analyzer.total_ticks == 3

    def test_end_behaves_like_pause(self, mock_pyaudio, frame_scheduler, fake_source):
        analyzer = AudioAnalyzer(scheduler=frame_scheduler)
        analyzer.bind(fake_source)
        fake_source.play()
        frame_scheduler.advance()

        fake_source.end()

        assert analyzer.state is AnalyzerState.SUSPENDED
        assert analyzer.is_sampling is False
        assert analyzer.latest_sample == SILENT_SAMPLE

    def test_resume_after_pause(self, mock_pyaudio, frame_scheduler, fake_source):
        analyzer = AudioAnalyzer(scheduler=frame_scheduler)
        analyzer.bind(fake_source)
        fake_source.play()
        frame_scheduler.advance()
        fake_source.pause()

        fake_source.play()
        frame_scheduler.advance()

        assert analyzer.state is AnalyzerState.ACTIVE
        assert analyzer.is_sampling is True
        assert analyzer.total_ticks == 2
        assert analyzer.volume_level > 0.0

    def test_tick_after_source_stops_does_not_rearm(self, mock_pyaudio, frame_scheduler, fake_source):
        """A source that stops without an event is picked up on the next tick."""
        analyzer = AudioAnalyzer(scheduler=frame_scheduler)
        analyzer.bind(fake_source)
        fake_source.play()

        fake_source.playing = False
        frame_scheduler.advance()

        assert analyzer.is_sampling is False
        assert analyzer.total_ticks == 0

    def test_callback_closing_analyzer_stops_loop(self, mock_pyaudio, frame_scheduler, fake_source):
        analyzer = AudioAnalyzer(scheduler=frame_scheduler)
        analyzer.sample_callback = lambda sample: analyzer.close()
        analyzer.bind(fake_source)
        fake_source.play()

        frame_scheduler.advance()

        assert analyzer.state is AnalyzerState.CLOSED
        assert frame_scheduler.live_handles == []

    def test_close_cancels_pending_frame_and_releases_graph(self, mock_pyaudio, frame_scheduler, fake_source):
        analyzer = AudioAnalyzer(scheduler=frame_scheduler)
        analyzer.bind(fake_source)
        fake_source.play()
        pending = frame_scheduler.live_handles[0]

        analyzer.close()

        assert pending.cancelled is True
        assert analyzer.state is AnalyzerState.CLOSED
        assert analyzer.source is None
        mock_pyaudio['instance'].terminate.assert_called_once()

        # Unsubscribed from lifecycle events
        fake_source.pause()
        fake_source.play()
        assert frame_scheduler.live_handles == []

    def test_close_is_idempotent(self, mock_pyaudio, frame_scheduler, fake_source):
        analyzer = AudioAnalyzer(scheduler=frame_scheduler)
        analyzer.bind(fake_source)

        analyzer.close()
        analyzer.close()

        assert analyzer.state is AnalyzerState.CLOSED
        mock_pyaudio['instance'].terminate.assert_called_once()

    def test_close_without_bind(self, frame_scheduler):
        analyzer = AudioAnalyzer(scheduler=frame_scheduler)
        analyzer.close()
        assert analyzer.state is AnalyzerState.CLOSED

    def test_context_manager_closes(self, mock_pyaudio, frame_scheduler, fake_source):
        with AudioAnalyzer(scheduler=frame_scheduler) as analyzer:
            analyzer.bind(fake_source)
        assert analyzer.state is AnalyzerState.CLOSED

    def test_samples_stay_in_range_for_loud_noise(self, mock_pyaudio, frame_scheduler, make_source):
        rng = np.random.default_rng(seed=7)
        source = make_source(rng.uniform(-1.0, 1.0, 256))
        samples = []
        analyzer = AudioAnalyzer(callback=samples.append, scheduler=frame_scheduler)
        analyzer.bind(source)
        source.play()

        frame_scheduler.advance(frames=20)

        assert len(samples) == 20
        for sample in samples:
            assert 0.0 <= sample.volume_level <= 1.0
            assert 0.0 <= sample.dominant_frequency_hz <= source.sample_rate / 2

    def test_silent_source_reports_zero(self, mock_pyaudio, frame_scheduler, make_source):
        source = make_source(np.zeros(256))
        analyzer = AudioAnalyzer(scheduler=frame_scheduler)
        analyzer.bind(source)
        source.play()

        frame_scheduler.advance()

        assert analyzer.volume_level == 0.0
        assert analyzer.dominant_frequency_hz == 0.0

    def test_get_stats(self, mock_pyaudio, frame_scheduler, fake_source):
        analyzer = AudioAnalyzer(scheduler=frame_scheduler)
        analyzer.bind(fake_source)
        fake_source.play()
        frame_scheduler.advance(frames=2)

        stats = analyzer.get_stats()

        assert stats.state is AnalyzerState.ACTIVE
        assert stats.is_sampling is True
        assert stats.sample_rate == 16000
        assert stats.fft_size == 256
        assert stats.total_ticks == 2
        assert stats.source_id == fake_source.source_id


@pytest.mark.unit
class TestAudioSamplePublisher:
    """Test cases for AudioSamplePublisher class."""

    def setup_method(self):
        self.received = []
        pub.subscribe(self.on_sample, AUDIO_SAMPLE_TOPIC)

    def teardown_method(self):
        pub.unsubscribe(self.on_sample, AUDIO_SAMPLE_TOPIC)

    def on_sample(self, sample):
        self.received.append(sample)

    def test_publishes_analyzer_samples(self, mock_pyaudio, frame_scheduler, fake_source):
        publisher = AudioSamplePublisher()
        analyzer = AudioAnalyzer(callback=publisher.publish_audio_sample, scheduler=frame_scheduler)
        analyzer.bind(fake_source)
        fake_source.play()
        frame_scheduler.advance(frames=2)
        fake_source.pause()

        assert len(self.received) == 3
        assert self.received[0].volume_level > 0.0
        assert self.received[-1] == SILENT_SAMPLE
