"""Audio processing graph: media source -> analyser -> output destination."""

import logging
from typing import Optional

import numpy as np
import pyaudio
from scipy.signal import windows

from ..errors import InitializationError
from .media import MediaSource

logger = logging.getLogger(__name__)

MAX_BYTE_MAGNITUDE = 255


class AnalyserNode:
    """Frequency-domain analyser producing byte-scaled magnitude snapshots.

    Each snapshot windows the latest fft_size time-domain samples with a
    Blackman window, takes the magnitude spectrum, smooths it against the
    previous snapshot and maps decibels in [min_decibels, max_decibels] onto
    [0, 255].
    """

    def __init__(self,
                 fft_size: int = 256,
                 smoothing_time_constant: float = 0.8,
                 min_decibels: float = -100.0,
                 max_decibels: float = -30.0):
        if fft_size < 32 or fft_size & (fft_size - 1):
            raise ValueError(f"fft_size must be a power of two >= 32, got {fft_size}")
        if not 0.0 <= smoothing_time_constant <= 1.0:
            raise ValueError(f"smoothing_time_constant must be in [0, 1], got {smoothing_time_constant}")
        if min_decibels >= max_decibels:
            raise ValueError("min_decibels must be lower than max_decibels")

        self.fft_size = fft_size
        self.smoothing_time_constant = smoothing_time_constant
        self.min_decibels = min_decibels
        self.max_decibels = max_decibels

        self._window = windows.blackman(fft_size, sym=False)
        self._smoothed = np.zeros(self.frequency_bin_count)

    @property
    def frequency_bin_count(self) -> int:
        return self.fft_size // 2

    def get_byte_frequency_data(self, time_domain: np.ndarray) -> np.ndarray:
        """Compute a byte-scaled magnitude snapshot from time-domain samples."""
        frame = np.zeros(self.fft_size)
        recent = np.asarray(time_domain, dtype=np.float64)[-self.fft_size:]
        if recent.size:
            frame[-recent.size:] = recent

        spectrum = np.fft.rfft(frame * self._window)[:self.frequency_bin_count]
        magnitude = np.abs(spectrum) / self.fft_size

        tau = self.smoothing_time_constant
        self._smoothed = tau * self._smoothed + (1.0 - tau) * magnitude

        with np.errstate(divide='ignore'):
            decibels = 20.0 * np.log10(self._smoothed)
        scaled = MAX_BYTE_MAGNITUDE * (decibels - self.min_decibels) / (self.max_decibels - self.min_decibels)
        scaled = np.nan_to_num(scaled, nan=0.0, posinf=MAX_BYTE_MAGNITUDE, neginf=0.0)
        return np.clip(np.floor(scaled), 0, MAX_BYTE_MAGNITUDE).astype(np.uint8)

    def reset(self) -> None:
        """Forget smoothing history."""
        self._smoothed = np.zeros(self.frequency_bin_count)


class AudioGraph:
    """Owns the PyAudio resources that back one analysed media source.

    Use as a context manager, or call open()/close() explicitly. close() is
    idempotent and safe after a failed open().
    """

    def __init__(self,
                 source: MediaSource,
                 fft_size: int = 256,
                 smoothing_time_constant: float = 0.8,
                 monitor_output: bool = False):
        """Initialize audio graph.

        Args:
            source: Media source to analyse
            fft_size: FFT window size in samples
            smoothing_time_constant: Averaging constant between snapshots
            monitor_output: Also route the analysed audio to the default output device
        """
        self.source = source
        self.monitor_output = monitor_output
        self.analyser = AnalyserNode(fft_size, smoothing_time_constant)

        self.pyaudio_instance: Optional[pyaudio.PyAudio] = None
        self.output_stream: Optional[pyaudio.Stream] = None
        self._last_pump_time: Optional[float] = None

    @property
    def sample_rate(self) -> int:
        return self.source.sample_rate

    @property
    def nyquist_frequency(self) -> float:
        return self.source.sample_rate / 2.0

    @property
    def is_open(self) -> bool:
        return self.pyaudio_instance is not None

    def open(self) -> "AudioGraph":
        """Acquire audio subsystem resources.

        Raises:
            InitializationError: If the platform audio subsystem is unavailable
        """
        try:
            self.pyaudio_instance = pyaudio.PyAudio()
            if self.monitor_output:
                self.output_stream = self.pyaudio_instance.open(
                    format=pyaudio.paFloat32,
                    channels=1,
                    rate=self.source.sample_rate,
                    output=True,
                )
        except Exception as e:
            self.close()
            raise InitializationError(f"Audio subsystem unavailable: {e}") from e

        logger.info(f"Audio graph opened for {self.source.source_id}: "
                    f"{self.source.sample_rate}Hz, fft_size={self.analyser.fft_size}, "
                    f"monitor_output={self.monitor_output}")
        return self

    def get_byte_frequency_data(self, now: Optional[float] = None) -> np.ndarray:
        """Snapshot the frequency domain of the source at its playback position."""
        window = self.source.read_window(self.analyser.fft_size)
        if self.output_stream is not None and now is not None:
            self._pump_output(now)
        return self.analyser.get_byte_frequency_data(window)

    def _pump_output(self, now: float) -> None:
        # Forward audio played since the previous frame without blocking the loop
        if self._last_pump_time is None:
            self._last_pump_time = now
            return
        due = int((now - self._last_pump_time) * self.source.sample_rate)
        self._last_pump_time = now
        writable = min(due, self.output_stream.get_write_available())
        if writable > 0:
            chunk = self.source.read_window(writable)
            self.output_stream.write(chunk.astype(np.float32).tobytes())

    def reset(self) -> None:
        """Reset analysis history between playback runs."""
        self.analyser.reset()
        self._last_pump_time = None

    def close(self) -> None:
        """Release PyAudio resources."""
        if self.output_stream is not None:
            try:
                self.output_stream.stop_stream()
                self.output_stream.close()
            except Exception as e:
                logger.warning(f"Error closing output stream: {e}")
            self.output_stream = None
        if self.pyaudio_instance is not None:
            self.pyaudio_instance.terminate()
            self.pyaudio_instance = None
            logger.info(f"Audio graph closed for {self.source.source_id}")

    def __enter__(self) -> "AudioGraph":
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
