"""Audio-related data models."""

from dataclasses import dataclass
from enum import Enum


class AnalyzerState(Enum):
    """Lifecycle of an audio analyzer."""
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    ACTIVE = "active"
    SUSPENDED = "suspended"
    CLOSED = "closed"


@dataclass(frozen=True)
class AudioSample:
    """One sampling tick's extracted reading."""
    volume_level: float  # Normalized RMS over all bins, 0.0 to 1.0
    dominant_frequency_hz: float  # Centre frequency of the loudest bin
    timestamp: float  # Loop time when the snapshot was taken


SILENT_SAMPLE = AudioSample(volume_level=0.0, dominant_frequency_hz=0.0, timestamp=0.0)


@dataclass
class AnalyzerStats:
    """Audio analyzer statistics."""
    state: AnalyzerState
    is_sampling: bool
    sample_rate: int
    fft_size: int
    total_ticks: int
    source_id: str = ""
