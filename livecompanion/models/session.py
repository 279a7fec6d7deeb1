"""Session view models consumed by presentation surfaces."""

from dataclasses import dataclass
from typing import Tuple

from .audio import AnalyzerState, AudioSample
from .conversation import CompanionMessage, Mood
from .health import HealthReport, SessionTelemetry


@dataclass(frozen=True)
class AvatarReactivity:
    """Avatar animation drive derived from the latest audio sample."""
    is_speaking: bool = False
    intensity: float = 0.0  # 0.0 to 1.0
    scale: float = 1.0

    @classmethod
    def from_sample(cls, sample: AudioSample, speaking_threshold: float = 0.05) -> "AvatarReactivity":
        intensity = min(max(sample.volume_level, 0.0), 1.0)
        return cls(
            is_speaking=intensity > speaking_threshold,
            intensity=intensity,
            scale=1.0 + 0.1 * intensity,
        )


@dataclass(frozen=True)
class SessionView:
    """Read-only view of one live companion session."""
    persona: str
    audio_state: AnalyzerState
    volume_level: float
    dominant_frequency_hz: float
    avatar: AvatarReactivity
    emotional_state: Mood
    messages: Tuple[CompanionMessage, ...]
    is_generating: bool
    telemetry: SessionTelemetry
    health: HealthReport
