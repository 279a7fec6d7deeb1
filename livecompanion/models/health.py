"""Health and telemetry data models."""

from dataclasses import dataclass
from enum import Enum


class HealthStatus(Enum):
    """Derived classification of session health."""
    HEALTHY = "healthy"
    SLOW = "slow"
    ERROR = "error"
    OFFLINE = "offline"

    @property
    def label(self) -> str:
        return _STATUS_LABELS[self]


_STATUS_LABELS = {
    HealthStatus.HEALTHY: "All Systems Operational",
    HealthStatus.SLOW: "Slower Than Usual",
    HealthStatus.ERROR: "Experiencing Issues",
    HealthStatus.OFFLINE: "Offline",
}


@dataclass(frozen=True)
class SessionTelemetry:
    """Counters fed by completed conversation turns."""
    last_response_latency_ms: float = 0.0
    error_count: int = 0
    total_messages: int = 0


@dataclass(frozen=True)
class HealthReport:
    """A health classification together with the inputs it was derived from."""
    status: HealthStatus
    is_online: bool
    response_time_ms: float
    error_count: int
    total_messages: int

    @property
    def label(self) -> str:
        return self.status.label
