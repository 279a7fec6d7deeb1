"""Session health classification from telemetry and connectivity."""

import logging
from typing import Callable, Optional

from ..models.health import HealthReport, HealthStatus, SessionTelemetry

logger = logging.getLogger(__name__)

SLOW_RESPONSE_MS: float = 5000.0
ERROR_RATE_THRESHOLD: float = 0.2


def classify(is_online: bool,
             response_time_ms: float,
             error_count: int,
             total_messages: int,
             slow_response_ms: float = SLOW_RESPONSE_MS,
             error_rate_threshold: float = ERROR_RATE_THRESHOLD) -> HealthStatus:
    """Classify session health. Pure; the first matching rule wins.

    1. offline when not online
    2. error when error_count exceeds error_rate_threshold * total_messages
    3. slow when the last response took longer than slow_response_ms
    4. healthy otherwise
    """
    if not is_online:
        return HealthStatus.OFFLINE
    if error_count > error_rate_threshold * total_messages:
        return HealthStatus.ERROR
    if response_time_ms > slow_response_ms:
        return HealthStatus.SLOW
    return HealthStatus.HEALTHY


class HealthMonitor:
    """Re-derives a HealthReport whenever telemetry or connectivity changes.

    Holds only its latest inputs; the report itself is recomputed on demand.
    """

    def __init__(self,
                 is_online: bool = True,
                 on_change: Optional[Callable[[HealthReport], None]] = None,
                 slow_response_ms: float = SLOW_RESPONSE_MS,
                 error_rate_threshold: float = ERROR_RATE_THRESHOLD):
        self.on_change = on_change
        self.slow_response_ms = slow_response_ms
        self.error_rate_threshold = error_rate_threshold

        self._is_online = is_online
        self._telemetry = SessionTelemetry()
        self._last_report = self.report()

    @property
    def is_online(self) -> bool:
        return self._is_online

    @property
    def telemetry(self) -> SessionTelemetry:
        return self._telemetry

    def report(self) -> HealthReport:
        """Classify the current inputs."""
        status = classify(
            self._is_online,
            self._telemetry.last_response_latency_ms,
            self._telemetry.error_count,
            self._telemetry.total_messages,
            slow_response_ms=self.slow_response_ms,
            error_rate_threshold=self.error_rate_threshold,
        )
        return HealthReport(
            status=status,
            is_online=self._is_online,
            response_time_ms=self._telemetry.last_response_latency_ms,
            error_count=self._telemetry.error_count,
            total_messages=self._telemetry.total_messages,
        )

    def update_telemetry(self, telemetry: SessionTelemetry) -> HealthReport:
        self._telemetry = telemetry
        return self._refresh()

    def set_online(self, is_online: bool) -> HealthReport:
        self._is_online = is_online
        return self._refresh()

    def _refresh(self) -> HealthReport:
        report = self.report()
        if report != self._last_report:
            if report.status != self._last_report.status:
                logger.info(f"Health: {self._last_report.status.value} -> {report.status.value}")
            self._last_report = report
            if self.on_change:
                self.on_change(report)
        return report
