"""Session health module."""

from .monitor import classify, HealthMonitor, SLOW_RESPONSE_MS, ERROR_RATE_THRESHOLD
from .connectivity import ConnectivityMonitor, CONNECTIVITY_TOPIC

__all__ = [
    "classify",
    "HealthMonitor",
    "SLOW_RESPONSE_MS",
    "ERROR_RATE_THRESHOLD",
    "ConnectivityMonitor",
    "CONNECTIVITY_TOPIC",
]
