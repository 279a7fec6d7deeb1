"""Services layer composing the live companion session."""

from .analytics import SessionAnalytics, PerformanceRecord
from .session_coordinator import SessionCoordinator

__all__ = [
    "SessionAnalytics",
    "PerformanceRecord",
    "SessionCoordinator",
]
