"""Data models for the live companion session."""

from .audio import AnalyzerState, AudioSample, AnalyzerStats, SILENT_SAMPLE
from .conversation import (
    Sender,
    Mood,
    CompanionMessage,
    CompanionReply,
    CompanionState,
    TurnResult,
)
from .health import HealthStatus, HealthReport, SessionTelemetry
from .events import MediaEvent, MediaEventKind, ConnectivityEvent
from .session import AvatarReactivity, SessionView

__all__ = [
    "AnalyzerState",
    "AudioSample",
    "AnalyzerStats",
    "SILENT_SAMPLE",
    # Conversation
    "Sender",
    "Mood",
    "CompanionMessage",
    "CompanionReply",
    "CompanionState",
    "TurnResult",
    # Health
    "HealthStatus",
    "HealthReport",
    "SessionTelemetry",
    # Events
    "MediaEvent",
    "MediaEventKind",
    "ConnectivityEvent",
    # Session
    "AvatarReactivity",
    "SessionView",
]
