"""Conversation data models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple


class Sender(Enum):
    """Who authored a message."""
    USER = "user"
    COMPANION = "companion"


class Mood(Enum):
    """Emotional state tag carried by companion replies."""
    HAPPY = "happy"
    EXCITED = "excited"
    CALM = "calm"
    FOCUSED = "focused"
    CARING = "caring"
    NEUTRAL = "neutral"


@dataclass(frozen=True)
class CompanionMessage:
    """One turn of conversation history."""
    id: str
    content: str
    sender: Sender
    timestamp: datetime = field(default_factory=datetime.now)
    mood: Optional[Mood] = None

    @property
    def is_user(self) -> bool:
        return self.sender is Sender.USER


@dataclass(frozen=True)
class CompanionReply:
    """What the reply-generation collaborator hands back."""
    text: str
    mood: Mood


@dataclass(frozen=True)
class CompanionState:
    """Snapshot of the conversation engine's owned state."""
    emotional_state: Mood
    message_history: Tuple[CompanionMessage, ...]


@dataclass(frozen=True)
class TurnResult:
    """Outcome of one completed send() turn."""
    user_message: CompanionMessage
    reply: CompanionMessage
    latency_ms: float
    succeeded: bool
    error: Optional[str] = None
