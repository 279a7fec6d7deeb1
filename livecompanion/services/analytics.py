"""Per-session conversation analytics."""

import logging
import time
from collections import Counter, deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Deque, Dict, List, Optional

from ..models.conversation import TurnResult

logger = logging.getLogger(__name__)


@dataclass
class PerformanceRecord:
    """One companion reply (or failure) in the performance history."""
    response_time_ms: float
    mood: str
    message_length: int
    timestamp: datetime = field(default_factory=datetime.now)
    error: Optional[str] = None


class SessionAnalytics:
    """Accumulates message counts, response times and mood distribution."""

    def __init__(self, persona: str, history_limit: int = 50):
        """Initialize session analytics.

        Args:
            persona: Companion identifier reported in summaries
            history_limit: Number of performance records to keep
        """
        self.persona = persona
        self.history_limit = history_limit
        self.reset()

    def reset(self) -> None:
        self.session_start = time.time()
        self.total_messages = 0
        self.user_messages = 0
        self.companion_messages = 0
        self.average_response_time_ms = 0.0
        self.error_count = 0
        self.mood_distribution: Counter = Counter()
        self.performance_history: Deque[PerformanceRecord] = deque(maxlen=self.history_limit)

    def track_message(self, is_user: bool, response_time_ms: Optional[float] = None,
                      mood: Optional[str] = None, message_length: int = 0) -> None:
        self.total_messages += 1
        if is_user:
            self.user_messages += 1
        else:
            self.companion_messages += 1
            if response_time_ms:
                total = self.average_response_time_ms * (self.companion_messages - 1) + response_time_ms
                self.average_response_time_ms = total / self.companion_messages

        if mood:
            self.mood_distribution[mood] += 1

        if not is_user and response_time_ms and mood:
            self.performance_history.append(PerformanceRecord(
                response_time_ms=response_time_ms,
                mood=mood,
                message_length=message_length,
            ))

    def track_error(self, error: str, response_time_ms: float = 0.0) -> None:
        self.error_count += 1
        self.performance_history.append(PerformanceRecord(
            response_time_ms=response_time_ms,
            mood="error",
            message_length=0,
            error=error,
        ))

    def track_turn(self, result: TurnResult) -> None:
        """Record both sides of a completed conversation turn."""
        self.track_message(True, message_length=len(result.user_message.content))
        if result.succeeded:
            mood = result.reply.mood.value if result.reply.mood else None
            self.track_message(False, result.latency_ms, mood, len(result.reply.content))
        else:
            self.track_message(False, message_length=len(result.reply.content))
            self.track_error(result.error or "unknown error", result.latency_ms)

    def get_session_summary(self) -> Dict[str, Any]:
        """Summarize the session so far."""
        duration_minutes = round((time.time() - self.session_start) / 60)
        top_mood = self.mood_distribution.most_common(1)[0][0] if self.mood_distribution else "unknown"
        lengths = [record.message_length for record in self.performance_history]
        average_length = sum(lengths) / len(lengths) if lengths else 0

        return {
            "persona": self.persona,
            "duration_minutes": duration_minutes,
            "total_messages": self.total_messages,
            "average_response_time_ms": round(self.average_response_time_ms),
            "top_mood": top_mood,
            "error_rate_percent": round(self.error_count / self.total_messages * 100, 1) if self.total_messages else 0.0,
            "average_message_length": round(average_length),
        }

    def get_performance_insights(self) -> Optional[List[str]]:
        """Plain-language observations once enough replies have been seen."""
        if len(self.performance_history) < 5:
            return None

        recent = list(self.performance_history)[-10:]
        average_response_time = sum(record.response_time_ms for record in recent) / len(recent)

        insights = []
        if average_response_time > 3000:
            insights.append("Response times are slower than usual.")
        if self.error_count > self.total_messages * 0.1:
            insights.append("High error rate detected. Check connectivity and the reply backend.")
        if len(self.mood_distribution) < 3 and self.total_messages > 10:
            insights.append("Limited mood variety in companion replies.")

        return insights or ["System performance is optimal!"]
