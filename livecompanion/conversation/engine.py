"""Conversation engine: message history, emotional state and reply turns."""

import logging
import time
import uuid
from datetime import datetime
from typing import Callable, List, Optional, Tuple, Union

from ..errors import GenerationError, ValidationError
from ..models.conversation import (
    CompanionMessage,
    CompanionReply,
    CompanionState,
    Mood,
    Sender,
    TurnResult,
)
from ..models.health import SessionTelemetry
from .base import ReplyGenerator
from .personas import Persona, get_profile, resolve_persona

logger = logging.getLogger(__name__)

INITIAL_MOOD = Mood.CARING
FALLBACK_MOOD = Mood.NEUTRAL


class ConversationEngine:
    """Owns one companion conversation.

    Only one reply generation may be outstanding at a time. A send() issued
    while another is in flight is dropped, not queued. A reply that settles
    after reset() belongs to the discarded conversation and is not applied.
    """

    def __init__(self,
                 generator: ReplyGenerator,
                 persona: Union[Persona, str] = Persona.BELLA,
                 on_turn_complete: Optional[Callable[[TurnResult], None]] = None,
                 clock: Callable[[], float] = time.perf_counter):
        """Initialize conversation engine.

        Args:
            generator: Reply-generation collaborator
            persona: Companion identity (greeting and fallback text)
            on_turn_complete: Called after every applied send() turn
            clock: Monotonic clock in seconds used for latency measurement
        """
        self.generator = generator
        self.persona = resolve_persona(persona)
        self.on_turn_complete = on_turn_complete
        self._clock = clock

        self._history: List[CompanionMessage] = []
        self._emotional_state = INITIAL_MOOD
        self._telemetry = SessionTelemetry()
        self._in_flight = False
        self._epoch = 0  # Bumped on reset so stale replies can be recognised
        self._initialized = False
        self._disposed = False

    # ── Read-only state ─────────────────────────────────────────────────

    @property
    def emotional_state(self) -> Mood:
        return self._emotional_state

    @property
    def message_history(self) -> Tuple[CompanionMessage, ...]:
        return tuple(self._history)

    @property
    def telemetry(self) -> SessionTelemetry:
        return self._telemetry

    @property
    def is_generating(self) -> bool:
        return self._in_flight

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    @property
    def state(self) -> CompanionState:
        return CompanionState(emotional_state=self._emotional_state,
                              message_history=self.message_history)

    # ── Lifecycle ───────────────────────────────────────────────────────

    def initialize(self) -> None:
        """Seed the history with the companion's greeting. No-op if already initialized."""
        if self._disposed:
            logger.warning("initialize() called on a disposed conversation engine")
            return
        if self._initialized:
            return
        self._seed()

    def reset(self) -> None:
        """Discard history and telemetry, then reinitialize."""
        if self._disposed:
            logger.warning("reset() called on a disposed conversation engine")
            return
        self._epoch += 1
        self._seed()
        logger.info(f"Conversation reset (epoch {self._epoch})")

    def dispose(self) -> None:
        """Stop applying replies. Terminal; history stays readable."""
        if self._disposed:
            return
        self._disposed = True
        self._epoch += 1
        self.on_turn_complete = None
        logger.info("Conversation engine disposed")

    def _seed(self) -> None:
        profile = get_profile(self.persona)
        self._history = [self._new_message(profile.greeting, Sender.COMPANION, INITIAL_MOOD)]
        self._emotional_state = INITIAL_MOOD
        self._telemetry = SessionTelemetry()
        self._initialized = True
        logger.info(f"Conversation initialized with {profile.display_name}")

    # ── Turns ───────────────────────────────────────────────────────────

    async def send(self, user_message: str, context: Optional[str] = None) -> Optional[TurnResult]:
        """Send a user message and append the companion's reply.

        Args:
            user_message: Text typed by the user
            context: Optional text placed before the message in the prompt

        Returns:
            The applied TurnResult, or None if the message was ignored or the
            reply was discarded by a reset.
        """
        try:
            self._validate(user_message)
        except ValidationError as e:
            logger.debug(f"Ignoring message: {e}")
            return None

        if not self._initialized:
            self._seed()

        epoch = self._epoch
        self._in_flight = True
        user_entry = self._append(user_message, Sender.USER)
        prompt = f"{context}\n\n{user_message}" if context else user_message

        started = self._clock()
        reply: Optional[CompanionReply] = None
        error: Optional[GenerationError] = None
        try:
            reply = await self._generate(prompt)
        except GenerationError as e:
            error = e
        finally:
            self._in_flight = False
        latency_ms = (self._clock() - started) * 1000.0

        if epoch != self._epoch:
            logger.info(f"Discarding reply that settled after reset ({latency_ms:.0f}ms)")
            return None

        error_count = self._telemetry.error_count
        if error is None:
            reply_entry = self._append(reply.text, Sender.COMPANION, reply.mood)
            self._emotional_state = reply.mood
            logger.debug(f"Reply in {latency_ms:.0f}ms, mood={reply.mood.value}")
        else:
            logger.warning(f"Reply generation failed after {latency_ms:.0f}ms: {error}")
            fallback = get_profile(self.persona).fallback_message
            reply_entry = self._append(fallback, Sender.COMPANION, FALLBACK_MOOD)
            error_count += 1

        self._telemetry = SessionTelemetry(
            last_response_latency_ms=latency_ms,
            error_count=error_count,
            total_messages=self._telemetry.total_messages + 2,
        )

        result = TurnResult(
            user_message=user_entry,
            reply=reply_entry,
            latency_ms=latency_ms,
            succeeded=error is None,
            error=str(error) if error else None,
        )
        if self.on_turn_complete:
            self.on_turn_complete(result)
        return result

    def _validate(self, user_message: str) -> None:
        if self._disposed:
            raise ValidationError("conversation engine is disposed")
        if not user_message or not user_message.strip():
            raise ValidationError("empty message")
        if self._in_flight:
            raise ValidationError("a reply is already being generated")

    async def _generate(self, prompt: str) -> CompanionReply:
        try:
            reply = await self.generator.generate(prompt)
        except GenerationError:
            raise
        except Exception as e:
            raise GenerationError(f"{type(e).__name__}: {e}") from e

        if reply is None or not reply.text or not reply.text.strip():
            raise GenerationError("reply generator returned no text")
        mood = reply.mood
        if not isinstance(mood, Mood):
            try:
                mood = Mood(mood)
            except ValueError as e:
                raise GenerationError(f"unknown mood: {mood!r}") from e
        return CompanionReply(text=reply.text.strip(), mood=mood)

    def _append(self, content: str, sender: Sender, mood: Optional[Mood] = None) -> CompanionMessage:
        message = self._new_message(content, sender, mood)
        self._history.append(message)
        return message

    @staticmethod
    def _new_message(content: str, sender: Sender, mood: Optional[Mood] = None) -> CompanionMessage:
        return CompanionMessage(
            id=uuid.uuid4().hex,
            content=content,
            sender=sender,
            timestamp=datetime.now(),
            mood=mood,
        )
