"""Persona-aware reply generator built on a plain prompt engine."""

import logging
from typing import Callable, Optional, Sequence, Union

from ..errors import GenerationError
from ..models.conversation import CompanionMessage, CompanionReply, Mood
from .base import PromptEngine
from .personas import Persona, get_profile, resolve_persona

logger = logging.getLogger(__name__)

# Checked in order; first match wins
MOOD_TRIGGERS = (
    (Mood.EXCITED, ("excited", "amazing", "awesome", "great", "fantastic", "!")),
    (Mood.CARING, ("stressed", "tired", "difficult", "hard", "worried", "anxious")),
    (Mood.FOCUSED, ("study", "exam", "test", "homework", "assignment", "learn")),
    (Mood.CALM, ("calm", "peaceful", "relax", "quiet", "meditation")),
)


def detect_mood(user_message: str, persona: Union[Persona, str]) -> Mood:
    """Pick a reply mood from keywords in the user's message."""
    message = user_message.lower()
    for mood, triggers in MOOD_TRIGGERS:
        if any(trigger in message for trigger in triggers):
            return mood
    return get_profile(persona).default_mood


class PersonaReplyGenerator:
    """Wraps a prompt engine with a companion personality and mood detection.

    Implements the ReplyGenerator protocol.
    """

    def __init__(self,
                 engine: PromptEngine,
                 persona: Union[Persona, str] = Persona.BELLA,
                 history: Optional[Callable[[], Sequence[CompanionMessage]]] = None,
                 context_window: int = 6):
        """Initialize persona reply generator.

        Args:
            engine: Engine implementing the PromptEngine protocol
            persona: Companion identity to answer as
            history: Returns the conversation so far, used for prompt context
            context_window: Number of recent messages to include
        """
        self.engine = engine
        self.persona = resolve_persona(persona)
        self.history = history
        self.context_window = context_window

    async def generate(self, prompt: str) -> CompanionReply:
        full_prompt = self.build_prompt(prompt)
        text = await self.engine.send_prompt(full_prompt)
        if not text or not text.strip():
            raise GenerationError("Prompt engine returned an empty reply")
        return CompanionReply(text=text.strip(), mood=detect_mood(self._user_turn(prompt), self.persona))

    def build_prompt(self, user_message: str) -> str:
        """Build the full prompt: personality, recent conversation, the user turn."""
        profile = get_profile(self.persona)
        context_lines = [
            f"{'User' if message.is_user else profile.display_name}: {message.content}"
            for message in self._recent_messages(user_message)
        ]
        context = "\n".join(context_lines) if context_lines else "(no previous messages)"
        phrases = " ".join(phrase for group in profile.response_patterns.values() for phrase in group)
        voice = f"Phrases that sound like you: {phrases}\n\n" if phrases else ""

        return (
            f"{profile.personality}\n\n"
            f"{voice}"
            f"Previous conversation:\n{context}\n\n"
            f"User just said: \"{user_message}\"\n\n"
            f"Respond as {profile.display_name} in character. Keep responses:\n"
            "- Natural and conversational (2-3 sentences max)\n"
            "- Emotionally appropriate to the context\n"
            "- Supportive and encouraging about their studies\n\n"
            "Response:"
        )

    def _recent_messages(self, user_message: str) -> Sequence[CompanionMessage]:
        if self.history is None or self.context_window <= 0:
            return []
        messages = list(self.history())
        # The engine appends the user turn before generating; don't repeat it
        if messages and messages[-1].is_user and messages[-1].content.strip() in user_message:
            messages = messages[:-1]
        return messages[-self.context_window:]

    def _user_turn(self, prompt: str) -> str:
        """The user's own words, without any context placed before them.

        Needs the history callable; without it the whole prompt is used.
        """
        if self.history is None:
            return prompt
        messages = list(self.history())
        if messages and messages[-1].is_user:
            content = messages[-1].content.strip()
            if content and prompt.rstrip().endswith(content):
                return content
        return prompt
