"""Protocols for the external reply-generation collaborators."""

from typing import Protocol

from ..models.conversation import CompanionReply


class ReplyGenerator(Protocol):
    """Produces a companion reply for a prompt.

    Implementations raise on failure; the conversation engine turns that
    into a fallback reply.
    """

    async def generate(self, prompt: str) -> CompanionReply:
        ...


class PromptEngine(Protocol):
    """Protocol for text engines that answer a prompt."""

    async def send_prompt(self, prompt: str, **kwargs) -> str:
        """Send a prompt to the engine and get response."""
        ...
