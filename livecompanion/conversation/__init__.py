"""Conversation module for the live companion."""

from .base import ReplyGenerator, PromptEngine
from .chatgpt_engine import ChatGPTReplyEngine
from .engine import ConversationEngine, INITIAL_MOOD, FALLBACK_MOOD
from .persona_generator import PersonaReplyGenerator, detect_mood
from .personas import (
    Persona,
    PersonaProfile,
    QuickAction,
    PERSONA_PROFILES,
    get_profile,
    quick_actions,
    resolve_persona,
)

__all__ = [
    "ReplyGenerator",
    "PromptEngine",
    "ChatGPTReplyEngine",
    "ConversationEngine",
    "INITIAL_MOOD",
    "FALLBACK_MOOD",
    "PersonaReplyGenerator",
    "detect_mood",
    "Persona",
    "PersonaProfile",
    "QuickAction",
    "PERSONA_PROFILES",
    "get_profile",
    "quick_actions",
    "resolve_persona",
]
