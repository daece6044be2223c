"""Chat title generation."""

from __future__ import annotations

import re

from loopwell.core.database.entities.chat_sessions import DEFAULT_CHAT_TITLE
from loopwell.core.logging_config import get_logger

from .prompts import title_prompt
from .providers import LLMClient

logger = get_logger(__name__)

TITLE_MODEL = "gpt-4o-mini"
MAX_TITLE_LENGTH = 50
MAX_FALLBACK_LENGTH = 30

_QUOTES = re.compile(r"^[\"']|[\"']$")
_PUNCTUATION = re.compile(r"[^\w\s]")


def fallback_title(user_message: str) -> str:
    """First four words of the user message without punctuation."""
    title = _PUNCTUATION.sub("", " ".join(user_message.split(" ")[:4])).strip()
    if len(title) > MAX_FALLBACK_LENGTH:
        title = title[: MAX_FALLBACK_LENGTH - 3] + "..."
    return title or DEFAULT_CHAT_TITLE


def clean_title(raw: str) -> str:
    title = _QUOTES.sub("", raw.strip())
    if len(title) > MAX_TITLE_LENGTH:
        title = title[: MAX_TITLE_LENGTH - 3] + "..."
    return title


async def generate_title(llm: LLMClient, user_message: str, ai_message: str) -> str:
    """Ask a small model for a short conversation title, falling back to the user's words."""
    try:
        result = await llm.generate(
            title_prompt(user_message, ai_message), TITLE_MODEL, temperature=0.3, max_tokens=20
        )
    except Exception as e:
        logger.warning(f"Title generation failed, using fallback: {e}")
        return fallback_title(user_message)

    title = clean_title(result.content)
    if len(title) < 3:
        return fallback_title(user_message)
    return title
