"""
AI assistant.

- providers: model catalog and the Pydantic AI backed LLM client
- prompts: system prompts
- chat: wiki-grounded answers, streaming and page drafting
- titles: chat session titles
"""

from .chat import AssistantChat, find_sources, parse_reply, wants_document
from .providers import AIModel, LLMClient, get_llm_client, get_model, list_models, resolve_provider
from .titles import fallback_title, generate_title

__all__ = [
    "AIModel",
    "AssistantChat",
    "LLMClient",
    "fallback_title",
    "find_sources",
    "generate_title",
    "get_llm_client",
    "get_model",
    "list_models",
    "parse_reply",
    "resolve_provider",
    "wants_document",
]
