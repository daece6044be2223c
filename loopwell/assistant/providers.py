"""
LLM provider layer.

Wraps OpenAI, Anthropic and Google models behind one client built on
Pydantic AI. The provider is chosen from the model identifier prefix:
``gpt-`` models go to OpenAI, ``claude-`` to Anthropic, ``gemini-`` to
Google, and anything else falls back to OpenAI.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import AsyncIterator, Callable, List, Optional, Sequence

from pydantic_ai import Agent
from pydantic_ai.settings import ModelSettings
from pydantic_ai.messages import ModelMessage, ModelRequest, ModelResponse, TextPart, UserPromptPart
from pydantic_ai.models import Model
from pydantic_ai.models.anthropic import AnthropicModel
from pydantic_ai.models.google import GoogleModel
from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.providers.anthropic import AnthropicProvider
from pydantic_ai.providers.google import GoogleProvider
from pydantic_ai.providers.openai import OpenAIProvider

from loopwell.core.errors import ModelNotFoundError, ProviderNotConfiguredError
from loopwell.core.logging_config import get_logger
from loopwell.core.monitoring import log_llm_call
from loopwell.server.core.config import Settings, settings

logger = get_logger(__name__)

DEFAULT_SYSTEM_PROMPT = "You are a helpful AI assistant."
DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 2000


@dataclass(frozen=True)
class AIModel:
    """A model offered to users."""

    id: str
    name: str
    provider: str
    description: str
    max_tokens: int
    cost_per_token: float


MODEL_CATALOG: List[AIModel] = [
    AIModel("gpt-4-turbo", "GPT-4 Turbo", "openai", "Best for complex reasoning and analysis", 4096, 0.00003),
    AIModel("gpt-4o-mini", "GPT-4o Mini", "openai", "Fast and efficient for quick tasks", 16384, 0.00000015),
    AIModel(
        "gemini-2.5-pro", "Gemini 2.5 Pro", "google", "Advanced reasoning and multimodal capabilities", 8192, 0.0000125
    ),
    AIModel("gemini-2.5-flash", "Gemini 2.5 Flash", "google", "Fast and efficient for quick tasks", 8192, 0.00000075),
    AIModel(
        "claude-sonnet-4-20250514",
        "Claude Sonnet 4",
        "anthropic",
        "Excellent for creative writing and code",
        8192,
        0.000015,
    ),
]


def resolve_provider(model_id: str) -> str:
    """Provider name for a model identifier, defaulting to ``openai``."""
    if model_id.startswith("claude-"):
        return "anthropic"
    if model_id.startswith("gemini-"):
        return "google"
    return "openai"


def list_models() -> List[AIModel]:
    return list(MODEL_CATALOG)


def get_model(model_id: str) -> AIModel:
    """Look up a catalog entry.

    Raises:
        ModelNotFoundError: the identifier is not in the catalog.
    """
    for model in MODEL_CATALOG:
        if model.id == model_id:
            return model
    raise ModelNotFoundError(model_id)


@dataclass
class ChatTurn:
    """One earlier message of a conversation."""

    role: str  # "user" or "assistant"
    content: str


@dataclass
class LLMResult:
    content: str
    model: str
    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


def to_message_history(history: Optional[Sequence[ChatTurn]]) -> List[ModelMessage]:
    messages: List[ModelMessage] = []
    for turn in history or ():
        if not turn.content:
            continue
        if turn.role == "assistant":
            messages.append(ModelResponse(parts=[TextPart(content=turn.content)]))
        else:
            messages.append(ModelRequest(parts=[UserPromptPart(content=turn.content)]))
    return messages


ModelFactory = Callable[[str], Model]


class LLMClient:
    """Generates text with the catalog models.

    Args:
        app_settings: Settings providing the provider API keys
        model_factory: Optional override building the Pydantic AI model for
            an identifier; used to plug in test models.
    """

    def __init__(self, app_settings: Optional[Settings] = None, model_factory: Optional[ModelFactory] = None) -> None:
        self.settings = app_settings or settings
        self.model_factory = model_factory

    def _api_key(self, provider: str) -> Optional[str]:
        config = getattr(self.settings, provider)
        return config.api_key.get_secret_value() if config.api_key else None

    def is_configured(self, provider: str) -> bool:
        if self.model_factory is not None:
            return True
        return bool(self._api_key(provider))

    def build_model(self, model_id: str) -> Model:
        """Create the Pydantic AI model for ``model_id``.

        Raises:
            ProviderNotConfiguredError: the provider has no API key.
        """
        if self.model_factory is not None:
            return self.model_factory(model_id)

        provider = resolve_provider(model_id)
        api_key = self._api_key(provider)
        if not api_key:
            raise ProviderNotConfiguredError(provider)

        logger.debug(f"Creating {provider} model: {model_id} with Pydantic AI")
        if provider == "anthropic":
            return AnthropicModel(model_id, provider=AnthropicProvider(api_key=api_key))
        if provider == "google":
            return GoogleModel(model_id, provider=GoogleProvider(api_key=api_key))
        return OpenAIChatModel(
            model_id, provider=OpenAIProvider(api_key=api_key, base_url=self.settings.openai.base_url)
        )

    def _agent(self, model_id: str, system_prompt: Optional[str], temperature: float, max_tokens: int) -> Agent:
        return Agent(
            self.build_model(model_id),
            instructions=system_prompt or DEFAULT_SYSTEM_PROMPT,
            model_settings=ModelSettings(temperature=temperature, max_tokens=max_tokens),
        )

    async def generate(
        self,
        prompt: str,
        model_id: str,
        system_prompt: Optional[str] = None,
        history: Optional[Sequence[ChatTurn]] = None,
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> LLMResult:
        """Run one completion and return the full text."""
        catalog_entry = get_model(model_id)
        agent = self._agent(model_id, system_prompt, temperature, max_tokens)
        result = await agent.run(prompt, message_history=to_message_history(history))

        usage = result.usage()
        llm_result = LLMResult(
            content=result.output or "",
            model=model_id,
            input_tokens=usage.input_tokens or 0,
            output_tokens=usage.output_tokens or 0,
        )
        log_llm_call(
            model=model_id,
            tokens_used=llm_result.total_tokens,
            cost_usd=llm_result.total_tokens * catalog_entry.cost_per_token,
        )
        return llm_result

    async def stream(
        self,
        prompt: str,
        model_id: str,
        system_prompt: Optional[str] = None,
        history: Optional[Sequence[ChatTurn]] = None,
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> AsyncIterator[str]:
        """Yield text deltas as the model produces them."""
        get_model(model_id)
        agent = self._agent(model_id, system_prompt, temperature, max_tokens)
        async with agent.run_stream(prompt, message_history=to_message_history(history)) as response:
            async for delta in response.stream_text(delta=True):
                if delta:
                    yield delta
        logger.debug(f"LLM stream completed: model={model_id}")


_client: Optional[LLMClient] = None


def get_llm_client() -> LLMClient:
    """FastAPI dependency returning the shared LLM client."""
    global _client
    if _client is None:
        _client = LLMClient()
    return _client
