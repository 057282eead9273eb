"""Chat-model factory for the deep research pipeline.

Creates LangChain chat models by provider name.  Provider packages are
optional extras and are imported lazily, only when a model for that
provider is actually requested.

Usage::

    model = create_chat_model("anthropic", "claude-sonnet-4-5")
    invoker = build_invoker(research_config, LLMSettings(provider="openai"))
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from langchain_core.language_models import BaseChatModel

from deep_research.domain.enums import ModelTier
from deep_research.infrastructure.config import LLMSettings, ResearchConfig
from deep_research.infrastructure.llm.invoker import LLMInvoker

logger = logging.getLogger(__name__)

ChatModelConstructor = Callable[..., BaseChatModel]


def _create_anthropic(model: str, **kwargs: Any) -> BaseChatModel:
    """Lazy constructor for ChatAnthropic."""
    try:
        from langchain_anthropic import ChatAnthropic
    except ImportError as exc:
        raise ImportError(
            "The 'langchain-anthropic' package is required for provider 'anthropic'. "
            "Install it with: pip install 'deep-research-agent[anthropic]'"
        ) from exc
    return ChatAnthropic(model=model, **kwargs)


def _create_openai(model: str, **kwargs: Any) -> BaseChatModel:
    """Lazy constructor for ChatOpenAI."""
    try:
        from langchain_openai import ChatOpenAI
    except ImportError as exc:
        raise ImportError(
            "The 'langchain-openai' package is required for provider 'openai'. "
            "Install it with: pip install 'deep-research-agent[openai]'"
        ) from exc
    return ChatOpenAI(model=model, **kwargs)


_PROVIDERS: dict[str, ChatModelConstructor] = {
    "anthropic": _create_anthropic,
    "openai": _create_openai,
}


def create_chat_model(provider: str, model: str, **kwargs: Any) -> BaseChatModel:
    """Create a chat model by provider name.

    Parameters
    ----------
    provider:
        ``"anthropic"`` or ``"openai"``.
    model:
        Provider model identifier.
    **kwargs:
        Passed to the chat model constructor (temperature, max_tokens, ...).

    Raises
    ------
    ValueError
        If the provider is unknown or *model* is empty.
    ImportError
        If the provider's LangChain integration is not installed.
    """
    constructor = _PROVIDERS.get(provider)
    if constructor is None:
        available = ", ".join(sorted(_PROVIDERS))
        raise ValueError(
            f"Unknown provider {provider!r}. Available providers: {available}"
        )
    if not model:
        raise ValueError("model must not be empty")
    logger.info("create_chat_model: %s model %r", provider, model)
    return constructor(model, **kwargs)


def build_invoker(config: ResearchConfig, settings: LLMSettings | None = None) -> LLMInvoker:
    """Build an :class:`LLMInvoker` serving the config's fast and reasoning models."""
    settings = settings or LLMSettings()
    settings.validate()
    if not config.fast_model or not config.reasoning_model:
        raise ValueError("fast_model and reasoning_model must both be configured")

    common = {"temperature": settings.temperature, "max_tokens": settings.max_tokens}
    fast = create_chat_model(settings.provider, config.fast_model, **common)
    if config.reasoning_model == config.fast_model:
        reasoning = fast
    else:
        reasoning = create_chat_model(settings.provider, config.reasoning_model, **common)
    return LLMInvoker(
        {ModelTier.FAST: fast, ModelTier.REASONING: reasoning},
        timeout=config.llm_timeout,
        aliases={config.fast_model: ModelTier.FAST, config.reasoning_model: ModelTier.REASONING},
    )
