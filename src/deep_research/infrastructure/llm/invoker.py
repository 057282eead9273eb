"""Prompt execution against LangChain chat models.

``LLMInvoker`` holds one ``BaseChatModel`` per :class:`ModelTier` and runs
``prompt | model | StrOutputParser()`` chains.  Provider failures are
re-raised as the typed :class:`LLMError` family so callers can route on
the category without inspecting provider-specific exceptions.
"""

from __future__ import annotations

import concurrent.futures
import logging
from collections.abc import Mapping
from typing import Any

from langchain_core.language_models import BaseChatModel
from langchain_core.output_parsers import StrOutputParser
from langchain_core.prompts import ChatPromptTemplate

from deep_research.domain.enums import ModelTier
from deep_research.infrastructure.llm import (
    LLMConnectionError,
    LLMError,
    LLMResponseError,
    wrap_llm_error,
)

logger = logging.getLogger(__name__)


class LLMInvoker:
    """Run prompt templates on the fast or reasoning chat model.

    Parameters
    ----------
    models:
        Mapping of tier (or tier name) to chat model.  A missing tier falls
        back to whichever model is configured.
    timeout:
        Optional per-call timeout in seconds.
    aliases:
        Mapping of model alias (the names a run carries in
        ``ResearchContext.models``) to the tier serving it.
    """

    def __init__(
        self,
        models: Mapping[ModelTier | str, BaseChatModel],
        timeout: float | None = None,
        aliases: Mapping[str, ModelTier | str] | None = None,
    ) -> None:
        if not models:
            raise ValueError("LLMInvoker needs at least one chat model")
        self._models: dict[ModelTier, BaseChatModel] = {
            ModelTier(tier): model for tier, model in models.items()
        }
        self._aliases: dict[str, ModelTier] = {
            name: ModelTier(tier) for name, tier in (aliases or {}).items() if name
        }
        self._timeout = timeout

    @classmethod
    def single(cls, model: BaseChatModel, timeout: float | None = None) -> LLMInvoker:
        """Use the same chat model for every tier."""
        return cls({ModelTier.FAST: model, ModelTier.REASONING: model}, timeout=timeout)

    def tier_for(self, tier: ModelTier, alias: str = "") -> ModelTier:
        """The tier serving *alias*, or *tier* when the alias is empty or unknown."""
        if not alias:
            return tier
        mapped = self._aliases.get(alias)
        if mapped is None:
            logger.debug("LLMInvoker: unknown model alias %r, using %s tier", alias, tier.value)
            return tier
        return mapped

    def model_for(self, tier: ModelTier, alias: str = "") -> BaseChatModel:
        model = self._models.get(self.tier_for(tier, alias))
        if model is None:
            model = next(iter(self._models.values()))
        return model

    def _invoke_with_timeout(self, chain: Any, variables: dict[str, Any]) -> Any:
        """Run *chain*, bounded by the per-call timeout when one is set."""
        if self._timeout is None:
            return chain.invoke(variables)
        pool = concurrent.futures.ThreadPoolExecutor(max_workers=1)
        try:
            future = pool.submit(chain.invoke, variables)
            return future.result(timeout=self._timeout)
        except concurrent.futures.TimeoutError as exc:
            raise LLMConnectionError(
                f"LLM call timed out after {self._timeout}s"
            ) from exc
        finally:
            pool.shutdown(wait=False, cancel_futures=True)

    def complete(
        self,
        prompt: ChatPromptTemplate,
        variables: dict[str, Any],
        tier: ModelTier = ModelTier.FAST,
        alias: str = "",
    ) -> str:
        """Render *prompt* with *variables* and return the model's raw text.

        *alias* names the model to use; it overrides *tier* when the invoker
        knows it.

        Raises
        ------
        LLMError
            Or one of its subclasses, with the provider error chained.
        """
        chain = prompt | self.model_for(tier, alias) | StrOutputParser()
        try:
            text = self._invoke_with_timeout(chain, variables)
        except LLMError:
            raise
        except Exception as exc:
            error = wrap_llm_error(exc)
            logger.warning(
                "LLMInvoker: %s call failed (%s): %s",
                tier.value,
                type(error).__name__,
                exc,
            )
            raise error from exc

        if not isinstance(text, str):
            raise LLMResponseError(f"Expected text from the model, got {type(text).__name__}")
        return text
