"""LLM integration layer for the deep research pipeline.

The pipeline treats the language model as an opaque request/response
service: a prompt and a model tier go in, raw text comes out.  This
sub-package provides that service on top of LangChain chat models and
classifies failures into the categories the pipeline routes on.

Public API
----------
LLMInvoker
    Runs prompts against the fast / reasoning chat models.
LLMError
    Base exception for all LLM-related failures.
classify_llm_error
    Map any exception to an :class:`ErrorCategory`.
"""

from __future__ import annotations

import logging

from deep_research.domain.enums import ErrorCategory

logger = logging.getLogger(__name__)


# =========================================================================== #
#  Exceptions                                                                  #
# =========================================================================== #

class LLMError(Exception):
    """Base exception for LLM provider errors."""


class LLMConnectionError(LLMError):
    """Raised when the provider cannot be reached or times out."""


class LLMRateLimitError(LLMError):
    """Raised when the provider returns a rate-limit / overload error."""


class LLMContextLengthError(LLMError):
    """Raised when the prompt does not fit the model's context window."""


class LLMResponseError(LLMError):
    """Raised when the provider returns an unusable response."""


# =========================================================================== #
#  Classification                                                              #
# =========================================================================== #

# Matched case-insensitively against the error text when no typed signal
# (exception class, status code, error code) is available.
CONTEXT_TOO_LARGE_PATTERNS: tuple[str, ...] = (
    "maximum context length",
    "token limit",
    "request too large",
    "context_length_exceeded",
    "reduce the length of the messages",
    "max_tokens",
    "context window",
    "too long",
    "exceeds",
)

RATE_LIMIT_PATTERNS: tuple[str, ...] = (
    "rate limit",
    "error code: 429",
    "exceeded token rate limit",
    "rate limit reached",
    "too many requests",
    "rate_limit_error",
    "overloaded_error",
)

# Provider SDK exception class names (anthropic / openai) that mean "slow down".
_RATE_LIMIT_TYPE_NAMES = frozenset({"RateLimitError", "OverloadedError"})

_CONTEXT_ERROR_CODES = frozenset({"context_length_exceeded", "string_above_max_length"})


def _classify_single(exc: BaseException) -> ErrorCategory:
    if isinstance(exc, LLMContextLengthError):
        return ErrorCategory.CONTEXT_TOO_LARGE
    if isinstance(exc, LLMRateLimitError):
        return ErrorCategory.RATE_LIMITED
    if type(exc).__name__ in _RATE_LIMIT_TYPE_NAMES:
        return ErrorCategory.RATE_LIMITED
    status = getattr(exc, "status_code", None)
    if status in (429, 529):
        return ErrorCategory.RATE_LIMITED
    if getattr(exc, "code", None) in _CONTEXT_ERROR_CODES:
        return ErrorCategory.CONTEXT_TOO_LARGE

    message = str(exc).lower()
    if any(pattern in message for pattern in RATE_LIMIT_PATTERNS):
        return ErrorCategory.RATE_LIMITED
    if any(pattern in message for pattern in CONTEXT_TOO_LARGE_PATTERNS):
        return ErrorCategory.CONTEXT_TOO_LARGE
    return ErrorCategory.FATAL


def classify_llm_error(exc: BaseException) -> ErrorCategory:
    """Classify an LLM failure as context-too-large, rate-limited or fatal.

    Typed signals win: our own exception classes, provider rate-limit
    classes, HTTP status 429/529, and provider error codes.  Otherwise the
    error text is matched against known provider messages.  The chained
    cause (``raise ... from``) is consulted when the outer error is fatal.
    """
    category = _classify_single(exc)
    cause = exc.__cause__
    if category is ErrorCategory.FATAL and cause is not None and cause is not exc:
        category = _classify_single(cause)
    return category


def is_recoverable(exc: BaseException) -> bool:
    """True when *exc* should be handled by compacting the context."""
    return classify_llm_error(exc).recoverable


def wrap_llm_error(exc: Exception) -> LLMError:
    """Wrap a provider exception into the typed ``LLMError`` family."""
    if isinstance(exc, LLMError):
        return exc
    category = classify_llm_error(exc)
    message = f"{type(exc).__name__}: {exc}"
    if category is ErrorCategory.CONTEXT_TOO_LARGE:
        return LLMContextLengthError(message)
    if category is ErrorCategory.RATE_LIMITED:
        return LLMRateLimitError(message)
    if isinstance(exc, (TimeoutError, ConnectionError)):
        return LLMConnectionError(message)
    return LLMError(message)


from deep_research.infrastructure.llm.invoker import LLMInvoker  # noqa: E402

__all__ = [
    "CONTEXT_TOO_LARGE_PATTERNS",
    "LLMConnectionError",
    "LLMContextLengthError",
    "LLMError",
    "LLMInvoker",
    "LLMRateLimitError",
    "LLMResponseError",
    "RATE_LIMIT_PATTERNS",
    "classify_llm_error",
    "is_recoverable",
    "wrap_llm_error",
]
