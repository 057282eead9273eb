"""Tests for LLM error classification and wrapping."""

from __future__ import annotations

import pytest

from deep_research.domain.enums import ErrorCategory
from deep_research.infrastructure.llm import (
    LLMConnectionError,
    LLMContextLengthError,
    LLMError,
    LLMRateLimitError,
    classify_llm_error,
    is_recoverable,
    wrap_llm_error,
)


class RateLimitError(Exception):
    """Stands in for a provider SDK's rate-limit exception class."""


class StatusError(Exception):
    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


class CodedError(Exception):
    def __init__(self, message: str, code: str) -> None:
        super().__init__(message)
        self.code = code


class TestClassifyLLMError:

    @pytest.mark.parametrize(
        "message",
        [
            "This model's maximum context length is 200000 tokens",
            "prompt is too long: 250000 tokens > 200000 maximum",
            "Request too large for model",
            "Error: context_length_exceeded",
        ],
    )
    def test_context_messages(self, message: str) -> None:
        assert classify_llm_error(RuntimeError(message)) is ErrorCategory.CONTEXT_TOO_LARGE

    @pytest.mark.parametrize(
        "message",
        [
            "Rate limit reached for requests",
            "Error code: 429 - slow down",
            "Too Many Requests",
            "overloaded_error: Overloaded",
        ],
    )
    def test_rate_limit_messages(self, message: str) -> None:
        assert classify_llm_error(RuntimeError(message)) is ErrorCategory.RATE_LIMITED

    def test_rate_limit_wins_over_token_wording(self) -> None:
        exc = RuntimeError("Exceeded token rate limit for this minute")
        assert classify_llm_error(exc) is ErrorCategory.RATE_LIMITED

    def test_typed_signals(self) -> None:
        assert classify_llm_error(LLMContextLengthError("x")) is ErrorCategory.CONTEXT_TOO_LARGE
        assert classify_llm_error(LLMRateLimitError("x")) is ErrorCategory.RATE_LIMITED
        assert classify_llm_error(RateLimitError("x")) is ErrorCategory.RATE_LIMITED
        assert classify_llm_error(StatusError("x", 529)) is ErrorCategory.RATE_LIMITED
        assert (
            classify_llm_error(CodedError("x", "context_length_exceeded"))
            is ErrorCategory.CONTEXT_TOO_LARGE
        )

    def test_other_errors_are_fatal(self) -> None:
        assert classify_llm_error(ValueError("invalid api key")) is ErrorCategory.FATAL
        assert not is_recoverable(ValueError("invalid api key"))

    def test_chained_cause_is_consulted(self) -> None:
        try:
            try:
                raise StatusError("busy", 429)
            except StatusError as inner:
                raise LLMError("provider call failed") from inner
        except LLMError as outer:
            assert classify_llm_error(outer) is ErrorCategory.RATE_LIMITED


class TestWrapLLMError:

    def test_context(self) -> None:
        wrapped = wrap_llm_error(RuntimeError("maximum context length exceeded"))
        assert isinstance(wrapped, LLMContextLengthError)
        assert "RuntimeError" in str(wrapped)

    def test_rate_limit(self) -> None:
        assert isinstance(wrap_llm_error(RateLimitError("x")), LLMRateLimitError)

    def test_connection(self) -> None:
        assert isinstance(wrap_llm_error(ConnectionError("reset")), LLMConnectionError)

    def test_generic(self) -> None:
        wrapped = wrap_llm_error(KeyError("missing"))
        assert type(wrapped) is LLMError

    def test_llm_errors_pass_through(self) -> None:
        original = LLMRateLimitError("x")
        assert wrap_llm_error(original) is original
