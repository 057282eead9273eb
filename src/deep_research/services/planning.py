"""Search planning: turn the research state into the next SearchPlans.

``SearchPlanner.next_plans`` applies a fixed priority each iteration:

1. unsupported claims pending -> one claims-targeted query, one plan per mode;
2. depth exhausted -> ``None`` (no further query);
3. otherwise -> one freshly generated query per configured search mode.

Malformed LLM output never aborts planning: unparseable semantic responses
are used verbatim as the query text, and LLM failures fall back to the
request (or claims) text.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass

from langchain_core.prompts import ChatPromptTemplate

from deep_research.domain.context import ResearchContext
from deep_research.domain.entities import ResearchMemory
from deep_research.domain.enums import ModelTier, SearchMode
from deep_research.domain.values import OrderBy, QueryQualifiers, SearchPlan
from deep_research.infrastructure.llm import LLMError
from deep_research.infrastructure.llm.invoker import LLMInvoker
from deep_research.services.prompts import (
    KEYWORD_QUERY_PROMPT,
    SEMANTIC_QUERY_PROMPT,
    UNSUPPORTED_CLAIMS_QUERY_PROMPT,
)

logger = logging.getLogger(__name__)

_REPO_RE = re.compile(r"\brepo:(\S+)")
_AUTHOR_RE = re.compile(r"\bauthor:(\S+)")
_FENCE_START_RE = re.compile(r"\A```[a-zA-Z]*\s*")
_FENCE_END_RE = re.compile(r"\s*```\Z")


# -- Parsing helpers -----------------------------------------------------------


def extract_qualifiers(query: str) -> QueryQualifiers:
    """Split ``repo:`` / ``author:`` qualifiers out of a free-text query.

    Used for diagnostics; the planner never rewrites the query it sends.
    """
    repo = _REPO_RE.search(query)
    author = _AUTHOR_RE.search(query)
    stripped = _AUTHOR_RE.sub("", _REPO_RE.sub("", query))
    return QueryQualifiers(
        semantic_query=" ".join(stripped.split()),
        repo=repo.group(1) if repo else None,
        author=author.group(1) if author else None,
    )


def strip_code_fences(text: str) -> str:
    """Remove a surrounding ```json / ``` markdown fence, if present."""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = _FENCE_END_RE.sub("", _FENCE_START_RE.sub("", cleaned))
    return cleaned.strip()


@dataclass(frozen=True)
class ParsedQuery:
    """A semantic query with its optional temporal and ordering hints."""

    query: str
    created_after: str | None = None
    created_before: str | None = None
    order_by: OrderBy | None = None


def parse_order_by(value: object) -> OrderBy | None:
    """Parse ``"created_at asc|desc"``; anything else yields ``None``."""
    if not isinstance(value, str):
        return None
    parts = value.strip().split(" ", 1)
    if len(parts) != 2:
        return None
    try:
        return OrderBy(key=parts[0], direction=parts[1].strip())
    except ValueError:
        return None


def parse_semantic_plan(text: str) -> ParsedQuery:
    """Parse a structured semantic-query response.

    The response should be a JSON object with a string ``query`` and optional
    ``created_after``, ``created_before`` and ``order_by``.  Anything else
    degrades to using the raw (stripped) response as the query.
    """
    raw = text.strip()
    try:
        parsed = json.loads(strip_code_fences(raw))
    except json.JSONDecodeError:
        logger.debug("parse_semantic_plan: response is not JSON, using raw text")
        return ParsedQuery(query=raw)

    if not isinstance(parsed, dict) or not isinstance(parsed.get("query"), str):
        logger.warning("parse_semantic_plan: missing or invalid 'query' field, using raw text")
        return ParsedQuery(query=raw)

    order_by = None
    if parsed.get("order_by"):
        order_by = parse_order_by(parsed["order_by"])
        if order_by is None:
            logger.warning(
                "parse_semantic_plan: ignoring invalid order_by %r", parsed["order_by"]
            )

    def _date(key: str) -> str | None:
        value = parsed.get(key)
        return value if isinstance(value, str) and value else None

    return ParsedQuery(
        query=parsed["query"].strip(),
        created_after=_date("created_after"),
        created_before=_date("created_before"),
        order_by=order_by,
    )


def clean_keyword_query(text: str) -> str:
    """Normalize a keyword-search response to a single search string."""
    cleaned = strip_code_fences(text)
    lines = [line.strip() for line in cleaned.splitlines() if line.strip()]
    if not lines:
        return ""
    return lines[0].strip("`").strip()


# -- Prompt inputs -------------------------------------------------------------


def format_findings_summary(memory: ResearchMemory, limit: int = 20) -> str:
    """Compact digest of what has been found so far."""
    if not memory.hits:
        return "No findings yet."
    lines = []
    for hit in memory.hits[:limit]:
        summary = " ".join(hit.summary.split())[:300] or "(no summary)"
        lines.append(f"- {hit.url}: {summary}")
    if len(memory.hits) > limit:
        lines.append(f"- ... and {len(memory.hits) - limit} more conversations")
    return "\n".join(lines)


def format_previous_queries(memory: ResearchMemory) -> str:
    if not memory.search_queries:
        return "None yet."
    return "\n".join(f"- {query}" for query in memory.search_queries)


# -- Planner -------------------------------------------------------------------


class SearchPlanner:
    """Generate SearchPlans for the next retrieval iteration.

    Parameters
    ----------
    llm:
        Invoker used (fast tier) to write the queries.
    """

    def __init__(self, llm: LLMInvoker) -> None:
        self.llm = llm

    def next_plans(self, context: ResearchContext) -> list[SearchPlan] | None:
        """Return the plans for the next iteration, or ``None`` when done."""
        if context.unsupported_claims:
            logger.info(
                "Planning a claims-targeted query for %d unsupported claims",
                len(context.unsupported_claims),
            )
            return self.plan_for_claims(context)
        if context.depth_exhausted:
            logger.info(
                "Maximum depth reached (%d/%d), no further queries",
                context.current_depth,
                context.max_depth,
            )
            return None
        return self.plan_for_modes(context)

    def plan_for_claims(self, context: ResearchContext) -> list[SearchPlan]:
        claims_text = "\n".join(
            f"{i}. {claim}" for i, claim in enumerate(context.unsupported_claims, 1)
        )
        variables = {
            **self._common_variables(context),
            "unsupported_claims": claims_text,
        }
        fallback = " ".join(context.unsupported_claims)
        parsed = self._structured_query(
            UNSUPPORTED_CLAIMS_QUERY_PROMPT, variables, fallback, alias=context.models.fast
        )

        plans: list[SearchPlan] = []
        for mode in context.search_modes:
            if mode is SearchMode.SEMANTIC:
                plans.append(self._semantic_plan(parsed))
            elif mode is SearchMode.KEYWORD:
                plans.append(SearchPlan(tool=SearchMode.KEYWORD, query=parsed.query))
            else:
                plans.append(self._hybrid_plan(parsed, parsed.query))
        self._log_plans(plans)
        return plans

    def plan_for_modes(self, context: ResearchContext) -> list[SearchPlan]:
        variables = self._common_variables(context)
        alias = context.models.fast
        plans: list[SearchPlan] = []
        for mode in context.search_modes:
            if mode is SearchMode.SEMANTIC:
                parsed = self._structured_query(
                    SEMANTIC_QUERY_PROMPT, variables, context.request, alias=alias
                )
                plans.append(self._semantic_plan(parsed))
            elif mode is SearchMode.KEYWORD:
                keyword = self._keyword_query(variables, context.request, alias=alias)
                plans.append(SearchPlan(tool=SearchMode.KEYWORD, query=keyword))
            else:
                parsed = self._structured_query(
                    SEMANTIC_QUERY_PROMPT, variables, context.request, alias=alias
                )
                keyword = self._keyword_query(variables, context.request, alias=alias)
                plans.append(self._hybrid_plan(parsed, keyword))
        self._log_plans(plans)
        return plans

    # -- internals ------------------------------------------------------------

    @staticmethod
    def _common_variables(context: ResearchContext) -> dict[str, str]:
        return {
            "request": context.request,
            "clarifications": context.clarifications or "None provided",
            "findings_summary": format_findings_summary(context.memory),
            "previous_queries": format_previous_queries(context.memory),
        }

    def _structured_query(
        self,
        prompt: ChatPromptTemplate,
        variables: dict[str, str],
        fallback: str,
        alias: str = "",
    ) -> ParsedQuery:
        try:
            text = self.llm.complete(prompt, variables, ModelTier.FAST, alias=alias)
        except LLMError as exc:
            logger.warning("Query generation failed, falling back to %r: %s", fallback, exc)
            return ParsedQuery(query=fallback)
        parsed = parse_semantic_plan(text)
        if not parsed.query:
            return ParsedQuery(query=fallback)
        return parsed

    def _keyword_query(self, variables: dict[str, str], fallback: str, alias: str = "") -> str:
        try:
            text = self.llm.complete(KEYWORD_QUERY_PROMPT, variables, ModelTier.FAST, alias=alias)
        except LLMError as exc:
            logger.warning("Keyword query generation failed, falling back to %r: %s", fallback, exc)
            return fallback
        return clean_keyword_query(text) or fallback

    @staticmethod
    def _semantic_plan(parsed: ParsedQuery) -> SearchPlan:
        return SearchPlan(
            tool=SearchMode.SEMANTIC,
            query=parsed.query,
            created_after=parsed.created_after,
            created_before=parsed.created_before,
            order_by=parsed.order_by,
        )

    @staticmethod
    def _hybrid_plan(parsed: ParsedQuery, keyword: str) -> SearchPlan:
        return SearchPlan(
            tool=SearchMode.HYBRID,
            query=parsed.query,
            semantic_query=parsed.query,
            keyword_query=keyword,
            created_after=parsed.created_after,
            created_before=parsed.created_before,
            order_by=parsed.order_by,
        )

    @staticmethod
    def _log_plans(plans: list[SearchPlan]) -> None:
        for plan in plans:
            logger.info("Planned %s", plan.describe())
            for _, text in plan.queries():
                qualifiers = extract_qualifiers(text)
                if qualifiers.repo or qualifiers.author:
                    logger.debug(
                        "Query %r carries qualifiers repo=%s author=%s",
                        text,
                        qualifiers.repo,
                        qualifiers.author,
                    )
