"""Prompt templates used by the research services.

All templates are LangChain ``ChatPromptTemplate`` objects in f-string
format, so literal braces in JSON examples are doubled.
"""

from __future__ import annotations

from langchain_core.prompts import ChatPromptTemplate

# -- Clarification -------------------------------------------------------------

CLARIFYING_QUESTIONS_PROMPT = ChatPromptTemplate.from_messages(
    [
        (
            "system",
            "You are an expert analyst reviewing a research request together "
            "with the first conversations retrieved for it.",
        ),
        (
            "human",
            "## Research Request\n{request}\n\n"
            "## Initial Findings Summary\n{initial_findings}\n\n"
            "Write up to 4 clarifying questions that would help you:\n"
            "- understand the intent behind the request,\n"
            "- narrow the search space (for example a specific organization "
            "or repository),\n"
            "- learn the expected output format (executive summary, detailed "
            "analysis, ADR, ...).\n"
            "Skip any area the request or the findings already cover.\n\n"
            "Return a numbered list, one question per line, and ask the user "
            "to answer inline below each question.",
        ),
    ]
)

# -- Planning ------------------------------------------------------------------

SEMANTIC_QUERY_PROMPT = ChatPromptTemplate.from_messages(
    [
        (
            "system",
            "You are an expert researcher mining GitHub conversations for "
            "actionable evidence.",
        ),
        (
            "human",
            "## Original Request\n{request}\n\n"
            "## User Clarifications\n{clarifications}\n\n"
            "## Findings So Far\n{findings_summary}\n\n"
            "## Prior Search Queries\n{previous_queries}\n\n"
            "Find the most significant information gap (missing implementation "
            "details, unclear project status, decisions, trade-offs, "
            "alternatives) and write one new natural-language search query "
            "(at most 2 sentences, no search operators) to close it. When it is "
            "unclear whether something shipped, aim for evidence that proves or "
            "disproves implementation, such as merged pull requests or release "
            "notes.\n\n"
            "You may narrow the search with ISO8601 dates and an ordering.\n\n"
            "Return only a raw JSON object (no markdown code block) with:\n"
            '- "query": the search query\n'
            '- "created_after": ISO date (optional)\n'
            '- "created_before": ISO date (optional)\n'
            '- "order_by": "created_at asc" or "created_at desc" (optional)\n\n'
            "Examples:\n"
            '{{"query": "Confirmation that client-side rate limiting shipped", '
            '"created_after": "2024-01-01"}}\n'
            '{{"query": "Alternatives considered for large table migrations", '
            '"order_by": "created_at desc"}}',
        ),
    ]
)

KEYWORD_QUERY_PROMPT = ChatPromptTemplate.from_messages(
    [
        ("system", "You are an expert user of GitHub search syntax."),
        (
            "human",
            "## Research request\n{request}\n\n"
            "## Known clarifications\n{clarifications}\n\n"
            "## Prior Search Queries\n{previous_queries}\n\n"
            "Return exactly one GitHub search string likely to surface the most "
            "relevant conversations.\n"
            "- Use at most 5 terms or operators.\n"
            "- Prefer operators when they are obvious (repo:, author:, label:, "
            "is:, created:, updated:).\n"
            "- Otherwise use 2-3 strong keywords.\n"
            "Output only the search string.",
        ),
    ]
)

UNSUPPORTED_CLAIMS_QUERY_PROMPT = ChatPromptTemplate.from_messages(
    [
        (
            "system",
            "You are an expert researcher looking for evidence behind claims "
            "that a draft research report could not support.",
        ),
        (
            "human",
            "## Original Request\n{request}\n\n"
            "## User Clarifications\n{clarifications}\n\n"
            "## Unsupported Claims\n{unsupported_claims}\n\n"
            "## Previous Findings\n{findings_summary}\n\n"
            "## Prior Search Queries\n{previous_queries}\n\n"
            "Write one natural-language search query (at most 2 sentences, no "
            "search operators) that would surface GitHub conversations "
            "containing direct evidence for the claims above: implementation "
            "status, concrete technical decisions and outcomes, or timeline "
            "updates.\n\n"
            "Return only a raw JSON object (no markdown code block) with:\n"
            '- "query": the search query\n'
            '- "created_after": ISO date (optional)\n'
            '- "created_before": ISO date (optional)\n'
            '- "order_by": "created_at asc" or "created_at desc" (optional)\n\n'
            "Example:\n"
            '{{"query": "Merge status of the feature with pull request numbers", '
            '"order_by": "created_at desc"}}',
        ),
    ]
)

# -- Retrieval -----------------------------------------------------------------

CONVERSATION_SUMMARY_PROMPT = ChatPromptTemplate.from_messages(
    [
        (
            "system",
            "You write executive summaries of GitHub conversations.\n"
            "1. Start with a concise title naming the subject or decision.\n"
            "2. Follow with a few narrative paragraphs in a formal tone; no "
            "bullets, headers or lists.\n"
            "3. Whenever you rely on a specific comment, event or linked "
            "resource, link to it inline (mention @username plainly and put "
            "the link after it).\n"
            "4. Keep only what shaped the direction or outcome: key debates, "
            "decisions, constraints and resolutions. Skip administrative "
            "chatter, code diffs and bot events unless they changed the outcome.\n"
            "5. Describe alternatives, the current status and any next steps.",
        ),
        (
            "human",
            "Conversation url: {url}\n\n"
            "Conversation data:\n{conversation}\n\n"
            "Write the executive summary.",
        ),
    ]
)

# -- Reporting -----------------------------------------------------------------

FINAL_REPORT_PROMPT = ChatPromptTemplate.from_messages(
    [
        (
            "system",
            "You are an expert analyst preparing a comprehensive Markdown report.",
        ),
        (
            "human",
            "## Original Request\n{request}\n\n"
            "## User Clarifications\n{clarifications}\n\n"
            "## Research Corpus\n{all_findings}\n\n"
            "Write a well-structured Markdown report that answers the request "
            "in light of the clarifications, citing the sources that support "
            "your findings.\n\n"
            "Style guide:\n"
            "- Use Markdown headings (##, ###) and no horizontal rules.\n"
            "- Back every factual claim with an inline citation (full URL).\n"
            "- If a status cannot be confirmed, mark it **Unknown** and say "
            "which evidence is missing.\n\n"
            "Return only the Markdown document.",
        ),
    ]
)

# -- Verification --------------------------------------------------------------

EXTRACT_CLAIMS_PROMPT = ChatPromptTemplate.from_messages(
    [
        (
            "system",
            "You extract specific, verifiable factual claims from research "
            "reports so they can be fact-checked.",
        ),
        (
            "human",
            "Extract concrete claims about what happened and when, who was "
            "involved, technical and implementation details, quantifiable "
            "outcomes, processes and tool configuration. Ignore opinions, "
            "recommendations, vague statements and predictions.\n\n"
            "Report:\n{report}\n\n"
            "Return ONLY a JSON array of claim strings (at most {max_claims}), "
            "with no other text.\n"
            'Example: ["First claim", "Second claim"]',
        ),
    ]
)

VERIFY_CLAIM_PROMPT = ChatPromptTemplate.from_messages(
    [
        ("system", "You are a fact-checker verifying one claim against evidence."),
        (
            "human",
            "Claim:\n{claim}\n\n"
            "Evidence:\n{evidence}\n\n"
            "Decide whether the evidence supports the claim. Partial support "
            "counts as unsupported.\n\n"
            "Answer with exactly one word:\n"
            "SUPPORTED if the evidence clearly supports the claim\n"
            "UNSUPPORTED if it contradicts the claim or is insufficient",
        ),
    ]
)
