"""Test doubles for writing self-contained research runs.

Provides a scripted chat model and an in-memory corpus, so a full run can
execute without API keys or network access.
"""

from deep_research.testing.corpus import InMemoryCorpus, make_conversation, seeded_corpus
from deep_research.testing.mock_llm import ScriptedChatModel, scripted_research_model

__all__ = [
    "InMemoryCorpus",
    "ScriptedChatModel",
    "make_conversation",
    "scripted_research_model",
    "seeded_corpus",
]
