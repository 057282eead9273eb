"""Infrastructure: configuration, LLM access and corpus clients."""

from deep_research.infrastructure.clients import (
    ConversationFetcher,
    HttpConversationFetcher,
    HttpSearchProvider,
    ResearchClients,
    SearchProvider,
)
from deep_research.infrastructure.config import (
    ConfigBundle,
    LLMSettings,
    ResearchConfig,
    load_config_file,
    load_config_from_json,
)

__all__ = [
    "ConfigBundle",
    "ConversationFetcher",
    "HttpConversationFetcher",
    "HttpSearchProvider",
    "LLMSettings",
    "ResearchClients",
    "ResearchConfig",
    "SearchProvider",
    "load_config_file",
    "load_config_from_json",
]
