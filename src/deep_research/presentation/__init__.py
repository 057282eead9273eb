"""Terminal presentation of research results."""

from deep_research.presentation.console import ResearchConsole

__all__ = ["ResearchConsole"]
