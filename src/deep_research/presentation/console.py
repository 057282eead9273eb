"""Rich console rendering of research results.

:class:`ResearchConsole` prints the final report as Markdown followed by a
statistics table.  An instance is callable with a
:class:`~deep_research.domain.context.ResearchContext`, so it can be
passed straight to ``run_research(report_sink=...)``.
"""

from __future__ import annotations

import sys
from typing import Any

from rich.console import Console
from rich.markdown import Markdown
from rich.rule import Rule
from rich.table import Table

from deep_research.domain.context import ResearchContext
from deep_research.pipeline.batch import BatchResearchResult


def statistics_rows(context: ResearchContext) -> list[tuple[str, str]]:
    """(label, value) rows describing one run."""
    rows = [
        ("Conversations", str(len(context.memory))),
        ("Search queries", str(len(context.memory.search_queries))),
        ("Depth", f"{context.current_depth}/{context.max_depth}"),
        ("Compaction attempts", str(context.compaction_attempts)),
    ]
    summary = context.claim_verification
    if summary is not None:
        rows.extend(
            [
                ("Claims verified", str(summary.total)),
                ("Supported", str(len(summary.supported))),
                ("Unsupported", str(len(summary.unsupported))),
            ]
        )
    return rows


class ResearchConsole:
    """Terminal presentation of reports, run statistics and batch summaries.

    Parameters
    ----------
    file:
        Output stream.  Defaults to ``sys.stdout``.
    width:
        Fixed console width; auto-detected when omitted.
    """

    def __init__(self, file: Any = None, width: int | None = None) -> None:
        self._file = file or sys.stdout
        self._console = Console(file=self._file, width=width)

    @property
    def console(self) -> Console:
        return self._console

    def __call__(self, context: ResearchContext) -> None:
        self.show_run(context)

    # -- public API --------------------------------------------------------

    def show_run(self, context: ResearchContext) -> None:
        """Print the final report and the statistics table."""
        self.print_report(context)
        self.print_statistics(context)

    def print_report(self, context: ResearchContext) -> None:
        self._console.print(Rule("Final Report"))
        report = context.final_report or context.draft_answer
        if not report:
            self._console.print("[yellow]No report was produced.[/yellow]")
            return
        self._console.print(Markdown(report))

    def print_statistics(self, context: ResearchContext) -> None:
        table = Table(title="Research Statistics", show_header=True)
        table.add_column("Metric", style="cyan")
        table.add_column("Value", justify="right")
        for label, value in statistics_rows(context):
            table.add_row(label, value)
        self._console.print(table)

    def print_batch(self, result: BatchResearchResult) -> None:
        """Print one row per question of a batch run."""
        table = Table(title="Parallel Research Summary", show_header=True)
        table.add_column("Question", style="cyan")
        table.add_column("Request")
        table.add_column("Conversations", justify="right")
        table.add_column("Iterations", justify="right")
        table.add_column("Status")

        for qid, outcome in result.outcomes.items():
            if outcome.error is not None:
                status = "[red]failed[/red]"
            elif outcome.completed:
                status = "[green]completed[/green]"
            else:
                status = "[yellow]incomplete[/yellow]"
            table.add_row(
                qid,
                outcome.context.request,
                str(len(outcome.context.memory)),
                str(outcome.context.current_depth),
                status,
            )
        self._console.print(table)
        self._console.print(
            f"Total: {result.total_conversations} conversations, "
            f"{result.average_iterations:.1f} iterations per question on average"
        )
