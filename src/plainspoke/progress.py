"""Progress reporting for the refinement pipeline."""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from typing import TYPE_CHECKING

from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

if TYPE_CHECKING:
    from rich.progress import TaskID

    from plainspoke.models.results import PipelineDecision


@dataclass(frozen=True, slots=True)
class PipelineEvent:
    """Immutable event emitted on every pipeline transition.

    Attributes:
        state: State being entered (e.g. "STAGE1_GENERATED").
        aggregate_score: Latest aggregate detector score, if known.
        detail: Human-readable detail string for verbose output.
    """

    state: str
    aggregate_score: float | None
    detail: str


class ProgressReporter:
    """Rich-based progress display for a local humanize run.

    Shows a spinner with the current state on TTY stderr. Falls back to
    log messages when stderr is not a terminal.
    """

    def __init__(
        self,
        console: Console,
        verbose: bool = False,
        quiet: bool = False,
    ) -> None:
        self._console = console
        self._verbose = verbose
        self._quiet = quiet
        self._progress: Progress | None = None
        self._task_id: TaskID | None = None
        self._is_tty: bool = sys.stderr.isatty()
        self._logger: logging.Logger = logging.getLogger("plainspoke.progress")

    def callback(self, event: PipelineEvent) -> None:
        """Handle a pipeline event -- update the display."""
        if self._quiet:
            return

        if self._progress is not None and self._task_id is not None:
            self._progress.update(self._task_id, description=f"[cyan]{event.state}")

        if self._verbose and event.detail:
            if self._is_tty:
                self._console.print(f"  [dim]{event.detail}[/dim]")
            else:
                self._logger.info(event.detail)
        elif not self._is_tty:
            self._logger.info("%s %s", event.state, event.detail)

    def start(self) -> None:
        """Start the progress display."""
        if self._quiet:
            return

        if self._is_tty:
            self._progress = Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                TimeElapsedColumn(),
                console=self._console,
                transient=True,
            )
            self._progress.start()
            self._task_id = self._progress.add_task("[cyan]INITIAL", total=None)
        else:
            self._logger.info("Pipeline started")

    def finish(self, decision: PipelineDecision | None) -> None:
        """Stop progress and print a summary table."""
        if self._progress is not None:
            self._progress.stop()
            self._progress = None

        if self._quiet or decision is None:
            return

        table = Table(title="Pipeline Summary", show_header=True)
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="green")

        table.add_row("Document type", decision.document_type.value)
        table.add_row("Stage-1 aggregate", _fmt_score(decision.stage1.aggregate_score))
        if decision.stage2 is not None:
            table.add_row("Stage-2 aggregate", _fmt_score(decision.stage2.aggregate_score))
        table.add_row("Outcome", decision.outcome.value)
        table.add_row("Final stage", str(decision.final_stage))
        for error in decision.errors:
            table.add_row("Detector error", error)

        self._console.print(table)


def _fmt_score(score: float | None) -> str:
    return "unknown" if score is None else f"{score:.1f}%"
