"""Output formatting for local humanize and detect runs."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from plainspoke import __version__

if TYPE_CHECKING:
    from pathlib import Path

    from plainspoke.config import PlainspokeConfig
    from plainspoke.models.results import PipelineDecision, StageResult


class OutputFormatter:
    """Format pipeline results as a JSON report or a text summary."""

    def format_json(self, decision: PipelineDecision, config: PlainspokeConfig) -> str:
        """Serialize a decision as a JSON report.

        Args:
            decision: Completed pipeline decision.
            config: Configuration used for the run.

        Returns:
            JSON string with version, profile, timestamp, and the decision.
        """
        report: dict[str, Any] = {
            "plainspoke_version": __version__,
            "profile": config.general.profile,
            "threshold": config.refinement.threshold,
            "timestamp": datetime.now(UTC).isoformat(),
            **decision.to_dict(),
        }
        return json.dumps(report, indent=2, ensure_ascii=False)

    def format_text(self, decision: PipelineDecision) -> str:
        """Format a decision as the rewritten text followed by a short report."""
        lines: list[str] = [decision.text, "", "=" * 50]
        lines.append(f"Document type: {decision.document_type.value}")
        lines.append(f"Outcome:       {decision.outcome.value}")
        lines.append(f"Final stage:   {decision.final_stage}")
        lines.append("")
        lines.extend(self.format_stage("Stage 1", decision.stage1))
        if decision.stage2 is not None:
            lines.extend(self.format_stage("Stage 2", decision.stage2))
        return "\n".join(lines)

    @staticmethod
    def format_stage(title: str, stage: StageResult) -> list[str]:
        """Per-detector score lines for one stage."""
        aggregate = stage.aggregate_score
        agg = "unknown" if aggregate is None else f"{aggregate:.1f}%"
        lines = [f"{title} (aggregate {agg})", "-" * 30]
        for name, result in stage.detections.items():
            if result.score is None:
                lines.append(f"  {name:<10} error: {result.error}")
            else:
                flagged = len(result.flagged_sentences)
                lines.append(f"  {name:<10} {result.score:5.1f}%  flagged={flagged}")
        lines.append("")
        return lines

    def write(
        self,
        decision: PipelineDecision,
        path: Path,
        output_format: str,
        config: PlainspokeConfig | None = None,
    ) -> None:
        """Write formatted output to a file.

        Args:
            decision: Completed pipeline decision.
            path: Output file path.
            output_format: One of "json", "text".
            config: Required for JSON format.

        Raises:
            ValueError: If required arguments are missing for the chosen format.
        """
        if output_format == "json":
            if config is None:
                raise ValueError("config is required for JSON output format")
            content = self.format_json(decision, config)
        elif output_format == "text":
            content = self.format_text(decision)
        else:
            raise ValueError(f"Unknown output format: {output_format!r}")

        path.write_text(content, encoding="utf-8")
