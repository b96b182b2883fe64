"""CLI integration tests using Click's CliRunner."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
from click.testing import CliRunner

from plainspoke.classifier import DocumentType
from plainspoke.cli import main
from plainspoke.errors import GenerationTimeout
from plainspoke.models.results import (
    DetectionResult,
    PipelineDecision,
    RefinementOutcome,
    StageResult,
)


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def email_file(tmp_path: Path) -> Path:
    p = tmp_path / "email.txt"
    p.write_text("Dear Sam,\n\nThe report is attached.\n\nBest regards,\nAlex\n", encoding="utf-8")
    return p


def _decision(text: str = "Rewritten email.") -> PipelineDecision:
    return PipelineDecision(
        text=text,
        document_type=DocumentType.EMAIL,
        stage1=StageResult(
            text=text, detections={"gptzero": DetectionResult(detector="gptzero", score=1.5)}
        ),
        outcome=RefinementOutcome.SKIPPED_BELOW_THRESHOLD,
    )


class TestMainGroup:
    """Top-level CLI group."""

    def test_version(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert "plainspoke" in result.output.lower()

    def test_help(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        for command in ("classify", "detect", "humanize", "serve", "config"):
            assert command in result.output


class TestClassifyCommand:
    """classify subcommand."""

    def test_email(self, runner: CliRunner, email_file: Path) -> None:
        result = runner.invoke(main, ["classify", str(email_file)])
        assert result.exit_code == 0
        assert result.output.strip() == "email"

    def test_missing_file(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(main, ["classify", str(tmp_path / "nope.txt")])
        assert result.exit_code != 0


class TestConfigCommand:
    """config subcommand."""

    def test_relaxed_profile(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ["--profile", "relaxed", "config"])
        assert result.exit_code == 0
        assert '"threshold": 8.0' in result.output


class TestHumanizeCommand:
    """humanize subcommand with the network runner patched out."""

    @patch("plainspoke.cli._humanize", new_callable=AsyncMock)
    def test_text_output(self, mock_run: AsyncMock, runner: CliRunner, email_file: Path) -> None:
        mock_run.return_value = _decision()
        result = runner.invoke(main, ["-q", "humanize", str(email_file)])
        assert result.exit_code == 0, result.output
        assert "Rewritten email." in result.output
        assert "Outcome:       skipped_below_threshold" in result.output
        config, text, examples, _ = mock_run.call_args.args
        assert text.startswith("Dear Sam,")
        assert examples == ()
        assert config.refinement.threshold == 3.0

    @patch("plainspoke.cli._humanize", new_callable=AsyncMock)
    def test_overrides_and_examples(
        self, mock_run: AsyncMock, runner: CliRunner, email_file: Path, tmp_path: Path
    ) -> None:
        mock_run.return_value = _decision()
        samples = tmp_path / "samples.txt"
        samples.write_text("One sample.\n\nTwo sample.\n", encoding="utf-8")
        result = runner.invoke(
            main,
            [
                "-q",
                "humanize",
                str(email_file),
                "--examples",
                str(samples),
                "--threshold",
                "5",
                "--no-refine",
            ],
        )
        assert result.exit_code == 0, result.output
        config, _, examples, _ = mock_run.call_args.args
        assert examples == ("One sample.", "Two sample.")
        assert config.refinement.threshold == 5.0
        assert config.refinement.enabled is False

    @patch("plainspoke.cli._humanize", new_callable=AsyncMock)
    def test_json_to_file(
        self, mock_run: AsyncMock, runner: CliRunner, email_file: Path, tmp_path: Path
    ) -> None:
        mock_run.return_value = _decision()
        out = tmp_path / "report.json"
        result = runner.invoke(
            main, ["-q", "humanize", str(email_file), "--output-format", "json", "-o", str(out)]
        )
        assert result.exit_code == 0, result.output
        data = json.loads(out.read_text(encoding="utf-8"))
        assert data["text"] == "Rewritten email."
        assert data["documentType"] == "email"

    @patch("plainspoke.cli._humanize", new_callable=AsyncMock)
    def test_rejected_input(self, mock_run: AsyncMock, runner: CliRunner, tmp_path: Path) -> None:
        bad = tmp_path / "bad.txt"
        bad.write_text("hello <script>alert(1)</script>", encoding="utf-8")
        result = runner.invoke(main, ["-q", "humanize", str(bad)])
        assert result.exit_code == 1
        assert "disallowed content" in result.output
        mock_run.assert_not_called()

    @patch("plainspoke.cli._humanize", new_callable=AsyncMock)
    def test_generation_failure(self, mock_run: AsyncMock, runner: CliRunner, email_file: Path) -> None:
        mock_run.side_effect = GenerationTimeout("no answer within 60s")
        result = runner.invoke(main, ["-q", "humanize", str(email_file)])
        assert result.exit_code == 1
        assert "AI provider timed out" in result.output
