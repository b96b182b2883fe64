"""Click-based CLI for plainspoke."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import click
from rich.console import Console

from plainspoke import __version__
from plainspoke.config import PlainspokeConfig, load_config
from plainspoke.errors import PlainspokeError

if TYPE_CHECKING:
    from collections.abc import Callable

    from plainspoke.models.results import PipelineDecision, StageResult
    from plainspoke.progress import PipelineEvent

logger = logging.getLogger("plainspoke")

_LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def _read_text(path: Path) -> str:
    return path.read_text(encoding="utf-8")


@click.group()
@click.version_option(version=__version__, prog_name="plainspoke")
@click.option(
    "--profile",
    type=click.Choice(["strict", "relaxed"]),
    default=None,
    help="Refinement profile (overrides config file).",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Path to user config TOML file.",
)
@click.option("-v", "--verbose", is_flag=True, default=False, help="Verbose output.")
@click.option("-q", "--quiet", is_flag=True, default=False, help="Suppress all output.")
@click.pass_context
def main(
    ctx: click.Context,
    profile: str | None,
    config_path: Path | None,
    verbose: bool,
    quiet: bool,
) -> None:
    """plainspoke -- two-stage AI text humanizer."""
    ctx.ensure_object(dict)
    cfg = load_config(profile=profile, user_config_path=config_path)
    ctx.obj = {
        "config": cfg,
        "config_path": config_path,
        "verbose": verbose,
        "quiet": quiet,
    }

    level = logging.DEBUG if verbose else logging.WARNING
    if quiet:
        level = logging.CRITICAL
    logging.basicConfig(level=level, format="%(name)s: %(message)s", stream=sys.stderr)


@main.command()
@click.argument("input_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def classify(input_path: Path) -> None:
    """Print the document type of a text file."""
    from plainspoke.classifier import classify as classify_text

    click.echo(classify_text(_read_text(input_path)).value)


@main.command()
@click.argument("input_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def detect(ctx: click.Context, input_path: Path) -> None:
    """Score a text file with every enabled detector."""
    from plainspoke.output import OutputFormatter

    config: PlainspokeConfig = ctx.obj["config"]
    stage = asyncio.run(_detect(config, _read_text(input_path)))
    click.echo("\n".join(OutputFormatter.format_stage("Detection", stage)))


@main.command()
@click.argument("input_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--examples",
    "examples_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="File of writing samples separated by blank lines.",
)
@click.option(
    "--output-format",
    type=click.Choice(["json", "text"]),
    default="text",
    help="Report output format.",
)
@click.option("--threshold", type=float, default=None, help="Refinement threshold override.")
@click.option("--refine/--no-refine", default=True, help="Allow the stage-2 refinement pass.")
@click.option("-o", "--output", "output_path", type=click.Path(path_type=Path), default=None)
@click.pass_context
def humanize(
    ctx: click.Context,
    input_path: Path,
    examples_path: Path | None,
    output_format: str,
    threshold: float | None,
    refine: bool,
    output_path: Path | None,
) -> None:
    """Rewrite a text file locally (no quota accounting)."""
    from plainspoke.output import OutputFormatter
    from plainspoke.progress import ProgressReporter
    from plainspoke.validation import split_examples, validate_text

    obj = ctx.obj
    config: PlainspokeConfig = obj["config"]

    overrides: dict[str, str] = {}
    if threshold is not None:
        overrides["refinement.threshold"] = str(threshold)
    if not refine:
        overrides["refinement.enabled"] = "false"
    if overrides:
        config = load_config(
            profile=config.general.profile,
            user_config_path=obj["config_path"],
            cli_overrides=overrides,
        )

    text = _read_text(input_path)
    examples = split_examples(_read_text(examples_path)) if examples_path else ()

    console = Console(stderr=True, quiet=obj["quiet"])
    reporter = ProgressReporter(console, verbose=obj["verbose"], quiet=obj["quiet"])

    decision: PipelineDecision | None = None
    try:
        validate_text(text, config.limits.max_text_length)
        reporter.start()
        decision = asyncio.run(_humanize(config, text, examples, reporter.callback))
    except PlainspokeError as exc:
        reporter.finish(None)
        raise click.ClickException(f"{exc.public_message}: {exc}") from exc
    reporter.finish(decision)

    formatter = OutputFormatter()
    if output_path is not None:
        formatter.write(decision, output_path, output_format, config=config)
        click.echo(f"Output: {output_path}", err=True)
    elif output_format == "json":
        click.echo(formatter.format_json(decision, config))
    else:
        click.echo(formatter.format_text(decision))


@main.command()
@click.option("--host", default=None, help="Bind address (default from config).")
@click.option("--port", type=int, default=None, help="Bind port (default from config).")
@click.pass_context
def serve(ctx: click.Context, host: str | None, port: int | None) -> None:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    from plainspoke.api import create_app

    config: PlainspokeConfig = ctx.obj["config"]
    level = _LOG_LEVELS.get(config.general.log_level.lower(), logging.INFO)
    if not ctx.obj["verbose"] and not ctx.obj["quiet"]:
        logging.getLogger().setLevel(level)

    uvicorn.run(
        create_app(config),
        host=host or config.server.host,
        port=port or config.server.port,
        log_level=config.general.log_level.lower(),
    )


@main.command(name="config")
@click.pass_context
def config_cmd(ctx: click.Context) -> None:
    """Show the resolved configuration (secrets are never stored in it)."""
    import dataclasses
    import json

    from rich.syntax import Syntax

    config: PlainspokeConfig = ctx.obj["config"]
    console = Console(quiet=ctx.obj["quiet"])
    json_str = json.dumps(dataclasses.asdict(config), indent=2)
    console.print(Syntax(json_str, "json", theme="monokai"))


# ---------------------------------------------------------------------------
# Async runners
# ---------------------------------------------------------------------------


async def _detect(config: PlainspokeConfig, text: str) -> StageResult:
    from plainspoke.detector import DetectorPanel, build_detectors

    async with DetectorPanel(build_detectors(config.detection)) as panel:
        return await panel.detect_all(text)


async def _humanize(
    config: PlainspokeConfig,
    text: str,
    examples: tuple[str, ...],
    progress_callback: Callable[[PipelineEvent], None],
) -> PipelineDecision:
    from plainspoke.detector import DetectorPanel, build_detectors
    from plainspoke.humanizer import ChatCompletionsGenerator, PromptComposer
    from plainspoke.models.results import HumanizationRequest
    from plainspoke.pipeline import RefinementOrchestrator

    async with (
        ChatCompletionsGenerator.from_config(config.generation) as generator,
        DetectorPanel(build_detectors(config.detection)) as panel,
    ):
        orchestrator = RefinementOrchestrator(
            generator=generator,
            panel=panel,
            composer=PromptComposer(config.prompts.max_flagged_sentences),
            refinement=config.refinement,
        )
        request = HumanizationRequest(text=text, identity="local", style_examples=examples)
        return await orchestrator.run(request, progress_callback=progress_callback)
