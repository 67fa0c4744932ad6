"""``aibom analyze <repo>`` -- Detect AI/LLM usage and write AI BOM documents.

REPO is ``owner/repo``, a GitHub URL, or a local directory. The detection
pipeline runs every unit, reconciles the Findings, and the selected
documents are written to the output directory.

Exit Codes:
    0 -- Documents generated.
    1 -- Invalid environment settings, repository reference invalid,
         repository unreachable, or output cannot be written.
    2 -- Nothing AI-related was detected.
"""

from __future__ import annotations

import asyncio
import dataclasses
import json
import sys
from pathlib import Path
from typing import Coroutine, TypeVar

import click

from aibom.config import AnalysisSettings
from aibom.context.base import RepositoryContext
from aibom.context.github import GitHubRepositoryContext
from aibom.context.local import LocalRepositoryContext
from aibom.core.pipeline import AnalysisResult, Orchestrator
from aibom.core.sbom.generator import FORMATS, AIBOMGenerator
from aibom.exceptions import (
    BOMError,
    ConfigurationError,
    RepositoryAccessError,
    RepositoryInputError,
)

T = TypeVar("T")


def _run_async(coro: Coroutine[object, object, T]) -> T:
    """Run an async coroutine in a synchronous context."""
    return asyncio.run(coro)


async def _open_context(
    repo: str, token: str | None, settings: AnalysisSettings,
) -> RepositoryContext:
    path = Path(repo)
    if path.is_dir():
        return LocalRepositoryContext(path, settings)
    return await GitHubRepositoryContext.open(repo, token, settings)


async def run_analysis(
    repo: str,
    token: str | None,
    settings: AnalysisSettings,
    verbose_progress: bool = False,
) -> AnalysisResult:
    """Open the repository context, run every unit, and close the context."""
    context = await _open_context(repo, token, settings)

    def progress(step: int, total: int, name: str) -> None:
        if verbose_progress:
            click.echo(f"[{step}/{total}] {name}", err=True)

    try:
        return await Orchestrator(settings=settings, on_progress=progress).run(context)
    finally:
        await context.aclose()


@click.command("analyze")
@click.argument("repo")
@click.option(
    "--token",
    envvar="GITHUB_TOKEN",
    default=None,
    help="GitHub token (default: $GITHUB_TOKEN). Enables code search.",
)
@click.option(
    "--output-dir", "-o",
    type=click.Path(file_okay=False),
    default="aibom-output",
    help="Directory the documents are written to (default: aibom-output).",
)
@click.option(
    "--format", "formats",
    type=click.Choice(list(FORMATS)),
    multiple=True,
    help="Output format; repeat for several (default: all).",
)
@click.option(
    "--exclude",
    multiple=True,
    metavar="FINDING_ID",
    help="Leave a Finding out of the documents; repeatable.",
)
@click.option("--json", "as_json", is_flag=True, help="Print the analysis as JSON.")
@click.option(
    "--max-wait",
    type=click.FloatRange(min=0),
    default=None,
    help="Longest wait (seconds) for the search quota to reset before resuming.",
)
@click.option("--no-enrich", is_flag=True, help="Skip Hugging Face model lookups.")
def analyze_command(
    repo: str,
    token: str | None,
    output_dir: str,
    formats: tuple[str, ...],
    exclude: tuple[str, ...],
    as_json: bool,
    max_wait: float | None,
    no_enrich: bool,
) -> None:
    """Detect AI/LLM usage in REPO and generate AI BOM documents.

    Examples:

        aibom analyze openai/openai-cookbook

        aibom analyze https://github.com/owner/repo --format spdx

        aibom analyze ./my-project --exclude code-sdk-openai-python --json
    """
    try:
        settings = AnalysisSettings.from_env()
    except ConfigurationError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    if max_wait is not None:
        settings = dataclasses.replace(settings, max_rate_limit_wait=max_wait)
    if no_enrich:
        settings = dataclasses.replace(settings, enrich_models=False)

    try:
        result = _run_async(run_analysis(repo, token, settings, verbose_progress=not as_json))
    except (RepositoryInputError, RepositoryAccessError) as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    from aibom.cli.output import (
        print_bom_summary,
        print_confidence,
        print_findings,
        print_gaps,
    )

    if not result.findings:
        if as_json:
            click.echo(json.dumps(result.to_dict(), indent=2))
        else:
            print_confidence(result)
            print_findings(result)
        sys.exit(2)

    generator = AIBOMGenerator(result, exclude=exclude)
    try:
        written = generator.write_all(Path(output_dir), formats or None)
    except BOMError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    if as_json:
        data = result.to_dict()
        data["gaps"] = [gap.to_dict() for gap in generator.gaps]
        data["documents"] = {name: str(path) for name, path in written.items()}
        click.echo(json.dumps(data, indent=2))
    else:
        print_confidence(result)
        print_findings(result)
        print_gaps(generator.gaps)
        print_bom_summary(generator.summary(), written)
    sys.exit(0)
