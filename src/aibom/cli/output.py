"""Rich output formatting helpers for the aibom CLI.

Severity Color Mapping:
    HIGH = bold red, MEDIUM = yellow, LOW = cyan, INFO = dim
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from aibom.core.findings.models import Severity
from aibom.core.pipeline.session import AnalysisResult
from aibom.core.sbom.gaps import Gap

_SEVERITY_STYLES: dict[Severity, str] = {
    Severity.HIGH: "bold red",
    Severity.MEDIUM: "yellow",
    Severity.LOW: "cyan",
    Severity.INFO: "dim",
}

_CONFIDENCE_STYLES: dict[str, str] = {
    "very-high": "bold green",
    "high": "green",
    "low": "yellow",
    "none": "red",
}

console = Console()


def severity_style(severity: Severity) -> str:
    """Return the Rich style string for a given severity level."""
    return _SEVERITY_STYLES.get(severity, "white")


def print_confidence(result: AnalysisResult) -> None:
    """Print the repository header with score and confidence band."""
    confidence = result.confidence
    header = Text.assemble(
        ("Repository: ", "bold"), (result.repository.full_name, ""),
        ("  Score: ", "bold"), (str(result.score), ""),
        ("  Confidence: ", "bold"),
        (confidence.label, _CONFIDENCE_STYLES.get(confidence.level, "white")),
    )
    console.print(Panel(header, title="AI BOM Analysis", subtitle=confidence.description))
    console.print(
        f"  {result.total_files} files | {len(result.findings)} findings"
        f" | SBOM {'available' if result.sbom_available else 'unavailable'}"
        f" | {result.duration_seconds:.1f}s"
    )
    if result.is_partial:
        console.print(
            f"  [yellow]Partial results from: {', '.join(result.partial_units)}[/yellow]"
        )


def print_findings(result: AnalysisResult) -> None:
    """Print one row per merged Finding."""
    if not result.findings:
        console.print("[dim]No AI/LLM usage detected.[/dim]")
        return

    table = Table(title="Findings", show_header=True, header_style="bold")
    table.add_column("ID", style="dim")
    table.add_column("Category", style="bold")
    table.add_column("Title")
    table.add_column("Severity", justify="center")
    table.add_column("Weight", justify="right")
    table.add_column("Evidence", justify="right")

    for finding in result.findings:
        table.add_row(
            finding.id,
            finding.category.value,
            finding.title,
            Text(finding.severity.name, style=severity_style(finding.severity)),
            str(finding.weight),
            str(len(finding.evidence)),
        )
    console.print(table)


def print_gaps(gaps: list[Gap]) -> None:
    """Print the scanned-for-but-not-found list."""
    if not gaps:
        return
    table = Table(title="Scanned For But Not Found", show_header=True, header_style="bold")
    table.add_column("Category", style="bold")
    table.add_column("Item")
    table.add_column("Benefit", style="dim")
    for gap in gaps:
        table.add_row(gap.category, gap.item, gap.benefit)
    console.print(table)


def print_bom_summary(summary: dict[str, Any], written: dict[str, Path]) -> None:
    """Print a summary of the generated documents.

    Args:
        summary: Dictionary from ``AIBOMGenerator.summary()``.
        written: Format name mapped to the written path.
    """
    console.print(Panel("[bold]AI Bill of Materials[/bold]", title="BOM Summary"))
    console.print(f"  Components:     [bold]{summary.get('components', 0)}[/bold]")
    console.print(f"  Models:         {summary.get('models', 0)}")
    console.print(f"  Libraries:      {summary.get('libraries', 0)}")
    console.print(f"  Relationships:  {summary.get('relationships', 0)}")
    if summary.get("excluded"):
        console.print(f"  Excluded findings: {summary['excluded']}")

    if written:
        table = Table(title="Documents", show_header=True)
        table.add_column("Format", style="bold")
        table.add_column("Path")
        for name, path in written.items():
            table.add_row(name, str(path))
        console.print(table)
