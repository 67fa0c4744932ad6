"""``aibom formats`` -- List the BOM output formats.

Exit Codes:
    0 -- Always (informational command, cannot fail).
"""

from __future__ import annotations

import click
from rich.table import Table

from aibom import __version__
from aibom.cli.output import console
from aibom.core.sbom.generator import FORMATS


@click.command("formats")
def formats_command() -> None:
    """List the output formats ``aibom analyze --format`` accepts."""
    table = Table(title=f"aibom v{__version__} -- {len(FORMATS)} Output Formats", show_header=True)
    table.add_column("Format", style="bold", no_wrap=True)
    table.add_column("File", no_wrap=True)
    table.add_column("Description", style="dim")
    for fmt in FORMATS.values():
        table.add_row(fmt.name, fmt.filename, fmt.description)
    console.print(table)
