"""aibom CLI -- AI Bill of Materials for source repositories.

Entry point for the ``aibom`` command-line tool. Registers all
subcommands under a single Click group.

Commands:
    analyze -- Detect AI/LLM usage and write BOM documents.
    formats -- List the BOM output formats.

Usage::

    aibom analyze owner/repo
    aibom analyze https://github.com/owner/repo --format cyclonedx-json
    aibom analyze ./local-checkout --output-dir bom/
    aibom formats
"""

from __future__ import annotations

import logging

import click

from aibom import __version__
from aibom.cli.analyze_cmd import analyze_command
from aibom.cli.formats_cmd import formats_command


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def cli(verbose: bool) -> None:
    """aibom: AI Bill of Materials generator.

    Finds AI/LLM dependencies, API usage, models, hardware, infrastructure
    and governance documentation in a repository, and writes CycloneDX,
    SPDX and extended AIBOM documents.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


# Register all subcommands
cli.add_command(analyze_command)
cli.add_command(formats_command)
