"""Tests for ``aibom formats`` command."""

from __future__ import annotations

from click.testing import CliRunner

from aibom.cli.main import cli
from aibom.core.sbom import FORMATS


class TestFormatsCommand:
    """Listing the output formats."""

    def test_exit_code(self) -> None:
        result = CliRunner().invoke(cli, ["formats"])
        assert result.exit_code == 0

    def test_lists_every_format(self) -> None:
        result = CliRunner().invoke(cli, ["formats"])
        for fmt in FORMATS.values():
            assert fmt.name in result.output
            assert fmt.filename in result.output
