"""Tests for ``aibom analyze`` command.

Verifies:
    - A local checkout with AI usage writes every document (exit code 0).
    - A repository without AI usage exits with code 2 and writes nothing.
    - An invalid repository reference exits with code 1.
    - A malformed AIBOM_* environment value exits with code 1, naming it.
    - --json, --format and --exclude.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from aibom.cli.main import cli


@pytest.fixture
def runner() -> CliRunner:
    """Create a Click CliRunner for invoking commands."""
    return CliRunner()


@pytest.fixture
def ai_project(tmp_path: Path) -> Path:
    """A small local checkout that installs and calls OpenAI."""
    project = tmp_path / "chatbot"
    project.mkdir()
    (project / "requirements.txt").write_text("openai==1.30.0\nfastapi==0.110.0\n")
    (project / "app.py").write_text(
        "from openai import OpenAI\n\n"
        "client = OpenAI()\n"
        'resp = client.chat.completions.create(model="gpt-4o")\n'
    )
    (project / "README.md").write_text("# Chatbot\n")
    return project


def analyze(runner: CliRunner, *args: str):
    return runner.invoke(cli, ["analyze", *args, "--no-enrich"])


class TestAnalyzeLocal:
    """Analysis of a local directory."""

    def test_writes_all_documents(self, runner: CliRunner, ai_project: Path, tmp_path: Path) -> None:
        out = tmp_path / "bom"
        result = analyze(runner, str(ai_project), "-o", str(out))
        assert result.exit_code == 0, result.output
        assert sorted(p.name for p in out.iterdir()) == [
            "aibom.cdx.json", "aibom.cdx.xml", "aibom.extended.json", "aibom.spdx.jsonld",
        ]
        cdx = json.loads((out / "aibom.cdx.json").read_text())
        refs = [c["bom-ref"] for c in cdx["components"]]
        assert "component-dep-python-openai" in refs
        assert "model-openai-gpt-4o" in refs

    def test_json_output(self, runner: CliRunner, ai_project: Path, tmp_path: Path) -> None:
        out = tmp_path / "bom"
        result = analyze(runner, str(ai_project), "-o", str(out), "--json")
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["repository"]["owner"] == "local"
        assert data["repository"]["repo"] == "chatbot"
        assert data["confidence"]["level"] == "very-high"
        ids = [f["id"] for f in data["findings"]]
        assert ids == ["dep-python-openai", "model-OpenAI-gpt-4o"]
        assert set(data["documents"]) == {"cyclonedx-json", "cyclonedx-xml", "spdx", "extended"}
        assert "SECURITY.md or security.txt (RFC 9116)" in [g["item"] for g in data["gaps"]]

    def test_single_format(self, runner: CliRunner, ai_project: Path, tmp_path: Path) -> None:
        out = tmp_path / "bom"
        result = analyze(runner, str(ai_project), "-o", str(out), "--format", "spdx")
        assert result.exit_code == 0, result.output
        assert [p.name for p in out.iterdir()] == ["aibom.spdx.jsonld"]

    def test_exclude(self, runner: CliRunner, ai_project: Path, tmp_path: Path) -> None:
        out = tmp_path / "bom"
        result = analyze(
            runner, str(ai_project), "-o", str(out),
            "--format", "cyclonedx-json", "--exclude", "dep-python-openai",
        )
        assert result.exit_code == 0, result.output
        cdx = json.loads((out / "aibom.cdx.json").read_text())
        assert [c["bom-ref"] for c in cdx["components"]] == ["model-openai-gpt-4o"]

    def test_invalid_format_rejected(self, runner: CliRunner, ai_project: Path) -> None:
        result = analyze(runner, str(ai_project), "--format", "yaml")
        assert result.exit_code == 2
        assert "Invalid value" in result.output


class TestAnalyzeNothingFound:
    """Repositories without AI usage."""

    def test_exit_code_2(self, runner: CliRunner, tmp_path: Path) -> None:
        project = tmp_path / "plain"
        project.mkdir()
        (project / "main.py").write_text("print('hello')\n")
        out = tmp_path / "bom"
        result = analyze(runner, str(project), "-o", str(out))
        assert result.exit_code == 2
        assert "No AI/LLM usage detected" in result.output
        assert not out.exists()

    def test_json_when_nothing_found(self, runner: CliRunner, tmp_path: Path) -> None:
        result = analyze(runner, str(tmp_path), "--json")
        assert result.exit_code == 2
        data = json.loads(result.stdout)
        assert data["findings"] == []
        assert data["score"] == 0


class TestAnalyzeErrors:
    """Bad input and unwritable output."""

    def test_invalid_reference(self, runner: CliRunner) -> None:
        result = analyze(runner, "not-a-repo")
        assert result.exit_code == 1
        assert "Invalid repository format" in result.output

    def test_unwritable_output(self, runner: CliRunner, ai_project: Path, tmp_path: Path) -> None:
        blocker = tmp_path / "taken"
        blocker.write_text("x")
        result = analyze(runner, str(ai_project), "-o", str(blocker / "bom"))
        assert result.exit_code == 1
        assert "cannot write" in result.output

    def test_malformed_environment_setting(
        self, runner: CliRunner, ai_project: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("AIBOM_MAX_RATE_LIMIT_WAIT", "abc")
        out = tmp_path / "bom"
        result = analyze(runner, str(ai_project), "-o", str(out))
        assert result.exit_code == 1
        assert "AIBOM_MAX_RATE_LIMIT_WAIT" in result.output
        assert result.exception is None or isinstance(result.exception, SystemExit)
        assert not out.exists()

    def test_negative_max_wait_rejected(self, runner: CliRunner, ai_project: Path) -> None:
        result = analyze(runner, str(ai_project), "--max-wait", "-5")
        assert result.exit_code == 2
        assert "Invalid value" in result.output
