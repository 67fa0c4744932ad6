"""Detection unit contract: declared inputs, typed outputs, resumable results.

Each unit declares the slice of accumulated pipeline state it needs as a
set of ``Capability`` flags. The orchestrator resolves those flags into a
``UnitInput``; fields a unit did not ask for stay at their empty defaults,
so a unit can never depend on state it has not declared.

A run either completes (``Complete``) or, for the one rate-limited unit,
stops early with a checkpoint (``Paused``). The orchestrator matches on
the two variants rather than probing the shape of the result.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, ClassVar, Union

from aibom.config import AnalysisSettings
from aibom.context.base import RateLimit, RepositoryContext
from aibom.core.findings.models import DependencyInfo, Evidence, Finding

if TYPE_CHECKING:
    from aibom.detectors.documentation import ParsedDocs

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Declared inputs
# ---------------------------------------------------------------------------


class Capability(Enum):
    """Pipeline state a unit may ask the orchestrator to attach."""

    FINDINGS = "findings"
    DEPENDENCIES = "dependencies"
    PARSED_DOCS = "parsed_docs"
    AI_FILES = "ai_files"


@dataclass(frozen=True)
class SearchQuery:
    """One planned code-search query and the provider it is attributed to."""

    text: str
    provider: str


@dataclass(frozen=True)
class ResumeState:
    """Checkpoint of a paused code-search run.

    Attributes:
        queries: The full query plan, so a resumed run executes the same plan.
        next_index: Index of the first query not yet executed.
        accumulator: Evidence gathered so far, keyed by provider.
        rate_limit: Last observed quota window.
    """

    queries: tuple[SearchQuery, ...]
    next_index: int
    accumulator: dict[str, tuple[Evidence, ...]] = field(default_factory=dict)
    rate_limit: RateLimit | None = None

    @property
    def remaining_queries(self) -> int:
        return max(len(self.queries) - self.next_index, 0)


@dataclass(frozen=True)
class UnitInput:
    """Per-invocation input assembled by the orchestrator."""

    context: RepositoryContext
    settings: AnalysisSettings = field(default_factory=AnalysisSettings)
    findings: tuple[Finding, ...] = ()
    ai_files: tuple[str, ...] = ()
    sbom_available: bool = False
    dependencies: tuple[DependencyInfo, ...] = ()
    parsed_docs: ParsedDocs | None = None
    resume: ResumeState | None = None


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass
class UnitOutput:
    """Findings plus any side-channel state a unit exposes downstream.

    ``sbom_available`` is None when the unit has nothing to say about the
    dependency graph; only the dependency unit sets it.
    """

    findings: list[Finding] = field(default_factory=list)
    ai_files: list[str] = field(default_factory=list)
    sbom_available: bool | None = None
    dependencies: list[DependencyInfo] = field(default_factory=list)
    parsed_docs: ParsedDocs | None = None
    signals: dict[str, list[str]] = field(default_factory=dict)


@dataclass
class Complete:
    output: UnitOutput


@dataclass
class Paused:
    """Partial output plus the checkpoint needed to finish later."""

    output: UnitOutput
    checkpoint: ResumeState


UnitResult = Union[Complete, Paused]


def complete(findings: list[Finding] | None = None, **state: object) -> Complete:
    """Shorthand for ``Complete(UnitOutput(findings, **state))``."""
    return Complete(UnitOutput(findings=list(findings or []), **state))  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Unit base class
# ---------------------------------------------------------------------------


class DetectionUnit(ABC):
    """Abstract base class for pipeline detection units.

    Subclasses set ``name`` and optionally ``requires``, ``resumable``
    and ``is_parser``, and implement ``run``.
    """

    name: ClassVar[str] = ""
    requires: ClassVar[frozenset[Capability]] = frozenset()
    resumable: ClassVar[bool] = False
    is_parser: ClassVar[bool] = False

    @abstractmethod
    async def run(self, unit_input: UnitInput) -> UnitResult:
        """Inspect the repository and report findings.

        Args:
            unit_input: Context, settings and the declared pipeline state.

        Returns:
            ``Complete`` or, for resumable units only, ``Paused``.
        """

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def slugify(value: str) -> str:
    """Replace every non-alphanumeric character with ``-``."""
    return "".join(ch if ch.isalnum() else "-" for ch in value)


def line_number(content: str, offset: int) -> int:
    """1-based line number of character *offset* in *content*."""
    return content.count("\n", 0, offset) + 1


def first_line_containing(content: str, needle: str) -> tuple[int, str] | None:
    """Return ``(line_no, line)`` for the first line containing *needle*."""
    for index, line in enumerate(content.split("\n"), start=1):
        if needle in line:
            return index, line
    return None


class LabelCollector:
    """Labels and their evidence grouped by kind, in first-seen order."""

    def __init__(self) -> None:
        self._labels: dict[str, dict[str, None]] = {}
        self._evidence: dict[str, list[Evidence]] = {}

    def add(self, kind: str, label: str, evidence: Evidence) -> None:
        self._labels.setdefault(kind, {})[label] = None
        self._evidence.setdefault(kind, []).append(evidence)

    def labels(self, kind: str) -> tuple[str, ...]:
        return tuple(self._labels.get(kind, ()))

    def evidence(self, kind: str, limit: int = 5) -> tuple[Evidence, ...]:
        return tuple(self._evidence.get(kind, ())[:limit])

    def __contains__(self, kind: object) -> bool:
        return kind in self._labels


def pattern_evidence(
    context: RepositoryContext, path: str, content: str, match: re.Match[str]
) -> Evidence:
    """Evidence for a regex hit: matched text cut to 100 chars, with its line."""
    line = line_number(content, match.start())
    return Evidence(
        file=path, line=line, snippet=match.group(0)[:100], url=context.file_url(path, line)
    )
