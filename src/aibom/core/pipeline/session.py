"""Per-run state: the ``AnalysisSession`` and the final ``AnalysisResult``.

One session exists per analysis run. It is created by the orchestrator,
extended by appending as units complete, and never shared between runs.
The result is an immutable snapshot taken once the pipeline finishes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from aibom.config import AnalysisSettings
from aibom.context.base import RepositoryContext, RepositoryInfo
from aibom.core.findings.models import DependencyInfo, Finding
from aibom.core.findings.scoring import Confidence
from aibom.detectors.base import Capability, DetectionUnit, ResumeState, UnitInput, UnitOutput
from aibom.detectors.documentation import ParsedDocs


@dataclass
class AnalysisSession:
    """Accumulated pipeline state for one run.

    Attributes:
        context: Repository the run inspects.
        settings: Tunables for this run.
        findings: Findings so far, unique by id, in arrival order.
        ai_files: Files confirmed to contain AI usage.
        sbom_available: Whether the dependency graph was retrieved.
        dependencies: Packages resolved by the dependency unit.
        parsed_docs: Documentation extracts from the parser unit.
        paused: The one paused unit and its checkpoint, if any.
        paused_finding_ids: Ids the paused unit reported before pausing.
        partial_units: Units that finished without completing their work.
        signals: Informational observations keyed by name.
    """

    context: RepositoryContext
    settings: AnalysisSettings = field(default_factory=AnalysisSettings)
    findings: list[Finding] = field(default_factory=list)
    ai_files: list[str] = field(default_factory=list)
    sbom_available: bool = False
    dependencies: list[DependencyInfo] = field(default_factory=list)
    parsed_docs: ParsedDocs | None = None
    paused: tuple[DetectionUnit, ResumeState] | None = None
    paused_finding_ids: set[str] = field(default_factory=set)
    partial_units: list[str] = field(default_factory=list)
    signals: dict[str, list[str]] = field(default_factory=dict)

    def input_for(self, unit: DetectionUnit, resume: ResumeState | None = None) -> UnitInput:
        """Build the unit's input from the capabilities it declares."""
        requires = unit.requires
        deps = Capability.DEPENDENCIES in requires
        return UnitInput(
            context=self.context,
            settings=self.settings,
            findings=tuple(self.findings) if Capability.FINDINGS in requires else (),
            ai_files=tuple(self.ai_files) if Capability.AI_FILES in requires else (),
            sbom_available=self.sbom_available if deps else False,
            dependencies=tuple(self.dependencies) if deps else (),
            parsed_docs=self.parsed_docs if Capability.PARSED_DOCS in requires else None,
            resume=resume,
        )

    def add_findings(self, findings: list[Finding]) -> list[Finding]:
        """Append findings whose id is new; return the ones added."""
        seen = {f.id for f in self.findings}
        added = []
        for finding in findings:
            if finding.id in seen:
                continue
            seen.add(finding.id)
            added.append(finding)
        self.findings.extend(added)
        return added

    def discard_findings(self, ids: set[str]) -> None:
        self.findings = [f for f in self.findings if f.id not in ids]

    def absorb(self, output: UnitOutput) -> list[Finding]:
        """Fold one unit's output into the session; return new findings."""
        added = self.add_findings(output.findings)
        if output.ai_files:
            self.ai_files = list(dict.fromkeys(self.ai_files + output.ai_files))
        if output.sbom_available is not None:
            self.sbom_available = output.sbom_available
            self.dependencies = list(output.dependencies)
        if output.parsed_docs is not None:
            self.parsed_docs = output.parsed_docs
        for key, values in output.signals.items():
            self.signals[key] = list(values)
        return added


@dataclass(frozen=True)
class AnalysisResult:
    """Outcome of one analysis run.

    ``findings`` are the reconciled Findings shown to users and fed to BOM
    synthesis; ``raw_findings`` are the unit outputs before merging.
    """

    repository: RepositoryInfo
    findings: tuple[Finding, ...]
    raw_findings: tuple[Finding, ...]
    score: int
    confidence: Confidence
    analyzed_at: datetime
    total_files: int = 0
    file_paths: tuple[str, ...] = ()
    sbom_available: bool = False
    partial_units: tuple[str, ...] = ()
    signals: dict[str, list[str]] = field(default_factory=dict)
    parsed_docs: ParsedDocs | None = None
    duration_seconds: float = 0.0

    @property
    def is_partial(self) -> bool:
        return bool(self.partial_units)

    def finding(self, finding_id: str) -> Finding | None:
        return next((f for f in self.findings if f.id == finding_id), None)

    def select(self, exclude: set[str] | frozenset[str] = frozenset()) -> list[Finding]:
        """Findings left after dropping the caller-excluded ids."""
        return [f for f in self.findings if f.id not in exclude]

    def to_dict(self) -> dict[str, Any]:
        repo = self.repository
        return {
            "repository": {
                "owner": repo.owner,
                "repo": repo.repo,
                "fullName": repo.full_name,
                "htmlUrl": repo.html_url,
                "description": repo.description,
                "topics": list(repo.topics),
                "languages": list(repo.languages),
            },
            "score": self.score,
            "confidence": self.confidence.to_dict(),
            "analyzedAt": self.analyzed_at.isoformat(),
            "totalFiles": self.total_files,
            "sbomAvailable": self.sbom_available,
            "partialUnits": list(self.partial_units),
            "findings": [f.to_dict() for f in self.findings],
        }
