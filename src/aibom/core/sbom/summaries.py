"""Repository-level summaries derived from hardware, infrastructure and governance Findings.

Computed once per synthesis and shared by every serializer: the CycloneDX
documents carry them as root properties, the extended document expands
them into full sections.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from aibom.core.findings.models import Category, Finding

INFRA_TYPES: tuple[str, ...] = ("containerization", "orchestration", "cloud", "mlops")


def _unique(values: list[str]) -> list[str]:
    return list(dict.fromkeys(values))


@dataclass(frozen=True)
class HardwareSummary:
    findings: tuple[Finding, ...] = ()
    types: tuple[str, ...] = ()
    libraries: tuple[str, ...] = ()

    @property
    def detected(self) -> bool:
        return bool(self.findings)


@dataclass(frozen=True)
class InfraSummary:
    findings: tuple[Finding, ...] = ()
    platforms: dict[str, tuple[str, ...]] = field(default_factory=dict)

    @property
    def detected(self) -> bool:
        return bool(self.findings)

    @property
    def all_platforms(self) -> list[str]:
        return [p for kind in INFRA_TYPES for p in self.platforms.get(kind, ())]


@dataclass(frozen=True)
class GovernanceSummary:
    findings: tuple[Finding, ...] = ()
    has_limitations: bool = False
    has_bias_fairness: bool = False
    has_ethical: bool = False
    has_model_card: bool = False

    @property
    def count(self) -> int:
        return len(self.findings)


def summarize_hardware(findings: list[Finding]) -> HardwareSummary:
    selected = [f for f in findings if f.category is Category.HARDWARE]
    infos = [f.hardware_info for f in selected if f.hardware_info is not None]
    return HardwareSummary(
        findings=tuple(selected),
        types=tuple(_unique([i.type for i in infos])),
        libraries=tuple(_unique([lib for i in infos for lib in i.libraries])),
    )


def summarize_infrastructure(findings: list[Finding]) -> InfraSummary:
    selected = [f for f in findings if f.category is Category.INFRASTRUCTURE]
    platforms: dict[str, list[str]] = {kind: [] for kind in INFRA_TYPES}
    for finding in selected:
        info = finding.infra_info
        if info is not None and info.type in platforms:
            platforms[info.type].extend(info.platforms)
    return InfraSummary(
        findings=tuple(selected),
        platforms={kind: tuple(_unique(values)) for kind, values in platforms.items()},
    )


def summarize_governance(findings: list[Finding]) -> GovernanceSummary:
    selected = [f for f in findings if f.category is Category.GOVERNANCE]
    types = {f.risk_info.type for f in selected if f.risk_info is not None}
    return GovernanceSummary(
        findings=tuple(selected),
        has_limitations="limitations" in types,
        has_bias_fairness="bias-fairness" in types,
        has_ethical="ethical" in types,
        has_model_card="model-card" in types,
    )
