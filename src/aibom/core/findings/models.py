"""Data models for detection output: Category, Severity, Evidence, Finding.

A ``Finding`` is the universal evidence unit produced by every detection
unit. Its optional payload is a discriminated union keyed by ``category``:
the allowed payload type for each category is fixed in
``PAYLOAD_BY_CATEGORY`` and checked when the Finding is constructed, so a
model payload can never ride on a dependency Finding and vice versa.

The types here are deliberately free of any detection or serialization
logic so that the pipeline, the reconciler, the BOM engine and the CLI
can all import them without pulling in pattern catalogs or HTTP code.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Union

from aibom.exceptions import PayloadMismatchError


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class Category(str, Enum):
    """Closed set of finding categories."""

    DEPENDENCIES = "dependencies"
    CODE = "code"
    METADATA = "metadata"
    CONFIG = "config"
    CI = "ci"
    MODELS = "models"
    PROMPTS = "prompts"
    HARDWARE = "hardware"
    INFRASTRUCTURE = "infrastructure"
    GOVERNANCE = "governance"
    RISK = "risk"


class Severity(IntEnum):
    """Four-level severity scale: INFO < LOW < MEDIUM < HIGH."""

    INFO = 0
    LOW = 1
    MEDIUM = 2
    HIGH = 3

    @property
    def label(self) -> str:
        """Lowercase name as written into BOM documents."""
        return self.name.lower()


# ---------------------------------------------------------------------------
# Evidence
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Evidence:
    """One piece of proof for a Finding.

    Attributes:
        file: Repository-relative path, or a pseudo-source such as
            ``"GitHub Dependency Graph (SBOM)"``.
        line: 1-based line number when known.
        snippet: Matching text, already truncated by the producer.
        url: Deep link to the file (and line) on the repository host.
    """

    file: str
    line: int | None = None
    snippet: str | None = None
    url: str | None = None

    @property
    def location(self) -> str:
        """``file:line`` when the line is known, else just ``file``."""
        if self.line:
            return f"{self.file}:{self.line}"
        return self.file

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"file": self.file}
        if self.line is not None:
            data["line"] = self.line
        if self.snippet is not None:
            data["snippet"] = self.snippet
        if self.url is not None:
            data["url"] = self.url
        return data


# ---------------------------------------------------------------------------
# Payload variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DependencyInfo:
    """A package declared in a manifest or returned by the dependency graph."""

    name: str
    version: str = "unknown"
    ecosystem: str = "unknown"
    source: str = "manual-parsing"
    manifest_file: str | None = None
    spdx_id: str | None = None
    license: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "version": self.version,
            "ecosystem": self.ecosystem,
            "source": self.source,
        }
        if self.manifest_file:
            data["manifestFile"] = self.manifest_file
        if self.spdx_id:
            data["spdxId"] = self.spdx_id
        if self.license:
            data["license"] = self.license
        return data


@dataclass(frozen=True)
class HuggingFaceInfo:
    """Model-registry metadata, or an unverified marker when lookup failed.

    Attributes:
        model_id: ``org/model`` identifier that was looked up.
        verified: True only when the registry answered successfully.
        status: HTTP status (or ``"network-error"``) for unverified lookups.
    """

    model_id: str
    verified: bool = False
    status: str | None = None
    author: str | None = None
    downloads: int = 0
    likes: int = 0
    tags: tuple[str, ...] = ()
    pipeline_tag: str | None = None
    library_name: str | None = None
    license: str | None = None
    model_size: int | None = None

    def to_dict(self) -> dict[str, Any]:
        if not self.verified:
            return {"verified": False, "id": self.model_id, "status": self.status}
        return {
            "verified": True,
            "id": self.model_id,
            "author": self.author,
            "downloads": self.downloads,
            "likes": self.likes,
            "tags": list(self.tags),
            "pipeline_tag": self.pipeline_tag,
            "library_name": self.library_name,
            "license": self.license,
            "modelSize": self.model_size,
        }


@dataclass(frozen=True)
class RelatedModel:
    """Cross-link to the same model surfaced under another provider or path."""

    provider: str
    model_name: str

    def to_dict(self) -> dict[str, str]:
        return {"provider": self.provider, "modelName": self.model_name}


@dataclass(frozen=True)
class ModelInfo:
    """Payload for model and configuration findings."""

    provider: str
    model_name: str
    model_type: str = "unknown"
    locations: tuple[Evidence, ...] = ()
    huggingface: HuggingFaceInfo | None = None
    related_models: tuple[RelatedModel, ...] = ()
    detection_source: str = ""

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "provider": self.provider,
            "modelName": self.model_name,
            "modelType": self.model_type,
            "locations": [loc.to_dict() for loc in self.locations],
        }
        if self.huggingface is not None:
            data["huggingface"] = self.huggingface.to_dict()
        if self.related_models:
            data["relatedModels"] = [r.to_dict() for r in self.related_models]
        if self.detection_source:
            data["detectionSource"] = self.detection_source
        return data


@dataclass(frozen=True)
class HardwareInfo:
    """Compute class (``GPU``, ``TPU``, ``specialized``) and the libraries implying it."""

    type: str
    libraries: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "libraries": list(self.libraries)}


@dataclass(frozen=True)
class InfraInfo:
    """Deployment layer (containerization, orchestration, cloud, mlops) and platforms."""

    type: str
    platforms: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "platforms": list(self.platforms)}


@dataclass(frozen=True)
class RiskInfo:
    """Governance observation type and how many places document it."""

    type: str
    count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "count": self.count}


@dataclass(frozen=True)
class CodeUsage:
    """Code evidence folded into a dependency Finding by the reconciler."""

    files: tuple[str, ...] = ()
    locations: tuple[Evidence, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "files": list(self.files),
            "locations": [loc.to_dict() for loc in self.locations],
        }


Payload = Union[DependencyInfo, ModelInfo, HardwareInfo, InfraInfo, RiskInfo]

PAYLOAD_BY_CATEGORY: dict[Category, type] = {
    Category.DEPENDENCIES: DependencyInfo,
    Category.MODELS: ModelInfo,
    Category.CONFIG: ModelInfo,
    Category.HARDWARE: HardwareInfo,
    Category.INFRASTRUCTURE: InfraInfo,
    Category.GOVERNANCE: RiskInfo,
    Category.RISK: RiskInfo,
}

TANGIBLE_CATEGORIES: frozenset[Category] = frozenset({
    Category.DEPENDENCIES,
    Category.CODE,
    Category.MODELS,
    Category.HARDWARE,
    Category.INFRASTRUCTURE,
})

UNSCORED_CATEGORIES: frozenset[Category] = frozenset({
    Category.GOVERNANCE,
    Category.RISK,
})


# ---------------------------------------------------------------------------
# Finding
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Finding:
    """A single piece of detected AI/LLM evidence.

    Findings are immutable; the reconciler builds merged Findings with
    ``dataclasses.replace`` rather than editing them in place.

    Attributes:
        id: Stable identifier, unique within one pipeline run.
        category: Which kind of evidence this is.
        severity: How strong a signal it is.
        weight: Contribution to the aggregate confidence score.
        title: Short headline, also used by the reconciler for matching.
        description: Human-readable summary.
        evidence: Ordered proof, at most a handful of entries.
        payload: Category-specific structured data, or None.
        code_usage: Code evidence merged in by the reconciler.

    Raises:
        PayloadMismatchError: If the payload type does not fit the
            category, weight is negative, a governance/risk Finding has
            nonzero weight, or a tangible Finding has no evidence.
    """

    id: str
    category: Category
    severity: Severity
    weight: int
    title: str
    description: str = ""
    evidence: tuple[Evidence, ...] = field(default_factory=tuple)
    payload: Payload | None = None
    code_usage: CodeUsage | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.evidence, tuple):
            object.__setattr__(self, "evidence", tuple(self.evidence))
        if self.weight < 0:
            raise PayloadMismatchError(f"{self.id}: weight must be non-negative")
        if self.category in UNSCORED_CATEGORIES and self.weight != 0:
            raise PayloadMismatchError(
                f"{self.id}: {self.category.value} findings must carry weight 0"
            )
        if self.payload is not None:
            expected = PAYLOAD_BY_CATEGORY.get(self.category)
            if expected is None or not isinstance(self.payload, expected):
                raise PayloadMismatchError(
                    f"{self.id}: {type(self.payload).__name__} payload "
                    f"is not valid for category {self.category.value}"
                )
        if self.category in TANGIBLE_CATEGORIES and not self.evidence:
            raise PayloadMismatchError(
                f"{self.id}: {self.category.value} findings require evidence"
            )

    # -- Payload accessors -------------------------------------------------

    @property
    def dependency_info(self) -> DependencyInfo | None:
        return self.payload if isinstance(self.payload, DependencyInfo) else None

    @property
    def model_info(self) -> ModelInfo | None:
        return self.payload if isinstance(self.payload, ModelInfo) else None

    @property
    def hardware_info(self) -> HardwareInfo | None:
        return self.payload if isinstance(self.payload, HardwareInfo) else None

    @property
    def infra_info(self) -> InfraInfo | None:
        return self.payload if isinstance(self.payload, InfraInfo) else None

    @property
    def risk_info(self) -> RiskInfo | None:
        return self.payload if isinstance(self.payload, RiskInfo) else None

    # -- Serialization -----------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready dict using camelCase payload keys."""
        data: dict[str, Any] = {
            "id": self.id,
            "category": self.category.value,
            "severity": self.severity.label,
            "weight": self.weight,
            "title": self.title,
            "description": self.description,
            "evidence": [e.to_dict() for e in self.evidence],
        }
        if isinstance(self.payload, DependencyInfo):
            data["dependencyInfo"] = self.payload.to_dict()
        elif isinstance(self.payload, ModelInfo):
            data["modelInfo"] = self.payload.to_dict()
        elif isinstance(self.payload, HardwareInfo):
            data["hardwareInfo"] = self.payload.to_dict()
        elif isinstance(self.payload, InfraInfo):
            data["infraInfo"] = self.payload.to_dict()
        elif isinstance(self.payload, RiskInfo):
            data["riskInfo"] = self.payload.to_dict()
        if self.code_usage is not None:
            data["codeUsage"] = self.code_usage.to_dict()
        return data
