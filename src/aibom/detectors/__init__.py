"""Detection units, their pattern catalogs and the ordered unit registry."""

from aibom.detectors.base import (
    Capability,
    Complete,
    DetectionUnit,
    Paused,
    ResumeState,
    SearchQuery,
    UnitInput,
    UnitOutput,
    UnitResult,
)
from aibom.detectors.documentation import ParsedDocs
from aibom.detectors.registry import DetectorRegistry, default_pipeline

__all__ = [
    "Capability",
    "Complete",
    "DetectionUnit",
    "DetectorRegistry",
    "ParsedDocs",
    "Paused",
    "ResumeState",
    "SearchQuery",
    "UnitInput",
    "UnitOutput",
    "UnitResult",
    "default_pipeline",
]
