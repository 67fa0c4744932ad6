"""Finding model: the universal evidence unit and its scoring."""

from aibom.core.findings.models import (
    Category,
    CodeUsage,
    DependencyInfo,
    Evidence,
    Finding,
    HardwareInfo,
    HuggingFaceInfo,
    InfraInfo,
    ModelInfo,
    RelatedModel,
    RiskInfo,
    Severity,
)
from aibom.core.findings.scoring import Confidence, confidence_for, total_score

__all__ = [
    "Category",
    "CodeUsage",
    "Confidence",
    "DependencyInfo",
    "Evidence",
    "Finding",
    "HardwareInfo",
    "HuggingFaceInfo",
    "InfraInfo",
    "ModelInfo",
    "RelatedModel",
    "RiskInfo",
    "Severity",
    "confidence_for",
    "total_score",
]
