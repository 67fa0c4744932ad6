"""The "scanned for but not found" gap list.

Each gap names something the detectors looked for and did not find in
this repository, what was scanned, and what having it would add. The list
is computed once per synthesis; the CLI prints it and the extended AIBOM
embeds it.
"""

from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass
from typing import Any, Iterable

from aibom.core.findings.models import Category, Finding

_DATA_PIPELINE_DEPENDENCY = re.compile(r"datasets|pandas|numpy|sklearn|spacy|nltk")
_MODEL_CARD_NAMES: frozenset[str] = frozenset({"model_card.md", "modelcard.md", "model-card.md"})


@dataclass(frozen=True)
class DocumentPresence:
    """Which standard documents exist in the repository."""

    readme: bool = False
    model_card: bool = False
    security: bool = False

    @classmethod
    def scan(cls, findings: Iterable[Finding], paths: Iterable[str] = ()) -> DocumentPresence:
        """Look at the file tree and at every file Finding evidence cites."""
        names = {posixpath.basename(p).lower() for p in paths if p}
        names.update(
            posixpath.basename(e.file).lower() for f in findings for e in f.evidence if e.file
        )
        return cls(
            readme=any(n.startswith("readme") for n in names),
            model_card=any(n in _MODEL_CARD_NAMES for n in names),
            security=any(n.startswith("security") for n in names),
        )


@dataclass(frozen=True)
class Gap:
    category: str
    item: str
    searched: str
    benefit: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category,
            "item": self.item,
            "searched": self.searched,
            "benefit": self.benefit,
        }


def has_data_pipeline(findings: Iterable[Finding]) -> bool:
    return any(
        f.dependency_info is not None
        and _DATA_PIPELINE_DEPENDENCY.search(f.dependency_info.name.lower())
        for f in findings
    )


def find_gaps(findings: list[Finding], documents: DocumentPresence) -> list[Gap]:
    """Gaps for one Finding selection.

    Args:
        findings: The selected Findings.
        documents: Standard documents present in the repository.

    Returns:
        Gaps in a fixed order: documentation, hardware, infrastructure,
        governance, data pipeline. Empty when nothing is missing.
    """
    categories = {f.category for f in findings}
    has_models = any(f.model_info is not None for f in findings)
    has_dependencies = Category.DEPENDENCIES in categories

    gaps: list[Gap] = []
    if not documents.readme:
        gaps.append(Gap(
            "Documentation", "README.md",
            "Scanned repository root and subdirectories",
            "Would provide project overview, usage instructions, and model documentation",
        ))
    if has_models and not documents.model_card:
        gaps.append(Gap(
            "Documentation", "MODEL_CARD.md",
            "Scanned for model card files in repository",
            "Would document model intended use, limitations, performance, and ethical considerations",
        ))
    if not documents.security:
        gaps.append(Gap(
            "Documentation", "SECURITY.md or security.txt (RFC 9116)",
            "Scanned repository root and .well-known/ directory for security policy",
            "Would provide vulnerability reporting procedures and security contacts (RFC 9116 standard)",
        ))
    if Category.HARDWARE not in categories and has_dependencies:
        gaps.append(Gap(
            "Hardware", "GPU/TPU/Specialized Compute",
            "Scanned dependencies and code for CUDA, TensorRT, TPU patterns",
            "Would document compute requirements and infrastructure needs",
        ))
    if Category.INFRASTRUCTURE not in categories and (has_models or has_dependencies):
        gaps.append(Gap(
            "Infrastructure", "Deployment Configuration",
            "Scanned for Dockerfile, docker-compose.yml, Kubernetes configs, cloud platform usage",
            "Would document deployment environment and operational requirements",
        ))
    if has_models and Category.GOVERNANCE not in categories:
        gaps.append(Gap(
            "Governance", "Model Governance Documentation",
            "Scanned for limitations, ethical considerations, bias/fairness documentation",
            "Would document responsible AI practices and model constraints",
        ))
    if has_models and not has_data_pipeline(findings):
        gaps.append(Gap(
            "Data Pipeline", "Data Processing Libraries",
            "Scanned dependencies for data loading, preprocessing, feature engineering tools",
            "Would document data transformation and feature engineering process",
        ))
    return gaps
