"""Aggregate confidence scoring over a set of Findings.

The score is the plain sum of Finding weights. Governance and risk
Findings are constructed with weight 0, so documenting (or failing to
document) limitations can never move the score.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from aibom.core.findings.models import Finding


@dataclass(frozen=True)
class Confidence:
    """Confidence band derived from a score."""

    level: str
    label: str
    description: str

    def to_dict(self) -> dict[str, str]:
        return {"level": self.level, "label": self.label, "description": self.description}


# Highest threshold first.
_BANDS: tuple[tuple[int, Confidence], ...] = (
    (10, Confidence("very-high", "Very High Confidence", "Strong evidence detected")),
    (5, Confidence("high", "High Confidence", "Likely LLM usage")),
    (1, Confidence("low", "Low Confidence", "Weak signals detected")),
)

NO_DETECTION = Confidence("none", "No Detection", "No LLM usage detected")


def total_score(findings: Iterable[Finding]) -> int:
    """Sum of weights across *findings*."""
    return sum(f.weight for f in findings)


def confidence_for(score: int) -> Confidence:
    """Map a score onto its confidence band."""
    for threshold, confidence in _BANDS:
        if score >= threshold:
            return confidence
    return NO_DETECTION
