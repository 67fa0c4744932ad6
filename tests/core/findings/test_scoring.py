"""Tests for aggregate scoring and confidence bands."""

from __future__ import annotations

import pytest

from aibom.core.findings.models import Category, RiskInfo, Severity
from aibom.core.findings.scoring import NO_DETECTION, confidence_for, total_score

from tests.conftest import make_dependency_finding, make_finding


class TestTotalScore:
    """Score is the plain sum of weights."""

    def test_empty(self) -> None:
        assert total_score([]) == 0

    def test_sum_of_weights(self) -> None:
        findings = [
            make_dependency_finding("openai"),
            make_finding(id="config-x", category=Category.CONFIG, weight=4),
        ]
        assert total_score(findings) == 9

    def test_governance_never_moves_score(self) -> None:
        base = [make_dependency_finding("openai")]
        governance = make_finding(
            id="risk-ethics-documented", category=Category.GOVERNANCE,
            severity=Severity.INFO, weight=0, payload=RiskInfo(type="ethical", count=1),
        )
        assert total_score(base + [governance]) == total_score(base)


class TestConfidenceBands:
    """Band thresholds: 10, 5, 1."""

    @pytest.mark.parametrize(
        "score,level",
        [
            (0, "none"),
            (1, "low"),
            (4, "low"),
            (5, "high"),
            (9, "high"),
            (10, "very-high"),
            (42, "very-high"),
        ],
    )
    def test_band_for_score(self, score: int, level: str) -> None:
        assert confidence_for(score).level == level

    def test_no_detection_label(self) -> None:
        assert confidence_for(0) is NO_DETECTION
        assert NO_DETECTION.label == "No Detection"

    def test_very_high_label(self) -> None:
        confidence = confidence_for(15)
        assert confidence.label == "Very High Confidence"
        assert confidence.to_dict()["description"] == "Strong evidence detected"
