"""Risk assessment unit.

Reports governance documentation that IS present (limitations, bias,
ethics, model-card metadata) as weight-0 governance Findings. Missing
documents and risk keywords are recorded as signals and logged; an
absent document is never a Finding.
"""

from __future__ import annotations

import logging

from aibom.core.findings.models import Category, Evidence, Finding, RiskInfo, Severity
from aibom.detectors.base import Capability, DetectionUnit, UnitInput, UnitResult, complete
from aibom.detectors.catalogs import RISK_KEYWORDS
from aibom.detectors.documentation import DocExtract, DocumentationParser, ParsedDocs

logger = logging.getLogger(__name__)

MAX_EVIDENCE = 3

# (id, title, risk type, description template, ParsedDocs attribute)
_DOCUMENTED: tuple[tuple[str, str, str, str, str], ...] = (
    ("risk-limitations-documented", "Limitations Documented", "limitations",
     "Model limitations are documented in {n} location(s)", "limitations"),
    ("risk-bias-documented", "Bias/Fairness Documented", "bias-fairness",
     "Bias and fairness considerations documented in {n} location(s)", "bias_information"),
    ("risk-ethics-documented", "Ethical Considerations Documented", "ethical",
     "Ethical considerations documented in {n} location(s)", "ethical_considerations"),
)


def missing_documents(docs: ParsedDocs) -> list[str]:
    missing = []
    if not docs.has_file("readme"):
        missing.append("No README.md found")
    if not docs.has_file("model"):
        missing.append("No MODEL_CARD.md found")
    if not docs.has_file("security"):
        missing.append("No SECURITY.md found")
    return missing


def risk_keyword_hits(docs: ParsedDocs) -> dict[str, list[str]]:
    """Risk keywords mentioned anywhere in the documentation extracts."""
    text = docs.all_text().lower()
    return {
        risk_type: [kw for kw in keywords if kw in text]
        for risk_type, keywords in RISK_KEYWORDS.items()
    }


def _extract_evidence(extracts: list[DocExtract]) -> tuple[Evidence, ...]:
    return tuple(Evidence(file=e.file, snippet=e.text[:200]) for e in extracts[:MAX_EVIDENCE])


def model_card_finding(docs: ParsedDocs) -> Finding | None:
    if not docs.model_card or docs.model_card_file is None:
        return None
    card = docs.model_card
    keys = ", ".join(str(k) for k in list(card)[:8])
    parts = [f"Fields: {keys}"]
    if docs.performance_metrics:
        parts.append(f"{len(docs.performance_metrics)} performance metric(s)")
    return Finding(
        id="risk-model-card-documented",
        category=Category.GOVERNANCE,
        severity=Severity.INFO,
        weight=0,
        title="Model Card Metadata Documented",
        description=f"Model card metadata with {len(card)} field(s) in {docs.model_card_file}",
        evidence=(Evidence(file=docs.model_card_file, line=1, snippet="; ".join(parts)[:200]),),
        payload=RiskInfo(type="model-card", count=len(card)),
    )


class RiskUnit(DetectionUnit):
    name = "Risk Assessment"
    requires = frozenset({Capability.FINDINGS, Capability.PARSED_DOCS})

    async def run(self, unit_input: UnitInput) -> UnitResult:
        docs = unit_input.parsed_docs
        if docs is None:
            logger.debug("No parsed documentation supplied; parsing now")
            parsed = await DocumentationParser().run(unit_input)
            docs = parsed.output.parsed_docs or ParsedDocs()

        missing = missing_documents(docs)
        if missing:
            logger.info("Missing documentation (not a finding): %s", ", ".join(missing))

        keywords = risk_keyword_hits(docs)
        deprecated = [
            f.dependency_info.name
            for f in unit_input.findings
            if f.dependency_info is not None
            and ("deprecated" in f.dependency_info.name or "legacy" in f.dependency_info.name)
        ]

        findings = []
        for finding_id, title, risk_type, template, attr in _DOCUMENTED:
            extracts: list[DocExtract] = getattr(docs, attr)
            if not extracts:
                continue
            logger.info("%s: %d location(s)", title, len(extracts))
            findings.append(Finding(
                id=finding_id,
                category=Category.GOVERNANCE,
                severity=Severity.INFO,
                weight=0,
                title=title,
                description=template.format(n=len(extracts)),
                evidence=_extract_evidence(extracts),
                payload=RiskInfo(type=risk_type, count=len(extracts)),
            ))
        card = model_card_finding(docs)
        if card is not None:
            findings.append(card)

        signals = {"missing_documents": missing, "deprecated_packages": deprecated}
        signals.update({f"risk_keywords_{k}": v for k, v in keywords.items()})
        return complete(findings, signals=signals)
