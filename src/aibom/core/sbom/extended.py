"""Extended AIBOM: the CycloneDX document plus derived metadata sections.

The envelope wraps the standard CycloneDX dict for the same graph and adds
hardware, infrastructure, model governance, risk assessment, data
pipeline and analysis-notes sections, a summary with a documentation
completeness score, and the gap list.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any

from aibom import __version__
from aibom.core.findings.models import Category, Finding
from aibom.core.sbom.cyclonedx import cyclonedx_dict
from aibom.core.sbom.gaps import DocumentPresence, Gap
from aibom.core.sbom.graph import ComponentGraph
from aibom.detectors.catalogs import DATA_PIPELINE_LIBRARIES

FORMAT_NAME = "extended-aibom"
FORMAT_VERSION = "1.0.0"

# Each item is shown whether or not detection found anything.
UNDETECTABLE_COMPONENTS: tuple[dict[str, str], ...] = (
    {
        "component": "Training Data",
        "reason": "Training datasets are typically not stored in code repositories",
        "alternative": "May be referenced in documentation or configuration files",
    },
    {
        "component": "Model Weights",
        "reason": "Model weights are usually too large for git repositories",
        "alternative": "Check for model file references or download scripts",
    },
    {
        "component": "Runtime Performance",
        "reason": "Performance metrics require running the model",
        "alternative": "Look for performance benchmarks in documentation",
    },
    {
        "component": "Actual Training Infrastructure",
        "reason": "Training may happen on different infrastructure than deployment",
        "alternative": "Deployment infrastructure detected from configs",
    },
    {
        "component": "Model Bias/Fairness Metrics",
        "reason": "Bias metrics require evaluation on representative data",
        "alternative": "Documented bias considerations may be found in model cards",
    },
)

_COMPLETENESS_LEVELS: tuple[tuple[int, str], ...] = ((80, "excellent"), (60, "good"), (40, "fair"))

_CONSIDERATION_TYPES: dict[str, tuple[str, str]] = {
    # risk type -> (documentation_status key, consideration label)
    "limitations": ("limitations_documented", "limitations"),
    "bias-fairness": ("bias_fairness_documented", "bias_fairness"),
    "ethical": ("ethical_considerations_documented", "ethical"),
}


def _evidence_brief(finding: Finding) -> list[dict[str, Any]]:
    return [{"file": e.file, "snippet": e.snippet} for e in finding.evidence]


def _dedupe(values: list[str]) -> list[str]:
    return list(dict.fromkeys(values))


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------


def hardware_section(graph: ComponentGraph) -> dict[str, Any]:
    hardware = graph.hardware
    if not hardware.detected:
        return {"detected": False, "note": "No specialized hardware requirements detected"}
    details = []
    for finding in hardware.findings:
        info = finding.hardware_info
        if info is None:
            continue
        details.append({
            "type": info.type,
            "libraries": list(info.libraries),
            "description": finding.description,
            "evidence": _evidence_brief(finding),
        })
    return {"detected": True, "compute_types": list(hardware.types), "details": details}


def infrastructure_section(graph: ComponentGraph) -> dict[str, Any]:
    infra = graph.infrastructure
    if not infra.detected:
        return {"detected": False, "note": "No infrastructure or deployment configuration detected"}
    details = []
    for finding in infra.findings:
        info = finding.infra_info
        if info is None:
            continue
        details.append({
            "type": info.type,
            "platforms": list(info.platforms),
            "description": finding.description,
            "evidence": _evidence_brief(finding),
        })
    platforms = infra.platforms
    return {
        "detected": True,
        "deployment": {
            "containerization": list(platforms.get("containerization", ())),
            "orchestration": list(platforms.get("orchestration", ())),
            "cloud_platforms": list(platforms.get("cloud", ())),
            "mlops_tools": list(platforms.get("mlops", ())),
        },
        "details": details,
    }


def governance_section(graph: ComponentGraph, documents: DocumentPresence) -> dict[str, Any]:
    status = {
        "intended_use_documented": False,
        "limitations_documented": False,
        "ethical_considerations_documented": False,
        "bias_fairness_documented": False,
    }
    considerations = []
    for finding in graph.governance.findings:
        info = finding.risk_info
        if info is None:
            continue
        if info.type in _CONSIDERATION_TYPES:
            key, label = _CONSIDERATION_TYPES[info.type]
            status[key] = True
            considerations.append({
                "type": label, "count": info.count, "description": finding.description,
            })

    models = [
        {
            "provider": model.provider,
            "name": model.name if model.group is None else f"{model.group}/{model.name}",
            "type": model.model_type,
            "intended_use": model.description,
            "detection_source": ", ".join(model.detection_sources) or "code-analysis",
            "locations": [e.to_dict() for e in model.evidence],
        }
        for model in graph.models
    ]
    return {
        "models": models,
        "documentation_status": status,
        "transparency": {
            "model_cards_present": documents.model_card or graph.governance.has_model_card,
            "security_documentation": documents.security,
            "readme_present": documents.readme,
        },
        "detected_considerations": considerations,
    }


def risk_section(graph: ComponentGraph) -> dict[str, Any]:
    """Risk level from identified risks, offset by governance indicators.

    Each identified risk adds its weight (2 when unweighted); each
    governance indicator subtracts 1. ``<= 0`` is low, ``<= 3`` medium.
    """
    risks = [f for f in graph.findings if f.category is Category.RISK]
    identified = [
        {
            "title": f.title,
            "severity": f.severity.label,
            "description": f.description,
            "evidence_count": len(f.evidence),
        }
        for f in risks
    ]
    positives = [
        {"title": f.title, "description": f.description} for f in graph.governance.findings
    ]
    score = sum(f.weight or 2 for f in risks) - len(positives)
    if score <= 0:
        level = "low"
    elif score <= 3:
        level = "medium"
    else:
        level = "high"

    recommendations = []
    if not positives and graph.models:
        recommendations.append({
            "priority": "medium",
            "category": "governance",
            "recommendation": "Consider documenting model limitations, intended use, and ethical considerations",
            "details": "Models detected but no governance documentation found",
        })
    if identified and not positives:
        recommendations.append({
            "priority": "high",
            "category": "risk-management",
            "recommendation": "Address identified risks and improve documentation",
            "details": f"{len(identified)} risks identified without corresponding governance documentation",
        })
    return {
        "overall_risk_level": level,
        "risk_score": score,
        "identified_risks": identified,
        "positive_indicators": positives,
        "recommendations": recommendations,
    }


def data_pipeline_section(graph: ComponentGraph) -> dict[str, Any]:
    stages: dict[str, list[dict[str, Any]]] = {stage: [] for stage in DATA_PIPELINE_LIBRARIES}
    seen: dict[str, set[str]] = {stage: set() for stage in DATA_PIPELINE_LIBRARIES}
    for finding in graph.findings:
        if finding.category is not Category.DEPENDENCIES:
            continue
        info = finding.dependency_info
        library = info.name if info is not None else finding.title
        lower = library.lower()
        for stage, markers in DATA_PIPELINE_LIBRARIES.items():
            if any(marker in lower for marker in markers) and lower not in seen[stage]:
                seen[stage].add(lower)
                stages[stage].append({
                    "library": library,
                    "version": info.version if info is not None else None,
                })
    if not any(stages.values()):
        return {"detected": False, "note": "No data pipeline components detected"}
    return {
        "detected": True,
        "data_loading": stages["data_loading"],
        "preprocessing": stages["preprocessing"],
        "feature_engineering": [],
        "frameworks": stages["frameworks"],
    }


def analysis_notes_section(graph: ComponentGraph, documents: DocumentPresence) -> dict[str, Any]:
    missing = []
    if not documents.readme:
        missing.append({
            "file": "README.md",
            "purpose": "Project overview and usage instructions",
            "impact": "Difficult to understand project purpose and usage",
        })
    if not (documents.model_card or graph.governance.has_model_card):
        missing.append({
            "file": "MODEL_CARD.md",
            "purpose": "Model documentation including intended use, limitations, and performance",
            "impact": "Incomplete model governance and transparency",
        })
    if not documents.security:
        missing.append({
            "file": "SECURITY.md",
            "purpose": "Security policy and vulnerability reporting procedures",
            "impact": "No clear security disclosure process",
        })

    has_models = bool(graph.models)
    has_governance = bool(graph.governance.count)
    limitations = []
    if has_models and not has_governance:
        limitations.append({
            "area": "Model Governance",
            "limitation": "Models detected but no governance documentation found",
            "note": "Governance documentation may exist but not in standard file names",
        })
    if has_models and not graph.hardware.detected:
        limitations.append({
            "area": "Hardware Requirements",
            "limitation": "Models detected but no specific hardware requirements found",
            "note": "May use CPU-only inference or hardware not explicitly declared in dependencies",
        })

    improvements = []
    if missing:
        improvements.append({
            "priority": "high",
            "action": "Add missing documentation files",
            "files": [m["file"] for m in missing],
            "benefit": "Improves transparency and enables more complete AIBOM generation",
        })
    if has_models and not has_governance:
        improvements.append({
            "priority": "high",
            "action": "Create model documentation",
            "files": ["MODEL_CARD.md"],
            "benefit": "Documents intended use, limitations, ethical considerations, and bias mitigation",
        })
    if has_models and not documents.security:
        improvements.append({
            "priority": "medium",
            "action": "Establish security policy",
            "files": ["SECURITY.md"],
            "benefit": "Provides clear process for reporting AI-related security issues",
        })
    return {
        "missing_documentation": missing,
        "undetectable_components": [dict(item) for item in UNDETECTABLE_COMPONENTS],
        "detection_limitations": limitations,
        "suggested_improvements": improvements,
    }


def documentation_completeness(governance: dict[str, Any]) -> dict[str, Any]:
    """Share of five documentation checks passed, banded into a level."""
    transparency = governance["transparency"]
    status = governance["documentation_status"]
    checks = [
        transparency["readme_present"],
        transparency["model_cards_present"],
        transparency["security_documentation"],
        status["limitations_documented"],
        status["ethical_considerations_documented"],
    ]
    passed = sum(1 for check in checks if check)
    percentage = round(passed / len(checks) * 100)
    level = next((name for threshold, name in _COMPLETENESS_LEVELS if percentage >= threshold), "poor")
    return {"score": percentage, "level": level, "checks_passed": passed, "total_checks": len(checks)}


def summary_section(graph: ComponentGraph, metadata: dict[str, Any]) -> dict[str, Any]:
    findings = graph.findings

    def count(category: Category) -> int:
        return sum(1 for f in findings if f.category is category)

    return {
        "total_findings": len(findings),
        "categories": {
            "dependencies": count(Category.DEPENDENCIES),
            "models": len(graph.models),
            "hardware": count(Category.HARDWARE),
            "infrastructure": count(Category.INFRASTRUCTURE),
            "governance": count(Category.GOVERNANCE),
            "risks": count(Category.RISK),
        },
        "hardware_detected": metadata["hardware"]["detected"],
        "infrastructure_detected": metadata["infrastructure"]["detected"],
        "data_pipeline_detected": metadata["data_pipeline"]["detected"],
        "risk_level": metadata["risk_assessment"]["overall_risk_level"],
        "documentation_completeness": documentation_completeness(metadata["model_governance"]),
    }


# ---------------------------------------------------------------------------
# Envelope
# ---------------------------------------------------------------------------


def extended_dict(
    graph: ComponentGraph,
    timestamp: datetime,
    documents: DocumentPresence,
    gaps: list[Gap],
) -> dict[str, Any]:
    """The extended AIBOM envelope for *graph*.

    Args:
        graph: Component graph to render.
        timestamp: Analysis time.
        documents: Standard documents present in the repository.
        gaps: The gap list computed for the same selection.
    """
    root = graph.root
    metadata = {
        "hardware": hardware_section(graph),
        "infrastructure": infrastructure_section(graph),
        "model_governance": governance_section(graph, documents),
        "risk_assessment": risk_section(graph),
        "data_pipeline": data_pipeline_section(graph),
        "analysis_notes": analysis_notes_section(graph, documents),
    }
    return {
        "format": FORMAT_NAME,
        "version": FORMAT_VERSION,
        "generatedAt": timestamp.isoformat(),
        "generator": {"tool": "aibom", "version": __version__},
        "repository": {
            "owner": root.owner,
            "name": root.name,
            "fullName": root.full_name,
            "url": root.html_url,
            "description": root.description,
            "topics": list(root.topics),
            "languages": list(root.languages),
        },
        "standard_bom": cyclonedx_dict(graph, timestamp),
        "extended_metadata": metadata,
        "scanned_not_found": [gap.to_dict() for gap in gaps],
        "summary": summary_section(graph, metadata),
    }


def to_extended_json(
    graph: ComponentGraph,
    timestamp: datetime,
    documents: DocumentPresence,
    gaps: list[Gap],
    indent: int = 2,
) -> str:
    return json.dumps(extended_dict(graph, timestamp, documents, gaps), indent=indent)
