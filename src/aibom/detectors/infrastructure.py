"""Infrastructure unit: ML-specific containers, GPU scheduling, cloud ML and MLOps.

Plain Docker and generic Kubernetes objects are deployment plumbing, not
AI components; they are logged and otherwise ignored.
"""

from __future__ import annotations

import logging

from aibom.core.findings.models import Category, Evidence, Finding, InfraInfo, Severity
from aibom.detectors.base import (
    Capability,
    DetectionUnit,
    LabelCollector,
    UnitInput,
    UnitResult,
    complete,
    pattern_evidence,
)
from aibom.detectors.catalogs import (
    CLOUD_PATTERNS,
    CLOUD_SCAN_PATTERN,
    CONTAINER_FILES,
    CONTAINER_PATTERNS,
    MLOPS_DEPENDENCIES,
    MLOPS_PATTERNS,
    ORCHESTRATION_PATH_MARKERS,
    ORCHESTRATION_PATTERNS,
)
from aibom.detectors.hardware import dependency_name

logger = logging.getLogger(__name__)

INFRA_SCAN_LIMIT = 100

# kind -> (title, severity, weight, description prefix)
_KINDS: dict[str, tuple[str, Severity, int, str]] = {
    "containerization": ("Containerization Detected", Severity.MEDIUM, 3, "Containerization platforms"),
    "orchestration": ("Orchestration Detected", Severity.MEDIUM, 3, "Orchestration platforms"),
    "cloud": ("Cloud Platform Detected", Severity.HIGH, 4, "Cloud platforms"),
    "mlops": ("MLOps Tools Detected", Severity.MEDIUM, 3, "MLOps platforms"),
}


def is_accelerator_label(label: str) -> bool:
    return "GPU" in label or "TPU" in label


class InfrastructureUnit(DetectionUnit):
    name = "Infrastructure"
    requires = frozenset({Capability.FINDINGS})

    async def run(self, unit_input: UnitInput) -> UnitResult:
        context = unit_input.context
        found = LabelCollector()

        container_files = [
            f for f in context.files if any(name in f.path.lower() for name in CONTAINER_FILES)
        ]
        for repo_file in container_files:
            content = await context.get_file_content(repo_file.path)
            if not content:
                continue
            ml_specific = False
            for rule in CONTAINER_PATTERNS:
                match = rule.pattern.search(content)
                if match:
                    ml_specific = True
                    found.add("containerization", rule.label,
                              pattern_evidence(context, repo_file.path, content, match))
            if not ml_specific:
                logger.info("Container file without ML-specific patterns: %s", repo_file.path)

        k8s_files = [
            f for f in context.files
            if any(marker in f.path.lower() for marker in ORCHESTRATION_PATH_MARKERS)
        ]
        for repo_file in k8s_files:
            content = await context.get_file_content(repo_file.path)
            if not content:
                continue
            for rule in ORCHESTRATION_PATTERNS:
                match = rule.pattern.search(content)
                if not match:
                    continue
                if is_accelerator_label(rule.label):
                    found.add("orchestration", rule.label,
                              pattern_evidence(context, repo_file.path, content, match))
                else:
                    logger.info("Generic %s in %s", rule.label, repo_file.path)

        scan_files = [
            f for f in context.files if f.type == "blob" and CLOUD_SCAN_PATTERN.search(f.path)
        ][:INFRA_SCAN_LIMIT]
        for repo_file in scan_files:
            content = await context.get_file_content(repo_file.path)
            if not content:
                continue
            for kind, rules in (("cloud", CLOUD_PATTERNS), ("mlops", MLOPS_PATTERNS)):
                for rule in rules:
                    match = rule.pattern.search(content)
                    if match:
                        found.add(kind, rule.label,
                                  pattern_evidence(context, repo_file.path, content, match))

        for finding in unit_input.findings:
            if finding.category is not Category.DEPENDENCIES:
                continue
            name = dependency_name(finding)
            for dep in MLOPS_DEPENDENCIES:
                if dep in name.lower():
                    found.add("mlops", dep, Evidence(file="Dependencies", snippet=f"MLOps tool: {name}"))

        findings = []
        for kind, (title, severity, weight, prefix) in _KINDS.items():
            if kind not in found:
                continue
            labels = found.labels(kind)
            logger.info("%s: %s", title, ", ".join(labels))
            findings.append(Finding(
                id=f"infra-{kind}",
                category=Category.INFRASTRUCTURE,
                severity=severity,
                weight=weight,
                title=title,
                description=f"{prefix}: {', '.join(labels)}",
                evidence=found.evidence(kind),
                payload=InfraInfo(type=kind, platforms=labels),
            ))
        return complete(findings)
