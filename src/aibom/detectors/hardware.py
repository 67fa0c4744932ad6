"""Hardware unit: GPU, TPU and specialized accelerator requirements.

Evidence comes from two places: dependency Findings whose package implies
an accelerator, and code patterns in a bounded sample of source files.
TPU patterns are only checked in Python sources and notebooks, as are
the TensorRT and OpenVINO integrations.
"""

from __future__ import annotations

import logging
import re

from aibom.core.findings.models import Category, Evidence, Finding, HardwareInfo, Severity
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
    GPU_DEPENDENCIES,
    GPU_PATTERNS,
    PYTHON_ONLY_HARDWARE,
    SPECIALIZED_DEPENDENCIES,
    SPECIALIZED_PATTERNS,
    TPU_DEPENDENCIES,
    TPU_PATTERNS,
)

logger = logging.getLogger(__name__)

HARDWARE_SCAN_LIMIT = 50

_CODE_FILE = re.compile(r"\.(py|js|ts|ipynb)$")
_PYTHON_FILE = re.compile(r"\.(py|ipynb)$")

# kind -> (title, severity, weight, description prefix, dependency table, dependency label)
_KINDS: dict[str, tuple[str, Severity, int, str, tuple[str, ...], str]] = {
    "GPU": ("GPU Hardware Detected", Severity.HIGH, 4, "GPU compute detected",
            GPU_DEPENDENCIES, "GPU library"),
    "TPU": ("TPU Hardware Detected", Severity.HIGH, 4, "TPU compute detected",
            TPU_DEPENDENCIES, "TPU library"),
    "specialized": ("Specialized Hardware Detected", Severity.MEDIUM, 3, "Specialized compute",
                    SPECIALIZED_DEPENDENCIES, "Specialized hardware"),
}


def dependency_name(finding: Finding) -> str:
    dep = finding.dependency_info
    return dep.name if dep is not None else finding.title


class HardwareUnit(DetectionUnit):
    name = "Hardware"
    requires = frozenset({Capability.FINDINGS})

    async def run(self, unit_input: UnitInput) -> UnitResult:
        context = unit_input.context
        found = LabelCollector()

        for finding in unit_input.findings:
            if finding.category is not Category.DEPENDENCIES:
                continue
            name = dependency_name(finding)
            for kind, (*_, table, label) in _KINDS.items():
                for dep in table:
                    if dep.lower() in name.lower():
                        found.add(kind, dep, Evidence(file="Dependencies", snippet=f"{label}: {name}"))

        code_files = [f for f in context.files if f.type == "blob" and _CODE_FILE.search(f.path)]
        logger.debug("Scanning %d code files for hardware patterns",
                     min(len(code_files), HARDWARE_SCAN_LIMIT))
        for repo_file in code_files[:HARDWARE_SCAN_LIMIT]:
            content = await context.get_file_content(repo_file.path)
            if not content:
                continue
            is_python = bool(_PYTHON_FILE.search(repo_file.path))
            checks = [("GPU", GPU_PATTERNS), ("specialized", SPECIALIZED_PATTERNS)]
            if is_python:
                checks.insert(1, ("TPU", TPU_PATTERNS))
            for kind, rules in checks:
                for rule in rules:
                    if rule.label in PYTHON_ONLY_HARDWARE and not is_python:
                        continue
                    match = rule.pattern.search(content)
                    if match:
                        found.add(kind, rule.label, pattern_evidence(context, repo_file.path, content, match))

        findings = []
        for kind, (title, severity, weight, prefix, _, _) in _KINDS.items():
            if kind not in found:
                continue
            labels = found.labels(kind)
            logger.info("%s hardware: %s", kind, ", ".join(labels))
            findings.append(Finding(
                id=f"hardware-{kind.lower()}",
                category=Category.HARDWARE,
                severity=severity,
                weight=weight,
                title=title,
                description=f"{prefix}: {', '.join(labels)}",
                evidence=found.evidence(kind),
                payload=HardwareInfo(type=kind, libraries=labels),
            ))
        return complete(findings)
