"""Local model artifact unit: weights, tokenizers and model configs in the tree.

Only the file listing is used; artifact contents are never downloaded.
"""

from __future__ import annotations

import logging

from aibom.context.base import RepoFile
from aibom.core.findings.models import Category, Evidence, Finding, Severity
from aibom.detectors.base import DetectionUnit, UnitInput, UnitResult, complete, slugify
from aibom.detectors.catalogs import MODEL_FILE_RULES, ModelFileRule

logger = logging.getLogger(__name__)

MAX_EVIDENCE = 10


def rule_matches(rule: ModelFileRule, repo_file: RepoFile) -> bool:
    """Extension or exact filename match, gated by the rule's path pattern."""
    matched = (rule.extension is not None and repo_file.extension == rule.extension) or (
        rule.filename is not None and repo_file.name == rule.filename
    )
    if not matched:
        return False
    return rule.path_match is None or bool(rule.path_match.search(repo_file.path))


class ModelFileUnit(DetectionUnit):
    name = "Model Files"

    async def run(self, unit_input: UnitInput) -> UnitResult:
        groups: dict[str, tuple[ModelFileRule, list[RepoFile]]] = {}
        for repo_file in unit_input.context.files:
            for rule in MODEL_FILE_RULES:
                if rule_matches(rule, repo_file):
                    groups.setdefault(rule.key, (rule, []))[1].append(repo_file)

        findings = []
        for key, (rule, files) in groups.items():
            logger.info("Found %d %s files", len(files), rule.description)
            findings.append(Finding(
                id=f"models-{slugify(key)}",
                category=Category.MODELS,
                severity=Severity.HIGH,
                weight=min(len(files) + 4, 8),
                title=f"Local Model Files: {rule.description}",
                description=f"Found {len(files)} {rule.description} file(s)",
                evidence=tuple(
                    Evidence(file=f.path, snippet=f"File size: {f.size} bytes")
                    for f in files[:MAX_EVIDENCE]
                ),
            ))
        return complete(findings)
