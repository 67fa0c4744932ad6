"""CI/CD unit: AI tools wired into GitHub Actions workflows."""

from __future__ import annotations

import logging

from aibom.core.findings.models import Category, Evidence, Finding, Severity
from aibom.detectors.base import DetectionUnit, UnitInput, UnitResult, complete, slugify
from aibom.detectors.catalogs import CI_PATTERNS

logger = logging.getLogger(__name__)

WORKFLOW_DIR = ".github/workflows"


class CIUnit(DetectionUnit):
    name = "CI/CD"

    async def run(self, unit_input: UnitInput) -> UnitResult:
        context = unit_input.context
        workflows = [f for f in context.files if WORKFLOW_DIR in f.path]
        logger.debug("Found %d workflow files", len(workflows))

        findings = []
        for workflow in workflows:
            content = await context.get_file_content(workflow.path)
            if not content:
                continue
            for rule in CI_PATTERNS:
                match = rule.pattern.search(content)
                if not match:
                    continue
                line = content.count("\n", 0, match.start()) + 1
                findings.append(Finding(
                    id=f"ci-action-{workflow.path.replace('/', '-')}-{slugify(rule.label)}",
                    category=Category.CI,
                    severity=Severity.MEDIUM,
                    weight=4,
                    title=f"AI Tool in CI/CD: {rule.label}",
                    description=f"Found {rule.label} in CI/CD pipeline",
                    evidence=(Evidence(
                        file=workflow.path,
                        line=line,
                        snippet="AI tool detected in workflow",
                        url=context.file_url(workflow.path, line),
                    ),),
                ))
                logger.info("%s in %s", rule.label, workflow.path)
        return complete(findings)
