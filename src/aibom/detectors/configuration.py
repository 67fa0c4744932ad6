"""Configuration-file unit: model names referenced in config files.

API keys are never looked for; a committed key is not an AI component and
reporting it would leak it into every BOM.
"""

from __future__ import annotations

import logging

from aibom.context.base import RepoFile
from aibom.core.findings.models import Category, Evidence, Finding, ModelInfo, Severity
from aibom.detectors.base import DetectionUnit, UnitInput, UnitResult, complete, slugify
from aibom.detectors.catalogs import CONFIG_DIR_PATTERN, CONFIG_FILE_NAMES, CONFIG_MODEL_PATTERNS

logger = logging.getLogger(__name__)

MAX_EVIDENCE = 5


def is_config_file(repo_file: RepoFile) -> bool:
    return repo_file.name in CONFIG_FILE_NAMES or bool(CONFIG_DIR_PATTERN.search(repo_file.path.lower()))


class ConfigurationUnit(DetectionUnit):
    """Report model names configured in ``.env``, YAML, settings and constants files.

    Each line is credited to the first catalog pattern it matches, so a
    ``gpt-4o`` line is not also reported as ``GPT-4``. Each model is
    recorded at most once per file.
    """

    name = "Configuration"

    async def run(self, unit_input: UnitInput) -> UnitResult:
        context = unit_input.context
        config_files = [f for f in context.files if is_config_file(f)]
        logger.info("Scanning %d config files for model references", len(config_files))

        hits: dict[tuple[str, str], list[Evidence]] = {}
        for repo_file in config_files:
            content = await context.get_file_content(repo_file.path)
            if not content:
                continue
            seen_here: set[tuple[str, str]] = set()
            for index, line in enumerate(content.split("\n"), start=1):
                rule = next((r for r in CONFIG_MODEL_PATTERNS if r.pattern.search(line)), None)
                if rule is None:
                    continue
                key = (rule.provider, rule.label)
                if key in seen_here:
                    continue
                seen_here.add(key)
                hits.setdefault(key, []).append(Evidence(
                    file=repo_file.path,
                    line=index,
                    snippet=line.strip()[:100],
                    url=context.file_url(repo_file.path, index),
                ))
                logger.debug("%s model %r in %s:%d", rule.provider, rule.label, repo_file.path, index)

        findings = []
        for (provider, model), locations in hits.items():
            findings.append(Finding(
                id=f"config-model-{slugify(provider)}-{slugify(model)}",
                category=Category.CONFIG,
                severity=Severity.MEDIUM,
                weight=4,
                title=f"{provider} Model in Configuration: {model}",
                description=f'Found {provider} model "{model}" configured in {len(locations)} file(s)',
                evidence=tuple(locations[:MAX_EVIDENCE]),
                payload=ModelInfo(
                    provider=provider,
                    model_name=model,
                    model_type="text-generation",
                    locations=tuple(locations),
                    detection_source="configuration",
                ),
            ))
        return complete(findings)
