"""Model identification unit.

Scans a prioritized file set for model names:

1. files the code-usage unit already confirmed to contain AI usage,
2. configuration-like files outside documentation trees,
3. a bounded sample of the remaining source files.

Each captured name is validated, canonicalized and keyed by
``(provider, name)``. Names that resolve to the same group key across
providers, or that a configuration Finding already reported, are
cross-linked as related models. Open-registry models are optionally
enriched with Hugging Face metadata; a failed lookup is kept as an
unverified marker.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field

from aibom.context.base import RepoFile, RepositoryContext
from aibom.core.findings.models import (
    Category,
    Evidence,
    Finding,
    HuggingFaceInfo,
    ModelInfo,
    RelatedModel,
    Severity,
)
from aibom.detectors.base import Capability, DetectionUnit, UnitInput, UnitResult, complete, line_number
from aibom.detectors.catalogs import DEFAULT_SEARCH_EXTENSIONS, LANGUAGE_EXTENSIONS
from aibom.detectors.model_patterns import (
    HUGGINGFACE,
    MODEL_PATTERNS,
    canonical_model_name,
    is_valid_model_name,
    related_group_key,
)

logger = logging.getLogger(__name__)

MAX_EVIDENCE = 5
HF_CARD_EVIDENCE = "HuggingFace Model Card"

_NON_CODE_EXTENSIONS: frozenset[str] = frozenset({
    ".md", ".txt", ".svg", ".png", ".jpg", ".jpeg", ".gif", ".pdf", ".doc", ".docx",
})
_DOC_TREES: tuple[str, ...] = ("/docs/", "/documentation/", "/examples/", "/tutorials/")
_CONFIG_NAME = re.compile(r"^(config|settings|\.env|constants)")
_CONFIG_EXT = re.compile(r"\.(yaml|yml|json|toml|env)$")


# ---------------------------------------------------------------------------
# Provider detection
# ---------------------------------------------------------------------------


def providers_in_use(findings: tuple[Finding, ...] | list[Finding]) -> set[str]:
    """Providers evidenced by earlier Findings' text and dependency names."""
    providers: set[str] = set()
    for finding in findings:
        text = f"{finding.description} {finding.title}".lower()
        if "openai" in text and "langchain" not in text:
            providers.add("OpenAI")
        dep = finding.dependency_info
        if dep is not None:
            name = dep.name.lower()
            if "openai" in name:
                providers.add("OpenAI")
            text = f"{text} {name}"
        if "anthropic" in text:
            providers.add("Anthropic")
        if "google" in text or "gemini" in text or "generativeai" in text:
            providers.add("Google")
        if "huggingface" in text or "transformers" in text or "diffusers" in text:
            providers.add(HUGGINGFACE)
        if "cohere" in text:
            providers.add("Cohere")
        if "mistral" in text:
            providers.add("Mistral")
    return providers


# ---------------------------------------------------------------------------
# File selection
# ---------------------------------------------------------------------------


def code_extensions(languages: tuple[str, ...] | list[str]) -> set[str]:
    """Dotted, lowercased source extensions for the repository languages."""
    extensions = {
        f".{ext.lower()}" for lang in languages for ext in LANGUAGE_EXTENSIONS.get(lang, ())
    }
    return extensions or {f".{ext}" for ext in DEFAULT_SEARCH_EXTENSIONS}


def _extension(path: str) -> str:
    match = re.search(r"\.[^./]+$", path)
    return match.group(0).lower() if match else ""


def is_model_config_file(repo_file: RepoFile) -> bool:
    path = repo_file.path.lower()
    if any(tree in f"/{path}" for tree in _DOC_TREES):
        return False
    name = repo_file.name.lower()
    if _CONFIG_NAME.match(name) or "/config/" in f"/{path}":
        return True
    return bool(_CONFIG_EXT.search(name)) and any(w in path for w in ("model", "llm", "ai"))


def files_to_scan(
    files: list[RepoFile],
    ai_files: tuple[str, ...] | list[str],
    extensions: set[str],
    max_size: int,
    sample_limit: int,
) -> list[str]:
    """Ordered, de-duplicated scan list: AI files, config files, code sample."""
    ordered: dict[str, None] = {}
    for path in ai_files:
        ext = _extension(path)
        if ext in extensions and ext not in _NON_CODE_EXTENSIONS:
            ordered[path] = None
        else:
            logger.debug("Skipping non-code AI file %s", path)
    for repo_file in files:
        if is_model_config_file(repo_file):
            ordered[repo_file.path] = None
    sample = [
        f.path for f in files
        if f.extension in extensions
        and f.extension not in _NON_CODE_EXTENSIONS
        and (not f.size or f.size < max_size)
        and f.path not in ordered
    ][:sample_limit]
    ordered.update(dict.fromkeys(sample))
    return list(ordered)


# ---------------------------------------------------------------------------
# Matching
# ---------------------------------------------------------------------------


@dataclass
class ModelHit:
    """Accumulated locations of one (provider, model) pair."""

    provider: str
    model_name: str
    model_type: str
    locations: list[Evidence] = field(default_factory=list)
    related: list[RelatedModel] = field(default_factory=list)
    detection_source: str = ""
    huggingface: HuggingFaceInfo | None = None

    @property
    def key(self) -> str:
        return f"{self.provider}-{self.model_name}"

    def add_location(self, evidence: Evidence) -> None:
        if not any(e.file == evidence.file and e.line == evidence.line for e in self.locations):
            self.locations.append(evidence)


def scan_content(
    path: str, content: str, hits: dict[str, ModelHit], context: RepositoryContext | None = None
) -> None:
    """Record every valid model name in *content* into *hits*."""
    lines = content.split("\n")
    for rule in MODEL_PATTERNS:
        for match in rule.pattern.finditer(content):
            name = rule.model if rule.model is not None else match.group(1)
            if rule.provider == HUGGINGFACE and name.startswith("models/"):
                continue
            if not is_valid_model_name(name, rule.provider):
                continue
            name = canonical_model_name(rule.provider, name)
            line = line_number(content, match.start())
            hit = hits.get(f"{rule.provider}-{name}")
            if hit is None:
                hit = ModelHit(rule.provider, name, rule.model_type)
                hits[hit.key] = hit
            hit.add_location(Evidence(
                file=path,
                line=line,
                snippet=lines[line - 1].strip()[:100],
                url=context.file_url(path, line) if context is not None else None,
            ))


def link_related(hits: dict[str, ModelHit], configured: list[tuple[str, str]]) -> None:
    """Cross-link hits sharing a group key, including configured models.

    Args:
        hits: Model hits from this unit, updated in place.
        configured: ``(provider, model_name)`` pairs reported by the
            configuration unit.
    """
    groups: dict[str, list[tuple[str, str, str | None]]] = {}
    for key, hit in hits.items():
        groups.setdefault(related_group_key(hit.model_name), []).append(
            (hit.provider, hit.model_name, key)
        )
    for provider, name in configured:
        groups.setdefault(related_group_key(name), []).append((provider, name, None))

    for key, hit in hits.items():
        members = groups[related_group_key(hit.model_name)]
        if len(members) < 2:
            continue
        hit.related = [
            RelatedModel(provider, name) for provider, name, other in members if other != key
        ]
        hit.detection_source = (
            "HuggingFace Pattern Match" if hit.provider == HUGGINGFACE else f"{hit.provider} Official"
        )


def describe(hit: ModelHit) -> str:
    type_label = f" ({hit.model_type})" if hit.model_type and hit.model_type != "unknown" else ""
    hf = hit.huggingface
    if hit.provider == HUGGINGFACE and hf is not None:
        if hf.verified:
            return (
                f"HuggingFace model: {hit.model_name}{type_label} - {hf.downloads:,} downloads, "
                f"License: {hf.license or 'Unknown'}"
            )
        return f"HuggingFace model: {hit.model_name}{type_label} (unverified - API unavailable)"
    if hit.provider == "Google":
        return f"Google AI model: {hit.model_name}{type_label}"
    return f"{hit.provider} model: {hit.model_name}{type_label}"


def model_card_evidence(hf: HuggingFaceInfo) -> Evidence:
    summary = {
        "model": hf.model_id,
        "downloads": hf.downloads,
        "likes": hf.likes,
        "license": hf.license,
        "tags": ", ".join(hf.tags[:5]),
        "pipeline": hf.pipeline_tag,
    }
    return Evidence(file=HF_CARD_EVIDENCE, snippet=json.dumps(summary, indent=2))


# ---------------------------------------------------------------------------
# Unit
# ---------------------------------------------------------------------------


class ModelIdentificationUnit(DetectionUnit):
    name = "AI Models"
    requires = frozenset({Capability.AI_FILES, Capability.FINDINGS})

    async def run(self, unit_input: UnitInput) -> UnitResult:
        context = unit_input.context
        settings = unit_input.settings
        providers = providers_in_use(unit_input.findings)
        check_hub = settings.enrich_models and (not providers or HUGGINGFACE in providers)
        logger.debug(
            "Providers in use: %s; registry lookups %s",
            ", ".join(sorted(providers)) or "none", "on" if check_hub else "off",
        )

        paths = files_to_scan(
            context.files,
            unit_input.ai_files,
            code_extensions(context.info.languages),
            settings.max_file_size,
            settings.model_scan_code_limit,
        )
        logger.info("Scanning %d files for model names (%d confirmed AI files)",
                    len(paths), len(unit_input.ai_files))

        hits: dict[str, ModelHit] = {}
        for path in paths:
            content = await context.get_file_content(path)
            if content:
                scan_content(path, content, hits, context)

        configured = [
            (f.model_info.provider, f.model_info.model_name)
            for f in unit_input.findings
            if f.category is Category.CONFIG and f.model_info is not None
        ]
        link_related(hits, configured)

        findings = []
        for hit in hits.values():
            if hit.provider == HUGGINGFACE and check_hub:
                hit.huggingface = await context.fetch_model_info(hit.model_name)
                if hit.huggingface.verified and hit.huggingface.pipeline_tag:
                    hit.model_type = hit.huggingface.pipeline_tag
            findings.append(self._finding(hit))
        logger.info("Identified %d distinct models", len(findings))
        return complete(findings)

    @staticmethod
    def _finding(hit: ModelHit) -> Finding:
        evidence = list(hit.locations[:MAX_EVIDENCE])
        if hit.huggingface is not None and hit.huggingface.verified:
            evidence.append(model_card_evidence(hit.huggingface))
        return Finding(
            id=f"model-{hit.key}",
            category=Category.MODELS,
            severity=Severity.HIGH,
            weight=5,
            title=f"AI Model Identified: {hit.model_name}",
            description=describe(hit),
            evidence=tuple(evidence),
            payload=ModelInfo(
                provider=hit.provider,
                model_name=hit.model_name,
                model_type=hit.model_type,
                locations=tuple(hit.locations),
                huggingface=hit.huggingface,
                related_models=tuple(hit.related),
                detection_source=hit.detection_source,
            ),
        )
