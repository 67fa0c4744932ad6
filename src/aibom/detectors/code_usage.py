"""Code-usage detection unit, the one unit bound by an external quota.

Search mode:
    When the context offers code search, a short query plan is built. With
    a dependency graph in hand the plan only targets providers whose
    packages are installed ("smart" plan); otherwise a fixed broad plan is
    used. Each query costs one unit of the search quota. The unit stops the
    moment the quota hits zero (or the service reports exhaustion) and
    returns ``Paused`` with a checkpoint holding the plan, the index of the
    next query and the evidence gathered so far.

Scan mode:
    Without search, a bounded set of source files is scanned in memory
    against the SDK and API-endpoint pattern tables.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from aibom.context.base import RateLimit, RepositoryContext, SearchItem
from aibom.core.findings.models import Category, DependencyInfo, Evidence, Finding, Severity
from aibom.detectors.base import (
    Capability,
    DetectionUnit,
    Paused,
    ResumeState,
    SearchQuery,
    UnitInput,
    UnitOutput,
    UnitResult,
    complete,
    first_line_containing,
    slugify,
)
from aibom.detectors.catalogs import (
    API_ENDPOINTS,
    DEFAULT_SEARCH_EXTENSIONS,
    LANGUAGE_EXTENSIONS,
    SCAN_EXTENSIONS,
    SDK_PATTERNS,
    ProviderPattern,
)
from aibom.exceptions import RateLimitExhausted

logger = logging.getLogger(__name__)

MAX_EVIDENCE = 5
_SNIPPET_PROBE = 30
_LINE_ANCHOR = re.compile(r"#L\d+$")


# ---------------------------------------------------------------------------
# Query planning
# ---------------------------------------------------------------------------


def extension_qualifiers(languages: tuple[str, ...] | list[str]) -> str:
    """``extension:`` qualifiers for the repository's languages."""
    extensions: dict[str, None] = {}
    for language in languages:
        for ext in LANGUAGE_EXTENSIONS.get(language, ()):
            extensions[f"extension:{ext}"] = None
    if not extensions:
        extensions = {f"extension:{ext}": None for ext in DEFAULT_SEARCH_EXTENSIONS}
    return " ".join(extensions)


def _has(names: list[str], *needles: str, unless: str | None = None) -> bool:
    return any(
        any(needle in name for needle in needles) and not (unless and unless in name)
        for name in names
    )


def smart_plan(dependencies: tuple[DependencyInfo, ...] | list[DependencyInfo]) -> list[tuple[str, str]]:
    """(query, provider) pairs for the providers whose packages are installed.

    Framework sub-pattern queries (``ChatOpenAI``...) are only planned when
    the matching integration package is present.
    """
    names = [dep.name.lower() for dep in dependencies]
    plan: list[tuple[str, str]] = []
    if _has(names, "openai", unless="langchain"):
        plan += [
            ("from openai import", "OpenAI"),
            ("openai.chat.completions", "OpenAI"),
            ("api.openai.com", "OpenAI"),
        ]
    if _has(names, "anthropic"):
        plan += [
            ("from anthropic import", "Anthropic"),
            ("@anthropic-ai/sdk", "Anthropic"),
            ("api.anthropic.com", "Anthropic"),
        ]
    if _has(names, "langchain"):
        plan.append(("from langchain", "LangChain"))
        if _has(names, "langchain-openai", "langchain_openai"):
            plan.append(("ChatOpenAI", "LangChain-OpenAI"))
        if _has(names, "langchain-google", "langchain_google"):
            plan.append(("ChatGoogleGenerativeAI", "LangChain-Google"))
        if _has(names, "langchain-anthropic", "langchain_anthropic"):
            plan.append(("ChatAnthropic", "LangChain-Anthropic"))
    if _has(names, "google", "generativeai", "gemini"):
        plan += [("google.generativeai", "Google"), ("gemini", "Google")]
    if _has(names, "cohere"):
        plan.append(("from cohere import", "Cohere"))
    if _has(names, "mistral"):
        plan.append(("from mistralai import", "Mistral"))
    if _has(names, "transformers", "diffusers", "huggingface"):
        plan += [("from transformers import", "HuggingFace"), ("AutoModel", "HuggingFace")]
    plan.append(("/v1/chat/completions", "OpenAI-compatible"))
    return plan


FALLBACK_PLAN: tuple[tuple[str, str], ...] = (
    ("from openai import", "OpenAI"),
    ("openai.chat.completions", "OpenAI"),
    ("from anthropic import", "Anthropic"),
    ("@anthropic-ai/sdk", "Anthropic"),
    ("from langchain", "LangChain"),
    ("ChatOpenAI", "OpenAI"),
    ("google.generativeai", "Google"),
    ("api.openai.com", "OpenAI"),
    ("api.anthropic.com", "Anthropic"),
    ("/v1/chat/completions", "OpenAI-compatible"),
)


def build_query_plan(
    languages: tuple[str, ...] | list[str],
    sbom_available: bool,
    dependencies: tuple[DependencyInfo, ...] | list[DependencyInfo],
    budget: int = 10,
) -> tuple[SearchQuery, ...]:
    """Plan at most *budget* search queries.

    Args:
        languages: Repository languages, used for ``extension:`` qualifiers.
        sbom_available: Whether the dependency list came from the host graph.
        dependencies: Packages resolved by the dependency unit.
        budget: Query cap, normally the per-minute search quota.
    """
    qualifiers = extension_qualifiers(languages)
    if sbom_available and dependencies:
        pairs = smart_plan(dependencies)
        logger.info("Smart search plan: %d queries from %d dependencies", len(pairs), len(dependencies))
        if len(pairs) > budget:
            logger.info("Limiting %d planned queries to %d", len(pairs), budget)
    else:
        pairs = list(FALLBACK_PLAN)
        logger.info("Broad search plan: no dependency graph available")
    return tuple(SearchQuery(f"{text} {qualifiers}", provider) for text, provider in pairs[:budget])


# ---------------------------------------------------------------------------
# Evidence accumulation
# ---------------------------------------------------------------------------


@dataclass
class _Accumulator:
    """Per-provider evidence in first-seen order, without duplicates."""

    by_provider: dict[str, dict[Evidence, None]] = field(default_factory=dict)

    @classmethod
    def restore(cls, saved: dict[str, tuple[Evidence, ...]]) -> _Accumulator:
        return cls({p: dict.fromkeys(ev) for p, ev in saved.items()})

    def touch(self, provider: str) -> None:
        self.by_provider.setdefault(provider, {})

    def add(self, provider: str, evidence: Evidence) -> None:
        self.by_provider.setdefault(provider, {})[evidence] = None

    def snapshot(self) -> dict[str, tuple[Evidence, ...]]:
        return {p: tuple(ev) for p, ev in self.by_provider.items()}

    def findings(self) -> list[Finding]:
        findings = []
        for provider, entries in self.by_provider.items():
            if not entries:
                logger.debug("Skipping %s: no files found", provider)
                continue
            evidence = list(entries)
            file_count = len({e.file for e in evidence})
            findings.append(Finding(
                id=f"code-sdk-search-{slugify(provider)}-search",
                category=Category.CODE,
                severity=Severity.HIGH,
                weight=5,
                title=f"{provider} SDK Usage Detected (via Search API)",
                description=(
                    f"Found {provider} SDK usage in {file_count} file(s) using GitHub Search API"
                ),
                evidence=tuple(evidence[:MAX_EVIDENCE]),
            ))
        return findings


def _ai_files(findings: list[Finding]) -> list[str]:
    return list(dict.fromkeys(e.file for f in findings for e in f.evidence if e.file))


# ---------------------------------------------------------------------------
# Unit
# ---------------------------------------------------------------------------


class CodeUsageUnit(DetectionUnit):
    """Detect SDK and API usage via code search, or by scanning files."""

    name = "Code"
    requires = frozenset({Capability.DEPENDENCIES})
    resumable = True

    async def run(self, unit_input: UnitInput) -> UnitResult:
        context = unit_input.context
        if context.search_available:
            return await self._search(unit_input)
        logger.info("Code search unavailable; scanning source files")
        findings = await self._scan_files(context, unit_input.settings.code_scan_file_limit,
                                          unit_input.settings.max_file_size)
        return complete(findings, ai_files=_ai_files(findings))

    # -- Search mode -------------------------------------------------------

    async def _search(self, unit_input: UnitInput) -> UnitResult:
        context = unit_input.context
        resume = unit_input.resume
        if resume is not None:
            queries = resume.queries
            start = resume.next_index
            accumulator = _Accumulator.restore(resume.accumulator)
            rate_limit = resume.rate_limit
            logger.info("Resuming code search at query %d/%d", start + 1, len(queries))
        else:
            queries = build_query_plan(
                context.info.languages,
                unit_input.sbom_available,
                unit_input.dependencies,
                unit_input.settings.search_query_budget,
            )
            start = 0
            accumulator = _Accumulator()
            rate_limit = None

        for index in range(start, len(queries)):
            query = queries[index]
            logger.debug("[%d/%d] Searching: %s", index + 1, len(queries), query.text)
            try:
                response = await context.search_code(query.text)
            except RateLimitExhausted as exc:
                logger.warning("Search quota exhausted at query %d; deferring", index + 1)
                return self._pause(accumulator, queries, index, exc.rate_limit or rate_limit)
            if response is None:
                logger.debug("No results or transient error for %r", query.text)
                continue

            rate_limit = response.rate_limit
            accumulator.touch(query.provider)
            for item in response.items:
                accumulator.add(query.provider, await self._locate(context, item))
            logger.debug("%d results for %s", len(response.items), query.provider)

            if rate_limit.remaining == 0 and index + 1 < len(queries):
                logger.warning(
                    "Search quota at 0; deferring %d remaining queries", len(queries) - index - 1
                )
                return self._pause(accumulator, queries, index + 1, rate_limit)
            if rate_limit.remaining <= 2:
                logger.warning("Search quota running low (%d remaining)", rate_limit.remaining)

        findings = accumulator.findings()
        logger.info("Code search complete: %d findings", len(findings))
        return complete(findings, ai_files=_ai_files(findings))

    def _pause(
        self,
        accumulator: _Accumulator,
        queries: tuple[SearchQuery, ...],
        next_index: int,
        rate_limit: RateLimit | None,
    ) -> Paused:
        findings = accumulator.findings()
        checkpoint = ResumeState(
            queries=queries,
            next_index=next_index,
            accumulator=accumulator.snapshot(),
            rate_limit=rate_limit,
        )
        return Paused(UnitOutput(findings=findings, ai_files=_ai_files(findings)), checkpoint)

    async def _locate(self, context: RepositoryContext, item: SearchItem) -> Evidence:
        """Resolve the line number of a search hit from its match fragment."""
        line = None
        snippet = item.snippet
        if snippet and item.path:
            content = await context.get_file_content(item.path)
            if content:
                hit = first_line_containing(content, snippet[:_SNIPPET_PROBE])
                if hit is not None:
                    line, text = hit
                    snippet = text.strip()

        url = item.html_url
        if url and line:
            url = f"{_LINE_ANCHOR.sub('', url)}#L{line}"
        elif not url:
            url = context.file_url(item.path, line)
        return Evidence(file=item.path, line=line, snippet=snippet, url=url)

    # -- Scan mode ---------------------------------------------------------

    async def _scan_files(
        self, context: RepositoryContext, limit: int, max_size: int
    ) -> list[Finding]:
        code_files = [
            f for f in context.files
            if f.extension in SCAN_EXTENSIONS and (not f.size or f.size < max_size)
        ][:limit]
        logger.info("Scanning %d code files", len(code_files))

        sdk_hits: dict[tuple[str, str], _ScanHits] = {}
        api_hits: dict[str, _ScanHits] = {}
        for index, repo_file in enumerate(code_files, start=1):
            if index % 20 == 0:
                logger.debug("Progress: %d/%d files scanned", index, len(code_files))
            content = await context.get_file_content(repo_file.path)
            if not content:
                continue
            language = "python" if repo_file.extension == ".py" else "javascript"
            for rule in SDK_PATTERNS[language]:
                if rule.pattern.search(content):
                    hits = sdk_hits.setdefault((rule.provider, language), _ScanHits(rule))
                    hits.add(repo_file.path, content, context, rule)
            for rule in API_ENDPOINTS:
                if rule.pattern.search(content):
                    hits = api_hits.setdefault(rule.provider, _ScanHits(rule))
                    hits.add(repo_file.path, content, context, rule)

        findings = []
        for (provider, language), hits in sdk_hits.items():
            findings.append(Finding(
                id=f"code-sdk-{slugify(provider)}-{language}",
                category=Category.CODE,
                severity=Severity.HIGH,
                weight=hits.rule.weight,
                title=f"{provider} SDK Usage Detected",
                description=f"Found {provider} SDK usage in {hits.file_count} file(s)",
                evidence=hits.evidence(),
            ))
        for provider, hits in api_hits.items():
            findings.append(Finding(
                id=f"code-api-api-{slugify(provider)}",
                category=Category.CODE,
                severity=Severity.MEDIUM,
                weight=hits.rule.weight,
                title=f"{provider} API Endpoint Detected",
                description=f"Found API calls to {provider} in {hits.file_count} file(s)",
                evidence=hits.evidence(),
            ))
        logger.info("File scan complete: %d findings", len(findings))
        return findings


class _ScanHits:
    """Files matched by one rule key; the first matching rule sets the weight."""

    def __init__(self, rule: ProviderPattern) -> None:
        self.rule = rule
        self._entries: dict[str, Evidence] = {}

    @property
    def file_count(self) -> int:
        return len(self._entries)

    def add(
        self, path: str, content: str, context: RepositoryContext, rule: ProviderPattern
    ) -> None:
        if path in self._entries:
            return
        lines = [(no, line) for no, line in enumerate(content.split("\n"), start=1)
                 if rule.pattern.search(line)]
        first = lines[0][0] if lines else None
        snippet = "\n".join(line for _, line in lines[:2])[:200]
        self._entries[path] = Evidence(
            file=path, line=first, snippet=snippet or None, url=context.file_url(path, first)
        )

    def evidence(self) -> tuple[Evidence, ...]:
        return tuple(self._entries.values())[:MAX_EVIDENCE]
