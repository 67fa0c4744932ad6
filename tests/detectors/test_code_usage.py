"""Tests for the code-usage detection unit.

Verifies:
    - Query planning: targeted plan from the dependency graph, broad plan
      otherwise, budget cap, extension qualifiers.
    - Pausing when the quota reaches zero mid-plan, and on exhaustion.
    - Resuming from a checkpoint executes only the remaining queries.
    - Scan mode without code search.
"""

from __future__ import annotations

import asyncio

from aibom.config import AnalysisSettings
from aibom.context.base import RateLimit, RepositoryInfo, SearchItem, SearchResponse
from aibom.core.findings.models import DependencyInfo, Evidence
from aibom.detectors.base import Complete, Paused, ResumeState
from aibom.detectors.code_usage import (
    FALLBACK_PLAN,
    CodeUsageUnit,
    build_query_plan,
    extension_qualifiers,
    smart_plan,
)
from aibom.exceptions import RateLimitExhausted

from tests.conftest import FakeRepositoryContext, unit_input

APP_SOURCE = "import os\nfrom openai import OpenAI\n\nclient = OpenAI()\n"


def hit(path: str = "app.py", snippet: str = "from openai import OpenAI") -> SearchItem:
    return SearchItem(
        path=path,
        html_url=f"https://github.com/acme/widget/blob/abc123/{path}",
        snippet=snippet,
    )


def response(remaining: int, *items: SearchItem, reset: float | None = 1060.0) -> SearchResponse:
    return SearchResponse(items=items, rate_limit=RateLimit(remaining=remaining, limit=10, reset=reset))


def run(context: FakeRepositoryContext, **kwargs):
    return asyncio.run(CodeUsageUnit().run(unit_input(context, **kwargs)))


# ---------------------------------------------------------------------------
# Planning
# ---------------------------------------------------------------------------


class TestQueryPlanning:
    """build_query_plan and its helpers."""

    def test_python_qualifiers(self) -> None:
        assert extension_qualifiers(("Python",)) == "extension:py extension:pyw"

    def test_unknown_language_uses_defaults(self) -> None:
        assert extension_qualifiers(("COBOL",)).startswith("extension:py extension:js")

    def test_broad_plan_without_graph(self) -> None:
        plan = build_query_plan(("Python",), sbom_available=False, dependencies=())
        assert len(plan) == len(FALLBACK_PLAN) == 10
        assert plan[0].text == "from openai import extension:py extension:pyw"
        assert plan[0].provider == "OpenAI"

    def test_smart_plan_targets_installed_providers(self) -> None:
        deps = [DependencyInfo(name="openai"), DependencyInfo(name="langchain-openai")]
        pairs = smart_plan(deps)
        providers = [provider for _, provider in pairs]
        assert providers == [
            "OpenAI", "OpenAI", "OpenAI", "LangChain", "LangChain-OpenAI", "OpenAI-compatible",
        ]
        assert "Anthropic" not in providers

    def test_langchain_only_does_not_plan_openai(self) -> None:
        pairs = smart_plan([DependencyInfo(name="langchain-openai")])
        assert ("from openai import", "OpenAI") not in pairs
        assert ("ChatOpenAI", "LangChain-OpenAI") in pairs

    def test_budget_cap(self) -> None:
        deps = [DependencyInfo(name=n) for n in ("openai", "anthropic", "langchain", "cohere")]
        plan = build_query_plan(("Python",), sbom_available=True, dependencies=deps, budget=4)
        assert len(plan) == 4

    def test_graph_flag_without_dependencies_falls_back(self) -> None:
        plan = build_query_plan(("Python",), sbom_available=True, dependencies=())
        assert [q.provider for q in plan] == [p for _, p in FALLBACK_PLAN]


# ---------------------------------------------------------------------------
# Search mode
# ---------------------------------------------------------------------------


class TestSearchMode:
    """Code search with quota handling."""

    def test_completes_with_located_evidence(self) -> None:
        context = FakeRepositoryContext(
            {"app.py": APP_SOURCE},
            search_results=[response(9, hit())] + [response(9)] * 9,
        )
        result = run(context)
        assert isinstance(result, Complete)
        (finding,) = result.output.findings
        assert finding.id == "code-sdk-search-OpenAI-search"
        assert finding.title == "OpenAI SDK Usage Detected (via Search API)"
        evidence = finding.evidence[0]
        assert evidence.line == 2
        assert evidence.url == "https://github.com/acme/widget/blob/abc123/app.py#L2"
        assert result.output.ai_files == ["app.py"]

    def test_duplicate_hits_collapse(self) -> None:
        context = FakeRepositoryContext(
            {"app.py": APP_SOURCE},
            search_results=[response(9, hit()), response(8, hit())] + [response(8)] * 8,
        )
        result = run(context)
        assert len(result.output.findings[0].evidence) == 1

    def test_pauses_when_quota_reaches_zero(self) -> None:
        responses = [response(9, hit())] + [response(9 - i) for i in range(1, 4)] + [response(0)]
        context = FakeRepositoryContext({"app.py": APP_SOURCE}, search_results=responses + [response(9)] * 5)
        result = run(context)
        assert isinstance(result, Paused)
        assert len(context.queries) == 5
        checkpoint = result.checkpoint
        assert checkpoint.next_index == 5
        assert checkpoint.remaining_queries == 5
        assert checkpoint.rate_limit == RateLimit(remaining=0, limit=10, reset=1060.0)
        assert "OpenAI" in checkpoint.accumulator
        assert [f.id for f in result.output.findings] == ["code-sdk-search-OpenAI-search"]

    def test_zero_on_last_query_completes(self) -> None:
        responses = [response(9)] * 9 + [response(0)]
        result = run(FakeRepositoryContext(search_results=responses))
        assert isinstance(result, Complete)

    def test_pauses_on_exhaustion(self) -> None:
        exhausted = RateLimitExhausted(RateLimit(remaining=0, limit=10, reset=2000.0))
        context = FakeRepositoryContext(
            {"app.py": APP_SOURCE}, search_results=[response(5, hit()), exhausted]
        )
        result = run(context)
        assert isinstance(result, Paused)
        assert result.checkpoint.next_index == 1
        assert result.checkpoint.rate_limit.reset == 2000.0

    def test_exhaustion_without_quota_keeps_last_seen(self) -> None:
        context = FakeRepositoryContext(search_results=[response(5), RateLimitExhausted()])
        result = run(context)
        assert result.checkpoint.rate_limit == RateLimit(remaining=5, limit=10, reset=1060.0)

    def test_failed_queries_are_skipped(self) -> None:
        context = FakeRepositoryContext(search_results=[None] * 10)
        result = run(context)
        assert isinstance(result, Complete)
        assert result.output.findings == []
        assert len(context.queries) == 10

    def test_resume_runs_remaining_queries(self) -> None:
        plan = build_query_plan(("Python",), sbom_available=False, dependencies=())
        saved = Evidence(file="app.py", line=2, snippet="from openai import OpenAI")
        resume = ResumeState(
            queries=plan,
            next_index=5,
            accumulator={"OpenAI": (saved,)},
            rate_limit=RateLimit(remaining=0, reset=1060.0),
        )
        context = FakeRepositoryContext(
            {"app.py": APP_SOURCE},
            search_results=[response(10)] * 4 + [response(9, hit("api/chat.py", "chat"))],
        )
        result = run(context, resume=resume)
        assert isinstance(result, Complete)
        assert context.queries == [q.text for q in plan[5:]]
        ids = {f.id for f in result.output.findings}
        assert ids == {"code-sdk-search-OpenAI-search", "code-sdk-search-OpenAI-compatible-search"}
        openai = next(f for f in result.output.findings if f.id == "code-sdk-search-OpenAI-search")
        assert openai.evidence == (saved,)

    def test_unreadable_hit_keeps_search_url(self) -> None:
        context = FakeRepositoryContext(search_results=[response(9, hit("gone.py"))] + [None] * 9)
        evidence = run(context).output.findings[0].evidence[0]
        assert evidence.line is None
        assert evidence.url == "https://github.com/acme/widget/blob/abc123/gone.py"


# ---------------------------------------------------------------------------
# Scan mode
# ---------------------------------------------------------------------------


class TestScanMode:
    """In-memory scanning when search is unavailable."""

    def test_sdk_and_endpoint_findings(self) -> None:
        context = FakeRepositoryContext({
            "app.py": APP_SOURCE,
            "web/client.ts": "import Anthropic from '@anthropic-ai/sdk'\nconst c = new Anthropic()\n",
            "proxy.py": 'URL = "https://api.openai.com/v1/chat/completions"\n',
            "notes.md": "from openai import OpenAI\n",
        })
        result = run(context)
        assert isinstance(result, Complete)
        ids = {f.id for f in result.output.findings}
        assert ids == {
            "code-sdk-OpenAI-python",
            "code-sdk-Anthropic-javascript",
            "code-api-api-OpenAI",
            "code-api-api-OpenAI-compatible",
        }
        assert "notes.md" not in result.output.ai_files

    def test_evidence_points_at_first_matching_line(self) -> None:
        result = run(FakeRepositoryContext({"app.py": APP_SOURCE}))
        finding = next(f for f in result.output.findings if f.id == "code-sdk-OpenAI-python")
        assert finding.title == "OpenAI SDK Usage Detected"
        assert finding.evidence[0].line == 2
        assert finding.evidence[0].url == "https://github.com/acme/widget/blob/main/app.py#L2"

    def test_file_limit(self) -> None:
        files = {f"pkg/m{i}.py": "import openai\n" for i in range(5)}
        result = run(FakeRepositoryContext(files), settings=AnalysisSettings(code_scan_file_limit=2))
        (finding,) = result.output.findings
        assert finding.description == "Found OpenAI SDK usage in 2 file(s)"

    def test_languages_do_not_matter_for_scan(self) -> None:
        context = FakeRepositoryContext(
            {"index.js": "const OpenAI = require('openai')\n"},
            info=RepositoryInfo(owner="acme", repo="web", languages=("JavaScript",)),
        )
        ids = [f.id for f in run(context).output.findings]
        assert ids == ["code-sdk-OpenAI-javascript"]
