"""Shared fixtures and builders for aibom tests.

``FakeRepositoryContext`` serves file contents, search responses and a
dependency graph from memory so detection units and the orchestrator can
be exercised without a network. The ``make_*`` helpers build valid
Findings with sensible defaults; keyword arguments override any field.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import pytest

from aibom.context.base import (
    RepoFile,
    RepositoryContext,
    RepositoryInfo,
    SbomPackage,
    SearchResponse,
)
from aibom.core.findings.models import (
    Category,
    DependencyInfo,
    Evidence,
    Finding,
    HuggingFaceInfo,
    ModelInfo,
    RelatedModel,
    Severity,
)
from aibom.core.findings.scoring import confidence_for, total_score
from aibom.core.pipeline.session import AnalysisResult
from aibom.detectors.base import UnitInput, slugify

FIXED_TIME = datetime(2026, 2, 26, 12, 0, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# In-memory repository context
# ---------------------------------------------------------------------------


class FakeRepositoryContext(RepositoryContext):
    """Repository Context backed by dicts and lists.

    Args:
        files: Path mapped to file content.
        info: Repository summary; defaults to ``acme/widget`` in Python.
        search_results: Responses (or exceptions to raise) handed out in
            order, one per ``search_code`` call. None disables search.
        sbom: Dependency-graph packages, or None when unavailable.
        model_info: Model id mapped to the registry answer.
    """

    def __init__(
        self,
        files: dict[str, str] | None = None,
        *,
        info: RepositoryInfo | None = None,
        search_results: list[SearchResponse | Exception | None] | None = None,
        sbom: list[SbomPackage] | None = None,
        model_info: dict[str, HuggingFaceInfo] | None = None,
    ) -> None:
        contents = dict(files or {})
        super().__init__(
            info or RepositoryInfo(owner="acme", repo="widget", languages=("Python",)),
            [RepoFile(path=path, size=len(text)) for path, text in contents.items()],
        )
        self.contents = contents
        self.loads: list[str] = []
        self.search_results = search_results
        self.queries: list[str] = []
        self.sbom = sbom
        self.model_info = dict(model_info or {})
        self.lookups: list[str] = []
        self.closed = False

    async def _load_file(self, path: str) -> str | None:
        self.loads.append(path)
        return self.contents.get(path)

    @property
    def search_available(self) -> bool:
        return self.search_results is not None

    async def search_code(self, query: str) -> SearchResponse | None:
        self.queries.append(query)
        if not self.search_results:
            return None
        outcome = self.search_results.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def fetch_dependency_graph(self) -> list[SbomPackage] | None:
        return self.sbom

    async def fetch_model_info(self, model_id: str) -> HuggingFaceInfo:
        self.lookups.append(model_id)
        if model_id in self.model_info:
            return self.model_info[model_id]
        return await super().fetch_model_info(model_id)

    def file_url(self, path: str, line: int | None = None) -> str | None:
        url = f"https://github.com/{self.info.full_name}/blob/main/{path}"
        return f"{url}#L{line}" if line else url

    async def aclose(self) -> None:
        self.closed = True


def unit_input(context: RepositoryContext, **kwargs: Any) -> UnitInput:
    """UnitInput for *context*; keyword arguments fill declared state."""
    return UnitInput(context=context, **kwargs)


# ---------------------------------------------------------------------------
# Finding builders
# ---------------------------------------------------------------------------


def make_evidence(file: str = "app.py", line: int | None = 1, snippet: str | None = None) -> Evidence:
    return Evidence(file=file, line=line, snippet=snippet)


def make_finding(**kwargs: Any) -> Finding:
    """Generic code Finding; override any field with kwargs."""
    defaults: dict[str, Any] = {
        "id": "code-sdk-OpenAI-python",
        "category": Category.CODE,
        "severity": Severity.HIGH,
        "weight": 5,
        "title": "OpenAI SDK Usage Detected",
        "description": "Found OpenAI SDK usage in 1 file(s)",
        "evidence": (make_evidence("app.py", 1, "from openai import OpenAI"),),
    }
    defaults.update(kwargs)
    return Finding(**defaults)


def make_dependency_finding(
    name: str = "openai", version: str = "1.30.0", ecosystem: str = "python", **kwargs: Any
) -> Finding:
    info = DependencyInfo(
        name=name, version=version, ecosystem=ecosystem, manifest_file="requirements.txt"
    )
    defaults: dict[str, Any] = {
        "id": f"dep-{ecosystem}-{slugify(name)}",
        "category": Category.DEPENDENCIES,
        "severity": Severity.HIGH,
        "weight": 5,
        "title": f"Dependency: {name}",
        "description": f"LLM-related dependency: {name} (version: {version})",
        "evidence": (make_evidence("requirements.txt", 1, f"{name}=={version}"),),
        "payload": info,
    }
    defaults.update(kwargs)
    return Finding(**defaults)


def make_code_finding(provider: str = "OpenAI", file: str = "app.py", **kwargs: Any) -> Finding:
    defaults: dict[str, Any] = {
        "id": f"code-sdk-{slugify(provider)}-python",
        "title": f"{provider} SDK Usage Detected",
        "description": f"Found {provider} SDK usage in 1 file(s)",
        "evidence": (make_evidence(file, 3, f"import {provider.lower()}"),),
    }
    defaults.update(kwargs)
    return make_finding(**defaults)


def make_model_finding(
    model_name: str = "gpt-4o",
    provider: str = "OpenAI",
    model_type: str = "text-generation",
    *,
    category: Category = Category.MODELS,
    huggingface: HuggingFaceInfo | None = None,
    related: tuple[RelatedModel, ...] = (),
    detection_source: str = "",
    **kwargs: Any,
) -> Finding:
    location = make_evidence("app.py", 7, f'model="{model_name}"')
    info = ModelInfo(
        provider=provider,
        model_name=model_name,
        model_type=model_type,
        locations=(location,),
        huggingface=huggingface,
        related_models=related,
        detection_source=detection_source,
    )
    prefix = "config-model" if category is Category.CONFIG else "model"
    defaults: dict[str, Any] = {
        "id": f"{prefix}-{provider}-{model_name}",
        "category": category,
        "severity": Severity.HIGH if category is Category.MODELS else Severity.MEDIUM,
        "weight": 5 if category is Category.MODELS else 4,
        "title": f"AI Model Identified: {model_name}",
        "description": f"{provider} model: {model_name}",
        "evidence": (location,),
        "payload": info,
    }
    defaults.update(kwargs)
    return Finding(**defaults)


def verified_hub_info(model_id: str = "meta-llama/Llama-3.1-8B", **kwargs: Any) -> HuggingFaceInfo:
    defaults: dict[str, Any] = {
        "model_id": model_id,
        "verified": True,
        "author": model_id.split("/")[0],
        "downloads": 125000,
        "likes": 900,
        "tags": ("transformers", "pytorch", "llama", "text-generation", "license:llama3.1"),
        "pipeline_tag": "text-generation",
        "library_name": "transformers",
        "license": "llama3.1",
    }
    defaults.update(kwargs)
    return HuggingFaceInfo(**defaults)


def make_result(
    findings: list[Finding] | tuple[Finding, ...] = (),
    *,
    raw_findings: list[Finding] | tuple[Finding, ...] | None = None,
    repository: RepositoryInfo | None = None,
    file_paths: tuple[str, ...] = (),
    **kwargs: Any,
) -> AnalysisResult:
    """AnalysisResult with score and confidence derived from *findings*."""
    selected = tuple(findings)
    score = total_score(selected)
    defaults: dict[str, Any] = {
        "repository": repository or RepositoryInfo(owner="acme", repo="widget", languages=("Python",)),
        "findings": selected,
        "raw_findings": tuple(raw_findings) if raw_findings is not None else selected,
        "score": score,
        "confidence": confidence_for(score),
        "analyzed_at": FIXED_TIME,
        "total_files": len(file_paths),
        "file_paths": file_paths,
    }
    defaults.update(kwargs)
    return AnalysisResult(**defaults)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def repo_info() -> RepositoryInfo:
    return RepositoryInfo(
        owner="acme",
        repo="widget",
        description="Chat assistant built on GPT",
        topics=("llm", "chatbot"),
        languages=("Python",),
    )
