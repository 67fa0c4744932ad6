"""Tests for the component graph builder.

Verifies:
    - A model seen by configuration and by code is one component.
    - Open-registry models imply a framework library and depend on it.
    - Dependency descriptions add known libraries.
    - References are deterministic and collision-free.
    - ``validate`` rejects every malformed shape.
"""

from __future__ import annotations

import pytest

from aibom.context.base import RepositoryInfo
from aibom.core.findings.models import (
    Category,
    Evidence,
    Finding,
    HardwareInfo,
    HuggingFaceInfo,
    ModelInfo,
    RelatedModel,
    Severity,
)
from aibom.core.sbom.graph import (
    Component,
    ComponentGraph,
    ComponentKind,
    Relationship,
    RootComponent,
    build_component_graph,
    build_model_card,
    classify_task,
)
from aibom.exceptions import BOMError

from tests.conftest import (
    make_dependency_finding,
    make_finding,
    make_model_finding,
    verified_hub_info,
)

REPO = RepositoryInfo(owner="acme", repo="widget", languages=("Python",))
LLAMA = "meta-llama/Llama-3.1-8B"
LLAMA_REF = "model-huggingface-meta-llama-llama-3-1-8b"


def llama_finding(**kwargs) -> Finding:
    return make_model_finding(LLAMA, "HuggingFace", huggingface=verified_hub_info(), **kwargs)


# ---------------------------------------------------------------------------
# Building
# ---------------------------------------------------------------------------


class TestModelIdentity:
    """One component per (provider, normalized name)."""

    def test_config_and_code_model_merge(self) -> None:
        code = make_model_finding("gpt-4o")
        config = make_model_finding(
            "GPT-4o", category=Category.CONFIG, detection_source="configuration"
        )
        graph = build_component_graph(REPO, [code, config])
        (model,) = graph.models
        assert model.ref == "model-openai-gpt-4o"
        assert model.finding_ids == ["model-OpenAI-gpt-4o", "config-model-OpenAI-GPT-4o"]
        assert model.weight == 5
        assert model.severity is Severity.HIGH
        assert model.detection_sources == ["configuration"]
        assert len(model.evidence) == 2
        assert model.related_models == [RelatedModel("OpenAI", "GPT-4o")]

    def test_same_source_merge_adds_no_related_model(self) -> None:
        graph = build_component_graph(REPO, [
            make_model_finding("gpt-4o"),
            make_model_finding("GPT-4o", id="model-OpenAI-GPT-4o-upper"),
        ])
        (model,) = graph.models
        assert model.finding_ids == ["model-OpenAI-gpt-4o", "model-OpenAI-GPT-4o-upper"]
        assert model.related_models == []

    def test_config_first_links_code_spelling(self) -> None:
        config = make_model_finding(
            "GPT-4o", category=Category.CONFIG, detection_source="configuration"
        )
        (model,) = build_component_graph(REPO, [config, make_model_finding("gpt-4o")]).models
        assert model.name == "GPT-4o"
        assert model.related_models == [RelatedModel("OpenAI", "gpt-4o")]

    def test_merge_fills_empty_fields(self) -> None:
        config = make_model_finding(
            "codestral", "Mistral", "unknown",
            category=Category.CONFIG, detection_source="configuration",
        )
        code = make_model_finding("codestral", "Mistral", "text-generation")
        (model,) = build_component_graph(REPO, [config, code]).models
        assert model.task == "text-generation"
        assert model.model_type == "text-generation"
        assert model.intended_use is not None
        assert model.intended_use.startswith("Text generation")
        assert model.model_card is not None
        assert model.model_card.tasks == ["text-generation"]
        assert model.domains == ["natural-language-processing"]

    def test_merge_keeps_first_fields(self) -> None:
        first = make_model_finding("text-embedding-3-small", "OpenAI", "embeddings")
        second = make_model_finding(
            "text-embedding-3-small", "OpenAI", "text-generation", id="model-other"
        )
        (model,) = build_component_graph(REPO, [first, second]).models
        assert model.task == "embeddings"
        assert model.model_card.tasks == ["feature-extraction"]

    def test_different_providers_stay_apart(self) -> None:
        graph = build_component_graph(REPO, [
            make_model_finding("gpt-4o"),
            make_model_finding("gpt-4o", "Azure OpenAI", id="model-azure-gpt-4o"),
        ])
        assert [m.ref for m in graph.models] == ["model-openai-gpt-4o", "model-azure-openai-gpt-4o"]

    def test_commercial_model_fields(self) -> None:
        (model,) = build_component_graph(REPO, [make_model_finding()]).models
        assert model.purl == "pkg:ml/openai/gpt-4o"
        assert model.task == "text-generation"
        assert model.external_references[0].type == "documentation"
        assert model.model_card is not None
        assert model.model_card.inputs == ["text"]
        assert model.application_info == "Commercial AI model from OpenAI"

    def test_medium_confidence_model_carries_limitation(self) -> None:
        config = make_model_finding("GPT-4o", category=Category.CONFIG)
        (model,) = build_component_graph(REPO, [config]).models
        assert model.limitation is not None


class TestRegistryModels:
    """Open-registry models and implied libraries."""

    def test_registry_model_component(self) -> None:
        graph = build_component_graph(REPO, [llama_finding()])
        model = graph.component(LLAMA_REF)
        assert model is not None
        assert model.group == "meta-llama"
        assert model.name == "Llama-3.1-8B"
        assert model.purl == f"pkg:huggingface/{LLAMA}"
        assert model.download_location == f"https://huggingface.co/{LLAMA}"
        assert model.licenses == ["llama3.1"]

    def test_implied_library_and_edge(self) -> None:
        graph = build_component_graph(REPO, [llama_finding()])
        assert [lib.ref for lib in graph.libraries] == ["lib-transformers"]
        assert graph.depends_on(LLAMA_REF) == ["lib-transformers"]

    def test_dependency_adds_library(self) -> None:
        torch = make_dependency_finding("torch", "2.3.0")
        graph = build_component_graph(REPO, [torch, llama_finding()])
        assert [lib.ref for lib in graph.libraries] == ["lib-transformers", "lib-pytorch"]
        assert graph.depends_on(LLAMA_REF) == ["lib-transformers", "lib-pytorch"]

    def test_unknown_hub_library_falls_back_to_transformers(self) -> None:
        info = verified_hub_info(library_name="some-custom-lib")
        finding = make_model_finding(LLAMA, "HuggingFace", huggingface=info)
        graph = build_component_graph(REPO, [finding])
        assert [lib.key for lib in graph.libraries] == ["transformers"]

    def test_models_share_present_libraries(self) -> None:
        graph = build_component_graph(REPO, [make_model_finding(), llama_finding()])
        assert graph.depends_on("model-openai-gpt-4o") == ["lib-transformers"]

    def test_commercial_model_alone_has_no_edges(self) -> None:
        graph = build_component_graph(REPO, [make_model_finding()])
        assert graph.libraries == []
        assert graph.depends_on("model-openai-gpt-4o") == []


class TestGraphShape:
    """Component order, references and root edges."""

    def test_order_generic_models_libraries(self) -> None:
        graph = build_component_graph(REPO, [
            llama_finding(), make_dependency_finding("openai"), make_finding(),
        ])
        assert [c.kind for c in graph.components] == [
            ComponentKind.GENERIC, ComponentKind.GENERIC, ComponentKind.MODEL, ComponentKind.LIBRARY,
        ]
        assert graph.components[0].ref == "component-dep-python-openai"

    def test_root_edges(self) -> None:
        graph = build_component_graph(REPO, [make_dependency_finding(), make_model_finding()])
        assert graph.root.ref == "repo-acme-widget"
        assert graph.depends_on("repo-acme-widget") == [
            "component-dep-python-openai", "model-openai-gpt-4o",
        ]

    def test_colliding_slugs_get_suffixes(self) -> None:
        graph = build_component_graph(REPO, [
            make_dependency_finding("a.b", id="dep-python-a.b"),
            make_dependency_finding("a-b", id="dep-python-a-b"),
        ])
        assert [c.ref for c in graph.components] == [
            "component-dep-python-a-b", "component-dep-python-a-b-2",
        ]

    def test_generic_evidence_is_capped(self) -> None:
        evidence = tuple(Evidence(file=f"f{i}.py", line=1) for i in range(6))
        (component,) = build_component_graph(REPO, [make_finding(evidence=evidence)]).components
        assert len(component.evidence) == 3

    def test_rebuild_is_identical(self) -> None:
        findings = [make_dependency_finding(), llama_finding(), make_model_finding()]
        first = build_component_graph(REPO, findings)
        second = build_component_graph(REPO, findings)
        assert first.adjacency() == second.adjacency()

    def test_empty_selection(self) -> None:
        graph = build_component_graph(REPO, [])
        assert graph.components == []
        assert graph.adjacency() == {"repo-acme-widget": []}

    def test_hardware_summary(self) -> None:
        gpu = Finding(
            id="hardware-gpu", category=Category.HARDWARE, severity=Severity.MEDIUM, weight=3,
            title="GPU Acceleration", evidence=(Evidence(file="requirements.txt", line=2),),
            payload=HardwareInfo("GPU", ("torch", "vllm")),
        )
        graph = build_component_graph(REPO, [gpu])
        assert graph.hardware.detected
        assert graph.hardware.types == ("GPU",)
        assert graph.hardware.libraries == ("torch", "vllm")
        assert not graph.infrastructure.detected


# ---------------------------------------------------------------------------
# Model card and task
# ---------------------------------------------------------------------------


class TestModelCard:
    """build_model_card and classify_task."""

    def test_verified_registry_card(self) -> None:
        card = build_model_card(ModelInfo("HuggingFace", LLAMA, huggingface=verified_hub_info()))
        assert card.tasks == ["text-generation"]
        assert card.architecture_family == "transformers"
        assert card.model_architecture == "llama"
        assert card.use_cases == ["transformers", "llama", "text-generation"]

    def test_unverified_registry_card_uses_name(self) -> None:
        hf = HuggingFaceInfo(model_id=LLAMA, verified=False, pipeline_tag="text-generation")
        card = build_model_card(ModelInfo("HuggingFace", LLAMA, "text-generation", huggingface=hf))
        assert card.architecture_family == "llama"
        assert card.use_cases == []

    def test_embeddings(self) -> None:
        card = build_model_card(ModelInfo("OpenAI", "text-embedding-3-small", "embeddings"))
        assert card.tasks == ["feature-extraction"]
        assert card.outputs == ["vector"]

    def test_name_fallback(self) -> None:
        card = build_model_card(ModelInfo("Anthropic", "claude-3-opus"))
        assert card.tasks == ["text-generation"]

    def test_unknown_model_has_empty_card(self) -> None:
        assert build_model_card(ModelInfo("Acme", "mystery")).is_empty

    def test_classify_task_order(self) -> None:
        hf = HuggingFaceInfo(model_id="x/y", pipeline_tag="text-to-image")
        assert classify_task(ModelInfo("HuggingFace", "x/y", huggingface=hf)) == "text-to-image"
        assert classify_task(ModelInfo("OpenAI", "gpt-4o-mini")) == "text-generation"
        assert classify_task(ModelInfo("Cohere", "embed-english-v3")) == "embeddings"
        assert classify_task(ModelInfo("Acme", "mystery")) is None


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def _component(ref: str, kind: ComponentKind = ComponentKind.GENERIC) -> Component:
    return Component(ref=ref, kind=kind, key=ref, name=ref)


def _graph(components: list[Component], relationships: list[tuple[str, str]]) -> ComponentGraph:
    return ComponentGraph(
        root=RootComponent.from_repository(REPO),
        components=components,
        relationships=[Relationship(s, t) for s, t in relationships],
    )


ROOT = "repo-acme-widget"


class TestValidate:
    """ComponentGraph.validate."""

    def test_valid_graph(self) -> None:
        graph = _graph(
            [_component("m", ComponentKind.MODEL), _component("lib", ComponentKind.LIBRARY)],
            [(ROOT, "m"), (ROOT, "lib"), ("m", "lib")],
        )
        graph.validate()

    def test_duplicate_refs(self) -> None:
        graph = _graph([_component("a"), _component("a")], [(ROOT, "a"), (ROOT, "a")])
        with pytest.raises(BOMError, match="not unique"):
            graph.validate()

    def test_ref_equal_to_root(self) -> None:
        graph = _graph([_component(ROOT)], [(ROOT, ROOT)])
        with pytest.raises(BOMError, match="not unique"):
            graph.validate()

    def test_dangling_edge(self) -> None:
        graph = _graph([_component("a")], [(ROOT, "a"), ("a", "ghost")])
        with pytest.raises(BOMError, match="dangling"):
            graph.validate()

    def test_missing_root_edge(self) -> None:
        graph = _graph([_component("a"), _component("b")], [(ROOT, "a")])
        with pytest.raises(BOMError, match="exactly one edge"):
            graph.validate()

    def test_library_with_outgoing_edge(self) -> None:
        graph = _graph(
            [_component("m", ComponentKind.MODEL), _component("lib", ComponentKind.LIBRARY)],
            [(ROOT, "m"), (ROOT, "lib"), ("lib", "m")],
        )
        with pytest.raises(BOMError, match="outgoing"):
            graph.validate()

    def test_model_to_generic_edge(self) -> None:
        graph = _graph(
            [_component("m", ComponentKind.MODEL), _component("g")],
            [(ROOT, "m"), (ROOT, "g"), ("m", "g")],
        )
        with pytest.raises(BOMError, match="unexpected edge"):
            graph.validate()
