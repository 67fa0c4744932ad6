"""Identity-resolved component graph shared by every BOM serializer.

``build_component_graph`` turns a selection of merged Findings into
``Component`` nodes and ``Relationship`` edges:

* every Finding with a model payload creates or updates the model
  component keyed by ``(provider, normalized model name)``, so the same
  model seen by the configuration unit and by code search is one node;
* every other Finding becomes a generic component;
* framework libraries from a small vocabulary are added once each, either
  because a dependency names them or because an open-registry model
  implies one.

Edges run from the repository root to every component, and from each
model to the libraries its task needs when those libraries are in the
graph. Libraries have no outgoing edges, so the graph is a DAG of depth
at most two.

Component references are derived from identity, not randomness, so two
syntheses of the same selection produce the same graph.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable

from aibom.context.base import RepositoryInfo
from aibom.core.findings.models import (
    Category,
    Evidence,
    Finding,
    HuggingFaceInfo,
    ModelInfo,
    RelatedModel,
    Severity,
)
from aibom.core.sbom.libraries import (
    DEFAULT_HUB_LIBRARY,
    KNOWN_LIBRARIES,
    libraries_for_task,
    libraries_in_description,
    library_key,
)
from aibom.core.sbom.summaries import (
    GovernanceSummary,
    HardwareSummary,
    InfraSummary,
    summarize_governance,
    summarize_hardware,
    summarize_infrastructure,
)
from aibom.detectors.base import slugify
from aibom.detectors.model_patterns import HUGGINGFACE, normalize_model_name
from aibom.exceptions import BOMError

logger = logging.getLogger(__name__)

MODEL_EVIDENCE_LIMIT = 5
GENERIC_EVIDENCE_LIMIT = 3

_PROVIDER_DOCS: dict[str, tuple[str, str]] = {
    "OpenAI": ("API Documentation", "https://platform.openai.com/docs/models"),
    "Anthropic": ("Model Documentation", "https://docs.anthropic.com/claude/docs/models-overview"),
    "Google": ("Model Documentation", "https://ai.google.dev/models"),
}

_INTENDED_USE_BY_TASK: dict[str, str] = {
    "text-generation": "Text generation, chat completion, and language understanding",
    "embeddings": "Text embeddings for semantic search, similarity, and vector databases",
    "text-to-image": "Image generation from text descriptions",
}

_INTENDED_USE_BY_PROVIDER: dict[str, str] = {
    "OpenAI": "General purpose AI model from OpenAI",
    "Anthropic": "Safe and helpful AI assistant for various text tasks",
    "Google": "Google AI model for various AI tasks",
}

_DOMAINS_BY_TASK: dict[str, tuple[str, ...]] = {
    "text-generation": ("natural-language-processing",),
    "embeddings": ("natural-language-processing", "semantic-search"),
    "text-to-image": ("computer-vision", "image-generation"),
    "multimodal": ("natural-language-processing", "computer-vision"),
}

# task -> (inputs, outputs)
_IO_BY_TASK: dict[str, tuple[tuple[str, ...], tuple[str, ...]]] = {
    "text-generation": (("text",), ("text",)),
    "feature-extraction": (("text",), ("vector",)),
    "embeddings": (("text",), ("vector",)),
    "text-to-image": (("text",), ("image",)),
    "multimodal": (("text", "image"), ("text", "image")),
}

# Substring of a model name -> architecture family, first match wins.
_ARCHITECTURE_FAMILIES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("llama",), "llama"),
    (("mistral", "mixtral"), "mistral"),
    (("gemma",), "gemma"),
    (("phi",), "phi"),
    (("qwen",), "qwen"),
    (("deepseek",), "deepseek"),
)

_TEXT_MODEL_MARKERS: tuple[str, ...] = ("gpt", "claude", "gemini", "llama", "mistral", "qwen")
_ARCH_TAG_MARKERS: tuple[str, ...] = ("gpt", "bert", "llama")
_HYPERPARAMETER_MARKERS: tuple[str, ...] = ("parameter", "size", "layers")


# ---------------------------------------------------------------------------
# Graph model
# ---------------------------------------------------------------------------


class ComponentKind(str, Enum):
    MODEL = "model"
    LIBRARY = "library"
    GENERIC = "generic"


@dataclass(frozen=True)
class ExternalReference:
    type: str
    url: str
    comment: str | None = None


@dataclass
class ModelCard:
    """Task, I/O and architecture facts about a model component."""

    tasks: list[str] = field(default_factory=list)
    inputs: list[str] = field(default_factory=list)
    outputs: list[str] = field(default_factory=list)
    architecture_family: str | None = None
    model_architecture: str | None = None
    use_cases: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.tasks or self.use_cases or self.architecture_family)


@dataclass
class Component:
    """One node of the BOM graph.

    Attributes:
        ref: Stable reference, unique within the graph.
        kind: Model, known library, or generic Finding-derived component.
        key: Identity key; ``provider::normalized name`` for models, the
            vocabulary key for libraries, the Finding id otherwise.
        task: ML task classification, for models.
        evidence: Locations inherited from the constituent Findings.
        finding_ids: Findings folded into this component.
        origin: Category and detection source of the first model Finding;
            later Findings surfaced another way are listed as related models.
    """

    ref: str
    kind: ComponentKind
    key: str
    name: str
    description: str = ""
    version: str = "latest"
    group: str | None = None
    provider: str | None = None
    purl: str | None = None
    licenses: list[str] = field(default_factory=list)
    task: str | None = None
    model_type: str = "unknown"
    intended_use: str | None = None
    model_card: ModelCard | None = None
    domains: list[str] = field(default_factory=list)
    application_info: str | None = None
    hyperparameters: list[str] = field(default_factory=list)
    limitation: str | None = None
    download_location: str | None = None
    external_references: list[ExternalReference] = field(default_factory=list)
    evidence: list[Evidence] = field(default_factory=list)
    finding_ids: list[str] = field(default_factory=list)
    finding_category: Category | None = None
    severity: Severity | None = None
    weight: int = 0
    detection_sources: list[str] = field(default_factory=list)
    related_models: list[RelatedModel] = field(default_factory=list)
    huggingface: HuggingFaceInfo | None = None
    origin: tuple[Category | None, str] = (None, "")

    @property
    def is_model(self) -> bool:
        return self.kind is ComponentKind.MODEL

    @property
    def is_library(self) -> bool:
        return self.kind is ComponentKind.LIBRARY


@dataclass(frozen=True)
class Relationship:
    """Directed ``source`` depends-on ``target`` edge."""

    source: str
    target: str


@dataclass(frozen=True)
class RootComponent:
    """The analyzed repository, root of every graph."""

    ref: str
    owner: str
    name: str
    full_name: str
    html_url: str
    description: str
    version: str
    topics: tuple[str, ...]
    languages: tuple[str, ...]

    @property
    def purl(self) -> str:
        return f"pkg:github/{self.owner}/{self.name}"

    @classmethod
    def from_repository(cls, repo: RepositoryInfo) -> RootComponent:
        return cls(
            ref=f"repo-{repo.owner}-{repo.repo}",
            owner=repo.owner,
            name=repo.repo,
            full_name=repo.full_name,
            html_url=repo.html_url,
            description=repo.description,
            version=repo.default_branch or "main",
            topics=repo.topics,
            languages=repo.languages,
        )


@dataclass
class ComponentGraph:
    """Components, edges and repository summaries for one Finding selection."""

    root: RootComponent
    components: list[Component]
    relationships: list[Relationship]
    findings: tuple[Finding, ...] = ()
    hardware: HardwareSummary = field(default_factory=HardwareSummary)
    infrastructure: InfraSummary = field(default_factory=InfraSummary)
    governance: GovernanceSummary = field(default_factory=GovernanceSummary)

    @property
    def models(self) -> list[Component]:
        return [c for c in self.components if c.is_model]

    @property
    def libraries(self) -> list[Component]:
        return [c for c in self.components if c.is_library]

    def component(self, ref: str) -> Component | None:
        return next((c for c in self.components if c.ref == ref), None)

    def depends_on(self, ref: str) -> list[str]:
        """Targets of the edges leaving *ref*, in insertion order."""
        return [r.target for r in self.relationships if r.source == ref]

    def adjacency(self) -> dict[str, list[str]]:
        """Every node (root first) mapped to its outgoing edge targets."""
        nodes = [self.root.ref] + [c.ref for c in self.components]
        return {ref: self.depends_on(ref) for ref in nodes}

    def validate(self) -> None:
        """Check the structural invariants every serializer relies on.

        Raises:
            BOMError: On duplicate refs, dangling edges, a component not
                reached from the root exactly once, a library with
                outgoing edges, or a cycle.
        """
        refs = [c.ref for c in self.components]
        if len(set(refs)) != len(refs) or self.root.ref in refs:
            raise BOMError("component references are not unique")
        known = set(refs) | {self.root.ref}
        for rel in self.relationships:
            if rel.source not in known or rel.target not in known:
                raise BOMError(f"dangling relationship {rel.source} -> {rel.target}")
        from_root = [r.target for r in self.relationships if r.source == self.root.ref]
        if sorted(from_root) != sorted(refs):
            raise BOMError("every component needs exactly one edge from the root")
        for lib in self.libraries:
            if self.depends_on(lib.ref):
                raise BOMError(f"library {lib.ref} has outgoing edges")
        # Non-root edges only run model -> library, which rules out cycles.
        model_refs = {c.ref for c in self.models}
        library_refs = {c.ref for c in self.libraries}
        for rel in self.relationships:
            if rel.source == self.root.ref:
                continue
            if rel.source not in model_refs or rel.target not in library_refs:
                raise BOMError(f"unexpected edge {rel.source} -> {rel.target}")


# ---------------------------------------------------------------------------
# Model components
# ---------------------------------------------------------------------------


def model_identity(info: ModelInfo) -> str:
    """``provider::normalized name`` identity key of a model payload."""
    return f"{info.provider.lower()}::{normalize_model_name(info.model_name)}"


def classify_task(info: ModelInfo) -> str | None:
    """Task from the explicit type, the registry tag, then the name."""
    if info.model_type and info.model_type != "unknown":
        return info.model_type
    if info.huggingface is not None and info.huggingface.pipeline_tag:
        return info.huggingface.pipeline_tag
    lower = info.model_name.lower()
    if "gpt" in lower:
        return "text-generation"
    if "embed" in lower:
        return "embeddings"
    return None


def intended_use(task: str | None, provider: str) -> str | None:
    if task in _INTENDED_USE_BY_TASK:
        return _INTENDED_USE_BY_TASK[task]  # type: ignore[index]
    return _INTENDED_USE_BY_PROVIDER.get(provider)


def architecture_family(name: str) -> str | None:
    lower = name.lower()
    for markers, family in _ARCHITECTURE_FAMILIES:
        if any(marker in lower for marker in markers):
            return family
    return None


def build_model_card(info: ModelInfo) -> ModelCard:
    """Model card facts from registry metadata, else from type and name."""
    card = ModelCard()
    hf = info.huggingface
    name = info.model_name.lower()

    def set_task(task: str) -> None:
        card.tasks.append(task)
        io = _IO_BY_TASK.get(task)
        if io is not None:
            card.inputs, card.outputs = list(io[0]), list(io[1])

    if hf is not None and hf.verified:
        if hf.pipeline_tag:
            set_task(hf.pipeline_tag)
        card.architecture_family = hf.library_name or DEFAULT_HUB_LIBRARY
        card.model_architecture = next(
            (t for t in hf.tags if any(m in t for m in _ARCH_TAG_MARKERS)), None
        )
        card.use_cases = [
            t for t in hf.tags
            if not t.startswith("license:") and "pytorch" not in t and "tensorflow" not in t
        ]
        return card

    model_type = info.model_type
    if model_type == "text-generation":
        set_task("text-generation")
        card.architecture_family = architecture_family(name)
    elif model_type == "embeddings":
        set_task("feature-extraction")
    elif model_type in ("text-to-image", "multimodal"):
        set_task(model_type)
    elif any(marker in name for marker in _TEXT_MODEL_MARKERS):
        set_task("text-generation")
    elif "embedding" in name:
        set_task("feature-extraction")
    return card


def _model_component(ref: str, key: str, finding: Finding, info: ModelInfo) -> Component:
    hf = info.huggingface
    task = classify_task(info)
    component = Component(
        ref=ref,
        kind=ComponentKind.MODEL,
        key=key,
        name=info.model_name,
        description=finding.description,
        provider=info.provider,
        task=task,
        model_type=info.model_type,
        intended_use=intended_use(info.model_type, info.provider),
        severity=finding.severity,
        weight=finding.weight,
        finding_category=finding.category,
        huggingface=hf,
        origin=(finding.category, info.detection_source),
    )
    card = build_model_card(info)
    component.model_card = None if card.is_empty else card

    if info.provider == HUGGINGFACE:
        component.purl = f"pkg:huggingface/{info.model_name}"
        if "/" in info.model_name:
            org, _, short = info.model_name.rpartition("/")
            component.group = (hf.author if hf is not None and hf.author else None) or org
            component.name = short
        component.download_location = f"https://huggingface.co/{info.model_name}"
        component.external_references.append(ExternalReference(
            "vcs", f"https://huggingface.co/{info.model_name}", "Model source"
        ))
    else:
        component.purl = f"pkg:ml/{slugify(info.provider.lower())}/{info.model_name}"
        docs = _PROVIDER_DOCS.get(info.provider)
        if docs is not None:
            component.external_references.append(ExternalReference("documentation", docs[1], docs[0]))

    if hf is not None and hf.license:
        component.licenses.append(hf.license)

    if info.model_type and info.model_type != "unknown":
        component.domains = list(_DOMAINS_BY_TASK.get(info.model_type, ()))
    elif hf is not None and hf.pipeline_tag:
        component.domains = list(hf.tags[:5])

    if hf is not None:
        if hf.verified:
            component.application_info = (
                f"HuggingFace model for {hf.pipeline_tag or task or 'AI tasks'}. "
                f"Downloads: {hf.downloads:,}, Likes: {hf.likes}"
            )
        else:
            component.application_info = f"HuggingFace model: {info.model_name} (unverified)"
        component.hyperparameters = [
            t for t in hf.tags if any(m in t for m in _HYPERPARAMETER_MARKERS)
        ]
    elif info.model_type == "embeddings":
        component.application_info = (
            f"{info.provider} embedding model for semantic search and vector operations"
        )
    elif info.model_type == "text-to-image":
        component.application_info = f"{info.provider} image generation model"
    else:
        component.application_info = f"Commercial AI model from {info.provider}"

    if finding.severity in (Severity.MEDIUM, Severity.LOW):
        component.limitation = "Detection confidence may vary. Manual verification recommended."
    return component


def _merge_model(component: Component, finding: Finding, info: ModelInfo) -> None:
    """Fold another Finding for the same model into *component*.

    Fields the first Finding left empty are filled from this one. When the
    Finding surfaced the model another way (different category or
    detection source), its spelling is recorded as a related model.
    """
    component.finding_ids.append(finding.id)
    if finding.weight > component.weight:
        component.weight = finding.weight
    if component.severity is None or finding.severity > component.severity:
        component.severity = finding.severity
    if component.huggingface is None and info.huggingface is not None:
        component.huggingface = info.huggingface
    if component.task is None:
        component.task = classify_task(info)
    if component.model_type == "unknown" and info.model_type:
        component.model_type = info.model_type
    if component.intended_use is None:
        component.intended_use = intended_use(info.model_type, info.provider)
    if component.model_card is None:
        card = build_model_card(info)
        component.model_card = None if card.is_empty else card
    if not component.domains and info.model_type in _DOMAINS_BY_TASK:
        component.domains = list(_DOMAINS_BY_TASK[info.model_type])
    if not component.licenses and info.huggingface is not None and info.huggingface.license:
        component.licenses.append(info.huggingface.license)

    if (finding.category, info.detection_source) != component.origin:
        related = RelatedModel(info.provider, info.model_name)
        if related not in component.related_models:
            component.related_models.append(related)


def _model_evidence(finding: Finding, info: ModelInfo) -> list[Evidence]:
    return list(info.locations or finding.evidence)


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------


class _RefAllocator:
    def __init__(self, reserved: str) -> None:
        self._used = {reserved}

    def allocate(self, base: str) -> str:
        ref = base
        suffix = 2
        while ref in self._used:
            ref = f"{base}-{suffix}"
            suffix += 1
        self._used.add(ref)
        return ref


def _generic_component(ref: str, finding: Finding) -> Component:
    return Component(
        ref=ref,
        kind=ComponentKind.GENERIC,
        key=finding.id,
        name=finding.title,
        description=finding.description,
        version="detected",
        evidence=list(finding.evidence[:GENERIC_EVIDENCE_LIMIT]),
        finding_ids=[finding.id],
        finding_category=finding.category,
        severity=finding.severity,
        weight=finding.weight,
        download_location="NOASSERTION",
    )


def _library_component(key: str) -> Component:
    lib = KNOWN_LIBRARIES[key]
    return Component(
        ref=f"lib-{key}",
        kind=ComponentKind.LIBRARY,
        key=key,
        name=lib.name,
        description=lib.description,
        version="detected",
        purl=lib.purl,
        download_location=lib.url,
        external_references=[ExternalReference("website", lib.url)],
    )


def build_component_graph(repository: RepositoryInfo, findings: Iterable[Finding]) -> ComponentGraph:
    """Resolve *findings* into the component graph every serializer renders.

    Args:
        repository: The analyzed repository, which becomes the root node.
        findings: Caller-selected merged Findings.

    Returns:
        A validated ``ComponentGraph``.
    """
    selected = list(findings)
    root = RootComponent.from_repository(repository)
    refs = _RefAllocator(root.ref)

    generic: list[Component] = []
    models: dict[str, Component] = {}
    library_keys: dict[str, None] = {}

    for finding in selected:
        info = finding.model_info
        if info is None:
            generic.append(_generic_component(refs.allocate(f"component-{slugify(finding.id)}"), finding))
            continue

        key = model_identity(info)
        component = models.get(key)
        if component is None:
            ref = refs.allocate(
                f"model-{slugify(info.provider.lower())}-{slugify(normalize_model_name(info.model_name))}"
            )
            component = _model_component(ref, key, finding, info)
            component.finding_ids.append(finding.id)
            models[key] = component
            logger.debug("Model component %s from %s", ref, finding.id)
        else:
            _merge_model(component, finding, info)
            logger.debug("Merged %s into model component %s", finding.id, component.ref)

        for evidence in _model_evidence(finding, info):
            if len(component.evidence) >= MODEL_EVIDENCE_LIMIT:
                break
            if evidence not in component.evidence:
                component.evidence.append(evidence)
        if info.detection_source and info.detection_source not in component.detection_sources:
            component.detection_sources.append(info.detection_source)
        for related in info.related_models:
            if related not in component.related_models:
                component.related_models.append(related)

        if info.provider == HUGGINGFACE:
            hub_library = info.huggingface.library_name if info.huggingface is not None else None
            implied = library_key(hub_library) or DEFAULT_HUB_LIBRARY
            library_keys.setdefault(implied, None)

    for finding in selected:
        if finding.category is Category.DEPENDENCIES:
            for key in libraries_in_description(finding.description):
                library_keys.setdefault(key, None)

    libraries = [_library_component(key) for key in library_keys]
    components = generic + list(models.values()) + libraries

    relationships = [Relationship(root.ref, c.ref) for c in components]
    present = {lib.key: lib.ref for lib in libraries}
    for model in models.values():
        for lib_key in libraries_for_task(model.task):
            if lib_key in present:
                relationships.append(Relationship(model.ref, present[lib_key]))

    graph = ComponentGraph(
        root=root,
        components=components,
        relationships=relationships,
        findings=tuple(selected),
        hardware=summarize_hardware(selected),
        infrastructure=summarize_infrastructure(selected),
        governance=summarize_governance(selected),
    )
    graph.validate()
    logger.info(
        "Component graph: %d models, %d libraries, %d other components",
        len(models), len(libraries), len(generic),
    )
    return graph

