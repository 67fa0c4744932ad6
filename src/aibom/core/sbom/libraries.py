"""Controlled vocabulary of ML framework libraries.

Library components are only ever created for names in this vocabulary.
Each model task maps onto the frameworks an inference stack for that task
needs; a model component depends on those of them present in the graph.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class KnownLibrary:
    key: str
    name: str
    description: str
    purl: str
    url: str


KNOWN_LIBRARIES: dict[str, KnownLibrary] = {
    lib.key: lib
    for lib in (
        KnownLibrary(
            "transformers", "Transformers",
            "State-of-the-art Machine Learning for PyTorch, TensorFlow, and JAX",
            "pkg:pypi/transformers", "https://huggingface.co/docs/transformers",
        ),
        KnownLibrary(
            "pytorch", "PyTorch",
            "Tensors and Dynamic neural networks in Python with strong GPU acceleration",
            "pkg:pypi/torch", "https://pytorch.org",
        ),
        KnownLibrary(
            "tensorflow", "TensorFlow",
            "An Open Source Machine Learning Framework for Everyone",
            "pkg:pypi/tensorflow", "https://tensorflow.org",
        ),
        KnownLibrary(
            "diffusers", "Diffusers",
            "State-of-the-art diffusion models for image and audio generation",
            "pkg:pypi/diffusers", "https://huggingface.co/docs/diffusers",
        ),
        KnownLibrary(
            "sentence-transformers", "Sentence Transformers",
            "Compute dense vector representations for sentences, paragraphs, and images",
            "pkg:pypi/sentence-transformers", "https://www.sbert.net",
        ),
    )
}

# Substring of a dependency description -> library key.
_DESCRIPTION_MARKERS: tuple[tuple[str, str], ...] = (
    ("transformers", "transformers"),
    ("torch", "pytorch"),
    ("tensorflow", "tensorflow"),
    ("diffusers", "diffusers"),
    ("sentence-transformers", "sentence-transformers"),
)

# Registry ``library_name`` values that differ from the vocabulary key.
_LIBRARY_ALIASES: dict[str, str] = {
    "torch": "pytorch",
    "pytorch": "pytorch",
    "tf": "tensorflow",
    "keras": "tensorflow",
}

TEXT_TASKS: frozenset[str] = frozenset({"text-generation", "feature-extraction", "embeddings"})
IMAGE_TASKS: frozenset[str] = frozenset({"text-to-image"})

DEFAULT_HUB_LIBRARY = "transformers"


def libraries_for_task(task: str | None) -> tuple[str, ...]:
    """Library keys a model of *task* runs on, in edge order."""
    if task in TEXT_TASKS:
        return ("transformers", "pytorch")
    if task in IMAGE_TASKS:
        return ("diffusers", "pytorch")
    return ()


def libraries_in_description(description: str) -> list[str]:
    """Known libraries named in a dependency Finding's description."""
    lower = description.lower()
    return [key for marker, key in _DESCRIPTION_MARKERS if marker in lower]


def library_key(name: str | None) -> str | None:
    """Vocabulary key for a registry ``library_name``, or None if unknown."""
    if not name:
        return None
    lower = name.lower()
    key = _LIBRARY_ALIASES.get(lower, lower)
    return key if key in KNOWN_LIBRARIES else None
