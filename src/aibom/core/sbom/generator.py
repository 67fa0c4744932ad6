"""AIBOMGenerator: one selection of Findings, four BOM documents.

The generator builds the component graph once for the caller's selection
(every merged Finding minus the excluded ids) and hands that same graph to
each serializer, so the four documents always agree on components and
topology. The gap list is computed once and reused by the extended
format and the CLI.

Design Decision: Pure Python Implementation
-------------------------------------------
Documents are built as Python dicts (or an ``ElementTree`` for XML) and
serialised with the standard library. There is no runtime dependency on
``cyclonedx-python-lib`` or ``spdx-tools``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import cached_property
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Iterable

from aibom.core.sbom.cyclonedx import to_cyclonedx_json, to_cyclonedx_xml
from aibom.core.sbom.extended import to_extended_json
from aibom.core.sbom.gaps import DocumentPresence, Gap, find_gaps
from aibom.core.sbom.graph import ComponentGraph, build_component_graph
from aibom.core.sbom.spdx import to_spdx_json
from aibom.exceptions import BOMError

if TYPE_CHECKING:
    from aibom.core.findings.models import Finding
    from aibom.core.pipeline.session import AnalysisResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OutputFormat:
    """One document flavor the generator can emit."""

    name: str
    filename: str
    description: str


FORMATS: dict[str, OutputFormat] = {
    f.name: f
    for f in (
        OutputFormat("cyclonedx-json", "aibom.cdx.json", "CycloneDX 1.7 JSON"),
        OutputFormat("cyclonedx-xml", "aibom.cdx.xml", "CycloneDX 1.7 XML"),
        OutputFormat("spdx", "aibom.spdx.jsonld", "SPDX 3.0.1 JSON-LD with the AI profile"),
        OutputFormat("extended", "aibom.extended.json", "CycloneDX plus hardware, governance and gap metadata"),
    )
}


class AIBOMGenerator:
    """Render BOM documents for one analysis result.

    Usage::

        gen = AIBOMGenerator(result, exclude={"hf-model-bert-base-uncased"})
        paths = gen.write_all(Path("out"))
    """

    def __init__(self, result: AnalysisResult, exclude: Iterable[str] = ()) -> None:
        self._result = result
        self._exclude = frozenset(exclude)
        unknown = self._exclude - {f.id for f in result.findings}
        if unknown:
            logger.warning("Ignoring unknown finding id(s): %s", ", ".join(sorted(unknown)))

    # -- Derived state ------------------------------------------------------

    @cached_property
    def findings(self) -> list[Finding]:
        """The selected Findings."""
        return self._result.select(self._exclude)

    @cached_property
    def graph(self) -> ComponentGraph:
        return build_component_graph(self._result.repository, self.findings)

    @cached_property
    def documents(self) -> DocumentPresence:
        return DocumentPresence.scan(self._result.raw_findings, self._result.file_paths)

    @cached_property
    def gaps(self) -> list[Gap]:
        return find_gaps(self.findings, self.documents)

    # -- Rendering ----------------------------------------------------------

    def _renderer(self, name: str) -> Callable[[], str]:
        timestamp = self._result.analyzed_at
        renderers: dict[str, Callable[[], str]] = {
            "cyclonedx-json": lambda: to_cyclonedx_json(self.graph, timestamp),
            "cyclonedx-xml": lambda: to_cyclonedx_xml(self.graph, timestamp),
            "spdx": lambda: to_spdx_json(self.graph, timestamp),
            "extended": lambda: to_extended_json(self.graph, timestamp, self.documents, self.gaps),
        }
        try:
            return renderers[name]
        except KeyError:
            raise BOMError(
                f"unknown output format {name!r}; choose from {', '.join(FORMATS)}"
            ) from None

    def generate(self, name: str) -> str:
        """Render the document for format *name*.

        Raises:
            BOMError: If *name* is not a known format.
        """
        return self._renderer(name)()

    def generate_all(self, names: Iterable[str] | None = None) -> dict[str, str]:
        selected = list(names) if names is not None else list(FORMATS)
        return {name: self.generate(name) for name in selected}

    def write_all(self, output_dir: Path, names: Iterable[str] | None = None) -> dict[str, Path]:
        """Write the selected documents into *output_dir*.

        Creates the directory if it does not exist.

        Returns:
            Format name mapped to the written path.

        Raises:
            BOMError: On an unknown format or an unwritable directory.
        """
        documents = self.generate_all(names)
        written: dict[str, Path] = {}
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
            for name, text in documents.items():
                path = output_dir / FORMATS[name].filename
                path.write_text(text, encoding="utf-8")
                logger.debug("Wrote %s", path)
                written[name] = path
        except OSError as exc:
            raise BOMError(f"cannot write to {output_dir}: {exc}") from exc
        return written

    # -- Queries ------------------------------------------------------------

    def summary(self) -> dict[str, Any]:
        """Counts for terminal display.

        Returns a dict with ``findings``, ``excluded``, ``components``,
        ``models``, ``libraries``, ``relationships`` and ``gaps``.
        """
        graph = self.graph
        return {
            "findings": len(self.findings),
            "excluded": len(self._result.findings) - len(self.findings),
            "components": len(graph.components),
            "models": len(graph.models),
            "libraries": len(graph.libraries),
            "relationships": len(graph.relationships),
            "gaps": len(self.gaps),
        }
