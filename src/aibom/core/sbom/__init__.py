"""AI Bill of Materials synthesis and serialization.

Merged Findings are resolved into a component graph (repository root,
model and library components, model-to-library edges) which four
serializers render:

- **CycloneDX 1.7 JSON and XML**: the standard attribute-graph BOM, with
  ``machine-learning-model`` components and model cards.
- **SPDX 3.0.1 JSON-LD**: ``ai_AIPackage`` elements and ``dependsOn``
  relationships under the AI profile.
- **Extended AIBOM**: the CycloneDX document wrapped with hardware,
  infrastructure, governance, risk and gap metadata.
"""

from aibom.core.sbom.gaps import DocumentPresence, Gap, find_gaps
from aibom.core.sbom.generator import FORMATS, AIBOMGenerator, OutputFormat
from aibom.core.sbom.graph import (
    Component,
    ComponentGraph,
    ComponentKind,
    Relationship,
    RootComponent,
    build_component_graph,
)

__all__ = [
    "AIBOMGenerator",
    "Component",
    "ComponentGraph",
    "ComponentKind",
    "DocumentPresence",
    "FORMATS",
    "Gap",
    "OutputFormat",
    "Relationship",
    "RootComponent",
    "build_component_graph",
    "find_gaps",
]
