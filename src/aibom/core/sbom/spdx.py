"""SPDX 3.0.1 JSON-LD serializer over the component graph.

Models become ``ai_AIPackage`` elements, every other component a
``software_Package``; each graph edge becomes one ``dependsOn``
``Relationship`` element. Element ids live under a per-document
namespace, the only random part of the output.

References
----------
.. [SPDX3] SPDX Specification 3.0.1. https://spdx.github.io/spdx-spec/v3.0.1/
"""

from __future__ import annotations

import json
import secrets
from datetime import datetime
from typing import Any

from aibom import __version__
from aibom.core.findings.models import Category
from aibom.core.sbom.graph import Component, ComponentGraph, ComponentKind

SPDX_VERSION = "3.0.1"
SPDX_CONTEXT = f"https://spdx.org/rdf/{SPDX_VERSION}/spdx-context.jsonld"
CREATED_BY = f"Tool: aibom-{__version__}"


def _creation_info(created: str) -> dict[str, Any]:
    return {
        "type": "CreationInfo",
        "specVersion": SPDX_VERSION,
        "created": created,
        "createdBy": [CREATED_BY],
    }


def _purl(identifier: str) -> list[dict[str, str]]:
    return [{
        "type": "ExternalIdentifier",
        "externalIdentifierType": "purl",
        "identifier": identifier,
    }]


def _model_element(element_id: str, component: Component, created: str) -> dict[str, Any]:
    element: dict[str, Any] = {
        "@id": element_id,
        "type": "ai_AIPackage",
        "spdxId": element_id,
        "creationInfo": _creation_info(created),
        "name": component.name if component.group is None else f"{component.group}/{component.name}",
        "summary": component.description,
        "packageVersion": component.version,
        "suppliedBy": {"type": "Organization", "name": component.provider or "NOASSERTION"},
        "downloadLocation": component.download_location or "NOASSERTION",
    }
    if component.detection_sources:
        element["detectionMethod"] = ", ".join(component.detection_sources)
    if component.related_models:
        element["relatedElement"] = [
            {"type": "alternate", "provider": r.provider, "modelName": r.model_name}
            for r in component.related_models
        ]
    if component.task:
        element["typeOfModel"] = [component.task]
    if component.domains:
        element["domain"] = list(component.domains)
    if component.licenses:
        element["licenseConcluded"] = component.licenses[0]
    if component.application_info:
        element["informationAboutApplication"] = component.application_info
    if component.hyperparameters:
        element["hyperparameter"] = [
            {"type": "DictionaryEntry", "key": "parameter", "value": h}
            for h in component.hyperparameters
        ]
    if component.limitation:
        element["limitation"] = component.limitation
    if component.purl:
        element["externalIdentifier"] = _purl(component.purl)
    return element


def _package_element(element_id: str, component: Component, created: str) -> dict[str, Any]:
    is_library = component.kind is ComponentKind.LIBRARY or (
        component.finding_category is Category.DEPENDENCIES
    )
    element: dict[str, Any] = {
        "@id": element_id,
        "type": "software_Package",
        "spdxId": element_id,
        "creationInfo": _creation_info(created),
        "name": component.name,
        "summary": component.description,
        "packageVersion": component.version,
        "downloadLocation": component.download_location or "NOASSERTION",
        "primaryPurpose": "library" if is_library else "other",
    }
    if component.purl:
        element["externalIdentifier"] = _purl(component.purl)
    return element


def spdx_dict(graph: ComponentGraph, timestamp: datetime, namespace_id: str | None = None) -> dict[str, Any]:
    """The SPDX 3.0.1 JSON-LD document for *graph*.

    Args:
        graph: Component graph to render.
        timestamp: Analysis time used for every ``creationInfo``.
        namespace_id: Document namespace suffix; random when omitted.
    """
    root = graph.root
    created = timestamp.isoformat()
    namespace = f"https://github.com/{root.owner}/{root.name}/spdx/{namespace_id or secrets.token_hex(8)}"
    repo_id = f"{namespace}/Repository"

    document: dict[str, Any] = {
        "@context": SPDX_CONTEXT,
        "@id": f"{namespace}/SpdxDocument",
        "type": "SpdxDocument",
        "spdxId": f"{namespace}/SpdxDocument",
        "creationInfo": {**_creation_info(created), "profile": ["core", "software", "ai"]},
        "name": f"AI BOM for {root.full_name}",
        "namespaceMap": [{"prefix": "ex", "namespace": namespace}],
        "element": [],
        "rootElement": [repo_id],
    }

    elements: list[dict[str, Any]] = [{
        "@id": repo_id,
        "type": "software_Package",
        "spdxId": repo_id,
        "creationInfo": _creation_info(created),
        "name": root.name,
        "summary": root.description or "",
        "packageVersion": root.version,
        "downloadLocation": root.html_url,
        "homepage": root.html_url,
        "sourceInfo": f"GitHub repository: {root.full_name}",
        "primaryPurpose": "application",
        "externalIdentifier": _purl(root.purl),
    }]

    ids = {root.ref: repo_id}
    for component in graph.components:
        prefix = "AIPackage" if component.kind is ComponentKind.MODEL else "Package"
        element_id = f"{namespace}/{prefix}-{component.ref}"
        ids[component.ref] = element_id
        if component.kind is ComponentKind.MODEL:
            elements.append(_model_element(element_id, component, created))
        else:
            elements.append(_package_element(element_id, component, created))

    for index, rel in enumerate(graph.relationships):
        rel_id = f"{namespace}/Relationship-{index}"
        elements.append({
            "@id": rel_id,
            "type": "Relationship",
            "spdxId": rel_id,
            "creationInfo": _creation_info(created),
            "relationshipType": "dependsOn",
            "from": ids[rel.source],
            "to": [ids[rel.target]],
            "completeness": "noAssertion",
        })

    document["element"] = elements
    return document


def to_spdx_json(graph: ComponentGraph, timestamp: datetime, indent: int = 2) -> str:
    return json.dumps(spdx_dict(graph, timestamp), indent=indent)
