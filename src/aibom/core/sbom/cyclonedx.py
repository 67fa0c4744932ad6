"""CycloneDX 1.7 serializers (JSON and XML) over the component graph.

Both flavors render the same ``ComponentGraph``: one ``component`` per
graph node and one ``dependency`` entry per node, root first. Evidence
locations and detection metadata travel as ``properties``.

The JSON document is built as a plain dict and serialised with
``json.dumps``; the XML document is built with ``xml.etree.ElementTree``
from the same dict so the two cannot drift apart.

References
----------
.. [CDX17] CycloneDX Specification v1.7. https://cyclonedx.org/specification/overview/
"""

from __future__ import annotations

import json
import uuid
import xml.etree.ElementTree as ET
from datetime import datetime
from typing import Any

from aibom import __version__
from aibom.core.findings.models import Category
from aibom.core.sbom.graph import Component, ComponentGraph, ComponentKind, ModelCard

SPEC_VERSION = "1.7"
XML_NAMESPACE = f"http://cyclonedx.org/schema/bom/{SPEC_VERSION}"
TOOL_REF = "tool-aibom"
TOOL_NAME = "aibom"


def _prop(name: str, value: str) -> dict[str, str]:
    return {"name": name, "value": value}


# ---------------------------------------------------------------------------
# Dict construction
# ---------------------------------------------------------------------------


def root_properties(graph: ComponentGraph) -> list[dict[str, str]]:
    """Repository properties, plus hardware, infrastructure and governance flags."""
    root = graph.root
    props = [
        _prop("github:topics", ", ".join(root.topics)),
        _prop("github:languages", ", ".join(root.languages)),
    ]
    hardware = graph.hardware
    if hardware.detected:
        props.append(_prop("aibom:hardware:detected", "true"))
        if hardware.types:
            props.append(_prop("aibom:hardware:types", ", ".join(hardware.types)))
        if hardware.libraries:
            props.append(_prop("aibom:hardware:libraries", ", ".join(hardware.libraries)))
    infra = graph.infrastructure
    if infra.detected:
        props.append(_prop("aibom:infrastructure:detected", "true"))
        if infra.all_platforms:
            props.append(_prop("aibom:infrastructure:platforms", ", ".join(infra.all_platforms)))
    governance = graph.governance
    if governance.count:
        props.append(_prop("aibom:governance:documented", "true"))
        if governance.has_limitations:
            props.append(_prop("aibom:governance:limitations", "documented"))
        if governance.has_bias_fairness:
            props.append(_prop("aibom:governance:bias-fairness", "documented"))
        if governance.has_ethical:
            props.append(_prop("aibom:governance:ethical", "documented"))
    return props


def component_type(component: Component) -> str:
    if component.kind is ComponentKind.MODEL:
        return "machine-learning-model"
    if component.kind is ComponentKind.LIBRARY:
        return "library"
    return "library" if component.finding_category is Category.DEPENDENCIES else "framework"


def component_properties(component: Component) -> list[dict[str, str]]:
    props: list[dict[str, str]] = []
    severity = component.severity.label if component.severity is not None else "info"

    if component.kind is ComponentKind.MODEL:
        for source in component.detection_sources:
            props.append(_prop("cdx:detection:source", source))
        if component.related_models:
            props.append(_prop(
                "cdx:related:models",
                json.dumps([r.to_dict() for r in component.related_models]),
            ))
        if component.task:
            props.append(_prop("category", component.task))
        if component.intended_use:
            props.append(_prop("intended-use", component.intended_use))
        props += [
            _prop("cdx:detection:method", "automated-code-analysis"),
            _prop("cdx:detection:confidence", severity),
            _prop("cdx:detection:weight", str(component.weight)),
        ]
        hf = component.huggingface
        if hf is not None:
            props += [
                _prop("huggingface:verified", str(hf.verified).lower()),
                _prop("huggingface:downloads", str(hf.downloads)),
                _prop("huggingface:likes", str(hf.likes)),
            ]
        for index, evidence in enumerate(component.evidence, start=1):
            props.append(_prop(f"evidence:location:{index}", evidence.location))
            if evidence.snippet:
                props.append(_prop(f"evidence:snippet:{index}", evidence.snippet))
    elif component.kind is ComponentKind.GENERIC:
        assert component.finding_category is not None
        props += [
            _prop("cdx:detection:category", component.finding_category.value),
            _prop("cdx:detection:severity", severity),
            _prop("cdx:detection:weight", str(component.weight)),
        ]
        for index, evidence in enumerate(component.evidence):
            props.append(_prop(f"cdx:evidence:location:{index}", evidence.location))
            if evidence.snippet:
                props.append(_prop(f"cdx:evidence:snippet:{index}", evidence.snippet))
    return props


def model_card_dict(card: ModelCard) -> dict[str, Any]:
    params: dict[str, Any] = {"tasks": [{"task": t} for t in card.tasks]}
    if card.architecture_family:
        params["architectureFamily"] = card.architecture_family
    if card.model_architecture:
        params["modelArchitecture"] = card.model_architecture
    if card.inputs:
        params["inputs"] = [{"format": f} for f in card.inputs]
    if card.outputs:
        params["outputs"] = [{"format": f} for f in card.outputs]
    considerations: dict[str, Any] = {}
    if card.use_cases:
        considerations["useCases"] = list(card.use_cases)
    return {"modelParameters": params, "considerations": considerations}


def component_dict(component: Component) -> dict[str, Any]:
    data: dict[str, Any] = {"type": component_type(component), "bom-ref": component.ref}
    if component.kind is ComponentKind.MODEL and component.provider:
        data["author"] = component.provider
    if component.group:
        data["group"] = component.group
    data["name"] = component.name
    data["version"] = component.version
    if component.description:
        data["description"] = component.description
    if component.kind is not ComponentKind.LIBRARY:
        data["scope"] = "required"
    if component.purl:
        data["purl"] = component.purl
    if component.licenses:
        data["licenses"] = [{"license": {"id": lic}} for lic in component.licenses]
    if component.external_references:
        refs = []
        for ref in component.external_references:
            entry: dict[str, str] = {"type": ref.type, "url": ref.url}
            if ref.comment:
                entry["comment"] = ref.comment
            refs.append(entry)
        data["externalReferences"] = refs
    if component.model_card is not None:
        data["modelCard"] = model_card_dict(component.model_card)
    props = component_properties(component)
    if props:
        data["properties"] = props
    return data


def cyclonedx_dict(graph: ComponentGraph, timestamp: datetime, serial: str | None = None) -> dict[str, Any]:
    """The CycloneDX document for *graph* as a JSON-ready dict.

    Args:
        graph: Component graph to render.
        timestamp: Analysis time written to ``metadata.timestamp``.
        serial: ``urn:uuid:`` serial number; a fresh UUID-4 when omitted.
    """
    root = graph.root
    return {
        "bomFormat": "CycloneDX",
        "specVersion": SPEC_VERSION,
        "version": 1,
        "serialNumber": serial or f"urn:uuid:{uuid.uuid4()}",
        "metadata": {
            "timestamp": timestamp.isoformat(),
            "tools": {
                "components": [{
                    "type": "application",
                    "bom-ref": TOOL_REF,
                    "name": TOOL_NAME,
                    "version": __version__,
                    "description": "Automated AI/LLM detection and AI BOM generation",
                }]
            },
            "component": {
                "type": "application",
                "bom-ref": root.ref,
                "group": root.owner,
                "name": root.name,
                "version": root.version,
                "description": root.description or "",
                "purl": root.purl,
                "externalReferences": [
                    {"type": "vcs", "url": root.html_url},
                    {"type": "website", "url": root.html_url},
                ],
                "properties": root_properties(graph),
            },
        },
        "components": [component_dict(c) for c in graph.components],
        "dependencies": [
            {"ref": ref, "dependsOn": targets} for ref, targets in graph.adjacency().items()
        ],
    }


def to_cyclonedx_json(graph: ComponentGraph, timestamp: datetime, indent: int = 2) -> str:
    return json.dumps(cyclonedx_dict(graph, timestamp), indent=indent)


# ---------------------------------------------------------------------------
# XML
# ---------------------------------------------------------------------------


def _text(parent: ET.Element, tag: str, value: str | None) -> None:
    if value:
        ET.SubElement(parent, tag).text = value


def _component_element(parent: ET.Element, data: dict[str, Any]) -> None:
    elem = ET.SubElement(parent, "component", {"type": data["type"], "bom-ref": data["bom-ref"]})
    for tag in ("author", "group", "name", "version", "description", "scope"):
        _text(elem, tag, data.get(tag))
    if data.get("licenses"):
        licenses = ET.SubElement(elem, "licenses")
        for lic in data["licenses"]:
            _text(ET.SubElement(licenses, "license"), "id", lic["license"]["id"])
    _text(elem, "purl", data.get("purl"))
    if data.get("externalReferences"):
        refs = ET.SubElement(elem, "externalReferences")
        for ref in data["externalReferences"]:
            ref_elem = ET.SubElement(refs, "reference", {"type": ref["type"]})
            _text(ref_elem, "url", ref["url"])
            _text(ref_elem, "comment", ref.get("comment"))
    if data.get("properties"):
        props = ET.SubElement(elem, "properties")
        for prop in data["properties"]:
            ET.SubElement(props, "property", {"name": prop["name"]}).text = prop["value"]
    if data.get("modelCard"):
        _model_card_element(elem, data["modelCard"])


def _model_card_element(parent: ET.Element, card: dict[str, Any]) -> None:
    card_elem = ET.SubElement(parent, "modelCard")
    params = card["modelParameters"]
    params_elem = ET.SubElement(card_elem, "modelParameters")
    if params.get("tasks"):
        tasks = ET.SubElement(params_elem, "tasks")
        for task in params["tasks"]:
            _text(ET.SubElement(tasks, "task"), "task", task["task"])
    _text(params_elem, "architectureFamily", params.get("architectureFamily"))
    _text(params_elem, "modelArchitecture", params.get("modelArchitecture"))
    for key in ("inputs", "outputs"):
        if params.get(key):
            group = ET.SubElement(params_elem, key)
            for item in params[key]:
                _text(ET.SubElement(group, "input" if key == "inputs" else "output"), "format", item["format"])
    use_cases = card["considerations"].get("useCases")
    if use_cases:
        considerations = ET.SubElement(card_elem, "considerations")
        cases = ET.SubElement(considerations, "useCases")
        for case in use_cases:
            _text(cases, "useCase", case)


def to_cyclonedx_xml(graph: ComponentGraph, timestamp: datetime) -> str:
    """CycloneDX XML rendering of *graph*, built from the same dict as the JSON."""
    data = cyclonedx_dict(graph, timestamp)
    bom = ET.Element("bom", {
        "xmlns": XML_NAMESPACE,
        "version": str(data["version"]),
        "serialNumber": data["serialNumber"],
    })

    metadata = ET.SubElement(bom, "metadata")
    _text(metadata, "timestamp", data["metadata"]["timestamp"])
    tools = ET.SubElement(ET.SubElement(metadata, "tools"), "components")
    for tool in data["metadata"]["tools"]["components"]:
        _component_element(tools, tool)
    _component_element(metadata, data["metadata"]["component"])

    components = ET.SubElement(bom, "components")
    for component in data["components"]:
        _component_element(components, component)

    dependencies = ET.SubElement(bom, "dependencies")
    for entry in data["dependencies"]:
        dep = ET.SubElement(dependencies, "dependency", {"ref": entry["ref"]})
        for target in entry["dependsOn"]:
            ET.SubElement(dep, "dependency", {"ref": target})

    ET.indent(bom, space="  ")
    body = ET.tostring(bom, encoding="unicode")
    return f'<?xml version="1.0" encoding="UTF-8"?>\n{body}\n'
