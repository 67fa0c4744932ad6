"""Documentation parser.

Reads README, model cards and policy documents, splits them into
Markdown sections, and files each section under the governance fields
its header names (intended use, limitations, ethics, bias, security).
Model cards with YAML frontmatter additionally yield their metadata and
any evaluation results as performance metrics.

This unit produces no Findings; its ``ParsedDocs`` feed the risk unit.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any

import yaml

from aibom.context.base import RepoFile
from aibom.detectors.base import DetectionUnit, UnitInput, UnitResult, complete
from aibom.detectors.catalogs import DOC_SECTION_KEYWORDS, DOCUMENTATION_FILES

logger = logging.getLogger(__name__)

DOC_FILE_LIMIT = 20
SECTION_TEXT_LIMIT = 500

_HEADER = re.compile(r"^#{1,3}\s+")
_FRONTMATTER = re.compile(r"^---\s*\n(.*?)\n---\s*\n", re.S)
_INTENDED_USE = re.compile(r"(?:intended use|purpose)[:\s]+(.*?)(?:\n\n|$)", re.I | re.S)


@dataclass(frozen=True)
class DocExtract:
    file: str
    text: str

    def to_dict(self) -> dict[str, str]:
        return {"file": self.file, "text": self.text}


@dataclass
class ParsedDocs:
    """Structured extracts from the repository's documentation."""

    intended_use: list[DocExtract] = field(default_factory=list)
    limitations: list[DocExtract] = field(default_factory=list)
    ethical_considerations: list[DocExtract] = field(default_factory=list)
    bias_information: list[DocExtract] = field(default_factory=list)
    security_notes: list[DocExtract] = field(default_factory=list)
    files: list[str] = field(default_factory=list)
    model_card: dict[str, Any] = field(default_factory=dict)
    model_card_file: str | None = None
    performance_metrics: list[dict[str, str]] = field(default_factory=list)

    def sections(self) -> dict[str, list[DocExtract]]:
        return {
            "intended_use": self.intended_use,
            "limitations": self.limitations,
            "ethical_considerations": self.ethical_considerations,
            "bias_information": self.bias_information,
            "security_notes": self.security_notes,
        }

    def all_text(self) -> str:
        return " ".join(e.text for extracts in self.sections().values() for e in extracts)

    def has_file(self, needle: str) -> bool:
        return any(needle in f.lower() for f in self.files)


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------


def parse_frontmatter(content: str) -> dict[str, Any]:
    """YAML frontmatter between leading ``---`` markers, or ``{}``.

    Malformed YAML and non-mapping frontmatter are treated as absent.
    """
    if not content:
        return {}
    match = _FRONTMATTER.match(content)
    if not match:
        return {}
    try:
        data = yaml.safe_load(match.group(1))
    except yaml.YAMLError as exc:
        logger.debug("Ignoring malformed frontmatter: %s", exc)
        return {}
    return data if isinstance(data, dict) else {}


def parse_eval_results(results: Any) -> list[dict[str, str]]:
    """Flatten evaluation results into ``{"type", "value"}`` metrics.

    Accepts a list of ``{metric_type, metric_value}`` records, a list of
    plain mappings, a single mapping, or a Hugging Face ``model-index``
    list (``results[].metrics[]``).
    """
    if not results:
        return []
    metrics: list[dict[str, str]] = []
    if isinstance(results, dict):
        results = [results]
    if not isinstance(results, list):
        return []
    for entry in results:
        if not isinstance(entry, dict):
            continue
        if "results" in entry and isinstance(entry["results"], list):
            for result in entry["results"]:
                for metric in (result or {}).get("metrics") or []:
                    if isinstance(metric, dict) and metric.get("value") is not None:
                        metrics.append({
                            "type": str(metric.get("type") or metric.get("name") or "metric"),
                            "value": str(metric["value"]),
                        })
        elif "metric_type" in entry and entry.get("metric_value") is not None:
            metrics.append({"type": str(entry["metric_type"]), "value": str(entry["metric_value"])})
        else:
            metrics.extend(
                {"type": str(key), "value": str(value)}
                for key, value in entry.items()
                if value is not None
            )
    return metrics


def classify_header(header: str) -> list[str]:
    """Governance fields a section header belongs to (may be several)."""
    lower = header.lower()
    return [
        target for keywords, target in DOC_SECTION_KEYWORDS
        if any(keyword in lower for keyword in keywords)
    ]


def split_sections(content: str) -> list[tuple[str, str]]:
    """``(header, text)`` pairs for every header with a non-empty body.

    Body lines are stripped and joined by spaces, truncated to 500 chars.
    The last section of the file is included.
    """
    sections: list[tuple[str, str]] = []
    header = ""
    body: list[str] = []
    for line in content.split("\n"):
        if _HEADER.match(line):
            if header and body:
                sections.append((header, " ".join(body)[:SECTION_TEXT_LIMIT]))
            header = line
            body = []
        elif line.strip():
            body.append(line.strip())
    if header and body:
        sections.append((header, " ".join(body)[:SECTION_TEXT_LIMIT]))
    return sections


def is_documentation_file(repo_file: RepoFile) -> bool:
    path = repo_file.path.lower()
    return any(path.endswith(name) for name in DOCUMENTATION_FILES)


def parse_document(path: str, content: str, docs: ParsedDocs) -> None:
    """Add the extracts of one document to *docs*."""
    docs.files.append(path)
    match = _FRONTMATTER.match(content)
    body = content[match.end():] if match else content
    frontmatter = parse_frontmatter(content)
    if frontmatter and not docs.model_card:
        docs.model_card = frontmatter
        docs.model_card_file = path
        docs.performance_metrics = parse_eval_results(
            frontmatter.get("eval_results") or frontmatter.get("model-index")
        )

    fields = docs.sections()
    for header, text in split_sections(body):
        for target in classify_header(header):
            fields[target].append(DocExtract(path, text))

    if not docs.intended_use:
        intended = _INTENDED_USE.search(body)
        if intended and intended.group(1).strip():
            docs.intended_use.append(DocExtract(path, intended.group(1)[:SECTION_TEXT_LIMIT]))


# ---------------------------------------------------------------------------
# Unit
# ---------------------------------------------------------------------------


class DocumentationParser(DetectionUnit):
    name = "Documentation"
    is_parser = True

    async def run(self, unit_input: UnitInput) -> UnitResult:
        context = unit_input.context
        doc_files = [f for f in context.files if is_documentation_file(f)]
        logger.debug("Found %d documentation files", len(doc_files))

        docs = ParsedDocs()
        for repo_file in doc_files[:DOC_FILE_LIMIT]:
            content = await context.get_file_content(repo_file.path)
            if content:
                parse_document(repo_file.path, content, docs)

        logger.info(
            "Extracted %d intended use, %d limitations, %d ethical considerations",
            len(docs.intended_use), len(docs.limitations), len(docs.ethical_considerations),
        )
        return complete(parsed_docs=docs)
