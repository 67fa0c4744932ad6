"""Finding reconciler: fold code-usage evidence into dependency Findings.

A package declared in a manifest and the same SDK observed in code are two
views of one component. For every dependency Finding, code Findings whose
title names the package's provider are merged in: the result keeps the
dependency's id, severity, weight and payload, concatenates both evidence
lists, and records the code evidence as ``code_usage``.

Only ``dependencies`` and ``code`` Findings take part. Configuration
mentions of a model are resolved later, in BOM synthesis. The output never
has more Findings than the input.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable

from aibom.core.findings.models import Category, CodeUsage, Finding

logger = logging.getLogger(__name__)

# (keyword in the code Finding title, test on the lowercased package name)
PACKAGE_KEYWORDS: tuple[tuple[str, Callable[[str], bool]], ...] = (
    ("langchain", lambda pkg: "langchain" in pkg),
    ("openai", lambda pkg: "openai" in pkg),
    ("anthropic", lambda pkg: "anthropic" in pkg),
    ("google", lambda pkg: "google" in pkg),
    ("cohere", lambda pkg: "cohere" in pkg),
    ("mistral", lambda pkg: "mistral" in pkg),
    ("huggingface", lambda pkg: "transformers" in pkg or "huggingface" in pkg),
    ("litellm", lambda pkg: "litellm" in pkg),
)

# Compatible endpoints are usually reached through another client library,
# so they are never attributed to a provider SDK package.
_EXCLUDED_TITLE_WORDS: tuple[str, ...] = ("compatible",)


def code_matches_package(title: str, package: str) -> bool:
    """Whether a code Finding *title* refers to dependency *package*."""
    title = title.lower()
    package = package.lower()
    if any(word in title for word in _EXCLUDED_TITLE_WORDS):
        return False
    return any(keyword in title and test(package) for keyword, test in PACKAGE_KEYWORDS)


def merge_pair(dependency: Finding, code: list[Finding]) -> Finding:
    """One Finding combining a dependency and the code Findings using it."""
    info = dependency.dependency_info
    assert info is not None
    locations = tuple(e for f in code for e in f.evidence)
    version = f" ({info.version})" if info.version else ""
    return replace(
        dependency,
        title=f"{info.name} - Usage Detected",
        description=f"{info.name}{version} is installed and used in code",
        evidence=dependency.evidence + locations,
        code_usage=CodeUsage(files=tuple(e.file for e in locations), locations=locations),
    )


def merge_findings(findings: list[Finding]) -> list[Finding]:
    """Merge dependency and code Findings that describe the same package.

    A code Finding may match several dependencies (``LangChain SDK Usage``
    matches both ``langchain`` and ``langchain-openai``) and is folded into
    each of them. Dependency Findings come first, in input order, followed
    by every other Finding in input order.

    Args:
        findings: Raw Findings from the pipeline.

    Returns:
        The reconciled list; ``len(result) <= len(findings)``.
    """
    dependencies = [
        f for f in findings if f.category is Category.DEPENDENCIES and f.dependency_info
    ]
    code = [f for f in findings if f.category is Category.CODE and f.title]

    consumed: set[str] = set()
    merged: list[Finding] = []
    for dep in dependencies:
        assert dep.dependency_info is not None
        users = [c for c in code if code_matches_package(c.title, dep.dependency_info.name)]
        if users:
            merged.append(merge_pair(dep, users))
            consumed.update(c.id for c in users)
            logger.debug(
                "Merged %s with %s", dep.id, ", ".join(c.id for c in users)
            )
        else:
            merged.append(dep)

    dep_ids = {d.id for d in dependencies}
    for finding in findings:
        if finding.id in dep_ids:
            continue
        if finding.category is Category.CODE and finding.id in consumed:
            continue
        merged.append(finding)
    return merged
