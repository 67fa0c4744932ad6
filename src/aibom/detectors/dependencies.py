"""Dependency detection unit.

Primary strategy: ask the repository host for its dependency graph (an
SPDX package list) and keep the packages that match the AI/LLM allow-list.
If the graph is unavailable, or lists no AI packages, fall back to
parsing manifest files line by line.

The unit exposes ``sbom_available`` and the resolved dependency list so
the code-usage unit can plan targeted searches.
"""

from __future__ import annotations

import json
import logging
import posixpath
import re

from aibom.context.base import RepositoryContext, SbomPackage
from aibom.core.findings.models import Category, DependencyInfo, Evidence, Finding, Severity
from aibom.detectors.base import DetectionUnit, UnitInput, UnitResult, complete, slugify
from aibom.detectors.catalogs import (
    ALL_LLM_DEPENDENCIES,
    ALL_MANIFEST_FILES,
    LLM_DEPENDENCIES,
    PURL_ECOSYSTEMS,
)

logger = logging.getLogger(__name__)

SBOM_EVIDENCE_FILE = "GitHub Dependency Graph (SBOM)"

# Shortest allow-list entry or package name that may match as a bare substring.
_MIN_SUBSTRING = 3

_REQUIREMENT_LINE = re.compile(r"^([a-zA-Z0-9\-_.]+)(?:\[[^\]]*\])?\s*([>=<~!]+(.+))?")
_QUOTED_REQUIREMENT = re.compile(
    r"[\"']([a-zA-Z0-9\-_.]+)(?:\[[^\]]*\])?\s*(?:([<>=~!^]+)\s*([^\"';,\s]+))?[^\"']*[\"']"
)
_TABLE_ENTRY = re.compile(r"^\s*[\"']?([a-zA-Z0-9\-_.]+)[\"']?\s*=\s*(.+)$")
_TABLE_VERSION = re.compile(r"[\"']([^\"']+)[\"']")
_GO_REQUIRE = re.compile(r"^\s*(?:require\s+)?([\w.\-]+\.[\w.\-]+/\S+)\s+(v[\w.\-+]+)")


# ---------------------------------------------------------------------------
# Matching
# ---------------------------------------------------------------------------


def matches_allow_list_loosely(name: str, allow_list: tuple[str, ...] = ALL_LLM_DEPENDENCIES) -> bool:
    """Dependency-graph matching: exact, or substring in either direction.

    Bare substring matches only count when the contained string is at
    least three characters long; two-letter entries such as ``ai`` must
    match on a word boundary instead.
    """
    pkg = name.lower()
    if not pkg:
        return False
    for dep in allow_list:
        known = dep.lower()
        if pkg == known:
            return True
        if known in pkg and (len(known) >= _MIN_SUBSTRING or _boundary_match(known, pkg)):
            return True
        if pkg in known and len(pkg) >= _MIN_SUBSTRING:
            return True
    return False


def _boundary_match(known: str, name: str) -> bool:
    return re.search(rf"(^|[^a-z]){re.escape(known)}([^a-z]|$)", name, re.I) is not None


def matches_allow_list(name: str, allow_list: tuple[str, ...]) -> bool:
    """Manifest matching: exact, or the allow-list entry on word boundaries.

    ``langchain-openai`` matches both ``langchain`` and ``openai``;
    ``fastapi`` matches neither ``ai`` nor ``openai``.
    """
    lower = name.lower()
    return any(lower == dep.lower() or _boundary_match(dep.lower(), name) for dep in allow_list)


def ecosystem_from_package(pkg: SbomPackage) -> str:
    """Ecosystem from the package URL, else guessed from the name shape."""
    purl_type = pkg.purl_type
    if purl_type:
        return PURL_ECOSYSTEMS.get(purl_type, purl_type)
    if pkg.name.startswith("@"):
        return "node"
    if "github.com/" in pkg.name:
        return "go"
    if ":" in pkg.name:
        return "java"
    return "unknown"


def ecosystem_for_manifest(path: str) -> str | None:
    name = posixpath.basename(path)
    if re.search(r"package\.json|yarn\.lock|pnpm-lock", name):
        return "node"
    if re.search(r"requirements\.txt|pyproject\.toml|Pipfile", name):
        return "python"
    if name == "go.mod":
        return "go"
    if name == "Cargo.toml":
        return "rust"
    return None


# ---------------------------------------------------------------------------
# Manifest parsers
# ---------------------------------------------------------------------------


class ManifestDependency:
    """A matched manifest entry with its location."""

    __slots__ = ("name", "version", "line", "snippet")

    def __init__(self, name: str, version: str, line: int, snippet: str) -> None:
        self.name = name
        self.version = version
        self.line = line
        self.snippet = snippet

    def __repr__(self) -> str:
        return f"ManifestDependency({self.name!r}, {self.version!r}, line={self.line})"


def parse_package_json(content: str, allow_list: tuple[str, ...]) -> list[ManifestDependency]:
    """Match ``dependencies`` and ``devDependencies`` of a package.json."""
    try:
        data = json.loads(content)
    except ValueError:
        return []
    if not isinstance(data, dict):
        return []
    declared: dict[str, object] = {}
    for section in ("dependencies", "devDependencies"):
        block = data.get(section)
        if isinstance(block, dict):
            declared.update(block)

    lines = content.split("\n")
    results = []
    for name, version in declared.items():
        if not matches_allow_list(name, allow_list):
            continue
        line_no = next(
            (i for i, line in enumerate(lines, start=1) if f'"{name}"' in line), 0
        )
        results.append(ManifestDependency(name, str(version), line_no, f'"{name}": "{version}"'))
    return results


def parse_requirements(content: str, allow_list: tuple[str, ...]) -> list[ManifestDependency]:
    """Match ``name[extras] <op> version`` lines of a requirements file."""
    results = []
    for index, line in enumerate(content.split("\n"), start=1):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        match = _REQUIREMENT_LINE.match(stripped)
        if not match or not matches_allow_list(match.group(1), allow_list):
            continue
        spec = match.group(2)
        version = re.sub(r"^[>=<~!]+", "", spec).strip() if spec else "unspecified"
        results.append(ManifestDependency(match.group(1), version, index, stripped))
    return results


def parse_pyproject(content: str, allow_list: tuple[str, ...]) -> list[ManifestDependency]:
    """Match quoted requirement strings and ``name = "version"`` table entries.

    Covers PEP 621 dependency arrays, Poetry tables and Pipfiles. Each
    package is reported once, at its first occurrence.
    """
    results = []
    seen: set[str] = set()
    for index, line in enumerate(content.split("\n"), start=1):
        candidates: list[tuple[str, str]] = []
        for match in _QUOTED_REQUIREMENT.finditer(line):
            version = match.group(3) or "unspecified"
            candidates.append((match.group(1), version))
        table = _TABLE_ENTRY.match(line)
        if table and not line.lstrip().startswith("["):
            version_match = _TABLE_VERSION.search(table.group(2))
            version = version_match.group(1).lstrip("^~=><! ") if version_match else "unspecified"
            candidates.append((table.group(1), version or "unspecified"))
        for name, version in candidates:
            key = name.lower()
            if key in seen or not matches_allow_list(name, allow_list):
                continue
            seen.add(key)
            results.append(ManifestDependency(name, version, index, line.strip()))
    return results


def parse_go_mod(content: str, allow_list: tuple[str, ...]) -> list[ManifestDependency]:
    """Match ``module vX.Y.Z`` require lines of a go.mod."""
    results = []
    for index, line in enumerate(content.split("\n"), start=1):
        match = _GO_REQUIRE.match(line)
        if match and any(match.group(1).lower() == dep.lower() for dep in allow_list):
            results.append(ManifestDependency(match.group(1), match.group(2), index, line.strip()))
    return results


def parse_manifest(path: str, content: str, allow_list: tuple[str, ...]) -> list[ManifestDependency]:
    name = posixpath.basename(path)
    if name == "package.json":
        return parse_package_json(content, allow_list)
    if name == "requirements.txt":
        return parse_requirements(content, allow_list)
    if re.search(r"pyproject\.toml|Pipfile", name) or name == "Cargo.toml":
        return parse_pyproject(content, allow_list)
    if name == "go.mod":
        return parse_go_mod(content, allow_list)
    return []


# ---------------------------------------------------------------------------
# Unit
# ---------------------------------------------------------------------------


def _dependency_finding(info: DependencyInfo, evidence: Evidence) -> Finding:
    version_note = f" (version: {info.version})" if info.version else ""
    return Finding(
        id=f"dep-{info.ecosystem}-{slugify(info.name)}",
        category=Category.DEPENDENCIES,
        severity=Severity.HIGH,
        weight=5,
        title=f"Dependency: {info.name}",
        description=f"LLM-related dependency: {info.name}{version_note}",
        evidence=(evidence,),
        payload=info,
    )


class DependencyUnit(DetectionUnit):
    """Find AI/LLM packages via the dependency graph or manifest files."""

    name = "Dependencies"

    async def run(self, unit_input: UnitInput) -> UnitResult:
        context = unit_input.context
        packages = await context.fetch_dependency_graph()
        if packages is not None:
            findings, deps = self._from_dependency_graph(context, packages)
            if findings:
                logger.info("Found %d LLM dependencies via dependency graph", len(findings))
                return complete(findings, sbom_available=True, dependencies=deps)
            logger.info("Dependency graph lists no LLM packages; parsing manifests")
        else:
            logger.info("Dependency graph unavailable; parsing manifests")

        findings = await self._from_manifests(context)
        return complete(findings, sbom_available=False, dependencies=[])

    def _from_dependency_graph(
        self, context: RepositoryContext, packages: list[SbomPackage]
    ) -> tuple[list[Finding], list[DependencyInfo]]:
        url = f"https://github.com/{context.info.full_name}/network/dependencies"
        findings: dict[str, Finding] = {}
        deps: list[DependencyInfo] = []
        for pkg in packages:
            if not matches_allow_list_loosely(pkg.name):
                continue
            info = DependencyInfo(
                name=pkg.name,
                version=pkg.version_info or "unknown",
                ecosystem=ecosystem_from_package(pkg),
                source="github-sbom-api",
                spdx_id=pkg.spdx_id,
                license=pkg.license_concluded or pkg.license_declared or "unknown",
            )
            finding = _dependency_finding(
                info,
                Evidence(
                    file=SBOM_EVIDENCE_FILE,
                    snippet=f"SPDX Package: {info.name}@{info.version}",
                    url=url,
                ),
            )
            if finding.id not in findings:
                findings[finding.id] = finding
                deps.append(info)
        return list(findings.values()), deps

    async def _from_manifests(self, context: RepositoryContext) -> list[Finding]:
        manifests = [f for f in context.files if f.name in ALL_MANIFEST_FILES]
        logger.debug("Found %d manifest files", len(manifests))
        findings: dict[str, Finding] = {}
        for manifest in manifests:
            ecosystem = ecosystem_for_manifest(manifest.path)
            if ecosystem is None:
                continue
            content = await context.get_file_content(manifest.path)
            if not content:
                continue
            for dep in parse_manifest(manifest.path, content, LLM_DEPENDENCIES[ecosystem]):
                info = DependencyInfo(
                    name=dep.name,
                    version=dep.version or "unknown",
                    ecosystem=ecosystem,
                    source="manual-parsing",
                    manifest_file=manifest.path,
                )
                finding = _dependency_finding(
                    info,
                    Evidence(
                        file=manifest.path,
                        line=dep.line or None,
                        snippet=dep.snippet or dep.name,
                        url=context.file_url(manifest.path, dep.line or None),
                    ),
                )
                if finding.id in findings:
                    logger.debug("%s already reported, skipping %s", dep.name, manifest.path)
                    continue
                findings[finding.id] = finding
        return list(findings.values())
