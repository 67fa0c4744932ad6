"""GitHub-backed Repository Context.

``GitHubClient`` wraps the REST endpoints the pipeline needs (repository
metadata, recursive tree, file contents, dependency-graph SBOM, code
search) over one shared ``httpx.AsyncClient``. ``GitHubRepositoryContext``
adapts the client to the ``RepositoryContext`` contract.

Status handling:
    - metadata/tree failures raise ``RepositoryAccessError``; an analysis
      cannot start without them.
    - file contents, SBOM and search failures degrade to None.
    - search 403/429 raises ``RateLimitExhausted`` so the code-usage unit
      can checkpoint.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
import re
from typing import Any, Awaitable, Callable
from urllib.parse import quote

import httpx

from aibom.config import AnalysisSettings
from aibom.context.base import (
    RateLimit,
    RepoFile,
    RepositoryContext,
    RepositoryInfo,
    SbomPackage,
    SearchItem,
    SearchResponse,
)
from aibom.context.http_client import fetch_json, fetch_response, new_client
from aibom.context.huggingface import fetch_model_info
from aibom.core.findings.models import HuggingFaceInfo
from aibom.exceptions import RateLimitExhausted, RepositoryAccessError, RepositoryInputError

logger = logging.getLogger(__name__)

GITHUB_API_BASE = "https://api.github.com"

_ACCEPT_V3 = "application/vnd.github.v3+json"
_ACCEPT_TEXT_MATCH = "application/vnd.github.v3.text-match+json"
_SBOM_HEADERS = {
    "Accept": "application/vnd.github+json",
    "X-GitHub-Api-Version": "2022-11-28",
}

# Longest wait (seconds) before retrying a rate-limited file fetch.
_FILE_RETRY_MAX_WAIT = 60.0

_URL_PATTERN = re.compile(r"github\.com/([^/]+)/([^/]+)")
_LINE_MARKER = re.compile(r"^\d+:$")

Sleep = Callable[[float], Awaitable[None]]


def parse_repo_input(value: str) -> tuple[str, str]:
    """Split a repository reference into ``(owner, repo)``.

    Accepts ``owner/repo`` or any URL containing ``github.com/owner/repo``
    (a trailing ``.git`` is stripped).

    Raises:
        RepositoryInputError: If neither form matches.
    """
    value = value.strip()
    match = _URL_PATTERN.search(value)
    if match:
        repo = match.group(2)
        if repo.endswith(".git"):
            repo = repo[: -len(".git")]
        return match.group(1), repo
    parts = value.split("/")
    if len(parts) >= 2 and parts[0] and parts[1]:
        return parts[0], parts[1]
    raise RepositoryInputError(
        'Invalid repository format. Use "owner/repo" or a GitHub URL.'
    )


def _int_header(resp: httpx.Response, name: str, default: int) -> int:
    try:
        return int(resp.headers.get(name, default))
    except ValueError:
        return default


def _json_object(resp: httpx.Response) -> dict[str, Any] | None:
    """The response body as a JSON object, or None when it is anything else."""
    try:
        data = resp.json()
    except ValueError:
        logger.warning("Non-JSON body from %s", resp.request.url)
        return None
    return data if isinstance(data, dict) else None


def parse_rate_limit(resp: httpx.Response) -> RateLimit:
    """Read the ``X-RateLimit-*`` headers of a search response."""
    reset = resp.headers.get("X-RateLimit-Reset")
    try:
        reset_at = float(reset) if reset else None
    except ValueError:
        reset_at = None
    return RateLimit(
        remaining=_int_header(resp, "X-RateLimit-Remaining", 0),
        limit=_int_header(resp, "X-RateLimit-Limit", 10),
        reset=reset_at,
    )


def extract_snippet(item: dict[str, Any]) -> str | None:
    """Pick the most useful line out of a search hit's text-match fragment.

    Preference order: the line containing the matched text, the first
    substantial line, the whole fragment flattened to 150 characters,
    and finally the matched text itself.
    """
    text_matches = item.get("text_matches") or []
    first = text_matches[0] if text_matches else {}
    matches = first.get("matches") or []
    matched_text = matches[0].get("text") if matches else None
    fragment = first.get("fragment") or ""

    if fragment:
        lines = [line.strip() for line in fragment.split("\n")]
        candidates = [ln for ln in lines if ln and not _LINE_MARKER.match(ln)]
        if matched_text:
            for line in candidates:
                if matched_text in line:
                    return line
        for line in candidates:
            if len(line) > 5:
                return line
        flattened = fragment.replace("\n", " ")[:150].strip()
        if flattened:
            return flattened
    return matched_text


def _parse_sbom_package(raw: dict[str, Any]) -> SbomPackage:
    purl = None
    for ref in raw.get("externalRefs") or []:
        if ref.get("referenceType") == "purl":
            purl = ref.get("referenceLocator")
            break
    return SbomPackage(
        name=raw.get("name", ""),
        version_info=raw.get("versionInfo"),
        spdx_id=raw.get("SPDXID"),
        license_concluded=raw.get("licenseConcluded"),
        license_declared=raw.get("licenseDeclared"),
        purl=purl,
    )


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class GitHubClient:
    """Thin async client for the GitHub REST API.

    Args:
        token: Personal access token; enables code search and raises quotas.
        timeout: Per-request timeout in seconds.
        transport: Optional ``httpx`` transport (``httpx.MockTransport`` in tests).
        sleep: Coroutine used to wait out short rate-limit windows.
    """

    def __init__(
        self,
        token: str | None = None,
        *,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.token = token
        headers = {"Accept": _ACCEPT_V3}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = new_client(timeout=timeout, headers=headers, transport=transport)
        self._sleep = sleep

    @property
    def http(self) -> httpx.AsyncClient:
        return self._client

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> GitHubClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # -- Repository --------------------------------------------------------

    async def get_repository(self, owner: str, repo: str) -> RepositoryInfo:
        """Fetch repository metadata and its language list.

        Raises:
            RepositoryAccessError: On 404, rate limiting, or other failures.
        """
        url = f"{GITHUB_API_BASE}/repos/{owner}/{repo}"
        resp = await fetch_response(url, client=self._client)
        if resp is None:
            raise RepositoryAccessError(f"Could not reach GitHub for {owner}/{repo}")
        if resp.status_code == 404:
            raise RepositoryAccessError("Repository not found.")
        if resp.status_code in (403, 429):
            wait = parse_rate_limit(resp).seconds_until_reset()
            if wait is not None and wait > 0:
                raise RepositoryAccessError(
                    f"Rate limit exceeded. Resets in {int(wait) + 1} seconds. "
                    "Provide a GitHub token to avoid rate limits."
                )
            raise RepositoryAccessError("Rate limit exceeded. Please provide a GitHub token.")
        if resp.is_error:
            raise RepositoryAccessError(f"GitHub API error: {resp.status_code}")

        data = _json_object(resp)
        if data is None:
            raise RepositoryAccessError(
                f"Invalid repository metadata from GitHub for {owner}/{repo}"
            )
        languages: dict[str, Any] | list[Any] = {}
        if data.get("languages_url"):
            languages = await fetch_json(data["languages_url"], client=self._client)
        info = RepositoryInfo(
            owner=(data.get("owner") or {}).get("login", owner),
            repo=data.get("name", repo),
            full_name=data.get("full_name", f"{owner}/{repo}"),
            html_url=data.get("html_url", ""),
            description=data.get("description") or "",
            topics=tuple(data.get("topics") or ()),
            languages=tuple(languages) if isinstance(languages, dict) else (),
            default_branch=data.get("default_branch") or "main",
        )
        logger.info(
            "Repository %s (branch %s, languages: %s)",
            info.full_name, info.default_branch, ", ".join(info.languages) or "none",
        )
        return info

    async def get_tree(self, owner: str, repo: str, ref: str) -> list[RepoFile]:
        """List every blob in the repository at *ref*.

        Raises:
            RepositoryAccessError: If the tree cannot be fetched.
        """
        url = f"{GITHUB_API_BASE}/repos/{owner}/{repo}/git/trees/{quote(ref, safe='')}"
        resp = await fetch_response(url, params={"recursive": "1"}, client=self._client)
        if resp is None or resp.is_error:
            status = resp.status_code if resp is not None else "network error"
            raise RepositoryAccessError(f"Failed to fetch repository tree ({status})")
        data = _json_object(resp)
        if data is None:
            raise RepositoryAccessError("Invalid repository tree from GitHub")
        tree = data.get("tree") or []
        files = [
            RepoFile(
                path=entry["path"],
                size=int(entry.get("size") or 0),
                type=entry.get("type", "blob"),
                sha=entry.get("sha"),
            )
            for entry in tree
            if entry.get("type") == "blob"
        ]
        logger.info("Tree has %d entries, %d files", len(tree), len(files))
        return files

    async def get_file_content(
        self, owner: str, repo: str, path: str, ref: str
    ) -> str | None:
        """Fetch and base64-decode one file via the contents API.

        A 403/429 whose window resets within 60 seconds is waited out and
        retried once; anything else yields None.
        """
        url = f"{GITHUB_API_BASE}/repos/{owner}/{repo}/contents/{quote(path)}"
        for attempt in range(2):
            resp = await fetch_response(url, params={"ref": ref}, client=self._client)
            if resp is None:
                return None
            if resp.status_code in (403, 429):
                wait = parse_rate_limit(resp).seconds_until_reset()
                logger.warning("Rate limited fetching %s", path)
                if attempt == 0 and wait is not None and 0 < wait < _FILE_RETRY_MAX_WAIT:
                    logger.info("Waiting %.0f seconds before retrying %s", wait, path)
                    await self._sleep(wait)
                    continue
                return None
            if resp.is_error:
                return None
            try:
                encoded = resp.json().get("content")
            except ValueError:
                return None
            if not encoded:
                return None
            try:
                raw = base64.b64decode(encoded.replace("\n", ""))
            except (binascii.Error, ValueError):
                logger.warning("Undecodable content for %s", path)
                return None
            return raw.decode("utf-8", errors="replace")
        return None

    # -- Dependency graph --------------------------------------------------

    async def get_sbom(self, owner: str, repo: str) -> list[SbomPackage] | None:
        """Fetch the dependency-graph SBOM, or None when it is unavailable."""
        url = f"{GITHUB_API_BASE}/repos/{owner}/{repo}/dependency-graph/sbom"
        resp = await fetch_response(url, headers=_SBOM_HEADERS, client=self._client)
        if resp is None:
            return None
        if resp.is_error:
            reasons = {
                401: "authentication required",
                403: "insufficient permissions or dependency graph disabled",
                404: "dependency graph not available",
            }
            logger.info(
                "SBOM unavailable for %s/%s: %s",
                owner, repo, reasons.get(resp.status_code, f"HTTP {resp.status_code}"),
            )
            return None
        try:
            data = resp.json()
        except ValueError:
            logger.warning("Invalid SBOM JSON for %s/%s", owner, repo)
            return None
        packages = ((data.get("sbom") or {}).get("packages")) or []
        logger.info("SBOM retrieved: %d packages", len(packages))
        return [_parse_sbom_package(p) for p in packages]

    # -- Code search -------------------------------------------------------

    async def search_code(self, query: str) -> SearchResponse | None:
        """Run one code search with text matches.

        Raises:
            RateLimitExhausted: On 403/429.
        """
        resp = await fetch_response(
            f"{GITHUB_API_BASE}/search/code",
            params={"q": query, "per_page": "100"},
            headers={"Accept": _ACCEPT_TEXT_MATCH},
            client=self._client,
        )
        if resp is None:
            return None
        rate_limit = parse_rate_limit(resp)
        logger.debug("Search quota %d/%d remaining", rate_limit.remaining, rate_limit.limit)
        if resp.status_code in (403, 429):
            logger.warning("Code search rate limited")
            raise RateLimitExhausted(rate_limit)
        if resp.is_error:
            logger.warning("Code search failed: HTTP %d", resp.status_code)
            return None
        try:
            data = resp.json()
        except ValueError:
            return None
        items = tuple(
            SearchItem(
                path=item.get("path", ""),
                html_url=item.get("html_url"),
                snippet=extract_snippet(item),
            )
            for item in data.get("items") or []
        )
        return SearchResponse(items=items, rate_limit=rate_limit)


# ---------------------------------------------------------------------------
# Context
# ---------------------------------------------------------------------------


class GitHubRepositoryContext(RepositoryContext):
    """Repository Context backed by the GitHub REST API."""

    def __init__(
        self,
        client: GitHubClient,
        info: RepositoryInfo,
        files: list[RepoFile],
        settings: AnalysisSettings | None = None,
    ) -> None:
        super().__init__(info, files)
        self.client = client
        self.settings = settings or AnalysisSettings()

    @classmethod
    async def open(
        cls,
        reference: str,
        token: str | None = None,
        settings: AnalysisSettings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> GitHubRepositoryContext:
        """Resolve *reference*, then fetch metadata and the file tree.

        Raises:
            RepositoryInputError: If *reference* is not a GitHub repository.
            RepositoryAccessError: If metadata or tree cannot be fetched.
        """
        settings = settings or AnalysisSettings()
        owner, repo = parse_repo_input(reference)
        if not token:
            logger.warning("No GitHub token provided; code search disabled and quotas are lower")
        client = GitHubClient(token, timeout=settings.http_timeout, transport=transport)
        try:
            info = await client.get_repository(owner, repo)
            files = await client.get_tree(info.owner, info.repo, info.default_branch)
        except BaseException:
            await client.aclose()
            raise
        return cls(client, info, files, settings)

    async def _load_file(self, path: str) -> str | None:
        return await self.client.get_file_content(
            self.info.owner, self.info.repo, path, self.info.default_branch
        )

    @property
    def search_available(self) -> bool:
        return bool(self.client.token)

    async def search_code(self, query: str) -> SearchResponse | None:
        if not self.search_available:
            return None
        return await self.client.search_code(f"{query} repo:{self.info.full_name}")

    async def fetch_dependency_graph(self) -> list[SbomPackage] | None:
        return await self.client.get_sbom(self.info.owner, self.info.repo)

    async def fetch_model_info(self, model_id: str) -> HuggingFaceInfo:
        if not self.settings.enrich_models:
            return await super().fetch_model_info(model_id)
        return await fetch_model_info(model_id, timeout=self.settings.http_timeout)

    def file_url(self, path: str, line: int | None = None) -> str | None:
        url = f"{self.info.html_url}/blob/{self.info.default_branch}/{path}"
        return f"{url}#L{line}" if line else url

    async def aclose(self) -> None:
        await self.client.aclose()
