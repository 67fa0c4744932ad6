"""Repository Context contract and the value types it exchanges.

A ``RepositoryContext`` is everything a detection unit may know about the
repository under analysis: the file listing, a cached on-demand content
accessor, the host's dependency graph, code search, and model-registry
lookups. Concrete contexts (GitHub, local directory, in-memory fakes in
the test suite) implement the abstract loaders; the caching and the
default "capability unavailable" answers live here.
"""

from __future__ import annotations

import logging
import posixpath
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from aibom.context.cache import FileContentCache
from aibom.core.findings.models import HuggingFaceInfo

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Value types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RepoFile:
    """One blob in the repository tree."""

    path: str
    size: int = 0
    type: str = "blob"
    sha: str | None = None

    @property
    def name(self) -> str:
        return posixpath.basename(self.path)

    @property
    def extension(self) -> str:
        """Lowercased suffix including the dot, or ``""``."""
        _, ext = posixpath.splitext(self.name)
        return ext.lower()


@dataclass(frozen=True)
class RepositoryInfo:
    """Repository summary shared by detection units and every BOM document."""

    owner: str
    repo: str
    full_name: str = ""
    html_url: str = ""
    description: str = ""
    topics: tuple[str, ...] = ()
    languages: tuple[str, ...] = ()
    default_branch: str = "main"

    def __post_init__(self) -> None:
        if not self.full_name:
            object.__setattr__(self, "full_name", f"{self.owner}/{self.repo}")
        if not self.html_url:
            object.__setattr__(self, "html_url", f"https://github.com/{self.full_name}")


@dataclass(frozen=True)
class RateLimit:
    """Search quota window parsed from response headers.

    Attributes:
        remaining: Queries left in the current window.
        limit: Window size.
        reset: Epoch seconds at which the window resets, if reported.
    """

    remaining: int = 0
    limit: int = 10
    reset: float | None = None

    def seconds_until_reset(self, now: float | None = None) -> float | None:
        if self.reset is None:
            return None
        current = time.time() if now is None else now
        return self.reset - current

    def to_dict(self) -> dict[str, object]:
        return {"remaining": self.remaining, "limit": self.limit, "reset": self.reset}


@dataclass(frozen=True)
class SearchItem:
    """One code-search hit: a file plus the best line of its match fragment."""

    path: str
    html_url: str | None = None
    snippet: str | None = None


@dataclass(frozen=True)
class SearchResponse:
    items: tuple[SearchItem, ...] = ()
    rate_limit: RateLimit = field(default_factory=RateLimit)


@dataclass(frozen=True)
class SbomPackage:
    """An SPDX package entry from the host's dependency graph."""

    name: str
    version_info: str | None = None
    spdx_id: str | None = None
    license_concluded: str | None = None
    license_declared: str | None = None
    purl: str | None = None

    @property
    def purl_type(self) -> str | None:
        """Type segment of the package URL (``pypi`` in ``pkg:pypi/x@1``)."""
        if not self.purl or not self.purl.startswith("pkg:"):
            return None
        return self.purl[4:].split("/", 1)[0] or None


# ---------------------------------------------------------------------------
# Abstract context
# ---------------------------------------------------------------------------


class RepositoryContext(ABC):
    """Abstract source of repository data for one analysis run.

    Subclasses supply ``info``, ``files`` and ``_load_file``; they may
    override the optional capabilities, which default to "unavailable".
    The content cache is owned by the context, so its lifetime is exactly
    one run.
    """

    def __init__(
        self,
        info: RepositoryInfo,
        files: list[RepoFile],
        cache: FileContentCache | None = None,
    ) -> None:
        self.info = info
        self.files = list(files)
        self.cache = cache if cache is not None else FileContentCache()

    # -- File content ------------------------------------------------------

    @abstractmethod
    async def _load_file(self, path: str) -> str | None:
        """Fetch the content of *path*, or None if it cannot be read."""

    async def get_file_content(self, path: str) -> str | None:
        """Return the text of *path*, loading it at most once per run.

        Failed loads are cached as None as well, so a path that could not
        be read is not requested again.
        """
        found, content = self.cache.get(path)
        if found:
            return content
        content = await self._load_file(path)
        self.cache.set(path, content)
        return content

    # -- Optional capabilities --------------------------------------------

    @property
    def search_available(self) -> bool:
        """True when ``search_code`` is backed by a real search service."""
        return False

    async def search_code(self, query: str) -> SearchResponse | None:
        """Run one code-search query scoped to this repository.

        Returns None for "no results or transient error".

        Raises:
            RateLimitExhausted: When the search quota is spent.
        """
        return None

    async def fetch_dependency_graph(self) -> list[SbomPackage] | None:
        """Return the host's SPDX package list, or None if unavailable."""
        return None

    async def fetch_model_info(self, model_id: str) -> HuggingFaceInfo:
        """Look up an open-registry model; never raises."""
        return HuggingFaceInfo(model_id=model_id, verified=False, status="disabled")

    def file_url(self, path: str, line: int | None = None) -> str | None:
        """Deep link to *path* on the repository host, if there is one."""
        return None

    async def aclose(self) -> None:
        """Release network resources held by the context."""
