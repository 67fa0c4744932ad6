"""Per-run file content cache.

Keyed by repository path, written once per path, never invalidated. One
instance belongs to exactly one ``RepositoryContext`` and therefore to
one analysis run; nothing mutates it concurrently.
"""

from __future__ import annotations

import logging
from typing import Any

logger = logging.getLogger(__name__)


class FileContentCache:
    """Write-once map from path to file text (or None for unreadable files)."""

    def __init__(self) -> None:
        self._entries: dict[str, str | None] = {}
        self._hits = 0
        self._misses = 0

    def get(self, path: str) -> tuple[bool, str | None]:
        """Look up *path*.

        Returns:
            Tuple of (found, content). If found is False, content is None.
        """
        if path in self._entries:
            self._hits += 1
            return True, self._entries[path]
        self._misses += 1
        return False, None

    def set(self, path: str, content: str | None) -> None:
        """Store *content* for *path* unless the path is already cached."""
        if path in self._entries:
            logger.debug("Ignoring second write for cached path %s", path)
            return
        self._entries[path] = content

    def __contains__(self, path: object) -> bool:
        return path in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def stats(self) -> dict[str, Any]:
        total = self._hits + self._misses
        return {
            "entries": len(self._entries),
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(self._hits / total, 3) if total else 0.0,
        }
