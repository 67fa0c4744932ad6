"""Repository Context for a directory on the local filesystem.

There is no code search and no host dependency graph for a plain
checkout, so the code-usage unit falls back to scanning files and the
dependency unit falls back to parsing manifests.
"""

from __future__ import annotations

import logging
import os
from collections import Counter
from pathlib import Path

from aibom.config import AnalysisSettings
from aibom.context.base import RepoFile, RepositoryContext, RepositoryInfo
from aibom.context.huggingface import fetch_model_info
from aibom.core.findings.models import HuggingFaceInfo

logger = logging.getLogger(__name__)

# Directories never worth walking into.
SKIP_DIRS: frozenset[str] = frozenset({
    ".git", ".hg", ".svn", "node_modules", "__pycache__", ".venv", "venv",
    ".tox", ".mypy_cache", ".pytest_cache", "dist", "build", ".idea",
})

_LANGUAGE_BY_EXTENSION: dict[str, str] = {
    ".py": "Python",
    ".js": "JavaScript",
    ".mjs": "JavaScript",
    ".jsx": "JavaScript",
    ".ts": "TypeScript",
    ".tsx": "TypeScript",
    ".java": "Java",
    ".go": "Go",
    ".rs": "Rust",
    ".rb": "Ruby",
    ".ipynb": "Jupyter Notebook",
    ".kt": "Kotlin",
    ".swift": "Swift",
    ".cs": "C#",
}


def walk_files(root: Path) -> list[RepoFile]:
    """List regular files under *root* as repository-relative POSIX paths."""
    files: list[RepoFile] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in SKIP_DIRS)
        for filename in sorted(filenames):
            full = Path(dirpath) / filename
            if not full.is_file():
                continue
            try:
                size = full.stat().st_size
            except OSError:
                continue
            files.append(RepoFile(path=full.relative_to(root).as_posix(), size=size))
    return files


def _detect_languages(files: list[RepoFile]) -> tuple[str, ...]:
    counts = Counter(
        _LANGUAGE_BY_EXTENSION[f.extension]
        for f in files
        if f.extension in _LANGUAGE_BY_EXTENSION
    )
    return tuple(lang for lang, _ in counts.most_common())


class LocalRepositoryContext(RepositoryContext):
    """Repository Context reading straight from a directory."""

    def __init__(self, root: Path, settings: AnalysisSettings | None = None) -> None:
        self.root = root.resolve()
        self.settings = settings or AnalysisSettings()
        files = walk_files(self.root)
        info = RepositoryInfo(
            owner="local",
            repo=self.root.name,
            full_name=self.root.name,
            html_url=self.root.as_uri(),
            languages=_detect_languages(files),
        )
        super().__init__(info, files)
        logger.info("Local repository %s: %d files", self.root, len(files))

    async def _load_file(self, path: str) -> str | None:
        target = self.root / path
        try:
            return target.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            logger.warning("Cannot read %s: %s", target, exc)
            return None

    async def fetch_model_info(self, model_id: str) -> HuggingFaceInfo:
        if not self.settings.enrich_models:
            return await super().fetch_model_info(model_id)
        return await fetch_model_info(model_id, timeout=self.settings.http_timeout)
