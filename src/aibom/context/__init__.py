"""Repository Context: where detection units get repository data from."""

from aibom.context.base import (
    RateLimit,
    RepoFile,
    RepositoryContext,
    RepositoryInfo,
    SbomPackage,
    SearchItem,
    SearchResponse,
)
from aibom.context.cache import FileContentCache

__all__ = [
    "FileContentCache",
    "RateLimit",
    "RepoFile",
    "RepositoryContext",
    "RepositoryInfo",
    "SbomPackage",
    "SearchItem",
    "SearchResponse",
]
