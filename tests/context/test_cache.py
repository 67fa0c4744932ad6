"""Tests for the per-run file content cache and the context's use of it."""

from __future__ import annotations

import asyncio

from aibom.context.cache import FileContentCache

from tests.conftest import FakeRepositoryContext


class TestFileContentCache:
    """Write-once semantics and stats."""

    def test_miss_then_hit(self) -> None:
        cache = FileContentCache()
        assert cache.get("a.py") == (False, None)
        cache.set("a.py", "print(1)")
        assert cache.get("a.py") == (True, "print(1)")

    def test_none_is_cached(self) -> None:
        cache = FileContentCache()
        cache.set("missing.py", None)
        assert cache.get("missing.py") == (True, None)
        assert "missing.py" in cache

    def test_second_write_ignored(self) -> None:
        cache = FileContentCache()
        cache.set("a.py", "first")
        cache.set("a.py", "second")
        assert cache.get("a.py") == (True, "first")
        assert len(cache) == 1

    def test_stats(self) -> None:
        cache = FileContentCache()
        cache.get("a.py")
        cache.set("a.py", "x")
        cache.get("a.py")
        stats = cache.stats()
        assert stats["entries"] == 1
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["hit_rate"] == 0.5


class TestContextCaching:
    """RepositoryContext.get_file_content loads each path at most once."""

    def test_loads_once(self) -> None:
        context = FakeRepositoryContext({"app.py": "import openai"})

        async def read_twice() -> tuple[str | None, str | None]:
            return (
                await context.get_file_content("app.py"),
                await context.get_file_content("app.py"),
            )

        first, second = asyncio.run(read_twice())
        assert first == second == "import openai"
        assert context.loads == ["app.py"]

    def test_unreadable_path_not_requested_again(self) -> None:
        context = FakeRepositoryContext({})

        async def read_twice() -> None:
            await context.get_file_content("gone.py")
            await context.get_file_content("gone.py")

        asyncio.run(read_twice())
        assert context.loads == ["gone.py"]
