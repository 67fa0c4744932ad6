"""Tests for the GitHub client and Repository Context.

All HTTP traffic goes through ``httpx.MockTransport``; no test touches
the network.
"""

from __future__ import annotations

import asyncio
import base64
import time
from typing import Callable

import httpx
import pytest

from aibom.context.base import RateLimit
from aibom.context.github import (
    GitHubClient,
    GitHubRepositoryContext,
    extract_snippet,
    parse_rate_limit,
    parse_repo_input,
)
from aibom.exceptions import RateLimitExhausted, RepositoryAccessError, RepositoryInputError

Handler = Callable[[httpx.Request], httpx.Response]

REPO_JSON = {
    "name": "widget",
    "full_name": "acme/widget",
    "owner": {"login": "acme"},
    "html_url": "https://github.com/acme/widget",
    "description": "LLM powered widget",
    "topics": ["llm"],
    "default_branch": "main",
    "languages_url": "https://api.github.com/repos/acme/widget/languages",
}

TREE_JSON = {
    "tree": [
        {"path": "src", "type": "tree"},
        {"path": "src/app.py", "type": "blob", "size": 120, "sha": "abc"},
        {"path": "requirements.txt", "type": "blob", "size": 30, "sha": "def"},
    ]
}


def _encoded(text: str) -> str:
    return base64.b64encode(text.encode()).decode()


def github_handler(extra: dict[str, httpx.Response] | None = None) -> Handler:
    """Route by URL path; *extra* overrides or adds paths."""
    routes: dict[str, httpx.Response] = {
        "/repos/acme/widget": httpx.Response(200, json=REPO_JSON),
        "/repos/acme/widget/languages": httpx.Response(200, json={"Python": 900, "Shell": 10}),
        "/repos/acme/widget/git/trees/main": httpx.Response(200, json=TREE_JSON),
    }
    routes.update(extra or {})

    def handler(request: httpx.Request) -> httpx.Response:
        return routes.get(request.url.path, httpx.Response(404, json={"message": "Not Found"}))

    return handler


def make_client(handler: Handler, token: str | None = "t0ken", sleep=None) -> GitHubClient:
    kwargs = {"sleep": sleep} if sleep is not None else {}
    return GitHubClient(token, transport=httpx.MockTransport(handler), **kwargs)


# ---------------------------------------------------------------------------
# Input parsing
# ---------------------------------------------------------------------------


class TestParseRepoInput:
    """Repository reference parsing."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("acme/widget", ("acme", "widget")),
            ("https://github.com/acme/widget", ("acme", "widget")),
            ("https://github.com/acme/widget.git", ("acme", "widget")),
            ("git@github.com/acme/widget/tree/main", ("acme", "widget")),
            ("  acme/widget  ", ("acme", "widget")),
        ],
    )
    def test_valid(self, value: str, expected: tuple[str, str]) -> None:
        assert parse_repo_input(value) == expected

    @pytest.mark.parametrize("value", ["not-a-repo", "/widget", "acme/", ""])
    def test_invalid(self, value: str) -> None:
        with pytest.raises(RepositoryInputError, match="owner/repo"):
            parse_repo_input(value)


class TestRateLimitParsing:
    """X-RateLimit-* headers."""

    def test_headers(self) -> None:
        resp = httpx.Response(200, headers={
            "X-RateLimit-Remaining": "3",
            "X-RateLimit-Limit": "10",
            "X-RateLimit-Reset": "1700000060",
        })
        assert parse_rate_limit(resp) == RateLimit(remaining=3, limit=10, reset=1700000060.0)

    def test_missing_headers(self) -> None:
        limit = parse_rate_limit(httpx.Response(200))
        assert limit.remaining == 0
        assert limit.reset is None
        assert limit.seconds_until_reset(0.0) is None

    def test_seconds_until_reset(self) -> None:
        assert RateLimit(reset=160.0).seconds_until_reset(100.0) == 60.0


class TestExtractSnippet:
    """Picking the useful line of a text-match fragment."""

    def test_line_containing_match(self) -> None:
        item = {"text_matches": [{
            "fragment": "import os\nfrom openai import OpenAI\nclient = OpenAI()",
            "matches": [{"text": "from openai import"}],
        }]}
        assert extract_snippet(item) == "from openai import OpenAI"

    def test_skips_line_markers(self) -> None:
        item = {"text_matches": [{"fragment": "12:\nclient.chat.completions.create()", "matches": []}]}
        assert extract_snippet(item) == "client.chat.completions.create()"

    def test_no_text_matches(self) -> None:
        assert extract_snippet({}) is None


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class TestRepositoryMetadata:
    """get_repository and get_tree."""

    def test_repository_with_languages(self) -> None:
        async def go():
            async with make_client(github_handler()) as client:
                return await client.get_repository("acme", "widget")

        info = asyncio.run(go())
        assert info.full_name == "acme/widget"
        assert info.languages == ("Python", "Shell")
        assert info.topics == ("llm",)
        assert info.default_branch == "main"

    def test_not_found(self) -> None:
        async def go():
            async with make_client(github_handler()) as client:
                return await client.get_repository("acme", "missing")

        with pytest.raises(RepositoryAccessError, match="Repository not found"):
            asyncio.run(go())

    def test_rate_limited_metadata(self) -> None:
        handler = github_handler({
            "/repos/acme/widget": httpx.Response(403, headers={
                "X-RateLimit-Remaining": "0",
                "X-RateLimit-Reset": str(int(time.time()) + 600),
            }),
        })

        async def go():
            async with make_client(handler, token=None) as client:
                return await client.get_repository("acme", "widget")

        with pytest.raises(RepositoryAccessError, match="Rate limit exceeded"):
            asyncio.run(go())

    def test_tree_keeps_blobs_only(self) -> None:
        async def go():
            async with make_client(github_handler()) as client:
                return await client.get_tree("acme", "widget", "main")

        files = asyncio.run(go())
        assert [f.path for f in files] == ["src/app.py", "requirements.txt"]
        assert files[0].size == 120

    def test_non_json_metadata(self) -> None:
        handler = github_handler({"/repos/acme/widget": httpx.Response(200, text="<html>maintenance</html>")})

        async def go():
            async with make_client(handler) as client:
                return await client.get_repository("acme", "widget")

        with pytest.raises(RepositoryAccessError, match="Invalid repository metadata"):
            asyncio.run(go())

    def test_non_json_tree(self) -> None:
        handler = github_handler({"/repos/acme/widget/git/trees/main": httpx.Response(200, json=["x"])})

        async def go():
            async with make_client(handler) as client:
                return await client.get_tree("acme", "widget", "main")

        with pytest.raises(RepositoryAccessError, match="Invalid repository tree"):
            asyncio.run(go())


class TestFileContent:
    """Contents API decoding and the short rate-limit retry."""

    def test_base64_decoded(self) -> None:
        handler = github_handler({
            "/repos/acme/widget/contents/src/app.py": httpx.Response(
                200, json={"content": _encoded("from openai import OpenAI\n")}
            ),
        })

        async def go():
            async with make_client(handler) as client:
                return await client.get_file_content("acme", "widget", "src/app.py", "main")

        assert asyncio.run(go()) == "from openai import OpenAI\n"

    def test_missing_file_is_none(self) -> None:
        async def go():
            async with make_client(github_handler()) as client:
                return await client.get_file_content("acme", "widget", "nope.py", "main")

        assert asyncio.run(go()) is None

    def test_short_rate_limit_waited_out_once(self) -> None:
        responses = [
            httpx.Response(403, headers={"X-RateLimit-Reset": str(int(time.time()) + 20)}),
            httpx.Response(200, json={"content": _encoded("ok")}),
        ]
        sleeps: list[float] = []

        async def fake_sleep(seconds: float) -> None:
            sleeps.append(seconds)

        def handler(request: httpx.Request) -> httpx.Response:
            return responses.pop(0)

        async def go():
            async with make_client(handler, sleep=fake_sleep) as client:
                return await client.get_file_content("acme", "widget", "a.py", "main")

        assert asyncio.run(go()) == "ok"
        assert len(sleeps) == 1
        assert 0 < sleeps[0] < 60


class TestSearch:
    """Code search responses and quota exhaustion."""

    def test_results_and_rate_limit(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.params["q"].startswith("from openai import")
            return httpx.Response(
                200,
                headers={"X-RateLimit-Remaining": "9", "X-RateLimit-Limit": "10"},
                json={"items": [{
                    "path": "src/app.py",
                    "html_url": "https://github.com/acme/widget/blob/abc/src/app.py",
                    "text_matches": [{
                        "fragment": "from openai import OpenAI",
                        "matches": [{"text": "from openai import"}],
                    }],
                }]},
            )

        async def go():
            async with make_client(handler) as client:
                return await client.search_code("from openai import repo:acme/widget")

        response = asyncio.run(go())
        assert response is not None
        assert response.rate_limit.remaining == 9
        assert response.items[0].path == "src/app.py"
        assert response.items[0].snippet == "from openai import OpenAI"

    @pytest.mark.parametrize("status", [403, 429])
    def test_quota_exhausted_raises(self, status: int) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status, headers={
                "X-RateLimit-Remaining": "0", "X-RateLimit-Reset": "1700000060",
            })

        async def go():
            async with make_client(handler) as client:
                return await client.search_code("anything")

        with pytest.raises(RateLimitExhausted) as excinfo:
            asyncio.run(go())
        assert excinfo.value.rate_limit is not None
        assert excinfo.value.rate_limit.reset == 1700000060.0

    def test_server_error_is_none(self) -> None:
        async def go():
            async with make_client(lambda request: httpx.Response(500)) as client:
                return await client.search_code("anything")

        assert asyncio.run(go()) is None


class TestDependencyGraph:
    """SBOM endpoint."""

    def test_packages_with_purl(self) -> None:
        handler = github_handler({
            "/repos/acme/widget/dependency-graph/sbom": httpx.Response(200, json={"sbom": {"packages": [
                {
                    "name": "openai",
                    "versionInfo": "1.30.0",
                    "SPDXID": "SPDXRef-pypi-openai",
                    "licenseConcluded": "Apache-2.0",
                    "externalRefs": [
                        {"referenceType": "purl", "referenceLocator": "pkg:pypi/openai@1.30.0"},
                    ],
                },
            ]}}),
        })

        async def go():
            async with make_client(handler) as client:
                return await client.get_sbom("acme", "widget")

        packages = asyncio.run(go())
        assert packages is not None
        assert packages[0].name == "openai"
        assert packages[0].purl_type == "pypi"
        assert packages[0].license_concluded == "Apache-2.0"

    def test_unavailable_is_none(self) -> None:
        async def go():
            async with make_client(github_handler()) as client:
                return await client.get_sbom("acme", "widget")

        assert asyncio.run(go()) is None


# ---------------------------------------------------------------------------
# Context
# ---------------------------------------------------------------------------


class TestGitHubRepositoryContext:
    """GitHubRepositoryContext.open and its capabilities."""

    def _open(self, reference: str, token: str | None, handler: Handler | None = None):
        async def go():
            return await GitHubRepositoryContext.open(
                reference, token, transport=httpx.MockTransport(handler or github_handler())
            )

        return asyncio.run(go())

    def test_open_by_url(self) -> None:
        context = self._open("https://github.com/acme/widget", token="t0ken")
        assert context.info.full_name == "acme/widget"
        assert [f.path for f in context.files] == ["src/app.py", "requirements.txt"]
        assert context.search_available is True
        asyncio.run(context.aclose())

    def test_no_token_disables_search(self) -> None:
        context = self._open("acme/widget", token=None)
        assert context.search_available is False
        assert asyncio.run(context.search_code("from openai import")) is None
        asyncio.run(context.aclose())

    def test_search_scoped_to_repository(self) -> None:
        seen: list[str] = []
        base = github_handler()

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/search/code":
                seen.append(request.url.params["q"])
                return httpx.Response(200, json={"items": []})
            return base(request)

        context = self._open("acme/widget", token="t0ken", handler=handler)
        asyncio.run(context.search_code("from openai import"))
        asyncio.run(context.aclose())
        assert seen == ["from openai import repo:acme/widget"]

    def test_file_url(self) -> None:
        context = self._open("acme/widget", token=None)
        assert context.file_url("src/app.py", 4) == (
            "https://github.com/acme/widget/blob/main/src/app.py#L4"
        )
        asyncio.run(context.aclose())

    def test_invalid_reference(self) -> None:
        with pytest.raises(RepositoryInputError):
            self._open("not-a-repo", token=None)

    def test_missing_repository(self) -> None:
        with pytest.raises(RepositoryAccessError):
            self._open("acme/missing", token=None)

    def test_client_closed_when_metadata_is_not_json(self, monkeypatch: pytest.MonkeyPatch) -> None:
        closed: list[bool] = []
        original = GitHubClient.aclose

        async def recording_aclose(client: GitHubClient) -> None:
            closed.append(True)
            await original(client)

        monkeypatch.setattr(GitHubClient, "aclose", recording_aclose)
        handler = github_handler({"/repos/acme/widget": httpx.Response(200, text="not json")})
        with pytest.raises(RepositoryAccessError):
            self._open("acme/widget", token=None, handler=handler)
        assert closed == [True]

    def test_client_closed_on_unexpected_error(self, monkeypatch: pytest.MonkeyPatch) -> None:
        closed: list[bool] = []
        original = GitHubClient.aclose

        async def recording_aclose(client: GitHubClient) -> None:
            closed.append(True)
            await original(client)

        def handler(request: httpx.Request) -> httpx.Response:
            raise RuntimeError("transport bug")

        monkeypatch.setattr(GitHubClient, "aclose", recording_aclose)
        with pytest.raises(RuntimeError, match="transport bug"):
            self._open("acme/widget", token=None, handler=handler)
        assert closed == [True]
