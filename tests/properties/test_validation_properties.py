"""Property-based tests for the open-registry model-name filter.

Anything the filter accepts has exactly one ``/`` with a plausible
organization and model part; MIME types and multi-segment paths are
always rejected, whatever follows the prefix.
"""
from __future__ import annotations

from hypothesis import given
from hypothesis import strategies as st

from aibom.detectors.model_patterns import is_valid_model_name, normalize_model_name

# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

segment = st.text(
    alphabet=st.sampled_from("abcdefghijklmnopqrstuvwxyzABCDEFGHIJ0123456789-_."),
    min_size=1,
    max_size=30,
)
mime_prefixes = st.sampled_from(["application", "image", "text", "audio", "video"])


# ---------------------------------------------------------------------------
# Properties
# ---------------------------------------------------------------------------


class TestModelNameFilter:
    """is_valid_model_name over generated candidates."""

    @given(name=st.text(max_size=80))
    def test_accepted_names_have_org_and_model(self, name: str) -> None:
        if is_valid_model_name(name):
            org, model = name.split("/")
            assert len(org) >= 2
            assert len(model) >= 2

    @given(prefix=mime_prefixes, rest=segment)
    def test_mime_types_rejected(self, prefix: str, rest: str) -> None:
        assert not is_valid_model_name(f"{prefix}/{rest}")

    @given(parts=st.lists(segment, min_size=3, max_size=5))
    def test_multi_segment_paths_rejected(self, parts: list[str]) -> None:
        assert not is_valid_model_name("/".join(parts))

    @given(name=st.text(max_size=40), provider=st.sampled_from(["OpenAI", "Anthropic", "Google"]))
    def test_commercial_names_only_need_content(self, name: str, provider: str) -> None:
        assert is_valid_model_name(name, provider) == bool(name)


class TestNormalization:
    """normalize_model_name is an identity key."""

    @given(name=st.text(alphabet=st.characters(max_codepoint=127), max_size=40))
    def test_idempotent(self, name: str) -> None:
        once = normalize_model_name(name)
        assert normalize_model_name(once) == once
