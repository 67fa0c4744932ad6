"""Tests for AnalysisSettings defaults and environment overrides."""

from __future__ import annotations

from dataclasses import FrozenInstanceError

import pytest

from aibom.config import AnalysisSettings
from aibom.exceptions import ConfigurationError


class TestDefaults:
    """Default tunables."""

    def test_rate_limit_cap_is_two_minutes(self) -> None:
        assert AnalysisSettings().max_rate_limit_wait == 120.0

    def test_query_budget_matches_search_quota(self) -> None:
        assert AnalysisSettings().search_query_budget == 10

    def test_settings_are_frozen(self) -> None:
        settings = AnalysisSettings()
        with pytest.raises(FrozenInstanceError):
            settings.max_file_size = 1  # type: ignore[misc]


class TestFromEnv:
    """``AIBOM_*`` environment variables override the defaults."""

    def test_no_variables_gives_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for name in (
            "AIBOM_MAX_RATE_LIMIT_WAIT", "AIBOM_SEARCH_QUERY_BUDGET", "AIBOM_ENRICH_MODELS",
            "AIBOM_HTTP_TIMEOUT", "AIBOM_MAX_FILE_SIZE", "AIBOM_CODE_SCAN_FILE_LIMIT",
            "AIBOM_MODEL_SCAN_CODE_LIMIT",
        ):
            monkeypatch.delenv(name, raising=False)
        assert AnalysisSettings.from_env() == AnalysisSettings()

    def test_numeric_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("AIBOM_MAX_RATE_LIMIT_WAIT", "5.5")
        monkeypatch.setenv("AIBOM_SEARCH_QUERY_BUDGET", "4")
        settings = AnalysisSettings.from_env()
        assert settings.max_rate_limit_wait == 5.5
        assert settings.search_query_budget == 4

    @pytest.mark.parametrize("raw,expected", [("0", False), ("false", False), ("YES", True), ("1", True)])
    def test_enrich_flag(self, monkeypatch: pytest.MonkeyPatch, raw: str, expected: bool) -> None:
        monkeypatch.setenv("AIBOM_ENRICH_MODELS", raw)
        assert AnalysisSettings.from_env().enrich_models is expected

    def test_malformed_number_names_variable(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("AIBOM_MAX_RATE_LIMIT_WAIT", "abc")
        with pytest.raises(ConfigurationError, match="AIBOM_MAX_RATE_LIMIT_WAIT"):
            AnalysisSettings.from_env()

    def test_fractional_integer_rejected(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("AIBOM_SEARCH_QUERY_BUDGET", "4.5")
        with pytest.raises(ConfigurationError, match="AIBOM_SEARCH_QUERY_BUDGET must be an integer"):
            AnalysisSettings.from_env()

    @pytest.mark.parametrize("name", ["AIBOM_SEARCH_QUERY_BUDGET", "AIBOM_CODE_SCAN_FILE_LIMIT"])
    def test_negative_values_rejected(self, monkeypatch: pytest.MonkeyPatch, name: str) -> None:
        monkeypatch.setenv(name, "-1")
        with pytest.raises(ConfigurationError, match=f"{name} must not be negative"):
            AnalysisSettings.from_env()

    def test_zero_and_whitespace_accepted(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("AIBOM_SEARCH_QUERY_BUDGET", " 0 ")
        assert AnalysisSettings.from_env().search_query_budget == 0
