"""Analysis settings.

Defaults can be overridden through ``AIBOM_*`` environment variables and,
on the command line, through individual ``aibom analyze`` options.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from aibom.exceptions import ConfigurationError

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})


def _env_number(name: str, default: float, kind: type) -> float:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        value = kind(raw.strip())
    except ValueError:
        raise ConfigurationError(
            f"{name} must be {'an integer' if kind is int else 'a number'}, got {raw!r}"
        ) from None
    if value < 0:
        raise ConfigurationError(f"{name} must not be negative, got {raw!r}")
    return value


def _env_float(name: str, default: float) -> float:
    return float(_env_number(name, default, float))


def _env_int(name: str, default: int) -> int:
    return int(_env_number(name, default, int))


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUE_VALUES


@dataclass(frozen=True)
class AnalysisSettings:
    """Tunables for one analysis run.

    Attributes:
        max_rate_limit_wait: Longest the orchestrator will sleep (seconds)
            for the search quota window to reset before resuming a paused
            unit. Longer waits resume immediately and accept partial results.
        search_query_budget: Maximum number of code-search queries planned.
        code_scan_file_limit: Source files scanned when search is unavailable.
        max_file_size: Files at or above this size (bytes) are never read.
        model_scan_code_limit: Extra source files sampled by model identification.
        enrich_models: Look up open-registry models on Hugging Face.
        http_timeout: Per-request timeout in seconds.
    """

    max_rate_limit_wait: float = 120.0
    search_query_budget: int = 10
    code_scan_file_limit: int = 200
    max_file_size: int = 500_000
    model_scan_code_limit: int = 50
    enrich_models: bool = True
    http_timeout: float = 30.0

    @classmethod
    def from_env(cls) -> AnalysisSettings:
        """Build settings from ``AIBOM_*`` environment variables.

        Raises:
            ConfigurationError: If a numeric variable does not parse or is
                negative. The message names the variable.
        """
        defaults = cls()
        return cls(
            max_rate_limit_wait=_env_float(
                "AIBOM_MAX_RATE_LIMIT_WAIT", defaults.max_rate_limit_wait
            ),
            search_query_budget=_env_int(
                "AIBOM_SEARCH_QUERY_BUDGET", defaults.search_query_budget
            ),
            code_scan_file_limit=_env_int(
                "AIBOM_CODE_SCAN_FILE_LIMIT", defaults.code_scan_file_limit
            ),
            max_file_size=_env_int("AIBOM_MAX_FILE_SIZE", defaults.max_file_size),
            model_scan_code_limit=_env_int(
                "AIBOM_MODEL_SCAN_CODE_LIMIT", defaults.model_scan_code_limit
            ),
            enrich_models=_env_bool("AIBOM_ENRICH_MODELS", defaults.enrich_models),
            http_timeout=_env_float("AIBOM_HTTP_TIMEOUT", defaults.http_timeout),
        )
