"""aibom exception hierarchy.

All public exceptions inherit from AIBOMError, giving callers a single
base class to catch when they want to handle any aibom-specific failure
without swallowing unrelated errors.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from aibom.context.base import RateLimit


class AIBOMError(Exception):
    """Base exception for all aibom errors."""


class ConfigurationError(AIBOMError):
    """Raised when an ``AIBOM_*`` environment variable holds an invalid value."""


class RepositoryInputError(AIBOMError):
    """Raised when a repository reference cannot be understood.

    Accepted forms are ``owner/repo``, a ``github.com`` URL, or an
    existing local directory.
    """


class RepositoryAccessError(AIBOMError):
    """Raised when repository metadata or its file tree cannot be fetched.

    Covers missing repositories, exhausted core API quota, and any
    other HTTP failure on the calls an analysis cannot start without.
    """


class RateLimitExhausted(AIBOMError):
    """Raised by a search call when the search quota is spent.

    Distinct from an empty or failed search: it tells the code-usage
    unit to checkpoint and pause instead of moving on.
    """

    def __init__(self, rate_limit: RateLimit | None = None) -> None:
        super().__init__("code search rate limit exhausted")
        self.rate_limit = rate_limit


class PayloadMismatchError(AIBOMError):
    """Raised when a Finding violates its category contract.

    Covers payload variants attached to the wrong category, nonzero
    weight on governance/risk observations, negative weights, and
    tangible findings with no evidence.
    """


class BOMError(AIBOMError):
    """Raised when BOM documents cannot be produced or written.

    Covers unknown output formats and unwritable output locations.
    """
