"""Shared async HTTP utilities for the repository host and model registry.

Provides thin wrappers around ``httpx.AsyncClient`` with standardised
timeouts, user-agent headers, and error handling. Transport failures are
logged and turned into empty results; they never propagate into the
detection units.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)

# Timeout for all HTTP requests (seconds).
DEFAULT_TIMEOUT: float = 30.0

# User-Agent sent with every request.
USER_AGENT: str = "aibom/0.1"


def new_client(
    *,
    timeout: float = DEFAULT_TIMEOUT,
    headers: dict[str, str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create an ``AsyncClient`` with the standard user agent and redirects."""
    merged = {"User-Agent": USER_AGENT}
    merged.update(headers or {})
    return httpx.AsyncClient(
        timeout=timeout,
        headers=merged,
        follow_redirects=True,
        transport=transport,
    )


async def fetch_response(
    url: str,
    *,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
    timeout: float = DEFAULT_TIMEOUT,
    client: httpx.AsyncClient | None = None,
) -> httpx.Response | None:
    """GET *url* and return the response whatever its status.

    Callers inspect ``status_code`` themselves; only transport failures
    (timeouts, connection errors) are absorbed here.

    Args:
        url: The URL to fetch.
        params: Optional query parameters.
        headers: Extra request headers.
        timeout: Request timeout in seconds, used when no client is given.
        client: Reuse this client instead of opening a short-lived one.

    Returns:
        The response, or None on a transport failure.
    """
    try:
        if client is not None:
            return await client.get(url, params=params, headers=headers)
        async with new_client(timeout=timeout) as own:
            return await own.get(url, params=params, headers=headers)
    except httpx.TimeoutException:
        logger.warning("Timeout fetching %s", url)
        return None
    except httpx.RequestError as exc:
        logger.warning("Request error for %s: %s", url, exc)
        return None


async def fetch_json(
    url: str,
    *,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
    timeout: float = DEFAULT_TIMEOUT,
    client: httpx.AsyncClient | None = None,
) -> dict[str, Any] | list[Any]:
    """Fetch a URL and parse the response as JSON.

    Returns:
        Parsed JSON response (dict or list). Empty dict on any error.
    """
    resp = await fetch_response(
        url, params=params, headers=headers, timeout=timeout, client=client
    )
    if resp is None:
        return {}
    if resp.is_error:
        logger.warning("HTTP %d from %s", resp.status_code, url)
        return {}
    try:
        return resp.json()
    except ValueError as exc:
        logger.warning("Invalid JSON from %s: %s", url, exc)
        return {}
