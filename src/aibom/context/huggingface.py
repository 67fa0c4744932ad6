"""Hugging Face model-registry lookups.

``fetch_model_info`` never raises: any failure (HTTP error, timeout,
malformed body) degrades to an unverified ``HuggingFaceInfo`` carrying
the status, so callers keep the model Finding and only lose enrichment.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from aibom.context.http_client import DEFAULT_TIMEOUT, fetch_response
from aibom.core.findings.models import HuggingFaceInfo

logger = logging.getLogger(__name__)

HUGGINGFACE_API_BASE = "https://huggingface.co/api"


def model_api_url(model_id: str) -> str:
    return f"{HUGGINGFACE_API_BASE}/models/{quote(model_id, safe='/')}"


def parse_model_info(model_id: str, data: dict[str, Any]) -> HuggingFaceInfo:
    """Convert a ``/api/models/{id}`` response body into ``HuggingFaceInfo``."""
    card = data.get("cardData") or {}
    safetensors = data.get("safetensors") or {}
    license_name = card.get("license") if isinstance(card, dict) else None
    if isinstance(license_name, list):
        license_name = license_name[0] if license_name else None
    model_size = safetensors.get("total") if isinstance(safetensors, dict) else None
    return HuggingFaceInfo(
        model_id=data.get("id") or data.get("modelId") or model_id,
        verified=True,
        author=data.get("author"),
        downloads=int(data.get("downloads") or 0),
        likes=int(data.get("likes") or 0),
        tags=tuple(str(t) for t in data.get("tags") or ()),
        pipeline_tag=data.get("pipeline_tag"),
        library_name=data.get("library_name"),
        license=license_name,
        model_size=model_size if isinstance(model_size, int) else None,
    )


async def fetch_model_info(
    model_id: str,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    client: httpx.AsyncClient | None = None,
) -> HuggingFaceInfo:
    """Look up *model_id* on the Hugging Face Hub.

    Args:
        model_id: ``org/model`` identifier.
        timeout: Request timeout in seconds.
        client: Optional shared client.

    Returns:
        Verified metadata, or an unverified marker with the failure status.
    """
    url = model_api_url(model_id)
    resp = await fetch_response(url, timeout=timeout, client=client)
    if resp is None:
        return HuggingFaceInfo(model_id=model_id, verified=False, status="network-error")
    if resp.is_error:
        logger.info("Hugging Face lookup for %s returned HTTP %d", model_id, resp.status_code)
        return HuggingFaceInfo(model_id=model_id, verified=False, status=str(resp.status_code))
    try:
        data = resp.json()
    except ValueError:
        logger.warning("Invalid JSON from %s", url)
        return HuggingFaceInfo(model_id=model_id, verified=False, status="invalid-response")
    if not isinstance(data, dict):
        return HuggingFaceInfo(model_id=model_id, verified=False, status="invalid-response")
    return parse_model_info(model_id, data)
