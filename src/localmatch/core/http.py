"""
HTTP helpers.

The only outbound traffic is the optional location enrichment: BigDataCloud
reverse geocoding and ipapi.co IP lookups. Both are keyless public JSON
endpoints, so a single GET helper covers them:
- deterministic timeout and User-Agent
- non-2xx raises `httpx.HTTPStatusError` so callers choose how to degrade
- only JSON *objects* are accepted; anything else is a `ValueError`
"""

from __future__ import annotations

from typing import Any, Mapping

import httpx

from localmatch import __version__

USER_AGENT = f"localmatch/{__version__}"


def get_json_object(
    url: str,
    *,
    params: Mapping[str, Any] | None = None,
    timeout_seconds: float = 15,
) -> dict[str, Any]:
    """GET `url` and return its JSON object body.

    Raises:
        httpx.HTTPError: On transport errors, timeouts or non-2xx status codes.
        ValueError: If the body is not JSON or not a JSON object.
    """
    resp = httpx.get(
        url,
        params=dict(params or {}),
        headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
        timeout=timeout_seconds,
        follow_redirects=True,
    )
    resp.raise_for_status()
    payload = resp.json()
    if not isinstance(payload, dict):
        raise ValueError(f"Expected a JSON object from {url}, got {type(payload).__name__}")
    return payload
