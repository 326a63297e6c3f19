"""
Low-level helpers that send a request and map the outcome onto the error taxonomy.
"""

import asyncio
import json
import logging
import time
from typing import Any

import aiohttp

from tidal_cli.exceptions import (
    TransientNetworkError,
    UnauthorizedError,
    UpstreamRejected,
)

log = logging.getLogger(__name__)


async def fetch_json(
    session: aiohttp.ClientSession, method: str, url: str, **kwargs: Any
) -> tuple[int, Any]:
    """
    Sends a request and returns the status code with the decoded JSON body.

    A body that is not JSON decodes to an empty dict. Transport failures and
    timeouts are raised as TransientNetworkError.
    """
    start_time = time.monotonic()
    try:
        async with session.request(method, url, **kwargs) as r:
            text = await r.text()
            status = r.status
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        raise TransientNetworkError(f"{method} {url} failed: {e}") from e

    duration_ms = (time.monotonic() - start_time) * 1000
    log.debug(f"{method} {url} -> {status} ({duration_ms:.0f} ms)")

    try:
        payload = json.loads(text) if text else {}
    except json.JSONDecodeError:
        payload = {}
    return status, payload


def raise_for_payload(status: int, payload: Any, endpoint: str) -> None:
    """Raises the matching error for a non-2xx response."""
    if 200 <= status < 300:
        return
    detail = ""
    if isinstance(payload, dict):
        detail = payload.get("userMessage") or payload.get("error_description") or ""
    if status == 401:
        raise UnauthorizedError(f"{endpoint}: credential rejected (401). {detail}".strip())
    raise UpstreamRejected(f"{endpoint} returned {status}. {detail}".strip(), status=status)


async def request_json(
    session: aiohttp.ClientSession,
    method: str,
    url: str,
    endpoint: str | None = None,
    **kwargs: Any,
) -> Any:
    """Sends a request and returns the decoded body of a successful response."""
    status, payload = await fetch_json(session, method, url, **kwargs)
    raise_for_payload(status, payload, endpoint or url)
    return payload
