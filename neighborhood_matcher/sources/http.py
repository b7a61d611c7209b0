from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class UpstreamError(Exception):
    """Raised when an upstream call failed on every attempt."""

    def __init__(self, source_id: str, message: str, attempts: int = 0):
        super().__init__(f"{source_id}: {message}")
        self.source_id = source_id
        self.attempts = attempts


def create_client(user_agent: str, timeout: float) -> httpx.AsyncClient:
    """Shared async HTTP client for every upstream source."""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout),
        headers={"User-Agent": user_agent, "Accept": "application/json"},
    )


async def fetch_json(
    client: httpx.AsyncClient,
    source_id: str,
    method: str,
    url: str,
    *,
    attempts: int = 2,
    timeout: float = 10.0,
    backoff: float = 1.0,
    **kwargs: Any,
) -> Any:
    """
    Issue one request with retries and return the decoded JSON body.

    Timeouts, transport errors, non-2xx statuses and undecodable bodies all
    count as a failed attempt. Between attempts the wait is
    ``backoff * attempt`` seconds.
    """
    last_error: Exception | None = None
    for attempt in range(1, attempts + 1):
        try:
            response = await client.request(method, url, timeout=timeout, **kwargs)
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError) as e:
            last_error = e
            logger.warning(
                "%s request failed (attempt %d/%d): %s", source_id, attempt, attempts, e
            )
            if attempt < attempts:
                await asyncio.sleep(backoff * attempt)
    raise UpstreamError(source_id, str(last_error), attempts=attempts)
