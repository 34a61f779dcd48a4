"""Shared utilities for retrieving and decoding external API responses."""

from __future__ import annotations

from typing import Any, Mapping

import httpx

DEFAULT_TIMEOUT_SECONDS = 10.0


Headers = Mapping[str, str] | None
Params = Mapping[str, Any] | None


async def fetch_json(
    url: str,
    *,
    client: httpx.AsyncClient | None = None,
    headers: Headers = None,
    params: Params = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> Any:
    """Issue a single GET request and return the decoded JSON payload.

    When ``client`` is given its connection pool is reused, which is how
    concurrent workers share one transport. Otherwise a short-lived client is
    opened for the call. Non-2xx responses raise ``httpx.HTTPStatusError``;
    nothing is retried.
    """

    if client is None:
        async with httpx.AsyncClient(timeout=timeout) as owned:
            response = await owned.get(url, headers=headers, params=params)
    else:
        response = await client.get(url, headers=headers, params=params, timeout=timeout)

    response.raise_for_status()
    return response.json()


__all__ = ["fetch_json", "DEFAULT_TIMEOUT_SECONDS"]
