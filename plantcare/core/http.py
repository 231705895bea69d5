"""Shared httpx helpers for external providers."""

from typing import Any, Mapping, Optional

import httpx

from plantcare.core.config import Settings, get_settings
from plantcare.core.exceptions import ProviderError


def build_timeout(settings: Optional[Settings] = None) -> httpx.Timeout:
    settings = settings or get_settings()
    return httpx.Timeout(
        settings.HTTP_READ_TIMEOUT_SECONDS,
        connect=settings.HTTP_CONNECT_TIMEOUT_SECONDS,
    )


def build_http_client(settings: Optional[Settings] = None) -> httpx.AsyncClient:
    """Async client with bounded connect/read timeouts."""
    return httpx.AsyncClient(timeout=build_timeout(settings), follow_redirects=True)


async def get_json(
    client: httpx.AsyncClient,
    url: str,
    *,
    provider: str,
    params: Optional[Mapping[str, Any]] = None,
) -> Any:
    """
    GET ``url`` and decode JSON.

    Any transport error, timeout, non-2xx status or undecodable body becomes a
    ``ProviderError``; a non-2xx keeps its status code for backoff decisions.
    """
    try:
        response = await client.get(url, params=params)
    except httpx.HTTPError as e:
        raise ProviderError(provider, f"request failed: {e!r}") from e

    if response.status_code >= 400:
        raise ProviderError(provider, f"HTTP {response.status_code}", status_code=response.status_code)

    try:
        return response.json()
    except ValueError as e:
        raise ProviderError(provider, "response is not valid JSON") from e
