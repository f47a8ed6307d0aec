from __future__ import annotations

import httpx

from .constants import LOGGER


def create_token_client(*, timeout: float, debug_enabled: bool) -> httpx.AsyncClient:
    """Shared client for token endpoint calls; bodies are never logged on success."""

    async def log_request(request: httpx.Request) -> None:
        if not debug_enabled:
            return
        LOGGER.info("Token request %s %s", request.method, request.url)

    async def log_response(response: httpx.Response) -> None:
        if not debug_enabled:
            return
        LOGGER.info(
            "Token response %s %s -> %s",
            response.request.method,
            response.request.url,
            response.status_code,
        )

    return httpx.AsyncClient(
        timeout=timeout,
        event_hooks={"request": [log_request], "response": [log_response]},
    )
