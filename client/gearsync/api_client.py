"""Shared httpx client setup: base URL, auth header, platform tag, request logging."""

import logging

import httpx

from gearsync.config import API_BASE_URL, API_TIMEOUT_SECONDS, CLIENT_PLATFORM

logger = logging.getLogger(__name__)


def build_client(
    access_token: str | None = None,
    base_url: str = API_BASE_URL,
    platform: str = CLIENT_PLATFORM,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """
    AsyncClient preconfigured for the repair backend.

    transport is only passed in tests (httpx.MockTransport).
    """
    headers = {"X-Platform": platform}
    if access_token:
        headers["Authorization"] = f"Bearer {access_token}"

    return httpx.AsyncClient(
        base_url=base_url,
        headers=headers,
        timeout=API_TIMEOUT_SECONDS,
        transport=transport,
        event_hooks={"request": [_log_request], "response": [_log_response]},
    )


async def _log_request(request: httpx.Request) -> None:
    logger.debug("API request", extra={"method": request.method, "url": str(request.url)})


async def _log_response(response: httpx.Response) -> None:
    level = logging.WARNING if response.is_error else logging.DEBUG
    logger.log(
        level,
        "API response",
        extra={"status": response.status_code, "url": str(response.request.url)},
    )
