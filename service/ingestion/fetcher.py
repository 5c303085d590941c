"""
Upstream API fetcher with retry and exponential backoff.

Uses tenacity rather than manual retry logic

Retry strategy:
  - Up to settings.fetch_retries retries per upstream (one more attempt in total)
  - Exponential backoff: 1s, 2s, 4s (with jitter to prevent retry storms)
  - Only retries on 5xx and network errors — 4xx means WE sent a bad request
    (usually a bad API key), so retrying won't help

Both upstreams authenticate with "Authorization: apikey <key>".
"""

import asyncio
import logging
from typing import Optional

import httpx
from config import settings
from errors import UpstreamFetchError
from models import AddInfoResponse
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

logger = logging.getLogger(__name__)

_RETRY_WAIT = wait_exponential_jitter(initial=1, max=8)


def _is_retryable(exc: BaseException) -> bool:
    """
    Retry on network errors and 5xx responses.
    Do NOT retry on 4xx — those are client errors (our bug, not upstream's).
    """
    if isinstance(exc, httpx.TimeoutException):
        return True
    if isinstance(exc, httpx.NetworkError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500
    return False


def _auth_headers() -> dict:
    return {"Authorization": f"apikey {settings.api_key}"}


async def _get(client: httpx.AsyncClient, url: str) -> httpx.Response:
    """GET with retries. Raises the last exception if all retries are exhausted."""
    async for attempt in AsyncRetrying(
        stop=stop_after_attempt(settings.fetch_retries + 1),
        wait=_RETRY_WAIT,
        retry=retry_if_exception(_is_retryable),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    ):
        with attempt:
            response = await client.get(url)
            response.raise_for_status()
    return response


async def fetch_alerts_feed(client: httpx.AsyncClient) -> bytes:
    """Fetch the raw GTFS-Realtime alerts protobuf."""
    logger.info("Fetching GTFS-Realtime alerts from %s", settings.alerts_feed_url)
    try:
        response = await _get(client, settings.alerts_feed_url)
    except httpx.HTTPError as exc:
        raise UpstreamFetchError(f"GTFS-Realtime alerts fetch failed: {exc}") from exc

    logger.info("Received %d bytes of GTFS-Realtime alerts", len(response.content))
    return response.content


async def fetch_add_info(client: httpx.AsyncClient) -> AddInfoResponse:
    """Fetch and validate the additional-info JSON feed."""
    logger.info("Fetching additional info from %s", settings.add_info_url)
    try:
        response = await _get(client, settings.add_info_url)
        add_info = AddInfoResponse.model_validate(response.json())
    except httpx.HTTPError as exc:
        raise UpstreamFetchError(f"Additional info fetch failed: {exc}") from exc
    except ValueError as exc:
        raise UpstreamFetchError(f"Additional info payload is malformed: {exc}") from exc

    logger.info("Received %d additional info records", len(add_info.infos.current))
    return add_info


async def fetch_upstream(
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> tuple[bytes, AddInfoResponse]:
    """
    Fetch both upstreams concurrently.

    Raises UpstreamFetchError if either fails. The other fetch is cancelled
    before the shared client closes, so it cannot keep retrying against it.
    The caller is responsible for handling the final failure gracefully.
    """
    async with httpx.AsyncClient(
        timeout=settings.fetch_timeout_seconds, headers=_auth_headers(), transport=transport
    ) as client:
        tasks = [
            asyncio.ensure_future(fetch_alerts_feed(client)),
            asyncio.ensure_future(fetch_add_info(client)),
        ]
        try:
            feed_bytes, add_info = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
    return feed_bytes, add_info
