import asyncio
import logging
from typing import Optional

from config import settings
from errors import PipelineError
from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import JSONResponse
from ingestion.feed_codec import encode_feed, feed_to_dict
from ingestion.partitioner import FeedPartitions
from ingestion.service import AlertFeedService
from models import AlertFeedType, ErrorResponse, HealthResponse, HealthStatus

router = APIRouter()
logger = logging.getLogger(__name__)

PROTOBUF_MEDIA_TYPE = "application/x-protobuf"
STALE_HEADER = "X-Feed-Stale"


def get_feed_service(request: Request) -> AlertFeedService:
    return request.app.state.feed_service


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(message=message).model_dump())


def _render(partitions: FeedPartitions, feed_type: AlertFeedType, as_json: bool, stale: bool) -> Response:
    feed = partitions.get(feed_type)
    headers = {STALE_HEADER: "true"} if stale else None
    if as_json:
        return JSONResponse(content=feed_to_dict(feed), headers=headers)
    return Response(content=encode_feed(feed), media_type=PROTOBUF_MEDIA_TYPE, headers=headers)


@router.get("/v1/gtfs/alerts/{alert_type}")
async def get_alerts(
    alert_type: str,
    json: Optional[str] = Query(None, description="Any non-empty value returns JSON instead of protobuf"),
    service: AlertFeedService = Depends(get_feed_service),
):
    """
    Returns the enriched GTFS-Realtime alerts feed.

    `all` carries every alert; `normal` drops alerts classified as INFO.

    When the upstreams fail or the refresh is too slow, the last good feed is
    served with an X-Feed-Stale header. With nothing to fall back on the
    request fails with 502 (upstream failure) or 504 (timeout).
    """
    try:
        feed_type = AlertFeedType(alert_type)
    except ValueError:
        return _error(404, "unknown alert type")

    as_json = bool(json)

    try:
        partitions = await service.get_partitions(timeout=settings.request_timeout_seconds)
    except PipelineError as exc:
        stale = service.stale_partitions()
        if stale is None:
            return _error(502, f"upstream feed unavailable: {exc}")
        logger.warning("Serving stale %s feed after refresh failure: %s", feed_type.value, exc)
        return _render(stale, feed_type, as_json, stale=True)
    except asyncio.TimeoutError:
        stale = service.stale_partitions()
        if stale is None:
            return _error(504, "timed out waiting for upstream feed")
        logger.warning("Serving stale %s feed; refresh still running", feed_type.value)
        return _render(stale, feed_type, as_json, stale=True)

    return _render(partitions, feed_type, as_json, stale=False)


@router.get("/health", response_model=HealthResponse)
def health(service: AlertFeedService = Depends(get_feed_service)):
    """
    Lightweight health check. Does NOT call the upstream APIs.

    Status semantics:
      ok       — no refresh has failed since the last successful one
      degraded — the most recent refresh failed (upstream issue)
    """
    expires_in = service.cache.expires_in()
    return HealthResponse(
        status=HealthStatus.degraded if service.last_error else HealthStatus.ok,
        cache_fresh=expires_in is not None and expires_in > 0,
        cache_expires_in_seconds=max(expires_in, 0.0) if expires_in is not None else None,
        last_successful_refresh=service.last_successful_refresh,
        last_error=service.last_error,
        cache_ttl_seconds=service.cache.ttl_seconds,
        alerts_feed_url=settings.alerts_feed_url,
        add_info_url=settings.add_info_url,
    )
