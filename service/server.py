"""
FastAPI application entry point.

Startup sequence (via lifespan):
  1. Build the single process-wide AlertFeedService (done in create_app)
  2. Optionally warm the cache so the first request is not a cold fetch

The service holds the only cross-request state (the cache slot), so it is
created once here and handed to the routes through app.state.
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from api.routes import router
from cache.result_cache import ResultCache
from config import settings
from errors import PipelineError
from fastapi import FastAPI
from ingestion.service import AlertFeedService

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    stream=sys.stdout,
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(application: FastAPI):
    """Manage startup and shutdown lifecycle."""
    logger.info("Starting Transit Alert Enricher")

    if settings.warm_cache_on_startup:
        logger.info("Warming feed cache on startup...")
        try:
            await application.state.feed_service.get_partitions()
        except PipelineError as exc:
            # The first request will retry; an upstream outage must not stop startup.
            logger.warning("Initial feed refresh failed: %s", exc)

    yield  # Application runs here

    logger.info("Service shutdown complete")


def create_app(feed_service: Optional[AlertFeedService] = None) -> FastAPI:
    application = FastAPI(
        title="Transit Alert Enricher",
        description=(
            "Merges the GTFS-Realtime alerts feed with the additional-info "
            "metadata feed, annotates and cleans each alert, and republishes "
            "'all' and 'normal' severity views."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )
    application.state.feed_service = feed_service or AlertFeedService(
        ResultCache(ttl_seconds=settings.cache_ttl_seconds)
    )
    application.include_router(router)
    return application


app = create_app()


if __name__ == "__main__":
    uvicorn.run("server:app", host=settings.host, port=settings.port, reload=False)
