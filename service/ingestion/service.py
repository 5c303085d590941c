"""
Cache-fronted access to the enriched feeds.

Single-flight refresh:
  On a cache miss the first caller starts one asyncio.Task running the
  pipeline; every caller arriving before it finishes awaits that same task.
  Nobody polls, and no lock is held across the upstream calls. The task
  handle is only read and replaced on the event loop, between awaits.

Cancellation:
  Waiters await the task through asyncio.shield, so a caller that times out
  (or whose request is cancelled) does not cancel the refresh. It still
  completes and populates the cache for the next caller.

A failed refresh writes nothing to the cache. Its exception reaches every
waiter as a PipelineError (unexpected errors are wrapped) and the next call
starts over.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

from cache.result_cache import ResultCache
from errors import PipelineError
from ingestion.partitioner import FeedPartitions
from ingestion.pipeline import run_pipeline

logger = logging.getLogger(__name__)


def _consume_exception(task: asyncio.Task) -> None:
    # Every waiter may have timed out already; mark the failure as retrieved.
    if not task.cancelled():
        task.exception()


class AlertFeedService:
    def __init__(
        self,
        cache: ResultCache[FeedPartitions],
        pipeline: Callable[[], Awaitable[FeedPartitions]] = run_pipeline,
    ):
        self.cache = cache
        self._pipeline = pipeline
        self._inflight: Optional[asyncio.Task] = None
        self.last_successful_refresh: Optional[datetime] = None
        self.last_error: Optional[str] = None

    async def get_partitions(self, timeout: Optional[float] = None) -> FeedPartitions:
        """
        Return the cached feeds, refreshing them first on a miss.

        Raises PipelineError if the refresh fails, asyncio.TimeoutError if it
        takes longer than timeout (the refresh itself keeps running).
        """
        cached = self.cache.get()
        if cached is not None:
            return cached

        if self._inflight is None or self._inflight.done():
            logger.info("Cache miss, starting refresh")
            self._inflight = asyncio.ensure_future(self._refresh())
            self._inflight.add_done_callback(_consume_exception)
        else:
            logger.debug("Cache miss, joining in-flight refresh")

        waiter = asyncio.shield(self._inflight)
        if timeout is None:
            return await waiter
        return await asyncio.wait_for(waiter, timeout)

    async def _refresh(self) -> FeedPartitions:
        try:
            partitions = await self._pipeline()
        except PipelineError as exc:
            self.last_error = str(exc)
            logger.error("Feed refresh failed: %s", exc)
            raise
        except Exception as exc:
            # Anything else is still a failed run: callers fall back to stale feeds.
            self.last_error = f"{type(exc).__name__}: {exc}"
            logger.exception("Feed refresh failed unexpectedly")
            raise PipelineError(self.last_error) from exc
        self.cache.set(partitions)
        self.last_successful_refresh = datetime.now(timezone.utc)
        self.last_error = None
        return partitions

    def stale_partitions(self) -> Optional[FeedPartitions]:
        """Last good feeds even if expired, for serving while upstream is down."""
        return self.cache.last_value
