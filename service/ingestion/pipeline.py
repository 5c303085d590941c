"""
Enrichment pipeline: fetch → decode → match → enrich → partition.

Orchestrates the stages without knowing the cache or API layer.
This clean separation means the pipeline can be triggered from:
  - AlertFeedService on a cache miss
  - Tests (directly, with canned payloads)
"""

import logging
from typing import Dict, Optional

from enrichment.base import AlertContext, EnrichmentPlugin
from enrichment.description import DescriptionPlugin
from enrichment.header_emoji import HeaderEmojiPlugin
from enrichment.informed_entities import InformedEntityPlugin
from enrichment.severity import SeverityPlugin
from enrichment.speech_text import SpeechTextPlugin
from enrichment.stop_numbers import StopNumberPlugin
from google.transit import gtfs_realtime_pb2
from ingestion.feed_codec import decode_feed
from ingestion.fetcher import fetch_upstream
from ingestion.matcher import build_metadata_index, match_record
from ingestion.partitioner import FeedPartitions, partition_feed
from models import AddInfoResponse, MetadataRecord

logger = logging.getLogger(__name__)

# Enrichment plugins run in order:
#   InformedEntity sets the rail flag, Description sets the cleaned text,
#   HeaderEmoji and StopNumber read both.
_PLUGINS = [
    SeverityPlugin(),
    SpeechTextPlugin(),
    InformedEntityPlugin(),
    DescriptionPlugin(),
    HeaderEmojiPlugin(),
    StopNumberPlugin(),
]


def enrich_alert(
    entity_id: str,
    alert: gtfs_realtime_pb2.Alert,
    record: Optional[MetadataRecord],
    plugins: Optional[list[EnrichmentPlugin]] = None,
) -> AlertContext:
    """
    Run every plugin over one alert.

    A plugin that fails on a malformed field is skipped for this alert only;
    the remaining plugins and alerts still run.
    """
    context = AlertContext(entity_id=entity_id, record=record)
    for plugin in _PLUGINS if plugins is None else plugins:
        try:
            plugin.enrich(alert, context)
        except Exception:  # pylint: disable=broad-except
            logger.warning(
                "Enrichment rule %s skipped for alert %s",
                type(plugin).__name__,
                entity_id,
                exc_info=True,
            )
    return context


def enrich_feed(
    feed: gtfs_realtime_pb2.FeedMessage,
    index: Dict[str, MetadataRecord],
    plugins: Optional[list[EnrichmentPlugin]] = None,
) -> int:
    """Enrich every alert entity in place. Returns the number of matched alerts."""
    matched = 0
    for entity in feed.entity:
        if not entity.HasField("alert"):
            continue
        record = match_record(entity.id, entity.alert, index)
        if record is not None:
            matched += 1
        enrich_alert(entity.id, entity.alert, record, plugins)
    return matched


def build_partitions(feed_bytes: bytes, add_info: AddInfoResponse) -> FeedPartitions:
    """Pure transform over one snapshot of both upstreams. Raises FeedDecodeError."""
    feed = decode_feed(feed_bytes)
    index = build_metadata_index(add_info.infos.current)
    matched = enrich_feed(feed, index)
    partitions = partition_feed(feed)

    logger.info(
        "Pipeline complete: entities=%d matched=%d records=%d normal=%d",
        len(partitions.all.entity),
        matched,
        len(index),
        len(partitions.normal.entity),
    )
    return partitions


async def run_pipeline() -> FeedPartitions:
    """
    Execute one full cycle against the live upstreams.

    Raises UpstreamFetchError or FeedDecodeError; the caller decides whether
    to fall back to stale data. Nothing is cached here.
    """
    feed_bytes, add_info = await fetch_upstream()
    return build_partitions(feed_bytes, add_info)
