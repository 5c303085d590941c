"""
GTFS-Realtime protobuf decode/encode layer.

Thin wrapper over google.transit.gtfs_realtime_pb2 so the rest of the service
never touches ParseFromString directly and decode failures surface as
FeedDecodeError.
"""

import logging

from errors import FeedDecodeError
from google.protobuf.json_format import MessageToDict
from google.protobuf.message import DecodeError
from google.transit import gtfs_realtime_pb2

logger = logging.getLogger(__name__)


def decode_feed(data: bytes) -> gtfs_realtime_pb2.FeedMessage:
    """Parse raw protobuf bytes into a FeedMessage. Raises FeedDecodeError."""
    feed = gtfs_realtime_pb2.FeedMessage()
    try:
        feed.ParseFromString(data)
    except DecodeError as exc:
        logger.error("Failed to decode GTFS-Realtime feed: %s", exc)
        raise FeedDecodeError(f"Failed to decode GTFS-Realtime feed: {exc}") from exc

    # A payload that parses but misses required header fields is not a feed.
    if not feed.IsInitialized():
        logger.error("Decoded feed is missing required header fields")
        raise FeedDecodeError("Decoded feed is missing required header fields")

    logger.debug(
        "GTFS-Realtime feed decoded (entities=%d, version=%s, timestamp=%d)",
        len(feed.entity),
        feed.header.gtfs_realtime_version,
        feed.header.timestamp,
    )
    return feed


def encode_feed(feed: gtfs_realtime_pb2.FeedMessage) -> bytes:
    """Serialise a FeedMessage. Deterministic so identical feeds give identical bytes."""
    return feed.SerializeToString(deterministic=True)


def feed_to_dict(feed: gtfs_realtime_pb2.FeedMessage) -> dict:
    """Structured (JSON-ready) view of a FeedMessage using camelCase field names."""
    return MessageToDict(feed)
