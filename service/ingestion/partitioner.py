"""
Splits an enriched feed into the two published views.

  all    — every entity
  normal — every entity except alerts with severity INFO

Both are fresh protobuf copies, so callers holding one cannot mutate the
other or the working feed the pipeline enriched.
"""

import time
from dataclasses import dataclass, field

from google.transit import gtfs_realtime_pb2
from models import AlertFeedType

GTFS_REALTIME_VERSION = "2.0"


@dataclass(frozen=True)
class FeedPartitions:
    all: gtfs_realtime_pb2.FeedMessage
    normal: gtfs_realtime_pb2.FeedMessage
    created_at: float = field(default_factory=time.time)

    def get(self, feed_type: AlertFeedType) -> gtfs_realtime_pb2.FeedMessage:
        return self.all if feed_type is AlertFeedType.all else self.normal


def is_normal_severity(entity: gtfs_realtime_pb2.FeedEntity) -> bool:
    if not entity.HasField("alert"):
        return True
    return entity.alert.severity_level != gtfs_realtime_pb2.Alert.INFO


def partition_feed(feed: gtfs_realtime_pb2.FeedMessage) -> FeedPartitions:
    feed.header.gtfs_realtime_version = GTFS_REALTIME_VERSION

    all_feed = gtfs_realtime_pb2.FeedMessage()
    all_feed.CopyFrom(feed)

    normal_feed = gtfs_realtime_pb2.FeedMessage()
    normal_feed.header.CopyFrom(all_feed.header)
    for entity in all_feed.entity:
        if is_normal_severity(entity):
            normal_feed.entity.add().CopyFrom(entity)

    return FeedPartitions(all=all_feed, normal=normal_feed)
