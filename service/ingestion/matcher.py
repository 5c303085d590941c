"""
Joins GTFS-Realtime alerts to additional-info metadata records.

Each alert's url.translation[0].text ends in "#/<id>", where <id> is the
record id in the additional-info feed.
"""

import logging
from typing import Any, Dict, Iterable, Optional

from google.transit import gtfs_realtime_pb2
from models import MetadataRecord
from pydantic import ValidationError

logger = logging.getLogger(__name__)

JOIN_KEY_SEPARATOR = "#/"


def build_metadata_index(records: Optional[Iterable[Any]]) -> Dict[str, MetadataRecord]:
    """
    Index records by id. On duplicate ids the last occurrence wins.

    Raw records are validated one at a time; a malformed one is logged and
    skipped so the rest of the feed still indexes.
    """
    index: Dict[str, MetadataRecord] = {}
    skipped = 0
    for position, raw in enumerate(records or ()):
        if isinstance(raw, MetadataRecord):
            record = raw
        else:
            try:
                record = MetadataRecord.model_validate(raw)
            except ValidationError as exc:
                skipped += 1
                logger.warning(
                    "Skipping malformed additional info record at position %d: %s",
                    position,
                    exc.errors(include_url=False),
                )
                continue
        index[record.id] = record

    if skipped:
        logger.warning("Skipped %d malformed additional info records", skipped)
    return index


def extract_join_key(alert: gtfs_realtime_pb2.Alert) -> Optional[str]:
    """
    Return the metadata id embedded in the alert URL, or None if there is no URL.

    Everything up to and including the last "#/" is stripped; a URL without
    the separator is used whole.
    """
    if not alert.HasField("url") or not alert.url.translation:
        return None
    url = alert.url.translation[0].text
    if not url:
        return None
    return url.rsplit(JOIN_KEY_SEPARATOR, 1)[-1]


def match_record(
    entity_id: str,
    alert: gtfs_realtime_pb2.Alert,
    index: Dict[str, MetadataRecord],
) -> Optional[MetadataRecord]:
    """Resolve the metadata record for an alert. A miss is not an error."""
    join_key = extract_join_key(alert)
    if join_key is None:
        logger.warning("Alert %s has no url translation; skipping metadata match", entity_id)
        return None

    record = index.get(join_key)
    if record is None:
        logger.debug("No metadata record for alert %s (key=%s)", entity_id, join_key)
    return record
