"""
Severity plugin.

The GTFS-Realtime feed carries no usable severity; the additional-info record's
priority does. Only priorities listed in SEVERITY_MAPPING are translated; an
unmapped priority keeps whatever severity the upstream feed sent.
"""

from enrichment.base import MatchedRecordPlugin
from enrichment.constants import SEVERITY_MAPPING


class SeverityPlugin(MatchedRecordPlugin):
    def enrich_matched(self, alert, record) -> None:
        if record.priority is None:
            return
        level = SEVERITY_MAPPING.get(record.priority)
        if level is not None:
            alert.severity_level = level
