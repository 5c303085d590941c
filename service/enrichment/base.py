"""
Abstract base class for all enrichment plugins.

Why a base class:
  Adding a new enrichment rule = new file implementing enrich().
  The pipeline calls plugins without knowing their internals — Strategy pattern.

Plugins mutate the protobuf Alert in place. Facts one rule derives for a later
rule (the cleaned description text, the rail flag) travel in AlertContext.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from google.transit import gtfs_realtime_pb2
from models import MetadataRecord


@dataclass
class AlertContext:
    entity_id: str
    record: Optional[MetadataRecord] = None
    description_text: str = ""
    is_rail: bool = False


class EnrichmentPlugin(ABC):
    @abstractmethod
    def enrich(self, alert: gtfs_realtime_pb2.Alert, context: AlertContext) -> None:
        """
        Rewrite fields of the alert in place.
        Must skip itself quietly when a field it depends on is absent.
        """


class MatchedRecordPlugin(EnrichmentPlugin):
    """Base for rules that only apply when a metadata record was matched."""

    def enrich(self, alert: gtfs_realtime_pb2.Alert, context: AlertContext) -> None:
        if context.record is None:
            return
        self.enrich_matched(alert, context.record)

    @abstractmethod
    def enrich_matched(self, alert: gtfs_realtime_pb2.Alert, record: MetadataRecord) -> None:
        """Apply the rule using the matched record."""
