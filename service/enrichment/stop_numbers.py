"""
Stop number plugin.

Bus alerts often name a generic precinct stop as the informed entity while
the description lists the physical stops affected ("stops 201234 and 205678").
When that happens the stop selectors are replaced by the numbers from the text.
Rail alerts are left alone; their stop ids are not bus stop numbers.
"""

import re

from enrichment.base import AlertContext, EnrichmentPlugin
from enrichment.informed_entities import rebuild_informed_entities, split_informed_entities

STOP_NUMBER_RE = re.compile(r"\b2\d{5,}\b")


class StopNumberPlugin(EnrichmentPlugin):
    def enrich(self, alert, context: AlertContext) -> None:
        if context.is_rail or not context.description_text:
            return

        trips, stop_ids, routes = split_informed_entities(alert)
        if not stop_ids:
            return

        numbers = list(dict.fromkeys(STOP_NUMBER_RE.findall(context.description_text)))
        if not numbers:
            return

        rebuild_informed_entities(alert, trips, numbers, routes)
