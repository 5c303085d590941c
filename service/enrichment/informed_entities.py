"""
Informed entity rewrite plugin.

Upstream repeats the same stop or route selector many times per alert. The
list is rebuilt as:
  1. every trip selector, untouched and never merged
  2. each distinct stop_id once
  3. each distinct (route_id, agency_id) pair once
Stops and routes keep first-seen order so the output is deterministic.

Also sets context.is_rail when any non-trip selector names a rail agency.
"""

from typing import Dict, List, Tuple

from enrichment.base import AlertContext, EnrichmentPlugin
from enrichment.constants import RAIL_AGENCY_IDS
from google.transit import gtfs_realtime_pb2

EntitySelector = gtfs_realtime_pb2.EntitySelector


def rebuild_informed_entities(
    alert: gtfs_realtime_pb2.Alert,
    trips: List[EntitySelector],
    stop_ids: List[str],
    routes: List[Tuple[str, str]],
) -> None:
    """Replace alert.informed_entity with trips, then stops, then routes."""
    selectors: List[EntitySelector] = [EntitySelector() for _ in trips]
    for selector, trip in zip(selectors, trips):
        selector.CopyFrom(trip)
    selectors.extend(EntitySelector(stop_id=stop_id) for stop_id in stop_ids)
    for route_id, agency_id in routes:
        selector = EntitySelector(route_id=route_id)
        if agency_id:
            selector.agency_id = agency_id
        selectors.append(selector)

    del alert.informed_entity[:]
    alert.informed_entity.extend(selectors)


def split_informed_entities(
    alert: gtfs_realtime_pb2.Alert,
) -> Tuple[List[EntitySelector], List[str], List[Tuple[str, str]]]:
    """Return (trip selectors, distinct stop ids, distinct (route_id, agency_id) pairs)."""
    trips: List[EntitySelector] = []
    stop_ids: Dict[str, None] = {}
    routes: Dict[Tuple[str, str], None] = {}

    for selector in alert.informed_entity:
        if selector.HasField("trip"):
            trips.append(selector)
            continue
        if selector.stop_id:
            stop_ids.setdefault(selector.stop_id)
        if selector.route_id:
            routes.setdefault((selector.route_id, selector.agency_id))

    return trips, list(stop_ids), list(routes)


class InformedEntityPlugin(EnrichmentPlugin):
    def enrich(self, alert, context: AlertContext) -> None:
        agency_ids = {
            selector.agency_id
            for selector in alert.informed_entity
            if selector.agency_id and not selector.HasField("trip")
        }
        context.is_rail = not agency_ids.isdisjoint(RAIL_AGENCY_IDS)

        trips, stop_ids, routes = split_informed_entities(alert)
        rebuild_informed_entities(alert, trips, stop_ids, routes)
