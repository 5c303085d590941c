"""
Shared lookup tables for the enrichment plugins.

RAIL_AGENCY_IDS is only read by informed_entities.py, which turns it into
AlertContext.is_rail; the header and stop number rules read the flag.
"""

from google.transit import gtfs_realtime_pb2

Alert = gtfs_realtime_pb2.Alert

# Agency ids of the heavy rail operators in the feed.
RAIL_AGENCY_IDS: frozenset = frozenset({"SydneyTrains", "NSWTrains"})

# Additional-info priority -> GTFS-Realtime severity. Closed table: any other
# priority leaves the upstream severity as it is.
SEVERITY_MAPPING: dict = {
    "low": Alert.INFO,
    "normal": Alert.WARNING,
}

ENGLISH = "en"
BULLET = "• "
