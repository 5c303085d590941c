import logging
import os
import random
import time

from flask import Flask, Response, jsonify
from google.transit import gtfs_realtime_pb2

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)

app = Flask(__name__)

FAILURE_RATE = float(os.getenv("MOCK_FAILURE_RATE", "0.20"))

Alert = gtfs_realtime_pb2.Alert

# (id, priority, header, description, description language, cause, effect, selectors, speechText)
DISRUPTIONS = [
    (
        "1001",
        "normal",
        "Lift at Central not available",
        "<div>The lift between the concourse and platform 16 is out of service.</div>",
        "en/html",
        Alert.MAINTENANCE,
        Alert.MODIFIED_SERVICE,
        [{"stop_id": "200060"}, {"route_id": "T1", "agency_id": "SydneyTrains"}],
        "<p>The lift at Central is not available.</p>",
    ),
    (
        "1002",
        "low",
        "Bus stop closures in Parramatta",
        "  Stops 215012 and 215013 are closed. Use nearby stops.  ",
        "en",
        Alert.CONSTRUCTION,
        Alert.STOP_MOVED,
        [{"stop_id": "2150"}, {"stop_id": "2150"}, {"route_id": "M92", "agency_id": "2436"}],
        None,
    ),
    (
        "1003",
        "normal",
        "Trackwork may affect your travel",
        "<div>Buses replace trains</div><ul><li>between Hornsby and Berowra</li><li>all weekend</li></ul>",
        "en/html",
        Alert.MAINTENANCE,
        Alert.MODIFIED_SERVICE,
        [{"route_id": "T9", "agency_id": "SydneyTrains"}, {"route_id": "CCN", "agency_id": "NSWTrains"}],
        "Buses replace trains between Hornsby and Berowra.",
    ),
    (
        "1004",
        "high",
        "Heavy snow on the Blue Mountains line",
        "Allow extra travel time.",
        "en",
        Alert.WEATHER,
        Alert.SIGNIFICANT_DELAYS,
        [{"route_id": "BMT", "agency_id": "NSWTrains"}],
        None,
    ),
    (
        "1005",
        "low",
        "Route 333 diverted",
        "Buses will not stop at 203311 due to roadworks.",
        "en",
        Alert.CONSTRUCTION,
        Alert.DETOUR,
        [{"stop_id": "2000"}, {"route_id": "333", "agency_id": "2459"}],
        None,
    ),
]


def _build_feed(disruptions: list) -> gtfs_realtime_pb2.FeedMessage:
    feed = gtfs_realtime_pb2.FeedMessage()
    feed.header.gtfs_realtime_version = "1.0"
    feed.header.incrementality = gtfs_realtime_pb2.FeedHeader.FULL_DATASET
    feed.header.timestamp = int(time.time())

    for ems_id, _, header, description, language, cause, effect, selectors, _ in disruptions:
        entity = feed.entity.add(id=f"alert-{ems_id}")
        alert = entity.alert
        alert.cause = cause
        alert.effect = effect
        alert.header_text.translation.add(text=header, language="en")
        alert.description_text.translation.add(text=description, language=language)
        alert.url.translation.add(text=f"https://transportnsw.info/alerts/details#/{ems_id}", language="en")
        for selector in selectors:
            alert.informed_entity.add(**selector)
    return feed


def _build_add_info(disruptions: list) -> dict:
    current = []
    for ems_id, priority, *_, speech in disruptions:
        properties = {"speechText": speech} if speech else {}
        current.append({"id": ems_id, "priority": priority, "properties": properties})
    return {"version": "10.5.17.3", "infos": {"current": current}}


def _maybe_fail():
    """Randomly fail at the configured rate to simulate upstream instability."""
    if random.random() < FAILURE_RATE:
        logger.warning("Simulating upstream failure (500)")
        return jsonify({"error": "upstream_unavailable", "message": "Service temporarily unavailable"}), 500
    return None


@app.route("/health")
def health() -> tuple[Response, int]:
    return jsonify({"status": "ok"}), 200


@app.route("/v2/gtfs/alerts/all")
def get_alerts_feed():
    """GET /v2/gtfs/alerts/all — GTFS-Realtime alerts as protobuf."""
    failure = _maybe_fail()
    if failure:
        return failure

    payload = _build_feed(DISRUPTIONS).SerializeToString()
    logger.info("Returning %d alerts (%d bytes)", len(DISRUPTIONS), len(payload))
    return Response(payload, mimetype="application/x-google-protobuf")


@app.route("/v1/tp/add_info")
def get_add_info() -> tuple[Response, int]:
    """GET /v1/tp/add_info — additional info records keyed by the alert URL id."""
    failure = _maybe_fail()
    if failure:
        return failure

    return jsonify(_build_add_info(DISRUPTIONS)), 200


if __name__ == "__main__":
    port = int(os.getenv("MOCK_PORT", "9000"))
    logger.info("Starting mock transit API on port %d (failure_rate=%.0f%%)", port, FAILURE_RATE * 100)
    app.run(host="0.0.0.0", port=port)
