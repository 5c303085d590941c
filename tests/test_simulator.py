"""
Tests for the mock upstream and for running the pipeline over its payloads.
"""

import alert_simulator_server as simulator
import pytest
from factories import selectors_of
from ingestion.pipeline import build_partitions
from models import AddInfoResponse


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(simulator, "FAILURE_RATE", 0.0)
    simulator.app.config["TESTING"] = True
    return simulator.app.test_client()


def _pipeline_output(client):
    feed_bytes = client.get("/v2/gtfs/alerts/all").data
    add_info = AddInfoResponse.model_validate(client.get("/v1/tp/add_info").get_json())
    return build_partitions(feed_bytes, add_info)


class TestSimulator:
    def test_serves_both_feeds(self, client):
        assert client.get("/v2/gtfs/alerts/all").status_code == 200
        body = client.get("/v1/tp/add_info").get_json()
        assert len(body["infos"]["current"]) == len(simulator.DISRUPTIONS)

    def test_failure_rate_simulates_500(self, client, monkeypatch):
        monkeypatch.setattr(simulator, "FAILURE_RATE", 1.0)
        assert client.get("/v1/tp/add_info").status_code == 500


class TestPipelineOverSimulatedFeeds:
    def test_end_to_end(self, client):
        partitions = _pipeline_output(client)
        alerts = {e.id: e.alert for e in partitions.all.entity}

        lift = alerts["alert-1001"]
        assert lift.header_text.translation[0].text == "⛔️🛗 Lift at Central not available"
        assert lift.tts_description_text.translation[0].text == "The lift at Central is not available."
        assert lift.description_text.translation[0].language == "en"

        closures = alerts["alert-1002"]
        assert closures.header_text.translation[0].text == "⛔️🚏 Bus stop closures in Parramatta"
        assert selectors_of(closures) == [("stop", "215012"), ("stop", "215013"), ("route", "M92", "2436")]

        trackwork = alerts["alert-1003"]
        assert trackwork.description_text.translation[0].text == (
            "Buses replace trains• between Hornsby and Berowra• all weekend"
        )

        assert alerts["alert-1004"].header_text.translation[0].text.startswith("🌨 ")
        assert not alerts["alert-1004"].HasField("severity_level")

        detour = alerts["alert-1005"]
        assert detour.header_text.translation[0].text == "🔀 Route 333 diverted"
        assert selectors_of(detour) == [("stop", "203311"), ("route", "333", "2459")]

    def test_normal_drops_low_priority(self, client):
        partitions = _pipeline_output(client)
        assert [e.id for e in partitions.normal.entity] == ["alert-1001", "alert-1003", "alert-1004"]
