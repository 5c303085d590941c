"""
Tests for the full decode → match → enrich → partition transform.
"""

import pytest
from enrichment.base import EnrichmentPlugin
from enrichment.severity import SeverityPlugin
from errors import FeedDecodeError
from factories import Alert, make_add_info, make_alert, make_feed, make_record, selectors_of
from ingestion.feed_codec import decode_feed, encode_feed
from ingestion.pipeline import build_partitions, enrich_alert, enrich_feed
from models import AddInfoResponse


class _ExplodingPlugin(EnrichmentPlugin):
    def enrich(self, alert, context) -> None:
        raise AttributeError("translation")


class TestEnrichAlert:
    def test_failing_rule_does_not_stop_later_rules(self):
        alert = make_alert()
        enrich_alert("alert-1", alert, make_record(priority="low"), [_ExplodingPlugin(), SeverityPlugin()])
        assert alert.severity_level == Alert.INFO

    def test_lift_alert_on_rail_line(self):
        alert = make_alert(
            header="Lift at Central not available",
            cause=Alert.MAINTENANCE,
            effect=Alert.MODIFIED_SERVICE,
            selectors=[{"route_id": "T1", "agency_id": "SydneyTrains"}],
        )
        context = enrich_alert("alert-1", alert, None)
        assert context.is_rail is True
        assert alert.header_text.translation[0].text == "⛔️🛗 Lift at Central not available"

    def test_stop_numbers_from_cleaned_description(self):
        alert = make_alert(
            description="<div>Stops 201234 and 205678 closed</div>",
            description_language="en/html",
            selectors=[{"stop_id": "200060"}, {"stop_id": "200060"}],
        )
        enrich_alert("alert-1", alert, None)
        assert selectors_of(alert) == [("stop", "201234"), ("stop", "205678")]


class TestEnrichFeed:
    def test_unmatched_alerts_still_get_cleanup(self):
        feed = make_feed(make_alert(header="  Detour  ", effect=Alert.DETOUR, url=None))
        matched = enrich_feed(feed, {})
        assert matched == 0
        assert feed.entity[0].alert.header_text.translation[0].text == "🔀 Detour"

    def test_entities_without_alert_are_skipped(self):
        feed = make_feed(make_alert())
        feed.entity.add(id="trip-update-only")
        assert enrich_feed(feed, {"1001": make_record()}) == 1


class TestBuildPartitions:
    def _payload(self):
        feed = make_feed(
            make_alert(url="https://x#/1", header="Info alert"),
            make_alert(url="https://x#/2", header="Warning alert"),
            make_alert(url="https://x#/3", header="Unmatched alert"),
        )
        return encode_feed(feed)

    def test_normal_excludes_info(self):
        add_info = make_add_info(make_record("1", priority="low"), make_record("2", priority="normal"))
        partitions = build_partitions(self._payload(), add_info)

        assert len(partitions.all.entity) == 3
        assert [e.id for e in partitions.normal.entity] == ["alert-2", "alert-3"]
        assert partitions.all.entity[0].alert.severity_level == Alert.INFO
        assert partitions.all.entity[1].alert.severity_level == Alert.WARNING

    def test_version_is_forced_to_2_0(self):
        partitions = build_partitions(self._payload(), AddInfoResponse())
        assert partitions.all.header.gtfs_realtime_version == "2.0"
        assert partitions.normal.header.gtfs_realtime_version == "2.0"
        assert decode_feed(encode_feed(partitions.normal)).header.gtfs_realtime_version == "2.0"

    def test_malformed_metadata_records_are_skipped(self):
        add_info = AddInfoResponse.model_validate(
            {
                "infos": {
                    "current": [
                        {"priority": "normal"},
                        {"id": "2", "priority": "normal", "properties": {"speechText": {"ssml": "x"}}},
                        {"id": "1", "priority": "low"},
                    ]
                }
            }
        )
        partitions = build_partitions(self._payload(), add_info)

        assert len(partitions.all.entity) == 3
        assert partitions.all.entity[0].alert.severity_level == Alert.INFO
        assert partitions.all.entity[1].alert.severity_level == Alert.WARNING
        assert [e.id for e in partitions.normal.entity] == ["alert-2", "alert-3"]

    def test_garbage_payload_raises_decode_error(self):
        with pytest.raises(FeedDecodeError):
            build_partitions(b"\xff\xff\xff\xff", AddInfoResponse())

    def test_missing_header_raises_decode_error(self):
        with pytest.raises(FeedDecodeError):
            build_partitions(b"", AddInfoResponse())
