"""
Tests for the upstream fetcher, using httpx.MockTransport instead of the network.
"""

import asyncio

import httpx
import pytest
from config import settings
from errors import UpstreamFetchError
from factories import Alert, make_alert, make_feed
from ingestion import fetcher
from ingestion.feed_codec import encode_feed
from ingestion.fetcher import (
    _auth_headers,
    _is_retryable,
    fetch_add_info,
    fetch_alerts_feed,
    fetch_upstream,
)
from ingestion.matcher import build_metadata_index
from ingestion.pipeline import build_partitions
from tenacity import wait_none


def _run(handler, fetch):
    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await fetch(client)

    return asyncio.run(scenario())


class TestIsRetryable:
    def _status_error(self, status):
        request = httpx.Request("GET", "https://example.com")
        response = httpx.Response(status, request=request)
        return httpx.HTTPStatusError("boom", request=request, response=response)

    def test_retries_5xx(self):
        assert _is_retryable(self._status_error(503)) is True

    def test_does_not_retry_4xx(self):
        assert _is_retryable(self._status_error(401)) is False

    def test_retries_timeouts(self):
        assert _is_retryable(httpx.ReadTimeout("slow")) is True

    def test_ignores_other_errors(self):
        assert _is_retryable(ValueError("nope")) is False


class TestFetchAddInfo:
    def test_parses_records(self):
        def handler(request):
            assert request.url.path == "/v1/tp/add_info"
            return httpx.Response(
                200,
                json={
                    "infos": {
                        "current": [
                            {"id": "1", "priority": "low", "properties": {"speechText": "Hi"}, "type": "x"},
                            {"id": "2", "priority": "normal", "properties": {}},
                        ]
                    }
                },
            )

        add_info = _run(handler, fetch_add_info)
        index = build_metadata_index(add_info.infos.current)
        assert list(index) == ["1", "2"]
        assert index["1"].properties.speech_text == "Hi"

    def test_missing_infos_is_empty(self):
        add_info = _run(lambda request: httpx.Response(200, json={}), fetch_add_info)
        assert add_info.infos.current == []

    def test_null_current_is_empty(self):
        add_info = _run(lambda request: httpx.Response(200, json={"infos": {"current": None}}), fetch_add_info)
        assert build_metadata_index(add_info.infos.current) == {}

    def test_malformed_json_raises(self):
        with pytest.raises(UpstreamFetchError):
            _run(lambda request: httpx.Response(200, content=b"<html>"), fetch_add_info)

    def test_malformed_records_do_not_reject_the_payload(self):
        payload = {
            "infos": {
                "current": [
                    {"priority": "normal"},
                    {"id": "1002", "priority": "low", "properties": {"speechText": 5}},
                    {"id": "1003", "priority": "normal", "properties": {"speechText": ["x"]}},
                    "not a record",
                    {"id": "1001", "priority": "low", "properties": {"speechText": "<p>Lift closed</p>"}},
                ]
            }
        }
        add_info = _run(lambda request: httpx.Response(200, json=payload), fetch_add_info)

        index = build_metadata_index(add_info.infos.current)
        assert list(index) == ["1002", "1003", "1001"]
        assert index["1002"].properties.speech_text == "5"
        assert index["1003"].properties.speech_text is None

        feed = make_feed(make_alert(url="https://transportnsw.info/alerts/details#/1001"))
        partitions = build_partitions(encode_feed(feed), add_info)
        alert = partitions.all.entity[0].alert
        assert alert.severity_level == Alert.INFO
        assert alert.tts_description_text.translation[0].text == "Lift closed"

    def test_server_errors_retry_the_configured_number_of_times(self, monkeypatch):
        monkeypatch.setattr(fetcher, "_RETRY_WAIT", wait_none())
        monkeypatch.setattr(settings, "fetch_retries", 3)
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(503)

        with pytest.raises(UpstreamFetchError):
            _run(handler, fetch_add_info)
        assert len(calls) == 4

    def test_client_error_is_not_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(401)

        with pytest.raises(UpstreamFetchError):
            _run(handler, fetch_add_info)
        assert len(calls) == 1


class TestFetchAlertsFeed:
    def test_returns_raw_bytes(self):
        payload = b"\x0a\x05\x0a\x032.0"
        assert _run(lambda request: httpx.Response(200, content=payload), fetch_alerts_feed) == payload


class TestAuthHeaders:
    def test_uses_apikey_scheme(self, monkeypatch):
        monkeypatch.setattr(settings, "api_key", "secret")
        assert _auth_headers() == {"Authorization": "apikey secret"}


class TestFetchUpstream:
    def test_failure_cancels_the_other_fetch(self):
        add_info_calls = []

        def handler(request):
            if request.url.path == "/v1/tp/add_info":
                add_info_calls.append(request)
                return httpx.Response(503)
            return httpx.Response(401)

        async def scenario():
            with pytest.raises(UpstreamFetchError):
                await fetch_upstream(transport=httpx.MockTransport(handler))
            return [task for task in asyncio.all_tasks() if task is not asyncio.current_task()]

        assert asyncio.run(scenario()) == []
        assert len(add_info_calls) <= 1

    def test_returns_both_payloads(self):
        payload = b"\x0a\x05\x0a\x032.0"

        def handler(request):
            if request.url.path == "/v1/tp/add_info":
                return httpx.Response(200, json={"infos": {"current": [{"id": "1"}]}})
            return httpx.Response(200, content=payload)

        feed_bytes, add_info = asyncio.run(fetch_upstream(transport=httpx.MockTransport(handler)))
        assert feed_bytes == payload
        assert add_info.infos.current == [{"id": "1"}]
