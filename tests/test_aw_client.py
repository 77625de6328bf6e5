"""Tests for the ActivityWatch client and event source."""

import pytest
from datetime import datetime, timezone
from unittest.mock import Mock

import requests
import responses

from lifedash_sync.sync.aw_client import (
    ActivityWatchEventSource,
    AWBucket,
    AWClient,
    AWClientError,
    AWEvent,
)
from lifedash_sync.sync.events import EventKind, to_millis

START = datetime(2026, 2, 18, 0, 0, tzinfo=timezone.utc)
END = datetime(2026, 2, 19, 0, 0, tzinfo=timezone.utc)


def aw_event(hour: int, minute: int, duration: float, **data) -> AWEvent:
    return AWEvent(
        id=0,
        timestamp=datetime(2026, 2, 18, hour, minute, tzinfo=timezone.utc),
        duration=duration,
        data=data,
    )


def ms(hour: int, minute: int, second: int = 0) -> int:
    return to_millis(datetime(2026, 2, 18, hour, minute, second, tzinfo=timezone.utc))


class TestAWEvent:
    """Tests for AWEvent dataclass."""

    def test_from_dict(self):
        event = AWEvent.from_dict(
            {
                "id": 123,
                "timestamp": "2026-02-18T10:00:00+00:00",
                "duration": 120.5,
                "data": {"app": "Firefox", "title": "Inbox"},
            }
        )

        assert event.id == 123
        assert event.duration == 120.5
        assert event.app == "Firefox"
        assert event.end == datetime(2026, 2, 18, 10, 2, 0, 500000, tzinfo=timezone.utc)

    def test_from_dict_with_z_timestamp(self):
        event = AWEvent.from_dict({"timestamp": "2026-02-18T10:00:00Z", "data": {"status": "afk"}})

        assert event.timestamp.tzinfo == timezone.utc
        assert event.status == "afk"
        assert event.app is None


class TestAWClient:
    """Tests for AWClient."""

    def setup_method(self):
        self.client = AWClient(host="localhost", port=5600)

    def teardown_method(self):
        self.client.close()

    @responses.activate
    def test_is_running(self):
        responses.add(responses.GET, "http://localhost:5600/api/0/info", json={"version": "0.12"})

        assert self.client.is_running() is True

    @responses.activate
    def test_is_running_false_when_unreachable(self):
        responses.add(
            responses.GET,
            "http://localhost:5600/api/0/info",
            body=requests.exceptions.ConnectionError("refused"),
        )

        assert self.client.is_running() is False

    @responses.activate
    def test_bucket_filters(self):
        responses.add(
            responses.GET,
            "http://localhost:5600/api/0/buckets/",
            json={
                "aw-watcher-window_host": {"type": "currentwindow", "hostname": "host"},
                "aw-watcher-afk_host": {"type": "afkstatus", "hostname": "host"},
                "aw-watcher-web_host": {"type": "web.tab.current", "hostname": "host"},
            },
        )

        assert [b.id for b in self.client.get_window_buckets()] == ["aw-watcher-window_host"]
        assert [b.id for b in self.client.get_afk_buckets()] == ["aw-watcher-afk_host"]

    @responses.activate
    def test_get_events(self):
        responses.add(
            responses.GET,
            "http://localhost:5600/api/0/buckets/win/events",
            json=[
                {"id": 2, "timestamp": "2026-02-18T10:05:00Z", "duration": 60, "data": {"app": "b"}},
                {"id": 1, "timestamp": "2026-02-18T10:00:00Z", "duration": 60, "data": {"app": "a"}},
            ],
        )

        events = self.client.get_events("win", start=START, end=END)

        assert [e.app for e in events] == ["b", "a"]
        assert "limit=-1" in responses.calls[0].request.url

    @responses.activate
    def test_http_error_raises_client_error(self):
        responses.add(responses.GET, "http://localhost:5600/api/0/buckets/", status=500)

        with pytest.raises(AWClientError):
            self.client.get_buckets()


class TestActivityWatchEventSource:
    """Tests for ActivityWatchEventSource."""

    def setup_method(self):
        self.client = Mock()
        self.client.get_window_buckets.return_value = [AWBucket("win", "currentwindow", "host")]
        self.client.get_afk_buckets.return_value = []
        self.source = ActivityWatchEventSource(self.client)

    def test_window_events_become_foreground_background_pairs(self):
        # Newest first, as aw-server returns them
        self.client.get_events.return_value = [
            aw_event(9, 30, 600, app="Terminal"),
            aw_event(9, 0, 300, app="Firefox"),
        ]

        events = self.source.query_events(START, END)

        assert [(e.app_id, e.kind, e.timestamp_ms) for e in events] == [
            ("Firefox", EventKind.FOREGROUND, ms(9, 0)),
            ("Firefox", EventKind.BACKGROUND, ms(9, 5)),
            ("Terminal", EventKind.FOREGROUND, ms(9, 30)),
            ("Terminal", EventKind.BACKGROUND, ms(9, 40)),
        ]

    def test_adjacent_same_app_events_are_merged(self):
        self.client.get_events.return_value = [
            aw_event(9, 2, 60, app="Firefox"),
            aw_event(9, 1, 60, app="Firefox"),
            aw_event(9, 0, 60, app="Firefox"),
        ]

        events = self.source.query_events(START, END)

        assert len(events) == 2
        assert events[0].timestamp_ms == ms(9, 0)
        assert events[1].timestamp_ms == ms(9, 3)

    def test_app_switch_closes_before_opening(self):
        self.client.get_events.return_value = [
            aw_event(9, 5, 60, app="Terminal"),
            aw_event(9, 0, 300, app="Firefox"),
        ]

        events = self.source.query_events(START, END)

        at_switch = [e for e in events if e.timestamp_ms == ms(9, 5)]
        assert [e.kind for e in at_switch] == [EventKind.BACKGROUND, EventKind.FOREGROUND]

    def test_not_afk_periods_become_unlocks(self):
        self.client.get_window_buckets.return_value = []
        self.client.get_afk_buckets.return_value = [AWBucket("afk", "afkstatus", "host")]
        self.client.get_events.return_value = [
            aw_event(12, 0, 600, status="not-afk"),
            aw_event(11, 0, 3600, status="afk"),
            aw_event(8, 0, 600, status="not-afk"),
        ]

        events = self.source.query_events(START, END)

        assert [e.kind for e in events] == [EventKind.SCREEN_UNLOCK, EventKind.SCREEN_UNLOCK]
        assert [e.timestamp_ms for e in events] == [ms(8, 0), ms(12, 0)]

    def test_transitions_outside_window_are_dropped(self):
        self.client.get_events.return_value = [aw_event(23, 50, 1200, app="Firefox")]

        events = self.source.query_events(START, END)

        assert [e.kind for e in events] == [EventKind.FOREGROUND]

    def test_client_errors_propagate(self):
        self.client.get_window_buckets.side_effect = AWClientError("down")

        with pytest.raises(AWClientError):
            self.source.query_events(START, END)
