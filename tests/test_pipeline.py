"""Tests for the usage pipeline and daily summary."""

import pytest
import tempfile
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import Mock

from lifedash_sync.sync.aggregator import HourlyAggregator
from lifedash_sync.sync.assembler import AppUsageItem, HourlyUsageRecord, RecordAssembler
from lifedash_sync.sync.coordinator import UploadCoordinator
from lifedash_sync.sync.events import EventKind, RawEvent, StaticEventSource
from lifedash_sync.sync.history import SyncHistory
from lifedash_sync.sync.pipeline import UsagePipeline
from lifedash_sync.sync.readings import FixedReadings
from lifedash_sync.sync.summary import summarize_day

TODAY = date(2026, 2, 18)
YESTERDAY = TODAY - timedelta(days=1)
NOW = datetime(2026, 2, 18, 23, 0, tzinfo=timezone.utc)


def at(day: date, hour: int, minute: int = 0) -> datetime:
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=timezone.utc)


def session(app: str, start: datetime, end: datetime) -> list[RawEvent]:
    return [
        RawEvent.at(app, EventKind.FOREGROUND, start),
        RawEvent.at(app, EventKind.BACKGROUND, end),
    ]


class TestUsagePipeline:
    """Tests for UsagePipeline."""

    def setup_method(self):
        self.temp_dir = tempfile.mkdtemp()
        self.history = SyncHistory(db_path=Path(self.temp_dir) / "history.db")
        self.sink = Mock()
        self.sink.upload_hourly_record.return_value = 200
        self.coordinator = UploadCoordinator(self.sink, self.history, clock=lambda: NOW)

    def teardown_method(self):
        self.history.close()

    def make_pipeline(self, events, lookback_days: int = 2, **kwargs) -> UsagePipeline:
        return UsagePipeline(
            source=StaticEventSource(events),
            coordinator=self.coordinator,
            readings=FixedReadings(notifications=12, battery=80),
            aggregator=HourlyAggregator(tz=timezone.utc),
            assembler=RecordAssembler(clock=lambda: NOW),
            lookback_days=lookback_days,
            **kwargs,
        )

    def test_collect_day(self):
        events = session("mail", at(TODAY, 0, 10), at(TODAY, 0, 40)) + [
            RawEvent.at("", EventKind.SCREEN_UNLOCK, at(TODAY, 0, 9)),
        ]
        pipeline = self.make_pipeline(events)

        records = pipeline.collect_day(TODAY)

        assert len(records) == 1
        record = records[0]
        assert record.hour == 0
        assert record.app_usage == (AppUsageItem("mail", 30, 1),)
        assert (record.screen_unlocks, record.notifications, record.battery_level) == (1, 12, 80)

    def test_collect_covers_lookback_oldest_day_first(self):
        events = session("mail", at(YESTERDAY, 9), at(YESTERDAY, 9, 20)) + session(
            "maps", at(TODAY, 8), at(TODAY, 8, 5)
        )
        pipeline = self.make_pipeline(events)

        records = pipeline.collect(today=TODAY)

        assert [(r.date, r.hour) for r in records] == [
            ("2026-02-17", 9),
            ("2026-02-18", 8),
        ]

    def test_events_outside_lookback_are_ignored(self):
        old = TODAY - timedelta(days=5)
        pipeline = self.make_pipeline(session("mail", at(old, 9), at(old, 9, 20)))

        assert pipeline.collect(today=TODAY) == []

    def test_run_uploads_batch_and_logs_one_sync(self):
        events = session("mail", at(YESTERDAY, 9), at(YESTERDAY, 9, 20)) + session(
            "maps", at(TODAY, 8), at(TODAY, 8, 5)
        )
        pipeline = self.make_pipeline(events)

        outcome = pipeline.run(today=TODAY)

        assert outcome.success is True
        assert outcome.success_count == 2
        assert self.sink.upload_hourly_record.call_count == 2
        assert len(self.history.get_history()) == 1
        assert self.history.get_last_sync().date == "2026-02-17"

    def test_run_with_no_usage_logs_empty_success(self):
        pipeline = self.make_pipeline([])

        outcome = pipeline.run(today=TODAY)

        assert outcome.success is True
        self.sink.upload_hourly_record.assert_not_called()
        assert self.history.get_history()[0].record_count == 0

    def test_run_records_collection_failure(self):
        source = Mock()
        source.query_events.side_effect = ConnectionError("ActivityWatch not running")
        pipeline = UsagePipeline(
            source=source,
            coordinator=self.coordinator,
            readings=FixedReadings(),
            aggregator=HourlyAggregator(tz=timezone.utc),
        )

        outcome = pipeline.run(today=TODAY)

        assert outcome.success is False
        assert outcome.error == "ActivityWatch not running"
        self.sink.upload_hourly_record.assert_not_called()
        record = self.history.get_history()[0]
        assert record.success is False
        assert record.error_message == "ActivityWatch not running"

    def test_daily_summary_uses_reader(self):
        reader = Mock()
        reader.get_hourly_usage.return_value = [
            HourlyUsageRecord("2026-02-18", 0, (AppUsageItem("mail", 10, 1),), 10, screen_unlocks=4),
        ]
        pipeline = self.make_pipeline([], reader=reader)

        summary = pipeline.daily_summary(TODAY)

        reader.get_hourly_usage.assert_called_once_with(TODAY)
        assert summary.total_usage_minutes == 10
        assert summary.screen_unlocks == 4

    def test_daily_summary_without_reader_raises(self):
        pipeline = self.make_pipeline([])

        with pytest.raises(RuntimeError):
            pipeline.daily_summary(TODAY)


class TestSummarizeDay:
    """Tests for summarize_day."""

    def test_empty_day_has_no_summary(self):
        assert summarize_day([]) is None

    def test_sums_apps_across_hours(self):
        records = [
            HourlyUsageRecord(
                "2026-02-18",
                0,
                (AppUsageItem("mail", 10, 2), AppUsageItem("maps", 5, 1)),
                15,
                screen_unlocks=9,
                notifications=30,
                battery_level=64,
            ),
            HourlyUsageRecord("2026-02-18", 14, (AppUsageItem("maps", 40, 0),), 40),
        ]

        summary = summarize_day(records)

        assert summary.date == "2026-02-18"
        assert summary.total_usage_minutes == 55
        assert summary.app_usage == (AppUsageItem("maps", 45, 1), AppUsageItem("mail", 10, 2))
        assert summary.screen_unlocks == 9
        assert summary.notifications == 30
        assert summary.battery_level == 64

    def test_missing_readings(self):
        records = [HourlyUsageRecord("2026-02-18", 3, (AppUsageItem("mail", 10, 1),), 10)]

        summary = summarize_day(records)

        assert summary.notifications == 0
        assert summary.battery_level is None
