"""Usage pipeline - collects, aggregates and uploads hourly usage."""

import logging
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Optional

from .aggregator import HourlyAggregator
from .assembler import HourlyUsageRecord, RecordAssembler
from .coordinator import UploadCoordinator, UploadOutcome
from .protocols import DeviceReadingsProtocol, EventSourceProtocol, UsageReaderProtocol
from .summary import DailyUsageSummary, summarize_day

__all__ = ["UsagePipeline"]

logger = logging.getLogger(__name__)


class UsagePipeline:
    """One sequential pass: events -> hour buckets -> records -> upload.

    The pipeline holds no locks; the scheduler must not run two passes at
    the same time.
    """

    def __init__(
        self,
        source: EventSourceProtocol,
        coordinator: UploadCoordinator,
        readings: DeviceReadingsProtocol,
        aggregator: Optional[HourlyAggregator] = None,
        assembler: Optional[RecordAssembler] = None,
        reader: Optional[UsageReaderProtocol] = None,
        lookback_days: int = 7,
    ):
        self.source = source
        self.coordinator = coordinator
        self.readings = readings
        self.aggregator = aggregator or HourlyAggregator()
        self.assembler = assembler or RecordAssembler()
        self.reader = reader
        self.lookback_days = lookback_days

    def _day_bounds(self, day: date) -> tuple[datetime, datetime]:
        """Local midnight of ``day`` and of the following day."""
        tz: Optional[tzinfo] = self.aggregator.tz
        start = datetime.combine(day, time.min, tzinfo=tz)
        end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
        return start, end

    def collect_day(self, day: date) -> list[HourlyUsageRecord]:
        """Build the hourly records for one calendar day."""
        start, end = self._day_bounds(day)
        events = self.source.query_events(start, end)
        result = self.aggregator.aggregate(events, day)

        return self.assembler.assemble(
            result.buckets,
            day,
            unlocks=result.screen_unlocks,
            notifications=self.readings.notification_count(),
            battery_level=self.readings.battery_level(),
        )

    def collect(self, today: Optional[date] = None) -> list[HourlyUsageRecord]:
        """Build the hourly records for the lookback window, oldest day first."""
        today = today or date.today()
        records: list[HourlyUsageRecord] = []
        for days_ago in range(self.lookback_days - 1, -1, -1):
            day = today - timedelta(days=days_ago)
            day_records = self.collect_day(day)
            logger.debug(f"{day}: collected {len(day_records)} hourly records")
            records.extend(day_records)
        return records

    def run(self, today: Optional[date] = None) -> UploadOutcome:
        """Collect the lookback window and upload it as one batch.

        Never raises; collection failures are recorded as a failed sync.
        """
        try:
            records = self.collect(today)
        except Exception as e:
            logger.error(f"Failed to collect usage events: {e}", exc_info=True)
            outcome = UploadOutcome(success=False, error=str(e))
            self.coordinator.record_outcome(outcome)
            return outcome

        logger.info(f"Collected {len(records)} hourly records over {self.lookback_days} days")
        return self.coordinator.upload(records)

    def daily_summary(self, day: date) -> Optional[DailyUsageSummary]:
        """Fetch a day's uploaded records and roll them up.

        Raises:
            RuntimeError: If the pipeline has no reader configured
        """
        if self.reader is None:
            raise RuntimeError("No usage reader configured")
        return summarize_day(self.reader.get_hourly_usage(day))
