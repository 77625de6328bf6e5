"""Assembly of hour buckets into immutable hourly usage records."""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Callable, Optional, Sequence

from .aggregator import HOURS_PER_DAY, MS_PER_MINUTE, HourBucket

__all__ = [
    "AppUsageItem",
    "HourlyUsageRecord",
    "RecordAssembler",
    "to_payload",
    "from_payload",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AppUsageItem:
    """Usage of one app within one hour, in whole minutes."""

    app_name: str
    usage_minutes: int
    open_count: int


@dataclass(frozen=True)
class HourlyUsageRecord:
    """Usage for one hour of one day, as uploaded to the API.

    Day-scoped readings (unlocks, notifications, battery) are only carried
    by the hour-0 record.
    """

    date: str  # YYYY-MM-DD
    hour: int
    app_usage: tuple[AppUsageItem, ...]
    total_usage_minutes: int
    screen_unlocks: int = 0
    notifications: Optional[int] = None
    battery_level: Optional[int] = None
    timestamp: str = ""  # ISO instant of assembly


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class RecordAssembler:
    """Converts aggregated hour buckets into hourly usage records."""

    def __init__(self, clock: Callable[[], datetime] = _utc_now):
        """Initialize the assembler.

        Args:
            clock: Returns the instant stamped on assembled records.
        """
        self._clock = clock

    def assemble(
        self,
        buckets: Sequence[HourBucket],
        day: date,
        unlocks: int = 0,
        notifications: Optional[int] = None,
        battery_level: Optional[int] = None,
    ) -> list[HourlyUsageRecord]:
        """Build one record per hour with non-zero usage.

        Args:
            buckets: 24 hour buckets, indexed by hour.
            day: The calendar day the buckets belong to.
            unlocks: Screen unlocks for the whole day.
            notifications: Notification count for the day, if known.
            battery_level: Battery percentage, if known.

        Returns:
            Records in ascending hour order.
        """
        if len(buckets) != HOURS_PER_DAY:
            raise ValueError(f"Expected {HOURS_PER_DAY} hour buckets, got {len(buckets)}")

        date_str = day.isoformat()
        records: list[HourlyUsageRecord] = []

        for hour, bucket in enumerate(buckets):
            if not bucket:
                continue

            items = sorted(
                (
                    AppUsageItem(
                        app_name=info.app_name,
                        usage_minutes=int(info.usage_ms // MS_PER_MINUTE),
                        open_count=info.open_count,
                    )
                    for info in bucket.values()
                ),
                key=lambda item: item.usage_minutes,
                reverse=True,
            )
            total = sum(item.usage_minutes for item in items)
            if total == 0:
                continue

            first_hour = hour == 0
            records.append(
                HourlyUsageRecord(
                    date=date_str,
                    hour=hour,
                    app_usage=tuple(items),
                    total_usage_minutes=total,
                    screen_unlocks=unlocks if first_hour else 0,
                    notifications=notifications if first_hour else None,
                    battery_level=battery_level if first_hour else None,
                    timestamp=self._clock().isoformat(),
                )
            )

        logger.debug(f"Assembled {len(records)} hourly records for {date_str}")
        return records


def to_payload(record: HourlyUsageRecord, user_id: str) -> dict:
    """Encode a record as the JSON body of an hourly-usage upload."""
    payload = {
        "user_id": user_id,
        "date": record.date,
        "hour": record.hour,
        "total_usage_time": record.total_usage_minutes,
        "app_usage": [
            {
                "appName": item.app_name,
                "usageTime": item.usage_minutes,
                "openCount": item.open_count,
            }
            for item in record.app_usage
        ],
    }
    if record.hour == 0:
        payload["screen_unlocks"] = record.screen_unlocks
        if record.notifications is not None:
            payload["notifications"] = record.notifications
        if record.battery_level is not None:
            payload["battery_level"] = record.battery_level
    payload["timestamp"] = record.timestamp
    return payload


def from_payload(data: dict) -> HourlyUsageRecord:
    """Decode an hourly-usage record returned by the API."""
    return HourlyUsageRecord(
        date=data["date"],
        hour=int(data["hour"]),
        app_usage=tuple(
            AppUsageItem(
                app_name=app["appName"],
                usage_minutes=int(app["usageTime"]),
                open_count=int(app["openCount"]),
            )
            for app in data.get("app_usage", [])
        ),
        total_usage_minutes=int(data["total_usage_time"]),
        screen_unlocks=int(data.get("screen_unlocks", 0)),
        notifications=data.get("notifications"),
        battery_level=data.get("battery_level"),
        timestamp=data.get("timestamp", ""),
    )
