"""Daily roll-up of hourly usage records."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Sequence

from .assembler import AppUsageItem, HourlyUsageRecord

__all__ = ["DailyUsageSummary", "summarize_day"]


@dataclass(frozen=True)
class DailyUsageSummary:
    """Usage totals for a whole day."""

    date: str
    total_usage_minutes: int
    app_usage: tuple[AppUsageItem, ...]
    screen_unlocks: int
    notifications: int
    battery_level: Optional[int]
    timestamp: str


def summarize_day(records: Sequence[HourlyUsageRecord]) -> Optional[DailyUsageSummary]:
    """Combine a day's hourly records into one summary.

    Per-app minutes and opens are summed across hours. Notifications and
    battery come from the first record that carries them.

    Returns:
        The summary, or None when there are no records.
    """
    if not records:
        return None

    minutes: dict[str, int] = {}
    opens: dict[str, int] = {}
    total = 0
    unlocks = 0
    notifications = 0
    battery: Optional[int] = None

    for record in records:
        for app in record.app_usage:
            minutes[app.app_name] = minutes.get(app.app_name, 0) + app.usage_minutes
            opens[app.app_name] = opens.get(app.app_name, 0) + app.open_count

        total += record.total_usage_minutes
        unlocks += record.screen_unlocks
        if notifications == 0 and record.notifications and record.notifications > 0:
            notifications = record.notifications
        if battery is None and record.battery_level is not None:
            battery = record.battery_level

    app_usage = sorted(
        (AppUsageItem(name, minutes[name], opens[name]) for name in minutes),
        key=lambda item: item.usage_minutes,
        reverse=True,
    )

    return DailyUsageSummary(
        date=records[0].date,
        total_usage_minutes=total,
        app_usage=tuple(app_usage),
        screen_unlocks=unlocks,
        notifications=notifications,
        battery_level=battery,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
