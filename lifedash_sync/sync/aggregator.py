"""Hourly aggregation of app usage sessions.

Folds a day's ordered stream of foreground/background transitions into 24
hour buckets of per-app usage time and launch counts. A session that crosses
one or more hour boundaries is split so that each hour is credited with the
part of the session that actually fell inside it; only the hour in which the
session started counts it as a launch.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, tzinfo
from typing import Callable, Iterable, Optional

from ..config import DEFAULT_SYSTEM_UI_APP
from .events import EventKind, RawEvent

__all__ = [
    "AppUsageInfo",
    "HourBucket",
    "AggregationResult",
    "HourlyAggregator",
    "HOURS_PER_DAY",
    "MS_PER_MINUTE",
    "MS_PER_HOUR",
]

logger = logging.getLogger(__name__)

HOURS_PER_DAY = 24
MS_PER_MINUTE = 60_000
MS_PER_HOUR = 60 * MS_PER_MINUTE


@dataclass
class AppUsageInfo:
    """Usage accumulated for one app within one hour."""

    app_name: str
    usage_ms: int = 0
    open_count: int = 0


HourBucket = dict[str, AppUsageInfo]


@dataclass
class AggregationResult:
    """Output of one aggregation pass over a day."""

    day: date
    buckets: list[HourBucket] = field(
        default_factory=lambda: [{} for _ in range(HOURS_PER_DAY)]
    )
    screen_unlocks: int = 0
    sessions_closed: int = 0
    sessions_dropped: int = 0

    def total_usage_ms(self) -> int:
        """Total usage credited across every hour and app."""
        return sum(info.usage_ms for bucket in self.buckets for info in bucket.values())


class HourlyAggregator:
    """Folds raw usage events into per-hour, per-app usage totals.

    Usage:
        aggregator = HourlyAggregator()
        result = aggregator.aggregate(events, date.today())
        result.buckets[13]["Mail"].usage_ms
    """

    def __init__(
        self,
        tz: Optional[tzinfo] = None,
        system_ui_app: str = DEFAULT_SYSTEM_UI_APP,
        resolve_name: Optional[Callable[[str], str]] = None,
    ):
        """Initialize the aggregator.

        Args:
            tz: Timezone used to place events into hours. None means the
                system local timezone.
            system_ui_app: App id whose foreground transitions count as
                screen unlocks.
            resolve_name: Maps an app id to the name used as bucket key.
                Defaults to the identity.
        """
        self.tz = tz
        self.system_ui_app = system_ui_app
        self._resolve_name = resolve_name or (lambda app_id: app_id)

    def _local_time(self, timestamp_ms: int) -> datetime:
        return datetime.fromtimestamp(timestamp_ms / 1000, tz=self.tz)

    def aggregate(self, events: Iterable[RawEvent], day: date) -> AggregationResult:
        """Fold a day's events into hour buckets.

        Events are consumed in the order given; the caller guarantees they
        are non-decreasing in time.

        Args:
            events: Ordered usage transitions for the day.
            day: The calendar day the events belong to.

        Returns:
            AggregationResult with 24 buckets and the day's unlock count.
        """
        result = AggregationResult(day=day)
        # app_id -> (session start millis, local start time)
        open_sessions: dict[str, tuple[int, datetime]] = {}

        logger.debug(f"Aggregating usage events for {day}")

        for event in events:
            if event.kind is EventKind.SCREEN_UNLOCK:
                result.screen_unlocks += 1
                continue

            if event.kind is EventKind.FOREGROUND:
                if event.app_id == self.system_ui_app:
                    result.screen_unlocks += 1
                open_sessions[event.app_id] = (
                    event.timestamp_ms,
                    self._local_time(event.timestamp_ms),
                )
                continue

            session = open_sessions.pop(event.app_id, None)
            if session is None:
                # Background without a foreground inside the window
                continue

            start_ms, start = session
            self._credit_session(result.buckets, event.app_id, start_ms, start, event.timestamp_ms)
            result.sessions_closed += 1

        result.sessions_dropped = len(open_sessions)
        if open_sessions:
            logger.debug(
                f"{day}: dropping {len(open_sessions)} sessions still open at end of window"
            )

        logger.debug(
            f"Aggregated {day}: {result.sessions_closed} sessions, "
            f"{result.screen_unlocks} unlocks"
        )
        return result

    def _credit_session(
        self,
        buckets: list[HourBucket],
        app_id: str,
        start_ms: int,
        start: datetime,
        end_ms: int,
    ) -> None:
        """Credit one closed session to the hour buckets it touches.

        Pieces are cut at real local hour boundaries and measured in epoch
        milliseconds, so the pieces always sum to the session length, also
        across UTC offset changes.
        """
        app_name = self._resolve_name(app_id)
        cursor_ms = start_ms
        local = start
        open_count = 1

        while True:
            to_boundary = MS_PER_HOUR - _ms_into_hour(local)
            piece = max(0, min(to_boundary, end_ms - cursor_ms))
            self._add(buckets, local.hour, app_name, piece, open_count)
            cursor_ms += piece
            if cursor_ms >= end_ms:
                break
            # Later hours of the same session are not new launches
            open_count = 0
            local = self._local_time(cursor_ms)

    @staticmethod
    def _add(
        buckets: list[HourBucket],
        hour: int,
        app_name: str,
        usage_ms: int,
        open_count: int,
    ) -> None:
        bucket = buckets[hour]
        info = bucket.get(app_name)
        if info is None:
            bucket[app_name] = AppUsageInfo(app_name, usage_ms, open_count)
        else:
            info.usage_ms += usage_ms
            info.open_count += open_count


def _ms_into_hour(moment: datetime) -> int:
    return (
        moment.minute * MS_PER_MINUTE
        + moment.second * 1000
        + moment.microsecond // 1000
    )
