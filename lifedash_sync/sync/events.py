"""Raw usage-transition events and a simple in-memory event source."""

import enum
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable

__all__ = ["EventKind", "RawEvent", "StaticEventSource", "to_millis"]


class EventKind(enum.Enum):
    """Kind of usage transition."""

    FOREGROUND = "foreground"
    BACKGROUND = "background"
    SCREEN_UNLOCK = "screen_unlock"


@dataclass(frozen=True)
class RawEvent:
    """A single usage transition reported by the event source."""

    app_id: str
    kind: EventKind
    timestamp_ms: int  # epoch milliseconds

    @property
    def timestamp(self) -> datetime:
        """Event time as an aware UTC datetime."""
        return datetime.fromtimestamp(self.timestamp_ms / 1000, tz=timezone.utc)

    @classmethod
    def at(cls, app_id: str, kind: EventKind, when: datetime) -> "RawEvent":
        """Create an event from a datetime instead of epoch millis."""
        return cls(app_id=app_id, kind=kind, timestamp_ms=to_millis(when))


def to_millis(when: datetime) -> int:
    """Convert a datetime to epoch milliseconds.

    Naive datetimes are interpreted in local time, like ``datetime.timestamp``.
    """
    return int(round(when.timestamp() * 1000))


class StaticEventSource:
    """Event source backed by a fixed list of events.

    Used for replays and tests. Events are returned in the order given,
    filtered to the half-open window ``[start, end)``.
    """

    def __init__(self, events: Iterable[RawEvent]):
        self._events = list(events)

    def query_events(self, start: datetime, end: datetime) -> list[RawEvent]:
        start_ms = to_millis(start)
        end_ms = to_millis(end)
        return [e for e in self._events if start_ms <= e.timestamp_ms < end_ms]
