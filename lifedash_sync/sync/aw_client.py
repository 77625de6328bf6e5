"""ActivityWatch client - reads window and AFK events from a local aw-server.

``ActivityWatchEventSource`` turns those events into the foreground /
background / unlock transitions consumed by the hourly aggregator.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional
from urllib.parse import urljoin

import requests

from .events import EventKind, RawEvent, to_millis

__all__ = [
    "AWClient",
    "AWClientError",
    "AWEvent",
    "AWBucket",
    "ActivityWatchEventSource",
]

logger = logging.getLogger(__name__)

# aw-server-rust uses "aw-watcher-window" / "aw-watcher-afk"
# aw-server (Python) uses "currentwindow" / "afkstatus"
BUCKET_TYPE_WINDOW = "currentwindow"
BUCKET_TYPE_WINDOW_ALT = "aw-watcher-window"
BUCKET_TYPE_AFK = "afkstatus"
BUCKET_TYPE_AFK_ALT = "aw-watcher-afk"

# Window events closer than this are one continuous session
SESSION_MERGE_GAP = timedelta(seconds=1)

# Background sorts before foreground at the same instant so app switches
# close the old session before opening the next one.
_KIND_ORDER = {
    EventKind.BACKGROUND: 0,
    EventKind.SCREEN_UNLOCK: 1,
    EventKind.FOREGROUND: 2,
}


@dataclass
class AWEvent:
    """Represents an ActivityWatch event."""

    id: int
    timestamp: datetime
    duration: float  # seconds
    data: dict

    @classmethod
    def from_dict(cls, data: dict) -> "AWEvent":
        """Create AWEvent from API response."""
        timestamp = datetime.fromisoformat(data["timestamp"].replace("Z", "+00:00"))
        return cls(
            id=data.get("id", 0),
            timestamp=timestamp,
            duration=data.get("duration", 0),
            data=data.get("data", {}),
        )

    @property
    def end(self) -> datetime:
        return self.timestamp + timedelta(seconds=self.duration)

    @property
    def app(self) -> Optional[str]:
        """Get app name from event data."""
        return self.data.get("app")

    @property
    def status(self) -> Optional[str]:
        """Get AFK status from event data."""
        return self.data.get("status")


@dataclass
class AWBucket:
    """Represents an ActivityWatch bucket."""

    id: str
    type: str
    hostname: str

    @classmethod
    def from_dict(cls, bucket_id: str, data: dict) -> "AWBucket":
        """Create AWBucket from API response."""
        return cls(
            id=bucket_id,
            type=data.get("type", ""),
            hostname=data.get("hostname", ""),
        )


class AWClientError(Exception):
    """ActivityWatch client error."""

    pass


class AWClient:
    """Client for reading from local ActivityWatch server."""

    def __init__(self, host: str = "localhost", port: int = 5600, timeout: int = 10):
        """Initialize ActivityWatch client.

        Args:
            host: ActivityWatch server host
            port: ActivityWatch server port
            timeout: Request timeout in seconds
        """
        self.base_url = f"http://{host}:{port}/api/0/"
        self.timeout = timeout
        self._session = requests.Session()

    def _request(self, method: str, endpoint: str, **kwargs):
        """Make request to ActivityWatch API."""
        url = urljoin(self.base_url, endpoint)
        kwargs.setdefault("timeout", self.timeout)

        try:
            response = self._session.request(method, url, **kwargs)
            response.raise_for_status()
            return response.json() if response.content else {}
        except requests.exceptions.ConnectionError as e:
            raise AWClientError(f"Cannot connect to ActivityWatch at {self.base_url}") from e
        except requests.exceptions.Timeout as e:
            raise AWClientError("ActivityWatch request timed out") from e
        except requests.exceptions.HTTPError as e:
            raise AWClientError(f"ActivityWatch API error: {e}") from e
        except ValueError as e:
            raise AWClientError(f"Invalid response from ActivityWatch: {e}") from e

    def is_running(self) -> bool:
        """Check if ActivityWatch server is running."""
        try:
            self._request("GET", "info")
            return True
        except AWClientError:
            return False

    def get_buckets(self) -> dict[str, AWBucket]:
        """Get all buckets."""
        response = self._request("GET", "buckets/")
        return {
            bucket_id: AWBucket.from_dict(bucket_id, data)
            for bucket_id, data in response.items()
        }

    def get_window_buckets(self) -> list[AWBucket]:
        """Get all window watcher buckets."""
        return [
            b for b in self.get_buckets().values()
            if b.type in (BUCKET_TYPE_WINDOW, BUCKET_TYPE_WINDOW_ALT)
        ]

    def get_afk_buckets(self) -> list[AWBucket]:
        """Get all AFK watcher buckets."""
        return [
            b for b in self.get_buckets().values()
            if b.type in (BUCKET_TYPE_AFK, BUCKET_TYPE_AFK_ALT)
        ]

    def get_events(
        self,
        bucket_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = -1,
    ) -> list[AWEvent]:
        """Get events from a bucket.

        Args:
            bucket_id: The bucket to query
            start: Start time (inclusive)
            end: End time (inclusive)
            limit: Maximum events to return (-1 for all)

        Returns:
            List of AWEvent objects, newest first
        """
        params = {"limit": limit}
        if start:
            params["start"] = start.isoformat()
        if end:
            params["end"] = end.isoformat()

        response = self._request("GET", f"buckets/{bucket_id}/events", params=params)
        return [AWEvent.from_dict(event) for event in response]

    def close(self) -> None:
        """Close the session."""
        if self._session is not None:
            self._session.close()
            self._session = None

    def __enter__(self) -> "AWClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class ActivityWatchEventSource:
    """Event source that derives usage transitions from ActivityWatch.

    - Each window session becomes a FOREGROUND at its start and a
      BACKGROUND at its end; adjacent events of the same app are merged.
    - Each ``not-afk`` period becomes a SCREEN_UNLOCK at its start.

    Only transitions inside ``[start, end)`` are returned, oldest first.
    """

    def __init__(self, client: AWClient):
        self.client = client

    def query_events(self, start: datetime, end: datetime) -> list[RawEvent]:
        """Get the usage transitions between two instants.

        Raises:
            AWClientError: If ActivityWatch cannot be queried
        """
        start_ms = to_millis(start)
        end_ms = to_millis(end)
        transitions: list[RawEvent] = []

        for bucket in self.client.get_window_buckets():
            window_events = self.client.get_events(bucket.id, start=start, end=end)
            transitions.extend(self._window_transitions(window_events))

        for bucket in self.client.get_afk_buckets():
            afk_events = self.client.get_events(bucket.id, start=start, end=end)
            transitions.extend(
                RawEvent.at("", EventKind.SCREEN_UNLOCK, ev.timestamp)
                for ev in afk_events
                if ev.status == "not-afk"
            )

        transitions = [e for e in transitions if start_ms <= e.timestamp_ms < end_ms]
        transitions.sort(key=lambda e: (e.timestamp_ms, _KIND_ORDER[e.kind]))
        logger.debug(f"Derived {len(transitions)} usage transitions from ActivityWatch")
        return transitions

    @staticmethod
    def _window_transitions(events: list[AWEvent]) -> list[RawEvent]:
        """Merge window events into sessions and emit their transitions."""
        # AW returns newest-first
        ordered = sorted((e for e in events if e.app), key=lambda e: e.timestamp)
        sessions: list[list] = []  # [app, start, end]

        for event in ordered:
            if sessions:
                last = sessions[-1]
                if last[0] == event.app and event.timestamp - last[2] <= SESSION_MERGE_GAP:
                    last[2] = max(last[2], event.end)
                    continue
            sessions.append([event.app, event.timestamp, event.end])

        transitions: list[RawEvent] = []
        for app, session_start, session_end in sessions:
            transitions.append(RawEvent.at(app, EventKind.FOREGROUND, session_start))
            transitions.append(RawEvent.at(app, EventKind.BACKGROUND, session_end))
        return transitions
