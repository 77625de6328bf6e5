"""Protocol types for the sync pipeline's collaborators.

Defines the interfaces the aggregation and upload core requires from the
outside world, so the core can be exercised with synthetic collaborators.
"""

from datetime import date, datetime
from typing import Optional, Protocol, runtime_checkable

from .assembler import HourlyUsageRecord
from .events import RawEvent
from .history import LastSync, SyncRecord


@runtime_checkable
class EventSourceProtocol(Protocol):
    """Interface for reading raw usage transitions."""

    def query_events(self, start: datetime, end: datetime) -> list[RawEvent]: ...


@runtime_checkable
class RemoteSinkProtocol(Protocol):
    """Interface for sending hourly records to the remote API."""

    def upload_hourly_record(self, record: HourlyUsageRecord) -> int: ...


@runtime_checkable
class SyncHistoryProtocol(Protocol):
    """Interface for the durable sync-attempt log."""

    def add(self, record: SyncRecord) -> int: ...

    def get_history(self, limit: Optional[int] = None) -> list[SyncRecord]: ...

    def success_count(self) -> int: ...

    def failure_count(self) -> int: ...

    def set_last_sync(self, sync_date: str, timestamp: str) -> None: ...

    def get_last_sync(self) -> Optional[LastSync]: ...


@runtime_checkable
class DeviceReadingsProtocol(Protocol):
    """Interface for day-scoped device readings attached to hour 0."""

    def notification_count(self) -> Optional[int]: ...

    def battery_level(self) -> Optional[int]: ...


@runtime_checkable
class UsageReaderProtocol(Protocol):
    """Interface for reading back uploaded hourly records."""

    def get_hourly_usage(self, day: date) -> list[HourlyUsageRecord]: ...
