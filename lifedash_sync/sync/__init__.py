"""Sync module - aggregates usage events and uploads hourly records."""

from .aggregator import AggregationResult, AppUsageInfo, HourlyAggregator
from .assembler import AppUsageItem, HourlyUsageRecord, RecordAssembler
from .aw_client import ActivityWatchEventSource, AWClient
from .coordinator import UploadCoordinator, UploadOutcome
from .events import EventKind, RawEvent, StaticEventSource
from .history import SyncHistory, SyncRecord
from .http_client import LifeDashboardClient, LifeDashboardAuthError, LifeDashboardClientError
from .pipeline import UsagePipeline
from .protocols import (
    DeviceReadingsProtocol,
    EventSourceProtocol,
    RemoteSinkProtocol,
    SyncHistoryProtocol,
)
from .readings import FixedReadings, SystemReadings
from .summary import DailyUsageSummary, summarize_day

__all__ = [
    "AggregationResult",
    "AppUsageInfo",
    "HourlyAggregator",
    "AppUsageItem",
    "HourlyUsageRecord",
    "RecordAssembler",
    "ActivityWatchEventSource",
    "AWClient",
    "UploadCoordinator",
    "UploadOutcome",
    "EventKind",
    "RawEvent",
    "StaticEventSource",
    "SyncHistory",
    "SyncRecord",
    "LifeDashboardClient",
    "LifeDashboardAuthError",
    "LifeDashboardClientError",
    "UsagePipeline",
    "DeviceReadingsProtocol",
    "EventSourceProtocol",
    "RemoteSinkProtocol",
    "SyncHistoryProtocol",
    "FixedReadings",
    "SystemReadings",
    "DailyUsageSummary",
    "summarize_day",
]
