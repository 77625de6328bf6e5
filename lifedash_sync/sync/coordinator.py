"""Upload coordinator - sends hourly records and records the outcome."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional, Sequence

from .assembler import HourlyUsageRecord
from .history import SyncRecord
from .protocols import RemoteSinkProtocol, SyncHistoryProtocol

__all__ = ["UploadCoordinator", "UploadOutcome", "SUCCESS_STATUSES", "AUTH_FAILURE_STATUS"]

logger = logging.getLogger(__name__)

SUCCESS_STATUSES = frozenset({200, 201})
AUTH_FAILURE_STATUS = 401


@dataclass(frozen=True)
class UploadOutcome:
    """Aggregate result of one upload call."""

    success: bool
    success_count: int = 0
    record_count: int = 0
    error: Optional[str] = None


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def majority_threshold(record_count: int) -> int:
    """Successful uploads needed for a batch of ``record_count`` to pass."""
    return (record_count + 1) // 2


class UploadCoordinator:
    """Uploads hourly records one at a time and logs each batch outcome.

    Policy:
    - 200/201 count as a successful record
    - 401 stops the batch immediately and fails it
    - any other status is skipped; the next record is still sent
    - a raised error aborts the batch and fails it
    - the batch succeeds when at least half of its records succeeded

    Exactly one SyncRecord is written per ``upload()`` call. Writing it is
    best-effort; ``upload()`` never raises.
    """

    def __init__(
        self,
        sink: RemoteSinkProtocol,
        history: SyncHistoryProtocol,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.sink = sink
        self.history = history
        self._clock = clock

    def upload(self, records: Sequence[HourlyUsageRecord]) -> UploadOutcome:
        """Upload a batch of hourly records.

        Args:
            records: Records to send, in upload order

        Returns:
            UploadOutcome describing the batch
        """
        if not records:
            logger.warning("No hourly records to upload")
            outcome = UploadOutcome(success=True)
            self.record_outcome(outcome)
            return outcome

        success_count = 0
        try:
            for record in records:
                status = self.sink.upload_hourly_record(record)

                if status == AUTH_FAILURE_STATUS:
                    logger.error(
                        f"Upload rejected for {record.date} hour {record.hour}: "
                        "authentication failed, aborting batch"
                    )
                    outcome = UploadOutcome(
                        success=False,
                        success_count=success_count,
                        record_count=len(records),
                    )
                    self.record_outcome(outcome)
                    return outcome

                if status in SUCCESS_STATUSES:
                    success_count += 1
                else:
                    logger.warning(
                        f"Upload of {record.date} hour {record.hour} failed with status {status}"
                    )
        except Exception as e:
            logger.error(f"Error while uploading hourly records: {e}", exc_info=True)
            outcome = UploadOutcome(
                success=False,
                success_count=success_count,
                record_count=len(records),
                error=str(e),
            )
            self.record_outcome(outcome)
            return outcome

        success = success_count >= majority_threshold(len(records))
        outcome = UploadOutcome(
            success=success,
            success_count=success_count,
            record_count=len(records),
        )

        if success:
            logger.info(
                f"Uploaded hourly usage: {success_count}/{len(records)} records succeeded"
            )
            self._save_last_sync(records[0])
        else:
            logger.error(
                f"Hourly usage upload failed: only {success_count}/{len(records)} records succeeded"
            )

        self.record_outcome(outcome)
        return outcome

    def record_outcome(self, outcome: UploadOutcome) -> None:
        """Persist one SyncRecord for an upload outcome (best-effort)."""
        record = SyncRecord(
            timestamp=self._clock(),
            success=outcome.success,
            record_count=outcome.record_count,
            error_message=outcome.error,
        )
        try:
            self.history.add(record)
        except Exception as e:
            logger.warning(f"Failed to store sync record: {e}")

    def _save_last_sync(self, first: HourlyUsageRecord) -> None:
        try:
            self.history.set_last_sync(first.date, first.timestamp)
        except Exception as e:
            logger.warning(f"Failed to store last sync marker: {e}")
