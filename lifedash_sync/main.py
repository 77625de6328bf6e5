"""LifeDashboard Sync - Main entry point."""

import argparse
import getpass
import logging
import signal
import sys
import threading
from datetime import datetime, timezone
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from . import __version__
from .auth import KeychainManager, StoredCredentials
from .config import Config, setup_logging
from .sync import (
    ActivityWatchEventSource,
    AWClient,
    HourlyAggregator,
    LifeDashboardClient,
    SyncHistory,
    SystemReadings,
    UploadCoordinator,
    UsagePipeline,
)

logger = logging.getLogger(__name__)

SYNC_JOB_ID = "usage_sync_job"


class SyncScheduler:
    """Runs the usage pipeline periodically and on demand.

    Passes never overlap: the periodic job and on-demand runs share one
    job id and APScheduler is limited to a single running instance.
    """

    def __init__(self, pipeline: UsagePipeline, interval_minutes: int):
        self.pipeline = pipeline
        self.interval_minutes = interval_minutes
        self.scheduler = BackgroundScheduler(
            job_defaults={"max_instances": 1, "coalesce": True}
        )

    def start(self) -> None:
        """Start the periodic scheduler with an immediate first pass."""
        self.scheduler.add_job(
            self._do_sync,
            trigger=IntervalTrigger(minutes=self.interval_minutes),
            id=SYNC_JOB_ID,
            replace_existing=True,
        )
        self.scheduler.start()
        self.trigger_sync()
        logger.info(f"Sync loop started (interval: {self.interval_minutes} min)")

    def stop(self) -> None:
        """Shut down the scheduler if running."""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)

    def reschedule(self, interval_minutes: int) -> None:
        """Change the sync interval on the fly."""
        self.interval_minutes = interval_minutes
        if self.scheduler.running:
            self.scheduler.reschedule_job(
                SYNC_JOB_ID,
                trigger=IntervalTrigger(minutes=interval_minutes),
            )

    def trigger_sync(self) -> None:
        """Run the sync job now instead of waiting for the next interval."""
        if self.scheduler.running:
            self.scheduler.modify_job(SYNC_JOB_ID, next_run_time=datetime.now(timezone.utc))

    def _do_sync(self) -> None:
        """Perform one pipeline pass."""
        try:
            outcome = self.pipeline.run()
            if outcome.success:
                logger.info(
                    f"Sync complete: {outcome.success_count}/{outcome.record_count} records uploaded"
                )
            else:
                logger.warning("Sync failed, will retry on next interval")
        except Exception as e:
            logger.exception(f"Sync error: {e}")


class LifeDashboardSyncApp:
    """Wires the collaborators together and owns their lifecycle."""

    def __init__(self, config: Optional[Config] = None):
        self.config = config or Config.load()
        self.keychain = KeychainManager()

        self.aw = AWClient(host=self.config.aw.host, port=self.config.aw.port)
        self.api = LifeDashboardClient(
            api_url=self.config.api_url,
            timeout=self.config.sync.request_timeout,
        )
        credentials = self.keychain.load()
        if credentials:
            self.api.set_credentials(credentials.token, credentials.user_id)
        self.api.on_credentials_cleared = self._on_credentials_cleared

        self.history = SyncHistory()
        self.pipeline = UsagePipeline(
            source=ActivityWatchEventSource(self.aw),
            coordinator=UploadCoordinator(self.api, self.history),
            readings=SystemReadings(),
            aggregator=HourlyAggregator(
                system_ui_app=self.config.system_ui_app,
                resolve_name=self.config.resolve_app_name,
            ),
            reader=self.api,
            lookback_days=self.config.sync.lookback_days,
        )
        self.scheduler = SyncScheduler(self.pipeline, self.config.sync.interval_minutes)
        self._shutdown_event = threading.Event()

    def login(self, email: str, password: str) -> bool:
        """Log in and store the credentials in the keychain."""
        result = self.api.login(email, password)
        if not result.success:
            logger.error(f"Login failed: {result.error}")
            return False
        self.keychain.store(
            StoredCredentials(token=result.token, user_id=result.user_id, user_email=result.user_email)
        )
        logger.info(f"Logged in as {result.user_email or result.user_id}")
        return True

    def logout(self) -> bool:
        """Forget the credentials, in memory and in the keychain.

        Returns:
            True if no credentials remain stored
        """
        self.api.clear_credentials()
        logged_out = self.keychain.load() is None
        if logged_out:
            logger.info("Logged out")
        return logged_out

    def _on_credentials_cleared(self) -> None:
        """Drop the stored token once the client has discarded it."""
        if self.keychain.delete():
            logger.info("Stored credentials removed, log in again with --login")

    def _check_activitywatch(self) -> None:
        if not self.aw.is_running():
            logger.warning(f"ActivityWatch not running at {self.aw.base_url}")

    def run_once(self) -> bool:
        """Run a single pipeline pass."""
        self._check_activitywatch()
        return self.pipeline.run().success

    def run(self) -> None:
        """Run the scheduler until a shutdown signal arrives."""
        if not self.api.is_authenticated:
            logger.warning("No stored credentials; uploads will fail until you log in")
        self._check_activitywatch()

        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

        self.scheduler.start()
        self._shutdown_event.wait()

    def _signal_handler(self, signum, frame) -> None:
        """Handle shutdown signals."""
        logger.info(f"Received signal {signum}")
        self._shutdown_event.set()

    def shutdown(self) -> None:
        logger.info("Shutting down...")
        self.scheduler.stop()
        self.aw.close()
        self.api.close()
        self.history.close()

    def __enter__(self) -> "LifeDashboardSyncApp":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.shutdown()


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(prog="lifedash-sync", description=__doc__)
    parser.add_argument("--once", action="store_true", help="run a single sync pass and exit")
    parser.add_argument("--login", metavar="EMAIL", help="log in and store credentials")
    parser.add_argument("--logout", action="store_true", help="forget stored credentials")
    parser.add_argument("--debug", action="store_true", help="enable debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    args = parser.parse_args(argv)

    config = Config.load()
    setup_logging(args.debug or config.debug_mode)
    logger.info(f"LifeDashboard Sync {__version__} starting (API: {config.api_url})")

    with LifeDashboardSyncApp(config) as app:
        if args.logout:
            return 0 if app.logout() else 1
        if args.login:
            password = getpass.getpass(f"Password for {args.login}: ")
            return 0 if app.login(args.login, password) else 1
        if args.once:
            return 0 if app.run_once() else 1
        app.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
