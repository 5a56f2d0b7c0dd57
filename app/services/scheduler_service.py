import logging
from datetime import datetime
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.config import settings
from app.exceptions import GuideServiceError
from app.services.listings_store import ListingsStore, get_listings_store


logger = logging.getLogger(__name__)

class ListingsWatcher:
    """Background watcher that reloads the listings store when its file changes"""

    def __init__(self, store: ListingsStore, interval_seconds: int | None = None):
        self.store = store
        self.interval_seconds = interval_seconds or settings.listings_poll_interval_sec
        self.scheduler: BackgroundScheduler | None = None

    def _poll_job(self) -> None:
        """Background job that checks the listings file for changes"""
        try:
            if self.store.refresh_if_changed():
                logger.info("Listings reloaded after source change")
        except GuideServiceError as e:
            logger.error(f"Listings reload failed, previous snapshot kept: {e}")
        except Exception as e:
            logger.error(f"Exception in listings poll: {e}", exc_info=True)

    def _refresh_job(self) -> None:
        """One-off job that reloads the listings file unconditionally"""
        try:
            self.store.refresh()
        except GuideServiceError as e:
            logger.error(f"Requested listings refresh failed, previous snapshot kept: {e}")
        except Exception as e:
            logger.error(f"Exception in requested listings refresh: {e}", exc_info=True)

    def request_refresh(self) -> bool:
        """
        Queue a full refresh on the watcher thread

        Repeated requests before the job runs collapse into one.

        Returns:
            False if the watcher is not running
        """
        if not self.running:
            logger.warning("Refresh requested but watcher is not running")
            return False

        self.scheduler.add_job(
            self._refresh_job,
            id='listings_refresh',
            replace_existing=True,
            max_instances=1
        )
        logger.info("Listings refresh queued")
        return True

    def start(self) -> None:
        """Start the scheduler with the listings poll job"""
        if self.scheduler and self.scheduler.running:
            logger.warning("Watcher already running")
            return

        self.scheduler = BackgroundScheduler(timezone='UTC')
        self.scheduler.add_job(
            self._poll_job,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id='listings_poll',
            max_instances=1,
            coalesce=True
        )

        self.scheduler.start()
        next_time = self.get_next_run_time()
        logger.info(
            "Watching %s every %ss. Next check: %s",
            self.store.source_path,
            self.interval_seconds,
            next_time.isoformat() if next_time else "unknown"
        )

    def shutdown(self) -> None:
        """Shutdown the scheduler"""
        if self.scheduler and self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Watcher stopped")
            self.scheduler = None

    @property
    def running(self) -> bool:
        return bool(self.scheduler and self.scheduler.running)

    def get_next_run_time(self) -> datetime | None:
        """Get next scheduled poll time"""
        if not self.scheduler:
            return None
        job = self.scheduler.get_job('listings_poll')
        return job.next_run_time if job else None


_watcher: ListingsWatcher | None = None


def get_listings_watcher() -> ListingsWatcher:
    """
    Get or create the global watcher for the global listings store.

    Returns:
        The global ListingsWatcher instance
    """
    global _watcher
    if _watcher is None:
        _watcher = ListingsWatcher(get_listings_store())
    return _watcher


def reset_listings_watcher() -> None:
    """
    Reset the watcher (mainly for testing).

    WARNING: Only use this in test environments!
    """
    global _watcher
    if _watcher is not None:
        _watcher.shutdown()
    _watcher = None
