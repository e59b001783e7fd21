import logging
import re
import threading
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from sqlalchemy.orm import Session

from timeclock.core.config import settings
from timeclock.models import Timesheet
from timeclock.services.image_storage import ImageStorage
from timeclock.services.punches import to_iso_date

logger = logging.getLogger(__name__)

BEFORE_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
DELETE_BATCH_SIZE = 500


class InvalidBeforeDate(ValueError):
    pass


def parse_before_date(value) -> datetime:
    """``YYYY-MM-DD`` -> midnight UTC of that day."""
    value = value.strip() if isinstance(value, str) else ""
    if not BEFORE_DATE_RE.match(value):
        raise InvalidBeforeDate(value)
    try:
        return datetime.strptime(value, "%Y-%m-%d").replace(tzinfo=timezone.utc)
    except ValueError:
        raise InvalidBeforeDate(value)


def cleanup_timesheets(db: Session, before_date: str) -> int:
    """
    Delete raw punches dated before ``before_date`` (``YYYY-MM-DD``).

    Punch dates are ``dd-MM-yyyy`` and do not sort as text, so each one is
    rewritten as ISO before comparing. Dates in neither format are kept.
    DailyShift rows are left alone. Commits.
    """
    stale = []
    for row_id, row_date in db.query(Timesheet.id, Timesheet.date).all():
        iso = to_iso_date(row_date)
        if iso is not None and iso < before_date:
            stale.append(row_id)

    for start in range(0, len(stale), DELETE_BATCH_SIZE):
        batch = stale[start:start + DELETE_BATCH_SIZE]
        db.query(Timesheet).filter(Timesheet.id.in_(batch)).delete(synchronize_session=False)
    db.commit()
    logger.info("Deleted %d timesheet rows dated before %s", len(stale), before_date)
    return len(stale)


def cleanup_images_before(storage: ImageStorage, before: datetime, folder: Optional[str] = None) -> Dict:
    return storage.delete_older_than(folder or settings.TIMESHEET_IMAGE_FOLDER, before)


def cleanup_images_older_than(storage: ImageStorage, days: int, folder: Optional[str] = None) -> Dict:
    cutoff = datetime.now(timezone.utc) - timedelta(days=days)
    return cleanup_images_before(storage, cutoff, folder)


class CleanupService:
    """Background sweep of old timesheet images."""

    def __init__(self, storage: ImageStorage, interval_hours: int = settings.CLEANUP_INTERVAL_HOURS,
                 retention_days: int = settings.IMAGE_RETENTION_DAYS):
        self.storage = storage
        self.cleanup_interval = interval_hours
        self.retention_days = retention_days
        self.running = False
        self.thread = None
        self._stop = threading.Event()
        self.last_result: Optional[Dict] = None

    def start_scheduler(self):
        """Start the automatic cleanup scheduler"""
        if self.running:
            return

        self.running = True
        self._stop.clear()
        self.thread = threading.Thread(target=self._scheduler_loop, daemon=True)
        self.thread.start()
        logger.info("Cleanup scheduler started (every %dh)", self.cleanup_interval)

    def stop_scheduler(self):
        """Stop the automatic cleanup scheduler"""
        self.running = False
        self._stop.set()
        if self.thread:
            self.thread.join(timeout=5)
        logger.info("Cleanup scheduler stopped")

    def _scheduler_loop(self):
        while self.running:
            try:
                self.perform_cleanup()
                wait = self.cleanup_interval * 3600
            except Exception as e:
                logger.error(f"Error in cleanup scheduler: {e}")
                wait = 3600  # retry in an hour
            if self._stop.wait(wait):
                break

    def perform_cleanup(self) -> Dict:
        result = cleanup_images_older_than(self.storage, self.retention_days)
        result["timestamp"] = datetime.now(timezone.utc).isoformat()
        self.last_result = result
        logger.info(
            "Scheduled cleanup: %d image(s) older than %d days deleted, %d error(s)",
            result["deleted"], self.retention_days, result["errors"],
        )
        return result
