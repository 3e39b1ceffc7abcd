"""Pull user, subjects and assignments from WaniKani into local storage."""
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

from wk_tutor.api import WaniKaniAPI
from wk_tutor.store import get_last_sync, save_assignments, save_subjects, save_user, set_last_sync

logger = logging.getLogger(__name__)


class SyncStage(Enum):
    STARTING = "starting"
    SYNCING_USER = "syncing_user"
    SYNCING_SUBJECTS = "syncing_subjects"
    SYNCING_ASSIGNMENTS = "syncing_assignments"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class SyncProgress:
    stage: SyncStage
    count: Optional[int] = None
    message: Optional[str] = None


ProgressCallback = Callable[[SyncProgress], None]


class SyncCoordinator:
    """Runs the sync steps strictly in order against one local database.

    Each step is idempotent, so a failed ``sync_everything`` is retried from
    the start rather than from the failed step.
    """

    def __init__(self, api: WaniKaniAPI, db_path: str, clock: Optional[Callable[[], datetime]] = None):
        self.api = api
        self.db_path = db_path
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._lock = threading.Lock()

    def sync_user(self) -> None:
        user = self.api.get_user()
        save_user(self.db_path, user)
        logger.info("Synced user %s (level %d)", user.username, user.level)

    def sync_subjects(self, updated_after: Optional[datetime] = None) -> int:
        subjects = self.api.get_subjects(updated_after=updated_after)
        save_subjects(self.db_path, subjects)
        logger.info("Synced %d subjects (updated after %s)", len(subjects), updated_after)
        return len(subjects)

    def sync_assignments(self, updated_after: Optional[datetime] = None) -> int:
        assignments = self.api.get_assignments(updated_after=updated_after)
        save_assignments(self.db_path, assignments)
        logger.info("Synced %d assignments (updated after %s)", len(assignments), updated_after)
        return len(assignments)

    def sync_everything(self, progress: Optional[ProgressCallback] = None) -> None:
        """Sync user, subjects then assignments, advancing the watermark on success.

        The stored last-sync time only moves once all three steps succeed;
        on failure a FAILED event is reported and the error re-raised.
        """
        report = progress or (lambda event: None)
        with self._lock:
            started = self._clock()
            report(SyncProgress(SyncStage.STARTING))
            try:
                watermark = get_last_sync(self.db_path)

                report(SyncProgress(SyncStage.SYNCING_USER))
                self.sync_user()

                subjects = self.sync_subjects(updated_after=watermark)
                report(SyncProgress(SyncStage.SYNCING_SUBJECTS, count=subjects))

                assignments = self.sync_assignments(updated_after=watermark)
                report(SyncProgress(SyncStage.SYNCING_ASSIGNMENTS, count=assignments))
            except Exception as e:
                logger.error("Sync failed: %s", e)
                report(SyncProgress(SyncStage.FAILED, message=str(e)))
                raise

            set_last_sync(self.db_path, started)
            logger.info("Sync complete: %d subjects, %d assignments since %s", subjects, assignments, watermark)
            report(SyncProgress(SyncStage.COMPLETED))
