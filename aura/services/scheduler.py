"""
Background sync scheduler
"""
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from datetime import datetime, timezone
from enum import Enum
import logging

logger = logging.getLogger(__name__)

JOB_ID = "device_sync"

class SchedulerState(str, Enum):
    STOPPED = "stopped"
    RUNNING = "running"
    PAUSED = "paused"

class SyncScheduler:
    """Runs DeviceSyncService.sync_all on a fixed interval, one pass at a time"""

    def __init__(self, sync_service, interval_seconds: int = 60, run_on_resume: bool = True):
        self.sync_service = sync_service
        self.interval_seconds = interval_seconds
        self.run_on_resume = run_on_resume
        self.scheduler = AsyncIOScheduler(timezone=timezone.utc)
        self._state = SchedulerState.STOPPED

    @property
    def state(self) -> SchedulerState:
        return self._state

    def _add_job(self, immediate: bool = False):
        options = {}
        if immediate:
            options["next_run_time"] = datetime.now(timezone.utc)
        return self.scheduler.add_job(
            self.sync_service.sync_all,
            IntervalTrigger(seconds=self.interval_seconds),
            id=JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            **options,
        )

    def _remove_job(self) -> None:
        if self.scheduler.get_job(JOB_ID) is not None:
            self.scheduler.remove_job(JOB_ID)

    def start(self, immediate: bool = False) -> None:
        """Start (or restart) periodic syncing"""
        self._add_job(immediate=immediate)
        if not self.scheduler.running:
            self.scheduler.start()
        self._state = SchedulerState.RUNNING
        logger.info(f"Device sync scheduler started (interval: {self.interval_seconds}s)")

    def pause(self) -> None:
        if self._state != SchedulerState.RUNNING:
            logger.info(f"Pause ignored, scheduler is {self._state.value}")
            return
        self._remove_job()
        self._state = SchedulerState.PAUSED
        logger.info("Device sync scheduler paused")

    def resume(self) -> None:
        if self._state != SchedulerState.PAUSED:
            logger.info(f"Resume ignored, scheduler is {self._state.value}")
            return
        self._add_job(immediate=self.run_on_resume)
        self._state = SchedulerState.RUNNING
        logger.info("Device sync scheduler resumed")

    def stop(self) -> None:
        """Stop syncing and drop the engine's transient state"""
        self._remove_job()
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        self.sync_service.reset()
        self._state = SchedulerState.STOPPED
        logger.info("Device sync scheduler stopped")
