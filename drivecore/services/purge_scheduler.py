"""Timer-driven trash purge.

Assumes a single running instance of the application. Nothing prevents two
processes, or an overlapping manual run, from sweeping at the same time; that
is tolerated because purging an already-deleted row is a no-op. Deployments
running more than one instance need a distributed lock around ``run_once``.
"""

import asyncio
import logging
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.orm import Session

from drivecore.services.trash_manager import PurgeReport, scheduled_purge
from drivecore.utils.blob_store import BlobStore

logger = logging.getLogger(__name__)


class PurgeScheduler:
    def __init__(
        self,
        session_factory: Callable[[], Session],
        blob_store: BlobStore,
        interval_seconds: int,
        retention_days: int,
    ):
        self.session_factory = session_factory
        self.blob_store = blob_store
        self.interval_seconds = interval_seconds
        self.retention_days = retention_days
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def run_once(self, now: Optional[datetime] = None) -> PurgeReport:
        db = self.session_factory()
        try:
            return scheduled_purge(
                db,
                self.blob_store,
                now=now,
                retention_days=self.retention_days,
            )
        finally:
            db.close()

    async def _loop(self):
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await asyncio.to_thread(self.run_once)
            except Exception:
                # keep the timer alive; the next tick retries naturally
                logger.exception("Scheduled trash purge failed")

    def start(self) -> asyncio.Task:
        if self.running:
            return self._task
        logger.info(
            "Starting trash purge every %ds (retention %d days)",
            self.interval_seconds,
            self.retention_days,
        )
        self._task = asyncio.create_task(self._loop())
        return self._task

    async def stop(self):
        if not self.running:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Trash purge scheduler stopped")
