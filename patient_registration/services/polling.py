"""
Background refresh polling

SQLite offers no change subscription, so while the database is
authoritative the patient list is re-read on a fixed interval. One task
drives the ticks and the repository skips a tick when a write is in flight.
"""
import asyncio
import logging
from typing import Optional

from patient_registration.services.repository import PatientRepository

logger = logging.getLogger(__name__)


class RefreshPoller:
    def __init__(self, repository: PatientRepository, interval: float = 1.0):
        self.repository = repository
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self):
        """Start polling; no-op if already running or the database is not in use"""
        if self.running or self.repository.using_fallback:
            return
        logger.info(f"Setting up change polling every {self.interval}s")
        self._task = asyncio.create_task(self._run())

    async def stop(self):
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        except Exception:
            # Shutdown must go on; the failure is only reported
            logger.exception("Change polling had stopped with an error")
        self._task = None

    async def _run(self):
        while not self.repository.using_fallback:
            await asyncio.sleep(self.interval)
            refreshed = await self.repository.refresh()
            if not refreshed:
                logger.debug("Refresh tick skipped")
        logger.info("Stopped change polling, database no longer in use")
