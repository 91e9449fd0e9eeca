"""Background cleanup of expired session state."""

import asyncio
import logging
from datetime import datetime

from haskify.db.repositories import MaterialRepository
from haskify.quiz.dedup import QuizHashStore

logger = logging.getLogger(__name__)


class SessionSweeper:
    """Periodically deletes expired session materials and stale quiz hash sets."""

    def __init__(
        self,
        materials: MaterialRepository,
        hash_store: QuizHashStore,
        interval_seconds: float = 900,
    ) -> None:
        self.materials = materials
        self.hash_store = hash_store
        self.interval_seconds = interval_seconds
        self._task: asyncio.Task[None] | None = None

    async def sweep_once(self, now: datetime | None = None) -> tuple[int, int]:
        """Run one cleanup pass.

        Returns:
            (materials deleted, quiz hash sets dropped)
        """
        now = now or datetime.utcnow()

        # Each step runs even if the other fails
        deleted = 0
        try:
            deleted = await self.materials.delete_expired(now)
        except Exception:
            logger.exception("Expired material cleanup failed")

        dropped = 0
        try:
            dropped = self.hash_store.sweep(now)
        except Exception:
            logger.exception("Quiz hash set cleanup failed")

        if deleted or dropped:
            logger.info(
                f"Sweep removed {deleted} expired materials and {dropped} quiz hash sets",
                extra={"structured": {"materials_deleted": deleted, "hash_sets_dropped": dropped}},
            )
        return deleted, dropped

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await self.sweep_once()
            except Exception:
                # Keep the loop alive; the next pass retries
                logger.exception("Session sweep failed")

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
