"""Background maintenance jobs."""

from __future__ import annotations

import asyncio
from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from taskdesk_service.auth.refresh_tokens import RefreshTokenManager

logger = structlog.get_logger(__name__)


class RefreshTokenSweeper:
    """Periodically deletes refresh tokens that are past their expiry."""

    def __init__(
        self, session_factory: async_sessionmaker[AsyncSession], interval: float
    ) -> None:
        self._session_factory = session_factory
        self._interval = interval
        self._task: asyncio.Task | None = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        self._running = True
        self._task = asyncio.create_task(self._poll_loop())
        logger.info("refresh_sweeper_started", interval_seconds=self._interval)

    async def stop(self) -> None:
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("refresh_sweeper_stopped")

    async def _poll_loop(self) -> None:
        while self._running:
            try:
                await self.sweep_once()
            except asyncio.CancelledError:
                break
            except Exception as exc:
                logger.error("refresh_sweep_failed", error=str(exc))

            try:
                await asyncio.sleep(self._interval)
            except asyncio.CancelledError:
                break

    async def sweep_once(self, now: datetime | None = None) -> int:
        """Delete expired refresh tokens in a session of its own. Returns the count."""
        async with self._session_factory() as session:
            deleted = await RefreshTokenManager(session).delete_expired(now)
            await session.commit()
        logger.info("refresh_tokens_swept", deleted=deleted)
        return deleted
