"""Expired refresh token sweep tests."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock

import pytest

from taskdesk_service.auth.refresh_tokens import RefreshTokenManager
from taskdesk_service.jobs import RefreshTokenSweeper


@pytest.mark.asyncio
async def test_sweep_once_deletes_expired_tokens(session_factory, session, account):
    manager = RefreshTokenManager(session)
    issued = await manager.create(account.id)
    await session.commit()
    sweeper = RefreshTokenSweeper(session_factory, interval=3600)

    assert await sweeper.sweep_once() == 0
    assert await sweeper.sweep_once(now=datetime.now(UTC) + timedelta(days=8)) == 1

    session.expunge_all()
    assert await manager.find_by_raw_token(issued.raw_token) is None


@pytest.mark.asyncio
async def test_sweeper_start_and_stop(session_factory):
    sweeper = RefreshTokenSweeper(session_factory, interval=3600)

    sweeper.start()
    await asyncio.sleep(0.05)
    assert sweeper.running

    await sweeper.stop()
    assert not sweeper.running


@pytest.mark.asyncio
async def test_sweep_failure_does_not_stop_the_loop():
    factory = MagicMock(side_effect=RuntimeError("database unavailable"))
    sweeper = RefreshTokenSweeper(factory, interval=0.01)

    sweeper.start()
    await asyncio.sleep(0.1)
    await sweeper.stop()

    assert factory.call_count >= 2
