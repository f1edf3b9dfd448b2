"""Refresh token manager tests against a real (SQLite) store."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock

import base64
import hashlib

import pytest
from sqlalchemy import select

from taskdesk_service.auth.refresh_tokens import RefreshTokenManager, generate_token, hash_token
from taskdesk_service.db.models import RefreshTokenModel
from taskdesk_service.db.repositories.refresh_tokens import RefreshTokensRepo
from taskdesk_service.errors import InvalidRefreshTokenError

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def test_hash_token_is_stable_and_accepts_jca_names():
    assert hash_token("abc", "SHA-256") == hash_token("abc", "sha256")
    assert hash_token("abc") != hash_token("abd")


@pytest.mark.parametrize(
    ("name", "hashlib_name"),
    [
        ("sha256", "sha256"),
        ("SHA-256", "sha256"),
        ("SHA-512", "sha512"),
        ("sha3_256", "sha3_256"),
        ("SHA3-256", "sha3_256"),
        ("sha3_512", "sha3_512"),
        ("SHA3-512", "sha3_512"),
        ("blake2b", "blake2b"),
    ],
)
def test_hash_token_algorithm_names(name, hashlib_name):
    expected = base64.b64encode(hashlib.new(hashlib_name, b"abc").digest()).decode("ascii")

    assert hash_token("abc", name) == expected


def test_generate_token_is_url_safe_and_unpadded():
    token = generate_token(64)

    assert "=" not in token
    assert "+" not in token and "/" not in token
    assert len(token) == 86  # 64 bytes -> ceil(64 * 4 / 3) chars


def test_unknown_hash_algorithm_fails_fast():
    with pytest.raises(ValueError):
        RefreshTokenManager(MagicMock(), hash_algorithm="no-such-digest")


# ---------------------------------------------------------------------------
# Issuance
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_only_digest_is_persisted(session, account):
    manager = RefreshTokenManager(session)

    issued = await manager.create(account.id)
    await session.commit()

    stored = (await session.execute(select(RefreshTokenModel.token_hash))).scalars().all()
    assert issued.raw_token not in stored
    assert hash_token(issued.raw_token) in stored
    assert issued.record.expires_at > datetime.now(UTC) + timedelta(days=6)


@pytest.mark.asyncio
async def test_create_revokes_prior_tokens(session, account):
    manager = RefreshTokenManager(session)

    first = await manager.create(account.id)
    second = await manager.create(account.id)
    await session.commit()

    tokens = await RefreshTokensRepo(session).list_for_account(account.id)
    active = [t for t in tokens if not t.revoked]
    assert len(tokens) == 2
    assert [t.id for t in active] == [second.record.id]
    assert (await manager.find_by_raw_token(first.raw_token)).revoked


@pytest.mark.asyncio
async def test_find_by_raw_token_misses_unknown_value(session, account):
    manager = RefreshTokenManager(session)
    await manager.create(account.id)
    await session.commit()

    assert await manager.find_by_raw_token("never-issued") is None


# ---------------------------------------------------------------------------
# Verification and cleanup
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_verify_accepts_live_token(session, account):
    manager = RefreshTokenManager(session)
    issued = await manager.create(account.id)
    await session.commit()

    assert await manager.verify_not_expired_or_revoked(issued.record) is issued.record


@pytest.mark.asyncio
async def test_expired_token_is_deleted_on_verify(session, account):
    manager = RefreshTokenManager(session)
    issued = await manager.create(account.id)
    issued.record.expires_at = datetime.now(UTC) - timedelta(seconds=1)
    await session.commit()

    with pytest.raises(InvalidRefreshTokenError):
        await manager.verify_not_expired_or_revoked(issued.record)

    assert await manager.find_by_raw_token(issued.raw_token) is None


@pytest.mark.asyncio
async def test_revoked_token_is_deleted_on_verify(session, account):
    manager = RefreshTokenManager(session)
    issued = await manager.create(account.id)
    await manager.revoke(issued.record)
    await session.commit()

    with pytest.raises(InvalidRefreshTokenError):
        await manager.verify_not_expired_or_revoked(issued.record)

    assert await manager.find_by_raw_token(issued.raw_token) is None


@pytest.mark.asyncio
async def test_delete_expired_removes_only_stale_rows(session, account):
    manager = RefreshTokenManager(session)
    stale = await manager.create(account.id)
    stale.record.expires_at = datetime.now(UTC) - timedelta(days=1)
    live = await manager.create(account.id)
    await session.commit()

    deleted = await manager.delete_expired()
    await session.commit()

    assert deleted == 1
    assert await manager.find_by_raw_token(stale.raw_token) is None
    assert await manager.find_by_raw_token(live.raw_token) is not None


# ---------------------------------------------------------------------------
# Two sessions, one account
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_token_redeemed_by_one_session_only(session_factory, session, account):
    issued = await RefreshTokenManager(session).create(account.id)
    await session.commit()

    async with session_factory() as first, session_factory() as second:
        first_manager, second_manager = RefreshTokenManager(first), RefreshTokenManager(second)
        # Both sessions see the token as live before either redeems it.
        first_token = await first_manager.verify_not_expired_or_revoked(
            await first_manager.find_by_raw_token(issued.raw_token)
        )
        second_token = await second_manager.verify_not_expired_or_revoked(
            await second_manager.find_by_raw_token(issued.raw_token)
        )

        await first_manager.redeem(first_token)
        await first.commit()

        with pytest.raises(InvalidRefreshTokenError):
            await second_manager.redeem(second_token)


@pytest.mark.asyncio
async def test_interleaved_issuance_leaves_one_active_token(session_factory, account):
    async with session_factory() as first, session_factory() as second:
        assert await RefreshTokensRepo(second).list_for_account(account.id) == []

        await RefreshTokenManager(first).create(account.id)
        await first.commit()
        latest = await RefreshTokenManager(second).create(account.id)
        await second.commit()

    async with session_factory() as check:
        stored = await RefreshTokensRepo(check).list_for_account(account.id)

    assert len(stored) == 2
    assert [t.id for t in stored if not t.revoked] == [latest.record.id]
