"""Authentication orchestration: registration, signin, refresh, logout."""

from __future__ import annotations

from dataclasses import dataclass

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from taskdesk_service.auth.jwt import TokenCodec
from taskdesk_service.auth.passwords import hash_password, verify_password
from taskdesk_service.auth.principal import Principal
from taskdesk_service.auth.refresh_tokens import RefreshTokenManager
from taskdesk_service.db.models import AccountModel, UserProfileModel
from taskdesk_service.db.repositories.accounts import AccountsRepo
from taskdesk_service.db.repositories.profiles import ProfilesRepo
from taskdesk_service.db.seed import DEFAULT_ROLE
from taskdesk_service.errors import (
    DuplicateEmailError,
    DuplicateResourceError,
    DuplicateUsernameError,
    InvalidCredentialsError,
    InvalidRefreshTokenError,
    NotFoundError,
    PasswordMismatchError,
)

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class AuthTokens:
    access_token: str
    refresh_token: str


class AuthService:
    def __init__(
        self,
        session: AsyncSession,
        codec: TokenCodec,
        refresh_tokens: RefreshTokenManager | None = None,
        accounts: AccountsRepo | None = None,
        profiles: ProfilesRepo | None = None,
    ) -> None:
        self._session = session
        self._codec = codec
        self._refresh_tokens = refresh_tokens or RefreshTokenManager(session)
        self._accounts = accounts or AccountsRepo(session)
        self._profiles = profiles or ProfilesRepo(session)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    async def register(
        self, username: str, email: str, password: str, confirm_password: str
    ) -> AccountModel:
        """Create the account and its profile in one transaction."""
        if password != confirm_password:
            raise PasswordMismatchError()

        if await self._accounts.email_exists(email):
            raise DuplicateEmailError()
        if await self._profiles.username_exists(username):
            raise DuplicateUsernameError()

        account = await self._accounts.create(
            email=email,
            password_hash=hash_password(password),
            role_names=(DEFAULT_ROLE,),
        )
        profile = await self._profiles.create(account_id=account.id, username=username)
        try:
            await self._session.commit()
        except IntegrityError as exc:
            await self._session.rollback()
            logger.warning("registration_conflict", email=email, username=username)
            raise DuplicateResourceError("Email or username is already registered") from exc

        logger.info(
            "account_registered",
            account_id=str(account.id),
            profile_id=str(profile.id),
            email=email,
        )
        return account

    # ------------------------------------------------------------------
    # Signin / refresh / logout
    # ------------------------------------------------------------------

    async def authenticate_user(self, email: str, password: str) -> AuthTokens:
        account = await self._accounts.get_by_email(email)
        if account is None:
            logger.warning("signin_rejected", email=email, reason="unknown_email")
            raise InvalidCredentialsError()
        if not verify_password(password, account.password_hash):
            logger.warning("signin_rejected", email=email, reason="bad_password")
            raise InvalidCredentialsError()
        if not account.enabled or account.locked:
            logger.warning(
                "signin_rejected",
                email=email,
                reason="inactive_account",
                enabled=bool(account.enabled),
                locked=bool(account.locked),
            )
            raise InvalidCredentialsError()

        tokens = await self._issue_tokens(account)
        logger.info("user_signed_in", account_id=str(account.id))
        return tokens

    async def refresh_access_token(self, raw_refresh_token: str) -> AuthTokens:
        token = await self._refresh_tokens.find_by_raw_token(raw_refresh_token)
        if token is None:
            logger.warning("refresh_rejected", reason="unknown_token")
            raise InvalidRefreshTokenError("Invalid refresh token")

        token = await self._refresh_tokens.verify_not_expired_or_revoked(token)
        # The read above may be stale; claiming the row settles which of two
        # concurrent refreshes with the same secret wins.
        await self._refresh_tokens.redeem(token)

        account = await self._accounts.get_by_id(token.account_id)
        if account is None or not account.enabled or account.locked:
            await self._refresh_tokens.revoke_all_for_account(token.account_id)
            await self._session.commit()
            logger.warning("refresh_rejected", account_id=str(token.account_id), reason="inactive_account")
            raise InvalidRefreshTokenError("Invalid refresh token")

        tokens = await self._issue_tokens(account)
        logger.info("access_token_refreshed", account_id=str(account.id))
        return tokens

    async def logout_user(self, raw_refresh_token: str | None) -> None:
        if raw_refresh_token is None or not raw_refresh_token.strip():
            logger.warning("logout_rejected", reason="missing_token")
            raise InvalidRefreshTokenError("Refresh token is required for logout")

        token = await self._refresh_tokens.find_by_raw_token(raw_refresh_token)
        if token is None:
            logger.warning("logout_rejected", reason="unknown_token")
            raise InvalidRefreshTokenError("Invalid refresh token")

        await self._refresh_tokens.revoke(token)
        await self._session.commit()
        logger.info("user_logged_out", account_id=str(token.account_id))

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    async def get_profile(self, principal: Principal) -> UserProfileModel:
        profile = await self._profiles.get_by_account(principal.account_id)
        if profile is None:
            logger.error("profile_missing", account_id=str(principal.account_id))
            raise NotFoundError("User profile not found")
        return profile

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _issue_tokens(self, account: AccountModel) -> AuthTokens:
        profile = await self._require_profile(account)
        principal = Principal.from_credential_record(
            account, profile, await self._accounts.authorities_for(account.id)
        )
        access_token = self._codec.issue_access_token(
            account_id=principal.account_id,
            profile_id=principal.profile_id,
            email=principal.email,
            authorities=sorted(principal.authorities),
        )
        issued = await self._refresh_tokens.create(account.id)
        await self._session.commit()
        return AuthTokens(access_token=access_token, refresh_token=issued.raw_token)

    async def _require_profile(self, account: AccountModel) -> UserProfileModel:
        profile = await self._profiles.get_by_account(account.id)
        if profile is None:
            # Registration writes both rows in one transaction, so this means
            # the data was modified out of band.
            logger.error("profile_missing", account_id=str(account.id))
            raise RuntimeError(f"No profile for account {account.id}")
        return profile
