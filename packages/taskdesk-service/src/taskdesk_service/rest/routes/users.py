"""Profile endpoint for the signed-in user."""

from __future__ import annotations

from fastapi import APIRouter

from taskdesk_service.auth.deps import AuthServiceDep, require_authority
from taskdesk_service.auth.principal import Principal
from taskdesk_service.db.seed import PROFILE_READ
from taskdesk_service.rest.schemas import ProfileResponse

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=ProfileResponse)
async def me(
    service: AuthServiceDep,
    principal: Principal = require_authority(PROFILE_READ),
) -> ProfileResponse:
    profile = await service.get_profile(principal)
    return ProfileResponse(id=str(profile.id), username=profile.username, email=principal.email)
