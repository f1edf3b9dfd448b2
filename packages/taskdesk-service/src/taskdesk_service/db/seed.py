"""Role and authority reference data."""

from __future__ import annotations

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskdesk_service.db.models import AuthorityModel, RoleModel, role_authorities

logger = structlog.get_logger(__name__)

ROLE_USER = "USER"
ROLE_ADMIN = "ADMIN"
DEFAULT_ROLE = ROLE_USER

TASK_READ = "TASK_READ"
TASK_WRITE = "TASK_WRITE"
PROFILE_READ = "PROFILE_READ"
ACCOUNT_ADMIN = "ACCOUNT_ADMIN"

ROLE_AUTHORITIES: dict[str, tuple[str, ...]] = {
    ROLE_USER: (TASK_READ, TASK_WRITE, PROFILE_READ),
    ROLE_ADMIN: (TASK_READ, TASK_WRITE, PROFILE_READ, ACCOUNT_ADMIN),
}


async def seed_reference_data(session: AsyncSession) -> None:
    """Insert any missing roles, authorities and role grants. Safe to re-run."""
    authority_ids: dict[str, int] = {
        row.name: row.id for row in (await session.execute(select(AuthorityModel))).scalars()
    }
    for name in sorted({a for names in ROLE_AUTHORITIES.values() for a in names}):
        if name not in authority_ids:
            authority = AuthorityModel(name=name)
            session.add(authority)
            await session.flush()
            authority_ids[name] = authority.id

    role_ids: dict[str, int] = {
        row.name: row.id for row in (await session.execute(select(RoleModel))).scalars()
    }
    for name in ROLE_AUTHORITIES:
        if name not in role_ids:
            role = RoleModel(name=name)
            session.add(role)
            await session.flush()
            role_ids[name] = role.id

    existing = {
        (row.role_id, row.authority_id)
        for row in (await session.execute(select(role_authorities))).all()
    }
    added = 0
    for role_name, authority_names in ROLE_AUTHORITIES.items():
        for authority_name in authority_names:
            pair = (role_ids[role_name], authority_ids[authority_name])
            if pair not in existing:
                await session.execute(
                    role_authorities.insert().values(role_id=pair[0], authority_id=pair[1])
                )
                added += 1

    await session.commit()
    logger.info("reference_data_seeded", roles=len(role_ids), grants_added=added)
