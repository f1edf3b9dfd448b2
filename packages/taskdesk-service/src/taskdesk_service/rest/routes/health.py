"""Health check endpoints."""

from fastapi import APIRouter
from sqlalchemy import text

from taskdesk_service.db.deps import SessionDep

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/health/ready")
async def ready(session: SessionDep) -> dict[str, str]:
    """Ready once the database answers a trivial query."""
    await session.execute(text("SELECT 1"))
    return {"status": "ready"}
