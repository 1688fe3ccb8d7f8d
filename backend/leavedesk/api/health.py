import logging
from typing import Literal

from fastapi import APIRouter
from pydantic import BaseModel
from sqlalchemy import text

from leavedesk.config import get_settings
from leavedesk.db import SessionDep
from leavedesk.services.outbox import get_outbox_backlog

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class OutboxHealth(BaseModel):
    pending: int
    exhausted: int


class HealthResponse(BaseModel):
    """Liveness plus the state of the notification backlog."""

    status: Literal["ok", "degraded"]
    app: str
    version: str
    environment: str
    database: Literal["ok", "unreachable"]
    outbox: OutboxHealth | None = None


@router.get("/health", response_model=HealthResponse)
async def health(session: SessionDep) -> HealthResponse:
    """Report database connectivity and how many notifications are waiting.

    Events that ran out of delivery attempts also mark the service degraded,
    since those notifications will never reach their recipients.
    """
    settings = get_settings()
    response = HealthResponse(
        status="ok",
        app=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
        database="ok",
    )

    try:
        await session.execute(text("SELECT 1"))
        backlog = await get_outbox_backlog(session)
    except Exception:
        logger.exception("Health check: database connectivity failed")
        response.status = "degraded"
        response.database = "unreachable"
        return response

    response.outbox = OutboxHealth(pending=backlog.pending, exhausted=backlog.exhausted)
    if backlog.exhausted:
        response.status = "degraded"
    return response
