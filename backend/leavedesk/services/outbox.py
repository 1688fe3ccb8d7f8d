"""Transactional outbox for notification and email side effects.

Core operations call ``record_event`` inside their own transaction, so the
event row commits or rolls back together with the state change. Delivery is
a separate step run after commit: request handlers deliver the events they
recorded (``dispatch_recorded_events``) and the worker drains the backlog
(``dispatch_pending_events``). Each event is claimed with a lease before
delivery so that concurrent dispatchers never send it twice. A failing sink
is logged and retried on the next dispatch, and never affects the state
change that produced the event.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING, Any

from sqlalchemy import case, func, or_, select, update
from sqlmodel import col

from leavedesk.config import get_settings
from leavedesk.models.enums import OutboxEventType
from leavedesk.models.outbox import OutboxEvent
from leavedesk.services.clock import get_clock
from leavedesk.services.notification import get_email_sink, get_notification_sink

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime

    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

# Session.info key holding the ids of events recorded through that session.
_RECORDED_KEY = "outbox_event_ids"


@dataclass
class DispatchResult:
    """Summary of one outbox dispatch pass."""

    delivered: int = 0
    failed: int = 0
    skipped: int = 0


async def record_event(
    session: AsyncSession,
    event_type: OutboxEventType,
    payload: dict[str, Any],
) -> OutboxEvent:
    """Add an event to the current transaction. Does not commit."""
    event = OutboxEvent(event_type=event_type.value, payload_json=payload)
    session.add(event)
    await session.flush()
    session.info.setdefault(_RECORDED_KEY, []).append(event.id)
    return event


async def _deliver(event: OutboxEvent) -> None:
    """Push one event to the sinks it targets."""
    payload = event.payload_json
    event_type = OutboxEventType(event.event_type)
    notify_user_id = payload.get("notify_user_id")

    if event_type == OutboxEventType.LEAVE_REQUEST_SUBMITTED:
        await get_email_sink().send_leave_submitted(payload)
    elif event_type == OutboxEventType.LEAVE_REQUEST_DECIDED:
        await get_email_sink().send_leave_decision(payload)

    if notify_user_id is not None and payload.get("title"):
        await get_notification_sink().notify(uuid.UUID(notify_user_id), payload["title"], payload["message"])


async def _claim(session: AsyncSession, event_id: uuid.UUID, seen_attempts: int, lease_until: datetime) -> bool:
    """Take ownership of an event by bumping the attempt count it was read with.

    A dispatcher that read the same count loses the race and gets False.
    The claim is committed before delivery starts.
    """
    result = await session.execute(
        update(OutboxEvent)
        .where(
            col(OutboxEvent.id) == event_id,
            col(OutboxEvent.delivered_at).is_(None),
            col(OutboxEvent.attempts) == seen_attempts,
        )
        .values(attempts=seen_attempts + 1, claimed_until=lease_until)
        .execution_options(synchronize_session=False)
    )
    await session.commit()
    return result.rowcount == 1


async def dispatch_pending_events(
    session: AsyncSession,
    limit: int | None = None,
    event_ids: Sequence[uuid.UUID] | None = None,
) -> DispatchResult:
    """Deliver undelivered events that have attempts left and no live claim.

    Each event is claimed, delivered and committed on its own, so concurrent
    dispatchers never deliver the same event twice and one failing delivery
    does not hold back the rest. ``event_ids`` narrows the pass to specific
    events.
    """
    settings = get_settings()
    result = DispatchResult()
    now = get_clock().now()

    query = select(OutboxEvent.id, OutboxEvent.attempts).where(
        col(OutboxEvent.delivered_at).is_(None),
        col(OutboxEvent.attempts) < settings.outbox_max_attempts,
        or_(col(OutboxEvent.claimed_until).is_(None), col(OutboxEvent.claimed_until) < now),
    )
    if event_ids is not None:
        if not event_ids:
            return result
        query = query.where(col(OutboxEvent.id).in_(event_ids))
    rows = (
        await session.execute(query.order_by(col(OutboxEvent.created_at)).limit(limit or settings.outbox_batch_size))
    ).all()
    await session.commit()

    lease_until = now + timedelta(seconds=settings.outbox_claim_seconds)
    for event_id, attempts in rows:
        if not await _claim(session, event_id, attempts, lease_until):
            result.skipped += 1
            continue

        event = await session.get(OutboxEvent, event_id, populate_existing=True)
        if event is None:
            continue
        try:
            await _deliver(event)
        except Exception as exc:
            logger.exception("Error delivering outbox event=%s type=%s", event.id, event.event_type)
            event.last_error = f"{type(exc).__name__}: {exc}"[:1000]
            result.failed += 1
        else:
            event.delivered_at = get_clock().now()
            event.last_error = None
            result.delivered += 1
        event.claimed_until = None
        await session.commit()

    if result.delivered or result.failed:
        logger.info("Outbox dispatch delivered=%d failed=%d", result.delivered, result.failed)
    return result


async def dispatch_recorded_events(session: AsyncSession) -> DispatchResult:
    """Deliver only the events this session recorded, after the caller has committed.

    Request handlers use this so that each request sends its own
    notifications and leaves the backlog to the worker.
    """
    event_ids = session.info.pop(_RECORDED_KEY, [])
    return await dispatch_pending_events(session, event_ids=event_ids)


@dataclass
class OutboxBacklog:
    """Undelivered events, split by whether dispatch will still retry them."""

    pending: int = 0
    exhausted: int = 0


async def get_outbox_backlog(session: AsyncSession) -> OutboxBacklog:
    exhausted = col(OutboxEvent.attempts) >= get_settings().outbox_max_attempts
    row = (
        await session.execute(
            select(
                func.coalesce(func.sum(case((exhausted, 0), else_=1)), 0),
                func.coalesce(func.sum(case((exhausted, 1), else_=0)), 0),
            ).where(col(OutboxEvent.delivered_at).is_(None))
        )
    ).one()
    return OutboxBacklog(pending=int(row[0]), exhausted=int(row[1]))
