# ruff: noqa: TC003
"""Outbound delivery channels: in-app notifications and email.

Both are external collaborators. The in-memory implementations record what
was sent so tests and local development can inspect it.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class NotificationSink(Protocol):
    """Real-time / in-app notification delivery."""

    async def notify(self, user_id: uuid.UUID, title: str, message: str) -> None: ...


@runtime_checkable
class EmailSink(Protocol):
    """Transactional email delivery for leave workflow events."""

    async def send_leave_submitted(self, payload: dict[str, Any]) -> None: ...

    async def send_leave_decision(self, payload: dict[str, Any]) -> None: ...


@dataclass
class SentNotification:
    user_id: uuid.UUID
    title: str
    message: str


class InMemoryNotificationSink:
    """Keeps delivered notifications in a list."""

    def __init__(self) -> None:
        self.sent: list[SentNotification] = []

    async def notify(self, user_id: uuid.UUID, title: str, message: str) -> None:
        logger.debug("Notify user=%s title=%r", user_id, title)
        self.sent.append(SentNotification(user_id=user_id, title=title, message=message))


class InMemoryEmailSink:
    """Keeps sent emails as (kind, payload) tuples."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, dict[str, Any]]] = []

    async def send_leave_submitted(self, payload: dict[str, Any]) -> None:
        self.sent.append(("submitted", payload))

    async def send_leave_decision(self, payload: dict[str, Any]) -> None:
        self.sent.append(("decision", payload))


_notification_sink: NotificationSink = InMemoryNotificationSink()
_email_sink: EmailSink = InMemoryEmailSink()


def get_notification_sink() -> NotificationSink:
    return _notification_sink


def set_notification_sink(sink: NotificationSink) -> None:
    """Override the notification sink (for testing or production wiring)."""
    global _notification_sink
    _notification_sink = sink


def get_email_sink() -> EmailSink:
    return _email_sink


def set_email_sink(sink: EmailSink) -> None:
    """Override the email sink (for testing or production wiring)."""
    global _email_sink
    _email_sink = sink
