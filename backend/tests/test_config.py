"""Tests for settings parsing and database helpers."""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING

import pytest
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import async_sessionmaker

from leavedesk import main
from leavedesk.config import Settings
from leavedesk.db import engine_options, session_scope
from leavedesk.models import PublicHoliday

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine


def test_settings_read_prefixed_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LEAVEDESK_OUTBOX_MAX_ATTEMPTS", "3")
    monkeypatch.setenv("LEAVEDESK_CORS_ORIGINS", "https://hr.example.com, https://admin.example.com")

    settings = Settings()

    assert settings.outbox_max_attempts == 3
    assert settings.cors_origins == ["https://hr.example.com", "https://admin.example.com"]


def test_log_level_is_normalised() -> None:
    assert Settings(log_level="debug").log_level == "DEBUG"


def test_unknown_log_level_rejected() -> None:
    with pytest.raises(PydanticValidationError):
        Settings(log_level="chatty")


def test_outbox_attempts_must_be_positive() -> None:
    with pytest.raises(PydanticValidationError):
        Settings(outbox_max_attempts=0)


def test_serve_runs_uvicorn_with_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[tuple[tuple[object, ...], dict[str, object]]] = []
    monkeypatch.setattr(main.uvicorn, "run", lambda *args, **kwargs: calls.append((args, kwargs)))
    monkeypatch.setattr(main, "get_settings", lambda: Settings(host="127.0.0.1", port=9000, log_level="warning"))

    main.serve()

    [(args, kwargs)] = calls
    assert args == ("leavedesk.main:app",)
    assert kwargs == {"host": "127.0.0.1", "port": 9000, "reload": False, "log_level": "warning"}


def test_port_must_be_valid() -> None:
    with pytest.raises(PydanticValidationError):
        Settings(port=0)


def test_engine_options_by_backend() -> None:
    assert engine_options("sqlite+aiosqlite://")["connect_args"] == {"check_same_thread": False}
    pg = engine_options("postgresql+asyncpg://u:p@db/leavedesk", echo=True)
    assert pg == {"echo": True, "pool_pre_ping": True}


async def test_session_scope_discards_uncommitted_work(engine: AsyncEngine) -> None:
    factory = async_sessionmaker(engine, expire_on_commit=False)

    async with session_scope(factory) as session:
        session.add(PublicHoliday(date=date(2024, 12, 25), name="Christmas Day"))
        await session.flush()

    async with session_scope(factory) as session:
        count = (await session.execute(select(func.count()).select_from(PublicHoliday))).scalar_one()
    assert count == 0
