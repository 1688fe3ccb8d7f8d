"""Worker process for scheduled leave jobs.

Runs an asyncio loop that, once per interval:

- on the 1st of a month, accrues the previous month for every eligible balance;
- on January 1st, carries balances forward from the previous year;
- delivers pending outbox events (notifications and emails).
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from leavedesk.config import get_settings
from leavedesk.db import get_session_factory, session_scope
from leavedesk.services.clock import get_clock

if TYPE_CHECKING:
    from datetime import date

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = logging.getLogger(__name__)


@dataclass
class CycleReport:
    """What one worker cycle ran."""

    accruals_run: bool = False
    carry_forward_run: bool = False
    events_delivered: int = 0
    events_failed: int = 0


async def run_cycle(session_factory: async_sessionmaker[AsyncSession], today: date) -> CycleReport:
    """Run every job due on ``today``. Each job gets its own session."""
    from leavedesk.services.accrual import previous_year_month, process_monthly_accruals
    from leavedesk.services.carry_forward import process_annual_carry_forward
    from leavedesk.services.outbox import dispatch_pending_events

    report = CycleReport()

    if today.day == 1:
        period = previous_year_month(today)
        try:
            async with session_scope(session_factory) as session:
                result = await process_monthly_accruals(session, period)
            report.accruals_run = True
            logger.info(
                "Accrual run complete for %s: processed=%d accrued=%d skipped=%d errors=%d",
                period,
                result.processed,
                result.accrued,
                result.skipped,
                result.errors,
            )
        except Exception:
            logger.exception("Accrual run failed for %s", period)

    if today.month == 1 and today.day == 1:
        try:
            async with session_scope(session_factory) as session:
                cf_result = await process_annual_carry_forward(session, today.year - 1, today.year)
            report.carry_forward_run = True
            logger.info(
                "Carry-forward run %d->%d: carried=%d skipped=%d errors=%d",
                cf_result.from_year,
                cf_result.to_year,
                cf_result.carried,
                cf_result.skipped,
                cf_result.errors,
            )
        except Exception:
            logger.exception("Carry-forward run failed for %d->%d", today.year - 1, today.year)

    try:
        async with session_scope(session_factory) as session:
            dispatch = await dispatch_pending_events(session)
        report.events_delivered = dispatch.delivered
        report.events_failed = dispatch.failed
    except Exception:
        logger.exception("Outbox dispatch failed")

    return report


async def run_worker_loop() -> None:
    """Main worker loop."""
    settings = get_settings()
    session_factory = get_session_factory()
    logger.info("Leave worker started (interval=%ds)", settings.worker_interval_seconds)

    while True:
        await run_cycle(session_factory, get_clock().today())
        await asyncio.sleep(settings.worker_interval_seconds)


def main() -> None:
    """Entry point for the worker process."""
    logging.basicConfig(
        level=get_settings().log_level.upper(),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    asyncio.run(run_worker_loop())


if __name__ == "__main__":
    main()
