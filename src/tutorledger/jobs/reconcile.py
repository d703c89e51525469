"""Background scheduler for the nightly attendance reconciliation."""

from __future__ import annotations

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI

from ..core.config import get_settings
from ..core.database import SessionLocal
from ..services.reconcile_service import run_reconciliation

logger = logging.getLogger(__name__)

_scheduler = AsyncIOScheduler(timezone="UTC")


async def _execute_reconciliation() -> None:
    session = SessionLocal()
    try:
        summary = run_reconciliation(session)
        session.commit()
        logger.info("attendance reconciliation completed: %s", summary)
    except Exception:  # pragma: no cover - safeguard for background job
        session.rollback()
        logger.exception("attendance reconciliation job failed")
        raise
    finally:
        session.close()


def register_scheduler(app: FastAPI) -> None:
    """Attach APScheduler lifecycle hooks to the FastAPI app."""

    settings = get_settings()
    if not settings.scheduler_enabled:
        logger.info("attendance reconciliation scheduler disabled")
        return

    _scheduler.add_job(
        _execute_reconciliation,
        "cron",
        hour=settings.reconcile_hour,
        minute=settings.reconcile_minute,
        id="reconcile_attendance",
        misfire_grace_time=3600,
        replace_existing=True,
    )

    @app.on_event("startup")
    async def start_scheduler() -> None:
        if not _scheduler.running:
            _scheduler.start()
            logger.info("attendance reconciliation scheduler started")

    @app.on_event("shutdown")
    async def shutdown_scheduler() -> None:
        if _scheduler.running:
            _scheduler.shutdown(wait=False)
            logger.info("attendance reconciliation scheduler stopped")


def run_reconcile_once() -> dict[str, int]:
    """Run the reconciliation synchronously, for manual repair or testing."""

    session = SessionLocal()
    try:
        summary = run_reconciliation(session)
        session.commit()
        return summary
    finally:
        session.close()
