"""
Scheduled jobs
Uses APScheduler for the daily loan default sweep
"""

import logging
from typing import Optional
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from tradewiser.core.config import settings
from tradewiser.db.session import SessionLocal
from tradewiser.services.lending import mark_defaulted_loans

logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler: Optional[AsyncIOScheduler] = None


async def loan_default_sweep() -> list:
    """Run the default sweep in its own session"""
    try:
        async with SessionLocal() as db:
            defaulted = await mark_defaulted_loans(db)
        if not defaulted:
            logger.info("✅ Loan default sweep: nothing overdue")
        return defaulted
    except Exception as e:
        logger.error(f"❌ Loan default sweep failed: {str(e)}")
        return []


def init_scheduler():
    """Create and start the scheduler"""
    global scheduler

    if not settings.LOAN_SWEEP_ENABLED:
        logger.info("⏰ Loan default sweep disabled")
        return

    scheduler = AsyncIOScheduler()

    scheduler.add_job(
        loan_default_sweep,
        trigger=CronTrigger(
            hour=settings.LOAN_SWEEP_HOUR,
            minute=settings.LOAN_SWEEP_MINUTE
        ),
        id="loan_default_sweep",
        name="Loan default sweep",
        replace_existing=True
    )

    scheduler.start()
    logger.info(f"⏰ Scheduler started - loan default sweep daily at {settings.LOAN_SWEEP_HOUR:02d}:{settings.LOAN_SWEEP_MINUTE:02d}")


def shutdown_scheduler():
    global scheduler
    if scheduler:
        scheduler.shutdown()
        scheduler = None
        logger.info("⏰ Scheduler stopped")


def get_scheduler_status() -> dict:
    if not scheduler:
        return {
            "enabled": settings.LOAN_SWEEP_ENABLED,
            "running": False,
            "jobs": []
        }

    jobs = []
    for job in scheduler.get_jobs():
        jobs.append({
            "id": job.id,
            "name": job.name,
            "next_run_time": job.next_run_time.isoformat() if job.next_run_time else None
        })

    return {
        "enabled": settings.LOAN_SWEEP_ENABLED,
        "running": scheduler.running,
        "jobs": jobs
    }
