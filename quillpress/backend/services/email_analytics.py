"""Email delivery analytics: recurring aggregation of recipient state."""
from __future__ import annotations

import logging
from datetime import timedelta

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from quillpress.backend.config import get_settings
from quillpress.backend.models.email import Email, EmailRecipient
from quillpress.backend.services.jobs import JobsService

logger = logging.getLogger(__name__)

FETCH_ANALYTICS_JOB = "quillpress.worker.jobs.fetch_email_analytics"
_SCHEDULE_LOCK_KEY = "email_analytics:scheduled"
_scheduled = False


def _interval() -> int:
    return max(60, int(get_settings().email_analytics_interval_seconds or 300))


def schedule_recurring_jobs(jobs: JobsService | None = None) -> bool:
    """Schedule the analytics job once per process and once per interval across processes."""
    global _scheduled
    if _scheduled:
        return False
    jobs = jobs or JobsService()
    interval = _interval()
    try:
        if not jobs.redis().set(_SCHEDULE_LOCK_KEY, "1", nx=True, ex=interval * 2):
            _scheduled = True
            return False
        jobs.enqueue_in(timedelta(seconds=interval), FETCH_ANALYTICS_JOB)
    except Exception:
        logger.exception("email_analytics_schedule_failed")
        return False
    _scheduled = True
    return True


def aggregate_email_stats(db: Session, limit: int = 100) -> int:
    """Roll recipient delivery state up onto the latest emails; returns emails updated."""
    emails = db.execute(
        select(Email).where(Email.status.in_(("submitted", "failed"))).order_by(Email.created_at.desc()).limit(limit)
    ).scalars().all()
    updated = 0
    for email in emails:
        delivered, failed = db.execute(
            select(
                func.count(EmailRecipient.processed_at),
                func.count(EmailRecipient.failed_at),
            ).where(EmailRecipient.email_id == email.id)
        ).one()
        delivered, failed = int(delivered or 0), int(failed or 0)
        if (email.delivered_count, email.failed_count) != (delivered, failed):
            email.delivered_count = delivered
            email.failed_count = failed
            updated += 1
    db.commit()
    logger.debug("email_analytics_aggregated emails=%s updated=%s", len(emails), updated)
    return updated


def reschedule(jobs: JobsService | None = None) -> None:
    """Keep the recurring chain alive; called by the analytics job itself."""
    jobs = jobs or JobsService()
    interval = _interval()
    jobs.redis().set(_SCHEDULE_LOCK_KEY, "1", ex=interval * 2)
    jobs.enqueue_in(timedelta(seconds=interval), FETCH_ANALYTICS_JOB)
