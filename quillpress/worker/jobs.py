"""RQ jobs."""
import logging

logger = logging.getLogger(__name__)


def send_email_job(email_id: str, options: dict | None = None) -> bool:
    """Create batches for an email and submit them to the transport."""
    from quillpress.backend.database import get_session_factory
    from quillpress.backend.services.mega import send_email_job as run_send_email_job

    factory = get_session_factory()
    with factory() as db:
        try:
            run_send_email_job(db, email_id, options)
        except Exception:
            logger.exception("send_email_job_failed email_id=%s", email_id)
            raise
    return True


def fetch_email_analytics() -> int:
    """Aggregate delivery counters and reschedule the next run."""
    from quillpress.backend.database import get_session_factory
    from quillpress.backend.services import email_analytics

    factory = get_session_factory()
    updated = 0
    with factory() as db:
        try:
            updated = email_analytics.aggregate_email_stats(db)
        except Exception:
            logger.exception("fetch_email_analytics_failed")
            db.rollback()
    try:
        email_analytics.reschedule()
    except Exception:
        logger.exception("fetch_email_analytics_reschedule_failed")
    return updated
