"""Composition root: the single email lifecycle used by the app."""
from functools import lru_cache

from quillpress.backend.services import email_analytics
from quillpress.backend.services.jobs import JobsService
from quillpress.backend.services.mega.lifecycle import EmailLifecycle


def build_email_lifecycle(jobs: JobsService | None = None) -> EmailLifecycle:
    jobs = jobs or JobsService()
    return EmailLifecycle(
        schedule_analytics=lambda: email_analytics.schedule_recurring_jobs(jobs),
        add_job=jobs.add_job,
    )


@lru_cache
def get_email_lifecycle() -> EmailLifecycle:
    return build_email_lifecycle()
