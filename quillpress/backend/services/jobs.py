"""Job runner on top of RQ."""
from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any

from quillpress.backend.config import get_settings

logger = logging.getLogger(__name__)


class JobsService:
    def __init__(self, connection=None) -> None:
        self._connection = connection

    def redis(self):
        if self._connection is None:
            from redis import Redis

            s = get_settings()
            self._connection = Redis(host=s.redis_host, port=s.redis_port)
        return self._connection

    def _queue(self, name: str):
        from rq import Queue

        return Queue(name, connection=self.redis())

    def add_job(self, *, job: str, data: dict[str, Any] | None = None, offloaded: bool = True) -> None:
        """Enqueue ``job`` (dotted path) with ``data`` as keyword arguments.

        Non-offloaded jobs go to the front of the email queue to run promptly.
        """
        s = get_settings()
        if offloaded:
            q = self._queue(s.rq_default_queue_name or "default")
            q.enqueue(job, kwargs=data or {})
        else:
            q = self._queue(s.rq_email_queue_name or "email")
            q.enqueue(
                job,
                kwargs=data or {},
                at_front=True,
                job_timeout=max(300, int(s.email_job_timeout_seconds or 3600)),
            )
        logger.debug("job_enqueued job=%s offloaded=%s", job, offloaded)

    def enqueue_in(self, delay: timedelta, job: str, data: dict[str, Any] | None = None) -> None:
        s = get_settings()
        q = self._queue(s.rq_default_queue_name or "default")
        q.enqueue_in(delay, job, kwargs=data or {})
