"""Reacts to email record events by scheduling send jobs."""
from __future__ import annotations

import logging
from typing import Any, Callable, Iterable

from quillpress.backend.services.mega.events import DomainEvent, EMAIL_ADDED, EMAIL_EDITED

logger = logging.getLogger(__name__)

SEND_EMAIL_JOB = "quillpress.worker.jobs.send_email_job"


class EmailLifecycle:
    def __init__(
        self,
        *,
        schedule_analytics: Callable[[], Any],
        add_job: Callable[..., Any],
    ) -> None:
        self.schedule_analytics = schedule_analytics
        self.add_job = add_job

    def dispatch(self, events: Iterable[DomainEvent], *, importing: bool = False) -> None:
        handlers = {
            EMAIL_ADDED: self.on_email_added,
            EMAIL_EDITED: self.on_email_edited,
        }
        for event in events:
            handler = handlers.get(event.name)
            if handler:
                handler(event, importing=importing)

    def on_email_added(self, event: DomainEvent, *, importing: bool = False) -> None:
        # imported data must never trigger a send
        if importing:
            return
        if event.status != "pending":
            return
        self.schedule_analytics()
        logger.info("email_send_enqueued email_id=%s", event.email_id)
        self.add_job(job=SEND_EMAIL_JOB, data={"email_id": event.email_id}, offloaded=False)

    def on_email_edited(self, event: DomainEvent, *, importing: bool = False) -> None:
        retried = event.changed and event.status == "pending" and event.previous_status == "failed"
        if retried:
            self.on_email_added(event, importing=importing)
