"""Bulk email transport: batch sending over SMTP and batch processing."""
from __future__ import annotations

import logging
import smtplib
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from quillpress.backend.config import get_settings
from quillpress.backend.errors import EmailDispatchError, NotFoundError
from quillpress.backend.models.email import Email, EmailBatch, EmailRecipient
from quillpress.backend.services.post_email_serializer import render_email_for_segment
from quillpress.backend.services.smtp_sender import build_message, smtp_config_from_settings, smtp_connection

logger = logging.getLogger(__name__)

BATCH_SIZE = get_settings().bulk_email_batch_size
ERROR_MAX_LENGTH = 2000


@dataclass
class SendResult:
    delivered: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


@dataclass
class FailedBatch:
    error: EmailDispatchError
    batch_id: str | None = None


def unsubscribe_url(member_uuid: str | None) -> str:
    base = (get_settings().public_base_url or "http://localhost:2368").rstrip("/")
    if not member_uuid:
        return f"{base}/unsubscribe/?preview=1"
    return f"{base}/unsubscribe/?uuid={member_uuid}"


def _replace(text: str, recipient: dict[str, Any]) -> str:
    if not text:
        return text
    return (
        text
        .replace("%%{uuid}%%", recipient.get("member_uuid") or "")
        .replace("%%{email}%%", recipient.get("member_email") or "")
        .replace("%%{name}%%", recipient.get("member_name") or "")
        .replace("%%{unsubscribe_url}%%", unsubscribe_url(recipient.get("member_uuid")))
    )


def send(email_data: dict[str, Any], recipients: list[dict[str, Any]]) -> SendResult | FailedBatch:
    """Send one batch. Connection level failures produce a FailedBatch."""
    result = SendResult()
    try:
        with smtp_connection(smtp_config_from_settings()) as server:
            for recipient in recipients:
                to_email = recipient.get("member_email")
                if not to_email:
                    continue
                msg = build_message(
                    from_address=email_data.get("from") or "",
                    reply_to=email_data.get("reply_to"),
                    to_email=to_email,
                    subject=email_data.get("subject") or "",
                    html=_replace(email_data.get("html") or "", recipient),
                    text=_replace(email_data.get("plaintext") or "", recipient),
                    headers={"List-Unsubscribe": f"<{unsubscribe_url(recipient.get('member_uuid'))}>"},
                )
                try:
                    server.send_message(msg)
                    result.delivered.append(to_email)
                except smtplib.SMTPRecipientsRefused:
                    logger.warning("bulk_email_recipient_refused email=%s", to_email)
                    result.failed.append(to_email)
    except Exception as e:
        return FailedBatch(error=EmailDispatchError(str(e)[:ERROR_MAX_LENGTH] or "send_failed", err=e))
    return result


def _batch_recipients(db: Session, batch_id: str) -> list[dict[str, Any]]:
    rows = db.execute(
        select(EmailRecipient).where(EmailRecipient.batch_id == batch_id).order_by(EmailRecipient.member_id.asc())
    ).scalars().all()
    return [
        {
            "id": r.id,
            "member_uuid": r.member_uuid,
            "member_email": r.member_email,
            "member_name": r.member_name,
        }
        for r in rows
    ]


def process_email(db: Session, email_id: str, options: dict[str, Any] | None = None) -> dict[str, int]:
    """Send every batch of an email that has not been submitted yet."""
    email = db.get(Email, email_id)
    if not email:
        raise NotFoundError(f"Email {email_id} not found")

    email_data = {
        "subject": email.subject,
        "html": email.html,
        "plaintext": email.plaintext,
        "from": email.from_address,
        "reply_to": email.reply_to,
        "track_opens": email.track_opens,
    }
    batches = db.execute(
        select(EmailBatch)
        .where(EmailBatch.email_id == email.id, EmailBatch.status != "submitted")
        .order_by(EmailBatch.created_at.asc(), EmailBatch.id.asc())
    ).scalars().all()

    counters = {"batches_sent": 0, "batches_failed": 0}
    first_failure: FailedBatch | None = None
    for batch in batches:
        data = render_email_for_segment(email_data, batch.member_segment) if batch.member_segment else email_data
        recipients = _batch_recipients(db, batch.id)
        t0 = time.perf_counter()
        outcome = send(data, recipients)
        now = datetime.utcnow()
        if isinstance(outcome, FailedBatch):
            outcome.batch_id = batch.id
            batch.status = "failed"
            batch.error = outcome.error.message[:ERROR_MAX_LENGTH]
            counters["batches_failed"] += 1
            first_failure = first_failure or outcome
            logger.warning("bulk_email_batch_failed email_id=%s batch_id=%s error=%s", email.id, batch.id, batch.error[:200])
        else:
            batch.status = "submitted"
            batch.error = None
            failed = set(outcome.failed)
            ok_ids = [r["id"] for r in recipients if r["member_email"] not in failed]
            failed_ids = [r["id"] for r in recipients if r["member_email"] in failed]
            if ok_ids:
                db.execute(update(EmailRecipient).where(EmailRecipient.id.in_(ok_ids)).values(processed_at=now))
            if failed_ids:
                db.execute(update(EmailRecipient).where(EmailRecipient.id.in_(failed_ids)).values(failed_at=now))
            counters["batches_sent"] += 1
            logger.debug(
                "bulk_email_batch_sent email_id=%s batch_id=%s recipients=%s (%sms)",
                email.id, batch.id, len(recipients), int((time.perf_counter() - t0) * 1000),
            )
        db.commit()

    if first_failure is not None:
        raise first_failure.error

    email.status = "submitted"
    email.error = None
    db.commit()
    return counters
