"""Email job orchestration: creating, retrying, test-sending and dispatching emails."""
from __future__ import annotations

import logging
import re
import time
from datetime import datetime
from typing import Any
from urllib.parse import parse_qs, urlparse

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from quillpress.backend.config import get_settings
from quillpress.backend.errors import (
    BadRequestError,
    EmailDispatchError,
    HostLimitError,
    InternalServerError,
)
from quillpress.backend.models.email import Email, EmailBatch
from quillpress.backend.models.post import Post
from quillpress.backend.services import bulk_email, post_email_serializer
from quillpress.backend.services.limits import LimitService
from quillpress.backend.services.members import MembersService, to_json
from quillpress.backend.services.query_options import QueryOptions
from quillpress.backend.services.site_settings import get_site_setting
from quillpress.backend.services.mega.audience import count_audience
from quillpress.backend.services.mega.batches import create_segmented_email_batches
from quillpress.backend.services.mega.events import add_email_record, edit_email_record, find_email_for_post
from quillpress.backend.services.mega.lifecycle import EmailLifecycle
from quillpress.backend.services.mega.segments import parse_segment

logger = logging.getLogger(__name__)

ERROR_MAX_LENGTH = 2000
EMAIL_SENDING_DISABLED = (
    "Email sending is temporarily disabled because your account is currently in review. "
    "You should have an email about this from us already, but you can also reach us any time "
    "at {support_address}."
)
UNSUBSCRIBE_FAILED = "Unsubscribe failed! Could not find member"
_LOCAL_FROM_RE = re.compile(r"@(localhost|[^@]+\.local)$")


def get_from_address(db: Session) -> str:
    from_address = get_settings().email_from_address
    if _LOCAL_FROM_RE.search(from_address):
        local_address = "localhost@example.com"
        logger.warning("Rewriting bulk email from address %s to %s", from_address, local_address)
        from_address = local_address
    site_title = (get_site_setting(db, "title") or "").replace('"', '\\"')
    return f'"{site_title}"<{from_address}>' if site_title else from_address


def get_reply_to_address(db: Session) -> str:
    s = get_settings()
    if get_site_setting(db, "members_reply_address") == "support":
        return s.email_support_address
    return s.email_from_address


def get_email_data(db: Session, post: Post, api_version: str = "v4") -> dict[str, Any]:
    data = post_email_serializer.serialize(post, api_version, site_title=get_site_setting(db, "title") or "")
    return {
        "subject": data["subject"],
        "html": data["html"],
        "plaintext": data["plaintext"],
        "from": get_from_address(db),
        "reply_to": get_reply_to_address(db),
    }


def send_test_email(
    db: Session,
    post: Post,
    to_emails: list[str],
    api_version: str = "v4",
    member_segment: str | None = None,
) -> bulk_email.SendResult:
    email_data = get_email_data(db, post, api_version)
    email_data["subject"] = f"[Test] {email_data['subject']}"

    if get_settings().labs_email_card_segments and member_segment:
        email_data = post_email_serializer.render_email_for_segment(email_data, parse_segment(member_segment).value)

    # known members get their own values in replacements
    members = MembersService(db)
    recipients: list[dict[str, Any]] = []
    for address in to_emails:
        member = members.get(email=address)
        if member:
            recipients.append({
                "member_uuid": member.uuid,
                "member_email": member.email,
                "member_name": member.name,
            })
        else:
            recipients.append({"member_email": address})

    email_data["track_opens"] = bool(get_site_setting(db, "email_track_opens"))

    response = bulk_email.send(email_data, recipients)
    if isinstance(response, bulk_email.FailedBatch):
        raise response.error
    return response


def add_email(
    db: Session,
    post: Post,
    *,
    lifecycle: EmailLifecycle,
    api_version: str = "v4",
    options: QueryOptions | None = None,
    importing: bool = False,
) -> Email | None:
    """Create the single email record for a post. Returns None when nobody would receive it."""
    options = options or QueryOptions()
    limits = LimitService(db)
    if limits.is_limited("emails"):
        limits.error_if_would_go_over_limit("emails")

    if get_site_setting(db, "email_verification_required") is True:
        raise HostLimitError(EMAIL_SENDING_DISABLED.format(support_address=get_settings().email_support_address))

    email_recipient_filter = post.email_recipient_filter
    members_count = count_audience(db, email_recipient_filter, options)
    if members_count == 0:
        return None

    if limits.is_limited("emails"):
        limits.error_if_would_go_over_limit("emails", added_count=members_count)

    existing = find_email_for_post(db, post.id, options)
    if existing:
        return existing

    # snapshot rendered without member data for later display
    email_data = get_email_data(db, post, api_version)
    result = add_email_record(db, {
        "post_id": post.id,
        "status": "pending",
        "email_count": members_count,
        "subject": email_data["subject"],
        "from_address": email_data["from"],
        "reply_to": email_data["reply_to"],
        "html": email_data["html"],
        "plaintext": email_data["plaintext"],
        "submitted_at": datetime.utcnow(),
        "track_opens": bool(get_site_setting(db, "email_track_opens")),
        "recipient_filter": email_recipient_filter,
    }, options)
    logger.info("email_created email_id=%s post_id=%s email_count=%s", result.model.id, post.id, members_count)
    lifecycle.dispatch(result.events, importing=importing)
    return result.model


def retry_failed_email(db: Session, email: Email, *, lifecycle: EmailLifecycle) -> Email:
    result = edit_email_record(db, email.id, {"status": "pending"})
    lifecycle.dispatch(result.events)
    return result.model


def handle_unsubscribe_request(db: Session, request_url: str | None) -> dict[str, Any]:
    """Unsubscribe the member whose uuid is in the ``uuid`` query parameter."""
    if not request_url:
        raise BadRequestError(UNSUBSCRIBE_FAILED)

    query = parse_qs(urlparse(request_url).query)
    member_uuid = (query.get("uuid") or [None])[0]
    if not member_uuid:
        raise BadRequestError("Unsubscribe preview" if query.get("preview") else UNSUBSCRIBE_FAILED)

    members = MembersService(db)
    member = members.get(uuid=member_uuid)
    if not member:
        raise BadRequestError(UNSUBSCRIBE_FAILED)

    try:
        updated = members.update({"subscribed": False}, id=member.id)
        return to_json(updated)
    except Exception as e:
        raise InternalServerError("Failed to unsubscribe member", err=e) from e


def count_email_batches(db: Session, email_id: str) -> int:
    q = select(func.count(EmailBatch.id)).where(EmailBatch.email_id == email_id)
    return int(db.execute(q).scalar() or 0)


def _mark_failed(db: Session, email_id: str, error: BaseException) -> None:
    message = getattr(error, "message", None) or str(error) or error.__class__.__name__
    email = db.get(Email, email_id)
    if not email:
        return
    email.status = "failed"
    email.error = message[:ERROR_MAX_LENGTH]
    db.commit()


def send_email_job(db: Session, email_id: str, options: dict[str, Any] | None = None) -> None:
    """Create batches (unless already present) and hand the email to the transport."""
    email = db.get(Email, email_id)
    if not email:
        logger.warning("send_email_job: email not found email_id=%s", email_id)
        return

    start_send = None
    try:
        # limits apply to retries too
        limits = LimitService(db)
        if limits.is_limited("members"):
            limits.error_if_is_over_limit("members")
        # this email is already part of the monthly email count
        if limits.is_limited("emails"):
            limits.error_if_is_over_limit("emails")

        if count_email_batches(db, email.id) == 0:
            batch_ids = create_segmented_email_batches(db, email)
            if not batch_ids:
                logger.info("send_email_job: no recipients left email_id=%s", email.id)
                return

        logger.debug("send_email_job: sending email")
        start_send = time.perf_counter()
        bulk_email.process_email(db, email.id, options)
        logger.debug("send_email_job: sent email (%sms)", int((time.perf_counter() - start_send) * 1000))
    except Exception as e:
        if start_send is not None:
            logger.debug("send_email_job: send email failed (%sms)", int((time.perf_counter() - start_send) * 1000))
        db.rollback()
        _mark_failed(db, email_id, e)
        raise EmailDispatchError(err=e, context="The email service was unable to send an email batch.") from e
