"""Audience resolution: recipient counts and rows for an email."""
from __future__ import annotations

import logging
import time
from typing import Any

from sqlalchemy.orm import Session

from quillpress.backend.models.email import Email
from quillpress.backend.services.members import MembersService
from quillpress.backend.services.query_options import QueryOptions
from quillpress.backend.services.mega.recipient_filter import transform_email_recipient_filter

logger = logging.getLogger(__name__)


def count_audience(db: Session, email_recipient_filter: str, options: QueryOptions | None = None) -> int:
    members_filter = transform_email_recipient_filter(email_recipient_filter, error_property="email_recipient_filter")
    t0 = time.perf_counter()
    logger.debug("count_audience: retrieving members count")
    total = MembersService(db).count(filter=members_filter, options=options)
    logger.debug(
        "count_audience: retrieved members count - %s members (%sms)",
        total, int((time.perf_counter() - t0) * 1000),
    )
    return total


def get_email_member_rows(
    db: Session,
    email: Email,
    member_segment: str | None = None,
    options: QueryOptions | None = None,
) -> list[dict[str, Any]]:
    """Member rows that should receive ``email``, optionally narrowed by a segment filter."""
    members_filter = transform_email_recipient_filter(email.recipient_filter, error_property="recipient_filter")
    if member_segment:
        members_filter = f"{members_filter}+{member_segment}"
    t0 = time.perf_counter()
    logger.debug("get_email_member_rows: retrieving members list")
    rows = MembersService(db).filtered_rows(members_filter, options=options)
    logger.debug(
        "get_email_member_rows: retrieved members list - %s members (%sms)",
        len(rows), int((time.perf_counter() - t0) * 1000),
    )
    return rows
