"""Batch and recipient storage for an email."""
from __future__ import annotations

import logging
import time
from typing import Any, Iterator, Sequence

from sqlalchemy import insert
from sqlalchemy.orm import Session

from quillpress.backend.config import get_settings
from quillpress.backend.database import transaction
from quillpress.backend.models.email import Email, EmailBatch, EmailRecipient
from quillpress.backend.services import bulk_email
from quillpress.backend.services.query_options import QueryOptions
from quillpress.backend.services.mega.audience import get_email_member_rows
from quillpress.backend.services.mega.segments import UNSEGMENTED, partition_members_by_segment
from quillpress.backend.services.post_email_serializer import get_segments_from_html
from quillpress.backend.utils.object_id import new_object_id

logger = logging.getLogger(__name__)


def chunk(rows: Sequence[Any], size: int) -> Iterator[Sequence[Any]]:
    if size < 1:
        raise ValueError("batch size must be positive")
    for i in range(0, len(rows), size):
        yield rows[i:i + size]


def _recipient_data(email: Email, batch_id: str, member_rows: Sequence[dict[str, Any]]) -> list[dict[str, Any]]:
    out: list[dict[str, Any]] = []
    for row in member_rows:
        if not row.get("id") or not row.get("uuid") or not row.get("email"):
            logger.warning(
                "Member row not included as email recipient due to missing data - id: %s, uuid: %s, email: %s",
                row.get("id"), row.get("uuid"), row.get("email"),
            )
            continue
        out.append({
            "id": new_object_id(),
            "email_id": email.id,
            "member_id": row["id"],
            "batch_id": batch_id,
            "member_uuid": row["uuid"],
            "member_email": row["email"],
            "member_name": row.get("name"),
        })
    return out


def _insert_batch(
    db: Session,
    email: Email,
    member_rows: Sequence[dict[str, Any]],
    member_segment: str | None,
) -> str:
    batch = EmailBatch(id=new_object_id(), email_id=email.id, member_segment=member_segment)
    db.add(batch)
    db.flush()
    recipient_data = _recipient_data(email, batch.id, member_rows)
    if recipient_data:
        db.execute(insert(EmailRecipient), recipient_data)
    return batch.id


def store_recipient_batch(
    db: Session,
    email: Email,
    member_rows: Sequence[dict[str, Any]],
    member_segment: str | None = None,
    options: QueryOptions | None = None,
) -> str:
    """Insert one batch and its recipients atomically; returns the batch id.

    Inside a caller-supplied transaction the rows are only flushed.
    """
    options = options or QueryOptions()
    if options.transaction is not None:
        batch_id = _insert_batch(options.transaction, email, member_rows, member_segment)
        options.transaction.flush()
        return batch_id
    with transaction(db):
        batch_id = _insert_batch(db, email, member_rows, member_segment)
    return batch_id


def create_email_batches(
    db: Session,
    email: Email,
    member_rows: Sequence[dict[str, Any]],
    member_segment: str | None = None,
    options: QueryOptions | None = None,
) -> list[str]:
    """Chunk rows by the transport batch size and store each chunk sequentially."""
    options = options or QueryOptions()
    logger.debug("create_email_batches: storing recipient list")
    t0 = time.perf_counter()
    batch_ids = [
        store_recipient_batch(db, email, rows, member_segment, options)
        for rows in chunk(list(member_rows), bulk_email.BATCH_SIZE)
    ]
    logger.debug(
        "create_email_batches: stored recipient list (%sms)",
        int((time.perf_counter() - t0) * 1000),
    )
    return batch_ids


def create_segmented_email_batches(db: Session, email: Email, options: QueryOptions | None = None) -> list[str]:
    """Create batches for every recipient, split by the segments used in the email html."""
    member_rows = get_email_member_rows(db, email, options=options)
    if not member_rows:
        return []

    if get_settings().labs_email_card_segments:
        segments = get_segments_from_html(email.html or "")
        if segments:
            batch_ids: list[str] = []
            partitions = partition_members_by_segment(member_rows, segments)
            for segment, rows in partitions.items():
                batch_ids.extend(create_email_batches(
                    db,
                    email,
                    rows,
                    member_segment=None if segment == UNSEGMENTED else segment,
                    options=options,
                ))
            return batch_ids

    return create_email_batches(db, email, member_rows, options=options)
