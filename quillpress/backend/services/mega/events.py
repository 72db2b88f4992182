"""Email record writes that report the domain events they cause."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from quillpress.backend.errors import NotFoundError
from quillpress.backend.models.email import Email
from quillpress.backend.services.query_options import QueryOptions
from quillpress.backend.utils.object_id import new_object_id

EMAIL_ADDED = "email.added"
EMAIL_EDITED = "email.edited"


@dataclass(frozen=True)
class DomainEvent:
    name: str
    email_id: str
    status: str
    previous_status: str | None = None
    changed: bool = False


@dataclass
class WriteResult:
    model: Email
    events: list[DomainEvent] = field(default_factory=list)


def _commit_or_flush(session: Session, options: QueryOptions) -> None:
    # a caller-owned transaction is committed by the caller
    if options.transaction is None:
        session.commit()
    else:
        session.flush()


def find_email_for_post(db: Session, post_id: str, options: QueryOptions | None = None) -> Email | None:
    options = options or QueryOptions()
    q = select(Email).where(Email.post_id == post_id)
    if options.lock_for_update:
        q = q.with_for_update()
    return options.session(db).execute(q).scalar_one_or_none()


def add_email_record(db: Session, data: dict[str, Any], options: QueryOptions | None = None) -> WriteResult:
    options = options or QueryOptions()
    session = options.session(db)
    email = Email(id=new_object_id(), **data)
    session.add(email)
    _commit_or_flush(session, options)
    session.refresh(email)
    return WriteResult(email, [DomainEvent(EMAIL_ADDED, email.id, email.status, changed=True)])


def edit_email_record(db: Session, email_id: str, patch: dict[str, Any], options: QueryOptions | None = None) -> WriteResult:
    options = options or QueryOptions()
    session = options.session(db)
    q = select(Email).where(Email.id == email_id)
    if options.lock_for_update:
        q = q.with_for_update()
    email = session.execute(q).scalar_one_or_none()
    if not email:
        raise NotFoundError(f"Email {email_id} not found")
    previous_status = email.status
    changed = False
    for key, value in patch.items():
        if getattr(email, key) != value:
            setattr(email, key, value)
            changed = True
    _commit_or_flush(session, options)
    session.refresh(email)
    event = DomainEvent(EMAIL_EDITED, email.id, email.status, previous_status=previous_status, changed=changed)
    return WriteResult(email, [event])
