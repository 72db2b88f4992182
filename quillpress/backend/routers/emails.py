"""Staff endpoints for emails."""
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from quillpress.backend.auth import get_current_staff
from quillpress.backend.deps import get_db
from quillpress.backend.errors import NotFoundError, ValidationError
from quillpress.backend.models.email import Email
from quillpress.backend.services import mega
from quillpress.backend.services.mega.lifecycle import EmailLifecycle
from quillpress.backend.wiring import get_email_lifecycle

router = APIRouter()


def email_to_json(e: Email) -> dict:
    return {
        "id": e.id,
        "post_id": e.post_id,
        "status": e.status,
        "recipient_filter": e.recipient_filter,
        "error": e.error,
        "email_count": e.email_count,
        "delivered_count": e.delivered_count,
        "failed_count": e.failed_count,
        "subject": e.subject,
        "from": e.from_address,
        "reply_to": e.reply_to,
        "track_opens": bool(e.track_opens),
        "submitted_at": e.submitted_at.isoformat() if e.submitted_at else None,
        "created_at": e.created_at.isoformat() if e.created_at else None,
        "updated_at": e.updated_at.isoformat() if e.updated_at else None,
    }


@router.get("")
def list_emails(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    status: str | None = Query(None),
    db: Session = Depends(get_db),
    _: dict = Depends(get_current_staff),
):
    q = select(Email)
    if status:
        q = q.where(Email.status == status)
    q = q.order_by(Email.created_at.desc()).offset(skip).limit(limit)
    items = db.execute(q).scalars().all()
    return {"emails": [email_to_json(e) for e in items]}


@router.get("/{email_id}")
def get_email(
    email_id: str,
    db: Session = Depends(get_db),
    _: dict = Depends(get_current_staff),
):
    email = db.get(Email, email_id)
    if not email:
        raise NotFoundError("Email not found")
    return {"email": email_to_json(email)}


@router.post("/{email_id}/retry")
def retry_email(
    email_id: str,
    db: Session = Depends(get_db),
    lifecycle: EmailLifecycle = Depends(get_email_lifecycle),
    _: dict = Depends(get_current_staff),
):
    email = db.get(Email, email_id)
    if not email:
        raise NotFoundError("Email not found")
    if email.status != "failed":
        raise ValidationError("Only failed emails can be retried", property="status")
    email = mega.retry_failed_email(db, email, lifecycle=lifecycle)
    return {"email": email_to_json(email)}
