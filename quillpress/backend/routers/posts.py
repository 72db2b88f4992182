"""Staff endpoints for posts: create, edit, publish, email preview."""
import logging
import re
from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import select
from sqlalchemy.orm import Session

from quillpress.backend.auth import get_current_staff
from quillpress.backend.deps import get_db
from quillpress.backend.errors import NotFoundError, ValidationError
from quillpress.backend.models.post import Post
from quillpress.backend.routers.emails import email_to_json
from quillpress.backend.services import mega
from quillpress.backend.services.mega.lifecycle import EmailLifecycle
from quillpress.backend.services.members import MembersService
from quillpress.backend.services.post_email_serializer import VALID_API_VERSIONS
from quillpress.backend.wiring import get_email_lifecycle

router = APIRouter()
logger = logging.getLogger(__name__)

_BASIC_VISIBILITY = ("public", "members", "paid")


class PostCreate(BaseModel):
    title: str
    slug: str | None = None
    html: str | None = None
    feature_image: str | None = None
    visibility: str = "public"
    email_recipient_filter: str = "none"


class PostUpdate(BaseModel):
    title: str | None = None
    html: str | None = None
    feature_image: str | None = None
    visibility: str | None = None
    email_recipient_filter: str | None = None


class PostPublish(BaseModel):
    email_recipient_filter: str | None = None
    api_version: str = "v4"


class EmailPreviewBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    emails: list[str] = Field(min_length=1)
    member_segment: str | None = Field(None, alias="memberSegment")
    api_version: str = "v4"


def post_to_json(p: Post) -> dict:
    return {
        "id": p.id,
        "uuid": p.uuid,
        "title": p.title,
        "slug": p.slug,
        "html": p.html,
        "feature_image": p.feature_image,
        "status": p.status,
        "visibility": p.visibility,
        "email_recipient_filter": p.email_recipient_filter,
        "published_at": p.published_at.isoformat() if p.published_at else None,
        "created_at": p.created_at.isoformat() if p.created_at else None,
        "updated_at": p.updated_at.isoformat() if p.updated_at else None,
    }


def validate_visibility(db: Session, visibility: str | None) -> None:
    """Anything but the basic values must be a valid member filter."""
    if not visibility or visibility in _BASIC_VISIBILITY:
        return
    try:
        MembersService(db).list(filter=visibility, limit=1)
    except ValidationError:
        raise ValidationError("Invalid filter in visibility property", property="visibility") from None


def _unique_slug(db: Session, value: str) -> str:
    base = re.sub(r"[^a-z0-9]+", "-", (value or "").lower()).strip("-")[:180] or "untitled"
    slug = base
    n = 2
    while db.execute(select(Post.id).where(Post.slug == slug)).first():
        slug = f"{base}-{n}"
        n += 1
    return slug


def _get_post(db: Session, post_id: str) -> Post:
    post = db.get(Post, post_id)
    if not post:
        raise NotFoundError("Post not found")
    return post


@router.post("")
def create_post(
    data: PostCreate,
    db: Session = Depends(get_db),
    _: dict = Depends(get_current_staff),
):
    validate_visibility(db, data.visibility)
    post = Post(
        title=data.title,
        slug=_unique_slug(db, data.slug or data.title),
        html=data.html,
        feature_image=data.feature_image,
        visibility=data.visibility,
        email_recipient_filter=data.email_recipient_filter,
    )
    db.add(post)
    db.commit()
    db.refresh(post)
    return {"post": post_to_json(post)}


@router.put("/{post_id}")
def edit_post(
    post_id: str,
    data: PostUpdate,
    db: Session = Depends(get_db),
    _: dict = Depends(get_current_staff),
):
    post = _get_post(db, post_id)
    validate_visibility(db, data.visibility)
    for key, value in data.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(post, key, value)
    db.commit()
    db.refresh(post)
    return {"post": post_to_json(post)}


@router.post("/{post_id}/publish")
def publish_post(
    post_id: str,
    data: PostPublish,
    db: Session = Depends(get_db),
    lifecycle: EmailLifecycle = Depends(get_email_lifecycle),
    _: dict = Depends(get_current_staff),
):
    post = _get_post(db, post_id)
    if data.api_version not in VALID_API_VERSIONS:
        raise ValidationError(f"Unsupported api version {data.api_version!r}", property="api_version")
    if data.email_recipient_filter is not None:
        post.email_recipient_filter = data.email_recipient_filter
    if post.status != "published":
        post.status = "published"
        post.published_at = datetime.utcnow()
    db.commit()
    db.refresh(post)

    email = None
    if post.email_recipient_filter and post.email_recipient_filter != "none":
        email = mega.add_email(db, post, lifecycle=lifecycle, api_version=data.api_version)
    logger.info("post_published post_id=%s email_id=%s", post.id, email.id if email else None)
    return {"post": post_to_json(post), "email": email_to_json(email) if email else None}


@router.post("/{post_id}/email_preview")
def send_email_preview(
    post_id: str,
    data: EmailPreviewBody,
    db: Session = Depends(get_db),
    _: dict = Depends(get_current_staff),
):
    post = _get_post(db, post_id)
    result = mega.send_test_email(db, post, data.emails, data.api_version, data.member_segment)
    return {"delivered": result.delivered, "failed": result.failed}
