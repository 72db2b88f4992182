"""Public email view of a post: /email/{uuid}/ (prefix is fixed)."""
from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse
from sqlalchemy import select
from sqlalchemy.orm import Session

from quillpress.backend.deps import get_db
from quillpress.backend.errors import NotFoundError
from quillpress.backend.models.email import Email
from quillpress.backend.models.post import Post
from quillpress.backend.services.mega.mega import get_email_data

router = APIRouter()


@router.get("/email/{uuid}/", response_class=HTMLResponse)
def email_post(uuid: str, db: Session = Depends(get_db)):
    post = db.execute(select(Post).where(Post.uuid == uuid)).scalar_one_or_none()
    if not post:
        raise NotFoundError("Post not found")
    email = db.execute(select(Email).where(Email.post_id == post.id)).scalar_one_or_none()
    body = email.html if email and email.html else get_email_data(db, post)["html"]
    return HTMLResponse(body.replace("%%{unsubscribe_url}%%", "#"))
