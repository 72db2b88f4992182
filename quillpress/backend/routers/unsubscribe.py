"""Public unsubscribe endpoint."""
import html

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from sqlalchemy.orm import Session

from quillpress.backend.deps import get_db
from quillpress.backend.services import mega

router = APIRouter()


@router.get("/unsubscribe/", response_class=HTMLResponse)
def unsubscribe(request: Request, db: Session = Depends(get_db)):
    member = mega.handle_unsubscribe_request(db, str(request.url))
    return HTMLResponse(
        "<!doctype html><html><body><h1>Unsubscribed</h1>"
        f"<p>{html.escape(member['email'])} will no longer receive emails.</p></body></html>"
    )
