"""FastAPI entry point."""
import logging
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from quillpress.backend.errors import QuillpressError
from quillpress.backend.middleware.trace_id import TraceIdMiddleware
from quillpress.backend.routers import health, staff_auth, posts, emails, unsubscribe, email_preview
from quillpress.backend.utils.api_errors import error_envelope

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # shutdown


app = FastAPI(
    title="Quillpress",
    description="Publishing and newsletter delivery",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(TraceIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, tags=["System"])
app.include_router(staff_auth.router, prefix="/v1/admin/auth", tags=["Staff Auth"])
app.include_router(posts.router, prefix="/v1/admin/posts", tags=["Posts"])
app.include_router(emails.router, prefix="/v1/admin/emails", tags=["Emails"])
app.include_router(unsubscribe.router, tags=["Members"])
app.include_router(email_preview.router, tags=["Email Preview"])


def _trace_id(request: Request) -> str:
    return getattr(request.state, "trace_id", None) or str(uuid.uuid4())[:16]


@app.exception_handler(QuillpressError)
async def quillpress_exception_handler(request: Request, exc: QuillpressError):
    trace_id = _trace_id(request)
    if exc.status_code >= 500:
        logger.error("request_failed trace_id=%s path=%s code=%s error=%s", trace_id, request.url.path, exc.code, exc.message)
    payload = error_envelope(
        code=exc.code,
        message=exc.message,
        trace_id=trace_id,
        detail=exc.context,
        property=exc.property,
    )
    return JSONResponse(content=payload, status_code=exc.status_code)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail
    if not isinstance(detail, str):
        detail = str(detail) if detail else "Error"
    return JSONResponse(content={"detail": detail}, status_code=exc.status_code)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    trace_id = _trace_id(request)
    logger.exception("Unhandled exception trace_id=%s path=%s", trace_id, request.url.path)
    payload = error_envelope(
        code="internal_error",
        message="Internal server error",
        trace_id=trace_id,
    )
    return JSONResponse(content=payload, status_code=500)
