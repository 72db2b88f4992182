"""Request trace_id: stored on the ASGI scope and echoed as X-Trace-Id."""
import uuid

SCOPE_KEY = "trace_id"
HEADER = b"x-trace-id"


def ensure_trace_id(scope: dict) -> str:
    """Get or set trace_id on ASGI scope. Returns the same trace_id for the request lifecycle."""
    tid = scope.get(SCOPE_KEY)
    if tid and isinstance(tid, str):
        return tid
    tid = str(uuid.uuid4())[:16]
    scope[SCOPE_KEY] = tid
    return tid


class TraceIdMiddleware:
    def __init__(self, app) -> None:
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return
        trace_id = ensure_trace_id(scope)
        scope.setdefault("state", {})["trace_id"] = trace_id

        async def send_with_trace(message):
            if message["type"] == "http.response.start":
                headers = list(message.get("headers") or [])
                headers.append((HEADER, trace_id.encode()))
                message["headers"] = headers
            await send(message)

        await self.app(scope, receive, send_with_trace)
