"""24-char hex object ids (timestamp prefix + random tail)."""
from __future__ import annotations

import secrets
import time


def new_object_id() -> str:
    return f"{int(time.time()):08x}{secrets.token_hex(8)}"
