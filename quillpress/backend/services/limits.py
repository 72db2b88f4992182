"""Host limits: account-level caps on members and email volume."""
from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from quillpress.backend.errors import HostLimitError
from quillpress.backend.models.email import Email
from quillpress.backend.models.host_limit import HostLimit
from quillpress.backend.models.member import Member

logger = logging.getLogger(__name__)

_DISABLED_MESSAGE = "Email sending has been disabled for this site."
_OVER_LIMIT_MESSAGE = "This action would exceed the {resource} limit on your current plan."


def _month_range(now: datetime | None = None) -> tuple[datetime, datetime]:
    now = now or datetime.utcnow()
    start = datetime(now.year, now.month, 1)
    if now.month == 12:
        end = datetime(now.year + 1, 1, 1)
    else:
        end = datetime(now.year, now.month + 1, 1)
    return start, end


def set_host_limit(
    db: Session,
    resource: str,
    *,
    max_value: int | None = None,
    disabled: bool = False,
    error_message: str | None = None,
) -> HostLimit:
    row = db.get(HostLimit, resource)
    if not row:
        row = HostLimit(resource=resource)
        db.add(row)
    row.max_value = max_value
    row.disabled = disabled
    row.error_message = error_message
    row.updated_at = datetime.utcnow()
    db.commit()
    return row


class LimitService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def _limit(self, resource: str) -> HostLimit | None:
        return self.db.get(HostLimit, resource)

    def is_limited(self, resource: str) -> bool:
        row = self._limit(resource)
        return bool(row and (row.disabled or row.max_value is not None))

    def current_count(self, resource: str) -> int:
        if resource == "members":
            return int(self.db.execute(select(func.count(Member.id))).scalar() or 0)
        if resource == "emails":
            start, end = _month_range()
            q = select(func.coalesce(func.sum(Email.email_count), 0)).where(
                Email.created_at >= start,
                Email.created_at < end,
            )
            return int(self.db.execute(q).scalar() or 0)
        raise ValueError(f"unknown limit resource: {resource}")

    def _raise(self, row: HostLimit, default: str) -> None:
        raise HostLimitError(row.error_message or default, context=row.resource)

    def error_if_would_go_over_limit(self, resource: str, added_count: int = 1) -> None:
        row = self._limit(resource)
        if not row:
            return
        if row.disabled:
            self._raise(row, _DISABLED_MESSAGE)
        if row.max_value is None:
            return
        current = self.current_count(resource)
        if current + added_count > row.max_value:
            logger.info(
                "host_limit_exceeded resource=%s current=%s added=%s max=%s",
                resource, current, added_count, row.max_value,
            )
            self._raise(row, _OVER_LIMIT_MESSAGE.format(resource=resource))

    def error_if_is_over_limit(self, resource: str) -> None:
        row = self._limit(resource)
        if not row:
            return
        if row.disabled:
            self._raise(row, _DISABLED_MESSAGE)
        if row.max_value is None:
            return
        current = self.current_count(resource)
        if current > row.max_value:
            logger.info("host_limit_over resource=%s current=%s max=%s", resource, current, row.max_value)
            self._raise(row, _OVER_LIMIT_MESSAGE.format(resource=resource))
