"""Member store: filtered listing, lookups and updates."""
from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from quillpress.backend.errors import NotFoundError
from quillpress.backend.models.member import Member
from quillpress.backend.services.member_filter import compile_member_filter
from quillpress.backend.services.query_options import QueryOptions

logger = logging.getLogger(__name__)

# Member-table columns only, so joined tables can never shadow e.g. `email`.
MEMBER_ROW_COLUMNS = (Member.id, Member.uuid, Member.email, Member.name, Member.status)


def to_json(member: Member) -> dict[str, Any]:
    return {
        "id": member.id,
        "uuid": member.uuid,
        "email": member.email,
        "name": member.name,
        "status": member.status,
        "subscribed": bool(member.subscribed),
        "labels": [{"name": lbl.name, "slug": lbl.slug} for lbl in member.labels],
        "created_at": member.created_at.isoformat() if member.created_at else None,
        "updated_at": member.updated_at.isoformat() if member.updated_at else None,
    }


class MembersService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def list(self, filter: str | None = None, limit: int = 15, options: QueryOptions | None = None) -> dict[str, Any]:
        options = options or QueryOptions()
        db = options.session(self.db)
        where = compile_member_filter(filter) if filter else None
        count_q = select(func.count(Member.id))
        page_q = select(Member).order_by(Member.created_at.desc(), Member.id.asc()).limit(limit)
        if where is not None:
            count_q = count_q.where(where)
            page_q = page_q.where(where)
        if options.lock_for_update:
            page_q = page_q.with_for_update()
        total = int(db.execute(count_q).scalar() or 0)
        members = db.execute(page_q).scalars().all() if limit else []
        return {
            "members": [to_json(m) for m in members],
            "meta": {"pagination": {"total": total, "limit": limit}},
        }

    def count(self, filter: str | None = None, options: QueryOptions | None = None) -> int:
        return self.list(filter=filter, limit=0, options=options)["meta"]["pagination"]["total"]

    def filtered_rows(self, filter: str, options: QueryOptions | None = None) -> list[dict[str, Any]]:
        """Distinct plain rows (id, uuid, email, name, status) in member id order."""
        options = options or QueryOptions()
        db = options.session(self.db)
        q = (
            select(*MEMBER_ROW_COLUMNS)
            .where(compile_member_filter(filter))
            .distinct()
            .order_by(Member.id.asc())
        )
        return [dict(row._mapping) for row in db.execute(q).all()]

    def get(self, *, email: str | None = None, uuid: str | None = None, options: QueryOptions | None = None) -> Member | None:
        options = options or QueryOptions()
        db = options.session(self.db)
        if email:
            q = select(Member).where(Member.email == email)
        elif uuid:
            q = select(Member).where(Member.uuid == uuid)
        else:
            return None
        if options.lock_for_update:
            q = q.with_for_update()
        return db.execute(q).scalar_one_or_none()

    def update(self, patch: dict[str, Any], *, id: str, options: QueryOptions | None = None) -> Member:
        options = options or QueryOptions()
        db = options.session(self.db)
        member = db.get(Member, id)
        if not member:
            raise NotFoundError("Member not found")
        for key in ("name", "subscribed", "status"):
            if key in patch:
                setattr(member, key, patch[key])
        if options.transaction is None:
            db.commit()
        else:
            db.flush()
        db.refresh(member)
        logger.info("member_updated member_id=%s fields=%s", member.id, ",".join(sorted(patch)))
        return member
