"""Typed options passed through persistence helpers."""
from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.orm import Session


@dataclass(frozen=True)
class QueryOptions:
    transaction: Session | None = None
    lock_for_update: bool = False

    def session(self, default: Session) -> Session:
        return self.transaction if self.transaction is not None else default
