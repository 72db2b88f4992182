"""Database connection."""
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.orm import Session, sessionmaker, DeclarativeBase
from sqlalchemy.pool import StaticPool

from quillpress.backend.config import get_settings


def get_database_url() -> str:
    s = get_settings()
    return (
        f"postgresql://{s.postgres_user}:{s.postgres_password}@"
        f"{s.postgres_host}:{s.postgres_port}/{s.postgres_db}"
    )


def get_engine():
    url = get_database_url()
    return create_engine(url, pool_pre_ping=True)


def get_test_engine():
    return create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )


class Base(DeclarativeBase):
    pass


@compiles(JSONB, "sqlite")
def _compile_jsonb_sqlite(_element, _compiler, **_kw):
    return "JSON"


def get_session_factory(engine=None):
    eng = engine or get_engine()
    return sessionmaker(autocommit=False, autoflush=False, bind=eng)


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """Commit on success, roll back on any error."""
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
