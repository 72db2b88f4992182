"""Email record writes and the events they report."""
import pytest
from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from quillpress.backend.database import Base, get_test_engine
from quillpress.backend.models.email import Email
from quillpress.backend.models.post import Post
from quillpress.backend.services.mega.events import (
    EMAIL_ADDED,
    EMAIL_EDITED,
    add_email_record,
    edit_email_record,
)
from quillpress.backend.services.query_options import QueryOptions


@pytest.fixture
def test_db_session():
    engine = get_test_engine()
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def post(test_db_session):
    p = Post(title="P", slug="p")
    test_db_session.add(p)
    test_db_session.commit()
    return p


@pytest.mark.timeout(10)
def test_add_reports_added_event(test_db_session, post):
    result = add_email_record(test_db_session, {"post_id": post.id, "status": "pending", "recipient_filter": "all"})
    assert [e.name for e in result.events] == [EMAIL_ADDED]
    assert result.events[0].email_id == result.model.id
    test_db_session.rollback()
    assert test_db_session.get(Email, result.model.id) is not None


@pytest.mark.timeout(10)
def test_add_inside_caller_transaction_is_only_flushed(test_db_session, post):
    options = QueryOptions(transaction=test_db_session)
    result = add_email_record(test_db_session, {"post_id": post.id, "status": "pending", "recipient_filter": "all"}, options)
    assert result.model.id

    test_db_session.rollback()

    assert test_db_session.execute(select(Email)).scalars().all() == []


@pytest.mark.timeout(10)
def test_edit_inside_caller_transaction_is_only_flushed(test_db_session, post):
    email = add_email_record(test_db_session, {"post_id": post.id, "status": "failed", "recipient_filter": "all"}).model
    email_id = email.id

    result = edit_email_record(test_db_session, email_id, {"status": "pending"}, QueryOptions(transaction=test_db_session))
    event = result.events[0]
    assert (event.name, event.previous_status, event.status, event.changed) == (EMAIL_EDITED, "failed", "pending", True)

    test_db_session.rollback()

    assert test_db_session.get(Email, email_id).status == "failed"


@pytest.mark.timeout(10)
def test_noop_edit_reports_unchanged(test_db_session, post):
    email = add_email_record(test_db_session, {"post_id": post.id, "status": "pending", "recipient_filter": "all"}).model
    event = edit_email_record(test_db_session, email.id, {"status": "pending"}).events[0]
    assert event.changed is False
