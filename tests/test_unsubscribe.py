"""Unsubscribe link handling."""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from quillpress.backend.main import app
from quillpress.backend.deps import get_db
from quillpress.backend.database import Base, get_test_engine
from quillpress.backend.errors import BadRequestError, InternalServerError
from quillpress.backend.models.member import Member
from quillpress.backend.services.mega import handle_unsubscribe_request
from quillpress.backend.services.members import MembersService

client = TestClient(app)


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
def override_get_db(test_db_session):
    def _get_db():
        try:
            yield test_db_session
        finally:
            pass
    return _get_db


@pytest.fixture
def member(test_db_session):
    m = Member(email="reader@example.com", name="Reader", uuid="abc-123", subscribed=True)
    test_db_session.add(m)
    test_db_session.commit()
    return m


@pytest.mark.timeout(10)
def test_unsubscribes_member(test_db_session, member):
    data = handle_unsubscribe_request(test_db_session, "https://site.test/unsubscribe/?uuid=abc-123")
    assert data["email"] == "reader@example.com"
    assert data["subscribed"] is False
    test_db_session.refresh(member)
    assert member.subscribed is False


@pytest.mark.timeout(10)
@pytest.mark.parametrize("url", [
    None,
    "https://site.test/unsubscribe/",
    "https://site.test/unsubscribe/?uuid=",
    "https://site.test/unsubscribe/?uuid=unknown",
])
def test_bad_requests(test_db_session, member, url):
    with pytest.raises(BadRequestError) as info:
        handle_unsubscribe_request(test_db_session, url)
    assert info.value.message == "Unsubscribe failed! Could not find member"
    test_db_session.refresh(member)
    assert member.subscribed is True


@pytest.mark.timeout(10)
def test_preview_link(test_db_session):
    with pytest.raises(BadRequestError) as info:
        handle_unsubscribe_request(test_db_session, "https://site.test/unsubscribe/?preview=1")
    assert info.value.message == "Unsubscribe preview"


@pytest.mark.timeout(10)
def test_unsubscribe_endpoint(test_db_session, override_get_db, member):
    app.dependency_overrides[get_db] = override_get_db
    try:
        ok = client.get("/unsubscribe/?uuid=abc-123")
        missing = client.get("/unsubscribe/?uuid=nope")
    finally:
        app.dependency_overrides.pop(get_db, None)

    assert ok.status_code == 200
    assert "reader@example.com" in ok.text
    assert missing.status_code == 400
    assert missing.json()["code"] == "bad_request"
    assert missing.headers.get("x-trace-id") == missing.json()["trace_id"]


@pytest.mark.timeout(10)
def test_member_update_failure_is_internal_error(test_db_session, member, monkeypatch):
    def broken_update(self, patch, *, id, options=None):
        raise RuntimeError("database went away")

    monkeypatch.setattr(MembersService, "update", broken_update)

    with pytest.raises(InternalServerError) as info:
        handle_unsubscribe_request(test_db_session, "https://site.test/unsubscribe/?uuid=abc-123")
    assert isinstance(info.value.err, RuntimeError)
    assert info.value.status_code == 500
