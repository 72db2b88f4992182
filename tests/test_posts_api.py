"""Staff post endpoints: visibility validation, publish, preview."""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from quillpress.backend.main import app
from quillpress.backend.deps import get_db
from quillpress.backend.database import Base, get_test_engine
from quillpress.backend.auth import create_access_token
from quillpress.backend.models.email import Email
from quillpress.backend.models.member import Member
from quillpress.backend.services import bulk_email
from quillpress.backend.services.mega import EmailLifecycle
from quillpress.backend.wiring import get_email_lifecycle

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
def jobs():
    return []


@pytest.fixture
def overrides(test_db_session, jobs):
    def _get_db():
        try:
            yield test_db_session
        finally:
            pass

    lifecycle = EmailLifecycle(schedule_analytics=lambda: None, add_job=lambda **kw: jobs.append(kw))
    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_email_lifecycle] = lambda: lifecycle
    try:
        yield
    finally:
        app.dependency_overrides.pop(get_db, None)
        app.dependency_overrides.pop(get_email_lifecycle, None)


def _auth():
    return {"Authorization": f"Bearer {create_access_token({'sub': 'staff-1'})}"}


def _create(title="Hello", **kw):
    r = client.post("/v1/admin/posts", json={"title": title, "html": "<p>Hi</p>", **kw}, headers=_auth())
    assert r.status_code == 200, r.text
    return r.json()["post"]


@pytest.mark.timeout(10)
def test_requires_auth(overrides):
    r = client.post("/v1/admin/posts", json={"title": "x"})
    assert r.status_code == 401


@pytest.mark.timeout(10)
def test_visibility_must_be_basic_or_valid_filter(overrides):
    assert _create(visibility="paid")["visibility"] == "paid"
    assert _create(title="Labelled", visibility="label:vip")["visibility"] == "label:vip"

    r = client.post("/v1/admin/posts", json={"title": "Bad", "visibility": "label:(vip"}, headers=_auth())
    assert r.status_code == 422
    body = r.json()
    assert body["message"] == "Invalid filter in visibility property"
    assert body["property"] == "visibility"


@pytest.mark.timeout(10)
def test_slugs_are_unique(overrides):
    assert _create()["slug"] == "hello"
    assert _create()["slug"] == "hello-2"


@pytest.mark.timeout(10)
def test_publish_creates_email_and_enqueues(test_db_session, overrides, jobs):
    test_db_session.add(Member(email="a@example.com"))
    test_db_session.commit()
    post = _create()

    r = client.post(f"/v1/admin/posts/{post['id']}/publish", json={"email_recipient_filter": "all"}, headers=_auth())

    assert r.status_code == 200, r.text
    data = r.json()
    assert data["post"]["status"] == "published"
    assert data["email"]["status"] == "pending"
    assert data["email"]["email_count"] == 1
    assert jobs == [{"job": "quillpress.worker.jobs.send_email_job", "data": {"email_id": data["email"]["id"]}, "offloaded": False}]

    again = client.post(f"/v1/admin/posts/{post['id']}/publish", json={}, headers=_auth())
    assert again.json()["email"]["id"] == data["email"]["id"]
    assert len(test_db_session.execute(select(Email)).scalars().all()) == 1
    assert len(jobs) == 1


@pytest.mark.timeout(10)
def test_publish_without_recipients_sends_nothing(overrides, jobs):
    post = _create()
    r = client.post(f"/v1/admin/posts/{post['id']}/publish", json={"email_recipient_filter": "all"}, headers=_auth())
    assert r.status_code == 200
    assert r.json()["email"] is None
    assert jobs == []


@pytest.mark.timeout(10)
def test_publish_rejects_legacy_filter(test_db_session, overrides):
    test_db_session.add(Member(email="a@example.com"))
    test_db_session.commit()
    post = _create()
    r = client.post(f"/v1/admin/posts/{post['id']}/publish", json={"email_recipient_filter": "free"}, headers=_auth())
    assert r.status_code == 400
    assert r.json()["code"] == "unexpected_filter_value"


@pytest.mark.timeout(10)
def test_email_preview(overrides, monkeypatch):
    sent = []
    monkeypatch.setattr(
        bulk_email,
        "send",
        lambda email_data, recipients: sent.append(email_data) or bulk_email.SendResult(delivered=[r["member_email"] for r in recipients]),
    )
    post = _create()
    r = client.post(f"/v1/admin/posts/{post['id']}/email_preview", json={"emails": ["t@example.com"]}, headers=_auth())
    assert r.status_code == 200, r.text
    assert r.json() == {"delivered": ["t@example.com"], "failed": []}
    assert sent[0]["subject"] == "[Test] Hello"


@pytest.mark.timeout(10)
def test_public_email_view(test_db_session, overrides):
    post = _create()
    r = client.get(f"/email/{post['uuid']}/")
    assert r.status_code == 200
    assert "Hello" in r.text
    assert "%%{unsubscribe_url}%%" not in r.text
    assert client.get("/email/missing/").status_code == 404
