"""Bulk transport: sending batches and recording outcomes."""
import smtplib
from contextlib import contextmanager

import pytest
from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from quillpress.backend.database import Base, get_test_engine
from quillpress.backend.errors import EmailDispatchError
from quillpress.backend.models.email import Email, EmailBatch, EmailRecipient
from quillpress.backend.models.member import Member
from quillpress.backend.models.post import Post
from quillpress.backend.services import bulk_email
from quillpress.backend.services.mega.batches import create_email_batches


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


class FakeSMTP:
    def __init__(self, refuse=()):
        self.sent = []
        self.refuse = set(refuse)

    def send_message(self, msg):
        if msg["To"] in self.refuse:
            raise smtplib.SMTPRecipientsRefused({msg["To"]: (550, b"no such user")})
        self.sent.append(msg)


def _fake_connection(server):
    @contextmanager
    def _connection(cfg):
        yield server
    return _connection


def _email_with_batches(db, monkeypatch, n=3, size=2, html="<p>Hi %%{name}%%</p>"):
    monkeypatch.setattr(bulk_email, "BATCH_SIZE", size)
    post = Post(title="Hi", slug="hi", html=html, status="published", email_recipient_filter="all")
    db.add(post)
    db.commit()
    email = Email(post_id=post.id, status="pending", recipient_filter="all", html=html, plaintext="Hi", subject="Hi")
    db.add(email)
    db.commit()
    rows = [{"id": f"m{i}", "uuid": f"u{i}", "email": f"m{i}@example.com", "name": f"M{i}"} for i in range(n)]
    create_email_batches(db, email, rows)
    return email


def test_send_replaces_member_fields():
    server = FakeSMTP()
    with pytest.MonkeyPatch.context() as mp:
        mp.setattr(bulk_email, "smtp_connection", _fake_connection(server))
        result = bulk_email.send(
            {"from": "a@example.com", "subject": "S", "html": "<p>%%{name}%% <a href='%%{unsubscribe_url}%%'>x</a></p>", "plaintext": "hi"},
            [{"member_uuid": "u1", "member_email": "one@example.com", "member_name": "One"}],
        )
    assert result.delivered == ["one@example.com"]
    body = server.sent[0].get_body(("html",)).get_content()
    assert "One" in body
    assert "/unsubscribe/?uuid=u1" in body
    assert server.sent[0]["List-Unsubscribe"].endswith("/unsubscribe/?uuid=u1>")


def test_send_records_refused_recipients():
    server = FakeSMTP(refuse=["bad@example.com"])
    with pytest.MonkeyPatch.context() as mp:
        mp.setattr(bulk_email, "smtp_connection", _fake_connection(server))
        result = bulk_email.send(
            {"from": "a@example.com", "subject": "S", "html": "<p>x</p>", "plaintext": "x"},
            [{"member_email": "ok@example.com"}, {"member_email": "bad@example.com"}],
        )
    assert result.delivered == ["ok@example.com"]
    assert result.failed == ["bad@example.com"]


def test_connection_failure_is_a_failed_batch():
    @contextmanager
    def broken(cfg):
        raise ConnectionRefusedError("connection refused")
        yield

    with pytest.MonkeyPatch.context() as mp:
        mp.setattr(bulk_email, "smtp_connection", broken)
        result = bulk_email.send({"html": "x"}, [{"member_email": "a@example.com"}])
    assert isinstance(result, bulk_email.FailedBatch)
    assert isinstance(result.error, EmailDispatchError)
    assert "connection refused" in result.error.message


def test_unsubscribe_url_without_uuid_is_preview():
    assert bulk_email.unsubscribe_url(None).endswith("/unsubscribe/?preview=1")


@pytest.mark.timeout(10)
def test_process_email_submits_all_batches(test_db_session, monkeypatch):
    email = _email_with_batches(test_db_session, monkeypatch)
    server = FakeSMTP(refuse=["m1@example.com"])
    monkeypatch.setattr(bulk_email, "smtp_connection", _fake_connection(server))

    counters = bulk_email.process_email(test_db_session, email.id)

    assert counters == {"batches_sent": 2, "batches_failed": 0}
    assert test_db_session.get(Email, email.id).status == "submitted"
    batches = test_db_session.execute(select(EmailBatch)).scalars().all()
    assert {b.status for b in batches} == {"submitted"}
    recipients = {r.member_email: r for r in test_db_session.execute(select(EmailRecipient)).scalars()}
    assert recipients["m0@example.com"].processed_at is not None
    assert recipients["m1@example.com"].failed_at is not None
    assert recipients["m1@example.com"].processed_at is None
    assert len(server.sent) == 2


@pytest.mark.timeout(10)
def test_process_email_skips_submitted_batches_and_raises_on_failure(test_db_session, monkeypatch):
    email = _email_with_batches(test_db_session, monkeypatch, n=4, size=2)
    first, second = test_db_session.execute(
        select(EmailBatch).order_by(EmailBatch.created_at.asc(), EmailBatch.id.asc())
    ).scalars().all()
    first.status = "submitted"
    test_db_session.commit()

    calls = []

    def failing_send(email_data, recipients):
        calls.append([r["member_email"] for r in recipients])
        return bulk_email.FailedBatch(error=EmailDispatchError("mailgun down"))

    monkeypatch.setattr(bulk_email, "send", failing_send)

    with pytest.raises(EmailDispatchError):
        bulk_email.process_email(test_db_session, email.id)

    assert len(calls) == 1
    test_db_session.refresh(second)
    assert second.status == "failed"
    assert second.error == "mailgun down"
    assert test_db_session.get(Email, email.id).status == "pending"


@pytest.mark.timeout(10)
def test_segment_batches_render_their_segment(test_db_session, monkeypatch):
    html = '<p>All</p><div data-gh-segment="status:free">Free only</div><div data-gh-segment="status:-free">Paid only</div>'
    monkeypatch.setattr(bulk_email, "BATCH_SIZE", 10)
    test_db_session.add(Member(email="f@example.com", status="free"))
    post = Post(title="Hi", slug="hi", html=html, status="published", email_recipient_filter="all")
    test_db_session.add(post)
    test_db_session.commit()
    email = Email(post_id=post.id, status="pending", recipient_filter="all", html=html, subject="Hi")
    test_db_session.add(email)
    test_db_session.commit()
    create_email_batches(test_db_session, email, [{"id": "m1", "uuid": "u1", "email": "f@example.com"}], member_segment="status:free")

    seen = []
    monkeypatch.setattr(bulk_email, "send", lambda data, recipients: seen.append(data["html"]) or bulk_email.SendResult())

    bulk_email.process_email(test_db_session, email.id)

    assert "Free only" in seen[0]
    assert "Paid only" not in seen[0]
    assert "data-gh-segment" not in seen[0]


@pytest.mark.timeout(10)
def test_email_stays_pending_while_batches_are_sent(test_db_session, monkeypatch):
    email = _email_with_batches(test_db_session, monkeypatch, n=2, size=1)
    email_id = email.id
    seen_status = []

    def recording_send(email_data, recipients):
        seen_status.append(test_db_session.get(Email, email_id).status)
        return bulk_email.SendResult(delivered=[r["member_email"] for r in recipients])

    monkeypatch.setattr(bulk_email, "send", recording_send)

    bulk_email.process_email(test_db_session, email_id)

    assert seen_status == ["pending", "pending"]
    assert test_db_session.get(Email, email_id).status == "submitted"
