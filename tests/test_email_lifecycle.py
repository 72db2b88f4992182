"""Email lifecycle reactions to record events."""
from quillpress.backend.services.mega.events import DomainEvent, EMAIL_ADDED, EMAIL_EDITED
from quillpress.backend.services.mega.lifecycle import EmailLifecycle, SEND_EMAIL_JOB


def _lifecycle():
    calls = {"analytics": 0, "jobs": []}

    def schedule():
        calls["analytics"] += 1

    def add_job(**kwargs):
        calls["jobs"].append(kwargs)

    return EmailLifecycle(schedule_analytics=schedule, add_job=add_job), calls


def test_added_pending_email_schedules_send():
    lifecycle, calls = _lifecycle()
    lifecycle.dispatch([DomainEvent(EMAIL_ADDED, "e1", "pending", changed=True)])
    assert calls["analytics"] == 1
    assert calls["jobs"] == [{"job": SEND_EMAIL_JOB, "data": {"email_id": "e1"}, "offloaded": False}]


def test_added_non_pending_email_is_ignored():
    lifecycle, calls = _lifecycle()
    lifecycle.dispatch([DomainEvent(EMAIL_ADDED, "e1", "submitted", changed=True)])
    assert calls == {"analytics": 0, "jobs": []}


def test_importing_never_schedules():
    lifecycle, calls = _lifecycle()
    lifecycle.dispatch([DomainEvent(EMAIL_ADDED, "e1", "pending", changed=True)], importing=True)
    assert calls["jobs"] == []


def test_failed_to_pending_edit_is_a_retry():
    lifecycle, calls = _lifecycle()
    lifecycle.dispatch([DomainEvent(EMAIL_EDITED, "e1", "pending", previous_status="failed", changed=True)])
    assert [j["data"] for j in calls["jobs"]] == [{"email_id": "e1"}]


def test_other_edits_do_not_schedule():
    lifecycle, calls = _lifecycle()
    lifecycle.dispatch([
        DomainEvent(EMAIL_EDITED, "e1", "pending", previous_status="pending", changed=False),
        DomainEvent(EMAIL_EDITED, "e1", "submitted", previous_status="pending", changed=True),
        DomainEvent(EMAIL_EDITED, "e1", "pending", previous_status="failed", changed=False),
    ])
    assert calls["jobs"] == []


def test_unknown_events_are_ignored():
    lifecycle, calls = _lifecycle()
    lifecycle.dispatch([DomainEvent("email.deleted", "e1", "pending", changed=True)])
    assert calls["jobs"] == []
