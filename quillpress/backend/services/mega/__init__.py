"""Newsletter dispatch: public API."""
from quillpress.backend.services.mega.mega import (
    add_email,
    retry_failed_email,
    send_test_email,
    handle_unsubscribe_request,
    send_email_job,
)
from quillpress.backend.services.mega.lifecycle import EmailLifecycle, SEND_EMAIL_JOB
from quillpress.backend.services.mega.recipient_filter import transform_email_recipient_filter
from quillpress.backend.services.mega.segments import partition_members_by_segment, MemberSegment
from quillpress.backend.services.mega.audience import get_email_member_rows

__all__ = [
    "add_email",
    "retry_failed_email",
    "send_test_email",
    "handle_unsubscribe_request",
    "send_email_job",
    "EmailLifecycle",
    "SEND_EMAIL_JOB",
    "transform_email_recipient_filter",
    "partition_members_by_segment",
    "MemberSegment",
    "get_email_member_rows",
]
