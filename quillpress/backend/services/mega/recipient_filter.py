"""Recipient filter normalisation."""
from __future__ import annotations

from quillpress.backend.errors import UnexpectedFilterValue, EmptyAudienceRequested

SUBSCRIBED_FILTER = "subscribed:true"


def transform_email_recipient_filter(email_recipient_filter: str, *, error_property: str = "email_recipient_filter") -> str:
    """Reject retired keywords and require ``subscribed:true``."""
    # `paid` and `free` were replaced by filter expressions and must not reach here
    if email_recipient_filter in ("paid", "free"):
        raise UnexpectedFilterValue(
            f'Unexpected {error_property} value "{email_recipient_filter}", expected an NQL equivalent',
            property=error_property,
        )
    if email_recipient_filter == "all":
        return SUBSCRIBED_FILTER
    if email_recipient_filter == "none":
        raise EmptyAudienceRequested(
            f'Cannot send email to "none" {error_property}',
            property=error_property,
        )
    return f"{SUBSCRIBED_FILTER}+({email_recipient_filter})"
