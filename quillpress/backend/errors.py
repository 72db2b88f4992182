"""Domain errors with HTTP status mapping."""
from __future__ import annotations


class QuillpressError(Exception):
    status_code = 500
    code = "internal_error"
    default_message = "The server has encountered an error."

    def __init__(
        self,
        message: str | None = None,
        *,
        err: BaseException | None = None,
        context: str | None = None,
        property: str | None = None,
    ) -> None:
        self.message = message or (str(err) if err else None) or self.default_message
        super().__init__(self.message)
        self.err = err
        self.context = context
        self.property = property


class ValidationError(QuillpressError):
    status_code = 422
    code = "validation_error"
    default_message = "The request failed validation."


class UnexpectedFilterValue(QuillpressError):
    status_code = 400
    code = "unexpected_filter_value"
    default_message = "Unexpected filter value."


class EmptyAudienceRequested(QuillpressError):
    status_code = 400
    code = "empty_audience_requested"
    default_message = "Cannot send email to an empty audience."


class HostLimitError(QuillpressError):
    status_code = 403
    code = "host_limit_error"
    default_message = "Host limit reached."


class BadRequestError(QuillpressError):
    status_code = 400
    code = "bad_request"
    default_message = "The request could not be understood."


class NotFoundError(QuillpressError):
    status_code = 404
    code = "not_found"
    default_message = "Resource not found."


class IncorrectUsageError(QuillpressError):
    status_code = 400
    code = "incorrect_usage"
    default_message = "Incorrect usage."


class InternalServerError(QuillpressError):
    pass


class EmailDispatchError(QuillpressError):
    code = "email_dispatch_error"
    default_message = "The email service was unable to send an email batch."
