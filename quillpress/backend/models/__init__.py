"""SQLAlchemy models."""
from quillpress.backend.models.post import Post
from quillpress.backend.models.member import Member, Label, members_labels
from quillpress.backend.models.email import Email, EmailBatch, EmailRecipient
from quillpress.backend.models.host_limit import HostLimit
from quillpress.backend.models.app_setting import AppSetting
from quillpress.backend.models.staff import StaffUser

__all__ = [
    "Post",
    "Member",
    "Label",
    "members_labels",
    "Email",
    "EmailBatch",
    "EmailRecipient",
    "HostLimit",
    "AppSetting",
    "StaffUser",
]
