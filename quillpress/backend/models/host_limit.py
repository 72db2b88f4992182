"""Account-level host limits (members, emails)."""
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Boolean, Text

from quillpress.backend.database import Base


class HostLimit(Base):
    __tablename__ = "host_limits"

    resource = Column(String(64), primary_key=True)  # members|emails
    max_value = Column(Integer, nullable=True)
    disabled = Column(Boolean, nullable=False, default=False)
    error_message = Column(Text, nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
