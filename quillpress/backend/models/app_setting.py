"""Model for site settings (key-value, JSONB)."""
from datetime import datetime
from sqlalchemy import Column, DateTime, Text
from sqlalchemy.dialects.postgresql import JSONB

from quillpress.backend.database import Base


class AppSetting(Base):
    __tablename__ = "app_settings"

    key = Column(Text, primary_key=True)
    value_json = Column(JSONB, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
