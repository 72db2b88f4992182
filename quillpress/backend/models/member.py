"""Members and labels."""
import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Boolean, ForeignKey, Table
from sqlalchemy.orm import relationship

from quillpress.backend.database import Base
from quillpress.backend.utils.object_id import new_object_id


members_labels = Table(
    "members_labels",
    Base.metadata,
    Column("member_id", String(24), ForeignKey("members.id", ondelete="CASCADE"), primary_key=True),
    Column("label_id", String(24), ForeignKey("labels.id", ondelete="CASCADE"), primary_key=True),
)


class Label(Base):
    __tablename__ = "labels"

    id = Column(String(24), primary_key=True, default=new_object_id)
    name = Column(String(191), unique=True, nullable=False)
    slug = Column(String(191), unique=True, nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Member(Base):
    __tablename__ = "members"

    id = Column(String(24), primary_key=True, default=new_object_id)
    uuid = Column(String(36), unique=True, nullable=True, index=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(191), unique=True, nullable=False, index=True)
    name = Column(String(191), nullable=True)
    status = Column(String(50), nullable=False, default="free")  # free|paid|comped
    subscribed = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    labels = relationship("Label", secondary=members_labels, lazy="selectin")
