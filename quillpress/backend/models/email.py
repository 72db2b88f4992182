"""Newsletter dispatch models: emails, batches, recipients."""
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text, Boolean, Index
from sqlalchemy.orm import relationship

from quillpress.backend.database import Base
from quillpress.backend.utils.object_id import new_object_id


class Email(Base):
    __tablename__ = "emails"

    id = Column(String(24), primary_key=True, default=new_object_id)
    post_id = Column(String(24), ForeignKey("posts.id"), unique=True, nullable=False, index=True)
    status = Column(String(50), nullable=False, default="pending")  # pending|submitted|failed
    recipient_filter = Column(Text, nullable=False)
    error = Column(String(2000), nullable=True)
    email_count = Column(Integer, nullable=False, default=0)
    delivered_count = Column(Integer, nullable=False, default=0)
    failed_count = Column(Integer, nullable=False, default=0)
    subject = Column(String(300), nullable=True)
    from_address = Column(String(2000), nullable=True)
    reply_to = Column(String(2000), nullable=True)
    html = Column(Text, nullable=True)
    plaintext = Column(Text, nullable=True)
    track_opens = Column(Boolean, nullable=False, default=False)
    submitted_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    batches = relationship("EmailBatch", back_populates="email", order_by="EmailBatch.created_at")


class EmailBatch(Base):
    __tablename__ = "email_batches"

    id = Column(String(24), primary_key=True, default=new_object_id)
    email_id = Column(String(24), ForeignKey("emails.id"), nullable=False, index=True)
    member_segment = Column(Text, nullable=True)
    status = Column(String(50), nullable=False, default="pending")  # pending|submitted|failed
    error = Column(String(2000), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    email = relationship("Email", back_populates="batches")
    recipients = relationship("EmailRecipient", back_populates="batch")


class EmailRecipient(Base):
    __tablename__ = "email_recipients"

    id = Column(String(24), primary_key=True, default=new_object_id)
    email_id = Column(String(24), ForeignKey("emails.id"), nullable=False, index=True)
    member_id = Column(String(24), nullable=False, index=True)
    batch_id = Column(String(24), ForeignKey("email_batches.id"), nullable=False, index=True)
    processed_at = Column(DateTime, nullable=True)
    failed_at = Column(DateTime, nullable=True)
    member_uuid = Column(String(36), nullable=False)
    member_email = Column(String(191), nullable=False)
    member_name = Column(String(191), nullable=True)

    batch = relationship("EmailBatch", back_populates="recipients")

    __table_args__ = (
        Index("ix_email_recipients_email_member", "email_id", "member_id"),
    )
