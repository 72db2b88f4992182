"""Post model."""
import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Text

from quillpress.backend.database import Base
from quillpress.backend.utils.object_id import new_object_id


class Post(Base):
    __tablename__ = "posts"

    id = Column(String(24), primary_key=True, default=new_object_id)
    uuid = Column(String(36), unique=True, nullable=False, index=True, default=lambda: str(uuid.uuid4()))
    title = Column(String(2000), nullable=False)
    slug = Column(String(191), unique=True, nullable=False, index=True)
    html = Column(Text, nullable=True)
    plaintext = Column(Text, nullable=True)
    feature_image = Column(Text, nullable=True)
    status = Column(String(50), nullable=False, default="draft")  # draft|published
    visibility = Column(Text, nullable=False, default="public")  # public|members|paid|<member filter>
    email_recipient_filter = Column(Text, nullable=False, default="none")
    published_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
