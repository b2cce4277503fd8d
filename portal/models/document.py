"""Document model definitions."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import BigInteger, Column, DateTime, ForeignKey, String
from sqlalchemy.orm import relationship

from portal.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Document(Base):
    """Metadata for a file stored in the uploads bucket."""
    __tablename__ = "documents"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("profiles.id"), index=True, nullable=False)
    file_name = Column(String, nullable=False)
    file_path = Column(String, unique=True, nullable=False)
    file_url = Column(String, nullable=False)
    content_type = Column(String)
    size_bytes = Column(BigInteger)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    owner = relationship("Profile", back_populates="documents")
