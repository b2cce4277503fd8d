"""Profile model definitions."""

from sqlalchemy import Column, Date, DateTime, String, Text
from sqlalchemy.orm import relationship

from portal.database import Base


class Profile(Base):
    """One record per account, keyed by the identity service's user id."""
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True)
    full_name = Column(String)
    email = Column(String, index=True)
    avatar_url = Column(String)
    school = Column(String)
    class_name = Column(String)
    period = Column(String)
    birth_date = Column(Date)
    about_me = Column(Text)
    dreams = Column(Text)
    skills = Column(Text)
    role = Column(String, index=True)  # student/teacher
    last_updated_at = Column(DateTime(timezone=True))

    documents = relationship("Document", back_populates="owner", order_by="Document.created_at.desc()")
