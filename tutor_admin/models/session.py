"""Server-side session records."""

from sqlalchemy import JSON, Column, DateTime, String

from tutor_admin.database import Base


class SessionRecord(Base):
    """Opaque session id mapped to its payload and a fixed expiry."""
    __tablename__ = "sessions"

    sid = Column(String, primary_key=True)
    sess = Column(JSON, nullable=False)
    expire = Column(DateTime, nullable=False, index=True)
