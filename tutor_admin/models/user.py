"""User model definitions."""

from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import relationship

from tutor_admin.database import Base


class User(Base):
    """A staff member who can sign in."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String)
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    role = Column(String, nullable=False, default="teacher")  # teacher/admin

    # Without a delete cascade the ORM nulls notes.author_id, matching ON DELETE SET NULL.
    notes = relationship("Note", back_populates="author")
