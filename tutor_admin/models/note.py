"""Note model definitions."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Text, func
from sqlalchemy.orm import relationship

from tutor_admin.database import Base


class Note(Base):
    """A timestamped annotation on a student. Never updated after creation."""
    __tablename__ = "notes"

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(
        Integer,
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    author_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"))
    content = Column(Text, nullable=False)
    attachment = Column(Text)
    created_at = Column(DateTime, nullable=False, server_default=func.now())

    student = relationship("Student", back_populates="notes")
    author = relationship("User", back_populates="notes")
