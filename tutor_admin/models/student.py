"""Student model definitions."""

from sqlalchemy import Column, DateTime, Integer, String, func
from sqlalchemy.orm import relationship

from tutor_admin.database import Base


class Student(Base):
    """A roster entry."""
    __tablename__ = "students"

    id = Column(Integer, primary_key=True, index=True)
    full_name = Column(String, nullable=False, index=True)
    age = Column(Integer)
    phone = Column(String)
    email = Column(String)
    level = Column(String)
    photo = Column(String)
    paid_until = Column(String)
    created_at = Column(DateTime, nullable=False, server_default=func.now(), index=True)

    notes = relationship("Note", back_populates="student", cascade="all, delete-orphan")
