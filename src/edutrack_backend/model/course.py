from sqlalchemy import Boolean, Column, DateTime, String, text

from .base import Base, generate_id, utcnow


class Course(Base):
    __tablename__ = 'courses'

    id = Column(String(36), primary_key=True, default=generate_id)
    title = Column(String(255), nullable=False)
    description = Column(String(4096))
    institution_id = Column(String(255), index=True)
    teacher_id = Column(String(255), nullable=False, index=True)
    is_published = Column(Boolean, nullable=False, default=False, server_default=text("false"))
    created_at = Column(DateTime(True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(True))
    archived_at = Column(DateTime(True))
