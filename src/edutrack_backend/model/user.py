from sqlalchemy import Boolean, Column, DateTime, Index, String, text

from .base import Base, generate_id, utcnow


class User(Base):
    """Mirror of an identity-gateway account; role and tenant claims are copied here."""
    __tablename__ = 'users'
    __table_args__ = (
        Index('users_institution_role_idx', 'institution_id', 'role'),
    )

    id = Column(String(255), primary_key=True, default=generate_id)
    email = Column(String(320), nullable=False, unique=True)
    name = Column(String(255))
    role = Column(String(32), nullable=False)
    institution_id = Column(String(255), index=True)
    child_id = Column(String(255))
    created_at = Column(DateTime(True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(True))
    deleted = Column(Boolean, nullable=False, default=False, server_default=text("false"))
    deleted_at = Column(DateTime(True))
