"""User SQLAlchemy model"""

from uuid import uuid4

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, String, Text, Uuid
from sqlalchemy.orm import relationship, validates

from .base import Base, utcnow


class User(Base):
    """User model representing a registered shop identity.

    Usernames are unique and case-sensitive; emails are unique and stored
    lower-cased. Passwords are stored only as peppered Argon2id hashes.
    Users are never hard-deleted: administrators disable them instead.
    """
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    username = Column(String(50), nullable=False, unique=True)
    email = Column(String(100), nullable=False, unique=True)
    password_hash = Column(Text, nullable=False)
    role = Column(String(20), nullable=False, default="USER")
    enabled = Column(Boolean, nullable=False, default=True)
    full_name = Column(String(100), nullable=True)
    phone_number = Column(String(20), nullable=True)
    address = Column(String(500), nullable=True)
    last_login_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    orders = relationship("Order", back_populates="user")
    sessions = relationship("UserSession", back_populates="user")

    # Constraints
    __table_args__ = (
        CheckConstraint("role IN ('USER', 'ADMIN')", name="role"),
    )

    @validates('email')
    def validate_email(self, key, value):
        """Emails are compared case-insensitively, so store them lower-cased"""
        return value.strip().lower()
