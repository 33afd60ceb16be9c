"""UserSession SQLAlchemy model"""

from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, Index, Text, Uuid
from sqlalchemy.orm import relationship

from .base import Base, utcnow


class UserSession(Base):
    """Server-side record of an authenticated login session.

    The session id travels inside the access token as the ``sid`` claim. A
    token is only honoured while its session row is unrevoked and unexpired,
    which lets login rotate sessions and logout invalidate them even though
    the token itself is a stateless JWT.
    """
    __tablename__ = "user_session"
    __table_args__ = (
        Index("ix_user_session_user_id", "user_id"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    revoked_at = Column(DateTime(timezone=True), nullable=True)
    ip_address = Column(Text, nullable=True)
    user_agent = Column(Text, nullable=True)

    user = relationship("User", back_populates="sessions")

    @property
    def is_revoked(self) -> bool:
        return self.revoked_at is not None
