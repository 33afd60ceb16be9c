"""AuditLog SQLAlchemy model"""

from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import relationship

from .base import Base, JSONDocument, utcnow


class AuditLog(Base):
    """Append-only record of a security-relevant event.

    Written in the same transaction as the change it describes, so an event
    exists if and only if the change was committed. request_id links a row
    to the application log lines of the request that produced it. Rows are
    never updated or deleted.
    """
    __tablename__ = "audit_log"
    __table_args__ = (
        Index("ix_audit_log_actor_id", "actor_id"),
        Index("ix_audit_log_action_created_at", "action", "created_at"),
        Index("ix_audit_log_entity", "entity_type", "entity_id"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    actor_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    action = Column(String(50), nullable=False)
    entity_type = Column(String(20), nullable=True)
    entity_id = Column(String(36), nullable=True)
    metadata_json = Column(JSONDocument, nullable=True)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(Text, nullable=True)
    request_id = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    actor = relationship("User")
