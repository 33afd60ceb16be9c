"""Audit trail for security events.

Every security-relevant change writes one AuditLog row through
log_audit_event, inside the caller's transaction:

    USER_REGISTERED
    LOGIN_SUCCESS, LOGIN_FAILED, LOGOUT
    USER_ENABLED, USER_DISABLED, USER_ROLE_CHANGED
    ORDER_CREATED, ORDER_STATUS_CHANGED
    PRODUCT_CREATED, PRODUCT_UPDATED

LOGIN_FAILED metadata carries the real failure reason, which the client
never sees.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import Request
from sqlalchemy.orm import Session

from config import settings
from models.audit_log import AuditLog
from observability.context import current_request_id

MAX_IP_LENGTH = 45


@dataclass(frozen=True)
class ClientInfo:
    """Request metadata recorded with sessions and audit events."""
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


def get_client_ip(request: Request) -> Optional[str]:
    """Client address; X-Forwarded-For is honoured only behind a trusted proxy.

    The header is client-controlled, so it is ignored unless
    TRUST_PROXY_HEADERS is set.
    """
    if settings.TRUST_PROXY_HEADERS:
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()[:MAX_IP_LENGTH] or None
    return request.client.host if request.client else None


def client_from_request(request: Request) -> ClientInfo:
    return ClientInfo(
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("User-Agent"),
    )


def log_audit_event(
    db: Session,
    action: str,
    actor_id: Optional[UUID] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[UUID] = None,
    metadata: Optional[Dict[str, Any]] = None,
    client: Optional[ClientInfo] = None,
) -> AuditLog:
    """Add an audit row to the current transaction.

    The row is flushed, never committed: it persists if and only if the
    audited change does.

    Args:
        db: Database session
        action: Event name, e.g. "LOGIN_FAILED"
        actor_id: User who performed the action (None for anonymous events)
        entity_type: "user", "order" or "product"
        entity_id: Id of the affected entity
        metadata: JSON context, e.g. {"from": "PENDING", "to": "PAID"}
        client: Caller address and User-Agent
    """
    client = client or ClientInfo()
    entry = AuditLog(
        actor_id=actor_id,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id) if entity_id is not None else None,
        metadata_json=metadata,
        ip_address=client.ip_address,
        user_agent=client.user_agent,
        request_id=current_request_id(),
    )
    db.add(entry)
    db.flush()
    return entry


def log_from_request(
    db: Session,
    request: Request,
    action: str,
    actor_id: Optional[UUID] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[UUID] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    """log_audit_event with the client taken from a FastAPI request."""
    return log_audit_event(
        db=db,
        action=action,
        actor_id=actor_id,
        entity_type=entity_type,
        entity_id=entity_id,
        metadata=metadata,
        client=client_from_request(request),
    )
