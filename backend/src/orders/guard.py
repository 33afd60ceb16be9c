"""Resource ownership guard (IDOR prevention).

Every access to an order goes through OwnershipGuard. Ordinary users reach
orders only with fetch_owned, which issues one query filtered by both the
order id and the requester id, so another user's order is never loaded into
memory. Administrators use fetch_any; the route policy table, not the guard,
decides who may call it.

The outcome is an explicit value rather than an exception:

    Granted(order)            the caller may proceed with this order
    Denied(correlation_id)    missing or not owned; reason only in the log
    Unexpected(correlation_id) database fault; detail only in the log

Missing and foreign orders are indistinguishable to the caller.
"""

from dataclasses import dataclass
from typing import Optional, Union
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from errors import AccessDenied, UnexpectedFailure
from models.order import Order
from observability.logging_config import get_logger
from observability.metrics import access_denied_total
from observability.context import new_correlation_id

logger = get_logger(__name__)

REASON_ABSENT = "absent"
REASON_OWNER_MISMATCH = "owner_mismatch"


@dataclass(frozen=True)
class Granted:
    order: Order


@dataclass(frozen=True)
class Denied:
    correlation_id: str


@dataclass(frozen=True)
class Unexpected:
    correlation_id: str


AccessOutcome = Union[Granted, Denied, Unexpected]


class OwnershipGuard:
    """Mediates order lookups for a single request."""

    def __init__(self, db: Session):
        self.db = db

    def _deny(self, order_id: UUID, reason: str, requester_id: Optional[UUID] = None) -> Denied:
        correlation_id = new_correlation_id()
        access_denied_total.labels(reason=reason).inc()
        logger.warning(
            "Order access denied",
            extra={
                "correlation_id": correlation_id,
                "reason": reason,
                "order_id": order_id,
                "user_id": requester_id,
            },
        )
        return Denied(correlation_id)

    def _fault(self, order_id: UUID) -> Unexpected:
        correlation_id = new_correlation_id()
        logger.error(
            "Order lookup failed",
            extra={"correlation_id": correlation_id, "order_id": order_id},
            exc_info=True,
        )
        self.db.rollback()
        return Unexpected(correlation_id)

    def fetch_owned(self, order_id: UUID, requester_id: UUID, for_update: bool = False) -> AccessOutcome:
        """Fetch an order only if requester_id owns it.

        Args:
            order_id: Order to look up
            requester_id: Authenticated user asking for it
            for_update: Lock the row for a subsequent write

        Returns:
            Granted, Denied or Unexpected
        """
        try:
            query = self.db.query(Order).filter(
                Order.id == order_id,
                Order.user_id == requester_id,
            )
            if for_update:
                query = query.with_for_update()
            order = query.first()
            if order is not None:
                return Granted(order)

            # Existence probe on the id only, to log why; never loads the row
            exists = self.db.query(Order.id).filter(Order.id == order_id).first() is not None
        except SQLAlchemyError:
            return self._fault(order_id)

        reason = REASON_OWNER_MISMATCH if exists else REASON_ABSENT
        return self._deny(order_id, reason, requester_id)

    def fetch_any(self, order_id: UUID, for_update: bool = False) -> AccessOutcome:
        """Administrator lookup without an ownership predicate."""
        try:
            query = self.db.query(Order).filter(Order.id == order_id)
            if for_update:
                query = query.with_for_update()
            order = query.first()
        except SQLAlchemyError:
            return self._fault(order_id)

        if order is None:
            return self._deny(order_id, REASON_ABSENT)
        return Granted(order)


def require_granted(outcome: AccessOutcome) -> Order:
    """Unwrap a guard outcome at the API boundary.

    Raises:
        AccessDenied: For Denied (HTTP 403)
        UnexpectedFailure: For Unexpected (HTTP 500)
    """
    if isinstance(outcome, Granted):
        return outcome.order
    elif isinstance(outcome, Denied):
        raise AccessDenied(outcome.correlation_id)
    elif isinstance(outcome, Unexpected):
        raise UnexpectedFailure(outcome.correlation_id)
    raise TypeError(f"Unknown access outcome: {outcome!r}")
