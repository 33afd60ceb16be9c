"""Order endpoints.

Two routers share the same service and guard:
- router (/orders): the caller's own orders, every lookup goes through
  OwnershipGuard.fetch_owned
- admin_router (/admin/orders): every order, via OwnershipGuard.fetch_any;
  the route policy table restricts it to administrators
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from audit.service import client_from_request
from auth.dependencies import CurrentIdentityDep
from database import get_db
from .guard import OwnershipGuard, require_granted
from .schemas import OrderCreate, OrderListResponse, OrderResponse, TransitionRequest
from .service import OrderService
from .status import OrderStatus


router = APIRouter(prefix="/orders", tags=["Orders"])
admin_router = APIRouter(prefix="/admin/orders", tags=["Admin: Orders"])


def _list_response(orders) -> OrderListResponse:
    return OrderListResponse(
        items=[OrderResponse.model_validate(order) for order in orders],
        total=len(orders),
    )


# ============================================================================
# Owner endpoints
# ============================================================================

@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
def create_order(
    data: OrderCreate,
    request: Request,
    identity: CurrentIdentityDep,
    db: Session = Depends(get_db),
):
    """Check out: create a PENDING order owned by the caller."""
    order = OrderService(db).create_order(identity, data, client_from_request(request))
    return OrderResponse.model_validate(order)


@router.get("", response_model=OrderListResponse)
def list_my_orders(
    identity: CurrentIdentityDep,
    db: Session = Depends(get_db),
):
    """The caller's orders, newest first."""
    return _list_response(OrderService(db).list_orders(identity.id))


@router.get("/{order_id}", response_model=OrderResponse)
def get_my_order(
    order_id: UUID,
    identity: CurrentIdentityDep,
    db: Session = Depends(get_db),
):
    """One of the caller's orders.

    Missing and foreign orders both answer 403 with only a correlation id.
    """
    order = require_granted(OwnershipGuard(db).fetch_owned(order_id, identity.id))
    return OrderResponse.model_validate(order)


@router.post("/{order_id}/transitions", response_model=OrderResponse)
def transition_my_order(
    order_id: UUID,
    data: TransitionRequest,
    request: Request,
    identity: CurrentIdentityDep,
    db: Session = Depends(get_db),
):
    """Pay, confirm receipt of, or cancel one of the caller's orders."""
    order = require_granted(
        OwnershipGuard(db).fetch_owned(order_id, identity.id, for_update=True)
    )
    order = OrderService(db).transition(
        order, data.status, identity, privileged=False, client=client_from_request(request)
    )
    return OrderResponse.model_validate(order)


# ============================================================================
# Administrator endpoints
# ============================================================================

@admin_router.get("", response_model=OrderListResponse)
def list_all_orders(
    identity: CurrentIdentityDep,
    db: Session = Depends(get_db),
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
):
    """Every order, newest first, optionally filtered by status."""
    return _list_response(OrderService(db).list_all_orders(status_filter))


@admin_router.get("/{order_id}", response_model=OrderResponse)
def get_any_order(
    order_id: UUID,
    identity: CurrentIdentityDep,
    db: Session = Depends(get_db),
):
    """Any order regardless of owner."""
    order = require_granted(OwnershipGuard(db).fetch_any(order_id))
    return OrderResponse.model_validate(order)


@admin_router.post("/{order_id}/transitions", response_model=OrderResponse)
def transition_any_order(
    order_id: UUID,
    data: TransitionRequest,
    request: Request,
    identity: CurrentIdentityDep,
    db: Session = Depends(get_db),
):
    """Move any order through the state machine, including shipping it."""
    order = require_granted(OwnershipGuard(db).fetch_any(order_id, for_update=True))
    order = OrderService(db).transition(
        order, data.status, identity, privileged=True, client=client_from_request(request)
    )
    return OrderResponse.model_validate(order)
