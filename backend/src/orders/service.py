"""Order service: checkout, listing and status transitions.

Ownership is not checked here. Callers obtain the Order through
OwnershipGuard first and hand the granted instance to transition().
"""

from collections import OrderedDict
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session, selectinload

from audit.service import ClientInfo, log_audit_event
from auth.identity import CurrentIdentity
from errors import AccessDenied, InvalidTransition, ValidationFailed
from models.base import utcnow
from models.order import Order, OrderItem
from models.product import Product
from observability.logging_config import get_logger
from observability.metrics import access_denied_total, orders_created_total, order_transitions_total
from observability.context import new_correlation_id
from .schemas import OrderCreate
from .status import (
    OrderStatus,
    OWNER_TARGETS,
    STATUS_TIMESTAMPS,
    StateTransitionError,
    validate_transition,
)

logger = get_logger(__name__)


class OrderService:
    """Business operations on orders for one request."""

    def __init__(self, db: Session):
        self.db = db

    def create_order(
        self,
        identity: CurrentIdentity,
        data: OrderCreate,
        client: Optional[ClientInfo] = None,
    ) -> Order:
        """Place an order for the caller.

        Products are locked while stock is checked and decremented; the order,
        its lines and the stock updates are committed together.

        Raises:
            ValidationFailed: Under the "items" field for empty orders, bad
                quantities, unknown or inactive products and insufficient stock
        """
        client = client or ClientInfo()
        problems: List[str] = []

        if not data.items:
            raise ValidationFailed({"items": ["Order must contain at least one item"]})

        # Merge repeated products into one line
        quantities: "OrderedDict[UUID, int]" = OrderedDict()
        for line in data.items:
            if line.quantity < 1:
                problems.append(f"Quantity for product {line.product_id} must be at least 1")
                continue
            quantities[line.product_id] = quantities.get(line.product_id, 0) + line.quantity

        products = {}
        if quantities:
            rows = (
                self.db.query(Product)
                .filter(Product.id.in_(list(quantities.keys())))
                .with_for_update()
                .all()
            )
            products = {product.id: product for product in rows}

        for product_id, quantity in quantities.items():
            product = products.get(product_id)
            if product is None or not product.active:
                problems.append(f"Product {product_id} is not available")
            elif not product.has_stock(quantity):
                problems.append(f"Insufficient stock for {product.name}")

        if problems:
            self.db.rollback()
            raise ValidationFailed({"items": problems})

        order = Order(
            user_id=identity.id,
            status=OrderStatus.PENDING.value,
            shipping_address=data.shipping_address,
            receiver_name=data.receiver_name,
            receiver_phone=data.receiver_phone,
            notes=data.notes,
        )
        for product_id, quantity in quantities.items():
            product = products[product_id]
            product.decrease_stock(quantity)
            order.add_item(OrderItem(
                product_id=product.id,
                quantity=quantity,
                price_at_purchase=product.price,
                product_name_at_purchase=product.name,
            ))
        order.total_amount = order.calculate_total()

        self.db.add(order)
        self.db.flush()

        log_audit_event(
            db=self.db,
            action="ORDER_CREATED",
            actor_id=identity.id,
            entity_type="order",
            entity_id=order.id,
            metadata={"total_amount": str(order.total_amount), "line_count": len(order.items)},
            client=client,
        )
        self.db.commit()
        self.db.refresh(order)

        orders_created_total.inc()
        logger.info("Order created", extra={"order_id": order.id, "user_id": identity.id})
        return order

    def list_orders(self, owner_id: UUID) -> List[Order]:
        """Orders owned by owner_id, newest first."""
        return (
            self.db.query(Order)
            .options(selectinload(Order.items))
            .filter(Order.user_id == owner_id)
            .order_by(Order.created_at.desc())
            .all()
        )

    def list_all_orders(self, status: Optional[OrderStatus] = None) -> List[Order]:
        """Every order, newest first (administrators only)."""
        query = self.db.query(Order).options(selectinload(Order.items))
        if status is not None:
            query = query.filter(Order.status == status.value)
        return query.order_by(Order.created_at.desc()).all()

    def transition(
        self,
        order: Order,
        target: OrderStatus,
        identity: CurrentIdentity,
        privileged: bool = False,
        client: Optional[ClientInfo] = None,
    ) -> Order:
        """Move a granted order to a new status.

        Args:
            order: Order obtained through OwnershipGuard
            target: Requested status
            identity: Caller
            privileged: True on administrator routes; owners may only pay,
                confirm receipt or cancel
            client: Request metadata for the audit record

        Raises:
            AccessDenied: Owner requested an administrator-only status
            InvalidTransition: The state machine forbids the move
        """
        client = client or ClientInfo()

        if not privileged and target not in OWNER_TARGETS:
            correlation_id = new_correlation_id()
            access_denied_total.labels(reason="role").inc()
            logger.warning(
                "Order transition denied",
                extra={
                    "correlation_id": correlation_id,
                    "reason": "role",
                    "order_id": order.id,
                    "user_id": identity.id,
                },
            )
            raise AccessDenied(correlation_id)

        current = OrderStatus(order.status)
        try:
            validate_transition(current, target)
        except StateTransitionError:
            raise InvalidTransition(
                f"Order cannot move from {current.value} to {target.value}"
            )

        order.status = target.value
        setattr(order, STATUS_TIMESTAMPS[target], utcnow())

        if target == OrderStatus.CANCELLED:
            self._restore_stock(order)

        log_audit_event(
            db=self.db,
            action="ORDER_STATUS_CHANGED",
            actor_id=identity.id,
            entity_type="order",
            entity_id=order.id,
            metadata={"from": current.value, "to": target.value},
            client=client,
        )
        self.db.commit()
        self.db.refresh(order)

        order_transitions_total.labels(to_status=target.value).inc()
        logger.info(
            f"Order status changed {current.value} -> {target.value}",
            extra={"order_id": order.id, "user_id": identity.id},
        )
        return order

    def _restore_stock(self, order: Order) -> None:
        product_ids = [item.product_id for item in order.items]
        products = {
            product.id: product
            for product in (
                self.db.query(Product)
                .filter(Product.id.in_(product_ids))
                .with_for_update()
                .all()
            )
        }
        for item in order.items:
            product = products.get(item.product_id)
            if product is not None:
                product.increase_stock(item.quantity)
