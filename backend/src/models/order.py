"""Order model for SecureShop

Represents a customer order created at checkout. Every order has exactly one
owner; the owner is the key the ownership guard compares against, so it can
never be reassigned after creation. Orders move through the status state
machine defined in orders.status.
"""

from decimal import Decimal
from uuid import uuid4

from sqlalchemy import (
    CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, Numeric, String, Uuid
)
from sqlalchemy.orm import relationship, validates

from .base import Base, utcnow


class Order(Base):
    """Order header with owner, status, total and shipping details.

    Lifecycle:
    1. Created at checkout (status=PENDING)
    2. Paid by the owner (status=PAID)
    3. Shipped by an administrator (status=SHIPPED)
    4. Receipt confirmed by the owner (status=COMPLETED)
    PENDING and PAID orders may be CANCELLED instead.
    """

    __tablename__ = 'orders'

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)

    # Owner (IDOR key, REQUIRED on all owner-scoped queries)
    user_id = Column(Uuid(as_uuid=True), ForeignKey('users.id'), nullable=False)

    status = Column(
        String(20),
        nullable=False,
        default='PENDING',
        comment="State machine: PENDING → PAID → SHIPPED → COMPLETED, PENDING|PAID → CANCELLED"
    )

    # Money is always Decimal, never float
    total_amount = Column(Numeric(10, 2, asdecimal=True), nullable=False, default=Decimal('0.00'))

    # Shipping details
    shipping_address = Column(String(500), nullable=False)
    receiver_name = Column(String(100), nullable=False)
    receiver_phone = Column(String(20), nullable=False)
    notes = Column(String(500), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    shipped_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index('ix_orders_user_created', 'user_id', 'created_at'),
        CheckConstraint(
            "status IN ('PENDING', 'PAID', 'SHIPPED', 'COMPLETED', 'CANCELLED')",
            name='status'
        ),
    )

    user = relationship("User", back_populates="orders")
    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
    )

    @validates('user_id')
    def validate_owner(self, key, value):
        """The owner is fixed once set"""
        if self.user_id is not None and value != self.user_id:
            raise ValueError("Order owner cannot be reassigned")
        return value

    def add_item(self, item: "OrderItem") -> None:
        self.items.append(item)

    def calculate_total(self) -> Decimal:
        """Sum of line subtotals, computed in Decimal"""
        return sum((item.subtotal for item in self.items), Decimal('0.00'))


class OrderItem(Base):
    """Order line with a frozen snapshot of the product's price and name.

    The product reference is kept for display only; totals are always derived
    from price_at_purchase so later catalog edits cannot rewrite history.
    """

    __tablename__ = 'order_items'

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    order_id = Column(
        Uuid(as_uuid=True),
        ForeignKey('orders.id', ondelete='CASCADE'),
        nullable=False
    )
    product_id = Column(Uuid(as_uuid=True), ForeignKey('products.id'), nullable=False)
    quantity = Column(Integer, nullable=False)
    price_at_purchase = Column(Numeric(10, 2, asdecimal=True), nullable=False)
    product_name_at_purchase = Column(String(200), nullable=False)

    __table_args__ = (
        Index('ix_order_items_order_id', 'order_id'),
        CheckConstraint("quantity >= 1", name='quantity'),
    )

    order = relationship("Order", back_populates="items")
    product = relationship("Product")

    @validates('price_at_purchase', 'product_name_at_purchase')
    def validate_snapshot(self, key, value):
        """Snapshots are written once at checkout and frozen afterwards"""
        current = getattr(self, key)
        if current is not None and value != current:
            raise ValueError(f"{key} is a purchase-time snapshot and cannot change")
        return value

    @property
    def subtotal(self) -> Decimal:
        if self.price_at_purchase is None or self.quantity is None:
            return Decimal('0.00')
        return self.price_at_purchase * self.quantity
