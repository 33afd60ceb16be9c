"""Product SQLAlchemy model"""

from uuid import uuid4

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Index, Integer, Numeric, String, Uuid

from .base import Base, utcnow


class Product(Base):
    """Catalog entry that can be ordered.

    Order items copy the price and name at checkout time, so edits made here
    never change historical orders.
    """
    __tablename__ = "products"
    __table_args__ = (
        Index("ix_products_category", "category"),
        CheckConstraint("price > 0", name="price_positive"),
        CheckConstraint("stock >= 0", name="stock_non_negative"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    name = Column(String(200), nullable=False)
    description = Column(String(2000), nullable=True)
    price = Column(Numeric(precision=10, scale=2, asdecimal=True), nullable=False)
    stock = Column(Integer, nullable=False, default=0)
    category = Column(String(50), nullable=True)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def has_stock(self, quantity: int) -> bool:
        return self.stock is not None and self.stock >= quantity

    def decrease_stock(self, quantity: int) -> None:
        if not self.has_stock(quantity):
            raise ValueError(f"Insufficient stock for product {self.id}")
        self.stock -= quantity

    def increase_stock(self, quantity: int) -> None:
        self.stock += quantity
