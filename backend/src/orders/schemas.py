"""Pydantic schemas for Orders API"""

from datetime import datetime
from decimal import Decimal
from typing import Optional, List
from uuid import UUID

from pydantic import BaseModel, Field, ConfigDict

from .status import OrderStatus


# ============================================================================
# Request Schemas
# ============================================================================

class OrderItemRequest(BaseModel):
    """One requested line; quantity and availability are checked at checkout"""
    product_id: UUID
    quantity: int


class OrderCreate(BaseModel):
    """Schema for checkout (POST /orders)"""
    items: List[OrderItemRequest]
    shipping_address: str = Field(..., min_length=1, max_length=500)
    receiver_name: str = Field(..., min_length=1, max_length=100)
    receiver_phone: str = Field(..., min_length=1, max_length=20)
    notes: Optional[str] = Field(None, max_length=500)

    model_config = ConfigDict(extra='forbid')


class TransitionRequest(BaseModel):
    """Schema for POST /orders/{id}/transitions"""
    status: OrderStatus

    model_config = ConfigDict(extra='forbid')


# ============================================================================
# Response Schemas
# ============================================================================

class OrderItemResponse(BaseModel):
    """Order line with its purchase-time snapshot"""
    id: UUID
    product_id: UUID
    product_name_at_purchase: str
    price_at_purchase: Decimal
    quantity: int
    subtotal: Decimal

    model_config = ConfigDict(from_attributes=True)


class OrderResponse(BaseModel):
    """Full order with lines"""
    id: UUID
    user_id: UUID
    status: OrderStatus
    total_amount: Decimal
    shipping_address: str
    receiver_name: str
    receiver_phone: str
    notes: Optional[str] = None
    created_at: datetime
    paid_at: Optional[datetime] = None
    shipped_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    items: List[OrderItemResponse] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class OrderListResponse(BaseModel):
    """List of orders, newest first"""
    items: List[OrderResponse]
    total: int
