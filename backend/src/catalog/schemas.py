"""Pydantic schemas for the product catalog

Prices are Decimal with two places and serialize as strings. Price edits
never touch existing order lines, which keep their purchase-time snapshot.
"""

from datetime import datetime
from decimal import Decimal
from typing import Annotated, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

ProductName = Annotated[str, Field(min_length=1, max_length=200)]
Description = Annotated[str, Field(max_length=2000)]
Price = Annotated[Decimal, Field(gt=0, max_digits=10, decimal_places=2)]
Stock = Annotated[int, Field(ge=0)]
Category = Annotated[str, Field(max_length=50)]


class ProductCreate(BaseModel):
    model_config = ConfigDict(extra='forbid')

    name: ProductName
    description: Optional[Description] = None
    price: Price
    stock: Stock = 0
    category: Optional[Category] = None
    active: bool = True


class ProductUpdate(BaseModel):
    """Partial update; omitted fields are left alone."""
    model_config = ConfigDict(extra='forbid')

    name: Optional[ProductName] = None
    description: Optional[Description] = None
    price: Optional[Price] = None
    stock: Optional[Stock] = None
    category: Optional[Category] = None
    active: Optional[bool] = None


class ProductResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: Optional[str] = None
    price: Decimal
    stock: int
    category: Optional[str] = None
    active: bool
    created_at: datetime
    updated_at: datetime


class ProductListResponse(BaseModel):
    items: List[ProductResponse]
    total: int
    limit: int
    offset: int
