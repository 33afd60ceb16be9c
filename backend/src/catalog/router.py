"""Product catalog API endpoints"""

from typing import Optional
from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from audit.service import log_from_request
from auth.dependencies import CurrentIdentityDep
from database import get_db
from errors import NotFound
from models.product import Product
from observability.logging_config import get_logger
from .schemas import ProductCreate, ProductUpdate, ProductResponse, ProductListResponse

logger = get_logger(__name__)

NULLABLE_FIELDS = {"description", "category"}

router = APIRouter(prefix="/products", tags=["Products"])
admin_router = APIRouter(prefix="/admin/products", tags=["Admin: Products"])


def _escape_like(value: str) -> str:
    """Escape LIKE wildcards so user input is matched literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _product_not_found(product_id: UUID) -> NotFound:
    return NotFound(f"Product {product_id} not found")


# ============================================================================
# Public Endpoints
# ============================================================================

@router.get("", response_model=ProductListResponse)
def list_products(
    db: Session = Depends(get_db),
    q: Optional[str] = Query(None, max_length=100, description="Search in name and description"),
    category: Optional[str] = Query(None, max_length=50),
    min_price: Optional[Decimal] = Query(None, ge=0),
    max_price: Optional[Decimal] = Query(None, ge=0),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
):
    """List active products with optional search and filters.

    The search term is bound as a query parameter; it is never interpolated
    into SQL.
    """
    query = db.query(Product).filter(Product.active.is_(True))

    if q:
        pattern = f"%{_escape_like(q)}%"
        query = query.filter(
            Product.name.ilike(pattern, escape="\\")
            | Product.description.ilike(pattern, escape="\\")
        )
    if category:
        query = query.filter(Product.category == category)
    if min_price is not None:
        query = query.filter(Product.price >= min_price)
    if max_price is not None:
        query = query.filter(Product.price <= max_price)

    total = query.count()
    products = query.order_by(Product.name).offset(offset).limit(limit).all()

    return ProductListResponse(
        items=[ProductResponse.model_validate(p) for p in products],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/{product_id}", response_model=ProductResponse)
def get_product(product_id: UUID, db: Session = Depends(get_db)):
    """Get a single active product."""
    product = db.query(Product).filter(
        Product.id == product_id,
        Product.active.is_(True),
    ).first()
    if product is None:
        raise _product_not_found(product_id)
    return ProductResponse.model_validate(product)


# ============================================================================
# Administrator Endpoints
# ============================================================================

@admin_router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
def create_product(
    product_data: ProductCreate,
    request: Request,
    identity: CurrentIdentityDep,
    db: Session = Depends(get_db),
):
    """Create a new product."""
    product = Product(**product_data.model_dump())
    db.add(product)
    db.flush()

    log_from_request(
        db=db,
        request=request,
        action="PRODUCT_CREATED",
        actor_id=identity.id,
        entity_type="product",
        entity_id=product.id,
        metadata={"name": product.name, "price": str(product.price)},
    )
    db.commit()
    db.refresh(product)

    logger.info(f"Created product {product.id}", extra={"user_id": identity.id})
    return ProductResponse.model_validate(product)


@admin_router.patch("/{product_id}", response_model=ProductResponse)
def update_product(
    product_id: UUID,
    update_data: ProductUpdate,
    request: Request,
    identity: CurrentIdentityDep,
    db: Session = Depends(get_db),
):
    """Update price, name, stock, category, description or active flag."""
    product = db.query(Product).filter(Product.id == product_id).with_for_update().first()
    if product is None:
        raise _product_not_found(product_id)

    changes = {
        field: value
        for field, value in update_data.model_dump(exclude_unset=True).items()
        if value is not None or field in NULLABLE_FIELDS
    }
    for field, value in changes.items():
        setattr(product, field, value)

    log_from_request(
        db=db,
        request=request,
        action="PRODUCT_UPDATED",
        actor_id=identity.id,
        entity_type="product",
        entity_id=product.id,
        metadata={field: str(value) for field, value in changes.items()},
    )
    db.commit()
    db.refresh(product)

    logger.info(f"Updated product {product.id}", extra={"user_id": identity.id})
    return ProductResponse.model_validate(product)
