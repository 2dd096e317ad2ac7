"""
Catalog routes. Reading needs any signed-in account; changes need
``manage_products``.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from pizzeria.api.deps import get_current_account, require
from pizzeria.core import permissions
from pizzeria.database import get_db
from pizzeria.models import Account, ProductCategory
from pizzeria.schemas import (
    AvailabilityUpdate,
    CategoryListEnvelope,
    ErrorResponse,
    ProductCreate,
    ProductEnvelope,
    ProductListEnvelope,
    ProductResponse,
    ProductUpdate,
)
from pizzeria.services import catalog

router = APIRouter(prefix="/products", tags=["Products"])

can_manage = require(permissions.MANAGE_PRODUCTS)


@router.get("", response_model=ProductListEnvelope, summary="List Products")
async def list_products(
    category: Optional[ProductCategory] = Query(None),
    available: Optional[bool] = Query(True),
    search: Optional[str] = Query(None, max_length=100),
    db: AsyncSession = Depends(get_db),
    _: Account = Depends(get_current_account),
) -> ProductListEnvelope:
    """Catalog entries sorted by display order, then name."""
    products = await catalog.list_products(db, category=category, available=available, search=search)
    return ProductListEnvelope(products=[ProductResponse.model_validate(p) for p in products])


@router.get("/categories", response_model=CategoryListEnvelope, summary="List Categories")
async def list_categories(
    db: AsyncSession = Depends(get_db),
    _: Account = Depends(get_current_account),
) -> CategoryListEnvelope:
    return CategoryListEnvelope(categories=await catalog.list_categories(db))


@router.get(
    "/{product_id}",
    response_model=ProductEnvelope,
    responses={404: {"model": ErrorResponse}},
    summary="Get Product",
)
async def get_product(
    product_id: int,
    db: AsyncSession = Depends(get_db),
    _: Account = Depends(get_current_account),
) -> ProductEnvelope:
    product = await catalog.get_product(db, product_id)
    return ProductEnvelope(product=ProductResponse.model_validate(product))


@router.post(
    "",
    response_model=ProductEnvelope,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
    summary="Create Product",
)
async def create_product(
    data: ProductCreate,
    db: AsyncSession = Depends(get_db),
    _: Account = Depends(can_manage),
) -> ProductEnvelope:
    product = await catalog.create_product(db, data)
    return ProductEnvelope(message="Product created successfully", product=ProductResponse.model_validate(product))


@router.put(
    "/{product_id}",
    response_model=ProductEnvelope,
    responses={404: {"model": ErrorResponse}},
    summary="Update Product",
)
async def update_product(
    product_id: int,
    data: ProductUpdate,
    db: AsyncSession = Depends(get_db),
    _: Account = Depends(can_manage),
) -> ProductEnvelope:
    product = await catalog.update_product(db, product_id, data)
    return ProductEnvelope(message="Product updated successfully", product=ProductResponse.model_validate(product))


@router.delete(
    "/{product_id}",
    response_model=ProductEnvelope,
    responses={404: {"model": ErrorResponse}},
    summary="Delete Product",
)
async def delete_product(
    product_id: int,
    db: AsyncSession = Depends(get_db),
    _: Account = Depends(can_manage),
) -> ProductEnvelope:
    """Soft delete: the product is marked unavailable and kept."""
    product = await catalog.delete_product(db, product_id)
    return ProductEnvelope(message="Product removed successfully", product=ProductResponse.model_validate(product))


@router.put(
    "/{product_id}/availability",
    response_model=ProductEnvelope,
    responses={404: {"model": ErrorResponse}},
    summary="Set Availability",
)
async def set_availability(
    product_id: int,
    data: AvailabilityUpdate,
    db: AsyncSession = Depends(get_db),
    _: Account = Depends(can_manage),
) -> ProductEnvelope:
    product = await catalog.set_availability(db, product_id, data.available)
    state = "available" if product.available else "unavailable"
    return ProductEnvelope(message=f"Product marked {state}", product=ProductResponse.model_validate(product))
