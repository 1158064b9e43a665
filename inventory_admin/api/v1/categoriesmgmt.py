import logging
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from inventory_admin.core.database import Database
from inventory_admin.core.dependencies import get_database, get_db
from inventory_admin.core.exceptions import raise_404, raise_409
from inventory_admin.crud import category as category_crud
from inventory_admin.schemas.category import (
    CategoryCreate,
    CategoryDetail,
    CategoryResponse,
    CategoryUpdate,
)
from inventory_admin.utils.urls import product_url

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/", response_model=List[CategoryResponse])
async def list_categories(db: AsyncSession = Depends(get_db)):
    categories = await category_crud.get_all(db)
    return [CategoryResponse.from_model(c) for c in categories]


@router.get("/{category_id}", response_model=CategoryDetail)
async def get_category(
    category_id: int,
    database: Database = Depends(get_database),
):
    result = await category_crud.get_with_products(database, category_id)
    if not result:
        raise_404(entity="Category", id=category_id)
    category, products = result
    return CategoryDetail.from_models(category, products)


@router.post("/", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category(
    category: CategoryCreate,
    db: AsyncSession = Depends(get_db),
):
    created = await category_crud.create(db, category)
    return CategoryResponse.from_model(created)


@router.put("/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: int,
    category: CategoryUpdate,
    db: AsyncSession = Depends(get_db),
):
    updated = await category_crud.update(db, category_id, category)
    if not updated:
        raise_404(entity="Category", id=category_id)
    return CategoryResponse.from_model(updated)


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category(
    category_id: int,
    database: Database = Depends(get_database),
    db: AsyncSession = Depends(get_db),
):
    result = await category_crud.get_with_products(database, category_id)
    if not result:
        raise_404(entity="Category", id=category_id)
    _, products = result
    if products:
        raise_409(
            "Category has products; delete or move them first",
            products=[product_url(p) for p in products],
        )
    await category_crud.remove(db, category_id)
