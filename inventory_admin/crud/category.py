# inventory_admin/crud/category.py
import logging
from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from inventory_admin.core.database import Database
from inventory_admin.core.exceptions import DuplicateNameError, FormValidationError
from inventory_admin.crud import product as product_crud
from inventory_admin.models import Category, Product
from inventory_admin.schemas.category import CategoryCreate, CategoryUpdate
from inventory_admin.utils.urls import category_url

logger = logging.getLogger(__name__)


async def get_all(db: AsyncSession) -> List[Category]:
    result = await db.execute(select(Category).order_by(Category.name))
    return list(result.scalars().all())


async def get_by_id(db: AsyncSession, category_id: int) -> Optional[Category]:
    result = await db.execute(select(Category).where(Category.id == category_id))
    return result.scalar_one_or_none()


async def find_by_name(db: AsyncSession, name: str) -> Optional[Category]:
    result = await db.execute(select(Category).where(Category.name == name))
    return result.scalar_one_or_none()


async def get_with_products(
    database: Database, category_id: int
) -> Optional[Tuple[Category, List[Product]]]:
    """Категория и её продукты, загружаемые параллельно"""
    category, products = await database.fetch_concurrently(
        lambda session: get_by_id(session, category_id),
        lambda session: product_crud.get_by_category(session, category_id),
    )
    if not category:
        return None
    return category, products


async def create(db: AsyncSession, data: CategoryCreate) -> Category:
    existing = await find_by_name(db, data.name)
    if existing:
        raise DuplicateNameError("Category", data.name, category_url(existing))

    category = Category(**data.model_dump())
    db.add(category)
    await db.commit()
    await db.refresh(category)
    logger.info("Создана категория %d: %s", category.id, category.name)
    return category


async def update(db: AsyncSession, category_id: int, data: CategoryUpdate) -> Optional[Category]:
    category = await get_by_id(db, category_id)
    if not category:
        return None

    update_data = data.model_dump(exclude_unset=True, exclude_none=True)
    if "name" in update_data and update_data["name"] != category.name:
        other = await find_by_name(db, update_data["name"])
        if other:
            raise FormValidationError.single("name", "Категория с таким названием уже существует")

    for field, value in update_data.items():
        setattr(category, field, value)
    await db.commit()
    await db.refresh(category)
    return category


async def remove(db: AsyncSession, category_id: int) -> bool:
    category = await get_by_id(db, category_id)
    if not category:
        return False
    await db.delete(category)
    await db.commit()
    logger.info("Удалена категория %d: %s", category_id, category.name)
    return True
