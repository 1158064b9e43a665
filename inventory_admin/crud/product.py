# inventory_admin/crud/product.py
import logging
from typing import List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from inventory_admin.models import Product, ProductImage
from inventory_admin.schemas.product import ProductForm
from inventory_admin.schemas.product_image import StoredImage

logger = logging.getLogger(__name__)


def _with_relations(query):
    return query.options(
        selectinload(Product.product_images),
        selectinload(Product.category),
    ).execution_options(populate_existing=True)


async def find_by_id(db: AsyncSession, product_id: int) -> Optional[Product]:
    result = await db.execute(_with_relations(select(Product).where(Product.id == product_id)))
    return result.scalar_one_or_none()


async def find_by_name(db: AsyncSession, name: str) -> Optional[Product]:
    result = await db.execute(select(Product).where(Product.name == name))
    return result.scalar_one_or_none()


async def get_all(db: AsyncSession) -> List[Product]:
    result = await db.execute(_with_relations(select(Product).order_by(Product.name)))
    return list(result.scalars().all())


async def get_by_category(db: AsyncSession, category_id: int) -> List[Product]:
    result = await db.execute(
        select(Product).where(Product.category_id == category_id).order_by(Product.name)
    )
    return list(result.scalars().all())


def _build_image_rows(
    primary: StoredImage,
    secondary: Sequence[StoredImage],
    existing: Sequence[ProductImage] = (),
) -> List[ProductImage]:
    """
    Строит строки изображений в порядке отображения.
    Сохранённые изображения (с id) переиспользуют существующие строки.
    """
    by_id = {row.id: row for row in existing}
    rows = []
    for position, image in enumerate([primary, *secondary]):
        row = by_id.get(image.id) if image.id is not None else None
        if row is None:
            row = ProductImage(
                file_name=image.file_name,
                storage_path=image.storage_path,
                mime_type=image.mime_type,
            )
        row.is_main = position == 0
        row.position = position
        rows.append(row)
    return rows


async def save(
    db: AsyncSession,
    data: ProductForm,
    *,
    primary: StoredImage,
    secondary: Sequence[StoredImage],
) -> Product:
    product = Product(**data.model_dump())
    product.product_images = _build_image_rows(primary, secondary)
    db.add(product)
    await db.commit()
    logger.info("Создан продукт %d: %s", product.id, product.name)
    return await find_by_id(db, product.id)


async def find_by_id_and_update(
    db: AsyncSession,
    product_id: int,
    data: ProductForm,
    *,
    primary: StoredImage,
    secondary: Sequence[StoredImage],
) -> Optional[Product]:
    product = await find_by_id(db, product_id)
    if not product:
        return None

    for field, value in data.model_dump().items():
        setattr(product, field, value)
    # Строки, не попавшие в новый набор, удаляются каскадом delete-orphan
    product.product_images = _build_image_rows(primary, secondary, product.product_images)

    await db.commit()
    logger.info("Обновлён продукт %d", product_id)
    return await find_by_id(db, product_id)


async def find_by_id_and_delete(db: AsyncSession, product_id: int) -> Optional[Product]:
    product = await find_by_id(db, product_id)
    if not product:
        return None
    await db.delete(product)
    await db.commit()
    logger.info("Удалён продукт %d: %s", product_id, product.name)
    return product
