#!/usr/bin/env python3
# populate_db.py
"""
Асинхронный скрипт наполнения БД тестовыми категориями и продуктами.

    python populate_db.py [DATABASE_URL]
"""

import asyncio
import logging
import sys
from io import BytesIO

from PIL import Image
from starlette.datastructures import Headers, UploadFile

from inventory_admin.core.config import get_settings
from inventory_admin.core.database import Database
from inventory_admin.core.exceptions import DuplicateNameError
from inventory_admin.crud import category as category_crud
from inventory_admin.crud import productsmgmt
from inventory_admin.schemas.category import CategoryCreate
from inventory_admin.services.file_store import FileStore

logger = logging.getLogger("populate_db")

CATEGORIES = [
    ("Solar panels", "A category for solar panels"),
    ("Controllers", "A category for controllers"),
    ("Lights", "A category for 12V lights"),
    ("Fans", "A category for 12V electric ceiling fans"),
]

# (название, описание, SKU, индекс категории, количество, цена)
PRODUCTS = [
    ("Solar panel 1", "A high-quality solar panel for home use", "SP-001", 0, 10, 500),
    ("Solar panel 2", "A portable folding solar panel", "SP-002", 0, 4, 320),
    ("Charge controller", "A 30A MPPT charge controller", "CC-001", 1, 15, 120),
    ("LED strip", "A 5m warm-white 12V LED strip", "LI-001", 2, 40, 25),
    ("Ceiling fan", "A quiet 12V ceiling fan", "FA-001", 3, 6, 90),
]

PLACEHOLDER_COLORS = [(233, 196, 106), (42, 157, 143), (231, 111, 81), (38, 70, 83)]


def placeholder_upload(name: str, color) -> UploadFile:
    buffer = BytesIO()
    Image.new("RGB", (320, 240), color).save(buffer, format="PNG")
    buffer.seek(0)
    return UploadFile(
        file=buffer,
        filename=f"{name}.png",
        headers=Headers({"content-type": "image/png"}),
    )


async def populate(database_url: str) -> None:
    settings = get_settings()
    database = Database(database_url)
    file_store = FileStore.from_settings(settings)
    await database.connect(create_tables=True)

    try:
        async with database.session() as db:
            categories = []
            for name, description in CATEGORIES:
                try:
                    category = await category_crud.create(
                        db, CategoryCreate(name=name, description=description)
                    )
                    logger.info("Новая категория: %s", category.name)
                except DuplicateNameError:
                    category = await category_crud.find_by_name(db, name)
                    logger.info("Категория уже есть: %s", name)
                categories.append(category)

            for idx, (name, description, sku, cat_idx, quantity, price) in enumerate(PRODUCTS):
                color = PLACEHOLDER_COLORS[idx % len(PLACEHOLDER_COLORS)]
                try:
                    product = await productsmgmt.create(
                        db,
                        file_store,
                        {
                            "name": name,
                            "description": description,
                            "sku": sku,
                            "category_id": categories[cat_idx].id,
                            "quantity": quantity,
                            "price": price,
                        },
                        product_image=placeholder_upload(sku.lower(), color),
                        description_images=[placeholder_upload(f"{sku.lower()}-detail", color)],
                        max_description_images=settings.max_description_images,
                    )
                    logger.info("Новый продукт: %s", product.name)
                except DuplicateNameError:
                    logger.info("Продукт уже есть: %s", name)
    finally:
        await database.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")
    url = sys.argv[1] if len(sys.argv) > 1 else get_settings().database_url
    asyncio.run(populate(url))
