import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from inventory_admin.core.config import Settings
from inventory_admin.core.dependencies import get_db, get_file_store, get_settings
from inventory_admin.core.exceptions import raise_404
from inventory_admin.crud import product as product_crud
from inventory_admin.crud import productsmgmt as crud
from inventory_admin.schemas.product import ProductDetail, ProductListItem
from inventory_admin.services.file_store import FileStore

router = APIRouter()
logger = logging.getLogger(__name__)


def _form_data(name, description, sku, category_id, quantity, price) -> dict:
    # Отсутствующие поля не передаются, чтобы валидация сообщила "Field required"
    fields = {
        "name": name,
        "description": description,
        "sku": sku,
        "category_id": category_id,
        "quantity": quantity,
        "price": price,
    }
    return {k: v for k, v in fields.items() if v is not None}


# === GET ===


@router.get("/", response_model=List[ProductListItem])
async def list_products(db: AsyncSession = Depends(get_db)):
    products = await product_crud.get_all(db)
    return [ProductListItem.from_model(p) for p in products]


@router.get("/stats/disk-usage")
async def get_disk_usage(file_store: FileStore = Depends(get_file_store)):
    return file_store.get_disk_usage()


@router.get("/{product_id}", response_model=ProductDetail)
async def get_product(product_id: int, db: AsyncSession = Depends(get_db)):
    product = await product_crud.find_by_id(db, product_id)
    if not product:
        raise_404(entity="Product", id=product_id)
    return ProductDetail.from_model(product)


# === CREATE ===


@router.post("/", response_model=ProductDetail, status_code=status.HTTP_201_CREATED)
async def create_product(
    name: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    sku: Optional[str] = Form(None),
    category_id: Optional[str] = Form(None),
    quantity: Optional[str] = Form(None),
    price: Optional[str] = Form(None),
    product_image: Optional[UploadFile] = File(None),
    description_images: Optional[List[UploadFile]] = File(None),
    db: AsyncSession = Depends(get_db),
    file_store: FileStore = Depends(get_file_store),
    settings: Settings = Depends(get_settings),
):
    product = await crud.create(
        db,
        file_store,
        _form_data(name, description, sku, category_id, quantity, price),
        product_image=product_image,
        description_images=description_images,
        max_description_images=settings.max_description_images,
    )
    return ProductDetail.from_model(product)


# === UPDATE ===


@router.put("/{product_id}", response_model=ProductDetail)
async def update_product(
    product_id: int,
    name: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    sku: Optional[str] = Form(None),
    category_id: Optional[str] = Form(None),
    quantity: Optional[str] = Form(None),
    price: Optional[str] = Form(None),
    delete_images: List[int] = Form([]),
    product_image: Optional[UploadFile] = File(None),
    description_images: Optional[List[UploadFile]] = File(None),
    db: AsyncSession = Depends(get_db),
    file_store: FileStore = Depends(get_file_store),
    settings: Settings = Depends(get_settings),
):
    product = await crud.update(
        db,
        file_store,
        product_id,
        _form_data(name, description, sku, category_id, quantity, price),
        product_image=product_image,
        description_images=description_images,
        delete_images=delete_images,
        max_description_images=settings.max_description_images,
    )
    return ProductDetail.from_model(product)


# === DELETE ===


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_product(
    product_id: int,
    db: AsyncSession = Depends(get_db),
    file_store: FileStore = Depends(get_file_store),
):
    product = await crud.delete(db, file_store, product_id)
    logger.info("Удалён продукт %d (%s)", product_id, product.name)
