import logging
from typing import Any, Dict, Iterable, List, Optional

from fastapi import UploadFile
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from inventory_admin.core.exceptions import (
    DuplicateNameError,
    FormValidationError,
    NotFoundError,
)
from inventory_admin.crud import category as category_crud
from inventory_admin.crud import product as base_crud
from inventory_admin.models import Product
from inventory_admin.schemas.product import ProductForm
from inventory_admin.schemas.product_image import StoredImage
from inventory_admin.services.file_store import FileStore, RequestUploads
from inventory_admin.services.image_reconciler import (
    ImageUpdate,
    apply_deletions,
    plan_update,
)
from inventory_admin.utils.urls import product_url

logger = logging.getLogger(__name__)


def validate_form(form_data: Dict[str, Any]) -> ProductForm:
    try:
        return ProductForm.model_validate(form_data)
    except ValidationError as e:
        raise FormValidationError.from_pydantic(e) from e


async def _check_references(
    db: AsyncSession, data: ProductForm, product_id: Optional[int] = None
) -> None:
    errors: Dict[str, List[str]] = {}
    if not await category_crud.get_by_id(db, data.category_id):
        errors["category_id"] = [f"Категория {data.category_id} не найдена"]

    existing = await base_crud.find_by_name(db, data.name)
    if existing and product_id is None:
        raise DuplicateNameError("Product", data.name, product_url(existing))
    if existing and existing.id != product_id:
        errors["name"] = ["Продукт с таким названием уже существует"]

    if errors:
        raise FormValidationError(errors)


def _check_image_count(count: int, limit: int) -> None:
    if count > limit:
        raise FormValidationError.single(
            "description_images", f"Не больше {limit} изображений описания"
        )


async def _discard(file_store: FileStore, uploads: RequestUploads) -> None:
    if uploads.paths:
        logger.info("Удаление файлов отклонённого запроса: %s", uploads.paths)
        await apply_deletions(file_store, uploads.paths)


async def _abort(db: AsyncSession, file_store: FileStore, uploads: RequestUploads) -> None:
    """Откат сессии и удаление загрузок; сбой отката не отменяет очистку."""
    try:
        await db.rollback()
    except Exception:
        logger.exception("Ошибка отката транзакции")
    await _discard(file_store, uploads)


async def create(
    db: AsyncSession,
    file_store: FileStore,
    form_data: Dict[str, Any],
    *,
    product_image: Optional[UploadFile],
    description_images: Optional[List[UploadFile]],
    max_description_images: int,
) -> Product:
    uploads = await file_store.write_request_uploads(product_image, description_images)
    try:
        data = validate_form(form_data)
        if uploads.primary is None:
            raise FormValidationError.single("product_image", "Основное изображение обязательно")
        _check_image_count(len(uploads.secondary), max_description_images)
        await _check_references(db, data)

        return await base_crud.save(
            db,
            data,
            primary=StoredImage.from_upload(uploads.primary),
            secondary=[StoredImage.from_upload(item) for item in uploads.secondary],
        )
    except Exception:
        await _abort(db, file_store, uploads)
        raise


async def update(
    db: AsyncSession,
    file_store: FileStore,
    product_id: int,
    form_data: Dict[str, Any],
    *,
    product_image: Optional[UploadFile],
    description_images: Optional[List[UploadFile]],
    delete_images: Iterable[int],
    max_description_images: int,
) -> Product:
    """
    Обновляет продукт и его изображения.

    Запись в БД выполняется первой; вытесненные и отмеченные файлы удаляются
    только после неё. Ошибки удаления логируются и не влияют на результат.
    """
    uploads = await file_store.write_request_uploads(product_image, description_images)
    try:
        product = await base_crud.find_by_id(db, product_id)
        if not product:
            raise NotFoundError("Product", product_id)

        data = validate_form(form_data)
        await _check_references(db, data, product_id=product_id)

        plan = plan_update(
            StoredImage.model_validate(product.primary_image),
            [StoredImage.model_validate(img) for img in product.description_images],
            ImageUpdate(
                new_primary_image=uploads.primary,
                new_secondary_images=uploads.secondary,
                deleted_secondary_image_ids=set(delete_images),
            ),
        )
        _check_image_count(len(plan.secondary), max_description_images)

        updated = await base_crud.find_by_id_and_update(
            db, product_id, data, primary=plan.primary, secondary=plan.secondary
        )
        if not updated:
            raise NotFoundError("Product", product_id)
    except Exception:
        await _abort(db, file_store, uploads)
        raise

    await apply_deletions(file_store, plan.files_to_delete)
    return updated


async def delete(db: AsyncSession, file_store: FileStore, product_id: int) -> Product:
    product = await base_crud.find_by_id_and_delete(db, product_id)
    if not product:
        raise NotFoundError("Product", product_id)

    outcome = await apply_deletions(
        file_store, [img.storage_path for img in product.product_images]
    )
    if not outcome.ok:
        logger.warning(
            "Продукт %d удалён, но %d файл(ов) остались на диске",
            product_id,
            len(outcome.failed),
        )
    return product
