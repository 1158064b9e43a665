"""
FileStore: приём загрузок изображений и удаление файлов с диска.

Используется:
  - роутерами продуктов (запись загрузок до валидации формы)
  - ImageReconciler (удаление вытесненных и осиротевших файлов)
  - скриптом наполнения БД
"""

import logging
import os
import random
import time
from dataclasses import dataclass, field
from io import BytesIO
from pathlib import Path
from typing import Iterable, List, Optional

from fastapi import UploadFile
from PIL import Image, UnidentifiedImageError
from starlette.concurrency import run_in_threadpool

from inventory_admin.core.config import Settings
from inventory_admin.core.exceptions import (
    FormValidationError,
    StorageDeleteError,
    StorageWriteError,
)
from inventory_admin.schemas.product_image import UploadDescriptor
from inventory_admin.services.image_reconciler import apply_deletions

logger = logging.getLogger(__name__)

# Форматы Pillow, соответствующие разрешённым MIME-типам
SNIFFED_FORMATS = {"PNG": ".png", "JPEG": ".jpg"}
SNIFFED_MIME_TYPES = {"PNG": "image/png", "JPEG": "image/jpeg"}


@dataclass
class RequestUploads:
    """Все файлы, записанные в рамках одного запроса."""

    primary: Optional[UploadDescriptor] = None
    secondary: List[UploadDescriptor] = field(default_factory=list)

    @property
    def paths(self) -> List[str]:
        items = ([self.primary] if self.primary else []) + self.secondary
        return [item.storage_path for item in items]


class FileStore:

    def __init__(
        self,
        root: Path,
        *,
        upload_subdir: str = "uploads",
        max_file_size: int = 5 * 1024 * 1024,
        allowed_types: Iterable[str] = ("image/png", "image/jpg", "image/jpeg"),
    ):
        self.root = Path(root).resolve()
        self.upload_subdir = upload_subdir
        self.max_file_size = max_file_size
        self.allowed_types = set(allowed_types)

    @classmethod
    def from_settings(cls, settings: Settings) -> "FileStore":
        return cls(
            settings.media_root,
            upload_subdir=settings.upload_subdir,
            max_file_size=settings.max_upload_size,
            allowed_types=settings.allowed_image_types,
        )

    @property
    def upload_dir(self) -> Path:
        path = self.root / self.upload_subdir
        path.mkdir(parents=True, exist_ok=True)
        return path

    def resolve(self, storage_path: str) -> Path:
        """Абсолютный путь файла; пути вне корня медиа запрещены."""
        path = (self.root / storage_path).resolve()
        if path != self.root and self.root not in path.parents:
            raise StorageDeleteError(storage_path, "path escapes media root")
        return path

    @staticmethod
    def make_file_name(field_name: str, original_name: str, fmt: str) -> str:
        extension = Path(original_name).suffix.lower() or SNIFFED_FORMATS[fmt]
        stamp = int(time.time() * 1000)
        return f"{field_name}-{stamp}-{random.randint(0, 999_999_999)}{extension}"

    @staticmethod
    def sniff_format(data: bytes) -> Optional[str]:
        """
        Формат по содержимому. Image.DecompressionBombError пробрасывается:
        маленький файл с огромными размерами отклоняется вызывающим кодом.
        """
        try:
            with Image.open(BytesIO(data)) as img:
                return img.format
        except (UnidentifiedImageError, OSError):
            return None

    def _too_large(self, upload: UploadFile, field_name: str) -> FormValidationError:
        return FormValidationError.single(
            field_name,
            f"Файл {upload.filename} больше {self.max_file_size // (1024 * 1024)} МБ",
        )

    async def write_upload(self, upload: UploadFile, field_name: str) -> Optional[UploadDescriptor]:
        """
        Проверяет и записывает загруженный файл.
        Возвращает None для пропущенных частей (пустое поле, неподходящий тип).
        """
        if upload is None or not upload.filename:
            return None

        if upload.content_type not in self.allowed_types:
            logger.warning(
                "Пропущен файл %s: тип %s не разрешён", upload.filename, upload.content_type
            )
            return None

        # Размер известен из multipart; иначе читается не больше лимита + 1 байт
        if upload.size is not None and upload.size > self.max_file_size:
            raise self._too_large(upload, field_name)
        data = await upload.read(self.max_file_size + 1)
        if len(data) > self.max_file_size:
            raise self._too_large(upload, field_name)

        try:
            fmt = self.sniff_format(data)
        except Image.DecompressionBombError as e:
            logger.warning("Отклонён файл %s: %s", upload.filename, e)
            raise FormValidationError.single(
                field_name, f"Файл {upload.filename}: слишком большое разрешение"
            ) from e
        if fmt not in SNIFFED_FORMATS:
            logger.warning("Пропущен файл %s: содержимое не PNG/JPEG", upload.filename)
            return None

        file_name = self.make_file_name(field_name, upload.filename, fmt)
        target = self.upload_dir / file_name
        try:
            await run_in_threadpool(target.write_bytes, data)
        except OSError as e:
            logger.error("Ошибка записи файла %s: %s", target, e)
            raise StorageWriteError(str(target), str(e)) from e

        storage_path = f"{self.upload_subdir}/{file_name}"
        logger.info("Сохранено: %s → %s (%d KB)", upload.filename, storage_path, len(data) // 1024)

        return UploadDescriptor(
            original_name=upload.filename,
            file_name=file_name,
            storage_path=storage_path,
            mime_type=SNIFFED_MIME_TYPES[fmt],
            size_bytes=len(data),
        )

    async def write_request_uploads(
        self,
        primary: Optional[UploadFile],
        secondary: Optional[List[UploadFile]],
        *,
        primary_field: str = "product_image",
        secondary_field: str = "description_images",
    ) -> RequestUploads:
        """
        Записывает все файлы запроса. Если запись прерывается ошибкой,
        уже записанные файлы удаляются до проброса ошибки.
        """
        uploads = RequestUploads()
        try:
            uploads.primary = await self.write_upload(primary, primary_field)
            for item in secondary or []:
                descriptor = await self.write_upload(item, secondary_field)
                if descriptor:
                    uploads.secondary.append(descriptor)
        except Exception:
            await apply_deletions(self, uploads.paths)
            raise
        return uploads

    def _remove(self, path: Path) -> None:
        os.remove(path)

    async def delete_file(self, storage_path: str) -> None:
        path = self.resolve(storage_path)
        try:
            await run_in_threadpool(self._remove, path)
        except OSError as e:
            raise StorageDeleteError(storage_path, e.strerror or str(e)) from e
        logger.info("Удалён файл %s", storage_path)

    def get_disk_usage(self) -> dict:
        total_size = 0
        total_files = 0

        upload_dir = self.root / self.upload_subdir
        if upload_dir.exists():
            for f in upload_dir.iterdir():
                if f.is_file():
                    total_files += 1
                    total_size += f.stat().st_size

        return {
            "total_size_mb": round(total_size / (1024 * 1024), 1),
            "total_files": total_files,
        }
