"""
Сверка изображений продукта.

reconcile_primary / reconcile_secondary - чистые функции. По текущему набору
изображений и запросу на изменение вычисляют новый набор и файлы к удалению.
apply_deletions удаляет файлы параллельно и только сообщает об ошибках:
успех изменения записи не зависит от очистки диска.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from inventory_admin.core.exceptions import StorageDeleteError
from inventory_admin.schemas.product_image import StoredImage, UploadDescriptor

logger = logging.getLogger(__name__)


@dataclass
class ImageUpdate:
    """Изменения изображений из одного запроса на обновление."""

    new_primary_image: Optional[UploadDescriptor] = None
    new_secondary_images: List[UploadDescriptor] = field(default_factory=list)
    deleted_secondary_image_ids: Set[int] = field(default_factory=set)


@dataclass
class ImagePlan:
    primary: StoredImage
    secondary: List[StoredImage]
    files_to_delete: Set[str]


@dataclass
class DeletionOutcome:
    deleted: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed


def reconcile_primary(
    current: StoredImage, uploaded: Optional[UploadDescriptor]
) -> Tuple[StoredImage, Set[str]]:
    if uploaded is None:
        return current, set()
    return StoredImage.from_upload(uploaded), {current.storage_path}


def reconcile_secondary(
    current: Sequence[StoredImage],
    deleted_ids: Iterable[int],
    uploaded: Sequence[UploadDescriptor],
) -> Tuple[List[StoredImage], Set[str]]:
    deleted_ids = set(deleted_ids)
    kept = [img for img in current if img.id not in deleted_ids]
    removed = [img for img in current if img.id in deleted_ids]

    unknown = deleted_ids - {img.id for img in current}
    if unknown:
        logger.debug("Игнорируются неизвестные id изображений: %s", sorted(unknown))

    added = [StoredImage.from_upload(item) for item in uploaded]
    return kept + added, {img.storage_path for img in removed}


def plan_update(
    current_primary: StoredImage,
    current_secondary: Sequence[StoredImage],
    update: ImageUpdate,
) -> ImagePlan:
    primary, primary_deletes = reconcile_primary(current_primary, update.new_primary_image)
    secondary, secondary_deletes = reconcile_secondary(
        current_secondary,
        update.deleted_secondary_image_ids,
        update.new_secondary_images,
    )
    return ImagePlan(
        primary=primary,
        secondary=secondary,
        files_to_delete=primary_deletes | secondary_deletes,
    )


async def apply_deletions(file_store, paths: Iterable[str]) -> DeletionOutcome:
    """
    Удаляет все файлы независимо друг от друга.
    Ошибки собираются и логируются, но не пробрасываются.
    """
    paths = sorted(set(paths))
    outcome = DeletionOutcome()
    if not paths:
        return outcome

    results = await asyncio.gather(
        *(file_store.delete_file(path) for path in paths),
        return_exceptions=True,
    )
    for path, result in zip(paths, results):
        if result is None:
            outcome.deleted.append(path)
        elif isinstance(result, StorageDeleteError):
            outcome.failed[path] = result.reason
        elif isinstance(result, Exception):
            outcome.failed[path] = str(result)
        else:
            raise result

    for path, reason in outcome.failed.items():
        logger.error("Не удалось удалить файл %s: %s", path, reason)
    return outcome
