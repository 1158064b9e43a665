from typing import Any, Dict, List, NoReturn, Optional

from fastapi import HTTPException
from starlette import status


def raise_404(message: str = "Not found", *, entity: str = None, id: Any = None) -> NoReturn:
    if entity and id:
        message = f"{entity} {id} not found"
    elif entity:
        message = f"{entity} not found"
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=message)


def raise_409(message: str = "Conflict", **extra: Any) -> NoReturn:
    detail: Any = {"message": message, **extra} if extra else message
    raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail)


# === Доменные ошибки ===


class InventoryError(Exception):
    """Базовая ошибка приложения."""


class FormValidationError(InventoryError):
    """Ошибки полей формы: {поле: [сообщения]}."""

    def __init__(self, errors: Dict[str, List[str]]):
        self.errors = errors
        super().__init__("; ".join(f"{k}: {', '.join(v)}" for k, v in errors.items()))

    @classmethod
    def single(cls, field: str, message: str) -> "FormValidationError":
        return cls({field: [message]})

    @classmethod
    def from_pydantic(cls, exc) -> "FormValidationError":
        errors: Dict[str, List[str]] = {}
        for err in exc.errors():
            field = str(err["loc"][0]) if err["loc"] else "__all__"
            errors.setdefault(field, []).append(err["msg"])
        return cls(errors)


class NotFoundError(InventoryError):
    def __init__(self, entity: str, id: Any):
        self.entity = entity
        self.id = id
        super().__init__(f"{entity} {id} not found")


class StorageWriteError(InventoryError):
    def __init__(self, path: Optional[str], reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to write {path}: {reason}")


class StorageDeleteError(InventoryError):
    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to delete {path}: {reason}")


class DuplicateNameError(InventoryError):
    """Запись с таким именем уже есть; url указывает на неё."""

    def __init__(self, entity: str, name: str, url: str):
        self.entity = entity
        self.name = name
        self.url = url
        super().__init__(f"{entity} '{name}' already exists")
