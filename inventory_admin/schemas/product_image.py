from typing import Optional

from pydantic import BaseModel, ConfigDict, computed_field

from inventory_admin.utils.urls import media_url


class UploadDescriptor(BaseModel):
    """Файл, принятый и записанный на диск слоем загрузки."""

    original_name: str
    file_name: str
    storage_path: str
    mime_type: str
    size_bytes: int


class StoredImage(BaseModel):
    """Изображение, на которое ссылается продукт. id нет у ещё не сохранённых."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: Optional[int] = None
    file_name: str
    storage_path: str
    mime_type: str

    @classmethod
    def from_upload(cls, upload: UploadDescriptor) -> "StoredImage":
        return cls(
            file_name=upload.file_name,
            storage_path=upload.storage_path,
            mime_type=upload.mime_type,
        )


class StoredImageResponse(StoredImage):
    @computed_field
    @property
    def url(self) -> str:
        return media_url(self.storage_path)
