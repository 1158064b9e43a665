from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from inventory_admin.schemas.product_image import StoredImageResponse
from inventory_admin.utils.urls import category_url, product_url


class ProductForm(BaseModel):
    """Поля формы продукта (создание и обновление)"""

    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1)
    sku: str = Field(..., min_length=1, max_length=64)
    category_id: int
    # Границы включительные: 0 допустим
    quantity: int = Field(..., ge=0)
    price: float = Field(..., ge=0)

    @field_validator("name", "description", "sku", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v


class CategoryBrief(BaseModel):
    id: int
    name: str
    url: str


class ProductListItem(BaseModel):
    id: int
    name: str
    url: str
    price: float
    quantity: int
    category: Optional[CategoryBrief] = None
    primary_image: Optional[StoredImageResponse] = None

    @classmethod
    def from_model(cls, product) -> "ProductListItem":
        return cls(
            id=product.id,
            name=product.name,
            url=product_url(product),
            price=product.price,
            quantity=product.quantity,
            category=_category_brief(product.category),
            primary_image=_image(product.primary_image),
        )


class ProductDetail(BaseModel):
    id: int
    name: str
    description: str
    sku: str
    quantity: int
    price: float
    url: str
    category_id: int
    category: Optional[CategoryBrief] = None
    primary_image: Optional[StoredImageResponse] = None
    description_images: List[StoredImageResponse] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, product) -> "ProductDetail":
        return cls(
            id=product.id,
            name=product.name,
            description=product.description,
            sku=product.sku,
            quantity=product.quantity,
            price=product.price,
            url=product_url(product),
            category_id=product.category_id,
            category=_category_brief(product.category),
            primary_image=_image(product.primary_image),
            description_images=[_image(img) for img in product.description_images],
            created_at=product.created_at,
            updated_at=product.updated_at,
        )


def _category_brief(category) -> Optional[CategoryBrief]:
    if category is None:
        return None
    return CategoryBrief(id=category.id, name=category.name, url=category_url(category))


def _image(image) -> Optional[StoredImageResponse]:
    if image is None:
        return None
    return StoredImageResponse.model_validate(image)
