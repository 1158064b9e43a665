from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from inventory_admin.utils.urls import category_url, product_url


class CategoryBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1)

    @field_validator("name", "description")
    @classmethod
    def strip_text(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Поле не может быть пустым")
        return v


class CategoryCreate(CategoryBase):
    pass


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, min_length=1)

    @field_validator("name", "description")
    @classmethod
    def strip_text(cls, v):
        if v is not None and not v.strip():
            raise ValueError("Поле не может быть пустым")
        return v.strip() if v else v


class CategoryResponse(CategoryBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    url: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, category) -> "CategoryResponse":
        return cls(
            id=category.id,
            name=category.name,
            description=category.description,
            url=category_url(category),
            created_at=category.created_at,
            updated_at=category.updated_at,
        )


class CategoryProductBrief(BaseModel):
    id: int
    name: str
    url: str

    @classmethod
    def from_model(cls, product) -> "CategoryProductBrief":
        return cls(id=product.id, name=product.name, url=product_url(product))


class CategoryDetail(CategoryResponse):
    """Категория вместе с её продуктами"""

    products: List[CategoryProductBrief] = []

    @classmethod
    def from_models(cls, category, products) -> "CategoryDetail":
        base = CategoryResponse.from_model(category)
        return cls(
            **base.model_dump(),
            products=[CategoryProductBrief.from_model(p) for p in products],
        )
