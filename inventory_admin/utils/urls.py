"""Канонические пути записей и медиа-файлов."""

API_PREFIX = "/api/v1"
MEDIA_URL = "/media"


def product_url(product) -> str:
    return f"{API_PREFIX}/products/{product.id}"


def category_url(category) -> str:
    return f"{API_PREFIX}/categories/{category.id}"


def media_url(storage_path: str) -> str:
    return f"{MEDIA_URL}/{storage_path.lstrip('/')}"
