"""Shared fixtures: a temporary SQLite database and media root per test."""

from __future__ import annotations

import struct
import zlib
from io import BytesIO
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from inventory_admin.core.config import Settings
from inventory_admin.main import create_app


def make_png(color=(200, 30, 30), size=(8, 8)) -> bytes:
    buffer = BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


def make_jpeg(color=(30, 30, 200), size=(8, 8)) -> bytes:
    buffer = BytesIO()
    Image.new("RGB", size, color).save(buffer, format="JPEG")
    return buffer.getvalue()


def _png_chunk(kind: bytes, payload: bytes) -> bytes:
    return (
        struct.pack(">I", len(payload))
        + kind
        + payload
        + struct.pack(">I", zlib.crc32(kind + payload) & 0xFFFFFFFF)
    )


def make_huge_png(width=30000, height=30000) -> bytes:
    """A few dozen bytes of PNG that declare a huge 1-bit image."""
    header = struct.pack(">IIBBBBB", width, height, 1, 0, 0, 0, 0)
    return (
        b"\x89PNG\r\n\x1a\n"
        + _png_chunk(b"IHDR", header)
        + _png_chunk(b"IDAT", zlib.compress(b"\x00"))
        + _png_chunk(b"IEND", b"")
    )


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'inventory.db'}",
        media_root=tmp_path / "media",
        create_tables=True,
    )


@pytest.fixture
def upload_dir(settings: Settings) -> Path:
    return settings.upload_dir


@pytest.fixture
def client(settings: Settings):
    app = create_app(settings)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def category(client: TestClient) -> dict:
    response = client.post(
        "/api/v1/categories/",
        json={"name": "Solar panels", "description": "A category for solar panels"},
    )
    assert response.status_code == 201
    return response.json()


@pytest.fixture
def product_form(category: dict) -> dict:
    return {
        "name": "Solar panel 1",
        "description": "A high-quality solar panel for home use",
        "sku": "SP-001",
        "category_id": str(category["id"]),
        "quantity": "10",
        "price": "500",
    }


def stored_files(upload_dir: Path) -> set:
    if not upload_dir.exists():
        return set()
    return {f"uploads/{p.name}" for p in upload_dir.iterdir() if p.is_file()}
