"""Product create/update/delete flows and their effect on stored files."""

from __future__ import annotations

import logging

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import make_huge_png, make_jpeg, make_png, stored_files
from inventory_admin.crud import product as product_crud

PRODUCTS_URL = "/api/v1/products/"


def image_part(field: str, name: str, data: bytes = None, content_type: str = "image/png"):
    return (field, (name, data if data is not None else make_png(), content_type))


def create_product(client, form, *, secondary=2):
    files = [image_part("product_image", "p1.png")]
    files += [image_part("description_images", f"s{i + 1}.png") for i in range(secondary)]
    response = client.post(PRODUCTS_URL, data=form, files=files)
    assert response.status_code == 201, response.text
    return response.json()


def test_create_product_stores_primary_and_description_images(client, product_form, upload_dir):
    product = create_product(client, product_form)

    assert product["name"] == "Solar panel 1"
    assert product["url"] == f"/api/v1/products/{product['id']}"
    assert product["primary_image"]["file_name"].startswith("product_image-")
    assert len(product["description_images"]) == 2
    assert product["primary_image"]["url"].startswith("/media/uploads/")
    assert stored_files(upload_dir) == {
        product["primary_image"]["storage_path"],
        *(img["storage_path"] for img in product["description_images"]),
    }


def test_create_then_delete_removes_all_files(client, product_form, upload_dir):
    product = create_product(client, product_form)
    assert len(stored_files(upload_dir)) == 3

    response = client.delete(f"{PRODUCTS_URL}{product['id']}")

    assert response.status_code == 204
    assert stored_files(upload_dir) == set()
    assert client.get(f"{PRODUCTS_URL}{product['id']}").status_code == 404


def test_create_without_primary_image_is_rejected(client, product_form, upload_dir):
    response = client.post(
        PRODUCTS_URL,
        data=product_form,
        files=[image_part("description_images", "s1.png")],
    )

    assert response.status_code == 422
    assert "product_image" in response.json()["errors"]
    assert stored_files(upload_dir) == set()


def test_create_skips_files_of_other_types(client, product_form, upload_dir):
    response = client.post(
        PRODUCTS_URL,
        data=product_form,
        files=[
            image_part("product_image", "p1.jpg", make_jpeg(), "image/jpeg"),
            image_part("description_images", "notes.txt", b"hello", "text/plain"),
        ],
    )

    assert response.status_code == 201
    assert response.json()["description_images"] == []
    assert len(stored_files(upload_dir)) == 1


def test_create_with_huge_description_image_is_rejected(client, product_form, upload_dir):
    response = client.post(
        PRODUCTS_URL,
        data=product_form,
        files=[
            image_part("product_image", "p1.png"),
            image_part("description_images", "huge.png", make_huge_png()),
        ],
    )

    assert response.status_code == 422
    assert "description_images" in response.json()["errors"]
    assert stored_files(upload_dir) == set()
    assert client.get(PRODUCTS_URL).json() == []


def test_create_with_invalid_fields_deletes_uploads(client, product_form, upload_dir):
    form = {**product_form, "quantity": "-1", "price": "cheap", "name": ""}

    response = client.post(
        PRODUCTS_URL,
        data=form,
        files=[image_part("product_image", "p1.png"), image_part("description_images", "s1.png")],
    )

    assert response.status_code == 422
    errors = response.json()["errors"]
    assert {"quantity", "price", "name"} <= set(errors)
    assert stored_files(upload_dir) == set()


def test_zero_quantity_and_price_are_allowed(client, product_form):
    product = create_product(client, {**product_form, "quantity": "0", "price": "0"}, secondary=0)

    assert product["quantity"] == 0
    assert product["price"] == 0


def test_create_with_unknown_category_is_rejected(client, product_form, upload_dir):
    response = client.post(
        PRODUCTS_URL,
        data={**product_form, "category_id": "999"},
        files=[image_part("product_image", "p1.png")],
    )

    assert response.status_code == 422
    assert "category_id" in response.json()["errors"]
    assert stored_files(upload_dir) == set()


def test_duplicate_name_redirects_to_existing_product(client, product_form, upload_dir):
    product = create_product(client, product_form, secondary=0)
    before = stored_files(upload_dir)

    response = client.post(
        PRODUCTS_URL,
        data=product_form,
        files=[image_part("product_image", "again.png")],
        follow_redirects=False,
    )

    assert response.status_code == 303
    assert response.headers["location"] == product["url"]
    assert stored_files(upload_dir) == before


def test_update_replaces_primary_and_deletes_selected_images(client, product_form, upload_dir):
    product = create_product(client, product_form)
    p1 = product["primary_image"]
    s1, s2 = product["description_images"]

    response = client.put(
        f"{PRODUCTS_URL}{product['id']}",
        data={**product_form, "delete_images": [str(s1["id"])]},
        files=[image_part("product_image", "p2.png", make_png((10, 200, 10)))],
    )

    assert response.status_code == 200, response.text
    updated = response.json()
    assert updated["primary_image"]["storage_path"] != p1["storage_path"]
    assert updated["primary_image"]["file_name"].startswith("product_image-")
    assert [img["id"] for img in updated["description_images"]] == [s2["id"]]
    assert stored_files(upload_dir) == {
        updated["primary_image"]["storage_path"],
        s2["storage_path"],
    }


def test_update_appends_new_description_images_after_kept_ones(client, product_form):
    product = create_product(client, product_form)
    s1, s2 = product["description_images"]

    response = client.put(
        f"{PRODUCTS_URL}{product['id']}",
        data={**product_form, "price": "450.5"},
        files=[image_part("description_images", "s3.png")],
    )

    assert response.status_code == 200
    updated = response.json()
    assert updated["price"] == 450.5
    assert updated["primary_image"] == product["primary_image"]
    images = updated["description_images"]
    assert [img["id"] for img in images[:2]] == [s1["id"], s2["id"]]
    assert len(images) == 3


def test_update_with_invalid_price_keeps_record_and_drops_upload(client, product_form, upload_dir):
    product = create_product(client, product_form)
    before = stored_files(upload_dir)

    response = client.put(
        f"{PRODUCTS_URL}{product['id']}",
        data={**product_form, "price": "not-a-number"},
        files=[image_part("product_image", "p2.png")],
    )

    assert response.status_code == 422
    assert "price" in response.json()["errors"]
    assert stored_files(upload_dir) == before
    assert client.get(product["url"]).json() == product


def test_update_over_image_limit_is_rejected(client, product_form, upload_dir, settings):
    product = create_product(client, product_form)
    before = stored_files(upload_dir)
    extra = settings.max_description_images - 1

    response = client.put(
        f"{PRODUCTS_URL}{product['id']}",
        data=product_form,
        files=[image_part("description_images", f"n{i}.png") for i in range(extra)],
    )

    assert response.status_code == 422
    assert "description_images" in response.json()["errors"]
    assert stored_files(upload_dir) == before


def test_update_missing_product_deletes_uploads(client, product_form, upload_dir):
    response = client.put(
        f"{PRODUCTS_URL}12345",
        data=product_form,
        files=[image_part("product_image", "p2.png")],
    )

    assert response.status_code == 404
    assert stored_files(upload_dir) == set()


def test_failed_record_write_keeps_old_files_and_drops_new(
    client, product_form, upload_dir, monkeypatch
):
    product = create_product(client, product_form)
    before = stored_files(upload_dir)

    async def broken_update(*args, **kwargs):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(product_crud, "find_by_id_and_update", broken_update)

    with pytest.raises(RuntimeError):
        client.put(
            f"{PRODUCTS_URL}{product['id']}",
            data={**product_form, "delete_images": [str(product["description_images"][0]["id"])]},
            files=[image_part("product_image", "p2.png")],
        )

    assert stored_files(upload_dir) == before


def test_failed_rollback_still_drops_new_uploads(client, product_form, upload_dir, monkeypatch):
    product = create_product(client, product_form)
    before = stored_files(upload_dir)

    async def broken_update(*args, **kwargs):
        raise RuntimeError("database unavailable")

    async def broken_rollback(self):
        raise ConnectionError("connection lost")

    monkeypatch.setattr(product_crud, "find_by_id_and_update", broken_update)
    monkeypatch.setattr(AsyncSession, "rollback", broken_rollback)

    with pytest.raises(RuntimeError):
        client.put(
            f"{PRODUCTS_URL}{product['id']}",
            data=product_form,
            files=[image_part("product_image", "p2.png"), image_part("description_images", "s3.png")],
        )

    assert stored_files(upload_dir) == before


def test_delete_succeeds_when_file_cleanup_fails(client, product_form, upload_dir):
    product = create_product(client, product_form)
    (upload_dir / product["primary_image"]["file_name"]).unlink()

    response = client.delete(f"{PRODUCTS_URL}{product['id']}")

    assert response.status_code == 204
    assert stored_files(upload_dir) == set()
    assert client.get(product["url"]).status_code == 404


def test_successful_delete_logs_no_warnings(client, product_form, caplog):
    product = create_product(client, product_form)

    with caplog.at_level(logging.INFO, logger="inventory_admin"):
        response = client.delete(product["url"])

    assert response.status_code == 204
    records = [r for r in caplog.records if r.name.startswith("inventory_admin")]
    assert any("Удалён продукт" in r.getMessage() for r in records)
    assert [r for r in records if r.levelno >= logging.WARNING] == []


def test_delete_missing_product_is_404(client):
    assert client.delete(f"{PRODUCTS_URL}777").status_code == 404


def test_list_products_sorted_by_name(client, product_form):
    create_product(client, {**product_form, "name": "Zeta panel"}, secondary=0)
    create_product(client, {**product_form, "name": "Alpha panel"}, secondary=0)

    names = [p["name"] for p in client.get(PRODUCTS_URL).json()]

    assert names == ["Alpha panel", "Zeta panel"]


def test_disk_usage_counts_uploads(client, product_form):
    create_product(client, product_form)

    usage = client.get(f"{PRODUCTS_URL}stats/disk-usage").json()

    assert usage["total_files"] == 3
