import pytest
from fastapi import HTTPException

from app.core.storage_utils import (
    MAX_IMAGE_BYTES,
    generate_filename,
    path_from_public_url,
    validate_image,
)


def test_validate_image_returns_extension():
    assert validate_image("image/jpeg", b"x") == "jpg"
    assert validate_image("image/webp", b"x") == "webp"


def test_validate_image_rejects_type_and_size():
    with pytest.raises(HTTPException) as bad_type:
        validate_image("application/pdf", b"x")
    assert bad_type.value.status_code == 400

    with pytest.raises(HTTPException) as too_big:
        validate_image("image/png", b"0" * (MAX_IMAGE_BYTES + 1))
    assert too_big.value.status_code == 413


def test_path_from_public_url():
    url = "https://proj.supabase.co/storage/v1/object/public/assets/products/p1/hero.png"
    assert path_from_public_url(url) == "products/p1/hero.png"
    assert path_from_public_url("https://cdn.example.com/wheel.png") is None


def test_generated_filenames_are_unique():
    first, second = generate_filename("png"), generate_filename("png")
    assert first.endswith(".png")
    assert first != second
