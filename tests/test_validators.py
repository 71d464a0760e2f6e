"""Tests for caller input validation."""

from app.models import GenerationMode, GenerationRequest, ProductImage
from app.utils.validators import validate_generation_request, validate_image_file


def test_valid_request(sample_request):
    assert validate_generation_request(sample_request) == (True, None)


def test_missing_product_name(sample_request):
    is_valid, error = validate_generation_request(sample_request.model_copy(update={"product_name": " "}))
    assert not is_valid
    assert "제품명" in error


def test_main_keyword_required_only_in_full_mode(sample_request):
    request = sample_request.model_copy(update={"main_keyword": ""})
    assert not validate_generation_request(request)[0]

    image_only = request.model_copy(update={"generation_mode": GenerationMode.IMAGE_ONLY})
    assert validate_generation_request(image_only) == (True, None)


def test_at_least_one_photo_required():
    request = GenerationRequest(product_name="x", main_keyword="y")
    is_valid, error = validate_generation_request(request)
    assert not is_valid
    assert "사진" in error


def test_non_image_file_rejected(png_bytes):
    request = GenerationRequest(
        product_name="x",
        main_keyword="y",
        product_images=(ProductImage(data=png_bytes, mime_type="application/pdf"),),
    )
    is_valid, error = validate_generation_request(request)
    assert not is_valid
    assert "application/pdf" in error


def test_empty_file_rejected():
    request = GenerationRequest(
        product_name="x",
        main_keyword="y",
        product_images=(ProductImage(data=b"", mime_type="image/png"),),
    )
    assert not validate_generation_request(request)[0]


def test_image_file_size_limit():
    assert validate_image_file(1024, max_size=2048) == (True, None)
    is_valid, error = validate_image_file(4 * 1024 * 1024, max_size=2 * 1024 * 1024)
    assert not is_valid
    assert "2MB" in error
