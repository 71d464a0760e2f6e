"""Shared test fixtures and configuration."""

import io
import os
import sys
from pathlib import Path

import pytest
from PIL import Image

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("GEMINI_API_KEY", "test_key")

from app.models import GenerationRequest, Persona, ProductImage  # noqa: E402


def make_image_bytes(fmt="PNG", color="red", size=(8, 8)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color=color).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def png_bytes():
    """Return a tiny PNG image as bytes."""
    return make_image_bytes("PNG")


@pytest.fixture
def product_images():
    """Return two distinguishable product photos."""
    return (
        ProductImage(data=make_image_bytes("PNG", "red"), mime_type="image/png"),
        ProductImage(data=make_image_bytes("PNG", "blue"), mime_type="image/png"),
    )


@pytest.fixture
def complete_persona():
    return Persona(
        target_audience="자취하는 직장인",
        pain_point="요리할 시간이 없음",
        solution_benefit="5분 완성",
        writing_tone="친근한 정보 전달형",
        call_to_action="지금 확인해보세요",
    )


@pytest.fixture
def sample_request(product_images, complete_persona):
    """Return a FULL mode request with two source photos."""
    return GenerationRequest(
        product_name="비비고 왕교자",
        main_keyword="냉동만두",
        sub_keywords="에어프라이어, 간편식",
        persona=complete_persona,
        target_image_count=4,
        dish_image_count=2,
        product_images=product_images,
    )
