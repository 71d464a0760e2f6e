"""Tests for image task planning and the concurrent image batch."""

import asyncio

import pytest

from app.models import NO_DISH_STYLE, GenerationRequest, ImagePrompt
from app.services.image_processor import (
    ImageProcessor,
    build_filename,
    build_image_tasks,
    default_prompt,
)


class FakeImageService:
    """Succeeds for every task index not in fail_indices."""

    def __init__(self, fail_indices=(), raise_indices=()):
        self.fail_indices = set(fail_indices)
        self.raise_indices = set(raise_indices)
        self.calls = []

    async def generate_image(self, source_image, staging, prompt):
        index = len(self.calls)
        self.calls.append((source_image, staging, prompt))
        if index in self.raise_indices:
            raise RuntimeError("connection reset")
        if index in self.fail_indices:
            return {"success": False, "url": None, "error": "No image data returned from API"}
        return {"success": True, "url": "data:image/png;base64,aGVsbG8=", "error": None}


@pytest.fixture
def five_image_request(product_images):
    return GenerationRequest(
        product_name="머그컵",
        main_keyword="머그컵 추천",
        target_image_count=5,
        dish_image_count=2,
        product_images=product_images,
    )


def test_sources_are_reused_cyclically_and_dish_applies_to_first_tasks(five_image_request, product_images):
    tasks = build_image_tasks(five_image_request, [], "film look")

    assert [task.source_index for task in tasks] == [0, 1, 0, 1, 0]
    assert [task.source_image for task in tasks] == [product_images[i] for i in (0, 1, 0, 1, 0)]
    dish_tasks = [task.index for task in tasks if task.staging.dish != NO_DISH_STYLE]
    assert dish_tasks == [0, 1]
    assert all(task.staging.background_dna == "film look" for task in tasks)


def test_missing_prompts_get_placeholder(five_image_request):
    prompts = [ImagePrompt(nano_prompt="top-down", description="위에서")]
    tasks = build_image_tasks(five_image_request, prompts)

    assert tasks[0].prompt == prompts[0]
    assert tasks[3].prompt == default_prompt(3)
    assert tasks[3].prompt.description == "description 4"


def test_no_source_images_yields_no_tasks():
    request = GenerationRequest(product_name="x", target_image_count=3)
    assert build_image_tasks(request, []) == []


def test_partial_failure_keeps_only_successful_images(sample_request):
    request = sample_request.model_copy(update={"target_image_count": 6})
    service = FakeImageService(fail_indices={1, 3}, raise_indices={5})
    processor = ImageProcessor(service)

    images = asyncio.run(processor.generate_images(build_image_tasks(request, [])))

    assert len(service.calls) == 6
    assert len(images) == 3
    assert all(image.url for image in images)
    assert [image.filename for image in images] == ["냉동만두_1.png", "냉동만두_3.png", "냉동만두_5.png"]


def test_empty_batch_makes_no_calls():
    service = FakeImageService()
    assert asyncio.run(ImageProcessor(service).generate_images([])) == []
    assert service.calls == []


def test_regenerate_with_custom_background(sample_request, product_images):
    service = FakeImageService()
    processor = ImageProcessor(service)

    result = asyncio.run(processor.regenerate_image(sample_request, 3, "dna", custom_background="해변 피크닉"))

    source_image, staging, prompt = service.calls[0]
    assert source_image == product_images[1]
    assert staging.location == "해변 피크닉"
    assert staging.dish == sample_request.background_dish
    assert "해변 피크닉" in prompt.nano_prompt
    assert result.succeeded
    assert result.filename == "냉동만두_4.png"


@pytest.mark.parametrize("index", [0, 1, 2, 5])
def test_regenerate_always_uses_requested_dish(sample_request, index):
    service = FakeImageService()
    asyncio.run(ImageProcessor(service).regenerate_image(sample_request, index, "dna"))

    _, staging, _ = service.calls[0]
    assert staging.dish == sample_request.background_dish


def test_regenerate_keeps_previous_description(sample_request):
    processor = ImageProcessor(FakeImageService())
    result = asyncio.run(processor.regenerate_image(sample_request, 0, "dna", previous_description="이전 설명"))
    assert result.description == "이전 설명"


def test_regenerate_failure_returns_sentinel(sample_request):
    processor = ImageProcessor(FakeImageService(fail_indices={0}))
    result = asyncio.run(processor.regenerate_image(sample_request, 0, "dna"))
    assert not result.succeeded
    assert result.filename == "failed_0.png"


def test_filename_replaces_unsafe_characters():
    assert build_filename("무선 헤드셋/추천!", 0) == "무선_헤드셋_추천__1.png"
