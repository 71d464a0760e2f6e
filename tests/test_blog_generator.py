"""Tests for the end-to-end generation cycle with fake collaborators."""

import asyncio

import pytest

from app.exceptions import AllCandidatesExhausted, FatalUpstreamError
from app.models import (
    DEFAULT_BACKGROUND_DNA,
    GenerationMode,
    ImagePrompt,
    ImageResult,
    ParsedContent,
    Persona,
)
from app.services.blog_generator import (
    FULL_SUMMARY,
    IMAGE_ONLY_BODY,
    IMAGE_ONLY_SUMMARY,
    BlogGenerator,
)
from app.services.fallback_executor import ExecutionResult
from app.services.image_processor import ImageProcessor


class FakeExecutor:
    def __init__(self, parsed=None, error=None, label="v1/gemini-2.5-flash", grounding_sources=None):
        self.parsed = parsed
        self.error = error
        self.label = label
        self.grounding_sources = grounding_sources or []
        self.prompts = []

    async def execute(self, prompt, candidates=None):
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        return ExecutionResult(
            parsed=self.parsed,
            label=self.label,
            failed_attempts=["v1/other-model"],
            grounding_sources=self.grounding_sources,
        )


class FakeImageService:
    def __init__(self, fail_indices=()):
        self.fail_indices = set(fail_indices)
        self.calls = []

    async def generate_image(self, source_image, staging, prompt):
        index = len(self.calls)
        self.calls.append(staging)
        if index in self.fail_indices:
            return {"success": False, "url": None, "error": "blocked"}
        return {"success": True, "url": f"data:image/png;base64,aW1n{index}", "error": None}


def make_parsed(**overrides):
    values = {
        "title": "에어프라이어 만두 후기",
        "body": "**바삭한** 만두를 소개합니다.",
        "image_prompts": [ImagePrompt(nano_prompt=f"angle {i}", description=f"설명 {i}") for i in range(6)],
        "background_dna": "warm kitchen film look",
        "report": {"rankingProbability": 92, "safetyIndex": "88", "suggestedCategory": "요리", "avgWordCount": 1600},
    }
    values.update(overrides)
    return ParsedContent(**values)


def make_generator(executor, image_service=None):
    return BlogGenerator(
        executor=executor,
        image_processor=ImageProcessor(image_service or FakeImageService()),
    )


def test_full_cycle_assembles_result(sample_request):
    executor = FakeExecutor(make_parsed(), grounding_sources=[{"title": "출처", "url": "https://example.com"}])
    result = asyncio.run(make_generator(executor).generate(sample_request))

    assert result.mode == GenerationMode.FULL
    assert result.title.startswith("냉동만두")
    assert "에어프라이어" in result.title
    assert len(result.title) <= 20
    assert result.body.startswith(f"{result.title}.\n\n")
    assert "**" not in result.body
    assert len(result.images) == 4
    assert result.report.produced_image_count == 4
    assert result.report.ranking_probability == 92
    assert result.report.safety_index == 88
    assert result.report.avg_word_count == 1600
    assert result.report.background_dna == "warm kitchen film look"
    assert result.report.analysis_summary == FULL_SUMMARY
    assert result.grounding_sources[0].url == "https://example.com"
    assert result.model_label == "v1/gemini-2.5-flash"


def test_partial_image_failure_is_reflected_in_report(sample_request):
    request = sample_request.model_copy(update={"target_image_count": 6})
    generator = make_generator(FakeExecutor(make_parsed()), FakeImageService(fail_indices={0, 2, 4}))

    result = asyncio.run(generator.generate(request))

    assert len(result.images) == 3
    assert all(image.url for image in result.images)
    assert result.report.produced_image_count == 3


def test_incomplete_model_persona_falls_back_to_request(sample_request):
    parsed = make_parsed(persona=Persona(target_audience="다른 독자"))
    result = asyncio.run(make_generator(FakeExecutor(parsed)).generate(sample_request))
    assert result.persona == sample_request.persona


def test_complete_model_persona_is_used(sample_request, complete_persona):
    model_persona = complete_persona.model_copy(update={"target_audience": "캠핑족"})
    result = asyncio.run(make_generator(FakeExecutor(make_parsed(persona=model_persona))).generate(sample_request))
    assert result.persona.target_audience == "캠핑족"


def test_missing_report_values_use_defaults(sample_request):
    parsed = make_parsed(report={"rankingProbability": "n/a"}, background_dna=None, body="하나 둘 셋")
    result = asyncio.run(make_generator(FakeExecutor(parsed)).generate(sample_request))

    assert result.report.ranking_probability == 0
    assert result.report.suggested_category == ""
    assert result.report.background_dna == DEFAULT_BACKGROUND_DNA
    assert result.report.avg_word_count == len(result.body.split())


def test_non_finite_report_values_use_defaults(sample_request):
    parsed = make_parsed(report={"avgWordCount": "NaN", "rankingProbability": "inf", "safetyIndex": float("-inf")})
    result = asyncio.run(make_generator(FakeExecutor(parsed)).generate(sample_request))

    assert result.report.ranking_probability == 0
    assert result.report.safety_index == 0
    assert result.report.avg_word_count == len(result.body.split())
    assert result.report.produced_image_count == 4


def test_image_only_mode_uses_fixed_text(sample_request):
    request = sample_request.model_copy(update={"generation_mode": GenerationMode.IMAGE_ONLY})
    executor = FakeExecutor(make_parsed())
    result = asyncio.run(make_generator(executor).generate(request))

    assert result.title == "비비고 왕교자 이미지 생성 결과"
    assert result.body == IMAGE_ONLY_BODY
    assert result.persona == request.persona
    assert result.report.analysis_summary == IMAGE_ONLY_SUMMARY
    assert "Photographer" in executor.prompts[0]


def test_invalid_request_raises_before_any_call(sample_request):
    request = sample_request.model_copy(update={"main_keyword": ""})
    executor = FakeExecutor(make_parsed())

    with pytest.raises(ValueError):
        asyncio.run(make_generator(executor).generate(request))
    assert executor.prompts == []


@pytest.mark.parametrize("error", [
    FatalUpstreamError("v1/gemini-2.5-flash", "API key not valid"),
    AllCandidatesExhausted(["v1/a"], "v1/a -> not found"),
])
def test_executor_errors_propagate_without_image_calls(sample_request, error):
    service = FakeImageService()
    with pytest.raises(type(error)):
        asyncio.run(make_generator(FakeExecutor(error=error), service).generate(sample_request))
    assert service.calls == []


def test_regenerate_content_keeps_images(sample_request):
    previous = asyncio.run(make_generator(FakeExecutor(make_parsed())).generate(sample_request))
    request = sample_request.model_copy(update={"revision_comment": "더 짧게 써주세요"})
    executor = FakeExecutor(make_parsed(title="새 제목", body="새 본문"))
    service = FakeImageService()

    result = asyncio.run(make_generator(executor, service).regenerate_content(request, previous))

    assert result.images == previous.images
    assert result.report.produced_image_count == len(previous.images)
    assert "새 본문" in result.body
    assert "더 짧게 써주세요" in executor.prompts[0]
    assert service.calls == []


def test_regenerate_image_replaces_one_slot(sample_request):
    previous = asyncio.run(make_generator(FakeExecutor(make_parsed())).generate(sample_request))
    service = FakeImageService()

    result = asyncio.run(make_generator(FakeExecutor(make_parsed()), service).regenerate_image(
        sample_request, previous, 1, custom_background="캠핑장"
    ))

    assert service.calls[0].location == "캠핑장"
    assert result.images[0] == previous.images[0]
    assert result.images[1].description == "캠핑장 배경으로 재생성된 이미지"
    assert previous.images[1].description == "설명 1"


def test_regenerate_image_failure_raises(sample_request):
    previous = asyncio.run(make_generator(FakeExecutor(make_parsed())).generate(sample_request))
    generator = make_generator(FakeExecutor(make_parsed()), FakeImageService(fail_indices={0}))

    with pytest.raises(RuntimeError):
        asyncio.run(generator.regenerate_image(sample_request, previous, 0))


def test_regenerate_image_rejects_unknown_slot(sample_request):
    previous = asyncio.run(make_generator(FakeExecutor(make_parsed())).generate(sample_request))
    with pytest.raises(IndexError):
        asyncio.run(make_generator(FakeExecutor(make_parsed())).regenerate_image(sample_request, previous, 10))


def test_image_result_decodes_data_url():
    image = ImageResult(url="data:image/png;base64,aGVsbG8=", filename="a.png")
    assert image.image_bytes() == b"hello"
    assert ImageResult(url="https://example.com/a.png", filename="a.png").image_bytes() is None
