"""
Blog content package generator

One generation cycle: resolve candidates, run the prompt through the fallback
executor, normalize the article, synthesize the product photos and assemble
the GenerationResult.
"""
import logging
import math
from typing import Optional, Tuple

from app.exceptions import GenerationError
from app.models import (
    DEFAULT_BACKGROUND_DNA,
    DiagnosisReport,
    GenerationMode,
    GenerationRequest,
    GenerationResult,
    GroundingSource,
    ImageResult,
    ParsedContent,
    Persona,
)
from app.services.content_normalizer import ContentNormalizer
from app.services.fallback_executor import ExecutionResult, FallbackExecutor
from app.services.gemini import GeminiClient
from app.services.image_processor import ImageProcessor, build_image_tasks
from app.services.nanobanana import NanoBananaService
from app.services.prompt_generator import PromptGenerator
from app.utils.logging_config import log_cycle_event, log_error_with_context, new_cycle_id
from app.utils.validators import validate_generation_request

logger = logging.getLogger(__name__)

IMAGE_ONLY_TITLE = "{product_name} 이미지 생성 결과"
IMAGE_ONLY_BODY = "이미지 전용 모드로 생성되었습니다."
FULL_SUMMARY = "SEO/GEO 최적화 5대 조건 및 사용자 요청 흐름이 반영되었습니다."
IMAGE_ONLY_SUMMARY = "이미지 전용 모드로 합성이 완료되었습니다."


def _number(value, default: float = 0) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if math.isfinite(number) else default


class BlogGenerator:
    """Runs generation cycles for one API key"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        executor: Optional[FallbackExecutor] = None,
        image_processor: Optional[ImageProcessor] = None,
        prompt_generator: Optional[PromptGenerator] = None,
        normalizer: Optional[ContentNormalizer] = None
    ):
        self.executor = executor or FallbackExecutor(GeminiClient(api_key=api_key))
        self.image_processor = image_processor or ImageProcessor(NanoBananaService(api_key=api_key))
        self.prompt_generator = prompt_generator or PromptGenerator()
        self.normalizer = normalizer or ContentNormalizer()

    def _validate(self, request: GenerationRequest):
        is_valid, error = validate_generation_request(request)
        if not is_valid:
            raise ValueError(error)

    async def _run_text(self, request: GenerationRequest, cycle_id: str, content_only: bool = False) -> ExecutionResult:
        prompt = self.prompt_generator.build_prompt(request, content_only=content_only)
        log_cycle_event(logger, cycle_id, "Text generation started", f"mode={request.generation_mode.value}")
        try:
            execution = await self.executor.execute(prompt)
        except GenerationError as e:
            log_error_with_context(logger, e, "Text generation failed", cycle_id)
            raise

        log_cycle_event(
            logger, cycle_id, "Text generation finished",
            f"model={execution.label} failed_candidates={len(execution.failed_attempts)}"
        )
        return execution

    def _compose_text(self, request: GenerationRequest, parsed: ParsedContent) -> Tuple[str, str, Persona]:
        if request.generation_mode == GenerationMode.IMAGE_ONLY:
            return IMAGE_ONLY_TITLE.format(product_name=request.product_name), IMAGE_ONLY_BODY, request.persona

        title, body = self.normalizer.normalize(parsed.title, parsed.body, request.main_keyword, request.sub_keywords)
        persona = parsed.persona if parsed.persona and parsed.persona.is_complete() else request.persona
        return title, body, persona

    def _build_report(
        self,
        request: GenerationRequest,
        parsed: ParsedContent,
        body: str,
        background_dna: str,
        image_count: int
    ) -> DiagnosisReport:
        raw = parsed.report or {}
        is_image_only = request.generation_mode == GenerationMode.IMAGE_ONLY
        avg_word_count = int(_number(raw.get("avgWordCount"))) or len(body.split())
        return DiagnosisReport(
            ranking_probability=_number(raw.get("rankingProbability")),
            safety_index=_number(raw.get("safetyIndex")),
            suggested_category=str(raw.get("suggestedCategory") or ""),
            analysis_summary=IMAGE_ONLY_SUMMARY if is_image_only else FULL_SUMMARY,
            background_dna=background_dna,
            avg_word_count=avg_word_count,
            produced_image_count=image_count,
        )

    def _assemble(
        self,
        request: GenerationRequest,
        execution: ExecutionResult,
        images: list
    ) -> GenerationResult:
        parsed = execution.parsed
        background_dna = parsed.background_dna or DEFAULT_BACKGROUND_DNA
        title, body, persona = self._compose_text(request, parsed)
        return GenerationResult(
            title=title,
            body=body,
            persona=persona,
            images=images,
            report=self._build_report(request, parsed, body, background_dna, len(images)),
            mode=request.generation_mode,
            grounding_sources=[GroundingSource(**source) for source in execution.grounding_sources],
            model_label=execution.label,
        )

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        """
        Run a full generation cycle (article and/or images).

        Raises:
            ValueError: If the request is invalid
            FatalUpstreamError: On a systemic upstream failure
            AllCandidatesExhausted: When no model candidate produced valid content
        """
        cycle_id = new_cycle_id()
        self._validate(request)
        log_cycle_event(
            logger, cycle_id, "Generation started",
            f"product={request.product_name[:50]} images={request.target_image_count}"
        )

        execution = await self._run_text(request, cycle_id)
        parsed = execution.parsed

        tasks = build_image_tasks(request, parsed.image_prompts, parsed.background_dna or DEFAULT_BACKGROUND_DNA)
        images = await self.image_processor.generate_images(tasks)
        log_cycle_event(logger, cycle_id, "Images generated", f"{len(images)}/{len(tasks)}")

        return self._assemble(request, execution, images)

    async def regenerate_content(self, request: GenerationRequest, previous: GenerationResult) -> GenerationResult:
        """
        Regenerate the article only, keeping the previous images.

        The request's revision_comment is passed to the model when present.
        """
        cycle_id = new_cycle_id()
        self._validate(request)
        log_cycle_event(logger, cycle_id, "Content regeneration started", f"revision={bool(request.revision_comment)}")

        execution = await self._run_text(request, cycle_id, content_only=True)
        return self._assemble(request, execution, list(previous.images))

    async def regenerate_image(
        self,
        request: GenerationRequest,
        result: GenerationResult,
        index: int,
        custom_background: Optional[str] = None
    ) -> GenerationResult:
        """
        Regenerate one image of a previous result.

        Args:
            request: Request of the original cycle
            result: Result holding the image to replace
            index: Position in result.images
            custom_background: Optional background description replacing the location

        Returns:
            New GenerationResult with the slot replaced

        Raises:
            IndexError: If index is outside result.images
            RuntimeError: If the image call failed
        """
        if index < 0 or index >= len(result.images):
            raise IndexError(f"No image at position {index}")

        new_image: ImageResult = await self.image_processor.regenerate_image(
            request,
            index,
            result.report.background_dna,
            previous_description=result.images[index].description,
            custom_background=custom_background,
        )
        if not new_image.succeeded:
            raise RuntimeError("이미지 재생성에 실패했습니다.")

        images = list(result.images)
        images[index] = new_image
        return result.model_copy(update={"images": images})
