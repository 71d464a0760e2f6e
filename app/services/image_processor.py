"""
Image Synthesis Orchestrator
"""
import logging
import asyncio
import re
from typing import List, Optional, Sequence

from app.models import (
    NO_DISH_STYLE,
    DEFAULT_BACKGROUND_DNA,
    GenerationRequest,
    ImagePrompt,
    ImageResult,
    ImageTask,
    StagingConfig,
)
from app.services.nanobanana import NanoBananaService

logger = logging.getLogger(__name__)

FAILED_DESCRIPTION = "이미지 생성 실패"
FILENAME_UNSAFE_PATTERN = re.compile(r"[^\w가-힣]")


def build_filename(keyword: str, index: int) -> str:
    safe_keyword = FILENAME_UNSAFE_PATTERN.sub("_", keyword or "image")
    return f"{safe_keyword}_{index + 1}.png"


def failed_result(index: int) -> ImageResult:
    return ImageResult(url="", filename=f"failed_{index}.png", description=FAILED_DESCRIPTION, nano_prompt="")


def default_prompt(index: int) -> ImagePrompt:
    return ImagePrompt(nano_prompt="casual", description=f"description {index + 1}")


def batch_dish(request: GenerationRequest, index: int) -> str:
    # The first dish_image_count images get dish staging, the rest do not
    return request.background_dish if index < request.dish_image_count else NO_DISH_STYLE


def build_staging(
    request: GenerationRequest,
    dish: str,
    background_dna: str,
    location: Optional[str] = None
) -> StagingConfig:
    return StagingConfig(
        location=location or request.background_location,
        color=request.background_color,
        material=request.background_material,
        dish=dish,
        background_dna=background_dna or DEFAULT_BACKGROUND_DNA,
    )


def build_image_tasks(
    request: GenerationRequest,
    image_prompts: Sequence[ImagePrompt],
    background_dna: str = DEFAULT_BACKGROUND_DNA
) -> List[ImageTask]:
    """
    Map target image slots onto source photos and scene prompts.

    Source photos are reused cyclically; missing prompts get a placeholder.
    """
    sources = request.product_images
    if not sources:
        logger.warning("No source photos supplied, no image tasks created")
        return []

    tasks = []
    for i in range(request.target_image_count):
        source_index = i % len(sources)
        tasks.append(ImageTask(
            index=i,
            source_image=sources[source_index],
            source_index=source_index,
            staging=build_staging(request, batch_dish(request, i), background_dna),
            prompt=image_prompts[i] if i < len(image_prompts) else default_prompt(i),
            file_keyword=request.file_keyword,
        ))
    return tasks


class ImageProcessor:
    def __init__(self, image_service: Optional[NanoBananaService] = None):
        self.nanobanana = image_service or NanoBananaService()

    async def _generate_single_variant(self, task: ImageTask) -> ImageResult:
        """
        Run one image task. Never raises: failures become a sentinel result.
        """
        try:
            logger.info(f"Generating image {task.index + 1} from source photo {task.source_index + 1}")
            res = await self.nanobanana.generate_image(task.source_image, task.staging, task.prompt)
        except Exception as e:
            logger.error(f"Failed to generate image {task.index + 1}: {e}", exc_info=True)
            return failed_result(task.index)

        if not res.get("success") or not res.get("url"):
            logger.warning(f"Image {task.index + 1} failed: {res.get('error')}")
            return failed_result(task.index)

        return ImageResult(
            url=res["url"],
            filename=build_filename(task.file_keyword, task.index),
            description=task.prompt.description,
            nano_prompt=task.prompt.nano_prompt,
        )

    async def generate_images(self, tasks: Sequence[ImageTask]) -> List[ImageResult]:
        """
        Dispatch all tasks concurrently and keep the successful ones.

        Returns:
            Successful results in task order
        """
        if not tasks:
            return []

        logger.info(f"Generating {len(tasks)} images in parallel")
        results = await asyncio.gather(*(self._generate_single_variant(task) for task in tasks))

        images = [image for image in results if image.succeeded]
        logger.info(f"Image batch completed: {len(images)}/{len(tasks)} successful")
        return images

    async def regenerate_image(
        self,
        request: GenerationRequest,
        index: int,
        background_dna: str,
        previous_description: Optional[str] = None,
        custom_background: Optional[str] = None
    ) -> ImageResult:
        """
        Regenerate one image slot, optionally with a caller-supplied background.

        Args:
            request: Original generation request
            index: Slot to regenerate (selects source photo index mod n)
            background_dna: Style DNA from the original cycle
            previous_description: Description of the image being replaced
            custom_background: Background description replacing the location

        Returns:
            ImageResult, a sentinel with empty url on failure
        """
        if not request.product_images:
            raise ValueError("No source photos to regenerate from")

        if custom_background:
            prompt = ImagePrompt(
                nano_prompt=f"Natural indoor scene with {custom_background}. iPhone snapshot style.",
                description=f"{custom_background} 배경으로 재생성된 이미지",
            )
        else:
            prompt = ImagePrompt(
                nano_prompt="High quality commercial photography, iPhone snapshot style",
                description=previous_description or "다시 생성된 이미지",
            )

        source_index = index % len(request.product_images)
        task = ImageTask(
            index=index,
            source_image=request.product_images[source_index],
            source_index=source_index,
            # index points into the filtered result list, so the batch dish rule does not apply
            staging=build_staging(request, request.background_dish, background_dna, location=custom_background),
            prompt=prompt,
            file_keyword=request.file_keyword,
        )
        logger.info(f"Regenerating image {index + 1} (custom background: {bool(custom_background)})")
        return await self._generate_single_variant(task)
