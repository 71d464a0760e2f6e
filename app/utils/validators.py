from typing import Optional

from app.config import settings
from app.models import GenerationMode, GenerationRequest


def validate_image_file(file_size: int, max_size: Optional[int] = None) -> tuple[bool, Optional[str]]:
    """
    Validate image file

    Args:
        file_size: File size in bytes
        max_size: Maximum allowed file size (defaults to MAX_IMAGE_SIZE_MB)

    Returns:
        Tuple of (is_valid, error_message)
    """
    max_size = max_size or settings.max_image_size_bytes

    if file_size <= 0:
        return False, "파일이 비어 있습니다"

    if file_size > max_size:
        max_mb = max_size / (1024 * 1024)
        return False, f"파일이 너무 큽니다. 최대 크기: {max_mb:.0f}MB"

    return True, None


def validate_generation_request(request: GenerationRequest) -> tuple[bool, Optional[str]]:
    """
    Validate caller input before a generation cycle starts

    Args:
        request: Generation request

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not request.product_name.strip():
        return False, "제품명을 입력해주세요."

    if request.generation_mode == GenerationMode.FULL and not request.main_keyword.strip():
        return False, "제품명과 메인 키워드를 입력해주세요."

    if not request.product_images:
        return False, "제품 사진을 최소 1장 이상 업로드해주세요."

    for i, image in enumerate(request.product_images, start=1):
        if not (image.mime_type or "").startswith("image/"):
            return False, f"{i}번째 파일은 이미지가 아닙니다 ({image.mime_type})"
        is_valid, error = validate_image_file(len(image.data))
        if not is_valid:
            return False, f"{i}번째 사진: {error}"

    return True, None
