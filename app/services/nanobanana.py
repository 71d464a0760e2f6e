"""
NanoBanana Image Synthesis Service (Gemini image model, inpainting mode)
"""
import aiohttp
import logging
from io import BytesIO
from typing import Dict, Optional, Tuple
from PIL import Image

from app.config import settings
from app.models import ImagePrompt, ProductImage, StagingConfig

logger = logging.getLogger(__name__)


INPAINTING_PROMPT = """TASK: AMATEUR IPHONE SNAPSHOT INPAINTING.

STRICT RULES:
1. PRODUCT PRESERVATION: NEVER change the product's shape, design, logo, texture, or geometry.
2. BACKGROUND REPLACEMENT: Replace with "{location}".
3. SURFACE & STYLING: {dish} on "{material}" texture.
4. COLOR THEME: "{color}" palette.
5. AESTHETIC STYLE: {background_dna}. (iPhone 13 Pro look).
6. PHOTO QUALITY: Natural shadows, realistic mobile lens.

SCENE DETAIL & CAMERA PERSPECTIVE: {scene}"""


def build_inpainting_prompt(staging: StagingConfig, prompt: ImagePrompt) -> str:
    return INPAINTING_PROMPT.format(
        location=staging.location,
        dish=staging.dish,
        material=staging.material,
        color=staging.color,
        background_dna=staging.background_dna,
        scene=prompt.nano_prompt,
    )


def extract_inline_image(result: Dict) -> Optional[str]:
    """Return the first inline image of the first candidate as a data URL"""
    candidates = result.get("candidates") or []
    if not candidates:
        return None
    for part in (candidates[0].get("content") or {}).get("parts") or []:
        if not isinstance(part, dict):
            continue
        inline = part.get("inlineData") or part.get("inline_data")
        if inline and inline.get("data"):
            mime_type = inline.get("mimeType") or inline.get("mime_type") or "image/png"
            return f"data:{mime_type};base64,{inline['data']}"
    return None


class NanoBananaService:
    """Service for product background replacement via the Gemini image model"""

    def __init__(self, api_key: Optional[str] = None):
        self.api_key = api_key or settings.GEMINI_API_KEY
        self.model = settings.IMAGE_MODEL
        self.base_url = (
            f"{settings.GEMINI_BASE_URL.rstrip('/')}/{settings.IMAGE_API_VERSION}"
            f"/models/{self.model}:generateContent"
        )
        self.aspect_ratio = settings.IMAGE_ASPECT_RATIO
        self.timeout = settings.IMAGE_TIMEOUT

    def _convert_webp_to_png(self, image_bytes: bytes) -> bytes:
        img = Image.open(BytesIO(image_bytes))
        if img.mode in ('RGBA', 'LA', 'P'):
            img = img.convert('RGBA')
        else:
            img = img.convert('RGB')
        output = BytesIO()
        img.save(output, format='PNG', optimize=True)
        return output.getvalue()

    def prepare_source(self, source_image: ProductImage) -> Tuple[str, str]:
        """
        Encode the source photo for inline upload.

        Returns:
            (mime_type, base64 data); WEBP photos are re-encoded as PNG
        """
        mime_type = source_image.mime_type or "image/jpeg"
        try:
            img = Image.open(BytesIO(source_image.data))
            if img.format:
                mime_type = f"image/{img.format.lower()}"
            if img.format and img.format.upper() == 'WEBP':
                logger.info("Converting WEBP source photo to PNG")
                converted = ProductImage(data=self._convert_webp_to_png(source_image.data), mime_type="image/png")
                return converted.mime_type, converted.to_base64()
        except Exception as e:
            logger.debug(f"Could not inspect source photo, sending as {mime_type}: {e}")
        return mime_type, source_image.to_base64()

    async def _post(self, payload: Dict) -> Tuple[int, Dict]:
        async with aiohttp.ClientSession() as session:
            async with session.post(
                self.base_url,
                json=payload,
                params={"key": self.api_key},
                headers={"Content-Type": "application/json"},
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            ) as response:
                return response.status, await response.json(content_type=None)

    async def generate_image(
        self,
        source_image: ProductImage,
        staging: StagingConfig,
        prompt: ImagePrompt
    ) -> Dict:
        """
        Replace the background of a product photo.

        Args:
            source_image: Original product photo
            staging: Background, color, material, dish and style DNA
            prompt: Scene prompt for this image

        Returns:
            {
                "success": bool,
                "url": Optional[str],  # data URL
                "error": Optional[str]
            }
        """
        try:
            mime_type, base64_image = self.prepare_source(source_image)

            payload = {
                "contents": [{
                    "parts": [
                        {"inlineData": {"data": base64_image, "mimeType": mime_type}},
                        {"text": build_inpainting_prompt(staging, prompt)}
                    ]
                }],
                "generationConfig": {
                    "responseModalities": ["TEXT", "IMAGE"],
                    "imageConfig": {"aspectRatio": self.aspect_ratio}
                }
            }

            logger.info(f"Sending inpainting request to {self.model}...")
            status, result = await self._post(payload)

            if not isinstance(result, dict):
                return {"success": False, "url": None, "error": f"API Error: {status}"}

            if status != 200 or result.get("error"):
                message = (result.get("error") or {}).get("message") or f"API Error: {status}"
                logger.error(f"API Error: {status} - {message}")
                return {"success": False, "url": None, "error": message}

            url = extract_inline_image(result)
            if not url:
                finish_reason = ((result.get("candidates") or [{}])[0]).get("finishReason")
                logger.error(f"No image data returned from API (finishReason={finish_reason})")
                return {"success": False, "url": None, "error": "No image data returned from API"}

            return {"success": True, "url": url, "error": None}

        except Exception as e:
            logger.error(f"Generation error: {e}", exc_info=True)
            return {"success": False, "url": None, "error": str(e)}
