from pydantic_settings import BaseSettings
from typing import List, Optional

class Settings(BaseSettings):
    # Gemini text generation
    GEMINI_API_KEY: str
    GEMINI_MODEL: Optional[str] = None  # Explicit override, always tried first
    GEMINI_FALLBACK_MODELS: List[str] = [
        "gemini-2.5-flash",
        "gemini-2.0-flash",
        "gemini-2.0-flash-lite",
        "gemini-2.0-flash-exp"
    ]
    GEMINI_API_VERSIONS: List[str] = ["v1", "v1beta"]
    GEMINI_BASE_URL: str = "https://generativelanguage.googleapis.com"

    # Candidate ordering
    FAST_TIER_PATTERN: str = "flash"
    DENIED_MODEL_PATTERN: str = r"gemini-1\.5-flash"

    # Image synthesis (Nano Banana)
    IMAGE_MODEL: str = "gemini-2.5-flash-image"
    IMAGE_API_VERSION: str = "v1beta"
    IMAGE_ASPECT_RATIO: str = "4:3"

    # Timeouts (seconds)
    TEXT_TIMEOUT: int = 120
    IMAGE_TIMEOUT: int = 120
    PROBE_TIMEOUT: int = 15

    # Input limits
    MAX_PRODUCT_IMAGES: int = 20
    MAX_IMAGE_SIZE_MB: int = 20
    TITLE_MAX_LENGTH: int = 20

    # Logging
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    @property
    def preferred_models(self) -> List[str]:
        """Static preference list: override first, then fallbacks"""
        ordered = []
        for name in [self.GEMINI_MODEL, *self.GEMINI_FALLBACK_MODELS]:
            name = (name or "").strip()
            if name and name not in ordered:
                ordered.append(name)
        return ordered

    @property
    def max_image_size_bytes(self) -> int:
        return self.MAX_IMAGE_SIZE_MB * 1024 * 1024

settings = Settings()
