"""
Data models for one generation cycle.

All models serialize with camelCase aliases, so
``GenerationResult.model_dump(by_alias=True)`` is the JSON handed back to callers.
"""
import base64
import mimetypes
from enum import Enum
from pathlib import Path
from typing import List, NamedTuple, Optional, Tuple

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from app.config import settings

DEFAULT_BACKGROUND_DNA = "Natural iPhone 13 Pro snapshot"
NO_DISH_STYLE = "no dish, placed directly on surface"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FrozenCamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class GenerationMode(str, Enum):
    FULL = "FULL"
    IMAGE_ONLY = "IMAGE_ONLY"


class Persona(FrozenCamelModel):
    """Reader persona and narrative settings for the article"""

    target_audience: str = ""
    pain_point: str = ""
    solution_benefit: str = ""
    writing_tone: str = "친근한 정보 전달형"
    call_to_action: str = ""
    content_flow: str = ""

    def is_complete(self) -> bool:
        return all([
            self.target_audience,
            self.pain_point,
            self.solution_benefit,
            self.writing_tone,
            self.call_to_action,
        ])


class ProductImage(FrozenCamelModel):
    """Uploaded product photo: raw bytes plus MIME type"""

    data: bytes
    mime_type: str = "image/jpeg"

    @classmethod
    def from_path(cls, path) -> "ProductImage":
        path = Path(path)
        mime_type, _ = mimetypes.guess_type(path.name)
        return cls(data=path.read_bytes(), mime_type=mime_type or "image/jpeg")

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("utf-8")


class GenerationRequest(FrozenCamelModel):
    """Immutable input to one generation cycle.

    Attributes:
        product_name: Product being promoted
        main_keyword: Search keyword the title must start with
        sub_keywords: Comma-separated secondary keywords
        persona: Target reader and tone settings
        background_location: Scene theme for image synthesis
        background_color: Color palette for image synthesis
        background_material: Surface material under the product
        background_dish: Dish styling for the first dish_image_count images
        target_image_count: Number of images to synthesize
        dish_image_count: How many of those images get dish staging
        product_images: Source photos, reused cyclically
        generation_mode: FULL (article + images) or IMAGE_ONLY
        revision_comment: Free-text feedback used when regenerating text only
    """

    product_name: str = ""
    product_link: str = ""
    reference_link: str = ""
    main_keyword: str = ""
    sub_keywords: str = ""
    persona: Persona = Field(default_factory=Persona)
    background_location: str = "깔끔한 화이트 스튜디오 (제품 촬영용 배경)"
    background_color: str = "natural/original"
    background_material: str = "natural oak wood texture"
    background_dish: str = "minimalist clean white ceramic plate"
    target_image_count: int = Field(default=6, ge=0)
    dish_image_count: int = Field(default=3, ge=0)
    product_images: Tuple[ProductImage, ...] = ()
    generation_mode: GenerationMode = GenerationMode.FULL
    revision_comment: Optional[str] = None

    @model_validator(mode="after")
    def _normalize_form_state(self):
        # Frozen model: adjust through object.__setattr__ during validation only
        if self.dish_image_count > self.target_image_count:
            object.__setattr__(self, "dish_image_count", self.target_image_count)
        if len(self.product_images) > settings.MAX_PRODUCT_IMAGES:
            object.__setattr__(self, "product_images", self.product_images[:settings.MAX_PRODUCT_IMAGES])
        return self

    @property
    def first_sub_keyword(self) -> str:
        return (self.sub_keywords or "").split(",")[0].strip()

    @property
    def file_keyword(self) -> str:
        return self.main_keyword or self.product_name


class CandidatePair(NamedTuple):
    """One (API version, model name) endpoint to attempt"""

    api_version: str
    model_name: str

    @property
    def label(self) -> str:
        return f"{self.api_version}/{self.model_name}"


class ImagePrompt(FrozenCamelModel):
    """Per-image scene prompt produced by the text model"""

    nano_prompt: str = Field(default="", validation_alias=AliasChoices("nanoPrompt", "nano_prompt", "NanoPrompt"))
    description: str = Field(default="", validation_alias=AliasChoices("description", "Description"))


class ParsedContent(FrozenCamelModel):
    """Validated structured result of one text generation call"""

    title: str
    body: str
    image_prompts: List[ImagePrompt] = Field(default_factory=list)
    background_dna: Optional[str] = None
    persona: Optional[Persona] = None
    report: dict = Field(default_factory=dict)


class StagingConfig(FrozenCamelModel):
    location: str
    color: str
    material: str
    dish: str
    background_dna: str = DEFAULT_BACKGROUND_DNA


class ImageTask(FrozenCamelModel):
    """One unit of image work, created and consumed within a single cycle"""

    index: int
    source_image: ProductImage
    source_index: int
    staging: StagingConfig
    prompt: ImagePrompt
    file_keyword: str


class ImageResult(CamelModel):
    url: str = ""
    filename: str
    description: str = ""
    nano_prompt: str = ""

    @property
    def succeeded(self) -> bool:
        return bool(self.url)

    def image_bytes(self) -> Optional[bytes]:
        """Decode the data URL into raw bytes (None for remote or empty URLs)"""
        if not self.url.startswith("data:") or "," not in self.url:
            return None
        return base64.b64decode(self.url.split(",", 1)[1])


class DiagnosisReport(CamelModel):
    ranking_probability: float = 0
    safety_index: float = 0
    suggested_category: str = ""
    analysis_summary: str = ""
    background_dna: str = DEFAULT_BACKGROUND_DNA
    avg_word_count: int = 0
    produced_image_count: int = 0


class GroundingSource(CamelModel):
    title: str = ""
    url: str = ""


class GenerationResult(CamelModel):
    title: str
    body: str
    persona: Persona
    images: List[ImageResult] = Field(default_factory=list)
    report: DiagnosisReport = Field(default_factory=DiagnosisReport)
    mode: GenerationMode = GenerationMode.FULL
    grounding_sources: List[GroundingSource] = Field(default_factory=list)
    model_label: Optional[str] = None
