"""
Prompt generator for blog articles and product image prompts
Builds the single prompt text sent to the text model for each generation mode
"""
import logging
from typing import Optional

from app.config import settings
from app.models import GenerationMode, GenerationRequest

logger = logging.getLogger(__name__)


class PromptGenerator:
    """Builds prompts for FULL, IMAGE_ONLY and content-only regeneration cycles"""

    ARTICLE_SYSTEM_PROMPT = """[Role: Naver Blog SEO & GEO Content Master (Search Snippet Optimization Expert)]

STRICT CONTENT RULES:
1. LOGICAL HIERARCHY: Use Markdown ## and ### for subheadings.
   - DO NOT use square brackets [] or any special characters in subheadings.
2. ANSWER-FIRST: Within the first 200 characters of the post, give a direct answer to the reader's search intent.
3. FACTUAL DATA (TABLES): Performance, price and specs MUST be presented in a Markdown table with concrete numbers.
4. E-E-A-T & ORIGINALITY: Include personal experience and unique insights that sound like a real user.
5. SEMANTIC LINKING: Naturally mention related entities, competitors, or higher/lower product categories.
6. CONTENT FLOW: If a desired content flow is given, follow that narrative structure strictly.

FORBIDDEN CHARACTERS:
- DO NOT use the asterisk symbol (*) anywhere. Not for bold (**), italics or bullets.
- For lists use numbered lists (1. 2.) or hyphens (-).

ALT-TEXT & IMAGE PLACEHOLDERS:
- Insert [이미지 설명: {description}] at relevant points in the text.

FINAL OUTPUT:
- At the end of the post, append the "Final Content Checklist" with all items marked as [x]."""

    IMAGE_ONLY_SYSTEM_PROMPT = """[Role: Professional Product Photographer & Prompt Engineer]
Your task is to generate high-quality image prompts for product background replacement (inpainting).
Provide diverse angles: close-up, 45-degree, top-down, context-rich scenes.
The background should match the theme: {location}.
DO NOT write any blog post content. Keep 'title' and 'body' as short summaries of the images.
Focus on providing excellent 'imagePrompts'."""

    RESPONSE_FORMAT = """반드시 순수 JSON으로만 응답하세요. 다른 설명이나 코드 블록 없이 아래 형식을 지키세요:
{{
  "globalBackgroundDNA": "all images shared visual style in English",
  "title": "제목",
  "body": "본문",
  "persona": {{"targetAudience": "", "painPoint": "", "solutionBenefit": "", "writingTone": "", "callToAction": "", "contentFlow": ""}},
  "report": {{"rankingProbability": 0, "safetyIndex": 0, "suggestedCategory": "", "analysisSummary": "", "avgWordCount": 0}},
  "imagePrompts": [{{"nanoPrompt": "English scene and camera keywords", "description": "image intent in Korean"}}]
}}
imagePrompts 항목은 정확히 {count}개를 작성하세요."""

    def __init__(self, title_max_length: Optional[int] = None):
        self.title_max_length = title_max_length or settings.TITLE_MAX_LENGTH

    def _response_format(self, request: GenerationRequest) -> str:
        return self.RESPONSE_FORMAT.format(count=request.target_image_count)

    def _product_facts(self, request: GenerationRequest) -> str:
        persona = request.persona
        return f"""제품명: {request.product_name}
메인 키워드: {request.main_keyword}
서브 키워드: {request.sub_keywords}
참고 URL: {request.reference_link or '없음'}
쇼핑 링크: {request.product_link or '없음'}
생성 이미지 수량: {request.target_image_count}
배경 테마: {request.background_location}
배경 색감: {request.background_color}
바닥 재질: {request.background_material}
그릇 스타일: {request.background_dish}

[페르소나 및 흐름 설정]
타겟 독자: {persona.target_audience}
페인 포인트: {persona.pain_point}
핵심 혜택: {persona.solution_benefit}
글의 톤: {persona.writing_tone}
원하는 글의 흐름/방향: {persona.content_flow or 'AI 추천 최적 흐름'}
CTA: {persona.call_to_action}"""

    def _title_rules(self, request: GenerationRequest) -> str:
        return (
            f"제목은 {self.title_max_length}자 이내로 메인 키워드({request.main_keyword})로 시작하고 "
            f"서브 키워드({request.first_sub_keyword or '없음'})를 포함하세요. "
            "본문 첫 문장은 제목과 완전히 동일한 한 문장으로 시작하세요."
        )

    def build_full_prompt(self, request: GenerationRequest) -> str:
        """Article + image prompts"""
        logger.debug(f"Building article prompt for: {request.product_name[:50]}")
        return f"""SYSTEM INSTRUCTION:
{self.ARTICLE_SYSTEM_PROMPT}

USER:
{self._product_facts(request)}

작업 지시:
1. 1,500자 이상의 고품질 원고를 작성하세요.
2. {self._title_rules(request)}
3. 본문에 반드시 제품 정보를 요약한 Markdown 표(Table)를 포함하세요.
4. '*' 기호와 소제목의 '[]'를 절대 사용하지 마세요.
5. '원하는 글의 흐름/방향'이 있다면 이를 원고의 전개 구조에 반영하세요.
6. 본문 하단에 '최종 콘텐츠 체크리스트'를 포함하세요.

{self._response_format(request)}"""

    def build_image_only_prompt(self, request: GenerationRequest) -> str:
        """Image prompts only, article fields kept short"""
        logger.debug(f"Building image-only prompt for: {request.product_name[:50]}")
        system_prompt = self.IMAGE_ONLY_SYSTEM_PROMPT.format(location=request.background_location)
        return f"""SYSTEM INSTRUCTION:
{system_prompt}

USER:
Generate {request.target_image_count} diverse image prompts for background synthesis.
Product: {request.product_name}
Main Keyword: {request.main_keyword}
Theme: {request.background_location}
Color: {request.background_color}
Material: {request.background_material}
Dish Style: {request.background_dish}

{self._response_format(request)}"""

    def build_content_only_prompt(self, request: GenerationRequest) -> str:
        """Article rewrite that keeps every other setting; includes revision feedback"""
        revision = (request.revision_comment or "").strip()
        revision_block = f"\n[수정 요청]\n{revision}\n위 수정 요청을 반드시 반영하세요.\n" if revision else ""
        logger.debug(f"Building content-only prompt (revision: {bool(revision)})")
        return f"""SYSTEM INSTRUCTION:
{self.ARTICLE_SYSTEM_PROMPT}

USER:
기존 설정을 유지하고 블로그 본문만 개선해서 다시 작성하세요.
{self._product_facts(request)}
{revision_block}
본문은 1,500자 이상으로 작성하고 SEO/AEO 최적화를 반영하세요.
{self._title_rules(request)}
절대로 마크다운 굵게(**) 표기를 사용하지 마세요.

{self._response_format(request)}"""

    def build_prompt(self, request: GenerationRequest, content_only: bool = False) -> str:
        if content_only:
            return self.build_content_only_prompt(request)
        if request.generation_mode == GenerationMode.IMAGE_ONLY:
            return self.build_image_only_prompt(request)
        return self.build_full_prompt(request)
