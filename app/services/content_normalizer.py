"""
Content Normalizer: title constraints and the title-first body rule
"""
import logging
from typing import Optional, Tuple

from app.config import settings

logger = logging.getLogger(__name__)

BOLD_MARKER = "**"


def strip_bold(text: str) -> str:
    return (text or "").replace(BOLD_MARKER, "")


class ContentNormalizer:
    """Applies the keyword title rules and guarantees the body opens with the title"""

    def __init__(self, max_title_length: Optional[int] = None):
        self.max_title_length = max_title_length or settings.TITLE_MAX_LENGTH

    def normalize_title(self, title: str, main_keyword: str, sub_keywords: str) -> str:
        title = strip_bold(title).strip()
        main_keyword = (main_keyword or "").strip()

        if not title.startswith(main_keyword):
            title = f"{main_keyword} {title}".strip()

        first_sub = (sub_keywords or "").split(",")[0].strip()
        if first_sub and first_sub not in title:
            title = f"{title} {first_sub}".strip()

        # Counts code points, not grapheme clusters
        return title[:self.max_title_length].rstrip()

    def normalize_body(self, body: str, title: str) -> str:
        body = strip_bold(body)
        if body.startswith(title):
            return body
        return f"{title}.\n\n{body}"

    def normalize(self, title: str, body: str, main_keyword: str, sub_keywords: str) -> Tuple[str, str]:
        """
        Args:
            title: Raw model title
            body: Raw model body
            main_keyword: Keyword the title must start with
            sub_keywords: Comma-separated keywords, the first one is appended when missing

        Returns:
            (title, body) with the title constraints applied and the body opening with the title
        """
        final_title = self.normalize_title(title, main_keyword, sub_keywords)
        final_body = self.normalize_body(body, final_title)

        if final_title != title:
            logger.debug(f"Title normalized: '{title}' -> '{final_title}'")
        return final_title, final_body
