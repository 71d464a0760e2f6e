"""
Error taxonomy for a generation cycle.

Sanitizer failures and recoverable upstream errors are handled inside the
candidate loop. Only FatalUpstreamError and AllCandidatesExhausted reach the
caller, and both carry enough context (candidate labels, raw upstream message)
to be logged and shown.
"""
from typing import List, Optional


class GenerationError(Exception):
    """Base class for generation cycle failures"""
    pass


class MalformedResponse(GenerationError):
    """Upstream text could not be coerced into parseable JSON"""

    def __init__(self, last_parse_error: str):
        self.last_parse_error = last_parse_error
        super().__init__(f"Malformed model response: {last_parse_error}")


class IncompleteResponse(GenerationError):
    """JSON parsed but required title/body fields are missing or empty"""
    pass


class RecoverableUpstreamError(GenerationError):
    """This candidate is unusable (not found, unsupported, no permission)"""

    def __init__(self, label: str, message: str):
        self.label = label
        self.message = message
        super().__init__(f"{label} -> {message}")


class FatalUpstreamError(GenerationError):
    """Systemic upstream failure (auth, quota, bad request); never retried"""

    def __init__(self, label: str, message: str):
        self.label = label
        self.message = message
        super().__init__(f"{label} -> {message}")


class AllCandidatesExhausted(GenerationError):
    """Every candidate failed with a recoverable error"""

    def __init__(self, attempted_labels: List[str], last_error: Optional[str]):
        self.attempted_labels = list(attempted_labels)
        self.last_error = last_error or "no candidates available"
        super().__init__(
            f"All model candidates exhausted: {self.last_error}. "
            f"tried={','.join(self.attempted_labels)}"
        )


def translate_error_to_korean(error: Exception) -> str:
    """
    Translate a generation failure into a user-facing Korean message.

    Args:
        error: Exception raised by a generation cycle

    Returns:
        Message suitable for showing to the end user
    """
    error_lower = str(error).lower()

    if isinstance(error, ValueError):
        return f"❌ 입력값을 확인해주세요.\n\n{error}"

    if "api key" in error_lower or "api_key" in error_lower or "unauthenticated" in error_lower:
        return (
            "❌ Gemini API 키가 올바르지 않습니다.\n\n"
            "• 환경 변수 GEMINI_API_KEY 값을 확인해주세요\n"
            "• 키가 만료되었거나 비활성화되지 않았는지 확인해주세요"
        )

    if "quota" in error_lower or "resource_exhausted" in error_lower or "429" in error_lower:
        return (
            "❌ API 사용량 한도를 초과했습니다.\n\n"
            "잠시 후 다시 시도하거나 요금제/할당량을 확인해주세요."
        )

    if "safety" in error_lower or "blocked" in error_lower or "policy" in error_lower:
        return (
            "❌ 안전 정책에 의해 요청이 차단되었습니다.\n\n"
            "제품명, 키워드, 사진이 상업적 용도에 적합한지 확인해주세요."
        )

    if isinstance(error, AllCandidatesExhausted):
        return (
            "❌ 사용 가능한 모델을 찾지 못했습니다.\n\n"
            f"시도한 모델: {', '.join(error.attempted_labels) or '없음'}\n"
            f"마지막 오류: {error.last_error}"
        )

    if isinstance(error, (MalformedResponse, IncompleteResponse)):
        return "❌ 모델 응답을 해석하지 못했습니다. 다시 시도해주세요."

    return f"❌ 콘텐츠 생성 중 오류가 발생했습니다: {error}"
