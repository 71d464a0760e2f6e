"""
Fallback Request Executor

Drives one logical generateContent request across the ordered candidate list.
Candidates are tried strictly one after another; the first valid payload wins.
"""
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from app.exceptions import (
    AllCandidatesExhausted,
    FatalUpstreamError,
    GenerationError,
    IncompleteResponse,
    MalformedResponse,
    RecoverableUpstreamError,
)
from app.models import CandidatePair, ParsedContent
from app.services.gemini import REQUEST_SHAPES
from app.services.model_resolver import ModelResolver
from app.services.response_sanitizer import ResponseSanitizer

logger = logging.getLogger(__name__)

# Provider rejected the JSON hint field itself; the next request shape may work
UNKNOWN_FIELD_PATTERN = re.compile(
    r'Unknown name "responseMimeType"|Unknown name "response_mime_type"|Cannot find field',
    re.IGNORECASE
)
# Per-model gaps; anything else is systemic (auth, quota, bad request)
RECOVERABLE_PATTERN = re.compile(
    r"not found|not supported|unsupported|permission denied|404",
    re.IGNORECASE
)


def is_recoverable(message: str) -> bool:
    return bool(RECOVERABLE_PATTERN.search(message or ""))


@dataclass
class CandidateOutcome:
    """Result of trying one candidate: parsed content or a recoverable error"""

    label: str
    parsed: Optional[ParsedContent] = None
    grounding_sources: List[Dict[str, str]] = field(default_factory=list)
    error: Optional[GenerationError] = None

    @property
    def ok(self) -> bool:
        return self.parsed is not None


@dataclass
class ExecutionResult:
    parsed: ParsedContent
    label: str
    failed_attempts: List[str] = field(default_factory=list)
    grounding_sources: List[Dict[str, str]] = field(default_factory=list)


class FallbackExecutor:
    """Tries candidates in preference order until one yields valid content"""

    def __init__(self, client, resolver: Optional[ModelResolver] = None, sanitizer: Optional[ResponseSanitizer] = None):
        """
        Args:
            client: Object with async list_available_models(api_version) and
                generate_content(api_version, model_name, variant, prompt)
            resolver: Candidate resolver (built from settings by default)
            sanitizer: Response sanitizer
        """
        self.client = client
        self.resolver = resolver or ModelResolver()
        self.sanitizer = sanitizer or ResponseSanitizer()

    async def _request_with_shapes(self, pair: CandidatePair, prompt: str) -> Dict:
        """Walk the request shapes while the provider rejects the JSON hint field"""
        last_result = None
        for variant in REQUEST_SHAPES:
            result = await self.client.generate_content(pair.api_version, pair.model_name, variant, prompt)
            if not result.get("error"):
                return result

            last_result = result
            message = str(result["error"].get("message") or "")
            if not UNKNOWN_FIELD_PATTERN.search(message):
                return result
            logger.info(f"{pair.label} rejected request shape {variant.value}, trying next shape")

        return last_result or {"error": {"message": "No response from model"}}

    async def _attempt(self, pair: CandidatePair, prompt: str) -> CandidateOutcome:
        """
        Try one candidate.

        Returns:
            CandidateOutcome with parsed content or a recoverable error

        Raises:
            FatalUpstreamError: For errors outside the recoverable class
        """
        try:
            result = await self._request_with_shapes(pair, prompt)
        except Exception as e:
            result = {"error": {"message": f"{type(e).__name__}: {e}"}}

        if result.get("error"):
            message = str(result["error"].get("message") or "HTTP error")
            if is_recoverable(message):
                return CandidateOutcome(label=pair.label, error=RecoverableUpstreamError(pair.label, message))
            logger.error(f"Fatal upstream error from {pair.label}: {message}")
            raise FatalUpstreamError(pair.label, message)

        try:
            parsed = self.sanitizer.parse(result.get("text") or "")
        except (MalformedResponse, IncompleteResponse) as e:
            return CandidateOutcome(label=pair.label, error=e)

        return CandidateOutcome(
            label=pair.label,
            parsed=parsed,
            grounding_sources=list(result.get("grounding_sources") or []),
        )

    async def execute(self, prompt: str, candidates: Optional[List[CandidatePair]] = None) -> ExecutionResult:
        """
        Run the prompt against the candidates in order.

        Args:
            prompt: Full prompt text
            candidates: Pre-resolved candidates (resolved via the client otherwise)

        Returns:
            ExecutionResult for the first candidate that produced valid content

        Raises:
            FatalUpstreamError: On the first non-recoverable upstream error
            AllCandidatesExhausted: When every candidate failed recoverably
        """
        if candidates is None:
            candidates = await self.resolver.resolve(self.client.list_available_models)

        attempted: List[str] = []
        failed: List[str] = []
        last_error: Optional[str] = None

        for pair in candidates:
            attempted.append(pair.label)
            outcome = await self._attempt(pair, prompt)

            if outcome.ok:
                logger.info(f"Model {pair.label} produced valid content after {len(failed)} failed candidates")
                return ExecutionResult(
                    parsed=outcome.parsed,
                    label=pair.label,
                    failed_attempts=failed,
                    grounding_sources=outcome.grounding_sources,
                )

            failed.append(pair.label)
            last_error = f"{pair.label} -> {getattr(outcome.error, 'message', outcome.error)}"
            logger.warning(f"Candidate failed, advancing: {last_error}")

        raise AllCandidatesExhausted(attempted, last_error)
