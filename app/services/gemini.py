"""
Gemini REST client (text generation and model discovery)
"""
import aiohttp
import logging
from enum import Enum
from typing import Dict, List, Optional

from app.config import settings
from app.utils.api_retry import probe_api_retry

logger = logging.getLogger(__name__)


class RequestShape(str, Enum):
    """Request body variants for asking the model to answer in JSON"""

    CAMEL_JSON_HINT = "camel_json_hint"
    SNAKE_JSON_HINT = "snake_json_hint"
    PLAIN = "plain"


REQUEST_SHAPES = [RequestShape.CAMEL_JSON_HINT, RequestShape.SNAKE_JSON_HINT, RequestShape.PLAIN]


def build_payload(prompt: str, variant: RequestShape) -> Dict:
    payload: Dict = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}
    if variant == RequestShape.CAMEL_JSON_HINT:
        payload["generationConfig"] = {"responseMimeType": "application/json"}
    elif variant == RequestShape.SNAKE_JSON_HINT:
        payload["generationConfig"] = {"response_mime_type": "application/json"}
    return payload


def extract_text(result: Dict) -> str:
    """Join the text parts of the first candidate"""
    candidates = result.get("candidates") or []
    if not candidates:
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(part.get("text", "") for part in parts if isinstance(part, dict))


def extract_grounding_sources(result: Dict) -> List[Dict[str, str]]:
    candidates = result.get("candidates") or []
    if not candidates:
        return []
    chunks = (candidates[0].get("groundingMetadata") or {}).get("groundingChunks") or []
    sources = []
    for chunk in chunks:
        web = chunk.get("web") if isinstance(chunk, dict) else None
        if web:
            sources.append({"title": web.get("title", ""), "url": web.get("uri", "")})
    return sources


def extract_model_names(result: Dict) -> List[str]:
    """Models that support generateContent, without the models/ prefix"""
    names = []
    for model in result.get("models") or []:
        if "generateContent" not in (model.get("supportedGenerationMethods") or []):
            continue
        name = str(model.get("name") or "").replace("models/", "", 1)
        if name:
            names.append(name)
    return names


class GeminiClient:
    """Thin transport for the Gemini generateContent and models endpoints.

    Neither public method raises: failures come back as empty model lists or
    as ``{"error": {"message": ...}}`` dicts for the executor to classify.
    """

    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None):
        self.api_key = api_key or settings.GEMINI_API_KEY
        self.base_url = (base_url or settings.GEMINI_BASE_URL).rstrip("/")
        self.text_timeout = settings.TEXT_TIMEOUT
        self.probe_timeout = settings.PROBE_TIMEOUT

    async def _fetch_model_list(self, api_version: str) -> Dict:
        url = f"{self.base_url}/{api_version}/models"
        async with aiohttp.ClientSession() as session:
            async with session.get(
                url,
                params={"key": self.api_key},
                timeout=aiohttp.ClientTimeout(total=self.probe_timeout)
            ) as response:
                return await response.json(content_type=None)

    async def list_available_models(self, api_version: str) -> List[str]:
        """
        List models usable for generateContent under one API version.

        Args:
            api_version: e.g. "v1" or "v1beta"

        Returns:
            Model names, empty on any failure
        """
        try:
            result = await probe_api_retry.execute_with_retry(self._fetch_model_list, api_version)
        except Exception as e:
            logger.warning(f"Model listing for {api_version} failed: {type(e).__name__}: {e}")
            return []

        if not isinstance(result, dict) or result.get("error"):
            message = result.get("error", {}).get("message") if isinstance(result, dict) else result
            logger.warning(f"Model listing for {api_version} returned an error: {message}")
            return []

        names = extract_model_names(result)
        logger.debug(f"Models available on {api_version}: {names}")
        return names

    async def _post_generate(self, api_version: str, model_name: str, payload: Dict) -> Dict:
        url = f"{self.base_url}/{api_version}/models/{model_name}:generateContent"
        async with aiohttp.ClientSession() as session:
            async with session.post(
                url,
                json=payload,
                params={"key": self.api_key},
                headers={"Content-Type": "application/json"},
                timeout=aiohttp.ClientTimeout(total=self.text_timeout)
            ) as response:
                try:
                    result = await response.json(content_type=None)
                except ValueError:
                    text = await response.text()
                    return {"error": {"message": f"HTTP {response.status}: {text[:200]}"}}

                if not isinstance(result, dict):
                    return {"error": {"message": f"HTTP {response.status}: unexpected response body"}}
                if response.status >= 400 and not result.get("error"):
                    return {"error": {"message": f"HTTP {response.status}"}}
                if result.get("error") and not result["error"].get("message"):
                    result["error"]["message"] = f"HTTP {response.status}"
                return result

    async def generate_content(
        self,
        api_version: str,
        model_name: str,
        variant: RequestShape,
        prompt: str
    ) -> Dict:
        """
        Single generateContent attempt.

        Returns:
            {"text": str, "grounding_sources": [...]} on success,
            {"error": {"message": str}} otherwise
        """
        payload = build_payload(prompt, variant)
        logger.info(f"Sending generateContent to {api_version}/{model_name} ({variant.value})")

        try:
            result = await self._post_generate(api_version, model_name, payload)
        except Exception as e:
            logger.warning(f"Transport error for {api_version}/{model_name}: {type(e).__name__}: {e}")
            return {"error": {"message": f"{type(e).__name__}: {e}"}}

        if result.get("error"):
            return {"error": {"message": str(result["error"].get("message"))}}

        return {
            "text": extract_text(result),
            "grounding_sources": extract_grounding_sources(result),
        }
