"""
Response Sanitizer

Repairs near-JSON text returned by a text model into strictly parseable JSON
and narrows it into ParsedContent.
"""
import json
import logging
import re
from typing import List

from pydantic import ValidationError

from app.exceptions import IncompleteResponse, MalformedResponse
from app.models import ImagePrompt, ParsedContent, Persona

logger = logging.getLogger(__name__)

CODE_FENCE_PATTERN = re.compile(r"```[A-Za-z0-9_-]*")
# Control characters not already handled by the string-aware pass
LEFTOVER_CONTROL_PATTERN = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")

STRING_ESCAPES = {"\n": "\\n", "\r": "\\r", "\t": "\\t"}


class ResponseSanitizer:
    """Turns raw model text into validated ParsedContent"""

    def _strip_code_fences(self, text: str) -> str:
        return CODE_FENCE_PATTERN.sub("", text).strip()

    def _slice_object(self, text: str) -> str:
        start = text.find("{")
        end = text.rfind("}")
        if start >= 0 and end > start:
            return text[start:end + 1]
        return text

    def repair(self, text: str) -> str:
        """
        Fix control characters with a small state machine.

        States: outside a string, inside a string, escape pending. Outside
        strings stray control bytes become spaces (JSON whitespace is kept).
        Inside strings raw newline/CR/tab become their escapes, other control
        bytes become spaces and backslash escapes are copied verbatim.
        """
        out: List[str] = []
        in_string = False
        escaped = False

        for ch in text:
            code = ord(ch)

            if not in_string:
                if code < 0x20 and ch not in STRING_ESCAPES:
                    out.append(" ")
                    continue
                if ch == '"':
                    in_string = True
                out.append(ch)
                continue

            if escaped:
                out.append(ch)
                escaped = False
                continue

            if ch == "\\":
                out.append(ch)
                escaped = True
                continue

            if ch == '"':
                out.append(ch)
                in_string = False
                continue

            if ch in STRING_ESCAPES:
                out.append(STRING_ESCAPES[ch])
                continue

            if code < 0x20:
                out.append(" ")
                continue

            out.append(ch)

        return "".join(out)

    def sanitize(self, raw_text: str) -> str:
        """
        Produce a JSON string that parses, or raise MalformedResponse.

        Args:
            raw_text: Model output that should contain one JSON object

        Returns:
            A string accepted by json.loads
        """
        repaired = self.repair(self._slice_object(self._strip_code_fences(raw_text or "")))
        attempts = [repaired, LEFTOVER_CONTROL_PATTERN.sub(" ", repaired)]

        last_parse_error = "unknown parse error"
        for index, candidate in enumerate(attempts):
            try:
                json.loads(candidate)
                if index > 0:
                    logger.debug("JSON parsed after stripping leftover control characters")
                return candidate
            except json.JSONDecodeError as e:
                last_parse_error = str(e)

        logger.warning(f"Failed to parse model JSON: {last_parse_error}")
        logger.debug(f"Unparseable content (first 200 chars): {raw_text[:200] if raw_text else ''}")
        raise MalformedResponse(last_parse_error)

    def parse(self, raw_text: str) -> ParsedContent:
        """
        Sanitize, parse and validate model output.

        Raises:
            MalformedResponse: If no parse attempt succeeds
            IncompleteResponse: If title or body is missing or empty
        """
        data = json.loads(self.sanitize(raw_text))

        if not isinstance(data, dict):
            raise IncompleteResponse(f"Expected a JSON object, got {type(data).__name__}")

        title = data.get("title")
        body = data.get("body")
        if not isinstance(title, str) or not title.strip() or not isinstance(body, str) or not body.strip():
            logger.warning(f"Model JSON missing title/body. Keys: {list(data.keys())}")
            raise IncompleteResponse("Model JSON has no title/body")

        raw_prompts = data.get("imagePrompts", data.get("image_prompts"))
        image_prompts = self._parse_image_prompts(raw_prompts)

        background_dna = data.get("globalBackgroundDNA") or data.get("backgroundDna")
        report = data.get("report") if isinstance(data.get("report"), dict) else {}

        return ParsedContent(
            title=title,
            body=body,
            image_prompts=image_prompts,
            background_dna=background_dna if isinstance(background_dna, str) and background_dna.strip() else None,
            persona=self._parse_persona(data.get("persona")),
            report=report,
        )

    def _parse_image_prompts(self, raw_prompts) -> List[ImagePrompt]:
        if not isinstance(raw_prompts, list):
            return []

        prompts = []
        for i, item in enumerate(raw_prompts):
            if not isinstance(item, dict):
                logger.debug(f"Skipping image prompt {i}: not an object")
                continue
            try:
                prompts.append(ImagePrompt.model_validate({
                    key: str(value) for key, value in item.items() if value is not None
                }))
            except ValidationError as e:
                logger.debug(f"Skipping image prompt {i}: {e}")
        return prompts

    def _parse_persona(self, raw_persona):
        if not isinstance(raw_persona, dict):
            return None
        try:
            return Persona.model_validate({
                key: str(value) for key, value in raw_persona.items() if value is not None
            })
        except ValidationError as e:
            logger.debug(f"Ignoring malformed persona: {e}")
            return None
