"""Gemini service for medicine identification, lookup and suggestions"""
import asyncio
import base64
import json
import logging
import random
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import google.generativeai as genai
from pydantic import TypeAdapter, ValidationError

from medscan.core.config import Config
from medscan.core.errors import (
    BackendError,
    MedScanError,
    NotAMedicine,
    NotFound,
    SchemaViolation,
)
from medscan.types.medicine import ImagePayload, MedicineRecord

logger = logging.getLogger(__name__)

# Shared by analyze_image and lookup_by_name so both apply the same shape and
# the same isMedicine rejection rule.
MEDICINE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "brandName": {"type": "string"},
        "genericName": {"type": "string"},
        "ingredients": {
            "type": "array",
            "items": {"type": "string"}
        },
        "purpose": {"type": "string"},
        "reasonsForUse": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Specific medical conditions or reasons why this medicine is used."
        },
        "sideEffects": {
            "type": "array",
            "items": {"type": "string"}
        },
        "relatedMedicines": {
            "type": "array",
            "items": {"type": "string"},
            "description": "3-5 similar medicines, alternatives, or medications in the same class."
        },
        "isMedicine": {"type": "boolean"},
        "confidence": {"type": "number"}
    },
    "required": [
        "brandName",
        "ingredients",
        "purpose",
        "reasonsForUse",
        "sideEffects",
        "relatedMedicines",
        "isMedicine"
    ]
}

SUGGESTION_SCHEMA: Dict[str, Any] = {
    "type": "array",
    "items": {"type": "string"}
}

_SUGGESTION_LIST = TypeAdapter(List[str])


class GeminiService:
    """Service for interacting with Gemini API"""

    def __init__(self, api_key: str = None, model: str = None, image_model: str = None):
        """Initialize Gemini service"""
        api_key = api_key or Config.GEMINI_API_KEY
        model = model or Config.GEMINI_MODEL
        image_model = image_model or Config.GEMINI_IMAGE_MODEL

        if not api_key:
            raise ValueError("Gemini API key is required")

        self.temperature = Config.get("gemini", "temperature", default=0)
        self.response_mime_type = Config.get("gemini", "response_mime_type", default="application/json")
        self.max_retries = Config.get("gemini", "max_retries", default=0)
        self.retry_backoff = Config.get("gemini", "retry_backoff_seconds", default=1.0)
        self.request_timeout = Config.get("gemini", "request_timeout", default=60)
        self.illustration_timeout = Config.get("gemini", "illustration_timeout", default=45)
        self.min_query_length = Config.get("suggestions", "min_query_length", default=2)
        self.suggestion_limit = Config.get("suggestions", "limit", default=5)

        genai.configure(api_key=api_key)
        self.model = genai.GenerativeModel(model)
        self.image_model = genai.GenerativeModel(image_model)
        self.model_name = model
        self.image_model_name = image_model

    async def analyze_image(self, payload: ImagePayload) -> MedicineRecord:
        """
        Identify a medicine from a photo of its packaging or a tablet

        Args:
            payload: Encoded image to analyze

        Returns:
            MedicineRecord with image_url set to the photo's data URI

        Raises:
            NotAMedicine, BackendError, SchemaViolation
        """
        prompt = Config.get_prompt("image_analysis")
        response_text = await self._generate_json(
            [{"mime_type": payload.mime_type, "data": payload.data}, prompt],
            MEDICINE_SCHEMA
        )
        record = self._parse_record(response_text, "captured_image", SchemaViolation())

        if not record.is_medicine:
            raise NotAMedicine()

        return record.model_copy(update={"image_url": payload.to_data_uri()})

    async def lookup_by_name(self, name: str) -> MedicineRecord:
        """
        Look up a medicine by brand or generic name

        The returned record carries a generated illustration when the image
        model produced one; without it the record is still complete.

        Raises:
            NotFound, BackendError, SchemaViolation
        """
        name = (name or "").strip()
        if not name:
            raise ValueError("Medicine name must not be empty")

        prompt = Config.get_prompt("name_lookup").format(name=name)
        response_text = await self._generate_json(prompt, MEDICINE_SCHEMA)
        record = self._parse_record(
            response_text,
            name,
            SchemaViolation("Search failed. The medicine information could not be read.")
        )

        if not record.is_medicine:
            raise NotFound(name)

        image_url = await self.generate_illustration(record.brand_name)
        if image_url:
            record = record.model_copy(update={"image_url": image_url})
        return record

    async def generate_illustration(self, brand_name: str) -> Optional[str]:
        """Best-effort product illustration as a data URI. Never raises."""
        prompt = Config.get_prompt("illustration").format(brand_name=brand_name)
        try:
            response = await asyncio.wait_for(
                self.image_model.generate_content_async(
                    prompt,
                    request_options={"timeout": self.request_timeout}
                ),
                timeout=self.illustration_timeout
            )
            parts = response.candidates[0].content.parts
        except Exception as e:
            logger.warning("Illustration generation failed for %r, continuing without image: %s", brand_name, e)
            return None

        for part in parts:
            inline = getattr(part, "inline_data", None)
            if inline is not None and inline.data:
                mime_type = inline.mime_type or "image/png"
                encoded = base64.b64encode(inline.data).decode("ascii")
                return f"data:{mime_type};base64,{encoded}"

        logger.info("Illustration response for %r contained no inline image", brand_name)
        return None

    async def suggest(self, query: str) -> List[str]:
        """Autocomplete medicine names. Returns [] instead of raising."""
        query = (query or "").strip()
        if len(query) < self.min_query_length:
            return []

        prompt = Config.get_prompt("suggestions").format(query=query, limit=self.suggestion_limit)
        try:
            response_text = await self._generate_json(prompt, SUGGESTION_SCHEMA)
            parsed = self._parse_json_response(self._strip_code_fences(response_text))
            names = _SUGGESTION_LIST.validate_python(parsed)
        except (MedScanError, json.JSONDecodeError, ValidationError) as e:
            logger.warning("Suggestions for %r unavailable: %s", query, e)
            return []

        return [n.strip() for n in names if n.strip()]

    async def _generate_json(self, contents: Union[str, List[Any]], schema: Dict[str, Any]) -> str:
        """Call the text model with structured output and return the raw response text"""
        generation_config = genai.types.GenerationConfig(
            temperature=self.temperature,
            response_mime_type=self.response_mime_type,
            response_schema=schema
        )

        response = None
        for attempt in range(self.max_retries + 1):
            try:
                response = await self.model.generate_content_async(
                    contents,
                    generation_config=generation_config,
                    request_options={"timeout": self.request_timeout}
                )
                break
            except Exception as e:
                if attempt < self.max_retries:
                    delay = self.retry_backoff * (2 ** attempt) * random.uniform(0.5, 1.5)
                    logger.warning("Gemini call failed (attempt %d), retrying in %.1fs: %s", attempt + 1, delay, e)
                    await asyncio.sleep(delay)
                    continue
                logger.error("Gemini API error after %d attempt(s): %s", self.max_retries + 1, e)
                raise BackendError() from e

        try:
            return response.text
        except ValueError as e:
            # Blocked or empty candidates
            logger.error("Gemini returned no text: %s", e)
            raise BackendError("The analysis service returned no usable answer.") from e

    def _parse_record(self, response_text: str, source: str, violation: SchemaViolation) -> MedicineRecord:
        """Parse and validate a MedicineRecord, raising the given violation on failure"""
        cleaned = self._strip_code_fences(response_text or "")
        try:
            data = self._parse_json_response(cleaned)
        except json.JSONDecodeError as e:
            self._save_debug_response(cleaned, source, str(e))
            raise violation from e

        if not isinstance(data, dict):
            self._save_debug_response(cleaned, source, f"expected a JSON object, got {type(data).__name__}")
            raise violation

        # The image is attached by this service, never taken from the model
        data.pop("imageUrl", None)
        data.pop("image_url", None)

        try:
            return MedicineRecord.model_validate(data)
        except ValidationError as e:
            self._save_debug_response(cleaned, source, str(e))
            raise violation from e

    @staticmethod
    def _strip_code_fences(response_text: str) -> str:
        """Remove markdown code blocks if present"""
        text = response_text.strip()
        if text.startswith("```json"):
            text = text[7:]
        if text.startswith("```"):
            text = text[3:]
        if text.endswith("```"):
            text = text[:-3]
        return text.strip()

    def _parse_json_response(self, response_text: str) -> Any:
        """Parse JSON response with error recovery"""
        # First, try direct parsing
        try:
            return json.loads(response_text)
        except json.JSONDecodeError:
            pass

        # Try to extract JSON from the response (in case there's extra text)
        json_match = re.search(r'[\[{].*[\]}]', response_text, re.DOTALL)
        if json_match:
            try:
                return json.loads(json_match.group(0))
            except json.JSONDecodeError:
                pass

        # Try to cut trailing garbage after the first complete structure
        fixed_text = self._fix_json_issues(response_text)
        try:
            return json.loads(fixed_text)
        except json.JSONDecodeError as e:
            raise json.JSONDecodeError(
                f"Could not parse JSON even after repair attempts. Original error: {e.msg}",
                e.doc,
                e.pos
            )

    def _fix_json_issues(self, text: str) -> str:
        """Truncate text after the first complete top-level JSON object or array"""
        brace_count = 0
        bracket_count = 0
        in_string = False
        escape_next = False
        started = False

        for i, char in enumerate(text):
            if escape_next:
                escape_next = False
                continue

            if char == '\\':
                escape_next = True
                continue

            if char == '"':
                in_string = not in_string
                continue

            if in_string:
                continue

            if char == '{':
                brace_count += 1
                started = True
            elif char == '}':
                brace_count -= 1
            elif char == '[':
                bracket_count += 1
                started = True
            elif char == ']':
                bracket_count -= 1
            else:
                continue

            if started and brace_count == 0 and bracket_count == 0:
                start = min(p for p in (text.find('{'), text.find('[')) if p >= 0)
                return text[start:i + 1]

        return text

    def _save_debug_response(self, response_text: str, source: str, error: str) -> None:
        """Save raw response for debugging"""
        debug_subdir = Config.get("directories", "debug", default="debug")
        debug_dir = Path(Config.LOG_DIR) / debug_subdir

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        truncate_limit = Config.get("limits", "string_truncation_debug_name", default=50)
        safe_name = "".join(c for c in source if c.isalnum() or c in "._-")[:truncate_limit] or "response"
        debug_suffix = Config.get("files", "debug_suffix", default="_error.json")
        debug_file = debug_dir / f"{timestamp}_{safe_name}{debug_suffix}"

        debug_data = {
            "error": error,
            "source": source,
            "model": self.model_name,
            "timestamp": datetime.now().isoformat(),
            "raw_response": response_text[:Config.get("limits", "debug_response_size", default=5000)]
        }

        logger.warning("Unparsable response for %r: %s", source, error)
        try:
            debug_dir.mkdir(parents=True, exist_ok=True)
            json_indent = Config.get("defaults", "json_indent", default=2)
            with open(debug_file, "w", encoding="utf-8") as f:
                json.dump(debug_data, f, indent=json_indent, ensure_ascii=False)
        except OSError as e:
            logger.warning("Could not save debug response to %s: %s", debug_file, e)
