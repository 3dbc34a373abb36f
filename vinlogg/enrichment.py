"""
Boundary parsing of language model output.

Model responses are validated against a single schema before anything else
touches them. Output that cannot be parsed raises `EnrichmentFailure`.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
import re
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from models import prompts
from models.gemini import GeminiInvalidResponseException, LanguageModel
from shared.constants import UNKNOWN_WINE_NAME, VALID_FOOD_TAGS

logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"```(?:json)?\s*([\s\S]*?)```")
_DATA_URL = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(;[^,]*)?,(?P<data>.*)$", re.S)
_YEAR = re.compile(r"\b(1[89]\d{2}|20\d{2})\b")


class EnrichmentFailure(Exception):
    """The model answered, but not with something we can use."""


def strip_code_fences(text: str) -> str:
    match = _CODE_FENCE.search(text)
    if match:
        text = match.group(1)
    return text.strip()


def filter_food_tags(tags: Any) -> List[str]:
    """Keep valid tags only, first occurrence wins."""
    if not isinstance(tags, list):
        return []
    kept: List[str] = []
    for tag in tags:
        if isinstance(tag, str) and tag in VALID_FOOD_TAGS and tag not in kept:
            kept.append(tag)
    return kept


def _clean_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, (str, int, float)):
        raise ValueError("expected a string")
    value = str(value).strip()
    return value or None


def _str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = re.split(r"[,/]", value)
    if not isinstance(value, list):
        raise ValueError("expected a list of strings")
    return [str(item).strip() for item in value if item is not None and str(item).strip()]


class WineLabelAnalysis(BaseModel):
    """What the vision model read off a label."""

    model_config = ConfigDict(extra="ignore")

    name: str = UNKNOWN_WINE_NAME
    producer: Optional[str] = None
    vintage: Optional[int] = None
    region: Optional[str] = None
    grapes: List[str] = []
    food_pairing_tags: List[str] = []
    description: Optional[str] = None
    serving_temperature: Optional[str] = None
    storage_potential: Optional[str] = None
    flavor_profile: List[str] = []

    @field_validator("name", mode="before")
    @classmethod
    def _name_or_unknown(cls, value):
        return _clean_str(value) or UNKNOWN_WINE_NAME

    @field_validator(
        "producer",
        "region",
        "description",
        "serving_temperature",
        "storage_potential",
        mode="before",
    )
    @classmethod
    def _optional_text(cls, value):
        return _clean_str(value)

    @field_validator("vintage", mode="before")
    @classmethod
    def _vintage_year(cls, value):
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            return int(value)
        match = _YEAR.search(str(value))
        return int(match.group(1)) if match else None

    @field_validator("grapes", "flavor_profile", mode="before")
    @classmethod
    def _text_list(cls, value):
        return _str_list(value)

    @field_validator("food_pairing_tags", mode="before")
    @classmethod
    def _valid_tags(cls, value):
        return filter_food_tags(value)

    @property
    def is_identified(self) -> bool:
        return self.name != UNKNOWN_WINE_NAME

    @classmethod
    def unknown(cls) -> "WineLabelAnalysis":
        return cls()


def parse_label_analysis(text: str) -> WineLabelAnalysis:
    try:
        payload = json.loads(strip_code_fences(text or ""))
    except json.JSONDecodeError as e:
        raise EnrichmentFailure(f"label analysis is not JSON: {e}") from e
    if not isinstance(payload, dict):
        raise EnrichmentFailure("label analysis is not a JSON object")
    try:
        return WineLabelAnalysis.model_validate(payload)
    except ValidationError as e:
        raise EnrichmentFailure(f"label analysis failed validation: {e}") from e


def parse_tag_list(text: str) -> List[str]:
    try:
        payload = json.loads(strip_code_fences(text or ""))
    except json.JSONDecodeError as e:
        raise EnrichmentFailure(f"tag list is not JSON: {e}") from e
    # Some models wrap the array, e.g. {"tags": [...]}.
    if isinstance(payload, dict) and isinstance(payload.get("tags"), list):
        payload = payload["tags"]
    if not isinstance(payload, list):
        raise EnrichmentFailure("tag list is not a JSON array")
    return filter_food_tags(payload)


def decode_image(image: str) -> tuple[bytes, str]:
    """
    Decode a base64 image or data URL into (bytes, mime type).

    Raises:
        ValueError: If the payload is not valid base64.
    """
    mime_type = "image/jpeg"
    data = image.strip()
    match = _DATA_URL.match(data)
    if match:
        mime_type = match.group("mime") or mime_type
        data = match.group("data")
    data = "".join(data.split())
    try:
        image_bytes = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError("image is not valid base64") from e
    if not image_bytes:
        raise ValueError("image is empty")
    return image_bytes, mime_type


class LabelAnalyzer:
    """Sends a label photo to the vision model and validates the answer."""

    def __init__(self, llm: LanguageModel):
        self._llm = llm

    def analyze(self, image_bytes: bytes, mime_type: str = "image/jpeg") -> WineLabelAnalysis:
        try:
            response_text = self._llm.predict_with_image(
                prompts.make_wine_label_prompt(),
                image_bytes,
                mime_type=mime_type,
                system_instruction=prompts.WINE_LABEL_SYSTEM_PROMPT,
            )
        except GeminiInvalidResponseException as e:
            raise EnrichmentFailure("vision model returned no text") from e
        analysis = parse_label_analysis(response_text)
        logger.info(
            "Label analysis: name=%r producer=%r vintage=%s",
            analysis.name,
            analysis.producer,
            analysis.vintage,
        )
        return analysis
