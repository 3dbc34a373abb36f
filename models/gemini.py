# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

import time
import logging
from typing import Optional, Protocol

from google import genai
from google.genai import types

logger = logging.getLogger(__name__)

DEFAULT_VISION_MODEL = "gemini-2.5-flash"
DEFAULT_TAG_MODEL = "gemini-2.5-flash-lite"
LABEL_RESPONSE_MAX_OUTPUT_TOKENS = 1000
TAG_RESPONSE_MAX_OUTPUT_TOKENS = 100


class GeminiInvalidResponseException(Exception):
    pass


class LanguageModel(Protocol):
    """The two calls the service makes against a language model."""

    def predict(
        self,
        prompt: str,
        *,
        system_instruction: Optional[str] = None,
        json_output: bool = True,
    ) -> str:
        ...

    def predict_with_image(
        self,
        prompt: str,
        image_bytes: bytes,
        *,
        mime_type: str = "image/jpeg",
        system_instruction: Optional[str] = None,
    ) -> str:
        ...


class GeminiClient:
    """
    Thin wrapper around a single google-genai client.

    Label analysis goes to `vision_model`; cheap text calls such as food tag
    mapping go to `tag_model`.
    """

    def __init__(
        self,
        api_key: str,
        vision_model: str = DEFAULT_VISION_MODEL,
        tag_model: str = DEFAULT_TAG_MODEL,
    ):
        if not api_key:
            raise ValueError("GEMINI_API_KEY is required for GeminiClient")
        self.vision_model = vision_model
        self.tag_model = tag_model
        self._client = genai.Client(api_key=api_key)

    def predict(
        self,
        prompt: str,
        *,
        system_instruction: Optional[str] = None,
        json_output: bool = True,
    ) -> str:
        start_time = time.time()
        response = self._client.models.generate_content(
            model=self.tag_model,
            contents=prompt,
            config=types.GenerateContentConfig(
                system_instruction=system_instruction,
                temperature=0,
                max_output_tokens=TAG_RESPONSE_MAX_OUTPUT_TOKENS,
                response_mime_type="application/json" if json_output else None,
            ),
        )
        logger.info("Gemini text call took %.2fs", time.time() - start_time)
        if not response.text:
            raise GeminiInvalidResponseException()
        return response.text

    def predict_with_image(
        self,
        prompt: str,
        image_bytes: bytes,
        *,
        mime_type: str = "image/jpeg",
        system_instruction: Optional[str] = None,
    ) -> str:
        """Calls Gemini with a prompt and an image."""
        start_time = time.time()
        response = self._client.models.generate_content(
            model=self.vision_model,
            contents=[
                prompt,
                types.Part.from_bytes(data=image_bytes, mime_type=mime_type),
            ],
            config=types.GenerateContentConfig(
                system_instruction=system_instruction,
                temperature=0,
                max_output_tokens=LABEL_RESPONSE_MAX_OUTPUT_TOKENS,
                response_mime_type="application/json",
            ),
        )
        logger.info(
            "Gemini image call took %.2fs (%d bytes)",
            time.time() - start_time,
            len(image_bytes),
        )
        if not response.text:
            raise GeminiInvalidResponseException()
        return response.text
