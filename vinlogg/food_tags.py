"""
Maps a free-text meal description to food-pairing tags.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from models import prompts
from models.gemini import GeminiInvalidResponseException, LanguageModel
from vinlogg.db import LogRecord
from vinlogg.enrichment import EnrichmentFailure, parse_tag_list

logger = logging.getLogger(__name__)

# Checked in order; the first keyword contained in the description wins.
FOOD_TAG_MAPPINGS: dict[str, List[str]] = {
    "nötkött": ["Nöt"],
    "nötfärs": ["Nöt"],
    "biff": ["Nöt"],
    "entrecôte": ["Nöt"],
    "oxfilé": ["Nöt"],
    "kalv": ["Ljust kött"],
    "kalvkött": ["Ljust kött"],
    "gris": ["Fläsk"],
    "fläsk": ["Fläsk"],
    "fläskkött": ["Fläsk"],
    "kyckling": ["Fågel"],
    "anka": ["Fågel"],
    "kalkon": ["Fågel"],
    "vilt": ["Vilt"],
    "älg": ["Vilt"],
    "rådjur": ["Vilt"],
    "hjort": ["Vilt"],
    "lamm": ["Lamm"],
    "lammkött": ["Lamm"],
    "fisk": ["Fisk"],
    "lax": ["Fisk"],
    "torsk": ["Fisk"],
    "skaldjur": ["Skaldjur"],
    "räkor": ["Skaldjur"],
    "hummer": ["Skaldjur"],
    "musslor": ["Skaldjur"],
    "vegetariskt": ["Vegetariskt"],
    "vegan": ["Vegetariskt"],
    "grönsaker": ["Vegetariskt"],
    "aperitif": ["Sällskapsdryck"],
    "mingel": ["Sällskapsdryck"],
}


def match_static_tags(food_description: str) -> Optional[List[str]]:
    lowered = food_description.lower().strip()
    for keyword, tags in FOOD_TAG_MAPPINGS.items():
        if keyword in lowered:
            return list(tags)
    return None


class FoodTagResolver:
    """Static keyword table first, then the cheap language model."""

    def __init__(self, llm: Optional[LanguageModel] = None):
        self._llm = llm

    def resolve(self, food_description: str) -> List[str]:
        """
        Raises:
            EnrichmentFailure: If the model answer is not a JSON tag array.
        """
        tags = match_static_tags(food_description)
        if tags is not None:
            return tags

        if self._llm is None:
            raise EnrichmentFailure("no language model configured for tag mapping")

        try:
            response_text = self._llm.predict(
                prompts.make_food_tag_prompt(food_description.strip()),
                system_instruction=prompts.make_food_tag_system_prompt(),
            )
        except GeminiInvalidResponseException as e:
            raise EnrichmentFailure("tag model returned no text") from e
        tags = parse_tag_list(response_text)
        logger.info("Model mapped %r to %s", food_description, tags)
        return tags


def logs_matching_tags(logs: Iterable[LogRecord], tags: Iterable[str]) -> List[LogRecord]:
    """Logs whose wine carries at least one of the tags, order kept."""
    wanted = set(tags)
    return [
        log
        for log in logs
        if log.wine and wanted.intersection(log.wine.food_pairing_tags)
    ]
