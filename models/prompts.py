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

from typing import Iterable

from shared.constants import VALID_FOOD_TAGS

WINE_LABEL_SYSTEM_PROMPT = (
    "You are a sommelier API. Analyze wine labels and return structured JSON "
    "data. Always respond with ONLY valid JSON, no markdown or explanations."
)

_WINE_LABEL_PROMPT_TEMPLATE = """Analyze the wine label in this image. Return a JSON object with:

{{
  "name": "Full name of the wine",
  "producer": "Producer/winery name",
  "vintage": 2020,
  "region": "Region/Country",
  "grapes": ["Shiraz", "Cabernet"],
  "food_pairing_tags": ["Nöt", "Lamm"],
  "description": "A short 1-sentence description of the wine's likely taste profile",
  "serving_temperature": "16-18°C",
  "storage_potential": "Drink now or cellar for 5 years",
  "flavor_profile": ["dark berries", "oak", "pepper"]
}}

IMPORTANT for food_pairing_tags: Choose 1-3 tags STRICTLY from this list:
{tags}

If you cannot determine a field, set it to null (or empty array for arrays)."""


def make_wine_label_prompt(tags: Iterable[str] = VALID_FOOD_TAGS) -> str:
    return _WINE_LABEL_PROMPT_TEMPLATE.format(tags=", ".join(tags))


def make_food_tag_system_prompt(tags: Iterable[str] = VALID_FOOD_TAGS) -> str:
    return (
        "Du matchar mat med vinkategorier. Svara ENDAST med en JSON-array.\n\n"
        f"Tillgängliga taggar: {', '.join(tags)}"
    )


def make_food_tag_prompt(food_description: str) -> str:
    return (
        f'Vilka taggar matchar bäst med: "{food_description}"? '
        'Svara med JSON-array, t.ex: ["Fisk", "Skaldjur"]'
    )
