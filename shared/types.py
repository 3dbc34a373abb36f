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

from dataclasses import dataclass, field
from enum import StrEnum
from typing import List, Optional


class PartnerStatus(StrEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"


class WineSource(StrEnum):
    RETAILER = "retailer"
    AI = "ai"
    MANUAL = "manual"


@dataclass
class User:
    """An authenticated account as reported by the auth provider."""

    id: str
    email: Optional[str] = None


@dataclass
class RetailerProduct:
    """The best retailer search hit for a wine."""

    article_number: str
    name: str
    price: Optional[float]
    food_pairing_tags: List[str] = field(default_factory=list)
    url: Optional[str] = None
    image_url: Optional[str] = None

    def as_dict(self) -> dict:
        return {
            "article_number": self.article_number,
            "name": self.name,
            "price": self.price,
            "food_pairing_tags": list(self.food_pairing_tags),
            "url": self.url,
            "image_url": self.image_url,
        }
