"""
Pydantic schemas for the Vinlogg API.

Fields the API requires are still Optional here; handlers check them and
answer 400 with a specific message.
"""

from __future__ import annotations

from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from shared.constants import MAX_NOTES_LENGTH


class ScanWineRequest(BaseModel):
    image: Optional[str] = None


class FoodSearchRequest(BaseModel):
    food: Any = None


class WineCreateRequest(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    name: Optional[str] = None
    producer: Optional[str] = None
    vintage: Optional[int] = None
    region: Optional[str] = None
    article_number: Optional[str] = None
    price: Optional[float] = None
    food_pairing_tags: List[str] = Field(default_factory=list)
    retailer_url: Optional[str] = None
    image_url: Optional[str] = None
    grapes: List[str] = Field(default_factory=list)
    description: Optional[str] = None


class LogCreateRequest(BaseModel):
    wine_id: Optional[str] = None
    rating: Optional[int] = None
    notes: Optional[str] = Field(default=None, max_length=MAX_NOTES_LENGTH)
    location_name: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    companions: Optional[str] = None
    occasion: Optional[str] = None
    user_image_url: Optional[str] = None
    date: Optional[str] = None


class LogUpdateRequest(LogCreateRequest):
    id: Optional[str] = None


class CellarAddRequest(BaseModel):
    wine_id: Optional[str] = None
    quantity: int = 1
    notes: Optional[str] = Field(default=None, max_length=MAX_NOTES_LENGTH)


class CellarUpdateRequest(BaseModel):
    id: Optional[str] = None
    quantity: Optional[int] = None
    notes: Optional[str] = Field(default=None, max_length=MAX_NOTES_LENGTH)


class PartnerInviteRequest(BaseModel):
    email: Optional[str] = None


class PartnerDeleteRequest(BaseModel):
    partnerId: Optional[str] = None


class LinkPartnersResponse(BaseModel):
    linked: int
    message: str


class DeleteResponse(BaseModel):
    success: Literal[True]
    deleted_id: Optional[str] = None


class RegionCount(BaseModel):
    region: str
    count: int


class StatsResponse(BaseModel):
    total: int
    average_rating: float
    top_regions: List[RegionCount]
    rating_distribution: List[int]
    producers: int


class ImageUploadResponse(BaseModel):
    path: str
    url: str


class HealthResponse(BaseModel):
    status: Literal["ok"]
    version: str
