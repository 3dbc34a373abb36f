"""
Wine catalog writes with deduplication.
"""

from __future__ import annotations

from typing import Optional

from shared.types import RetailerProduct, WineSource
from vinlogg.db import DbClient, WineRecord
from vinlogg.enrichment import WineLabelAnalysis, filter_food_tags
from vinlogg.errors import DbError


def find_existing_wine(db: DbClient, wine: WineRecord) -> Optional[WineRecord]:
    """Article number decides when present, otherwise name and producer."""
    if wine.article_number:
        return db.find_wine_by_article_number(wine.article_number)
    return db.find_wine_by_name_producer(wine.name, wine.producer)


def ensure_wine(db: DbClient, wine: WineRecord) -> tuple[WineRecord, bool]:
    """Return (wine, created)."""
    existing = find_existing_wine(db, wine)
    if existing:
        return existing, False
    try:
        return db.insert_wine(wine), True
    except DbError:
        # Lost a race with a concurrent insert of the same article number.
        existing = find_existing_wine(db, wine)
        if existing:
            return existing, False
        raise


def wine_from_retailer(
    product: RetailerProduct, analysis: WineLabelAnalysis
) -> WineRecord:
    return WineRecord(
        name=product.name or analysis.name,
        producer=analysis.producer,
        vintage=analysis.vintage,
        region=analysis.region,
        price=product.price,
        article_number=product.article_number,
        food_pairing_tags=filter_food_tags(list(product.food_pairing_tags))
        or list(analysis.food_pairing_tags),
        retailer_url=product.url,
        image_url=product.image_url,
        grapes=list(analysis.grapes),
        description=analysis.description,
        serving_temperature=analysis.serving_temperature,
        storage_potential=analysis.storage_potential,
        flavor_profile=list(analysis.flavor_profile),
        source=WineSource.RETAILER.value,
    )


def wine_from_analysis(analysis: WineLabelAnalysis) -> WineRecord:
    return WineRecord(
        name=analysis.name,
        producer=analysis.producer,
        vintage=analysis.vintage,
        region=analysis.region,
        food_pairing_tags=list(analysis.food_pairing_tags),
        grapes=list(analysis.grapes),
        description=analysis.description,
        serving_temperature=analysis.serving_temperature,
        storage_potential=analysis.storage_potential,
        flavor_profile=list(analysis.flavor_profile),
        source=WineSource.AI.value,
    )
