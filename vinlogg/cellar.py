"""
Cellar inventory changes. A row exists only while its quantity is positive.
"""

from __future__ import annotations

from typing import Optional

from vinlogg.db import CellarRecord, DbClient
from vinlogg.errors import ApiError

ACTION_CREATED = "created"
ACTION_UPDATED = "updated"
ACTION_REMOVED = "removed"


def add_to_cellar(
    db: DbClient,
    user_id: str,
    wine_id: str,
    quantity: int = 1,
    notes: Optional[str] = None,
) -> tuple[CellarRecord, str]:
    if quantity < 1:
        raise ApiError(400, "Antalet måste vara minst 1")
    if db.get_wine(wine_id) is None:
        raise ApiError(400, "Vinet finns inte")

    existing = db.find_cellar_item(user_id, wine_id)
    if existing:
        updated = db.update_cellar_item(
            existing.id,
            user_id,
            quantity=existing.quantity + quantity,
            notes=notes or None,
        )
        return updated, ACTION_UPDATED

    item = db.insert_cellar_item(
        CellarRecord(user_id=user_id, wine_id=wine_id, quantity=quantity, notes=notes)
    )
    return item, ACTION_CREATED


def update_cellar_item(
    db: DbClient,
    user_id: str,
    item_id: str,
    quantity: Optional[int] = None,
    notes: Optional[str] = None,
) -> tuple[Optional[CellarRecord], str]:
    """Quantity at or below zero removes the row instead of storing it."""
    if quantity is not None and quantity <= 0:
        if not db.delete_cellar_item(item_id, user_id):
            raise ApiError(404, "Hittades inte i hemmalagret")
        return None, ACTION_REMOVED

    updated = db.update_cellar_item(item_id, user_id, quantity=quantity, notes=notes)
    if updated is None:
        raise ApiError(404, "Hittades inte i hemmalagret")
    return updated, ACTION_UPDATED
