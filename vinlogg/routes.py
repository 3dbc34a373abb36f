"""
HTTP routes for the Vinlogg API.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import date as date_cls
from typing import Optional
from uuid import uuid4

from fastapi import APIRouter, Body, Depends, File, Query, UploadFile
from starlette.concurrency import run_in_threadpool

from models.gemini import LanguageModel
from shared.constants import (
    IMAGE_EXTENSIONS,
    MAX_FOOD_QUERY_LENGTH,
    MAX_IMAGE_BYTES,
    MAX_RATING,
    MIN_RATING,
)
from shared.types import PartnerStatus, User, WineSource
from vinlogg import __version__, catalog, cellar
from vinlogg.auth import AuthClient
from vinlogg.db import DbClient, LogRecord, WineRecord
from vinlogg.dependencies import (
    Services,
    get_auth_client,
    get_current_user,
    get_db_client,
    get_language_model,
    get_services,
    get_storage_client,
)
from vinlogg.enrichment import (
    EnrichmentFailure,
    LabelAnalyzer,
    decode_image,
    filter_food_tags,
)
from vinlogg.errors import ApiError, DbError
from vinlogg.food_tags import FoodTagResolver, logs_matching_tags
from vinlogg.partners import invite_partner, link_pending_invites, visible_user_ids
from vinlogg.scan import WineScanner
from vinlogg.schemas import (
    CellarAddRequest,
    CellarUpdateRequest,
    DeleteResponse,
    FoodSearchRequest,
    HealthResponse,
    ImageUploadResponse,
    LinkPartnersResponse,
    LogCreateRequest,
    LogUpdateRequest,
    PartnerDeleteRequest,
    PartnerInviteRequest,
    ScanWineRequest,
    StatsResponse,
    WineCreateRequest,
)
from vinlogg.stats import compute_stats
from vinlogg.storage import StorageClient, StorageError

logger = logging.getLogger(__name__)

router = APIRouter()

SCAN_ERROR = "Ett fel uppstod vid analys av bilden"
SEARCH_ERROR = "Ett fel uppstod vid sökning"
LOG_NOT_FOUND = "Loggen hittades inte"


@contextmanager
def _backend_call(message: str):
    """Turn database failures into a 500 with `message` for the client."""
    try:
        yield
    except DbError:
        logger.exception("Backend call failed (%s)", message)
        raise ApiError(500, message)


def _require(value: Optional[str], message: str) -> str:
    if value is None or not str(value).strip():
        raise ApiError(400, message)
    return str(value).strip()


def _check_rating(rating: Optional[int]) -> None:
    if rating is not None and not MIN_RATING <= rating <= MAX_RATING:
        raise ApiError(400, "Betyget måste vara mellan 1 och 5")


def _check_date(value: Optional[str]) -> str:
    if not value:
        return date_cls.today().isoformat()
    try:
        return date_cls.fromisoformat(value[:10]).isoformat()
    except ValueError:
        raise ApiError(400, "Ogiltigt datum")


def _check_wine_exists(db: DbClient, wine_id: Optional[str]) -> None:
    if wine_id and db.get_wine(wine_id) is None:
        raise ApiError(400, "Vinet finns inte")


@router.get("/health", response_model=HealthResponse)
def health():
    return HealthResponse(status="ok", version=__version__)


# Logs


@router.get("/logs")
def list_logs(
    user: User = Depends(get_current_user), db: DbClient = Depends(get_db_client)
):
    with _backend_call("Kunde inte hämta viner"):
        logs = db.list_logs(visible_user_ids(db, user.id))
    return {"logs": [log.as_dict() for log in logs]}


@router.post("/logs")
def create_log(
    payload: LogCreateRequest,
    user: User = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    _check_rating(payload.rating)
    log_date = _check_date(payload.date)
    with _backend_call("Kunde inte spara vinet"):
        _check_wine_exists(db, payload.wine_id)
        fields = payload.model_dump(exclude={"date"})
        log = db.insert_log(LogRecord(user_id=user.id, date=log_date, **fields))
    return {"log": log.as_dict()}


@router.patch("/logs")
def update_log(
    payload: LogUpdateRequest,
    user: User = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    log_id = _require(payload.id, "Inget log-ID angavs")
    updates = payload.model_dump(exclude_unset=True, exclude={"id"})
    if "rating" in updates:
        _check_rating(updates["rating"])
    if "date" in updates:
        updates["date"] = _check_date(updates["date"])
    with _backend_call("Kunde inte uppdatera"):
        _check_wine_exists(db, updates.get("wine_id"))
        log = db.update_log(log_id, user.id, updates)
    if log is None:
        raise ApiError(404, LOG_NOT_FOUND)
    return {"log": log.as_dict()}


@router.delete("/logs", response_model=DeleteResponse)
def delete_log(
    log_id: Optional[str] = Query(None, alias="id"),
    user: User = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    log_id = _require(log_id, "Inget log-ID angavs")
    with _backend_call("Kunde inte radera vinet"):
        deleted = db.delete_log(log_id, user.id)
    if not deleted:
        raise ApiError(404, LOG_NOT_FOUND)
    return DeleteResponse(success=True, deleted_id=log_id)


# Wines


@router.get("/wines")
def get_wine(
    wine_id: Optional[str] = Query(None, alias="id"),
    user: User = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    wine_id = _require(wine_id, "id krävs")
    with _backend_call("Kunde inte hämta vinet"):
        wine = db.get_wine(wine_id)
    if wine is None:
        raise ApiError(404, "Vinet hittades inte")
    return {"wine": wine.as_dict()}


@router.post("/wines")
def create_wine(
    payload: WineCreateRequest,
    user: User = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    name = _require(payload.name, "Namn krävs")
    candidate = WineRecord(
        name=name,
        producer=payload.producer or None,
        vintage=payload.vintage,
        region=payload.region or None,
        price=payload.price,
        article_number=(payload.article_number or "").strip() or None,
        food_pairing_tags=filter_food_tags(payload.food_pairing_tags),
        retailer_url=payload.retailer_url or None,
        image_url=payload.image_url or None,
        grapes=list(payload.grapes),
        description=payload.description or None,
        source=WineSource.MANUAL.value,
    )
    with _backend_call("Kunde inte spara vinet"):
        wine, created = catalog.ensure_wine(db, candidate)
    return {"wine": wine.as_dict(), "created": created}


# Cellar


@router.get("/cellar")
def list_cellar(
    user: User = Depends(get_current_user), db: DbClient = Depends(get_db_client)
):
    with _backend_call("Kunde inte hämta hemmalager"):
        items = db.list_cellar(visible_user_ids(db, user.id))
    return {"cellar": [item.as_dict() for item in items]}


@router.post("/cellar")
def add_to_cellar(
    payload: CellarAddRequest,
    user: User = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    wine_id = _require(payload.wine_id, "wine_id krävs")
    with _backend_call("Kunde inte lägga till"):
        item, action = cellar.add_to_cellar(
            db, user.id, wine_id, payload.quantity, payload.notes
        )
    return {"item": item.as_dict(), "action": action}


@router.patch("/cellar")
def update_cellar(
    payload: CellarUpdateRequest,
    user: User = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    item_id = _require(payload.id, "id krävs")
    with _backend_call("Kunde inte uppdatera"):
        item, action = cellar.update_cellar_item(
            db, user.id, item_id, payload.quantity, payload.notes
        )
    return {"item": item.as_dict() if item else None, "action": action}


@router.delete("/cellar", response_model=DeleteResponse)
def delete_from_cellar(
    item_id: Optional[str] = Query(None, alias="id"),
    user: User = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    item_id = _require(item_id, "id krävs")
    with _backend_call("Kunde inte ta bort"):
        deleted = db.delete_cellar_item(item_id, user.id)
    if not deleted:
        raise ApiError(404, "Hittades inte i hemmalagret")
    return DeleteResponse(success=True, deleted_id=item_id)


# Partners


@router.get("/partners")
def list_partners(
    user: User = Depends(get_current_user), db: DbClient = Depends(get_db_client)
):
    with _backend_call("Kunde inte hämta partners"):
        partners = db.list_partner_links(user.id, PartnerStatus.ACCEPTED)
        pending = db.list_pending_invites(user.email) if user.email else []
    return {
        "partners": [link.as_dict() for link in partners],
        "pending_invites": [link.as_dict() for link in pending],
    }


@router.post("/partners")
def create_partner_invite(
    payload: PartnerInviteRequest,
    user: User = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    auth: AuthClient = Depends(get_auth_client),
):
    with _backend_call("Kunde inte skapa inbjudan"):
        result = invite_partner(db, auth, user, payload.email)
    return {"invite": result.invite.as_dict(), "message": result.message}


@router.post("/partners/link", response_model=LinkPartnersResponse)
def link_partners(
    user: User = Depends(get_current_user), db: DbClient = Depends(get_db_client)
):
    with _backend_call("Kunde inte länka partners"):
        linked = link_pending_invites(db, user)
    message = (
        f"{len(linked)} partner(s) kopplades" if linked else "Inga väntande inbjudningar"
    )
    return LinkPartnersResponse(linked=len(linked), message=message)


@router.delete("/partners", response_model=DeleteResponse)
def delete_partner(
    partner_id: Optional[str] = Query(None, alias="id"),
    payload: Optional[PartnerDeleteRequest] = Body(None),
    user: User = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    partner_id = _require(
        partner_id or (payload.partnerId if payload else None), "Partner ID krävs"
    )
    with _backend_call("Kunde inte ta bort partner"):
        deleted = db.delete_partner_link(partner_id, user.id)
    if not deleted:
        raise ApiError(404, "Partnern hittades inte")
    return DeleteResponse(success=True, deleted_id=partner_id)


# Scanning and food search


@router.post("/scan-wine")
def scan_wine(
    payload: ScanWineRequest,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    if not payload.image:
        raise ApiError(400, "Ingen bild skickades")
    try:
        image_bytes, mime_type = decode_image(payload.image)
    except ValueError:
        raise ApiError(400, "Ogiltig bild")
    if len(image_bytes) > MAX_IMAGE_BYTES:
        raise ApiError(400, "Bilden är för stor")
    if services.llm is None:
        logger.error("Scan requested but no vision model is configured")
        raise ApiError(500, SCAN_ERROR)

    scanner = WineScanner(LabelAnalyzer(services.llm), services.retailer, services.db)
    try:
        result = scanner.scan(image_bytes, mime_type)
    except Exception:
        logger.exception("Label analysis failed")
        raise ApiError(500, SCAN_ERROR)
    return result.as_dict()


@router.post("/search-food")
def search_food(
    payload: FoodSearchRequest,
    user: User = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    llm: Optional[LanguageModel] = Depends(get_language_model),
):
    food = payload.food
    if not isinstance(food, str) or not food.strip():
        raise ApiError(400, "Ingen mat angiven")
    if len(food) > MAX_FOOD_QUERY_LENGTH:
        raise ApiError(400, "Beskrivningen är för lång")

    try:
        tags = FoodTagResolver(llm).resolve(food)
    except EnrichmentFailure as e:
        logger.warning("Could not map %r to tags: %s", food, e)
        tags = []
    except Exception:
        logger.exception("Food tag lookup failed")
        raise ApiError(500, SEARCH_ERROR)

    if not tags:
        return {
            "success": True,
            "tags": [],
            "wines": [],
            "message": "Kunde inte matcha maten till några vin-kategorier",
        }

    with _backend_call("Kunde inte hämta viner"):
        matches = logs_matching_tags(db.list_logs([user.id]), tags)
    response = {
        "success": True,
        "tags": tags,
        "wines": [log.as_dict() for log in matches],
    }
    if not matches:
        response["message"] = "Inga viner i din källare matchar den maten"
    return response


# Images and stats


@router.post("/images", response_model=ImageUploadResponse)
async def upload_image(
    file: UploadFile = File(...),
    user: User = Depends(get_current_user),
    storage: StorageClient = Depends(get_storage_client),
):
    content_type = (file.content_type or "").lower()
    if not content_type.startswith("image/"):
        raise ApiError(400, "Filen måste vara en bild")
    data = await file.read()
    if not data:
        raise ApiError(400, "Ingen bild skickades")
    if len(data) > MAX_IMAGE_BYTES:
        raise ApiError(400, "Bilden är för stor")

    extension = IMAGE_EXTENSIONS.get(content_type, "jpg")
    path = f"{user.id}/{uuid4().hex}.{extension}"
    try:
        await run_in_threadpool(storage.upload_bytes, path, data, content_type)
    except StorageError:
        logger.exception("Image upload failed for %s", path)
        raise ApiError(500, "Kunde inte ladda upp bilden")
    return ImageUploadResponse(path=path, url=storage.public_url(path))


@router.get("/stats", response_model=StatsResponse)
def stats(
    user: User = Depends(get_current_user), db: DbClient = Depends(get_db_client)
):
    with _backend_call("Kunde inte hämta statistik"):
        logs = db.list_logs(visible_user_ids(db, user.id))
    return compute_stats(logs)
