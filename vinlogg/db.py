"""
Database abstraction for Postgres and an in-memory test implementation.

Row-level security lives in the managed backend; every per-user method here
still takes the acting user's id so ownership is enforced on both clients.
"""

from __future__ import annotations

import threading
import time
import uuid
from dataclasses import dataclass, field, replace
from datetime import date as date_cls
from typing import Dict, List, Optional, Protocol, Sequence

from sqlalchemy import (
    JSON,
    Column,
    Float,
    Integer,
    String,
    and_,
    create_engine,
    or_,
    select,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from shared.types import PartnerStatus, WineSource
from vinlogg.errors import DbError

LOG_FIELDS = (
    "wine_id",
    "rating",
    "notes",
    "location_name",
    "latitude",
    "longitude",
    "companions",
    "occasion",
    "user_image_url",
    "date",
)


def _new_id() -> str:
    return uuid.uuid4().hex


def _today() -> str:
    return date_cls.today().isoformat()


def wine_match_key(name: Optional[str], producer: Optional[str]) -> str:
    """Case-insensitive name+producer key, folded in Python so every backend agrees."""
    name = (name or "").strip().casefold()
    producer = (producer or "").strip().casefold()
    return f"{name}|{producer}"


@dataclass
class WineRecord:
    name: str
    producer: Optional[str] = None
    vintage: Optional[int] = None
    region: Optional[str] = None
    price: Optional[float] = None
    article_number: Optional[str] = None
    food_pairing_tags: List[str] = field(default_factory=list)
    retailer_url: Optional[str] = None
    image_url: Optional[str] = None
    grapes: List[str] = field(default_factory=list)
    description: Optional[str] = None
    serving_temperature: Optional[str] = None
    storage_potential: Optional[str] = None
    flavor_profile: List[str] = field(default_factory=list)
    source: str = WineSource.MANUAL.value
    id: str = ""
    created_at: float = field(default_factory=lambda: time.time())
    updated_at: float = field(default_factory=lambda: time.time())

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "producer": self.producer,
            "vintage": self.vintage,
            "region": self.region,
            "price": self.price,
            "article_number": self.article_number,
            "food_pairing_tags": list(self.food_pairing_tags),
            "retailer_url": self.retailer_url,
            "image_url": self.image_url,
            "grapes": list(self.grapes),
            "description": self.description,
            "serving_temperature": self.serving_temperature,
            "storage_potential": self.storage_potential,
            "flavor_profile": list(self.flavor_profile),
            "source": self.source,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass
class LogRecord:
    user_id: str
    wine_id: Optional[str] = None
    rating: Optional[int] = None
    notes: Optional[str] = None
    location_name: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    companions: Optional[str] = None
    occasion: Optional[str] = None
    user_image_url: Optional[str] = None
    date: str = field(default_factory=_today)
    id: str = ""
    created_at: float = field(default_factory=lambda: time.time())
    updated_at: float = field(default_factory=lambda: time.time())
    wine: Optional[WineRecord] = None

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "wine_id": self.wine_id,
            "rating": self.rating,
            "notes": self.notes,
            "location_name": self.location_name,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "companions": self.companions,
            "occasion": self.occasion,
            "user_image_url": self.user_image_url,
            "date": self.date,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "wine": self.wine.as_dict() if self.wine else None,
        }


@dataclass
class CellarRecord:
    user_id: str
    wine_id: str
    quantity: int = 1
    notes: Optional[str] = None
    id: str = ""
    added_at: float = field(default_factory=lambda: time.time())
    updated_at: float = field(default_factory=lambda: time.time())
    wine: Optional[WineRecord] = None

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "wine_id": self.wine_id,
            "quantity": self.quantity,
            "notes": self.notes,
            "added_at": self.added_at,
            "updated_at": self.updated_at,
            "wine": self.wine.as_dict() if self.wine else None,
        }


@dataclass
class PartnerRecord:
    user_id: str
    partner_email: str
    partner_user_id: Optional[str] = None
    status: str = PartnerStatus.PENDING.value
    id: str = ""
    created_at: float = field(default_factory=lambda: time.time())
    updated_at: float = field(default_factory=lambda: time.time())

    def counterpart_of(self, user_id: str) -> Optional[str]:
        if self.user_id == user_id:
            return self.partner_user_id
        if self.partner_user_id == user_id:
            return self.user_id
        return None

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "partner_email": self.partner_email,
            "partner_user_id": self.partner_user_id,
            "status": self.status,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


class DbClient(Protocol):
    """Interface for database access."""

    # wines
    def get_wine(self, wine_id: str) -> Optional[WineRecord]:
        ...

    def find_wine_by_article_number(
        self, article_number: str
    ) -> Optional[WineRecord]:
        ...

    def find_wine_by_name_producer(
        self, name: str, producer: Optional[str]
    ) -> Optional[WineRecord]:
        ...

    def insert_wine(self, wine: WineRecord) -> WineRecord:
        ...

    # logs
    def list_logs(self, user_ids: Sequence[str]) -> List[LogRecord]:
        ...

    def get_log(self, log_id: str) -> Optional[LogRecord]:
        ...

    def insert_log(self, log: LogRecord) -> LogRecord:
        ...

    def update_log(
        self, log_id: str, user_id: str, updates: dict
    ) -> Optional[LogRecord]:
        ...

    def delete_log(self, log_id: str, user_id: str) -> bool:
        ...

    # cellar
    def list_cellar(self, user_ids: Sequence[str]) -> List[CellarRecord]:
        ...

    def find_cellar_item(
        self, user_id: str, wine_id: str
    ) -> Optional[CellarRecord]:
        ...

    def insert_cellar_item(self, item: CellarRecord) -> CellarRecord:
        ...

    def update_cellar_item(
        self,
        item_id: str,
        user_id: str,
        *,
        quantity: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> Optional[CellarRecord]:
        ...

    def delete_cellar_item(self, item_id: str, user_id: str) -> bool:
        ...

    # partners
    def list_partner_links(
        self, user_id: str, status: PartnerStatus = PartnerStatus.ACCEPTED
    ) -> List[PartnerRecord]:
        ...

    def list_pending_invites(self, email: str) -> List[PartnerRecord]:
        ...

    def find_partner_link(
        self, user_id: str, partner_email: str
    ) -> Optional[PartnerRecord]:
        ...

    def insert_partner_link(self, link: PartnerRecord) -> PartnerRecord:
        ...

    def accept_pending_links(
        self, email: str, user_id: str
    ) -> List[PartnerRecord]:
        ...

    def delete_partner_link(self, link_id: str, user_id: str) -> bool:
        ...


def _log_sort_key(log: LogRecord):
    return (log.date or "", log.created_at)


class InMemoryDbClient:
    """Simple in-memory database for development and tests."""

    def __init__(self):
        self.wines: Dict[str, WineRecord] = {}
        self.logs: Dict[str, LogRecord] = {}
        self.cellar: Dict[str, CellarRecord] = {}
        self.partners: Dict[str, PartnerRecord] = {}
        self._lock = threading.Lock()

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        with self._lock:
            self.wines.clear()
            self.logs.clear()
            self.cellar.clear()
            self.partners.clear()

    def _with_wine(self, record):
        wine = self.wines.get(record.wine_id) if record.wine_id else None
        return replace(record, wine=wine)

    def get_wine(self, wine_id: str) -> Optional[WineRecord]:
        return self.wines.get(wine_id)

    def find_wine_by_article_number(
        self, article_number: str
    ) -> Optional[WineRecord]:
        for wine in self.wines.values():
            if wine.article_number and wine.article_number == article_number:
                return wine
        return None

    def find_wine_by_name_producer(
        self, name: str, producer: Optional[str]
    ) -> Optional[WineRecord]:
        key = wine_match_key(name, producer)
        for wine in self.wines.values():
            if wine_match_key(wine.name, wine.producer) == key:
                return wine
        return None

    def insert_wine(self, wine: WineRecord) -> WineRecord:
        with self._lock:
            record = replace(wine, id=wine.id or _new_id())
            self.wines[record.id] = record
            return record

    def list_logs(self, user_ids: Sequence[str]) -> List[LogRecord]:
        wanted = set(user_ids)
        logs = [
            self._with_wine(log)
            for log in self.logs.values()
            if log.user_id in wanted
        ]
        return sorted(logs, key=_log_sort_key, reverse=True)

    def get_log(self, log_id: str) -> Optional[LogRecord]:
        log = self.logs.get(log_id)
        return self._with_wine(log) if log else None

    def insert_log(self, log: LogRecord) -> LogRecord:
        with self._lock:
            record = replace(log, id=log.id or _new_id(), wine=None)
            self.logs[record.id] = record
        return self._with_wine(record)

    def update_log(
        self, log_id: str, user_id: str, updates: dict
    ) -> Optional[LogRecord]:
        with self._lock:
            log = self.logs.get(log_id)
            if not log or log.user_id != user_id:
                return None
            for key, value in updates.items():
                if key in LOG_FIELDS:
                    setattr(log, key, value)
            log.updated_at = time.time()
        return self._with_wine(log)

    def delete_log(self, log_id: str, user_id: str) -> bool:
        with self._lock:
            log = self.logs.get(log_id)
            if not log or log.user_id != user_id:
                return False
            del self.logs[log_id]
            return True

    def list_cellar(self, user_ids: Sequence[str]) -> List[CellarRecord]:
        wanted = set(user_ids)
        items = [
            self._with_wine(item)
            for item in self.cellar.values()
            if item.user_id in wanted and item.quantity > 0
        ]
        return sorted(items, key=lambda item: item.added_at, reverse=True)

    def find_cellar_item(
        self, user_id: str, wine_id: str
    ) -> Optional[CellarRecord]:
        for item in self.cellar.values():
            if item.user_id == user_id and item.wine_id == wine_id:
                return self._with_wine(item)
        return None

    def insert_cellar_item(self, item: CellarRecord) -> CellarRecord:
        with self._lock:
            record = replace(item, id=item.id or _new_id(), wine=None)
            self.cellar[record.id] = record
        return self._with_wine(record)

    def update_cellar_item(
        self,
        item_id: str,
        user_id: str,
        *,
        quantity: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> Optional[CellarRecord]:
        with self._lock:
            item = self.cellar.get(item_id)
            if not item or item.user_id != user_id:
                return None
            if quantity is not None:
                item.quantity = max(0, quantity)
            if notes is not None:
                item.notes = notes
            item.updated_at = time.time()
        return self._with_wine(item)

    def delete_cellar_item(self, item_id: str, user_id: str) -> bool:
        with self._lock:
            item = self.cellar.get(item_id)
            if not item or item.user_id != user_id:
                return False
            del self.cellar[item_id]
            return True

    def list_partner_links(
        self, user_id: str, status: PartnerStatus = PartnerStatus.ACCEPTED
    ) -> List[PartnerRecord]:
        return [
            link
            for link in self.partners.values()
            if link.status == status
            and (link.user_id == user_id or link.partner_user_id == user_id)
        ]

    def list_pending_invites(self, email: str) -> List[PartnerRecord]:
        email = email.lower()
        return [
            link
            for link in self.partners.values()
            if link.partner_email == email
            and link.status == PartnerStatus.PENDING
        ]

    def find_partner_link(
        self, user_id: str, partner_email: str
    ) -> Optional[PartnerRecord]:
        partner_email = partner_email.lower()
        for link in self.partners.values():
            if link.user_id == user_id and link.partner_email == partner_email:
                return link
        return None

    def insert_partner_link(self, link: PartnerRecord) -> PartnerRecord:
        with self._lock:
            record = replace(
                link, id=link.id or _new_id(), partner_email=link.partner_email.lower()
            )
            self.partners[record.id] = record
            return record

    def accept_pending_links(
        self, email: str, user_id: str
    ) -> List[PartnerRecord]:
        now = time.time()
        accepted: List[PartnerRecord] = []
        with self._lock:
            for link in self.list_pending_invites(email):
                link.partner_user_id = user_id
                link.status = PartnerStatus.ACCEPTED.value
                link.updated_at = now
                accepted.append(link)
        return accepted

    def delete_partner_link(self, link_id: str, user_id: str) -> bool:
        with self._lock:
            link = self.partners.get(link_id)
            if not link:
                return False
            if link.user_id != user_id and link.partner_user_id != user_id:
                return False
            del self.partners[link_id]
            return True


class PostgresDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for PostgresDbClient")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    def _run(self, operation):
        """Run `operation(session)` and translate SQLAlchemy errors."""
        try:
            with self.Session() as session:
                return operation(session)
        except SQLAlchemyError as e:
            raise DbError(str(e)) from e

    # row <-> record helpers

    @staticmethod
    def _to_wine(row: Optional["WineRow"]) -> Optional[WineRecord]:
        if row is None:
            return None
        return WineRecord(
            id=row.id,
            name=row.name,
            producer=row.producer,
            vintage=row.vintage,
            region=row.region,
            price=row.price,
            article_number=row.article_number,
            food_pairing_tags=list(row.food_pairing_tags or []),
            retailer_url=row.retailer_url,
            image_url=row.image_url,
            grapes=list(row.grapes or []),
            description=row.description,
            serving_temperature=row.serving_temperature,
            storage_potential=row.storage_potential,
            flavor_profile=list(row.flavor_profile or []),
            source=row.source,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    @classmethod
    def _to_log(cls, row: "LogRow", wine: Optional["WineRow"] = None) -> LogRecord:
        return LogRecord(
            id=row.id,
            user_id=row.user_id,
            wine_id=row.wine_id,
            rating=row.rating,
            notes=row.notes,
            location_name=row.location_name,
            latitude=row.latitude,
            longitude=row.longitude,
            companions=row.companions,
            occasion=row.occasion,
            user_image_url=row.user_image_url,
            date=row.date,
            created_at=row.created_at,
            updated_at=row.updated_at,
            wine=cls._to_wine(wine),
        )

    @classmethod
    def _to_cellar(
        cls, row: "CellarRow", wine: Optional["WineRow"] = None
    ) -> CellarRecord:
        return CellarRecord(
            id=row.id,
            user_id=row.user_id,
            wine_id=row.wine_id,
            quantity=row.quantity,
            notes=row.notes,
            added_at=row.added_at,
            updated_at=row.updated_at,
            wine=cls._to_wine(wine),
        )

    @staticmethod
    def _to_partner(row: "PartnerRow") -> PartnerRecord:
        return PartnerRecord(
            id=row.id,
            user_id=row.user_id,
            partner_email=row.partner_email,
            partner_user_id=row.partner_user_id,
            status=row.status,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    # wines

    def get_wine(self, wine_id: str) -> Optional[WineRecord]:
        return self._run(lambda session: self._to_wine(session.get(WineRow, wine_id)))

    def find_wine_by_article_number(
        self, article_number: str
    ) -> Optional[WineRecord]:
        def op(session: Session):
            stmt = (
                select(WineRow)
                .where(WineRow.article_number == article_number)
                .limit(1)
            )
            return self._to_wine(session.execute(stmt).scalar_one_or_none())

        return self._run(op)

    def find_wine_by_name_producer(
        self, name: str, producer: Optional[str]
    ) -> Optional[WineRecord]:
        def op(session: Session):
            stmt = select(WineRow).where(
                WineRow.match_key == wine_match_key(name, producer)
            )
            return self._to_wine(session.execute(stmt.limit(1)).scalar_one_or_none())

        return self._run(op)

    def insert_wine(self, wine: WineRecord) -> WineRecord:
        def op(session: Session):
            row = WineRow(
                id=wine.id or _new_id(),
                name=wine.name,
                producer=wine.producer,
                match_key=wine_match_key(wine.name, wine.producer),
                vintage=wine.vintage,
                region=wine.region,
                price=wine.price,
                article_number=wine.article_number,
                food_pairing_tags=list(wine.food_pairing_tags),
                retailer_url=wine.retailer_url,
                image_url=wine.image_url,
                grapes=list(wine.grapes),
                description=wine.description,
                serving_temperature=wine.serving_temperature,
                storage_potential=wine.storage_potential,
                flavor_profile=list(wine.flavor_profile),
                source=wine.source,
                created_at=wine.created_at,
                updated_at=wine.updated_at,
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return self._to_wine(row)

        return self._run(op)

    # logs

    def _log_query(self):
        return select(LogRow, WineRow).outerjoin(WineRow, LogRow.wine_id == WineRow.id)

    def list_logs(self, user_ids: Sequence[str]) -> List[LogRecord]:
        if not user_ids:
            return []

        def op(session: Session):
            stmt = (
                self._log_query()
                .where(LogRow.user_id.in_(list(user_ids)))
                .order_by(LogRow.date.desc(), LogRow.created_at.desc())
            )
            return [self._to_log(log, wine) for log, wine in session.execute(stmt)]

        return self._run(op)

    def get_log(self, log_id: str) -> Optional[LogRecord]:
        def op(session: Session):
            result = session.execute(
                self._log_query().where(LogRow.id == log_id)
            ).first()
            return self._to_log(*result) if result else None

        return self._run(op)

    def insert_log(self, log: LogRecord) -> LogRecord:
        log_id = log.id or _new_id()

        def op(session: Session):
            row = LogRow(
                id=log_id,
                user_id=log.user_id,
                created_at=log.created_at,
                updated_at=log.updated_at,
                **{name: getattr(log, name) for name in LOG_FIELDS},
            )
            session.add(row)
            session.commit()

        self._run(op)
        return self.get_log(log_id)

    def update_log(
        self, log_id: str, user_id: str, updates: dict
    ) -> Optional[LogRecord]:
        def op(session: Session) -> bool:
            row = session.get(LogRow, log_id)
            if not row or row.user_id != user_id:
                return False
            for key, value in updates.items():
                if key in LOG_FIELDS:
                    setattr(row, key, value)
            row.updated_at = time.time()
            session.commit()
            return True

        if not self._run(op):
            return None
        return self.get_log(log_id)

    def delete_log(self, log_id: str, user_id: str) -> bool:
        def op(session: Session) -> bool:
            row = session.get(LogRow, log_id)
            if not row or row.user_id != user_id:
                return False
            session.delete(row)
            session.commit()
            return True

        return self._run(op)

    # cellar

    def _cellar_query(self):
        return select(CellarRow, WineRow).outerjoin(
            WineRow, CellarRow.wine_id == WineRow.id
        )

    def _get_cellar_item(self, item_id: str) -> Optional[CellarRecord]:
        def op(session: Session):
            result = session.execute(
                self._cellar_query().where(CellarRow.id == item_id)
            ).first()
            return self._to_cellar(*result) if result else None

        return self._run(op)

    def list_cellar(self, user_ids: Sequence[str]) -> List[CellarRecord]:
        if not user_ids:
            return []

        def op(session: Session):
            stmt = (
                self._cellar_query()
                .where(CellarRow.user_id.in_(list(user_ids)), CellarRow.quantity > 0)
                .order_by(CellarRow.added_at.desc())
            )
            return [self._to_cellar(item, wine) for item, wine in session.execute(stmt)]

        return self._run(op)

    def find_cellar_item(
        self, user_id: str, wine_id: str
    ) -> Optional[CellarRecord]:
        def op(session: Session):
            result = session.execute(
                self._cellar_query().where(
                    CellarRow.user_id == user_id, CellarRow.wine_id == wine_id
                )
            ).first()
            return self._to_cellar(*result) if result else None

        return self._run(op)

    def insert_cellar_item(self, item: CellarRecord) -> CellarRecord:
        item_id = item.id or _new_id()

        def op(session: Session):
            session.add(
                CellarRow(
                    id=item_id,
                    user_id=item.user_id,
                    wine_id=item.wine_id,
                    quantity=item.quantity,
                    notes=item.notes,
                    added_at=item.added_at,
                    updated_at=item.updated_at,
                )
            )
            session.commit()

        self._run(op)
        return self._get_cellar_item(item_id)

    def update_cellar_item(
        self,
        item_id: str,
        user_id: str,
        *,
        quantity: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> Optional[CellarRecord]:
        def op(session: Session) -> bool:
            row = session.get(CellarRow, item_id)
            if not row or row.user_id != user_id:
                return False
            if quantity is not None:
                row.quantity = max(0, quantity)
            if notes is not None:
                row.notes = notes
            row.updated_at = time.time()
            session.commit()
            return True

        if not self._run(op):
            return None
        return self._get_cellar_item(item_id)

    def delete_cellar_item(self, item_id: str, user_id: str) -> bool:
        def op(session: Session) -> bool:
            row = session.get(CellarRow, item_id)
            if not row or row.user_id != user_id:
                return False
            session.delete(row)
            session.commit()
            return True

        return self._run(op)

    # partners

    def list_partner_links(
        self, user_id: str, status: PartnerStatus = PartnerStatus.ACCEPTED
    ) -> List[PartnerRecord]:
        def op(session: Session):
            stmt = (
                select(PartnerRow)
                .where(
                    or_(
                        PartnerRow.user_id == user_id,
                        PartnerRow.partner_user_id == user_id,
                    ),
                    PartnerRow.status == PartnerStatus(status).value,
                )
                .order_by(PartnerRow.created_at.asc())
            )
            return [self._to_partner(row) for row in session.execute(stmt).scalars()]

        return self._run(op)

    def _pending_for(self, email: str):
        return select(PartnerRow).where(
            PartnerRow.partner_email == email.lower(),
            PartnerRow.status == PartnerStatus.PENDING.value,
        )

    def list_pending_invites(self, email: str) -> List[PartnerRecord]:
        def op(session: Session):
            rows = session.execute(self._pending_for(email)).scalars()
            return [self._to_partner(row) for row in rows]

        return self._run(op)

    def find_partner_link(
        self, user_id: str, partner_email: str
    ) -> Optional[PartnerRecord]:
        def op(session: Session):
            stmt = select(PartnerRow).where(
                and_(
                    PartnerRow.user_id == user_id,
                    PartnerRow.partner_email == partner_email.lower(),
                )
            )
            row = session.execute(stmt.limit(1)).scalar_one_or_none()
            return self._to_partner(row) if row else None

        return self._run(op)

    def insert_partner_link(self, link: PartnerRecord) -> PartnerRecord:
        def op(session: Session):
            row = PartnerRow(
                id=link.id or _new_id(),
                user_id=link.user_id,
                partner_email=link.partner_email.lower(),
                partner_user_id=link.partner_user_id,
                status=PartnerStatus(link.status).value,
                created_at=link.created_at,
                updated_at=link.updated_at,
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return self._to_partner(row)

        return self._run(op)

    def accept_pending_links(
        self, email: str, user_id: str
    ) -> List[PartnerRecord]:
        def op(session: Session):
            now = time.time()
            rows = list(session.execute(self._pending_for(email)).scalars())
            for row in rows:
                row.partner_user_id = user_id
                row.status = PartnerStatus.ACCEPTED.value
                row.updated_at = now
            session.commit()
            return [self._to_partner(row) for row in rows]

        return self._run(op)

    def delete_partner_link(self, link_id: str, user_id: str) -> bool:
        def op(session: Session) -> bool:
            row = session.get(PartnerRow, link_id)
            if not row:
                return False
            if row.user_id != user_id and row.partner_user_id != user_id:
                return False
            session.delete(row)
            session.commit()
            return True

        return self._run(op)


Base = declarative_base()


class WineRow(Base):
    __tablename__ = "wines"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    producer = Column(String, nullable=True)
    match_key = Column(String, nullable=False, index=True)
    vintage = Column(Integer, nullable=True)
    region = Column(String, nullable=True)
    price = Column(Float, nullable=True)
    article_number = Column(String, nullable=True, unique=True, index=True)
    food_pairing_tags = Column(JSON, nullable=False, default=list)
    retailer_url = Column(String, nullable=True)
    image_url = Column(String, nullable=True)
    grapes = Column(JSON, nullable=False, default=list)
    description = Column(String, nullable=True)
    serving_temperature = Column(String, nullable=True)
    storage_potential = Column(String, nullable=True)
    flavor_profile = Column(JSON, nullable=False, default=list)
    source = Column(String, nullable=False, default=WineSource.MANUAL.value)
    created_at = Column(Float, nullable=False)
    updated_at = Column(Float, nullable=False)


class LogRow(Base):
    __tablename__ = "logs"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    wine_id = Column(String, nullable=True, index=True)
    rating = Column(Integer, nullable=True)
    notes = Column(String, nullable=True)
    location_name = Column(String, nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    companions = Column(String, nullable=True)
    occasion = Column(String, nullable=True)
    user_image_url = Column(String, nullable=True)
    date = Column(String, nullable=False)
    created_at = Column(Float, nullable=False)
    updated_at = Column(Float, nullable=False)


class CellarRow(Base):
    __tablename__ = "cellar"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    wine_id = Column(String, nullable=False, index=True)
    quantity = Column(Integer, nullable=False, default=1)
    notes = Column(String, nullable=True)
    added_at = Column(Float, nullable=False)
    updated_at = Column(Float, nullable=False)


class PartnerRow(Base):
    __tablename__ = "partners"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    partner_email = Column(String, nullable=False, index=True)
    partner_user_id = Column(String, nullable=True, index=True)
    status = Column(String, nullable=False, default=PartnerStatus.PENDING.value)
    created_at = Column(Float, nullable=False)
    updated_at = Column(Float, nullable=False)
