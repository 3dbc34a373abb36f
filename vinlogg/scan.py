"""
Label scan pipeline: vision model, retailer lookup, catalog write.

Only the vision call is essential. Retailer and database failures degrade to
a result without a persisted wine so the client can fall back to manual entry.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from shared.types import RetailerProduct
from vinlogg import catalog
from vinlogg.db import DbClient, WineRecord
from vinlogg.enrichment import EnrichmentFailure, LabelAnalyzer, WineLabelAnalysis
from vinlogg.errors import DbError
from vinlogg.retailer import RetailerClient

logger = logging.getLogger(__name__)


@dataclass
class ScanResult:
    analysis: WineLabelAnalysis
    product: Optional[RetailerProduct] = None
    wine: Optional[WineRecord] = None
    enrichment_failed: bool = False

    def as_dict(self) -> dict:
        return {
            "success": True,
            "vision_result": self.analysis.model_dump(),
            "retailer_product": self.product.as_dict() if self.product else None,
            "wine": self.wine.as_dict() if self.wine else None,
            "found_on_retailer": self.product is not None,
            "enrichment_failed": self.enrichment_failed,
        }


class WineScanner:
    def __init__(
        self, analyzer: LabelAnalyzer, retailer: RetailerClient, db: DbClient
    ):
        self._analyzer = analyzer
        self._retailer = retailer
        self._db = db

    def scan(self, image_bytes: bytes, mime_type: str = "image/jpeg") -> ScanResult:
        """
        Analyze a label photo and resolve it to a catalog wine when possible.

        Errors raised by the vision model call itself propagate; everything
        after it degrades.
        """
        try:
            analysis = self._analyzer.analyze(image_bytes, mime_type)
        except EnrichmentFailure as e:
            logger.warning("Unusable label analysis: %s", e)
            return ScanResult(
                analysis=WineLabelAnalysis.unknown(), enrichment_failed=True
            )

        if not analysis.is_identified:
            return ScanResult(analysis=analysis)

        product = self._search_retailer(analysis)
        wine = self._store_wine(analysis, product)
        return ScanResult(analysis=analysis, product=product, wine=wine)

    def _search_retailer(
        self, analysis: WineLabelAnalysis
    ) -> Optional[RetailerProduct]:
        try:
            return self._retailer.search(analysis.name, analysis.producer)
        except Exception:
            logger.exception("Retailer search failed for %r", analysis.name)
            return None

    def _store_wine(
        self, analysis: WineLabelAnalysis, product: Optional[RetailerProduct]
    ) -> Optional[WineRecord]:
        if product:
            candidate = catalog.wine_from_retailer(product, analysis)
        else:
            candidate = catalog.wine_from_analysis(analysis)
        try:
            wine, created = catalog.ensure_wine(self._db, candidate)
        except DbError:
            logger.exception("Could not store scanned wine %r", candidate.name)
            return None
        if created:
            logger.info("Added wine %s (%s) to catalog", wine.id, wine.source)
        return wine
