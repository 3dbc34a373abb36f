"""
Systembolaget product search, used to enrich scanned labels.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Protocol

import requests

from shared.types import RetailerProduct

logger = logging.getLogger(__name__)

SYSTEMBOLAGET_SEARCH_URL = (
    "https://api-extern.systembolaget.se/sb-api-ecommerce/v1/productsearch/search"
)
SYSTEMBOLAGET_PRODUCT_URL = "https://www.systembolaget.se/produkt/vin/{number}"
SEARCH_PAGE_SIZE = 10

# The public search endpoint rejects requests that don't look like they come
# from the Systembolaget web shop.
BROWSER_HEADERS = {
    "Accept": "application/json",
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept-Language": "sv-SE,sv;q=0.9,en-US;q=0.8,en;q=0.7",
    "Origin": "https://www.systembolaget.se",
    "Referer": "https://www.systembolaget.se/",
}


class RetailerClient(Protocol):
    def search(
        self, wine_name: str, producer: Optional[str] = None
    ) -> Optional[RetailerProduct]:
        ...


def build_search_query(wine_name: str, producer: Optional[str] = None) -> str:
    if producer and producer.strip():
        return f"{wine_name.strip()} {producer.strip()}".strip()
    return wine_name.strip()


def parse_product(product: dict) -> RetailerProduct:
    """Map one product of a search response to a RetailerProduct."""
    number = product.get("productNumber") or product.get("productId")
    name = product.get("productNameBold") or ""
    if product.get("productNameThin"):
        name = f"{name} {product['productNameThin']}"
    images = product.get("images") or []
    return RetailerProduct(
        article_number=str(number),
        name=name.strip(),
        price=product.get("price"),
        food_pairing_tags=list(product.get("tapiTasteArray") or []),
        url=SYSTEMBOLAGET_PRODUCT_URL.format(number=number),
        image_url=images[0].get("imageUrl") if images else None,
    )


@dataclass
class SystembolagetClient:
    """Takes the first search hit as the best match; failures yield None."""

    api_key: Optional[str] = None
    timeout: float = 10.0
    search_url: str = SYSTEMBOLAGET_SEARCH_URL

    def search(
        self, wine_name: str, producer: Optional[str] = None
    ) -> Optional[RetailerProduct]:
        headers = dict(BROWSER_HEADERS)
        if self.api_key:
            headers["Ocp-Apim-Subscription-Key"] = self.api_key
        params = {
            "q": build_search_query(wine_name, producer),
            "size": SEARCH_PAGE_SIZE,
            "page": 1,
        }
        try:
            response = requests.get(
                self.search_url, params=params, headers=headers, timeout=self.timeout
            )
            response.raise_for_status()
            products = response.json().get("products") or []
        except (requests.RequestException, ValueError) as e:
            logger.warning("Systembolaget search failed for %r: %s", params["q"], e)
            return None

        if not products:
            return None
        return parse_product(products[0])


@dataclass
class StaticRetailerClient:
    """Offline stand-in: matches products whose name contains the wine name."""

    products: List[RetailerProduct] = field(default_factory=list)

    def search(
        self, wine_name: str, producer: Optional[str] = None
    ) -> Optional[RetailerProduct]:
        needle = wine_name.strip().lower()
        for product in self.products:
            if needle and needle in product.name.lower():
                return product
        return None
