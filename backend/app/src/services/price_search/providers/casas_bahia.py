"""Casas Bahia price provider."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Tuple

from ..http_client import HttpClient
from .base import MAX_PROVIDER_RESULTS, StorefrontProvider, StoreProfile, find_product_list


def _seller_price(entry: Dict[str, Any]) -> Optional[Decimal]:
    sku = entry.get("sku") if isinstance(entry.get("sku"), dict) else {}
    sellers = sku.get("sellers") if isinstance(sku, dict) else []
    if not sellers or not isinstance(sellers, list) or not isinstance(sellers[0], dict):
        return None

    offer = sellers[0].get("commertialOffer")
    if not offer or offer.get("Price") is None:
        return None
    try:
        return Decimal(str(offer["Price"]))
    except (InvalidOperation, ValueError):
        return None


def extract_casas_bahia_products(data: Any) -> List[Dict[str, Any]]:
    """Best effort extraction of offers from the embedded page state.

    Layouts change often, so the first product-like list anywhere in the
    payload is used and each entry is flattened to a common shape.
    """
    extracted: List[Dict[str, Any]] = []
    for raw in find_product_list(data):
        product = raw.get("product") if isinstance(raw.get("product"), dict) else None
        entry = product or raw

        cost: Any = _seller_price(entry)
        if cost is None:
            cost = entry.get("price")
            if isinstance(cost, dict):
                cost = cost.get("bestPrice") or cost.get("price")
        if cost is None:
            cost = entry.get("priceValue") or entry.get("bestPrice")

        sku = entry.get("sku")
        extracted.append(
            {
                "id": entry.get("id") or entry.get("productId"),
                "name": entry.get("name") or entry.get("title"),
                "cost": cost,
                "link": entry.get("link") or entry.get("url") or entry.get("urlKey"),
                "sku": sku if isinstance(sku, str) else None,
                "model": entry.get("model"),
            }
        )
    return extracted


CASAS_BAHIA_PROFILE = StoreProfile(
    name="Casas Bahia",
    base_url="https://www.casasbahia.com.br",
    search_url="https://www.casasbahia.com.br/{query}/b",
    state_script_id="__NEXT_DATA__",
    state_variable="__INITIAL_STATE__",
    extract_products=extract_casas_bahia_products,
    item_selectors=(
        'div[data-testid="product-card"]',
        "li.product-card",
        "div.css-product-card",
    ),
    title_selectors=(
        'h3[data-testid="product-card-title"]',
        '[data-testid="product-title"]',
        "h3",
    ),
    price_selectors=(
        '[data-testid="product-card-price"]',
        'span[aria-label="Preço"]',
        "span.price",
    ),
    link_selectors=(
        'a[data-testid="product-card-link-overlay"]',
        "a[href]",
    ),
    metadata_selectors={
        "delivery": ('[data-testid="product-card-delivery"]',),
    },
    block_markers=("Access Denied", "captcha-delivery"),
    referer="https://www.casasbahia.com.br/",
)


def casas_bahia_provider(
    http: HttpClient,
    max_results: int = MAX_PROVIDER_RESULTS,
    jitter: Tuple[float, float] = (0.5, 2.0),
) -> StorefrontProvider:
    """Attempt to fetch offers from Casas Bahia search results."""
    return StorefrontProvider(
        CASAS_BAHIA_PROFILE, http, max_results=max_results, jitter=jitter
    )
