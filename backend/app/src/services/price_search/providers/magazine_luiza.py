"""Magazine Luiza price provider."""

from __future__ import annotations

from typing import Any, Dict, List, Tuple

from ..http_client import HttpClient
from ..utils import normalize_whitespace
from .base import MAX_PROVIDER_RESULTS, StorefrontProvider, StoreProfile


def extract_magalu_products(data: Any) -> List[Dict[str, Any]]:
    """Read offers from the Next.js state embedded in the search page."""
    products = data["props"]["pageProps"]["data"]["search"]["products"]

    extracted: List[Dict[str, Any]] = []
    for product in products:
        title = normalize_whitespace(product.get("title") or "")
        if not title:
            continue

        price_info = product.get("price") or {}
        raw_value = price_info.get("bestPrice") or price_info.get("price")
        link_path = product.get("url") or product.get("path")
        if not raw_value or not link_path:
            continue

        extracted.append(
            {
                "id": product.get("id"),
                "title": title,
                "value": str(raw_value),
                "url": link_path,
                "brand": product.get("brand"),
                "category": product.get("category"),
                "installment": product.get("installment"),
            }
        )
    return extracted


MAGAZINE_LUIZA_PROFILE = StoreProfile(
    name="Magazine Luiza",
    base_url="https://www.magazineluiza.com.br",
    search_url="https://www.magazineluiza.com.br/busca/{query}/",
    state_script_id="__NEXT_DATA__",
    extract_products=extract_magalu_products,
    item_selectors=(
        'li[data-testid="product-card"]',
        'a[data-testid="product-card-container"]',
        "div.product-card",
    ),
    title_selectors=(
        '[data-testid="product-title"]',
        "h2",
        "h3",
    ),
    price_selectors=(
        '[data-testid="price-value"]',
        '[data-testid="price-original"]',
        "p.price",
    ),
    link_selectors=(
        'a[data-testid="product-card-container"]',
        "a[href]",
    ),
    metadata_selectors={
        "installment": ('[data-testid="installment"]',),
        "rating": ('[data-testid="review"]',),
    },
    block_markers=("Radware Bot Manager",),
    referer="https://www.magazineluiza.com.br/",
)


def magazine_luiza_provider(
    http: HttpClient,
    max_results: int = MAX_PROVIDER_RESULTS,
    jitter: Tuple[float, float] = (0.5, 2.0),
) -> StorefrontProvider:
    """Scrape Magazine Luiza using the embedded Next.js state, then the markup."""
    return StorefrontProvider(
        MAGAZINE_LUIZA_PROFILE, http, max_results=max_results, jitter=jitter
    )
