"""Amazon Brasil price provider."""

from __future__ import annotations

from typing import Tuple

from ..http_client import HttpClient
from .base import MAX_PROVIDER_RESULTS, StorefrontProvider, StoreProfile

AMAZON_PROFILE = StoreProfile(
    name="Amazon",
    base_url="https://www.amazon.com.br",
    search_url="https://www.amazon.com.br/s?k={query}",
    item_selectors=(
        'div[data-component-type="s-search-result"]',
        "div.s-result-item[data-asin]",
        "div.s-card-container",
    ),
    title_selectors=(
        "h2 a span",
        "h2 span",
        "span.a-text-normal",
    ),
    price_selectors=(
        "span.a-price > span.a-offscreen",
        "span.a-price span.a-offscreen",
        "span.a-color-price",
    ),
    link_selectors=(
        "h2 a",
        "a.a-link-normal.s-no-outline",
        "a.a-link-normal",
    ),
    metadata_selectors={
        "rating": ("span.a-icon-alt",),
        "reviewCount": ("span.a-size-base.s-underline-text",),
    },
    metadata_attributes={"asin": "data-asin"},
    block_markers=("automated access", "api-services-support@amazon.com"),
    referer="https://www.amazon.com.br/",
)


def amazon_provider(
    http: HttpClient,
    max_results: int = MAX_PROVIDER_RESULTS,
    jitter: Tuple[float, float] = (0.5, 2.0),
) -> StorefrontProvider:
    """Scrape Amazon search results."""
    return StorefrontProvider(AMAZON_PROFILE, http, max_results=max_results, jitter=jitter)
