"""Build the provider list and the search service from settings."""

from __future__ import annotations

import logging
from typing import Callable, Dict, List

from configs import Settings

from .cache import CacheService
from .http_client import HttpClient, RateLimiter
from .normalizer import DataNormalizer
from .providers.amazon import amazon_provider
from .providers.base import PriceProvider
from .providers.casas_bahia import casas_bahia_provider
from .providers.catalog import catalog_providers
from .providers.magazine_luiza import magazine_luiza_provider
from .service import SearchService, SearchServiceConfig

logger = logging.getLogger("price_search.registry")

LIVE_PROVIDERS: Dict[str, Callable[..., PriceProvider]] = {
    "amazon": amazon_provider,
    "magazine_luiza": magazine_luiza_provider,
    "casas_bahia": casas_bahia_provider,
}


def build_providers(settings: Settings) -> List[PriceProvider]:
    """Return the enabled providers in the configured order.

    Live providers share one HTTP client so the per-host spacing holds across
    every concurrent search.
    """
    if settings.PROVIDER_MODE == "catalog":
        available: Dict[str, PriceProvider] = dict(
            catalog_providers(
                price_jitter=settings.CATALOG_PRICE_JITTER,
                failure_rate=settings.CATALOG_FAILURE_RATE,
            )
        )
    else:
        http = HttpClient(
            timeout=settings.HTTP_TIMEOUT_MS / 1000,
            retries=settings.HTTP_MAX_RETRIES,
            retry_delay=settings.HTTP_RETRY_DELAY_MS / 1000,
            rate_limiter=RateLimiter(settings.RATE_LIMIT_INTERVAL_MS / 1000),
        )
        jitter = (settings.JITTER_MIN_MS / 1000, settings.JITTER_MAX_MS / 1000)
        available = {
            key: factory(
                http,
                max_results=settings.MAX_RESULTS_PER_PROVIDER,
                jitter=jitter,
            )
            for key, factory in LIVE_PROVIDERS.items()
        }

    providers: List[PriceProvider] = []
    for key in settings.ENABLED_PROVIDERS:
        provider = available.get(key.strip().lower())
        if provider is None:
            logger.warning("Provider desconhecido ignorado: %s", key)
            continue
        providers.append(provider)
    return providers


def build_search_service(settings: Settings) -> SearchService:
    providers = build_providers(settings)
    logger.info(
        "Serviço de busca iniciado com %d provider(s): %s",
        len(providers),
        ", ".join(provider.name for provider in providers),
    )
    return SearchService(
        SearchServiceConfig(
            providers=providers,
            cache=CacheService(),
            normalizer=DataNormalizer(currency=settings.DEFAULT_CURRENCY),
            cache_ttl=settings.CACHE_TTL_SECONDS,
            default_timeout_ms=settings.SEARCH_TIMEOUT_MS,
            max_results_per_provider=settings.MAX_RESULTS_PER_PROVIDER,
        )
    )
