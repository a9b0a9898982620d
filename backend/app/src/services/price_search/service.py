"""High-level service that orchestrates price lookups."""

from __future__ import annotations

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from .cache import CacheService, build_cache_key
from .models import (
    CanonicalResult,
    ProviderError,
    RawRecord,
    SearchConfig,
    SearchFailedError,
    SearchFilters,
    SearchResponse,
)
from .normalizer import DataNormalizer
from .providers.base import MAX_PROVIDER_RESULTS, PriceProvider

logger = logging.getLogger("price_search.service")

CACHE_TTL_SECONDS = 5 * 60
SEARCH_TIMEOUT_MS = 10_000


@dataclass
class SearchServiceConfig:
    """Everything the orchestrator needs, passed in explicitly."""

    providers: Sequence[PriceProvider]
    cache: CacheService = field(default_factory=CacheService)
    normalizer: DataNormalizer = field(default_factory=DataNormalizer)
    cache_ttl: float = CACHE_TTL_SECONDS
    default_timeout_ms: int = SEARCH_TIMEOUT_MS
    max_results_per_provider: int = MAX_PROVIDER_RESULTS


class SearchService:
    """Coordinate price lookups across multiple providers.

    Every provider is queried in parallel and given the same deadline. A
    provider that fails or misses the deadline contributes nothing and never
    affects the others; its late result, if any, is ignored.
    """

    def __init__(self, config: SearchServiceConfig) -> None:
        self.providers: List[PriceProvider] = list(config.providers)
        self.cache = config.cache
        self.normalizer = config.normalizer
        self.cache_ttl = config.cache_ttl
        self.default_timeout_ms = config.default_timeout_ms
        self.max_results_per_provider = config.max_results_per_provider
        self.last_errors: List[ProviderError] = []

    def search(
        self,
        config: SearchConfig,
        filters: Optional[SearchFilters] = None,
    ) -> SearchResponse:
        """Execute price search across all providers."""
        started = time.monotonic()
        if filters is not None and filters.is_empty():
            filters = None
        try:
            cache_key = build_cache_key(config.query, filters)
            cached = self.cache.get(cache_key)
            if cached is not None:
                logger.info("Resultado retornado do cache para '%s'.", config.query)
                return cached

            timeout_ms = config.timeout or self.default_timeout_ms
            products, errors = self._fan_out(config.query, timeout_ms / 1000)

            if filters is not None:
                products = [product for product in products if filters.matches(product)]
            # sorted() is stable: equal prices keep provider order.
            ranked = sorted(products, key=lambda product: product.price)
            if config.max_results:
                ranked = ranked[: config.max_results]

            response = SearchResponse(
                results=tuple(ranked),
                total_results=len(ranked),
                search_time=int((time.monotonic() - started) * 1000),
                query=config.query,
                filters=filters,
            )
            self.cache.set(cache_key, response, self.cache_ttl)

            self.last_errors = errors
            if errors:
                logger.warning(
                    "Busca '%s' teve %d erro(s) de provider: %s",
                    config.query,
                    len(errors),
                    "; ".join(f"{e.provider}: {e.error}" for e in errors),
                )
            return response
        except Exception as exc:
            logger.exception("Erro crítico na busca '%s'", config.query)
            raise SearchFailedError(f"Falha na busca: {exc}") from exc

    def _fan_out(
        self, query: str, timeout: float
    ) -> tuple[List[CanonicalResult], List[ProviderError]]:
        if not self.providers:
            return [], []

        products: List[CanonicalResult] = []
        errors: List[ProviderError] = []
        pool = ThreadPoolExecutor(
            max_workers=len(self.providers), thread_name_prefix="price-search"
        )
        try:
            futures: Dict[Future[List[RawRecord]], PriceProvider] = {
                pool.submit(provider.search, query): provider
                for provider in self.providers
            }
            done, _ = wait(futures, timeout=timeout)

            # Iterate in provider order so ties keep fan-out order.
            for future, provider in futures.items():
                if future not in done:
                    errors.append(
                        ProviderError(
                            provider=provider.name,
                            error=f"Timeout após {int(timeout * 1000)}ms",
                        )
                    )
                    continue

                exc = future.exception()
                if exc is not None:
                    errors.append(
                        ProviderError(provider=provider.name, error=str(exc) or type(exc).__name__)
                    )
                    continue

                raw_records = list(future.result() or [])[: self.max_results_per_provider]
                products.extend(self.normalizer.normalize_list(raw_records))
        finally:
            # Timed-out branches keep running in their threads; nobody reads them.
            pool.shutdown(wait=False, cancel_futures=True)

        return products, errors

    def clear_cache(self) -> None:
        self.cache.clear()

    def add_provider(self, provider: PriceProvider) -> None:
        self.providers.append(provider)

    def remove_provider(self, provider_name: str) -> None:
        self.providers = [p for p in self.providers if p.name != provider_name]

    def get_provider_stats(self) -> List[Dict[str, object]]:
        # Every provider in the list is enabled; disabled ones are never built.
        return [{"name": provider.name, "enabled": True} for provider in self.providers]
