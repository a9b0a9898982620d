"""Offline provider backed by a static catalog, for local runs and demos."""

from __future__ import annotations

import logging
import random
import time
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, List, Mapping, Sequence, Tuple

from ..models import PriceSearchError, RawRecord
from ..utils import format_brl
from .base import MAX_PROVIDER_RESULTS

logger = logging.getLogger("price_search.catalog")

# Each store reports its price under a different alias, like the live sites do.
CATALOGS: Dict[str, Dict[str, List[Dict[str, Any]]]] = {
    "Amazon": {
        "iphone": [
            {"title": "Apple iPhone 13 128GB - Azul", "price": 4299.00, "asin": "B09G9FPHY6", "url": "https://amazon.com.br/iphone13-128gb-azul"},
            {"title": "Apple iPhone 13 128GB - Preto", "price": 4399.00, "asin": "B09G9D8KRQ", "url": "https://amazon.com.br/iphone13-128gb-preto"},
            {"title": "Apple iPhone 13 128GB - Branco", "price": 4199.00, "asin": "B09G9HR5T7", "url": "https://amazon.com.br/iphone13-128gb-branco"},
        ],
        "notebook": [
            {"title": "Dell Inspiron 15 3000 - i5, 8GB RAM, 256GB SSD", "price": 3299.00, "asin": "B08N5WRWNW", "url": "https://amazon.com.br/dell-inspiron-15"},
            {"title": "Acer Aspire 5 - AMD Ryzen 5, 8GB RAM, 512GB SSD", "price": 2899.00, "asin": "B08RZ4L9KQ", "url": "https://amazon.com.br/acer-aspire-5"},
        ],
        "tv": [
            {"title": 'Samsung Smart TV 50" 4K UHD', "price": 2499.00, "asin": "B08ZJWLM2Z", "url": "https://amazon.com.br/samsung-tv-50-4k"},
        ],
    },
    "Magazine Luiza": {
        "iphone": [
            {"name": "iPhone 13 Apple 128GB Azul - Distribuidor Autorizado", "value": 4599.00, "productId": "ML-12345", "url": "https://magazinevoce.com.br/iphone13-128gb-azul"},
            {"name": "iPhone 13 Apple 128GB Preto - Distribuidor Autorizado", "value": 4699.00, "productId": "ML-12346", "url": "https://magazinevoce.com.br/iphone13-128gb-preto"},
            {"name": "iPhone 13 Apple 128GB Branco - Distribuidor Autorizado", "value": 4499.00, "productId": "ML-12347", "url": "https://magazinevoce.com.br/iphone13-128gb-branco"},
        ],
        "notebook": [
            {"name": "Notebook Dell Inspiron 15 3000 i5 8GB 256GB SSD", "value": 3499.00, "productId": "ML-23456", "url": "https://magazinevoce.com.br/dell-inspiron-15"},
            {"name": "Notebook Acer Aspire 5 Ryzen 5 8GB 512GB SSD", "value": 3199.00, "productId": "ML-23457", "url": "https://magazinevoce.com.br/acer-aspire-5"},
        ],
        "tv": [
            {"name": 'Smart TV Samsung 50" UHD 4K LED', "value": 2799.00, "productId": "ML-34567", "url": "https://magazinevoce.com.br/samsung-tv-50-4k"},
        ],
    },
    "Casas Bahia": {
        "iphone": [
            {"name": "iPhone 13 Apple 128GB Azul - Garantia Estendida", "cost": 4799.00, "sku": "CB-56789", "url": "https://casasbahia.com.br/iphone13-128gb-azul"},
            {"name": "iPhone 13 Apple 128GB Preto - Com Fone de Ouvido", "cost": 4899.00, "sku": "CB-56790", "url": "https://casasbahia.com.br/iphone13-128gb-preto"},
            {"name": "iPhone 13 Apple 128GB Branco - Kit Completo", "cost": 4699.00, "sku": "CB-56791", "url": "https://casasbahia.com.br/iphone13-128gb-branco"},
        ],
        "notebook": [
            {"name": "Notebook Dell Inspiron 15 3000 i5 8GB 256GB SSD", "cost": 3699.00, "sku": "CB-67890", "url": "https://casasbahia.com.br/dell-inspiron-15"},
            {"name": "Notebook Acer Aspire 5 Ryzen 5 8GB 512GB SSD", "cost": 3399.00, "sku": "CB-67891", "url": "https://casasbahia.com.br/acer-aspire-5"},
        ],
        "tv": [
            {"name": 'Smart TV Samsung 50" UHD 4K LED - Entrega Imediata', "cost": 2999.00, "sku": "CB-78901", "url": "https://casasbahia.com.br/samsung-tv-50-4k"},
        ],
    },
}

_PRICE_ALIASES = ("price", "value", "cost")


class CatalogProvider:
    """Answer queries from a keyword catalog instead of the network.

    A catalog keyword matches when it is contained in the lower-cased query.
    ``price_jitter`` scales each price by a random factor in
    ``1 ± price_jitter`` and ``failure_rate`` simulates an unavailable store.
    """

    def __init__(
        self,
        name: str,
        catalog: Mapping[str, Sequence[Mapping[str, Any]]],
        price_jitter: float = 0.0,
        failure_rate: float = 0.0,
        delay: Tuple[float, float] = (0.0, 0.0),
        max_results: int = MAX_PROVIDER_RESULTS,
        sleep: Callable[[float], None] = time.sleep,
        rng: random.Random | None = None,
    ) -> None:
        self.name = name
        self.catalog = catalog
        self.price_jitter = price_jitter
        self.failure_rate = failure_rate
        self.delay = delay
        self.max_results = max_results
        self._sleep = sleep
        self._rng = rng or random.Random()

    def search(self, query: str) -> List[RawRecord]:
        if self.delay[1] > 0:
            self._sleep(self._rng.uniform(*self.delay))

        if self.failure_rate and self._rng.random() < self.failure_rate:
            raise PriceSearchError(
                self.name,
                f"{self.name} temporariamente indisponível para a busca: {query}",
            )

        normalized_query = query.lower()
        records: List[RawRecord] = []
        for keyword, products in self.catalog.items():
            if keyword not in normalized_query:
                continue
            for product in products:
                records.append(self._to_record(product))

        logger.debug("Catálogo %s retornou %d itens para '%s'.", self.name, len(records), query)
        return records[: self.max_results]

    def _to_record(self, product: Mapping[str, Any]) -> RawRecord:
        data: Dict[str, Any] = dict(product)
        for alias in _PRICE_ALIASES:
            if alias in data:
                data[alias] = self._jittered(data[alias])
        # Casas Bahia publishes formatted prices; keep that shape.
        if "cost" in data:
            data["cost"] = format_brl(Decimal(str(data["cost"])))

        stamp = uuid.uuid4().hex[:9]
        data.setdefault("id", f"{self.name}-{int(time.time() * 1000)}-{stamp}")
        data["store"] = self.name
        data["lastUpdated"] = datetime.now(timezone.utc)
        return RawRecord.from_mapping(data)

    def _jittered(self, price: float) -> float:
        if not self.price_jitter:
            return price
        factor = 1 + self._rng.uniform(-self.price_jitter, self.price_jitter)
        return round(price * factor, 2)


def catalog_providers(
    price_jitter: float = 0.0,
    failure_rate: float = 0.0,
    delay: Tuple[float, float] = (0.0, 0.0),
) -> Dict[str, CatalogProvider]:
    """One catalog provider per store, keyed like the live providers."""
    keys = {"Amazon": "amazon", "Magazine Luiza": "magazine_luiza", "Casas Bahia": "casas_bahia"}
    return {
        keys[store]: CatalogProvider(
            store,
            catalog,
            price_jitter=price_jitter,
            failure_rate=failure_rate,
            delay=delay,
        )
        for store, catalog in CATALOGS.items()
    }
