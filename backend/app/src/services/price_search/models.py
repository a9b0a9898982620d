"""Domain models for price search results."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional, Tuple, Union

PriceLike = Union[Decimal, float, int, str]

_RAW_FIELDS = (
    "id",
    "name",
    "title",
    "price",
    "value",
    "cost",
    "url",
    "link",
    "href",
    "currency",
)


@dataclass(slots=True)
class RawRecord:
    """Unvalidated offer as extracted from a provider.

    Each alias group (``name``/``title``, ``price``/``value``/``cost`` and
    ``url``/``link``/``href``) is kept as separate optional fields so the
    normalizer can resolve them in a fixed order. Only ``store`` is mandatory.
    """

    store: str
    id: Optional[str] = None
    name: Optional[str] = None
    title: Optional[str] = None
    price: Optional[PriceLike] = None
    value: Optional[PriceLike] = None
    cost: Optional[PriceLike] = None
    url: Optional[str] = None
    link: Optional[str] = None
    href: Optional[str] = None
    last_updated: Optional[Union[datetime, str]] = None
    currency: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "RawRecord":
        """Build a record from a loosely shaped mapping."""
        known = {key: data.get(key) for key in _RAW_FIELDS}
        last_updated = data.get("last_updated", data.get("lastUpdated"))
        extra = {
            key: value
            for key, value in data.items()
            if key not in _RAW_FIELDS
            and key not in ("store", "last_updated", "lastUpdated")
        }
        return cls(
            store=str(data.get("store") or ""),
            last_updated=last_updated,
            extra=extra,
            **known,
        )


@dataclass(frozen=True, slots=True)
class CanonicalResult:
    """Validated offer shared by every store."""

    id: str
    name: str
    price: Decimal
    store: str
    url: str
    last_updated: datetime
    currency: str = "BRL"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "price": float(self.price),
            "store": self.store,
            "url": self.url,
            "lastUpdated": self.last_updated.isoformat(),
            "currency": self.currency,
        }


@dataclass(frozen=True, slots=True)
class SearchFilters:
    """Optional predicates applied to the pooled results."""

    stores: Tuple[str, ...] = ()
    min_price: Optional[Decimal] = None
    max_price: Optional[Decimal] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "stores", tuple(self.stores or ()))
        for attr in ("min_price", "max_price"):
            bound = getattr(self, attr)
            if bound is not None and not isinstance(bound, Decimal):
                object.__setattr__(self, attr, Decimal(str(bound)))

    def is_empty(self) -> bool:
        return not self.stores and self.min_price is None and self.max_price is None

    def matches(self, result: CanonicalResult) -> bool:
        """Return True when the result satisfies every supplied predicate."""
        if self.stores and result.store not in self.stores:
            return False
        if self.min_price is not None and result.price < self.min_price:
            return False
        if self.max_price is not None and result.price > self.max_price:
            return False
        return True

    def cache_key_fragment(self) -> str:
        """Canonical serialization used to discriminate cache entries."""
        if self.is_empty():
            return ""
        payload: Dict[str, Any] = {}
        if self.stores:
            payload["stores"] = sorted(self.stores)
        if self.min_price is not None:
            payload["minPrice"] = str(self.min_price.normalize())
        if self.max_price is not None:
            payload["maxPrice"] = str(self.max_price.normalize())
        return json.dumps(payload, sort_keys=True, separators=(",", ":"))

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {}
        if self.stores:
            payload["stores"] = list(self.stores)
        if self.min_price is not None:
            payload["minPrice"] = float(self.min_price)
        if self.max_price is not None:
            payload["maxPrice"] = float(self.max_price)
        return payload


@dataclass(slots=True)
class SearchConfig:
    """Per-call search parameters. ``timeout`` is expressed in milliseconds."""

    query: str
    max_results: Optional[int] = None
    timeout: Optional[int] = None


@dataclass(frozen=True, slots=True)
class SearchResponse:
    """Aggregated, ranked answer for a query."""

    results: Tuple[CanonicalResult, ...]
    total_results: int
    search_time: int
    query: str
    filters: Optional[SearchFilters] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "results": [result.to_dict() for result in self.results],
            "totalResults": self.total_results,
            "searchTime": self.search_time,
            "query": self.query,
        }
        if self.filters is not None:
            payload["filters"] = self.filters.to_dict()
        return payload


@dataclass(slots=True)
class CacheEntry:
    """Value stored by the cache together with its lifetime bookkeeping."""

    data: Any
    created_at: float
    ttl: float


@dataclass(frozen=True, slots=True)
class ProviderError:
    """Failure of a single provider during a fan-out, kept for observability."""

    provider: str
    error: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class PriceSearchError(RuntimeError):
    """Raised when a provider cannot complete the search."""

    def __init__(self, site: str, message: str) -> None:
        super().__init__(message)
        self.site = site
        self.message = message


class RequestTimeoutError(PriceSearchError):
    """Raised when an HTTP request exceeds its timeout. Never retried."""


class SearchFailedError(RuntimeError):
    """Raised when the aggregation machinery itself fails."""
