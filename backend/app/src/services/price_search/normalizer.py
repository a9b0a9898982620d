"""Turn provider records into the canonical offer shape."""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Iterable, List, Optional
from urllib.parse import urlparse

from .models import CanonicalResult, RawRecord
from .utils import coerce_price, normalize_whitespace

logger = logging.getLogger("price_search.normalizer")

DEFAULT_CURRENCY = "BRL"

_FOREIGN_SCHEME = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.\-]*:(?!\d)")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DataNormalizer:
    """Map RawRecord instances to CanonicalResult, rejecting incomplete ones.

    ``normalize`` never raises: a record that cannot yield every canonical
    field returns None.
    """

    def __init__(
        self,
        currency: str = DEFAULT_CURRENCY,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.currency = currency
        self._clock = clock

    def normalize(self, raw: RawRecord) -> Optional[CanonicalResult]:
        try:
            if not raw.store:
                return None

            name = self.extract_name(raw)
            price = self.extract_price(raw)
            url = self.extract_url(raw)
            if not name or price is None or not url:
                return None

            return CanonicalResult(
                id=self.extract_id(raw, name),
                name=name,
                price=price,
                store=raw.store,
                url=url,
                last_updated=self.extract_last_updated(raw),
                currency=self.extract_currency(raw),
            )
        except Exception:  # pragma: no cover
            logger.exception("Erro ao normalizar dados de %s", raw.store)
            return None

    def normalize_list(self, raws: Iterable[RawRecord]) -> List[CanonicalResult]:
        normalized: List[CanonicalResult] = []
        for raw in raws:
            result = self.normalize(raw)
            if result is not None:
                normalized.append(result)
        return normalized

    def extract_name(self, raw: RawRecord) -> Optional[str]:
        for candidate in (raw.name, raw.title):
            if isinstance(candidate, str):
                name = normalize_whitespace(candidate)
                if name:
                    return name
        return None

    def extract_price(self, raw: RawRecord) -> Optional[Decimal]:
        # First alias that is present wins, even when it turns out unusable.
        for candidate in (raw.price, raw.value, raw.cost):
            if candidate is not None:
                return coerce_price(candidate)
        return None

    def extract_url(self, raw: RawRecord) -> Optional[str]:
        for candidate in (raw.url, raw.link, raw.href):
            if not isinstance(candidate, str) or not candidate.strip():
                continue
            url = candidate.strip()
            if url.startswith("//"):
                url = f"https:{url}"
            elif urlparse(url).scheme not in ("http", "https"):
                # "host:8080/x" parses as a scheme but is a bare host with a port.
                if _FOREIGN_SCHEME.match(url):
                    return None
                url = f"https://{url}"
            if not urlparse(url).netloc:
                return None
            return url
        return None

    def extract_last_updated(self, raw: RawRecord) -> datetime:
        value = raw.last_updated
        if isinstance(value, datetime):
            return value if value.tzinfo else value.replace(tzinfo=timezone.utc)

        if isinstance(value, str) and value.strip():
            text = value.strip()
            if text.endswith("Z"):
                text = text[:-1] + "+00:00"
            try:
                parsed = datetime.fromisoformat(text)
            except ValueError:
                parsed = None
            if parsed is not None:
                return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)

        return self._clock()

    def extract_id(self, raw: RawRecord, name: str) -> str:
        if isinstance(raw.id, str) and raw.id.strip():
            return raw.id.strip()

        stamp = int(self._clock().timestamp() * 1000)
        base = f"{raw.store}-{name}-{stamp}"
        return re.sub(r"[^a-zA-Z0-9\-_]", "-", base).lower()

    def extract_currency(self, raw: RawRecord) -> str:
        if isinstance(raw.currency, str) and re.fullmatch(r"[A-Za-z]{3}", raw.currency):
            return raw.currency.upper()
        return self.currency
