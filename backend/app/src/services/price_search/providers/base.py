"""Provider contract and the shared storefront scraping strategy."""

from __future__ import annotations

import json
import logging
import random
import re
import time
from dataclasses import dataclass, field
from typing import (
    Any,
    Callable,
    Dict,
    List,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    Tuple,
    runtime_checkable,
)
from urllib.parse import quote_plus, urljoin

from bs4 import BeautifulSoup, Tag

from ..http_client import HttpClient
from ..models import PriceSearchError, RawRecord
from ..utils import normalize_whitespace, parse_price

logger = logging.getLogger("price_search.provider")

MAX_PROVIDER_RESULTS = 20


@runtime_checkable
class PriceProvider(Protocol):
    """Anything with a store name that can turn a query into raw offers."""

    name: str

    def search(self, query: str) -> List[RawRecord]:
        ...


def load_structured_payload(
    body: str,
    script_id: Optional[str] = None,
    variable: Optional[str] = None,
) -> Optional[Any]:
    """Return the JSON state embedded in ``body`` or None when absent or broken.

    A body that is itself JSON (an API response) is returned as parsed.
    """
    stripped = body.lstrip()
    if stripped.startswith(("{", "[")):
        try:
            return json.loads(stripped)
        except ValueError:
            pass

    if script_id:
        soup = BeautifulSoup(body, "html.parser")
        script = soup.find("script", id=script_id)
        if script is not None and script.string:
            try:
                return json.loads(script.string)
            except ValueError:
                logger.debug("Estado embutido '%s' malformado.", script_id)

    if variable:
        match = re.search(rf"{re.escape(variable)}\s*=\s*", body)
        if match:
            try:
                payload, _ = json.JSONDecoder().raw_decode(body, match.end())
                return payload
            except ValueError:
                logger.debug("Variável '%s' sem JSON válido.", variable)

    return None


def find_product_list(payload: Any) -> List[Dict[str, Any]]:
    """Depth-first search for the first list of product-like mappings."""
    stack: List[Any] = [payload]
    while stack:
        node = stack.pop()
        if isinstance(node, list):
            products = [
                item for item in node if isinstance(item, dict) and _looks_like_product(item)
            ]
            if products:
                return products
            stack.extend(reversed([item for item in node if isinstance(item, (dict, list))]))
        elif isinstance(node, dict):
            stack.extend(
                reversed([value for value in node.values() if isinstance(value, (dict, list))])
            )
    return []


def _looks_like_product(item: Mapping[str, Any]) -> bool:
    entry = item.get("product") if isinstance(item.get("product"), dict) else item
    has_name = bool(entry.get("name") or entry.get("title"))
    has_price = any(key in entry for key in ("price", "bestPrice", "priceValue", "sku"))
    return has_name and has_price


def _first_text(node: Tag, selectors: Sequence[str]) -> Optional[str]:
    for selector in selectors:
        found = node.select_one(selector)
        if found is None:
            continue
        text = normalize_whitespace(found.get_text(" ", strip=True))
        if text:
            return text
    return None


def _first_href(node: Tag, selectors: Sequence[str]) -> Optional[str]:
    for selector in selectors:
        found = node.select_one(selector)
        if found is not None and found.get("href"):
            return str(found["href"]).strip()
    if node.name == "a" and node.get("href"):
        return str(node["href"]).strip()
    return None


@dataclass(frozen=True)
class StoreProfile:
    """Everything that differs between storefronts."""

    name: str
    base_url: str
    search_url: str
    item_selectors: Tuple[str, ...]
    title_selectors: Tuple[str, ...]
    price_selectors: Tuple[str, ...]
    link_selectors: Tuple[str, ...]
    metadata_selectors: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
    metadata_attributes: Mapping[str, str] = field(default_factory=dict)
    api_url: Optional[str] = None
    state_script_id: Optional[str] = None
    state_variable: Optional[str] = None
    extract_products: Callable[[Any], List[Dict[str, Any]]] = find_product_list
    block_markers: Tuple[str, ...] = ()
    referer: Optional[str] = None

    @property
    def has_structured_path(self) -> bool:
        return bool(self.api_url or self.state_script_id or self.state_variable)


class StorefrontProvider:
    """Scrape one storefront: structured state first, rendered markup second.

    ``search`` never raises; failures are logged and yield an empty list.
    """

    def __init__(
        self,
        profile: StoreProfile,
        http: HttpClient,
        max_results: int = MAX_PROVIDER_RESULTS,
        jitter: Tuple[float, float] = (0.5, 2.0),
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.profile = profile
        self.name = profile.name
        self.http = http
        self.max_results = max_results
        self.jitter = jitter
        self._sleep = sleep

    def search(self, query: str) -> List[RawRecord]:
        """Public search entry point with error handling."""
        try:
            self._apply_jitter()
            records = self._search_impl(query)
            return records[: self.max_results]
        except PriceSearchError as exc:
            logger.warning("Falha específica do provedor %s: %s", exc.site, exc.message)
            return []
        except Exception:
            logger.exception("Erro inesperado ao buscar preços em %s", self.name)
            return []

    def _apply_jitter(self) -> None:
        low, high = self.jitter
        if high > 0:
            self._sleep(random.uniform(low, high))

    def _search_impl(self, query: str) -> List[RawRecord]:
        search_url = self.profile.search_url.format(query=quote_plus(query))
        page_body: Optional[str] = None

        if self.profile.has_structured_path:
            try:
                records, page_body = self._search_structured(query, search_url)
            except Exception as exc:
                logger.debug(
                    "Caminho estruturado indisponível em %s: %s", self.name, exc
                )
                records = []
            if records:
                return records

        if page_body is None:
            page_body = self.http.get_text(
                self.name, search_url, referer=self.profile.referer
            )
        self._check_blocked(page_body)

        records = self._parse_markup(page_body)
        if not records:
            logger.info("Nenhum resultado encontrado em %s para '%s'.", self.name, query)
        return records

    def _search_structured(
        self, query: str, search_url: str
    ) -> Tuple[List[RawRecord], Optional[str]]:
        if self.profile.api_url:
            url = self.profile.api_url.format(query=quote_plus(query))
        else:
            url = search_url
        body = self.http.get_text(self.name, url, referer=self.profile.referer)
        page_body = body if url == search_url else None
        self._check_blocked(body)

        payload = load_structured_payload(
            body, self.profile.state_script_id, self.profile.state_variable
        )
        if payload is None:
            logger.debug("Sem dados estruturados de %s para '%s'.", self.name, query)
            return [], page_body

        try:
            products = self.profile.extract_products(payload)
        except Exception as exc:
            logger.debug("Estado de %s em formato inesperado: %s", self.name, exc)
            return [], page_body

        records: List[RawRecord] = []
        for product in products:
            try:
                record = RawRecord.from_mapping({**product, "store": self.name})
                for attr in ("url", "link", "href"):
                    value = getattr(record, attr)
                    if isinstance(value, str) and value.startswith("/") and not value.startswith("//"):
                        setattr(record, attr, urljoin(self.profile.base_url, value))
            except Exception as exc:
                logger.debug("Produto estruturado ignorado em %s: %s", self.name, exc)
                continue
            if self._is_usable(record):
                records.append(record)
            if len(records) >= self.max_results:
                break
        return records, page_body

    def _parse_markup(self, body: str) -> List[RawRecord]:
        soup = BeautifulSoup(body, "html.parser")
        items: List[Tag] = []
        for selector in self.profile.item_selectors:
            items = soup.select(selector)
            if items:
                break

        records: List[RawRecord] = []
        for item in items:
            try:
                record = self._extract_item(item)
            except Exception as exc:
                logger.debug("Item ignorado em %s: %s", self.name, exc)
                continue
            if record is not None:
                records.append(record)
            if len(records) >= self.max_results:
                break
        return records

    def _extract_item(self, item: Tag) -> Optional[RawRecord]:
        title = _first_text(item, self.profile.title_selectors)
        price_text = _first_text(item, self.profile.price_selectors)
        link = _first_href(item, self.profile.link_selectors)
        price = parse_price(price_text)
        if not title or not link or price is None:
            return None

        extra: Dict[str, Any] = {"price_text": price_text}
        for key, selectors in self.profile.metadata_selectors.items():
            text = _first_text(item, selectors)
            if text:
                extra[key] = text
        for key, attribute in self.profile.metadata_attributes.items():
            if item.get(attribute):
                extra[key] = item[attribute]

        return RawRecord(
            store=self.name,
            title=title,
            price=price,
            link=urljoin(self.profile.base_url, link),
            extra=extra,
        )

    def _check_blocked(self, body: str) -> None:
        lowered = body.lower()
        for marker in self.profile.block_markers:
            if marker.lower() in lowered:
                raise PriceSearchError(
                    self.name,
                    f"{self.name} bloqueou o acesso automatizado.",
                )

    @staticmethod
    def _is_usable(record: RawRecord) -> bool:
        has_title = bool(record.name or record.title)
        has_price = any(v is not None for v in (record.price, record.value, record.cost))
        has_link = bool(record.url or record.link or record.href)
        return has_title and has_price and has_link
