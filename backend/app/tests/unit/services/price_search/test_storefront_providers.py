"""Test the storefront scraping providers."""

import json
from decimal import Decimal
from typing import List
from unittest.mock import MagicMock, patch

from src.services.price_search.http_client import HttpClient
from src.services.price_search.models import PriceSearchError, RawRecord
from src.services.price_search.normalizer import DataNormalizer
from src.services.price_search.providers.amazon import amazon_provider
from src.services.price_search.providers.base import (
    PriceProvider,
    find_product_list,
    load_structured_payload,
)
from src.services.price_search.providers.casas_bahia import casas_bahia_provider
from src.services.price_search.providers.magazine_luiza import magazine_luiza_provider

AMAZON_HTML = """
<html><body>
  <div class="s-result-item" data-asin="B09G9FPHY6">
    <h2><a href="/dp/B09G9FPHY6"><span>Apple iPhone 13 128GB - Azul</span></a></h2>
    <span class="a-price"><span class="a-offscreen">R$ 4.299,00</span></span>
    <span class="a-icon-alt">4,5 de 5 estrelas</span>
  </div>
  <div class="s-result-item" data-asin="B000000000">
    <h2><a href="/dp/B000000000"><span>Capinha sem preço</span></a></h2>
  </div>
  <div class="s-result-item" data-asin="B09G9HR5T7">
    <h2><span>Apple iPhone 13 128GB - Branco</span></h2>
    <a class="a-link-normal" href="/dp/B09G9HR5T7">ver</a>
    <span class="a-color-price">R$ 4.199,90</span>
  </div>
</body></html>
"""

MAGALU_STATE = {
    "props": {
        "pageProps": {
            "data": {
                "search": {
                    "products": [
                        {
                            "id": "237194400",
                            "title": "iPhone 13 Apple 128GB Azul",
                            "price": {"bestPrice": "4599.00", "price": "4999.00"},
                            "url": "/iphone-13-apple-128gb-azul/p/237194400/",
                        },
                        {"id": "x", "title": "Sem link", "price": {"bestPrice": "10.00"}},
                    ]
                }
            }
        }
    }
}

MAGALU_MARKUP = """
<html><body>
  <script id="__NEXT_DATA__" type="application/json">{quebrado</script>
  <ul>
    <li data-testid="product-card">
      <a data-testid="product-card-container" href="/tv-samsung-50/p/1/">
        <h2 data-testid="product-title">Smart TV Samsung 50"</h2>
        <p data-testid="price-value">R$ 2.799,00</p>
      </a>
    </li>
  </ul>
</body></html>
"""

CASAS_BAHIA_HTML = """
<html><head><script>
window.__INITIAL_STATE__ = {"search": {"results": [
  {"product": {"id": "55001", "name": "Smart TV Samsung 50\\" 4K",
               "sku": {"sellers": [{"commertialOffer": {"Price": 2999.9}}]},
               "link": "/smart-tv-samsung/p/55001"}}
]}};
</script></head><body></body></html>
"""


class TestStorefrontProvider:
    """Test cases for the shared storefront scraping strategy."""

    def setup_method(self) -> None:
        """Set up a fake HTTP client and no jitter."""
        self.http = MagicMock(spec=HttpClient)
        self.normalizer = DataNormalizer()

    def test_providers_satisfy_protocol(self) -> None:
        """Test that store providers expose the provider contract."""
        provider = amazon_provider(self.http, jitter=(0, 0))

        assert isinstance(provider, PriceProvider)
        assert provider.name == "Amazon"

    def test_amazon_parses_markup_with_selector_fallback(self) -> None:
        """Test that items, fields and links are read through fallback selectors."""
        # Arrange
        self.http.get_text.return_value = AMAZON_HTML
        provider = amazon_provider(self.http, jitter=(0, 0))

        # Act
        records = provider.search("iphone 13")

        # Assert
        self.http.get_text.assert_called_once_with(
            "Amazon",
            "https://www.amazon.com.br/s?k=iphone+13",
            referer="https://www.amazon.com.br/",
        )
        assert [record.title for record in records] == [
            "Apple iPhone 13 128GB - Azul",
            "Apple iPhone 13 128GB - Branco",
        ]
        assert records[0].price == Decimal("4299.00")
        assert records[0].link == "https://www.amazon.com.br/dp/B09G9FPHY6"
        assert records[0].extra["asin"] == "B09G9FPHY6"
        assert records[0].extra["rating"] == "4,5 de 5 estrelas"
        assert records[1].price == Decimal("4199.90")
        assert records[1].link == "https://www.amazon.com.br/dp/B09G9HR5T7"

    def test_magalu_uses_embedded_state_first(self) -> None:
        """Test that the structured payload is used when present."""
        body = (
            '<html><script id="__NEXT_DATA__" type="application/json">'
            f"{json.dumps(MAGALU_STATE)}</script></html>"
        )
        self.http.get_text.return_value = body
        provider = magazine_luiza_provider(self.http, jitter=(0, 0))

        records = provider.search("iphone")
        results = self.normalizer.normalize_list(records)

        assert self.http.get_text.call_count == 1
        assert len(records) == 1
        assert results[0].id == "237194400"
        assert results[0].price == Decimal("4599.00")
        assert results[0].url == (
            "https://www.magazineluiza.com.br/iphone-13-apple-128gb-azul/p/237194400/"
        )

    def test_magalu_falls_back_to_markup_on_broken_state(self) -> None:
        """Test that a malformed state is not an error and the markup is parsed."""
        self.http.get_text.return_value = MAGALU_MARKUP
        provider = magazine_luiza_provider(self.http, jitter=(0, 0))

        records = provider.search("tv")

        assert self.http.get_text.call_count == 1
        assert len(records) == 1
        assert records[0].title == 'Smart TV Samsung 50"'
        assert records[0].price == Decimal("2799.00")
        assert records[0].link == "https://www.magazineluiza.com.br/tv-samsung-50/p/1/"

    def test_unexpected_state_shape_reuses_fetched_page(self) -> None:
        """Test that a state without the expected keys falls back without refetching."""
        body = MAGALU_MARKUP.replace("{quebrado", '{"props": {}}')
        self.http.get_text.return_value = body
        provider = magazine_luiza_provider(self.http, jitter=(0, 0))

        records = provider.search("tv")

        assert self.http.get_text.call_count == 1
        assert [record.title for record in records] == ['Smart TV Samsung 50"']

    def test_structured_failure_still_tries_markup(self) -> None:
        """Test that a failed structured request falls back to a new page fetch."""
        self.http.get_text.side_effect = [
            PriceSearchError("Magazine Luiza", "HTTP 503 ao buscar em Magazine Luiza."),
            MAGALU_MARKUP,
        ]
        provider = magazine_luiza_provider(self.http, jitter=(0, 0))

        records = provider.search("tv")

        assert self.http.get_text.call_count == 2
        assert len(records) == 1

    def test_casas_bahia_reads_state_variable(self) -> None:
        """Test that a ``variable = {...}`` state with seller offers is parsed."""
        self.http.get_text.return_value = CASAS_BAHIA_HTML
        provider = casas_bahia_provider(self.http, jitter=(0, 0))

        records = provider.search("tv samsung")
        results = self.normalizer.normalize_list(records)

        self.http.get_text.assert_called_once_with(
            "Casas Bahia",
            "https://www.casasbahia.com.br/tv+samsung/b",
            referer="https://www.casasbahia.com.br/",
        )
        assert len(results) == 1
        assert results[0].name == 'Smart TV Samsung 50" 4K'
        assert results[0].price == Decimal("2999.90")
        assert results[0].url == "https://www.casasbahia.com.br/smart-tv-samsung/p/55001"

    def test_blocked_page_yields_empty_list(self) -> None:
        """Test that a bot wall is contained at the provider boundary."""
        self.http.get_text.return_value = "<html>Radware Bot Manager captcha</html>"
        provider = magazine_luiza_provider(self.http, jitter=(0, 0))

        assert provider.search("iphone") == []

    def test_http_failure_yields_empty_list(self) -> None:
        """Test that request failures never escape the provider."""
        self.http.get_text.side_effect = PriceSearchError("Amazon", "HTTP 500")
        provider = amazon_provider(self.http, jitter=(0, 0))

        assert provider.search("iphone") == []

    def test_unexpected_error_yields_empty_list(self) -> None:
        """Test that any exception is converted to an empty result."""
        self.http.get_text.side_effect = RuntimeError("boom")
        provider = amazon_provider(self.http, jitter=(0, 0))

        assert provider.search("iphone") == []

    def test_results_are_truncated(self) -> None:
        """Test that providers never return more than their cap."""
        items = "".join(
            f'<div data-component-type="s-search-result"><h2><a href="/dp/{n}">'
            f"<span>Item {n}</span></a></h2>"
            f'<span class="a-price"><span class="a-offscreen">R$ {n + 1},00</span></span></div>'
            for n in range(30)
        )
        self.http.get_text.return_value = f"<html><body>{items}</body></html>"
        provider = amazon_provider(self.http, jitter=(0, 0))

        records = provider.search("item")

        assert len(records) == 20

    def test_item_error_does_not_drop_other_items(self) -> None:
        """Test that extraction errors are contained per item."""
        self.http.get_text.return_value = AMAZON_HTML
        provider = amazon_provider(self.http, jitter=(0, 0))
        record = RawRecord(store="Amazon", title="ok", price=Decimal("1"), link="https://a/x")

        with patch.object(
            provider, "_extract_item", side_effect=[ValueError("quebrado"), None, record]
        ):
            records = provider.search("iphone")

        assert records == [record]

    @patch("src.services.price_search.providers.base.random.uniform", return_value=0.7)
    def test_jitter_sleeps_before_first_request(self, mock_uniform: MagicMock) -> None:
        """Test that a random delay precedes the request."""
        sleeps: List[float] = []
        self.http.get_text.return_value = "<html></html>"
        provider = amazon_provider(self.http, jitter=(0.5, 2.0))
        provider._sleep = sleeps.append

        provider.search("iphone")

        mock_uniform.assert_called_once_with(0.5, 2.0)
        assert sleeps == [0.7]


class TestStructuredPayload:
    """Test cases for embedded state helpers."""

    def test_json_body_is_used_directly(self) -> None:
        """Test that API responses are parsed as JSON."""
        assert load_structured_payload('  {"products": []}') == {"products": []}

    def test_missing_state_returns_none(self) -> None:
        """Test that pages without state are reported as no structured data."""
        assert load_structured_payload("<html></html>", "__NEXT_DATA__", "__STATE__") is None

    def test_find_product_list_skips_non_product_lists(self) -> None:
        """Test that the first product-like list is returned."""
        payload = {
            "breadcrumbs": [{"label": "TV"}],
            "grid": {"items": [{"title": "TV", "price": 10}, {"label": "banner"}]},
        }

        assert find_product_list(payload) == [{"title": "TV", "price": 10}]
