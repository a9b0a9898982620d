"""Test HTTP access helpers used by the scraping providers."""

from typing import List
from unittest.mock import MagicMock, patch

import pytest
import requests

from src.services.price_search.http_client import HttpClient, RateLimiter
from src.services.price_search.models import PriceSearchError, RequestTimeoutError


def make_response(status_code: int = 200, text: str = "<html></html>") -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    return response


class TestHttpClient:
    """Test cases for HttpClient retries and backoff."""

    def setup_method(self) -> None:
        """Set up a client that records its sleeps instead of waiting."""
        self.sleeps: List[float] = []
        self.client = HttpClient(
            timeout=5,
            retries=2,
            retry_delay=1.0,
            rate_limiter=RateLimiter(min_interval=0),
            sleep=self.sleeps.append,
        )

    @patch("src.services.price_search.http_client.requests.get")
    def test_get_text_returns_body(self, mock_get: MagicMock) -> None:
        """Test that a 200 response body is returned on the first attempt."""
        # Arrange
        mock_get.return_value = make_response(text="ok")

        # Act
        body = self.client.get_text("Amazon", "https://www.amazon.com.br/s", params={"k": "tv"})

        # Assert
        assert body == "ok"
        assert mock_get.call_count == 1
        _, kwargs = mock_get.call_args
        assert kwargs["params"] == {"k": "tv"}
        assert kwargs["timeout"] == 5
        assert "User-Agent" in kwargs["headers"]
        assert self.sleeps == []

    @patch("src.services.price_search.http_client.requests.get")
    def test_get_text_retries_with_linear_backoff(self, mock_get: MagicMock) -> None:
        """Test that network errors are retried with growing delays."""
        mock_get.side_effect = [
            requests.ConnectionError("reset"),
            make_response(status_code=503),
            make_response(text="finalmente"),
        ]

        body = self.client.get_text("Amazon", "https://www.amazon.com.br/s")

        assert body == "finalmente"
        assert mock_get.call_count == 3
        assert self.sleeps == [1.0, 2.0]

    @patch("src.services.price_search.http_client.requests.get")
    def test_get_text_raises_after_exhausting_retries(self, mock_get: MagicMock) -> None:
        """Test that the last HTTP error is reported after every attempt fails."""
        mock_get.return_value = make_response(status_code=500)

        with pytest.raises(PriceSearchError, match="HTTP 500"):
            self.client.get_text("Amazon", "https://www.amazon.com.br/s")

        assert mock_get.call_count == 3

    @patch("src.services.price_search.http_client.requests.get")
    def test_get_text_never_retries_timeouts(self, mock_get: MagicMock) -> None:
        """Test that a timeout ends the call immediately."""
        mock_get.side_effect = requests.Timeout("slow")

        with pytest.raises(RequestTimeoutError, match="Timeout"):
            self.client.get_text("Amazon", "https://www.amazon.com.br/s")

        assert mock_get.call_count == 1
        assert self.sleeps == []


class TestRateLimiter:
    """Test cases for per-host request spacing."""

    def setup_method(self) -> None:
        """Set up a limiter with a fake clock."""
        self.now = 100.0
        self.sleeps: List[float] = []
        self.limiter = RateLimiter(
            min_interval=1.0, clock=lambda: self.now, sleep=self.sleeps.append
        )

    def test_first_request_does_not_wait(self) -> None:
        """Test that an unseen host is served immediately."""
        self.limiter.wait("www.amazon.com.br")

        assert self.sleeps == []

    def test_early_caller_waits_remaining_interval(self) -> None:
        """Test that a second request to the same host waits out the spacing."""
        self.limiter.wait("www.amazon.com.br")
        self.now += 0.25

        self.limiter.wait("www.amazon.com.br")

        assert self.sleeps == [pytest.approx(0.75)]

    def test_hosts_are_independent(self) -> None:
        """Test that spacing on one host does not delay another."""
        self.limiter.wait("www.amazon.com.br")
        self.limiter.wait("www.casasbahia.com.br")

        assert self.sleeps == []

    def test_concurrent_reservations_queue_up(self) -> None:
        """Test that back-to-back callers get successive slots."""
        delays = [self.limiter.reserve("www.magazineluiza.com.br") for _ in range(3)]

        assert delays == [0.0, 1.0, 2.0]
