"""HTTP access for scraping providers: retries, backoff and per-host spacing."""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Dict, Mapping, Optional
from urllib.parse import urlparse

import requests

from .models import PriceSearchError, RequestTimeoutError
from .utils import realistic_headers

logger = logging.getLogger("price_search.http")


class RateLimiter:
    """Enforce a minimum interval between requests to the same host.

    Each host keeps its own "earliest next allowed" instant, so waiting on one
    host never delays another. Slots are reserved under the lock and the
    sleep happens outside of it.
    """

    def __init__(
        self,
        min_interval: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._next_allowed: Dict[str, float] = {}
        self._lock = threading.Lock()

    def reserve(self, host: str) -> float:
        """Reserve the next slot for ``host`` and return how long to wait."""
        with self._lock:
            now = self._clock()
            start = max(now, self._next_allowed.get(host, now))
            self._next_allowed[host] = start + self.min_interval
        return start - now

    def wait(self, host: str) -> None:
        delay = self.reserve(host)
        if delay > 0:
            logger.debug("Aguardando %.3fs antes de acessar %s.", delay, host)
            self._sleep(delay)


class HttpClient:
    """Send GET requests and return the body text or raise PriceSearchError."""

    def __init__(
        self,
        timeout: float = 10.0,
        retries: int = 2,
        retry_delay: float = 1.0,
        rate_limiter: Optional[RateLimiter] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.timeout = timeout
        self.retries = retries
        self.retry_delay = retry_delay
        self.rate_limiter = rate_limiter or RateLimiter()
        self._sleep = sleep

    def get_text(
        self,
        site: str,
        url: str,
        params: Optional[Mapping[str, Any]] = None,
        referer: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> str:
        """Fetch ``url`` with linear backoff between attempts.

        A timeout ends the call immediately with RequestTimeoutError.
        """
        host = urlparse(url).netloc
        last_error: Optional[Exception] = None

        for attempt in range(self.retries + 1):
            if attempt > 0:
                self._sleep(self.retry_delay * attempt)

            self.rate_limiter.wait(host)
            request_headers = {**realistic_headers(referer), **(headers or {})}
            try:
                response = requests.get(
                    url,
                    params=params,
                    headers=request_headers,
                    timeout=self.timeout,
                )
            except requests.Timeout as exc:
                raise RequestTimeoutError(
                    site, f"Timeout após {self.timeout:.1f}s: {url}"
                ) from exc
            except requests.RequestException as exc:
                last_error = exc
                logger.warning(
                    "Tentativa %d/%d falhou em %s: %s",
                    attempt + 1,
                    self.retries + 1,
                    site,
                    exc,
                )
                continue

            if response.status_code != 200:
                last_error = PriceSearchError(
                    site, f"HTTP {response.status_code} ao buscar em {site}."
                )
                logger.warning(
                    "Tentativa %d/%d retornou HTTP %s em %s.",
                    attempt + 1,
                    self.retries + 1,
                    response.status_code,
                    site,
                )
                continue

            return response.text

        if isinstance(last_error, PriceSearchError):
            raise last_error
        raise PriceSearchError(
            site, f"Falha após {self.retries + 1} tentativas: {last_error}"
        ) from last_error
