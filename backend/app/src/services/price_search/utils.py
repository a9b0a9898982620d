"""Utilities shared by price search providers."""

from __future__ import annotations

import random
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Dict, Optional

CENTS = Decimal("0.01")

USER_AGENTS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/123.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:125.0) Gecko/20100101 Firefox/125.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.4 Safari/605.1.15",
)

DEFAULT_HEADERS = {
    "User-Agent": USER_AGENTS[0],
    "Accept-Language": "pt-BR,pt;q=0.9",
}


def realistic_headers(referer: Optional[str] = None) -> Dict[str, str]:
    """Browser-like headers with a rotating user agent."""
    headers = {
        **DEFAULT_HEADERS,
        "User-Agent": random.choice(USER_AGENTS),
        "Accept": (
            "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,"
            "image/webp,*/*;q=0.8"
        ),
        "Accept-Language": "pt-BR,pt;q=0.9,en-US;q=0.8,en;q=0.7",
        "Connection": "keep-alive",
        "Upgrade-Insecure-Requests": "1",
        "Sec-Fetch-Dest": "document",
        "Sec-Fetch-Mode": "navigate",
        "Sec-Fetch-Site": "same-origin" if referer else "none",
        "Cache-Control": "max-age=0",
    }
    if referer:
        headers["Referer"] = referer
    return headers


def _split_separators(cleaned: str) -> str:
    """Rewrite a digits-and-separators string to a plain decimal literal."""
    has_comma = "," in cleaned
    has_dot = "." in cleaned

    if has_comma and has_dot:
        # The rightmost separator is the decimal one.
        if cleaned.rfind(",") > cleaned.rfind("."):
            return cleaned.replace(".", "").replace(",", ".")
        return cleaned.replace(",", "")

    for separator in (",", "."):
        if separator in cleaned:
            parts = cleaned.split(separator)
            if len(parts) == 2 and 1 <= len(parts[1]) <= 2:
                return cleaned.replace(separator, ".")
            return cleaned.replace(separator, "")

    return cleaned


def parse_price(price_text: str | None) -> Optional[Decimal]:
    """Convert a locale formatted price string to a positive Decimal.

    Handles both ``R$ 1.234,56`` and ``1,234.56``. Returns None when nothing
    usable is left or the amount is not positive.
    """
    if not price_text or not isinstance(price_text, str):
        return None

    cleaned = re.sub(r"[^\d,\.]", "", price_text)
    if not cleaned:
        return None

    try:
        value = Decimal(_split_separators(cleaned))
    except (InvalidOperation, ValueError):
        return None

    if not value.is_finite() or value <= 0:
        return None
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def coerce_price(raw: object) -> Optional[Decimal]:
    """Accept numbers or price strings and return a positive rounded Decimal."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, str):
        return parse_price(raw)
    if isinstance(raw, (int, float, Decimal)):
        try:
            value = Decimal(str(raw))
        except (InvalidOperation, ValueError):
            return None
        if not value.is_finite() or value <= 0:
            return None
        return value.quantize(CENTS, rounding=ROUND_HALF_UP)
    return None


def normalize_whitespace(value: str) -> str:
    """Collapse repeated spaces and newlines."""
    return re.sub(r"\s+", " ", value).strip()


def format_brl(value: Decimal | None) -> Optional[str]:
    """Format Decimal values using Brazilian currency notation."""
    if value is None:
        return None

    quantized = value.quantize(CENTS)
    formatted = f"R$ {quantized:,.2f}"
    return formatted.replace(",", "X").replace(".", ",").replace("X", ".")
