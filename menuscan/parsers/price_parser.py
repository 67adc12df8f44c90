"""
Price Parser — finds the first monetary amount in a text fragment.

Patterns are tried in a fixed order and the first one that matches anywhere
in the fragment wins, even when a later pattern would match earlier in the
string ("$5 or 5 USD" → "$5"; "5 USD or $5" → "$5" too).
"""

from __future__ import annotations

import re
from typing import Optional

from menuscan.config import DEFAULT_CURRENCY
from menuscan.menu_types import Price

_AMOUNT = r"(\d+(?:\.\d{2})?)"

PRICE_PATTERNS = [
    re.compile(r"\$" + _AMOUNT),                         # $12.99, $12
    re.compile(_AMOUNT + r"\s*\$"),                      # 12.99$, 12 $
    re.compile(r"£" + _AMOUNT),                          # £12.99
    re.compile(r"€" + _AMOUNT),                          # €12.99
    re.compile(_AMOUNT + r"\s*(USD|GBP|EUR)\b", re.I),   # 12.99 USD
]

_SYMBOL_CURRENCY = {"£": "GBP", "€": "EUR"}


def _currency_for(match: re.Match) -> str:
    raw = match.group(0)
    if match.re.groups > 1 and match.group(2):
        return match.group(2).upper()
    for symbol, code in _SYMBOL_CURRENCY.items():
        if symbol in raw:
            return code
    return DEFAULT_CURRENCY


def extract_price(text: str) -> Optional[Price]:
    """Return the first Price found in text, or None when there is none."""
    if not text:
        return None
    for pattern in PRICE_PATTERNS:
        m = pattern.search(text)
        if m is None:
            continue
        try:
            value = float(m.group(1))
        except ValueError:
            continue
        return Price(value=value, currency=_currency_for(m), raw_text=m.group(0))
    return None


def contains_price(text: str) -> bool:
    return extract_price(text) is not None
