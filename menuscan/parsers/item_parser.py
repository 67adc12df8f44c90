# menuscan/parsers/item_parser.py
"""
Menu Item Parser — splits one item line into name / description / price /
ingredients / allergen warnings.

Steps:
  1. Price: extract the first price and strip its first occurrence
  2. Name/description: first separator present in the stripped line
     (" - ", " – ", " — ", double space, tab), else first comma, else the
     whole remainder is the name
  3. Ingredients: comma / & / + tokens of the description, minus filler
  4. Allergens: matcher over the ORIGINAL full line (price included)

Never raises for malformed lines: unusable input is logged and yields None.
"""

from __future__ import annotations

import logging
import re
import uuid
from typing import List, Optional, Tuple

from menuscan.allergen_matcher import AllergenMatcher, default_matcher
from menuscan.config import DEFAULT_ITEM_CONFIDENCE, LINE_HEIGHT, LINE_WIDTH, MAX_INGREDIENTS
from menuscan.errors import UnparsableLine
from menuscan.menu_types import MenuItem, Position, Price
from menuscan.parsers.price_parser import extract_price

log = logging.getLogger(__name__)

NAME_SEPARATORS = (" - ", " – ", " — ", "  ", "\t")

_INGREDIENT_SPLIT_RE = re.compile(r"[,&+]")
_INGREDIENT_STOPWORDS = ("served", "with", "and", "or", "choice", "side", "includes")
_MIN_INGREDIENT_LEN = 3


def strip_price(line: str, price: Optional[Price]) -> str:
    if price is None or not price.raw_text:
        return line.strip()
    return line.replace(price.raw_text, "", 1).strip()


def split_name_and_description(text: str) -> Tuple[str, Optional[str]]:
    """Split a price-free line into (name, description or None)."""
    # every separator starts with whitespace, so a stripped line never
    # yields an empty name
    text = text.strip()
    for sep in NAME_SEPARATORS:
        if sep not in text:
            continue
        head, rest = text.split(sep, 1)
        description = rest.strip()
        return head.strip(), (description or None)

    if "," in text:
        head, rest = text.split(",", 1)
        if head.strip() and rest.strip():
            return head.strip(), rest.strip()

    return text.strip(), None


def extract_ingredients(description: Optional[str], limit: int = MAX_INGREDIENTS) -> List[str]:
    if not description:
        return []
    out: List[str] = []
    for part in _INGREDIENT_SPLIT_RE.split(description.lower()):
        token = part.strip()
        if len(token) < _MIN_INGREDIENT_LEN:
            continue
        if any(stop in token for stop in _INGREDIENT_STOPWORDS):
            continue
        out.append(token)
    return out[:limit]


def _parse(line: str, index: int, matcher: AllergenMatcher) -> MenuItem:
    price = extract_price(line)
    name, description = split_name_and_description(strip_price(line, price))
    if not name:
        raise UnparsableLine(line, "empty item name")

    return MenuItem(
        id=str(uuid.uuid4()),
        name=name,
        description=description,
        price=price,
        ingredients=tuple(extract_ingredients(description)),
        allergen_warnings=matcher.scan_line(line),
        confidence=DEFAULT_ITEM_CONFIDENCE,
        position=Position(x=0, y=index * LINE_HEIGHT, width=LINE_WIDTH, height=LINE_HEIGHT),
    )


def parse_menu_item(
    line: str,
    index: int = 0,
    matcher: Optional[AllergenMatcher] = None,
) -> Optional[MenuItem]:
    """Parse one item line; returns None when the line is unusable."""
    try:
        return _parse(line, index, matcher or default_matcher())
    except UnparsableLine as e:
        log.debug("Skipping item line %d: %s", index, e)
        return None
    except (TypeError, ValueError, AttributeError) as e:
        log.warning("Failed to parse item line %d %r: %s", index, line, e)
        return None
