"""
Line Classifier — section header vs. menu item heuristics.

Both predicates are evaluated independently; a line may satisfy both.
The section assembler decides which one wins.
"""

from __future__ import annotations

from dataclasses import dataclass

from menuscan.parsers.price_parser import contains_price

SECTION_KEYWORDS = (
    "appetizers", "starters", "salads", "soups", "mains", "entrees", "entrées",
    "desserts", "beverages", "drinks", "wine", "beer", "cocktails", "sides",
    "breakfast", "lunch", "dinner", "brunch", "specials", "pasta", "pizza",
    "seafood", "meat", "vegetarian", "vegan",
)

HEADER_MAX_LEN = 50
ITEM_MIN_LEN = 10
ITEM_LONG_LEN = 20

_DESCRIPTIVE_MARKERS = (",", "with", "served")


@dataclass(frozen=True, slots=True)
class LineClassification:
    is_header: bool
    is_item: bool

    @property
    def is_ambiguous(self) -> bool:
        return self.is_header and self.is_item


def _has_keyword(line: str) -> bool:
    low = line.lower()
    return any(kw in low for kw in SECTION_KEYWORDS)


def _is_all_caps(line: str) -> bool:
    return line == line.upper() and len(line) > 2


def _is_title_case(line: str) -> bool:
    # Words starting with digits/punctuation count as capitalized
    return all(not word or word[0] == word[0].upper() for word in line.split(" "))


def is_section_header(line: str) -> bool:
    if len(line) >= HEADER_MAX_LEN or contains_price(line):
        return False
    return _has_keyword(line) or _is_all_caps(line) or _is_title_case(line)


def is_menu_item(line: str) -> bool:
    if len(line) < ITEM_MIN_LEN:
        return False
    if contains_price(line):
        return True
    if any(marker in line for marker in _DESCRIPTIVE_MARKERS):
        return True
    return len(line) > ITEM_LONG_LEN


def classify_line(line: str) -> LineClassification:
    line = line.strip()
    if not line:
        return LineClassification(False, False)
    return LineClassification(is_section_header(line), is_menu_item(line))
