# menuscan/allergen_matcher.py
"""
Allergen Matcher — keyword scan + severity classification.

Public API:
- AllergenMatcher.scan(text) -> set of allergen names
- AllergenMatcher.scan_line(text) -> ordered, de-duplicated tuple (item warnings)
- AllergenMatcher.scan_document(text, sections) -> list[AllergenAlert]
- severity_for(allergen) -> "high" | "medium" | "low"

Matching is a case-insensitive substring test against a fixed vocabulary
("cream" fires inside "ice cream", "butter" inside "buttermilk"). A term only
counts at positions not already covered by a longer vocabulary term, so
"peanuts" does not also report "nuts" and "shellfish" does not report "fish".
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from menuscan.config import ALERT_CONFIDENCE, ALERT_CONTEXT_CHARS
from menuscan.menu_types import AllergenAlert, MenuSection


COMMON_ALLERGENS: Tuple[str, ...] = (
    "peanuts", "tree nuts", "nuts", "dairy", "milk", "cheese", "butter", "cream",
    "eggs", "soy", "wheat", "gluten", "fish", "shellfish", "crustaceans",
    "sesame", "mustard", "celery", "lupin", "mollusks", "sulfites",
)

_HIGH_SEVERITY = frozenset({"peanuts", "tree nuts", "nuts", "shellfish"})
_MEDIUM_SEVERITY = frozenset({"gluten", "dairy", "eggs"})


def severity_for(allergen: str) -> str:
    key = allergen.strip().lower()
    if key in _HIGH_SEVERITY:
        return "high"
    if key in _MEDIUM_SEVERITY:
        return "medium"
    return "low"


class AllergenMatcher:
    def __init__(
        self,
        vocabulary: Iterable[str] = COMMON_ALLERGENS,
        *,
        alert_confidence: float = ALERT_CONFIDENCE,
        context_chars: int = ALERT_CONTEXT_CHARS,
    ):
        seen: Set[str] = set()
        vocab: List[str] = []
        for term in vocabulary:
            low = term.strip().lower()
            if low and low not in seen:
                seen.add(low)
                vocab.append(low)
        self.vocabulary: Tuple[str, ...] = tuple(vocab)
        self.alert_confidence = alert_confidence
        self.context_chars = context_chars

    def _occurrences(self, low: str) -> Dict[str, List[int]]:
        """term -> start offsets not covered by a longer matched term."""
        hits: Dict[str, List[int]] = {}
        for term in self.vocabulary:
            starts = _find_all(low, term)
            if starts:
                hits[term] = starts

        found: Dict[str, List[int]] = {}
        for term, starts in hits.items():
            covering = [
                (s, s + len(other))
                for other, other_starts in hits.items()
                if len(other) > len(term) and term in other
                for s in other_starts
            ]
            free = [
                s for s in starts
                if not any(a <= s and s + len(term) <= b for a, b in covering)
            ]
            if free:
                found[term] = free
        return found

    def scan_line(self, text: str) -> Tuple[str, ...]:
        """Allergens found in text, in vocabulary order, each at most once."""
        if not text:
            return ()
        return tuple(self._occurrences(text.lower()))

    def scan(self, text: str) -> Set[str]:
        return set(self.scan_line(text))

    def scan_document(
        self,
        text: str,
        sections: Sequence[MenuSection] = (),
    ) -> List[AllergenAlert]:
        """One alert per allergen found anywhere in the document."""
        if not text:
            return []
        first_item = _first_item_by_allergen(sections)

        alerts: List[AllergenAlert] = []
        for term, starts in self._occurrences(text.lower()).items():
            idx = starts[0]
            start = max(0, idx - self.context_chars)
            end = min(len(text), idx + len(term) + self.context_chars)
            alerts.append(AllergenAlert(
                allergen=term,
                confidence=self.alert_confidence,
                context=text[start:end].strip(),
                severity=severity_for(term),
                menu_item_id=first_item.get(term),
            ))
        return alerts


def _find_all(haystack: str, needle: str) -> List[int]:
    out: List[int] = []
    i = haystack.find(needle)
    while i >= 0:
        out.append(i)
        i = haystack.find(needle, i + 1)
    return out


def _first_item_by_allergen(sections: Sequence[MenuSection]) -> Dict[str, str]:
    """allergen name -> id of the first item (document order) warning about it."""
    index: Dict[str, str] = {}
    for section in sections:
        for item in section.items:
            for allergen in item.allergen_warnings:
                index.setdefault(allergen, item.id)
    return index


# ---------------------------------------------------------------------------
# Module-level helpers over a default matcher
# ---------------------------------------------------------------------------

_default_matcher: Optional[AllergenMatcher] = None


def default_matcher() -> AllergenMatcher:
    global _default_matcher
    if _default_matcher is None:
        _default_matcher = AllergenMatcher()
    return _default_matcher


def scan_text(text: str) -> Set[str]:
    return default_matcher().scan(text)


def scan_line(text: str) -> Tuple[str, ...]:
    return default_matcher().scan_line(text)


def detect_allergen_alerts(text: str, sections: Sequence[MenuSection] = ()) -> List[AllergenAlert]:
    return default_matcher().scan_document(text, sections)
