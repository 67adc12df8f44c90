# menuscan/ai_menu_extract.py
"""
Claude Menu Structuring — sends one block of menu text to Claude and maps the
JSON reply onto MenuSection / MenuItem values.

This is the collaborator behind the pipeline's "collaborator" mode. The
pipeline calls structure() once per text block, concurrently, and keeps the
results in block order.

Usage:
    from menuscan.ai_menu_extract import ClaudeMenuStructurer

    sections = ClaudeMenuStructurer().structure(block_text)
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List, Optional, Protocol

from menuscan.ai_client import parse_json_reply, send_prompt, truncate_for_prompt
from menuscan.allergen_matcher import AllergenMatcher, default_matcher
from menuscan.config import (
    DEFAULT_CURRENCY,
    DEFAULT_ITEM_CONFIDENCE,
    DEFAULT_SECTION_CONFIDENCE,
    FALLBACK_SECTION_TITLE,
    MAX_INGREDIENTS,
    Settings,
    load_settings,
)
from menuscan.errors import MalformedResponse
from menuscan.menu_types import MenuItem, MenuSection, Position, Price

log = logging.getLogger(__name__)


class MenuTextStructurer(Protocol):
    def structure(self, text: str) -> List[MenuSection]: ...


# ---------------------------------------------------------------------------
# Prompt
# ---------------------------------------------------------------------------
_SYSTEM_PROMPT = """\
You are a restaurant menu data extraction expert. You receive text read from \
one region of a restaurant menu (a PDF page or a photographed crop). The text \
may contain OCR artifacts and formatting noise.

Group the dishes into the sections printed on the menu and return JSON.

Rules:
1. Only include dishes a customer can order. Skip addresses, hours, phone \
numbers and general notes.
2. For each section provide "title" (as printed) and "items".
3. For each item provide:
   - "name": the dish name, OCR typos fixed.
   - "description": the printed description, or null.
   - "price": the base price as a number, or null if none is visible.
   - "currency": ISO currency code, "USD" unless another symbol is printed.
   - "ingredients": lower-case ingredient names mentioned for the dish.
4. Dishes with no visible section go in a section titled "Menu Items".
5. Output ONLY valid JSON: {"sections": [...]}
   No markdown, no explanation, just the JSON object.\
"""

_USER_PROMPT_TEMPLATE = """\
Structure this menu text:

---
{menu_text}
---

Return JSON: {{"sections": [{{"title": "...", "items": [{{"name": "...", "description": null, "price": 0.00, "currency": "USD", "ingredients": []}}]}}]}}"""


# ---------------------------------------------------------------------------
# Reply mapping
# ---------------------------------------------------------------------------
def _to_price(value: Any, currency: Any) -> Optional[Price]:
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = round(float(value), 2)
    except (TypeError, ValueError):
        return None
    if amount < 0:
        return None
    code = str(currency or DEFAULT_CURRENCY).strip().upper()[:3] or DEFAULT_CURRENCY
    return Price(value=amount, currency=code, raw_text=f"{amount:.2f}")


def _to_item(raw: Dict[str, Any], matcher: AllergenMatcher) -> Optional[MenuItem]:
    name = str(raw.get("name") or "").strip()
    if not name:
        return None
    description = str(raw.get("description") or "").strip() or None

    ingredients_raw = raw.get("ingredients") or []
    if not isinstance(ingredients_raw, list):
        ingredients_raw = []
    ingredients = [str(i).strip().lower() for i in ingredients_raw if str(i).strip()]

    scan_text = " ".join(filter(None, [name, description, ", ".join(ingredients)]))
    return MenuItem(
        id=str(uuid.uuid4()),
        name=name,
        description=description,
        price=_to_price(raw.get("price"), raw.get("currency")),
        ingredients=tuple(ingredients[:MAX_INGREDIENTS]),
        allergen_warnings=matcher.scan_line(scan_text),
        confidence=DEFAULT_ITEM_CONFIDENCE,
        position=Position.zero(),
    )


def sections_from_payload(
    payload: Dict[str, Any],
    matcher: Optional[AllergenMatcher] = None,
) -> List[MenuSection]:
    """Map {"sections": [...]} onto MenuSections; empty sections are dropped."""
    matcher = matcher or default_matcher()
    raw_sections = payload.get("sections")
    if not isinstance(raw_sections, list):
        raise MalformedResponse("reply missing 'sections' list")

    out: List[MenuSection] = []
    for raw in raw_sections:
        if not isinstance(raw, dict):
            continue
        raw_items = raw.get("items")
        if not isinstance(raw_items, list):
            continue
        items = [
            it for it in (_to_item(r, matcher) for r in raw_items if isinstance(r, dict))
            if it is not None
        ]
        if not items:
            continue
        title = str(raw.get("title") or "").strip() or FALLBACK_SECTION_TITLE
        out.append(MenuSection(
            id=str(uuid.uuid4()),
            title=title,
            items=tuple(items),
            confidence=DEFAULT_SECTION_CONFIDENCE,
        ))
    return out


# ---------------------------------------------------------------------------
# Collaborator
# ---------------------------------------------------------------------------
class ClaudeMenuStructurer:
    """MenuTextStructurer backed by the Claude messages API."""

    def __init__(
        self,
        *,
        settings: Optional[Settings] = None,
        client: Any = None,
        matcher: Optional[AllergenMatcher] = None,
    ):
        self.settings = settings or load_settings()
        self.client = client
        self.matcher = matcher or default_matcher()

    def structure(self, text: str) -> List[MenuSection]:
        if not text or not text.strip():
            return []
        prompt = _USER_PROMPT_TEMPLATE.format(
            menu_text=truncate_for_prompt(text, self.settings.max_chars),
        )
        reply = send_prompt(
            _SYSTEM_PROMPT,
            prompt,
            client=self.client,
            settings=self.settings,
        )
        sections = sections_from_payload(parse_json_reply(reply), self.matcher)
        log.info("Claude structured %d sections", len(sections))
        return sections
