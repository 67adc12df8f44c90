# menuscan/parsers/section_assembler.py
"""
Section Assembler — groups classified lines into ordered menu sections.

Two states:
  NoOpenSection           (initial)
  OpenSection(draft)      a titled draft collecting parsed items

Transitions per non-blank line:
  header, open draft has items   → emit draft, open a new one
  header, no draft / empty draft → open a new one (empty draft is dropped)
  header + item, draft has items → treated as an item of the open draft
  item, open draft               → parse, append on success
  item, no draft                 → parse into the orphan buffer

End of input: emit the open draft if it has items. If nothing was emitted,
every item line of the input becomes one synthetic "Menu Items" section.
Sections with zero items never leave this module.
"""

from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from menuscan.allergen_matcher import AllergenMatcher, default_matcher
from menuscan.config import (
    DEFAULT_SECTION_CONFIDENCE,
    FALLBACK_SECTION_CONFIDENCE,
    FALLBACK_SECTION_TITLE,
)
from menuscan.menu_types import MenuItem, MenuSection
from menuscan.parsers.item_parser import parse_menu_item
from menuscan.parsers.line_classifier import classify_line

log = logging.getLogger(__name__)

_NON_WORD_RE = re.compile(r"[^\w\s]")
_WS_RE = re.compile(r"\s+")


def clean_section_title(title: str) -> str:
    return _WS_RE.sub(" ", _NON_WORD_RE.sub("", title)).strip()


@dataclass
class _SectionDraft:
    title: str
    confidence: float = DEFAULT_SECTION_CONFIDENCE
    items: List[MenuItem] = field(default_factory=list)

    def freeze(self) -> MenuSection:
        return MenuSection(
            id=str(uuid.uuid4()),
            title=self.title,
            items=tuple(self.items),
            confidence=self.confidence,
        )


class SectionAssembler:
    """Single-use state machine; one instance per assembly run."""

    def __init__(self, matcher: Optional[AllergenMatcher] = None):
        self.matcher = matcher or default_matcher()
        self.sections: List[MenuSection] = []
        self.orphans: List[MenuItem] = []
        self._open: Optional[_SectionDraft] = None
        self._item_lines: List[str] = []

    # ── transitions ──────────────────────────────

    def _open_section(self, line: str) -> None:
        if self._open is not None and self._open.items:
            self.sections.append(self._open.freeze())
        elif self._open is not None:
            log.debug("Dropping empty section %r", self._open.title)
        self._open = _SectionDraft(title=clean_section_title(line))

    def _add_item(self, line: str, index: int) -> None:
        item = parse_menu_item(line, index, self.matcher)
        if item is None:
            return
        if self._open is not None:
            self._open.items.append(item)
        else:
            self.orphans.append(item)

    def feed(self, line: str, index: int) -> None:
        line = line.strip()
        if not line:
            return

        cls = classify_line(line)
        if cls.is_item:
            self._item_lines.append(line)

        if cls.is_header:
            if cls.is_item and self._open is not None and self._open.items:
                self._add_item(line, index)
            else:
                self._open_section(line)
        elif cls.is_item:
            self._add_item(line, index)

    def finish(self) -> List[MenuSection]:
        if self._open is not None and self._open.items:
            self.sections.append(self._open.freeze())
        self._open = None

        if not self.sections:
            fallback = self._fallback_section()
            if fallback is not None:
                self.sections.append(fallback)
        return self.sections

    def _fallback_section(self) -> Optional[MenuSection]:
        items = [
            it for it in (
                parse_menu_item(line, idx, self.matcher)
                for idx, line in enumerate(self._item_lines)
            )
            if it is not None
        ]
        if not items:
            return None
        log.info("No section headers detected; using fallback section with %d items", len(items))
        return _SectionDraft(
            title=FALLBACK_SECTION_TITLE,
            confidence=FALLBACK_SECTION_CONFIDENCE,
            items=items,
        ).freeze()


def assemble_sections(
    lines: Iterable[str],
    matcher: Optional[AllergenMatcher] = None,
) -> List[MenuSection]:
    """Run the assembler over lines and return sections.

    Blank lines are skipped and do not advance the item position index.
    """
    asm = SectionAssembler(matcher)
    non_blank = (line for line in lines if line and line.strip())
    for idx, line in enumerate(non_blank):
        asm.feed(line, idx)
    return asm.finish()
