"""
Section assembly state machine tests.

Covers:
  - Reference two-section menu
  - Consecutive headers (empty draft discarded)
  - Title cleaning
  - Item lines before the first header (orphans) vs. fallback section
  - Header/item ambiguity resolution
  - No empty sections, item-count invariants
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest

from menuscan.allergen_matcher import scan_text
from menuscan.parsers.line_classifier import classify_line
from menuscan.parsers.section_assembler import (
    SectionAssembler,
    assemble_sections,
    clean_section_title,
)

SAMPLE = (
    "APPETIZERS\n\n"
    "Chicken Wings - Spicy buffalo wings with celery $12.99\n\n"
    "MAINS\n\n"
    "Burger - Beef patty with lettuce, tomato $15.99"
)

FULL_MENU = """\
STARTERS
Bruschetta - toasted bread, tomato, basil $8.50
Calamari - fried squid, lemon aioli with eggs $11
SALADS
Caesar Salad - romaine, parmesan cheese, croutons $10
DESSERTS
Tiramisu - mascarpone, espresso, cream $9
Affogato - vanilla gelato drowned in espresso $7
"""


class TestReferenceMenu:
    def test_two_sections(self):
        sections = assemble_sections(SAMPLE.split("\n"))
        assert [s.title for s in sections] == ["APPETIZERS", "MAINS"]
        assert [len(s.items) for s in sections] == [1, 1]

    def test_first_item(self):
        wings = assemble_sections(SAMPLE.split("\n"))[0].items[0]
        assert wings.name == "Chicken Wings"
        assert wings.price.value == 12.99
        assert wings.price.currency == "USD"
        assert "celery" in wings.allergen_warnings

    def test_section_defaults(self):
        for section in assemble_sections(SAMPLE.split("\n")):
            assert section.confidence == 0.8
            assert section.id


class TestHeaders:
    def test_consecutive_headers_drop_empty_draft(self):
        sections = assemble_sections([
            "STARTERS",
            "DESSERTS",
            "Chocolate cake with cream $7",
        ])
        assert [s.title for s in sections] == ["DESSERTS"]

    def test_trailing_header_without_items_dropped(self):
        sections = assemble_sections(["MAINS", "Steak frites with butter $25", "DRINKS"])
        assert [s.title for s in sections] == ["MAINS"]

    @pytest.mark.parametrize("raw,expected", [
        ("~ Appetizers ~", "Appetizers"),
        ("Soups & Salads!", "Soups Salads"),
        ("  MAINS   COURSES ", "MAINS COURSES"),
    ])
    def test_clean_title(self, raw, expected):
        assert clean_section_title(raw) == expected


class TestOrphansAndFallback:
    def test_lines_before_first_header_are_buffered(self):
        asm = SectionAssembler()
        lines = [
            "Welcome to our restaurant, enjoy",
            "MAINS",
            "Steak frites with butter $25",
        ]
        for i, line in enumerate(lines):
            asm.feed(line, i)
        sections = asm.finish()
        assert [s.title for s in sections] == ["MAINS"]
        assert len(sections[0].items) == 1
        assert len(asm.orphans) == 1

    def test_fallback_section(self):
        sections = assemble_sections([
            "grilled cheese sandwich $8",
            "house salad with ranch $6",
        ])
        assert len(sections) == 1
        assert sections[0].title == "Menu Items"
        assert sections[0].confidence == 0.6
        assert [it.name for it in sections[0].items] == ["grilled cheese sandwich", "house salad with ranch"]

    def test_only_headers(self):
        assert assemble_sections(["APPETIZERS", "MAINS"]) == []

    def test_empty_input(self):
        assert assemble_sections([]) == []
        assert assemble_sections(["", "   "]) == []


class TestAmbiguousLines:
    def test_ambiguous_line_joins_section_with_items(self):
        sections = assemble_sections([
            "MAINS",
            "Steak frites with butter $25",
            "Grilled Salmon With Lemon Butter",
        ])
        assert len(sections) == 1
        assert [it.name for it in sections[0].items] == [
            "Steak frites with butter",
            "Grilled Salmon With Lemon Butter",
        ]

    def test_ambiguous_line_opens_section_when_draft_empty(self):
        sections = assemble_sections([
            "APPETIZERS",
            "Chicken Wings With Blue Cheese",
            "Nachos with cheese and salsa $9",
        ])
        assert [s.title for s in sections] == ["Chicken Wings With Blue Cheese"]


class TestInvariants:
    @pytest.mark.parametrize("text", [SAMPLE, FULL_MENU, "DRINKS\n\nDESSERTS", "lonely line with words"])
    def test_no_empty_sections(self, text):
        for section in assemble_sections(text.split("\n")):
            assert len(section.items) >= 1

    def test_item_count_matches_item_lines(self):
        lines = FULL_MENU.split("\n")
        item_lines = [ln for ln in lines if ln.strip() and classify_line(ln).is_item]
        sections = assemble_sections(lines)
        assert sum(len(s.items) for s in sections) == len(item_lines) == 5
        assert [s.title for s in sections] == ["STARTERS", "SALADS", "DESSERTS"]

    def test_description_round_trip(self):
        for section in assemble_sections(FULL_MENU.split("\n")):
            for item in section.items:
                if item.description:
                    assert scan_text(item.description) <= set(item.allergen_warnings)

    def test_positions_skip_blank_lines(self):
        items = [it for s in assemble_sections(SAMPLE.split("\n")) for it in s.items]
        assert [it.position.y for it in items] == [20, 60]
