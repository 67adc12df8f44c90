"""
MenuScan Types — value objects shared by the parsers, scorer, matcher and
collaborator adapters.

Everything here is immutable: sections and items are built during one
pipeline invocation and handed back to the caller as frozen dataclasses.
List-valued fields are tuples. Each type exposes to_dict() for JSON output.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple


# ────────────────────────────────────────────────
# 🔤 Text reader output
# ────────────────────────────────────────────────

@dataclass(frozen=True, slots=True)
class RawTextBlock:
    """One contiguous extracted region (a PDF page, an OCR crop)."""
    text: str
    confidence: float = 1.0


@dataclass(frozen=True, slots=True)
class ExtractedText:
    """What a text reader returns for one upload."""
    text_boxes: Tuple[str, ...]
    confidence: float

    @property
    def raw_text(self) -> str:
        return "\n\n".join(self.text_boxes)


# ────────────────────────────────────────────────
# 💵 Menu structure
# ────────────────────────────────────────────────

@dataclass(frozen=True, slots=True)
class Position:
    x: int = 0
    y: int = 0
    width: int = 0
    height: int = 0

    @classmethod
    def zero(cls) -> "Position":
        return cls()

    def to_dict(self) -> Dict[str, int]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


@dataclass(frozen=True, slots=True)
class Price:
    value: float
    currency: str = "USD"
    raw_text: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"value": self.value, "currency": self.currency, "raw_text": self.raw_text}


@dataclass(frozen=True, slots=True)
class MenuItem:
    id: str
    name: str
    description: Optional[str] = None
    price: Optional[Price] = None
    ingredients: Tuple[str, ...] = ()
    allergen_warnings: Tuple[str, ...] = ()
    confidence: float = 0.8
    position: Position = field(default_factory=Position)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "ingredients": list(self.ingredients),
            "allergen_warnings": list(self.allergen_warnings),
            "confidence": self.confidence,
            "position": self.position.to_dict(),
        }
        if self.description:
            out["description"] = self.description
        if self.price is not None:
            out["price"] = self.price.to_dict()
        return out


@dataclass(frozen=True, slots=True)
class MenuSection:
    id: str
    title: str
    items: Tuple[MenuItem, ...]
    confidence: float = 0.8

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "items": [it.to_dict() for it in self.items],
            "confidence": self.confidence,
        }


@dataclass(frozen=True, slots=True)
class AllergenAlert:
    allergen: str
    confidence: float
    context: str
    severity: str  # "high" | "medium" | "low"
    menu_item_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "allergen": self.allergen,
            "confidence": self.confidence,
            "context": self.context,
            "severity": self.severity,
        }
        if self.menu_item_id:
            out["menu_item_id"] = self.menu_item_id
        return out


@dataclass(frozen=True, slots=True)
class ConfidenceScores:
    overall: float
    text_quality: float
    structure_detection: float

    def to_dict(self) -> Dict[str, float]:
        return {
            "overall": self.overall,
            "text_quality": self.text_quality,
            "structure_detection": self.structure_detection,
        }


@dataclass(frozen=True, slots=True)
class ProcessedMenuData:
    sections: Tuple[MenuSection, ...]
    confidence: ConfidenceScores
    allergen_alerts: Tuple[AllergenAlert, ...] = ()
    mode: str = "heuristic"

    @property
    def items(self) -> List[MenuItem]:
        return [it for sec in self.sections for it in sec.items]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "menu_sections": [s.to_dict() for s in self.sections],
            "confidence": self.confidence.to_dict(),
            "allergen_alerts": [a.to_dict() for a in self.allergen_alerts],
            "mode": self.mode,
        }


# ────────────────────────────────────────────────
# 🥜 Big-9 allergens + dish safety
# ────────────────────────────────────────────────

@dataclass(frozen=True, slots=True)
class Allergen:
    id: str
    name: str


BIG_NINE_ALLERGENS: Tuple[Allergen, ...] = (
    Allergen("milk", "Milk"),
    Allergen("eggs", "Eggs"),
    Allergen("fish", "Fish"),
    Allergen("shellfish", "Shellfish"),
    Allergen("tree_nuts", "Tree nuts"),
    Allergen("peanuts", "Peanuts"),
    Allergen("wheat", "Wheat"),
    Allergen("soybeans", "Soybeans"),
    Allergen("sesame", "Sesame"),
)


@dataclass(frozen=True, slots=True)
class DishSafetyRecommendation:
    dish_name: str
    safety_rank: int  # 1 = safest, larger = less safe
    warnings: Tuple[str, ...] = ()
    required_modifications: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dish_name": self.dish_name,
            "safety_rank": self.safety_rank,
            "warnings": list(self.warnings),
            "required_modifications": list(self.required_modifications),
        }


@dataclass(frozen=True, slots=True)
class SafeDishesResult:
    analyzed_at: str
    processed_allergen_ids: Tuple[str, ...]
    recommendations: Tuple[DishSafetyRecommendation, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "analyzed_at": self.analyzed_at,
            "processed_allergen_ids": list(self.processed_allergen_ids),
            "recommendations": [r.to_dict() for r in self.recommendations],
        }


__all__ = [
    "RawTextBlock",
    "ExtractedText",
    "Position",
    "Price",
    "MenuItem",
    "MenuSection",
    "AllergenAlert",
    "ConfidenceScores",
    "ProcessedMenuData",
    "Allergen",
    "BIG_NINE_ALLERGENS",
    "DishSafetyRecommendation",
    "SafeDishesResult",
]
