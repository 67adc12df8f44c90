# menuscan/safety_reconciler.py
"""
Allergen Safety Reconciler — Big-9 allergen selection + ranked dish output.

Ranking itself is delegated to a DishRankingService. This module parses the
diner's allergen selection, validates the request, coerces the ranker's
reply into DishSafetyRecommendation values, tags which allergen ids were
evaluated, and orders recommendations safest-first (stable on ties).

Public API:
- get_allergen_by_id(id) -> Allergen | None
- parse_allergens(raw) -> list[Allergen]
- recommendations_from_payload(payload) -> list[DishSafetyRecommendation]
- reconcile(recommendations, allergens) -> SafeDishesResult
- generate_safe_dishes(image_bytes, allergens, ranker) -> SafeDishesResult
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence

from menuscan.errors import EmptyAllergenSelection, MalformedResponse, NoFileProvided
from menuscan.menu_types import (
    BIG_NINE_ALLERGENS,
    Allergen,
    DishSafetyRecommendation,
    SafeDishesResult,
)

log = logging.getLogger(__name__)

_BY_ID: Dict[str, Allergen] = {a.id: a for a in BIG_NINE_ALLERGENS}


class DishRankingService(Protocol):
    def rank(self, image_bytes: bytes, allergens: Sequence[Allergen]) -> List[DishSafetyRecommendation]: ...


# ---------------------------------------------------------------------------
# Allergen selection
# ---------------------------------------------------------------------------

def get_allergen_by_id(allergen_id: Any) -> Optional[Allergen]:
    if allergen_id is None:
        return None
    return _BY_ID.get(str(allergen_id).strip().lower())


def parse_allergens(raw: Any) -> List[Allergen]:
    """
    Resolve allergen ids given as a JSON array string, a comma-separated
    string, or a native list. Unknown ids are dropped; never raises.
    """
    if not raw:
        return []

    ids: Iterable[Any]
    if isinstance(raw, str):
        text = raw.strip()
        if text.startswith("["):
            try:
                decoded = json.loads(text)
            except json.JSONDecodeError:
                return []
            if not isinstance(decoded, list):
                return []
            ids = decoded
        else:
            ids = text.split(",")
    elif isinstance(raw, (list, tuple)):
        ids = raw
    else:
        return []

    out: List[Allergen] = []
    for allergen_id in ids:
        a = allergen_id if isinstance(allergen_id, Allergen) else get_allergen_by_id(allergen_id)
        if a is not None and a not in out:
            out.append(a)
    return out


# ---------------------------------------------------------------------------
# Ranker replies
# ---------------------------------------------------------------------------

def _string_list(value: Any, field_name: str) -> List[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise MalformedResponse(f"'{field_name}' must be a list")
    return [str(v).strip() for v in value if str(v).strip()]


def _recommendation(raw: Any) -> DishSafetyRecommendation:
    if not isinstance(raw, dict):
        raise MalformedResponse("recommendation is not an object")
    name = str(raw.get("dishName") or raw.get("dish_name") or "").strip()
    if not name:
        raise MalformedResponse("recommendation missing 'dishName'")

    rank = raw.get("safetyRank", raw.get("safety_rank"))
    if isinstance(rank, bool):
        raise MalformedResponse(f"invalid safetyRank for {name!r}")
    try:
        rank_int = int(rank)
    except (TypeError, ValueError) as e:
        raise MalformedResponse(f"invalid safetyRank for {name!r}") from e

    return DishSafetyRecommendation(
        dish_name=name,
        safety_rank=max(1, rank_int),
        warnings=tuple(_string_list(raw.get("warnings"), "warnings")),
        required_modifications=tuple(_string_list(
            raw.get("requiredModifications", raw.get("required_modifications")),
            "requiredModifications",
        )),
    )


def recommendations_from_payload(payload: Any) -> List[DishSafetyRecommendation]:
    if not isinstance(payload, dict):
        raise MalformedResponse("reply is not a JSON object")
    recs = payload.get("recommendations")
    if recs is None:
        return []
    if not isinstance(recs, list):
        raise MalformedResponse("'recommendations' must be a list")
    return [_recommendation(r) for r in recs]


# ---------------------------------------------------------------------------
# Reconcile
# ---------------------------------------------------------------------------

def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def reconcile(
    recommendations: Iterable[DishSafetyRecommendation],
    allergens: Sequence[Allergen],
) -> SafeDishesResult:
    # sorted() is stable: equal ranks keep ranker order
    ordered = sorted(recommendations, key=lambda r: r.safety_rank)
    ids: List[str] = []
    for a in allergens:
        if a.id not in ids:
            ids.append(a.id)
    return SafeDishesResult(
        analyzed_at=_now_iso(),
        processed_allergen_ids=tuple(ids),
        recommendations=tuple(ordered),
    )


def generate_safe_dishes(
    image_bytes: Optional[bytes],
    allergens: Any,
    ranker: DishRankingService,
) -> SafeDishesResult:
    """
    Validate the request, ask the ranker, and reconcile its answer.

    Raises NoFileProvided / EmptyAllergenSelection for bad requests and lets
    ServiceUnavailable propagate. A malformed ranker reply is logged and
    treated as zero recommendations.
    """
    if not image_bytes:
        raise NoFileProvided("No file uploaded. Please provide a menu image or PDF.")
    selected = parse_allergens(allergens)
    if not selected:
        raise EmptyAllergenSelection("At least one allergen must be provided.")

    try:
        recommendations = ranker.rank(image_bytes, selected)
    except MalformedResponse as e:
        log.warning("Dish ranking reply unusable, returning no recommendations: %s", e)
        recommendations = []

    result = reconcile(recommendations, selected)
    log.info(
        "Ranked %d dishes for allergens %s",
        len(result.recommendations), ",".join(result.processed_allergen_ids),
    )
    return result
