"""
Confidence Scoring — structure-detection and overall menu confidence.

Structure detection blends up to three factors and is normalized by the
number of factors counted:
  - section split                   → 0.3 if more than one section, else 0
                                      (counted whenever ≥ 1 section)
  - share of items with a price     → × 0.4   (needs ≥ 1 item)
  - share of items with description → × 0.3   (needs ≥ 1 item)
Overall = mean(text quality, structure detection).
"""

from __future__ import annotations

from typing import Sequence

from menuscan.menu_types import ConfidenceScores, MenuSection

_W_MULTI_SECTION = 0.3
_W_PRICED = 0.4
_W_DESCRIBED = 0.3


def clamp01(value: float) -> float:
    try:
        v = float(value)
    except (TypeError, ValueError):
        return 0.0
    if v != v:  # NaN
        return 0.0
    return max(0.0, min(1.0, v))


def score_structure(sections: Sequence[MenuSection]) -> float:
    total = 0.0
    factors = 0

    if sections:
        # a lone section still counts as a factor, it just earns no bonus
        if len(sections) > 1:
            total += _W_MULTI_SECTION
        factors += 1

    items = [it for sec in sections for it in sec.items]
    if items:
        priced = sum(1 for it in items if it.price is not None)
        described = sum(1 for it in items if it.description)
        total += (priced / len(items)) * _W_PRICED
        total += (described / len(items)) * _W_DESCRIBED
        factors += 2

    if factors == 0:
        return 0.0
    return clamp01(total / factors)


def score_confidence(sections: Sequence[MenuSection], text_quality: float) -> ConfidenceScores:
    text_q = clamp01(text_quality)
    structure = score_structure(sections)
    return ConfidenceScores(
        overall=clamp01((text_q + structure) / 2),
        text_quality=text_q,
        structure_detection=structure,
    )
