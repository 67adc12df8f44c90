# menuscan/dish_ranking.py
"""
Claude Dish Ranking — asks Claude to rank the dishes on a menu image by
safety for a diner's allergen selection.

Raises ServiceUnavailable when the API is not configured or fails, and
MalformedResponse when the reply is not the expected JSON.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional, Sequence

from menuscan.ai_client import parse_json_reply, send_prompt
from menuscan.config import Settings, load_settings
from menuscan.menu_types import Allergen, DishSafetyRecommendation
from menuscan.safety_reconciler import recommendations_from_payload

log = logging.getLogger(__name__)

_SYSTEM_PROMPT = "You are an expert food safety assistant. Respond with valid JSON only."

_USER_PROMPT_TEMPLATE = """\
The diner is allergic to the following: {allergen_list}.

Analyze the attached restaurant menu image and produce a JSON object EXACTLY in the following format (no extra keys):
{{
  "recommendations": [
    {{
      "dishName": string,
      "safetyRank": number,
      "warnings": string[],
      "requiredModifications": string[]
    }}
  ]
}}

Rules:
1. Include every dish you can identify. If you are unsure, exclude.
2. Sort recommendations by safest first; safetyRank 1 = safest, increasing numbers less safe.
3. If a dish definitely contains an allergen, set safetyRank high and explain in warnings.
4. If preparation modifications can remove allergen risk (e.g., remove cheese for a milk allergy), list them.
5. Respond with valid JSON only, no markdown, no extra text."""


def build_prompt(allergens: Sequence[Allergen]) -> str:
    allergen_list = ", ".join(a.name.lower() for a in allergens)
    return _USER_PROMPT_TEMPLATE.format(allergen_list=allergen_list)


class ClaudeDishRanker:
    """DishRankingService backed by the Claude messages API (vision)."""

    def __init__(
        self,
        *,
        settings: Optional[Settings] = None,
        client: Any = None,
        media_type: str = "image/jpeg",
    ):
        self.settings = settings or load_settings()
        self.client = client
        self.media_type = media_type

    def rank(self, image_bytes: bytes, allergens: Sequence[Allergen]) -> List[DishSafetyRecommendation]:
        reply = send_prompt(
            _SYSTEM_PROMPT,
            build_prompt(allergens),
            image=(image_bytes, self.media_type),
            client=self.client,
            settings=self.settings,
        )
        recs = recommendations_from_payload(parse_json_reply(reply))
        log.info("Claude ranked %d dishes", len(recs))
        return recs
