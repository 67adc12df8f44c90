# menuscan/config.py
"""
MenuScan configuration — heuristic constants + environment settings.

Heuristic constants are plain module-level values so the parsers, scorer and
matcher share one source of truth. Environment-driven settings (API keys,
Tesseract/Poppler paths, concurrency) are read once per load_settings() call,
after loading a project-level .env when python-dotenv finds one.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

ROOT = Path(__file__).resolve().parents[1]


# ---------------------------------------------------------------------------
# Heuristic defaults
# ---------------------------------------------------------------------------

DEFAULT_ITEM_CONFIDENCE = 0.8
DEFAULT_SECTION_CONFIDENCE = 0.8
FALLBACK_SECTION_CONFIDENCE = 0.6
FALLBACK_SECTION_TITLE = "Menu Items"

# PDF text layers are read verbatim, so they get a near-certain quality score
PDF_TEXT_CONFIDENCE = 0.95

ALERT_CONFIDENCE = 0.8
ALERT_CONTEXT_CHARS = 30

MAX_INGREDIENTS = 10
DEFAULT_CURRENCY = "USD"

# Approximate layout for text-derived items (no real geometry available)
LINE_HEIGHT = 20
LINE_WIDTH = 400


# ---------------------------------------------------------------------------
# Environment settings
# ---------------------------------------------------------------------------

DEFAULT_MODEL = "claude-sonnet-4-5-20250929"


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    anthropic_api_key: Optional[str] = None
    model: str = DEFAULT_MODEL
    max_tokens: int = 4000
    max_workers: int = 4
    max_chars: int = 30_000
    tesseract_cmd: Optional[str] = None
    tesseract_lang: str = "eng"
    tesseract_config: str = "--oem 1 --psm 6"
    poppler_path: Optional[str] = None


def load_settings(env_file: Optional[Path] = None) -> Settings:
    """Build Settings from the process environment (plus .env if present)."""
    load_dotenv(env_file or ROOT / ".env")
    return Settings(
        anthropic_api_key=(os.getenv("ANTHROPIC_API_KEY") or "").strip() or None,
        model=os.getenv("MENUSCAN_MODEL") or DEFAULT_MODEL,
        max_tokens=_env_int("MENUSCAN_MAX_TOKENS", 4000),
        max_workers=max(1, _env_int("MENUSCAN_MAX_WORKERS", 4)),
        max_chars=_env_int("MENUSCAN_MAX_CHARS", 30_000),
        tesseract_cmd=os.getenv("TESSERACT_CMD") or None,
        tesseract_lang=os.getenv("TESSERACT_LANG") or "eng",
        tesseract_config=os.getenv("TESSERACT_CONFIG") or "--oem 1 --psm 6",
        poppler_path=os.getenv("POPPLER_PATH") or None,
    )
