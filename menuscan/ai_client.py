# menuscan/ai_client.py
"""
Claude API client plumbing shared by the menu structurer and dish ranker.

Usage:
    from menuscan.ai_client import send_prompt, parse_json_reply

    text = send_prompt(system_prompt, user_prompt, image=(jpeg_bytes, "image/jpeg"))
    data = parse_json_reply(text)

Requires ANTHROPIC_API_KEY in environment (loaded via .env).
"""

from __future__ import annotations

import base64
import json
import logging
import re
import threading
from typing import Any, Dict, List, Optional, Tuple

import anthropic

from menuscan.config import Settings, load_settings
from menuscan.errors import MalformedResponse, ServiceUnavailable

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Client (lazy init)
# ---------------------------------------------------------------------------
_client: Optional[anthropic.Anthropic] = None
_client_key: Optional[str] = None
_client_lock = threading.Lock()


def get_client(settings: Optional[Settings] = None) -> anthropic.Anthropic:
    """
    Lazy-init Anthropic client, shared across worker threads and rebuilt if
    the API key changes. Raises ServiceUnavailable if no API key.
    """
    global _client, _client_key
    settings = settings or load_settings()
    key = settings.anthropic_api_key
    if not key:
        raise ServiceUnavailable("ANTHROPIC_API_KEY is not configured")
    with _client_lock:
        if _client is None or _client_key != key:
            _client = anthropic.Anthropic(api_key=key)
            _client_key = key
        return _client


def reset_client() -> None:
    global _client, _client_key
    with _client_lock:
        _client = None
        _client_key = None


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------
def _user_content(text: str, image: Optional[Tuple[bytes, str]]) -> List[Dict[str, Any]]:
    content: List[Dict[str, Any]] = []
    if image is not None:
        data, media_type = image
        content.append({
            "type": "image",
            "source": {
                "type": "base64",
                "media_type": media_type,
                "data": base64.b64encode(data).decode("ascii"),
            },
        })
    content.append({"type": "text", "text": text})
    return content


def send_prompt(
    system: str,
    user: str,
    *,
    image: Optional[Tuple[bytes, str]] = None,
    client: Optional[anthropic.Anthropic] = None,
    settings: Optional[Settings] = None,
) -> str:
    """Send one message and return the concatenated text of the reply."""
    settings = settings or load_settings()
    client = client or get_client(settings)

    try:
        message = client.messages.create(
            model=settings.model,
            max_tokens=settings.max_tokens,
            system=system,
            messages=[{"role": "user", "content": _user_content(user, image)}],
        )
    except anthropic.APIError as e:
        log.warning("Claude API call failed: %s", e)
        raise ServiceUnavailable(f"Claude API call failed: {e}") from e

    resp_text = ""
    for block in message.content:
        if hasattr(block, "text"):
            resp_text += block.text
    return resp_text


# ---------------------------------------------------------------------------
# Replies
# ---------------------------------------------------------------------------
_FENCE_OPEN_RE = re.compile(r"^```(?:json)?\s*\n?")
_FENCE_CLOSE_RE = re.compile(r"\n?```\s*$")


def parse_json_reply(text: str) -> Dict[str, Any]:
    """Parse a JSON object reply, tolerating Markdown code fences."""
    json_str = (text or "").strip()
    if not json_str:
        raise MalformedResponse("empty reply")
    if json_str.startswith("```"):
        json_str = _FENCE_OPEN_RE.sub("", json_str)
        json_str = _FENCE_CLOSE_RE.sub("", json_str)
    try:
        data = json.loads(json_str)
    except json.JSONDecodeError as e:
        raise MalformedResponse(f"reply is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise MalformedResponse("reply is not a JSON object")
    return data


def truncate_for_prompt(text: str, max_chars: int) -> str:
    # ~4 chars per token, leave room for system prompt + response
    text = text.strip()
    if len(text) > max_chars:
        return text[:max_chars] + "\n[... truncated ...]"
    return text
