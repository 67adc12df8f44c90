"""
Claude-backed collaborators (menu structurer + dish ranker) against a fake
messages client. No network access.
"""

import base64
import json
import sys
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from types import SimpleNamespace

sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest

import menuscan.ai_client as ai_client
from menuscan.ai_client import get_client, parse_json_reply, reset_client, send_prompt, truncate_for_prompt
from menuscan.ai_menu_extract import ClaudeMenuStructurer, sections_from_payload
from menuscan.config import Settings
from menuscan.dish_ranking import ClaudeDishRanker, build_prompt
from menuscan.errors import MalformedResponse, ServiceUnavailable
from menuscan.safety_reconciler import parse_allergens


class _FakeMessages:
    def __init__(self, reply):
        self.reply = reply
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        return SimpleNamespace(content=[SimpleNamespace(text=self.reply)])


def _client(reply):
    return SimpleNamespace(messages=_FakeMessages(reply))


MENU_REPLY = json.dumps({"sections": [
    {"title": "Noodles", "items": [
        {"name": "Pad Thai", "description": "Rice noodles, peanuts", "price": 14.5,
         "currency": "usd", "ingredients": ["Rice noodles", "peanuts", "sesame oil"]},
        {"name": "", "price": 3},
    ]},
    {"title": "Empty", "items": []},
    {"title": "", "items": [{"name": "Spring Rolls", "price": None}]},
]})


class TestReplyParsing:
    def test_plain_json(self):
        assert parse_json_reply('{"a": 1}') == {"a": 1}

    def test_fenced_json(self):
        assert parse_json_reply('```json\n{"a": 1}\n```') == {"a": 1}
        assert parse_json_reply('```\n{"a": 2}\n```') == {"a": 2}

    @pytest.mark.parametrize("text", ["", "   ", "not json", "[1, 2]", "```json\n[\n```"])
    def test_malformed(self, text):
        with pytest.raises(MalformedResponse):
            parse_json_reply(text)

    def test_truncate(self):
        assert truncate_for_prompt("  short  ", 100) == "short"
        assert truncate_for_prompt("abcdef", 3).startswith("abc\n[")


class TestClient:
    def test_missing_key_is_service_unavailable(self):
        reset_client()
        with pytest.raises(ServiceUnavailable):
            get_client(Settings())

    def test_client_shared_across_threads(self, monkeypatch):
        built = []

        def fake_anthropic(api_key):
            time.sleep(0.05)
            built.append(api_key)
            return SimpleNamespace(api_key=api_key)

        monkeypatch.setattr(ai_client.anthropic, "Anthropic", fake_anthropic)
        reset_client()
        settings = Settings(anthropic_api_key="key-1")
        with ThreadPoolExecutor(max_workers=8) as pool:
            clients = list(pool.map(lambda _: get_client(settings), range(8)))
        reset_client()

        assert built == ["key-1"]
        assert all(c is clients[0] for c in clients)

    def test_client_rebuilt_for_new_key(self, monkeypatch):
        monkeypatch.setattr(ai_client.anthropic, "Anthropic", lambda api_key: SimpleNamespace(api_key=api_key))
        reset_client()
        first = get_client(Settings(anthropic_api_key="key-1"))
        assert get_client(Settings(anthropic_api_key="key-1")) is first
        second = get_client(Settings(anthropic_api_key="key-2"))
        reset_client()

        assert second.api_key == "key-2"
        assert second is not first

    def test_send_prompt_uses_settings(self):
        client = _client("hello")
        settings = Settings(model="test-model", max_tokens=123)
        assert send_prompt("sys", "user", client=client, settings=settings) == "hello"
        call = client.messages.calls[0]
        assert call["model"] == "test-model"
        assert call["max_tokens"] == 123
        assert call["system"] == "sys"
        assert call["messages"][0]["content"] == [{"type": "text", "text": "user"}]


class TestMenuStructurer:
    def test_maps_reply(self):
        structurer = ClaudeMenuStructurer(settings=Settings(), client=_client(MENU_REPLY))
        sections = structurer.structure("Pad Thai 14.50\nSpring Rolls")
        assert [s.title for s in sections] == ["Noodles", "Menu Items"]

        pad_thai = sections[0].items[0]
        assert len(sections[0].items) == 1
        assert pad_thai.price.value == 14.5
        assert pad_thai.price.currency == "USD"
        assert pad_thai.ingredients == ("rice noodles", "peanuts", "sesame oil")
        assert pad_thai.allergen_warnings == ("peanuts", "sesame")

        rolls = sections[1].items[0]
        assert rolls.price is None
        assert rolls.allergen_warnings == ()

    def test_blank_text_skips_call(self):
        client = _client(MENU_REPLY)
        assert ClaudeMenuStructurer(settings=Settings(), client=client).structure("  \n") == []
        assert client.messages.calls == []

    def test_bad_reply(self):
        structurer = ClaudeMenuStructurer(settings=Settings(), client=_client("sorry, no"))
        with pytest.raises(MalformedResponse):
            structurer.structure("Soup $4")

    def test_missing_sections(self):
        with pytest.raises(MalformedResponse):
            sections_from_payload({"items": []})

    def test_negative_price_dropped(self):
        sections = sections_from_payload({"sections": [{"title": "X", "items": [{"name": "Odd", "price": -2}]}]})
        assert sections[0].items[0].price is None


class TestDishRanker:
    def test_prompt_lists_allergens(self):
        prompt = build_prompt(parse_allergens("tree_nuts,milk"))
        assert "tree nuts, milk" in prompt

    def test_rank_sends_image(self):
        reply = '```json\n{"recommendations": [{"dishName": "Rice", "safetyRank": 1}]}\n```'
        client = _client(reply)
        ranker = ClaudeDishRanker(settings=Settings(), client=client, media_type="image/png")
        recs = ranker.rank(b"\x89PNG", parse_allergens("peanuts"))

        assert [r.dish_name for r in recs] == ["Rice"]
        content = client.messages.calls[0]["messages"][0]["content"]
        assert content[0]["type"] == "image"
        assert content[0]["source"]["media_type"] == "image/png"
        assert base64.b64decode(content[0]["source"]["data"]) == b"\x89PNG"
        assert "peanuts" in content[1]["text"]
