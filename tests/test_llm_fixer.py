from __future__ import annotations

import json

import pytest

from conftest import make_deck
from slidefit.compile import compile_deck
from slidefit.fix_actions import FixAction
from slidefit.llm_fixer import OpenAIFixer, build_prompt, parse_actions
from slidefit.models import SlideSpec


class FakeResponse:
    def __init__(self, payload):
        self.payload = payload

    def raise_for_status(self) -> None:
        return None

    def json(self):
        return self.payload


class FakeSession:
    def __init__(self, content: str):
        self.headers = {}
        self.content = content
        self.calls = []

    def post(self, url, headers=None, json=None, timeout=None):
        self.calls.append({"url": url, "headers": headers, "json": json, "timeout": timeout})
        return FakeResponse({"choices": [{"message": {"content": self.content}}]})


def _failing_deck():
    return make_deck([SlideSpec(layout="missing", data={"title": "x"})])


def test_parse_actions_tolerates_bad_replies() -> None:
    assert parse_actions("not json") == []
    assert parse_actions("[1, 2]") == []
    reply = json.dumps({"actions": [{"type": "delete_slide", "slide_index": 0}, {"type": "nope"}]})
    assert parse_actions(reply) == [FixAction(type="delete_slide", slide_index=0)]


def test_build_prompt_summarises_failures(fixed_fonts) -> None:
    deck = _failing_deck()
    prompt = build_prompt(deck, compile_deck(deck))
    assert prompt["failing_reasons"] == ["validation errors exist"]
    assert prompt["validations"][0]["category"] == "unknown-layout"
    assert prompt["slides"][0]["slide"]["layout"] == "missing"
    assert "content" in prompt["layouts"]


def test_fixer_posts_chat_completion(fixed_fonts, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("OPENAI_MODEL", raising=False)
    session = FakeSession(json.dumps({"actions": [{"type": "delete_slide", "slide_index": 0}]}))
    fixer = OpenAIFixer(api_key="sk-test", session=session, api_base="https://llm.example/v1/")
    deck = _failing_deck()

    actions = fixer(deck, compile_deck(deck))

    assert actions == [FixAction(type="delete_slide", slide_index=0)]
    call = session.calls[0]
    assert call["url"] == "https://llm.example/v1/chat/completions"
    assert call["headers"]["Authorization"] == "Bearer sk-test"
    assert call["json"]["model"] == "gpt-5.1-mini"
    assert call["json"]["response_format"] == {"type": "json_object"}
    assert session.headers["User-Agent"].startswith("slidefit/")


def test_fixer_without_key_raises(fixed_fonts, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    fixer = OpenAIFixer(session=FakeSession("{}"))
    deck = _failing_deck()
    with pytest.raises(RuntimeError, match="OPENAI_API_KEY"):
        fixer(deck, compile_deck(deck))
