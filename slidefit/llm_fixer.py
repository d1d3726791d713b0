"""OpenAI-compatible external fixer for the autofix loop.

The model only proposes ``FixAction`` records; ``apply_fix_actions`` applies
them. Nothing the model returns is executed or trusted beyond the action
schema.
"""

from __future__ import annotations

import json
import os
from typing import Any, Dict, List, Optional

import requests

from .compile import CompileResult
from .fix_actions import ACTION_TYPES, FixAction, actions_from_payload
from .models import DeckSpec
from .spec_loader import slide_to_dict

OPENAI_API_BASE = os.getenv("OPENAI_API_BASE", "https://api.openai.com/v1")
DEFAULT_MODEL = "gpt-5.1-mini"
USER_AGENT = "slidefit/0.1"

SYSTEM_PROMPT = "You are an automated slide-spec fixer. Return JSON only, matching the requested shape."


def build_prompt(spec: DeckSpec, result: CompileResult) -> Dict[str, Any]:
    interesting = sorted(
        {v.slide_index for v in result.validations}
        | {f.slide_index for f in result.quality.findings if f.slide_index is not None}
    )
    layouts = {
        name: [{"name": p.name, "type": p.type, "w": p.width, "h": p.height} for p in layout.placeholders]
        for name, layout in spec.master.layouts.items()
    }
    return {
        "goal": f"Make the deck pass the quality gate (profile={result.quality.profile}).",
        "allowed_actions": {
            "split_placeholder": "split a placeholder value across two slides (bullet/table/code/text/diagram)",
            "shorten_text": "shorten a plain string placeholder (ratio in (0,1) and/or max_chars)",
            "set_text": "replace a placeholder with the given text",
            "delete_slide": "delete a slide",
        },
        "failing_reasons": result.quality.failing_reasons,
        "validations": [
            {
                "slide_index": v.slide_index,
                "placeholder": v.placeholder,
                "severity": v.severity,
                "category": v.category,
                "message": v.message,
            }
            for v in result.validations
            if v.severity != "info"
        ][:80],
        "quality_findings": [
            {"slide_index": f.slide_index, "placeholder": f.placeholder, "severity": f.severity, "code": f.code}
            for f in result.quality.findings
        ][:80],
        "layouts": layouts,
        "slides": [
            {"slide_index": i, "slide": slide_to_dict(spec.slides[i])}
            for i in interesting[:10]
            if 0 <= i < len(spec.slides)
        ],
        "output": {
            "actions": [
                {
                    "type": "|".join(ACTION_TYPES),
                    "slide_index": 0,
                    "placeholder": "body",
                    "ratio": 0.8,
                    "max_chars": 200,
                    "text": "...",
                }
            ]
        },
    }


class OpenAIFixer:
    """Callable external fixer backed by a ``/chat/completions`` endpoint."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        max_actions: int = 8,
        api_base: str = OPENAI_API_BASE,
        timeout: float = 60.0,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key or os.getenv("OPENAI_API_KEY", "")
        self.model = model or os.getenv("OPENAI_MODEL", DEFAULT_MODEL)
        self.max_actions = max_actions
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": USER_AGENT})

    def __call__(self, spec: DeckSpec, result: CompileResult) -> List[FixAction]:
        if not self.api_key:
            raise RuntimeError("OPENAI_API_KEY is not set")
        payload = {
            "model": self.model,
            "temperature": 0,
            "response_format": {"type": "json_object"},
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": json.dumps(build_prompt(spec, result), ensure_ascii=False)},
            ],
        }
        headers = {"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"}
        resp = self.session.post(
            f"{self.api_base}/chat/completions",
            headers=headers,
            json=payload,
            timeout=self.timeout,
        )
        resp.raise_for_status()
        data = resp.json()
        content = data.get("choices", [{}])[0].get("message", {}).get("content", "") or ""
        return parse_actions(content, self.max_actions)


def parse_actions(content: str, limit: int = 8) -> List[FixAction]:
    """Parse a model reply; anything that is not an ``{"actions": [...]}`` object yields no actions."""
    try:
        parsed = json.loads(content)
    except json.JSONDecodeError:
        return []
    if not isinstance(parsed, dict):
        return []
    return actions_from_payload(parsed, limit)
