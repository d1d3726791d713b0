"""Structured fix actions and the content-splitting helpers they share.

External fixers (for example an LLM) propose ``FixAction`` records; this
module applies them deterministically to a deck spec in place.
"""

from __future__ import annotations

import copy
import dataclasses
import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .diagram_splitter import split_flowchart
from .models import (
    BulletList,
    CodeContent,
    DeckSpec,
    DiagramContent,
    PlaceholderValue,
    SlideSpec,
    TableContent,
    plain_text,
)

ACTION_TYPES = ("split_placeholder", "shorten_text", "set_text", "delete_slide")

CONTINUED_RE = re.compile(r"\((continued|cont\.)\)|続き")
PARAGRAPH_BREAK_RE = re.compile(r"\n\s*\n")


@dataclass
class FixAction:
    type: str
    slide_index: int
    placeholder: Optional[str] = None
    ratio: Optional[float] = None
    max_chars: Optional[int] = None
    text: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: Any) -> Optional["FixAction"]:
        """Build an action from loosely typed JSON; None when it is malformed."""
        if not isinstance(raw, dict):
            return None
        kind = raw.get("type")
        index = raw.get("slide_index", raw.get("slideIndex"))
        if kind not in ACTION_TYPES:
            return None
        if not isinstance(index, int) or isinstance(index, bool) or index < 0:
            return None
        if kind == "delete_slide":
            return cls(type=kind, slide_index=index)

        placeholder = raw.get("placeholder")
        if not isinstance(placeholder, str) or not placeholder:
            return None
        if kind == "split_placeholder":
            return cls(type=kind, slide_index=index, placeholder=placeholder)
        if kind == "set_text":
            text = raw.get("text")
            if not isinstance(text, str):
                return None
            return cls(type=kind, slide_index=index, placeholder=placeholder, text=text)

        ratio = raw.get("ratio")
        max_chars = raw.get("max_chars", raw.get("maxChars"))
        return cls(
            type=kind,
            slide_index=index,
            placeholder=placeholder,
            ratio=float(ratio) if isinstance(ratio, (int, float)) and not isinstance(ratio, bool) else None,
            max_chars=max_chars if isinstance(max_chars, int) and not isinstance(max_chars, bool) else None,
        )

    def describe(self) -> str:
        if self.type == "delete_slide":
            return f"{self.type}: slide={self.slide_index}"
        return f"{self.type}: slide={self.slide_index} placeholder={self.placeholder}"


@dataclass
class ApplyResult:
    changed: bool = False
    applied: List[str] = field(default_factory=list)
    skipped: List[Tuple[FixAction, str]] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Splitting helpers
# ---------------------------------------------------------------------------


def mark_continued(slide: SlideSpec) -> None:
    title = slide.data.get("title")
    if isinstance(title, str) and not CONTINUED_RE.search(title):
        slide.data["title"] = f"{title} (continued)"


def _halves(seq: Sequence[Any]) -> Optional[Tuple[list, list]]:
    if len(seq) <= 1:
        return None
    mid = math.ceil(len(seq) / 2)
    return list(seq[:mid]), list(seq[mid:])


def split_structured(value: PlaceholderValue) -> Optional[Tuple[PlaceholderValue, PlaceholderValue]]:
    """Halve a bullet list (items), table (rows) or code block (lines)."""
    if isinstance(value, BulletList):
        halves = _halves(value.items)
        if halves is None:
            return None
        return dataclasses.replace(value, items=halves[0]), dataclasses.replace(value, items=halves[1])
    if isinstance(value, TableContent):
        halves = _halves(value.rows)
        if halves is None:
            return None
        return dataclasses.replace(value, rows=halves[0]), dataclasses.replace(value, rows=halves[1])
    if isinstance(value, CodeContent):
        halves = _halves(value.code.split("\n"))
        if halves is None:
            return None
        return (
            dataclasses.replace(value, code="\n".join(halves[0])),
            dataclasses.replace(value, code="\n".join(halves[1])),
        )
    return None


def split_paragraphs(text: str) -> Optional[Tuple[str, str]]:
    paragraphs = [p for p in PARAGRAPH_BREAK_RE.split(text) if p.strip()]
    halves = _halves(paragraphs)
    if halves is None:
        return None
    return "\n\n".join(halves[0]), "\n\n".join(halves[1])


def split_diagram(value: DiagramContent) -> Optional[Tuple[DiagramContent, DiagramContent]]:
    parts = split_flowchart(value.code)
    if parts is None:
        return None
    # Hints describe the unsplit diagram; the halves need fresh ones.
    return DiagramContent(code=parts[0]), DiagramContent(code=parts[1])


def insert_continuation(
    spec: DeckSpec,
    slide_index: int,
    placeholder: str,
    first: PlaceholderValue,
    second: PlaceholderValue,
) -> None:
    """Keep ``first`` on the slide and put ``second`` on a copy right after it."""
    slide = spec.slides[slide_index]
    slide.data[placeholder] = first
    follow = copy.deepcopy(slide)
    follow.data[placeholder] = second
    mark_continued(follow)
    spec.slides.insert(slide_index + 1, follow)


def split_placeholder(spec: DeckSpec, slide_index: int, placeholder: str, last_resort: bool = True) -> bool:
    if not 0 <= slide_index < len(spec.slides):
        return False
    value = spec.slides[slide_index].data.get(placeholder)
    if value is None:
        return False

    halves = split_structured(value)
    if halves is None and isinstance(value, DiagramContent):
        halves = split_diagram(value)
    if halves is None:
        text = plain_text(value)
        if not text:
            return False
        halves = split_paragraphs(text)
        if halves is None and last_resort:
            half = math.ceil(len(text) / 2)
            if 0 < half < len(text):
                halves = text[:half], text[half:]
    if halves is None:
        return False

    insert_continuation(spec, slide_index, placeholder, halves[0], halves[1])
    return True


# ---------------------------------------------------------------------------
# Action application
# ---------------------------------------------------------------------------


def apply_fix_actions(spec: DeckSpec, actions: Sequence[FixAction]) -> ApplyResult:
    """Apply actions in place, highest slide index first."""
    result = ApplyResult()

    for action in sorted(actions, key=lambda a: a.slide_index, reverse=True):
        if not 0 <= action.slide_index < len(spec.slides):
            result.skipped.append((action, "slide not found"))
            continue
        slide = spec.slides[action.slide_index]

        if action.type == "delete_slide":
            del spec.slides[action.slide_index]
        elif action.type == "set_text":
            slide.data[action.placeholder] = action.text or ""
        elif action.type == "shorten_text":
            reason = _shorten(slide, action)
            if reason:
                result.skipped.append((action, reason))
                continue
        elif action.type == "split_placeholder":
            if not split_placeholder(spec, action.slide_index, action.placeholder):
                result.skipped.append((action, "cannot split placeholder value"))
                continue
        else:
            result.skipped.append((action, "unknown action type"))
            continue

        result.applied.append(action.describe())
        result.changed = True

    return result


def _shorten(slide: SlideSpec, action: FixAction) -> Optional[str]:
    value = slide.data.get(action.placeholder)
    if not isinstance(value, str):
        return "placeholder is not a string"
    shortened = value
    if action.max_chars is not None:
        shortened = shortened[: max(0, action.max_chars)]
    if action.ratio is not None and 0 < action.ratio < 1:
        shortened = shortened[: math.floor(len(shortened) * action.ratio)]
    if len(shortened) >= len(value):
        return "no shortening applied"
    slide.data[action.placeholder] = shortened
    return None


def actions_from_payload(payload: Dict[str, Any], limit: int = 8) -> List[FixAction]:
    actions: List[FixAction] = []
    for raw in payload.get("actions") or []:
        action = FixAction.from_dict(raw)
        if action is not None:
            actions.append(action)
        if len(actions) >= limit:
            break
    return actions
