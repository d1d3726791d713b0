from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest
from PIL import ImageFont

from slidefit.models import (
    DeckSpec,
    FontPaths,
    PlaceholderConstraints,
    PlaceholderDef,
    SlideLayout,
    SlideMaster,
    SlideSpec,
    Theme,
)
from slidefit.text_measurer import GlyphFont


class FixedWidthFont:
    """Every glyph is one em wide and nothing kerns."""

    units_per_em = 1000
    path = "fixed-width"

    def advance(self, ch: str) -> float:
        return 1000.0

    def kerning(self, left: str, right: str) -> float:
        return 0.0


@pytest.fixture
def fixed_font() -> FixedWidthFont:
    return FixedWidthFont()


@pytest.fixture
def fixed_fonts(monkeypatch: pytest.MonkeyPatch) -> FixedWidthFont:
    """Route every font load through the fixed-width font."""
    font = FixedWidthFont()
    monkeypatch.setattr(GlyphFont, "from_path", classmethod(lambda cls, path: font))
    return font


@pytest.fixture
def font_file(tmp_path: Path) -> Path:
    """A real TrueType file: Pillow's bundled default font."""
    default = ImageFont.load_default(size=12)
    data = getattr(default, "font_bytes", None)
    if not data:
        pytest.skip("Pillow was built without FreeType")
    path = tmp_path / "DefaultSans.ttf"
    path.write_bytes(data)
    return path


def make_placeholder(
    name: str,
    type: str = "body",
    x: float = 0.75,
    y: float = 1.5,
    width: float = 11.8,
    height: float = 4.0,
    **constraints: Any,
) -> PlaceholderDef:
    return PlaceholderDef(
        name=name,
        type=type,
        x=x,
        y=y,
        width=width,
        height=height,
        constraints=PlaceholderConstraints(**constraints),
    )


def make_master(layouts: Optional[Dict[str, List[PlaceholderDef]]] = None, font_paths: bool = True) -> SlideMaster:
    if layouts is None:
        layouts = {
            "content": [
                make_placeholder("title", type="title", y=0.5, height=1.0),
                make_placeholder("body"),
            ]
        }
    theme = Theme(font_paths=FontPaths(heading="fixed.ttf", body="fixed.ttf", mono="fixed.ttf") if font_paths else None)
    return SlideMaster(
        name="test",
        theme=theme,
        layouts={name: SlideLayout(placeholders=phs) for name, phs in layouts.items()},
    )


def make_deck(slides: List[SlideSpec], master: Optional[SlideMaster] = None) -> DeckSpec:
    return DeckSpec(master=master or make_master(), slides=slides)


@pytest.fixture
def master() -> SlideMaster:
    return make_master()
