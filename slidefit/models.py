"""Deck spec data model: theme, master layouts, placeholders and content values."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

PLACEHOLDER_TYPES = ("title", "subtitle", "body", "image", "custom")
OVERFLOW_STRATEGIES = ("shrink", "error", "warn", "truncate")
ASPECT_RATIOS = ("16:9", "4:3")

# Slide sizes in inches per aspect ratio.
SLIDE_SIZES = {
    "16:9": (13.333, 7.5),
    "4:3": (10.0, 7.5),
}

DEFAULT_PADDING_IN = 0.05
DEFAULT_LINE_SPACING = 1.2
DEFAULT_MIN_FONT_SIZE = 8.0


# ---------------------------------------------------------------------------
# Theme
# ---------------------------------------------------------------------------


@dataclass
class ColorPalette:
    primary: str = "#000000"
    secondary: str = "#666666"
    background: str = "#FFFFFF"
    text: str = "#333333"
    accent: Optional[str] = None
    muted: Optional[str] = None


@dataclass
class FontSet:
    heading: str = "Arial"
    body: str = "Arial"
    mono: Optional[str] = None


@dataclass
class FontPaths:
    """Font files used for glyph measurement, keyed by role and weight."""

    heading: Optional[str] = None
    heading_bold: Optional[str] = None
    body: Optional[str] = None
    body_bold: Optional[str] = None
    mono: Optional[str] = None
    mono_bold: Optional[str] = None

    def for_role(self, role: str, *, bold: bool) -> Optional[str]:
        regular = getattr(self, role, None)
        if bold:
            return getattr(self, f"{role}_bold", None) or regular
        return regular


@dataclass
class Theme:
    name: str = "default"
    colors: ColorPalette = field(default_factory=ColorPalette)
    fonts: FontSet = field(default_factory=FontSet)
    font_paths: Optional[FontPaths] = None


# ---------------------------------------------------------------------------
# Master / layouts / placeholders
# ---------------------------------------------------------------------------


@dataclass
class Padding:
    top: float = DEFAULT_PADDING_IN
    right: float = DEFAULT_PADDING_IN
    bottom: float = DEFAULT_PADDING_IN
    left: float = DEFAULT_PADDING_IN


@dataclass
class PlaceholderStyle:
    font_size: Optional[float] = None
    font_face: Optional[str] = None
    color: Optional[str] = None
    bold: Optional[bool] = None
    italic: Optional[bool] = None
    align: Optional[str] = None
    valign: Optional[str] = None
    line_spacing: Optional[float] = None
    mono_font: Optional[str] = None
    code_bg_color: Optional[str] = None
    padding: Optional[Padding] = None


@dataclass
class PlaceholderConstraints:
    overflow: Optional[str] = None
    min_font_size: Optional[float] = None
    max_font_size: Optional[float] = None
    max_lines: Optional[int] = None
    required: bool = False


@dataclass
class PlaceholderDef:
    name: str
    type: str
    x: float
    y: float
    width: float
    height: float
    style: PlaceholderStyle = field(default_factory=PlaceholderStyle)
    constraints: PlaceholderConstraints = field(default_factory=PlaceholderConstraints)

    @property
    def area(self) -> float:
        return self.width * self.height

    def effective_size(self) -> tuple[float, float]:
        """Width and height available for content once padding is removed."""
        pad = self.style.padding or Padding()
        return (
            self.width - pad.left - pad.right,
            self.height - pad.top - pad.bottom,
        )


@dataclass
class Background:
    type: str = "solid"
    color: Optional[str] = None
    path: Optional[str] = None
    colors: List[str] = field(default_factory=list)
    direction: Optional[str] = None


@dataclass
class FixedElement:
    type: str
    x: float
    y: float
    width: float
    height: float
    path: Optional[str] = None
    color: Optional[str] = None
    line_width: Optional[float] = None


@dataclass
class SlideLayout:
    placeholders: List[PlaceholderDef] = field(default_factory=list)
    background: Optional[Background] = None
    fixed_elements: List[FixedElement] = field(default_factory=list)

    def placeholder(self, name: str) -> Optional[PlaceholderDef]:
        for ph in self.placeholders:
            if ph.name == name:
                return ph
        return None


@dataclass
class Margins:
    top: float = 0.5
    right: float = 0.75
    bottom: float = 0.5
    left: float = 0.75


@dataclass
class SlideMaster:
    name: str
    theme: Theme = field(default_factory=Theme)
    layouts: Dict[str, SlideLayout] = field(default_factory=dict)
    aspect_ratio: str = "16:9"
    margins: Optional[Margins] = None


# ---------------------------------------------------------------------------
# Content values
# ---------------------------------------------------------------------------


@dataclass
class TextStyle:
    bold: Optional[bool] = None
    italic: Optional[bool] = None
    color: Optional[str] = None
    font_size: Optional[float] = None


@dataclass
class TextRun:
    text: str
    style: Optional[TextStyle] = None


@dataclass
class TextContent:
    value: Union[str, List[TextRun]]
    type: str = field(default="text", init=False)


@dataclass
class BulletItem:
    text: str
    style: Optional[TextStyle] = None
    children: List["BulletItem"] = field(default_factory=list)


@dataclass
class BulletList:
    items: List[BulletItem]
    ordered: bool = False
    type: str = field(default="bullet", init=False)


@dataclass
class TableCell:
    text: str
    style: Optional[TextStyle] = None
    fill: Optional[str] = None
    col_span: Optional[int] = None
    row_span: Optional[int] = None


@dataclass
class TableContent:
    rows: List[List[Union[str, TableCell]]]
    headers: Optional[List[str]] = None
    type: str = field(default="table", init=False)

    @property
    def row_count(self) -> int:
        return len(self.rows) + (1 if self.headers else 0)


@dataclass
class CodeContent:
    code: str
    language: Optional[str] = None
    type: str = field(default="code", init=False)


@dataclass
class ImageContent:
    path: str
    alt: Optional[str] = None
    sizing: str = "contain"
    type: str = field(default="image", init=False)

    @property
    def is_remote(self) -> bool:
        lowered = self.path.strip().lower()
        return lowered.startswith(("http://", "https://", "data:"))


@dataclass
class DiagramHints:
    """Structural metadata reported by an external diagram renderer."""

    node_count: Optional[int] = None
    edge_count: Optional[int] = None
    viewbox_width: Optional[float] = None
    viewbox_height: Optional[float] = None
    base_font_px: Optional[float] = None
    estimated_min_font_pt: Optional[float] = None


@dataclass
class DiagramContent:
    code: str
    hints: Optional[DiagramHints] = None
    type: str = field(default="diagram", init=False)


PlaceholderValue = Union[
    str,
    TextContent,
    BulletList,
    TableContent,
    CodeContent,
    ImageContent,
    DiagramContent,
]


def content_kind(value: PlaceholderValue) -> str:
    if isinstance(value, str):
        return "text"
    return value.type


def plain_text(value: PlaceholderValue) -> str:
    """Flatten text-like values to a plain string; other kinds yield ''."""
    if isinstance(value, str):
        return value
    if isinstance(value, TextContent):
        if isinstance(value.value, str):
            return value.value
        return "".join(run.text for run in value.value)
    if isinstance(value, CodeContent):
        return value.code
    return ""


# ---------------------------------------------------------------------------
# Slides / deck
# ---------------------------------------------------------------------------


@dataclass
class SlideSpec:
    layout: str
    data: Dict[str, PlaceholderValue] = field(default_factory=dict)
    background: Optional[Background] = None
    notes: Optional[str] = None


@dataclass
class DeckSpec:
    master: SlideMaster
    slides: List[SlideSpec] = field(default_factory=list)
    aspect_ratio: Optional[str] = None


# ---------------------------------------------------------------------------
# Resolved elements
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ResolvedStyle:
    font_size: float
    font_face: str
    color: str
    bold: bool
    italic: bool
    align: str
    valign: str
    line_spacing: float


@dataclass(frozen=True)
class ResolvedElement:
    placeholder: PlaceholderDef
    value: PlaceholderValue
    style: ResolvedStyle
    computed_font_size: float


@dataclass(frozen=True)
class ResolvedSlide:
    index: int
    layout_name: str
    elements: tuple = ()
    background: Optional[Background] = None
    fixed_elements: tuple = ()
    notes: Optional[str] = None
