"""Font resolution, overflow detection and margin checks for resolved slides.

A ``LayoutEngine`` owns the font cache for one compile pipeline. Reuse it
across passes to keep parsed fonts warm, and close it (or use it as a
context manager) when the pipeline is done.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

from .errors import FontLoadError
from .findings import FONT_NOT_FOUND, MARGIN_OVERFLOW, Finding
from .models import (
    SLIDE_SIZES,
    CodeContent,
    Margins,
    ResolvedElement,
    ResolvedSlide,
    SlideMaster,
    content_kind,
)
from .overflow import OverflowDetector
from .text_measurer import FontCache, TextMeasurer

SYSTEM_FONT_CANDIDATES: Dict[str, List[str]] = {
    "regular": [
        # macOS
        "/System/Library/Fonts/Supplemental/Arial.ttf",
        "/Library/Fonts/Arial.ttf",
        # Linux
        "/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
        "/usr/share/fonts/liberation-sans/LiberationSans-Regular.ttf",
        "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
        "/usr/share/fonts/TTF/DejaVuSans.ttf",
        "/usr/share/fonts/truetype/noto/NotoSans-Regular.ttf",
        # Windows
        "C:/Windows/Fonts/arial.ttf",
        "/mnt/c/Windows/Fonts/arial.ttf",
    ],
    "bold": [
        "/System/Library/Fonts/Supplemental/Arial Bold.ttf",
        "/Library/Fonts/Arial Bold.ttf",
        "/usr/share/fonts/truetype/liberation/LiberationSans-Bold.ttf",
        "/usr/share/fonts/liberation-sans/LiberationSans-Bold.ttf",
        "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
        "/usr/share/fonts/TTF/DejaVuSans-Bold.ttf",
        "/usr/share/fonts/truetype/noto/NotoSans-Bold.ttf",
        "C:/Windows/Fonts/arialbd.ttf",
        "/mnt/c/Windows/Fonts/arialbd.ttf",
    ],
}

FONT_EXTENSIONS = (".ttf", ".otf", ".ttc")

# Slack for placeholder edges that sit exactly on a margin.
MARGIN_EPSILON = 1e-6

# Content kinds that carry no text to measure.
UNMEASURED_KINDS = ("image", "diagram")


@dataclass
class SlideValidation:
    findings: List[Finding] = field(default_factory=list)
    # placeholder name -> font size the element should render at
    font_sizes: Dict[str, float] = field(default_factory=dict)


class LayoutEngine:
    def __init__(
        self,
        font_dirs: Optional[Iterable[str]] = None,
        system_fonts: Optional[Dict[str, Sequence[str]]] = None,
    ):
        self.cache = FontCache()
        self.measurer = TextMeasurer(self.cache)
        self.detector = OverflowDetector(self.measurer)
        self.font_dirs = [Path(d).expanduser() for d in (font_dirs or [])]
        self.system_fonts = SYSTEM_FONT_CANDIDATES if system_fonts is None else system_fonts

    def __enter__(self) -> "LayoutEngine":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def clear_cache(self) -> None:
        self.cache.clear()

    def close(self) -> None:
        self.clear_cache()

    # -- fonts --------------------------------------------------------------

    def font_role(self, element: ResolvedElement, master: SlideMaster) -> str:
        fonts = master.theme.fonts
        if isinstance(element.value, CodeContent) or (fonts.mono and element.style.font_face == fonts.mono):
            return "mono"
        if element.placeholder.type in ("title", "subtitle"):
            return "heading"
        return "body"

    def resolve_font_path(self, element: ResolvedElement, master: SlideMaster) -> Optional[str]:
        bold = element.style.bold
        font_paths = master.theme.font_paths
        if font_paths is not None:
            themed = font_paths.for_role(self.font_role(element, master), bold=bold)
            if themed:
                return themed

        for directory in self.font_dirs:
            found = _find_in_dir(directory, element.style.font_face, bold)
            if found:
                return found

        for candidate in self.system_fonts.get("bold" if bold else "regular", []):
            if os.path.exists(candidate):
                return candidate
        if bold:
            # A regular face still measures bold text closely enough.
            for candidate in self.system_fonts.get("regular", []):
                if os.path.exists(candidate):
                    return candidate
        return None

    # -- validation ---------------------------------------------------------

    def validate_slide(
        self,
        slide: ResolvedSlide,
        master: SlideMaster,
        aspect_ratio: Optional[str] = None,
        margins: Optional[Margins] = None,
    ) -> SlideValidation:
        validation = SlideValidation()

        for element in slide.elements:
            name = element.placeholder.name
            validation.font_sizes[name] = element.computed_font_size
            validation.findings.extend(
                self.check_margins(element, slide.index, aspect_ratio or master.aspect_ratio, margins or master.margins)
            )

            if content_kind(element.value) in UNMEASURED_KINDS:
                continue

            font_path = self.resolve_font_path(element, master)
            if font_path is None:
                validation.findings.append(
                    Finding(
                        slide_index=slide.index,
                        placeholder=name,
                        severity="info",
                        category=FONT_NOT_FOUND,
                        message=f'Font file not found for "{element.style.font_face}". Skipping overflow detection.',
                        suggestion="Set theme font_paths or SLIDEFIT_FONT_DIR",
                    )
                )
                continue

            try:
                font = self.measurer.load_font(font_path)
                result = self.detector.detect(
                    element.placeholder,
                    element.value,
                    font,
                    slide.index,
                    element.style.font_size,
                    element.style.line_spacing,
                )
            except (FontLoadError, OSError, ValueError) as exc:
                if isinstance(exc, FontLoadError):
                    problem = f'Failed to load font "{font_path}": {exc.reason}'
                else:
                    problem = f'Failed to read metrics from font "{font_path}": {exc}'
                validation.findings.append(
                    Finding(
                        slide_index=slide.index,
                        placeholder=name,
                        severity="warning",
                        category=FONT_NOT_FOUND,
                        message=f"{problem}. Skipping overflow detection.",
                    )
                )
                continue

            validation.findings.extend(result.findings)
            validation.font_sizes[name] = result.computed_font_size

        return validation

    def check_margins(
        self,
        element: ResolvedElement,
        slide_index: int,
        aspect_ratio: str,
        margins: Optional[Margins] = None,
    ) -> List[Finding]:
        slide_w, slide_h = SLIDE_SIZES.get(aspect_ratio, SLIDE_SIZES["16:9"])
        m = margins or Margins()
        ph = element.placeholder
        right_edge = ph.x + ph.width
        bottom_edge = ph.y + ph.height

        violations = []
        if ph.x + MARGIN_EPSILON < m.left:
            violations.append(("left", f"x={ph.x:.2f}in is inside the left margin ({m.left:.2f}in)"))
        if right_edge - MARGIN_EPSILON > slide_w - m.right:
            violations.append(
                ("right", f"right edge {right_edge:.2f}in exceeds {slide_w - m.right:.2f}in (slide {slide_w:.3f}in)")
            )
        if ph.y + MARGIN_EPSILON < m.top:
            violations.append(("top", f"y={ph.y:.2f}in is inside the top margin ({m.top:.2f}in)"))
        if bottom_edge - MARGIN_EPSILON > slide_h - m.bottom:
            violations.append(
                ("bottom", f"bottom edge {bottom_edge:.2f}in exceeds {slide_h - m.bottom:.2f}in (slide {slide_h:.3f}in)")
            )

        return [
            Finding(
                slide_index=slide_index,
                placeholder=ph.name,
                severity="warning",
                category=MARGIN_OVERFLOW,
                message=f"Placeholder exceeds {side} margin: {detail}",
            )
            for side, detail in violations
        ]


def _find_in_dir(directory: Path, face: str, bold: bool) -> Optional[str]:
    if not directory.is_dir():
        return None
    stems = [f"{face} Bold", f"{face}-Bold", f"{face}bd"] if bold else []
    stems += [face, f"{face}-Regular", f"{face} Regular"]
    for stem in stems:
        for ext in FONT_EXTENSIONS:
            candidate = directory / f"{stem}{ext}"
            if candidate.is_file():
                return str(candidate)
    return None
