"""Resolve one slide of a deck spec against its master layout."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .findings import IMAGE_NOT_FOUND, MISSING_PLACEHOLDER, UNKNOWN_LAYOUT, UNKNOWN_PLACEHOLDER, Finding
from .models import (
    DEFAULT_LINE_SPACING,
    CodeContent,
    ImageContent,
    PlaceholderDef,
    ResolvedElement,
    ResolvedSlide,
    ResolvedStyle,
    SlideMaster,
    SlideSpec,
)

DEFAULT_STYLE: Dict[str, Any] = {
    "font_size": 18.0,
    "font_face": "Arial",
    "color": "#333333",
    "bold": False,
    "italic": False,
    "align": "left",
    "valign": "top",
    "line_spacing": DEFAULT_LINE_SPACING,
}

TYPE_DEFAULTS: Dict[str, Dict[str, Any]] = {
    "title": {"font_size": 32.0, "bold": True, "align": "left", "valign": "middle"},
    "subtitle": {"font_size": 20.0, "color": "#666666", "align": "left", "valign": "middle"},
    "body": {"font_size": 18.0, "align": "left", "valign": "top"},
    "image": {},
    "custom": {"font_size": 16.0},
}

HEADING_TYPES = ("title", "subtitle")
FALLBACK_MONO_FONT = "Courier New"

_STYLE_FIELDS = tuple(DEFAULT_STYLE)


def resolve_style(placeholder: PlaceholderDef, master: SlideMaster, value: Any = None) -> ResolvedStyle:
    theme = master.theme
    merged = dict(DEFAULT_STYLE)
    merged["font_face"] = theme.fonts.body
    merged["color"] = theme.colors.text
    merged.update(TYPE_DEFAULTS.get(placeholder.type, {}))
    if placeholder.type in HEADING_TYPES:
        merged["font_face"] = theme.fonts.heading

    for name in _STYLE_FIELDS:
        override = getattr(placeholder.style, name)
        if override is not None:
            merged[name] = override

    if isinstance(value, CodeContent):
        merged["font_face"] = placeholder.style.mono_font or theme.fonts.mono or FALLBACK_MONO_FONT

    merged["font_size"] = float(merged["font_size"])
    merged["line_spacing"] = float(merged["line_spacing"])
    return ResolvedStyle(**merged)


def image_path(image: ImageContent, base_dir: Optional[Path]) -> Path:
    path = Path(image.path).expanduser()
    if not path.is_absolute() and base_dir is not None:
        path = base_dir / path
    return path


def resolve_slide(
    slide: SlideSpec,
    master: SlideMaster,
    slide_index: int,
    base_dir: Optional[Path] = None,
) -> Tuple[ResolvedSlide, List[Finding]]:
    findings: List[Finding] = []

    layout = master.layouts.get(slide.layout)
    if layout is None:
        available = ", ".join(sorted(master.layouts))
        findings.append(
            Finding(
                slide_index=slide_index,
                placeholder="",
                severity="error",
                category=UNKNOWN_LAYOUT,
                message=f'Unknown layout: "{slide.layout}". Available: {available}',
            )
        )
        return ResolvedSlide(index=slide_index, layout_name=slide.layout, notes=slide.notes), findings

    by_name = {ph.name: ph for ph in layout.placeholders}
    elements: List[ResolvedElement] = []

    for name, value in slide.data.items():
        placeholder = by_name.get(name)
        if placeholder is None:
            findings.append(
                Finding(
                    slide_index=slide_index,
                    placeholder=name,
                    severity="warning",
                    category=UNKNOWN_PLACEHOLDER,
                    message=(
                        f'Unknown placeholder "{name}" in layout "{slide.layout}". '
                        f"Available: {', '.join(by_name)}"
                    ),
                )
            )
            continue

        if isinstance(value, ImageContent) and not value.is_remote:
            local = image_path(value, base_dir)
            if not local.exists():
                findings.append(
                    Finding(
                        slide_index=slide_index,
                        placeholder=name,
                        severity="error",
                        category=IMAGE_NOT_FOUND,
                        message=f"Image file not found: {value.path}",
                        suggestion="Check the image path or use an http(s) URL",
                    )
                )

        style = resolve_style(placeholder, master, value)
        elements.append(
            ResolvedElement(
                placeholder=placeholder,
                value=value,
                style=style,
                computed_font_size=style.font_size,
            )
        )

    for placeholder in layout.placeholders:
        if placeholder.constraints.required and placeholder.name not in slide.data:
            findings.append(
                Finding(
                    slide_index=slide_index,
                    placeholder=placeholder.name,
                    severity="warning",
                    category=MISSING_PLACEHOLDER,
                    message=f'Required placeholder "{placeholder.name}" has no content',
                )
            )

    resolved = ResolvedSlide(
        index=slide_index,
        layout_name=slide.layout,
        elements=tuple(elements),
        background=slide.background or layout.background,
        fixed_elements=tuple(layout.fixed_elements),
        notes=slide.notes,
    )
    return resolved, findings
