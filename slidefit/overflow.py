"""Per-placeholder overflow detection and resolution.

The detector is side-effect free: it measures one placeholder's content,
applies the placeholder's overflow strategy and returns the findings plus
the font size the content should be rendered at.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, Optional

from .findings import OVERFLOW, Finding, OverflowDetail
from .models import (
    DEFAULT_MIN_FONT_SIZE,
    BulletList,
    PlaceholderDef,
    PlaceholderValue,
    TableContent,
    content_kind,
    plain_text,
)
from .structured import measure_bullet_list, measure_table
from .text_measurer import GlyphFont, TextMeasurer, largest_fitting

DEFAULT_STRATEGY = "warn"


@dataclass
class DetectionResult:
    findings: List[Finding] = field(default_factory=list)
    computed_font_size: float = 0.0


@dataclass
class _Box:
    width: float
    height: float


class OverflowDetector:
    def __init__(self, measurer: TextMeasurer):
        self.measurer = measurer

    def detect(
        self,
        placeholder: PlaceholderDef,
        value: PlaceholderValue,
        font: GlyphFont,
        slide_index: int,
        font_size: float,
        line_spacing: float,
    ) -> DetectionResult:
        kind = content_kind(value)
        if kind in ("image", "diagram"):
            return DetectionResult(computed_font_size=font_size)

        width, height = placeholder.effective_size()
        box = _Box(width, height)

        if kind == "table":
            return self._detect_table(placeholder, value, box, slide_index, font_size, line_spacing)
        if kind == "bullet":
            return self._detect_bullets(placeholder, value, font, box, slide_index, font_size, line_spacing)

        text = plain_text(value)
        if not text:
            return DetectionResult(computed_font_size=font_size)
        return self._detect_text(placeholder, text, font, box, slide_index, font_size, line_spacing)

    # -- content kinds ------------------------------------------------------

    def _detect_text(
        self,
        placeholder: PlaceholderDef,
        text: str,
        font: GlyphFont,
        box: _Box,
        slide_index: int,
        font_size: float,
        line_spacing: float,
    ) -> DetectionResult:
        strategy = placeholder.constraints.overflow or DEFAULT_STRATEGY
        findings: List[Finding] = []
        result = self.measurer.measure(text, font, font_size, box.width, line_spacing)

        max_lines = placeholder.constraints.max_lines
        if max_lines and result.line_count > max_lines:
            finding = Finding(
                slide_index=slide_index,
                placeholder=placeholder.name,
                severity="error" if strategy == "error" else "warning",
                category=OVERFLOW,
                message=f"Text exceeds max lines: {result.line_count} > {max_lines}",
                detail=OverflowDetail(
                    content_height=result.height,
                    available_height=box.height,
                    current_font_size=font_size,
                ),
                suggestion=f"Reduce text length to fit within {max_lines} lines",
            )
            if strategy == "error":
                return DetectionResult([finding], font_size)
            if strategy == "warn":
                findings.append(finding)

        if result.height <= box.height:
            return DetectionResult(findings, font_size)

        def height_at(size: float) -> float:
            return self.measurer.measure(text, font, size, box.width, line_spacing).height

        outcome = self._resolve(
            placeholder,
            label="Text",
            box=box,
            slide_index=slide_index,
            font_size=font_size,
            content_height=result.height,
            content_width=result.width,
            height_at=height_at,
            reduce_hint="Reduce text length",
        )
        outcome.findings[:0] = findings
        return outcome

    def _detect_bullets(
        self,
        placeholder: PlaceholderDef,
        bullets: BulletList,
        font: GlyphFont,
        box: _Box,
        slide_index: int,
        font_size: float,
        line_spacing: float,
    ) -> DetectionResult:
        result = measure_bullet_list(bullets, self.measurer, font, font_size, box.width, line_spacing)
        if result.height <= box.height:
            return DetectionResult(computed_font_size=font_size)

        def height_at(size: float) -> float:
            return measure_bullet_list(bullets, self.measurer, font, size, box.width, line_spacing).height

        return self._resolve(
            placeholder,
            label="Bullet list",
            box=box,
            slide_index=slide_index,
            font_size=font_size,
            content_height=result.height,
            content_width=result.width,
            height_at=height_at,
            reduce_hint=f"Reduce number of items or text length ({result.total_items} items)",
        )

    def _detect_table(
        self,
        placeholder: PlaceholderDef,
        table: TableContent,
        box: _Box,
        slide_index: int,
        font_size: float,
        line_spacing: float,
    ) -> DetectionResult:
        height = measure_table(table, font_size, line_spacing)
        if height <= box.height:
            return DetectionResult(computed_font_size=font_size)

        def height_at(size: float) -> float:
            return measure_table(table, size, line_spacing)

        return self._resolve(
            placeholder,
            label="Table",
            box=box,
            slide_index=slide_index,
            font_size=font_size,
            content_height=height,
            content_width=None,
            height_at=height_at,
            reduce_hint=f"Reduce number of rows ({table.row_count} rows)",
        )

    # -- strategy outcomes --------------------------------------------------

    def _resolve(
        self,
        placeholder: PlaceholderDef,
        *,
        label: str,
        box: _Box,
        slide_index: int,
        font_size: float,
        content_height: float,
        content_width: Optional[float],
        height_at: Callable[[float], float],
        reduce_hint: str,
    ) -> DetectionResult:
        constraints = placeholder.constraints
        strategy = constraints.overflow or DEFAULT_STRATEGY
        min_size = constraints.min_font_size if constraints.min_font_size is not None else DEFAULT_MIN_FONT_SIZE
        max_size = font_size
        if constraints.max_font_size is not None:
            max_size = min(constraints.max_font_size, font_size)

        def fitting() -> Optional[float]:
            found = largest_fitting(
                min_size,
                max(min_size, max_size),
                lambda size: (height_at(size) <= box.height, None),
            )
            return None if found is None else found[0]

        def finding(severity: str, message: str, suggestion: Optional[str], suggested: Optional[float], height=None):
            return Finding(
                slide_index=slide_index,
                placeholder=placeholder.name,
                severity=severity,
                category=OVERFLOW,
                message=message,
                detail=OverflowDetail(
                    content_height=content_height if height is None else height,
                    available_height=box.height,
                    content_width=content_width,
                    available_width=box.width,
                    current_font_size=font_size,
                    suggested_font_size=suggested,
                ),
                suggestion=suggestion,
            )

        if strategy == "shrink":
            size = fitting()
            if size is not None:
                return DetectionResult(
                    [
                        finding(
                            "warning",
                            f"{label} shrunk to fit: {font_size:g}pt -> {size:g}pt",
                            None,
                            size,
                        )
                    ],
                    size,
                )
            floor_height = height_at(min_size)
            return DetectionResult(
                [
                    finding(
                        "error",
                        f"{label} overflows even at minimum font size {min_size:g}pt",
                        f"{reduce_hint}. Content height: {floor_height:.2f}in, available: {box.height:.2f}in",
                        min_size,
                        height=floor_height,
                    )
                ],
                min_size,
            )

        if strategy == "truncate":
            return DetectionResult(
                [finding("warning", f"{label} will be truncated to fit", f"{reduce_hint} for complete display", None)],
                font_size,
            )

        size = fitting()
        if size is not None:
            verb = "Reduce" if strategy == "error" else "Consider reducing"
            suggestion = f"{verb} font size from {font_size:g}pt to {size:g}pt"
        else:
            suggestion = f"{reduce_hint}. Content does not fit even at {min_size:g}pt"
        severity = "error" if strategy == "error" else "warning"
        return DetectionResult(
            [finding(severity, f"{label} overflows placeholder area", suggestion, size)],
            font_size,
        )

