"""Profile-gated quality evaluation on top of layout findings."""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Dict, List, Optional, Sequence

from .diagram_splitter import diagram_stats
from .findings import FONT_NOT_FOUND, MISSING_PLACEHOLDER, OVERFLOW, Finding, QualityFinding, QualityReport
from .models import DeckSpec, DiagramContent, ResolvedElement, ResolvedSlide, content_kind
from .structured import TABLE_FONT_OFFSET_PT

MIN_FONT_SIZE = "min-font-size"
MISSING_REQUIRED_PLACEHOLDER = "missing-required-placeholder"
DIAGRAM_MIN_FONT = "diagram-min-font"
DIAGRAM_TOO_DENSE = "diagram-too-dense"

DIAGRAM_NODE_MAX = 25
DIAGRAM_EDGE_MAX = 40
SCREEN_DPI = 96.0

# Quality codes whose error-severity findings fail a strict build.
STRICT_GATED_CODES = (MIN_FONT_SIZE, MISSING_REQUIRED_PLACEHOLDER, DIAGRAM_MIN_FONT, DIAGRAM_TOO_DENSE)


@dataclass
class ReadabilityThresholds:
    title_min_pt: float = 24.0
    body_min_pt: float = 14.0
    code_min_pt: float = 12.0
    table_min_pt: float = 12.0

    def merged(self, overrides: Optional[Dict[str, float]]) -> "ReadabilityThresholds":
        if not overrides:
            return self
        known = {f.name for f in fields(self)}
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        values.update({k: float(v) for k, v in overrides.items() if k in known and v is not None})
        return ReadabilityThresholds(**values)


def graded_severity(profile: str) -> str:
    if profile == "strict":
        return "error"
    if profile == "standard":
        return "warning"
    return "info"


def estimate_diagram_font_pt(element: ResolvedElement) -> Optional[float]:
    """Smallest rendered diagram text size in points, if the hints allow it."""
    value = element.value
    if not isinstance(value, DiagramContent) or value.hints is None:
        return None
    hints = value.hints
    if hints.estimated_min_font_pt is not None:
        return hints.estimated_min_font_pt
    if not (hints.viewbox_width and hints.viewbox_height and hints.base_font_px):
        return None
    ph = element.placeholder
    scale = min(ph.width * SCREEN_DPI / hints.viewbox_width, ph.height * SCREEN_DPI / hints.viewbox_height)
    return hints.base_font_px * scale * 72.0 / SCREEN_DPI


def _diagram_counts(value: DiagramContent) -> tuple[int, int]:
    hints = value.hints
    nodes = hints.node_count if hints is not None else None
    edges = hints.edge_count if hints is not None else None
    if nodes is None or edges is None:
        stats = diagram_stats(value.code)
        if stats is not None:
            nodes = stats.node_count if nodes is None else nodes
            edges = stats.edge_count if edges is None else edges
    return nodes or 0, edges or 0


def evaluate_quality(
    spec: DeckSpec,
    slides: Sequence[ResolvedSlide],
    validations: Sequence[Finding],
    profile: str = "draft",
    thresholds: Optional[ReadabilityThresholds] = None,
) -> QualityReport:
    limits = thresholds or ReadabilityThresholds()
    graded = graded_severity(profile)
    findings: List[QualityFinding] = []

    for slide in slides:
        for element in slide.elements:
            kind = content_kind(element.value)
            ph = element.placeholder

            if kind == "diagram":
                findings.extend(_diagram_findings(slide.index, element, limits, graded))
                continue
            if kind == "image":
                continue

            effective = element.computed_font_size
            if kind == "table":
                effective -= TABLE_FONT_OFFSET_PT
            if ph.type == "title":
                minimum = limits.title_min_pt
            elif kind == "code":
                minimum = limits.code_min_pt
            elif kind == "table":
                minimum = limits.table_min_pt
            else:
                minimum = limits.body_min_pt

            if effective < minimum:
                findings.append(
                    QualityFinding(
                        severity=graded,
                        code=MIN_FONT_SIZE,
                        message=f"Font size too small: {effective:.1f}pt < {minimum:g}pt",
                        slide_index=slide.index,
                        placeholder=ph.name,
                        details={
                            "placeholder_type": ph.type,
                            "computed_font_size": element.computed_font_size,
                            "effective_font_size": effective,
                            "min": minimum,
                        },
                    )
                )

    for finding in validations:
        if finding.category != MISSING_PLACEHOLDER:
            continue
        if not _is_required(spec, finding.slide_index, finding.placeholder):
            continue
        findings.append(
            QualityFinding(
                severity="error" if profile == "strict" else "warning",
                code=MISSING_REQUIRED_PLACEHOLDER,
                message=f'Required placeholder "{finding.placeholder}" is missing',
                slide_index=finding.slide_index,
                placeholder=finding.placeholder,
            )
        )

    reasons = failing_reasons(profile, validations, findings)
    return QualityReport(
        profile=profile,
        is_passing=not reasons,
        findings=findings,
        validations=list(validations),
        failing_reasons=reasons,
    )


def _diagram_findings(
    slide_index: int,
    element: ResolvedElement,
    limits: ReadabilityThresholds,
    graded: str,
) -> List[QualityFinding]:
    out: List[QualityFinding] = []
    name = element.placeholder.name
    estimated = estimate_diagram_font_pt(element)
    if estimated is not None and estimated < limits.body_min_pt:
        out.append(
            QualityFinding(
                severity=graded,
                code=DIAGRAM_MIN_FONT,
                message=f"Diagram text too small (estimated): {estimated:.1f}pt < {limits.body_min_pt:g}pt",
                slide_index=slide_index,
                placeholder=name,
                details={"estimated_min_font_pt": estimated, "min": limits.body_min_pt},
            )
        )

    nodes, edges = _diagram_counts(element.value)
    if nodes > DIAGRAM_NODE_MAX or edges > DIAGRAM_EDGE_MAX:
        out.append(
            QualityFinding(
                severity=graded,
                code=DIAGRAM_TOO_DENSE,
                message=f"Diagram may be too dense (nodes={nodes}, edges={edges})",
                slide_index=slide_index,
                placeholder=name,
                details={
                    "node_max": DIAGRAM_NODE_MAX,
                    "edge_max": DIAGRAM_EDGE_MAX,
                    "node_count": nodes,
                    "edge_count": edges,
                },
            )
        )
    return out


def _is_required(spec: DeckSpec, slide_index: int, placeholder: str) -> bool:
    if not 0 <= slide_index < len(spec.slides):
        return False
    layout = spec.master.layouts.get(spec.slides[slide_index].layout)
    if layout is None:
        return False
    ph = layout.placeholder(placeholder)
    return bool(ph and ph.constraints.required)


def failing_reasons(
    profile: str,
    validations: Sequence[Finding],
    findings: Sequence[QualityFinding],
) -> List[str]:
    reasons: List[str] = []
    if any(v.severity == "error" for v in validations):
        reasons.append("validation errors exist")

    if profile in ("standard", "strict"):
        overflow_warnings = sum(1 for v in validations if v.category == OVERFLOW and v.severity == "warning")
        if overflow_warnings:
            reasons.append(f"overflow warnings: {overflow_warnings}")

    if profile == "strict":
        font_issues = sum(1 for v in validations if v.category == FONT_NOT_FOUND)
        if font_issues:
            reasons.append(f"font-not-found: {font_issues}")
        for code in STRICT_GATED_CODES:
            count = sum(1 for f in findings if f.code == code and f.severity == "error")
            if count:
                reasons.append(f"{code}: {count}")
    return reasons


def summarize(report: QualityReport) -> Dict[str, Any]:
    return {
        "profile": report.profile,
        "is_passing": report.is_passing,
        "failing_reasons": list(report.failing_reasons),
        "findings": [
            {
                "severity": f.severity,
                "code": f.code,
                "message": f.message,
                "slide_index": f.slide_index,
                "placeholder": f.placeholder,
            }
            for f in report.findings
        ],
    }
