from __future__ import annotations

import pytest

from conftest import make_deck, make_master, make_placeholder
from slidefit.findings import FONT_NOT_FOUND, OVERFLOW, Finding
from slidefit.models import CodeContent, DiagramContent, DiagramHints, SlideSpec, TableContent
from slidefit.quality import (
    DIAGRAM_MIN_FONT,
    DIAGRAM_TOO_DENSE,
    MIN_FONT_SIZE,
    MISSING_REQUIRED_PLACEHOLDER,
    ReadabilityThresholds,
    estimate_diagram_font_pt,
    evaluate_quality,
    failing_reasons,
    summarize,
)
from slidefit.resolver import resolve_slide


def _resolve(deck):
    return [resolve_slide(slide, deck.master, i)[0] for i, slide in enumerate(deck.slides)]


def _small_body_deck():
    master = make_master()
    master.layouts["content"].placeholder("body").style.font_size = 12
    return make_deck([SlideSpec(layout="content", data={"title": "Deck", "body": "tiny text"})], master)


@pytest.mark.parametrize(
    "profile, severity, passing",
    [("draft", "info", True), ("standard", "warning", True), ("strict", "error", False)],
)
def test_min_font_severity_follows_profile(profile: str, severity: str, passing: bool) -> None:
    deck = _small_body_deck()
    report = evaluate_quality(deck, _resolve(deck), [], profile=profile)
    codes = [(f.code, f.severity) for f in report.findings]
    assert codes == [(MIN_FONT_SIZE, severity)]
    assert report.is_passing is passing


def test_table_threshold_uses_effective_cell_size() -> None:
    master = make_master()
    master.layouts["content"].placeholder("body").style.font_size = 13
    deck = make_deck([SlideSpec(layout="content", data={"body": TableContent(rows=[["a"]])})], master)
    report = evaluate_quality(deck, _resolve(deck), [], profile="strict")
    assert [f.code for f in report.findings] == [MIN_FONT_SIZE]
    assert report.findings[0].details["effective_font_size"] == 11
    assert "11.0pt < 12pt" in report.findings[0].message

    relaxed = evaluate_quality(
        deck, _resolve(deck), [], profile="strict", thresholds=ReadabilityThresholds(table_min_pt=11)
    )
    assert relaxed.findings == []


def test_code_threshold() -> None:
    master = make_master()
    master.layouts["content"].placeholder("body").style.font_size = 12
    deck = make_deck([SlideSpec(layout="content", data={"body": CodeContent(code="print(1)")})], master)
    assert evaluate_quality(deck, _resolve(deck), [], profile="strict").findings == []


def test_thresholds_merge_overrides() -> None:
    merged = ReadabilityThresholds().merged({"body_min_pt": 10, "unknown": 3})
    assert merged.body_min_pt == 10
    assert merged.title_min_pt == 24


def test_strict_fails_on_overflow_warning_and_font_not_found() -> None:
    deck = make_deck([SlideSpec(layout="content", data={"title": "Deck"})])
    validations = [
        Finding(0, "body", "warning", OVERFLOW, "Text overflows placeholder area"),
        Finding(0, "title", "info", FONT_NOT_FOUND, "Font file not found"),
    ]
    assert failing_reasons("draft", validations, []) == []
    assert failing_reasons("standard", validations, []) == ["overflow warnings: 1"]
    assert failing_reasons("strict", validations, []) == ["overflow warnings: 1", "font-not-found: 1"]
    report = evaluate_quality(deck, _resolve(deck), validations, profile="strict")
    assert not report.is_passing


def test_validation_errors_fail_every_profile() -> None:
    validations = [Finding(0, "", "error", "unknown-layout", "Unknown layout")]
    for profile in ("draft", "standard", "strict"):
        assert failing_reasons(profile, validations, []) == ["validation errors exist"]


def test_missing_required_placeholder_is_gated_in_strict() -> None:
    master = make_master({"content": [make_placeholder("title", type="title", y=0.5, height=1.0, required=True)]})
    deck = make_deck([SlideSpec(layout="content")], master)
    slides, validations = [], []
    for i, slide in enumerate(deck.slides):
        resolved, found = resolve_slide(slide, master, i)
        slides.append(resolved)
        validations.extend(found)
    report = evaluate_quality(deck, slides, validations, profile="strict")
    assert [(f.code, f.severity) for f in report.findings] == [(MISSING_REQUIRED_PLACEHOLDER, "error")]
    assert report.failing_reasons == [f"{MISSING_REQUIRED_PLACEHOLDER}: 1"]


def test_diagram_estimate_from_viewbox_hints() -> None:
    master = make_master({"pic": [make_placeholder("image", type="image", width=4.0, height=3.0)]})
    hints = DiagramHints(viewbox_width=1536, viewbox_height=1152, base_font_px=16)
    deck = make_deck([SlideSpec(layout="pic", data={"image": DiagramContent(code="flowchart TD\nA-->B", hints=hints)})], master)
    element = _resolve(deck)[0].elements[0]
    # Scaled to a quarter of its size: 16px * 0.25 = 4px = 3pt
    assert estimate_diagram_font_pt(element) == pytest.approx(3.0)

    report = evaluate_quality(deck, _resolve(deck), [], profile="strict")
    assert [f.code for f in report.findings] == [DIAGRAM_MIN_FONT]
    assert not report.is_passing


def test_dense_diagram_counts_parsed_graph() -> None:
    edges = "\n".join(f"    N{i} --> N{i + 1}" for i in range(30))
    master = make_master({"pic": [make_placeholder("image", type="image")]})
    deck = make_deck([SlideSpec(layout="pic", data={"image": DiagramContent(code=f"flowchart TD\n{edges}")})], master)
    report = evaluate_quality(deck, _resolve(deck), [], profile="standard")
    assert [(f.code, f.severity) for f in report.findings] == [(DIAGRAM_TOO_DENSE, "warning")]
    assert report.findings[0].details["node_count"] == 31
    assert report.is_passing


def test_summarize_is_json_friendly() -> None:
    deck = _small_body_deck()
    summary = summarize(evaluate_quality(deck, _resolve(deck), [], profile="strict"))
    assert summary["is_passing"] is False
    assert summary["findings"][0]["code"] == MIN_FONT_SIZE
