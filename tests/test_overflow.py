from __future__ import annotations

from conftest import make_placeholder
from slidefit.findings import OVERFLOW
from slidefit.models import BulletItem, BulletList, DiagramContent, ImageContent, TableContent
from slidefit.overflow import OverflowDetector
from slidefit.text_measurer import TextMeasurer

FIVE_LINES = "alpha\nbravo\ncharlie\ndelta\necho"


def _detector() -> OverflowDetector:
    return OverflowDetector(TextMeasurer())


def test_fitting_text_has_no_findings(fixed_font) -> None:
    ph = make_placeholder("body", height=3.0)
    result = _detector().detect(ph, "Hello world", fixed_font, 0, 18, 1.2)
    assert result.findings == []
    assert result.computed_font_size == 18


def test_shrink_finds_size_between_min_and_nominal(fixed_font) -> None:
    ph = make_placeholder("body", height=1.2, overflow="shrink", min_font_size=10)
    result = _detector().detect(ph, FIVE_LINES, fixed_font, 0, 18, 1.2)

    assert [f.severity for f in result.findings] == ["warning"]
    finding = result.findings[0]
    assert finding.category == OVERFLOW
    # 1.1in available / 5 lines / 1.2 spacing -> 13.2pt ceiling
    assert result.computed_font_size == 13.0
    assert 10 < result.computed_font_size < 18
    assert "18pt -> 13pt" in finding.message
    assert finding.detail.suggested_font_size == 13.0


def test_shrink_is_idempotent(fixed_font) -> None:
    ph = make_placeholder("body", height=1.2, overflow="shrink", min_font_size=10)
    detector = _detector()
    first = detector.detect(ph, FIVE_LINES, fixed_font, 0, 18, 1.2)
    second = detector.detect(ph, FIVE_LINES, fixed_font, 0, first.computed_font_size, 1.2)
    assert second.findings == []
    assert second.computed_font_size == first.computed_font_size


def test_shrink_failure_is_error_at_min_size(fixed_font) -> None:
    ph = make_placeholder("body", height=0.5, overflow="shrink", min_font_size=12)
    result = _detector().detect(ph, FIVE_LINES, fixed_font, 2, 18, 1.2)
    assert [f.severity for f in result.findings] == ["error"]
    assert "minimum font size 12pt" in result.findings[0].message
    assert result.computed_font_size == 12
    assert result.findings[0].slide_index == 2


def test_error_strategy_suggests_size_without_changing_it(fixed_font) -> None:
    ph = make_placeholder("body", height=1.2, overflow="error")
    result = _detector().detect(ph, FIVE_LINES, fixed_font, 0, 18, 1.2)
    assert [f.severity for f in result.findings] == ["error"]
    assert result.computed_font_size == 18
    assert result.findings[0].detail.suggested_font_size == 13.0
    assert "Reduce font size from 18pt to 13pt" in result.findings[0].suggestion


def test_unset_strategy_warns(fixed_font) -> None:
    ph = make_placeholder("body", height=1.2)
    result = _detector().detect(ph, FIVE_LINES, fixed_font, 0, 18, 1.2)
    assert [f.severity for f in result.findings] == ["warning"]
    assert result.computed_font_size == 18


def test_truncate_warns_and_keeps_size(fixed_font) -> None:
    ph = make_placeholder("body", height=1.2, overflow="truncate")
    result = _detector().detect(ph, FIVE_LINES, fixed_font, 0, 18, 1.2)
    assert [f.severity for f in result.findings] == ["warning"]
    assert "truncated" in result.findings[0].message
    assert result.computed_font_size == 18


def test_max_font_size_caps_shrink_search(fixed_font) -> None:
    ph = make_placeholder("body", height=1.2, overflow="shrink", max_font_size=11)
    result = _detector().detect(ph, FIVE_LINES, fixed_font, 0, 18, 1.2)
    assert result.computed_font_size == 11


def test_max_lines_error_short_circuits(fixed_font) -> None:
    ph = make_placeholder("body", height=5.0, overflow="error", max_lines=3)
    result = _detector().detect(ph, FIVE_LINES, fixed_font, 0, 12, 1.2)
    assert len(result.findings) == 1
    assert result.findings[0].severity == "error"
    assert "5 > 3" in result.findings[0].message


def test_max_lines_warns_under_default_strategy(fixed_font) -> None:
    ph = make_placeholder("body", height=5.0, max_lines=3)
    result = _detector().detect(ph, FIVE_LINES, fixed_font, 0, 12, 1.2)
    assert [f.severity for f in result.findings] == ["warning"]


def test_bullet_overflow_uses_bullet_measurer(fixed_font) -> None:
    ph = make_placeholder("body", height=1.0, overflow="error")
    bullets = BulletList(items=[BulletItem(f"Item {i}") for i in range(12)])
    result = _detector().detect(ph, bullets, fixed_font, 0, 16, 1.2)
    assert [f.severity for f in result.findings] == ["error"]
    assert "12 items" in result.findings[0].suggestion


def test_table_shrink_uses_row_model(fixed_font) -> None:
    ph = make_placeholder("body", height=1.62, overflow="shrink")
    table = TableContent(rows=[["a", "b"]] * 5, headers=["x", "y"])
    result = _detector().detect(ph, table, fixed_font, 0, 18, 1.2)
    # 6 rows in 1.52in: (size - 2) * 1.2 / 72 + 0.1 <= 0.2533
    assert result.computed_font_size == 11.0
    assert result.findings[0].severity == "warning"


def test_images_and_diagrams_are_not_measured(fixed_font) -> None:
    ph = make_placeholder("body", height=0.1, overflow="error")
    detector = _detector()
    assert detector.detect(ph, ImageContent(path="x.png"), fixed_font, 0, 18, 1.2).findings == []
    assert detector.detect(ph, DiagramContent(code="flowchart TD\nA-->B"), fixed_font, 0, 18, 1.2).findings == []


def test_empty_text_is_not_an_overflow(fixed_font) -> None:
    ph = make_placeholder("body", height=0.1, overflow="error")
    assert _detector().detect(ph, "", fixed_font, 0, 18, 1.2).findings == []
