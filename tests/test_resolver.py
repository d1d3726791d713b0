from __future__ import annotations

from pathlib import Path

from conftest import make_master, make_placeholder
from slidefit.findings import IMAGE_NOT_FOUND, MISSING_PLACEHOLDER, UNKNOWN_LAYOUT, UNKNOWN_PLACEHOLDER
from slidefit.models import Background, CodeContent, FontSet, ImageContent, SlideSpec
from slidefit.resolver import FALLBACK_MONO_FONT, resolve_slide, resolve_style


def test_unknown_layout_is_an_error_and_resolves_nothing(master) -> None:
    resolved, findings = resolve_slide(SlideSpec(layout="nope", data={"title": "x"}), master, 3)
    assert [f.category for f in findings] == [UNKNOWN_LAYOUT]
    assert findings[0].severity == "error"
    assert "content" in findings[0].message
    assert resolved.elements == ()
    assert resolved.index == 3


def test_unknown_placeholder_warns_and_continues(master) -> None:
    slide = SlideSpec(layout="content", data={"title": "Hello", "sidebar": "extra"})
    resolved, findings = resolve_slide(slide, master, 0)
    assert [(f.category, f.severity) for f in findings] == [(UNKNOWN_PLACEHOLDER, "warning")]
    assert [el.placeholder.name for el in resolved.elements] == ["title"]


def test_style_cascade_uses_type_defaults_and_theme(master) -> None:
    title = master.layouts["content"].placeholder("title")
    style = resolve_style(title, master)
    assert style.font_size == 32
    assert style.bold is True
    assert style.font_face == master.theme.fonts.heading

    body = master.layouts["content"].placeholder("body")
    body.style.font_size = 20
    assert resolve_style(body, master).font_size == 20


def test_code_uses_mono_font_with_fallback(master) -> None:
    body = master.layouts["content"].placeholder("body")
    assert resolve_style(body, master, CodeContent(code="x = 1")).font_face == FALLBACK_MONO_FONT
    master.theme.fonts = FontSet(mono="Fira Code")
    assert resolve_style(body, master, CodeContent(code="x = 1")).font_face == "Fira Code"


def test_missing_local_image_is_an_error(tmp_path: Path) -> None:
    master = make_master({"pic": [make_placeholder("image", type="image")]})
    slide = SlideSpec(layout="pic", data={"image": ImageContent(path="missing.png")})
    _, findings = resolve_slide(slide, master, 0, base_dir=tmp_path)
    assert [(f.category, f.severity) for f in findings] == [(IMAGE_NOT_FOUND, "error")]


def test_remote_and_existing_images_are_accepted(tmp_path: Path) -> None:
    (tmp_path / "here.png").write_bytes(b"png")
    master = make_master({"pic": [make_placeholder("a", type="image"), make_placeholder("b", type="image")]})
    slide = SlideSpec(
        layout="pic",
        data={"a": ImageContent(path="https://example.com/x.png"), "b": ImageContent(path="here.png")},
    )
    _, findings = resolve_slide(slide, master, 0, base_dir=tmp_path)
    assert findings == []


def test_required_placeholder_without_content_warns() -> None:
    master = make_master({"content": [make_placeholder("title", type="title", required=True)]})
    _, findings = resolve_slide(SlideSpec(layout="content"), master, 0)
    assert [(f.category, f.severity, f.placeholder) for f in findings] == [(MISSING_PLACEHOLDER, "warning", "title")]


def test_layout_background_applies_unless_slide_overrides() -> None:
    master = make_master()
    master.layouts["content"].background = Background(color="#111111")
    resolved, _ = resolve_slide(SlideSpec(layout="content"), master, 0)
    assert resolved.background.color == "#111111"

    override = SlideSpec(layout="content", background=Background(color="#222222"), notes="say hi")
    resolved, _ = resolve_slide(override, master, 0)
    assert resolved.background.color == "#222222"
    assert resolved.notes == "say hi"
