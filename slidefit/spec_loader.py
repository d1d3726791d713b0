"""Deck spec JSON validation, parsing and serialization."""

from __future__ import annotations

import dataclasses
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from .errors import SpecValidationError
from .models import (
    ASPECT_RATIOS,
    OVERFLOW_STRATEGIES,
    PLACEHOLDER_TYPES,
    Background,
    BulletItem,
    BulletList,
    CodeContent,
    ColorPalette,
    DeckSpec,
    DiagramContent,
    DiagramHints,
    FixedElement,
    FontPaths,
    FontSet,
    ImageContent,
    Margins,
    Padding,
    PlaceholderConstraints,
    PlaceholderDef,
    PlaceholderStyle,
    PlaceholderValue,
    SlideLayout,
    SlideMaster,
    SlideSpec,
    TableCell,
    TableContent,
    TextContent,
    TextRun,
    TextStyle,
    Theme,
)

CONTENT_TYPES = ("text", "bullet", "table", "code", "image", "diagram")
IMAGE_SIZINGS = ("contain", "cover", "stretch")
BACKGROUND_TYPES = ("solid", "gradient", "image")
MARGIN_SIDES = ("top", "right", "bottom", "left")
HINT_FIELDS = tuple(f.name for f in dataclasses.fields(DiagramHints))


def _is_non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 1


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def _check_numbers(raw: Dict[str, Any], fields, prefix: str, issues: List[str]) -> None:
    for field in fields:
        if raw.get(field) is not None and not _is_number(raw[field]):
            issues.append(f"{prefix}.{field} must be a number when provided")


def _check_text_style(style: Any, prefix: str, issues: List[str]) -> None:
    if style is None:
        return
    if not isinstance(style, dict):
        issues.append(f"{prefix} must be an object when provided")
        return
    _check_numbers(style, ("font_size",), prefix, issues)


def _check_background(background: Any, prefix: str, issues: List[str]) -> None:
    if background is None:
        return
    if not isinstance(background, dict):
        issues.append(f"{prefix} must be an object when provided")
        return
    kind = background.get("type")
    if kind is not None and kind not in BACKGROUND_TYPES:
        issues.append(f"{prefix}.type must be one of: {', '.join(BACKGROUND_TYPES)}")
    colors = background.get("colors")
    if colors is not None and not (isinstance(colors, list) and all(isinstance(c, str) for c in colors)):
        issues.append(f"{prefix}.colors must be a list of strings when provided")


def _check_placeholder(ph: Any, prefix: str, issues: List[str]) -> None:
    if not isinstance(ph, dict):
        issues.append(f"{prefix} must be an object")
        return
    if not _is_non_empty_str(ph.get("name")):
        issues.append(f"{prefix}.name must be a non-empty string")
    if ph.get("type") not in PLACEHOLDER_TYPES:
        issues.append(f"{prefix}.type must be one of: {', '.join(PLACEHOLDER_TYPES)}")
    for field in ("x", "y", "width", "height"):
        if not _is_number(ph.get(field)):
            issues.append(f"{prefix}.{field} must be a number (inches)")
    for field in ("width", "height"):
        if _is_number(ph.get(field)) and ph[field] <= 0:
            issues.append(f"{prefix}.{field} must be positive")

    style = ph.get("style")
    if style is not None:
        if not isinstance(style, dict):
            issues.append(f"{prefix}.style must be an object when provided")
        else:
            _check_numbers(style, ("font_size", "line_spacing"), f"{prefix}.style", issues)
            padding = style.get("padding")
            if padding is not None:
                if not isinstance(padding, dict):
                    issues.append(f"{prefix}.style.padding must be an object when provided")
                else:
                    _check_numbers(padding, MARGIN_SIDES, f"{prefix}.style.padding", issues)

    constraints = ph.get("constraints")
    if constraints is not None:
        if not isinstance(constraints, dict):
            issues.append(f"{prefix}.constraints must be an object when provided")
            return
        overflow = constraints.get("overflow")
        if overflow is not None and overflow not in OVERFLOW_STRATEGIES:
            issues.append(f"{prefix}.constraints.overflow must be one of: {', '.join(OVERFLOW_STRATEGIES)}")
        for field in ("min_font_size", "max_font_size"):
            if field in constraints and not _is_number(constraints[field]):
                issues.append(f"{prefix}.constraints.{field} must be a number when provided")
        max_lines = constraints.get("max_lines")
        if max_lines is not None and not _is_positive_int(max_lines):
            issues.append(f"{prefix}.constraints.max_lines must be a positive integer when provided")


def _check_master(master: Any, issues: List[str]) -> None:
    if not isinstance(master, dict):
        issues.append("master is required and must be an object")
        return
    if not _is_non_empty_str(master.get("name")):
        issues.append("master.name must be a non-empty string")
    ratio = master.get("aspect_ratio")
    if ratio is not None and ratio not in ASPECT_RATIOS:
        issues.append(f"master.aspect_ratio must be one of: {', '.join(ASPECT_RATIOS)}")

    theme = master.get("theme")
    if theme is not None:
        if not isinstance(theme, dict):
            issues.append("master.theme must be an object when provided")
        else:
            for section in ("colors", "fonts", "font_paths"):
                value = theme.get(section)
                if value is not None and not isinstance(value, dict):
                    issues.append(f"master.theme.{section} must be an object when provided")

    margins = master.get("margins")
    if margins is not None:
        if not isinstance(margins, dict):
            issues.append("master.margins must be an object when provided")
        else:
            _check_numbers(margins, MARGIN_SIDES, "master.margins", issues)

    layouts = master.get("layouts")
    if not isinstance(layouts, dict) or not layouts:
        issues.append("master.layouts is required and must be a non-empty object")
        return
    for name, layout in layouts.items():
        prefix = f"master.layouts.{name}"
        if not isinstance(layout, dict):
            issues.append(f"{prefix} must be an object")
            continue
        placeholders = layout.get("placeholders")
        if not isinstance(placeholders, list):
            issues.append(f"{prefix}.placeholders must be a list")
            continue
        _check_background(layout.get("background"), f"{prefix}.background", issues)
        fixed_elements = layout.get("fixed_elements")
        if fixed_elements is not None and not isinstance(fixed_elements, list):
            issues.append(f"{prefix}.fixed_elements must be a list when provided")
            fixed_elements = None
        for idx, fe in enumerate(fixed_elements or []):
            where = f"{prefix}.fixed_elements[{idx}]"
            if not isinstance(fe, dict) or not _is_non_empty_str(fe.get("type")):
                issues.append(f"{where} must be an object with a type")
                continue
            for field in ("x", "y", "width", "height"):
                if not _is_number(fe.get(field)):
                    issues.append(f"{where}.{field} must be a number (inches)")
            _check_numbers(fe, ("line_width",), where, issues)
        seen = set()
        for idx, ph in enumerate(placeholders):
            _check_placeholder(ph, f"{prefix}.placeholders[{idx}]", issues)
            if isinstance(ph, dict) and isinstance(ph.get("name"), str):
                if ph["name"] in seen:
                    issues.append(f"{prefix}.placeholders[{idx}].name '{ph['name']}' is duplicated")
                seen.add(ph["name"])


def _check_value(value: Any, prefix: str, issues: List[str]) -> None:
    if isinstance(value, str):
        return
    if not isinstance(value, dict):
        issues.append(f"{prefix} must be a string or a content object")
        return
    kind = value.get("type")
    if kind not in CONTENT_TYPES:
        issues.append(f"{prefix}.type must be one of: {', '.join(CONTENT_TYPES)}")
        return

    if kind == "text":
        text = value.get("value")
        if isinstance(text, list):
            for idx, run in enumerate(text):
                if not isinstance(run, dict) or not isinstance(run.get("text"), str):
                    issues.append(f"{prefix}.value[{idx}] must be an object with a text string")
                    continue
                _check_text_style(run.get("style"), f"{prefix}.value[{idx}].style", issues)
        elif not isinstance(text, str):
            issues.append(f"{prefix}.value must be a string or a list of runs")
    elif kind == "bullet":
        items = value.get("items")
        if not isinstance(items, list):
            issues.append(f"{prefix}.items must be a list")
        else:
            _check_bullet_items(items, f"{prefix}.items", issues)
    elif kind == "table":
        rows = value.get("rows")
        if not isinstance(rows, list) or not all(isinstance(r, list) for r in rows):
            issues.append(f"{prefix}.rows must be a list of rows")
        else:
            for r, row in enumerate(rows):
                for c, cell in enumerate(row):
                    if isinstance(cell, str):
                        continue
                    where = f"{prefix}.rows[{r}][{c}]"
                    if not isinstance(cell, dict) or not isinstance(cell.get("text"), str):
                        issues.append(f"{where} must be a string or an object with a text string")
                        continue
                    _check_text_style(cell.get("style"), f"{where}.style", issues)
                    for span in ("row_span", "col_span"):
                        span_value = cell.get(span)
                        if span_value is not None and not _is_positive_int(span_value):
                            issues.append(f"{where}.{span} must be a positive integer when provided")
        headers = value.get("headers")
        if headers is not None and not (isinstance(headers, list) and all(isinstance(h, str) for h in headers)):
            issues.append(f"{prefix}.headers must be a list of strings when provided")
    elif kind == "code":
        if not isinstance(value.get("code"), str):
            issues.append(f"{prefix}.code must be a string")
    elif kind == "image":
        if not _is_non_empty_str(value.get("path")):
            issues.append(f"{prefix}.path must be a non-empty string")
        sizing = value.get("sizing")
        if sizing is not None and sizing not in IMAGE_SIZINGS:
            issues.append(f"{prefix}.sizing must be one of: {', '.join(IMAGE_SIZINGS)}")
    elif kind == "diagram":
        if not isinstance(value.get("code"), str):
            issues.append(f"{prefix}.code must be a string")
        hints = value.get("hints")
        if hints is not None:
            if not isinstance(hints, dict):
                issues.append(f"{prefix}.hints must be an object when provided")
            else:
                _check_numbers(hints, HINT_FIELDS, f"{prefix}.hints", issues)


def _check_bullet_items(items: List[Any], prefix: str, issues: List[str]) -> None:
    # Iterative so very deep nesting cannot exhaust the stack.
    pending = [(items, prefix)]
    while pending:
        level_items, level_prefix = pending.pop()
        for idx, item in enumerate(level_items):
            where = f"{level_prefix}[{idx}]"
            if isinstance(item, str):
                continue
            if not isinstance(item, dict) or not isinstance(item.get("text"), str):
                issues.append(f"{where} must be a string or an object with a text string")
                continue
            _check_text_style(item.get("style"), f"{where}.style", issues)
            children = item.get("children")
            if children is None:
                continue
            if not isinstance(children, list):
                issues.append(f"{where}.children must be a list when provided")
                continue
            pending.append((children, f"{where}.children"))


def validate_spec(data: Any) -> Dict[str, Any]:
    """Check a deck spec dict, raising SpecValidationError with every issue found."""
    if not isinstance(data, dict):
        raise SpecValidationError(["Root JSON value must be an object"])

    issues: List[str] = []
    ratio = data.get("aspect_ratio")
    if ratio is not None and ratio not in ASPECT_RATIOS:
        issues.append(f"aspect_ratio must be one of: {', '.join(ASPECT_RATIOS)}")

    _check_master(data.get("master"), issues)

    slides = data.get("slides")
    if not isinstance(slides, list):
        issues.append("slides is required and must be a list")
    else:
        for idx, slide in enumerate(slides):
            prefix = f"slides[{idx}]"
            if not isinstance(slide, dict):
                issues.append(f"{prefix} must be an object")
                continue
            if not _is_non_empty_str(slide.get("layout")):
                issues.append(f"{prefix}.layout must be a non-empty string")
            _check_background(slide.get("background"), f"{prefix}.background", issues)
            content = slide.get("data", {})
            if not isinstance(content, dict):
                issues.append(f"{prefix}.data must be an object")
                continue
            for name, value in content.items():
                _check_value(value, f"{prefix}.data.{name}", issues)
            if "notes" in slide and not isinstance(slide.get("notes"), str):
                issues.append(f"{prefix}.notes must be a string when provided")

    if issues:
        raise SpecValidationError(issues)
    return data


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def _build(cls, raw: Optional[Dict[str, Any]]):
    """Instantiate a flat dataclass from the keys it knows about."""
    if raw is None:
        return None
    names = {f.name for f in dataclasses.fields(cls) if f.init}
    return cls(**{k: v for k, v in raw.items() if k in names})


def _text_style(raw: Any) -> Optional[TextStyle]:
    return _build(TextStyle, raw) if isinstance(raw, dict) else None


def _placeholder(raw: Dict[str, Any]) -> PlaceholderDef:
    style_raw = dict(raw.get("style") or {})
    padding = _build(Padding, style_raw.pop("padding", None))
    style = _build(PlaceholderStyle, style_raw) or PlaceholderStyle()
    style.padding = padding
    return PlaceholderDef(
        name=raw["name"],
        type=raw["type"],
        x=float(raw["x"]),
        y=float(raw["y"]),
        width=float(raw["width"]),
        height=float(raw["height"]),
        style=style,
        constraints=_build(PlaceholderConstraints, raw.get("constraints")) or PlaceholderConstraints(),
    )


def _theme(raw: Optional[Dict[str, Any]], base_dir: Optional[Path]) -> Theme:
    raw = raw or {}
    font_paths = _build(FontPaths, raw.get("font_paths"))
    if font_paths is not None and base_dir is not None:
        for f in dataclasses.fields(font_paths):
            value = getattr(font_paths, f.name)
            if not value:
                continue
            candidate = Path(value).expanduser()
            if not candidate.is_absolute():
                setattr(font_paths, f.name, str(base_dir / candidate))
    return Theme(
        name=raw.get("name", "default"),
        colors=_build(ColorPalette, raw.get("colors")) or ColorPalette(),
        fonts=_build(FontSet, raw.get("fonts")) or FontSet(),
        font_paths=font_paths,
    )


def _layout(raw: Dict[str, Any]) -> SlideLayout:
    return SlideLayout(
        placeholders=[_placeholder(ph) for ph in raw.get("placeholders", [])],
        background=_build(Background, raw.get("background")),
        fixed_elements=[_build(FixedElement, fe) for fe in raw.get("fixed_elements") or []],
    )


def _bullet_items(raw_items: List[Any]) -> List[BulletItem]:
    items = []
    for raw in raw_items:
        if isinstance(raw, str):
            items.append(BulletItem(text=raw))
            continue
        items.append(
            BulletItem(
                text=raw["text"],
                style=_text_style(raw.get("style")),
                children=_bullet_items(raw.get("children") or []),
            )
        )
    return items


def value_from_dict(raw: Any) -> PlaceholderValue:
    if isinstance(raw, str):
        return raw
    kind = raw["type"]
    if kind == "text":
        value = raw["value"]
        if isinstance(value, list):
            value = [TextRun(text=r["text"], style=_text_style(r.get("style"))) for r in value]
        return TextContent(value=value)
    if kind == "bullet":
        return BulletList(items=_bullet_items(raw["items"]), ordered=bool(raw.get("ordered", False)))
    if kind == "table":
        rows = [
            [cell if isinstance(cell, str) else _table_cell(cell) for cell in row]
            for row in raw["rows"]
        ]
        return TableContent(rows=rows, headers=raw.get("headers"))
    if kind == "code":
        return CodeContent(code=raw["code"], language=raw.get("language"))
    if kind == "image":
        return ImageContent(path=raw["path"], alt=raw.get("alt"), sizing=raw.get("sizing", "contain"))
    if kind == "diagram":
        return DiagramContent(code=raw["code"], hints=_build(DiagramHints, raw.get("hints")))
    raise SpecValidationError([f"Unsupported content type: {kind}"])


def _table_cell(raw: Dict[str, Any]) -> TableCell:
    cell = _build(TableCell, raw)
    cell.style = _text_style(raw.get("style"))
    return cell


def deck_from_dict(data: Dict[str, Any], base_dir: Optional[Path] = None) -> DeckSpec:
    validate_spec(data)
    master_raw = data["master"]
    master = SlideMaster(
        name=master_raw["name"],
        theme=_theme(master_raw.get("theme"), base_dir),
        layouts={name: _layout(layout) for name, layout in master_raw["layouts"].items()},
        aspect_ratio=master_raw.get("aspect_ratio", "16:9"),
        margins=_build(Margins, master_raw.get("margins")),
    )
    slides = [
        SlideSpec(
            layout=raw["layout"],
            data={name: value_from_dict(value) for name, value in (raw.get("data") or {}).items()},
            background=_build(Background, raw.get("background")),
            notes=raw.get("notes"),
        )
        for raw in data["slides"]
    ]
    return DeckSpec(master=master, slides=slides, aspect_ratio=data.get("aspect_ratio"))


def load_spec_file(path: Path) -> DeckSpec:
    """Load and validate a JSON deck spec; relative font paths resolve next to the file."""
    path = Path(path)
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise SpecValidationError([f"Spec file not found: {path}"]) from exc

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise SpecValidationError([f"Invalid JSON at line {exc.lineno}, column {exc.colno}: {exc.msg}"]) from exc

    return deck_from_dict(data, base_dir=path.resolve().parent)


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


def _prune(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _prune(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [_prune(v) for v in value]
    return value


def value_to_dict(value: PlaceholderValue) -> Any:
    if isinstance(value, str):
        return value
    return _prune(dataclasses.asdict(value))


def slide_to_dict(slide: SlideSpec) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        "layout": slide.layout,
        "data": {name: value_to_dict(value) for name, value in slide.data.items()},
    }
    if slide.background is not None:
        out["background"] = _prune(dataclasses.asdict(slide.background))
    if slide.notes is not None:
        out["notes"] = slide.notes
    return out


def deck_to_dict(spec: DeckSpec) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    if spec.aspect_ratio:
        out["aspect_ratio"] = spec.aspect_ratio
    out["master"] = _prune(dataclasses.asdict(spec.master))
    out["slides"] = [slide_to_dict(slide) for slide in spec.slides]
    return out


def write_spec_file(spec: DeckSpec, path: Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(deck_to_dict(spec), indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    return path
