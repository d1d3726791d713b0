"""Write a validated build to a .pptx file with python-pptx."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from PIL import Image
from pptx import Presentation
from pptx.dml.color import RGBColor
from pptx.enum.shapes import MSO_AUTO_SHAPE_TYPE, MSO_CONNECTOR
from pptx.enum.text import MSO_ANCHOR, MSO_AUTO_SIZE, PP_ALIGN
from pptx.util import Inches, Pt

from .models import (
    SLIDE_SIZES,
    Background,
    BulletItem,
    BulletList,
    CodeContent,
    DiagramContent,
    FixedElement,
    ImageContent,
    Padding,
    ResolvedElement,
    ResolvedSlide,
    SlideMaster,
    TableCell,
    TableContent,
    TextContent,
    TextStyle,
)
from .resolver import FALLBACK_MONO_FONT, image_path
from .structured import BULLET_MARGIN_IN, table_cell_size

ALIGNMENTS = {"left": PP_ALIGN.LEFT, "center": PP_ALIGN.CENTER, "right": PP_ALIGN.RIGHT, "justify": PP_ALIGN.JUSTIFY}
ANCHORS = {"top": MSO_ANCHOR.TOP, "middle": MSO_ANCHOR.MIDDLE, "bottom": MSO_ANCHOR.BOTTOM}
BULLET_GLYPH = "•"
DEFAULT_CODE_BG = "#F5F5F5"


def parse_color(value: Any) -> Optional[RGBColor]:
    if value is None:
        return None
    raw = str(value).strip()
    if raw.startswith("#"):
        raw = raw[1:]
    if len(raw) == 3:
        raw = "".join(ch * 2 for ch in raw)
    if re.fullmatch(r"[0-9A-Fa-f]{6}", raw):
        return RGBColor(int(raw[0:2], 16), int(raw[2:4], 16), int(raw[4:6], 16))
    return None


def contain_box(
    image_size: Tuple[int, int], box: Tuple[float, float, float, float]
) -> Tuple[float, float, float, float]:
    """Largest rectangle with the image's aspect ratio centred inside ``box`` (inches)."""
    x, y, w, h = box
    img_w, img_h = image_size
    if img_w <= 0 or img_h <= 0:
        return box
    scale = min(w / img_w, h / img_h)
    new_w, new_h = img_w * scale, img_h * scale
    return x + (w - new_w) / 2, y + (h - new_h) / 2, new_w, new_h


class PresentationWriter:
    def __init__(self, master: SlideMaster, aspect_ratio: str = "16:9", base_dir: Optional[Path] = None):
        self.master = master
        self.base_dir = base_dir
        self.prs = Presentation()
        width, height = SLIDE_SIZES.get(aspect_ratio, SLIDE_SIZES["16:9"])
        self.prs.slide_width = Inches(width)
        self.prs.slide_height = Inches(height)
        self._blank = self.prs.slide_layouts[6]

    def add_slides(self, slides: Iterable[ResolvedSlide]) -> None:
        for resolved in slides:
            self.add_slide(resolved)

    def add_slide(self, resolved: ResolvedSlide):
        slide = self.prs.slides.add_slide(self._blank)
        self._set_background(slide, resolved.background)
        for element in resolved.fixed_elements:
            self._add_fixed_element(slide, element)
        for element in resolved.elements:
            self._add_element(slide, element)
        if resolved.notes:
            slide.notes_slide.notes_text_frame.text = resolved.notes
        return slide

    def save(self, output_path) -> Path:
        output = Path(output_path)
        output.parent.mkdir(parents=True, exist_ok=True)
        self.prs.save(str(output))
        return output

    # -- slide decoration ---------------------------------------------------

    def _resolve_path(self, raw: str) -> Path:
        return image_path(ImageContent(path=raw), self.base_dir)

    def _set_background(self, slide, background: Optional[Background]) -> None:
        if background is None:
            color = parse_color(self.master.theme.colors.background)
            if color is not None:
                slide.background.fill.solid()
                slide.background.fill.fore_color.rgb = color
            return

        if background.type == "image" and background.path:
            path = self._resolve_path(background.path)
            if path.is_file():
                picture = slide.shapes.add_picture(str(path), 0, 0, self.prs.slide_width, self.prs.slide_height)
                # Send to back so placeholders draw on top.
                tree = slide.shapes._spTree
                tree.remove(picture._element)
                tree.insert(2, picture._element)
            return

        fill = slide.background.fill
        if background.type == "gradient" and len(background.colors) >= 2:
            fill.gradient()
            stops = fill.gradient_stops
            first, last = parse_color(background.colors[0]), parse_color(background.colors[-1])
            if first is not None:
                stops[0].color.rgb = first
            if last is not None:
                stops[1].color.rgb = last
            if background.direction == "vertical":
                fill.gradient_angle = 90
            return

        color = parse_color(background.color or self.master.theme.colors.background)
        if color is not None:
            fill.solid()
            fill.fore_color.rgb = color

    def _add_fixed_element(self, slide, element: FixedElement) -> None:
        left, top = Inches(element.x), Inches(element.y)
        width, height = Inches(element.width), Inches(element.height)
        color = parse_color(element.color or self.master.theme.colors.primary)

        if element.type == "image":
            if element.path:
                path = self._resolve_path(element.path)
                if path.is_file():
                    slide.shapes.add_picture(str(path), left, top, width, height)
            return
        if element.type == "line":
            connector = slide.shapes.add_connector(MSO_CONNECTOR.STRAIGHT, left, top, left + width, top + height)
            if color is not None:
                connector.line.color.rgb = color
            if element.line_width:
                connector.line.width = Pt(element.line_width)
            return

        shape = slide.shapes.add_shape(MSO_AUTO_SHAPE_TYPE.RECTANGLE, left, top, width, height)
        shape.line.fill.background()
        if color is not None:
            shape.fill.solid()
            shape.fill.fore_color.rgb = color

    # -- placeholders -------------------------------------------------------

    def _add_element(self, slide, element: ResolvedElement) -> None:
        value = element.value
        if isinstance(value, ImageContent):
            self._add_image(slide, element, value)
        elif isinstance(value, TableContent):
            self._add_table(slide, element, value)
        else:
            self._add_text(slide, element)

    def _textbox(self, slide, element: ResolvedElement):
        ph = element.placeholder
        box = slide.shapes.add_textbox(Inches(ph.x), Inches(ph.y), Inches(ph.width), Inches(ph.height))
        frame = box.text_frame
        pad = ph.style.padding or Padding()
        frame.margin_left, frame.margin_right = Inches(pad.left), Inches(pad.right)
        frame.margin_top, frame.margin_bottom = Inches(pad.top), Inches(pad.bottom)
        frame.word_wrap = True
        # Sizes are already fitted; PowerPoint must not rescale them.
        frame.auto_size = MSO_AUTO_SIZE.NONE
        frame.vertical_anchor = ANCHORS.get(element.style.valign, MSO_ANCHOR.TOP)
        return box

    def _style_paragraph(self, paragraph, element: ResolvedElement, size: float, face: Optional[str] = None) -> None:
        style = element.style
        paragraph.alignment = ALIGNMENTS.get(style.align, PP_ALIGN.LEFT)
        paragraph.line_spacing = style.line_spacing
        font = paragraph.font
        font.size = Pt(size)
        font.name = face or style.font_face
        font.bold = style.bold
        font.italic = style.italic
        color = parse_color(style.color)
        if color is not None:
            font.color.rgb = color

    def _add_run(self, paragraph, text: str, run_style: Optional[TextStyle]) -> None:
        run = paragraph.add_run()
        run.text = text
        if run_style is None:
            return
        if run_style.bold is not None:
            run.font.bold = run_style.bold
        if run_style.italic is not None:
            run.font.italic = run_style.italic
        if run_style.font_size is not None:
            run.font.size = Pt(run_style.font_size)
        color = parse_color(run_style.color)
        if color is not None:
            run.font.color.rgb = color

    def _add_text(self, slide, element: ResolvedElement) -> None:
        value = element.value
        box = self._textbox(slide, element)
        frame = box.text_frame
        size = element.computed_font_size

        if isinstance(value, BulletList):
            self._fill_bullets(frame, element, value)
            return

        if isinstance(value, (CodeContent, DiagramContent)):
            face = element.style.font_face
            if isinstance(value, DiagramContent):
                ph_style = element.placeholder.style
                face = ph_style.mono_font or self.master.theme.fonts.mono or FALLBACK_MONO_FONT
            bg = parse_color(element.placeholder.style.code_bg_color or DEFAULT_CODE_BG)
            if bg is not None:
                box.fill.solid()
                box.fill.fore_color.rgb = bg
            for i, line in enumerate(value.code.split("\n")):
                paragraph = frame.paragraphs[0] if i == 0 else frame.add_paragraph()
                paragraph.text = line
                self._style_paragraph(paragraph, element, size, face=face)
                paragraph.alignment = PP_ALIGN.LEFT
            return

        if isinstance(value, TextContent) and not isinstance(value.value, str):
            paragraph = frame.paragraphs[0]
            self._style_paragraph(paragraph, element, size)
            for run in value.value:
                self._add_run(paragraph, run.text, run.style)
            return

        text = value.value if isinstance(value, TextContent) else str(value)
        for i, line in enumerate(text.split("\n")):
            paragraph = frame.paragraphs[0] if i == 0 else frame.add_paragraph()
            paragraph.text = line
            self._style_paragraph(paragraph, element, size)

    def _fill_bullets(self, frame, element: ResolvedElement, bullets: BulletList) -> None:
        rows: List[Tuple[int, str, BulletItem]] = []
        # Depth-first, preserving item order.
        pending: List[Tuple[BulletItem, int, int]] = [
            (item, 0, n) for n, item in reversed(list(enumerate(bullets.items, start=1)))
        ]
        while pending:
            item, level, number = pending.pop()
            marker = f"{number}." if bullets.ordered else BULLET_GLYPH
            rows.append((level, marker, item))
            for n, child in reversed(list(enumerate(item.children, start=1))):
                pending.append((child, level + 1, n))

        for i, (level, marker, item) in enumerate(rows):
            paragraph = frame.paragraphs[0] if i == 0 else frame.add_paragraph()
            self._style_paragraph(paragraph, element, element.computed_font_size)
            if level:
                # Same per-level indent the bullet measurer assumes.
                paragraph._p.get_or_add_pPr().set("marL", str(Inches(level * BULLET_MARGIN_IN)))
            self._add_run(paragraph, f"{marker} {item.text}", item.style)

    def _add_table(self, slide, element: ResolvedElement, table: TableContent) -> None:
        ph = element.placeholder
        rows = ([list(table.headers)] if table.headers else []) + [list(r) for r in table.rows]
        if not rows:
            return
        cols = max(len(r) for r in rows) or 1
        shape = slide.shapes.add_table(
            len(rows), cols, Inches(ph.x), Inches(ph.y), Inches(ph.width), Inches(ph.height)
        )
        grid = shape.table
        size = table_cell_size(element.computed_font_size)

        for r, row in enumerate(rows):
            for c in range(cols):
                raw = row[c] if c < len(row) else ""
                cell = grid.cell(r, c)
                text = raw.text if isinstance(raw, TableCell) else str(raw)
                cell.text = text
                for paragraph in cell.text_frame.paragraphs:
                    paragraph.font.size = Pt(size)
                    paragraph.font.name = element.style.font_face
                    if table.headers and r == 0:
                        paragraph.font.bold = True
                if isinstance(raw, TableCell):
                    self._style_cell(grid, cell, r, c, raw)

    def _style_cell(self, grid, cell, r: int, c: int, raw: TableCell) -> None:
        fill = parse_color(raw.fill)
        if fill is not None:
            cell.fill.solid()
            cell.fill.fore_color.rgb = fill
        if raw.style is not None:
            for paragraph in cell.text_frame.paragraphs:
                for run in paragraph.runs:
                    if raw.style.bold is not None:
                        run.font.bold = raw.style.bold
                    if raw.style.italic is not None:
                        run.font.italic = raw.style.italic
                    color = parse_color(raw.style.color)
                    if color is not None:
                        run.font.color.rgb = color
        span_rows = max(1, raw.row_span or 1)
        span_cols = max(1, raw.col_span or 1)
        if span_rows > 1 or span_cols > 1:
            last_r = min(r + span_rows, len(grid.rows)) - 1
            last_c = min(c + span_cols, len(grid.columns)) - 1
            if (last_r, last_c) != (r, c):
                cell.merge(grid.cell(last_r, last_c))

    def _add_image(self, slide, element: ResolvedElement, image: ImageContent) -> None:
        ph = element.placeholder
        path = image_path(image, self.base_dir)
        if image.is_remote or not path.is_file():
            # Nothing to embed; keep the alt text visible instead.
            if image.alt:
                box = self._textbox(slide, element)
                box.text_frame.text = image.alt
            return

        box = (ph.x, ph.y, ph.width, ph.height)
        if image.sizing == "stretch":
            slide.shapes.add_picture(str(path), *(Inches(v) for v in box))
            return

        with Image.open(path) as img:
            size = img.size
        if image.sizing == "cover":
            picture = slide.shapes.add_picture(str(path), *(Inches(v) for v in box))
            _crop_to_cover(picture, size, ph.width, ph.height)
            return
        slide.shapes.add_picture(str(path), *(Inches(v) for v in contain_box(size, box)))


def _crop_to_cover(picture, image_size: Tuple[int, int], width: float, height: float) -> None:
    img_w, img_h = image_size
    if img_w <= 0 or img_h <= 0 or width <= 0 or height <= 0:
        return
    image_ratio = img_w / img_h
    box_ratio = width / height
    if image_ratio > box_ratio:
        excess = 1 - box_ratio / image_ratio
        picture.crop_left = picture.crop_right = excess / 2
    elif image_ratio < box_ratio:
        excess = 1 - image_ratio / box_ratio
        picture.crop_top = picture.crop_bottom = excess / 2


def write_presentation(
    master: SlideMaster,
    slides: Sequence[ResolvedSlide],
    path,
    aspect_ratio: str = "16:9",
    base_dir: Optional[str] = None,
) -> Path:
    writer = PresentationWriter(master, aspect_ratio=aspect_ratio, base_dir=Path(base_dir) if base_dir else None)
    writer.add_slides(slides)
    return writer.save(path)
