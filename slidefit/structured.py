"""Height models for bullet lists and tables."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

from .models import BulletItem, BulletList, TableContent
from .text_measurer import PT_PER_INCH, GlyphFont, TextMeasurer

# python-pptx and PowerPoint both default the bullet margin to 27pt; the
# text of a level-n item starts at (n + 1) * 27pt.
BULLET_MARGIN_IN = 27 / PT_PER_INCH

TABLE_FONT_OFFSET_PT = 2.0
TABLE_ROW_PADDING_IN = 0.1
TABLE_MIN_CELL_PT = 1.0


@dataclass
class BulletMeasureOptions:
    indent_width: float = BULLET_MARGIN_IN
    bullet_width: float = BULLET_MARGIN_IN
    item_spacing: float = 0.0
    paragraph_spacing_ratio: float = 0.0


@dataclass(frozen=True)
class BulletMeasureResult:
    height: float  # inches
    width: float  # inches
    total_items: int


def measure_bullet_list(
    bullets: BulletList,
    measurer: TextMeasurer,
    font: GlyphFont,
    font_size: float,
    max_width: float,
    line_spacing: float,
    options: Optional[BulletMeasureOptions] = None,
) -> BulletMeasureResult:
    """Measure a nested bullet list, depth first in document order.

    Once an item's indent leaves no room for text it counts as one nominal
    line and its children are not visited.
    """
    opts = options or BulletMeasureOptions()
    total_height = 0.0
    widest = 0.0
    total_items = 0

    # Stack of (item, level), reversed so items pop in document order.
    stack: List[Tuple[BulletItem, int]] = [(item, 0) for item in reversed(bullets.items)]
    while stack:
        item, level = stack.pop()
        total_items += 1
        indent = level * opts.indent_width + opts.bullet_width
        available = max_width - indent

        if available <= 0:
            total_height += font_size * line_spacing / PT_PER_INCH
            continue

        size = font_size
        if item.style is not None and item.style.font_size is not None:
            size = item.style.font_size
        result = measurer.measure(item.text, font, size, available, line_spacing)
        paragraph_spacing = size * line_spacing / PT_PER_INCH * opts.paragraph_spacing_ratio
        total_height += result.height + opts.item_spacing + paragraph_spacing
        widest = max(widest, result.width + indent)

        for child in reversed(item.children):
            stack.append((child, level + 1))

    return BulletMeasureResult(height=total_height, width=widest, total_items=total_items)


def table_cell_size(font_size: float) -> float:
    """Font size a table cell is rendered at for a placeholder size."""
    return max(TABLE_MIN_CELL_PT, font_size - TABLE_FONT_OFFSET_PT)


def measure_table(table: TableContent, font_size: float, line_spacing: float) -> float:
    """Estimated table height in inches from the row count alone."""
    row_height = table_cell_size(font_size) * line_spacing / PT_PER_INCH + TABLE_ROW_PADDING_IN
    return table.row_count * row_height
