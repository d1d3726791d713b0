"""Glyph-level text measurement, line wrapping and font-size fitting.

Widths come from the font's own advance widths and pair kerning (read
through Pillow/FreeType), so a wrap decision matches what a renderer using
the same font file would do. Wrapping understands CJK text: ideographs
break one character at a time and the kinsoku rules keep closing
punctuation off line starts and opening punctuation off line ends.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple, TypeVar

from PIL import ImageFont

from .errors import FontLoadError

PT_PER_INCH = 72.0
FIT_PRECISION_PT = 0.5

# Fonts are loaded at this pixel size; one pixel then equals one font unit
# on a 1000-unit em square.
REFERENCE_SIZE = 1000

# Characters that must not begin a line.
LINE_START_PROHIBITED = frozenset(
    "、。，．・：；？！゛゜´｀¨＾￣＿ヽヾゝゞ〃仝々〆〇ー―‐／＼〜‖｜…‥’”）〕］｝〉》」』】°′″℃％‰"
    "ぁぃぅぇぉっゃゅょゎァィゥェォッャュョヮヵヶ"
    ")]},.;:!?-"
)

# Characters that must not end a line.
LINE_END_PROHIBITED = frozenset("（〔［｛〈《「『【‘“([{")

BREAKABLE_SPACE = (" ", "\t")

T = TypeVar("T")


def is_cjk(ch: str) -> bool:
    code = ord(ch)
    return (
        0x3000 <= code <= 0x9FFF  # CJK symbols, kana, unified ideographs
        or 0xF900 <= code <= 0xFAFF  # compatibility ideographs
        or 0xFF00 <= code <= 0xFFEF  # halfwidth / fullwidth forms
        or code >= 0x20000  # supplementary ideograph planes
    )


class GlyphFont:
    """Advance widths and kerning of one outline font, in font units.

    Faces load with Pillow's basic layout, so pair kerning comes from the
    legacy ``kern`` table only. Fonts that kern solely through GPOS measure
    with zero kerning.
    """

    units_per_em = REFERENCE_SIZE

    def __init__(self, face: ImageFont.FreeTypeFont, path: str = ""):
        self.face = face
        self.path = path
        self._advances: Dict[str, float] = {}
        self._kerning: Dict[Tuple[str, str], float] = {}

    @classmethod
    def from_path(cls, path: str) -> "GlyphFont":
        try:
            face = ImageFont.truetype(path, size=REFERENCE_SIZE, layout_engine=ImageFont.Layout.BASIC)
        except (OSError, ValueError) as exc:
            raise FontLoadError(path, str(exc)) from exc
        return cls(face, path=path)

    def advance(self, ch: str) -> float:
        width = self._advances.get(ch)
        if width is None:
            width = float(self.face.getlength(ch))
            self._advances[ch] = width
        return width

    def kerning(self, left: str, right: str) -> float:
        key = (left, right)
        value = self._kerning.get(key)
        if value is None:
            pair = float(self.face.getlength(left + right))
            value = pair - self.advance(left) - self.advance(right)
            self._kerning[key] = value
        return value


class FontCache:
    """Loads font files once per path.

    Two threads racing on the same path may both parse it; the first one to
    store wins and the other copy is discarded.
    """

    def __init__(self) -> None:
        self._fonts: Dict[str, GlyphFont] = {}
        self._lock = threading.Lock()

    def load(self, path: str) -> GlyphFont:
        key = str(Path(path))
        cached = self._fonts.get(key)
        if cached is not None:
            return cached
        font = GlyphFont.from_path(key)
        with self._lock:
            return self._fonts.setdefault(key, font)

    def clear(self) -> None:
        with self._lock:
            self._fonts.clear()

    def __len__(self) -> int:
        return len(self._fonts)


@dataclass(frozen=True)
class MeasureResult:
    width: float  # inches
    height: float  # inches
    line_count: int
    lines: Tuple[str, ...]


@dataclass(frozen=True)
class FittingResult:
    font_size: float
    measure: MeasureResult


def size_grid(min_pt: float, max_pt: float) -> List[float]:
    """Candidate sizes: the floor, every 0.5pt step above it, and the ceiling."""
    sizes = [float(min_pt)]
    step = int(min_pt // FIT_PRECISION_PT) + 1
    while step * FIT_PRECISION_PT < max_pt:
        sizes.append(step * FIT_PRECISION_PT)
        step += 1
    if max_pt > min_pt:
        sizes.append(float(max_pt))
    return sizes


def largest_fitting(
    min_pt: float,
    max_pt: float,
    probe: Callable[[float], Tuple[bool, T]],
) -> Optional[Tuple[float, T]]:
    """Binary search the size grid for the largest size whose probe fits.

    ``probe(size)`` returns ``(fits, payload)``. Returns ``None`` when even
    ``min_pt`` does not fit.
    """
    sizes = size_grid(min_pt, max_pt)
    fits, payload = probe(sizes[0])
    if not fits:
        return None
    best = (sizes[0], payload)
    if len(sizes) == 1:
        return best

    fits, top_payload = probe(sizes[-1])
    if fits:
        return sizes[-1], top_payload

    lo, hi = 0, len(sizes) - 1
    while hi - lo > 1:
        mid = (lo + hi) // 2
        fits, mid_payload = probe(sizes[mid])
        if fits:
            lo = mid
            best = (sizes[mid], mid_payload)
        else:
            hi = mid
    return best


class TextMeasurer:
    def __init__(self, cache: Optional[FontCache] = None):
        self.cache = cache if cache is not None else FontCache()

    def load_font(self, path: str) -> GlyphFont:
        return self.cache.load(path)

    def clear_cache(self) -> None:
        self.cache.clear()

    def measure_width(self, text: str, font: GlyphFont, font_size_pt: float) -> float:
        """Width of ``text`` in points: advances plus pair kerning."""
        if not text:
            return 0.0
        total = 0.0
        prev: Optional[str] = None
        for ch in text:
            total += font.advance(ch)
            if prev is not None:
                total += font.kerning(prev, ch)
            prev = ch
        return total * font_size_pt / font.units_per_em

    def wrap(self, text: str, font: GlyphFont, font_size_pt: float, max_width_in: float) -> List[str]:
        max_width_pt = max_width_in * PT_PER_INCH
        lines: List[str] = []
        for paragraph in text.split("\n"):
            if not paragraph:
                lines.append("")
                continue
            lines.extend(self._wrap_paragraph(paragraph, font, font_size_pt, max_width_pt))
        return lines

    def measure(
        self,
        text: str,
        font: GlyphFont,
        font_size_pt: float,
        max_width_in: float,
        line_spacing: float = 1.2,
    ) -> MeasureResult:
        lines = self.wrap(text, font, font_size_pt, max_width_in)
        widest = max((self.measure_width(line, font, font_size_pt) for line in lines), default=0.0)
        line_height_pt = font_size_pt * line_spacing
        return MeasureResult(
            width=widest / PT_PER_INCH,
            height=len(lines) * line_height_pt / PT_PER_INCH,
            line_count=len(lines),
            lines=tuple(lines),
        )

    def find_fitting_font_size(
        self,
        text: str,
        font: GlyphFont,
        max_width_in: float,
        max_height_in: float,
        min_pt: float,
        max_pt: float,
        line_spacing: float = 1.2,
    ) -> Optional[FittingResult]:
        def probe(size: float) -> Tuple[bool, MeasureResult]:
            result = self.measure(text, font, size, max_width_in, line_spacing)
            return result.height <= max_height_in, result

        found = largest_fitting(min_pt, max(min_pt, max_pt), probe)
        if found is None:
            return None
        size, result = found
        return FittingResult(font_size=size, measure=result)

    # -- wrapping internals -------------------------------------------------

    def _wrap_paragraph(self, text: str, font: GlyphFont, size: float, max_width_pt: float) -> List[str]:
        lines: List[str] = []
        current = ""
        i = 0
        n = len(text)

        while i < n:
            ch = text[i]

            if ch in BREAKABLE_SPACE:
                current += ch
                i += 1
                continue

            if is_cjk(ch):
                current = self._place(lines, current, ch, font, size, max_width_pt)
                i += 1
                continue

            j = i
            while j < n and text[j] not in BREAKABLE_SPACE and not is_cjk(text[j]):
                j += 1
            word = text[i:j]
            i = j

            if self.measure_width(word, font, size) <= max_width_pt:
                current = self._place(lines, current, word, font, size, max_width_pt)
                continue

            # Word longer than a full line: hard split per character.
            for part in word:
                current = self._place(lines, current, part, font, size, max_width_pt)

        if current.rstrip():
            lines.append(current.rstrip())
        return lines or [""]

    def _place(
        self,
        lines: List[str],
        current: str,
        piece: str,
        font: GlyphFont,
        size: float,
        max_width_pt: float,
    ) -> str:
        """Append ``piece`` to the open line, breaking first if it would overflow."""
        if not current.strip() or self.measure_width(current + piece, font, size) <= max_width_pt:
            return current + piece
        if current[-1] in BREAKABLE_SPACE:
            # A space is always a legal break; kinsoku only governs joined text.
            lines.append(current.rstrip())
            return piece
        head, carry = _kinsoku_split(current, piece[0])
        if head:
            lines.append(head)
        return carry + piece


def _kinsoku_split(line: str, incoming: str) -> Tuple[str, str]:
    """Split an overflowing line into (committed head, carried tail).

    The carried tail moves to the next line together with ``incoming``.
    """
    head, carry = line, ""
    if incoming in LINE_START_PROHIBITED:
        if len(head) < 2:
            # Nothing to pull down; keep the pair together on this line.
            return "", head
        head, carry = head[:-1], head[-1]
    while head and head[-1] in LINE_END_PROHIBITED:
        head, carry = head[:-1], head[-1] + carry
    return head.rstrip(), carry
