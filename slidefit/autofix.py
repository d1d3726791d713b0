"""Iterative compile -> fix loop over a deck spec."""

from __future__ import annotations

import copy
import math
import sys
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple, Union

from .compile import CompileOptions, CompileResult, compile_deck
from .findings import OVERFLOW, Finding, QualityFinding
from .fix_actions import (
    FixAction,
    apply_fix_actions,
    insert_continuation,
    mark_continued,
    split_diagram,
    split_paragraphs,
    split_structured,
)
from .layout_engine import LayoutEngine
from .models import DeckSpec, DiagramContent, SlideMaster, SlideSpec, plain_text
from .quality import DIAGRAM_MIN_FONT, DIAGRAM_TOO_DENSE, MIN_FONT_SIZE

# Called with the working spec and the latest compile; returns proposed actions.
ExternalFixer = Callable[[DeckSpec, CompileResult], Sequence[FixAction]]

FIXABLE_QUALITY_CODES = (MIN_FONT_SIZE, DIAGRAM_MIN_FONT, DIAGRAM_TOO_DENSE)
OVERFLOW_SHORTEN_MARGIN = 0.9
HEADING_KEYS = ("title", "subtitle")


@dataclass
class AutofixOptions(CompileOptions):
    profile: str = "strict"
    max_iterations: int = 5
    external_fixer: Optional[ExternalFixer] = None


@dataclass
class AutofixAttempt:
    iteration: int
    compile: CompileResult
    applied_fixes: List[str] = field(default_factory=list)


@dataclass
class AutofixResult:
    original: DeckSpec
    fixed: DeckSpec
    attempts: List[AutofixAttempt]
    is_passing: bool
    final: Optional[CompileResult] = None


_Op = Tuple[str, int, Union[Finding, QualityFinding]]


def autofix_deck(spec: DeckSpec, options: Optional[AutofixOptions] = None) -> AutofixResult:
    """Compile ``spec`` and apply structural fixes until it passes or stalls.

    Works on a deep copy; ``spec`` is returned untouched as ``original``.
    Stops on success, on an iteration that changes nothing, or after
    ``max_iterations`` attempts.
    """
    opts = options or AutofixOptions()
    current = copy.deepcopy(spec)
    attempts: List[AutofixAttempt] = []

    with LayoutEngine(font_dirs=opts.font_dirs) as engine:
        for iteration in range(1, max(1, opts.max_iterations) + 1):
            # Each attempt keeps the spec it was compiled from.
            result = compile_deck(copy.deepcopy(current), opts, engine=engine)
            attempt = AutofixAttempt(iteration=iteration, compile=result)
            attempts.append(attempt)

            if result.is_passing:
                return AutofixResult(spec, current, attempts, True, final=result)

            changed = apply_deterministic_fixes(current, result, opts.profile, attempt.applied_fixes)

            if not changed and opts.external_fixer is not None:
                try:
                    actions = opts.external_fixer(current, result)
                    applied = apply_fix_actions(current, list(actions))
                except Exception as exc:
                    attempt.applied_fixes.append(f"llm:error:{exc}")
                else:
                    attempt.applied_fixes.extend(f"llm:{entry}" for entry in applied.applied)
                    changed = applied.changed

            if not changed:
                break

        final = compile_deck(current, opts, engine=engine)

    return AutofixResult(spec, current, attempts, final.is_passing, final=final)


def collect_fix_ops(result: CompileResult, profile: str) -> List[_Op]:
    ops: List[_Op] = []
    for finding in result.validations:
        if finding.category != OVERFLOW:
            continue
        if finding.severity == "error" or (finding.severity == "warning" and profile in ("standard", "strict")):
            ops.append(("overflow", finding.slide_index, finding))

    if profile != "draft":
        for qf in result.quality.findings:
            if qf.slide_index is None or qf.code not in FIXABLE_QUALITY_CODES:
                continue
            if profile == "standard" and qf.severity == "info":
                continue
            if profile == "strict" and qf.severity != "error":
                continue
            ops.append(("quality", qf.slide_index, qf))

    # Later slides first so insertions never shift a pending index.
    ops.sort(key=lambda op: (-op[1], 0 if op[0] == "overflow" else 1))
    return ops


def apply_deterministic_fixes(spec: DeckSpec, result: CompileResult, profile: str, log: List[str]) -> bool:
    changed = False
    for kind, _, finding in collect_fix_ops(result, profile):
        if kind == "overflow":
            fixed = _fix_overflow(spec, finding, log)
        else:
            fixed = _fix_quality(spec, spec.master, finding, profile, log)
        changed = changed or fixed
    return changed


def _slide_value(spec: DeckSpec, slide_index: int, placeholder: Optional[str]):
    if placeholder is None or not 0 <= slide_index < len(spec.slides):
        return None, None
    slide = spec.slides[slide_index]
    return slide, slide.data.get(placeholder)


def _split_or_shorten(
    spec: DeckSpec,
    slide_index: int,
    placeholder: str,
    ratio: Optional[float],
    log: List[str],
    tag: str,
) -> bool:
    slide, value = _slide_value(spec, slide_index, placeholder)
    if value is None:
        return False

    halves = split_structured(value)
    if halves is not None:
        insert_continuation(spec, slide_index, placeholder, *halves)
        log.append(f"split {value.type}{tag}: slide={slide_index} placeholder={placeholder}")
        return True
    if isinstance(value, DiagramContent):
        return False

    text = plain_text(value)
    if not text:
        return False
    paragraphs = split_paragraphs(text)
    if paragraphs is not None:
        insert_continuation(spec, slide_index, placeholder, *paragraphs)
        log.append(f"split paragraphs{tag}: slide={slide_index} placeholder={placeholder}")
        return True

    if ratio is None or not 0 < ratio < 1:
        return False
    new_length = max(0, math.floor(len(text) * ratio))
    if new_length >= len(text):
        return False
    slide.data[placeholder] = text[:new_length]
    log.append(f"shorten text{tag}: slide={slide_index} placeholder={placeholder}")
    return True


def _fix_overflow(spec: DeckSpec, finding: Finding, log: List[str]) -> bool:
    ratio = None
    detail = finding.detail
    if detail is not None and detail.content_height > 0:
        fit = detail.available_height / detail.content_height
        ratio = fit * OVERFLOW_SHORTEN_MARGIN if 0 < fit < 1 else None
    return _split_or_shorten(spec, finding.slide_index, finding.placeholder, ratio, log, "")


def _fix_quality(spec: DeckSpec, master: SlideMaster, finding: QualityFinding, profile: str, log: List[str]) -> bool:
    if finding.code == MIN_FONT_SIZE:
        ratio = 0.8 if profile == "strict" else 0.9
        return _split_or_shorten(spec, finding.slide_index, finding.placeholder, ratio, log, " (min-font)")
    return _fix_diagram(spec, master, finding, log)


def best_image_placeholder(master: SlideMaster) -> Optional[Tuple[str, str]]:
    """(layout, placeholder) of the largest image placeholder in the master."""
    best = None
    best_area = -1.0
    for layout_name, layout in master.layouts.items():
        for ph in layout.placeholders:
            if ph.type == "image" and ph.area > best_area:
                best, best_area = (layout_name, ph.name), ph.area
    return best


def _fix_diagram(spec: DeckSpec, master: SlideMaster, finding: QualityFinding, log: List[str]) -> bool:
    index = finding.slide_index
    slide, value = _slide_value(spec, index, finding.placeholder)
    if not isinstance(value, DiagramContent):
        return False

    best = best_image_placeholder(master)
    if best is not None:
        layout_name, target = best
        alone = all(key in HEADING_KEYS or key == finding.placeholder for key in slide.data)
        if not alone:
            moved = SlideSpec(layout=layout_name, data={})
            if "title" in slide.data:
                moved.data["title"] = copy.deepcopy(slide.data["title"])
            moved.data[target] = value
            mark_continued(moved)
            del slide.data[finding.placeholder]
            spec.slides.insert(index + 1, moved)
            log.append(
                f"move diagram to new slide: from slide={index} -> slide={index + 1} "
                f"layout={layout_name} placeholder={target}"
            )
            return True
        if slide.layout != layout_name or finding.placeholder != target:
            slide.layout = layout_name
            del slide.data[finding.placeholder]
            slide.data[target] = value
            log.append(f"move diagram to best image layout (in-place): slide={index} layout={layout_name} placeholder={target}")
            return True

    halves = split_diagram(value)
    if halves is None:
        return False
    insert_continuation(spec, index, finding.placeholder, *halves)
    log.append(f"split diagram: slide={index} placeholder={finding.placeholder}")
    return True


def report_autofix(result: AutofixResult, stream=None) -> None:
    """Print the attempt history the way the CLI shows it."""
    out = stream or sys.stdout
    for attempt in result.attempts:
        quality = attempt.compile.quality
        status = "pass" if attempt.compile.is_passing else "fail"
        print(f"Autofix pass {attempt.iteration}: {status} ({len(attempt.compile.spec.slides)} slides)", file=out)
        for reason in quality.failing_reasons:
            print(f"  ! {reason}", file=out)
        for fix in attempt.applied_fixes[:12]:
            print(f"  - {fix}", file=out)
    verdict = "passing" if result.is_passing else "not passing"
    print(f"Autofix finished after {len(result.attempts)} pass(es): {verdict}", file=out)
