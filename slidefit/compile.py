"""One compile pass: resolve, validate layout, evaluate quality, gate the build."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union

from .errors import BuildError
from .findings import Finding, QualityReport, has_errors
from .layout_engine import LayoutEngine
from .models import DeckSpec, Margins, ResolvedSlide, SlideMaster
from .quality import ReadabilityThresholds, evaluate_quality
from .render import write_presentation
from .resolver import resolve_slide


@dataclass
class CompileOptions:
    profile: str = "draft"
    thresholds: Optional[Union[ReadabilityThresholds, Dict[str, float]]] = None
    aspect_ratio: Optional[str] = None
    margins: Optional[Margins] = None
    base_dir: Optional[str] = None
    font_dirs: List[str] = field(default_factory=list)

    def readability(self) -> ReadabilityThresholds:
        if isinstance(self.thresholds, ReadabilityThresholds):
            return self.thresholds
        return ReadabilityThresholds().merged(self.thresholds)


@dataclass
class BuildResult:
    is_valid: bool
    validations: List[Finding]
    master: SlideMaster
    slides: List[ResolvedSlide]
    aspect_ratio: str
    base_dir: Optional[str] = None

    def error_messages(self) -> List[str]:
        return [f.describe() for f in self.validations if f.severity == "error"]

    def to_pptx_file(self, path: str) -> Path:
        if not self.is_valid:
            raise BuildError(self.error_messages())
        return write_presentation(
            self.master,
            self.slides,
            path,
            aspect_ratio=self.aspect_ratio,
            base_dir=self.base_dir,
        )


@dataclass
class CompileResult:
    spec: DeckSpec
    resolved_slides: List[ResolvedSlide]
    validations: List[Finding]
    quality: QualityReport
    build: BuildResult

    @property
    def is_passing(self) -> bool:
        return self.build.is_valid and self.quality.is_passing


def resolve_aspect_ratio(spec: DeckSpec, options: CompileOptions) -> str:
    return options.aspect_ratio or spec.aspect_ratio or spec.master.aspect_ratio or "16:9"


def compile_deck(
    spec: DeckSpec,
    options: Optional[CompileOptions] = None,
    engine: Optional[LayoutEngine] = None,
) -> CompileResult:
    """Run one full pass over ``spec``.

    The spec is not modified. When ``engine`` is given its font cache is
    reused and left open; otherwise a private engine is created and closed.
    """
    opts = options or CompileOptions()
    owns_engine = engine is None
    layout = engine if engine is not None else LayoutEngine(font_dirs=opts.font_dirs)
    base_dir = Path(opts.base_dir) if opts.base_dir else None
    aspect_ratio = resolve_aspect_ratio(spec, opts)

    validations: List[Finding] = []
    resolved: List[ResolvedSlide] = []
    try:
        for index, slide in enumerate(spec.slides):
            resolved_slide, findings = resolve_slide(slide, spec.master, index, base_dir)
            validations.extend(findings)
            resolved.append(resolved_slide)

        laid_out: List[ResolvedSlide] = []
        for resolved_slide in resolved:
            check = layout.validate_slide(
                resolved_slide,
                spec.master,
                aspect_ratio=aspect_ratio,
                margins=opts.margins,
            )
            validations.extend(check.findings)
            laid_out.append(_apply_font_sizes(resolved_slide, check.font_sizes))
    finally:
        if owns_engine:
            layout.close()

    quality = evaluate_quality(spec, laid_out, validations, profile=opts.profile, thresholds=opts.readability())
    build = BuildResult(
        is_valid=not has_errors(validations),
        validations=validations,
        master=spec.master,
        slides=laid_out,
        aspect_ratio=aspect_ratio,
        base_dir=opts.base_dir,
    )
    return CompileResult(
        spec=spec,
        resolved_slides=laid_out,
        validations=validations,
        quality=quality,
        build=build,
    )


def _apply_font_sizes(slide: ResolvedSlide, font_sizes: Dict[str, float]) -> ResolvedSlide:
    elements = tuple(
        dataclasses.replace(el, computed_font_size=font_sizes.get(el.placeholder.name, el.computed_font_size))
        for el in slide.elements
    )
    return dataclasses.replace(slide, elements=elements)
