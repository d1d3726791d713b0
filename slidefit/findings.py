"""Validation and quality finding records."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

SEVERITIES = ("error", "warning", "info")

OVERFLOW = "overflow"
MARGIN_OVERFLOW = "margin-overflow"
UNKNOWN_LAYOUT = "unknown-layout"
UNKNOWN_PLACEHOLDER = "unknown-placeholder"
MISSING_PLACEHOLDER = "missing-placeholder"
FONT_NOT_FOUND = "font-not-found"
IMAGE_NOT_FOUND = "image-not-found"

QUALITY_PROFILES = ("draft", "standard", "strict")


@dataclass(frozen=True)
class OverflowDetail:
    """Measured numbers behind an overflow finding (inches / points)."""

    content_height: float
    available_height: float
    content_width: Optional[float] = None
    available_width: Optional[float] = None
    current_font_size: Optional[float] = None
    suggested_font_size: Optional[float] = None

    @property
    def fit_ratio(self) -> Optional[float]:
        if self.content_height <= 0:
            return None
        return self.available_height / self.content_height


@dataclass(frozen=True)
class Finding:
    slide_index: int
    placeholder: str
    severity: str
    category: str
    message: str
    detail: Optional[OverflowDetail] = None
    suggestion: Optional[str] = None

    def describe(self) -> str:
        where = f"slide {self.slide_index + 1}"
        if self.placeholder:
            where += f" [{self.placeholder}]"
        text = f"{self.severity.upper()} {self.category} {where}: {self.message}"
        if self.suggestion:
            text += f" ({self.suggestion})"
        return text


@dataclass(frozen=True)
class QualityFinding:
    severity: str
    code: str
    message: str
    slide_index: Optional[int] = None
    placeholder: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass
class QualityReport:
    profile: str
    is_passing: bool
    findings: List[QualityFinding] = field(default_factory=list)
    validations: List[Finding] = field(default_factory=list)
    failing_reasons: List[str] = field(default_factory=list)


def has_errors(findings: List[Finding]) -> bool:
    return any(f.severity == "error" for f in findings)
