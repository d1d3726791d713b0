"""Layout fitting, overflow resolution and autofix for declarative slide decks."""

from .api import autofix_spec_file, build_pptx_from_spec
from .autofix import AutofixOptions, AutofixResult, autofix_deck
from .compile import BuildResult, CompileOptions, CompileResult, compile_deck
from .errors import BuildError, FontLoadError, SpecValidationError
from .fix_actions import FixAction, apply_fix_actions
from .layout_engine import LayoutEngine
from .spec_loader import deck_from_dict, deck_to_dict, load_spec_file, validate_spec
from .text_measurer import TextMeasurer

__all__ = [
    "AutofixOptions",
    "AutofixResult",
    "BuildError",
    "BuildResult",
    "CompileOptions",
    "CompileResult",
    "FixAction",
    "FontLoadError",
    "LayoutEngine",
    "SpecValidationError",
    "TextMeasurer",
    "apply_fix_actions",
    "autofix_deck",
    "autofix_spec_file",
    "build_pptx_from_spec",
    "compile_deck",
    "deck_from_dict",
    "deck_to_dict",
    "load_spec_file",
    "validate_spec",
]
