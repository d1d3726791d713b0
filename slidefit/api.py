"""Public API helpers for programmatic deck builds."""

from __future__ import annotations

import dataclasses
from pathlib import Path
from typing import Optional, Union

from .autofix import AutofixOptions, AutofixResult, autofix_deck
from .compile import CompileOptions, CompileResult, compile_deck
from .spec_loader import load_spec_file, write_spec_file


def build_pptx_from_spec(
    *,
    spec_path: Path,
    output_path: Path,
    options: Optional[CompileOptions] = None,
) -> Path:
    """Compile a spec file and write the deck; raises BuildError when validation fails."""
    spec_path = Path(spec_path)
    opts = options or CompileOptions()
    if opts.base_dir is None:
        opts = dataclasses.replace(opts, base_dir=str(spec_path.resolve().parent))
    result = compile_deck(load_spec_file(spec_path), opts)
    return result.build.to_pptx_file(str(output_path))


def autofix_spec_file(
    *,
    spec_path: Path,
    options: Optional[AutofixOptions] = None,
    fixed_spec_out: Optional[Path] = None,
) -> AutofixResult:
    """Run the autofix loop on a spec file, optionally writing the fixed spec next to it."""
    spec_path = Path(spec_path)
    opts = options or AutofixOptions()
    if opts.base_dir is None:
        opts = dataclasses.replace(opts, base_dir=str(spec_path.resolve().parent))
    result = autofix_deck(load_spec_file(spec_path), opts)
    if fixed_spec_out is not None:
        write_spec_file(result.fixed, Path(fixed_spec_out))
    return result


def final_compile(result: Union[AutofixResult, CompileResult]) -> CompileResult:
    if isinstance(result, AutofixResult):
        return result.final if result.final is not None else result.attempts[-1].compile
    return result
