"""CLI orchestration for slidefit."""

from __future__ import annotations

import argparse
import json
import os
import sys
import traceback
from pathlib import Path
from typing import List, Optional, Sequence

from .api import autofix_spec_file, final_compile
from .autofix import AutofixOptions, report_autofix
from .compile import CompileOptions, CompileResult, compile_deck
from .errors import BuildError, SpecValidationError
from .findings import QUALITY_PROFILES
from .llm_fixer import OpenAIFixer
from .quality import summarize
from .spec_loader import load_spec_file


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Fit, validate and build slide decks from JSON specs")
    parser.add_argument("--spec", required=True, help="Path to the JSON deck spec")
    parser.add_argument("--output", default=None, help="Output PPTX path (omit to only validate)")
    parser.add_argument(
        "--profile",
        default=None,
        choices=list(QUALITY_PROFILES),
        help='Quality profile (default: "draft", or "strict" with --autofix)',
    )
    parser.add_argument("--aspect-ratio", default=None, choices=["16:9", "4:3"], help="Override the deck aspect ratio")
    parser.add_argument(
        "--base-dir",
        default=None,
        help="Directory relative image paths resolve against (default: the spec's directory)",
    )
    parser.add_argument(
        "--font-dir",
        action="append",
        default=None,
        help="Extra directory searched for font files; repeatable (default: $SLIDEFIT_FONT_DIR)",
    )
    parser.add_argument("--autofix", action="store_true", help="Split or shorten content until the quality gate passes")
    parser.add_argument("--max-iterations", type=int, default=5, help="Max autofix passes (default: 5)")
    parser.add_argument(
        "--fixed-spec-out",
        default=None,
        help="Where to write the autofixed spec JSON (default: <output-stem>.fixed.json next to the output)",
    )
    parser.add_argument("--llm", action="store_true", help="Ask an OpenAI-compatible model when no built-in fix applies")
    parser.add_argument("--llm-model", default=None, help="Model name (default: $OPENAI_MODEL or gpt-5.1-mini)")
    parser.add_argument("--report-json", default=None, help="Optional path to write the findings report as JSON")
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Show full traceback for unexpected errors",
    )
    return parser


def _font_dirs(args: argparse.Namespace) -> List[str]:
    if args.font_dir:
        return list(args.font_dir)
    env_dir = os.getenv("SLIDEFIT_FONT_DIR", "").strip()
    return [env_dir] if env_dir else []


def print_findings(result: CompileResult, stream=None) -> None:
    out = stream or sys.stderr
    for finding in result.validations:
        if finding.severity == "info":
            continue
        print(finding.describe(), file=out)
    for qf in result.quality.findings:
        if qf.severity == "info":
            continue
        where = f" slide {qf.slide_index + 1}" if qf.slide_index is not None else ""
        print(f"{qf.severity.upper()} {qf.code}{where}: {qf.message}", file=out)


def report_payload(result: CompileResult) -> dict:
    return {
        "is_passing": result.is_passing,
        "slides": len(result.spec.slides),
        "validations": [
            {
                "slide_index": f.slide_index,
                "placeholder": f.placeholder,
                "severity": f.severity,
                "category": f.category,
                "message": f.message,
                "suggestion": f.suggestion,
            }
            for f in result.validations
        ],
        "quality": summarize(result.quality),
    }


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        spec_path = Path(args.spec).resolve()
        output_path = Path(args.output).resolve() if args.output else None
        base_dir = str(Path(args.base_dir).resolve()) if args.base_dir else str(spec_path.parent)
        common = dict(
            aspect_ratio=args.aspect_ratio,
            base_dir=base_dir,
            font_dirs=_font_dirs(args),
        )

        if args.autofix:
            fixed_out = None
            if args.fixed_spec_out:
                fixed_out = Path(args.fixed_spec_out).resolve()
            elif output_path is not None:
                fixed_out = output_path.parent / f"{output_path.stem}.fixed.json"
            options = AutofixOptions(
                profile=args.profile or "strict",
                max_iterations=args.max_iterations,
                external_fixer=OpenAIFixer(model=args.llm_model) if args.llm else None,
                **common,
            )
            fixed = autofix_spec_file(spec_path=spec_path, options=options, fixed_spec_out=fixed_out)
            report_autofix(fixed)
            if fixed_out is not None:
                print(f"Fixed spec written to {fixed_out}")
            result = final_compile(fixed)
        else:
            options = CompileOptions(profile=args.profile or "draft", **common)
            result = compile_deck(load_spec_file(spec_path), options)

        print_findings(result)

        if args.report_json:
            report_path = Path(args.report_json).resolve()
            report_path.parent.mkdir(parents=True, exist_ok=True)
            report_path.write_text(
                json.dumps(report_payload(result), indent=2, ensure_ascii=False) + "\n", encoding="utf-8"
            )

        if output_path is not None:
            saved = result.build.to_pptx_file(str(output_path))
            print(f"PPTX saved to {saved}")

        if not result.is_passing:
            reasons = "; ".join(result.quality.failing_reasons) or "validation errors exist"
            raise SystemExit(f"Quality gate failed (profile={result.quality.profile}): {reasons}")
        return 0
    except (SpecValidationError, BuildError) as e:
        raise SystemExit(str(e)) from e
    except SystemExit:
        raise
    except Exception as e:
        if args.debug:
            traceback.print_exc()
        raise SystemExit(f"slidefit failed: {e}") from e


def main() -> None:
    run_cli()


if __name__ == "__main__":
    main()
