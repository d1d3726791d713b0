from __future__ import annotations

import json
from pathlib import Path

from slidefit.api import autofix_spec_file, build_pptx_from_spec
from slidefit.autofix import AutofixOptions
from slidefit.compile import CompileOptions


def _spec(path: Path) -> Path:
    path.write_text(
        json.dumps(
            {
                "master": {
                    "name": "api",
                    "theme": {"font_paths": {"heading": "fixed.ttf", "body": "fixed.ttf"}},
                    "layouts": {
                        "content": {
                            "placeholders": [
                                {"name": "body", "type": "body", "x": 0.75, "y": 1.5, "width": 11.8, "height": 4.0}
                            ]
                        }
                    },
                },
                "slides": [{"layout": "content", "data": {"body": "Hello"}}],
            }
        ),
        encoding="utf-8",
    )
    return path


def test_build_leaves_caller_options_untouched(fixed_fonts, tmp_path: Path) -> None:
    options = CompileOptions(profile="standard")
    spec_path = _spec(tmp_path / "deck.json")
    out = build_pptx_from_spec(spec_path=spec_path, output_path=tmp_path / "deck.pptx", options=options)
    assert out.exists()
    assert options.base_dir is None


def test_autofix_leaves_caller_options_untouched(fixed_fonts, tmp_path: Path) -> None:
    options = AutofixOptions(max_iterations=2)
    fixed_out = tmp_path / "fixed.json"
    result = autofix_spec_file(spec_path=_spec(tmp_path / "deck.json"), options=options, fixed_spec_out=fixed_out)
    assert result.is_passing
    assert options.base_dir is None
    assert json.loads(fixed_out.read_text(encoding="utf-8"))["slides"][0]["data"]["body"] == "Hello"
