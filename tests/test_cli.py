from __future__ import annotations

import json
from pathlib import Path

import pytest

from slidefit.cli import run_cli


def _write_spec(path: Path, items: int = 12, overflow: str = "error") -> Path:
    spec = {
        "master": {
            "name": "cli",
            "theme": {"font_paths": {"heading": "fixed.ttf", "body": "fixed.ttf"}},
            "layouts": {
                "content": {
                    "placeholders": [
                        {"name": "title", "type": "title", "x": 0.75, "y": 0.5, "width": 11.8, "height": 1.0},
                        {
                            "name": "body",
                            "type": "body",
                            "x": 0.75,
                            "y": 1.75,
                            "width": 11.8,
                            "height": 1.0,
                            "style": {"font_size": 16},
                            "constraints": {"overflow": overflow},
                        },
                    ]
                }
            },
        },
        "slides": [
            {
                "layout": "content",
                "data": {"title": "Agenda", "body": {"type": "bullet", "items": [f"Item {i}" for i in range(items)]}},
            }
        ],
    }
    path.write_text(json.dumps(spec), encoding="utf-8")
    return path


def test_cli_reports_validation_error_cleanly(tmp_path: Path) -> None:
    bad = tmp_path / "bad.json"
    bad.write_text('{"master": {}, "slides": "oops"}', encoding="utf-8")
    with pytest.raises(SystemExit) as exc:
        run_cli(["--spec", str(bad)])
    assert "Deck spec validation failed" in str(exc.value.code)
    assert "slides is required and must be a list" in str(exc.value.code)


def test_cli_refuses_to_write_invalid_build(fixed_fonts, tmp_path: Path, capsys) -> None:
    spec = _write_spec(tmp_path / "deck.json")
    output = tmp_path / "deck.pptx"
    with pytest.raises(SystemExit) as exc:
        run_cli(["--spec", str(spec), "--output", str(output)])
    assert "Cannot write presentation" in str(exc.value.code)
    assert not output.exists()
    assert "ERROR overflow slide 1 [body]" in capsys.readouterr().err


def test_cli_autofix_writes_deck_and_fixed_spec(fixed_fonts, tmp_path: Path, capsys) -> None:
    spec = _write_spec(tmp_path / "deck.json")
    output = tmp_path / "out" / "deck.pptx"
    report = tmp_path / "report.json"

    assert run_cli(["--spec", str(spec), "--output", str(output), "--autofix", "--report-json", str(report)]) == 0

    assert output.exists()
    fixed = json.loads((tmp_path / "out" / "deck.fixed.json").read_text(encoding="utf-8"))
    assert len(fixed["slides"]) == 4
    payload = json.loads(report.read_text(encoding="utf-8"))
    assert payload["is_passing"] is True
    assert payload["quality"]["profile"] == "strict"
    stdout = capsys.readouterr().out
    assert "Autofix finished after 3 pass(es): passing" in stdout
    assert "PPTX saved to" in stdout


def test_cli_quality_gate_failure_exits_nonzero(fixed_fonts, tmp_path: Path) -> None:
    spec = _write_spec(tmp_path / "deck.json", overflow="warn")
    with pytest.raises(SystemExit) as exc:
        run_cli(["--spec", str(spec), "--profile", "standard"])
    assert "Quality gate failed (profile=standard): overflow warnings: 1" in str(exc.value.code)


def test_cli_font_dir_defaults_from_environment(fixed_fonts, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    from slidefit import cli

    seen = {}

    def fake_compile(spec, options):
        seen["font_dirs"] = options.font_dirs
        raise RuntimeError("stop here")

    monkeypatch.setenv("SLIDEFIT_FONT_DIR", str(tmp_path))
    monkeypatch.setattr(cli, "compile_deck", fake_compile)
    spec = _write_spec(tmp_path / "deck.json", items=2)
    with pytest.raises(SystemExit) as exc:
        run_cli(["--spec", str(spec)])
    assert seen["font_dirs"] == [str(tmp_path)]
    assert "slidefit failed: stop here" in str(exc.value.code)
