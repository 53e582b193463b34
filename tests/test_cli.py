from __future__ import annotations

import json
from pathlib import Path

from typer.testing import CliRunner

import visreg.cli as cli
from visreg.cli import app

from helpers import make_sets, write_split_png

runner = CliRunner()


def test_cli_success_exit_code(tmp_path: Path) -> None:
    base = make_sets(tmp_path / "vr", {"a": (255, 255, 255)}, {"a": (255, 255, 255)})
    report = tmp_path / "report.json"

    result = runner.invoke(
        app,
        [str(base), "--primitive", "phash", "--jobs", "2", "--quiet", "--report", str(report)],
    )

    assert result.exit_code == 0, result.output
    assert "Success - All diffs under threshold!" in result.output
    assert json.loads(report.read_text())["status"] == "pass"


def test_cli_fail_exit_code(tmp_path: Path) -> None:
    base = tmp_path / "vr"
    write_split_png(base / "blessed" / "a.png", black_left=True)
    write_split_png(base / "current" / "a.png", black_left=False)

    result = runner.invoke(app, [str(base), "--primitive", "phash", "-j", "1", "-q"])

    assert result.exit_code == 1
    assert "You have 1 fail(s):" in result.output
    assert (base / "diff" / "a_Current.png").exists()


def test_cli_missing_directory(tmp_path: Path) -> None:
    result = runner.invoke(app, [str(tmp_path / "nowhere"), "-q"])

    assert result.exit_code == 1
    assert "E1001_CURRENT_DIR_MISSING" in result.output


def test_cli_unknown_primitive(tmp_path: Path) -> None:
    base = make_sets(tmp_path / "vr", {"a": (255, 255, 255)}, {"a": (255, 255, 255)})

    result = runner.invoke(app, [str(base), "--primitive", "nope", "-q"])

    assert result.exit_code == 1
    assert "E1011_PRIMITIVE_UNKNOWN" in result.output


def test_cli_rejects_nan_threshold(tmp_path: Path) -> None:
    base = make_sets(tmp_path / "vr", {"a": (255, 255, 255)}, {"a": (255, 255, 255)})

    result = runner.invoke(app, [str(base), "--threshold", "nan", "--primitive", "phash", "-q"])

    assert result.exit_code == 1
    assert "E1010_CONFIG_INVALID" in result.output


def test_cli_loads_default_config(monkeypatch, tmp_path: Path) -> None:
    base = tmp_path / "vr"
    write_split_png(base / "blessed" / "a.png", black_left=True)
    write_split_png(base / "current" / "a.png", black_left=False)
    config = tmp_path / "visual_regression.v1.yaml"
    config.write_text(
        "visual_regression:\n"
        f"  base_dir: {base}\n"
        "  threshold: 100\n"
        "  primitive: phash\n"
        "  concurrency: 1\n"
    )
    monkeypatch.setattr(cli, "DEFAULT_CONFIG", config)

    result = runner.invoke(app, ["-q"])

    assert result.exit_code == 0, result.output
    assert "Success - All diffs under threshold!" in result.output
