from __future__ import annotations

import json
from pathlib import Path

import typer

from visreg.config import DEFAULT_BASE_DIR, load_config
from visreg.diff_primitive import PRIMITIVE_NAMES
from visreg.errors import VisregError
from visreg.runner import run_visual_regression

REPO_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_CONFIG = REPO_ROOT / "config" / "visual_regression.v1.yaml"

app = typer.Typer(add_completion=False, help="Compare current renders against blessed images.")


@app.command()
def main(
    base_dir: Path | None = typer.Argument(
        None,
        file_okay=False,
        help=f"Folder holding blessed/, current/ and diff/ (default: ./{DEFAULT_BASE_DIR}).",
    ),
    prefix: str | None = typer.Argument(
        None,
        help="Only test images whose name starts with this prefix (not a regex).",
    ),
    threshold: float | None = typer.Option(
        None,
        "--threshold",
        "-t",
        help="Scores strictly above this value fail (default 0.01).",
    ),
    jobs: int | None = typer.Option(
        None,
        "--jobs",
        "-j",
        help="Maximum simultaneous comparisons (default: core count or VISREG_NPROC).",
    ),
    timeout: float | None = typer.Option(
        None,
        "--timeout",
        help="Per-comparison timeout in seconds for external tools; 0 disables.",
    ),
    primitive: str | None = typer.Option(
        None,
        "--primitive",
        help=f"Diff primitive: {', '.join(PRIMITIVE_NAMES)}.",
    ),
    config: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        exists=True,
        dir_okay=False,
        readable=True,
        help="YAML config with a visual_regression section (default: config/visual_regression.v1.yaml).",
    ),
    report: Path | None = typer.Option(
        None,
        "--report",
        dir_okay=False,
        help="Optional extra path to write the JSON report.",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Hide the progress bar.",
    ),
) -> None:
    """Run the visual regression comparison and write reports under diff/."""
    if config is None and DEFAULT_CONFIG.is_file():
        config = DEFAULT_CONFIG
    try:
        run_config = load_config(
            config,
            base_dir=base_dir,
            prefix=prefix,
            threshold=threshold,
            concurrency=jobs,
            timeout_sec=timeout,
            primitive=primitive,
        )
        result = run_visual_regression(run_config, show_progress=not quiet)
    except VisregError as exc:
        typer.echo(f"ERROR {exc.code}: {exc.message}", err=True)
        typer.echo(f"HINT: {exc.hint}", err=True)
        typer.echo("Exiting without running visual regression tests.", err=True)
        raise typer.Exit(code=1)

    if report is not None:
        payload = json.loads((run_config.diff_dir / "report.json").read_text())
        report.parent.mkdir(parents=True, exist_ok=True)
        report.write_text(json.dumps(payload, indent=2, sort_keys=True))
    raise typer.Exit(code=0 if result.success else 1)


if __name__ == "__main__":
    app(prog_name="visual-regress")
