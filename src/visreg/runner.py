from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import typer

from visreg.aggregator import ResultAggregator, RunResult
from visreg.artifacts import ArtifactWriter
from visreg.comparator import ImageComparator
from visreg.config import RunConfig
from visreg.diff_primitive import DiffPrimitive, resolve_primitive
from visreg.errors import ConfigurationError
from visreg.outcomes import ComparisonOutcome, OutcomeKind
from visreg.scheduler import PairScheduler, discover_names

Echo = Callable[..., None]

_FOLDER_HINT = "Generate both image sets first and run from the directory holding the base folder."


def _count_pngs(directory: Path) -> int:
    return sum(1 for path in directory.glob("*.png") if path.is_file())


def check_preconditions(config: RunConfig) -> tuple[int, int]:
    """Return (current, blessed) PNG counts or raise ConfigurationError."""
    if not config.current_dir.is_dir():
        raise ConfigurationError(
            "E1001_CURRENT_DIR_MISSING",
            f"Directory {config.current_dir} missing.",
            f"Generate the current images first. {_FOLDER_HINT}",
        )
    if not config.blessed_dir.is_dir():
        raise ConfigurationError(
            "E1002_BLESSED_DIR_MISSING",
            f"Directory {config.blessed_dir} missing.",
            f"Generate or fetch the blessed images first. {_FOLDER_HINT}",
        )
    total_current = _count_pngs(config.current_dir)
    total_blessed = _count_pngs(config.blessed_dir)
    if total_current < 1:
        raise ConfigurationError(
            "E1003_CURRENT_EMPTY",
            f"Found no pngs in {config.current_dir}.",
            f"Generate the current images first. {_FOLDER_HINT}",
        )
    if total_blessed < 1:
        raise ConfigurationError(
            "E1004_BLESSED_EMPTY",
            f"Found no pngs in {config.blessed_dir}.",
            "Generate the blessed images first, ideally from the last accepted state.",
        )
    return total_current, total_blessed


def _echo_failure(echo: Echo, outcome: ComparisonOutcome, config: RunConfig, writer: ArtifactWriter) -> None:
    echo("")
    echo(f"Test: {outcome.name}")
    echo(f"  PHASH value exceeds threshold: {outcome.score} > {config.threshold}")
    if outcome.message:
        echo(f"  Warning: {outcome.message}")
    else:
        echo(f"  Image diff stored in {writer.paths_for(outcome.name).diff}")


def _print_summary(echo: Echo, result: RunResult, config: RunConfig, writer: ArtifactWriter) -> None:
    echo("")
    echo(f"Results stored in {writer.results_path}")
    echo(f"All images with a difference over threshold, {config.threshold}, are")
    echo(f"available in {config.diff_dir}, sorted by perceptual hash.")
    echo("")
    if result.num_warnings > 0:
        echo(f"You have {result.num_warnings} warning(s):")
        for line in result.warning_lines():
            echo(f"  {line}")
    if result.num_fails > 0:
        echo(f"You have {result.num_fails} fail(s):")
        for line in result.results_lines()[: result.num_fails]:
            echo(line)
    else:
        echo(result.summary_line())


def run_visual_regression(
    config: RunConfig,
    primitive: DiffPrimitive | None = None,
    echo: Echo = typer.echo,
    show_progress: bool = True,
) -> RunResult:
    total_current, total_blessed = check_preconditions(config)
    if total_current != total_blessed:
        echo(
            f"Warning: Number of current images ({total_current}) is not the same as "
            f"blessed images ({total_blessed}). Continuing anyways."
        )
    else:
        echo(
            f"Found {total_current} current and {total_blessed} blessed png files "
            "(not tested if valid). Continuing."
        )
    if config.prefix:
        echo(f"Only processing images matching: {config.pattern}")

    if primitive is None:
        primitive = resolve_primitive(config.primitive, config.timeout_sec, config.highlight_color)

    writer = ArtifactWriter(config.diff_dir)
    writer.prepare()
    comparator = ImageComparator(primitive, config.threshold, writer)
    scheduler = PairScheduler(comparator, config.blessed_dir, config.current_dir)
    aggregator = ResultAggregator(config.threshold)

    names = discover_names(config.current_dir, config.prefix)
    echo(
        f"Running {len(names)} tests with threshold {config.threshold} "
        f"(nproc={config.concurrency}, primitive={primitive.name})..."
    )

    with typer.progressbar(
        length=len(names),
        label="Progress",
        hidden=not show_progress,
    ) as bar:
        for _, _, outcome in scheduler.run(
            names, config.concurrency, progress=lambda _name, _outcome: bar.update(1)
        ):
            if outcome is None:
                continue
            if outcome.kind is OutcomeKind.FAIL:
                _echo_failure(echo, outcome, config, writer)
            aggregator.add(outcome)

    # All comparisons are done past this point.
    for outcome in scheduler.missing_blessed(names):
        aggregator.add(outcome)

    result = aggregator.finalize()
    extra: dict[str, Any] = {
        "base_dir": str(config.base_dir),
        "prefix": config.prefix,
        "concurrency": config.concurrency,
        "primitive": primitive.name,
    }
    writer.write_reports(result, extra=extra)
    _print_summary(echo, result, config, writer)
    return result

