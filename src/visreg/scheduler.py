from __future__ import annotations

from collections.abc import Callable, Iterator
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path

from visreg.comparator import ImageComparator
from visreg.outcomes import ComparisonOutcome, diff_failed, missing_blessed

ProgressCallback = Callable[[str, ComparisonOutcome | None], None]


def discover_names(directory: Path, prefix: str | None = None) -> list[str]:
    """PNG basenames (without extension) matching ``<prefix>*.png``, sorted."""
    pattern = f"{prefix or ''}*.png"
    return sorted(path.stem for path in directory.glob(pattern) if path.is_file())


class PairScheduler:
    """Dispatches comparisons over a bounded worker pool.

    ``concurrency`` is the hard cap on in-flight comparisons. Outcomes are
    yielded in completion order; callers sort afterwards.
    """

    def __init__(
        self,
        comparator: ImageComparator,
        blessed_dir: Path,
        current_dir: Path,
    ) -> None:
        self.comparator = comparator
        self.blessed_dir = blessed_dir
        self.current_dir = current_dir

    def _compare_one(self, index: int, name: str) -> ComparisonOutcome | None:
        return self.comparator.compare(
            name,
            self.blessed_dir / f"{name}.png",
            self.current_dir / f"{name}.png",
            index=index,
        )

    def run(
        self,
        names: list[str],
        concurrency: int,
        progress: ProgressCallback | None = None,
    ) -> Iterator[tuple[int, str, ComparisonOutcome | None]]:
        if concurrency <= 0:
            raise ValueError(f"concurrency must be positive, got {concurrency}")
        with ThreadPoolExecutor(max_workers=concurrency, thread_name_prefix="visreg") as pool:
            fut_to_name = {
                pool.submit(self._compare_one, index, name): (index, name)
                for index, name in enumerate(names)
            }
            for fut in as_completed(fut_to_name):
                index, name = fut_to_name[fut]
                try:
                    outcome = fut.result()
                except Exception as exc:  # noqa: BLE001
                    outcome = diff_failed(name, index, f"{type(exc).__name__}: {exc}")
                if progress is not None:
                    progress(name, outcome)
                yield index, name, outcome

    def missing_blessed(self, names: list[str]) -> list[ComparisonOutcome]:
        """Current names with no blessed counterpart, in enumeration order."""
        return [
            missing_blessed(name, index, self.blessed_dir)
            for index, name in enumerate(names)
            if not (self.blessed_dir / f"{name}.png").exists()
        ]
