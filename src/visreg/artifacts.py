from __future__ import annotations

import json
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:  # pragma: no cover - import cycle guard
    from visreg.aggregator import RunResult


@dataclass(frozen=True)
class ArtifactPaths:
    diff: Path
    blessed: Path
    current: Path

    def to_dict(self) -> dict[str, str]:
        return {"diff": str(self.diff), "blessed": str(self.blessed), "current": str(self.current)}


class ArtifactWriter:
    """Owns the diff directory: failure artifacts and the text/JSON reports."""

    def __init__(self, diff_dir: Path) -> None:
        self.diff_dir = diff_dir

    @property
    def results_path(self) -> Path:
        return self.diff_dir / "results.txt"

    @property
    def warnings_path(self) -> Path:
        return self.diff_dir / "warnings.txt"

    @property
    def report_path(self) -> Path:
        return self.diff_dir / "report.json"

    def paths_for(self, name: str) -> ArtifactPaths:
        return ArtifactPaths(
            diff=self.diff_dir / f"{name}.png",
            blessed=self.diff_dir / f"{name}_Blessed.png",
            current=self.diff_dir / f"{name}_Current.png",
        )

    def prepare(self) -> None:
        """Create the diff directory and drop anything left by a previous run."""
        self.diff_dir.mkdir(parents=True, exist_ok=True)
        for entry in self.diff_dir.iterdir():
            if entry.is_dir() and not entry.is_symlink():
                shutil.rmtree(entry)
            else:
                entry.unlink()

    def persist(
        self, name: str, reference: Path, candidate: Path, diff: Path | None
    ) -> ArtifactPaths:
        paths = self.paths_for(name)
        self.diff_dir.mkdir(parents=True, exist_ok=True)
        if diff is not None:
            shutil.copyfile(diff, paths.diff)
        shutil.copyfile(reference, paths.blessed)
        shutil.copyfile(candidate, paths.current)
        return paths

    def write_reports(self, result: RunResult, extra: dict[str, Any] | None = None) -> dict[str, Any]:
        self.diff_dir.mkdir(parents=True, exist_ok=True)
        self.results_path.write_text(_join_lines(result.results_lines()))
        self.warnings_path.write_text(_join_lines(result.warning_lines()))
        payload = result.to_dict()
        for outcome in payload["outcomes"]:
            if outcome["status"] == "fail":
                outcome["artifacts"] = self.paths_for(outcome["name"]).to_dict()
        if extra:
            payload.update(extra)
        self.report_path.write_text(json.dumps(payload, indent=2, sort_keys=True))
        return payload


def _join_lines(lines: list[str]) -> str:
    return "".join(f"{line}\n" for line in lines)
