from __future__ import annotations

import re
import shutil
import tempfile
from pathlib import Path

from visreg.aggregator import classify
from visreg.artifacts import ArtifactWriter
from visreg.diff_primitive import DiffError, DiffPrimitive
from visreg.outcomes import ComparisonOutcome, OutcomeKind, diff_failed, missing_current

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.-]+")


def _scratch_prefix(name: str) -> str:
    return f"visreg-{_UNSAFE_CHARS.sub('_', name)[:40]}-"


class ImageComparator:
    """Scores one blessed/current pair and hands failures to the ArtifactWriter.

    Every comparison works in its own scratch directory, so concurrent
    workers never touch the same path; the directory is removed on every
    exit path.
    """

    def __init__(
        self,
        primitive: DiffPrimitive,
        threshold: float,
        artifacts: ArtifactWriter,
        scratch_root: Path | None = None,
    ) -> None:
        self.primitive = primitive
        self.threshold = threshold
        self.artifacts = artifacts
        self.scratch_root = scratch_root

    def compare(
        self,
        name: str,
        blessed_path: Path,
        current_path: Path,
        index: int = 0,
    ) -> ComparisonOutcome | None:
        if not current_path.exists():
            return missing_current(name, index, current_path.parent)
        if not blessed_path.exists():
            # No baseline yet; reported by the missing-blessed pass instead.
            return None

        with tempfile.TemporaryDirectory(prefix=_scratch_prefix(name), dir=self.scratch_root) as tmp_dir:
            scratch = Path(tmp_dir)
            reference = scratch / "a.png"
            candidate = scratch / "b.png"
            diff = scratch / "diff.png"
            try:
                shutil.copyfile(blessed_path, reference)
                shutil.copyfile(current_path, candidate)
                score = self.primitive.compare(candidate, reference, diff)
            except (DiffError, OSError) as exc:
                return diff_failed(name, index, str(exc))

            kind = classify(score, self.threshold)
            message = None
            if kind is OutcomeKind.FAIL:
                # Artifact problems are noted on the outcome; the fail stands.
                composite = diff if diff.exists() else None
                if composite is None:
                    message = "diff primitive produced no composite image"
                try:
                    self.artifacts.persist(name, reference, candidate, composite)
                except OSError as exc:
                    message = f"failed to store artifacts: {exc}"
            return ComparisonOutcome(name=name, kind=kind, index=index, score=score, message=message)
