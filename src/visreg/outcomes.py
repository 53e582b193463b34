from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class OutcomeKind(str, Enum):
    PASS = "pass"
    FAIL = "fail"
    WARN_MISSING_CURRENT = "missing_current"
    WARN_MISSING_BLESSED = "missing_blessed"
    WARN_DIFF_FAILED = "diff_failed"

    @property
    def is_warning(self) -> bool:
        return self not in {OutcomeKind.PASS, OutcomeKind.FAIL}


@dataclass(frozen=True)
class ComparisonOutcome:
    """Result for one image name; ``index`` is its position in enumeration order."""

    name: str
    kind: OutcomeKind
    index: int = 0
    score: float | None = None
    message: str | None = None

    @property
    def is_warning(self) -> bool:
        return self.kind.is_warning

    def result_line(self) -> str:
        return f"{self.name} {self.score}"

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name, "status": self.kind.value}
        if self.score is not None:
            data["score"] = self.score
        if self.message:
            data["message"] = self.message
        return data


def missing_current(name: str, index: int, current_dir: Any) -> ComparisonOutcome:
    return ComparisonOutcome(
        name=name,
        kind=OutcomeKind.WARN_MISSING_CURRENT,
        index=index,
        message=f"Warning: {name}.png missing in {current_dir}.",
    )


def missing_blessed(name: str, index: int, blessed_dir: Any) -> ComparisonOutcome:
    return ComparisonOutcome(
        name=name,
        kind=OutcomeKind.WARN_MISSING_BLESSED,
        index=index,
        message=f"Warning: {name}.png missing in {blessed_dir}.",
    )


def diff_failed(name: str, index: int, reason: str) -> ComparisonOutcome:
    return ComparisonOutcome(
        name=name,
        kind=OutcomeKind.WARN_DIFF_FAILED,
        index=index,
        message=f"Warning: diff failed for {name}.png: {reason}",
    )
