from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from visreg.outcomes import ComparisonOutcome, OutcomeKind


def classify(score: float, threshold: float) -> OutcomeKind:
    """Strictly greater than the threshold fails; equal passes."""
    if score > threshold:
        return OutcomeKind.FAIL
    return OutcomeKind.PASS


def _by_score_desc(outcomes: list[ComparisonOutcome]) -> list[ComparisonOutcome]:
    ordered = sorted(outcomes, key=lambda item: item.index)
    return sorted(ordered, key=lambda item: -(item.score or 0.0))


@dataclass(frozen=True)
class RunResult:
    threshold: float
    failures: tuple[ComparisonOutcome, ...]
    passes: tuple[ComparisonOutcome, ...]
    warnings: tuple[ComparisonOutcome, ...]

    @property
    def outcomes(self) -> tuple[ComparisonOutcome, ...]:
        return self.failures + self.passes

    @property
    def num_fails(self) -> int:
        return len(self.failures)

    @property
    def num_warnings(self) -> int:
        return len(self.warnings)

    @property
    def total(self) -> int:
        return len(self.failures) + len(self.passes)

    @property
    def success(self) -> bool:
        return self.num_fails == 0

    def results_lines(self) -> list[str]:
        return [outcome.result_line() for outcome in self.outcomes]

    def warning_lines(self) -> list[str]:
        return [outcome.message or f"Warning: {outcome.name}.png" for outcome in self.warnings]

    def summary_line(self) -> str:
        if self.success:
            return "Success - All diffs under threshold!"
        return f"{self.num_fails} fail(s)"

    def to_dict(self) -> dict[str, Any]:
        return {
            "summary": {
                "total": self.total,
                "passed": len(self.passes),
                "failed": self.num_fails,
                "warnings": self.num_warnings,
                "threshold": self.threshold,
            },
            "status": "pass" if self.success else "fail",
            "outcomes": [outcome.to_dict() for outcome in self.outcomes],
            "warnings": [outcome.to_dict() for outcome in self.warnings],
        }


class ResultAggregator:
    """Collects outcomes from the coordinating thread and sorts them once."""

    def __init__(self, threshold: float) -> None:
        self.threshold = threshold
        self._outcomes: list[ComparisonOutcome] = []
        self._result: RunResult | None = None

    def add(self, outcome: ComparisonOutcome) -> None:
        if self._result is not None:
            raise RuntimeError("ResultAggregator already finalized.")
        self._outcomes.append(outcome)

    def finalize(self) -> RunResult:
        if self._result is not None:
            return self._result
        failures = [item for item in self._outcomes if item.kind is OutcomeKind.FAIL]
        passes = [item for item in self._outcomes if item.kind is OutcomeKind.PASS]
        # Comparator warnings come before the post-hoc missing-blessed pass.
        warnings = sorted(
            (item for item in self._outcomes if item.is_warning),
            key=lambda item: (item.kind is OutcomeKind.WARN_MISSING_BLESSED, item.index),
        )
        self._result = RunResult(
            threshold=self.threshold,
            failures=tuple(_by_score_desc(failures)),
            passes=tuple(_by_score_desc(passes)),
            warnings=tuple(warnings),
        )
        return self._result
