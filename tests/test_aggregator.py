from __future__ import annotations

import pytest

from visreg.aggregator import ResultAggregator, classify
from visreg.outcomes import ComparisonOutcome, OutcomeKind, missing_blessed, missing_current


def _scored(name: str, score: float, index: int, threshold: float = 0.01) -> ComparisonOutcome:
    return ComparisonOutcome(name=name, kind=classify(score, threshold), index=index, score=score)


def test_classify_is_strict() -> None:
    assert classify(0.01, 0.01) is OutcomeKind.PASS
    assert classify(0.0100001, 0.01) is OutcomeKind.FAIL
    assert classify(0.0, 0.0) is OutcomeKind.PASS
    assert classify(5.0, 0.01) is OutcomeKind.FAIL


def test_finalize_orders_failures_then_passes_by_score() -> None:
    aggregator = ResultAggregator(threshold=0.01)
    for outcome in [
        _scored("a", 0.005, 0),
        _scored("b", 2.0, 1),
        _scored("c", 0.0, 2),
        _scored("d", 7.5, 3),
        _scored("e", 0.01, 4),
    ]:
        aggregator.add(outcome)

    result = aggregator.finalize()

    assert [item.name for item in result.failures] == ["d", "b"]
    assert [item.name for item in result.passes] == ["e", "a", "c"]
    assert result.results_lines() == ["d 7.5", "b 2.0", "e 0.01", "a 0.005", "c 0.0"]
    assert result.num_fails == 2
    assert result.total == 5
    assert not result.success
    assert result.summary_line() == "2 fail(s)"


def test_ties_keep_enumeration_order_regardless_of_arrival() -> None:
    aggregator = ResultAggregator(threshold=0.01)
    for outcome in [_scored("z", 3.0, 2), _scored("x", 3.0, 0), _scored("y", 3.0, 1)]:
        aggregator.add(outcome)

    result = aggregator.finalize()

    assert [item.name for item in result.failures] == ["x", "y", "z"]


def test_warnings_counted_and_missing_blessed_last(tmp_path) -> None:
    aggregator = ResultAggregator(threshold=0.01)
    aggregator.add(missing_blessed("c", 0, tmp_path / "blessed"))
    aggregator.add(_scored("a", 0.0, 1))
    aggregator.add(missing_current("b", 2, tmp_path / "current"))

    result = aggregator.finalize()

    assert result.num_warnings == 2
    assert result.num_fails == 0
    assert result.success
    assert [item.kind for item in result.warnings] == [
        OutcomeKind.WARN_MISSING_CURRENT,
        OutcomeKind.WARN_MISSING_BLESSED,
    ]
    assert result.warning_lines()[1].endswith("c.png missing in " + str(tmp_path / "blessed") + ".")
    assert result.summary_line() == "Success - All diffs under threshold!"


def test_finalize_is_idempotent_and_freezes() -> None:
    aggregator = ResultAggregator(threshold=0.01)
    aggregator.add(_scored("a", 1.0, 0))

    first = aggregator.finalize()
    second = aggregator.finalize()

    assert first is second
    with pytest.raises(RuntimeError):
        aggregator.add(_scored("b", 1.0, 1))


def test_to_dict_summary() -> None:
    aggregator = ResultAggregator(threshold=0.5)
    aggregator.add(_scored("a", 1.0, 0, threshold=0.5))
    aggregator.add(_scored("b", 0.25, 1, threshold=0.5))

    payload = aggregator.finalize().to_dict()

    assert payload["status"] == "fail"
    assert payload["summary"] == {
        "total": 2,
        "passed": 1,
        "failed": 1,
        "warnings": 0,
        "threshold": 0.5,
    }
    assert payload["outcomes"][0] == {"name": "a", "status": "fail", "score": 1.0}
