"""Visual regression runner for blessed vs current PNG sets."""

from .aggregator import ResultAggregator, RunResult, classify
from .config import RunConfig, load_config
from .errors import ConfigurationError, VisregError
from .outcomes import ComparisonOutcome, OutcomeKind
from .runner import run_visual_regression

__all__ = [
    "ComparisonOutcome",
    "ConfigurationError",
    "OutcomeKind",
    "ResultAggregator",
    "RunConfig",
    "RunResult",
    "VisregError",
    "classify",
    "load_config",
    "run_visual_regression",
]
