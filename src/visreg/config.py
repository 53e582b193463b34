from __future__ import annotations

import math
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from visreg.errors import ConfigurationError

DEFAULT_BASE_DIR = Path("visual_regression")
DEFAULT_THRESHOLD = 0.01
DEFAULT_TIMEOUT_SEC = 60.0
DEFAULT_HIGHLIGHT_COLOR = "#ff000050"
NPROC_ENV = "VISREG_NPROC"
CONFIG_SECTION = "visual_regression"


def physical_core_count() -> int:
    try:
        count = len(os.sched_getaffinity(0))
    except AttributeError:
        count = os.cpu_count() or 1
    return max(1, count)


def default_concurrency() -> int:
    env_value = os.environ.get(NPROC_ENV)
    if not env_value:
        return physical_core_count()
    try:
        value = int(env_value)
    except ValueError as exc:
        raise ConfigurationError(
            "E1010_CONFIG_INVALID",
            f"{NPROC_ENV} must be an integer, got {env_value!r}.",
            f"Unset {NPROC_ENV} or set it to a positive integer.",
        ) from exc
    if value <= 0:
        raise ConfigurationError(
            "E1010_CONFIG_INVALID",
            f"{NPROC_ENV} must be positive, got {value}.",
            f"Unset {NPROC_ENV} or set it to a positive integer.",
        )
    return value


@dataclass(frozen=True)
class RunConfig:
    base_dir: Path = DEFAULT_BASE_DIR
    threshold: float = DEFAULT_THRESHOLD
    prefix: str | None = None
    concurrency: int = field(default_factory=default_concurrency)
    timeout_sec: float | None = DEFAULT_TIMEOUT_SEC
    primitive: str = "auto"
    highlight_color: str = DEFAULT_HIGHLIGHT_COLOR

    def __post_init__(self) -> None:
        object.__setattr__(self, "base_dir", Path(self.base_dir))
        if not math.isfinite(self.threshold) or self.threshold < 0:
            raise ConfigurationError(
                "E1010_CONFIG_INVALID",
                f"threshold must be a finite non-negative number, got {self.threshold}.",
                "Use --threshold with a finite value >= 0.",
            )
        if self.concurrency <= 0:
            raise ConfigurationError(
                "E1010_CONFIG_INVALID",
                f"concurrency must be positive, got {self.concurrency}.",
                "Use --jobs with a value >= 1.",
            )
        if self.timeout_sec is not None and self.timeout_sec <= 0:
            object.__setattr__(self, "timeout_sec", None)

    @property
    def blessed_dir(self) -> Path:
        return self.base_dir / "blessed"

    @property
    def current_dir(self) -> Path:
        return self.base_dir / "current"

    @property
    def diff_dir(self) -> Path:
        return self.base_dir / "diff"

    @property
    def pattern(self) -> str:
        return f"{self.prefix or ''}*.png"


def _load_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text())
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigurationError(
            "E1010_CONFIG_INVALID",
            f"Failed to read config {path}: {exc}",
            "Check the config path and YAML syntax.",
        ) from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            "E1010_CONFIG_INVALID",
            f"Expected mapping at top of YAML: {path}",
            "Put options under a 'visual_regression' mapping.",
        )
    return data


def load_config(path: Path | None = None, **overrides: Any) -> RunConfig:
    """Build a RunConfig from an optional YAML file plus explicit overrides.

    Overrides that are ``None`` fall through to the file value, then to the
    built-in default.
    """
    section: dict[str, Any] = {}
    if path is not None:
        data = _load_yaml(path)
        section = data.get(CONFIG_SECTION, {}) or {}
        if not isinstance(section, dict):
            raise ConfigurationError(
                "E1010_CONFIG_INVALID",
                f"'{CONFIG_SECTION}' must be a mapping in {path}.",
                "Put options under a 'visual_regression' mapping.",
            )

    values: dict[str, Any] = {}
    try:
        if "base_dir" in section:
            values["base_dir"] = Path(str(section["base_dir"])).expanduser()
        if "threshold" in section:
            values["threshold"] = float(section["threshold"])
        if section.get("prefix") is not None:
            values["prefix"] = str(section["prefix"])
        if "concurrency" in section:
            values["concurrency"] = int(section["concurrency"])
        if "timeout_sec" in section:
            raw_timeout = section["timeout_sec"]
            values["timeout_sec"] = float(raw_timeout) if raw_timeout is not None else None
        if "primitive" in section:
            values["primitive"] = str(section["primitive"])
        if "highlight_color" in section:
            values["highlight_color"] = str(section["highlight_color"])
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(
            "E1010_CONFIG_INVALID",
            f"Invalid config value: {exc}",
            "Ensure threshold/timeout_sec are numeric and concurrency is an integer.",
        ) from exc

    values.update({key: value for key, value in overrides.items() if value is not None})
    return RunConfig(**values)
