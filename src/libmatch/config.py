"""Configuration: hash tree options, matching thresholds, environment overrides."""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_MIN_SCORE = 0.6
DEFAULT_PATH_AWARE_WEIGHT = 0.0

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


class ConfigError(ValueError):
    """Raised when a configuration value is out of range or unparsable."""


@dataclass(frozen=True)
class HashTreeConfig:
    """Options that change fingerprint hashes. Query and reference must agree."""

    filter_inner_classes: bool = False  # skip inner and anonymous classes
    filter_duplicates: bool = False  # collapse identical class hashes per package


@dataclass(frozen=True)
class MatchConfig:
    """Matching policy."""

    min_score: float = DEFAULT_MIN_SCORE
    path_aware: bool = True
    path_aware_weight: float = DEFAULT_PATH_AWARE_WEIGHT  # 0.0 = tie-break only

    def __post_init__(self) -> None:
        if not 0.0 <= self.min_score <= 1.0:
            raise ConfigError(f"min_score must be within [0, 1], got {self.min_score}")
        if not 0.0 <= self.path_aware_weight <= 1.0:
            raise ConfigError(f"path_aware_weight must be within [0, 1], got {self.path_aware_weight}")
        if self.path_aware_weight > 0.0 and not self.path_aware:
            raise ConfigError("path_aware_weight requires path-aware matching")


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from None


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name, "").strip().lower()
    if not raw:
        return default
    if raw in _TRUE_VALUES:
        return True
    if raw in _FALSE_VALUES:
        return False
    raise ConfigError(f"{name} must be a boolean, got {raw!r}")


def match_config_from_env() -> MatchConfig:
    """Build a MatchConfig from LIBMATCH_* environment variables.

    LIBMATCH_MIN_SCORE, LIBMATCH_PATH_AWARE, LIBMATCH_PATH_AWARE_WEIGHT.
    Unset variables fall back to the defaults.
    """
    return MatchConfig(
        min_score=_env_float("LIBMATCH_MIN_SCORE", DEFAULT_MIN_SCORE),
        path_aware=_env_bool("LIBMATCH_PATH_AWARE", True),
        path_aware_weight=_env_float("LIBMATCH_PATH_AWARE_WEIGHT", DEFAULT_PATH_AWARE_WEIGHT),
    )
