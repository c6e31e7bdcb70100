"""
Configuration constants and engine settings for growth percentile calculations.
"""

import math
import os
from typing import Optional, Tuple, Union

from pydantic import BaseModel, ValidationError, field_validator

# Reference data
METRICS = ("height", "weight")
SEXES = ("M", "F")
REFERENCE_COLUMNS = ["metric", "sex", "age_month", "L", "M", "S"]
MARKER_COLUMNS = ["p3", "p50", "p97"]

# LMS transform
L_ZERO_THRESHOLD = 1e-6
INVALID_Z = -6.0
DEGENERATE_VALUE = 0.0

# Standard normal quantile of the 97th percentile (p3 is its negation)
Z_P97 = 1.8807936081512509

# Percentile lines drawn on multi-band charts
DEFAULT_PERCENTILES = (3, 10, 25, 50, 75, 90, 97)

# Growth status thresholds in z units
STATUS_WARNING_Z = 1.0
STATUS_DANGER_Z = 2.0
TREND_Z_DELTA = 0.5
TREND_LOOKBACK_MONTHS = 3.0

# Environment variables read by EngineConfig.from_env
ENV_DEFAULT_SEX = "GROWTHPCT_DEFAULT_SEX"
ENV_AGE_POLICY = "GROWTHPCT_AGE_POLICY"

_SEX_ALIASES = {
    "m": "M",
    "male": "M",
    "1": "M",
    "boy": "M",
    "f": "F",
    "female": "F",
    "2": "F",
    "girl": "F",
}


def normalize_sex(value: Union[str, int, float, None], default: str = "M") -> str:
    """
    Normalize a caller-supplied sex value to the 'M'/'F' reference code.

    Empty or missing values (None, blank strings, NaN) fall back to
    ``default``. Integral floats such as 1.0 are read as their integer code, as
    a pandas column with gaps produces them. Anything that is not a recognised
    code is a caller error and raises ``ValueError``.

    Args:
        value: 'M'/'F', 'male'/'female' (any case), 1/2 (int or float), or None/''/NaN
        default: Code used when value is unset

    Returns:
        'M' or 'F'
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    if isinstance(value, float):
        if math.isnan(value):
            return default
        if value.is_integer():
            value = int(value)
    key = str(value).strip().lower()
    if key not in _SEX_ALIASES:
        raise ValueError(f"Unrecognised sex value: {value!r}")
    return _SEX_ALIASES[key]


class EngineConfig(BaseModel):
    """
    Settings for the growth percentile engine.

    Attributes:
        default_sex (str): Reference table used when the caller leaves sex unset. 'M' by default.
        age_policy (str): 'clamp' uses the boundary row for ages outside the table; 'reject' returns no data.
        prediction_offsets (Tuple[float, ...]): Months after the current age at which trajectories are projected.
        forward_months (int): Minimum number of months the chart extends past the current age.
        max_chart_months (int): Highest current age, in months, a chart is built for; older ages are clamped or rejected per age_policy.
        invalid_z (float): Z-score reported for non-positive or non-finite measurements.
        percentile_bounds (Tuple[float, float]): Percent range target percentiles are clamped into.
    """

    default_sex: str = "M"
    age_policy: str = "clamp"
    prediction_offsets: Tuple[float, ...] = (3.0, 6.0, 12.0)
    forward_months: int = 12
    max_chart_months: int = 240
    invalid_z: float = INVALID_Z
    percentile_bounds: Tuple[float, float] = (0.001, 99.999)

    @field_validator("default_sex", mode="before")
    @classmethod
    def validate_default_sex(cls, v: object) -> str:
        """Accept any recognised sex alias, but require one."""
        if v is None or (isinstance(v, str) and not v.strip()):
            raise ValueError("default_sex must be set")
        return normalize_sex(v)  # type: ignore[arg-type]

    @field_validator("age_policy")
    @classmethod
    def validate_age_policy(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ("clamp", "reject"):
            raise ValueError("age_policy must be 'clamp' or 'reject'")
        return v

    @field_validator("prediction_offsets")
    @classmethod
    def validate_offsets(cls, v: Tuple[float, ...]) -> Tuple[float, ...]:
        if any(offset <= 0 for offset in v):
            raise ValueError("prediction_offsets must be positive")
        return tuple(sorted(v))

    @field_validator("forward_months")
    @classmethod
    def validate_forward_months(cls, v: int) -> int:
        if v < 0:
            raise ValueError("forward_months must be >= 0")
        return v

    @field_validator("max_chart_months")
    @classmethod
    def validate_max_chart_months(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_chart_months must be >= 1")
        return v

    @field_validator("percentile_bounds")
    @classmethod
    def validate_percentile_bounds(
        cls, v: Tuple[float, float]
    ) -> Tuple[float, float]:
        low, high = v
        if not 0.0 < low < high < 100.0:
            raise ValueError("percentile_bounds must satisfy 0 < low < high < 100")
        return v

    @classmethod
    def create(cls, **kwargs: object) -> "EngineConfig":
        """Build a config, re-raising validation failures as ValueError."""
        try:
            return cls(**kwargs)  # type: ignore[arg-type]
        except ValidationError as e:
            raise ValueError(f"Invalid configuration: {e}") from e

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "EngineConfig":
        """Build a config from GROWTHPCT_* environment variables."""
        env = os.environ if environ is None else environ
        kwargs = {}
        if env.get(ENV_DEFAULT_SEX):
            kwargs["default_sex"] = env[ENV_DEFAULT_SEX]
        if env.get(ENV_AGE_POLICY):
            kwargs["age_policy"] = env[ENV_AGE_POLICY]
        return cls.create(**kwargs)
