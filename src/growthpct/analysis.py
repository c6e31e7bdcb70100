"""
Growth status and trend classification on top of the percentile engine.
"""

from dataclasses import dataclass
from typing import Optional, Sequence
import math

from .config import (
    STATUS_DANGER_Z,
    STATUS_WARNING_Z,
    TREND_LOOKBACK_MONTHS,
    TREND_Z_DELTA,
)
from .engine import GrowthPercentileEngine, SexInput
from .percentiles import round_percentile, round_zscore, z_to_percentile
from .series import Measurement, normalize_history


@dataclass(frozen=True)
class GrowthAnalysis:
    z_score: Optional[float]
    percentile: Optional[float]
    status: str
    trend: str


def classify_status(z: float) -> str:
    """
    'danger' beyond ±2 z, 'warning' between ±1 and ±2 z, otherwise 'normal'.
    """
    magnitude = abs(z)
    if magnitude > STATUS_DANGER_Z:
        return "danger"
    if magnitude > STATUS_WARNING_Z:
        return "warning"
    return "normal"


def summarize_trend(current_z: float, past_z: Optional[float]) -> str:
    """
    Compare the current z-score with an earlier one.

    A rise of more than half a z unit is 'faster', a drop of more than half a
    unit is 'slower', anything in between 'stable'. Without an earlier value
    the trend is 'insufficient'.
    """
    if past_z is None or not math.isfinite(past_z):
        return "insufficient"
    delta = current_z - past_z
    if delta > TREND_Z_DELTA:
        return "faster"
    if delta < -TREND_Z_DELTA:
        return "slower"
    return "stable"


def _closest_prior(
    visits: Sequence[Measurement], current_index: int, target_age: float
) -> Optional[Measurement]:
    current_age = visits[current_index].age_months
    candidates = [
        v for i, v in enumerate(visits) if i != current_index and v.age_months < current_age
    ]
    if not candidates:
        return None
    return min(candidates, key=lambda v: abs(v.age_months - target_age))


def analyze_growth(
    engine: GrowthPercentileEngine,
    metric: str,
    sex: SexInput,
    visits: Sequence,
    current_index: int = -1,
) -> GrowthAnalysis:
    """
    Z-score, percentile, status and trend for one visit in a measurement history.

    The trend compares against the visit closest to three months before the
    current one.

    Args:
        engine: Engine providing the reference data
        metric: 'height' or 'weight'
        sex: Any value accepted by normalize_sex
        visits: Measurements, (age, value) pairs or mappings
        current_index: Index of the visit to analyse (default: last)

    Returns:
        GrowthAnalysis; z_score and percentile are None when there is no
        reference data or no usable visit
    """
    measurements = normalize_history(visits)
    if not measurements:
        return GrowthAnalysis(None, None, "normal", "insufficient")
    if current_index < 0:
        current_index += len(measurements)
    if not 0 <= current_index < len(measurements):
        raise IndexError(f"current_index {current_index} out of range")

    current = measurements[current_index]
    z = engine.zscore(metric, sex, current.age_months, current.value)
    if z is None:
        return GrowthAnalysis(None, None, "normal", "insufficient")

    past = _closest_prior(
        measurements, current_index, current.age_months - TREND_LOOKBACK_MONTHS
    )
    past_z = None
    if past is not None:
        past_z = engine.zscore(metric, sex, past.age_months, past.value)

    return GrowthAnalysis(
        z_score=round_zscore(z),
        percentile=round_percentile(z_to_percentile(z)),
        status=classify_status(z),
        trend=summarize_trend(z, past_z),
    )
