"""
Chart series assembly: reference bands, observed points and projected trajectories.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence
import logging
import math

import numpy as np
import pandas as pd

from .config import DEFAULT_PERCENTILES
from .percentiles import percentile_to_z
from .resolver import StandardResolver
from .zscores import lms_value, z_to_value

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Measurement:
    age_months: float
    value: float


@dataclass(frozen=True)
class Prediction:
    age_months: float
    value: float

    def to_dict(self) -> Dict[str, float]:
        return {"ageMonths": self.age_months, "value": self.value}


@dataclass(frozen=True)
class ChartPoint:
    """
    One integer month of a growth chart.

    ``patient`` holds the observed value and ``predicted`` the projected value;
    neither is ever folded into the reference band.
    """

    age_months: int
    p3: float
    p50: float
    p97: float
    patient: Optional[float] = None
    predicted: Optional[float] = None

    def to_dict(self) -> Dict[str, Optional[float]]:
        return {
            "ageMonths": self.age_months,
            "p3": round(self.p3, 2),
            "p50": round(self.p50, 2),
            "p97": round(self.p97, 2),
            "patient": self.patient,
            "predicted": self.predicted,
        }


@dataclass(frozen=True)
class ChartSeries:
    points: List[ChartPoint]
    history: List[Measurement] = field(default_factory=list)
    predictions: List[Prediction] = field(default_factory=list)


def _coerce_measurement(item) -> Optional[Measurement]:
    """Accept Measurement, (age, value) pairs or mappings with ageMonths/age_months and value."""
    if isinstance(item, Measurement):
        age, value = item.age_months, item.value
    elif isinstance(item, Mapping):
        age = item.get("ageMonths", item.get("age_months"))
        value = item.get("value")
    elif isinstance(item, (tuple, list)) and len(item) == 2:
        age, value = item
    else:
        age, value = None, None
    try:
        age, value = float(age), float(value)
    except (TypeError, ValueError):
        logger.debug(f"Skipping unreadable history entry {item!r}")
        return None
    if not (math.isfinite(age) and math.isfinite(value)):
        logger.debug(f"Skipping non-finite history entry {item!r}")
        return None
    return Measurement(age_months=age, value=value)


def normalize_history(history: Optional[Iterable]) -> List[Measurement]:
    measurements = []
    for item in history or ():
        measurement = _coerce_measurement(item)
        if measurement is not None:
            measurements.append(measurement)
    return measurements


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def predict_trajectory(
    resolver: StandardResolver,
    metric: str,
    sex: str,
    current_age_months: float,
    target_percentile: float,
) -> List[Prediction]:
    """
    Project the value at ``target_percentile`` at each configured offset past the current age.

    Offsets whose age has no reference data are left out.
    """
    config = resolver.config
    z = percentile_to_z(target_percentile, config.percentile_bounds)
    predictions = []
    for offset in config.prediction_offsets:
        age = current_age_months + offset
        lms = resolver.resolve(metric, sex, age)
        if lms is None:
            continue
        predictions.append(
            Prediction(age_months=round(age, 1), value=round(z_to_value(z, lms), 2))
        )
    return predictions


def build_chart_data(
    resolver: StandardResolver,
    metric: str,
    sex: str,
    current_age_months: float,
    target_percentile: float,
    observed_history: Optional[Iterable] = None,
) -> ChartSeries:
    """
    Assemble the chart for months 0 .. max(table max age, ceil(current age) + forward months).

    The current age is capped at the config's max_chart_months; past it the
    chart is built at the cap, or empty under age_policy='reject'.

    Every month carries the reference band. An observed value is attached to
    the month its age rounds to (later entries win) and predicted values are
    attached only at the configured offsets from the current age.

    Returns:
        ChartSeries with points, normalized history and predictions; points is
        empty when there is no reference data for metric and sex, or when a
        rejected current age is past the ceiling
    """
    history = normalize_history(observed_history)
    max_age = resolver.store.max_age(metric, sex)
    if max_age is None:
        return ChartSeries(points=[], history=history, predictions=[])

    current = float(current_age_months)
    if not math.isfinite(current):
        current = 0.0
    ceiling = resolver.config.max_chart_months
    if current > ceiling:
        if resolver.config.age_policy == "reject":
            logger.debug(f"Current age {current} beyond chart ceiling of {ceiling} months")
            return ChartSeries(points=[], history=history, predictions=[])
        logger.debug(f"Current age {current} beyond chart ceiling; using {ceiling}")
        current = float(ceiling)
    forward = math.ceil(current) + resolver.config.forward_months
    last_month = max(max_age, forward)

    observed: Dict[int, float] = {}
    for measurement in history:
        month = _round_half_up(measurement.age_months)
        if 0 <= month <= last_month:
            observed[month] = measurement.value

    predictions = predict_trajectory(resolver, metric, sex, current, target_percentile)
    predicted: Dict[int, float] = {}
    for prediction in predictions:
        month = _round_half_up(prediction.age_months)
        if 0 <= month <= last_month:
            predicted[month] = prediction.value

    points = []
    for month in range(last_month + 1):
        lms = resolver.resolve(metric, sex, month)
        if lms is None:
            # age_policy='reject' leaves months past the table without a band
            band = (math.nan, math.nan, math.nan)
        else:
            band = (lms.p3, lms.p50, lms.p97)
        points.append(
            ChartPoint(
                age_months=month,
                p3=band[0],
                p50=band[1],
                p97=band[2],
                patient=observed.get(month),
                predicted=predicted.get(month),
            )
        )
    return ChartSeries(points=points, history=history, predictions=predictions)


def build_series(
    resolver: StandardResolver,
    metric: str,
    sex: str,
    current_age_months: float,
    target_percentile: float,
    observed_history: Optional[Iterable] = None,
) -> List[ChartPoint]:
    """Chart points only; see build_chart_data."""
    return build_chart_data(
        resolver, metric, sex, current_age_months, target_percentile, observed_history
    ).points


def percentile_bands(
    resolver: StandardResolver,
    metric: str,
    sex: str,
    ages: Sequence[float],
    percentiles: Sequence[float] = DEFAULT_PERCENTILES,
) -> pd.DataFrame:
    """
    Values at several percentiles for each age, for multi-band charts.

    Returns:
        DataFrame indexed by age with one column per percentile ('p3', 'p10', ...);
        rows are NaN where the age has no reference data
    """
    ages = [float(a) for a in ages]
    columns = [f"p{p:g}" for p in percentiles]
    resolved = [resolver.resolve(metric, sex, a) for a in ages]
    valid = np.array([lms is not None for lms in resolved], dtype=bool)

    L = np.array([lms.L if lms is not None else np.nan for lms in resolved], dtype=np.float64)
    M = np.array([lms.M if lms is not None else np.nan for lms in resolved], dtype=np.float64)
    S = np.array([lms.S if lms is not None else np.nan for lms in resolved], dtype=np.float64)

    data = {}
    for col, p in zip(columns, percentiles):
        z = percentile_to_z(p, resolver.config.percentile_bounds)
        values = np.full(len(ages), np.nan, dtype=np.float64)
        if np.any(valid):
            values[valid] = lms_value(
                np.full(int(valid.sum()), z), L[valid], M[valid], S[valid]
            )
        data[col] = values
    return pd.DataFrame(data, index=pd.Index(ages, name="age_months"))
