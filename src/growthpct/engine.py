"""
Public growth percentile operations.

GrowthPercentileEngine wires the reference store, resolver, LMS transform and
percentile conversion together behind the calls presentation and report
layers use. Module-level functions of the same names run against a shared
engine built from the bundled reference tables.
"""

from typing import Iterable, List, Optional, Union
import logging
import threading

import pandas as pd

from .config import DEFAULT_PERCENTILES, EngineConfig, normalize_sex
from .percentiles import (
    percentile_to_z,
    round_percentile,
    round_zscore,
    z_to_percentile,
)
from .reference import ReferenceTableStore, get_default_store
from .resolver import LMSParams, StandardResolver
from .series import (
    ChartPoint,
    ChartSeries,
    build_chart_data,
    percentile_bands,
    predict_trajectory,
    Prediction,
)
from .zscores import value_to_z, z_to_value

logger = logging.getLogger(__name__)

SexInput = Union[str, int, None]


class GrowthPercentileEngine:
    """
    Stateless percentile engine over an immutable reference table.

    Every operation returns None when the (metric, sex) pair has no reference
    data and otherwise a finite number; bad measurements never raise.

    Usage:
        engine = GrowthPercentileEngine()
        engine.percentile_from_value("height", "male", 24, 87.82)  # 50.0
    """

    def __init__(
        self,
        store: Optional[ReferenceTableStore] = None,
        config: Optional[EngineConfig] = None,
    ):
        self.config = config or EngineConfig()
        self.store = store if store is not None else get_default_store()
        self.resolver = StandardResolver(self.store, self.config)

    def _sex(self, sex: SexInput) -> str:
        return normalize_sex(sex, self.config.default_sex)

    def resolve(self, metric: str, sex: SexInput, age_months: float) -> Optional[LMSParams]:
        sex_code = self._sex(sex)
        lms = self.resolver.resolve(metric, sex_code, age_months)
        if lms is None:
            logger.debug(f"No reference data for {metric}_{sex_code} at {age_months} months")
        return lms

    def zscore(self, metric: str, sex: SexInput, age_months: float, value: float) -> Optional[float]:
        """Unrounded z-score of a measurement, or None without reference data."""
        lms = self.resolve(metric, sex, age_months)
        if lms is None:
            return None
        return value_to_z(value, lms, self.config.invalid_z)

    def value_at_percentile(
        self, metric: str, sex: SexInput, age_months: float, percentile: float
    ) -> Optional[float]:
        """Measurement expected at ``percentile`` for the given age and sex."""
        lms = self.resolve(metric, sex, age_months)
        if lms is None:
            return None
        z = percentile_to_z(percentile, self.config.percentile_bounds)
        return z_to_value(z, lms)

    def percentile_from_value(
        self, metric: str, sex: SexInput, age_months: float, value: float
    ) -> Optional[float]:
        """Percentile of a measurement, rounded to 1 decimal."""
        z = self.zscore(metric, sex, age_months, value)
        if z is None:
            return None
        return round_percentile(z_to_percentile(z))

    def zscore_from_value(
        self, metric: str, sex: SexInput, age_months: float, value: float
    ) -> Optional[float]:
        """Z-score of a measurement, rounded to 2 decimals."""
        z = self.zscore(metric, sex, age_months, value)
        if z is None:
            return None
        return round_zscore(z)

    def predictions(
        self, metric: str, sex: SexInput, current_age_months: float, percentile: float
    ) -> List[Prediction]:
        return predict_trajectory(
            self.resolver, metric, self._sex(sex), current_age_months, percentile
        )

    def build_chart_data(
        self,
        metric: str,
        sex: SexInput,
        current_age_months: float,
        percentile: float,
        observed_history: Optional[Iterable] = None,
    ) -> ChartSeries:
        return build_chart_data(
            self.resolver,
            metric,
            self._sex(sex),
            current_age_months,
            percentile,
            observed_history,
        )

    def build_chart_series(
        self,
        metric: str,
        sex: SexInput,
        current_age_months: float,
        percentile: float,
        observed_history: Optional[Iterable] = None,
    ) -> List[ChartPoint]:
        return self.build_chart_data(
            metric, sex, current_age_months, percentile, observed_history
        ).points

    def percentile_lines(
        self,
        metric: str,
        sex: SexInput,
        ages: Iterable[float],
        percentiles: Iterable[float] = DEFAULT_PERCENTILES,
    ) -> pd.DataFrame:
        return percentile_bands(
            self.resolver, metric, self._sex(sex), list(ages), list(percentiles)
        )


_DEFAULT_ENGINE: Optional[GrowthPercentileEngine] = None
_DEFAULT_ENGINE_LOCK = threading.Lock()


def get_default_engine() -> GrowthPercentileEngine:
    """Shared engine over the bundled tables, configured from the environment."""
    global _DEFAULT_ENGINE
    if _DEFAULT_ENGINE is None:
        with _DEFAULT_ENGINE_LOCK:
            if _DEFAULT_ENGINE is None:
                _DEFAULT_ENGINE = GrowthPercentileEngine(config=EngineConfig.from_env())
    return _DEFAULT_ENGINE


def reset_default_engine() -> None:
    global _DEFAULT_ENGINE
    with _DEFAULT_ENGINE_LOCK:
        _DEFAULT_ENGINE = None


def value_at_percentile(
    metric: str, sex: SexInput, age_months: float, percentile: float
) -> Optional[float]:
    return get_default_engine().value_at_percentile(metric, sex, age_months, percentile)


def percentile_from_value(
    metric: str, sex: SexInput, age_months: float, value: float
) -> Optional[float]:
    return get_default_engine().percentile_from_value(metric, sex, age_months, value)


def zscore_from_value(
    metric: str, sex: SexInput, age_months: float, value: float
) -> Optional[float]:
    return get_default_engine().zscore_from_value(metric, sex, age_months, value)


def build_chart_series(
    metric: str,
    sex: SexInput,
    current_age_months: float,
    percentile: float,
    observed_history: Optional[Iterable] = None,
) -> List[ChartPoint]:
    return get_default_engine().build_chart_series(
        metric, sex, current_age_months, percentile, observed_history
    )
