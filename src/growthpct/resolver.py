"""
Age-interpolated lookup of LMS parameters.
"""

from dataclasses import dataclass
from typing import Optional
import logging
import math

from .config import EngineConfig
from .reference import GrowthStandard, ReferenceTableStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LMSParams:
    """LMS parameters and indicative percentiles at a (possibly fractional) age."""

    age_months: float
    L: float
    M: float
    S: float
    p3: float
    p50: float
    p97: float

    @classmethod
    def from_standard(cls, row: GrowthStandard, age_months: float) -> "LMSParams":
        return cls(
            age_months=age_months,
            L=row.L,
            M=row.M,
            S=row.S,
            p3=row.p3,
            p50=row.p50,
            p97=row.p97,
        )


def _lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t


class StandardResolver:
    """
    Resolves LMS parameters for a metric, sex and fractional age.

    Ages between two table rows are linearly interpolated field by field. Ages
    outside the table are clamped to the boundary row, or rejected when the
    config's age_policy is 'reject'.
    """

    def __init__(self, store: ReferenceTableStore, config: Optional[EngineConfig] = None):
        self.store = store
        self.config = config or EngineConfig()

    def resolve(self, metric: str, sex: str, age_months: float) -> Optional[LMSParams]:
        """
        Args:
            metric: 'height' or 'weight'
            sex: 'M' or 'F'
            age_months: Age in months, may be fractional

        Returns:
            Interpolated LMSParams, or None when there is no reference data
        """
        rows = self.store.table(metric, sex)
        if rows is None:
            return None
        age = float(age_months)
        if not math.isfinite(age):
            return None

        max_age = rows[-1].age_months
        if age < 0 or age > max_age:
            if self.config.age_policy == "reject":
                return None
            clamped = min(max(age, 0.0), float(max_age))
            logger.debug(
                f"Age {age} outside {metric}_{sex} reference range; using {clamped}"
            )
            age = clamped

        lower = math.floor(age)
        upper = math.ceil(age)
        if lower == upper:
            return LMSParams.from_standard(rows[lower], age)

        a, b = rows[lower], rows[upper]
        t = age - lower
        return LMSParams(
            age_months=age,
            L=_lerp(a.L, b.L, t),
            M=_lerp(a.M, b.M, t),
            S=_lerp(a.S, b.S, t),
            p3=_lerp(a.p3, b.p3, t),
            p50=_lerp(a.p50, b.p50, t),
            p97=_lerp(a.p97, b.p97, t),
        )
