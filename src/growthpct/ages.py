"""
Age in months from calendar dates.

Uses the whole-month difference plus ``day difference / 30``, not exact
days-in-month. This is the approximation growth charts in the application
are plotted against.
"""

from datetime import date, datetime
from typing import Union

import pandas as pd

DateInput = Union[str, date, datetime, pd.Timestamp, None]


def _to_timestamp(value: DateInput):
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    ts = pd.to_datetime(value, errors="coerce")
    if pd.isna(ts):
        return None
    return ts


def age_in_months(birth_date: DateInput, measurement_date: DateInput) -> float:
    """
    Approximate age in months at a measurement date.

    Parameters
    ----------
    birth_date : str, date or datetime
        Date of birth (ISO 'YYYY-MM-DD' strings are accepted)
    measurement_date : str, date or datetime
        Date the measurement was taken

    Returns
    -------
    float
        Age in months rounded to 1 decimal; 0.0 when either date is missing or
        invalid, or when the measurement predates birth
    """
    birth = _to_timestamp(birth_date)
    measured = _to_timestamp(measurement_date)
    if birth is None or measured is None:
        return 0.0
    months = (measured.year - birth.year) * 12 + (measured.month - birth.month)
    total = months + (measured.day - birth.day) / 30
    return round(max(total, 0.0), 1)
