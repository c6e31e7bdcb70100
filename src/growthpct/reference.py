"""
Reference table storage for LMS growth standards.

Loads the packaged growth standard CSV (or a caller-supplied source) once and
exposes one immutable, age-indexed tuple of rows per metric and sex. Row ``i``
of every table is the standard for age ``i`` months, so lookups by
``floor(age)``/``ceil(age)`` are direct index operations.
"""

from dataclasses import dataclass
from importlib import resources
from typing import Dict, IO, Optional, Tuple, Union
from pathlib import Path
import logging
import threading

import numpy as np
import pandas as pd

from .config import MARKER_COLUMNS, REFERENCE_COLUMNS, SEXES, Z_P97
from .zscores import lms_value

logger = logging.getLogger(__name__)

ReferenceSource = Union[str, Path, IO[str], pd.DataFrame, None]


@dataclass(frozen=True)
class GrowthStandard:
    """One reference row: LMS parameters and indicative percentiles at an integer age."""

    sex: str
    age_months: int
    L: float
    M: float
    S: float
    p3: float
    p50: float
    p97: float


class ReferenceTable:
    """Read-only mapping of (metric, sex) to a contiguous age-indexed row tuple."""

    def __init__(self, tables: Dict[Tuple[str, str], Tuple[GrowthStandard, ...]]):
        self._tables = dict(tables)

    def get(self, metric: str, sex: str) -> Optional[Tuple[GrowthStandard, ...]]:
        rows = self._tables.get((metric, sex))
        return rows if rows else None

    def keys(self):
        return self._tables.keys()

    def items(self):
        return self._tables.items()

    def __contains__(self, key: object) -> bool:
        return key in self._tables

    def __len__(self) -> int:
        return len(self._tables)


def _get_reference_data_path() -> str:
    """Get the package holding the bundled reference CSV."""
    return "growthpct.data"


def _read_packaged_reference() -> pd.DataFrame:
    """
    Read the bundled growth standard CSV from package resources.

    Raises:
        FileNotFoundError: If the CSV is missing from the installed package.
    """
    try:
        with (
            resources.files(_get_reference_data_path())
            .joinpath("growth_standards.csv")
            .open("r", encoding="utf-8") as f
        ):
            return pd.read_csv(f)
    except FileNotFoundError:
        raise FileNotFoundError(
            "Growth reference data file not found. "
            "Ensure growthpct is properly installed with its data files."
        ) from None


def _read_source(source: ReferenceSource) -> pd.DataFrame:
    if source is None:
        return _read_packaged_reference()
    if isinstance(source, pd.DataFrame):
        return source.copy()
    return pd.read_csv(source)


def _fill_markers(df: pd.DataFrame) -> pd.DataFrame:
    """Derive missing p3/p50/p97 cells from the LMS parameters."""
    L = df["L"].to_numpy(dtype=np.float64)
    M = df["M"].to_numpy(dtype=np.float64)
    S = df["S"].to_numpy(dtype=np.float64)
    derived = {
        "p3": lms_value(np.full_like(L, -Z_P97), L, M, S),
        "p50": M,
        "p97": lms_value(np.full_like(L, Z_P97), L, M, S),
    }
    for col in MARKER_COLUMNS:
        if col not in df.columns:
            df[col] = derived[col]
        else:
            df[col] = df[col].astype("float64").fillna(pd.Series(derived[col], index=df.index))
    return df


def validate_reference_frame(group: pd.DataFrame, label: str) -> bool:
    """
    Check one (metric, sex) group against the table invariants.

    Ages must start at 0 and be contiguous and strictly increasing, and every row
    needs finite LMS parameters with M > 0 and S > 0. Issues are logged, not raised.

    Args:
        group: Rows for a single metric and sex
        label: Name used in log messages

    Returns:
        True if the group can be used as a reference table
    """
    if group.empty:
        logger.warning(f"Reference group {label} is empty")
        return False

    ages = group["age_month"].to_numpy()
    if np.any(ages < 0):
        logger.warning(f"Negative ages found in reference group {label}")
        return False
    if not np.array_equal(ages, np.arange(len(ages))):
        logger.warning(
            f"Reference group {label} is not contiguous from month 0; dropping it"
        )
        return False

    lms = group[["L", "M", "S"]].to_numpy(dtype=np.float64)
    if not np.all(np.isfinite(lms)):
        logger.warning(f"Non-finite LMS parameters in reference group {label}")
        return False
    if np.any(lms[:, 1] <= 0) or np.any(lms[:, 2] <= 0):
        logger.warning(f"Non-positive M or S values in reference group {label}")
        return False
    return True


def load_reference_table(source: ReferenceSource = None) -> ReferenceTable:
    """
    Build a ReferenceTable from a CSV path, file object or DataFrame.

    Groups that break the contiguity or LMS invariants, or whose sex is not
    one of the SEXES codes, are dropped with a warning and behave as missing
    tables afterwards.

    Args:
        source: CSV path/file or DataFrame with metric, sex, age_month, L, M, S
            and optional p3, p50, p97 columns. None loads the bundled data.

    Returns:
        ReferenceTable keyed by (metric, sex)

    Raises:
        FileNotFoundError: If the bundled data cannot be found.
        ValueError: If required columns are missing.
    """
    df = _read_source(source)
    missing = [col for col in REFERENCE_COLUMNS if col not in df.columns]
    if missing:
        raise ValueError(f"Reference data is missing required columns: {missing}")

    df = df.copy()
    df["metric"] = df["metric"].astype(str).str.strip().str.lower()
    df["sex"] = df["sex"].astype(str).str.strip().str.upper()
    df = _fill_markers(df)

    tables: Dict[Tuple[str, str], Tuple[GrowthStandard, ...]] = {}
    for (metric, sex), group in df.groupby(["metric", "sex"], sort=True):
        label = f"{metric}_{sex}"
        if sex not in SEXES:
            logger.warning(f"Unknown sex code in reference group {label}; dropping it")
            continue
        group = group.sort_values("age_month", kind="stable")
        if not validate_reference_frame(group, label):
            continue
        tables[(metric, sex)] = tuple(
            GrowthStandard(
                sex=sex,
                age_months=int(row.age_month),
                L=float(row.L),
                M=float(row.M),
                S=float(row.S),
                p3=float(row.p3),
                p50=float(row.p50),
                p97=float(row.p97),
            )
            for row in group.itertuples(index=False)
        )
    return ReferenceTable(tables)


class ReferenceTableStore:
    """
    Holds the immutable reference tables for the lifetime of the process.

    Usage:
        store = ReferenceTableStore()
        tables = store.load("height")  # {'M': (...), 'F': (...)} or None
    """

    def __init__(self, source: Union[ReferenceSource, ReferenceTable] = None):
        if isinstance(source, ReferenceTable):
            self._table = source
        else:
            self._table = load_reference_table(source)

    @property
    def metrics(self) -> Tuple[str, ...]:
        return tuple(sorted({metric for metric, _ in self._table.keys()}))

    def load(self, metric: str) -> Optional[Dict[str, Tuple[GrowthStandard, ...]]]:
        """Return the per-sex tables for a metric, or None if there is none."""
        result = {
            sex: rows
            for (m, sex), rows in sorted(self._table.items())
            if m == metric and rows
        }
        return result or None

    def table(self, metric: str, sex: str) -> Optional[Tuple[GrowthStandard, ...]]:
        return self._table.get(metric, sex)

    def max_age(self, metric: str, sex: str) -> Optional[int]:
        rows = self.table(metric, sex)
        if rows is None:
            return None
        return rows[-1].age_months


# Process-wide store, created on first use
_DEFAULT_STORE: Optional[ReferenceTableStore] = None
_DEFAULT_STORE_LOCK = threading.Lock()


def get_default_store() -> ReferenceTableStore:
    """Load the bundled reference tables once and return the shared store."""
    global _DEFAULT_STORE
    if _DEFAULT_STORE is None:
        with _DEFAULT_STORE_LOCK:
            if _DEFAULT_STORE is None:
                store = ReferenceTableStore()
                logger.info(
                    f"Loaded growth reference tables for metrics {store.metrics}"
                )
                _DEFAULT_STORE = store
    return _DEFAULT_STORE


def reset_default_store() -> None:
    """Drop the shared store so the next call reloads it."""
    global _DEFAULT_STORE
    with _DEFAULT_STORE_LOCK:
        _DEFAULT_STORE = None
