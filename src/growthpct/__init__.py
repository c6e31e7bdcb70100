"""
Growth percentile engine.

Converts height/weight measurements to percentiles and z-scores against LMS
growth reference tables, and builds chart series with reference bands,
observed points and projected trajectories.
"""

from .ages import age_in_months
from .analysis import GrowthAnalysis, analyze_growth, classify_status, summarize_trend
from .config import EngineConfig, normalize_sex
from .engine import (
    GrowthPercentileEngine,
    build_chart_series,
    get_default_engine,
    percentile_from_value,
    value_at_percentile,
    zscore_from_value,
)
from .percentiles import percentile_to_z, z_to_percentile
from .reference import (
    GrowthStandard,
    ReferenceTable,
    ReferenceTableStore,
    get_default_store,
    load_reference_table,
)
from .resolver import LMSParams, StandardResolver
from .series import ChartPoint, ChartSeries, Measurement, Prediction
from .zscores import value_to_z, z_to_value

__version__ = "0.1.0"

__all__ = [
    "ChartPoint",
    "ChartSeries",
    "EngineConfig",
    "GrowthAnalysis",
    "GrowthPercentileEngine",
    "GrowthStandard",
    "LMSParams",
    "Measurement",
    "Prediction",
    "ReferenceTable",
    "ReferenceTableStore",
    "StandardResolver",
    "age_in_months",
    "analyze_growth",
    "build_chart_series",
    "classify_status",
    "get_default_engine",
    "get_default_store",
    "load_reference_table",
    "normalize_sex",
    "percentile_from_value",
    "percentile_to_z",
    "summarize_trend",
    "value_at_percentile",
    "value_to_z",
    "z_to_percentile",
    "z_to_value",
    "zscore_from_value",
]
