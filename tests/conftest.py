import pytest
import pandas as pd

from growthpct.config import EngineConfig
from growthpct.engine import GrowthPercentileEngine, reset_default_engine
from growthpct.reference import ReferenceTableStore, reset_default_store
from growthpct.resolver import StandardResolver


@pytest.fixture(scope="session")
def store() -> ReferenceTableStore:
    """Store over the bundled reference CSV."""
    return ReferenceTableStore()


@pytest.fixture(scope="session")
def resolver(store: ReferenceTableStore) -> StandardResolver:
    return StandardResolver(store, EngineConfig())


@pytest.fixture(scope="session")
def engine(store: ReferenceTableStore) -> GrowthPercentileEngine:
    return GrowthPercentileEngine(store=store)


@pytest.fixture
def small_frame() -> pd.DataFrame:
    """Three-month tables for height/M and weight/F plus a height/F group with a gap."""
    return pd.DataFrame(
        {
            "metric": ["height"] * 3 + ["weight"] * 3 + ["height"] * 2,
            "sex": ["M"] * 3 + ["F"] * 3 + ["F"] * 2,
            "age_month": [0, 1, 2, 0, 1, 2, 0, 2],
            "L": [1.0, 1.0, 1.0, 0.2, 0.15, 0.1, 1.0, 1.0],
            "M": [50.0, 54.0, 58.0, 3.2, 4.2, 5.1, 49.0, 57.0],
            "S": [0.04, 0.04, 0.04, 0.14, 0.13, 0.13, 0.04, 0.04],
        }
    )


@pytest.fixture
def fresh_defaults():
    """Reset the process-wide store and engine around a test."""
    reset_default_engine()
    reset_default_store()
    yield
    reset_default_engine()
    reset_default_store()

