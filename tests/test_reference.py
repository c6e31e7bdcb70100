import dataclasses
import logging

import numpy as np
import pandas as pd
import pytest

from growthpct.config import METRICS, SEXES, Z_P97
from growthpct.reference import (
    GrowthStandard,
    ReferenceTable,
    ReferenceTableStore,
    get_default_store,
    load_reference_table,
    reset_default_store,
    validate_reference_frame,
)
from growthpct.zscores import value_to_z


class TestBundledReference:
    """Tests for the packaged growth standard CSV"""

    def test_tc001_metrics_and_sexes(self, store: ReferenceTableStore):
        assert store.metrics == METRICS
        for metric in store.metrics:
            tables = store.load(metric)
            assert tables is not None
            assert set(tables) == set(SEXES)

    def test_tc002_tables_are_contiguous_from_zero(self, store: ReferenceTableStore):
        for metric in store.metrics:
            for sex, rows in store.load(metric).items():
                assert [row.age_months for row in rows] == list(range(len(rows)))
                assert store.max_age(metric, sex) == 36

    def test_tc003_lms_invariants(self, store: ReferenceTableStore):
        for metric in store.metrics:
            for rows in store.load(metric).values():
                assert all(row.M > 0 and row.S > 0 for row in rows)
                assert all(row.p3 < row.p50 < row.p97 for row in rows)

    def test_tc004_markers_agree_with_lms(self, store: ReferenceTableStore):
        """p97 sits at z ≈ 1.88 and p3 at z ≈ -1.88 up to the CSV's 2-decimal rounding"""
        for metric in store.metrics:
            for rows in store.load(metric).values():
                for row in rows:
                    assert value_to_z(row.p97, row) == pytest.approx(Z_P97, abs=0.02)
                    assert value_to_z(row.p3, row) == pytest.approx(-Z_P97, abs=0.02)

    def test_tc005_known_row(self, store: ReferenceTableStore):
        row = store.table("height", "M")[24]
        assert row == GrowthStandard(
            sex="M", age_months=24, L=1.0, M=87.8161, S=0.0358, p3=81.90, p50=87.82, p97=93.73
        )

    def test_tc006_missing_table_is_none(self, store: ReferenceTableStore):
        assert store.load("bmi") is None
        assert store.table("height", "X") is None
        assert store.max_age("bmi", "M") is None

    def test_tc007_rows_are_immutable(self, store: ReferenceTableStore):
        row = store.table("weight", "F")[0]
        with pytest.raises(dataclasses.FrozenInstanceError):
            row.M = 1.0  # type: ignore[misc]

    def test_tc008_rows_past_a_year_are_quarterly_interpolations(self, store: ReferenceTableStore):
        """From 12 months on only every third month is an anchor; rows in between lie on the line"""
        for metric in store.metrics:
            for rows in store.load(metric).values():
                for anchor in range(12, 36, 3):
                    a, b = rows[anchor], rows[anchor + 3]
                    for k in (1, 2):
                        row = rows[anchor + k]
                        assert row.M == pytest.approx(a.M + (b.M - a.M) * k / 3, abs=1e-3)
                        assert row.S == pytest.approx(a.S + (b.S - a.S) * k / 3, abs=1e-4)


class TestLoadReferenceTable:
    """Tests for loading caller-supplied reference data"""

    def test_tc001_gap_group_is_dropped(self, small_frame: pd.DataFrame, caplog):
        with caplog.at_level(logging.WARNING):
            table = load_reference_table(small_frame)
        assert table.get("height", "F") is None
        assert table.get("height", "M") is not None
        assert table.get("weight", "F") is not None
        assert "not contiguous" in caplog.text

    def test_tc002_markers_derived_when_absent(self, small_frame: pd.DataFrame):
        table = load_reference_table(small_frame)
        row = table.get("height", "M")[1]
        assert row.p50 == 54.0
        assert np.isclose(row.p97, 54.0 * (1 + 0.04 * Z_P97))
        assert np.isclose(row.p3, 54.0 * (1 - 0.04 * Z_P97))

    def test_tc003_partial_markers_are_filled(self, small_frame: pd.DataFrame):
        frame = small_frame.copy()
        frame["p97"] = [52.0, np.nan, 62.5, np.nan, np.nan, np.nan, np.nan, np.nan]
        table = load_reference_table(frame)
        rows = table.get("height", "M")
        assert rows[0].p97 == 52.0
        assert np.isclose(rows[1].p97, 54.0 * (1 + 0.04 * Z_P97))
        assert rows[2].p97 == 62.5

    def test_tc004_missing_columns_raise(self, small_frame: pd.DataFrame):
        with pytest.raises(ValueError, match="missing required columns"):
            load_reference_table(small_frame.drop(columns=["S"]))

    def test_tc005_codes_are_normalized(self, small_frame: pd.DataFrame):
        frame = small_frame.copy()
        frame["sex"] = frame["sex"].str.lower()
        frame["metric"] = frame["metric"].str.upper()
        table = load_reference_table(frame)
        assert table.get("height", "M") is not None

    def test_tc006_unsorted_rows_are_ordered(self, small_frame: pd.DataFrame):
        table = load_reference_table(small_frame.iloc[::-1])
        assert [row.age_months for row in table.get("weight", "F")] == [0, 1, 2]

    def test_tc007_csv_path_source(self, small_frame: pd.DataFrame, tmp_path):
        path = tmp_path / "standards.csv"
        small_frame.to_csv(path, index=False)
        store = ReferenceTableStore(path)
        assert store.max_age("height", "M") == 2
        assert store.load("height") == {"M": store.table("height", "M")}

    def test_tc008_invalid_lms_group_is_dropped(self, small_frame: pd.DataFrame):
        frame = small_frame.copy()
        frame.loc[3, "S"] = 0.0
        table = load_reference_table(frame)
        assert table.get("weight", "F") is None

    def test_tc009_validate_rejects_offset_start(self):
        group = pd.DataFrame(
            {"age_month": [1, 2], "L": [1.0, 1.0], "M": [50.0, 51.0], "S": [0.04, 0.04]}
        )
        assert validate_reference_frame(group, "height_M") is False

    def test_tc010_unknown_sex_group_is_dropped(self, small_frame: pd.DataFrame, caplog):
        frame = small_frame.copy()
        frame.loc[3:5, "sex"] = "U"
        with caplog.at_level(logging.WARNING):
            table = load_reference_table(frame)
        assert ("weight", "U") not in table
        assert table.get("height", "M") is not None
        assert "Unknown sex code" in caplog.text

    def test_tc011_store_over_prebuilt_table(self, small_frame: pd.DataFrame):
        table = load_reference_table(small_frame)
        store = ReferenceTableStore(table)
        assert isinstance(table, ReferenceTable)
        assert store.table("height", "M") is table.get("height", "M")
        assert store.metrics == ("height", "weight")


class TestDefaultStore:
    """Tests for the shared, lazily loaded store"""

    def test_tc001_default_store_is_memoized(self, fresh_defaults):
        first = get_default_store()
        assert get_default_store() is first

    def test_tc002_reset_reloads(self, fresh_defaults):
        first = get_default_store()
        reset_default_store()
        assert get_default_store() is not first
