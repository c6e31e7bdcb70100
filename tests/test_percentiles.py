import math

import numpy as np
import pytest
from hypothesis import given, strategies as st, settings
from scipy import stats

from growthpct.percentiles import (
    erf,
    norm_cdf,
    norm_ppf,
    percentile_to_z,
    round_percentile,
    round_zscore,
    z_to_percentile,
)


class TestNormalCdf:
    """Tests for the Abramowitz-Stegun CDF approximation"""

    def test_tc001_erf_at_zero(self):
        assert abs(erf(0.0)) < 1e-8

    def test_tc002_erf_is_odd(self):
        for x in (0.1, 0.5, 1.3, 2.7):
            assert erf(-x) == pytest.approx(-erf(x), abs=1e-15)

    @settings(max_examples=200, deadline=None)
    @given(x=st.floats(min_value=-6.0, max_value=6.0))
    def test_tc003_erf_absolute_error(self, x: float):
        """A&S 7.1.26 stays within 1.5e-7 of the exact erf"""
        assert abs(erf(x) - math.erf(x)) <= 1.5e-7

    @settings(max_examples=200, deadline=None)
    @given(z=st.floats(min_value=-8.0, max_value=8.0))
    def test_tc004_norm_cdf_against_scipy(self, z: float):
        assert abs(norm_cdf(z) - stats.norm.cdf(z)) <= 1e-7

    def test_tc005_percentile_of_zero_is_fifty(self):
        """zToPercentile(0) == 50"""
        assert z_to_percentile(0.0) == 50.0
        assert z_to_percentile(-0.0) == 50.0
        assert erf(0.0) == 0.0
        assert z_to_percentile(1e-9) == pytest.approx(50.0, abs=1e-5)

    def test_tc006_known_percentiles(self):
        assert z_to_percentile(1.8807936081512509) == pytest.approx(97.0, abs=1e-4)
        assert z_to_percentile(-1.959963984540054) == pytest.approx(2.5, abs=1e-4)

    @pytest.mark.parametrize(
        "z,expected",
        [
            (40.0, 100.0),
            (-40.0, 0.0),
            (float("inf"), 100.0),
            (float("-inf"), 0.0),
            (float("nan"), 0.0),
        ],
    )
    def test_tc007_extremes_are_clamped(self, z: float, expected: float):
        p = z_to_percentile(z)
        assert p == pytest.approx(expected, abs=1e-9)
        assert 0.0 <= p <= 100.0

    def test_tc008_sentinel_z_gives_near_zero_percentile(self):
        p = z_to_percentile(-6.0)
        assert 0.0 <= p < 1e-5
        assert round_percentile(p) == 0.0


class TestInverseCdf:
    """Tests for Acklam's inverse normal approximation"""

    def test_tc001_median(self):
        """percentileToZ(50) == 0"""
        assert abs(percentile_to_z(50.0)) < 1e-6

    @settings(max_examples=200, deadline=None)
    @given(p=st.floats(min_value=1e-5, max_value=1 - 1e-5))
    def test_tc002_norm_ppf_against_scipy(self, p: float):
        assert np.isclose(norm_ppf(p), stats.norm.ppf(p), rtol=1e-7, atol=1e-8)

    def test_tc003_region_boundaries_are_continuous(self):
        for p in (0.02425, 1 - 0.02425):
            below = norm_ppf(p - 1e-12)
            above = norm_ppf(p + 1e-12)
            assert abs(below - above) < 1e-6

    @pytest.mark.parametrize("p,clamped", [(0.0, 0.001), (-5.0, 0.001), (100.0, 99.999), (150.0, 99.999)])
    def test_tc004_input_is_clamped(self, p: float, clamped: float):
        z = percentile_to_z(p)
        assert math.isfinite(z)
        assert z == percentile_to_z(clamped)

    def test_tc005_custom_bounds(self):
        assert percentile_to_z(0.0, bounds=(3.0, 97.0)) == pytest.approx(
            -1.8807936081512509, abs=1e-8
        )

    def test_tc006_nan_is_median(self):
        assert percentile_to_z(float("nan")) == pytest.approx(0.0, abs=1e-12)

    def test_tc007_symmetry(self):
        for p in (3.0, 10.0, 25.0):
            assert percentile_to_z(p) == pytest.approx(-percentile_to_z(100.0 - p), abs=1e-8)

    @settings(max_examples=200, deadline=None)
    @given(p=st.floats(min_value=0.1, max_value=99.9))
    def test_tc008_round_trip(self, p: float):
        assert abs(z_to_percentile(percentile_to_z(p)) - p) < 1e-4


def test_tc001_presentation_rounding():
    assert round_percentile(97.04999) == 97.0
    assert round_percentile(12.36) == 12.4
    assert round_zscore(1.23456) == 1.23
    assert round_zscore(-0.005001) == -0.01
