"""
LMS Transform Utilities for Growth Metrics

Converts raw measurements to z-scores and back using Cole's LMS power
transform. Expected edge inputs never raise or produce NaN: non-positive or
non-finite measurements map to an extreme-low sentinel z-score, and an
inverse transform with a non-positive base maps to a zero value.
"""

import math

import numpy as np
from numba import jit

from .config import DEGENERATE_VALUE, INVALID_Z, L_ZERO_THRESHOLD


@jit(nopython=True, cache=True)
def _value_to_z(value: float, L: float, M: float, S: float, invalid_z: float) -> float:
    if not math.isfinite(value) or value <= 0.0:
        return invalid_z
    if abs(L) < L_ZERO_THRESHOLD:
        return math.log(value / M) / S
    return ((value / M) ** L - 1.0) / (L * S)


@jit(nopython=True, cache=True)
def _z_to_value(z: float, L: float, M: float, S: float) -> float:
    if not math.isfinite(z):
        return DEGENERATE_VALUE
    if abs(L) < L_ZERO_THRESHOLD:
        return M * math.exp(S * z)
    base = 1.0 + L * S * z
    if base <= 0.0:
        return DEGENERATE_VALUE
    return M * base ** (1.0 / L)


def value_to_z(value: float, lms, invalid_z: float = INVALID_Z) -> float:
    """
    Calculate the LMS z-score of a single measurement.

    For L ≠ 0: z = ((X/M)^L - 1) / (L * S)
    For L ≈ 0: z = ln(X/M) / S

    References:
    - Cole, T.J. (1990). "The LMS method for constructing normalized growth standards."
      European Journal of Clinical Nutrition, 44(1), 45-60.

    Args:
        value: Observed measurement (cm/kg)
        lms: Any object with L, M and S attributes (e.g. LMSParams, GrowthStandard)
        invalid_z: Z-score returned when value is non-positive or non-finite

    Returns:
        Z-score (0 at the median), or invalid_z for unusable measurements
    """
    return float(
        _value_to_z(float(value), float(lms.L), float(lms.M), float(lms.S), float(invalid_z))
    )


def z_to_value(z: float, lms) -> float:
    """
    Invert the LMS transform: the measurement sitting at z-score ``z``.

    For L ≠ 0: X = M * (1 + L*S*z)^(1/L), and 0 when 1 + L*S*z <= 0
    For L ≈ 0: X = M * exp(S*z)

    Args:
        z: Target z-score
        lms: Any object with L, M and S attributes

    Returns:
        Measurement value, never NaN
    """
    return float(_z_to_value(float(z), float(lms.L), float(lms.M), float(lms.S)))


@jit(nopython=True, cache=True)
def _lms_zscore_flat(X, L, M, S, invalid_z):
    out = np.empty(X.size, dtype=np.float64)
    for i in range(X.size):
        out[i] = _value_to_z(X[i], L[i], M[i], S[i], invalid_z)
    return out


@jit(nopython=True, cache=True)
def _lms_value_flat(Z, L, M, S):
    out = np.empty(Z.size, dtype=np.float64)
    for i in range(Z.size):
        out[i] = _z_to_value(Z[i], L[i], M[i], S[i])
    return out


def _as_flat(*arrays: np.ndarray):
    arrays = np.broadcast_arrays(*[np.asarray(a, dtype=np.float64) for a in arrays])
    shape = arrays[0].shape
    return shape, [np.ascontiguousarray(a).ravel() for a in arrays]


def lms_zscore(
    X: np.ndarray,
    L: np.ndarray,
    M: np.ndarray,
    S: np.ndarray,
    invalid_z: float = INVALID_Z,
) -> np.ndarray:
    """
    Vectorized LMS z-scores with the same sentinel policy as value_to_z.

    Inputs are broadcast against each other; the result keeps the broadcast shape.
    """
    shape, (x, l, m, s) = _as_flat(X, L, M, S)
    if x.size == 0:
        return np.empty(shape, dtype=np.float64)
    return _lms_zscore_flat(x, l, m, s, float(invalid_z)).reshape(shape)


def lms_value(
    Z: np.ndarray, L: np.ndarray, M: np.ndarray, S: np.ndarray
) -> np.ndarray:
    """Vectorized inverse LMS transform; degenerate bases yield 0."""
    shape, (z, l, m, s) = _as_flat(Z, L, M, S)
    if z.size == 0:
        return np.empty(shape, dtype=np.float64)
    return _lms_value_flat(z, l, m, s).reshape(shape)
