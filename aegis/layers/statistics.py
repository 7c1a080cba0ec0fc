"""
Statistics Kernel

Pure numeric primitives used by the risk layers.

Every function returns a finite float. Degenerate inputs (empty or single
sample, zero dispersion) return 0.0 rather than raising.
"""

from __future__ import annotations

from typing import Sequence
import numpy as np


def _as_array(series: Sequence[float]) -> np.ndarray:
    return np.asarray(series, dtype=float)


def mean(series: Sequence[float]) -> float:
    arr = _as_array(series)
    if arr.size == 0:
        return 0.0
    return float(np.mean(arr))


def standard_deviation(series: Sequence[float]) -> float:
    """Population standard deviation (divide by n)."""
    arr = _as_array(series)
    if arr.size < 2:
        return 0.0
    return float(np.std(arr))


def downside_deviation(series: Sequence[float], threshold: float = 0.0) -> float:
    """Root-mean-square of shortfalls below threshold."""
    arr = _as_array(series)
    downside = arr[arr < threshold] - threshold
    if downside.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(downside ** 2)))


def percentile(series: Sequence[float], p: float) -> float:
    """Percentile with linear interpolation between order statistics."""
    arr = _as_array(series)
    if arr.size == 0:
        return 0.0
    return float(np.percentile(arr, p, method="linear"))


def covariance(series_a: Sequence[float], series_b: Sequence[float]) -> float:
    """Sample covariance (divide by n-1). 0 for mismatched or short inputs."""
    a = _as_array(series_a)
    b = _as_array(series_b)
    if a.size != b.size or a.size < 2:
        return 0.0
    return float(np.sum((a - a.mean()) * (b - b.mean())) / (a.size - 1))


def variance(series: Sequence[float]) -> float:
    """Sample variance (divide by n-1)."""
    return covariance(series, series)


def correlation(series_a: Sequence[float], series_b: Sequence[float]) -> float:
    """Pearson correlation. 0 when either series has no dispersion."""
    std_a = np.sqrt(variance(series_a))
    std_b = np.sqrt(variance(series_b))
    if std_a == 0 or std_b == 0:
        return 0.0
    corr = covariance(series_a, series_b) / (std_a * std_b)
    # Guard float overshoot on perfectly (anti)correlated inputs
    return float(np.clip(corr, -1.0, 1.0))


def skewness(series: Sequence[float]) -> float:
    """Bias-corrected sample skewness. Requires n >= 3."""
    arr = _as_array(series)
    n = arr.size
    if n < 3:
        return 0.0
    std = standard_deviation(arr)
    if std == 0:
        return 0.0
    z = (arr - arr.mean()) / std
    return float(n / ((n - 1) * (n - 2)) * np.sum(z ** 3))


def kurtosis(series: Sequence[float]) -> float:
    """Bias-corrected excess kurtosis. Requires n >= 4."""
    arr = _as_array(series)
    n = arr.size
    if n < 4:
        return 0.0
    std = standard_deviation(arr)
    if std == 0:
        return 0.0
    z = (arr - arr.mean()) / std
    excess = n * (n + 1) / ((n - 1) * (n - 2) * (n - 3)) * np.sum(z ** 4)
    correction = 3 * (n - 1) ** 2 / ((n - 2) * (n - 3))
    return float(excess - correction)
