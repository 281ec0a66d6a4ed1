"""
MOODFIT Analytics Service - Signal Processing

Smoothing filter and local extremum detection over the primary metric series.
"""

from typing import List, Optional, Sequence, Tuple

import numpy as np


def smooth_series(values: Sequence[Optional[float]], radius: int = 2) -> np.ndarray:
    """
    Centered moving average that skips missing values.

    Args:
        values: Series with None for missing samples
        radius: Half-width of the window (0 = no smoothing)

    Returns:
        Float array of the same length; NaN where the window holds no
        valid samples
    """
    if radius < 0:
        raise ValueError(f"radius must be >= 0, got {radius}")

    series = np.array(
        [np.nan if v is None else float(v) for v in values],
        dtype=float,
    )
    n = len(series)
    out = np.full(n, np.nan)

    valid = np.isfinite(series)

    for i in range(n):
        lo = max(0, i - radius)
        hi = min(n, i + radius + 1)
        window = series[lo:hi][valid[lo:hi]]
        if window.size:
            out[i] = window.mean()

    return out


def find_extrema(smoothed: Sequence[float]) -> Tuple[List[int], List[int]]:
    """
    Find strict local minima and maxima.

    Only interior indices whose value and both neighbours are finite are
    considered.

    Returns:
        Tuple of (valley indices, peak indices), both ascending
    """
    series = np.asarray(smoothed, dtype=float)
    valleys: List[int] = []
    peaks: List[int] = []

    for i in range(1, len(series) - 1):
        prev, cur, nxt = series[i - 1], series[i], series[i + 1]
        if not (np.isfinite(prev) and np.isfinite(cur) and np.isfinite(nxt)):
            continue
        if cur < prev and cur < nxt:
            valleys.append(i)
        elif cur > prev and cur > nxt:
            peaks.append(i)

    return valleys, peaks
