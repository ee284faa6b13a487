"""Scalar ratio helpers and statistical functions using scipy."""

from collections.abc import Sequence

import numpy as np
from scipy import stats


def safe_ratio(numerator: float, denominator: float) -> float:
    """numerator / denominator, or 0.0 when the denominator is not positive."""
    if denominator <= 0:
        return 0.0
    return numerator / denominator


def weighted_roi(closed_won: float, investment: float) -> float:
    """Cost-weighted ROI: closed_won / investment * 100.

    Always derived from summed numerator and denominator, never by averaging
    per-group ROI values.
    """
    return safe_ratio(closed_won, investment) * 100


def _clamp_pct(value: float) -> float:
    return min(max(value, 0.0), 100.0)


def win_rate(won: int, lost: int) -> float:
    """won / (won + lost) * 100 within [0, 100], or 0 when there are no closed deals."""
    return _clamp_pct(safe_ratio(won, won + lost) * 100)


def close_rate(won: int, lost: int, open_count: int) -> float:
    """won / (won + lost + open) * 100 within [0, 100], or 0 when there are no deals."""
    return _clamp_pct(safe_ratio(won, won + lost + open_count) * 100)


def pearson_correlation(
    x: Sequence[float] | np.ndarray,
    y: Sequence[float] | np.ndarray,
    min_samples: int = 3,
) -> float | None:
    """Calculate Pearson correlation coefficient.

    Args:
        x: First series
        y: Second series, same length as ``x``
        min_samples: Minimum pairs required

    Returns:
        Correlation coefficient or None if insufficient data.
    """
    x_arr = np.asarray(x, dtype=float)
    y_arr = np.asarray(y, dtype=float)

    if len(x_arr) != len(y_arr) or len(x_arr) < min_samples:
        return None

    # Handle edge case of zero variance
    if np.std(x_arr) == 0 or np.std(y_arr) == 0:
        return None

    corr, _ = stats.pearsonr(x_arr, y_arr)
    return float(corr)
