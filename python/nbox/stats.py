"""Probability helpers."""

from __future__ import annotations

import math

from scipy import stats

__all__ = ["plnorm"]


def plnorm(x: float, meanlog: float, sdlog: float, lower_tail: bool = True) -> float:
    """
    Log-normal cumulative distribution function.

    Parameters
    ----------
    x
        Quantile
    meanlog
        Mean of the distribution on the log scale
    sdlog
        Standard deviation on the log scale
    lower_tail
        If True return P[X <= x], otherwise P[X > x]

    Returns
    -------
    float
        Requested tail probability

    Examples
    --------
    >>> round(plnorm(1.0, 0.0, 1.0), 6)
    0.5
    >>> plnorm(0.0, 1.258, 0.618, lower_tail=False)
    1.0
    """
    if sdlog <= 0:
        msg = f"sdlog must be positive, got {sdlog}"
        raise ValueError(msg)

    dist = stats.lognorm(s=sdlog, scale=math.exp(meanlog))
    return float(dist.cdf(x) if lower_tail else dist.sf(x))
