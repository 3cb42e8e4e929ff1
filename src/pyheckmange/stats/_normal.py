"""Standard univariate normal distribution wrappers.

The selection likelihood evaluates Phi at arguments far into either tail,
so everything here works on the log scale where possible.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray
from scipy.special import log_ndtr, ndtr

_LOG_SQRT_2PI = 0.5 * np.log(2.0 * np.pi)


def normal_pdf(x: NDArray) -> NDArray:
    """Standard normal probability density function.

    Parameters
    ----------
    x : ndarray
        Evaluation points.

    Returns
    -------
    pdf : ndarray
        phi(x) = (1/sqrt(2*pi)) * exp(-x^2/2)
    """
    return np.exp(normal_logpdf(x))


def normal_logpdf(x: NDArray) -> NDArray:
    """Standard normal log probability density function.

    Returns
    -------
    logpdf : ndarray
        log(phi(x)) = -0.5 * x^2 - log(sqrt(2*pi))
    """
    x = np.asarray(x, dtype=np.float64)
    return -0.5 * x * x - _LOG_SQRT_2PI


def normal_cdf(x: NDArray) -> NDArray:
    """Standard normal cumulative distribution function Phi(x)."""
    return ndtr(np.asarray(x, dtype=np.float64))


def normal_logcdf(x: NDArray) -> NDArray:
    """Logarithm of the standard normal CDF, log(Phi(x)).

    Accurate for large negative ``x`` where Phi(x) underflows.
    """
    return log_ndtr(np.asarray(x, dtype=np.float64))


def mills_ratio(x: NDArray) -> NDArray:
    """Inverse Mills ratio phi(x) / Phi(x).

    Computed as exp(log phi - log Phi), which stays finite for arguments
    where both the density and the CDF underflow. For x -> -inf the ratio
    behaves like -x.

    Parameters
    ----------
    x : ndarray
        Evaluation points.

    Returns
    -------
    lam : ndarray
        phi(x) / Phi(x), strictly positive.
    """
    x = np.asarray(x, dtype=np.float64)
    return np.exp(normal_logpdf(x) - log_ndtr(x))
