"""Shared test fixtures for pyheckmange."""

from __future__ import annotations

import numpy as np
import pytest

from pyheckmange.datasets import FORMULAS, simulate_heckman_ge
from pyheckmange.io import build_design


@pytest.fixture
def hge_data():
    """Simulated Generalized Heckman sample and its true coefficients."""
    return simulate_heckman_ge(n=800, seed=7)


@pytest.fixture
def hge_design(hge_data):
    """Design with the default simulation formulas."""
    df, _ = hge_data
    return build_design(
        df,
        FORMULAS["selection"],
        FORMULAS["outcome"],
        FORMULAS["dispersion"],
        FORMULAS["correlation"],
    )


@pytest.fixture
def pd_3x3():
    """3x3 positive-definite symmetric matrix."""
    return np.array([[4.0, 2.0, 1.0],
                     [2.0, 5.0, 3.0],
                     [1.0, 3.0, 6.0]])


def numerical_gradient(f, x, eps=1e-7):
    """Compute numerical gradient via central finite differences.

    Parameters
    ----------
    f : callable
        Scalar-valued function f(x).
    x : ndarray
        Point at which to evaluate the gradient.
    eps : float
        Perturbation size.

    Returns
    -------
    grad : ndarray
        Numerical gradient, same shape as x.
    """
    x = np.asarray(x, dtype=np.float64)
    grad = np.zeros_like(x)
    x_flat = x.ravel()
    for i in range(len(x_flat)):
        x_plus = x_flat.copy()
        x_minus = x_flat.copy()
        x_plus[i] += eps
        x_minus[i] -= eps
        grad.ravel()[i] = (f(x_plus.reshape(x.shape)) - f(x_minus.reshape(x.shape))) / (2 * eps)
    return grad
