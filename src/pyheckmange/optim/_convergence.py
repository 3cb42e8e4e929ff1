"""Convergence diagnostics, observed information and sandwich covariances."""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from pyheckmange.utils import check_positive_definite


def check_convergence(grad: NDArray, tol: float = 1e-5) -> bool:
    """Check if the max-abs gradient is below tolerance."""
    grad = np.asarray(grad, dtype=np.float64)
    if grad.size == 0:
        return True
    return float(np.max(np.abs(grad))) < tol


def numerical_hessian(grad_fn, x: NDArray, eps: float = 1e-5) -> NDArray:
    """Hessian by central differences of an analytic gradient.

    Parameters
    ----------
    grad_fn : callable
        grad_fn(x) -> (K,) gradient.
    x : ndarray, shape (K,)
        Evaluation point.
    eps : float
        Relative step; the step for coordinate i is eps * max(1, |x_i|).

    Returns
    -------
    H : ndarray, shape (K, K)
        Symmetrised Hessian.
    """
    x = np.asarray(x, dtype=np.float64)
    k = x.size
    H = np.zeros((k, k), dtype=np.float64)

    for i in range(k):
        h = eps * max(1.0, abs(x[i]))
        x_plus = x.copy()
        x_plus[i] += h
        x_minus = x.copy()
        x_minus[i] -= h
        H[:, i] = (np.asarray(grad_fn(x_plus)) - np.asarray(grad_fn(x_minus))) / (2.0 * h)

    return 0.5 * (H + H.T)


def covariance_from_hessian(hessian: NDArray) -> NDArray:
    """Invert the observed information -H of a log-likelihood.

    Parameters
    ----------
    hessian : ndarray, shape (K, K)
        Hessian of the log-likelihood (not of its negative).

    Returns
    -------
    cov : ndarray, shape (K, K)

    Raises
    ------
    numpy.linalg.LinAlgError
        If -H is not positive definite.
    """
    info = -np.asarray(hessian, dtype=np.float64)
    if not check_positive_definite(info):
        raise np.linalg.LinAlgError("observed information is not symmetric positive definite")
    L = np.linalg.cholesky(info)
    L_inv = np.linalg.inv(L)
    cov = L_inv.T @ L_inv
    return 0.5 * (cov + cov.T)


def compute_standard_errors(cov: NDArray) -> NDArray:
    """Standard errors as the square roots of the covariance diagonal."""
    return np.sqrt(np.clip(np.diag(cov), 0.0, None))


def sandwich_covariance(bread: NDArray, scores: NDArray, factor: float = 1.0) -> NDArray:
    """Sandwich covariance V = factor * bread @ B @ bread, B = sum(g_i @ g_i.T).

    Parameters
    ----------
    bread : ndarray, shape (p, p)
        Model-based covariance (inverse information).
    scores : ndarray, shape (G, p)
        Per-observation or per-cluster score vectors.
    factor : float
        Small-sample adjustment.

    Returns
    -------
    V : ndarray, shape (p, p)
    """
    B = scores.T @ scores
    V = factor * (bread @ B @ bread)
    return 0.5 * (V + V.T)
