"""Generalized Heckman log-likelihood and analytic gradient.

Latent structure for observation i:

    s_i* = z_i'g + u_i,    s_i = 1{s_i* > 0}
    y_i  = x_i'b + sigma_i e_i   (observed only when s_i = 1)
    (u_i, e_i) ~ BVN(0, 0, 1, 1, rho_i)

with sigma_i = exp(w_i'l) and rho_i = tanh(v_i'k). The log-likelihood
contribution is

    s_i = 0:  log Phi(-z_i'g)
    s_i = 1:  log phi(r_i) - log sigma_i + log Phi(a_i)

where r_i = (y_i - x_i'b) / sigma_i and
a_i = (z_i'g + rho_i r_i) / sqrt(1 - rho_i^2).

Derivatives with respect to the four linear predictors, with
M = phi(a)/Phi(a) and q = sqrt(1 - rho^2):

    d/d eta_S     = -phi(-eta_S)/Phi(-eta_S)           (s = 0)
                  = M / q                              (s = 1)
    d/d eta_O     = (r - M rho / q) / sigma
    d/d sigma     = (r^2 - 1 - M rho r / q) / sigma
    d/d rho       = M (r + rho eta_S) / q^3

and the link derivatives carry d/d sigma and d/d rho to the dispersion and
correlation linear predictors.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from pyheckmange.io._design import HeckmanGEDesign
from pyheckmange.stats import mills_ratio, normal_logcdf, normal_logpdf
from pyheckmange.transform import CORRELATION_LINK, DISPERSION_LINK, BlockLayout

# Floor on 1 - rho^2; the tanh link already keeps it above 6e-8.
_ONE_MINUS_RHO2_FLOOR = 1e-12


def count_hge_params(design: HeckmanGEDesign) -> int:
    """Total number of parameters (sum of the four design widths)."""
    return design.layout.n_params


def unpack_hge_params(
    theta: NDArray, layout: BlockLayout
) -> tuple[NDArray, NDArray, NDArray, NDArray]:
    """Split theta into (gamma, beta, lambda, kappa)."""
    theta = np.asarray(theta, dtype=np.float64)
    if theta.shape != (layout.n_params,):
        raise ValueError(
            f"parameter vector has {theta.size} values, expected {layout.n_params}"
        )
    slices = layout.slices()
    return (
        theta[slices["selection"]],
        theta[slices["outcome"]],
        theta[slices["dispersion"]],
        theta[slices["correlation"]],
    )


def _linear_predictors(theta: NDArray, design: HeckmanGEDesign):
    """eta_S on all rows; eta_O, eta_sigma, eta_rho on selected rows."""
    gamma, beta, lam, kap = unpack_hge_params(theta, design.layout)
    sel = design.selected
    eta_s = design.X_selection @ gamma
    eta_o = design.X_outcome[sel] @ beta
    eta_d = design.X_dispersion[sel] @ lam
    eta_c = design.X_correlation[sel] @ kap
    return eta_s, eta_o, eta_d, eta_c


def _kernel(theta: NDArray, design: HeckmanGEDesign, *, derivatives: bool):
    """Per-observation log-likelihood and, optionally, eta-derivatives."""
    sel = design.selected
    uns = ~sel
    eta_s, eta_o, eta_d, eta_c = _linear_predictors(theta, design)

    ll = np.empty(design.n_obs, dtype=np.float64)
    ll[uns] = normal_logcdf(-eta_s[uns])

    sigma = DISPERSION_LINK.to_constrained(eta_d)
    rho = CORRELATION_LINK.to_constrained(eta_c)
    q = np.sqrt(np.maximum(1.0 - rho * rho, _ONE_MINUS_RHO2_FLOOR))
    eta_s1 = eta_s[sel]
    r = (design.y_outcome[sel] - eta_o) / sigma
    a = (eta_s1 + rho * r) / q

    ll[sel] = normal_logpdf(r) - np.log(sigma) + normal_logcdf(a)

    if not derivatives:
        return ll, None

    d_s = np.empty(design.n_obs, dtype=np.float64)
    d_s[uns] = -mills_ratio(-eta_s[uns])

    M = mills_ratio(a)
    d_s[sel] = M / q
    d_o = (r - M * rho / q) / sigma
    d_sigma = (r * r - 1.0 - M * rho * r / q) / sigma
    d_rho = M * (r + rho * eta_s1) / (q * q * q)
    d_d = d_sigma * DISPERSION_LINK.derivative(eta_d)
    d_c = d_rho * CORRELATION_LINK.derivative(eta_c)

    return ll, (d_s, d_o, d_d, d_c)


def hge_loglik_obs(theta: NDArray, design: HeckmanGEDesign) -> NDArray:
    """Unweighted log-likelihood contribution of every observation, shape (N,)."""
    ll, _ = _kernel(theta, design, derivatives=False)
    return ll


def hge_loglik_total(theta: NDArray, design: HeckmanGEDesign) -> float:
    """Weighted log-likelihood sum_i w_i l_i (the reported log-likelihood)."""
    return float(np.sum(design.weights * hge_loglik_obs(theta, design)))


def hge_scores(theta: NDArray, design: HeckmanGEDesign) -> NDArray:
    """Weighted per-observation gradients w_i * dl_i/dtheta.

    Returns
    -------
    scores : ndarray, shape (N, K)
        Rows sum to the gradient of :func:`hge_loglik_total`. Outcome,
        dispersion and correlation columns are zero on unselected rows.
    """
    _, (d_s, d_o, d_d, d_c) = _kernel(theta, design, derivatives=True)
    sel = design.selected
    rows = np.flatnonzero(sel)
    w = design.weights
    w1 = w[sel][:, None]
    layout = design.layout
    slices = layout.slices()

    scores = np.zeros((design.n_obs, layout.n_params), dtype=np.float64)
    scores[:, slices["selection"]] = (w * d_s)[:, None] * design.X_selection
    scores[rows, slices["outcome"]] = w1 * d_o[:, None] * design.X_outcome[sel]
    scores[rows, slices["dispersion"]] = w1 * d_d[:, None] * design.X_dispersion[sel]
    scores[rows, slices["correlation"]] = w1 * d_c[:, None] * design.X_correlation[sel]
    return scores


def _chain_to_theta(design: HeckmanGEDesign, derivs) -> NDArray:
    """Weighted column-wise chain rule from eta-derivatives to theta."""
    d_s, d_o, d_d, d_c = derivs
    sel = design.selected
    w = design.weights
    w1 = w[sel]
    return np.concatenate([
        design.X_selection.T @ (w * d_s),
        design.X_outcome[sel].T @ (w1 * d_o),
        design.X_dispersion[sel].T @ (w1 * d_d),
        design.X_correlation[sel].T @ (w1 * d_c),
    ])


def hge_gradient_total(theta: NDArray, design: HeckmanGEDesign) -> NDArray:
    """Gradient of the weighted log-likelihood sum, shape (K,)."""
    _, derivs = _kernel(theta, design, derivatives=True)
    return _chain_to_theta(design, derivs)


def hge_loglik(
    theta: NDArray,
    design: HeckmanGEDesign,
    *,
    return_gradient: bool = False,
) -> float | tuple[float, NDArray]:
    """Negative weighted mean log-likelihood (the minimizer's objective).

    The weighted sum is divided by the weight total, so rescaling all
    weights by a constant leaves the objective unchanged.

    Parameters
    ----------
    theta : ndarray, shape (n_params,)
        Parameter vector.
    design : HeckmanGEDesign
        Numeric model inputs.
    return_gradient : bool
        If True, also return the analytic gradient.

    Returns
    -------
    nll : float
        Negative weighted mean log-likelihood.
    grad : ndarray (only if return_gradient=True)
    """
    w_total = float(np.sum(design.weights))
    if not return_gradient:
        return -hge_loglik_total(theta, design) / w_total

    ll, derivs = _kernel(theta, design, derivatives=True)
    grad = _chain_to_theta(design, derivs)
    return -float(np.sum(design.weights * ll)) / w_total, -grad / w_total
