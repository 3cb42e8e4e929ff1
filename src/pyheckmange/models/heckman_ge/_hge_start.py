"""Two-step starting values for the Generalized Heckman model.

1. Weighted probit of the selection indicator (Fisher scoring).
2. On selected rows, regress the outcome on its covariates plus the
   inverse Mills ratio of the probit index (Heckman's two-step).
3. Regress log squared residuals on the dispersion covariates; the
   constant is re-centred on the Heckman-corrected residual variance
       sigma^2 = mean(e^2) + b_lambda^2 * mean(imr * (imr + z'g)).
4. Correlation coefficients start at zero, or with rho = b_lambda / sigma
   on the constant column when ``rho_start="twostep"``.

Failures raise StartingValueError; nothing is replaced by zeros.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from pyheckmange.exceptions import StartingValueError
from pyheckmange.io._design import HeckmanGEDesign
from pyheckmange.models.heckman_ge._hge_control import HeckmanGEControl
from pyheckmange.stats import mills_ratio, normal_logcdf
from pyheckmange.transform import CORRELATION_LINK, DISPERSION_LINK, ParameterTransform
from pyheckmange.utils import constant_column, has_full_column_rank

# -E[log chi2_1] / 2: the offset between E[log e^2] / 2 and log sigma.
_LOG_CHI2_OFFSET = 0.5 * 1.2703628454614782
_RHO_START_BOUND = 0.95


@dataclass
class ProbitFit:
    """Result of the first-step probit."""

    coef: NDArray
    index: NDArray
    loglik: float
    n_iter: int


@dataclass
class StartValues:
    """Two-step starting values, one array per block.

    Attributes
    ----------
    selection, outcome, dispersion, correlation : NDArray
        Coefficient blocks.
    theta : NDArray
        The four blocks concatenated in the fixed order.
    probit : ProbitFit
        First-step probit fit.
    lambda_coef : float
        Coefficient of the inverse Mills ratio in the outcome regression.
    sigma : float
        Heckman-corrected two-step residual standard deviation.
    rho : float
        Implied two-step correlation lambda_coef / sigma (unclipped).
    """

    selection: NDArray
    outcome: NDArray
    dispersion: NDArray
    correlation: NDArray
    theta: NDArray
    probit: ProbitFit
    lambda_coef: float
    sigma: float
    rho: float


def _probit_loglik(y: NDArray, eta: NDArray, w: NDArray) -> float:
    sign = 2.0 * y - 1.0
    return float(np.sum(w * normal_logcdf(sign * eta)))


def fit_probit(
    y: NDArray,
    X: NDArray,
    w: NDArray | None = None,
    *,
    maxiter: int = 100,
    tol: float = 1e-8,
) -> ProbitFit:
    """Weighted probit by Fisher scoring with step halving.

    Parameters
    ----------
    y : ndarray, shape (N,)
        0/1 response.
    X : ndarray, shape (N, k)
        Covariates.
    w : ndarray or None
        Observation weights (ones if None).
    maxiter : int
        Maximum scoring iterations.
    tol : float
        Convergence threshold on the max-abs coefficient step.

    Returns
    -------
    fit : ProbitFit

    Raises
    ------
    StartingValueError
        If the information matrix is singular or scoring does not converge
        (e.g. under perfect separation).
    """
    y = np.asarray(y, dtype=np.float64)
    X = np.asarray(X, dtype=np.float64)
    w = np.ones_like(y) if w is None else np.asarray(w, dtype=np.float64)

    if not has_full_column_rank(X):
        raise StartingValueError("probit design matrix is rank deficient")

    sign = 2.0 * y - 1.0
    coef = np.zeros(X.shape[1], dtype=np.float64)
    eta = X @ coef
    ll = _probit_loglik(y, eta, w)

    for it in range(1, maxiter + 1):
        # d l / d eta and the expected information weight phi^2 / (Phi (1 - Phi))
        score_eta = sign * mills_ratio(sign * eta)
        info_w = mills_ratio(eta) * mills_ratio(-eta)

        grad = X.T @ (w * score_eta)
        info = X.T @ (X * (w * info_w)[:, None])
        try:
            step = np.linalg.solve(info, grad)
        except np.linalg.LinAlgError as exc:
            raise StartingValueError(
                f"probit information matrix is singular at iteration {it}"
            ) from exc

        t = 1.0
        for _ in range(30):
            new_coef = coef + t * step
            new_eta = X @ new_coef
            new_ll = _probit_loglik(y, new_eta, w)
            if np.isfinite(new_ll) and new_ll >= ll - 1e-12 * abs(ll):
                break
            t *= 0.5
        else:
            raise StartingValueError(f"probit step halving failed at iteration {it}")

        coef, eta, ll = new_coef, new_eta, new_ll
        if np.max(np.abs(t * step)) < tol:
            return ProbitFit(coef=coef, index=eta, loglik=ll, n_iter=it)

    raise StartingValueError(
        f"probit did not converge in {maxiter} iterations "
        "(check for perfect separation in the selection equation)"
    )


def _wls(y: NDArray, X: NDArray, w: NDArray, what: str) -> NDArray:
    """Weighted least squares coefficients; singular systems raise."""
    sw = np.sqrt(w)
    Xw = X * sw[:, None]
    if not has_full_column_rank(Xw):
        raise StartingValueError(f"{what} least-squares system is singular")
    coef, *_ = np.linalg.lstsq(Xw, y * sw, rcond=None)
    return coef


def step2(design: HeckmanGEDesign, control: HeckmanGEControl | None = None) -> StartValues:
    """Two-step consistent starting values for all four blocks.

    Parameters
    ----------
    design : HeckmanGEDesign
        Validated model inputs.
    control : HeckmanGEControl or None
        Uses ``rho_start``, ``probit_maxiter`` and ``probit_tol``.

    Returns
    -------
    start : StartValues
    """
    control = control or HeckmanGEControl()
    sel = design.selected
    w = design.weights

    probit = fit_probit(
        design.y_selection, design.X_selection, w,
        maxiter=control.probit_maxiter, tol=control.probit_tol,
    )

    # Heckman two-step outcome regression on the selected rows
    eta_s1 = probit.index[sel]
    imr = mills_ratio(eta_s1)
    w1 = w[sel]
    y1 = design.y_outcome[sel]
    Z = np.column_stack([design.X_outcome[sel], imr])
    coef = _wls(y1, Z, w1, "outcome")
    beta = coef[:-1]
    lambda_coef = float(coef[-1])
    resid = y1 - Z @ coef

    w1_total = float(np.sum(w1))
    delta = imr * (imr + eta_s1)
    sigma2 = (
        float(np.sum(w1 * resid**2)) / w1_total
        + lambda_coef**2 * float(np.sum(w1 * delta)) / w1_total
    )
    if not np.isfinite(sigma2) or sigma2 <= 0:
        raise StartingValueError("two-step residual variance is not positive")
    sigma = float(np.sqrt(sigma2))
    rho = lambda_coef / sigma

    # Dispersion: log e^2 regression, constant re-centred on the two-step sigma
    X_disp = design.X_dispersion[sel]
    lam = np.zeros(X_disp.shape[1], dtype=np.float64)
    if X_disp.shape[1] > 0:
        tiny = 1e-8 * max(sigma2, 1e-300)
        log_e2 = np.log(np.maximum(resid**2, tiny))
        lam = 0.5 * _wls(log_e2, X_disp, w1, "dispersion")
        j = constant_column(X_disp)
        if j is not None:
            lam[j] += _LOG_CHI2_OFFSET
            mean_log_sigma = float(np.sum(w1 * (X_disp @ lam))) / w1_total
            lam[j] += DISPERSION_LINK.to_unconstrained(sigma) - mean_log_sigma

    # Correlation: zeros unless the two-step moment estimate is requested
    X_corr = design.X_correlation[sel]
    kap = np.zeros(X_corr.shape[1], dtype=np.float64)
    if control.rho_start == "twostep":
        j = constant_column(X_corr)
        if j is not None:
            kap[j] = CORRELATION_LINK.to_unconstrained(
                np.clip(rho, -_RHO_START_BOUND, _RHO_START_BOUND)
            )
    elif control.rho_start != "zero":
        raise ValueError(f"Unknown rho_start: {control.rho_start!r}. Use 'zero' or 'twostep'.")

    theta = ParameterTransform(design.layout).join(probit.coef, beta, lam, kap)

    return StartValues(
        selection=probit.coef,
        outcome=beta,
        dispersion=lam,
        correlation=kap,
        theta=theta,
        probit=probit,
        lambda_coef=lambda_coef,
        sigma=sigma,
        rho=rho,
    )
