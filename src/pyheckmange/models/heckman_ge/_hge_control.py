"""Generalized Heckman model control structure.

Configures starting values, the optimizer and reporting for
:class:`~pyheckmange.models.heckman_ge.HeckmanGEModel`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from numpy.typing import NDArray


@dataclass
class HeckmanGEControl:
    """Control structure for Generalized Heckman estimation.

    Attributes
    ----------
    optimizer : str
        "bfgs" (default), "lbfgsb", or "newton" (trust-region Newton on a
        finite-difference Hessian of the analytic gradient).
    maxiter : int
        Maximum optimizer iterations.
    tol : float
        Convergence tolerance (max-abs gradient of the mean
        log-likelihood).
    tol_accept : float
        When the optimizer stops on loss of precision, the fit is still
        accepted as converged if the max-abs gradient is below this.
    hessian_eps : float
        Relative step of the finite-difference Hessian used for the
        covariance matrix.
    rho_start : str
        Seeding of the correlation coefficients by the two-step estimator:
        "zero" (all zeros) or "twostep" (Heckman moment estimate of rho on
        the constant column).
    probit_maxiter : int
        Maximum Fisher-scoring iterations of the first-step probit.
    probit_tol : float
        Step-size tolerance of the first-step probit.
    verbose : int
        Verbosity: 0=silent, 1=summary, 2=per-iteration.
    start : NDArray or None
        User-supplied starting values (selection, outcome, dispersion,
        correlation blocks concatenated). Skips the two-step estimator.
    """

    optimizer: Literal["bfgs", "lbfgsb", "newton"] = "bfgs"
    maxiter: int = 500
    tol: float = 1e-5
    tol_accept: float = 1e-3
    hessian_eps: float = 1e-5
    rho_start: Literal["zero", "twostep"] = "zero"
    probit_maxiter: int = 100
    probit_tol: float = 1e-8
    verbose: int = 1
    start: NDArray | None = None
