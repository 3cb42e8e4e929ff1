"""SciPy optimization wrapper."""

from __future__ import annotations

import time
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray
from scipy.optimize import minimize

_METHODS = {
    "bfgs": "BFGS",
    "lbfgsb": "L-BFGS-B",
    "newton": "trust-exact",
}


@dataclass
class OptimResult:
    """Optimization result container.

    Attributes
    ----------
    x : NDArray
        Optimal parameters.
    fun : float
        Objective value at optimum.
    grad : NDArray
        Gradient at optimum.
    n_iter : int
        Number of iterations.
    converged : bool
        Whether the minimizer reported success.
    return_code : int
        Return code (0 = converged).
    status : int
        Raw status code reported by scipy.
    message : str
        Status message.
    """

    x: NDArray
    fun: float
    grad: NDArray
    n_iter: int
    converged: bool
    return_code: int
    status: int
    message: str


def scipy_method(optimizer: str) -> str:
    """Translate a control-struct optimizer name into a scipy method name."""
    try:
        return _METHODS[optimizer]
    except KeyError:
        raise ValueError(
            f"Unknown optimizer: {optimizer!r}. Use one of {sorted(_METHODS)}."
        ) from None


def minimize_scipy(
    func,
    x0: NDArray,
    *,
    method: str = "BFGS",
    maxiter: int = 200,
    tol: float = 1e-5,
    verbose: int = 1,
    hess=None,
    bounds=None,
) -> OptimResult:
    """Minimize a scalar function using scipy.optimize.minimize.

    Parameters
    ----------
    func : callable
        func(x) -> (f, grad)
    x0 : ndarray
        Initial parameter vector.
    method : str
        "BFGS", "L-BFGS-B" or "trust-exact".
    maxiter : int
        Maximum iterations.
    tol : float
        Gradient tolerance.
    verbose : int
        0=silent, 1=summary, 2=per-iteration.
    hess : callable or None
        hess(x) -> (K, K) Hessian of the objective; required by "trust-exact".
    bounds : list of tuples or None
        Parameter bounds for L-BFGS-B.

    Returns
    -------
    result : OptimResult
    """
    x0 = np.asarray(x0, dtype=np.float64)

    if method == "trust-exact" and hess is None:
        raise ValueError("trust-exact requires a Hessian callable")

    iteration_count = [0]
    start_time = time.time()

    def callback(xk):
        iteration_count[0] += 1
        if verbose >= 2:
            elapsed = time.time() - start_time
            fval, _ = func(xk)
            print(f"  Iter {iteration_count[0]:4d}: f = {fval:.8f}  ({elapsed:.1f}s)")

    def scipy_func(x):
        f, g = func(x)
        return float(f), np.asarray(g, dtype=np.float64)

    result = minimize(
        scipy_func,
        x0,
        method=method,
        jac=True,
        hess=hess,
        options={"maxiter": maxiter, "gtol": tol},
        bounds=bounds,
        callback=callback,
    )

    if getattr(result, "jac", None) is not None:
        grad = np.asarray(result.jac, dtype=np.float64)
    else:
        _, grad = scipy_func(result.x)

    converged = bool(result.success)
    return_code = 0 if converged else 2

    if verbose >= 1:
        elapsed = time.time() - start_time
        status = "converged" if converged else "did not converge"
        print(f"  Optimization {status} in {result.nit} iterations ({elapsed:.2f}s)")
        print(f"  Final objective: {result.fun:.8f}")

    return OptimResult(
        x=np.asarray(result.x, dtype=np.float64),
        fun=float(result.fun),
        grad=grad,
        n_iter=int(result.nit),
        converged=converged,
        return_code=return_code,
        status=int(result.status),
        message=str(result.message),
    )
