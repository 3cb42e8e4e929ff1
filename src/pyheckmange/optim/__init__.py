"""Optimizer wrapper and covariance helpers."""

from pyheckmange.optim._convergence import (
    check_convergence,
    compute_standard_errors,
    covariance_from_hessian,
    numerical_hessian,
    sandwich_covariance,
)
from pyheckmange.optim._scipy_optim import OptimResult, minimize_scipy, scipy_method

__all__ = [
    "OptimResult",
    "check_convergence",
    "compute_standard_errors",
    "covariance_from_hessian",
    "minimize_scipy",
    "numerical_hessian",
    "sandwich_covariance",
    "scipy_method",
]
