"""Generalized Heckman model class: the main user-facing interface.

Wires the design builder, the two-step starting values, the likelihood
kernel and the minimizer into one fit, and exposes the functional entry
point :func:`heckman_ge`.
"""

from __future__ import annotations

import time
from dataclasses import replace
from pathlib import Path

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from pyheckmange.exceptions import ClusterError, CovarianceError, InputError, OptimizationError
from pyheckmange.io import HeckmanGEDesign, build_design, load_data
from pyheckmange.models._base import BaseModel
from pyheckmange.models.heckman_ge._hge_control import HeckmanGEControl
from pyheckmange.models.heckman_ge._hge_loglik import (
    hge_gradient_total,
    hge_loglik,
    hge_loglik_total,
)
from pyheckmange.models.heckman_ge._hge_results import HeckmanGECall, HeckmanGEResults
from pyheckmange.models.heckman_ge._hge_start import step2
from pyheckmange.models.heckman_ge._hge_vcov import wald_statistics, with_clustered_errors
from pyheckmange.optim import (
    check_convergence,
    covariance_from_hessian,
    minimize_scipy,
    numerical_hessian,
    scipy_method,
)
from pyheckmange.transform import BLOCKS, ParameterTransform


class HeckmanGEModel(BaseModel):
    """Generalized Heckman sample-selection model.

    Selection probit, linear outcome equation, log-linear dispersion
    sigma_i = exp(w_i'l) and correlation rho_i = tanh(v_i'k), fitted
    jointly by maximum likelihood.

    Parameters
    ----------
    data : pd.DataFrame or str or Path
        Dataset, or a path readable by :func:`~pyheckmange.io.load_data`.
    selection : str or EquationSpec
        Selection equation with a 0/1 response, e.g. ``"sel ~ x1 + x2"``.
    outcome : str or EquationSpec
        Outcome equation, e.g. ``"y ~ x1"``.
    dispersion : str, list of str or EquationSpec
        Right-handed dispersion equation, e.g. ``"~ x1"``.
    correlation : str, list of str or EquationSpec
        Right-handed correlation equation, e.g. ``"~ 1"``; ``"~ 0"``
        fixes rho at zero.
    weights : str, array-like or None
        Column name or vector of observation weights. ``None`` means
        unit weights.
    control : HeckmanGEControl or None
        Estimation control structure.

    Examples
    --------
    >>> model = HeckmanGEModel(
    ...     data=df,
    ...     selection="sel ~ x1 + x2",
    ...     outcome="y ~ x1",
    ...     dispersion="~ x1",
    ...     correlation="~ 1",
    ... )
    >>> results = model.fit(cluster="region")
    >>> results.summary()
    """

    def __init__(
        self,
        data: pd.DataFrame | str | Path,
        selection,
        outcome,
        dispersion,
        correlation,
        weights=None,
        control: HeckmanGEControl | None = None,
    ):
        if isinstance(data, (str, Path)):
            data = load_data(data)
        design = build_design(data, selection, outcome, dispersion, correlation, weights)
        if weights is None or isinstance(weights, str):
            weights_label = weights
        else:
            weights_label = "<vector>"
        self._setup(design, control, weights_label)

    @classmethod
    def from_design(
        cls, design: HeckmanGEDesign, control: HeckmanGEControl | None = None
    ) -> HeckmanGEModel:
        """Model over an already-built numeric design."""
        model = cls.__new__(cls)
        model._setup(design, control, None)
        return model

    def _setup(self, design, control, weights_label):
        self.design = design
        self.control = control or HeckmanGEControl()
        self.N = design.n_obs
        self.n_params = design.layout.n_params
        self.param_names = design.param_names

        if design.specs is not None:
            formulas = [design.specs[block].to_formula() for block in BLOCKS]
        else:
            formulas = ["<matrix>"] * len(BLOCKS)
        self.call = HeckmanGECall(
            *formulas,
            weights=weights_label,
            start_supplied=self.control.start is not None,
        )

    # ------------------------------------------------------------------
    def fit(self, cluster=None, *, allow_degraded: bool = False) -> HeckmanGEResults:
        """Estimate the model.

        Parameters
        ----------
        cluster : str, list of str, Series, DataFrame, array-like or None
            Cluster key for cluster-robust standard errors.
        allow_degraded : bool
            If True, a cluster key that cannot be used returns the
            model-based fit instead of raising ClusterError.

        Returns
        -------
        results : HeckmanGEResults

        Raises
        ------
        StartingValueError, OptimizationError, CovarianceError, ClusterError
        """
        results = self._fit_model_based()
        if cluster is None:
            return results
        try:
            return with_clustered_errors(results, cluster)
        except ClusterError as exc:
            if not allow_degraded:
                raise
            if self.control.verbose >= 1:
                print(f"  Cluster-robust errors unavailable ({exc}); returning model-based fit")
            return results

    def _start_values(self) -> NDArray:
        if self.control.start is None:
            return step2(self.design, self.control).theta
        theta0 = np.asarray(self.control.start, dtype=np.float64).ravel()
        if theta0.shape != (self.n_params,):
            raise InputError(
                f"start has {theta0.size} values, expected {self.n_params} "
                f"(selection, outcome, dispersion, correlation blocks)"
            )
        return theta0.copy()

    def _fit_model_based(self) -> HeckmanGEResults:
        design = self.design
        control = self.control
        layout = design.layout
        w_total = float(np.sum(design.weights))

        if control.verbose >= 1:
            print(
                f"Estimating Generalized Heckman model with {self.N} observations "
                f"({design.n_selected} selected), {self.n_params} parameters"
            )
            sizes = ", ".join(f"{b}={k}" for b, k in zip(BLOCKS, layout.sizes))
            print(f"  Parameters per equation: {sizes}")

        method = scipy_method(control.optimizer)
        transform = ParameterTransform(layout)
        theta0 = self._start_values()

        f0 = hge_loglik(theta0, design)
        if not np.isfinite(f0):
            raise OptimizationError(
                "log-likelihood is not finite at the starting values", x=theta0
            )

        # the minimizer works on the optimizer-space vector x
        def objective(x):
            f, g = hge_loglik(transform.to_natural(x), design, return_gradient=True)
            return f, transform.gradient_to_optimizer(x, g)

        def grad_total(x):
            g = hge_gradient_total(transform.to_natural(x), design)
            return transform.gradient_to_optimizer(x, g)

        hess = None
        if method == "trust-exact":
            def hess(x):
                return -numerical_hessian(grad_total, x, control.hessian_eps) / w_total

        start_time = time.time()
        result = minimize_scipy(
            objective,
            transform.to_unconstrained(theta0),
            method=method,
            maxiter=control.maxiter,
            tol=control.tol,
            verbose=control.verbose,
            hess=hess,
        )
        elapsed = (time.time() - start_time) / 60.0

        converged = result.converged or (
            result.status == 2 and check_convergence(result.grad, control.tol_accept)
        )
        if not converged or not np.isfinite(result.fun):
            raise OptimizationError(
                f"likelihood maximization did not converge: {result.message}",
                status=result.status,
                message=result.message,
                n_iter=result.n_iter,
                x=transform.to_natural(result.x),
            )

        theta_hat = transform.to_natural(result.x)
        loglik = hge_loglik_total(theta_hat, design)

        hess_opt = numerical_hessian(grad_total, result.x, control.hessian_eps)
        try:
            cov = transform.covariance_to_natural(result.x, covariance_from_hessian(hess_opt))
        except np.linalg.LinAlgError as exc:
            raise CovarianceError(
                "information matrix is not positive definite", params=theta_hat, loglik=loglik
            ) from exc
        hessian = transform.hessian_to_natural(result.x, hess_opt)

        se, z_stat, p_value = wald_statistics(theta_hat, cov)

        beta = theta_hat[layout.slices()["outcome"]]
        # NaN on unselected rows whose outcome covariates are missing
        fitted = design.X_outcome @ beta

        return HeckmanGEResults(
            params=theta_hat,
            param_names=list(self.param_names),
            se=se,
            z_stat=z_stat,
            p_value=p_value,
            cov_matrix=cov,
            loglik=loglik,
            n_obs=self.N,
            n_selected=design.n_selected,
            n_params=self.n_params,
            converged=True,
            n_iter=result.n_iter,
            gradient=result.grad,
            fitted_values=fitted,
            start_params=theta0,
            convergence_time=elapsed,
            return_code=result.return_code,
            message=result.message,
            design=design,
            control=control,
            call=self.call,
            hessian=hessian,
        )


def heckman_ge(
    selection,
    outcome,
    dispersion,
    correlation,
    data,
    weights=None,
    cluster=None,
    start=None,
    control: HeckmanGEControl | None = None,
) -> HeckmanGEResults:
    """Fit a Generalized Heckman model in one call.

    Parameters
    ----------
    selection, outcome, dispersion, correlation
        Equation specifications, see :class:`HeckmanGEModel`.
    data : pd.DataFrame or str or Path
        Dataset.
    weights : str, array-like or None
        Observation weights; ``None`` means unit weights.
    cluster : str, list of str, array-like or None
        Cluster key for cluster-robust standard errors.
    start : array-like or None
        Starting values (selection, outcome, dispersion, correlation
        blocks concatenated). Overrides ``control.start``.
    control : HeckmanGEControl or None
        Estimation control structure.

    Returns
    -------
    results : HeckmanGEResults
    """
    control = control or HeckmanGEControl()
    if start is not None:
        control = replace(control, start=np.asarray(start, dtype=np.float64))
    model = HeckmanGEModel(
        data, selection, outcome, dispersion, correlation, weights=weights, control=control
    )
    return model.fit(cluster=cluster)
