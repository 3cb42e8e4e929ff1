"""Generalized Heckman results structure.

Contains the estimated coefficient blocks, the covariance matrix (model
based, or cluster-robust after :func:`with_clustered_errors`), the
maximized log-likelihood and fitted values. Instances are immutable;
post-processing returns new instances.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from pyheckmange.io._design import HeckmanGEDesign
from pyheckmange.models.heckman_ge._hge_control import HeckmanGEControl
from pyheckmange.transform import BLOCKS, ParameterTransform


@dataclass(frozen=True)
class HeckmanGECall:
    """Record of how a model was specified (built eagerly at fit time)."""

    selection: str
    outcome: str
    dispersion: str
    correlation: str
    weights: str | None = None
    cluster: tuple[str, ...] | None = None
    start_supplied: bool = False

    def __str__(self) -> str:
        parts = [
            f"selection = {self.selection}",
            f"outcome = {self.outcome}",
            f"dispersion = {self.dispersion}",
            f"correlation = {self.correlation}",
        ]
        if self.weights is not None:
            parts.append(f"weights = {self.weights}")
        if self.cluster is not None:
            parts.append(f"cluster = {', '.join(self.cluster)}")
        return "heckman_ge(" + ", ".join(parts) + ")"


@dataclass(frozen=True)
class HeckmanGEResults:
    """Results from Generalized Heckman estimation.

    Attributes
    ----------
    params : NDArray
        Estimated parameters (selection, outcome, dispersion, correlation).
    param_names : list[str]
        Parameter names, ``block:covariate``.
    se : NDArray
        Standard errors.
    z_stat : NDArray
        z-statistics.
    p_value : NDArray
        Two-sided p-values.
    cov_matrix : NDArray
        Variance-covariance matrix of the parameters.
    loglik : float
        Maximized weighted log-likelihood.
    n_obs : int
        Number of observations.
    n_selected : int
        Number of selected (outcome observed) observations.
    n_params : int
        Total number of estimated parameters.
    converged : bool
        Whether optimization converged.
    n_iter : int
        Number of optimizer iterations.
    gradient : NDArray
        Gradient of the objective at convergence.
    fitted_values : NDArray
        Outcome linear predictor x_i'b for every retained row, selected or
        not. The complete-case rule keeps unselected rows whose outcome
        covariates are missing; their fitted value is NaN, and
        :meth:`summary` reports how many there are.
    start_params : NDArray
        Starting values handed to the optimizer.
    convergence_time : float
        Time in minutes to convergence.
    return_code : int
        Optimizer return code.
    message : str
        Optimizer status message.
    se_type : str
        "model", "robust" or "clustered".
    cluster_vars : list[str] or None
        Names of the clustering variables when se_type is "clustered".
    design : HeckmanGEDesign
        Numeric inputs of the fit.
    control : HeckmanGEControl
        Control structure used for estimation.
    call : HeckmanGECall or None
        Specification record.
    hessian : NDArray or None
        Finite-difference Hessian of the weighted log-likelihood sum at
        ``params``; its negative inverse is the model-based covariance and
        the bread of the sandwich estimators.
    """

    params: NDArray
    param_names: list[str]
    se: NDArray
    z_stat: NDArray
    p_value: NDArray
    cov_matrix: NDArray
    loglik: float
    n_obs: int
    n_selected: int
    n_params: int
    converged: bool
    n_iter: int
    gradient: NDArray
    fitted_values: NDArray
    start_params: NDArray
    convergence_time: float = 0.0
    return_code: int = 0
    message: str = ""
    se_type: str = "model"
    cluster_vars: list[str] | None = None
    design: HeckmanGEDesign | None = field(default=None, repr=False)
    control: HeckmanGEControl | None = field(default=None, repr=False)
    call: HeckmanGECall | None = None
    hessian: NDArray | None = field(default=None, repr=False)

    # ------------------------------------------------------------------
    def _block(self, name: str) -> pd.Series:
        sl = self.design.layout.slices()[name]
        return pd.Series(self.params[sl], index=self.design.names[name], name=name)

    @property
    def selection(self) -> pd.Series:
        """Selection-equation coefficients, named by covariate."""
        return self._block("selection")

    @property
    def outcome(self) -> pd.Series:
        """Outcome-equation coefficients, named by covariate."""
        return self._block("outcome")

    @property
    def dispersion(self) -> pd.Series:
        """Dispersion coefficients (log sigma scale), named by covariate."""
        return self._block("dispersion")

    @property
    def correlation(self) -> pd.Series:
        """Correlation coefficients (atanh rho scale), named by covariate."""
        return self._block("correlation")

    @property
    def coefficients(self) -> dict[str, pd.Series]:
        return {name: self._block(name) for name in BLOCKS}

    @property
    def aic(self) -> float:
        return -2.0 * self.loglik + 2.0 * self.n_params

    @property
    def bic(self) -> float:
        return -2.0 * self.loglik + np.log(self.n_obs) * self.n_params

    def vcov(self) -> pd.DataFrame:
        """Covariance matrix labelled by parameter name."""
        return pd.DataFrame(self.cov_matrix, index=self.param_names, columns=self.param_names)

    def sigma(self) -> NDArray:
        """Fitted dispersion sigma_i for every row (NaN where covariates are missing)."""
        return ParameterTransform(self.design.layout).sigma(self.params, self.design.X_dispersion)

    def rho(self) -> NDArray:
        """Fitted correlation rho_i for every row."""
        return ParameterTransform(self.design.layout).rho(self.params, self.design.X_correlation)

    def nuisance_at_means(self) -> pd.DataFrame:
        """Sigma and rho at the mean covariate profile of the selected rows.

        Standard errors come from the delta method through the links.
        """
        sel = self.design.selected
        w = self.design.weights[sel]
        x_disp = np.average(self.design.X_dispersion[sel], axis=0, weights=w) \
            if self.design.X_dispersion.shape[1] else np.zeros(0)
        x_corr = np.average(self.design.X_correlation[sel], axis=0, weights=w) \
            if self.design.X_correlation.shape[1] else np.zeros(0)
        out = ParameterTransform(self.design.layout).delta_method(
            self.params, self.cov_matrix, x_disp, x_corr
        )
        return pd.DataFrame(out, index=["Estimate", "Std.Error"]).T

    # ------------------------------------------------------------------
    def summary(self) -> str:
        """Print formatted estimation results.

        Returns
        -------
        text : str
            Formatted summary string.
        """
        lines = []
        sep = "=" * 70

        lines.append(sep)
        lines.append("  pyheckmange Generalized Heckman Estimation Results")
        lines.append(sep)
        if self.call is not None:
            lines.append(f"  {self.call}")
        lines.append("")

        rc_msg = "normal convergence" if self.return_code == 0 else self.message
        lines.append(f"  return code = {self.return_code:>5d}")
        lines.append(f"  {rc_msg}")
        lines.append("")
        lines.append(f"  Log-likelihood         {self.loglik:>14.4f}")
        lines.append(f"  AIC                    {self.aic:>14.4f}")
        lines.append(f"  BIC                    {self.bic:>14.4f}")
        lines.append(f"  Number of cases        {self.n_obs:>14d}")
        lines.append(f"  Selected cases         {self.n_selected:>14d}")
        n_undefined = int(np.sum(np.isnan(self.fitted_values)))
        if n_undefined:
            lines.append(f"  Fitted values missing  {n_undefined:>14d}")
        se_label = self.se_type
        if self.cluster_vars:
            se_label += f" by {', '.join(self.cluster_vars)}"
        lines.append(f"  Standard errors        {se_label:>14s}")

        header = (
            f"  {'Parameters':<20s} {'Estimates':>10s} {'Std. err.':>10s} "
            f"{'Est./s.e.':>10s} {'Prob.':>10s}"
        )
        slices = self.design.layout.slices()
        for block in BLOCKS:
            sl = slices[block]
            lines.append("")
            lines.append(f"  {block.capitalize()} equation")
            lines.append(header)
            lines.append("  " + "-" * 62)
            if sl.start == sl.stop:
                lines.append("  (fixed at zero)")
                continue
            for i, name in zip(range(sl.start, sl.stop), self.design.names[block]):
                lines.append(
                    f"  {name[:20]:<20s} {self.params[i]:>10.4f} {self.se[i]:>10.4f} "
                    f"{self.z_stat[i]:>10.3f} {self.p_value[i]:>10.4f}"
                )

        lines.append("")
        lines.append(f"  Number of iterations   {self.n_iter:>10d}")
        lines.append(f"  Minutes to convergence {self.convergence_time:>10.5f}")
        lines.append(sep)

        text = "\n".join(lines)
        print(text)
        return text

    def to_dataframe(self) -> pd.DataFrame:
        """Convert coefficient table to DataFrame."""
        return pd.DataFrame(
            {
                "Estimate": self.params,
                "Std.Error": self.se,
                "z-stat": self.z_stat,
                "p-value": self.p_value,
            },
            index=self.param_names,
        )
