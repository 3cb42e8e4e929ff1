"""Synthetic data from a Generalized Heckman data-generating process.

Covariates:
- x1 ~ N(0, 1), shared by every equation
- x2 ~ N(0, 1), enters the selection equation only (exclusion restriction)
- x3 ~ Bernoulli(0.5), shifts the outcome mean and the correlation
- group, an integer cluster label (about 20 rows per group)

Errors (u, e) are standard bivariate normal with correlation
rho_i = tanh(kappa0 + kappa1 x3_i); the outcome is
y_i = x_i'b + exp(l0 + l1 x1_i) e_i and is observed only when
z_i'g + u_i > 0.
"""

from __future__ import annotations

import numpy as np
import pandas as pd

from pyheckmange.transform import CORRELATION_LINK, DISPERSION_LINK

DEFAULT_PARAMS = {
    "selection": {"Intercept": 0.3, "x1": 0.8, "x2": -0.6},
    "outcome": {"Intercept": 1.0, "x1": 0.5, "x3": -0.7},
    "dispersion": {"Intercept": -0.2, "x1": 0.3},
    "correlation": {"Intercept": 0.4, "x3": 0.5},
}

FORMULAS = {
    "selection": "sel ~ x1 + x2",
    "outcome": "y ~ x1 + x3",
    "dispersion": "~ x1",
    "correlation": "~ x3",
}


def simulate_heckman_ge(
    n: int = 1000,
    seed: int | None = None,
    params: dict | None = None,
    *,
    rows_per_group: int = 20,
) -> tuple[pd.DataFrame, dict[str, pd.Series]]:
    """Draw a sample from the Generalized Heckman model.

    Parameters
    ----------
    n : int
        Number of observations.
    seed : int or None
        Seed of the random generator.
    params : dict or None
        Per-block overrides of :data:`DEFAULT_PARAMS`; each block is a
        mapping from covariate name to coefficient. Blocks use the
        covariates listed in :data:`FORMULAS`.
    rows_per_group : int
        Average number of rows per ``group`` label.

    Returns
    -------
    df : pd.DataFrame
        Columns x1, x2, x3, group, sel, y (y is NaN where sel == 0).
    true_params : dict of pd.Series
        Coefficients used, one Series per block.
    """
    merged = {block: dict(coefs) for block, coefs in DEFAULT_PARAMS.items()}
    for block, coefs in (params or {}).items():
        if block not in merged:
            raise ValueError(f"Unknown block: {block!r}")
        unknown = set(coefs) - set(merged[block])
        if unknown:
            raise ValueError(f"Unknown covariates for {block}: {sorted(unknown)}")
        merged[block].update(coefs)

    rng = np.random.default_rng(seed)
    x1 = rng.standard_normal(n)
    x2 = rng.standard_normal(n)
    x3 = (rng.random(n) < 0.5).astype(np.float64)
    group = rng.integers(0, max(n // rows_per_group, 2), size=n)

    cols = {"Intercept": np.ones(n), "x1": x1, "x2": x2, "x3": x3}

    def index(block):
        return sum(coef * cols[name] for name, coef in merged[block].items())

    sigma = DISPERSION_LINK.to_constrained(index("dispersion"))
    rho = CORRELATION_LINK.to_constrained(index("correlation"))

    u = rng.standard_normal(n)
    v = rng.standard_normal(n)
    e = rho * u + np.sqrt(1.0 - rho**2) * v

    sel = (index("selection") + u > 0).astype(np.int64)
    y = index("outcome") + sigma * e
    y = np.where(sel == 1, y, np.nan)

    df = pd.DataFrame({"x1": x1, "x2": x2, "x3": x3, "group": group, "sel": sel, "y": y})
    true_params = {block: pd.Series(coefs, name=block) for block, coefs in merged.items()}
    return df, true_params
