"""Generalized Heckman prediction.

For covariate rows z (selection), x (outcome), w (dispersion) and
v (correlation):

    selection      z'g
    probability    Phi(z'g)
    unconditional  x'b
    conditional    E[y | s = 1] = x'b + rho sigma phi(z'g) / Phi(z'g)
    sigma          exp(w'l)
    rho            tanh(v'k)
"""

from __future__ import annotations

import numpy as np
import pandas as pd

from pyheckmange.io import rhs_matrix_for
from pyheckmange.models.heckman_ge._hge_results import HeckmanGEResults
from pyheckmange.stats import mills_ratio, normal_cdf
from pyheckmange.transform import CORRELATION_LINK, DISPERSION_LINK

_KINDS = ("selection", "probability", "unconditional", "conditional", "sigma", "rho")

# blocks each kind needs
_NEEDS = {
    "selection": ("selection",),
    "probability": ("selection",),
    "unconditional": ("outcome",),
    "conditional": ("selection", "outcome", "dispersion", "correlation"),
    "sigma": ("dispersion",),
    "rho": ("correlation",),
}


def hge_predict(
    results: HeckmanGEResults,
    data: pd.DataFrame | None = None,
    *,
    kind: str = "unconditional",
) -> pd.Series:
    """Predict from a fitted Generalized Heckman model.

    Parameters
    ----------
    results : HeckmanGEResults
        Fitted model.
    data : pd.DataFrame or None
        New data; the covariates are rebuilt with the fit's formulas. If
        None, predictions are for the rows used in the fit.
    kind : str
        One of "selection", "probability", "unconditional",
        "conditional", "sigma", "rho".

    Returns
    -------
    pred : pd.Series
        Predictions indexed like the rows they belong to.
    """
    if kind not in _KINDS:
        raise ValueError(f"Unknown kind: {kind!r}. Use one of {list(_KINDS)}.")

    design = results.design
    if data is None:
        X = dict(zip(("selection", "outcome", "dispersion", "correlation"), design.matrices()))
        index = design.index
    else:
        X = {block: rhs_matrix_for(design, block, data) for block in _NEEDS[kind]}
        index = data.index

    blocks = {name: series.to_numpy() for name, series in results.coefficients.items()}

    if kind in ("selection", "probability", "conditional"):
        eta_s = X["selection"] @ blocks["selection"]
    if kind == "selection":
        values = eta_s
    elif kind == "probability":
        values = normal_cdf(eta_s)
    elif kind == "unconditional":
        values = X["outcome"] @ blocks["outcome"]
    elif kind == "sigma":
        values = DISPERSION_LINK.to_constrained(X["dispersion"] @ blocks["dispersion"])
    elif kind == "rho":
        values = CORRELATION_LINK.to_constrained(X["correlation"] @ blocks["correlation"])
    else:
        sigma = DISPERSION_LINK.to_constrained(X["dispersion"] @ blocks["dispersion"])
        rho = CORRELATION_LINK.to_constrained(X["correlation"] @ blocks["correlation"])
        values = X["outcome"] @ blocks["outcome"] + rho * sigma * mills_ratio(eta_s)

    return pd.Series(np.asarray(values, dtype=np.float64), index=index, name=kind)
