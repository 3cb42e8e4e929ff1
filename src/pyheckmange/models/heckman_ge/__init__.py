"""Generalized Heckman sample-selection model (heteroskedastic, varying correlation)."""

from pyheckmange.models.heckman_ge._hge_control import HeckmanGEControl
from pyheckmange.models.heckman_ge._hge_forecast import hge_predict
from pyheckmange.models.heckman_ge._hge_loglik import (
    count_hge_params,
    hge_gradient_total,
    hge_loglik,
    hge_loglik_obs,
    hge_loglik_total,
    hge_scores,
    unpack_hge_params,
)
from pyheckmange.models.heckman_ge._hge_model import HeckmanGEModel, heckman_ge
from pyheckmange.models.heckman_ge._hge_results import HeckmanGECall, HeckmanGEResults
from pyheckmange.models.heckman_ge._hge_start import ProbitFit, StartValues, fit_probit, step2
from pyheckmange.models.heckman_ge._hge_vcov import (
    cluster_codes,
    vcov_cluster,
    vcov_sandwich,
    wald_statistics,
    with_clustered_errors,
    with_robust_errors,
)

__all__ = [
    "HeckmanGECall",
    "HeckmanGEControl",
    "HeckmanGEModel",
    "HeckmanGEResults",
    "ProbitFit",
    "StartValues",
    "cluster_codes",
    "count_hge_params",
    "fit_probit",
    "heckman_ge",
    "hge_gradient_total",
    "hge_loglik",
    "hge_loglik_obs",
    "hge_loglik_total",
    "hge_predict",
    "hge_scores",
    "step2",
    "unpack_hge_params",
    "vcov_cluster",
    "vcov_sandwich",
    "wald_statistics",
    "with_clustered_errors",
    "with_robust_errors",
]
