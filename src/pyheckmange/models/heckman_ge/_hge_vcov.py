"""Sandwich and cluster-robust covariance for a fitted Generalized Heckman model.

The bread is the model-based covariance inv(-H) of the weighted
log-likelihood sum; the meat is the outer product of the weighted
per-observation scores, summed within clusters when a cluster key is
given. Small-sample factors:

    HC1:      n / (n - k)
    cluster:  G / (G - 1) * (n - 1) / (n - k)

With one observation per cluster the two coincide.
"""

from __future__ import annotations

from dataclasses import replace

import numpy as np
import pandas as pd
from numpy.typing import NDArray
from scipy.stats import norm

from pyheckmange.exceptions import ClusterError
from pyheckmange.models.heckman_ge._hge_loglik import hge_scores
from pyheckmange.models.heckman_ge._hge_results import HeckmanGEResults
from pyheckmange.optim import compute_standard_errors, covariance_from_hessian, sandwich_covariance


def wald_statistics(params: NDArray, cov: NDArray) -> tuple[NDArray, NDArray, NDArray]:
    """Standard errors, z-statistics and two-sided p-values."""
    se = compute_standard_errors(cov)
    with np.errstate(divide="ignore", invalid="ignore"):
        z_stat = np.where(se > 0, params / se, 0.0)
    p_value = 2.0 * (1.0 - norm.cdf(np.abs(z_stat)))
    return se, z_stat, p_value


def _bread(results: HeckmanGEResults) -> NDArray:
    if results.hessian is not None:
        return covariance_from_hessian(results.hessian)
    if results.se_type == "model":
        return results.cov_matrix
    raise ValueError("results carry no Hessian; the model-based covariance is unavailable")


def _cluster_keys(results: HeckmanGEResults, cluster) -> tuple[pd.DataFrame, list[str]]:
    """Cluster key columns aligned to the retained rows of the fit."""
    design = results.design
    n = design.n_obs

    if isinstance(cluster, str) or (
        isinstance(cluster, (list, tuple)) and cluster and all(isinstance(c, str) for c in cluster)
    ):
        names = [cluster] if isinstance(cluster, str) else list(cluster)
        if design.data is None:
            raise ClusterError(
                "cluster given by name but the fit has no data frame", result=results
            )
        missing = [c for c in names if c not in design.data.columns]
        if missing:
            raise ClusterError(f"Cluster variable(s) {missing} not found in data", result=results)
        return design.data[names].reset_index(drop=True), names

    if isinstance(cluster, (pd.Series, pd.DataFrame)):
        frame = cluster.to_frame() if isinstance(cluster, pd.Series) else cluster
        if not design.index.isin(frame.index).all():
            raise ClusterError(
                "cluster index does not cover the rows used in the fit", result=results
            )
        names = [str(c) if c is not None else "cluster" for c in frame.columns]
        return frame.loc[design.index].reset_index(drop=True), names

    arr = np.asarray(cluster)
    if arr.ndim == 1:
        arr = arr[:, None]
    keep = design.keep
    if arr.ndim == 2 and keep is not None and arr.shape[0] == keep.shape[0] != n:
        # aligned to the input data, before the complete-case filter
        arr = arr[keep]
    if arr.ndim != 2 or arr.shape[0] != n:
        expected = f"{n}"
        if keep is not None and keep.shape[0] != n:
            expected += f" or {keep.shape[0]}"
        raise ClusterError(
            f"cluster has {arr.shape[0] if arr.ndim else 0} rows, expected {expected}",
            result=results,
        )
    names = ["cluster"] if arr.shape[1] == 1 else [f"cluster{j}" for j in range(arr.shape[1])]
    return pd.DataFrame(arr, columns=names), names


def cluster_codes(results: HeckmanGEResults, cluster) -> tuple[NDArray, list[str]]:
    """Integer cluster id per retained row (composite keys allowed).

    Returns
    -------
    codes : ndarray of int, shape (N,)
    names : list of str
        Names of the clustering variables.

    Raises
    ------
    ClusterError
        Missing column, misaligned key, missing values or fewer than two
        clusters.
    """
    keys, names = _cluster_keys(results, cluster)
    if keys.isna().to_numpy().any():
        raise ClusterError("cluster variable contains missing values", result=results)
    keys.columns = [f"k{j}" for j in range(keys.shape[1])]
    codes = keys.groupby(list(keys.columns), sort=True).ngroup().to_numpy()
    if np.unique(codes).size < 2:
        raise ClusterError("at least two clusters are required", result=results)
    return codes, names


def vcov_sandwich(results: HeckmanGEResults, adjust: bool = True) -> NDArray:
    """Heteroskedasticity-robust covariance (HC1 when ``adjust``)."""
    scores = hge_scores(results.params, results.design)
    n, k = scores.shape
    factor = n / (n - k) if adjust else 1.0
    return sandwich_covariance(_bread(results), scores, factor)


def vcov_cluster(results: HeckmanGEResults, cluster, adjust: bool = True) -> NDArray:
    """Cluster-robust covariance.

    Parameters
    ----------
    results : HeckmanGEResults
        Fitted model.
    cluster : str, list of str, Series, DataFrame or array-like
        Column name(s) of the fit's data, a Series/DataFrame aligned by
        index, or an array with one row per retained observation or per row of
        the input data.
    adjust : bool
        Apply the G/(G-1) * (n-1)/(n-k) small-sample factor.

    Returns
    -------
    V : ndarray, shape (K, K)
    """
    codes, _ = cluster_codes(results, cluster)
    return _vcov_from_codes(results, codes, adjust)


def _vcov_from_codes(results: HeckmanGEResults, codes: NDArray, adjust: bool) -> NDArray:
    scores = hge_scores(results.params, results.design)
    n, k = scores.shape
    n_clusters = int(codes.max()) + 1
    summed = np.zeros((n_clusters, k), dtype=np.float64)
    np.add.at(summed, codes, scores)
    factor = 1.0
    if adjust:
        factor = n_clusters / (n_clusters - 1) * (n - 1) / (n - k)
    return sandwich_covariance(_bread(results), summed, factor)


def with_robust_errors(results: HeckmanGEResults, adjust: bool = True) -> HeckmanGEResults:
    """New results object carrying HC1 sandwich standard errors."""
    cov = vcov_sandwich(results, adjust=adjust)
    se, z_stat, p_value = wald_statistics(results.params, cov)
    return replace(
        results, cov_matrix=cov, se=se, z_stat=z_stat, p_value=p_value,
        se_type="robust", cluster_vars=None,
    )


def with_clustered_errors(
    results: HeckmanGEResults, cluster, adjust: bool = True
) -> HeckmanGEResults:
    """New results object carrying cluster-robust standard errors.

    The input results are left untouched.

    Raises
    ------
    ClusterError
        If the cluster key cannot be used; ``exc.result`` is ``results``.
    """
    codes, names = cluster_codes(results, cluster)
    cov = _vcov_from_codes(results, codes, adjust)
    se, z_stat, p_value = wald_statistics(results.params, cov)
    call = results.call
    if call is not None:
        call = replace(call, cluster=tuple(names))
    return replace(
        results, cov_matrix=cov, se=se, z_stat=z_stat, p_value=p_value,
        se_type="clustered", cluster_vars=names, call=call,
    )
