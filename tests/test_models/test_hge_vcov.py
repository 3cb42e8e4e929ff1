"""Tests for sandwich and cluster-robust covariance."""

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from pyheckmange.datasets import simulate_heckman_ge
from pyheckmange.exceptions import ClusterError
from pyheckmange.models.heckman_ge import (
    HeckmanGEControl,
    HeckmanGEModel,
    cluster_codes,
    heckman_ge,
    hge_scores,
    vcov_cluster,
    vcov_sandwich,
    with_clustered_errors,
    with_robust_errors,
)

SCENARIO = ("sel ~ x1 + x2", "y ~ x1", "~ x1", "~ 1")


@pytest.fixture(scope="module")
def df():
    frame, _ = simulate_heckman_ge(n=1000, seed=99)
    frame["region"] = frame["group"] % 7
    return frame


@pytest.fixture(scope="module")
def model(df):
    return HeckmanGEModel(df, *SCENARIO, control=HeckmanGEControl(verbose=0))


@pytest.fixture(scope="module")
def fit(model):
    return model.fit()


class TestSandwich:
    def test_one_observation_per_cluster_is_hc1(self, fit):
        V_cl = vcov_cluster(fit, np.arange(fit.n_obs))
        V_hc = vcov_sandwich(fit)
        np.testing.assert_allclose(V_cl, V_hc, rtol=1e-10, atol=1e-14)

    def test_hc1_factor(self, fit):
        n, k = fit.n_obs, fit.n_params
        np.testing.assert_allclose(
            vcov_sandwich(fit, adjust=True), n / (n - k) * vcov_sandwich(fit, adjust=False)
        )

    def test_scores_vanish_at_optimum(self, fit):
        # sum of scores is the total gradient, ~0 at the MLE
        total = hge_scores(fit.params, fit.design).sum(axis=0)
        assert np.max(np.abs(total)) < fit.control.tol_accept * fit.design.weights.sum()

    def test_robust_results(self, fit):
        robust = with_robust_errors(fit)
        assert robust.se_type == "robust"
        np.testing.assert_allclose(robust.cov_matrix, vcov_sandwich(fit))
        np.testing.assert_allclose(robust.se, np.sqrt(np.diag(robust.cov_matrix)))


class TestCluster:
    def test_by_column_name(self, fit):
        clustered = with_clustered_errors(fit, "group")
        assert clustered.se_type == "clustered"
        assert clustered.cluster_vars == ["group"]
        assert clustered.call.cluster == ("group",)
        np.testing.assert_allclose(clustered.cov_matrix, vcov_cluster(fit, "group"))
        np.testing.assert_allclose(clustered.z_stat, clustered.params / clustered.se)
        np.testing.assert_array_equal(clustered.params, fit.params)

    def test_input_results_untouched(self, fit):
        se_before = fit.se.copy()
        cov_before = fit.cov_matrix.copy()
        clustered = with_clustered_errors(fit, "group")
        assert clustered is not fit
        assert fit.se_type == "model"
        assert fit.cluster_vars is None
        np.testing.assert_array_equal(fit.se, se_before)
        np.testing.assert_array_equal(fit.cov_matrix, cov_before)

    def test_bread_stays_model_based(self, fit):
        twice = with_clustered_errors(with_clustered_errors(fit, "group"), "group")
        np.testing.assert_allclose(twice.cov_matrix, vcov_cluster(fit, "group"))

    def test_small_sample_factor(self, fit, df):
        codes, _ = cluster_codes(fit, "group")
        G = np.unique(codes).size
        n, k = fit.n_obs, fit.n_params
        factor = G / (G - 1) * (n - 1) / (n - k)
        np.testing.assert_allclose(
            vcov_cluster(fit, "group"), factor * vcov_cluster(fit, "group", adjust=False)
        )

    def test_equivalent_key_forms(self, fit, df):
        by_name = vcov_cluster(fit, "group")
        by_series = vcov_cluster(fit, df["group"])
        by_array = vcov_cluster(fit, df["group"].to_numpy())
        relabelled = vcov_cluster(fit, df["group"].map(lambda g: f"g{g}"))
        np.testing.assert_allclose(by_series, by_name)
        np.testing.assert_allclose(by_array, by_name)
        np.testing.assert_allclose(relabelled, by_name)

    def test_composite_key(self, fit, df):
        codes, names = cluster_codes(fit, ["region", "x3"])
        assert names == ["region", "x3"]
        expected = df.groupby(["region", "x3"]).ngroups
        assert np.unique(codes).size == expected
        V = vcov_cluster(fit, ["region", "x3"])
        assert V.shape == (fit.n_params, fit.n_params)

    def test_through_fit(self, model, df):
        res = model.fit(cluster="group")
        assert res.se_type == "clustered"
        assert res.cluster_vars == ["group"]


class TestClusterErrors:
    def test_missing_column(self, fit):
        with pytest.raises(ClusterError, match="not found") as info:
            with_clustered_errors(fit, "district")
        assert info.value.result is fit

    def test_misaligned_array(self, fit):
        with pytest.raises(ClusterError):
            with_clustered_errors(fit, np.arange(fit.n_obs - 1))

    def test_series_not_covering_rows(self, fit, df):
        with pytest.raises(ClusterError):
            with_clustered_errors(fit, df["group"].iloc[:10])

    def test_missing_values(self, fit, df):
        key = df["group"].astype(float)
        key.iloc[0] = np.nan
        with pytest.raises(ClusterError, match="missing"):
            with_clustered_errors(fit, key)

    def test_single_cluster(self, fit):
        with pytest.raises(ClusterError, match="two clusters"):
            with_clustered_errors(fit, np.zeros(fit.n_obs))

    def test_fit_raises_without_permission(self, model):
        with pytest.raises(ClusterError) as info:
            model.fit(cluster="district")
        assert info.value.result.se_type == "model"

    def test_degraded_result_when_permitted(self, model):
        res = model.fit(cluster="district", allow_degraded=True)
        assert res.se_type == "model"
        assert res.cluster_vars is None

    def test_arrays_design_needs_explicit_key(self, fit):
        from dataclasses import replace

        bare = replace(fit, design=replace(fit.design, data=None))
        with pytest.raises(ClusterError):
            with_clustered_errors(bare, "group")
        assert with_clustered_errors(bare, pd.Series(fit.design.data["group"])).se_type == "clustered"


class TestDroppedRows:
    @pytest.fixture(scope="class")
    def incomplete(self):
        frame, _ = simulate_heckman_ge(n=600, seed=17)
        frame.loc[5, "x2"] = np.nan
        return frame

    @pytest.fixture(scope="class")
    def dropped_fit(self, incomplete):
        return heckman_ge(*SCENARIO, data=incomplete, control=HeckmanGEControl(verbose=0))

    def test_key_in_input_row_order(self, incomplete, dropped_fit):
        assert dropped_fit.n_obs == len(incomplete) - 1
        by_input_rows = vcov_cluster(dropped_fit, incomplete["group"].to_numpy())
        np.testing.assert_allclose(by_input_rows, vcov_cluster(dropped_fit, "group"))

    def test_key_in_retained_row_order(self, dropped_fit):
        retained = dropped_fit.design.data["group"].to_numpy()
        np.testing.assert_allclose(
            vcov_cluster(dropped_fit, retained), vcov_cluster(dropped_fit, "group")
        )

    def test_through_functional_entry(self, incomplete):
        res = heckman_ge(
            *SCENARIO, data=incomplete, cluster=incomplete["group"].to_numpy(),
            control=HeckmanGEControl(verbose=0),
        )
        assert res.se_type == "clustered"
        assert res.cluster_vars == ["cluster"]

    def test_other_lengths_rejected(self, incomplete, dropped_fit):
        with pytest.raises(ClusterError, match="599 or 600"):
            vcov_cluster(dropped_fit, np.arange(len(incomplete) + 1))
