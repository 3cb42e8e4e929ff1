"""Tests for the two-step starting values."""

from __future__ import annotations

import numpy as np
import pytest

from pyheckmange.exceptions import StartingValueError
from pyheckmange.io import build_design
from pyheckmange.models.heckman_ge import HeckmanGEControl, fit_probit, hge_loglik, step2


class TestFitProbit:
    def test_recovers_coefficients(self):
        rng = np.random.default_rng(1)
        n = 5000
        X = np.column_stack([np.ones(n), rng.standard_normal(n), rng.standard_normal(n)])
        gamma = np.array([0.2, 0.8, -0.5])
        y = (X @ gamma + rng.standard_normal(n) > 0).astype(float)

        fit = fit_probit(y, X)
        np.testing.assert_allclose(fit.coef, gamma, atol=0.1)
        np.testing.assert_allclose(fit.index, X @ fit.coef)
        assert fit.n_iter < 20

    def test_weights_act_as_frequencies(self):
        rng = np.random.default_rng(2)
        n = 400
        X = np.column_stack([np.ones(n), rng.standard_normal(n)])
        y = (X @ [0.1, 1.0] + rng.standard_normal(n) > 0).astype(float)
        counts = rng.integers(1, 4, n)

        weighted = fit_probit(y, X, counts.astype(float))
        expanded = fit_probit(np.repeat(y, counts), np.repeat(X, counts, axis=0))
        np.testing.assert_allclose(weighted.coef, expanded.coef, atol=1e-7)

    def test_perfect_separation(self):
        rng = np.random.default_rng(3)
        x = rng.standard_normal(200)
        X = np.column_stack([np.ones(200), x])
        y = (x > 0).astype(float)
        with pytest.raises(StartingValueError):
            fit_probit(y, X)

    def test_rank_deficient(self):
        X = np.column_stack([np.ones(10), np.ones(10)])
        y = np.r_[np.ones(5), np.zeros(5)]
        with pytest.raises(StartingValueError):
            fit_probit(y, X)


class TestStep2:
    def test_blocks(self, hge_design):
        start = step2(hge_design)
        assert start.selection.shape == (3,)
        assert start.outcome.shape == (3,)
        assert start.dispersion.shape == (2,)
        np.testing.assert_array_equal(start.correlation, np.zeros(2))
        assert start.theta.shape == (hge_design.layout.n_params,)
        np.testing.assert_array_equal(start.theta[:3], start.probit.coef)
        assert start.sigma > 0
        assert np.isfinite(hge_loglik(start.theta, hge_design))

    def test_close_to_truth(self, hge_data, hge_design):
        _, true_params = hge_data
        start = step2(hge_design)
        np.testing.assert_allclose(start.selection, true_params["selection"].to_numpy(), atol=0.25)
        np.testing.assert_allclose(start.outcome, true_params["outcome"].to_numpy(), atol=0.5)

    def test_dispersion_constant_matches_two_step_sigma(self, hge_data):
        df, _ = hge_data
        design = build_design(df, "sel ~ x1 + x2", "y ~ x1 + x3", "~ 1", "~ 1")
        start = step2(design)
        assert start.dispersion[0] == pytest.approx(np.log(start.sigma))
        assert start.rho == pytest.approx(start.lambda_coef / start.sigma)

    def test_twostep_rho(self, hge_design):
        start = step2(hge_design, HeckmanGEControl(rho_start="twostep"))
        expected = np.arctanh(np.clip(start.rho, -0.95, 0.95))
        assert start.correlation[0] == pytest.approx(expected)
        assert start.correlation[1] == 0.0

    def test_unknown_rho_start(self, hge_design):
        with pytest.raises(ValueError):
            step2(hge_design, HeckmanGEControl(rho_start="moments"))
