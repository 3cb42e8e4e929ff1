"""Tests for Generalized Heckman prediction."""

from __future__ import annotations

import numpy as np
import pytest
from scipy.stats import norm

from pyheckmange.datasets import simulate_heckman_ge
from pyheckmange.models.heckman_ge import HeckmanGEControl, heckman_ge, hge_predict


@pytest.fixture(scope="module")
def df():
    frame, _ = simulate_heckman_ge(n=800, seed=5)
    return frame


@pytest.fixture(scope="module")
def fit(df):
    return heckman_ge(
        "sel ~ x1 + x2", "y ~ x1 + x3", "~ x1", "~ x3",
        data=df, control=HeckmanGEControl(verbose=0),
    )


class TestPredict:
    def test_unconditional_is_fitted_values(self, fit):
        pred = hge_predict(fit)
        assert pred.name == "unconditional"
        np.testing.assert_allclose(pred.to_numpy(), fit.fitted_values)

    def test_probability(self, fit, df):
        index = hge_predict(fit, kind="selection")
        prob = hge_predict(fit, kind="probability")
        np.testing.assert_allclose(prob, norm.cdf(index))
        assert prob.between(0, 1).all()
        assert prob.index.equals(df.index)

    def test_sigma_and_rho(self, fit):
        np.testing.assert_allclose(hge_predict(fit, kind="sigma"), fit.sigma())
        np.testing.assert_allclose(hge_predict(fit, kind="rho"), fit.rho())

    def test_conditional_adds_selection_correction(self, fit):
        cond = hge_predict(fit, kind="conditional").to_numpy()
        uncond = hge_predict(fit, kind="unconditional").to_numpy()
        eta_s = hge_predict(fit, kind="selection").to_numpy()
        correction = fit.rho() * fit.sigma() * norm.pdf(eta_s) / norm.cdf(eta_s)
        np.testing.assert_allclose(cond, uncond + correction, rtol=1e-8)

    def test_new_data(self, fit, df):
        new = df.drop(columns=["sel", "y"]).iloc[10:20]
        for kind in ("selection", "unconditional", "conditional", "sigma", "rho"):
            pred = hge_predict(fit, new, kind=kind)
            assert pred.index.equals(new.index)
            np.testing.assert_allclose(pred, hge_predict(fit, kind=kind).iloc[10:20])

    def test_unknown_kind(self, fit):
        with pytest.raises(ValueError):
            hge_predict(fit, kind="marginal")
