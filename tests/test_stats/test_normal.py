"""Tests for the univariate normal primitives."""

from __future__ import annotations

import numpy as np
import pytest
from scipy.stats import norm

from pyheckmange.stats import mills_ratio, normal_cdf, normal_logcdf, normal_logpdf, normal_pdf


class TestNormalPrimitives:
    def test_pdf_cdf_match_scipy(self):
        x = np.linspace(-6.0, 6.0, 25)
        np.testing.assert_allclose(normal_pdf(x), norm.pdf(x), rtol=1e-12)
        np.testing.assert_allclose(normal_cdf(x), norm.cdf(x), rtol=1e-12)
        np.testing.assert_allclose(normal_logpdf(x), norm.logpdf(x), rtol=1e-12)

    def test_logcdf_far_left_tail(self):
        val = normal_logcdf(-40.0)
        assert np.isfinite(val)
        assert val < -800.0

    def test_mills_at_zero(self):
        assert mills_ratio(0.0) == pytest.approx(2.0 * norm.pdf(0.0), rel=1e-12)

    def test_mills_left_tail_is_finite(self):
        # phi(x)/Phi(x) ~ -x - 1/x for x -> -inf
        m = mills_ratio(np.array([-40.0, -200.0]))
        assert np.all(np.isfinite(m))
        assert m[0] == pytest.approx(40.025, abs=1e-3)
        assert m[1] == pytest.approx(200.005, abs=1e-3)

    def test_mills_right_tail_vanishes(self):
        m = mills_ratio(np.array([10.0, 40.0]))
        assert np.all(m >= 0.0)
        assert m[0] < 1e-20
