"""Tests for the synthetic data generator."""

from __future__ import annotations

import numpy as np
import pytest

from pyheckmange.datasets import DEFAULT_PARAMS, simulate_heckman_ge


class TestSimulate:
    def test_columns_and_selection(self):
        df, true_params = simulate_heckman_ge(n=500, seed=1)
        assert list(df.columns) == ["x1", "x2", "x3", "group", "sel", "y"]
        assert set(df["sel"].unique()) == {0, 1}
        assert df.loc[df["sel"] == 0, "y"].isna().all()
        assert df.loc[df["sel"] == 1, "y"].notna().all()
        assert list(true_params) == ["selection", "outcome", "dispersion", "correlation"]
        assert true_params["outcome"]["x1"] == DEFAULT_PARAMS["outcome"]["x1"]

    def test_reproducible(self):
        a, _ = simulate_heckman_ge(n=50, seed=3)
        b, _ = simulate_heckman_ge(n=50, seed=3)
        assert a.equals(b)

    def test_override(self):
        df, true_params = simulate_heckman_ge(
            n=2000, seed=2, params={"selection": {"Intercept": 3.0}}
        )
        assert true_params["selection"]["Intercept"] == 3.0
        assert true_params["selection"]["x1"] == DEFAULT_PARAMS["selection"]["x1"]
        assert df["sel"].mean() > 0.9

    def test_unknown_override(self):
        with pytest.raises(ValueError):
            simulate_heckman_ge(n=10, params={"outcome": {"x9": 1.0}})
        with pytest.raises(ValueError):
            simulate_heckman_ge(n=10, params={"variance": {"Intercept": 1.0}})
