"""Tests for equation specifications."""

from __future__ import annotations

import pytest

from pyheckmange.exceptions import InputError
from pyheckmange.io import EquationSpec, as_equation


class TestEquationSpec:
    def test_two_sided(self):
        spec = EquationSpec.from_formula("y ~ x1 + x2")
        assert spec.response == "y"
        assert spec.terms == ("x1", "x2")
        assert spec.intercept is True
        assert spec.to_formula() == "y ~ x1 + x2"

    def test_intercept_only(self):
        spec = EquationSpec.from_formula("~ 1")
        assert spec.response is None
        assert spec.terms == ()
        assert spec.intercept is True
        assert not spec.is_empty

    def test_empty_design(self):
        spec = EquationSpec.from_formula("~ 0")
        assert spec.is_empty
        assert spec.to_formula() == "~ 0"

    def test_no_intercept(self):
        spec = EquationSpec.from_formula("~ x1 - 1")
        assert spec.terms == ("x1",)
        assert spec.intercept is False
        assert spec.to_formula() == "~ x1 - 1"

    def test_interaction_term(self):
        spec = EquationSpec.from_formula("~ x1 + x1:x2")
        assert spec.terms == ("x1", "x1:x2")

    def test_unparseable(self):
        with pytest.raises(InputError):
            EquationSpec.from_formula("y ~ (x1")


class TestAsEquation:
    def test_list_means_covariates_plus_intercept(self):
        spec = as_equation(["x1", "x2"], "dispersion")
        assert spec == EquationSpec(response=None, terms=("x1", "x2"), intercept=True)

    def test_spec_passthrough(self):
        spec = EquationSpec(response=None, terms=("x1",))
        assert as_equation(spec, "correlation") is spec

    def test_response_required(self):
        with pytest.raises(InputError, match="needs a response"):
            as_equation("~ x1", "selection", need_response=True)

    def test_response_forbidden(self):
        with pytest.raises(InputError, match="right-handed"):
            as_equation("y ~ x1", "dispersion")

    def test_empty_outcome_rejected(self):
        with pytest.raises(InputError):
            as_equation("y ~ 0", "outcome", need_response=True)

    def test_bad_type(self):
        with pytest.raises(InputError):
            as_equation(42, "outcome")
