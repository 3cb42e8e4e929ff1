"""Tests for matrix validation helpers."""

from __future__ import annotations

import numpy as np
import pytest

from pyheckmange.utils import (
    check_2d,
    check_positive_definite,
    check_symmetric,
    constant_column,
    has_full_column_rank,
)


class TestValidation:
    def test_symmetric(self, pd_3x3):
        assert check_symmetric(pd_3x3)
        A = pd_3x3.copy()
        A[0, 1] += 1.0
        assert not check_symmetric(A)

    def test_positive_definite(self, pd_3x3):
        assert check_positive_definite(pd_3x3)
        assert not check_positive_definite(-pd_3x3)

    def test_check_2d(self):
        check_2d(np.zeros((2, 2)))
        with pytest.raises(ValueError):
            check_2d(np.zeros(3), "X")

    def test_column_rank(self):
        X = np.column_stack([np.ones(5), np.arange(5.0)])
        assert has_full_column_rank(X)
        assert not has_full_column_rank(np.column_stack([X, 2.0 * X[:, 1]]))
        assert has_full_column_rank(np.zeros((5, 0)))
        assert not has_full_column_rank(np.ones((1, 2)))

    def test_constant_column(self):
        X = np.column_stack([np.arange(4.0), np.ones(4)])
        assert constant_column(X) == 1
        assert constant_column(X[:, :1]) is None
        assert constant_column(np.zeros((4, 0))) is None
