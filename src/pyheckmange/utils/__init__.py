"""Utility functions."""

from pyheckmange.utils._validation import (
    check_2d,
    check_positive_definite,
    check_symmetric,
    constant_column,
    has_full_column_rank,
)

__all__ = [
    "check_2d",
    "check_positive_definite",
    "check_symmetric",
    "constant_column",
    "has_full_column_rank",
]
