"""Numerically stable univariate normal primitives."""

from pyheckmange.stats._normal import (
    mills_ratio,
    normal_cdf,
    normal_logcdf,
    normal_logpdf,
    normal_pdf,
)

__all__ = [
    "mills_ratio",
    "normal_cdf",
    "normal_logcdf",
    "normal_logpdf",
    "normal_pdf",
]
