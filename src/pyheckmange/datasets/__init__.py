"""Synthetic datasets."""

from pyheckmange.datasets._simulate import DEFAULT_PARAMS, FORMULAS, simulate_heckman_ge

__all__ = ["DEFAULT_PARAMS", "FORMULAS", "simulate_heckman_ge"]
