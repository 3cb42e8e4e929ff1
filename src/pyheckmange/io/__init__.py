"""Data loading and design-matrix construction."""

from pyheckmange.io._data_loader import load_data
from pyheckmange.io._design import HeckmanGEDesign, build_design, rhs_matrix_for
from pyheckmange.io._formula import EquationSpec, as_equation

__all__ = [
    "EquationSpec",
    "HeckmanGEDesign",
    "as_equation",
    "build_design",
    "load_data",
    "rhs_matrix_for",
]
