"""Input validation utilities."""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray


def check_symmetric(A: NDArray, tol: float = 1e-10) -> bool:
    """Check if a matrix is symmetric within tolerance."""
    if A.ndim != 2 or A.shape[0] != A.shape[1]:
        return False
    return np.allclose(A, A.T, atol=tol)


def check_positive_definite(A: NDArray) -> bool:
    """Check if a symmetric matrix is positive definite via Cholesky."""
    if not check_symmetric(A, tol=1e-8 * max(1.0, float(np.max(np.abs(A))))):
        return False
    try:
        np.linalg.cholesky(A)
    except np.linalg.LinAlgError:
        return False
    return True


def check_2d(A: NDArray, name: str = "A") -> None:
    """Raise ValueError if A is not 2-dimensional."""
    if A.ndim != 2:
        raise ValueError(f"{name} must be 2-dimensional, got shape {A.shape}")


def has_full_column_rank(A: NDArray) -> bool:
    """True when the columns of A are linearly independent.

    An empty (n, 0) matrix is trivially of full column rank.
    """
    if A.shape[1] == 0:
        return True
    if A.shape[0] < A.shape[1]:
        return False
    return int(np.linalg.matrix_rank(A)) == A.shape[1]


def constant_column(A: NDArray) -> int | None:
    """Index of the first column of ones in A, or None."""
    for j in range(A.shape[1]):
        if np.all(A[:, j] == 1.0):
            return j
    return None
