"""Exception hierarchy for Generalized Heckman estimation.

Each class maps to one failure category of a fit: bad inputs, starting
values, optimization, the information matrix, and cluster-robust
post-processing.
"""

from __future__ import annotations

import numpy as np


class HeckmanGEError(Exception):
    """Base class for all pyheckmange errors."""


class InputError(HeckmanGEError, ValueError):
    """Raised when data, weights or design matrices are unusable."""


class StartingValueError(HeckmanGEError, RuntimeError):
    """Raised when the two-step starting-value heuristic fails."""


class OptimizationError(HeckmanGEError, RuntimeError):
    """Raised when the likelihood maximization does not converge.

    Attributes
    ----------
    status : int
        Minimizer status code.
    message : str
        Minimizer status message.
    n_iter : int
        Iterations performed before stopping.
    x : NDArray or None
        Last parameter vector visited by the minimizer.
    """

    def __init__(self, msg, *, status=-1, message="", n_iter=0, x=None):
        super().__init__(msg)
        self.status = status
        self.message = message
        self.n_iter = n_iter
        self.x = x


class CovarianceError(HeckmanGEError, np.linalg.LinAlgError):
    """Raised when the observed information matrix cannot be inverted.

    The point estimate is still attached, since it may be usable even
    without a covariance matrix.
    """

    def __init__(self, msg, *, params=None, loglik=None):
        super().__init__(msg)
        self.params = params
        self.loglik = loglik


class ClusterError(HeckmanGEError, ValueError):
    """Raised when cluster-robust covariance cannot be computed.

    ``result`` holds the model-based fit, untouched.
    """

    def __init__(self, msg, *, result=None):
        super().__init__(msg)
        self.result = result
