"""pyheckmange: Generalized Heckman sample-selection models by maximum likelihood."""

from pyheckmange.exceptions import (
    ClusterError,
    CovarianceError,
    HeckmanGEError,
    InputError,
    OptimizationError,
    StartingValueError,
)
from pyheckmange.models.heckman_ge import (
    HeckmanGEControl,
    HeckmanGEModel,
    HeckmanGEResults,
    heckman_ge,
    hge_predict,
    with_clustered_errors,
)

__version__ = "0.1.0"

__all__ = [
    "ClusterError",
    "CovarianceError",
    "HeckmanGEControl",
    "HeckmanGEError",
    "HeckmanGEModel",
    "HeckmanGEResults",
    "InputError",
    "OptimizationError",
    "StartingValueError",
    "heckman_ge",
    "hge_predict",
    "with_clustered_errors",
]
