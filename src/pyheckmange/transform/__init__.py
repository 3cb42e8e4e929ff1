"""Links and parameter-space transforms for the dispersion and correlation equations."""

from pyheckmange.transform._links import (
    CORRELATION_LINK,
    DISPERSION_LINK,
    LogLink,
    TanhLink,
)
from pyheckmange.transform._param_transform import (
    BLOCKS,
    BlockLayout,
    ParameterTransform,
)

__all__ = [
    "BLOCKS",
    "BlockLayout",
    "CORRELATION_LINK",
    "DISPERSION_LINK",
    "LogLink",
    "ParameterTransform",
    "TanhLink",
]
