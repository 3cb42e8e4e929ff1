"""Link functions for the dispersion and correlation equations.

The dispersion equation codes log(sigma) as a linear predictor and the
correlation equation codes atanh(rho) (Fisher's z) as a linear predictor.
Both links clip the linear predictor to a finite window before mapping,
so that every value handed to the likelihood satisfies sigma > 0 and
|rho| < 1 strictly:

    sigma = exp(clip(eta, -40, 40))
    rho   = tanh(clip(eta, -9, 9))         ->  1 - rho^2 >= 6e-8
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray


class LogLink:
    """Log link: eta = log(sigma), sigma = exp(eta)."""

    name = "log"
    eta_max = 40.0

    def to_constrained(self, eta: NDArray) -> NDArray:
        """Map a linear predictor to a strictly positive dispersion."""
        eta = np.asarray(eta, dtype=np.float64)
        return np.exp(np.clip(eta, -self.eta_max, self.eta_max))

    def to_unconstrained(self, sigma: NDArray) -> NDArray:
        """Map a positive dispersion back to the linear-predictor scale."""
        sigma = np.asarray(sigma, dtype=np.float64)
        if np.any(sigma <= 0):
            raise ValueError("dispersion must be strictly positive")
        return np.log(sigma)

    def derivative(self, eta: NDArray) -> NDArray:
        """d sigma / d eta (zero outside the clip window)."""
        eta = np.asarray(eta, dtype=np.float64)
        inside = np.abs(eta) <= self.eta_max
        return np.where(inside, self.to_constrained(eta), 0.0)


class TanhLink:
    """Inverse Fisher-z link: eta = atanh(rho), rho = tanh(eta)."""

    name = "tanh"
    eta_max = 9.0

    def to_constrained(self, eta: NDArray) -> NDArray:
        """Map a linear predictor to a correlation in (-1, 1)."""
        eta = np.asarray(eta, dtype=np.float64)
        return np.tanh(np.clip(eta, -self.eta_max, self.eta_max))

    def to_unconstrained(self, rho: NDArray) -> NDArray:
        """Map a correlation in (-1, 1) back to Fisher's z."""
        rho = np.asarray(rho, dtype=np.float64)
        if np.any(np.abs(rho) >= 1.0):
            raise ValueError("correlation must lie strictly inside (-1, 1)")
        return np.arctanh(rho)

    def derivative(self, eta: NDArray) -> NDArray:
        """d rho / d eta = 1 - rho^2 (zero outside the clip window)."""
        eta = np.asarray(eta, dtype=np.float64)
        rho = self.to_constrained(eta)
        inside = np.abs(eta) <= self.eta_max
        return np.where(inside, 1.0 - rho * rho, 0.0)


DISPERSION_LINK = LogLink()
CORRELATION_LINK = TanhLink()
