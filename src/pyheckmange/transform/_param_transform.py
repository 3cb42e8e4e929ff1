"""Parameter vector layout and the natural/optimizer space mapping.

The parameter vector is the concatenation of four blocks, in this order:

    theta = [beta_selection, beta_outcome, lambda_dispersion, kappa_correlation]

with block widths fixed by the column counts of the design matrices.
Dispersion and correlation constraints are enforced on the linear
predictors by the links, so every coefficient block is itself
unconstrained and the map to optimizer space is the identity. The fitter
still routes the start, the optimum and the covariance through
:class:`ParameterTransform`, so a reparametrised block only needs
changes here.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from pyheckmange.transform._links import CORRELATION_LINK, DISPERSION_LINK

BLOCKS = ("selection", "outcome", "dispersion", "correlation")


@dataclass(frozen=True)
class BlockLayout:
    """Widths of the four coefficient blocks."""

    n_selection: int
    n_outcome: int
    n_dispersion: int
    n_correlation: int

    @property
    def sizes(self) -> tuple[int, int, int, int]:
        return (self.n_selection, self.n_outcome, self.n_dispersion, self.n_correlation)

    @property
    def n_params(self) -> int:
        return sum(self.sizes)

    def slices(self) -> dict[str, slice]:
        """Positions of each block inside the flat vector."""
        out = {}
        start = 0
        for name, size in zip(BLOCKS, self.sizes):
            out[name] = slice(start, start + size)
            start += size
        return out


class ParameterTransform:
    """Bidirectional map between natural parameters and optimizer space.

    Parameters
    ----------
    layout : BlockLayout
        Block widths of the parameter vector.
    """

    def __init__(self, layout: BlockLayout):
        self.layout = layout
        self.dispersion_link = DISPERSION_LINK
        self.correlation_link = CORRELATION_LINK
        self._slices = layout.slices()

    def split(self, theta: NDArray) -> tuple[NDArray, NDArray, NDArray, NDArray]:
        """Split a flat vector into (selection, outcome, dispersion, correlation)."""
        theta = np.asarray(theta, dtype=np.float64)
        if theta.shape != (self.layout.n_params,):
            raise ValueError(
                f"parameter vector has shape {theta.shape}, "
                f"expected ({self.layout.n_params},)"
            )
        return tuple(theta[self._slices[name]] for name in BLOCKS)

    def join(self, selection, outcome, dispersion, correlation) -> NDArray:
        """Concatenate the four blocks in the fixed order."""
        blocks = [np.atleast_1d(np.asarray(b, dtype=np.float64)) for b in
                  (selection, outcome, dispersion, correlation)]
        for name, block, size in zip(BLOCKS, blocks, self.layout.sizes):
            if block.shape != (size,):
                raise ValueError(f"{name} block has {block.size} values, expected {size}")
        return np.concatenate(blocks)

    def to_unconstrained(self, theta: NDArray) -> NDArray:
        """Natural coefficients -> optimizer vector (identity on every block)."""
        return np.asarray(theta, dtype=np.float64).copy()

    def to_natural(self, theta_opt: NDArray) -> NDArray:
        """Optimizer vector -> natural coefficients."""
        return np.asarray(theta_opt, dtype=np.float64).copy()

    def jacobian(self, theta_opt: NDArray) -> NDArray:
        """d natural / d optimizer, shape (K, K)."""
        return np.eye(self.layout.n_params)

    def covariance_to_natural(self, theta_opt: NDArray, cov_opt: NDArray) -> NDArray:
        """Propagate an optimizer-space covariance via the delta method."""
        J = self.jacobian(theta_opt)
        return J @ cov_opt @ J.T

    def gradient_to_optimizer(self, theta_opt: NDArray, grad: NDArray) -> NDArray:
        """Chain a natural-space gradient into optimizer space, J' g."""
        return self.jacobian(theta_opt).T @ np.asarray(grad, dtype=np.float64)

    def hessian_to_natural(self, theta_opt: NDArray, hess_opt: NDArray) -> NDArray:
        """Optimizer-space Hessian at a stationary point -> natural space.

        Valid where the gradient vanishes, so the second-derivative term of
        the map drops out: H = inv(J)' H_opt inv(J).
        """
        J_inv = np.linalg.inv(self.jacobian(theta_opt))
        return J_inv.T @ hess_opt @ J_inv

    def sigma(self, theta: NDArray, X_disp: NDArray) -> NDArray:
        """Dispersion sigma_i = exp(X_disp_i @ lambda)."""
        _, _, lam, _ = self.split(theta)
        return self.dispersion_link.to_constrained(np.asarray(X_disp) @ lam)

    def rho(self, theta: NDArray, X_corr: NDArray) -> NDArray:
        """Correlation rho_i = tanh(X_corr_i @ kappa)."""
        _, _, _, kap = self.split(theta)
        return self.correlation_link.to_constrained(np.asarray(X_corr) @ kap)

    def delta_method(
        self,
        theta: NDArray,
        cov: NDArray,
        x_disp: NDArray,
        x_corr: NDArray,
    ) -> dict[str, tuple[float, float]]:
        """Sigma and rho at one covariate profile, with delta-method SEs.

        Parameters
        ----------
        theta : ndarray, shape (K,)
            Fitted parameter vector.
        cov : ndarray, shape (K, K)
            Covariance matrix of ``theta``.
        x_disp : ndarray, shape (n_dispersion,)
            Dispersion covariate row.
        x_corr : ndarray, shape (n_correlation,)
            Correlation covariate row.

        Returns
        -------
        out : dict
            {"sigma": (estimate, se), "rho": (estimate, se)}
        """
        _, _, lam, kap = self.split(theta)
        x_disp = np.asarray(x_disp, dtype=np.float64)
        x_corr = np.asarray(x_corr, dtype=np.float64)

        eta_d = float(x_disp @ lam)
        eta_c = float(x_corr @ kap)

        grad_sigma = np.zeros(self.layout.n_params)
        grad_sigma[self._slices["dispersion"]] = (
            self.dispersion_link.derivative(eta_d) * x_disp
        )
        grad_rho = np.zeros(self.layout.n_params)
        grad_rho[self._slices["correlation"]] = (
            self.correlation_link.derivative(eta_c) * x_corr
        )

        return {
            "sigma": (
                float(self.dispersion_link.to_constrained(eta_d)),
                float(np.sqrt(max(grad_sigma @ cov @ grad_sigma, 0.0))),
            ),
            "rho": (
                float(self.correlation_link.to_constrained(eta_c)),
                float(np.sqrt(max(grad_rho @ cov @ grad_rho, 0.0))),
            ),
        }
