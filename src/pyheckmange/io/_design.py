"""Build the numeric design of a Generalized Heckman model.

Converts a DataFrame plus four equation specifications into row-aligned
numeric arrays: a 0/1 selection response, an outcome response (NaN where
unselected), four covariate matrices and a weight vector.

Complete-case policy: a row is kept when the selection response and
covariates are observed, the correlation covariates are observed, and
either the row is unselected or all outcome/dispersion variables are
observed. Outcome and dispersion covariates may therefore be missing on
unselected rows; they are carried as NaN and never touched by the
likelihood.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np
import pandas as pd
import patsy
from numpy.typing import NDArray

from pyheckmange.exceptions import InputError
from pyheckmange.io._formula import EquationSpec, as_equation
from pyheckmange.transform import BLOCKS, BlockLayout
from pyheckmange.utils import check_2d, has_full_column_rank


@dataclass
class HeckmanGEDesign:
    """Numeric inputs of one fit.

    Attributes
    ----------
    y_selection : NDArray, shape (N,)
        Selection indicator (0/1).
    y_outcome : NDArray, shape (N,)
        Outcome response; NaN on unselected rows.
    X_selection, X_outcome, X_dispersion, X_correlation : NDArray
        Covariate matrices, shape (N, k_block). Outcome and dispersion
        matrices may hold NaN on unselected rows.
    weights : NDArray, shape (N,)
        Non-negative observation weights (ones when not supplied).
    names : dict
        Covariate names per block.
    index : pd.Index
        Row labels of the retained observations.
    response_names : tuple of str
        (selection response, outcome response).
    data : pd.DataFrame or None
        Retained rows of the input data (all columns), used to look up
        cluster variables by name.
    specs : dict or None
        EquationSpec per block, when built from a DataFrame.
    design_infos : dict or None
        patsy DesignInfo per block, used to map new data for prediction.
    keep : NDArray or None
        Boolean mask over the rows of the input data marking the retained
        rows, used to align vectors given in the original row order.
    """

    y_selection: NDArray
    y_outcome: NDArray
    X_selection: NDArray
    X_outcome: NDArray
    X_dispersion: NDArray
    X_correlation: NDArray
    weights: NDArray
    names: dict[str, list[str]]
    index: pd.Index
    response_names: tuple[str, str] = ("selection", "outcome")
    data: pd.DataFrame | None = None
    specs: dict[str, EquationSpec] | None = None
    design_infos: dict[str, patsy.DesignInfo | None] | None = field(default=None, repr=False)
    keep: NDArray | None = field(default=None, repr=False)

    @classmethod
    def from_arrays(
        cls,
        y_selection,
        y_outcome,
        X_selection,
        X_outcome,
        X_dispersion,
        X_correlation,
        weights=None,
        *,
        names: dict[str, list[str]] | None = None,
    ) -> HeckmanGEDesign:
        """Wrap already-built numeric arrays and validate them.

        DataFrame inputs contribute their column names. ``weights=None``
        means unit weights.
        """
        matrices = {}
        found_names = {}
        for block, X in zip(BLOCKS, (X_selection, X_outcome, X_dispersion, X_correlation)):
            if isinstance(X, pd.DataFrame):
                found_names[block] = [str(c) for c in X.columns]
            arr = np.asarray(X, dtype=np.float64)
            if arr.ndim == 1:
                arr = arr[:, None]
            matrices[block] = arr

        names = dict(names or {})
        for block in BLOCKS:
            if block not in names:
                names[block] = found_names.get(
                    block, [f"x{j}" for j in range(matrices[block].shape[1])]
                )

        ys = np.asarray(y_selection)
        n = ys.shape[0]
        design = cls(
            y_selection=_selection_response(ys),
            y_outcome=np.asarray(y_outcome, dtype=np.float64).copy(),
            X_selection=matrices["selection"],
            X_outcome=matrices["outcome"],
            X_dispersion=matrices["dispersion"],
            X_correlation=matrices["correlation"],
            weights=_coerce_weights(weights, n),
            names=names,
            index=pd.RangeIndex(n),
        )
        design.y_outcome[design.y_selection == 0] = np.nan
        design.validate()
        return design

    # ------------------------------------------------------------------
    @property
    def n_obs(self) -> int:
        return int(self.y_selection.shape[0])

    @property
    def selected(self) -> NDArray:
        """Boolean mask of selected rows."""
        return self.y_selection == 1

    @property
    def n_selected(self) -> int:
        return int(np.sum(self.selected))

    @property
    def layout(self) -> BlockLayout:
        return BlockLayout(
            self.X_selection.shape[1],
            self.X_outcome.shape[1],
            self.X_dispersion.shape[1],
            self.X_correlation.shape[1],
        )

    @property
    def param_names(self) -> list[str]:
        """Names of the concatenated parameter vector, ``block:covariate``."""
        return [f"{block}:{name}" for block in BLOCKS for name in self.names[block]]

    @property
    def frames(self) -> dict[str, pd.DataFrame]:
        """The four model frames (covariates named, responses attached)."""
        sel_name, out_name = self.response_names
        frames = {}
        for block, X in zip(BLOCKS, self.matrices()):
            frame = pd.DataFrame(X, index=self.index, columns=self.names[block])
            if block == "selection":
                frame.insert(0, sel_name, self.y_selection)
            elif block == "outcome":
                frame.insert(0, out_name, self.y_outcome)
            frames[block] = frame
        return frames

    def matrices(self) -> tuple[NDArray, NDArray, NDArray, NDArray]:
        return (self.X_selection, self.X_outcome, self.X_dispersion, self.X_correlation)

    # ------------------------------------------------------------------
    def validate(self) -> None:
        """Check alignment, finiteness, weights and column rank.

        Raises
        ------
        InputError
        """
        n = self.n_obs
        for block, X in zip(BLOCKS, self.matrices()):
            try:
                check_2d(X, f"{block} design matrix")
            except ValueError as exc:
                raise InputError(str(exc)) from exc
            if X.shape[0] != n:
                raise InputError(
                    f"{block} design matrix has {X.shape[0]} rows but the selection "
                    f"response has {n}"
                )
            if len(self.names[block]) != X.shape[1]:
                raise InputError(
                    f"{block} design matrix has {X.shape[1]} columns but "
                    f"{len(self.names[block])} names"
                )
        for label, vec in (("outcome response", self.y_outcome), ("weights", self.weights)):
            if vec.shape != (n,):
                raise InputError(f"{label} has shape {vec.shape}, expected ({n},)")

        if self.X_selection.shape[1] == 0:
            raise InputError("selection equation needs at least one covariate")
        if self.X_outcome.shape[1] == 0:
            raise InputError("outcome equation needs at least one covariate")

        sel = self.selected
        if not np.any(sel):
            raise InputError("no selected observations (selection response is all 0)")
        if np.all(sel):
            raise InputError("no unselected observations (selection response is all 1)")

        if not np.all(np.isfinite(self.X_selection)):
            raise InputError("selection covariates contain missing or non-finite values")
        if not np.all(np.isfinite(self.X_correlation)):
            raise InputError("correlation covariates contain missing or non-finite values")
        if not np.all(np.isfinite(self.y_outcome[sel])):
            raise InputError("outcome response is missing on selected observations")
        for block, X in (("outcome", self.X_outcome), ("dispersion", self.X_dispersion)):
            if not np.all(np.isfinite(X[sel])):
                raise InputError(
                    f"{block} covariates contain missing values on selected observations"
                )

        if not np.all(np.isfinite(self.weights)) or np.any(self.weights < 0):
            raise InputError("'weights' must be finite and non-negative")
        if float(np.sum(self.weights)) <= 0:
            raise InputError("'weights' sum to zero")

        if not has_full_column_rank(self.X_selection):
            raise InputError("selection design matrix is rank deficient")
        for block, X in zip(BLOCKS[1:], self.matrices()[1:]):
            if not has_full_column_rank(X[sel]):
                raise InputError(
                    f"{block} design matrix is rank deficient on the selected observations"
                )


def build_design(
    data: pd.DataFrame,
    selection,
    outcome,
    dispersion,
    correlation,
    weights=None,
) -> HeckmanGEDesign:
    """Build a validated HeckmanGEDesign from a DataFrame.

    Parameters
    ----------
    data : pd.DataFrame
        Dataset.
    selection : str or EquationSpec
        Selection equation with a 0/1 response, e.g. ``"sel ~ x1 + x2"``.
    outcome : str or EquationSpec
        Outcome equation, e.g. ``"y ~ x1"``.
    dispersion : str, list of str or EquationSpec
        Right-handed dispersion equation, e.g. ``"~ x1"``.
    correlation : str, list of str or EquationSpec
        Right-handed correlation equation, e.g. ``"~ 1"``.
    weights : str, array-like or None
        Column name or vector of observation weights. ``None`` means unit
        weights for every row.

    Returns
    -------
    design : HeckmanGEDesign
    """
    if not isinstance(data, pd.DataFrame):
        raise InputError(f"data must be a pandas DataFrame, got {type(data).__name__}")

    specs = {
        "selection": as_equation(selection, "selection", need_response=True),
        "outcome": as_equation(outcome, "outcome", need_response=True),
        "dispersion": as_equation(dispersion, "dispersion"),
        "correlation": as_equation(correlation, "correlation"),
    }
    sel_name = specs["selection"].response
    out_name = specs["outcome"].response
    for col in (sel_name, out_name):
        if col not in data.columns:
            raise InputError(f"Response variable '{col}' not found in data")

    complete_selection = data[sel_name].notna() & _complete_rows(specs["selection"], data)
    complete_outcome = (
        data[out_name].notna()
        & _complete_rows(specs["outcome"], data)
        & _complete_rows(specs["dispersion"], data)
    )
    complete_correlation = _complete_rows(specs["correlation"], data)

    ys_raw = data[sel_name]
    _selection_response(ys_raw.dropna().to_numpy())
    keep = (
        complete_selection
        & complete_correlation
        & ((ys_raw == 0) | ((ys_raw == 1) & complete_outcome))
    )
    kept = data.loc[keep]

    w = _weights_for_rows(weights, data, keep)

    ys = _selection_response(kept[sel_name].to_numpy())
    yo = pd.to_numeric(kept[out_name], errors="coerce").to_numpy(dtype=np.float64).copy()
    yo[ys == 0] = np.nan

    matrices = {}
    names = {}
    design_infos = {}
    for block in BLOCKS:
        na_action = "raise" if block in ("selection", "correlation") else "drop"
        X, info = _rhs_matrix(specs[block], kept, na_action)
        matrices[block] = X
        names[block] = list(info.column_names) if info is not None else []
        design_infos[block] = info

    design = HeckmanGEDesign(
        y_selection=ys,
        y_outcome=yo,
        X_selection=matrices["selection"],
        X_outcome=matrices["outcome"],
        X_dispersion=matrices["dispersion"],
        X_correlation=matrices["correlation"],
        weights=w,
        names=names,
        index=kept.index,
        response_names=(sel_name, out_name),
        data=kept,
        specs=specs,
        design_infos=design_infos,
        keep=keep.to_numpy(dtype=bool),
    )
    design.validate()
    return design


def rhs_matrix_for(design: HeckmanGEDesign, block: str, data: pd.DataFrame) -> NDArray:
    """Covariate matrix of ``block`` for new data, using the stored design info."""
    if design.design_infos is None or design.specs is None:
        raise ValueError("design was built from arrays; prediction needs new matrices")
    info = design.design_infos[block]
    if info is None:
        return np.zeros((len(data), 0), dtype=np.float64)
    try:
        (X,) = patsy.build_design_matrices([info], data, NA_action="raise")
    except patsy.PatsyError as exc:
        raise InputError(f"Cannot build {block} covariates for new data: {exc}") from exc
    return np.asarray(X, dtype=np.float64)


# ----------------------------------------------------------------------
def _complete_rows(spec: EquationSpec, data: pd.DataFrame) -> pd.Series:
    """Rows on which every variable of the right-hand side is observed."""
    if spec.is_empty:
        return pd.Series(True, index=data.index)
    try:
        X = patsy.dmatrix(spec.rhs(), data, NA_action="drop", return_type="dataframe")
    except patsy.PatsyError as exc:
        raise InputError(f"Variable not found or invalid term in {spec.to_formula()!r}: {exc}") from exc
    return pd.Series(data.index.isin(X.index), index=data.index)


def _rhs_matrix(
    spec: EquationSpec, data: pd.DataFrame, na_action: str
) -> tuple[NDArray, patsy.DesignInfo | None]:
    if spec.is_empty:
        return np.zeros((len(data), 0), dtype=np.float64), None
    try:
        X = patsy.dmatrix(spec.rhs(), data, NA_action=na_action, return_type="dataframe")
    except patsy.PatsyError as exc:
        raise InputError(f"Cannot build design for {spec.to_formula()!r}: {exc}") from exc
    info = X.design_info
    X = X.reindex(data.index)
    return X.to_numpy(dtype=np.float64), info


def _selection_response(values) -> NDArray:
    values = np.asarray(values)
    if values.dtype == bool:
        return values.astype(np.int64)
    try:
        numeric = values.astype(np.float64)
    except (TypeError, ValueError) as exc:
        raise InputError("selection response must be numeric 0/1") from exc
    if not np.all(np.isin(numeric, (0.0, 1.0))):
        raise InputError("selection response must only contain 0 and 1")
    return numeric.astype(np.int64)


def _coerce_weights(weights, n: int) -> NDArray:
    if weights is None:
        return np.ones(n, dtype=np.float64)
    w = np.asarray(weights)
    if not (np.issubdtype(w.dtype, np.number) or w.dtype == bool):
        raise InputError("'weights' must be a numeric vector")
    w = w.astype(np.float64)
    if w.shape != (n,):
        raise InputError(f"'weights' has shape {w.shape}, expected ({n},)")
    return w


def _weights_for_rows(weights, data: pd.DataFrame, keep: pd.Series) -> NDArray:
    n_kept = int(keep.sum())
    if weights is None:
        return np.ones(n_kept, dtype=np.float64)
    if isinstance(weights, str):
        if weights not in data.columns:
            raise InputError(f"Weight variable '{weights}' not found in data")
        return _coerce_weights(data.loc[keep, weights].to_numpy(), n_kept)
    if isinstance(weights, pd.Series):
        if not keep.index[keep].isin(weights.index).all():
            raise InputError("'weights' index does not cover the data rows")
        return _coerce_weights(weights.loc[keep.index[keep]].to_numpy(), n_kept)
    w = np.asarray(weights)
    if w.ndim != 1 or w.shape[0] != len(data):
        raise InputError(
            f"'weights' has {w.shape[0] if w.ndim else 0} entries but data has {len(data)} rows"
        )
    return _coerce_weights(w[keep.to_numpy()], n_kept)
