"""Typed equation specifications.

Each of the four equations is described by an :class:`EquationSpec`: an
optional response column, a tuple of right-hand-side terms and an
intercept flag. Specs can be written directly or parsed from R/patsy
formula strings:

    >>> EquationSpec.from_formula("dambexp ~ age + female + educ")
    EquationSpec(response='dambexp', terms=('age', 'female', 'educ'), intercept=True)
    >>> EquationSpec.from_formula("~ 1").to_formula()
    '~ 1'

A spec with no terms and no intercept (``"~ 0"``) is the empty design: the
equation's linear predictor is fixed at zero.
"""

from __future__ import annotations

from dataclasses import dataclass

import patsy

from pyheckmange.exceptions import InputError


@dataclass(frozen=True)
class EquationSpec:
    """Configuration of one equation.

    Attributes
    ----------
    response : str or None
        Response column (selection and outcome equations only).
    terms : tuple of str
        Right-hand-side terms in patsy syntax (column names, interactions
        such as ``"x1:x2"``, or transformations such as ``"np.log(x)"``).
    intercept : bool
        Whether to include a constant column.
    """

    response: str | None
    terms: tuple[str, ...] = ()
    intercept: bool = True

    def __post_init__(self):
        object.__setattr__(self, "terms", tuple(self.terms))

    @classmethod
    def from_formula(cls, formula: str) -> EquationSpec:
        """Parse an R/patsy style formula string."""
        try:
            desc = patsy.ModelDesc.from_formula(formula)
        except patsy.PatsyError as exc:
            raise InputError(f"Cannot parse formula {formula!r}: {exc}") from exc

        if len(desc.lhs_termlist) > 1:
            raise InputError(f"Formula {formula!r} has more than one response")
        response = desc.lhs_termlist[0].name() if desc.lhs_termlist else None

        intercept = False
        terms = []
        for term in desc.rhs_termlist:
            if term == patsy.INTERCEPT:
                intercept = True
            else:
                terms.append(term.name())
        return cls(response=response, terms=tuple(terms), intercept=intercept)

    @property
    def is_empty(self) -> bool:
        """True for the zero-column design (``~ 0``)."""
        return not self.terms and not self.intercept

    def rhs(self) -> str:
        """Right-hand side in patsy syntax."""
        if not self.terms:
            return "1" if self.intercept else "0"
        rhs = " + ".join(self.terms)
        return rhs if self.intercept else f"{rhs} - 1"

    def to_formula(self) -> str:
        """Render the spec back to a formula string."""
        if self.response is None:
            return f"~ {self.rhs()}"
        return f"{self.response} ~ {self.rhs()}"


def as_equation(
    spec: str | EquationSpec | list[str] | tuple[str, ...],
    name: str,
    *,
    need_response: bool = False,
) -> EquationSpec:
    """Coerce a formula string, covariate list or spec to an EquationSpec.

    A plain list of column names means those covariates plus an intercept.
    """
    if isinstance(spec, EquationSpec):
        eq = spec
    elif isinstance(spec, str):
        eq = EquationSpec.from_formula(spec)
    elif isinstance(spec, (list, tuple)):
        eq = EquationSpec(response=None, terms=tuple(spec), intercept=True)
    else:
        raise InputError(
            f"{name} equation must be a formula string, a list of covariate "
            f"names or an EquationSpec, got {type(spec).__name__}"
        )

    if need_response and eq.response is None:
        raise InputError(f"{name} equation needs a response variable")
    if need_response and eq.is_empty:
        raise InputError(f"{name} equation needs at least one covariate")
    if not need_response and eq.response is not None:
        raise InputError(f"{name} equation must be right-handed (no response)")
    return eq
