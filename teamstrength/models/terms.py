"""Model terms and the formula adapter.

A model side (home goals or away goals) is described by a :class:`ModelSpec`: the name of the
response column and an ordered tuple of terms. Three kinds of term exist:

    - :class:`CategoricalTerm`: one indicator column per level, named ``<term>___<level>``.
    - :class:`NumericTerm`: a single column computed from a column name or an expression.
    - :class:`ConstantTerm`: a column holding the same value for every match.

:func:`parse_formula` builds a :class:`ModelSpec` from a string such as
``"hgoal ~ off(home) + def(away) + hfa + 0"``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Union

import numpy as np
import pandas as pd

from teamstrength.utils.errors import InputError
from teamstrength.utils.utils import parameter_name

CATEGORICAL = "categorical"
NUMERIC = "numeric"

# Functions understood by ``DataFrame.eval``: a call to one of them is a numeric expression,
# any other ``name(column)`` call declares a categorical term.
_EVAL_FUNCTIONS = frozenset(
    {
        "sin", "cos", "tan", "arcsin", "arccos", "arctan", "arctan2",
        "sinh", "cosh", "tanh", "arcsinh", "arccosh", "arctanh",
        "log", "log10", "log1p", "exp", "expm1", "sqrt", "abs",
    }
)
_CALL = re.compile(r"^([A-Za-z_]\w*)\(\s*([A-Za-z_]\w*)\s*\)$")
_IDENTIFIER = re.compile(r"^[A-Za-z_]\w*$")
# Mantissa of a number literal written in scientific notation, e.g. the "1e" of "1e-3".
_EXPONENT = re.compile(r"(?<![\w.])(\d+\.?\d*|\.\d+)[eE]$")


def evaluate_expression(expression: str, data: pd.DataFrame) -> pd.Series:
    """Evaluate a column name or a ``DataFrame.eval`` expression against *data*.

    Raises:
        InputError: if the expression cannot be evaluated or does not give one value per row.

    """
    if expression in data.columns:
        return data[expression]
    try:
        values = data.eval(expression, engine="python")
    except (KeyError, NameError, SyntaxError, TypeError, ValueError, AttributeError) as exc:
        raise InputError(f"Cannot evaluate '{expression}' against the data: {exc}") from exc

    if np.ndim(values) == 0:
        return pd.Series(np.full(len(data), values), index=data.index, name=expression)
    values = pd.Series(values, index=data.index) if not isinstance(values, pd.Series) else values
    if len(values) != len(data):
        raise InputError(
            f"'{expression}' gives {len(values)} values for {len(data)} matches."
        )
    return values


def _dummies(name: str, values: pd.Series) -> pd.DataFrame:
    if not isinstance(values.dtype, pd.CategoricalDtype):
        values = values.astype("category")
    # Every level of the dtype gets a column, including levels absent from these rows.
    dummies = pd.get_dummies(values, dtype=float)
    dummies.columns = [parameter_name(name, level) for level in values.cat.categories]
    return dummies


@dataclass(frozen=True)
class CategoricalTerm:
    """Categorical term: one indicator column per level of *column*.

    Attributes:
        name (str): prefix of the generated columns (``"off"`` gives ``"off___<team>"``).
        column (str): data column holding the categories.

    """

    name: str
    column: str

    def design_columns(self, data: pd.DataFrame) -> tuple[str, pd.DataFrame]:
        return CATEGORICAL, _dummies(self.name, evaluate_expression(self.column, data))

    def __str__(self) -> str:
        return f"{self.name}({self.column})"


@dataclass(frozen=True)
class NumericTerm:
    """Term evaluated from a column or an expression.

    Values that turn out to be categorical are expanded like a :class:`CategoricalTerm` named
    after this term, anything else is kept as a single float column.

    Attributes:
        name (str): name of the generated column.
        expression (str | None): column name or ``DataFrame.eval`` expression, defaults to *name*.

    """

    name: str
    expression: str | None = None

    @property
    def source(self) -> str:
        return self.name if self.expression is None else self.expression

    def design_columns(self, data: pd.DataFrame) -> tuple[str, pd.DataFrame]:
        values = evaluate_expression(self.source, data)
        if isinstance(values.dtype, pd.CategoricalDtype):
            return CATEGORICAL, _dummies(self.name, values)
        if values.dtype == bool:
            values = values.astype(float)
        try:
            numbers = pd.to_numeric(values).astype(float)
        except (TypeError, ValueError) as exc:
            raise InputError(
                f"Term '{self.name}' is neither numeric nor categorical. "
                "Convert it with pd.Categorical (see factor_teams)."
            ) from exc
        return NUMERIC, pd.DataFrame({self.name: numbers.to_numpy()}, index=data.index)

    def __str__(self) -> str:
        return self.source


@dataclass(frozen=True)
class ConstantTerm:
    """Column holding *value* for every match, typically a home-field-advantage indicator."""

    name: str
    value: float = 1.0

    def design_columns(self, data: pd.DataFrame) -> tuple[str, pd.DataFrame]:
        return NUMERIC, pd.DataFrame(
            {self.name: np.full(len(data), float(self.value))}, index=data.index
        )

    def __str__(self) -> str:
        return self.name


Term = Union[CategoricalTerm, NumericTerm, ConstantTerm]


@dataclass(frozen=True)
class ModelSpec:
    """Specification of one side of the model.

    Attributes:
        response (str | None): column holding the observed goals. Only needed for fitting.
        terms (tuple[Term, ...]): ordered terms of the linear predictor.
        intercept (bool): whether the specification asks for an intercept. The Dixon-Coles
            model has none, so a ``True`` value only triggers a warning when building the design.

    """

    response: str | None
    terms: tuple[Term, ...]
    intercept: bool = False

    def __post_init__(self):
        object.__setattr__(self, "terms", tuple(self.terms))

    def __str__(self) -> str:
        rhs = " + ".join(str(term) for term in self.terms) or "1"
        if not self.intercept:
            rhs += " + 0"
        if self.response is None:
            return f"~ {rhs}"
        return f"{self.response} ~ {rhs}"


def _split_top_level(text: str) -> list[tuple[str, str]]:
    """Split *text* on ``+`` and ``-`` outside parentheses, keeping the operator of each piece."""
    pieces: list[tuple[str, str]] = []
    depth = 0
    sign = "+"
    current = ""
    for char in text:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth < 0:
                raise InputError(f"Unbalanced parentheses in '{text}'")
        if depth == 0 and char in "+-" and not _EXPONENT.search(current):
            if current.strip():
                pieces.append((sign, current.strip()))
            elif char == "-" and sign == "-":
                raise InputError(f"Malformed formula '{text}'")
            sign = char
            current = ""
            continue
        current += char
    if depth != 0:
        raise InputError(f"Unbalanced parentheses in '{text}'")
    if current.strip():
        pieces.append((sign, current.strip()))
    return pieces


def _parse_term(text: str) -> Term:
    match = _CALL.match(text)
    if match and match.group(1) not in _EVAL_FUNCTIONS:
        return CategoricalTerm(name=match.group(1), column=match.group(2))
    if _IDENTIFIER.match(text):
        return NumericTerm(name=text)
    return NumericTerm(name=text, expression=text)


def parse_formula(formula: str | ModelSpec) -> ModelSpec:
    """Parse a formula string into a :class:`ModelSpec`.

    The left-hand side names the goals column. On the right-hand side, ``name(column)`` declares a
    categorical term (unless ``name`` is a math function understood by ``DataFrame.eval``),
    identifiers and other expressions declare numeric terms, ``0`` or ``- 1`` removes the
    intercept and ``1`` requests one.

    Args:
        formula (str | ModelSpec): e.g. ``"hgoal ~ off(home) + def(away) + hfa + 0"``. A
            ``ModelSpec`` is returned unchanged.

    Returns:
        ModelSpec: the parsed specification.

    Raises:
        InputError: if the formula is malformed.

    Examples:
        >>> spec = parse_formula("agoal ~ off(away) + def(home) + 0")
        >>> [str(term) for term in spec.terms]
        ['off(away)', 'def(home)']

    """
    if isinstance(formula, ModelSpec):
        return formula
    if not isinstance(formula, str):
        raise InputError(f"Expected a formula string, got {type(formula).__name__}.")

    lhs, sep, rhs = formula.partition("~")
    if not sep:
        lhs, rhs = "", formula
    if "~" in rhs:
        raise InputError(f"Formula '{formula}' contains more than one '~'.")
    response = lhs.strip() or None
    if response is not None and not _IDENTIFIER.match(response):
        raise InputError(f"The response of '{formula}' must be a column name, got '{response}'.")

    intercept = True
    terms: list[Term] = []
    for sign, text in _split_top_level(rhs):
        if text in ("0", "1"):
            intercept = (text == "1") == (sign == "+")
            continue
        if sign == "-":
            raise InputError(f"Only '- 1' can be removed from a formula, got '- {text}'.")
        term = _parse_term(text)
        if term not in terms:
            terms.append(term)

    if not terms:
        raise InputError(f"Formula '{formula}' has no terms.")
    return ModelSpec(response=response, terms=tuple(terms), intercept=intercept)
