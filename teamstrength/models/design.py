import logging
import numbers
import warnings
from dataclasses import dataclass
from typing import Any, Mapping

import numpy as np
import pandas as pd

from teamstrength.models.terms import CATEGORICAL, ModelSpec, Term, evaluate_expression
from teamstrength.utils.errors import InputError, SchemaMismatchError
from teamstrength.utils.utils import RHO

logger = logging.getLogger(name=__name__)

__all__ = ["DesignMatrices", "build_design", "check_vocabulary", "as_frame"]


@dataclass(frozen=True)
class DesignMatrices:
    """Numeric inputs of the likelihood for a set of matches.

    Attributes:
        columns (tuple[str, ...]): names of the design columns, shared by both sides.
        home (np.ndarray): design matrix of the home goals, shape (n_matches, n_columns).
        away (np.ndarray): design matrix of the away goals, same shape and column order.
        weights (np.ndarray): weight of each match in the likelihood.
        home_goals (np.ndarray | None): observed home goals, ``None`` when built for prediction.
        away_goals (np.ndarray | None): observed away goals, ``None`` when built for prediction.

    """

    columns: tuple[str, ...]
    home: np.ndarray
    away: np.ndarray
    weights: np.ndarray
    home_goals: np.ndarray | None = None
    away_goals: np.ndarray | None = None

    def __len__(self) -> int:
        return self.home.shape[0]

    @property
    def parameter_names(self) -> list[str]:
        return list(self.columns) + [RHO]


def as_frame(data: Any) -> pd.DataFrame:
    if isinstance(data, pd.DataFrame):
        return data
    try:
        return pd.DataFrame(data)
    except (TypeError, ValueError) as exc:
        raise InputError(f"Cannot use {type(data).__name__} as match data: {exc}") from exc


def _check_levels(term: Term, block: pd.DataFrame, predict: bool) -> None:
    """Reject rows whose value is not one of the levels of a categorical term.

    Such rows (missing values, or values outside the categories given to ``pd.Categorical``) get
    no indicator at all, which would silently drop the term from their linear predictor.
    """
    unmatched = np.flatnonzero(block.to_numpy().sum(axis=1) == 0)
    if unmatched.size == 0:
        return
    rows = ", ".join(str(row) for row in unmatched[:10])
    if unmatched.size > 10:
        rows += ", ..."
    if predict:
        raise SchemaMismatchError(
            f"Term '{term}' has values that are not levels seen when fitting (rows {rows}). "
            "New data must have the same factor levels as the data used to fit. See factor_teams."
        )
    raise InputError(
        f"Term '{term}' has missing values or values outside its levels (rows {rows})."
    )


def _side_matrix(
    spec: ModelSpec, data: pd.DataFrame, kinds: dict[str, str], predict: bool, stacklevel: int
) -> pd.DataFrame:
    # Predictions reuse the fitted specification, which already warned at fitting time.
    if spec.intercept and not predict:
        warnings.warn("Intercept term will be ignored", stacklevel=stacklevel + 2)

    blocks = []
    side_columns: set[str] = set()
    for term in spec.terms:
        kind, block = term.design_columns(data)
        if kind == CATEGORICAL:
            _check_levels(term, block, predict)
        for column in block.columns:
            if column in side_columns:
                raise InputError(
                    f"Column '{column}' is generated twice in '{spec}'. Rename one of the terms."
                )
            if kinds.setdefault(column, kind) != kind:
                raise InputError(
                    f"Column '{column}' is {kinds[column]} on one side and {kind} on the other."
                )
            side_columns.add(column)
        blocks.append(block)

    if not blocks:
        return pd.DataFrame(index=data.index)
    return pd.concat(blocks, axis=1)


def _goals(spec: ModelSpec, data: pd.DataFrame) -> np.ndarray:
    if spec.response is None:
        raise InputError(f"'{spec}' has no goals column, it cannot be used for fitting.")
    goals = pd.to_numeric(evaluate_expression(spec.response, data), errors="coerce").to_numpy(
        dtype=float
    )
    if not np.all(np.isfinite(goals)) or np.any(goals < 0) or np.any(goals != np.round(goals)):
        raise InputError(f"Column '{spec.response}' must hold non-negative whole numbers.")
    return goals.astype(int)


def _weights(weights: Any, data: pd.DataFrame) -> np.ndarray:
    n_rows = len(data)
    if weights is None:
        values = np.ones(n_rows)
    elif isinstance(weights, numbers.Real) and not isinstance(weights, bool):
        values = np.full(n_rows, float(weights))
    elif isinstance(weights, str):
        values = pd.to_numeric(evaluate_expression(weights, data), errors="coerce").to_numpy(
            dtype=float
        )
    else:
        values = np.asarray(weights, dtype=float).reshape(-1)

    if len(values) != n_rows:
        raise InputError(f"Expecting {n_rows} weights, got {len(values)}.")
    if not np.all(np.isfinite(values)) or np.any(values < 0):
        raise InputError("Weights must be finite and non-negative.")
    return values


def build_design(
    spec_home: ModelSpec,
    spec_away: ModelSpec,
    data: pd.DataFrame | Mapping[str, Any],
    weights: Any = None,
    predict: bool = False,
    stacklevel: int = 1,
) -> DesignMatrices:
    """Build the home and away design matrices of a set of matches.

    The columns generated by both specifications are merged in order of appearance, home side
    first. A side that does not generate a column gets it filled with zeros, so that both
    matrices share the exact same columns in the same order.

    Args:
        spec_home (ModelSpec): specification of the home goals.
        spec_away (ModelSpec): specification of the away goals.
        data (pd.DataFrame | Mapping): match data.
        weights: ``None`` (every match weighs 1), a number, a column name or expression, or one
            value per match. Ignored when *predict* is True.
        predict (bool): build for prediction. Goals are not read (new fixtures have none) and
            weights are set to 1.
        stacklevel (int): frame the intercept warning is attributed to, 1 being the caller of
            this function, as in ``warnings.warn``. Only fitting warns.

    Returns:
        DesignMatrices: the matrices, plus goals and weights when fitting.

    Raises:
        InputError: if a term or the weights cannot be evaluated, if two terms generate
            conflicting columns, or if a categorical term has values outside its levels.
        SchemaMismatchError: if *predict* is True and a categorical term has values outside
            its levels.

    """
    data = as_frame(data).reset_index(drop=True)
    kinds: dict[str, str] = {}
    mat_home = _side_matrix(spec_home, data, kinds, predict, stacklevel)
    mat_away = _side_matrix(spec_away, data, kinds, predict, stacklevel)

    column_names = list(dict.fromkeys([*mat_home.columns, *mat_away.columns]))
    mat_home = mat_home.reindex(columns=column_names, fill_value=0.0)
    mat_away = mat_away.reindex(columns=column_names, fill_value=0.0)
    logger.debug("Design matrices built with %d rows and %d columns", len(data), len(column_names))

    if predict:
        return DesignMatrices(
            columns=tuple(column_names),
            home=mat_home.to_numpy(dtype=float),
            away=mat_away.to_numpy(dtype=float),
            weights=np.ones(len(data)),
        )

    return DesignMatrices(
        columns=tuple(column_names),
        home=mat_home.to_numpy(dtype=float),
        away=mat_away.to_numpy(dtype=float),
        weights=_weights(weights, data),
        home_goals=_goals(spec_home, data),
        away_goals=_goals(spec_away, data),
    )


def check_vocabulary(design: DesignMatrices, params: pd.Series) -> None:
    """Check that *design* has exactly the columns *params* were estimated on.

    Raises:
        SchemaMismatchError: if the names or their order differ.

    """
    if list(params.index) == design.parameter_names:
        return
    fitted = [name for name in params.index if name != RHO]
    unknown = [name for name in design.columns if name not in fitted]
    absent = [name for name in fitted if name not in design.columns]
    details = []
    if unknown:
        details.append(f"unknown columns: {', '.join(unknown)}")
    if absent:
        details.append(f"missing columns: {', '.join(absent)}")
    if not details:
        details.append("columns are in a different order")
    raise SchemaMismatchError(
        "New data must have the same factor levels as the data used to fit "
        f"({'; '.join(details)}). See factor_teams."
    )
