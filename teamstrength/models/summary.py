"""Summaries of fitted Dixon-Coles models as data frames."""

from __future__ import annotations

import numbers
from typing import TYPE_CHECKING, Any

import numpy as np
import pandas as pd

from teamstrength.models.design import as_frame
from teamstrength.utils.errors import InputError
from teamstrength.utils.utils import DEFAULT_THRESHOLD, DEFAULT_UP_TO, split_parameter_name

if TYPE_CHECKING:
    from teamstrength.models.dixon_coles import DixonColesModel

__all__ = ["tidy", "augment", "describe_weights"]


def describe_weights(weights: Any) -> str:
    if weights is None:
        return "1"
    if isinstance(weights, (str, numbers.Real)):
        return str(weights)
    return f"<{np.size(weights)} values>"


def tidy(model: DixonColesModel) -> pd.DataFrame:
    """One row per estimated parameter.

    Args:
        model (DixonColesModel): fitted model.

    Returns:
        pd.DataFrame: columns ``parameter`` (term name, e.g. ``"off"``), ``team`` (category of
            the term, NaN for parameters such as ``hfa`` or ``rho``) and ``value``.

    """
    parts = [split_parameter_name(str(name)) for name in model.params.index]
    return pd.DataFrame(
        {
            "parameter": [term for term, _ in parts],
            "team": [np.nan if category is None else category for _, category in parts],
            "value": model.params.to_numpy(dtype=float),
        }
    )


def augment(
    model: DixonColesModel,
    data: pd.DataFrame | None = None,
    newdata: pd.DataFrame | None = None,
    type_predict: str = "rates",
    up_to: int = DEFAULT_UP_TO,
    threshold: float = DEFAULT_THRESHOLD,
) -> pd.DataFrame:
    """Append the predictions of *model* to a copy of the matches.

    Args:
        model (DixonColesModel): fitted model.
        data (pd.DataFrame | None): original data, used when *newdata* is not given.
        newdata (pd.DataFrame | None): matches to predict. Falls back to *data*, then to the
            fitting data.
        type_predict (str): ``"rates"`` adds ``.home_rate`` and ``.away_rate``, ``"scorelines"``
            adds ``.scorelines`` (one table per match) and ``"outcomes"`` adds ``.home_win``,
            ``.draw`` and ``.away_win``.
        up_to (int): maximum number of goals for scorelines and outcomes.
        threshold (float): probability threshold for scorelines and outcomes.

    Returns:
        pd.DataFrame: the augmented copy.

    """
    if newdata is None:
        newdata = data if data is not None else model.data
    augmented = as_frame(newdata).copy()

    if type_predict == "rates":
        rates = model.rates(augmented)
        augmented[".home_rate"] = rates["home_rate"].to_numpy()
        augmented[".away_rate"] = rates["away_rate"].to_numpy()
        return augmented

    if type_predict == "scorelines":
        tables = model.scorelines(augmented, up_to=up_to, threshold=threshold)
        column = np.empty(len(tables), dtype=object)
        for idx, table in enumerate(tables):
            column[idx] = table
        augmented[".scorelines"] = column
        return augmented

    if type_predict == "outcomes":
        outcomes = model.outcomes(augmented, up_to=up_to, threshold=threshold)
        augmented[".home_win"] = [outcome.proba_home for outcome in outcomes]
        augmented[".draw"] = [outcome.proba_draw for outcome in outcomes]
        augmented[".away_win"] = [outcome.proba_away for outcome in outcomes]
        return augmented

    raise InputError(
        f"type_predict must be 'rates', 'scorelines' or 'outcomes', got {type_predict!r}."
    )
