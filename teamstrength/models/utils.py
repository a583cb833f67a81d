from typing import Iterable

import numpy as np
import pandas as pd
import scipy.stats as stats

from teamstrength.utils.errors import InputError


def poisson_proba(lambda_param: float, k: int) -> np.ndarray:
    """Calculate the probability of achieving up to k goals given a lambda parameter.

    Args:
        lambda_param (float): The expected number of goals.
        k (int): The number of goals to achieve.

    Returns:
        np.ndarray:  An array containing the probabilities of scoring each number of goals
    from 0 to k - 1, inclusive.

    """
    poisson = stats.poisson(mu=lambda_param)
    k_list = np.arange(k)
    return poisson.pmf(k=k_list)  # type:ignore


def factor_teams(data: pd.DataFrame, teams: Iterable[str] = ("home", "away")) -> pd.DataFrame:
    """Encode team columns as categoricals sharing the same levels.

    Each team column becomes a ``pd.Categorical`` whose categories are the sorted union of the
    values of all *teams* columns. Fitting needs the home and away teams to share their levels,
    and predicting on new data needs the levels used at fitting time: encode the fitting data and
    the new fixtures together, or reuse the fitted categories with ``pd.Categorical``.

    Args:
        data (pd.DataFrame): match data.
        teams (Iterable[str]): names of the team columns.

    Returns:
        pd.DataFrame: a copy of *data* with the team columns encoded.

    Raises:
        InputError: if a column is missing.

    Examples:
        >>> df = pd.DataFrame({"home": ["b", "a"], "away": ["c", "b"]})
        >>> list(factor_teams(df)["home"].cat.categories)
        ['a', 'b', 'c']

    """
    teams = list(teams)
    missing = [col for col in teams if col not in data.columns]
    if missing:
        raise InputError(f"The following team columns are missing: {', '.join(missing)}")

    values = pd.concat([data[col].astype(object) for col in teams], ignore_index=True)
    levels = sorted(values.dropna().unique())
    out = data.copy()
    for col in teams:
        out[col] = pd.Categorical(data[col].astype(object), categories=levels)
    return out
