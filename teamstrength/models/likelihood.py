"""Dixon-Coles likelihood.

The goals of a match are modelled as two Poisson counts whose joint probability is corrected for
low scores by the dependence function ``tau`` (Dixon & Coles, 1997)::

    P(x, y) = tau(x, y, lambda, mu, rho) * Poisson(x; lambda) * Poisson(y; mu)

with ``lambda = exp(X_home @ beta)`` and ``mu = exp(X_away @ beta)``.
"""

from typing import Sequence

import numpy as np
import pandas as pd
import scipy.stats as stats
from scipy.special import logsumexp

from teamstrength.models.design import DesignMatrices
from teamstrength.utils.typing import ArrayLikeF, RateInfo
from teamstrength.utils.utils import OBJECTIVE_CEILING, OFFENSE_PREFIX, RHO

__all__ = [
    "tau",
    "log_quietly",
    "rate_info",
    "negative_log_likelihood",
    "objective_function",
    "normalise_offense_params",
]


def tau(
    home_goals: ArrayLikeF | int,
    away_goals: ArrayLikeF | int,
    home_rates: ArrayLikeF | float,
    away_rates: ArrayLikeF | float,
    rho: ArrayLikeF | float,
) -> np.ndarray | float:
    """Dixon-Coles dependence function.

    Multiplicative correction of the independent Poisson probability of a scoreline. Only the
    0-0, 0-1, 1-0 and 1-1 scorelines are corrected, every other scoreline gets 1. Inputs are
    broadcast against each other and the rule is applied elementwise. No clamping is done: the
    result can be zero or negative for extreme rates or ``rho``.

    Args:
        home_goals: goals scored by the home side.
        away_goals: goals scored by the away side.
        home_rates: expected goals of the home side.
        away_rates: expected goals of the away side.
        rho: dependence parameter.

    Returns:
        np.ndarray | float: the correction, a float when every input is a scalar.

    """
    inputs = (home_goals, away_goals, home_rates, away_rates, rho)
    arrays = np.broadcast_arrays(*(np.asarray(x, dtype=float) for x in inputs))
    shape = arrays[0].shape
    hg, ag, hr, ar, rh = (np.atleast_1d(x).reshape(-1) for x in arrays)

    vals = np.ones(hg.shape, dtype=float)
    m00 = (hg == 0) & (ag == 0)
    m01 = (hg == 0) & (ag == 1)
    m10 = (hg == 1) & (ag == 0)
    m11 = (hg == 1) & (ag == 1)
    vals[m00] = 1.0 - hr[m00] * ar[m00] * rh[m00]
    vals[m01] = 1.0 + hr[m01] * rh[m01]
    vals[m10] = 1.0 + ar[m10] * rh[m10]
    vals[m11] = 1.0 - rh[m11]

    if not shape:
        return float(vals[0])
    return vals.reshape(shape)


def log_quietly(values: ArrayLikeF | float) -> np.ndarray:
    """Natural logarithm giving ``-inf`` for non-positive values, without raising or warning."""
    values = np.asarray(values, dtype=float)
    out = np.full(values.shape, -np.inf)
    np.log(values, out=out, where=values > 0)
    return out


def normalise_offense_params(params: pd.Series) -> pd.Series:
    """Shift the offense parameters so that the mean of their exponential is 1.

    Adding a constant to every offense parameter and removing it from every defense parameter
    leaves the likelihood unchanged. Fixing ``mean(exp(off___*)) == 1`` removes this degree of
    freedom. Parameters that are not named ``off___<team>`` are left untouched.

    Args:
        params (pd.Series): parameters indexed by name.

    Returns:
        pd.Series: a normalised copy.

    """
    params = params.astype(float)
    mask = np.array([str(name).startswith(OFFENSE_PREFIX) for name in params.index], dtype=bool)
    if not mask.any():
        return params
    offense = params.to_numpy()[mask]
    # log(mean(exp(x))) computed without overflow
    shift = logsumexp(offense) - np.log(offense.size)
    params[mask] = offense - shift
    return params


def rate_info(params: pd.Series, design: DesignMatrices) -> RateInfo:
    """Expected goals of every match in *design*.

    Args:
        params (pd.Series): parameters indexed by design column, plus ``"rho"``.
        design (DesignMatrices): design matrices whose columns are ordered like *params*.

    Returns:
        RateInfo: home rates, away rates and ``rho``.

    """
    rho = float(params[RHO])
    beta = params.drop(RHO).to_numpy(dtype=float)
    with np.errstate(over="ignore"):
        home = np.exp(design.home @ beta)
        away = np.exp(design.away @ beta)
    return RateInfo(home=home, away=away, rho=rho)


def negative_log_likelihood(
    home_goals: np.ndarray,
    away_goals: np.ndarray,
    home_rates: np.ndarray,
    away_rates: np.ndarray,
    rho: float,
    weights: np.ndarray,
) -> float:
    """Weighted Dixon-Coles negative log-likelihood.

    Returns ``inf`` when ``tau`` is non-positive for a match with a positive weight. Matches with
    a zero weight do not contribute at all.
    """
    with np.errstate(invalid="ignore", over="ignore"):
        hprob = stats.poisson.logpmf(home_goals, home_rates)
        aprob = stats.poisson.logpmf(away_goals, away_rates)
        correction = tau(home_goals, away_goals, home_rates, away_rates, rho)
        loglike = hprob + aprob + log_quietly(correction)
        ploglike = np.where(weights == 0, 0.0, loglike * weights)
    return float(-np.sum(ploglike))


def objective_function(
    values: np.ndarray, design: DesignMatrices, names: Sequence[str]
) -> float:
    """Objective minimised when fitting.

    Offense parameters are normalised before every evaluation, the minimizer itself works on the
    raw values. A non-finite likelihood is replaced by ``OBJECTIVE_CEILING``.

    Args:
        values (np.ndarray): raw parameter values, ordered like *names*.
        design (DesignMatrices): fitting design, goals included.
        names (Sequence[str]): parameter names, design columns followed by ``"rho"``.

    Returns:
        float: the negative log-likelihood.

    """
    params = normalise_offense_params(pd.Series(values, index=names))
    rates = rate_info(params, design)
    nll = negative_log_likelihood(
        design.home_goals,
        design.away_goals,
        rates.home,
        rates.away,
        rates.rho,
        design.weights,
    )
    if not np.isfinite(nll):
        return OBJECTIVE_CEILING
    return nll
