from typing import NamedTuple

import numpy as np

ArrayLikeF = list[float] | np.ndarray


class ProbaResult(NamedTuple):
    """Named tuple for Probabilities."""

    proba_home: float
    proba_draw: float
    proba_away: float


class RateInfo(NamedTuple):
    """Goal-scoring rates of a set of matches.

    Attributes:
        home (np.ndarray): expected goals of the home side, one value per match.
        away (np.ndarray): expected goals of the away side, one value per match.
        rho (float): low-score dependence parameter shared by every match.

    """

    home: np.ndarray
    away: np.ndarray
    rho: float
