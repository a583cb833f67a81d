import numbers
from dataclasses import dataclass, field

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from teamstrength.models.likelihood import tau
from teamstrength.models.utils import poisson_proba
from teamstrength.utils.errors import InputError
from teamstrength.utils.typing import ArrayLikeF, ProbaResult, RateInfo
from teamstrength.utils.utils import DEFAULT_THRESHOLD

__all__ = ["ScoreGrid", "scoreline_table", "predict_scorelines", "scorelines_to_outcomes"]


def _check_up_to(up_to: int) -> int:
    if isinstance(up_to, bool) or not isinstance(up_to, numbers.Integral) or up_to < 0:
        raise InputError(f"up_to must be a non-negative integer, got {up_to!r}.")
    return int(up_to)


@dataclass
class ScoreGrid:
    """Probabilities of every scoreline of a match up to a maximum number of goals.

    ``matrix_array[i, j]`` is the probability of the home side scoring ``i`` goals and the away
    side ``j`` goals: the product of both Poisson marginals, times the dependence correction when
    one is given. Scorelines beyond the grid are not represented and the grid is **not**
    renormalised, so every aggregate computed from it is a lower bound of the exact value.
    """

    home_goals_probs: ArrayLikeF
    away_goals_probs: ArrayLikeF
    correlation_matrix: np.ndarray | None = None
    matrix_array: np.ndarray = field(init=False)

    def __post_init__(self):
        self._checks_init()
        self.matrix_array = np.outer(self.home_goals_probs, self.away_goals_probs)
        if self.correlation_matrix is not None:
            self.matrix_array = self.matrix_array * self.correlation_matrix

    def _checks_init(self):
        self.home_goals_probs = np.asarray(self.home_goals_probs, dtype=float)
        self.away_goals_probs = np.asarray(self.away_goals_probs, dtype=float)
        if (self.home_goals_probs.ndim > 1) or (self.away_goals_probs.ndim > 1):
            raise ValueError("Array probs should be one dimensional")
        if len(self.home_goals_probs) != len(self.away_goals_probs):
            raise ValueError("Length of proba's array should be the same")
        if self.correlation_matrix is not None:
            self.correlation_matrix = np.asarray(self.correlation_matrix, dtype=float)
            n = len(self.home_goals_probs)
            if self.correlation_matrix.shape != (n, n):
                raise ValueError(
                    "Size between probability matrix and correlation matrix should be the same"
                )

    @classmethod
    def from_rates(
        cls, home_rate: float, away_rate: float, rho: float, up_to: int
    ) -> "ScoreGrid":
        """Grid of a match given its expected goals and the dependence parameter.

        Args:
            home_rate (float): expected goals of the home side.
            away_rate (float): expected goals of the away side.
            rho (float): Dixon-Coles dependence parameter.
            up_to (int): maximum number of goals of each side.

        Returns:
            ScoreGrid: grid of shape (up_to + 1, up_to + 1).

        """
        up_to = _check_up_to(up_to)
        goals = np.arange(up_to + 1)
        hgoal, agoal = np.meshgrid(goals, goals, indexing="ij")
        return cls(
            home_goals_probs=poisson_proba(lambda_param=home_rate, k=up_to + 1),
            away_goals_probs=poisson_proba(lambda_param=away_rate, k=up_to + 1),
            correlation_matrix=np.asarray(tau(hgoal, agoal, home_rate, away_rate, rho)),
        )

    @property
    def up_to(self) -> int:
        return len(self.home_goals_probs) - 1

    def to_frame(self, threshold: float = DEFAULT_THRESHOLD) -> pd.DataFrame:
        """Scoreline table with one row per scoreline whose probability exceeds *threshold*.

        Rows are ordered with the home goals varying fastest.

        Returns:
            pd.DataFrame: columns ``hgoal``, ``agoal`` and ``prob``.

        """
        n = len(self.home_goals_probs)
        goals = np.arange(n)
        hgoal = np.tile(goals, n)
        agoal = np.repeat(goals, n)
        table = pd.DataFrame(
            {"hgoal": hgoal, "agoal": agoal, "prob": self.matrix_array[hgoal, agoal]}
        )
        return table[table["prob"] > threshold].reset_index(drop=True)

    def return_probas(self) -> ProbaResult:
        """Return results probabilities in this order: home_win, draw, away_win.

        Returns:
            ProbaResult: NamedTuple of probabilities

        """
        home_win = float(np.sum(np.tril(self.matrix_array, -1)))
        draw = float(np.sum(np.diag(self.matrix_array)))
        away_win = float(np.sum(np.triu(self.matrix_array, 1)))
        return ProbaResult(proba_home=home_win, proba_draw=draw, proba_away=away_win)

    def less_goals(self, line: float = 2.5) -> float:
        """Probability of strictly fewer than *line* goals in the match."""
        totals = np.add.outer(np.arange(self.up_to + 1), np.arange(self.up_to + 1))
        return float(np.sum(self.matrix_array[totals < line]))

    def more_goals(self, line: float = 2.5) -> float:
        """Probability of strictly more than *line* goals, among the scorelines of the grid."""
        totals = np.add.outer(np.arange(self.up_to + 1), np.arange(self.up_to + 1))
        return float(np.sum(self.matrix_array[totals > line]))

    def probability_both_teams_scores(self) -> float:
        return float(np.sum(self.matrix_array[1:, 1:]))

    def get_probable_score(self) -> tuple[int, int]:
        """Return the most probable score (home_goals, away_goals).

        Returns
        -------
        tuple of int
            The (home_goals, away_goals) corresponding to the highest probability in matrix_array.

        """
        idx = np.unravel_index(np.argmax(self.matrix_array), self.matrix_array.shape)
        return int(idx[0]), int(idx[1])

    def visualize(self, n_goals: int = 5) -> None:
        if n_goals > len(self.home_goals_probs):
            raise ValueError(
                f"Requested n_goals={n_goals} exceeds available goal probabilities "
                f"({len(self.home_goals_probs)})."
            )
        corner = self.matrix_array[:n_goals, :n_goals]
        _, ax = plt.subplots()
        ax.matshow(corner, cmap="coolwarm")
        for (hgoal, agoal), prob in np.ndenumerate(corner):
            ax.text(agoal, hgoal, f"{prob:.3f}", ha="center", va="center", color="w")
        ax.set_title(f"Scoreline probabilities up to {n_goals - 1} goals")
        ax.set_xlabel("Away goals")
        ax.set_ylabel("Home goals")
        plt.show()

    def __str__(self) -> str:
        home_str = ", ".join(f"{x:.2f}" for x in self.home_goals_probs[:5])
        away_str = ", ".join(f"{x:.2f}" for x in self.away_goals_probs[:5])
        return (
            f"Score grid up to {self.up_to} goals computed using [{home_str}, ...] "
            f"and [{away_str}, ...]."
        )


def scoreline_table(
    home_rate: float,
    away_rate: float,
    rho: float,
    up_to: int,
    threshold: float = DEFAULT_THRESHOLD,
) -> pd.DataFrame:
    """Scoreline table of one match, see :meth:`ScoreGrid.to_frame`."""
    return ScoreGrid.from_rates(home_rate, away_rate, rho, up_to).to_frame(threshold)


def predict_scorelines(
    rates: RateInfo, up_to: int, threshold: float = DEFAULT_THRESHOLD
) -> list[pd.DataFrame]:
    """Scoreline table of every match of *rates*.

    Args:
        rates (RateInfo): expected goals of the matches and the dependence parameter.
        up_to (int): maximum number of goals of each side.
        threshold (float): scorelines with a probability lower or equal are dropped. The default,
            the square root of the machine epsilon, only bounds the size of the tables.

    Returns:
        list[pd.DataFrame]: one ``hgoal``/``agoal``/``prob`` table per match. Because of the
            truncation the probabilities of a table sum to slightly less than 1.

    """
    up_to = _check_up_to(up_to)
    return [
        scoreline_table(home_rate, away_rate, rates.rho, up_to, threshold)
        for home_rate, away_rate in zip(rates.home, rates.away)
    ]


def scorelines_to_outcomes(scorelines: pd.DataFrame) -> ProbaResult:
    """Aggregate a scoreline table into home win, draw and away win probabilities.

    The table is summed as it is: when it is truncated the result is a lower bound and the three
    probabilities add up to the total of the table, not to 1.

    Args:
        scorelines (pd.DataFrame): table with ``hgoal``, ``agoal`` and ``prob`` columns.

    Returns:
        ProbaResult: probabilities of each outcome.

    """
    missing = {"hgoal", "agoal", "prob"}.difference(scorelines.columns)
    if missing:
        raise InputError(f"Scoreline table is missing columns: {', '.join(sorted(missing))}")
    diff = scorelines["hgoal"] - scorelines["agoal"]
    prob = scorelines["prob"]
    return ProbaResult(
        proba_home=float(prob[diff > 0].sum()),
        proba_draw=float(prob[diff == 0].sum()),
        proba_away=float(prob[diff < 0].sum()),
    )
