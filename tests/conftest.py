import numpy as np
import pandas as pd
import pytest

from teamstrength.models.dixon_coles import dixon_coles
from teamstrength.models.score_matrix import ScoreGrid

TEAMS = ["Arsenal", "Burnley", "Chelsea", "Derby", "Everton", "Fulham"]


@pytest.fixture(scope="session")
def true_params() -> dict:
    offense = np.array([0.35, -0.2, 0.25, -0.3, 0.0, -0.05])
    offense = offense - np.log(np.mean(np.exp(offense)))
    defense = np.array([-0.3, 0.25, -0.15, 0.2, 0.0, 0.1])
    return {
        "off": dict(zip(TEAMS, offense)),
        "def": dict(zip(TEAMS, defense)),
        "hfa": 0.3,
        "rho": -0.12,
    }


def simulate_league(params: dict, n_rounds: int, seed: int) -> pd.DataFrame:
    """Play every fixture *n_rounds* times, sampling scores from the Dixon-Coles distribution."""
    rng = np.random.default_rng(seed)
    rows = []
    for home in TEAMS:
        for away in TEAMS:
            if home == away:
                continue
            home_rate = np.exp(params["off"][home] + params["def"][away] + params["hfa"])
            away_rate = np.exp(params["off"][away] + params["def"][home])
            grid = ScoreGrid.from_rates(home_rate, away_rate, params["rho"], up_to=12)
            probs = grid.matrix_array.ravel()
            draws = rng.choice(probs.size, size=n_rounds, p=probs / probs.sum())
            hgoals, agoals = np.unravel_index(draws, grid.matrix_array.shape)
            for hg, ag in zip(hgoals, agoals):
                rows.append({"home": home, "away": away, "hgoal": int(hg), "agoal": int(ag)})

    data = pd.DataFrame(rows)
    data["home"] = pd.Categorical(data["home"], categories=TEAMS)
    data["away"] = pd.Categorical(data["away"], categories=TEAMS)
    return data


@pytest.fixture(scope="session")
def league(true_params) -> pd.DataFrame:
    return simulate_league(true_params, n_rounds=40, seed=7)


@pytest.fixture(scope="session")
def fitted(league):
    return dixon_coles(league, options={"gtol": 1e-3})


@pytest.fixture
def small_matches() -> pd.DataFrame:
    teams = pd.CategoricalDtype(["a", "b", "c"])
    return pd.DataFrame(
        {
            "home": pd.Series(["a", "b", "c", "a"], dtype=teams),
            "away": pd.Series(["b", "c", "a", "c"], dtype=teams),
            "hgoal": [1, 0, 2, 3],
            "agoal": [1, 2, 0, 0],
            "hfa": [True, True, True, True],
            "rain": [0.0, 1.5, 0.2, 0.0],
        }
    )
