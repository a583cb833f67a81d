import math

import numpy as np
import pandas as pd
import pytest
import scipy.stats as stats

from teamstrength.models.design import build_design
from teamstrength.models.likelihood import (
    log_quietly,
    negative_log_likelihood,
    normalise_offense_params,
    objective_function,
    rate_info,
    tau,
)
from teamstrength.models.terms import parse_formula
from teamstrength.utils.utils import OBJECTIVE_CEILING


class TestTau:
    @pytest.mark.parametrize(
        "home_goals, away_goals, expected",
        [(0, 0, 0.7), (0, 1, 1.15), (1, 0, 1.2), (1, 1, 0.9), (2, 0, 1.0), (3, 3, 1.0)],
    )
    def test_low_scores_are_corrected(self, home_goals, away_goals, expected):
        assert tau(home_goals, away_goals, 1.5, 2.0, 0.1) == pytest.approx(expected)

    def test_scalar_inputs_give_a_float(self):
        assert isinstance(tau(0, 0, 1.0, 1.0, 0.0), float)

    def test_vectorised(self):
        values = tau(np.array([0, 0, 1, 1, 2]), np.array([0, 1, 0, 1, 2]), 1.5, 2.0, 0.1)

        assert values == pytest.approx([0.7, 1.15, 1.2, 0.9, 1.0])

    def test_inputs_are_broadcast(self):
        values = tau(np.array([[0], [1]]), np.array([[0, 1]]), 1.0, 1.0, -0.2)

        assert values.shape == (2, 2)
        assert values == pytest.approx(np.array([[1.2, 0.8], [0.8, 1.2]]))

    def test_no_clamping(self):
        assert tau(0, 0, 3.0, 3.0, 0.5) == pytest.approx(-3.5)


def test_log_quietly():
    values = log_quietly([np.e, 1.0, 0.0, -2.0])

    assert values[:2] == pytest.approx([1.0, 0.0])
    assert values[2] == -np.inf
    assert values[3] == -np.inf


class TestNegativeLogLikelihood:
    def test_independent_poisson_when_rho_is_zero(self):
        hg, ag = np.array([2, 0]), np.array([1, 3])
        hr, ar = np.array([1.4, 0.9]), np.array([1.1, 1.6])

        nll = negative_log_likelihood(hg, ag, hr, ar, 0.0, np.ones(2))

        expected = -(stats.poisson.logpmf(hg, hr).sum() + stats.poisson.logpmf(ag, ar).sum())
        assert nll == pytest.approx(expected)

    def test_weights_scale_contributions(self):
        hg, ag = np.array([1, 1]), np.array([0, 0])
        hr, ar = np.array([1.2, 1.2]), np.array([0.8, 0.8])

        single = negative_log_likelihood(hg[:1], ag[:1], hr[:1], ar[:1], -0.1, np.ones(1))
        weighted = negative_log_likelihood(hg, ag, hr, ar, -0.1, np.array([0.5, 1.5]))

        assert weighted == pytest.approx(2 * single)

    def test_non_positive_tau_gives_inf(self):
        nll = negative_log_likelihood(
            np.array([0]), np.array([0]), np.array([3.0]), np.array([3.0]), 0.5, np.ones(1)
        )

        assert nll == math.inf

    def test_zero_weight_match_is_ignored(self):
        nll = negative_log_likelihood(
            np.array([0, 2]),
            np.array([0, 1]),
            np.array([3.0, 1.0]),
            np.array([3.0, 1.0]),
            0.5,
            np.array([0.0, 1.0]),
        )

        assert math.isfinite(nll)


class TestNormalisation:
    def test_mean_of_exponential_is_one(self):
        params = pd.Series({"off___a": 0.4, "off___b": 1.3, "def___a": 0.2, "hfa": 0.3, "rho": 0.0})

        normalised = normalise_offense_params(params)

        offense = normalised[["off___a", "off___b"]].to_numpy()
        assert np.mean(np.exp(offense)) == pytest.approx(1.0)
        assert normalised["off___b"] - normalised["off___a"] == pytest.approx(0.9)
        assert normalised[["def___a", "hfa", "rho"]].tolist() == [0.2, 0.3, 0.0]

    def test_idempotent(self):
        params = pd.Series({"off___a": -2.0, "off___b": 5.0, "rho": 0.1})

        once = normalise_offense_params(params)

        pd.testing.assert_series_equal(normalise_offense_params(once), once)

    def test_input_is_not_modified(self):
        params = pd.Series({"off___a": 1.0, "off___b": 2.0})

        normalise_offense_params(params)

        assert params.tolist() == [1.0, 2.0]

    def test_no_offense_parameters(self):
        params = pd.Series({"def___a": 1.0, "rho": 0.2})

        pd.testing.assert_series_equal(normalise_offense_params(params), params)

    def test_large_values_do_not_overflow(self):
        params = pd.Series({"off___a": 800.0, "off___b": 800.0})

        assert normalise_offense_params(params).tolist() == pytest.approx([0.0, 0.0])


class TestObjective:
    @pytest.fixture
    def design(self, small_matches):
        return build_design(
            parse_formula("hgoal ~ off(home) + def(away) + hfa + 0"),
            parse_formula("agoal ~ off(away) + def(home) + 0"),
            small_matches,
        )

    def test_matches_the_likelihood(self, design):
        names = design.parameter_names
        values = np.zeros(len(names))

        rates = rate_info(pd.Series(values, index=names), design)
        expected = negative_log_likelihood(
            design.home_goals, design.away_goals, rates.home, rates.away, 0.0, design.weights
        )

        assert rates.home == pytest.approx(np.ones(4))
        assert objective_function(values, design, names) == pytest.approx(expected)

    def test_invariant_to_shifted_offense(self, design):
        names = design.parameter_names
        rng = np.random.default_rng(3)
        values = rng.normal(scale=0.3, size=len(names))
        values[-1] = -0.05
        shifted = values.copy()
        shifted[:3] += 0.7

        assert objective_function(shifted, design, names) == pytest.approx(
            objective_function(values, design, names)
        )

    def test_ceiling_for_invalid_rho(self, design):
        names = design.parameter_names
        values = np.zeros(len(names))
        values[-1] = 5.0

        assert objective_function(values, design, names) == OBJECTIVE_CEILING
