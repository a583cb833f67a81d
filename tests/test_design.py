import warnings

import numpy as np
import pandas as pd
import pytest

from teamstrength.models.design import build_design, check_vocabulary
from teamstrength.models.terms import (
    CategoricalTerm,
    ConstantTerm,
    ModelSpec,
    NumericTerm,
    parse_formula,
)
from teamstrength.utils.errors import InputError, SchemaMismatchError


@pytest.fixture
def specs():
    home = parse_formula("hgoal ~ off(home) + def(away) + hfa + 0")
    away = parse_formula("agoal ~ off(away) + def(home) + 0")
    return home, away


class TestColumns:
    def test_both_sides_share_columns(self, specs, small_matches):
        design = build_design(*specs, small_matches)

        assert design.columns == (
            "off___a", "off___b", "off___c", "def___a", "def___b", "def___c", "hfa",
        )
        assert design.home.shape == design.away.shape == (4, 7)

    def test_missing_columns_are_zero_filled(self, specs, small_matches):
        design = build_design(*specs, small_matches)

        assert np.all(design.away[:, -1] == 0.0)
        assert np.all(design.home[:, -1] == 1.0)

    def test_indicators_follow_the_teams(self, specs, small_matches):
        design = build_design(*specs, small_matches)

        # a v b: home side attacks with a and faces the defense of b
        assert design.home[0].tolist() == [1, 0, 0, 0, 1, 0, 1]
        assert design.away[0].tolist() == [0, 1, 0, 1, 0, 0, 0]

    def test_columns_only_on_away_side_come_last(self, small_matches):
        home = ModelSpec("hgoal", (CategoricalTerm("off", "home"),))
        away = ModelSpec("agoal", (NumericTerm("rain"), CategoricalTerm("off", "away")))

        design = build_design(home, away, small_matches)

        assert design.columns == ("off___a", "off___b", "off___c", "rain")
        assert design.home[:, -1].tolist() == [0.0] * 4
        assert design.away[:, -1].tolist() == [0.0, 1.5, 0.2, 0.0]

    def test_intercept_is_ignored_with_warning(self, small_matches):
        home = parse_formula("hgoal ~ off(home)")
        away = parse_formula("agoal ~ off(away) + 0")

        with pytest.warns(UserWarning, match="Intercept term will be ignored") as record:
            design = build_design(home, away, small_matches)

        assert design.columns == ("off___a", "off___b", "off___c")
        assert record[0].filename == __file__

    def test_intercept_does_not_warn_when_predicting(self, small_matches):
        home = parse_formula("hgoal ~ off(home)")
        away = parse_formula("agoal ~ off(away) + 0")

        with warnings.catch_warnings():
            warnings.simplefilter("error")
            build_design(home, away, small_matches, predict=True)

    def test_same_column_twice_on_one_side(self, small_matches):
        home = ModelSpec("hgoal", (NumericTerm("rain"), NumericTerm("rain", expression="hgoal")))
        away = ModelSpec("agoal", (NumericTerm("rain"),))

        with pytest.raises(InputError, match="generated twice"):
            build_design(home, away, small_matches)

    def test_incompatible_column_types(self, small_matches):
        data = small_matches.assign(off___a=1.0)
        home = ModelSpec("hgoal", (CategoricalTerm("off", "home"),))
        away = ModelSpec("agoal", (NumericTerm("off___a"),))

        with pytest.raises(InputError, match="categorical on one side and numeric"):
            build_design(home, away, data)

    def test_unknown_column(self, specs, small_matches):
        with pytest.raises(InputError):
            build_design(*specs, small_matches.drop(columns="away"))


class TestFitAndPredictModes:
    def test_fit_mode_reads_goals(self, specs, small_matches):
        design = build_design(*specs, small_matches)

        assert design.home_goals.tolist() == [1, 0, 2, 3]
        assert design.away_goals.tolist() == [1, 2, 0, 0]
        assert design.weights.tolist() == [1.0] * 4

    def test_predict_mode_needs_no_goals(self, specs, small_matches):
        newdata = small_matches.drop(columns=["hgoal", "agoal"])

        design = build_design(*specs, newdata, weights="rain", predict=True)

        assert design.home_goals is None
        assert design.away_goals is None
        assert design.weights.tolist() == [1.0] * 4

    def test_missing_response(self, small_matches):
        home = ModelSpec(None, (ConstantTerm("hfa"),))

        with pytest.raises(InputError, match="no goals column"):
            build_design(home, home, small_matches)

    def test_goals_must_be_counts(self, specs, small_matches):
        with pytest.raises(InputError, match="non-negative whole numbers"):
            build_design(*specs, small_matches.assign(hgoal=[1, -1, 0, 2]))

    def test_accepts_mappings(self, specs, small_matches):
        design = build_design(*specs, small_matches.to_dict(orient="list"))

        assert len(design) == 4


class TestWeights:
    @pytest.mark.parametrize(
        "weights, expected",
        [
            (None, [1.0, 1.0, 1.0, 1.0]),
            (0.5, [0.5, 0.5, 0.5, 0.5]),
            ("rain", [0.0, 1.5, 0.2, 0.0]),
            ("rain * 2", [0.0, 3.0, 0.4, 0.0]),
            ([1, 2, 3, 4], [1.0, 2.0, 3.0, 4.0]),
        ],
    )
    def test_weight_descriptors(self, specs, small_matches, weights, expected):
        design = build_design(*specs, small_matches, weights=weights)

        assert design.weights == pytest.approx(expected)

    @pytest.mark.parametrize("weights", [-1.0, [1, 2], "rain - 1", [1, np.nan, 1, 1]])
    def test_invalid_weights(self, specs, small_matches, weights):
        with pytest.raises(InputError):
            build_design(*specs, small_matches, weights=weights)


class TestLevels:
    """Rows whose team is not one of the levels of the categorical."""

    def test_missing_team_when_fitting(self, specs, small_matches):
        data = small_matches.assign(away=small_matches["away"].astype(object))
        data.loc[2, "away"] = None
        data["away"] = pd.Categorical(data["away"], categories=["a", "b", "c"])

        with pytest.raises(InputError, match=r"Term 'def\(away\)' .* \(rows 2\)"):
            build_design(*specs, data)

    def test_unknown_team_when_predicting(self, specs, small_matches):
        newdata = small_matches.assign(
            home=pd.Categorical(["a", "zz", "c", "zz"], categories=["a", "b", "c"])
        )

        with pytest.raises(SchemaMismatchError, match=r"Term 'off\(home\)' .* \(rows 1, 3\)"):
            build_design(*specs, newdata, predict=True)

    def test_numeric_term_with_categorical_values(self, small_matches):
        spec = ModelSpec("hgoal", (NumericTerm("home"),))
        newdata = small_matches.assign(home=pd.Categorical([None, "a", "b", "c"]))

        with pytest.raises(SchemaMismatchError, match="rows 0"):
            build_design(spec, spec, newdata, predict=True)


class TestVocabulary:
    def test_matching_vocabulary(self, specs, small_matches):
        design = build_design(*specs, small_matches, predict=True)
        params = pd.Series(0.0, index=design.parameter_names)

        check_vocabulary(design, params)

    def test_unknown_category(self, specs, small_matches):
        design = build_design(*specs, small_matches, predict=True)
        params = pd.Series(0.0, index=design.parameter_names)
        newdata = small_matches.assign(
            home=pd.Categorical(["a", "b", "z", "a"]),
            away=pd.Categorical(["b", "z", "a", "b"]),
        )
        new_design = build_design(*specs, newdata, predict=True)

        with pytest.raises(SchemaMismatchError, match="unknown columns: off___z"):
            check_vocabulary(new_design, params)

    def test_column_order_matters(self, specs, small_matches):
        design = build_design(*specs, small_matches, predict=True)
        names = design.parameter_names
        params = pd.Series(0.0, index=[names[1], names[0], *names[2:]])

        with pytest.raises(SchemaMismatchError, match="different order"):
            check_vocabulary(design, params)
