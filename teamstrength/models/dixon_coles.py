"""Dixon-Coles model for estimating team strengths.

Dixon, Mark J., and Stuart G. Coles. "Modelling association football scores and inefficiencies
in the football betting market." Journal of the Royal Statistical Society: Series C (Applied
Statistics) 46, no. 2 (1997): 265-280.

Two entry points fit the model by maximum likelihood:

    - :func:`dixon_coles`: team strengths and a home-field advantage, from four columns.
    - :func:`dixon_coles_ext`: any pair of specifications, one for the home goals and one for the
      away goals, to estimate effects beyond team strength.
"""

import dataclasses
import logging
import warnings
from collections.abc import Mapping
from functools import partial
from typing import Any

import numpy as np
import pandas as pd

from teamstrength.models import summary
from teamstrength.models.design import DesignMatrices, as_frame, build_design, check_vocabulary
from teamstrength.models.likelihood import normalise_offense_params, objective_function, rate_info
from teamstrength.models.optimizer import Minimizer, OptimizerResult, scipy_minimizer
from teamstrength.models.score_matrix import (
    ScoreGrid,
    predict_scorelines,
    scorelines_to_outcomes,
)
from teamstrength.models.terms import (
    CategoricalTerm,
    ConstantTerm,
    ModelSpec,
    parse_formula,
)
from teamstrength.utils.decorators import verify_required_column
from teamstrength.utils.errors import ConvergenceError, InputError
from teamstrength.utils.typing import ProbaResult, RateInfo
from teamstrength.utils.utils import DEFAULT_METHOD, DEFAULT_THRESHOLD, DEFAULT_UP_TO, RHO

logger = logging.getLogger(name=__name__)

__all__ = ["DixonColesModel", "dixon_coles", "dixon_coles_ext"]

PREDICTION_TYPES = ("rates", "scorelines", "outcomes")


@dataclasses.dataclass(frozen=True, eq=False, repr=False)
class DixonColesModel:
    """Fitted Dixon-Coles model.

    The estimated parameters and the fitting data are held privately and exposed as copies, so
    that editing ``model.params`` or ``model.data`` cannot change the model.

    Attributes:
        params (pd.Series): copy of the estimated parameters indexed by name, offense parameters
            normalised so that ``mean(exp(off___*)) == 1``, ``"rho"`` last.
        spec_home (ModelSpec): specification of the home goals.
        spec_away (ModelSpec): specification of the away goals.
        weights (Any): weights as given when fitting (``None`` when every match weighs 1).
        data (pd.DataFrame): copy of the data the model was fitted on.
        optimizer (OptimizerResult): raw outcome of the minimization.
        implicit_hfa (bool): whether the model was built by :func:`dixon_coles`, which adds the
            home-field advantage term ``hfa`` itself.
        convergence_error (ConvergenceError | None): set when the minimizer did not converge.

    """

    _params: pd.Series
    spec_home: ModelSpec
    spec_away: ModelSpec
    weights: Any
    _data: pd.DataFrame
    optimizer: OptimizerResult
    implicit_hfa: bool = False
    convergence_error: ConvergenceError | None = None

    @property
    def params(self) -> pd.Series:
        return self._params.copy()

    @property
    def data(self) -> pd.DataFrame:
        return self._data.copy()

    @property
    def converged(self) -> bool:
        return self.convergence_error is None

    def raise_for_convergence(self) -> None:
        """Raise the stored :class:`ConvergenceError`, if any."""
        if self.convergence_error is not None:
            raise self.convergence_error

    def _predict_design(
        self, newdata: pd.DataFrame | None
    ) -> tuple[pd.DataFrame, DesignMatrices]:
        newdata = self._data if newdata is None else as_frame(newdata)
        design = build_design(self.spec_home, self.spec_away, newdata, predict=True)
        check_vocabulary(design, self._params)
        return newdata, design

    def rate_info(self, newdata: pd.DataFrame | None = None) -> RateInfo:
        """Expected goals of each match of *newdata* (the fitting data by default)."""
        _, design = self._predict_design(newdata)
        return rate_info(self._params, design)

    def rates(self, newdata: pd.DataFrame | None = None) -> pd.DataFrame:
        """Expected goals of each match.

        Args:
            newdata (pd.DataFrame | None): matches to predict, the fitting data by default. Goal
                columns are not needed.

        Returns:
            pd.DataFrame: ``home_rate`` and ``away_rate`` columns, indexed like *newdata*.

        Raises:
            SchemaMismatchError: if *newdata* does not generate the fitted columns, typically a
                team column with other levels than at fitting time.

        """
        newdata, design = self._predict_design(newdata)
        info = rate_info(self._params, design)
        return pd.DataFrame({"home_rate": info.home, "away_rate": info.away}, index=newdata.index)

    def scorelines(
        self,
        newdata: pd.DataFrame | None = None,
        up_to: int = DEFAULT_UP_TO,
        threshold: float = DEFAULT_THRESHOLD,
    ) -> list[pd.DataFrame]:
        """Probability of each scoreline of each match.

        Args:
            newdata (pd.DataFrame | None): matches to predict, the fitting data by default.
            up_to (int): maximum number of goals of each side.
            threshold (float): scorelines with a probability lower or equal are dropped.

        Returns:
            list[pd.DataFrame]: one table per match with ``hgoal``, ``agoal`` and ``prob``
                columns. The table is truncated, its probabilities sum to slightly less than 1.

        """
        return predict_scorelines(self.rate_info(newdata), up_to, threshold)

    def outcomes(
        self,
        newdata: pd.DataFrame | None = None,
        up_to: int = DEFAULT_UP_TO,
        threshold: float = DEFAULT_THRESHOLD,
    ) -> list[ProbaResult]:
        """Home win, draw and away win probabilities of each match.

        Computed from the truncated scoreline tables without renormalisation: each value is a
        lower bound and the three of them sum to the total of the table.
        """
        return [
            scorelines_to_outcomes(table)
            for table in self.scorelines(newdata, up_to=up_to, threshold=threshold)
        ]

    def score_grid(self, newdata: pd.DataFrame | None = None, up_to: int = 10) -> list[ScoreGrid]:
        info = self.rate_info(newdata)
        return [
            ScoreGrid.from_rates(home_rate, away_rate, info.rho, up_to)
            for home_rate, away_rate in zip(info.home, info.away)
        ]

    def predict(
        self,
        newdata: pd.DataFrame | None = None,
        type: str = "rates",
        up_to: int = DEFAULT_UP_TO,
        threshold: float = DEFAULT_THRESHOLD,
    ) -> pd.DataFrame | list[pd.DataFrame] | list[ProbaResult]:
        """Predicted rates, scorelines or outcomes, see the method of the same name."""
        if type == "rates":
            return self.rates(newdata)
        if type == "scorelines":
            return self.scorelines(newdata, up_to=up_to, threshold=threshold)
        if type == "outcomes":
            return self.outcomes(newdata, up_to=up_to, threshold=threshold)
        raise InputError(f"type must be one of {', '.join(PREDICTION_TYPES)}, got {type!r}.")

    def tidy(self) -> pd.DataFrame:
        return summary.tidy(self)

    def augment(self, data: pd.DataFrame | None = None, **kwargs: Any) -> pd.DataFrame:
        return summary.augment(self, data=data, **kwargs)

    def __str__(self) -> str:
        return (
            "Dixon-Coles model with specification:\n\n"
            f"Home goals: {self.spec_home}\n"
            f"Away goals: {self.spec_away}\n"
            f"Weights   : {summary.describe_weights(self.weights)}"
        )

    def __repr__(self) -> str:
        return (
            f"DixonColesModel(n_params={len(self._params)}, n_matches={len(self._data)}, "
            f"converged={self.converged})"
        )


def _initial_values(init: Any, names: list[str]) -> np.ndarray:
    if init is None:
        return np.zeros(len(names))
    if isinstance(init, (Mapping, pd.Series)):
        init = pd.Series(init, dtype=float)
        missing = [name for name in names if name not in init.index]
        unknown = [name for name in init.index if name not in names]
        if missing or unknown:
            missing_str = ", ".join(missing) or "-"
            unknown_str = ", ".join(map(str, unknown)) or "-"
            raise InputError(
                "Initial values must match the model parameters "
                f"(missing: {missing_str}; unknown: {unknown_str})."
            )
        return init.reindex(names).to_numpy(dtype=float)
    values = np.asarray(init, dtype=float).reshape(-1)
    if len(values) != len(names):
        raise InputError(f"Expecting {len(names)} initial values, got {len(values)}.")
    return values


def dixon_coles_ext(
    spec_home: ModelSpec | str,
    spec_away: ModelSpec | str,
    data: pd.DataFrame | Mapping[str, Any],
    weights: Any = None,
    init: Any = None,
    minimizer: Minimizer | None = None,
    method: str | None = DEFAULT_METHOD,
    **optimizer_kwargs: Any,
) -> DixonColesModel:
    """Fit a Dixon-Coles model given one specification per side.

    Args:
        spec_home (ModelSpec | str): specification or formula of the home goals, e.g.
            ``"hgoal ~ off(home) + def(away) + hfa + 0"``.
        spec_away (ModelSpec | str): specification or formula of the away goals, e.g.
            ``"agoal ~ off(away) + def(home) + 0"``.
        data (pd.DataFrame | Mapping): match data.
        weights: weight of each match in the likelihood: ``None`` (all equal), a number, a column
            name or expression, or one value per match.
        init: initial parameter values, by name (mapping or ``pd.Series``) or by position. All
            parameters, ``"rho"`` included, start at 0 when ``None``.
        minimizer (Minimizer | None): minimization routine, :func:`scipy_minimizer` by default.
        method (str | None): minimization algorithm, BFGS by default.
        **optimizer_kwargs: forwarded to the minimizer unchanged, e.g. ``tol`` or
            ``options={"maxiter": 500}`` for scipy.

    Returns:
        DixonColesModel: the fitted model. When the minimizer does not converge the model is still
            returned, with ``converged`` False and the error in ``convergence_error``.

    Raises:
        InputError: if the specifications, the data, the weights or *init* are invalid.

    """
    spec_home = parse_formula(spec_home)
    spec_away = parse_formula(spec_away)
    data = as_frame(data)

    design = build_design(spec_home, spec_away, data, weights=weights, stacklevel=2)
    names = design.parameter_names
    x0 = _initial_values(init, names)
    options = {"method": method, **optimizer_kwargs}

    logger.info(
        "Fitting Dixon-Coles model with %d parameters on %d matches", len(names), len(design)
    )
    minimize = scipy_minimizer if minimizer is None else minimizer
    result = minimize(x0, partial(objective_function, design=design, names=names), options)

    x = np.asarray(result.x, dtype=float).reshape(-1)
    if len(x) != len(names):
        raise ValueError(f"The minimizer returned {len(x)} values for {len(names)} parameters.")
    params = normalise_offense_params(pd.Series(x, index=names))

    convergence_error = None
    if not result.success:
        convergence_error = ConvergenceError(result.message, result.nit)
        logger.warning("Minimization routine was not successful: %s", result.message)
    else:
        logger.info("Model fitted: objective=%.4f, rho=%.4f", result.fun, params[RHO])

    return DixonColesModel(
        _params=params,
        spec_home=spec_home,
        spec_away=spec_away,
        weights=weights,
        _data=data.copy(),
        optimizer=result,
        convergence_error=convergence_error,
    )


@verify_required_column(column_args=["hgoal", "agoal", "hteam", "ateam"])
def dixon_coles(
    data: pd.DataFrame,
    hgoal: str = "hgoal",
    agoal: str = "agoal",
    hteam: str = "home",
    ateam: str = "away",
    weights: Any = None,
    **kwargs: Any,
) -> DixonColesModel:
    """Fit the Dixon-Coles model of team strengths.

    The home goals are modelled by ``off(hteam) + def(ateam) + hfa`` and the away goals by
    ``off(ateam) + def(hteam)``, where ``hfa`` is a constant home-field advantage term.

    Args:
        data (pd.DataFrame): match data.
        hgoal (str): column of the home goals.
        agoal (str): column of the away goals.
        hteam (str): column of the home teams, a categorical.
        ateam (str): column of the away teams, a categorical with the same levels.
        weights: weight of each match, see :func:`dixon_coles_ext`.
        **kwargs: forwarded to :func:`dixon_coles_ext`.

    Returns:
        DixonColesModel: the fitted model, ``implicit_hfa`` set.

    Raises:
        InputError: if a column is missing or the team columns are not categoricals.

    Examples:
        >>> fit = dixon_coles(factor_teams(matches), hgoal="hgoal", agoal="agoal")  # doctest: +SKIP

    """
    data = as_frame(data)
    hvar = data[hteam]
    avar = data[ateam]
    if not (
        isinstance(hvar.dtype, pd.CategoricalDtype) and isinstance(avar.dtype, pd.CategoricalDtype)
    ):
        raise InputError("home and away team variables should be categoricals (see factor_teams)")
    if set(hvar.cat.categories) != set(avar.cat.categories):
        warnings.warn(
            "home and away team variables should have the same levels (see factor_teams)",
            stacklevel=3,
        )

    spec_home = ModelSpec(
        response=hgoal,
        terms=(CategoricalTerm("off", hteam), CategoricalTerm("def", ateam), ConstantTerm("hfa")),
    )
    spec_away = ModelSpec(
        response=agoal,
        terms=(CategoricalTerm("off", ateam), CategoricalTerm("def", hteam)),
    )
    model = dixon_coles_ext(spec_home, spec_away, data, weights=weights, **kwargs)
    return dataclasses.replace(model, implicit_hfa=True)
