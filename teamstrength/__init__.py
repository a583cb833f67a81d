from .models.dixon_coles import DixonColesModel, dixon_coles, dixon_coles_ext
from .models.score_matrix import ScoreGrid, scorelines_to_outcomes
from .models.summary import augment, tidy
from .models.terms import CategoricalTerm, ConstantTerm, ModelSpec, NumericTerm, parse_formula
from .models.utils import factor_teams
from .utils.errors import ConvergenceError, InputError, SchemaMismatchError
from .utils.typing import ProbaResult, RateInfo

__all__ = [
    "DixonColesModel",
    "dixon_coles",
    "dixon_coles_ext",
    "ScoreGrid",
    "scorelines_to_outcomes",
    "augment",
    "tidy",
    "CategoricalTerm",
    "ConstantTerm",
    "ModelSpec",
    "NumericTerm",
    "parse_formula",
    "factor_teams",
    "ConvergenceError",
    "InputError",
    "SchemaMismatchError",
    "ProbaResult",
    "RateInfo",
]
