import numpy as np

# Separator between a term and a category in a flattened parameter name, e.g. "off___Arsenal".
NAME_SEPARATOR = "___"
OFFENSE_PREFIX = "off" + NAME_SEPARATOR
RHO = "rho"

DEFAULT_METHOD = "BFGS"
DEFAULT_UP_TO = 50
DEFAULT_THRESHOLD = float(np.sqrt(np.finfo(float).eps))

# Value returned by the objective wherever the log-likelihood is not finite.
OBJECTIVE_CEILING = 1e10


def parameter_name(term: str, category: object) -> str:
    return f"{term}{NAME_SEPARATOR}{category}"


def split_parameter_name(name: str) -> tuple[str, str | None]:
    """Split a flattened parameter name into its term and category.

    Args:
        name (str): parameter name, e.g. ``"def___Chelsea"`` or ``"hfa"``.

    Returns:
        tuple[str, str | None]: the term and the category, ``None`` for parameters that do not
            come from a categorical term.

    """
    term, sep, category = name.partition(NAME_SEPARATOR)
    if not sep:
        return name, None
    return term, category
