from __future__ import annotations

import inspect
from collections.abc import Mapping
from functools import wraps
from typing import (
    Callable,
    Iterable,
    ParamSpec,
    TypeVar,
)

import pandas as pd

from teamstrength.utils.errors import InputError

P = ParamSpec("P")
R = TypeVar("R")


def verify_required_column(
    column_names: Iterable[str] = (),
    column_args: Iterable[str] = (),
) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """
    Decorator that validates the presence of required columns in a pandas DataFrame.

    The first ``pd.DataFrame`` found among the positional arguments (then among the keyword
    arguments) is checked. Without one, the first mapping of columns is checked on its keys.
    Required columns are either fixed (*column_names*) or given by the caller through other
    arguments of the decorated function (*column_args*), e.g. a function taking
    ``hteam="home"`` declares ``column_args=["hteam"]`` and the column named by the value of
    ``hteam`` at call time, default included, must exist. Arguments whose value is not a string
    are ignored. An :class:`InputError` is raised if any column is missing.

    Parameters
    ----------
    column_names : Iterable[str]
        Column names that must exist in the DataFrame.
    column_args : Iterable[str]
        Names of arguments of the decorated function holding column names.

    Returns
    -------
    Callable[[Callable[P, R]], Callable[P, R]]
        The wrapped function.
    """
    fixed_columns = list(column_names)
    argument_names = list(column_args)

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        signature = inspect.signature(func)

        @wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            candidates = [*args, *kwargs.values()]
            df = next((arg for arg in candidates if isinstance(arg, pd.DataFrame)), None)
            if df is None:
                # Column mappings (e.g. ``{"home": [...], ...}``) are checked on their keys.
                df = next((arg for arg in candidates if isinstance(arg, Mapping)), None)

            # Nothing to validate against, let the function deal with its input.
            if df is None:
                return func(*args, **kwargs)

            required = list(fixed_columns)
            if argument_names:
                bound = signature.bind_partial(*args, **kwargs)
                bound.apply_defaults()
                for name in argument_names:
                    value = bound.arguments.get(name)
                    if isinstance(value, str):
                        required.append(value)

            missing_columns = [col for col in required if col not in df]
            if missing_columns:
                missing_str = ", ".join(missing_columns)
                raise InputError(f"The following required columns are missing: {missing_str}")

            return func(*args, **kwargs)

        return wrapper

    return decorator
