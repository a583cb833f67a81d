from dataclasses import dataclass
from typing import Any, Callable

import numpy as np
import scipy.optimize as optimize

__all__ = ["OptimizerResult", "Minimizer", "scipy_minimizer"]


@dataclass(frozen=True)
class OptimizerResult:
    """Outcome of a minimization.

    Attributes:
        x (np.ndarray): best parameter values found, same length as the starting point.
        fun (float): objective value at ``x``.
        success (bool): whether the minimizer reached its tolerance.
        nit (int | None): number of iterations.
        nfev (int | None): number of objective evaluations.
        message (str): message reported by the minimizer.
        raw (Any): the minimizer's own result object, kept for diagnostics.

    """

    x: np.ndarray
    fun: float
    success: bool
    nit: int | None = None
    nfev: int | None = None
    message: str = ""
    raw: Any = None


Minimizer = Callable[[np.ndarray, Callable[[np.ndarray], float], dict[str, Any]], OptimizerResult]


def scipy_minimizer(
    x0: np.ndarray, objective: Callable[[np.ndarray], float], options: dict[str, Any]
) -> OptimizerResult:
    """Minimize *objective* with :func:`scipy.optimize.minimize`.

    Args:
        x0 (np.ndarray): starting point.
        objective (Callable): scalar function of the parameter vector.
        options (dict): keyword arguments of ``scipy.optimize.minimize``, forwarded as they are
            (``method``, ``tol``, ``options={"maxiter": ...}``, ...).

    Returns:
        OptimizerResult: the minimization outcome.

    """
    res = optimize.minimize(objective, x0, **options)
    return OptimizerResult(
        x=np.asarray(res.x, dtype=float),
        fun=float(res.fun),
        success=bool(res.success),
        nit=getattr(res, "nit", None),
        nfev=getattr(res, "nfev", None),
        message=str(getattr(res, "message", "")),
        raw=res,
    )
