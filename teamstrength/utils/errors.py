class InputError(ValueError):
    """Raised when the data or the model specification given by the user is inconsistent."""


class SchemaMismatchError(ValueError):
    """Raised when new data does not produce the columns a fitted model was estimated on."""


class ConvergenceError(RuntimeError):
    """Describes a minimization that stopped before reaching its tolerance.

    Fitting never raises it: the instance is stored on the fitted model so that the caller can
    decide to keep, discard or refit it (see ``DixonColesModel.raise_for_convergence``).

    Args:
        message (str): message reported by the minimizer.
        iterations (int | None): number of iterations performed, when known.

    """

    def __init__(self, message: str, iterations: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.iterations = iterations

    def __str__(self) -> str:
        if self.iterations is None:
            return f"Minimization did not converge: {self.message}"
        return f"Minimization did not converge after {self.iterations} iterations: {self.message}"
