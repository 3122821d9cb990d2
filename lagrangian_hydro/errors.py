"""
Exception hierarchy for the Lagrangian hydrodynamics solver.

Three kinds of failure are distinguished:

- Configuration errors: programming-level mistakes such as applying a mass
  operator before setup or mixing quadrature rules. They are never retried.
- Linear solver errors: an iterative mass solve hit its iteration cap. A
  non-converged solve corrupts the physics state, so runs treat it as fatal.
- Time step collapse: repeated step rejection pushed the time step below
  its floor, meaning the simulation is unstable.

Step rejection itself is not an error; the step controller retries it.
"""

from typing import Any, Dict, Optional


class HydroError(RuntimeError):
    """
    Base class for all solver failures.

    Attributes:
        context (dict): Diagnostic values (time, step, dt, invariant, ...)
            attached where the failure is detected and enriched by callers
            on the way up to the driver.
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = dict(context) if context else {}

    def add_context(self, **values) -> "HydroError":
        """Attach extra diagnostic values without overwriting existing ones."""
        for key, value in values.items():
            self.context.setdefault(key, value)
        return self

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{k}={v}" for k, v in self.context.items())
        return f"{self.message} [{details}]"


class ConfigurationError(HydroError, ValueError):
    """Invalid setup or misuse of an operator; not recoverable."""


class LinearSolverError(HydroError):
    """An iterative mass solve did not converge within its iteration cap."""


class TimeStepCollapseError(HydroError):
    """Repeated step rejection drove the time step below its floor."""


__all__ = [
    "HydroError",
    "ConfigurationError",
    "LinearSolverError",
    "TimeStepCollapseError",
]
