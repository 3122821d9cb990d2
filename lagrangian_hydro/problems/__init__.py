"""
Registry of the initial condition profiles.

    get_problem("sedov") or get_problem(ProblemKind.SEDOV) or get_problem(1)
"""

from typing import Union

from ..errors import ConfigurationError
from . import (gresho, rayleigh_taylor, riemann_2d_a, riemann_2d_b, sedov, sod,
               taylor_green, triple_point)
from .base import Problem, ProblemKind

PROBLEMS = {module.PROBLEM.kind: module.PROBLEM
            for module in (taylor_green, sedov, sod, triple_point, gresho,
                           riemann_2d_a, riemann_2d_b, rayleigh_taylor)}


def get_problem(key: Union[str, int, ProblemKind]) -> Problem:
    """
    Look up a profile by name, integer id or kind.

    Raises:
        ConfigurationError: if no profile matches
    """
    if isinstance(key, str):
        for problem in PROBLEMS.values():
            if problem.name == key.strip().lower():
                return problem
        raise ConfigurationError(
            f"Unknown problem {key!r}; valid names are "
            f"{sorted(p.name for p in PROBLEMS.values())}")

    try:
        return PROBLEMS[ProblemKind(int(key))]
    except (ValueError, TypeError):
        raise ConfigurationError(f"Unknown problem id {key!r}") from None


__all__ = ["Problem", "ProblemKind", "PROBLEMS", "get_problem"]
