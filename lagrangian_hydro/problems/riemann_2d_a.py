"""
Two-dimensional Riemann problem with a rarefaction and two sliding
contacts, on the unit square.

Four constant quadrants meet at (0.5, 0.5):

    upper left   rho = 1.0,     p = 1.0,  v = (0.7276, 0)
    upper right  rho = 0.5313,  p = 0.4,  v = 0
    lower left   rho = 0.8,     p = 1.0,  v = 0
    lower right  rho = 1.0,     p = 1.0,  v = (0, 0.7276)

The velocities are tapered to zero on the box walls.
"""

import numpy as np

from .base import Problem, ProblemKind, unit_box


def wall_taper(x):
    """(16 x (1 - x) y (1 - y))^0.4, zero on the walls of the unit square."""
    px, py = x[..., 0], x[..., 1]
    return np.maximum(16.0 * px * (1.0 - px) * py * (1.0 - py), 0.0) ** 0.4


def rho0(x):
    right, upper = x[..., 0] >= 0.5, x[..., 1] >= 0.5
    return np.where(right & upper, 0.5313, np.where(~right & ~upper, 0.8, 1.0))


def gamma(x):
    return np.full(x.shape[:-1], 1.4)


def v0(x):
    right, upper = x[..., 0] >= 0.5, x[..., 1] >= 0.5
    taper = wall_taper(x)
    v = np.zeros_like(x)
    v[..., 0] = np.where(~right & upper, 0.7276 * taper, 0.0)
    v[..., 1] = np.where(right & ~upper, 0.7276 * taper, 0.0)
    return v


def e0(x):
    right, upper = x[..., 0] >= 0.5, x[..., 1] >= 0.5
    pressure = np.where(right & upper, 0.4, 1.0)
    return pressure / rho0(x) / (gamma(x) - 1.0)


PROBLEM = Problem(
    kind=ProblemKind.RIEMANN_2D_A,
    name="riemann_2d_a",
    rho0=rho0,
    v0=v0,
    e0=e0,
    gamma=gamma,
    dims=(2,),
    domain=unit_box,
)
