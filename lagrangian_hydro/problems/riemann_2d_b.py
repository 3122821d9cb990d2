"""
Two-dimensional Riemann problem of four interacting vortex sheets, on the
unit square.

All quadrants share p = 1. The densities are 2 (upper left), 3 (lower
right) and 1 elsewhere, and each quadrant moves with velocity
(+-0.75, +-0.5) so that the four contacts shear against each other. The
velocities are tapered to zero on the box walls.
"""

import numpy as np

from .base import Problem, ProblemKind, unit_box
from .riemann_2d_a import wall_taper


def rho0(x):
    right, upper = x[..., 0] >= 0.5, x[..., 1] >= 0.5
    return np.where(~right & upper, 2.0, np.where(right & ~upper, 3.0, 1.0))


def gamma(x):
    return np.full(x.shape[:-1], 1.4)


def v0(x):
    upper = x[..., 1] >= 0.5
    right = x[..., 0] >= 0.5
    taper = wall_taper(x)
    v = np.zeros_like(x)
    v[..., 0] = np.where(upper, 0.75, -0.75) * taper
    v[..., 1] = np.where(right, -0.5, 0.5) * taper
    return v


def e0(x):
    return 1.0 / rho0(x) / (gamma(x) - 1.0)


PROBLEM = Problem(
    kind=ProblemKind.RIEMANN_2D_B,
    name="riemann_2d_b",
    rho0=rho0,
    v0=v0,
    e0=e0,
    gamma=gamma,
    dims=(2,),
    domain=unit_box,
)
