"""
Rayleigh-Taylor instability on [0, 0.5] x [-1, 1].

A heavy fluid (rho = 2, y >= 0) rests on a light one (rho = 1) under the
unit gravity g = (0, -1). The pressure is hydrostatic, p = 6 - rho y, and a
single mode vertical velocity perturbation seeds the instability:

    v_y = 0.02 exp(-2 pi y^2) cos(2 pi x)

Gravity enters as a body acceleration on the momentum equation. Vorticity
damping keeps the linear viscosity out of the rolling shear layer.
"""

import numpy as np

from .base import Problem, ProblemKind

GAMMA = 5.0 / 3.0


def rho0(x):
    return np.where(x[..., 1] >= 0.0, 2.0, 1.0)


def gamma(x):
    return np.full(x.shape[:-1], GAMMA)


def v0(x):
    v = np.zeros_like(x)
    v[..., 1] = 0.02 * np.exp(-2.0 * np.pi * x[..., 1] ** 2) * np.cos(2.0 * np.pi * x[..., 0])
    return v


def e0(x):
    rho = rho0(x)
    return (6.0 - rho * x[..., 1]) / (GAMMA - 1.0) / rho


def acceleration(x):
    g = np.zeros_like(x)
    g[..., 1] = -1.0
    return g


def domain(dim: int):
    return (0.0, -1.0), (0.5, 1.0)


PROBLEM = Problem(
    kind=ProblemKind.RAYLEIGH_TAYLOR,
    name="rayleigh_taylor",
    rho0=rho0,
    v0=v0,
    e0=e0,
    gamma=gamma,
    dims=(2,),
    domain=domain,
    use_vorticity=True,
    acceleration=acceleration,
)
