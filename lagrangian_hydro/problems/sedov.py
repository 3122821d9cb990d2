"""
Sedov blast wave.

A cold, uniform gas at rest receives a point deposit of energy at the blast
position (the origin by default). The resulting spherical shock tests the
artificial viscosity and the robustness of the mesh motion.
"""

import numpy as np

from .base import Problem, ProblemKind, unit_box


def rho0(x):
    return np.ones(x.shape[:-1])


def gamma(x):
    return np.full(x.shape[:-1], 1.4)


def v0(x):
    return np.zeros_like(x)


def e0(x):
    return np.zeros(x.shape[:-1])


PROBLEM = Problem(
    kind=ProblemKind.SEDOV,
    name="sedov",
    rho0=rho0,
    v0=v0,
    e0=e0,
    gamma=gamma,
    dims=(1, 2, 3),
    domain=unit_box,
    point_energy=True,
)
