"""
Sod shock tube along the x axis.

Left state (x < 0.5): rho = 1.0, p = 1.0
Right state (x >= 0.5): rho = 0.1, p = 0.1
Both states start at rest with gamma = 1.4.
"""

import numpy as np

from .base import Problem, ProblemKind, unit_box


def rho0(x):
    return np.where(x[..., 0] < 0.5, 1.0, 0.1)


def gamma(x):
    return np.full(x.shape[:-1], 1.4)


def v0(x):
    return np.zeros_like(x)


def e0(x):
    pressure = np.where(x[..., 0] < 0.5, 1.0, 0.1)
    return pressure / rho0(x) / (gamma(x) - 1.0)


PROBLEM = Problem(
    kind=ProblemKind.SOD,
    name="sod",
    rho0=rho0,
    v0=v0,
    e0=e0,
    gamma=gamma,
    dims=(1, 2, 3),
    domain=unit_box,
)
