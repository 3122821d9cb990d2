"""
Triple point problem on [0, 7] x [0, 3] (x [0, 3] in 3D).

Three regions at rest meet at (1, 1.5): a high pressure driver on the
left and two low pressure regions of different density and gamma on the
right. The shear along the contact rolls up into a vortex.

In 3D the low density region is split into the two diagonal quarters
y, z < 1.5 and y, z > 1.5 of the right part of the box.
"""

import numpy as np

from .base import Problem, ProblemKind


def rho0(x):
    right = x[..., 0] > 1.0
    if x.shape[-1] == 2:
        light = x[..., 1] > 1.5
    else:
        y_low, z_low = x[..., 1] < 1.5, x[..., 2] < 1.5
        light = (y_low & z_low) | ((x[..., 1] > 1.5) & (x[..., 2] > 1.5))
    return np.where(right & light, 0.125, 1.0)


def gamma(x):
    return np.where((x[..., 0] > 1.0) & (x[..., 1] <= 1.5), 1.4, 1.5)


def v0(x):
    return np.zeros_like(x)


def e0(x):
    pressure = np.where(x[..., 0] > 1.0, 0.1, 1.0)
    return pressure / rho0(x) / (gamma(x) - 1.0)


def domain(dim: int):
    if dim == 3:
        return (0.0, 0.0, 0.0), (7.0, 3.0, 3.0)
    return (0.0, 0.0), (7.0, 3.0)


PROBLEM = Problem(
    kind=ProblemKind.TRIPLE_POINT,
    name="triple_point",
    rho0=rho0,
    v0=v0,
    e0=e0,
    gamma=gamma,
    dims=(2, 3),
    domain=domain,
)
