"""
Gresho vortex on [-0.5, 0.5]^2.

A rotating flow in exact equilibrium between the centrifugal force and the
pressure gradient. The azimuthal velocity rises linearly to 1 at r = 0.2,
falls back to 0 at r = 0.4 and vanishes outside.
"""

import numpy as np

from .base import Problem, ProblemKind

GAMMA = 5.0 / 3.0


def rho0(x):
    return np.ones(x.shape[:-1])


def gamma(x):
    return np.full(x.shape[:-1], GAMMA)


def v0(x):
    px, py = x[..., 0], x[..., 1]
    r = np.hypot(px, py)
    safe_r = np.where(r > 0.0, r, 1.0)

    v = np.zeros_like(x)
    inner = r < 0.2
    ring = (r >= 0.2) & (r < 0.4)
    v[..., 0] = np.where(inner, 5.0 * py, np.where(ring, 2.0 * py / safe_r - 5.0 * py, 0.0))
    v[..., 1] = np.where(inner, -5.0 * px, np.where(ring, -2.0 * px / safe_r + 5.0 * px, 0.0))
    return v


def e0(x):
    r = np.hypot(x[..., 0], x[..., 1])
    rsq = r * r
    safe_r = np.where(r > 0.0, r, 1.0)

    inner = (5.0 + 25.0 / 2.0 * rsq) / (GAMMA - 1.0)
    ring = ((9.0 - 4.0 * np.log(0.2) + 25.0 / 2.0 * rsq)
            - (20.0 * r - 4.0 * np.log(safe_r))) / (GAMMA - 1.0)
    outer = (3.0 + 4.0 * np.log(2.0)) / (GAMMA - 1.0)
    return np.where(r < 0.2, inner, np.where(r < 0.4, ring, outer))


def domain(dim: int):
    return (-0.5, -0.5), (0.5, 0.5)


PROBLEM = Problem(
    kind=ProblemKind.GRESHO,
    name="gresho",
    rho0=rho0,
    v0=v0,
    e0=e0,
    gamma=gamma,
    dims=(2,),
    domain=domain,
    use_viscosity=False,
)
