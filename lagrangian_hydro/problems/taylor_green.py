"""
Taylor-Green vortex.

A smooth, steady vortex held in place by a manufactured energy source. The
exact solution keeps the initial velocity, so the problem measures the
high-order convergence of the scheme. Run without artificial viscosity.

    v = (sin(pi x) cos(pi y), -cos(pi x) sin(pi y))
    p = rho (1 + (cos(2 pi x) + cos(2 pi y)) / 4),  rho = 1,  gamma = 5/3
"""

import numpy as np

from .base import Problem, ProblemKind, unit_box


def rho0(x):
    return np.ones(x.shape[:-1])


def gamma(x):
    return np.full(x.shape[:-1], 5.0 / 3.0)


def v0(x):
    v = np.zeros_like(x)
    v[..., 0] = np.sin(np.pi * x[..., 0]) * np.cos(np.pi * x[..., 1])
    v[..., 1] = -np.cos(np.pi * x[..., 0]) * np.sin(np.pi * x[..., 1])
    if x.shape[-1] == 3:
        v[..., 0] *= np.cos(np.pi * x[..., 2])
        v[..., 1] *= np.cos(np.pi * x[..., 2])
    return v


def e0(x):
    # (gamma - 1) * rho
    denom = 2.0 / 3.0
    if x.shape[-1] == 2:
        val = 1.0 + (np.cos(2 * np.pi * x[..., 0]) + np.cos(2 * np.pi * x[..., 1])) / 4.0
    else:
        val = 100.0 + ((np.cos(2 * np.pi * x[..., 2]) + 2.0)
                       * (np.cos(2 * np.pi * x[..., 0]) + np.cos(2 * np.pi * x[..., 1]))
                       - 2.0) / 16.0
    return val / denom


def source(x):
    """Energy source that keeps the 2D vortex steady."""
    cx, cy = np.pi * x[..., 0], np.pi * x[..., 1]
    return 3.0 / 8.0 * np.pi * (np.cos(3.0 * cx) * np.cos(cy) - np.cos(cx) * np.cos(3.0 * cy))


PROBLEM = Problem(
    kind=ProblemKind.TAYLOR_GREEN,
    name="taylor_green",
    rho0=rho0,
    v0=v0,
    e0=e0,
    gamma=gamma,
    dims=(2, 3),
    domain=unit_box,
    use_viscosity=False,
    source=source,
)
