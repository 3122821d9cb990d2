"""Shared setup for the solver tests."""

import numpy as np
import pytest

from lagrangian_hydro.fem import CartesianMesh, H1Space, L2Space, default_order, tensor_rule
from lagrangian_hydro.quadrature_data import QuadratureData


class Setup:
    """Mesh, spaces and an initialized quadrature cache for one test."""

    def __init__(self, zones, order_v=1, order_e=0, lower=None, upper=None,
                 rho0=1.0, gamma=1.4, use_viscosity=True, use_vorticity=False, cfl=0.5):
        dim = len(zones)
        lower = (0.0,) * dim if lower is None else lower
        upper = (1.0,) * dim if upper is None else upper

        self.mesh = CartesianMesh(zones, lower, upper)
        self.h1 = H1Space(self.mesh, order_v).finalize()
        self.l2 = L2Space(self.mesh, order_e).finalize()
        self.rule = tensor_rule(dim, default_order(order_v, order_e))
        self.qdata = QuadratureData(self.h1, self.l2, self.rule, cfl=cfl,
                                    use_viscosity=use_viscosity,
                                    use_vorticity=use_vorticity)
        self.x0 = self.h1.initial_positions()
        self.qdata.initialize(self.x0, rho0, gamma)

    def velocity(self, func):
        """Interpolate a velocity function of the node coordinates."""
        values = func(self.h1.node_coordinates())
        return np.ascontiguousarray(values.T).ravel()

    def energy(self, value):
        """Constant specific internal energy (Bernstein dofs sum to one)."""
        return np.full(self.l2.size, float(value))


@pytest.fixture
def make_setup():
    return Setup
