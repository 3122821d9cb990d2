import numpy as np
import pytest

from lagrangian_hydro.errors import ConfigurationError
from lagrangian_hydro.ode import (ForwardEulerSolver, RK2AvgSolver, RK2Solver,
                                  RK3SSPSolver, RK4Solver, RK6Solver,
                                  make_ode_solver)


class Decay:
    """dS/dt = -S"""

    def __init__(self):
        self.calls = 0

    def mult(self, S):
        self.calls += 1
        return -S


class Oscillator:
    """
    One-dof stand-in for the hydro system: dx = v, dv = -x, de = x V.

    The energy rate uses the velocity it is handed, like the real operator,
    so 0.5 v^2 + e is conserved by the averaged scheme.
    """

    def blocks(self, S):
        return S[:1], S[1:2], S[2:]

    def solve_velocity(self, S):
        return -S[:1].copy()

    def solve_energy(self, S, v=None):
        x, v_state, _ = self.blocks(S)
        return x * (v_state if v is None else v)


@pytest.mark.parametrize("solver, stages, coefficients", [
    (ForwardEulerSolver, 1, [1, -1]),
    (RK2Solver, 2, [1, -1, 1 / 2]),
    (RK3SSPSolver, 3, [1, -1, 1 / 2, -1 / 6]),
    (RK4Solver, 4, [1, -1, 1 / 2, -1 / 6, 1 / 24]),
    (RK6Solver, 7, [1, -1, 1 / 2, -1 / 6, 1 / 24, -1 / 120, 1 / 720, 1 / 2160]),
])
def test_stability_polynomial(solver, stages, coefficients):
    op = Decay()
    ode = solver().init(op)
    dt = 0.1
    S = np.array([1.0, 2.0])

    S_new = ode.step(S, dt)

    growth = sum(c * dt**k for k, c in enumerate(coefficients))
    assert np.allclose(S_new, growth * S, rtol=1e-13)
    assert op.calls == stages


def test_step_leaves_input_untouched():
    S = np.array([1.0, 2.0])
    RK4Solver().init(Decay()).step(S, 0.5)
    assert np.array_equal(S, [1.0, 2.0])


def test_averaged_rk2_conserves_energy():
    ode = RK2AvgSolver().init(Oscillator())
    S = np.array([1.0, 0.0, 3.0])

    def energy(S):
        return 0.5 * S[1]**2 + S[2]

    for _ in range(50):
        S = ode.step(S, 0.2)

    assert energy(S) == pytest.approx(3.0, rel=1e-13)


def test_solver_codes():
    assert isinstance(make_ode_solver(1), ForwardEulerSolver)
    assert isinstance(make_ode_solver(4), RK4Solver)
    assert isinstance(make_ode_solver("7"), RK2AvgSolver)

    assert isinstance(make_ode_solver(6), RK6Solver)

    for code in (0, 5, 8, "rk4", None):
        with pytest.raises(ConfigurationError):
            make_ode_solver(code)
