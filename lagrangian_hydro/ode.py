"""
Explicit time integrators for dS/dt = f(S).

Every integrator takes a state and a time step and returns the updated
state without modifying its input, so a rejected step is undone by simply
keeping the old vector.

The classic Runge-Kutta methods only need operator.mult(S). The averaged
RK2 scheme additionally uses the velocity and energy sub-solves of the
hydro operator: each stage evaluates the energy rate with the average of
the start and end velocities of the step, which makes the change in
kinetic energy cancel the change in internal energy exactly.
"""

from typing import Sequence

import numpy as np

from .errors import ConfigurationError


class ODESolver:
    """Base class; step() must be implemented by subclasses."""

    name = "base"

    def __init__(self):
        self.operator = None

    def init(self, operator):
        self.operator = operator
        return self

    def step(self, S: np.ndarray, dt: float) -> np.ndarray:
        raise NotImplementedError


class ExplicitRKSolver(ODESolver):
    """
    Explicit Runge-Kutta method given by a Butcher tableau.

    Args:
        a: Lower triangular stage coefficients, row s holds the weights of
            the first s + 1 stage derivatives used to form stage s + 1
        b: Final weights, one per stage
    """

    def __init__(self, a: Sequence[Sequence[float]], b: Sequence[float]):
        super().__init__()
        if len(a) != len(b) - 1:
            raise ConfigurationError("Butcher tableau needs len(a) == len(b) - 1")
        self.a = [list(row) for row in a]
        self.b = list(b)

    def step(self, S: np.ndarray, dt: float) -> np.ndarray:
        k = [self.operator.mult(S)]
        for row in self.a:
            stage = S.copy()
            for coeff, k_j in zip(row, k):
                if coeff != 0.0:
                    stage += dt * coeff * k_j
            k.append(self.operator.mult(stage))

        S_new = S.copy()
        for coeff, k_j in zip(self.b, k):
            if coeff != 0.0:
                S_new += dt * coeff * k_j
        return S_new


class ForwardEulerSolver(ExplicitRKSolver):
    name = "forward_euler"

    def __init__(self):
        super().__init__([], [1.0])


class RK2Solver(ExplicitRKSolver):
    """Explicit midpoint method."""

    name = "rk2"

    def __init__(self):
        super().__init__([[0.5]], [0.0, 1.0])


class RK3SSPSolver(ExplicitRKSolver):
    """Third order strong stability preserving method (Shu-Osher)."""

    name = "rk3_ssp"

    def __init__(self):
        super().__init__([[1.0], [0.25, 0.25]], [1.0 / 6.0, 1.0 / 6.0, 2.0 / 3.0])


class RK4Solver(ExplicitRKSolver):
    name = "rk4"

    def __init__(self):
        super().__init__([[0.5], [0.0, 0.5], [0.0, 0.0, 1.0]],
                         [1.0 / 6.0, 1.0 / 3.0, 1.0 / 3.0, 1.0 / 6.0])


class RK6Solver(ExplicitRKSolver):
    """Butcher's seven stage sixth order method."""

    name = "rk6"

    def __init__(self):
        super().__init__(
            [[1.0 / 3.0],
             [0.0, 2.0 / 3.0],
             [1.0 / 12.0, 1.0 / 3.0, -1.0 / 12.0],
             [-1.0 / 16.0, 9.0 / 8.0, -3.0 / 16.0, -3.0 / 8.0],
             [0.0, 9.0 / 8.0, -3.0 / 8.0, -3.0 / 4.0, 1.0 / 2.0],
             [9.0 / 44.0, -9.0 / 11.0, 63.0 / 44.0, 18.0 / 11.0, 0.0, -16.0 / 11.0]],
            [11.0 / 120.0, 0.0, 27.0 / 40.0, 27.0 / 40.0, -4.0 / 15.0, -4.0 / 15.0,
             11.0 / 120.0])


class RK2AvgSolver(ODESolver):
    """
    Energy conserving two stage scheme.

    Each stage solves for the acceleration, forms the averaged velocity
    V = v0 + dt/2 * dv, and uses V both as the mesh velocity and in the
    energy equation.
    """

    name = "rk2_avg"

    def _stage(self, S: np.ndarray, v0: np.ndarray, dt: float) -> np.ndarray:
        op = self.operator
        dv = op.solve_velocity(S)
        V = v0 + 0.5 * dt * dv
        de = op.solve_energy(S, V)
        return np.concatenate((V, dv, de))

    def step(self, S: np.ndarray, dt: float) -> np.ndarray:
        _, v0, _ = self.operator.blocks(S)
        v0 = v0.copy()

        S_half = S + 0.5 * dt * self._stage(S, v0, dt)
        return S + dt * self._stage(S_half, v0, dt)


ODE_SOLVERS = {
    1: ForwardEulerSolver,
    2: RK2Solver,
    3: RK3SSPSolver,
    4: RK4Solver,
    6: RK6Solver,
    7: RK2AvgSolver,
}


def make_ode_solver(code: int) -> ODESolver:
    """
    Create an integrator from its integer code.

    Codes: 1 forward Euler, 2 RK2 midpoint, 3 RK3-SSP, 4 RK4, 6 RK6,
    7 energy conserving averaged RK2.
    """
    try:
        return ODE_SOLVERS[int(code)]()
    except (KeyError, ValueError, TypeError):
        raise ConfigurationError(
            f"Unknown ODE solver code {code!r}; valid codes are {sorted(ODE_SOLVERS)}") from None
