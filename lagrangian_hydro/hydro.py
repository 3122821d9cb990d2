"""
Right-hand side of the semi-discrete Lagrangian hydrodynamics system.

The state vector S = [x, v, e] concatenates the H1 position, the H1
velocity and the L2 specific internal energy. Mult(S) returns
dS/dt = [v, dv/dt, de/dt] where

    M_v dv/dt = -F^T 1 (+ body force)
    M_e de/dt =  F v (+ energy source)

with F the force operator built from the quadrature cache at S. Both mass
systems are solved with conjugate gradients.

The operator is a two state machine over its quadrature cache. The cache is
stale on construction, after invalidate() and whenever a state differs from
the one the cache was computed for. A stale cache is refreshed on the next
use and becomes fresh.
"""

import enum
from typing import Callable, Optional

import numpy as np
from scipy.sparse.linalg import cg

from .comm import SerialComm
from .errors import ConfigurationError, LinearSolverError
from .fem.spaces import H1Space, L2Space
from .force import ForceAssembler
from .mass_operator import MassOperator
from .quadrature_data import QuadratureData


class CacheState(enum.Enum):
    STALE = "stale"
    FRESH = "fresh"


class LagrangianHydroOperator:
    """
    Explicit ODE right-hand side dS/dt = f(S).

    Args:
        h1: Kinematic space
        l2: Thermodynamic space
        qdata: Initialized quadrature cache
        ess_dofs: Pinned velocity dofs
        cg_rel_tol: Relative tolerance of the mass solves
        cg_max_iter: Iteration cap of the mass solves
        source: Optional energy source, a function of physical
            coordinates [nz, nq, dim] -> [nz, nq]
        acceleration: Optional body acceleration (gravity), a function of
            physical coordinates [nz, nq, dim] -> [nz, nq, dim]
        comm: Communicator for the diagnostics reductions

    Attributes:
        mass_v (MassOperator): Kinematic mass with boundary elimination
        mass_e (MassOperator): Thermodynamic mass
        force (ForceAssembler): Force operator on the current cache
        solver_iterations (dict): Iterations of the last velocity and
            energy solves
    """

    def __init__(self, h1: H1Space, l2: L2Space, qdata: QuadratureData,
                 ess_dofs=None, cg_rel_tol: float = 1e-8, cg_max_iter: int = 300,
                 source: Optional[Callable] = None,
                 acceleration: Optional[Callable] = None, comm=None):
        if not qdata.is_initialized:
            raise ConfigurationError("Hydro operator needs initialized quadrature data")

        self.h1 = h1
        self.l2 = l2
        self.qdata = qdata
        self.cg_rel_tol = cg_rel_tol
        self.cg_max_iter = cg_max_iter
        self.source = source
        self.acceleration = acceleration
        self.comm = comm if comm is not None else SerialComm()

        self.v_size = h1.size
        self.e_size = l2.size

        self.mass_v = MassOperator(h1, qdata, self.comm)
        self.mass_v.setup()
        self.mass_v.set_essential_dofs(
            np.empty(0, dtype=np.int64) if ess_dofs is None else ess_dofs)

        self.mass_e = MassOperator(l2, qdata, self.comm)
        self.mass_e.setup()

        self.force = ForceAssembler(h1, l2, qdata)

        self._mass_v_op = self.mass_v.as_linear_operator()
        self._mass_e_op = self.mass_e.as_linear_operator()

        self._cached_state = None
        self.solver_iterations = {"velocity": 0, "energy": 0}

    @property
    def size(self) -> int:
        """Length of the state vector."""
        return 2 * self.v_size + self.e_size

    @property
    def state(self) -> CacheState:
        if self.qdata.cache_valid and self._cached_state is not None:
            return CacheState.FRESH
        return CacheState.STALE

    def blocks(self, S: np.ndarray):
        """Views of the position, velocity and energy blocks of a state."""
        if S.shape != (self.size,):
            raise ConfigurationError(
                f"State vector of size {self.size} expected, got {S.shape}")
        n = self.v_size
        return S[:n], S[n:2 * n], S[2 * n:]

    def invalidate(self):
        """Discard the cache; the next use recomputes it."""
        self.qdata.invalidate()
        self._cached_state = None

    def ensure_fresh(self, S: np.ndarray):
        """Refresh the quadrature cache for S unless it is fresh for S already."""
        if self._cached_state is None or not np.array_equal(S, self._cached_state):
            self.qdata.invalidate()
        if not self.qdata.cache_valid:
            x, v, e = self.blocks(S)
            self.qdata.ensure_fresh(x, v, e)
            self._cached_state = S.copy()

    def _solve(self, name: str, op, rhs: np.ndarray) -> np.ndarray:
        iterations = [0]

        def count(_):
            iterations[0] += 1

        sol, info = cg(op, rhs, x0=np.zeros_like(rhs), rtol=self.cg_rel_tol,
                       atol=0.0, maxiter=self.cg_max_iter, callback=count)
        self.solver_iterations[name] = iterations[0]

        if info != 0:
            rhs_norm = np.linalg.norm(rhs)
            residual = np.linalg.norm(rhs - op.matvec(sol))
            raise LinearSolverError(
                f"{name} mass solve did not converge",
                {"solve": name, "iterations": iterations[0], "info": info,
                 "relative_residual": residual / rhs_norm if rhs_norm > 0 else residual})
        return sol

    def _source_rhs(self, x: np.ndarray) -> np.ndarray:
        qd = self.qdata
        coords = self.h1.evaluate(x, qd.shape_h1)
        values = np.asarray(self.source(coords), dtype=float)
        weighted = values * qd.det_J * qd.rule.weights[None, :]
        return np.einsum('zq,qi->zi', weighted, qd.shape_l2).ravel()

    def _body_force_rhs(self, x: np.ndarray) -> np.ndarray:
        # rho det(J) w is the invariant rho0 det(J0) w
        qd = self.qdata
        coords = self.h1.evaluate(x, qd.shape_h1)
        g = np.asarray(self.acceleration(coords), dtype=float)
        local = np.einsum('zq,zqc,qa->zac', qd.rho0_detJ0_w, g, qd.shape_h1)
        return self.h1.scatter_add(local)

    def solve_velocity(self, S: np.ndarray) -> np.ndarray:
        """Acceleration dv/dt at S, with pinned components zero."""
        self.ensure_fresh(S)
        rhs = -self.force.mult_transpose(np.ones(self.e_size))
        if self.acceleration is not None:
            x, _, _ = self.blocks(S)
            rhs += self._body_force_rhs(x)
        self.mass_v.eliminate_rhs(rhs)
        return self._solve("velocity", self._mass_v_op, rhs)

    def solve_energy(self, S: np.ndarray, v: Optional[np.ndarray] = None) -> np.ndarray:
        """
        Energy rate de/dt at S.

        Args:
            S: State providing the stress
            v: Velocity doing the work (default: the velocity block of S)
        """
        self.ensure_fresh(S)
        x, v_state, _ = self.blocks(S)
        rhs = self.force.mult(v_state if v is None else v)
        if self.source is not None:
            rhs += self._source_rhs(x)
        return self._solve("energy", self._mass_e_op, rhs)

    def mult(self, S: np.ndarray) -> np.ndarray:
        """
        Evaluate dS/dt.

        Args:
            S: State vector [x, v, e]

        Returns:
            Derivative [v, dv/dt, de/dt]
        """
        _, v, _ = self.blocks(S)
        dv = self.solve_velocity(S)
        de = self.solve_energy(S)
        return np.concatenate((v, dv, de))

    def time_step_estimate(self, S: Optional[np.ndarray] = None) -> float:
        """
        CFL time step at S (or at the state the cache is fresh for).

        Raises:
            ConfigurationError: if no state is given and the cache is stale
        """
        if S is not None:
            self.ensure_fresh(S)
        return self.qdata.time_step_estimate()

    def internal_energy(self, S: np.ndarray) -> float:
        """Total internal energy, the integral of rho e."""
        _, _, e = self.blocks(S)
        local = float(np.sum(self.mass_e.unconstrained_apply(e)))
        return self.comm.allreduce_sum(local)

    def kinetic_energy(self, S: np.ndarray) -> float:
        """Total kinetic energy, 0.5 v . M_v v."""
        _, v, _ = self.blocks(S)
        local = 0.5 * float(np.dot(v, self.mass_v.unconstrained_apply(v)))
        return self.comm.allreduce_sum(local)

    def total_energy(self, S: np.ndarray) -> float:
        return self.internal_energy(S) + self.kinetic_energy(S)

    def compute_density(self, S: np.ndarray) -> np.ndarray:
        """
        L2 projection of the density onto the thermodynamic basis.

        The right-hand side is the invariant mass per zone, the mass matrix
        uses the current Jacobian determinants.

        Returns:
            Density vector on the L2 space
        """
        self.ensure_fresh(S)
        qd = self.qdata
        psi = qd.shape_l2
        density = np.empty(self.e_size)
        n_local = self.l2.n_local

        for z in range(self.l2.mesh.n_zones):
            weights = qd.det_J[z] * qd.rule.weights
            local_mass = psi.T @ (weights[:, None] * psi)
            rhs = self.force.assemble_rhs_density(z)
            density[z * n_local:(z + 1) * n_local] = np.linalg.solve(local_mass, rhs)

        return density

    def pressure(self, S: np.ndarray) -> np.ndarray:
        """Pressure at the quadrature points [nz, nq]."""
        self.ensure_fresh(S)
        return self.qdata.pressure.copy()
