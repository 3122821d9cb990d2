"""
Driver for a high-order Lagrangian hydrodynamics run.

This module wires the pieces of the solver together: the Cartesian mesh,
the kinematic (H1) and thermodynamic (L2) spaces, the quadrature cache,
the hydro operator, the explicit integrator and the adaptive step
controller. It also owns the initial projection of the selected problem
profile and the conservation diagnostics.

Theory:
The Lagrangian form of the Euler equations moves the mesh with the fluid:
    rho dv/dt = div(sigma)          (momentum)
    rho de/dt = sigma : grad(v)     (internal energy)
    dx/dt = v                       (mesh motion)
Mass needs no equation: rho det(J) is constant at every quadrature point.
Total energy, the integral of rho (e + |v|^2 / 2), is conserved exactly by
the averaged RK2 integrator and up to the time discretization error by the
classic Runge-Kutta methods.
"""

from typing import Any, Dict, List, Optional

import numpy as np
import matplotlib.pyplot as plt
from pyro.util import msg

from .comm import get_comm
from .config import HydroConfig, load_parameters
from .errors import ConfigurationError
from .fem import CartesianMesh, H1Space, L2Space, tensor_rule
from .hydro import LagrangianHydroOperator
from .ode import make_ode_solver
from .problems import get_problem
from .quadrature_data import QuadratureData
from .step_controller import StepController


class Simulation:
    """
    Lagrangian hydrodynamics simulation.

    Attributes:
        config (HydroConfig): Run configuration
        problem (Problem): Initial condition profile
        mesh (CartesianMesh): Initial mesh
        h1 (H1Space): Kinematic space
        l2 (L2Space): Thermodynamic space
        qdata (QuadratureData): Quadrature point cache
        hydro (LagrangianHydroOperator): Right-hand side
        controller (StepController): Adaptive time stepping
        S (np.ndarray): State vector [x, v, e]
        t (float): Current time

        # Conservation tracking
        mass_initial (float): Initial total mass
        energy_initial (float): Initial total energy
    """

    def __init__(self, config: HydroConfig, comm=None):
        self.config = config.validate()
        self.problem = get_problem(config.problem)
        self.comm = comm if comm is not None else get_comm(config.use_mpi)

        # Core components (created in initialize())
        self.mesh = None
        self.h1 = None
        self.l2 = None
        self.qdata = None
        self.hydro = None
        self.controller = None

        self.S = None
        self.t = 0.0

        # Conservation tracking
        self.mass_initial = 0.0
        self.energy_initial = 0.0
        self.energy_history: List[Dict[str, float]] = []

    @classmethod
    def from_inputs(cls, inputs_file: Optional[str] = None,
                    overrides: Optional[List[str]] = None, comm=None) -> "Simulation":
        """Create a simulation from a parameter file and overrides."""
        rp = load_parameters(inputs_file, overrides)
        return cls(HydroConfig.from_runtime_parameters(rp), comm)

    def _log(self, text: str, kind: str = "bold"):
        if self.comm.rank == 0:
            getattr(msg, kind)(text)

    def initialize(self):
        """Build the discretization and the initial state."""
        config = self.config
        problem = self.problem

        lower, upper = problem.domain(config.dim)
        self.mesh = CartesianMesh(config.zones_per_dim, lower, upper)
        self.h1 = H1Space(self.mesh, config.order_v).finalize()
        self.l2 = L2Space(self.mesh, config.order_e).finalize()
        rule = tensor_rule(config.dim, config.quadrature_order)

        use_viscosity = (problem.use_viscosity if config.use_viscosity is None
                         else config.use_viscosity)
        use_vorticity = (problem.use_vorticity if config.use_vorticity is None
                         else config.use_vorticity)

        self.qdata = QuadratureData(self.h1, self.l2, rule, cfl=config.cfl,
                                    use_viscosity=use_viscosity,
                                    use_vorticity=use_vorticity, comm=self.comm)

        x0 = self.h1.initial_positions()
        self.qdata.initialize(x0, problem.rho0, problem.gamma(self.mesh.zone_centers()))

        ess_dofs = self.h1.normal_essential_dofs()
        v0 = self._interpolate_velocity()
        v0[ess_dofs] = 0.0

        self.hydro = LagrangianHydroOperator(
            self.h1, self.l2, self.qdata, ess_dofs,
            cg_rel_tol=config.cg_tol, cg_max_iter=config.cg_max_iter,
            source=problem.source if config.dim == 2 else None,
            acceleration=problem.acceleration, comm=self.comm)

        e0 = self._project_energy(x0)
        self.S = np.concatenate((x0, v0, e0))
        self.t = 0.0

        ode_solver = make_ode_solver(config.ode_solver).init(self.hydro)

        dt = config.dt_initial
        if dt <= 0.0:
            dt = self.hydro.time_step_estimate(self.S)
        if not np.isfinite(dt) or dt <= 0.0:
            raise ConfigurationError(
                "Initial state admits no finite time step", {"dt": dt})

        self.controller = StepController(
            self.hydro, ode_solver, config.t_final, dt,
            max_steps=config.max_steps, dt_shrink=config.dt_shrink,
            dt_growth_threshold=config.dt_growth_threshold,
            dt_growth_factor=config.dt_growth_factor, dt_floor=config.dt_floor,
            print_interval=config.print_interval, comm=self.comm)

        self.mass_initial = self.total_mass()
        self.energy_initial = self.hydro.total_energy(self.S)

        self._log(f"{problem.name}: {self.mesh.n_zones} zones, "
                  f"{self.h1.size} kinematic and {self.l2.size} thermodynamic dofs")
        self._log("Lagrangian hydrodynamics simulation initialized successfully", "success")

    def _interpolate_velocity(self) -> np.ndarray:
        values = self.problem.v0(self.h1.node_coordinates())
        return np.ascontiguousarray(values.T).ravel()

    def _project_energy(self, x0: np.ndarray) -> np.ndarray:
        """L2 projection of the initial energy onto the Bernstein basis."""
        qd = self.qdata
        n_local = self.l2.n_local

        if self.problem.point_energy:
            zone = self.mesh.locate(self.config.blast_position[:self.config.dim])
            e = np.zeros(self.l2.size)
            zone_mass = float(np.sum(qd.rho0_detJ0_w[zone]))
            # Bernstein polynomials sum to one, so a constant has equal dofs
            e[zone * n_local:(zone + 1) * n_local] = self.config.blast_energy / zone_mass
            return e

        coords = self.h1.evaluate(x0, qd.shape_h1)
        values = self.problem.e0(coords)
        det_J0 = np.linalg.det(self.h1.jacobians(x0, qd.grad_h1))
        psi = qd.shape_l2

        e = np.empty(self.l2.size)
        for z in range(self.mesh.n_zones):
            weights = det_J0[z] * qd.rule.weights
            local_mass = psi.T @ (weights[:, None] * psi)
            rhs = psi.T @ (weights * values[z])
            e[z * n_local:(z + 1) * n_local] = np.linalg.solve(local_mass, rhs)
        return e

    def total_mass(self) -> float:
        """Total mass integrated from the current density and geometry."""
        self.hydro.ensure_fresh(self.S)
        qd = self.qdata
        local = float(np.sum(qd.density * qd.det_J * qd.rule.weights[None, :]))
        return self.comm.allreduce_sum(local)

    def run(self) -> Dict[str, Any]:
        """
        Integrate to the final time.

        Returns:
            Diagnostics dictionary of the final state
        """
        if self.controller is None:
            self.initialize()

        self._log(f"running {self.problem.name} to t = {self.config.t_final}")

        def record(S, t, step):
            self.energy_history.append({
                'time': t,
                'internal': self.hydro.internal_energy(S),
                'kinetic': self.hydro.kinetic_energy(S),
            })

        self.S, self.t = self.controller.run(self.S, self.t, callback=record)

        diagnostics = self.get_diagnostics()
        conservation = diagnostics['conservation']
        self._log(f"finished at t = {self.t:.6f} after {self.controller.step} steps "
                  f"({self.controller.total_rejections} repeated), "
                  f"energy drift = {conservation['energy_error']:.3e}", "success")
        return diagnostics

    def check_conservation(self) -> Dict[str, float]:
        """Check conservation of mass and total energy."""
        mass = self.total_mass()
        internal = self.hydro.internal_energy(self.S)
        kinetic = self.hydro.kinetic_energy(self.S)
        energy = internal + kinetic

        return {
            'mass_error': abs(mass - self.mass_initial) / self.mass_initial,
            'energy_error': abs(energy - self.energy_initial) / max(abs(self.energy_initial), 1e-300),
            'mass_current': mass,
            'internal_energy': internal,
            'kinetic_energy': kinetic,
            'energy_current': energy,
        }

    def get_diagnostics(self) -> Dict[str, Any]:
        """Get diagnostic information."""
        _, _, e = self.hydro.blocks(self.S)
        return {
            'time': self.t,
            'steps': self.controller.step,
            'timestep': self.controller.dt,
            'conservation': self.check_conservation(),
            'timestepper': self.controller.get_diagnostics(),
            'e_norm': float(np.sqrt(self.comm.allreduce_sum(float(np.dot(e, e))))),
            'solver_iterations': dict(self.hydro.solver_iterations),
        }

    def zone_averages(self) -> Dict[str, np.ndarray]:
        """Per-zone centers, density, speed, energy and pressure."""
        x, v, e = self.hydro.blocks(self.S)
        pressure = self.hydro.pressure(self.S)
        qd = self.qdata

        centers = self.h1.evaluate(x, qd.shape_h1).mean(axis=1)
        speed = np.linalg.norm(self.h1.gather(v).mean(axis=1), axis=-1)
        return {
            'centers': centers,
            'density': qd.density.mean(axis=1),
            'speed': speed,
            'energy': self.l2.gather_scalar(e).mean(axis=1),
            'pressure': pressure.mean(axis=1),
        }

    def dovis(self):
        """Visualization of the zone averages."""
        plt.clf()

        fields = self.zone_averages()
        centers = fields['centers']

        fig, axes = plt.subplots(2, 2, figsize=(12, 8))
        fig.suptitle(f'{self.problem.name} t = {self.t:.4f}')

        panels = [('density', 'Density'), ('speed', 'Velocity magnitude'),
                  ('energy', 'Specific internal energy'), ('pressure', 'Pressure')]

        for ax, (key, title) in zip(axes.flat, panels):
            if self.config.dim == 1:
                order = np.argsort(centers[:, 0])
                ax.plot(centers[order, 0], fields[key][order], 'b-', linewidth=2)
                ax.set_xlabel('Position')
                ax.set_ylabel(title)
            else:
                img = ax.scatter(centers[:, 0], centers[:, 1], c=fields[key], s=12)
                fig.colorbar(img, ax=ax)
                ax.set_xlabel('x')
                ax.set_ylabel('y')
                ax.set_aspect('equal')
            ax.set_title(title)
            ax.grid(True, alpha=0.3)

        plt.tight_layout()
        plt.draw()
