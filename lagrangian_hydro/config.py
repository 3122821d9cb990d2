"""
Run configuration.

Parameters live in pyro2 RuntimeParameters files. The package ships its
defaults in the `_defaults` file next to this module; a user inputs file
and `section.key=value` overrides are layered on top of it. HydroConfig is
the typed, validated view of those parameters that the driver consumes.
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np
from pyro.util.runparams import RuntimeParameters

from .errors import ConfigurationError
from .fem.quadrature import default_order
from .problems import get_problem
from .ode import ODE_SOLVERS

DEFAULTS_FILE = os.path.join(os.path.dirname(os.path.abspath(__file__)), "_defaults")


@dataclass
class HydroConfig:
    """Configuration of a Lagrangian hydrodynamics run."""
    problem: str = "sedov"
    dim: int = 2
    zones_per_dim: Tuple[int, ...] = (8, 8)
    t_final: float = 0.6
    max_steps: int = -1
    ode_solver: int = 4
    cfl: float = 0.5
    dt_initial: float = -1.0  # <= 0: start from the CFL estimate
    print_interval: int = 5
    use_mpi: bool = False

    order_v: int = 2
    order_e: int = 1
    order_q: int = -1  # < 0: 3 * order_v + order_e - 1
    use_viscosity: Optional[bool] = None  # None: problem default
    use_vorticity: Optional[bool] = None

    cg_tol: float = 1e-8
    cg_max_iter: int = 300
    dt_shrink: float = 0.85
    dt_growth_threshold: float = 1.25
    dt_growth_factor: float = 1.02
    dt_floor: float = float(np.finfo(float).eps)

    blast_energy: float = 0.25
    blast_position: Tuple[float, ...] = field(default=(0.0, 0.0, 0.0))

    @property
    def quadrature_order(self) -> int:
        if self.order_q >= 0:
            return self.order_q
        return default_order(self.order_v, self.order_e)

    def validate(self) -> "HydroConfig":
        """Raise ConfigurationError on values the solver cannot run with."""
        problem = get_problem(self.problem)

        errors: List[str] = []
        if self.dim not in (1, 2, 3):
            errors.append(f"dim must be 1, 2 or 3, got {self.dim}")
        elif self.dim not in problem.dims:
            errors.append(f"problem {problem.name} supports dim {problem.dims}, got {self.dim}")
        if len(self.zones_per_dim) != self.dim or min(self.zones_per_dim) < 1:
            errors.append(f"zones_per_dim must hold {self.dim} positive counts, "
                          f"got {self.zones_per_dim}")
        if self.t_final <= 0.0:
            errors.append(f"t_final must be positive, got {self.t_final}")
        if self.ode_solver not in ODE_SOLVERS:
            errors.append(f"ode_solver must be one of {sorted(ODE_SOLVERS)}, got {self.ode_solver}")
        if self.cfl <= 0.0:
            errors.append(f"cfl must be positive, got {self.cfl}")
        if self.order_v < 1:
            errors.append(f"order_v must be at least 1, got {self.order_v}")
        if self.order_e < 0:
            errors.append(f"order_e must be non-negative, got {self.order_e}")
        if self.cg_tol <= 0.0 or self.cg_max_iter < 1:
            errors.append(f"cg_tol and cg_max_iter must be positive, got "
                          f"{self.cg_tol}, {self.cg_max_iter}")
        if not 0.0 < self.dt_shrink < 1.0:
            errors.append(f"dt_shrink must lie in (0, 1), got {self.dt_shrink}")
        if self.dt_growth_factor < 1.0:
            errors.append(f"dt_growth_factor must be at least 1, got {self.dt_growth_factor}")
        if self.dt_growth_threshold < 1.0:
            errors.append(f"dt_growth_threshold must be at least 1, got {self.dt_growth_threshold}")
        if self.dt_floor <= 0.0:
            errors.append(f"dt_floor must be positive, got {self.dt_floor}")

        if errors:
            raise ConfigurationError("Invalid configuration: " + "; ".join(errors))
        return self

    @classmethod
    def from_runtime_parameters(cls, rp: RuntimeParameters) -> "HydroConfig":
        """
        Build a validated configuration from runtime parameters.

        Args:
            rp: RuntimeParameters holding the `_defaults` sections

        Returns:
            HydroConfig
        """
        dim = rp.get_param("driver.dim")
        zones = (rp.get_param("mesh.nx"), rp.get_param("mesh.ny"),
                 rp.get_param("mesh.nz"))[:dim]

        def tristate(key):
            value = rp.get_param(key)
            return None if value < 0 else bool(value)

        config = cls(
            problem=str(rp.get_param("driver.problem")),
            dim=dim,
            zones_per_dim=tuple(zones),
            t_final=rp.get_param("driver.t_final"),
            max_steps=rp.get_param("driver.max_steps"),
            ode_solver=rp.get_param("driver.ode_solver"),
            cfl=rp.get_param("driver.cfl"),
            dt_initial=rp.get_param("driver.dt_initial"),
            print_interval=rp.get_param("driver.print_interval"),
            use_mpi=bool(rp.get_param("driver.use_mpi")),
            order_v=rp.get_param("hydro.order_v"),
            order_e=rp.get_param("hydro.order_e"),
            order_q=rp.get_param("hydro.order_q"),
            use_viscosity=tristate("hydro.use_viscosity"),
            use_vorticity=tristate("hydro.use_vorticity"),
            cg_tol=rp.get_param("solver.cg_tol"),
            cg_max_iter=rp.get_param("solver.cg_max_iter"),
            dt_shrink=rp.get_param("solver.dt_shrink"),
            dt_growth_threshold=rp.get_param("solver.dt_growth_threshold"),
            dt_growth_factor=rp.get_param("solver.dt_growth_factor"),
            dt_floor=rp.get_param("solver.dt_floor"),
            blast_energy=rp.get_param("sedov.blast_energy"),
            blast_position=(rp.get_param("sedov.blast_x"),
                            rp.get_param("sedov.blast_y"),
                            rp.get_param("sedov.blast_z")),
        )
        return config.validate()


def load_parameters(inputs_file: Optional[str] = None,
                    overrides: Optional[List[str]] = None) -> RuntimeParameters:
    """
    Read the package defaults, then an optional inputs file and overrides.

    Args:
        inputs_file: pyro-style parameter file; it may only set known keys
        overrides: Strings of the form "section.key=value"

    Returns:
        RuntimeParameters
    """
    rp = RuntimeParameters()
    rp.load_params(DEFAULTS_FILE)

    if inputs_file is not None:
        rp.load_params(inputs_file, no_new=True)

    if overrides:
        rp.command_line_params(overrides)

    return rp
