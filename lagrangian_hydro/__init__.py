"""
A high-order Lagrangian hydrodynamics solver for the compressible Euler
equations on moving, deforming meshes.

Key features:
- Continuous kinematic and discontinuous thermodynamic finite element spaces
- Pointwise mass conservation through an invariant quadrature cache
- Von Neumann-Richtmyer artificial viscosity driven by compression
- Matrix-free mass and force operators
- Explicit Runge-Kutta integration with an energy conserving RK2 variant
- Adaptive time stepping with step rejection and rollback

"""

from .errors import (ConfigurationError, HydroError, LinearSolverError,
                     TimeStepCollapseError)
from .quadrature_data import QuadratureData
from .mass_operator import MassOperator
from .force import ForceAssembler
from .hydro import LagrangianHydroOperator
from .ode import make_ode_solver
from .step_controller import StepController
from .config import HydroConfig, load_parameters
from .simulation import Simulation

__all__ = [
    "ConfigurationError",
    "ForceAssembler",
    "HydroConfig",
    "HydroError",
    "LagrangianHydroOperator",
    "LinearSolverError",
    "MassOperator",
    "QuadratureData",
    "Simulation",
    "StepController",
    "TimeStepCollapseError",
    "load_parameters",
    "make_ode_solver",
]
