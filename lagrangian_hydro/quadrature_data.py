"""
Quadrature point data for the Lagrangian hydrodynamics operator.

This module implements the per-zone, per-quadrature-point cache that feeds
the force and mass operators. It encodes pointwise mass conservation and
the artificial viscosity, and it produces the CFL time step estimate.

Theory:
Mass in a Lagrangian zone never changes, and this holds pointwise at the
quadrature points: rho(t) * det(J(t)) = rho0 * det(J0). The product
rho0 * det(J0) * w is therefore stored once, and the current density is
recovered algebraically as rho = rho0DetJ0w / (det(J) * w) instead of
being integrated in time.

The stress at a point is sigma = -p I + mu_visc * sym(grad v), where the
viscosity coefficient follows a Von Neumann-Richtmyer construction:
    mu_visc = 2 rho h^2 max(-mu, 0) + 0.5 rho h c_s (1 - psi(mu))
with mu the smallest eigenvalue of sym(grad v) (compression when mu < 0),
h the zone size measured along the direction of maximal compression, and
psi a smooth step that switches the linear term off away from compression.
"""

import warnings
from typing import Callable, Union

import numpy as np

from .comm import SerialComm
from .errors import ConfigurationError
from .fem.quadrature import QuadratureRule
from .fem.spaces import H1Space, L2Space


def smooth_step_01(x: np.ndarray, eps: float) -> np.ndarray:
    """
    Smooth step from 0 (x <= -eps) to 1 (x >= eps).

    Args:
        x: Input values
        eps: Half width of the transition

    Returns:
        Step values in [0, 1]
    """
    y = np.clip((x + eps) / (2.0 * eps), 0.0, 1.0)
    return (3.0 - 2.0 * y) * y * y


def vorticity_coefficient(grad_v: np.ndarray) -> np.ndarray:
    """
    Damping factor |div v| / |grad v|_F of the linear viscosity term.

    The factor vanishes for a pure rotation. Points with a zero velocity
    gradient get 1.

    Args:
        grad_v: Physical velocity gradients [..., dim, dim]

    Returns:
        Coefficients [...]
    """
    grad_norm = np.linalg.norm(grad_v, axis=(-2, -1))
    div_v = np.abs(np.trace(grad_v, axis1=-2, axis2=-1))
    nonzero = grad_norm > 0.0
    return np.where(nonzero, div_v / np.where(nonzero, grad_norm, 1.0), 1.0)


class QuadratureData:
    """
    Lazily refreshed quadrature point cache.

    The invariant arrays (rho0_detJ0_w, element_size, inverse initial
    Jacobians) are computed once by initialize(). The stress and the
    characteristic speed are recomputed by refresh() from the current
    position, velocity and energy fields.

    Attributes:
        rule (QuadratureRule): Integration rule shared by every operator
        cfl (float): CFL number applied to the time step estimate
        use_viscosity (bool): Add artificial viscosity to the stress
        use_vorticity (bool): Damp the linear viscosity term in vortical flow
        rho0_detJ0_w (np.ndarray): rho0 * det(J0) * w, read only [nz, nq]
        element_size (np.ndarray): Initial zone length scale [nz]
        gamma (np.ndarray): Ideal gas ratio of specific heats per zone [nz]
        stress (np.ndarray): Stress tensor [nz, nq, dim, dim]
        stress_JinvT (np.ndarray): stress * J^-T * det(J) * w [nz, nq, dim, dim]
        characteristic_speed (np.ndarray): Sound speed plus viscous
            correction, scaled by the current deformation [nz, nq]
        density, pressure, sound_speed, viscosity (np.ndarray): Pointwise
            values from the last refresh [nz, nq]
        cache_valid (bool): True when the cache matches the current state
        refresh_count (int): Number of refreshes performed
    """

    EPS = 1e-12

    def __init__(self, h1: H1Space, l2: L2Space, rule: QuadratureRule,
                 cfl: float = 0.5, use_viscosity: bool = True,
                 use_vorticity: bool = False, comm=None):
        h1.require_finalized()
        l2.require_finalized()
        if rule.dim != h1.mesh.dim:
            raise ConfigurationError(
                f"Quadrature rule dimension {rule.dim} does not match mesh "
                f"dimension {h1.mesh.dim}")

        self.h1 = h1
        self.l2 = l2
        self.rule = rule
        self.cfl = cfl
        self.use_viscosity = use_viscosity
        self.use_vorticity = use_vorticity
        self.comm = comm if comm is not None else SerialComm()

        self.dim = h1.mesh.dim
        self.n_zones = h1.mesh.n_zones
        self.n_points = rule.n_points

        # Basis tables at the quadrature points
        self.shape_h1, self.grad_h1 = h1.basis.evaluate(rule.points)
        self.shape_l2, _ = l2.basis.evaluate(rule.points)

        # Invariants, set by initialize()
        self.rho0_detJ0_w = None
        self.Jac0inv = None
        self.element_size = None
        self.gamma = None

        shape = (self.n_zones, self.n_points)
        self.stress = np.zeros(shape + (self.dim, self.dim))
        self.stress_JinvT = np.zeros(shape + (self.dim, self.dim))
        self.characteristic_speed = np.zeros(shape)
        self.density = np.zeros(shape)
        self.pressure = np.zeros(shape)
        self.sound_speed = np.zeros(shape)
        self.viscosity = np.zeros(shape)
        self.det_J = np.zeros(shape)

        self.cache_valid = False
        self.refresh_count = 0

    @property
    def is_initialized(self) -> bool:
        return self.rho0_detJ0_w is not None

    def initialize(self, x0: np.ndarray,
                   rho0: Union[Callable, np.ndarray],
                   gamma: Union[float, np.ndarray]):
        """
        Compute the invariant quadrature data from the initial mesh.

        Args:
            x0: Initial position vector on the H1 space
            rho0: Initial density, either a function of physical coordinates
                [nz, nq, dim] -> [nz, nq] or pointwise values [nz, nq]
            gamma: Ratio of specific heats, scalar or per zone [nz]
        """
        J0 = self.h1.jacobians(x0, self.grad_h1)
        det_J0 = np.linalg.det(J0)
        if np.any(det_J0 <= 0.0):
            raise ConfigurationError(
                f"Inverted initial zone: min det(J0) = {np.min(det_J0)}")

        if callable(rho0):
            coords = self.h1.evaluate(x0, self.shape_h1)
            rho_q = np.asarray(rho0(coords), dtype=float)
        else:
            rho_q = np.asarray(rho0, dtype=float)
        rho_q = np.broadcast_to(rho_q, det_J0.shape)

        rho0_detJ0_w = rho_q * det_J0 * self.rule.weights[None, :]
        rho0_detJ0_w.setflags(write=False)
        self.rho0_detJ0_w = rho0_detJ0_w

        self.Jac0inv = np.linalg.inv(J0)

        # Smallest singular value of J0 per zone, per unit of kinematic order
        sv_min = np.linalg.svd(J0, compute_uv=False)[..., -1]
        element_size = sv_min.min(axis=1) / self.h1.order
        element_size.setflags(write=False)
        self.element_size = element_size

        self.gamma = np.broadcast_to(np.asarray(gamma, dtype=float),
                                     (self.n_zones,)).copy()
        self.cache_valid = False

    def invalidate(self):
        """Mark the cache stale; the next ensure_fresh() recomputes it."""
        self.cache_valid = False

    def ensure_fresh(self, x: np.ndarray, v: np.ndarray, e: np.ndarray):
        """Refresh the cache from the given fields unless it is already valid."""
        if not self.cache_valid:
            self.refresh(x, v, e)

    def refresh(self, x: np.ndarray, v: np.ndarray, e: np.ndarray):
        """
        Recompute stress and characteristic speed at every quadrature point.

        The invariants (rho0_detJ0_w, element_size) are left untouched.

        Args:
            x: Current position vector on the H1 space
            v: Current velocity vector on the H1 space
            e: Current specific internal energy on the L2 space
        """
        if not self.is_initialized:
            raise ConfigurationError("QuadratureData.refresh() before initialize()")

        dim = self.dim
        identity = np.eye(dim)
        weights = self.rule.weights[None, :]

        J = self.h1.jacobians(x, self.grad_h1)
        det_J = np.linalg.det(J)
        inverted = det_J <= 0.0
        if np.any(inverted):
            # The time step estimate of these zones is forced to zero below
            det_J = np.where(inverted, 1.0, det_J)
            J = np.where(inverted[..., None, None], identity, J)
        Jinv = np.linalg.inv(J)

        rho = self.rho0_detJ0_w / (det_J * weights)
        e_q = np.einsum('za,qa->zq', self.l2.gather_scalar(e), self.shape_l2)
        min_e = float(np.min(e_q))
        if min_e < 0.0:
            warnings.warn(f"Non-positive internal energy detected: min = {min_e}")
        e_q = np.maximum(e_q, 0.0)

        gamma = self.gamma[:, None]
        pressure = (gamma - 1.0) * rho * e_q
        sound_speed = np.sqrt(gamma * (gamma - 1.0) * e_q)

        stress = -pressure[..., None, None] * identity

        # Current length scale from the smallest singular value of J
        h_min = np.linalg.svd(J, compute_uv=False)[..., -1] / self.h1.order

        visc = np.zeros_like(rho)
        if self.use_viscosity:
            grad_ref = np.einsum('zac,qag->zqcg', self.h1.gather(v), self.grad_h1)
            grad_v = grad_ref @ Jinv
            sgrad_v = 0.5 * (grad_v + np.swapaxes(grad_v, -1, -2))

            # Eigenvalues in ascending order: the first one measures
            # compression, its eigenvector is the compression direction
            eig_val, eig_vec = np.linalg.eigh(sgrad_v)
            mu = eig_val[..., 0]
            compr_dir = eig_vec[..., :, 0]

            # Stretch of the compression direction since t = 0
            ph_dir = np.einsum('zqij,zqj->zqi', J @ self.Jac0inv, compr_dir)
            h = self.element_size[:, None] * np.linalg.norm(ph_dir, axis=-1)

            # Quadratic term only under compression (mu < 0)
            visc = 2.0 * rho * h * h * np.maximum(-mu, 0.0)

            vorticity_coeff = 1.0
            if self.use_vorticity:
                vorticity_coeff = vorticity_coefficient(grad_v)

            eps = self.EPS
            visc = visc + (0.5 * rho * h * sound_speed * vorticity_coeff
                           * (1.0 - smooth_step_01(mu + 2.0 * eps, eps)))
            stress = stress + visc[..., None, None] * sgrad_v

        speed = sound_speed + 2.5 * visc / (rho * h_min)
        characteristic_speed = speed * self.element_size[:, None] / h_min
        characteristic_speed[inverted.any(axis=1)] = np.inf

        stress_JinvT = (stress @ np.swapaxes(Jinv, -1, -2)) * (det_J * weights)[..., None, None]
        stress_JinvT[inverted.any(axis=1)] = 0.0

        self.stress[...] = stress
        self.stress_JinvT[...] = stress_JinvT
        self.characteristic_speed[...] = characteristic_speed
        self.density[...] = rho
        self.pressure[...] = pressure
        self.sound_speed[...] = sound_speed
        self.viscosity[...] = visc
        self.det_J[...] = det_J

        self.refresh_count += 1
        self.cache_valid = True

    def time_step_estimate(self) -> float:
        """
        Compute the global CFL time step for the current cache content.

        dt = cfl * min over all points of element_size / characteristic_speed,
        reduced with a collective minimum over all partitions.

        Returns:
            Time step estimate (0 if a zone is inverted, inf at rest)
        """
        if not self.cache_valid:
            raise ConfigurationError(
                "Time step estimate requested from a stale quadrature cache")

        with np.errstate(divide='ignore'):
            local = self.element_size[:, None] / self.characteristic_speed
        dt_local = float(np.min(local)) * self.cfl if local.size else np.inf

        return self.comm.allreduce_min(dt_local)
