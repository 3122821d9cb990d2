"""
Generalized force coupling the kinematic and thermodynamic spaces.

Theory:
For a zone z the local force matrix pairs every thermodynamic basis
function psi_i with every kinematic basis function phi_a in direction d:
    F_z[i, (d, a)] = sum_q psi_i(q) * (sigma(q) : grad(phi_a e_d)(q)) * det(J) w
                   = sum_q psi_i(q) * sum_g [sigma J^-T det(J) w](q)[d, g] * dphi_a/dxi_g(q)
The bracketed tensor is the stress_JinvT table of QuadratureData, so the
physical gradients are never formed. The global operator is the direct sum
of the zone matrices; it is applied zone by zone and never assembled.

With this sign convention
    M_v dv/dt = -F^T 1    (momentum)
    M_e de/dt =  F v      (internal energy)
and the total energy change F v . 1 - 1 . F v vanishes exactly.
"""

from typing import Optional

import numpy as np

from .errors import ConfigurationError
from .fem.quadrature import QuadratureRule
from .fem.spaces import H1Space, L2Space
from .quadrature_data import QuadratureData


class ForceAssembler:
    """
    Zone-wise force operator built from the quadrature cache.

    Args:
        h1: Kinematic space (vector valued)
        l2: Thermodynamic space (scalar)
        qdata: Quadrature cache providing stress_JinvT
        rule: Rule the caller integrates with; it must be the cache's rule
    """

    def __init__(self, h1: H1Space, l2: L2Space, qdata: QuadratureData,
                 rule: Optional[QuadratureRule] = None):
        if rule is not None and (rule.order != qdata.rule.order
                                 or rule.n_points != qdata.rule.n_points):
            raise ConfigurationError(
                "Force quadrature rule does not match the quadrature data rule",
                {"force_order": rule.order, "cache_order": qdata.rule.order})

        self.h1 = h1
        self.l2 = l2
        self.qdata = qdata
        self.rule = qdata.rule

    @property
    def shape(self):
        """Global (rows, columns) = (L2 size, H1 size)."""
        return (self.l2.size, self.h1.size)

    def assemble_local(self, zone: int) -> np.ndarray:
        """
        Local force matrix of one zone.

        Returns:
            Matrix [n_l2_local, dim * n_h1_local], columns ordered
            component-major like the H1 vector layout
        """
        qd = self.qdata
        local = np.einsum('qi,qvg,qag->iva', qd.shape_l2,
                          qd.stress_JinvT[zone], qd.grad_h1)
        return local.reshape(self.l2.n_local, self.h1.vdim * self.h1.n_local)

    def assemble_rhs_density(self, zone: int) -> np.ndarray:
        """Invariant mass density integrated against the L2 basis of a zone."""
        return self.qdata.shape_l2.T @ self.qdata.rho0_detJ0_w[zone]

    def mult(self, v: np.ndarray) -> np.ndarray:
        """
        Thermodynamic work F v.

        Args:
            v: Velocity vector on the H1 space

        Returns:
            Vector on the L2 space
        """
        qd = self.qdata
        grad_v = np.einsum('zav,qag->zqvg', self.h1.gather(v), qd.grad_h1)
        work_q = np.einsum('zqvg,zqvg->zq', qd.stress_JinvT, grad_v)
        local = np.einsum('zq,qi->zi', work_q, qd.shape_l2)
        return self.l2.scatter_add(local[:, :, None])

    def mult_transpose(self, w: np.ndarray) -> np.ndarray:
        """
        Kinematic force F^T w.

        Args:
            w: Vector on the L2 space

        Returns:
            Vector on the H1 space
        """
        qd = self.qdata
        w_q = np.einsum('zi,qi->zq', self.l2.gather_scalar(w), qd.shape_l2)
        local = np.einsum('zq,zqvg,qag->zav', w_q, qd.stress_JinvT, qd.grad_h1)
        return self.h1.scatter_add(local)
