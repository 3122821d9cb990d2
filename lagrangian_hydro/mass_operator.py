"""
Matrix-free mass operator with essential dof elimination.

The mass matrix of a Lagrangian scheme is constant in time: its weights at
the quadrature points are rho * det(J) * w = rho0 * det(J0) * w, which is the
invariant table held by QuadratureData. The operator is therefore set up
once and applied by partial assembly (gather, weight at the points,
scatter-add) without ever forming a global matrix.

Theory:
For a vector x the action is
    y_i = sum_z sum_q B[q, i] * W[z, q] * sum_j B[q, j] * x_j
where B holds the basis values at the quadrature points and W the invariant
weights. Pinned dofs are eliminated symmetrically: they are zeroed in a
private copy of the input and again in the output, which keeps the operator
symmetric positive semi-definite on the free subspace, as required by
conjugate gradients.
"""

import numpy as np
from numba import njit
from scipy.sparse.linalg import LinearOperator

from .comm import SerialComm
from .errors import ConfigurationError
from .fem.spaces import FiniteElementSpace
from .quadrature_data import QuadratureData


class MassOperator:
    """
    Partially assembled mass operator on an H1 or L2 space.

    Vector-valued spaces apply the same scalar mass to every component.

    Attributes:
        space (FiniteElementSpace): Space the operator acts on
        qdata (QuadratureData): Source of the invariant weights
        ess_dofs (np.ndarray): Pinned dofs of the full vector layout
        is_setup (bool): True once setup() has run
    """

    def __init__(self, space: FiniteElementSpace, qdata: QuadratureData, comm=None):
        self.space = space
        self.qdata = qdata
        self.comm = comm if comm is not None else SerialComm()

        self.ess_dofs = np.empty(0, dtype=np.int64)
        self._ess_total = 0

        self.is_setup = False
        self._B = None
        self._W = None
        self._scratch = None

    @property
    def size(self) -> int:
        return self.space.size

    def setup(self):
        """Precompute the basis table and bind the invariant weights."""
        self.space.require_finalized()
        if not self.qdata.is_initialized:
            raise ConfigurationError("MassOperator.setup() before the quadrature data is initialized")

        values, _ = self.space.basis.evaluate(self.qdata.rule.points)
        self._B = np.ascontiguousarray(values)
        self._W = self.qdata.rho0_detJ0_w
        self._scratch = np.zeros(self.size)
        self.is_setup = True

    def set_essential_dofs(self, dofs):
        """
        Record the pinned dofs.

        The total count is summed over all partitions; a later call with a
        different nonzero total is rejected.
        The mesh is never partitioned, so the scratch buffer keeps the full
        local vector layout and the total only guards consistency.

        Args:
            dofs: Indices into the full vector layout
        """
        dofs = np.unique(np.asarray(dofs, dtype=np.int64))
        if dofs.size and (dofs[0] < 0 or dofs[-1] >= self.size):
            raise ConfigurationError(
                f"Essential dof out of range [0, {self.size}): "
                f"{dofs[0]}..{dofs[-1]}")

        total = int(self.comm.allreduce_sum(int(dofs.size)))
        if self._ess_total and total and total != self._ess_total:
            raise ConfigurationError(
                "Essential dof count mismatch",
                {"recorded": self._ess_total, "requested": total})

        self.ess_dofs = dofs
        if total:
            self._ess_total = total

    def eliminate_rhs(self, b: np.ndarray):
        """Zero the pinned entries of a right-hand side in place."""
        if self.ess_dofs.size:
            b[self.ess_dofs] = 0.0

    def unconstrained_apply(self, x: np.ndarray) -> np.ndarray:
        """Mass action without elimination."""
        if not self.is_setup:
            raise ConfigurationError("MassOperator applied before setup()")

        x = np.ascontiguousarray(x, dtype=float)
        if x.shape != (self.size,):
            raise ConfigurationError(
                f"MassOperator expects a vector of size {self.size}, got {x.shape}")

        y = np.zeros(self.size)
        n = self.space.n_dofs
        for c in range(self.space.vdim):
            mass_pa_mult_numba(x[c * n:(c + 1) * n], y[c * n:(c + 1) * n],
                               self.space.zone_dofs, self._B, self._W)
        return y

    def apply(self, x: np.ndarray) -> np.ndarray:
        """
        Apply the mass operator with symmetric elimination.

        Args:
            x: Input vector (not modified)

        Returns:
            y = M x0 with x0 the input with pinned entries zeroed; the
            pinned entries of y are exactly zero
        """
        if not self.is_setup:
            raise ConfigurationError("MassOperator applied before setup()")

        scratch = self._scratch
        scratch[:] = x
        scratch[self.ess_dofs] = 0.0

        y = self.unconstrained_apply(scratch)
        y[self.ess_dofs] = 0.0
        return y

    mult = apply

    def as_linear_operator(self) -> LinearOperator:
        """Wrap apply() for the scipy iterative solvers."""
        return LinearOperator((self.size, self.size), matvec=self.apply, dtype=float)


@njit
def mass_pa_mult_numba(x: np.ndarray, y: np.ndarray, dofs: np.ndarray,
                       B: np.ndarray, W: np.ndarray):
    """
    Numba-accelerated partially assembled mass action.

    Args:
        x: Input scalar vector [n_dofs]
        y: Output scalar vector [n_dofs] (accumulated in place)
        dofs: Zone dof table [n_zones, n_local]
        B: Basis values at the quadrature points [nq, n_local]
        W: Quadrature weights times mass density [n_zones, nq]
    """
    n_zones, n_local = dofs.shape
    nq = B.shape[0]
    xq = np.empty(nq)

    for z in range(n_zones):
        for q in range(nq):
            s = 0.0
            for a in range(n_local):
                s += B[q, a] * x[dofs[z, a]]
            xq[q] = s * W[z, q]

        for a in range(n_local):
            s = 0.0
            for q in range(nq):
                s += B[q, a] * xq[q]
            y[dofs[z, a]] += s
