"""
Finite element spaces on a Cartesian mesh.

H1Space holds the continuous kinematic fields (position, velocity). Its
vector layout is component-major: all x components, then all y
components, and so on. L2Space holds the discontinuous thermodynamic field
(specific internal energy); its dofs are never shared between zones.

Both spaces build their zone-to-dof tables in finalize(). Operators that
depend on these tables refuse to set up on an unfinalized space.
"""

import numpy as np
from numba import njit

from ..errors import ConfigurationError
from .basis import TensorBasis
from .mesh import CartesianMesh


class FiniteElementSpace:
    """
    Common zone/dof bookkeeping for the H1 and L2 spaces.

    Attributes:
        mesh (CartesianMesh): Underlying mesh
        basis (TensorBasis): Reference basis shared by all zones
        vdim (int): Number of vector components
        n_dofs (int): Number of scalar dofs
        zone_dofs (np.ndarray): Scalar dofs of every zone [n_zones, n_local]
    """

    def __init__(self, mesh: CartesianMesh, basis: TensorBasis, vdim: int = 1):
        self.mesh = mesh
        self.basis = basis
        self.vdim = vdim
        self.n_dofs = 0
        self.zone_dofs = None
        self.is_finalized = False

    @property
    def order(self) -> int:
        return self.basis.order

    @property
    def n_local(self) -> int:
        return self.basis.n_dofs

    @property
    def size(self) -> int:
        """Length of a vector on this space."""
        return self.vdim * self.n_dofs

    def finalize(self):
        raise NotImplementedError

    def require_finalized(self):
        if not self.is_finalized:
            raise ConfigurationError(
                f"{type(self).__name__} used before finalize()")

    def gather(self, vec: np.ndarray) -> np.ndarray:
        """
        Restrict a global vector to the zones.

        Args:
            vec: Global vector [size]

        Returns:
            Zone-local values [n_zones, n_local, vdim]
        """
        self.require_finalized()
        comps = vec.reshape(self.vdim, self.n_dofs)
        return np.moveaxis(comps[:, self.zone_dofs], 0, -1)

    def scatter_add(self, local: np.ndarray, out: np.ndarray = None) -> np.ndarray:
        """
        Sum zone-local contributions into a global vector.

        Args:
            local: Zone-local values [n_zones, n_local, vdim]
            out: Optional global vector to accumulate into

        Returns:
            Global vector [size]
        """
        self.require_finalized()
        if out is None:
            out = np.zeros(self.size)
        comps = out.reshape(self.vdim, self.n_dofs)
        for c in range(self.vdim):
            scatter_add_numba(comps[c], self.zone_dofs,
                              np.ascontiguousarray(local[:, :, c]))
        return out

    def evaluate(self, vec: np.ndarray, values: np.ndarray) -> np.ndarray:
        """
        Evaluate a field at reference points in every zone.

        Args:
            vec: Global vector [size]
            values: Basis values at the points [nq, n_local]

        Returns:
            Field values [n_zones, nq, vdim]
        """
        return np.einsum('zac,qa->zqc', self.gather(vec), values)


class H1Space(FiniteElementSpace):
    """
    Continuous Gauss-Lobatto Lagrange space, possibly vector valued.

    Global scalar dofs are the points of a tensor lattice with
    zones_per_dim * order + 1 points along each axis.

    Args:
        mesh: Cartesian mesh
        order: Polynomial order (>= 1)
        vdim: Number of components (default: mesh dimension)
    """

    def __init__(self, mesh: CartesianMesh, order: int, vdim: int = None):
        if order < 1:
            raise ConfigurationError(f"H1 order must be at least 1, got {order}")
        super().__init__(mesh, TensorBasis(order, mesh.dim, 'lobatto'),
                         mesh.dim if vdim is None else vdim)
        self.lattice_shape = tuple(n * order + 1 for n in mesh.zones_per_dim)
        self.n_dofs = int(np.prod(self.lattice_shape))
        self._strides = np.cumprod((1,) + self.lattice_shape[:-1])

    def finalize(self) -> "H1Space":
        p = self.order
        lattice = (self.mesh.zone_index[:, None, :] * p
                   + self.basis.multi_index[None, :, :])
        self.zone_dofs = np.ascontiguousarray(
            (lattice * self._strides).sum(axis=2), dtype=np.int64)
        self.is_finalized = True
        return self

    def lattice_index(self) -> np.ndarray:
        """Lattice multi-index of every scalar dof [n_dofs, dim]."""
        grids = np.meshgrid(*[np.arange(n) for n in self.lattice_shape[::-1]],
                            indexing='ij')
        return np.stack([g.ravel() for g in grids[::-1]], axis=1)

    def node_coordinates(self) -> np.ndarray:
        """
        Initial physical coordinates of the scalar dofs.

        Returns:
            Node coordinates [n_dofs, dim]
        """
        p = self.order
        lattice = self.lattice_index()
        zone = lattice // p
        local = lattice % p
        return self.mesh.lower + (zone + self.basis.nodes[local]) * self.mesh.spacing

    def initial_positions(self) -> np.ndarray:
        """Position vector of the undeformed mesh, component-major [size]."""
        coords = self.node_coordinates()
        return np.concatenate([coords[:, c] for c in range(self.vdim)])

    def boundary_nodes(self, axis: int) -> np.ndarray:
        """Scalar dofs on the two boundary faces normal to an axis."""
        lattice = self.lattice_index()
        last = self.lattice_shape[axis] - 1
        on_face = (lattice[:, axis] == 0) | (lattice[:, axis] == last)
        return np.nonzero(on_face)[0]

    def normal_essential_dofs(self) -> np.ndarray:
        """
        Vector dofs pinned by a zero normal velocity condition on the box.

        Component d is pinned on both faces normal to axis d.

        Returns:
            Sorted vector dof indices
        """
        dofs = [d * self.n_dofs + self.boundary_nodes(d)
                for d in range(min(self.vdim, self.mesh.dim))]
        return np.unique(np.concatenate(dofs)).astype(np.int64)

    def jacobians(self, x: np.ndarray, grads: np.ndarray) -> np.ndarray:
        """
        Jacobians of the map defined by a position field.

        Args:
            x: Position vector [size]
            grads: Reference basis gradients [nq, n_local, dim]

        Returns:
            J[z, q, i, j] = d x_i / d xi_j  [n_zones, nq, dim, dim]
        """
        return np.einsum('zac,qag->zqcg', self.gather(x), grads)


class L2Space(FiniteElementSpace):
    """
    Discontinuous Bernstein space of scalar fields.

    Args:
        mesh: Cartesian mesh
        order: Polynomial order (>= 0)
    """

    def __init__(self, mesh: CartesianMesh, order: int):
        if order < 0:
            raise ConfigurationError(f"L2 order must be non-negative, got {order}")
        super().__init__(mesh, TensorBasis(order, mesh.dim, 'bernstein'), 1)
        self.n_dofs = mesh.n_zones * self.basis.n_dofs

    def finalize(self) -> "L2Space":
        self.zone_dofs = np.arange(self.n_dofs, dtype=np.int64).reshape(
            self.mesh.n_zones, self.basis.n_dofs)
        self.is_finalized = True
        return self

    def gather_scalar(self, vec: np.ndarray) -> np.ndarray:
        """Zone-local values of a scalar field [n_zones, n_local]."""
        self.require_finalized()
        return vec.reshape(self.mesh.n_zones, self.basis.n_dofs)


@njit
def scatter_add_numba(out: np.ndarray, dofs: np.ndarray, local: np.ndarray):
    """
    Numba-accelerated scatter-add of zone-local values.

    Args:
        out: Global scalar vector [n_dofs] (accumulated in place)
        dofs: Zone dof table [n_zones, n_local]
        local: Zone-local values [n_zones, n_local]
    """
    n_zones, n_local = dofs.shape

    for z in range(n_zones):
        for a in range(n_local):
            out[dofs[z, a]] += local[z, a]
