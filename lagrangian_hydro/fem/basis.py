"""
Tensor-product polynomial bases on the reference cell [0, 1]^dim.

The kinematic (position, velocity) fields use continuous Lagrange
polynomials through Gauss-Lobatto nodes; the thermodynamic (energy) field
uses the positive Bernstein basis. Both bases form a partition of unity.
"""

import itertools
from math import comb

import numpy as np


def gauss_lobatto_nodes(order: int) -> np.ndarray:
    """
    Gauss-Lobatto nodes on [0, 1] for a given polynomial order.

    Args:
        order: Polynomial order (>= 1)

    Returns:
        Sorted nodes [order + 1], including both end points
    """
    if order < 1:
        raise ValueError(f"Gauss-Lobatto nodes need order >= 1, got {order}")
    interior = np.polynomial.legendre.Legendre.basis(order).deriv().roots()
    nodes = np.concatenate(([-1.0], np.sort(np.real(interior)), [1.0]))
    return 0.5 * (nodes + 1.0)


def lagrange_1d(nodes: np.ndarray, x: np.ndarray):
    """
    Evaluate 1D Lagrange polynomials and their derivatives.

    Args:
        nodes: Interpolation nodes [n]
        x: Evaluation points [m]

    Returns:
        Tuple of (values [m, n], derivatives [m, n])
    """
    n = len(nodes)
    values = np.ones((len(x), n))
    derivs = np.zeros((len(x), n))

    for j in range(n):
        for m in range(n):
            if m != j:
                values[:, j] *= (x - nodes[m]) / (nodes[j] - nodes[m])

        for k in range(n):
            if k == j:
                continue
            term = np.full(len(x), 1.0 / (nodes[j] - nodes[k]))
            for m in range(n):
                if m != j and m != k:
                    term *= (x - nodes[m]) / (nodes[j] - nodes[m])
            derivs[:, j] += term

    return values, derivs


def bernstein_1d(order: int, x: np.ndarray):
    """
    Evaluate 1D Bernstein polynomials and their derivatives.

    Args:
        order: Polynomial order (>= 0)
        x: Evaluation points [m]

    Returns:
        Tuple of (values [m, order + 1], derivatives [m, order + 1])
    """
    values = np.empty((len(x), order + 1))
    derivs = np.zeros((len(x), order + 1))

    for i in range(order + 1):
        values[:, i] = comb(order, i) * x**i * (1.0 - x)**(order - i)

    if order > 0:
        lower = np.empty((len(x), order))
        for i in range(order):
            lower[:, i] = comb(order - 1, i) * x**i * (1.0 - x)**(order - 1 - i)
        derivs[:, 1:] += order * lower
        derivs[:, :-1] -= order * lower

    return values, derivs


class TensorBasis:
    """
    Tensor-product basis on [0, 1]^dim.

    Local dofs are ordered lexicographically with the x index running
    fastest.

    Attributes:
        order (int): Polynomial order per direction
        dim (int): Spatial dimension
        family (str): 'lobatto' (nodal H1) or 'bernstein' (positive L2)
        n_dofs (int): Number of local dofs, (order + 1)^dim
    """

    FAMILIES = ('lobatto', 'bernstein')

    def __init__(self, order: int, dim: int, family: str = 'lobatto'):
        if family not in self.FAMILIES:
            raise ValueError(f"Unknown basis family: {family}")
        self.order = order
        self.dim = dim
        self.family = family
        self.n_dofs = (order + 1)**dim
        self.nodes = gauss_lobatto_nodes(order) if family == 'lobatto' else None

        self.multi_index = np.array(
            [index[::-1] for index in itertools.product(range(order + 1), repeat=dim)],
            dtype=np.int64)

    def _eval_1d(self, x: np.ndarray):
        if self.family == 'lobatto':
            return lagrange_1d(self.nodes, x)
        return bernstein_1d(self.order, x)

    def evaluate(self, points: np.ndarray):
        """
        Evaluate basis values and reference gradients.

        Args:
            points: Reference coordinates [nq, dim]

        Returns:
            Tuple of (values [nq, n_dofs], gradients [nq, n_dofs, dim])
        """
        nq = points.shape[0]
        tables = [self._eval_1d(points[:, k]) for k in range(self.dim)]

        values = np.ones((nq, self.n_dofs))
        grads = np.ones((nq, self.n_dofs, self.dim))

        for k in range(self.dim):
            val_k, der_k = tables[k]
            idx = self.multi_index[:, k]
            values *= val_k[:, idx]
            for g in range(self.dim):
                if g == k:
                    grads[:, :, g] *= der_k[:, idx]
                else:
                    grads[:, :, g] *= val_k[:, idx]

        return values, grads
