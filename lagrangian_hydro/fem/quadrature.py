"""
Tensor-product Gauss-Legendre quadrature on the reference cell [0, 1]^dim.

Points are ordered lexicographically with the x index running fastest, the
same convention used for the local dofs of the tensor-product bases.
"""

import itertools
from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class QuadratureRule:
    """
    Quadrature rule on the reference cell.

    Attributes:
        points (np.ndarray): Reference coordinates [nq, dim]
        weights (np.ndarray): Weights [nq], summing to one
        order (int): Polynomial order integrated exactly
    """
    points: np.ndarray
    weights: np.ndarray
    order: int

    @property
    def dim(self) -> int:
        return self.points.shape[1]

    @property
    def n_points(self) -> int:
        return self.points.shape[0]


def gauss_legendre_1d(n_points: int):
    """
    Gauss-Legendre points and weights mapped to [0, 1].

    Args:
        n_points: Number of points

    Returns:
        Tuple of (points, weights)
    """
    x, w = np.polynomial.legendre.leggauss(n_points)
    return 0.5 * (x + 1.0), 0.5 * w


def tensor_rule(dim: int, order: int) -> QuadratureRule:
    """
    Build a tensor Gauss-Legendre rule exact for polynomials of given order.

    Args:
        dim: Spatial dimension (1, 2 or 3)
        order: Polynomial order to integrate exactly

    Returns:
        QuadratureRule with (order // 2 + 1)^dim points
    """
    if dim not in (1, 2, 3):
        raise ValueError(f"Unsupported dimension: {dim}")
    if order < 0:
        raise ValueError(f"Quadrature order must be non-negative, got {order}")

    n = order // 2 + 1
    x1d, w1d = gauss_legendre_1d(n)

    points = []
    weights = []
    for index in itertools.product(range(n), repeat=dim):
        index = index[::-1]
        points.append([x1d[i] for i in index])
        weights.append(np.prod([w1d[i] for i in index]))

    return QuadratureRule(np.array(points, dtype=float),
                          np.array(weights, dtype=float), order)


def default_order(order_v: int, order_e: int) -> int:
    """Default integration order for given kinematic and thermodynamic orders."""
    return 3 * order_v + order_e - 1
