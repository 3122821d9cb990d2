"""
Minimal finite element toolkit used by the hydrodynamics core: Cartesian
meshes, tensor-product bases, Gauss-Legendre quadrature and the H1/L2
spaces with their zone gather/scatter maps.
"""

from .basis import TensorBasis, bernstein_1d, gauss_lobatto_nodes, lagrange_1d
from .mesh import CartesianMesh
from .quadrature import QuadratureRule, default_order, gauss_legendre_1d, tensor_rule
from .spaces import FiniteElementSpace, H1Space, L2Space

__all__ = [
    "CartesianMesh",
    "FiniteElementSpace",
    "H1Space",
    "L2Space",
    "QuadratureRule",
    "TensorBasis",
    "bernstein_1d",
    "default_order",
    "gauss_legendre_1d",
    "gauss_lobatto_nodes",
    "lagrange_1d",
    "tensor_rule",
]
