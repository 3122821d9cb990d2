"""
Structured Cartesian meshes of segments, quadrilaterals or hexahedra.

The mesh only describes the initial topology and the initial box geometry.
Once a run starts, the zones move with the material: the current geometry
is carried by the position field on the kinematic space, not by the mesh.
"""

from typing import Sequence

import numpy as np


class CartesianMesh:
    """
    Uniform tensor-product mesh of a box.

    Zones are numbered lexicographically with the x index running fastest.

    Attributes:
        dim (int): Spatial dimension
        zones_per_dim (tuple): Number of zones along each axis
        n_zones (int): Total number of zones
        lower (np.ndarray): Lower corner of the box [dim]
        upper (np.ndarray): Upper corner of the box [dim]
        spacing (np.ndarray): Zone widths along each axis [dim]
        zone_index (np.ndarray): Multi-index of every zone [n_zones, dim]
    """

    def __init__(self, zones_per_dim: Sequence[int], lower: Sequence[float],
                 upper: Sequence[float]):
        self.dim = len(zones_per_dim)
        if self.dim not in (1, 2, 3):
            raise ValueError(f"Unsupported mesh dimension: {self.dim}")
        if len(lower) != self.dim or len(upper) != self.dim:
            raise ValueError("Box corners must match the mesh dimension")
        if any(n < 1 for n in zones_per_dim):
            raise ValueError(f"Need at least one zone per axis, got {tuple(zones_per_dim)}")

        self.zones_per_dim = tuple(int(n) for n in zones_per_dim)
        self.lower = np.asarray(lower, dtype=float)
        self.upper = np.asarray(upper, dtype=float)
        if np.any(self.upper <= self.lower):
            raise ValueError("Upper box corner must exceed the lower corner")

        self.n_zones = int(np.prod(self.zones_per_dim))
        self.spacing = (self.upper - self.lower) / np.array(self.zones_per_dim)

        grids = np.meshgrid(*[np.arange(n) for n in self.zones_per_dim[::-1]],
                            indexing='ij')
        self.zone_index = np.stack([g.ravel() for g in grids[::-1]], axis=1)

    def zone_centers(self) -> np.ndarray:
        """Initial zone centers [n_zones, dim]."""
        return self.lower + (self.zone_index + 0.5) * self.spacing

    def locate(self, point: Sequence[float]) -> int:
        """
        Find the initial zone containing a point.

        Points on shared faces go to the zone with the larger index, except
        on the upper boundary of the box.

        Args:
            point: Physical coordinates [dim]

        Returns:
            Zone number
        """
        point = np.asarray(point, dtype=float)[:self.dim]
        if np.any(point < self.lower) or np.any(point > self.upper):
            raise ValueError(f"Point {point} lies outside the mesh")
        idx = np.floor((point - self.lower) / self.spacing).astype(int)
        idx = np.minimum(idx, np.array(self.zones_per_dim) - 1)

        zone = 0
        stride = 1
        for k in range(self.dim):
            zone += idx[k] * stride
            stride *= self.zones_per_dim[k]
        return int(zone)
