"""
Initial condition profiles as a closed set of tagged variants.

A profile is a plain record of vectorized functions of the physical
coordinates x[..., dim]. It carries no global state; the driver passes the
selected profile explicitly to the initialization code.
"""

import enum
from dataclasses import dataclass
from typing import Callable, Optional, Tuple


class ProblemKind(enum.IntEnum):
    TAYLOR_GREEN = 0
    SEDOV = 1
    SOD = 2
    TRIPLE_POINT = 3
    GRESHO = 4
    RIEMANN_2D_A = 5
    RIEMANN_2D_B = 6
    RAYLEIGH_TAYLOR = 7


@dataclass(frozen=True)
class Problem:
    """
    Initial condition profile.

    Attributes:
        kind: Variant tag
        name: Name used in the runtime parameters
        rho0: Initial density, x[..., dim] -> [...]
        v0: Initial velocity, x[..., dim] -> [..., dim]
        e0: Initial specific internal energy, x[..., dim] -> [...]
        gamma: Ratio of specific heats, x[..., dim] -> [...]
        dims: Supported spatial dimensions
        domain: Default (lower, upper) corners for a given dimension
        use_viscosity: Artificial viscosity on by default
        use_vorticity: Vorticity damping of the linear viscosity term
        source: Optional energy source, x[..., dim] -> [...]
        acceleration: Optional body acceleration acting on the momentum,
            x[..., dim] -> [..., dim]
        point_energy: Energy is deposited in the zone holding the blast
            position instead of being taken from e0
    """

    kind: ProblemKind
    name: str
    rho0: Callable
    v0: Callable
    e0: Callable
    gamma: Callable
    dims: Tuple[int, ...]
    domain: Callable[[int], Tuple[Tuple[float, ...], Tuple[float, ...]]]
    use_viscosity: bool = True
    use_vorticity: bool = False
    source: Optional[Callable] = None
    acceleration: Optional[Callable] = None
    point_energy: bool = False


def unit_box(dim: int):
    """Default domain [0, 1]^dim."""
    return (0.0,) * dim, (1.0,) * dim
