"""
Test suite for the Lagrangian hydrodynamics solver.

The modules follow the layers of the solver:
- finite element building blocks (quadrature, bases, spaces)
- quadrature point cache, mass and force operators
- hydro right-hand side, integrators and the step controller
- problem profiles, configuration and full simulation runs
"""
