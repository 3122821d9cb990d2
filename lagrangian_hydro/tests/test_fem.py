import numpy as np
import pytest

from lagrangian_hydro.errors import ConfigurationError
from lagrangian_hydro.fem import (CartesianMesh, H1Space, L2Space, TensorBasis,
                                  default_order, gauss_lobatto_nodes, tensor_rule)


def test_default_quadrature_order():
    assert default_order(2, 1) == 6
    assert default_order(1, 0) == 2


@pytest.mark.parametrize("dim", [1, 2, 3])
def test_tensor_rule_integrates_polynomials(dim):
    rule = tensor_rule(dim, 4)
    assert np.isclose(rule.weights.sum(), 1.0)

    # integral of x^4 over [0, 1] is 1/5 in every direction
    values = np.prod(rule.points**4, axis=1)
    assert np.isclose(np.dot(rule.weights, values), 0.2**dim)


def test_lobatto_nodes_include_end_points():
    nodes = gauss_lobatto_nodes(3)
    assert len(nodes) == 4
    assert nodes[0] == pytest.approx(0.0)
    assert nodes[-1] == pytest.approx(1.0)
    assert np.all(np.diff(nodes) > 0.0)


@pytest.mark.parametrize("family,order", [("lobatto", 2), ("bernstein", 2), ("bernstein", 0)])
def test_basis_partition_of_unity(family, order):
    basis = TensorBasis(order, 2, family)
    points = tensor_rule(2, 5).points
    values, grads = basis.evaluate(points)

    assert values.shape == (len(points), (order + 1)**2)
    assert np.allclose(values.sum(axis=1), 1.0)
    assert np.allclose(grads.sum(axis=1), 0.0)


def test_lagrange_basis_is_nodal():
    basis = TensorBasis(2, 1, "lobatto")
    values, _ = basis.evaluate(basis.nodes[:, None])
    assert np.allclose(values, np.eye(3))


def test_h1_space_layout():
    mesh = CartesianMesh((2, 3), (0.0, 0.0), (2.0, 3.0))
    h1 = H1Space(mesh, 2).finalize()

    assert h1.n_dofs == 5 * 7
    assert h1.size == 2 * 5 * 7
    assert h1.zone_dofs.shape == (6, 9)

    coords = h1.node_coordinates()
    assert coords.min(axis=0) == pytest.approx([0.0, 0.0])
    assert coords.max(axis=0) == pytest.approx([2.0, 3.0])

    # x components are pinned on the faces x = 0 and x = 2 only
    ess = h1.normal_essential_dofs()
    x_pinned = ess[ess < h1.n_dofs]
    assert np.allclose(np.sort(np.unique(coords[x_pinned, 0])), [0.0, 2.0])


def test_initial_jacobians_are_the_spacing():
    mesh = CartesianMesh((2, 2), (0.0, 0.0), (1.0, 3.0))
    h1 = H1Space(mesh, 2).finalize()
    rule = tensor_rule(2, 3)
    _, grads = h1.basis.evaluate(rule.points)

    J = h1.jacobians(h1.initial_positions(), grads)
    assert np.allclose(J, np.diag([0.5, 1.5]))


def test_space_used_before_finalize():
    mesh = CartesianMesh((2,), (0.0,), (1.0,))
    l2 = L2Space(mesh, 1)
    with pytest.raises(ConfigurationError):
        l2.gather_scalar(np.zeros(4))


def test_mesh_locate():
    mesh = CartesianMesh((4, 2), (0.0, 0.0), (1.0, 1.0))
    assert mesh.locate((0.0, 0.0)) == 0
    assert mesh.locate((0.8, 0.9)) == 7
    assert mesh.locate((1.0, 1.0)) == 7
    with pytest.raises(ValueError):
        mesh.locate((2.0, 0.0))
