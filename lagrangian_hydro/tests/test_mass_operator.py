import numpy as np
import pytest
from scipy.sparse.linalg import cg

from lagrangian_hydro.errors import ConfigurationError
from lagrangian_hydro.fem import H1Space
from lagrangian_hydro.mass_operator import MassOperator


@pytest.fixture
def setup2d(make_setup):
    return make_setup((2, 2), order_v=2, order_e=1, rho0=lambda x: 1.0 + x[..., 0])


def kinematic_mass(s):
    mass = MassOperator(s.h1, s.qdata)
    mass.setup()
    mass.set_essential_dofs(s.h1.normal_essential_dofs())
    return mass


def test_symmetric_elimination(setup2d):
    mass = kinematic_mass(setup2d)
    ess = mass.ess_dofs
    assert ess.size > 0

    rng = np.random.default_rng(3)
    x1 = rng.standard_normal(mass.size)
    x2 = x1.copy()
    x2[ess] = rng.standard_normal(ess.size)
    x1_copy = x1.copy()

    y1 = mass.apply(x1)
    y2 = mass.apply(x2)

    assert np.all(y1[ess] == 0.0)
    assert np.array_equal(y1, y2)
    assert np.array_equal(x1, x1_copy)


def test_operator_is_symmetric(setup2d):
    mass = kinematic_mass(setup2d)
    rng = np.random.default_rng(5)
    a = rng.standard_normal(mass.size)
    b = rng.standard_normal(mass.size)
    assert np.dot(a, mass.apply(b)) == pytest.approx(np.dot(b, mass.apply(a)), rel=1e-10, abs=1e-12)


def test_unconstrained_mass_integrates_density(setup2d):
    s = setup2d
    mass = MassOperator(s.l2, s.qdata)
    mass.setup()

    ones = np.ones(s.l2.size)
    # integral of 1 + x over the unit square
    assert np.dot(ones, mass.unconstrained_apply(ones)) == pytest.approx(1.5)
    assert np.dot(ones, mass.apply(ones)) == pytest.approx(1.5)


def test_conjugate_gradient_solve(setup2d):
    mass = kinematic_mass(setup2d)
    rng = np.random.default_rng(11)
    expected = rng.standard_normal(mass.size)
    expected[mass.ess_dofs] = 0.0

    rhs = mass.apply(expected)
    sol, info = cg(mass.as_linear_operator(), rhs, rtol=1e-12, atol=0.0, maxiter=500)
    assert info == 0
    assert np.allclose(sol, expected, atol=1e-8)


def test_apply_before_setup(setup2d):
    mass = MassOperator(setup2d.h1, setup2d.qdata)
    with pytest.raises(ConfigurationError):
        mass.apply(np.zeros(mass.size))


def test_setup_on_unfinalized_space(setup2d):
    space = H1Space(setup2d.mesh, 2)
    mass = MassOperator(space, setup2d.qdata)
    with pytest.raises(ConfigurationError):
        mass.setup()


def test_essential_dof_count_mismatch(setup2d):
    mass = MassOperator(setup2d.h1, setup2d.qdata)
    mass.set_essential_dofs([0, 1])
    mass.set_essential_dofs([2, 3])

    with pytest.raises(ConfigurationError):
        mass.set_essential_dofs([0, 1, 2])

    mass.set_essential_dofs([])
    assert mass.ess_dofs.size == 0


def test_essential_dof_out_of_range(setup2d):
    mass = MassOperator(setup2d.h1, setup2d.qdata)
    with pytest.raises(ConfigurationError):
        mass.set_essential_dofs([mass.size])


def test_eliminate_rhs(setup2d):
    mass = kinematic_mass(setup2d)
    b = np.ones(mass.size)
    mass.eliminate_rhs(b)
    assert np.all(b[mass.ess_dofs] == 0.0)
    assert np.sum(b) == mass.size - mass.ess_dofs.size


def test_pinned_total_and_scratch_layout(setup2d):
    mass = kinematic_mass(setup2d)
    ess = mass.ess_dofs

    assert mass._ess_total == ess.size
    # the scratch copy covers pinned and free dofs alike
    assert mass._scratch.shape == (mass.size,)

    # re-pinning the same set keeps the recorded total
    mass.set_essential_dofs(ess[::-1])
    assert mass._ess_total == ess.size
    assert np.array_equal(mass.ess_dofs, ess)
