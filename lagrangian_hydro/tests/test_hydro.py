import numpy as np
import pytest

from lagrangian_hydro.errors import ConfigurationError, LinearSolverError
from lagrangian_hydro.hydro import CacheState, LagrangianHydroOperator


def make_operator(s, **kwargs):
    return LagrangianHydroOperator(s.h1, s.l2, s.qdata, s.h1.normal_essential_dofs(), **kwargs)


def make_state(s, v=None, e=1.0):
    v = np.zeros(s.h1.size) if v is None else v
    return np.concatenate((s.x0, v, s.energy(e)))


def test_uniform_state_at_rest(make_setup):
    s = make_setup((3, 3), order_v=2, order_e=1)
    hydro = make_operator(s)
    S = make_state(s, e=2.5)

    dS = hydro.mult(S)
    dx, dv, de = hydro.blocks(dS)

    assert np.all(dx == 0.0)
    assert np.allclose(dv, 0.0, atol=1e-10)
    assert np.all(de == 0.0)


def test_mult_returns_velocity_as_mesh_motion(make_setup):
    s = make_setup((2, 2), order_v=2, order_e=1)
    hydro = make_operator(s)
    v = s.velocity(lambda x: 0.1 * np.sin(np.pi * x))
    v[s.h1.normal_essential_dofs()] = 0.0
    S = make_state(s, v)

    dx, dv, _ = hydro.blocks(hydro.mult(S))
    assert np.array_equal(dx, v)
    assert np.all(dv[hydro.mass_v.ess_dofs] == 0.0)


def test_cache_state_machine(make_setup):
    s = make_setup((2,), order_v=2, order_e=1)
    hydro = make_operator(s)
    qd = s.qdata
    S = make_state(s, s.velocity(lambda x: -x))

    assert hydro.state is CacheState.STALE

    hydro.mult(S)
    assert hydro.state is CacheState.FRESH
    assert qd.refresh_count == 1

    # same state again: no recomputation
    hydro.mult(S)
    hydro.time_step_estimate(S)
    assert qd.refresh_count == 1

    # a different state, as in the next Runge-Kutta stage
    S2 = S.copy()
    S2[hydro.v_size] += 1e-3
    hydro.mult(S2)
    assert qd.refresh_count == 2

    hydro.invalidate()
    assert hydro.state is CacheState.STALE
    with pytest.raises(ConfigurationError):
        hydro.time_step_estimate()

    assert hydro.time_step_estimate(S2) > 0.0
    assert qd.refresh_count == 3


def test_energy_diagnostics(make_setup):
    s = make_setup((2, 2), order_v=2, order_e=1, rho0=2.0)
    hydro = make_operator(s)
    v = s.velocity(lambda x: np.stack([np.ones(len(x)), np.zeros(len(x))], axis=1))
    S = make_state(s, v, e=3.0)

    assert hydro.internal_energy(S) == pytest.approx(6.0)
    assert hydro.kinetic_energy(S) == pytest.approx(1.0)
    assert hydro.total_energy(S) == pytest.approx(7.0)


def test_density_projection(make_setup):
    s = make_setup((2, 2), order_v=2, order_e=1, rho0=lambda x: 1.0 + x[..., 0])
    hydro = make_operator(s)
    S = make_state(s)

    rho = hydro.compute_density(S)
    values = np.einsum('za,qa->zq', s.l2.gather_scalar(rho), s.qdata.shape_l2)
    coords = s.h1.evaluate(s.x0, s.qdata.shape_h1)
    assert np.allclose(values, 1.0 + coords[..., 0])


def test_non_converged_solve_is_reported(make_setup):
    s = make_setup((3, 3), order_v=2, order_e=1)
    hydro = make_operator(s, cg_max_iter=1)
    rng = np.random.default_rng(1)
    e = 1.0 + rng.random(s.l2.size)
    S = np.concatenate((s.x0, np.zeros(s.h1.size), e))

    with pytest.raises(LinearSolverError) as info:
        hydro.mult(S)
    assert info.value.context["solve"] == "velocity"
    assert info.value.context["iterations"] == 1


def test_energy_source(make_setup):
    s = make_setup((2, 2), order_v=2, order_e=1)
    hydro = make_operator(s, source=lambda x: np.ones(x.shape[:-1]))
    S = make_state(s)

    # a unit source heats a unit density gas at a unit rate
    de = hydro.solve_energy(S)
    assert np.allclose(de, 1.0)


def test_state_size_is_checked(make_setup):
    s = make_setup((2,))
    hydro = make_operator(s)
    with pytest.raises(ConfigurationError):
        hydro.mult(np.zeros(hydro.size + 1))


def test_body_force_accelerates_pressureless_gas(make_setup):
    s = make_setup((2, 2), order_v=2, order_e=1, rho0=lambda x: 1.0 + x[..., 1])

    def gravity(x):
        g = np.zeros_like(x)
        g[..., 1] = -1.0
        return g

    hydro = LagrangianHydroOperator(s.h1, s.l2, s.qdata, acceleration=gravity)
    S = make_state(s, e=0.0)

    dv = hydro.solve_velocity(S).reshape(2, -1)
    assert np.allclose(dv[0], 0.0, atol=1e-10)
    assert np.allclose(dv[1], -1.0)
