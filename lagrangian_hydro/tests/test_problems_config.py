import numpy as np
import pytest

from lagrangian_hydro.config import HydroConfig, load_parameters
from lagrangian_hydro.errors import ConfigurationError
from lagrangian_hydro.problems import PROBLEMS, ProblemKind, get_problem


class TestProblems:
    def test_lookup(self):
        assert get_problem("sedov").kind is ProblemKind.SEDOV
        assert get_problem(" Sod ").kind is ProblemKind.SOD
        assert get_problem(0).name == "taylor_green"
        assert get_problem(ProblemKind.GRESHO).name == "gresho"
        assert get_problem(7).name == "rayleigh_taylor"
        assert len(PROBLEMS) == 8

    @pytest.mark.parametrize("key", ["noh", 8, -1, None])
    def test_unknown(self, key):
        with pytest.raises(ConfigurationError):
            get_problem(key)

    def test_sod_states(self):
        sod = get_problem("sod")
        x = np.array([[0.25], [0.75]])
        assert np.allclose(sod.rho0(x), [1.0, 0.1])
        # p = (gamma - 1) rho e
        p = 0.4 * sod.rho0(x) * sod.e0(x)
        assert np.allclose(p, [1.0, 0.1])

    def test_taylor_green_velocity(self):
        tg = get_problem("taylor_green")
        v = tg.v0(np.array([[0.5, 0.0], [0.0, 0.5]]))
        assert np.allclose(v, [[1.0, 0.0], [0.0, -1.0]])
        assert tg.source is not None
        assert not tg.use_viscosity

    def test_gresho_energy_is_continuous(self):
        gresho = get_problem("gresho")
        for r in (0.2, 0.4):
            x = np.array([[r - 1e-9, 0.0], [r + 1e-9, 0.0]])
            e = gresho.e0(x)
            assert e[0] == pytest.approx(e[1], rel=1e-6)

    def test_triple_point_regions(self):
        tp = get_problem("triple_point")
        x = np.array([[0.5, 1.0], [3.0, 1.0], [3.0, 2.0]])
        assert np.allclose(tp.rho0(x), [1.0, 1.0, 0.125])
        assert np.allclose(tp.gamma(x), [1.5, 1.4, 1.5])
        assert tp.domain(2) == ((0.0, 0.0), (7.0, 3.0))

    def test_triple_point_3d(self):
        tp = get_problem("triple_point")
        assert 3 in tp.dims
        assert tp.domain(3) == ((0.0, 0.0, 0.0), (7.0, 3.0, 3.0))
        x = np.array([[3.0, 1.0, 1.0], [3.0, 2.0, 2.0], [3.0, 1.0, 2.0], [0.5, 1.0, 1.0]])
        assert np.allclose(tp.rho0(x), [0.125, 0.125, 1.0, 1.0])

    def test_riemann_quadrants(self):
        x = np.array([[0.25, 0.75], [0.75, 0.75], [0.25, 0.25], [0.75, 0.25]])

        a = get_problem("riemann_2d_a")
        assert np.allclose(a.rho0(x), [1.0, 0.5313, 0.8, 1.0])
        assert np.allclose(0.4 * a.rho0(x) * a.e0(x), [1.0, 0.4, 1.0, 1.0])
        v = a.v0(x)
        taper = (16.0 * 0.25 * 0.75 * 0.25 * 0.75) ** 0.4
        assert np.allclose(v, [[0.7276 * taper, 0.0], [0.0, 0.0],
                               [0.0, 0.0], [0.0, 0.7276 * taper]])

        b = get_problem("riemann_2d_b")
        assert np.allclose(b.rho0(x), [2.0, 1.0, 1.0, 3.0])
        assert np.allclose(0.4 * b.rho0(x) * b.e0(x), 1.0)
        signs = np.sign(b.v0(x))
        assert np.array_equal(signs, [[1, 1], [1, -1], [-1, 1], [-1, -1]])

    def test_riemann_velocity_vanishes_on_walls(self):
        for name in ("riemann_2d_a", "riemann_2d_b"):
            walls = np.array([[0.0, 0.7], [1.0, 0.3], [0.3, 0.0], [0.7, 1.0]])
            assert np.all(get_problem(name).v0(walls) == 0.0)

    def test_rayleigh_taylor_is_hydrostatic(self):
        rt = get_problem("rayleigh_taylor")
        assert rt.use_vorticity
        assert rt.domain(2) == ((0.0, -1.0), (0.5, 1.0))

        y = np.linspace(-1.0, 1.0, 9)
        x = np.stack([np.full_like(y, 0.1), y], axis=1)
        p = (5.0 / 3.0 - 1.0) * rt.rho0(x) * rt.e0(x)
        assert np.allclose(p, 6.0 - rt.rho0(x) * y)
        # dp/dy = rho g_y
        g = rt.acceleration(x)
        assert np.allclose(g, [0.0, -1.0])
        v = rt.v0(np.array([[0.0, 0.0], [0.25, 0.0]]))
        assert np.allclose(v, [[0.0, 0.02], [0.0, 0.0]], atol=1e-15)


class TestConfig:
    def test_defaults(self):
        rp = load_parameters()
        assert rp.get_param("driver.problem") == "sedov"

        config = HydroConfig.from_runtime_parameters(rp)
        assert config.dim == 2
        assert config.zones_per_dim == (8, 8)
        assert config.ode_solver == 4
        assert config.use_viscosity is None
        assert config.quadrature_order == 6
        assert config.blast_position == (0.0, 0.0, 0.0)

    def test_overrides(self):
        rp = load_parameters(overrides=["driver.problem=sod", "driver.dim=1",
                                        "mesh.nx=16", "hydro.use_viscosity=0",
                                        "hydro.order_q=4"])
        config = HydroConfig.from_runtime_parameters(rp)

        assert config.problem == "sod"
        assert config.zones_per_dim == (16,)
        assert config.use_viscosity is False
        assert config.use_vorticity is None
        assert config.quadrature_order == 4

    def test_inputs_file(self, tmp_path):
        inputs = tmp_path / "inputs.sod"
        inputs.write_text("[driver]\nproblem = sod\nt_final = 0.25\n\n[solver]\ncg_tol = 1.e-10\n")

        config = HydroConfig.from_runtime_parameters(load_parameters(str(inputs)))
        assert config.problem == "sod"
        assert config.t_final == 0.25
        assert config.cg_tol == 1e-10

    @pytest.mark.parametrize("kwargs", [
        dict(problem="gresho", dim=3, zones_per_dim=(4, 4, 4)),
        dict(dim=2, zones_per_dim=(4,)),
        dict(cfl=0.0),
        dict(ode_solver=5),
        dict(order_v=0),
        dict(dt_shrink=1.0),
        dict(dt_growth_factor=0.9),
        dict(t_final=-1.0),
        dict(problem="noh"),
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(ConfigurationError):
            HydroConfig(**kwargs).validate()

    def test_errors_are_collected(self):
        with pytest.raises(ConfigurationError) as info:
            HydroConfig(cfl=-1.0, order_e=-1).validate()
        assert "cfl" in str(info.value)
        assert "order_e" in str(info.value)
