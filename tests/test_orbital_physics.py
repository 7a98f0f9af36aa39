import math

import numpy as np
import pytest
from scipy import integrate, special

import orbital_physics as physics
from orbital_physics import InvalidQuantumState, QuantumState


# -----------------------------------------------------------------------------
# Special functions
# -----------------------------------------------------------------------------

def test_factorial_values():
    assert physics.factorial(0) == 1
    assert physics.factorial(1) == 1
    assert physics.factorial(5) == 120
    assert physics.factorial(10) == 3628800


@pytest.mark.parametrize("alpha", [0.0, 1.0, 3.0, 7.5])
@pytest.mark.parametrize("x", [-2.0, 0.0, 0.3, 11.0])
def test_laguerre_degree_zero_is_one(alpha, x):
    assert physics.laguerre(0, alpha, x) == 1.0


def test_laguerre_low_degree():
    assert physics.laguerre(1, 0, 0) == 1.0
    assert physics.laguerre(1, 2.0, 0.5) == pytest.approx(2.5)


@pytest.mark.parametrize("p", range(0, 8))
@pytest.mark.parametrize("alpha", [0.0, 1.0, 3.0, 5.5])
def test_laguerre_matches_scipy(p, alpha):
    x = np.linspace(0.0, 20.0, 41)
    ours = physics.laguerre(p, alpha, x)
    ref = special.eval_genlaguerre(p, alpha, x)
    np.testing.assert_allclose(ours, ref, rtol=1e-9, atol=1e-9)


def test_laguerre_scalar_returns_float():
    assert isinstance(physics.laguerre(3, 1.0, 0.7), float)
    assert isinstance(physics.associated_legendre(3, 1, 0.7), float)


@pytest.mark.parametrize("x", [-1.0, -0.4, 0.0, 0.25, 1.0])
def test_legendre_low_orders(x):
    assert physics.associated_legendre(0, 0, x) == 1.0
    assert physics.associated_legendre(1, 0, x) == pytest.approx(x)


@pytest.mark.parametrize("l", range(0, 7))
def test_legendre_matches_scipy(l):
    x = np.linspace(-1.0, 1.0, 101)
    for m in range(0, l + 1):
        ours = physics.associated_legendre(l, m, x)
        ref = special.lpmv(m, l, x)
        np.testing.assert_allclose(ours, ref, rtol=1e-10, atol=1e-12)


def test_legendre_uses_abs_m():
    x = np.linspace(-1.0, 1.0, 11)
    np.testing.assert_array_equal(
        physics.associated_legendre(3, -2, x), physics.associated_legendre(3, 2, x)
    )


def test_legendre_zero_when_m_exceeds_l():
    assert physics.associated_legendre(1, 2, 0.5) == 0.0


# -----------------------------------------------------------------------------
# Density model
# -----------------------------------------------------------------------------

def test_radial_density_closed_forms():
    r = np.linspace(0.0, 15.0, 31)
    np.testing.assert_allclose(physics.radial_density_squared(1, 0, r), 4.0 * np.exp(-2.0 * r), rtol=1e-12)
    np.testing.assert_allclose(physics.radial_density_squared(2, 1, r), r * r * np.exp(-r) / 24.0, rtol=1e-12, atol=1e-300)


def test_angular_density_closed_forms():
    theta = np.linspace(0.0, math.pi, 19)
    np.testing.assert_allclose(physics.angular_density_squared(0, 0, theta), np.full_like(theta, 1.0 / (4.0 * math.pi)))
    np.testing.assert_allclose(
        physics.angular_density_squared(1, 0, theta), 3.0 / (4.0 * math.pi) * np.cos(theta) ** 2, atol=1e-15
    )
    np.testing.assert_allclose(
        physics.angular_density_squared(1, -1, theta), 3.0 / (8.0 * math.pi) * np.sin(theta) ** 2, atol=1e-15
    )


def test_density_is_phi_independent():
    r = np.array([0.5, 2.0, 6.0])
    theta = np.array([0.3, 1.2, 2.9])
    a = physics.density_squared(3, 2, 1, r, theta, np.zeros(3))
    b = physics.density_squared(3, 2, 1, r, theta, np.full(3, 1.3))
    np.testing.assert_array_equal(a, b)


def test_probability_weight_includes_jacobian():
    r, theta, phi = 2.5, 0.8, 1.1
    dens = physics.density_squared(2, 1, 0, r, theta, phi)
    assert physics.probability_weight(2, 1, 0, r, theta, phi) == pytest.approx(dens * r * r * math.sin(theta))


def test_signed_amplitude_2pz_follows_cos_theta():
    theta = np.linspace(0.05, math.pi - 0.05, 25)
    s = physics.signed_amplitude(2, 1, 0, np.full_like(theta, 3.0), theta, np.zeros_like(theta))
    np.testing.assert_array_equal(np.sign(s), np.sign(np.cos(theta)))


def test_signed_amplitude_ignores_radial_nodes():
    # 3s has two radial nodes; the sign proxy never goes negative.
    r = np.linspace(0.0, 30.0, 301)
    s = physics.signed_amplitude(3, 0, 0, r, np.full_like(r, 1.0), np.zeros_like(r))
    assert np.all(s >= 0.0)


@pytest.mark.parametrize("n,l,m", [(1, 0, 0), (2, 1, 0), (2, 1, 1), (3, 2, -1), (4, 3, 2)])
def test_normalization_by_quadrature(n, l, m):
    norm = physics.normalization_integral(QuantumState(n, l, m))
    assert norm == pytest.approx(1.0, abs=1e-3)


def test_validate_density_report():
    rep = physics.validate_density(QuantumState(2, 0, 0))
    assert rep["norm_error"] < 1e-3
    assert rep["grid_info"]["r_max"] == physics.default_r_max(2)


@pytest.mark.parametrize("n,l", [(1, 0), (2, 1), (3, 2), (4, 0)])
def test_expected_radius_matches_integral(n, l):
    val, _ = integrate.quad(lambda r: r * physics.radial_probability(n, l, r), 0.0, np.inf, limit=200)
    assert val == pytest.approx(physics.expected_radius(n, l), rel=1e-6)


# -----------------------------------------------------------------------------
# Quantum states / coordinates
# -----------------------------------------------------------------------------

@pytest.mark.parametrize(
    "state",
    [QuantumState(1, 1, 0), QuantumState(2, 0, 1), QuantumState(0, 0, 0), QuantumState(3, 1, -2),
     QuantumState(2, -1, 0), QuantumState(True, 0, 0), QuantumState(2.0, 1, 0)],
)
def test_invalid_states_rejected(state):
    with pytest.raises(InvalidQuantumState):
        physics.validate_state(state)


def test_invalid_state_is_value_error():
    with pytest.raises(ValueError):
        physics.radial_density_squared(1, 1, 1.0)


def test_validate_state_derived_values():
    dv = physics.validate_state(QuantumState(4, 2, -1))
    assert dv["n_r"] == 1
    assert dv["abs_m"] == 1


def test_state_names():
    st = QuantumState(3, 2, -1)
    assert st.name == "3d"
    assert st.label == "3d (m=-1)"
    assert st.radial_nodes == 0
    assert st.angular_nodes == 2


def test_spherical_point_to_cartesian():
    x, y, z = physics.SphericalPoint(2.0, math.pi / 2, 0.0).to_cartesian()
    assert (x, y, z) == pytest.approx((2.0, 0.0, 0.0), abs=1e-12)
    x, y, z = physics.SphericalPoint(1.5, 0.0, 1.0).to_cartesian()
    assert (x, y, z) == pytest.approx((0.0, 0.0, 1.5), abs=1e-12)


def test_spherical_to_cartesian_vectorised():
    r = np.array([1.0, 2.0, 3.0])
    theta = np.array([0.1, 1.0, 2.0])
    phi = np.array([0.0, 2.0, 5.0])
    xyz = physics.spherical_to_cartesian(r, theta, phi)
    assert xyz.shape == (3, 3)
    np.testing.assert_allclose(np.linalg.norm(xyz, axis=1), r)
    for i in range(3):
        np.testing.assert_allclose(xyz[i], physics.SphericalPoint(r[i], theta[i], phi[i]).to_cartesian())
