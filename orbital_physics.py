"""
orbital_physics.py — Hydrogen-like (non-relativistic) orbital densities.

Scope (strict):
- Single electron, point nucleus, atomic units (a0 = 1, Z = 1)
- Real-valued sign proxy only; no complex wavefunction is formed
- Every function is pure and stateless; arrays broadcast

Wavefunction pieces:
  R_{n,l}(r)    = N_{n,l} ρ^l e^{-ρ/2} L_{n-l-1}^{2l+1}(ρ),   ρ = 2r/n
  N_{n,l}       = sqrt( (2/n)^3 (n-l-1)! / (2n (n+l)!) )
  |Y_l^m|^2     = (2l+1)/(4π) (l-|m|)!/(l+|m|)! P_l^{|m|}(cosθ)^2

Sampling weight (spherical volume element):
  P(r,θ,φ) = |R|^2 |Y|^2 r^2 sinθ
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, Union

import math
import numpy as np

from scipy import integrate

ArrayLike = Union[float, np.ndarray]

# Bohr radius (atomic units).
A0: float = 1.0

# Spectroscopic letters for l = 0, 1, 2, ...
_L_LETTERS: str = "spdfghiklmnoqrtuv"


# -----------------------------------------------------------------------------
# Errors
# -----------------------------------------------------------------------------

class OrbitalError(Exception):
    """Base class for every failure raised by the orbital sampling core."""


class InvalidQuantumState(OrbitalError, ValueError):
    """(n, l, m) outside n >= 1, 0 <= l <= n-1, -l <= m <= l."""


# -----------------------------------------------------------------------------
# Dataclasses
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class QuantumState:
    """Hydrogen-like quantum numbers.

    Parameters
    ----------
    n : int
        Principal quantum number (n >= 1).
    l : int
        Orbital angular momentum (0 <= l <= n-1).
    m : int
        Magnetic quantum number (|m| <= l).
    """
    n: int
    l: int
    m: int

    @property
    def name(self) -> str:
        """Spectroscopic name, e.g. '2p'."""
        letter = _L_LETTERS[self.l] if 0 <= self.l < len(_L_LETTERS) else f"[l={self.l}]"
        return f"{self.n}{letter}"

    @property
    def label(self) -> str:
        return f"{self.name} (m={self.m:+d})"

    @property
    def radial_nodes(self) -> int:
        return self.n - self.l - 1

    @property
    def angular_nodes(self) -> int:
        return self.l


@dataclass(frozen=True)
class SphericalPoint:
    """Sampling-space coordinate: r >= 0, θ ∈ [0, π], φ ∈ [0, 2π)."""
    r: float
    theta: float
    phi: float

    def to_cartesian(self) -> Tuple[float, float, float]:
        st = math.sin(self.theta)
        return (
            self.r * st * math.cos(self.phi),
            self.r * st * math.sin(self.phi),
            self.r * math.cos(self.theta),
        )


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------

def _phase_int(n: int) -> float:
    """Return (-1)^n exactly for integer n."""
    return -1.0 if (n & 1) else 1.0


def _unwrap(out: np.ndarray) -> ArrayLike:
    """Return a plain float for 0-d results, the array otherwise."""
    if np.ndim(out) == 0:
        return float(out)
    return out


def _is_int(v: Any) -> bool:
    return isinstance(v, (int, np.integer)) and not isinstance(v, (bool, np.bool_))


def spherical_to_cartesian(r: ArrayLike, theta: ArrayLike, phi: ArrayLike) -> np.ndarray:
    """Vectorised (r, θ, φ) -> (N, 3) Cartesian array."""
    r = np.asarray(r, dtype=np.float64)
    theta = np.asarray(theta, dtype=np.float64)
    phi = np.asarray(phi, dtype=np.float64)
    st = np.sin(theta)
    xyz = np.stack([r * st * np.cos(phi), r * st * np.sin(phi), r * np.cos(theta)], axis=-1)
    return xyz.reshape(-1, 3)


# -----------------------------------------------------------------------------
# Quantum number validation
# -----------------------------------------------------------------------------

def _check_nl(n: Any, l: Any) -> None:
    if not _is_int(n) or n < 1:
        raise InvalidQuantumState(f"n must be an integer >= 1. Got n={n!r}.")
    if not _is_int(l) or l < 0:
        raise InvalidQuantumState(f"l must be an integer >= 0. Got l={l!r}.")
    if l > n - 1:
        raise InvalidQuantumState(f"Require l <= n-1. Got n={n}, l={l}.")


def _check_lm(l: Any, m: Any) -> None:
    if not _is_int(l) or l < 0:
        raise InvalidQuantumState(f"l must be an integer >= 0. Got l={l!r}.")
    if not _is_int(m):
        raise InvalidQuantumState(f"m must be an integer. Got m={m!r}.")
    if abs(m) > l:
        raise InvalidQuantumState(f"Require |m| <= l. Got l={l}, m={m}.")


def validate_state(state: QuantumState) -> Dict[str, Any]:
    """Strict validation of (n, l, m).

    Raises InvalidQuantumState on invalid input. Returns derived values on success.
    """
    _check_nl(state.n, state.l)
    _check_lm(state.l, state.m)
    return {
        "n_r": state.n - state.l - 1,
        "abs_m": abs(state.m),
        "name": state.name,
    }


# -----------------------------------------------------------------------------
# Special functions
# -----------------------------------------------------------------------------

def factorial(n: int) -> int:
    """n! for n >= 2, 1 for n <= 1. Callers never pass negative n."""
    if n <= 1:
        return 1
    return math.factorial(int(n))


def laguerre(p: int, alpha: float, x: ArrayLike) -> ArrayLike:
    """Generalized Laguerre polynomial L_p^(α)(x) by forward recurrence.

      L_0 = 1
      L_1 = 1 + α - x
      L_k = ((2k-1+α-x) L_{k-1} - (k-1+α) L_{k-2}) / k
    """
    xa = np.asarray(x, dtype=np.float64)
    alpha = float(alpha)
    if p == 0:
        return _unwrap(np.ones_like(xa))

    l_km2 = np.ones_like(xa)
    l_km1 = 1.0 + alpha - xa
    for k in range(2, int(p) + 1):
        l_k = ((2 * k - 1 + alpha - xa) * l_km1 - (k - 1 + alpha) * l_km2) / k
        l_km2, l_km1 = l_km1, l_k
    return _unwrap(l_km1)


def associated_legendre(l: int, m: int, x: ArrayLike) -> ArrayLike:
    """Associated Legendre function P_l^{|m|}(x), x ∈ [-1, 1] (Condon–Shortley phase).

    Iterative upward recurrence in l starting from
      P_m^m     = (-1)^m (2m-1)!! (1-x^2)^{m/2}
      P_{m+1}^m = x (2m+1) P_m^m
      P_l^m     = (x (2l-1) P_{l-1}^m - (l+m-1) P_{l-2}^m) / (l-m)
    """
    m = abs(int(m))
    l = int(l)
    xa = np.asarray(x, dtype=np.float64)
    if l < m:
        return _unwrap(np.zeros_like(xa))

    double_fact = 1.0
    for i in range(1, 2 * m, 2):
        double_fact *= i
    p_mm = _phase_int(m) * double_fact * np.power(np.maximum(0.0, 1.0 - xa * xa), 0.5 * m)
    if l == m:
        return _unwrap(p_mm)

    p_lm2 = p_mm
    p_lm1 = xa * (2 * m + 1) * p_mm
    for ll in range(m + 2, l + 1):
        p_l = (xa * (2 * ll - 1) * p_lm1 - (ll + m - 1) * p_lm2) / (ll - m)
        p_lm2, p_lm1 = p_lm1, p_l
    return _unwrap(p_lm1)


# -----------------------------------------------------------------------------
# Density model
# -----------------------------------------------------------------------------

def radial_density_squared(n: int, l: int, r: ArrayLike) -> ArrayLike:
    """|R_{n,l}(r)|^2 (atomic units)."""
    _check_nl(n, l)
    r = np.asarray(r, dtype=np.float64)
    rho = (2.0 * r) / (n * A0)
    norm = math.sqrt(
        (2.0 / (n * A0)) ** 3 * factorial(n - l - 1) / (2.0 * n * factorial(n + l))
    )
    lag = laguerre(n - l - 1, 2 * l + 1, rho)
    R = norm * np.power(rho, l) * np.exp(-0.5 * rho) * lag
    return _unwrap(R * R)


def angular_density_squared(l: int, m: int, theta: ArrayLike) -> ArrayLike:
    """|Y_l^m(θ, φ)|^2, independent of φ."""
    _check_lm(l, m)
    abs_m = abs(m)
    normalization = ((2 * l + 1) / (4.0 * math.pi)) * (factorial(l - abs_m) / factorial(l + abs_m))
    P = np.asarray(associated_legendre(l, abs_m, np.cos(np.asarray(theta, dtype=np.float64))))
    return _unwrap(normalization * P * P)


def density_squared(
    n: int, l: int, m: int, r: ArrayLike, theta: ArrayLike, phi: ArrayLike
) -> ArrayLike:
    """|ψ_{n,l,m}(r, θ, φ)|^2. φ is accepted for symmetry with signed_amplitude; it drops out."""
    _check_lm(l, m)
    out = np.asarray(radial_density_squared(n, l, r)) * np.asarray(angular_density_squared(l, m, theta))
    if np.ndim(phi) > 0:
        out = np.broadcast_to(out, np.broadcast(out, np.asarray(phi)).shape).copy()
    return _unwrap(out)


def signed_amplitude(
    n: int, l: int, m: int, r: ArrayLike, theta: ArrayLike, phi: ArrayLike
) -> ArrayLike:
    """Sign proxy used to split points into lobes.

      s = sqrt(|R|^2) · P_l^{|m|}(cosθ) · cos(mφ)

    The radial factor enters as a magnitude, so radial nodes never flip the sign;
    only the angular node structure separates the lobes.
    """
    _check_nl(n, l)
    _check_lm(l, m)
    R = np.sqrt(np.asarray(radial_density_squared(n, l, r)))
    PL = np.asarray(associated_legendre(l, m, np.cos(np.asarray(theta, dtype=np.float64))))
    cos_part = np.cos(m * np.asarray(phi, dtype=np.float64))
    return _unwrap(R * PL * cos_part)


def probability_weight(
    n: int, l: int, m: int, r: ArrayLike, theta: ArrayLike, phi: ArrayLike
) -> ArrayLike:
    """Volume-element weighted density |ψ|^2 r^2 sinθ (acceptance target)."""
    r = np.asarray(r, dtype=np.float64)
    theta = np.asarray(theta, dtype=np.float64)
    dens = np.asarray(density_squared(n, l, m, r, theta, phi))
    return _unwrap(dens * r * r * np.sin(theta))


def radial_probability(n: int, l: int, r: ArrayLike) -> ArrayLike:
    """Radial distribution r^2 |R_{n,l}(r)|^2 (integrates to 1 over r >= 0)."""
    r = np.asarray(r, dtype=np.float64)
    return _unwrap(r * r * np.asarray(radial_density_squared(n, l, r)))


def expected_radius(n: int, l: int) -> float:
    """Closed-form ⟨r⟩ = (3n^2 - l(l+1)) / 2 in units of a0."""
    _check_nl(n, l)
    return 0.5 * (3.0 * n * n - l * (l + 1)) * A0


# -----------------------------------------------------------------------------
# Normalization checks (quadrature)
# -----------------------------------------------------------------------------

def default_r_max(n: int) -> float:
    """Radius beyond which |R_{n,l}|^2 is negligible for quadrature (e^{-2r/n} decay)."""
    return 8.0 * n * n + 20.0


def normalization_integral(
    state: QuantumState,
    *,
    r_max: Optional[float] = None,
    n_r: int = 2001,
    n_theta: int = 513,
) -> float:
    """∫∫∫ |ψ|^2 r^2 sinθ dr dθ dφ over the full domain, Simpson rule on an (r, θ) grid.

    The density does not depend on φ, so the φ integral contributes 2π exactly.
    """
    validate_state(state)
    if n_r < 5 or n_theta < 5:
        raise ValueError("n_r and n_theta must be >= 5 for Simpson quadrature.")
    r_max = default_r_max(state.n) if r_max is None else float(r_max)
    if not (r_max > 0.0 and np.isfinite(r_max)):
        raise ValueError("Require 0 < r_max < inf.")

    r = np.linspace(0.0, r_max, int(n_r), dtype=np.float64)
    theta = np.linspace(0.0, math.pi, int(n_theta), dtype=np.float64)
    RR, TT = np.meshgrid(r, theta, indexing="ij")

    integrand = probability_weight(state.n, state.l, state.m, RR, TT, 0.0)
    inner = integrate.simpson(integrand, x=theta, axis=1)
    return float(2.0 * math.pi * integrate.simpson(inner, x=r))


def validate_density(state: QuantumState, **kwargs: Any) -> Dict[str, Any]:
    """Quadrature report for the normalization of |ψ_{n,l,m}|^2."""
    r_max = kwargs.get("r_max")
    norm = normalization_integral(state, **kwargs)
    return {
        "state": state.label,
        "norm": norm,
        "norm_error": abs(norm - 1.0),
        "grid_info": {
            "r_max": float(default_r_max(state.n) if r_max is None else r_max),
            "n_r": int(kwargs.get("n_r", 2001)),
            "n_theta": int(kwargs.get("n_theta", 513)),
        },
    }


# -----------------------------------------------------------------------------
# __main__ sanity run: normalization of a few states
# -----------------------------------------------------------------------------

if __name__ == "__main__":
    print("Hydrogen orbital normalization check (Simpson quadrature)")
    for qn in (QuantumState(1, 0, 0), QuantumState(2, 1, 0), QuantumState(3, 2, -1), QuantumState(4, 3, 3)):
        rep = validate_density(qn)
        print(f"  {rep['state']:<14} norm = {rep['norm']:.8f}   |norm-1| = {rep['norm_error']:.2e}")
