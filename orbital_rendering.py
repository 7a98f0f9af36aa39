"""
orbital_rendering.py — Render-side configuration and post-processing of point clouds.

IMPORTANT:
- Everything here consumes a finished orbital_sampler.SampleResult; nothing feeds back
  into sampling.
- Histograms are render-only estimates; exact radial curves come from orbital_physics.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple

import numpy as np
from scipy import integrate

import orbital_physics as physics
from orbital_sampler import SampleResult

RGB = Tuple[float, float, float]


@dataclass(frozen=True)
class RenderConfig:
    """Viewer configuration passed explicitly to the rendering collaborator."""
    point_size: float = 3.0
    color_pos: RGB = (1.0, 0.0, 0.0)
    color_neg: RGB = (0.0, 1.0, 1.0)
    opacity: float = 0.6
    background: RGB = (0.0, 0.0, 0.0)
    # Initial controls
    n: int = 2
    l: int = 1
    m: int = 0
    num_points: int = 10000
    r_max: float = 20.0
    n_max: int = 5
    radial_bins: int = 80


def clamp_quantum_numbers(n: int, l: int, m: int) -> Tuple[int, int, int]:
    """Control-panel rules: n >= 1, l <= n-1, and |m| > l resets m to l."""
    n = max(1, int(n))
    l = min(max(0, int(l)), n - 1)
    m = int(m)
    if abs(m) > l:
        m = l
    return n, l, m


def lobe_fractions(result: SampleResult) -> Dict[str, float]:
    """Share of points in each lobe."""
    total = result.num_points
    if total == 0:
        return {"pos": 0.0, "neg": 0.0}
    return {
        "pos": result.positions_pos.shape[0] / total,
        "neg": result.positions_neg.shape[0] / total,
    }


def radial_histogram(result: SampleResult, n_bins: int = 80) -> Dict[str, np.ndarray]:
    """Normalized histogram of sampled radii on [0, r_max] (render-only).

    Returns dict with r_centers, p_r (integrates to 1 over [0, r_max]), counts.
    """
    if n_bins < 1:
        raise ValueError("n_bins must be >= 1")
    r_max = float(result.request.r_max)
    pts = result.all_points()
    radii = np.linalg.norm(pts, axis=1) if pts.size else np.zeros(0, dtype=np.float64)

    edges = np.linspace(0.0, r_max, int(n_bins) + 1, dtype=np.float64)
    counts, _ = np.histogram(radii, bins=edges)
    dr = np.diff(edges)
    total = float(np.sum(counts))
    p_r = counts / (total * dr) if total > 0 else np.zeros_like(dr)
    return {
        "r_centers": 0.5 * (edges[:-1] + edges[1:]),
        "p_r": p_r,
        "counts": counts,
    }


def analytic_radial_curve(state: physics.QuantumState, r_max: float, n_points: int = 2001) -> Dict[str, np.ndarray]:
    """Exact r^2 |R|^2 on [0, r_max], renormalized to the truncated domain.

    Comparable with radial_histogram of a cloud sampled with the same r_max.
    """
    physics.validate_state(state)
    r = np.linspace(0.0, float(r_max), int(n_points), dtype=np.float64)
    p = np.asarray(physics.radial_probability(state.n, state.l, r))
    mass = float(integrate.simpson(p, x=r))
    if mass <= 0.0 or not np.isfinite(mass):
        raise ValueError(f"Radial probability inside r_max={r_max:g} is zero for {state.label}.")
    return {"r": r, "p_r": p / mass, "truncated_mass": np.float64(mass)}
