import numpy as np
import pytest
from scipy import integrate

import orbital_rendering as rendering
from orbital_physics import QuantumState
from orbital_sampler import SamplerConfig, sample


@pytest.mark.parametrize(
    "given,expected",
    [((2, 5, 0), (2, 1, 0)), ((3, 1, -2), (3, 1, 1)), ((0, 0, 0), (1, 0, 0)),
     ((4, 3, -3), (4, 3, -3)), ((3, -1, 0), (3, 0, 0))],
)
def test_clamp_quantum_numbers(given, expected):
    assert rendering.clamp_quantum_numbers(*given) == expected


def test_render_config_defaults():
    cfg = rendering.RenderConfig()
    assert (cfg.n, cfg.l, cfg.m) == (2, 1, 0)
    assert cfg.num_points == 10000
    assert cfg.r_max == 20.0
    assert cfg.color_pos != cfg.color_neg


def test_lobe_fractions_sum_to_one():
    result = sample(QuantumState(3, 1, 0), 800, 30.0, rng=2)
    fr = rendering.lobe_fractions(result)
    assert fr["pos"] + fr["neg"] == pytest.approx(1.0)


def test_radial_histogram_is_normalized():
    result = sample(QuantumState(2, 0, 0), 2000, 25.0, rng=5)
    hist = rendering.radial_histogram(result, n_bins=50)
    assert hist["r_centers"].shape == (50,)
    assert int(np.sum(hist["counts"])) == 2000
    dr = 25.0 / 50
    assert float(np.sum(hist["p_r"]) * dr) == pytest.approx(1.0)


def test_radial_histogram_rejects_zero_bins():
    result = sample(QuantumState(1, 0, 0), 10, 10.0, rng=0)
    with pytest.raises(ValueError):
        rendering.radial_histogram(result, n_bins=0)


def test_analytic_curve_is_normalized():
    curve = rendering.analytic_radial_curve(QuantumState(1, 0, 0), 20.0)
    assert curve["r"].shape == (2001,)
    assert float(integrate.simpson(curve["p_r"], x=curve["r"])) == pytest.approx(1.0)
    assert float(curve["truncated_mass"]) == pytest.approx(1.0, abs=1e-6)


def test_analytic_curve_reports_truncation():
    # 3s density extends well past r = 5
    curve = rendering.analytic_radial_curve(QuantumState(3, 0, 0), 5.0)
    assert float(curve["truncated_mass"]) < 0.5


def test_histogram_tracks_analytic_curve():
    cfg = SamplerConfig(envelope_samples=20_000, envelope_scale=1.2)
    result = sample(QuantumState(1, 0, 0), 20_000, 10.0, rng=8, config=cfg)
    hist = rendering.radial_histogram(result, n_bins=40)
    curve = rendering.analytic_radial_curve(QuantumState(1, 0, 0), 10.0, n_points=801)
    expected = np.interp(hist["r_centers"], curve["r"], curve["p_r"])
    assert float(np.max(np.abs(hist["p_r"] - expected))) < 0.06
