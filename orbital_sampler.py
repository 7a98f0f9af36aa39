"""
orbital_sampler.py — Monte Carlo point clouds for hydrogen-like orbitals.

Two phases per request:
  1. Envelope: Pmax = max P(r,θ,φ) over `envelope_samples` uniform candidates
     (an empirical supremum, not a guaranteed bound).
  2. Rejection: draw candidates from the same proposal, accept iff U·Pmax < P,
     split accepted points by the sign of orbital_physics.signed_amplitude.

Proposal: r ~ U(0, r_max), θ = acos(1 - 2U) ("sphere") or θ ~ U(0, π) ("uniform"),
φ ~ U(0, 2π). Candidates are drawn in vectorised batches.

Nothing is cached between requests; each call is a pure function of its
inputs and the random generator it is handed.
"""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Literal, Optional, Sequence, Tuple, Union

import argparse
import json
import logging
import math
import sys
import time

import numpy as np

import orbital_physics as physics
from orbital_physics import InvalidQuantumState, OrbitalError, QuantumState  # noqa: F401

logger = logging.getLogger(__name__)

RngLike = Union[np.random.Generator, np.random.SeedSequence, int, None]

# Phase-1 candidates per request.
DEFAULT_ENVELOPE_SAMPLES: int = 500

# Acceptance rates below this are reported as a warning.
_LOW_ACCEPTANCE_WARN: float = 1e-3


# -----------------------------------------------------------------------------
# Errors
# -----------------------------------------------------------------------------

class InvalidSampleRequest(OrbitalError, ValueError):
    """num_points < 1 or r_max <= 0."""


class DegenerateEnvelope(OrbitalError, RuntimeError):
    """Estimated Pmax is zero or non-finite; rejection sampling cannot proceed."""


class SamplingBudgetExceeded(OrbitalError, RuntimeError):
    """The rejection loop drew more candidates than the configured cap."""


# -----------------------------------------------------------------------------
# Dataclasses
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class SampleRequest:
    """Full input of one sampling run."""
    state: QuantumState
    num_points: int
    r_max: float


@dataclass(frozen=True)
class SamplingStats:
    """Diagnostics of one sampling run.

    Attributes
    ----------
    p_max : float
        Envelope used for acceptance (after envelope_scale).
    envelope_samples : int
        Candidates evaluated in phase 1.
    attempts : int
        Candidates consumed in phase 2.
    accepted : int
        Points accepted (== num_points on success).
    exceedances : int
        Phase-2 candidates with P > p_max, i.e. evidence that the envelope
        under-estimates the true supremum.
    shards : int
        Number of independent rejection loops merged into the result.
    elapsed_s : float
        Wall time of the whole request.
    """
    p_max: float
    envelope_samples: int
    attempts: int
    accepted: int
    exceedances: int
    shards: int
    elapsed_s: float

    @property
    def acceptance_rate(self) -> float:
        return self.accepted / self.attempts if self.attempts > 0 else 0.0


@dataclass(frozen=True)
class SampleResult:
    """Point cloud split by lobe sign. Arrays are (k, 3), float64, read-only."""
    positions_pos: np.ndarray
    positions_neg: np.ndarray
    request: SampleRequest
    stats: SamplingStats

    @property
    def num_points(self) -> int:
        return int(self.positions_pos.shape[0] + self.positions_neg.shape[0])

    def flat(self) -> Tuple[np.ndarray, np.ndarray]:
        """Flat [x0, y0, z0, x1, ...] sequences for both lobes."""
        return self.positions_pos.ravel().copy(), self.positions_neg.ravel().copy()

    def all_points(self) -> np.ndarray:
        return np.concatenate([self.positions_pos, self.positions_neg], axis=0)


@dataclass
class SamplerConfig:
    """Sampling knobs. Defaults give the plain two-phase algorithm on one thread."""
    envelope_samples: int = DEFAULT_ENVELOPE_SAMPLES
    batch_size: int = 8192
    # Safety cap on phase-2 candidates, per requested point; None = unbounded.
    max_attempts_per_point: Optional[int] = 100_000
    workers: int = 1
    polar_proposal: Literal["sphere", "uniform"] = "sphere"
    envelope_scale: float = 1.0

    def validate(self) -> None:
        if not isinstance(self.envelope_samples, int) or self.envelope_samples < 1:
            raise ValueError("envelope_samples must be an integer >= 1.")
        if not isinstance(self.batch_size, int) or self.batch_size < 1:
            raise ValueError("batch_size must be an integer >= 1.")
        if self.max_attempts_per_point is not None and (
            not isinstance(self.max_attempts_per_point, int) or self.max_attempts_per_point < 1
        ):
            raise ValueError("max_attempts_per_point must be an integer >= 1 or None.")
        if not isinstance(self.workers, int) or self.workers < 1:
            raise ValueError("workers must be an integer >= 1.")
        if self.polar_proposal not in ("sphere", "uniform"):
            raise ValueError("polar_proposal must be 'sphere' or 'uniform'.")
        if not (self.envelope_scale > 0.0 and math.isfinite(self.envelope_scale)):
            raise ValueError("envelope_scale must be a positive finite number.")

    def max_attempts(self, num_points: int) -> Optional[int]:
        if self.max_attempts_per_point is None:
            return None
        return int(self.max_attempts_per_point) * int(num_points)


# -----------------------------------------------------------------------------
# Validation / helpers
# -----------------------------------------------------------------------------

def validate_request(request: SampleRequest) -> Dict[str, Any]:
    """Validate state and sizes. Raises InvalidQuantumState / InvalidSampleRequest."""
    dv = physics.validate_state(request.state)

    num_points = request.num_points
    if isinstance(num_points, bool) or not isinstance(num_points, (int, np.integer)) or num_points < 1:
        raise InvalidSampleRequest(f"num_points must be an integer >= 1. Got num_points={num_points!r}.")
    try:
        r_max = float(request.r_max)
    except (TypeError, ValueError) as e:
        raise InvalidSampleRequest(f"r_max must be a real number. Got r_max={request.r_max!r}.") from e
    if not (r_max > 0.0 and math.isfinite(r_max)):
        raise InvalidSampleRequest(f"r_max must be a positive finite number. Got r_max={request.r_max!r}.")

    dv["num_points"] = int(num_points)
    dv["r_max"] = r_max
    return dv


def _resolve_rng(rng: RngLike) -> np.random.Generator:
    if isinstance(rng, np.random.Generator):
        return rng
    return np.random.default_rng(rng)


def _split_points(num_points: int, workers: int) -> List[int]:
    """Split num_points into at most `workers` near-equal positive shard sizes."""
    k = max(1, min(int(workers), int(num_points)))
    base, rem = divmod(int(num_points), k)
    return [base + 1] * rem + [base] * (k - rem)


def draw_candidates(
    rng: np.random.Generator,
    size: int,
    r_max: float,
    polar_proposal: Literal["sphere", "uniform"] = "sphere",
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Draw `size` candidates (r, θ, φ) from the proposal distribution."""
    r = rng.random(size) * r_max
    if polar_proposal == "sphere":
        theta = np.arccos(1.0 - 2.0 * rng.random(size))
    else:
        theta = rng.random(size) * math.pi
    phi = rng.random(size) * (2.0 * math.pi)
    return r, theta, phi


# -----------------------------------------------------------------------------
# Phase 1: envelope
# -----------------------------------------------------------------------------

def estimate_pmax(
    state: QuantumState,
    r_max: float,
    rng: RngLike = None,
    *,
    samples: int = DEFAULT_ENVELOPE_SAMPLES,
    polar_proposal: Literal["sphere", "uniform"] = "sphere",
) -> float:
    """Empirical maximum of probability_weight over `samples` proposal draws."""
    physics.validate_state(state)
    if samples < 1:
        raise ValueError("samples must be >= 1.")
    gen = _resolve_rng(rng)
    r, theta, phi = draw_candidates(gen, int(samples), float(r_max), polar_proposal)
    p = np.asarray(physics.probability_weight(state.n, state.l, state.m, r, theta, phi))
    return float(np.max(p))


# -----------------------------------------------------------------------------
# Phase 2: rejection loop
# -----------------------------------------------------------------------------

def _rejection_shard(
    state: QuantumState,
    r_max: float,
    p_max: float,
    target: int,
    rng: np.random.Generator,
    batch_size: int,
    polar_proposal: Literal["sphere", "uniform"],
    max_attempts: Optional[int],
) -> Tuple[np.ndarray, np.ndarray, int, int]:
    """Accept exactly `target` points. Returns (pos, neg, attempts, exceedances)."""
    n, l, m = state.n, state.l, state.m
    pos_chunks: List[np.ndarray] = []
    neg_chunks: List[np.ndarray] = []
    accepted = 0
    attempts = 0
    exceedances = 0

    while accepted < target:
        if max_attempts is not None and attempts >= max_attempts:
            raise SamplingBudgetExceeded(
                f"{state.label}: accepted {accepted}/{target} points after {attempts} candidates "
                f"(cap {max_attempts}). Increase r_max coverage, envelope_samples or the cap."
            )
        size = batch_size if max_attempts is None else min(batch_size, max_attempts - attempts)

        r, theta, phi = draw_candidates(rng, size, r_max, polar_proposal)
        P = np.asarray(physics.probability_weight(n, l, m, r, theta, phi))
        U = rng.random(size) * p_max

        idx = np.flatnonzero(U < P)
        need = target - accepted
        used = size
        if idx.size > need:
            idx = idx[:need]
            used = int(idx[-1]) + 1
        attempts += used
        exceedances += int(np.count_nonzero(P[:used] > p_max))
        if idx.size == 0:
            continue

        s = np.asarray(physics.signed_amplitude(n, l, m, r[idx], theta[idx], phi[idx]))
        xyz = physics.spherical_to_cartesian(r[idx], theta[idx], phi[idx])
        positive = s >= 0.0
        pos_chunks.append(xyz[positive])
        neg_chunks.append(xyz[~positive])
        accepted += int(idx.size)

    pos = np.concatenate(pos_chunks, axis=0) if pos_chunks else np.empty((0, 3), dtype=np.float64)
    neg = np.concatenate(neg_chunks, axis=0) if neg_chunks else np.empty((0, 3), dtype=np.float64)
    return pos, neg, attempts, exceedances


# -----------------------------------------------------------------------------
# Public API
# -----------------------------------------------------------------------------

def sample_request(
    request: SampleRequest,
    *,
    rng: RngLike = None,
    config: Optional[SamplerConfig] = None,
) -> SampleResult:
    """Run envelope estimation + rejection sampling for one request.

    Raises
    ------
    InvalidQuantumState, InvalidSampleRequest
        Before any random draw.
    DegenerateEnvelope
        If the estimated Pmax is 0 or non-finite.
    SamplingBudgetExceeded
        If the candidate cap is hit before num_points are accepted.
    """
    cfg = config if config is not None else SamplerConfig()
    cfg.validate()
    dv = validate_request(request)
    state = request.state
    num_points = dv["num_points"]
    r_max = dv["r_max"]

    gen = _resolve_rng(rng)
    t0 = time.perf_counter()

    p_max = estimate_pmax(
        state, r_max, gen, samples=cfg.envelope_samples, polar_proposal=cfg.polar_proposal
    ) * cfg.envelope_scale
    if not math.isfinite(p_max) or p_max <= 0.0:
        raise DegenerateEnvelope(
            f"{state.label}: estimated Pmax={p_max!r} over r_max={r_max:g} with "
            f"{cfg.envelope_samples} samples. The density is numerically zero on the sampled domain."
        )
    logger.debug("%s: Pmax=%.6e (envelope_samples=%d)", state.label, p_max, cfg.envelope_samples)

    shard_sizes = _split_points(num_points, cfg.workers)

    if len(shard_sizes) == 1:
        parts = [
            _rejection_shard(
                state, r_max, p_max, num_points, gen,
                cfg.batch_size, cfg.polar_proposal, cfg.max_attempts(num_points),
            )
        ]
    else:
        logger.debug("%s: %d shards %s", state.label, len(shard_sizes), shard_sizes)
        children = gen.spawn(len(shard_sizes))
        with ThreadPoolExecutor(max_workers=len(shard_sizes)) as executor:
            futures = [
                executor.submit(
                    _rejection_shard,
                    state, r_max, p_max, target, child,
                    cfg.batch_size, cfg.polar_proposal, cfg.max_attempts(target),
                )
                for target, child in zip(shard_sizes, children)
            ]
            parts = [f.result() for f in futures]

    positions_pos = np.ascontiguousarray(np.concatenate([p[0] for p in parts], axis=0), dtype=np.float64)
    positions_neg = np.ascontiguousarray(np.concatenate([p[1] for p in parts], axis=0), dtype=np.float64)
    positions_pos.setflags(write=False)
    positions_neg.setflags(write=False)

    stats = SamplingStats(
        p_max=float(p_max),
        envelope_samples=int(cfg.envelope_samples),
        attempts=int(sum(p[2] for p in parts)),
        accepted=int(positions_pos.shape[0] + positions_neg.shape[0]),
        exceedances=int(sum(p[3] for p in parts)),
        shards=len(parts),
        elapsed_s=float(time.perf_counter() - t0),
    )

    logger.info(
        "%s: %d points (+%d / -%d) in %.3fs, acceptance %.4f",
        state.label, stats.accepted, positions_pos.shape[0], positions_neg.shape[0],
        stats.elapsed_s, stats.acceptance_rate,
    )
    if stats.exceedances:
        logger.warning(
            "%s: %d candidates exceeded the estimated Pmax; the envelope under-estimates the "
            "supremum and the densest regions are under-sampled.",
            state.label, stats.exceedances,
        )
    if stats.acceptance_rate < _LOW_ACCEPTANCE_WARN:
        logger.warning("%s: low acceptance rate %.2e", state.label, stats.acceptance_rate)

    return SampleResult(positions_pos=positions_pos, positions_neg=positions_neg, request=request, stats=stats)


def sample(
    state: QuantumState,
    num_points: int,
    r_max: float,
    *,
    rng: RngLike = None,
    config: Optional[SamplerConfig] = None,
) -> SampleResult:
    """Sample `num_points` points of |ψ_{n,l,m}|^2 inside r <= r_max, split by lobe sign."""
    return sample_request(SampleRequest(state=state, num_points=num_points, r_max=r_max), rng=rng, config=config)


class OrbitalSampler:
    """Stateless façade: holds a SamplerConfig and an optional fixed seed.

    With `seed` set, every call starts from the same generator state, so
    identical inputs give identical clouds.
    """

    def __init__(self, config: Optional[SamplerConfig] = None, seed: Optional[int] = None) -> None:
        self.config: SamplerConfig = config if config is not None else SamplerConfig()
        self.config.validate()
        self.seed: Optional[int] = seed

    def sample(self, state: QuantumState, num_points: int, r_max: float, *, rng: RngLike = None) -> SampleResult:
        return sample(
            state, num_points, r_max,
            rng=rng if rng is not None else self.seed,
            config=self.config,
        )


# -----------------------------------------------------------------------------
# JSON export
# -----------------------------------------------------------------------------

def result_to_dict(result: SampleResult) -> Dict[str, Any]:
    st = result.request.state
    return {
        "n": st.n,
        "l": st.l,
        "m": st.m,
        "num_points": result.num_points,
        "r_max": float(result.request.r_max),
        "positions_pos": result.positions_pos.tolist(),
        "positions_neg": result.positions_neg.tolist(),
        "stats": asdict(result.stats),
    }


def result_from_dict(data: Dict[str, Any]) -> SampleResult:
    state = QuantumState(n=int(data["n"]), l=int(data["l"]), m=int(data["m"]))
    pos = np.asarray(data["positions_pos"], dtype=np.float64).reshape(-1, 3)
    neg = np.asarray(data["positions_neg"], dtype=np.float64).reshape(-1, 3)
    pos.setflags(write=False)
    neg.setflags(write=False)
    request = SampleRequest(state=state, num_points=int(pos.shape[0] + neg.shape[0]), r_max=float(data["r_max"]))
    return SampleResult(positions_pos=pos, positions_neg=neg, request=request, stats=SamplingStats(**data["stats"]))


def save_points_json(result: SampleResult, path: str) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(result_to_dict(result), f)


def load_points_json(path: str) -> SampleResult:
    with open(path, "r", encoding="utf-8") as f:
        return result_from_dict(json.load(f))


# -----------------------------------------------------------------------------
# CLI
# -----------------------------------------------------------------------------

def main(argv: Optional[Sequence[str]] = None) -> int:
    p = argparse.ArgumentParser(description="Sample a hydrogen-like orbital point cloud split by lobe sign.")
    p.add_argument("--n", type=int, default=2)
    p.add_argument("--l", type=int, default=1)
    p.add_argument("--m", type=int, default=0)
    p.add_argument("--points", type=int, default=10000)
    p.add_argument("--rmax", type=float, default=20.0)
    p.add_argument("--seed", type=int, default=None)
    p.add_argument("--envelope-samples", type=int, default=DEFAULT_ENVELOPE_SAMPLES)
    p.add_argument("--workers", type=int, default=1)
    p.add_argument("--max-attempts-per-point", type=int, default=100_000,
                   help="candidate cap per requested point (0 disables the cap)")
    p.add_argument("--polar-proposal", choices=["sphere", "uniform"], default="sphere")
    p.add_argument("--out", type=str, default=None, help="write points as JSON to this path")
    p.add_argument("-v", "--verbose", action="store_true")
    args = p.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    cfg = SamplerConfig(
        envelope_samples=args.envelope_samples,
        workers=args.workers,
        max_attempts_per_point=args.max_attempts_per_point or None,
        polar_proposal=args.polar_proposal,
    )
    state = QuantumState(n=args.n, l=args.l, m=args.m)

    try:
        cfg.validate()
        result = sample(state, args.points, args.rmax, rng=args.seed, config=cfg)
    except (OrbitalError, ValueError) as e:
        logger.error("%s", e)
        return 2

    st = result.stats
    print(f"{state.label}: {result.num_points} points  "
          f"(+{result.positions_pos.shape[0]} / -{result.positions_neg.shape[0]})")
    print(f"  Pmax = {st.p_max:.6e}  attempts = {st.attempts}  acceptance = {st.acceptance_rate:.4f}")
    print(f"  exceedances = {st.exceedances}  shards = {st.shards}  time = {st.elapsed_s:.3f}s")

    if args.out:
        save_points_json(result, args.out)
        print(f"Saved to: {args.out}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
