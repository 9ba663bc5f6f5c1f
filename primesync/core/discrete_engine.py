# ═══════════════════════════════════════════════════════════════════════════════
# PART 4: DISCRETE PHASE-SYNCHRONIZATION ENGINE
# Design: P1 (Dynamical Systems) + N1 (Number Theory)
# Implementation: I2 (Numerics)
# ═══════════════════════════════════════════════════════════════════════════════

"""
Quantized counterpart of the continuous network.

Phases live on M integer bins, coupling is a small signed integer matrix,
and coherence is the share of active oscillators sitting in the most
populated bin. On top of the phase dynamics:

    Hebbian learning   aligned, active pairs strengthen their coupling
    SMF                16-axis decaying summary of which primes are active
    Lockup detection   coherence that stops varying over a window

Per tick:

    histogram -> coherence -> phase update -> amplitude decay
    -> Hebbian (if coherent) -> SMF -> metrics
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Union

import numpy as np

from primesync.core.phase_math import normalized_entropy
from primesync.core.primes import PrimeSlot, assign_primes

logger = logging.getLogger(__name__)

SMF_AXES = 16
COUPLING_LIMIT = 127

RandomSource = Union[np.random.Generator, int, None]


class PresetError(ValueError):
    """Raised when a configuration preset name is not known."""
    pass


@dataclass(frozen=True)
class DiscreteConfig:
    """Configuration for a discrete engine. Immutable after construction."""
    n_oscillators: int = 16
    phase_resolution: int = 1000        # M, number of phase bins
    amplitude_max: float = 100.0
    amplitude_decay: float = 0.95       # delta, multiplier per tick
    active_threshold: float = 0.5
    base_boost_amount: float = 10.0
    coupling_strength: int = 50         # K
    coherence_threshold: float = 0.15
    hebbian_learning_rate: float = 0.01  # eta
    enable_lockup_recovery: bool = True
    lockup_window: int = 50
    lockup_threshold: float = 0.001     # variance below this = locked up

    smf_decay: float = 0.95
    smf_gain: float = 0.1
    randomize_spread: float = 4.0

    @classmethod
    def default(cls) -> "DiscreteConfig":
        return cls()

    @classmethod
    def fast(cls) -> "DiscreteConfig":
        """Fewer oscillators, coarser phase resolution."""
        return cls(n_oscillators=8, phase_resolution=500)

    @classmethod
    def precise(cls) -> "DiscreteConfig":
        """More oscillators, finer phase resolution, slower learning."""
        return cls(n_oscillators=32, phase_resolution=2000, hebbian_learning_rate=0.005)

    @classmethod
    def from_preset(cls, name: str) -> "DiscreteConfig":
        try:
            factory = PRESETS[name]
        except KeyError:
            raise PresetError(
                f"Unknown preset: {name!r} (expected one of {sorted(PRESETS)})"
            ) from None
        return factory()


PRESETS: Dict[str, Callable[[], DiscreteConfig]] = {
    "default": DiscreteConfig.default,
    "fast": DiscreteConfig.fast,
    "precise": DiscreteConfig.precise,
}


@dataclass(frozen=True)
class TickResult:
    """Outcome of one discrete tick."""
    fired: bool
    coherence: float
    entropy: float
    stabilization_margin: float     # coherence_threshold - coherence
    active_count: int
    dominant_phase_bin: int
    peak_prime: int
    dominant_semantic_axis: int

    @classmethod
    def empty(cls) -> "TickResult":
        return cls(False, 0.0, 1.0, 0.0, 0, 0, 0, 0)

    def as_dict(self) -> dict:
        return {
            "fired": self.fired,
            "coherence": self.coherence,
            "entropy": self.entropy,
            "stabilization_margin": self.stabilization_margin,
            "active_count": self.active_count,
            "dominant_phase_bin": self.dominant_phase_bin,
            "peak_prime": self.peak_prime,
            "dominant_semantic_axis": self.dominant_semantic_axis,
        }


class DiscreteEngine:
    """
    Fixed-size array of integer-phase oscillators.

    The engine does nothing until start() is called. Boost and query
    operations silently ignore unknown indices and primes; out-of-range
    reads return 0.
    """

    def __init__(self, config: Optional[DiscreteConfig] = None, rng: RandomSource = None):
        self.config = config or DiscreteConfig()
        self.rng = rng if isinstance(rng, np.random.Generator) else np.random.default_rng(rng)
        cfg = self.config
        n = cfg.n_oscillators

        self._slots: List[PrimeSlot] = assign_primes(n)
        self._primes: np.ndarray = np.array([s.prime for s in self._slots], dtype=np.int64)
        self._canonical: np.ndarray = np.array([s.is_canonical for s in self._slots], dtype=bool)

        # Natural increment per tick
        self._frequencies: np.ndarray = self._primes % cfg.phase_resolution

        self._phases: np.ndarray = self._random_phases()
        self._amplitudes: np.ndarray = np.zeros(n)
        self._coupling: np.ndarray = self._default_coupling()
        self._smf: np.ndarray = np.zeros(SMF_AXES)

        self._coherence_history: np.ndarray = np.zeros(cfg.lockup_window)
        self._history_index: int = 0

        self._running: bool = False
        self._tick_count: int = 0
        self._last_coherence: float = 0.0
        self._last_result: TickResult = TickResult.empty()

    # ── Properties ──────────────────────────────────────────────────────────

    @property
    def n(self) -> int:
        return self.config.n_oscillators

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def tick_count(self) -> int:
        return self._tick_count

    @property
    def coherence(self) -> float:
        """Coherence measured by the most recent tick."""
        return self._last_coherence

    @property
    def last_result(self) -> TickResult:
        return self._last_result

    @property
    def phases(self) -> np.ndarray:
        return self._phases.copy()

    @property
    def amplitudes(self) -> np.ndarray:
        return self._amplitudes.copy()

    @property
    def primes(self) -> np.ndarray:
        return self._primes.copy()

    @property
    def prime_slots(self) -> List[PrimeSlot]:
        return list(self._slots)

    @property
    def smf(self) -> np.ndarray:
        return self._smf.copy()

    @property
    def coupling(self) -> np.ndarray:
        return self._coupling.copy()

    @property
    def active_mask(self) -> np.ndarray:
        return self._amplitudes > self.config.active_threshold

    # ── Lifecycle ───────────────────────────────────────────────────────────

    def start(self) -> None:
        self._running = True

    def stop(self) -> None:
        self._running = False

    def reset(self) -> None:
        """Fresh phases, zero amplitudes and SMF, default coupling, tick 0."""
        self._phases = self._random_phases()
        self._amplitudes[:] = 0.0
        self._smf[:] = 0.0
        self._coupling = self._default_coupling()
        self._coherence_history[:] = 0.0
        self._history_index = 0
        self._tick_count = 0
        self._last_coherence = 0.0
        self._last_result = TickResult.empty()
        logger.debug("discrete engine reset (n=%d, M=%d)", self.n, self.config.phase_resolution)

    # ── Tick ────────────────────────────────────────────────────────────────

    def tick(self) -> TickResult:
        """Advance one virtual step. No-op unless started."""
        if not self._running:
            return TickResult.empty()

        cfg = self.config
        n = cfg.n_oscillators
        M = cfg.phase_resolution

        # Histogram coherence C(t) = max(h) / sum(h) over active oscillators
        active = self.active_mask
        total_weight = int(np.sum(active))
        if total_weight > 0:
            histogram = np.bincount(self._phases[active], minlength=M)
            dominant_phase = int(np.argmax(histogram))
            coherence = float(histogram[dominant_phase]) / total_weight
        else:
            dominant_phase = 0
            coherence = 0.0
        self._last_coherence = coherence

        self._coherence_history[self._history_index] = coherence
        self._history_index = (self._history_index + 1) % cfg.lockup_window

        self._update_phases(active)
        self._amplitudes *= cfg.amplitude_decay

        if coherence >= cfg.coherence_threshold:
            self._apply_hebbian()

        self._update_smf()

        active_after = self.active_mask
        peak_prime = 0
        if n > 0 and np.max(self._amplitudes) > 0:
            peak_prime = int(self._primes[np.argmax(self._amplitudes)])
        smf_dominant = int(np.argmax(self._smf)) if np.max(self._smf) > 0 else 0

        self._tick_count += 1
        self._last_result = TickResult(
            fired=coherence >= cfg.coherence_threshold,
            coherence=coherence,
            entropy=normalized_entropy(self._smf, SMF_AXES, floor=0.001),
            stabilization_margin=cfg.coherence_threshold - coherence,
            active_count=int(np.sum(active_after)),
            dominant_phase_bin=dominant_phase,
            peak_prime=peak_prime,
            dominant_semantic_axis=smf_dominant,
        )
        return self._last_result

    def _update_phases(self, active: np.ndarray) -> None:
        """
        phi_i <- (phi_i + delta_i + trunc(K/N * sum_j J_ij sin(2pi (phi_j - phi_i)/M))) mod M

        Updated in place in index order, so oscillator i already sees the
        new phases of 0..i-1.
        """
        cfg = self.config
        n = cfg.n_oscillators
        M = cfg.phase_resolution

        # Only active neighbours pull; diagonal of J is zero
        weights = self._coupling.astype(float) * active[np.newaxis, :]
        phases = self._phases
        for i in range(n):
            sin_term = np.sin(2 * np.pi * (phases - phases[i]) / M)
            couple = float(np.sum(weights[i] * sin_term))
            coupling_term = int(np.trunc(cfg.coupling_strength * couple / n))
            phases[i] = (phases[i] + self._frequencies[i] + coupling_term + M) % M

    def _apply_hebbian(self) -> None:
        """J_ij += round(eta * A_i * A_j) for active pairs within M/10 of each other."""
        cfg = self.config
        M = cfg.phase_resolution
        idx = np.flatnonzero(self.active_mask)
        if len(idx) < 2:
            return

        rows, cols = np.triu_indices(len(idx), k=1)
        i, j = idx[rows], idx[cols]

        diff = np.abs(self._phases[i] - self._phases[j])
        aligned = (diff * 10 < M) | (diff * 10 > 9 * M)
        i, j = i[aligned], j[aligned]
        if len(i) == 0:
            return

        delta = np.round(cfg.hebbian_learning_rate * self._amplitudes[i] * self._amplitudes[j])
        updated = np.clip(
            self._coupling[i, j].astype(np.int64) + delta.astype(np.int64),
            -COUPLING_LIMIT, COUPLING_LIMIT,
        ).astype(np.int8)
        self._coupling[i, j] = updated
        self._coupling[j, i] = updated

    def _update_smf(self) -> None:
        cfg = self.config
        self._smf *= cfg.smf_decay

        active = self.active_mask
        axes = self._primes[active] % SMF_AXES
        np.add.at(self._smf, axes, self._amplitudes[active] * cfg.smf_gain)

        total = float(np.sum(self._smf))
        if total > 1.0:
            self._smf /= total

    # ── Control ─────────────────────────────────────────────────────────────

    def boost_index(self, index: int, amount: Optional[float] = None) -> None:
        """Raise one amplitude, clamped to amplitude_max. Unknown index is ignored."""
        if amount is None:
            amount = self.config.base_boost_amount
        if 0 <= index < self.n:
            self._amplitudes[index] = min(
                self.config.amplitude_max, self._amplitudes[index] + amount
            )

    def boost_prime(self, prime: int, amount: Optional[float] = None) -> None:
        matches = np.flatnonzero(self._primes == prime)
        if len(matches) > 0:
            self.boost_index(int(matches[0]), amount)

    def dampen_all(self, factor: float = 0.5) -> None:
        self._amplitudes *= factor

    def randomize_coupling(self) -> None:
        """Replace J with symmetric random values in {-1, 0, 1}."""
        n = self.n
        rows, cols = np.triu_indices(n, k=1)
        values = np.trunc(
            (self.rng.random(len(rows)) - 0.5) * self.config.randomize_spread
        ).astype(np.int8)

        coupling = np.zeros((n, n), dtype=np.int8)
        coupling[rows, cols] = values
        coupling[cols, rows] = values
        self._coupling = coupling
        logger.debug("coupling randomized (n=%d)", n)

    def reset_coupling(self) -> None:
        self._coupling = self._default_coupling()

    def is_locked_up(self) -> bool:
        """True once the window is full and coherence variance is below threshold."""
        cfg = self.config
        if self._tick_count < cfg.lockup_window:
            return False
        return float(np.var(self._coherence_history)) < cfg.lockup_threshold

    def recover_from_lockup(self) -> bool:
        """
        Caller-triggered remedy: randomize coupling if recovery is enabled
        and the engine is locked up. Returns whether anything was done.
        """
        if not self.config.enable_lockup_recovery or not self.is_locked_up():
            return False
        logger.debug("lockup detected at tick %d, randomizing coupling", self._tick_count)
        self.randomize_coupling()
        return True

    # ── Accessors ───────────────────────────────────────────────────────────

    def get_phase(self, index: int) -> int:
        if 0 <= index < self.n:
            return int(self._phases[index])
        return 0

    def get_amplitude(self, index: int) -> float:
        if 0 <= index < self.n:
            return float(self._amplitudes[index])
        return 0.0

    def get_prime(self, index: int) -> int:
        if 0 <= index < self.n:
            return int(self._primes[index])
        return 0

    def get_smf_axis(self, axis: int) -> float:
        if 0 <= axis < SMF_AXES:
            return float(self._smf[axis])
        return 0.0

    def get_coupling(self, i: int, j: int) -> int:
        if 0 <= i < self.n and 0 <= j < self.n:
            return int(self._coupling[i, j])
        return 0

    def get_active_count(self, threshold: Optional[float] = None) -> int:
        if threshold is None:
            threshold = self.config.active_threshold
        return int(np.sum(self._amplitudes > threshold))

    def get_state(self) -> dict:
        """Plain-value snapshot for inspection and formatting."""
        return {
            "n": self.n,
            "phase_resolution": self.config.phase_resolution,
            "running": self._running,
            "tick_count": self._tick_count,
            "coherence": self._last_coherence,
            "locked_up": self.is_locked_up(),
            "primes": self._primes.tolist(),
            "phases": self._phases.tolist(),
            "amplitudes": self._amplitudes.tolist(),
            "smf": self._smf.tolist(),
            "last_result": self._last_result.as_dict(),
        }

    # ── Internal ────────────────────────────────────────────────────────────

    def _random_phases(self) -> np.ndarray:
        cfg = self.config
        return self.rng.integers(0, cfg.phase_resolution, size=cfg.n_oscillators, dtype=np.int64)

    def _default_coupling(self) -> np.ndarray:
        """2 between canonical slots, 1 when one side is canonical, 0 otherwise."""
        canonical = self._canonical.astype(np.int8)
        coupling = (canonical[:, np.newaxis] + canonical[np.newaxis, :]).astype(np.int8)
        np.fill_diagonal(coupling, 0)
        return coupling


# ── Factories ────────────────────────────────────────────────────────────────


def create_discrete_engine(
    config: Optional[DiscreteConfig] = None, rng: RandomSource = None
) -> DiscreteEngine:
    return DiscreteEngine(config or DiscreteConfig.default(), rng=rng)


def create_fast_discrete_engine(rng: RandomSource = None) -> DiscreteEngine:
    return create_discrete_engine(DiscreteConfig.fast(), rng=rng)


def create_precise_discrete_engine(rng: RandomSource = None) -> DiscreteEngine:
    return create_discrete_engine(DiscreteConfig.precise(), rng=rng)
