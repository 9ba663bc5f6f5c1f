# ═══════════════════════════════════════════════════════════════════════════════
# PART 3: CONTINUOUS SYNCHRONIZATION NETWORK
# Design: P1 (Dynamical Systems) | Implementation: I2 (Numerics)
# ═══════════════════════════════════════════════════════════════════════════════

"""
Continuous-phase Kuramoto network of prime-indexed oscillators.

Each oscillator runs at an incommensurate natural frequency
f = 1 + ln(p)/10. Coupling is the classic pairwise sine rule, but its
strength adapts to an online Lyapunov proxy: when recent phase steps look
divergent, coupling is scaled up to pull the network back together.

One call to advance() is one full pass:

    mean phase, energy -> Lyapunov proxy -> adaptive K
    -> per oscillator: history push, free run, Kuramoto pull, decay
    -> coherence / entropy / stability

total_energy is the amplitude sum going into the step; entropy is taken
over the decayed amplitudes.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, List, Optional

import numpy as np

from primesync.core.phase_math import order_parameter, phase_distance, shannon_entropy, wrap_phase
from primesync.core.twist import twist_angle, twist_rate

logger = logging.getLogger(__name__)


@dataclass
class ContinuousSyncConfig:
    """Configuration for the continuous network."""
    coupling_base: float = 0.008            # K before adaptation
    simulation_speed: float = 0.04          # default dt per advance()
    dampening: float = 0.997                # amplitude multiplier per step
    lyapunov_stable_threshold: float = -0.05
    resonance_threshold: float = 0.35       # coherence above this = resonant
    history_capacity: int = 50
    min_divergence: float = 0.001           # phase steps below this are skipped
    instability_gain: float = 2.0           # K scale per unit of excess exponent


@dataclass
class PrimeOscillator:
    """One prime-indexed oscillator with bounded phase history."""
    prime: int
    amplitude: float
    phase: float
    history_capacity: int = 50
    frequency: float = field(init=False)
    twist_angle: float = field(init=False)
    twist_rate: float = field(init=False)
    accumulated_twist: float = field(init=False, default=0.0)
    phase_history: Deque[float] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.frequency = 1.0 + np.log(self.prime) / 10.0
        self.twist_angle = twist_angle(self.prime)
        self.twist_rate = twist_rate(self.prime, 1.0)
        self.phase_history = deque(maxlen=self.history_capacity)

    @property
    def value(self) -> float:
        return float(np.sin(self.phase) * self.amplitude)

    def lyapunov_proxy(self, min_divergence: float = 0.001) -> Optional[float]:
        """
        Mean log phase step over the recorded history.

        Steps are wrap-folded into [0, pi]; steps at or below
        ``min_divergence`` are skipped. None with fewer than 2 entries.
        """
        if len(self.phase_history) < 2:
            return None
        history = np.fromiter(self.phase_history, dtype=float)
        steps = phase_distance(history[1:], history[:-1])
        steps = steps[steps > min_divergence]
        return float(np.sum(np.log(steps)) / len(history))


@dataclass
class NetworkMetrics:
    """Aggregate snapshot returned by SyncNetwork.advance()."""
    coherence: float
    total_energy: float
    entropy: float
    lyapunov_exponent: float
    is_stable: bool
    mean_phase: float = 0.0
    is_resonant: bool = False

    def as_dict(self) -> dict:
        return {
            "coherence": self.coherence,
            "total_energy": self.total_energy,
            "entropy": self.entropy,
            "lyapunov_exponent": self.lyapunov_exponent,
            "is_stable": self.is_stable,
            "mean_phase": self.mean_phase,
            "is_resonant": self.is_resonant,
        }


class SyncNetwork:
    """
    Engine-owned collection of continuous prime oscillators.

    Oscillators are added one at a time and only ever removed all together
    via clear(). Each owning pipeline creates its own instance.
    """

    def __init__(self, config: Optional[ContinuousSyncConfig] = None):
        self.config = config or ContinuousSyncConfig()
        self._oscillators: List[PrimeOscillator] = []
        self._step_count: int = 0
        self.last_metrics: Optional[NetworkMetrics] = None

    # ── Properties ──────────────────────────────────────────────────────────

    @property
    def n(self) -> int:
        return len(self._oscillators)

    @property
    def phases(self) -> np.ndarray:
        return np.array([o.phase for o in self._oscillators], dtype=float)

    @property
    def amplitudes(self) -> np.ndarray:
        return np.array([o.amplitude for o in self._oscillators], dtype=float)

    @property
    def primes(self) -> np.ndarray:
        return np.array([o.prime for o in self._oscillators], dtype=np.int64)

    @property
    def coherence(self) -> float:
        """Current order parameter (0 for an empty network)."""
        return order_parameter(self.phases)[0]

    @property
    def step_count(self) -> int:
        return self._step_count

    # ── Collection ──────────────────────────────────────────────────────────

    def add_oscillator(self, prime: int, amplitude: float, phase: float) -> None:
        """Append an oscillator. A prime already in the network is ignored."""
        if any(o.prime == prime for o in self._oscillators):
            logger.debug("prime %d already present, not re-added", prime)
            return
        self._oscillators.append(
            PrimeOscillator(
                prime=prime,
                amplitude=amplitude,
                phase=float(wrap_phase(phase)),
                history_capacity=self.config.history_capacity,
            )
        )

    def clear(self) -> None:
        self._oscillators = []
        self.last_metrics = None

    clear_oscillators = clear

    def excite(self, index: int, amount: float) -> None:
        """Add to one oscillator's amplitude. Unknown index is ignored."""
        if 0 <= index < self.n:
            self._oscillators[index].amplitude += amount

    def get_phase(self, index: int) -> float:
        if 0 <= index < self.n:
            return self._oscillators[index].phase
        return 0.0

    def get_amplitude(self, index: int) -> float:
        if 0 <= index < self.n:
            return self._oscillators[index].amplitude
        return 0.0

    def get_prime(self, index: int) -> int:
        if 0 <= index < self.n:
            return self._oscillators[index].prime
        return 0

    # ── Dynamics ────────────────────────────────────────────────────────────

    def lyapunov_exponent(self) -> float:
        """Network exponent: mean proxy over oscillators with enough history."""
        proxies = [
            p for p in (o.lyapunov_proxy(self.config.min_divergence) for o in self._oscillators)
            if p is not None
        ]
        if not proxies:
            return 0.0
        return float(np.mean(proxies))

    def adaptive_coupling(self, exponent: float) -> float:
        """Base coupling, scaled up linearly by excess over the stable threshold."""
        cfg = self.config
        if exponent > cfg.lyapunov_stable_threshold:
            instability = exponent - cfg.lyapunov_stable_threshold
            return cfg.coupling_base * (1.0 + instability * cfg.instability_gain)
        return cfg.coupling_base

    def advance(self, dt: Optional[float] = None) -> NetworkMetrics:
        """Run one update pass and return the post-step metrics."""
        cfg = self.config
        step = cfg.simulation_speed if dt is None else dt
        n = self.n

        _, mean_phase = order_parameter(self.phases)
        total_energy = float(np.sum(self.amplitudes)) if n > 0 else 0.0
        exponent = self.lyapunov_exponent()
        coupling = self.adaptive_coupling(exponent)

        # In place, index order: oscillator i sees the new phases of 0..i-1
        phases = self.phases
        for i, osc in enumerate(self._oscillators):
            osc.phase_history.append(float(phases[i]))

            phase = phases[i] + osc.frequency * step
            if n > 1:
                others = np.delete(phases, i)
                phase += (coupling / n) * float(np.sum(np.sin(others - phase)))

            phases[i] = wrap_phase(phase)
            osc.phase = float(phases[i])
            osc.accumulated_twist += osc.twist_rate * step
            osc.amplitude *= cfg.dampening

        self._step_count += 1

        amplitudes = self.amplitudes
        coherence, _ = order_parameter(self.phases)
        metrics = NetworkMetrics(
            coherence=coherence,
            total_energy=total_energy,
            entropy=shannon_entropy(amplitudes),
            lyapunov_exponent=exponent,
            is_stable=exponent < cfg.lyapunov_stable_threshold,
            mean_phase=mean_phase,
            is_resonant=coherence > cfg.resonance_threshold,
        )
        self.last_metrics = metrics
        return metrics

    def get_state(self) -> dict:
        """Plain-value snapshot for inspection and formatting."""
        return {
            "n": self.n,
            "step_count": self._step_count,
            "coherence": self.coherence,
            "primes": self.primes.tolist(),
            "phases": self.phases.tolist(),
            "amplitudes": self.amplitudes.tolist(),
            "lyapunov_exponent": self.lyapunov_exponent(),
            "last_metrics": self.last_metrics.as_dict() if self.last_metrics else None,
        }
