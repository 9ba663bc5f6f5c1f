# ═══════════════════════════════════════════════════════════════════════════════
# PART 1: PHASE MATH
# Design: P1 (Dynamical Systems) | Implementation: I2 (Numerics)
# ═══════════════════════════════════════════════════════════════════════════════

"""
Numeric helpers shared by the continuous network and the discrete engine.

Every function here guards its own degenerate inputs (empty arrays, zero
totals, log of non-positive values) and returns 0 instead of NaN/Inf.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np

TWO_PI = 2 * np.pi


def wrap_phase(phases):
    """Map phases into [0, 2pi)."""
    wrapped = np.mod(phases, TWO_PI)
    # np.mod can round a tiny negative up to exactly 2pi
    return np.where(wrapped >= TWO_PI, 0.0, wrapped)


def phase_distance(a, b):
    """Absolute phase difference folded into [0, pi]."""
    diff = np.abs(np.asarray(a, dtype=float) - np.asarray(b, dtype=float))
    diff = np.mod(diff, TWO_PI)
    return np.where(diff > np.pi, TWO_PI - diff, diff)


def order_parameter(phases: np.ndarray) -> Tuple[float, float]:
    """Kuramoto order parameter (r, psi) with r = |sum e^{i phi}| / N."""
    phases = np.asarray(phases, dtype=float).ravel()
    if phases.size == 0:
        return 0.0, 0.0
    if phases.size == 1:
        return 1.0, float(np.angle(np.exp(1j * phases[0])))
    z = np.sum(np.exp(1j * phases))
    return float(np.abs(z) / phases.size), float(np.angle(z))


def shannon_entropy(weights: np.ndarray, floor: float = 0.0) -> float:
    """
    Shannon entropy -sum p ln p of weights normalized to sum to 1.

    Probabilities at or below ``floor`` are skipped. Returns 0 when the
    total weight is not positive.
    """
    weights = np.asarray(weights, dtype=float).ravel()
    total = float(np.sum(weights))
    if weights.size == 0 or total <= 0:
        return 0.0
    p = weights / total
    p = p[p > floor]
    return max(0.0, float(-np.sum(p * np.log(p))))


def normalized_entropy(values: np.ndarray, n_bins: int, floor: float = 0.001) -> float:
    """Entropy of already-normalized values divided by ln(n_bins), in [0, 1]."""
    values = np.asarray(values, dtype=float).ravel()
    if n_bins < 2:
        return 0.0
    v = values[values > floor]
    if v.size == 0:
        return 0.0
    return max(0.0, float(-np.sum(v * np.log(v)) / np.log(n_bins)))
