"""Twist supply: per-prime phase offset and phase rate."""

from __future__ import annotations

import numpy as np


def twist_angle(prime: int) -> float:
    """kappa_p = 2pi / p, in radians. Zero for p == 0."""
    if prime == 0:
        return 0.0
    return 2 * np.pi / prime


def twist_rate(prime: int, wavelength: float = 1.0) -> float:
    """kappa_p = 2pi / (p * wavelength). Zero when either factor is zero."""
    if prime == 0 or wavelength == 0.0:
        return 0.0
    return 2 * np.pi / (prime * wavelength)
