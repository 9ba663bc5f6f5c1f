"""Tests for shared phase math helpers."""

import math

import numpy as np
import pytest

from primesync.core.phase_math import (
    normalized_entropy,
    order_parameter,
    phase_distance,
    shannon_entropy,
    wrap_phase,
)


def test_wrap_phase_range():
    """Wrapped phases always land in [0, 2pi)."""
    phases = np.array([-7.0, -np.pi, 0.0, 2 * np.pi, 13.0, 100.0])
    wrapped = wrap_phase(phases)
    assert np.all(wrapped >= 0)
    assert np.all(wrapped < 2 * np.pi)
    np.testing.assert_allclose(wrap_phase(2 * np.pi + 0.5), 0.5)


def test_phase_distance_folds_to_pi():
    """Distance is wrap-aware and never exceeds pi."""
    np.testing.assert_allclose(phase_distance(0.1, 2 * np.pi - 0.1), 0.2, atol=1e-12)
    np.testing.assert_allclose(phase_distance(0.0, np.pi), np.pi)
    assert phase_distance(1.0, 1.0) == 0.0


def test_order_parameter_edge_cases():
    """Empty gives 0, singleton gives exactly 1."""
    assert order_parameter(np.array([])) == (0.0, 0.0)
    r, _ = order_parameter(np.array([4.2]))
    assert r == 1.0


def test_order_parameter_aligned_and_opposed():
    r_aligned, psi = order_parameter(np.array([0.3, 0.3, 0.3]))
    assert r_aligned == pytest.approx(1.0)
    assert psi == pytest.approx(0.3)

    r_opposed, _ = order_parameter(np.array([0.0, np.pi]))
    assert r_opposed < 1e-9


def test_shannon_entropy_uniform():
    """Uniform weights give ln(n)."""
    assert shannon_entropy(np.ones(4)) == pytest.approx(np.log(4))
    assert shannon_entropy(np.array([5.0, 0.0])) == 0.0


def test_shannon_entropy_zero_total():
    """Zero or empty totals return 0 instead of NaN."""
    assert shannon_entropy(np.zeros(3)) == 0.0
    assert shannon_entropy(np.array([])) == 0.0


def test_normalized_entropy_bounds():
    uniform = np.full(16, 1.0 / 16)
    assert normalized_entropy(uniform, 16) == pytest.approx(1.0)

    peaked = np.zeros(16)
    peaked[3] = 1.0
    assert normalized_entropy(peaked, 16) == 0.0

    # Entries below the floor are ignored
    assert normalized_entropy(np.full(16, 0.0005), 16) == 0.0


def test_entropy_never_negative_zero():
    """A single nonzero weight gives +0.0, not -0.0."""
    for value in (shannon_entropy(np.array([5.0, 0.0])), normalized_entropy(np.array([1.0]), 16)):
        assert value == 0.0
        assert math.copysign(1.0, value) == 1.0
