# ═══════════════════════════════════════════════════════════════════════════════
# PART 2: PRIME ASSIGNMENT
# Design: N1 (Number Theory) | Implementation: I1 (Systems Architect)
# ═══════════════════════════════════════════════════════════════════════════════

"""
Positional prime assignment for oscillator slots.

Slots 0-6 always get the canonical primes (these get elevated coupling in
the discrete engine). Slots 7-24 get the extended table. Past that, slots
get successive odd numbers after 97. Each slot carries the strategy that
produced it, so a caller can tell the synthetic numbers from real primes.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List


CANONICAL_PRIMES = (2, 3, 5, 7, 11, 13, 17)

EXTENDED_PRIMES = (
    19, 23, 29, 31, 37, 41, 43, 47, 53,
    59, 61, 67, 71, 73, 79, 83, 89, 97,
)


class PrimeSource(Enum):
    """Which table a slot's prime came from."""
    CANONICAL = "canonical"
    EXTENDED = "extended"
    SYNTHETIC = "synthetic"


@dataclass(frozen=True)
class PrimeSlot:
    prime: int
    source: PrimeSource

    @property
    def is_canonical(self) -> bool:
        return self.source is PrimeSource.CANONICAL


def slot_for_index(index: int) -> PrimeSlot:
    """Prime assigned to oscillator slot ``index``."""
    if index < len(CANONICAL_PRIMES):
        return PrimeSlot(CANONICAL_PRIMES[index], PrimeSource.CANONICAL)

    offset = index - len(CANONICAL_PRIMES)
    if offset < len(EXTENDED_PRIMES):
        return PrimeSlot(EXTENDED_PRIMES[offset], PrimeSource.EXTENDED)

    # Odd fallback: 99, 101, 103, ... (not guaranteed prime)
    step = offset - len(EXTENDED_PRIMES) + 1
    return PrimeSlot(EXTENDED_PRIMES[-1] + 2 * step, PrimeSource.SYNTHETIC)


def assign_primes(n: int) -> List[PrimeSlot]:
    """Assign primes to ``n`` oscillator slots."""
    return [slot_for_index(i) for i in range(max(n, 0))]


def is_prime(n: int) -> bool:
    if n < 2:
        return False
    if n % 2 == 0:
        return n == 2
    k = 3
    while k * k <= n:
        if n % k == 0:
            return False
        k += 2
    return True


def first_primes(n: int) -> List[int]:
    """The first ``n`` true primes."""
    primes: List[int] = []
    candidate = 2
    while len(primes) < n:
        if is_prime(candidate):
            primes.append(candidate)
        candidate += 1
    return primes
