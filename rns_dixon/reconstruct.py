"""
From lifting digits to the exact rational solution.

Two stages:
  1. Per-prime accumulation: y_j = sum_t c_j[t] * p_j^t, so that
     y_j == A^-1 b (mod p_j^k).  CRT over the moduli p_j^k then gives
     Y == A^-1 b (mod P^k), P = prod p_j.
  2. Rational reconstruction of every entry of Y modulo P^k against
     (numbound, denbound), followed by a common denominator.
"""

import math
from fractions import Fraction
from typing import List, Sequence, Tuple

import numpy as np

from .errors import ReconstructionError


def crt_reconstruct(residues: Sequence[int], moduli: Sequence[int]) -> int:
    """Garner-style iterative CRT for pairwise coprime moduli.

    Returns x in [0, M) where M = prod(moduli).
    """
    x = int(residues[0]) % int(moduli[0])
    M = int(moduli[0])
    for i in range(1, len(residues)):
        m_i = int(moduli[i])
        diff = (int(residues[i]) - x) % m_i
        t = (diff * pow(M % m_i, -1, m_i)) % m_i
        x = x + M * t
        M = M * m_i
    return x


def crt_combine(vectors: Sequence[Sequence[int]], moduli: Sequence[int]) -> List[int]:
    """Entrywise CRT of equal-length residue vectors."""
    n = len(vectors[0])
    return [crt_reconstruct([v[i] for v in vectors], moduli) for i in range(n)]


class DigitAccumulator:
    """Folds per-iteration digits into per-prime p_j-adic expansions."""

    def __init__(self, primes: Sequence[int], n: int):
        self.primes = [int(p) for p in primes]
        self.n = n
        self.count = 0
        self._powers = [1] * len(self.primes)
        self._sums = [np.zeros(n, dtype=object) for _ in self.primes]

    def add(self, digits: Sequence[np.ndarray]):
        if len(digits) != len(self.primes):
            raise ValueError(
                f"expected {len(self.primes)} digit vectors, got {len(digits)}"
            )
        for j, c in enumerate(digits):
            self._sums[j] = self._sums[j] + np.asarray(c, dtype=object) * self._powers[j]
            self._powers[j] *= self.primes[j]
        self.count += 1

    @property
    def modulus(self) -> int:
        """P^count."""
        return math.prod(self._powers)

    def expansion(self, j: int) -> Tuple[np.ndarray, int]:
        """(y_j, p_j^count) for a single prime."""
        return self._sums[j].copy(), self._powers[j]

    def combined(self) -> Tuple[List[int], int]:
        """(Y, P^count) with Y == A^-1 b entrywise modulo P^count."""
        if self.count == 0:
            return [0] * self.n, 1
        Y = crt_combine([list(s) for s in self._sums], self._powers)
        return Y, self.modulus


def padic_digits(value: int, base: int, count: int) -> List[int]:
    """The first ``count`` base-``base`` digits of value mod base^count."""
    value = int(value) % (int(base) ** count)
    out = []
    for _ in range(count):
        value, d = divmod(value, base)
        out.append(d)
    return out


def rational_reconstruct(y: int, modulus: int, numbound: int, denbound: int) -> Fraction:
    """Find n/d == y (mod modulus) with |n| <= numbound, 0 < d <= denbound.

    Unique when modulus > 2 * numbound * denbound.
    """
    r0, r1 = int(modulus), int(y) % int(modulus)
    t0, t1 = 0, 1
    while r1 > numbound:
        q = r0 // r1
        r0, r1 = r1, r0 - q * r1
        t0, t1 = t1, t0 - q * t1
    if t1 == 0 or abs(t1) > denbound or math.gcd(r1, abs(t1)) != 1:
        raise ReconstructionError(
            f"no fraction with |num| <= {numbound}, den <= {denbound} "
            f"matches {y} mod {modulus}"
        )
    if t1 < 0:
        r1, t1 = -r1, -t1
    return Fraction(r1, t1)


def reconstruct_solution(
    Y: Sequence[int],
    modulus: int,
    numbound: int,
    denbound: int,
) -> Tuple[List[int], int]:
    """Vector rational reconstruction with a common denominator.

    Returns:
        (numerators, denominator) with x_i = numerators[i] / denominator,
        denominator > 0 and gcd(numerators..., denominator) == 1.
    """
    fracs = [rational_reconstruct(y, modulus, numbound, denbound) for y in Y]
    den = 1
    for f in fracs:
        den = den * f.denominator // math.gcd(den, f.denominator)
    nums = [f.numerator * (den // f.denominator) for f in fracs]
    return nums, den
