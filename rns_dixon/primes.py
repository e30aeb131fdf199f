"""
Prime sources for modulus selection.

Two generators share one protocol (``bits`` attribute, ``next_prime()``,
iteration):

  - PrimeGenerator: deterministic PRNG-driven draw of ``bits``-bit primes.
    The same seed always yields the same sequence, so identical runs
    produce identical digit sequences.
  - FixedPrimeGenerator: replays a given list, then reports exhaustion.

Neither generator promises distinct primes; modulus selection
deduplicates whatever it receives.
"""

from typing import Iterable, Iterator, List

from sympy.ntheory import isprime

from .errors import InsufficientPrimes

_MASK64 = (1 << 64) - 1
_LCG_MUL = 6364136223846793005
_LCG_INC = 1442695040888963407


def is_prime(n: int) -> bool:
    return n >= 2 and bool(isprime(int(n)))


class PrimeGenerator:
    """Random ``bits``-bit primes from a 64-bit LCG.

    Every prime p satisfies 2^(bits-1) <= p < 2^bits.
    """

    def __init__(self, bits: int = 22, seed: int = 12345,
                 max_candidates: int = 1_000_000):
        if bits < 3 or bits > 62:
            raise ValueError(f"bits must be in [3, 62], got {bits}")
        self.bits = bits
        self.seed = seed
        self.max_candidates = max_candidates
        self._state = seed & _MASK64

    def _next_rand(self) -> int:
        self._state = (self._state * _LCG_MUL + _LCG_INC) & _MASK64
        return self._state >> (64 - self.bits)

    def next_prime(self) -> int:
        for _ in range(self.max_candidates):
            candidate = self._next_rand() | (1 << (self.bits - 1)) | 1
            if is_prime(candidate):
                return candidate
        raise InsufficientPrimes(
            f"no {self.bits}-bit prime found in {self.max_candidates} candidates"
        )

    def __iter__(self) -> Iterator[int]:
        return self

    def __next__(self) -> int:
        return self.next_prime()

    def __repr__(self):
        return f"PrimeGenerator(bits={self.bits}, seed={self.seed})"


class FixedPrimeGenerator:
    """Yields the given primes in order; raises InsufficientPrimes after."""

    def __init__(self, primes: Iterable[int]):
        self._primes: List[int] = [int(p) for p in primes]
        for p in self._primes:
            if not is_prime(p):
                raise ValueError(f"{p} is not prime")
        self.bits = max((p.bit_length() for p in self._primes), default=0)
        self._pos = 0

    def next_prime(self) -> int:
        if self._pos >= len(self._primes):
            raise InsufficientPrimes(
                f"fixed prime list exhausted after {len(self._primes)} primes"
            )
        p = self._primes[self._pos]
        self._pos += 1
        return p

    @property
    def remaining(self) -> int:
        return len(self._primes) - self._pos

    def __iter__(self) -> Iterator[int]:
        return self

    def __next__(self) -> int:
        return self.next_prime()
