"""
Modulus selection and bound estimation.

Picks l lifting primes and an RNS basis from one prime generator:

  1. rns_bits = log2 ||A||_inf + log2 n + margin  (size of (R - A c) / p)
  2. draw l + ceil(rns_bits / (bits - 1)) distinct primes, sorted
  3. smallest l -> lifting primes, the rest -> RNS basis
  4. trim the RNS basis from the top while it still covers rns_bits
  5. invert A mod every lifting prime; an unlucky prime (p | det A) is
     replaced by a fresh draw, up to max_bad_prime_retries times
  6. Hadamard bound -> numbound N, denbound D and the least
     iterations_count k with P^k > 2 N D

Keeping every RNS prime above every lifting prime means digits and
remainders (< p_j) are already reduced in every RNS plane.
"""

import bisect
import math
import warnings
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from .config import LiftingConfig
from .errors import BadPrime, InsufficientPrimes, NumericOverflow
from .field import check_modulus, inverse_mod, is_inverse_mod
from .hadamard import RationalSolveBound, infinity_norm, rational_solve_hadamard_bound
from .primes import is_prime


@dataclass(frozen=True, eq=False)
class ModulusPlan:
    """Everything fixed at construction time for one solve."""
    lifting_primes: Tuple[int, ...]
    rns_primes: Tuple[int, ...]
    inverses: Tuple[np.ndarray, ...]       # A^-1 mod lifting_primes[j]
    infinity_norm: int
    rns_bit_size: float                    # required bits of the RNS modulus
    bound: RationalSolveBound
    iterations_count: int
    discarded_primes: Tuple[int, ...] = ()  # unlucky primes that were redrawn

    @property
    def primes_product(self) -> int:
        return math.prod(self.lifting_primes)

    @property
    def numbound(self) -> int:
        return self.bound.numbound

    @property
    def denbound(self) -> int:
        return self.bound.denbound

    @property
    def log2_bound(self) -> float:
        return self.bound.solution_log_bound


def _bits(primes: Sequence[int]) -> float:
    return sum(math.log2(p) for p in primes)


class _PrimePool:
    """Sorted, deduplicated primes drawn from a generator."""

    def __init__(self, generator, max_draws: int, floor: int = 0,
                 exclude: Sequence[int] = ()):
        self.generator = generator
        self.max_draws = max_draws
        self.floor = floor
        self.primes: List[int] = []
        self.excluded = set(int(p) for p in exclude)

    def draw(self) -> int:
        for _ in range(self.max_draws):
            p = int(self.generator.next_prime())
            check_modulus(p)
            if p <= self.floor or p in self.excluded:
                continue
            pos = bisect.bisect_left(self.primes, p)
            if pos < len(self.primes) and self.primes[pos] == p:
                continue
            self.primes.insert(pos, p)
            return p
        raise InsufficientPrimes(
            f"{self.max_draws} draws produced no new usable prime "
            f"(have {len(self.primes)})"
        )

    def fill(self, count: int):
        while len(self.primes) < count:
            self.draw()

    def discard(self, p: int):
        self.primes.remove(p)
        self.excluded.add(p)

    def split(self, lifting_count: int, rns_bits: float) -> Tuple[List[int], List[int]]:
        """Lifting primes and a trimmed RNS basis covering rns_bits."""
        while True:
            rns = self.primes[lifting_count:]
            if rns and _bits(rns) > rns_bits:
                break
            self.draw()
        lifting = self.primes[:lifting_count]
        rns = list(rns)
        while len(rns) > 1 and _bits(rns[:-1]) > rns_bits:
            rns.pop()
        return lifting, rns


def invert_lifting_prime(A, p: int) -> np.ndarray:
    """A^-1 mod p, or BadPrime when p divides det(A)."""
    inv, nullity = inverse_mod(A, p)
    if nullity > 0:
        raise BadPrime(p, nullity)
    return inv


def _validated_inverses(A, inverses: Optional[Dict[int, np.ndarray]]) -> Dict[int, np.ndarray]:
    cache: Dict[int, np.ndarray] = {}
    for p, B in (inverses or {}).items():
        p = check_modulus(p)
        B = np.asarray(B, dtype=np.int64) % p
        if not is_inverse_mod(A, B, p):
            raise ValueError(f"supplied inverse for prime {p} is not A^-1 mod {p}")
        cache[p] = B
    return cache


def select_moduli(
    A,
    b,
    generator,
    primes_count: Optional[int] = None,
    config: Optional[LiftingConfig] = None,
    lifting_primes: Optional[Sequence[int]] = None,
    inverses: Optional[Dict[int, np.ndarray]] = None,
) -> ModulusPlan:
    """Choose lifting primes, RNS basis and iteration count for A x = b.

    Args:
        A: n x n nonsingular integer matrix.
        b: length-n integer vector.
        generator: Prime source (``bits`` attribute, ``next_prime()``).
        primes_count: Number of lifting primes l (default: config value).
        config: LiftingConfig.
        lifting_primes: Use exactly these lifting primes (no redraw on
            BadPrime); only the RNS basis is drawn.
        inverses: Optional {prime: A^-1 mod prime} already computed by
            the caller.

    Raises:
        BadPrime, InsufficientPrimes, PrimeTooLarge, NumericOverflow,
        ValueError for malformed input.
    """
    config = config or LiftingConfig()
    A = np.asarray(A, dtype=object)
    b = np.asarray(b, dtype=object).ravel()
    if A.ndim != 2 or A.shape[0] != A.shape[1] or A.shape[0] == 0:
        raise ValueError(f"A must be a non-empty square matrix, got shape {A.shape}")
    n = A.shape[0]
    if b.shape[0] != n:
        raise ValueError(f"b has length {b.shape[0]}, expected {n}")

    norm = infinity_norm(A)
    if norm == 0:
        raise ValueError("A is the zero matrix")
    rns_bits = math.log2(norm) + math.log2(n) + config.rns_margin_bits

    cache = _validated_inverses(A, inverses)
    discarded: List[int] = []

    if lifting_primes is not None:
        lifting = sorted(set(int(p) for p in lifting_primes))
        if not lifting:
            raise ValueError("lifting_primes is empty")
        for p in lifting:
            check_modulus(p)
            if not is_prime(p):
                raise ValueError(f"lifting prime {p} is not prime")
        for p in lifting:
            if p not in cache:
                cache[p] = invert_lifting_prime(A, p)
        pool = _PrimePool(generator, config.max_prime_draws, floor=max(lifting))
        _, rns = pool.split(0, rns_bits)
    else:
        l = primes_count or config.primes_count
        if l < 1:
            raise ValueError(f"primes_count must be >= 1, got {l}")
        per_prime = max(1, generator.bits - 1)
        pool = _PrimePool(generator, config.max_prime_draws)
        pool.fill(l + math.ceil(rns_bits / per_prime))

        retries = 0
        while True:
            lifting, rns = pool.split(l, rns_bits)
            try:
                for p in lifting:
                    if p not in cache:
                        cache[p] = invert_lifting_prime(A, p)
                break
            except BadPrime as exc:
                if retries >= config.max_bad_prime_retries:
                    raise
                retries += 1
                warnings.warn(
                    f"lifting prime {exc.prime} divides det(A); redrawing "
                    f"(retry {retries}/{config.max_bad_prime_retries})",
                    RuntimeWarning,
                )
                discarded.append(exc.prime)
                pool.discard(exc.prime)
                pool.draw()

    # (R - A c) / p lies in [-(n |A| + 1), n |A| + 1]; balanced CRT needs M > 2x that
    rns_modulus = math.prod(rns)
    if rns_modulus <= 2 * (n * norm + 1):
        raise NumericOverflow(
            f"RNS modulus of {math.log2(rns_modulus):.1f} bits cannot hold "
            f"corrections up to {n * norm + 1}"
        )

    bound = rational_solve_hadamard_bound(A, b)
    iterations = max(1, math.ceil(bound.solution_log_bound / _bits(lifting)))
    # reconstruction is unique only for P^k > 2 N D, strictly
    P = math.prod(lifting)
    limit = 2 * bound.numbound * bound.denbound
    while P ** iterations <= limit:
        iterations += 1

    return ModulusPlan(
        lifting_primes=tuple(lifting),
        rns_primes=tuple(rns),
        inverses=tuple(cache[p] for p in lifting),
        infinity_norm=norm,
        rns_bit_size=rns_bits,
        bound=bound,
        iterations_count=iterations,
        discarded_primes=tuple(discarded),
    )
