"""
Pure big-integer reference for multi-modulus lifting.

Serves as ground truth for correctness testing: the same digits as
MultiModLiftingContainer, but each residual update is a plain Python-int
matrix-vector product per prime (no RNS).
"""

from typing import List, Sequence

import numpy as np

from .errors import BadPrime
from .field import inverse_mod, matvec_mod, reduce_mod


def dixon_digits(A, b, p: int, count: int) -> List[List[int]]:
    """First ``count`` p-adic digit vectors of A^-1 b."""
    A = np.asarray(A, dtype=object)
    r = np.asarray(b, dtype=object).ravel().copy()
    B, nullity = inverse_mod(A, p)
    if nullity:
        raise BadPrime(p, nullity)

    digits = []
    for _ in range(count):
        c = matvec_mod(B, reduce_mod(r, p), p).astype(object)
        digits.append([int(v) for v in c])
        diff = r - A.dot(c)
        assert all(int(v) % p == 0 for v in diff)
        r = diff // p
    return digits


def multimod_digits(A, b, primes: Sequence[int], count: int) -> List[List[List[int]]]:
    """digits[t][j] = t-th digit vector for primes[j]."""
    per_prime = [dixon_digits(A, b, p, count) for p in primes]
    return [[per_prime[j][t] for j in range(len(primes))] for t in range(count)]
