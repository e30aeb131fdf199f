"""
Exception taxonomy for the multi-modulus lifting engine.

Construction failures (modulus selection, inversion) abort construction;
per-digit failures abort the current ``next()`` call without advancing.
"""

from typing import Optional


class LiftingError(RuntimeError):
    """Base class for every failure raised by rns_dixon."""


class BadPrime(LiftingError):
    """A lifting prime divides det(A): A is singular modulo that prime."""

    def __init__(self, prime: int, nullity: int):
        self.prime = prime
        self.nullity = nullity
        super().__init__(
            f"A is singular mod {prime} (nullity {nullity}); "
            "the prime divides det(A)"
        )


class InsufficientPrimes(LiftingError):
    """The prime generator could not supply enough distinct primes."""


class PrimeTooLarge(LiftingError, ValueError):
    """A prime exceeds what the double-precision field arithmetic can hold."""

    def __init__(self, prime: int, limit: int):
        self.prime = prime
        self.limit = limit
        super().__init__(f"prime {prime} exceeds field capacity {limit}")


class NumericOverflow(LiftingError):
    """The RNS basis is too small to represent the correction term."""


class InexactDivision(LiftingError):
    """(R - A c) was not divisible by the lifting prime.

    Signals a wrong modulus choice or an internal defect, never a digit
    that may be used.
    """

    def __init__(self, prime: int, iteration: int, detail: Optional[str] = None):
        self.prime = prime
        self.iteration = iteration
        msg = f"inexact division by {prime} at iteration {iteration}"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


class LiftingExhausted(LiftingError):
    """next() called after all iterations_count digits were produced."""


class ReconstructionError(LiftingError):
    """Rational reconstruction found no fraction within the bounds."""
