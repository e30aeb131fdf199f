"""
rns-dixon: exact rational solving of A x = b by multi-modulus p-adic
lifting with an RNS-accelerated residual update.

Pipeline:
  select_moduli      l lifting primes + RNS basis, A^-1 mod p_j, bounds
  MultiModLiftingContainer.next()
                     one digit vector per lifting prime per call; the
                     correction R - A c for all primes is one batched
                     double-precision product over every RNS plane
  DigitAccumulator   per-prime expansions -> CRT -> Y mod P^k
  reconstruct_solution
                     rational reconstruction with a common denominator
"""

__version__ = "0.1.0"

from .config import LiftingConfig
from .errors import (
    LiftingError, BadPrime, InsufficientPrimes, PrimeTooLarge,
    NumericOverflow, InexactDivision, LiftingExhausted, ReconstructionError,
)
from .primes import PrimeGenerator, FixedPrimeGenerator, is_prime
from .field import FIELD_MAX_MODULUS, inverse_mod, matvec_mod, reduce_mod
from .hadamard import (
    HadamardBound, RationalSolveBound,
    infinity_norm, rational_solve_hadamard_bound,
)
from .rns import RnsDomain, RnsMatrix
from .selection import ModulusPlan, select_moduli
from .lifting import MultiModLiftingContainer
from .reconstruct import (
    DigitAccumulator, crt_combine, crt_reconstruct, padic_digits,
    rational_reconstruct, reconstruct_solution,
)
from .solver import RationalSolution, solve_rational, check_solution
from .logging import LiftingLogger, RunManifest, create_manifest

__all__ = [
    "LiftingConfig",
    "LiftingError", "BadPrime", "InsufficientPrimes", "PrimeTooLarge",
    "NumericOverflow", "InexactDivision", "LiftingExhausted",
    "ReconstructionError",
    "PrimeGenerator", "FixedPrimeGenerator", "is_prime",
    "FIELD_MAX_MODULUS", "inverse_mod", "matvec_mod", "reduce_mod",
    "HadamardBound", "RationalSolveBound",
    "infinity_norm", "rational_solve_hadamard_bound",
    "RnsDomain", "RnsMatrix",
    "ModulusPlan", "select_moduli",
    "MultiModLiftingContainer",
    "DigitAccumulator", "crt_combine", "crt_reconstruct", "padic_digits",
    "rational_reconstruct", "reconstruct_solution",
    "RationalSolution", "solve_rational", "check_solution",
    "LiftingLogger", "RunManifest", "create_manifest",
]
