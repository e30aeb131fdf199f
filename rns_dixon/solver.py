"""
End-to-end exact solver: lifting container + reconstruction.

    sol = solve_rational([[2, 1], [1, 1]], [3, 2])
    sol.as_fractions()   # [Fraction(1, 1), Fraction(1, 1)]
"""

import time
from dataclasses import dataclass, field
from fractions import Fraction
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from .config import LiftingConfig
from .lifting import MultiModLiftingContainer
from .reconstruct import DigitAccumulator, reconstruct_solution


@dataclass
class RationalSolution:
    """x = numerators / denominator, denominator > 0."""
    numerators: List[int]
    denominator: int
    iterations: int = 0
    primes: List[int] = field(default_factory=list)
    rns_primes: List[int] = field(default_factory=list)
    wall_time_sec: float = 0.0

    def as_fractions(self) -> List[Fraction]:
        return [Fraction(num, self.denominator) for num in self.numerators]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "numerators": [str(v) for v in self.numerators],
            "denominator": str(self.denominator),
            "iterations": self.iterations,
            "primes": self.primes,
            "rns_primes": self.rns_primes,
            "wall_time_sec": self.wall_time_sec,
        }


def check_solution(A, b, solution: RationalSolution) -> bool:
    """True when A @ numerators == denominator * b exactly."""
    A = np.asarray(A, dtype=object)
    b = np.asarray(b, dtype=object).ravel()
    lhs = A.dot(np.asarray(solution.numerators, dtype=object))
    return all(int(u) == int(v) * solution.denominator for u, v in zip(lhs, b))


def solve_rational(
    A,
    b,
    config: Optional[LiftingConfig] = None,
    generator=None,
    lifting_primes: Optional[Sequence[int]] = None,
    inverses: Optional[Dict[int, np.ndarray]] = None,
    logger=None,
) -> RationalSolution:
    """Solve A x = b over Q for nonsingular integer A.

    Args:
        A: n x n integer matrix (nested lists or numpy array).
        b: length-n integer vector.
        config: LiftingConfig (defaults if None).
        generator: Prime source; PrimeGenerator(config.prime_bits,
            config.seed) if None.
        lifting_primes: Fixed lifting primes instead of generated ones.
        inverses: Optional precomputed {prime: A^-1 mod prime}.
        logger: Optional LiftingLogger receiving per-iteration records.
    """
    config = config or LiftingConfig()
    t_start = time.time()
    trace = logger.log_iteration if logger is not None else None

    with MultiModLiftingContainer(
        A, b, generator=generator, config=config,
        lifting_primes=lifting_primes, inverses=inverses, trace=trace,
    ) as container:
        acc = DigitAccumulator(container.primes, container.size)
        for digits in container:
            acc.add(digits)
        Y, modulus = acc.combined()
        nums, den = reconstruct_solution(
            Y, modulus, container.numbound, container.denbound)

        solution = RationalSolution(
            numerators=nums,
            denominator=den,
            iterations=container.length,
            primes=container.primes,
            rns_primes=container.rns_primes,
            wall_time_sec=time.time() - t_start,
        )

    if logger is not None:
        logger.log_solution(solution.to_dict())
    return solution
