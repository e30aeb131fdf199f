"""
Multi-modulus p-adic lifting with an RNS-accelerated residual update.

For lifting primes p_1..p_l the container runs l Dixon liftings side by
side.  Each call to ``next()``:

  for j = 1..l:
      (Q_j, R_j) = divmod(r_j, p_j)            big-int, R_j in [0, p_j)
      c_j        = B_j R_j mod p_j             B_j = A^-1 mod p_j
      emit c_j, copy R_j and c_j into every RNS plane
  V = [R_1|...|R_l] - A [c_1|...|c_l]          one batched RNS product
  V = V * diag(p_j^-1)                         exact division, in RNS
  r_j = Q_j + V_j                              back to big integers

After t calls, A^-1 b == sum_{s<t} c_j[s] p_j^s  (mod p_j^t) for every j.
The expensive step is a single n x n by n x l fixed-precision product
instead of l big-integer matrix-vector products.

Based on Chen & Storjohann, "A BLAS based C library for exact linear
algebra on integer matrices" (ISSAC 2005), with the correction term
batched over all lifting primes.
"""

import time
from typing import Callable, Dict, Iterator, List, Optional, Sequence

import numpy as np

from .config import LiftingConfig
from .errors import InexactDivision, LiftingError, LiftingExhausted, NumericOverflow
from .field import matvec_mod
from .primes import PrimeGenerator
from .rns import RnsDomain
from .selection import ModulusPlan, select_moduli


class MultiModLiftingContainer:
    """Produces one digit vector per lifting prime per iteration.

    Usage:
        with MultiModLiftingContainer(A, b, config=LiftingConfig()) as lc:
            for digits in lc:
                ...   # digits[j]: object ndarray, entries in [0, lc.primes[j])

    All precomputation (modulus selection, inverses, RNS buffers) happens in
    the constructor; a failure there leaves no usable container behind.
    """

    def __init__(
        self,
        A,
        b,
        generator=None,
        config: Optional[LiftingConfig] = None,
        primes_count: Optional[int] = None,
        lifting_primes: Optional[Sequence[int]] = None,
        inverses: Optional[Dict[int, np.ndarray]] = None,
        trace: Optional[Callable[[Dict], None]] = None,
    ):
        self.config = config or LiftingConfig()
        self._A = np.asarray(A, dtype=object)
        self._b = np.asarray(b, dtype=object).ravel()
        self._n = self._A.shape[0] if self._A.ndim == 2 else 0
        self._trace = trace
        self._closed = False
        self._domain = None
        self._rns_A = None
        self._rns_c = None
        self._rns_R = None

        if generator is None:
            generator = PrimeGenerator(self.config.prime_bits, self.config.seed)

        try:
            self.plan: ModulusPlan = select_moduli(
                self._A, self._b, generator,
                primes_count=primes_count, config=self.config,
                lifting_primes=lifting_primes, inverses=inverses,
            )
            self._setup()
        except Exception:
            self._release()
            raise

    def _setup(self):
        plan = self.plan
        n = self._n
        self._primes: List[int] = list(plan.lifting_primes)
        self._B = list(plan.inverses)
        l = len(self._primes)

        self._domain = RnsDomain(plan.rns_primes)
        self._rns_A = self._domain.init(self._A, bound=plan.infinity_norm + 1)
        self._rns_c = self._domain.zeros(n, l)
        self._rns_R = self._domain.zeros(n, l)
        self._rns_work = self._domain.workspace(n, l)
        self._inv_table = self._domain.prime_inverses(self._primes)

        self._correction_bound = n * plan.infinity_norm + 1
        self._primes_product = plan.primes_product

        # per-prime big-int state; _r_next is swapped in once a step passes
        self._r = [self._b.copy() for _ in range(l)]
        self._r_next = [np.empty(n, dtype=object) for _ in range(l)]
        self._Q = [np.empty(n, dtype=object) for _ in range(l)]
        self._R = [np.empty(n, dtype=object) for _ in range(l)]
        self._FR = np.zeros((l, n), dtype=np.int64)
        self._position = 0

    def _release(self):
        self._rns_A = None
        self._rns_c = None
        self._rns_R = None
        self._rns_work = None
        self._domain = None
        self._r = []
        self._r_next = []
        self._Q = []
        self._R = []
        self._FR = None

    # -- container API --------------------------------------------------------

    @property
    def length(self) -> int:
        """Number of iterations needed for reconstruction."""
        return self.plan.iterations_count

    @property
    def size(self) -> int:
        """Dimension n of the system."""
        return self._n

    @property
    def prime(self) -> int:
        """Lifting modulus P = p_1 * ... * p_l."""
        return self._primes_product

    @property
    def primes(self) -> List[int]:
        return list(self._primes)

    @property
    def primes_count(self) -> int:
        return len(self._primes)

    @property
    def rns_primes(self) -> List[int]:
        return list(self.plan.rns_primes)

    @property
    def numbound(self) -> int:
        return self.plan.numbound

    @property
    def denbound(self) -> int:
        return self.plan.denbound

    @property
    def log2_bound(self) -> float:
        return self.plan.log2_bound

    @property
    def position(self) -> int:
        return self._position

    @property
    def exhausted(self) -> bool:
        return self._position >= self.plan.iterations_count

    @property
    def domain(self) -> RnsDomain:
        return self._domain

    def residual(self, j: int) -> np.ndarray:
        if self._closed:
            raise LiftingError("container is closed")
        return self._r[j].copy()

    def __len__(self) -> int:
        return self.length

    # -- iteration --------------------------------------------------------------

    def next(self) -> List[np.ndarray]:
        """Compute the next digit vector for every lifting prime.

        Raises:
            LiftingExhausted: all iterations_count digits were produced.
            InexactDivision / NumericOverflow: consistency check failed;
                the container state is left unchanged.
        """
        if self._closed:
            raise LiftingError("container is closed")
        if self.exhausted:
            raise LiftingExhausted(
                f"all {self.plan.iterations_count} digits already produced"
            )
        t_start = time.perf_counter()

        digits: List[np.ndarray] = []
        # TODO: primes are independent until the batched product; fan this
        # loop out over a thread pool once n is large enough to amortise it.
        for j, p in enumerate(self._primes):
            r = self._r[j]
            np.floor_divide(r, p, out=self._Q[j])
            np.remainder(r, p, out=self._R[j])

            FR = self._FR[j]
            FR[:] = self._R[j]
            c = matvec_mod(self._B[j], FR, p)
            digits.append(c.astype(object))

            # R_j, c_j < p_j < every RNS prime: same residue in all planes
            self._rns_R.set_column_all_residues(j, FR)
            self._rns_c.set_column_all_residues(j, c)

        # V = R - A c, then V / p_j, all planes and primes at once
        self._domain.batched_multiply(self._rns_R, self._rns_A, self._rns_c,
                                      alpha=-1, beta=1, work=self._rns_work)
        self._domain.scale_by_inverse(self._rns_R, self._inv_table)
        correction = self._domain.convert_back(self._rns_R)

        for j, p in enumerate(self._primes):
            corr = correction[:, j]
            self._check_correction(j, p, corr, digits[j])
            np.add(self._Q[j], corr, out=self._r_next[j])
        self._r, self._r_next = self._r_next, self._r
        self._position += 1

        if self._trace is not None:
            self._trace({
                "iteration": self._position,
                "iterations_count": self.plan.iterations_count,
                "elapsed_sec": time.perf_counter() - t_start,
                "residual_bits": max(
                    (abs(int(v)).bit_length() for r in self._r for v in r),
                    default=0,
                ),
            })
        return digits

    def _check_correction(self, j: int, p: int, corr: np.ndarray, c: np.ndarray):
        if self.config.check_bounds:
            worst = max((abs(int(v)) for v in corr), default=0)
            if worst > self._correction_bound:
                raise InexactDivision(
                    p, self._position,
                    f"correction {worst} exceeds bound {self._correction_bound}",
                )
        if self.config.verify_steps:
            exact = self._R[j] - self._A.dot(c)
            if any(int(v) % p for v in exact):
                raise InexactDivision(p, self._position, "R - A c not divisible")
            if not all(int(e) // p == int(v) for e, v in zip(exact, corr)):
                raise NumericOverflow(
                    f"RNS correction for prime {p} disagrees with exact value "
                    f"at iteration {self._position}"
                )

    def __iter__(self) -> Iterator[List[np.ndarray]]:
        while not self.exhausted:
            yield self.next()

    # -- lifetime ---------------------------------------------------------------

    def close(self):
        if not self._closed:
            self._release()
            self._closed = True

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    def __repr__(self):
        return (f"MultiModLiftingContainer(n={self._n}, primes={self._primes}, "
                f"rns={len(self.plan.rns_primes)}, "
                f"position={self._position}/{self.plan.iterations_count})")
