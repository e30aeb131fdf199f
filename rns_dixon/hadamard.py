"""
A priori size bounds for the rational solution of A x = b.

By Cramer's rule every x_i = det(A_i) / det(A), so

    |numerator| <= N = H_col(A) / min_norm(A) * ||b||_2
    denominator <= D = H(A)

with H_col(A) the product of column Euclidean norms, min_norm(A) the
smallest of them, and H(A) the smaller of the row and column products.
Rational reconstruction of a residue modulo M recovers the fraction
whenever M > 2 N D.
"""

import math
from dataclasses import dataclass

import numpy as np


def _as_int_matrix(A) -> np.ndarray:
    arr = np.asarray(A, dtype=object)
    if arr.ndim != 2:
        raise ValueError(f"expected a 2-D matrix, got shape {arr.shape}")
    return arr


def infinity_norm(A) -> int:
    """Max absolute entry (the norm used to size the RNS basis)."""
    arr = _as_int_matrix(A)
    if arr.size == 0:
        return 0
    return max(abs(int(v)) for v in arr.flat)


def _log2_euclidean(values) -> float:
    sq = sum(int(v) * int(v) for v in values)
    if sq == 0:
        return float("-inf")
    return math.log2(sq) / 2.0


@dataclass(frozen=True)
class HadamardBound:
    log_bound: float                 # log2 H(A)
    log_bound_over_min_norm: float   # log2 (H_col(A) / smallest column norm)

    @classmethod
    def of(cls, A) -> "HadamardBound":
        arr = _as_int_matrix(A)
        row_logs = [_log2_euclidean(v) for v in arr]
        col_logs = [_log2_euclidean(v) for v in arr.T]
        if any(math.isinf(x) for x in row_logs + col_logs):
            raise ValueError("matrix has a zero row or column; it is singular")
        # A_i replaces column i by b, so the numerator bound is column-wise
        col_total = sum(col_logs)
        return cls(
            log_bound=min(sum(row_logs), col_total),
            log_bound_over_min_norm=col_total - min(col_logs),
        )


@dataclass(frozen=True)
class RationalSolveBound:
    """Log2 bounds on the solution numerators and common denominator."""
    num_log_bound: float
    den_log_bound: float

    @property
    def solution_log_bound(self) -> float:
        # ceil on both so 2^solution >= 2 * numbound * denbound exactly
        return float(math.ceil(self.num_log_bound)
                     + math.ceil(self.den_log_bound) + 1)

    @property
    def numbound(self) -> int:
        return 1 << max(0, math.ceil(self.num_log_bound))

    @property
    def denbound(self) -> int:
        return 1 << max(0, math.ceil(self.den_log_bound))


def rational_solve_hadamard_bound(A, b) -> RationalSolveBound:
    hb = HadamardBound.of(A)
    b_log = max(0.0, _log2_euclidean(np.asarray(b, dtype=object).ravel()))
    return RationalSolveBound(
        num_log_bound=max(0.0, hb.log_bound_over_min_norm + b_log),
        den_log_bound=max(0.0, hb.log_bound),
    )
