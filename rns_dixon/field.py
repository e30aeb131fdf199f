"""
Word-size prime field arithmetic on numpy int64 arrays.

Field elements are kept in [0, p).  Moduli are limited to
FIELD_MAX_MODULUS so that (p-1)^2 is exact in a double, which keeps the
same primes usable as RNS planes stored in float64.

Products are accumulated in int64 with the inner dimension split into
blocks short enough that no partial sum can overflow.
"""

from typing import Optional, Tuple

import numpy as np

from .errors import PrimeTooLarge

# Largest p with (p-1)^2 < 2^53.
FIELD_MAX_MODULUS = 94906265

_INT64_MAX = (1 << 63) - 1


def check_modulus(p: int) -> int:
    p = int(p)
    if p < 2:
        raise ValueError(f"modulus must be >= 2, got {p}")
    if p > FIELD_MAX_MODULUS:
        raise PrimeTooLarge(p, FIELD_MAX_MODULUS)
    return p


def reduce_mod(M, p: int) -> np.ndarray:
    """Entrywise M mod p into [0, p) as int64.  Accepts object arrays."""
    arr = np.asarray(M)
    if arr.dtype == object:
        return np.array(arr % p, dtype=np.int64)
    return np.mod(arr.astype(np.int64, copy=False), p)


def _block_size(p: int) -> int:
    return max(1, _INT64_MAX // ((p - 1) * (p - 1) + 1))


def matmul_mod(A: np.ndarray, B: np.ndarray, p: int) -> np.ndarray:
    """(A @ B) mod p for reduced int64 operands (vectors allowed for B)."""
    k = A.shape[1]
    blk = _block_size(p)
    out = None
    for s in range(0, k, blk):
        part = np.mod(A[:, s:s + blk] @ B[s:s + blk], p)
        out = part if out is None else np.mod(out + part, p)
    if out is None:
        shape = (A.shape[0],) + tuple(B.shape[1:])
        out = np.zeros(shape, dtype=np.int64)
    return out


def matvec_mod(B: np.ndarray, v: np.ndarray, p: int) -> np.ndarray:
    return matmul_mod(B, v, p)


def inverse_mod(A, p: int) -> Tuple[Optional[np.ndarray], int]:
    """Gauss-Jordan inverse of a square matrix over Z/pZ.

    Args:
        A: n x n integer matrix (any integer dtype or object).
        p: Prime modulus <= FIELD_MAX_MODULUS.

    Returns:
        (inverse, nullity).  inverse is None when nullity > 0.
    """
    p = check_modulus(p)
    M = reduce_mod(A, p)
    n, m = M.shape
    if n != m:
        raise ValueError(f"matrix must be square, got {M.shape}")

    aug = np.zeros((n, 2 * n), dtype=np.int64)
    aug[:, :n] = M
    aug[:, n:] = np.eye(n, dtype=np.int64)

    row = 0
    for col in range(n):
        nz = np.nonzero(aug[row:, col])[0]
        if nz.size == 0:
            continue
        piv = row + int(nz[0])
        if piv != row:
            aug[[row, piv]] = aug[[piv, row]]

        inv_piv = pow(int(aug[row, col]), -1, p)
        aug[row] = (aug[row] * inv_piv) % p

        factors = aug[:, col].copy()
        factors[row] = 0
        # factors and pivot row both < p, so each product fits in int64
        aug -= np.outer(factors, aug[row]) % p
        np.mod(aug, p, out=aug)
        row += 1
        if row == n:
            break

    nullity = n - row
    if nullity > 0:
        return None, nullity
    return aug[:, n:].copy(), 0


def is_inverse_mod(A, B: np.ndarray, p: int) -> bool:
    """True when A @ B == I (mod p)."""
    Ar = reduce_mod(A, p)
    Br = reduce_mod(B, p)
    if Ar.shape != Br.shape or Ar.shape[0] != Ar.shape[1]:
        return False
    return bool(np.array_equal(matmul_mod(Ar, Br, p),
                               np.eye(Ar.shape[0], dtype=np.int64)))
