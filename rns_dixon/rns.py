"""
Residue number system (RNS) domain over double-precision planes.

An ``RnsMatrix`` holds one float64 residue per RNS prime per entry, laid
out as ``data[h, i, j]`` = entry (i, j) mod q_h.  Each plane ``data[h]``
is an ordinary (rows x cols) matrix, so one stacked ``np.matmul`` runs
the product in every plane at once.

Exactness: residues are < q <= FIELD_MAX_MODULUS, so every product is
< 2^53.  Inner products are split into blocks of ``block`` terms and
reduced after each block, keeping every partial sum exact in a double.

Integers are recovered by CRT into the balanced range (-M/2, M/2], where
M is the product of the RNS primes.  Values outside that range wrap.
"""

import math
from typing import List, Optional, Sequence

import numpy as np

from .field import check_modulus

_DOUBLE_EXACT = (1 << 53) - 1


class RnsMatrix:
    """Strided view over (planes, rows, cols) residues."""

    def __init__(self, data: np.ndarray):
        if data.ndim != 3:
            raise ValueError(f"RNS data must be 3-D (planes, rows, cols), got {data.shape}")
        self.data = data

    @property
    def planes(self) -> int:
        return self.data.shape[0]

    @property
    def rows(self) -> int:
        return self.data.shape[1]

    @property
    def cols(self) -> int:
        return self.data.shape[2]

    @property
    def shape(self):
        return self.data.shape

    @property
    def strides(self):
        return self.data.strides

    def _check(self, i: int, j: int):
        assert 0 <= i < self.rows, f"row {i} out of range [0, {self.rows})"
        assert 0 <= j < self.cols, f"col {j} out of range [0, {self.cols})"

    def plane(self, h: int) -> np.ndarray:
        assert 0 <= h < self.planes, f"plane {h} out of range [0, {self.planes})"
        return self.data[h]

    def element(self, i: int, j: int) -> np.ndarray:
        """Residues of entry (i, j) across all planes (a view)."""
        self._check(i, j)
        return self.data[:, i, j]

    def column(self, j: int) -> np.ndarray:
        """(planes, rows) view of column j."""
        self._check(0, j)
        return self.data[:, :, j]

    def set_all_residues(self, i: int, j: int, value):
        """Same residue in every plane.  Caller guarantees value < every q_h."""
        self._check(i, j)
        self.data[:, i, j] = float(value)

    def set_column_all_residues(self, j: int, values):
        """Broadcast one reduced column into every plane."""
        self._check(0, j)
        self.data[:, :, j] = np.asarray(values, dtype=np.float64)[None, :]

    def copy(self) -> "RnsMatrix":
        return RnsMatrix(self.data.copy())


class RnsDomain:
    """Conversion and batched arithmetic for a fixed RNS basis."""

    def __init__(self, primes: Sequence[int]):
        if len(primes) == 0:
            raise ValueError("RNS basis needs at least one prime")
        self.primes_int: List[int] = [check_modulus(q) for q in primes]
        if len(set(self.primes_int)) != len(self.primes_int):
            raise ValueError(f"RNS primes must be distinct: {self.primes_int}")
        self.K = len(self.primes_int)
        self.primes = np.array(self.primes_int, dtype=np.float64)
        self._q3 = self.primes[:, None, None]

        self.modulus = math.prod(self.primes_int)
        self.half_modulus = self.modulus // 2
        # CRT coefficients: c_h = (M/q_h) * ((M/q_h)^-1 mod q_h)
        self._crt_coeffs = []
        for q in self.primes_int:
            Mh = self.modulus // q
            self._crt_coeffs.append(Mh * pow(Mh % q, -1, q))

        qmax = max(self.primes_int)
        self.block = max(1, _DOUBLE_EXACT // ((qmax - 1) * (qmax - 1) + 1))

    @property
    def bit_size(self) -> float:
        return sum(math.log2(q) for q in self.primes_int)

    def __repr__(self):
        return f"RnsDomain(K={self.K}, bits={self.bit_size:.1f})"

    # -- allocation / conversion --------------------------------------------

    def zeros(self, rows: int, cols: int) -> RnsMatrix:
        return RnsMatrix(np.zeros((self.K, rows, cols), dtype=np.float64))

    def init_into(self, dst: RnsMatrix, src, bound: Optional[int] = None):
        """Write residues of the integer matrix ``src`` into ``dst``.

        Entries are assumed to satisfy |value| < bound.  The bound is only
        checked when assertions are enabled.
        """
        arr = np.asarray(src, dtype=object)
        if arr.ndim == 1:
            arr = arr.reshape(-1, 1)
        assert arr.shape == (dst.rows, dst.cols), \
            f"shape mismatch {arr.shape} vs {(dst.rows, dst.cols)}"
        if bound is not None:
            assert all(abs(int(v)) < bound for v in arr.flat), \
                "value outside the declared RNS bound"
        for h, q in enumerate(self.primes_int):
            dst.data[h] = np.array(arr % q, dtype=np.float64)
        return dst

    def init(self, src, bound: Optional[int] = None) -> RnsMatrix:
        arr = np.asarray(src, dtype=object)
        if arr.ndim == 1:
            arr = arr.reshape(-1, 1)
        dst = self.zeros(arr.shape[0], arr.shape[1])
        return self.init_into(dst, arr, bound)

    def convert_back(self, src: RnsMatrix) -> np.ndarray:
        """CRT to balanced integers in (-M/2, M/2] (object array rows x cols).

        Only correct when the true magnitude is below M/2.
        """
        acc = np.zeros((src.rows, src.cols), dtype=object)
        for h, coeff in enumerate(self._crt_coeffs):
            acc = acc + src.data[h].astype(np.int64).astype(object) * coeff
        acc = acc % self.modulus
        return np.where(acc > self.half_modulus, acc - self.modulus, acc)

    def encode(self, x: int) -> List[int]:
        return [int(x) % q for q in self.primes_int]

    def decode(self, residues: Sequence[int]) -> int:
        x = sum(int(r) * c for r, c in zip(residues, self._crt_coeffs)) % self.modulus
        return x - self.modulus if x > self.half_modulus else x

    # -- arithmetic -----------------------------------------------------------

    def _reduce_scalar(self, s: int) -> np.ndarray:
        return np.array([int(s) % q for q in self.primes_int],
                        dtype=np.float64)[:, None, None]

    def workspace(self, rows: int, cols: int) -> np.ndarray:
        """Scratch for ``batched_multiply`` into a (rows x cols) result."""
        return np.empty((2, self.K, rows, cols), dtype=np.float64)

    def batched_multiply(self, dst: RnsMatrix, a: RnsMatrix, c: RnsMatrix,
                         alpha: int = 1, beta: int = 0,
                         work: Optional[np.ndarray] = None) -> RnsMatrix:
        """dst <- beta * dst + alpha * (a @ c), independently in every plane.

        One stacked matmul per inner block covers all planes and all
        columns of ``c`` at once.  ``work`` (from ``workspace``) is reused
        instead of allocating temporaries on every call.
        """
        k = a.cols
        assert c.rows == k and dst.rows == a.rows and dst.cols == c.cols
        assert a.planes == c.planes == dst.planes == self.K
        if work is None:
            work = self.workspace(dst.rows, dst.cols)
        assert work.shape == (2,) + dst.shape
        prod, part = work[0], work[1]

        prod.fill(0.0)
        for s in range(0, k, self.block):
            np.matmul(a.data[:, :, s:s + self.block],
                      c.data[:, s:s + self.block, :], out=part)
            np.fmod(part, self._q3, out=part)
            prod += part
            np.fmod(prod, self._q3, out=prod)

        prod *= self._reduce_scalar(alpha)
        np.fmod(prod, self._q3, out=prod)
        if beta:
            dst.data *= self._reduce_scalar(beta)
            np.fmod(dst.data, self._q3, out=dst.data)
            prod += dst.data
        np.mod(prod, self._q3, out=dst.data)
        return dst

    def prime_inverses(self, primes: Sequence[int]) -> np.ndarray:
        """(K, len(primes)) table of p_j^-1 mod q_h."""
        table = np.empty((self.K, len(primes)), dtype=np.float64)
        for h, q in enumerate(self.primes_int):
            for j, p in enumerate(primes):
                table[h, j] = pow(int(p) % q, -1, q)
        return table

    def scale_by_inverse(self, buf: RnsMatrix, inverses: np.ndarray) -> RnsMatrix:
        """Multiply column j of every plane h by inverses[h, j] (mod q_h)."""
        assert inverses.shape == (self.K, buf.cols)
        buf.data *= inverses[:, None, :]
        np.fmod(buf.data, self._q3, out=buf.data)
        return buf
