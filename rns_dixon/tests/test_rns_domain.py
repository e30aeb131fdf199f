"""
Unit tests for the RNS domain adapter.

Covers init -> convert_back round-trip, the wraparound boundary,
batched multiply against big-int reference, and exact division by
scaling with inverses.
"""

import math
import random
import unittest

import numpy as np

from rns_dixon.errors import PrimeTooLarge
from rns_dixon.primes import PrimeGenerator
from rns_dixon.rns import RnsDomain, RnsMatrix


def _primes(K, seed=3):
    gen = PrimeGenerator(22, seed=seed)
    out = []
    while len(out) < K:
        p = gen.next_prime()
        if p not in out:
            out.append(p)
    return out


class TestRnsConversion(unittest.TestCase):

    def setUp(self):
        self.domain = RnsDomain(_primes(4))
        self.rng = random.Random(42)

    def test_modulus(self):
        self.assertEqual(self.domain.modulus, math.prod(self.domain.primes_int))
        self.assertEqual(self.domain.K, 4)

    def test_round_trip_signed(self):
        half = self.domain.half_modulus
        vals = [[self.rng.randint(-half + 1, half) for _ in range(3)] for _ in range(5)]
        vals[0][0] = 0
        vals[0][1] = half
        vals[0][2] = -half + 1
        rm = self.domain.init(vals, bound=half + 1)
        back = self.domain.convert_back(rm)
        self.assertEqual(back.tolist(), vals)

    def test_vector_becomes_column(self):
        rm = self.domain.init([1, -2, 3])
        self.assertEqual((rm.rows, rm.cols), (3, 1))
        self.assertEqual(self.domain.convert_back(rm)[:, 0].tolist(), [1, -2, 3])

    def test_wraparound_above_half(self):
        M = self.domain.modulus
        x = self.domain.half_modulus + 5
        back = self.domain.convert_back(self.domain.init([[x, M + 7, -M - 1]]))
        self.assertEqual(back.tolist(), [[x - M, 7, -1]])

    def test_encode_decode_scalar(self):
        for x in [0, 1, -1, 123456789, -(10**15)]:
            self.assertEqual(self.domain.decode(self.domain.encode(x)), x)

    def test_bound_assertion(self):
        with self.assertRaises(AssertionError):
            self.domain.init([[10]], bound=5)

    def test_rejects_bad_basis(self):
        with self.assertRaises(ValueError):
            RnsDomain([101, 101])
        with self.assertRaises(ValueError):
            RnsDomain([])
        with self.assertRaises(PrimeTooLarge):
            RnsDomain([2147483647])


class TestRnsMatrix(unittest.TestCase):

    def test_element_views(self):
        rm = RnsMatrix(np.zeros((3, 2, 2)))
        rm.set_all_residues(1, 0, 17)
        self.assertEqual(rm.element(1, 0).tolist(), [17.0, 17.0, 17.0])
        self.assertEqual(rm.plane(2)[1, 0], 17.0)
        rm.set_column_all_residues(1, [4, 5])
        self.assertEqual(rm.column(1).tolist(), [[4.0, 5.0]] * 3)

    def test_bounds_checked(self):
        rm = RnsMatrix(np.zeros((2, 2, 2)))
        with self.assertRaises(AssertionError):
            rm.element(-1, 0)
        with self.assertRaises(AssertionError):
            rm.set_all_residues(0, 2, 1)
        with self.assertRaises(AssertionError):
            rm.plane(2)

    def test_requires_3d(self):
        with self.assertRaises(ValueError):
            RnsMatrix(np.zeros((2, 2)))


class TestRnsArithmetic(unittest.TestCase):

    def setUp(self):
        self.domain = RnsDomain(_primes(3, seed=11))
        self.rng = random.Random(789)

    def test_batched_multiply_correction(self):
        n, l = 5, 3
        A = [[self.rng.randint(-100, 100) for _ in range(n)] for _ in range(n)]
        C = [[self.rng.randint(0, 999) for _ in range(l)] for _ in range(n)]
        R = [[self.rng.randint(0, 999) for _ in range(l)] for _ in range(n)]

        rA = self.domain.init(A)
        rC = self.domain.init(C)
        rR = self.domain.init(R)
        self.domain.batched_multiply(rR, rA, rC, alpha=-1, beta=1)

        want = (np.array(R, dtype=object)
                - np.array(A, dtype=object).dot(np.array(C, dtype=object)))
        self.assertEqual(self.domain.convert_back(rR).tolist(), want.tolist())

    def test_batched_multiply_reuses_workspace(self):
        n, l = 4, 2
        A = [[self.rng.randint(-100, 100) for _ in range(n)] for _ in range(n)]
        C = [[self.rng.randint(0, 999) for _ in range(l)] for _ in range(n)]
        R = [[self.rng.randint(0, 999) for _ in range(l)] for _ in range(n)]
        rA, rC = self.domain.init(A), self.domain.init(C)
        work = self.domain.workspace(n, l)
        self.assertEqual(work.shape, (2, 3, n, l))

        want = (np.array(R, dtype=object)
                - np.array(A, dtype=object).dot(np.array(C, dtype=object)))
        for _ in range(2):
            rR = self.domain.init(R)
            out = self.domain.batched_multiply(rR, rA, rC, alpha=-1, beta=1, work=work)
            self.assertIs(out, rR)
            self.assertEqual(self.domain.convert_back(rR).tolist(), want.tolist())

        with self.assertRaises(AssertionError):
            self.domain.batched_multiply(self.domain.init(R), rA, rC,
                                         work=self.domain.workspace(n, l + 1))

    def test_batched_multiply_long_inner_dimension(self):
        k = 1500  # several inner blocks
        self.assertLess(self.domain.block, k)
        A = [[self.rng.randint(-10**6, 10**6) for _ in range(k)] for _ in range(2)]
        C = [[self.rng.randint(0, 4 * 10**6) for _ in range(2)] for _ in range(k)]
        dst = self.domain.zeros(2, 2)
        self.domain.batched_multiply(dst, self.domain.init(A), self.domain.init(C))
        want = np.array(A, dtype=object).dot(np.array(C, dtype=object))
        self.assertEqual(self.domain.convert_back(dst).tolist(), want.tolist())

    def test_scale_by_inverse_divides_exactly(self):
        lifting = [101, 103]
        W = [[self.rng.randint(-5000, 5000) for _ in range(2)] for _ in range(4)]
        V = [[w * lifting[j] for j, w in enumerate(row)] for row in W]
        buf = self.domain.init(V)
        inv = self.domain.prime_inverses(lifting)
        self.assertEqual(inv.shape, (3, 2))
        self.domain.scale_by_inverse(buf, inv)
        self.assertEqual(self.domain.convert_back(buf).tolist(), W)


if __name__ == "__main__":
    unittest.main()
