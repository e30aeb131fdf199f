"""
Unit tests for prime generation and word-size field arithmetic.

Compares field operations against Python big-int reference results.
"""

import random
import unittest

import numpy as np

from rns_dixon.errors import InsufficientPrimes, PrimeTooLarge
from rns_dixon.field import (
    FIELD_MAX_MODULUS, check_modulus, inverse_mod, is_inverse_mod,
    matmul_mod, matvec_mod, reduce_mod,
)
from rns_dixon.primes import FixedPrimeGenerator, PrimeGenerator, is_prime


class TestPrimeGenerator(unittest.TestCase):

    def test_bit_range(self):
        for bits in [8, 16, 22, 26]:
            gen = PrimeGenerator(bits=bits, seed=7)
            for _ in range(20):
                p = gen.next_prime()
                self.assertTrue(is_prime(p), f"{p} is not prime")
                self.assertGreaterEqual(p, 1 << (bits - 1))
                self.assertLess(p, 1 << bits)

    def test_deterministic(self):
        g1 = PrimeGenerator(22, seed=42)
        g2 = PrimeGenerator(22, seed=42)
        s1 = [g1.next_prime() for _ in range(10)]
        s2 = [g2.next_prime() for _ in range(10)]
        self.assertEqual(s1, s2)

    def test_different_seeds_differ(self):
        s1 = [p for p, _ in zip(PrimeGenerator(22, seed=1), range(10))]
        s2 = [p for p, _ in zip(PrimeGenerator(22, seed=2), range(10))]
        self.assertNotEqual(s1, s2)

    def test_invalid_bits(self):
        with self.assertRaises(ValueError):
            PrimeGenerator(bits=2)

    def test_fixed_generator_exhausts(self):
        gen = FixedPrimeGenerator([101, 103])
        self.assertEqual(gen.bits, 7)
        self.assertEqual(gen.next_prime(), 101)
        self.assertEqual(gen.next_prime(), 103)
        self.assertEqual(gen.remaining, 0)
        with self.assertRaises(InsufficientPrimes):
            gen.next_prime()

    def test_fixed_generator_rejects_composite(self):
        with self.assertRaises(ValueError):
            FixedPrimeGenerator([101, 102])


class TestFieldOps(unittest.TestCase):

    def setUp(self):
        self.rng = random.Random(42)

    def test_check_modulus(self):
        self.assertEqual(check_modulus(101), 101)
        self.assertEqual(check_modulus(FIELD_MAX_MODULUS), FIELD_MAX_MODULUS)
        with self.assertRaises(PrimeTooLarge):
            check_modulus(FIELD_MAX_MODULUS + 2)
        with self.assertRaises(ValueError):
            check_modulus(1)

    def test_reduce_mod_negative_and_big(self):
        M = np.array([[-1, 10**30], [5, -(10**25) - 3]], dtype=object)
        R = reduce_mod(M, 7)
        self.assertEqual(R.dtype, np.int64)
        self.assertEqual(R.tolist(), [[6, 10**30 % 7], [5, (-(10**25) - 3) % 7]])

    def test_inverse_small(self):
        inv, nullity = inverse_mod([[2, 1], [1, 1]], 101)
        self.assertEqual(nullity, 0)
        self.assertEqual(inv.tolist(), [[1, 100], [100, 2]])

    def test_inverse_singular_full(self):
        inv, nullity = inverse_mod([[2, 0], [0, 2]], 2)
        self.assertIsNone(inv)
        self.assertEqual(nullity, 2)

    def test_inverse_rank_deficient(self):
        inv, nullity = inverse_mod([[1, 2], [2, 4]], 7)
        self.assertIsNone(inv)
        self.assertEqual(nullity, 1)

    def test_inverse_needs_pivoting(self):
        A = [[0, 1, 0], [0, 0, 1], [1, 0, 0]]
        inv, nullity = inverse_mod(A, 13)
        self.assertEqual(nullity, 0)
        self.assertTrue(is_inverse_mod(A, inv, 13))

    def test_inverse_random(self):
        for p in [101, 65537, 4194301]:
            for _ in range(5):
                n = self.rng.randint(1, 8)
                A = [[self.rng.randint(-1000, 1000) for _ in range(n)] for _ in range(n)]
                for i in range(n):
                    A[i][i] += 10**6  # keep away from singular
                inv, nullity = inverse_mod(A, p)
                if nullity == 0:
                    self.assertTrue(is_inverse_mod(A, inv, p))

    def test_matvec_matches_bigint(self):
        p = 94906249  # near the field limit, exercises blocked accumulation
        k = 3000
        A = np.array([[self.rng.randint(0, p - 1) for _ in range(k)]
                      for _ in range(2)], dtype=np.int64)
        v = np.array([self.rng.randint(0, p - 1) for _ in range(k)], dtype=np.int64)
        got = matvec_mod(A, v, p)
        want = [sum(int(a) * int(x) for a, x in zip(row, v)) % p for row in A]
        self.assertEqual(got.tolist(), want)

    def test_matmul_mod_shape(self):
        A = np.eye(3, dtype=np.int64)
        B = np.arange(6, dtype=np.int64).reshape(3, 2)
        self.assertEqual(matmul_mod(A, B, 5).tolist(), (B % 5).tolist())

    def test_is_inverse_mod_rejects(self):
        self.assertFalse(is_inverse_mod([[2, 1], [1, 1]], np.eye(2, dtype=np.int64), 101))


if __name__ == "__main__":
    unittest.main()
