# CHIPSEC: Platform Security Assessment Framework
# Copyright (c) 2023, Intel Corporation
#
# This program is free software; you can redistribute it and/or
# modify it under the terms of the GNU General Public License
# as published by the Free Software Foundation; Version 2.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program; if not, write to the Free Software
# Foundation, Inc., 51 Franklin Street, Fifth Floor, Boston, MA  02110-1301, USA.
#
# Contact information:
# chipsec@intel.com
#

import hashlib
import threading
import unittest

from bootflow.bruteforcer.bruteforcer import brute_force
from bootflow.library.exceptions import BruteForceError
from bootflow.library.tpm.tpm_defines import TPM_ALG_SHA1
from bootflow.tpm.commands import CommandExtend, CommandInit
from bootflow.tpm.tpm import TPM

SEPARATOR = b'\x00\x00\x00\x00'


def _replay_separators(first: bytes) -> bytes:
    tpm = TPM([TPM_ALG_SHA1])
    CommandInit(0).apply(tpm)
    CommandExtend(0, TPM_ALG_SHA1, hashlib.sha1(first).digest()).apply(tpm)
    CommandExtend(0, TPM_ALG_SHA1, hashlib.sha1(SEPARATOR).digest()).apply(tpm)
    return tpm.pcr_value(0, TPM_ALG_SHA1)


class TestBruteForce(unittest.TestCase):

    def test_two_separators(self):
        naive = _replay_separators(SEPARATOR)
        expected = hashlib.sha1(hashlib.sha1(bytes(20) + hashlib.sha1(SEPARATOR).digest()).digest() +
                                hashlib.sha1(SEPARATOR).digest()).digest()
        self.assertEqual(naive, expected)

        target = _replay_separators(b'\x01\x00\x00\x00')
        self.assertNotEqual(target, naive)
        result = brute_force(SEPARATOR, 0, 2, lambda ctx, data: _replay_separators(data) == target, max_concurrency=4)
        self.assertEqual(result, (0,))

    def test_no_flips_needed(self):
        self.assertEqual(brute_force(b'\xAA', 0, 2, lambda ctx, data: data == b'\xAA'), ())

    def test_not_found(self):
        self.assertIsNone(brute_force(b'\x00\x00', 0, 2, lambda ctx, data: data == b'\xFF\xFF'))

    def test_min_distance_skips_initial(self):
        self.assertEqual(brute_force(b'\x00', 1, 1, lambda ctx, data: True), (0,))

    def test_lexicographically_first_with_many_workers(self):
        # every combination with bit 40 matches; the lowest one must win over later chunks
        def check(ctx, data):
            return bool(data[5] & 0x01)

        result = brute_force(bytes(32), 2, 2, check, max_concurrency=8)
        self.assertEqual(result, (0, 40))

    def test_init_func_per_worker(self):
        contexts = []
        lock = threading.Lock()

        def init():
            ctx = object()
            with lock:
                contexts.append(ctx)
            return ctx

        def check(ctx, data):
            self.assertIn(ctx, contexts)
            return data == b'\x03'

        self.assertEqual(brute_force(b'\x00', 0, 2, check, init_func=init), (0, 1))

    def test_distance_bounds(self):
        with self.assertRaises(BruteForceError):
            brute_force(b'\x00', 2, 1, lambda ctx, data: True)

    def test_invalid_problem(self):
        with self.assertRaises(ValueError):
            brute_force(b'\x00\x00', 0, 1, lambda ctx, data: True, item_size=32)
        with self.assertRaises(ValueError):
            brute_force(b'\x00', 0, 1, lambda ctx, data: True, item_size=0)
        with self.assertRaises(ValueError):
            brute_force(b'\x00', 9, 10, lambda ctx, data: True)
        with self.assertRaises(ValueError):
            brute_force(b'\x00', -1, 1, lambda ctx, data: True)
        # one 16-bit item, the distance is clamped to its 16 bits
        self.assertIsNone(brute_force(bytes(2), 1, 64, lambda ctx, data: False, item_size=16, max_concurrency=1))

    def test_too_many_combinations(self):
        with self.assertRaises(BruteForceError):
            brute_force(bytes(1024), 10, 10, lambda ctx, data: False)

    def test_worker_error(self):
        def check(ctx, data):
            raise ValueError('broken check')

        with self.assertRaises(BruteForceError):
            brute_force(b'\x00', 1, 1, check)


if __name__ == '__main__':
    unittest.main()
