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

import unittest

from bootflow.bruteforcer.combinations import (amount_of_combinations, apply_bit_flips, iter_combinations,
                                               next_combination, rank, unrank)
from bootflow.library.exceptions import BruteForceError


class TestCombinations(unittest.TestCase):

    def test_lexicographic_order(self):
        self.assertEqual(list(iter_combinations(2, 4)), [(0, 1), (0, 2), (0, 3), (1, 2), (1, 3), (2, 3)])

    def test_zero_length(self):
        self.assertEqual(list(iter_combinations(0, 5)), [()])

    def test_amount(self):
        self.assertEqual(amount_of_combinations(2, 64), 2016)
        self.assertEqual(len(list(iter_combinations(3, 10))), amount_of_combinations(3, 10))

    def test_rank_matches_position(self):
        for position, combination in enumerate(iter_combinations(3, 8)):
            self.assertEqual(rank(combination, 8), position)
            self.assertEqual(unrank(position, 3, 8), combination)

    def test_unrank_out_of_range(self):
        with self.assertRaises(BruteForceError):
            unrank(amount_of_combinations(2, 5), 2, 5)
        with self.assertRaises(BruteForceError):
            unrank(-1, 2, 5)

    def test_next_combination(self):
        self.assertEqual(next_combination((0, 3), 4), (1, 2))
        self.assertIsNone(next_combination((2, 3), 4))

    def test_chunks_cover_everything(self):
        total = amount_of_combinations(2, 16)
        chunks = list(iter_combinations(2, 16, 0, 50)) + list(iter_combinations(2, 16, 50))
        self.assertEqual(chunks, list(iter_combinations(2, 16)))
        self.assertEqual(len(chunks), total)

    def test_empty_interval(self):
        self.assertEqual(list(iter_combinations(2, 16, 10, 10)), [])

    def test_apply_bit_flips(self):
        data = bytearray(2)
        apply_bit_flips((0, 9, 15), data)
        self.assertEqual(data, bytearray(b'\x01\x82'))
        apply_bit_flips((0, 9, 15), data)
        self.assertEqual(data, bytearray(2))


if __name__ == '__main__':
    unittest.main()
