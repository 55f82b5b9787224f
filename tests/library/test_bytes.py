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

from bootflow.library.bytes import Range, Ranges


class TestRange(unittest.TestCase):

    def test_end(self):
        self.assertEqual(Range(0x10, 0x20).end, 0x30)

    def test_intersect(self):
        self.assertTrue(Range(0, 0x10).intersect(Range(0xF, 1)))
        self.assertFalse(Range(0, 0x10).intersect(Range(0x10, 1)))
        self.assertFalse(Range(0, 0x10).intersect(Range(0x8, 0)))

    def test_contains(self):
        self.assertTrue(Range(0, 0x10).contains(Range(0x4, 0xC)))
        self.assertFalse(Range(0, 0x10).contains(Range(0x4, 0xD)))

    def test_exclude_middle(self):
        self.assertEqual(Range(0, 0x10).exclude(Range(4, 4)), [Range(0, 4), Range(8, 8)])

    def test_exclude_everything(self):
        self.assertEqual(Range(4, 4).exclude(Range(0, 0x10)), [])


class TestRanges(unittest.TestCase):

    def test_sort_and_merge(self):
        ranges = Ranges([Range(0x18, 0x10), Range(0x10, 0x10), Range(0x40, 0), Range(0x28, 8)])
        ranges.sort_and_merge()
        self.assertEqual(ranges, [Range(0x10, 0x20)])
        self.assertEqual(ranges.total_length(), 0x20)

    def test_sort_and_merge_keeps_gaps(self):
        ranges = Ranges([Range(0x20, 1), Range(0, 1)])
        ranges.sort_and_merge()
        self.assertEqual(ranges, [Range(0, 1), Range(0x20, 1)])

    def test_exclude(self):
        ranges = Ranges([Range(0, 0x10), Range(0x20, 0x10)])
        self.assertEqual(ranges.exclude(Range(0x8, 0x20)), [Range(0, 8), Range(0x28, 8)])

    def test_is_covered_by(self):
        self.assertTrue(Ranges([Range(2, 2)]).is_covered_by([Range(0, 4)]))
        self.assertFalse(Ranges([Range(2, 4)]).is_covered_by([Range(0, 4)]))

    def test_str(self):
        self.assertEqual(str(Ranges([Range(0x10, 0x10)])), '[0x10:0x20]')


if __name__ == '__main__':
    unittest.main()
