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

"""
Byte ranges over an addressable blob

usage:
    >>> ranges = Ranges([Range(0x10, 0x10), Range(0x18, 0x10)])
    >>> ranges.sort_and_merge()
    >>> ranges
    [Range(offset=16, length=24)]
"""

from collections import namedtuple
from typing import Iterable, List


class Range(namedtuple('Range', 'offset length')):
    __slots__ = ()

    @property
    def end(self) -> int:
        return self.offset + self.length

    def intersect(self, other: 'Range') -> bool:
        if self.length == 0 or other.length == 0:
            return False
        return self.offset < other.end and other.offset < self.end

    def contains(self, other: 'Range') -> bool:
        return self.offset <= other.offset and other.end <= self.end

    def exclude(self, *others: 'Range') -> 'Ranges':
        """Returns the parts of this range not covered by any of `others`."""
        result = Ranges([self])
        for other in others:
            remaining = Ranges()
            for r in result:
                if not r.intersect(other):
                    remaining.append(r)
                    continue
                if r.offset < other.offset:
                    remaining.append(Range(r.offset, other.offset - r.offset))
                if other.end < r.end:
                    remaining.append(Range(other.end, r.end - other.end))
            result = remaining
        return result

    def __str__(self) -> str:
        return f'0x{self.offset:X}:0x{self.end:X}'


class Ranges(List[Range]):
    def __init__(self, ranges: Iterable[Range] = ()):
        super().__init__(Range(*r) for r in ranges)

    def sort_and_merge(self) -> None:
        """Sorts the ranges in place and coalesces overlapping and adjacent ones."""
        merged = []
        for r in sorted(self):
            if r.length == 0:
                continue
            if merged and r.offset <= merged[-1].end:
                last = merged[-1]
                merged[-1] = Range(last.offset, max(last.end, r.end) - last.offset)
                continue
            merged.append(r)
        self[:] = merged

    def exclude(self, *others: Range) -> 'Ranges':
        result = Ranges()
        for r in self:
            result.extend(r.exclude(*others))
        return result

    def is_covered_by(self, others: Iterable[Range]) -> bool:
        return len(self.exclude(*others)) == 0

    def total_length(self) -> int:
        return sum(r.length for r in self)

    def __str__(self) -> str:
        return '[' + ', '.join(str(r) for r in self) + ']'
