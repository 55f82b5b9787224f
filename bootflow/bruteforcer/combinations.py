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
Unique unordered combinations of bit indexes, in lexicographic order

A combination of `k` values out of `0..n_values-1` is a sorted tuple; its
combination ID is its position in lexicographic order, so any range of IDs
can be enumerated independently.

usage:
    >>> list(iter_combinations(2, 3))
    [(0, 1), (0, 2), (1, 2)]
    >>> unrank(2, 2, 3)
    (1, 2)
"""

from math import comb
from typing import Iterator, Optional, Sequence, Tuple

from bootflow.library.exceptions import BruteForceError

Combination = Tuple[int, ...]


def amount_of_combinations(k: int, n_values: int) -> int:
    return comb(n_values, k)


def rank(combination: Sequence[int], n_values: int) -> int:
    """Returns the combination ID of `combination`."""
    k = len(combination)
    result = 0
    prev = -1
    for i, value in enumerate(combination):
        result += comb(n_values - prev - 1, k - i) - comb(n_values - value, k - i)
        prev = value
    return result


def unrank(combination_id: int, k: int, n_values: int) -> Combination:
    """Returns the combination with ID `combination_id`."""
    if combination_id < 0 or combination_id >= comb(n_values, k):
        raise BruteForceError(f'Combination ID {combination_id} is out of range for C({n_values}, {k})')
    result = []
    value = 0
    for i in range(k):
        while True:
            count = comb(n_values - value - 1, k - i - 1)
            if combination_id < count:
                result.append(value)
                value += 1
                break
            combination_id -= count
            value += 1
    return tuple(result)


def next_combination(combination: Combination, n_values: int) -> Optional[Combination]:
    """Returns the lexicographically next combination, None after the last one."""
    k = len(combination)
    values = list(combination)
    for i in range(k - 1, -1, -1):
        if values[i] < n_values - k + i:
            values[i] += 1
            for j in range(i + 1, k):
                values[j] = values[j - 1] + 1
            return tuple(values)
    return None


def iter_combinations(k: int, n_values: int, start: int = 0, stop: Optional[int] = None) -> Iterator[Combination]:
    """Yields combinations with IDs in [start, stop)."""
    total = comb(n_values, k)
    if stop is None or stop > total:
        stop = total
    if start >= stop:
        return
    current: Optional[Combination] = unrank(start, k, n_values)
    for _ in range(start, stop):
        if current is None:
            return
        yield current
        current = next_combination(current, n_values)


def apply_bit_flips(combination: Sequence[int], data: bytearray) -> None:
    """Flips the bits of `data` at the given bit indexes (bit 0 is the LSB of byte 0). Applying twice restores `data`."""
    for idx in combination:
        data[idx >> 3] ^= 1 << (idx & 0x7)
