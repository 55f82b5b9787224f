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
Generic bit-flip brute forcer

Tries every combination of bit flips of the initial data, distance by distance,
until `check_func` accepts the data. Combinations of one distance are split into
chunks checked by worker threads; the result is always the lexicographically
first matching combination, regardless of the order the workers finish in.
"""

import multiprocessing
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, List, Optional

from bootflow.bruteforcer.combinations import Combination, amount_of_combinations, apply_bit_flips, iter_combinations
from bootflow.library.exceptions import BruteForceError
from bootflow.library.logger import logger
from bootflow.library.options import options

MIN_ITERATIONS_PER_WORKER = 10000
MAX_COMBINATIONS = (1 << 63) - 1

InitFunc = Callable[[], Any]
CheckFunc = Callable[[Any, bytes], bool]


def default_concurrency() -> int:
    max_concurrency = options().get_section_data('bruteforce', 'max_concurrency', 0)
    if max_concurrency:
        return max_concurrency
    return multiprocessing.cpu_count()


def _no_context() -> None:
    return None


class _Search:
    """State shared by the workers of one distance."""

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.found_chunk: Optional[int] = None

    def found(self, chunk: int) -> None:
        with self.lock:
            if self.found_chunk is None or chunk < self.found_chunk:
                self.found_chunk = chunk

    def obsolete(self, chunk: int) -> bool:
        # a lower chunk already has an answer
        found_chunk = self.found_chunk
        return found_chunk is not None and found_chunk < chunk


def _worker(search: _Search, chunk: int, initial_data: bytes, distance: int, n_bits: int, start: int, stop: int,
            init_func: InitFunc, check_func: CheckFunc) -> Optional[Combination]:
    ctx = init_func()
    data = bytearray(initial_data)
    for combination in iter_combinations(distance, n_bits, start, stop):
        if search.obsolete(chunk):
            return None
        apply_bit_flips(combination, data)
        if check_func(ctx, bytes(data)):
            search.found(chunk)
            return combination
        apply_bit_flips(combination, data)
    return None


def brute_force(initial_data: bytes, min_distance: int, max_distance: int, check_func: CheckFunc,
                init_func: Optional[InitFunc] = None, item_size: int = 8,
                max_concurrency: Optional[int] = None) -> Optional[Combination]:
    """
    Searches for the bit flips of `initial_data` accepted by `check_func(ctx, data)`.

    `init_func` builds a per-worker context (e.g. a hasher) passed to `check_func`.
    `item_size` is the width in bits of one item of `initial_data`; the data must
    hold a whole number of items.
    Returns the combination of flipped bit indexes (an empty tuple if the data is
    accepted as is) or None if nothing up to `max_distance` is accepted.
    """
    if min_distance > max_distance:
        raise BruteForceError(f'minimal distance ({min_distance}) is higher than maximal distance ({max_distance})')
    n_bits = len(initial_data) * 8
    if item_size <= 0 or n_bits % item_size:
        raise ValueError(f'{len(initial_data)} bytes are not a whole number of {item_size}-bit items')
    if min_distance < 0 or min_distance > n_bits:
        raise ValueError(f'minimal distance {min_distance} is outside of 0..{n_bits}')
    if init_func is None:
        init_func = _no_context
    if max_concurrency is None:
        max_concurrency = default_concurrency()

    if min_distance == 0:
        if check_func(init_func(), bytes(initial_data)):
            return ()
        min_distance = 1

    max_distance = min(max_distance, n_bits)

    for distance in range(min_distance, max_distance + 1):
        total = amount_of_combinations(distance, n_bits)
        if total >= MAX_COMBINATIONS:
            raise BruteForceError('distance is too high (amount of combinations causes an overflow)')

        workers = max(1, min(max_concurrency, total // MIN_ITERATIONS_PER_WORKER))
        piece = total // workers
        logger().log_debug(f'[bruteforce] distance {distance}: {total} combinations, {workers} workers')

        search = _Search()
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = []
            for chunk in range(workers):
                start = chunk * piece
                stop = total if chunk == workers - 1 else (chunk + 1) * piece
                logger().log_trace(f'[bruteforce] chunk {chunk}: combinations {start}..{stop}')
                futures.append(executor.submit(_worker, search, chunk, initial_data, distance, n_bits, start, stop,
                                               init_func, check_func))
            results: List[Optional[Combination]] = []
            errors = []
            for chunk, future in enumerate(futures):
                try:
                    results.append(future.result())
                except Exception as err:
                    logger().log_error(f'[bruteforce] worker {chunk} failed: {err}')
                    errors.append(err)
                    results.append(None)
        if errors:
            raise BruteForceError(f'workers had errors: {errors}')
        for result in results:
            if result is not None:
                return result
    return None
