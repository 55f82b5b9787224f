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
Search strategies for the actual value of the ACM_POLICY_STATUS register

The register is the first 8 bytes of the PCR0_DATA structure. The value read
by the firmware may differ from the one recorded later, so the candidates are
tried until the PCR0_DATA digest (or a whole PCR0 replay) matches:
  - linear: the recorded value, then decremented one by one;
  - combinatorial: bit flips of the recorded value up to a Hamming distance.
"""

import struct
from typing import Callable, Optional

from bootflow.artifacts.registers import ACM_POLICY_STATUS_SIZE
from bootflow.bruteforcer.bruteforcer import brute_force
from bootflow.bruteforcer.combinations import apply_bit_flips
from bootflow.library.exceptions import BruteForceError
from bootflow.library.logger import logger
from bootflow.library.tpm.tpm_defines import hash_bytes
from bootflow.pcrbruteforcer.settings import SettingsBruteforceACMPolicyStatus

CheckRegister = Callable[[bytes], bool]


def register_value(data: bytes) -> int:
    return struct.unpack('<Q', data)[0]


def register_bytes(value: int) -> bytes:
    return struct.pack('<Q', value & 0xFFFFFFFFFFFFFFFF)


def linear_search(initial: bytes, limit: int, check: CheckRegister) -> Optional[int]:
    value = register_value(initial)
    for distance in range(limit):
        candidate = register_bytes(value - distance)
        if check(candidate):
            return register_value(candidate)
    return None


def combinatorial_search(initial: bytes, limit: int, check: CheckRegister,
                         max_concurrency: Optional[int] = None) -> Optional[int]:
    combination = brute_force(initial, 0, limit, lambda _, data: check(data), max_concurrency=max_concurrency)
    if combination is None:
        return None
    result = bytearray(initial)
    apply_bit_flips(combination, result)
    return register_value(bytes(result))


def search_acm_policy_status(initial: bytes, check: CheckRegister,
                             settings: SettingsBruteforceACMPolicyStatus) -> Optional[int]:
    """Returns the first register value accepted by `check`, trying the enabled strategies in order."""
    if len(initial) != ACM_POLICY_STATUS_SIZE:
        raise BruteForceError(f'ACM_POLICY_STATUS register is expected to be 64 bits, but it is {len(initial) * 8} bits')
    result = linear_search(initial, settings.max_linear_distance, check)
    if result is not None:
        logger().log_debug(f'[pcrbruteforcer] ACM_POLICY_STATUS found by the linear search: 0x{result:016X}')
        return result
    if settings.enable_combinatorial_strategy:
        result = combinatorial_search(initial, settings.max_combinatorial_distance, check)
        if result is not None:
            logger().log_debug(f'[pcrbruteforcer] ACM_POLICY_STATUS found by the combinatorial search: 0x{result:016X}')
    return result


def pcr0_data_digest(pcr0_data: bytes, acm_policy_status: bytes, hash_algo: int) -> bytes:
    return hash_bytes(hash_algo, acm_policy_status + pcr0_data[ACM_POLICY_STATUS_SIZE:])


def bruteforce_pcr0_data_digest(pcr0_data: bytes, hash_algo: int, expected_digest: bytes,
                                settings: SettingsBruteforceACMPolicyStatus) -> Optional[int]:
    """Searches the ACM_POLICY_STATUS value which makes the PCR0_DATA digest equal to `expected_digest`."""
    def check(candidate: bytes) -> bool:
        return pcr0_data_digest(pcr0_data, candidate, hash_algo) == expected_digest

    return search_acm_policy_status(pcr0_data[:ACM_POLICY_STATUS_SIZE], check, settings)
