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
Reproduction of an expected PCR0 value from a recorded TPM command log

Searches, with increasing budgets, for the corrections which make a replay of
the PCR0 extends produce the expected digest:
  - the locality of TPM2_Startup (0 or 3);
  - the actual ACM_POLICY_STATUS value measured within PCR0_DATA;
  - measurements which did not happen on the real machine;
  - pairs of measurements which happened in swapped order.

usage:
    >>> result = reproduce_pcr0(tpm.command_log, TPM_ALG_SHA256, expected)
    >>> result.apply(tpm.command_log)
"""

from collections import namedtuple
from itertools import combinations
from typing import List, Optional, Sequence, Tuple

from bootflow.actions import TPMExtend
from bootflow.bruteforcer.combinations import iter_combinations
from bootflow.datasources import StaticData
from bootflow.library.exceptions import BruteForceError, ReplayConsistencyError
from bootflow.library.logger import logger
from bootflow.library.tpm.tpm_defines import algorithm_name
from bootflow.pcrbruteforcer.acm_policy_status import pcr0_data_digest, register_bytes, search_acm_policy_status
from bootflow.pcrbruteforcer.settings import SettingsReproducePCR0
from bootflow.steps.intel import MeasurePCR0DATA
from bootflow.tpm.commands import Command, CommandExtend, CommandInit, CommandLogEntry, Commands
from bootflow.tpm.tpm import TPM

LOCALITIES = (0, 3)


class OrderSwap(namedtuple('OrderSwap', 'idx_a idx_b')):
    """Two PCR0 measurements (indexes among the filtered measurements) which happened in swapped order."""
    __slots__ = ()


def filtered_measurements(command_log: Sequence[CommandLogEntry], hash_algo: int) -> List[CommandLogEntry]:
    """Returns the PCR0 extends of `hash_algo`."""
    return [entry for entry in command_log
            if isinstance(entry.command, CommandExtend) and entry.command.pcr_index == 0
            and entry.command.hash_algo == hash_algo]


def is_measure_pcr0_data_entry(entry: CommandLogEntry) -> bool:
    coords = entry.cause_coordinates
    if coords is None or coords.flow is None or coords.step_index < 0:
        return False
    return isinstance(coords.step(), MeasurePCR0DATA)


def pcr0_data_of(entry: CommandLogEntry) -> Tuple[bytes, bytes]:
    """Returns the PCR0_DATA bytes and the ACM_POLICY_STATUS bytes measured by `entry`."""
    action = entry.cause_action
    if not isinstance(action, TPMExtend) or not isinstance(action.data_source, StaticData):
        raise BruteForceError(f'The command {entry} is not caused by a PCR0_DATA measurement')
    data = action.data_source.data
    if not data.references:
        raise BruteForceError('PCR0_DATA has no references')
    return data.raw_bytes(), data.references[0].resolve_and_read()


def replay(commands: Sequence[Command], locality: int, hash_algo: int) -> bytes:
    """Replays PCR0 extends after TPM2_Startup at `locality` on a fresh TPM."""
    tpm = TPM([hash_algo])
    CommandInit(locality).apply(tpm)
    for cmd in commands:
        cmd.apply(tpm)
    return tpm.pcr_value(0, hash_algo)


class ReproducePCR0Result:
    def __init__(self, hash_algo: int, locality: int, acm_policy_status: Optional[int],
                 disabled_indexes: Sequence[int], disabled_measurements: Sequence[CommandLogEntry],
                 order_swaps: Sequence[OrderSwap]) -> None:
        self.hash_algo = hash_algo
        self.locality = locality
        self.acm_policy_status = acm_policy_status
        self.disabled_indexes = list(disabled_indexes)
        self.disabled_measurements = list(disabled_measurements)
        self.order_swaps = list(order_swaps)

    def apply(self, command_log: Sequence[CommandLogEntry]) -> Commands:
        """Returns the corrected PCR0 commands, starting with the TPM initialization."""
        measurements = filtered_measurements(command_log, self.hash_algo)
        enabled_indexes = [idx for idx in range(len(measurements)) if idx not in self.disabled_indexes]
        commands: List[Command] = [measurements[idx].command for idx in enabled_indexes]
        if self.acm_policy_status is not None and enabled_indexes:
            entry = measurements[enabled_indexes[0]]
            pcr0_data, _ = pcr0_data_of(entry)
            digest = pcr0_data_digest(pcr0_data, register_bytes(self.acm_policy_status), self.hash_algo)
            commands[0] = CommandExtend(0, self.hash_algo, digest)
        for swap in self.order_swaps:
            pos_a, pos_b = enabled_indexes.index(swap.idx_a), enabled_indexes.index(swap.idx_b)
            commands[pos_a], commands[pos_b] = commands[pos_b], commands[pos_a]
        return Commands([CommandInit(self.locality)] + commands)

    def __repr__(self) -> str:
        acm = f'0x{self.acm_policy_status:016X}' if self.acm_policy_status is not None else None
        return (f'ReproducePCR0Result(locality={self.locality}, acm_policy_status={acm}, '
                f'disabled_measurements={self.disabled_indexes}, order_swaps={self.order_swaps})')


class _Job:
    """Search for one locality."""

    def __init__(self, measurements: List[CommandLogEntry], hash_algo: int, expected: bytes, locality: int,
                 settings: SettingsReproducePCR0) -> None:
        self.measurements = measurements
        self.hash_algo = hash_algo
        self.expected = expected
        self.locality = locality
        self.settings = settings

    def execute(self) -> Optional[ReproducePCR0Result]:
        count = len(self.measurements)
        for disabled_count in range(min(self.settings.max_disabled_measurements, count) + 1):
            for disabled in iter_combinations(disabled_count, count):
                enabled_indexes = [idx for idx in range(count) if idx not in disabled]
                found = self._verify([self.measurements[idx] for idx in enabled_indexes])
                if found is None:
                    continue
                swaps, acm_policy_status = found
                return ReproducePCR0Result(
                    hash_algo=self.hash_algo,
                    locality=self.locality,
                    acm_policy_status=acm_policy_status,
                    disabled_indexes=disabled,
                    disabled_measurements=[self.measurements[idx] for idx in disabled],
                    order_swaps=[OrderSwap(enabled_indexes[s.idx_a], enabled_indexes[s.idx_b]) for s in swaps],
                )
        return None

    def _verify(self, enabled: List[CommandLogEntry]) -> Optional[Tuple[List[OrderSwap], Optional[int]]]:
        commands = [entry.command for entry in enabled]
        if enabled and is_measure_pcr0_data_entry(enabled[0]):
            pcr0_data, acm_policy_status = pcr0_data_of(enabled[0])

            def check(candidate: bytes) -> bool:
                digest = pcr0_data_digest(pcr0_data, candidate, self.hash_algo)
                return self._bruteforce_order([CommandExtend(0, self.hash_algo, digest)] + commands[1:]) is not None

            value = search_acm_policy_status(acm_policy_status, check, self.settings)
            if value is None:
                return None
            digest = pcr0_data_digest(pcr0_data, register_bytes(value), self.hash_algo)
            swaps = self._bruteforce_order([CommandExtend(0, self.hash_algo, digest)] + commands[1:])
            return swaps, value
        swaps = self._bruteforce_order(commands)
        if swaps is None:
            return None
        return swaps, None

    def _bruteforce_order(self, commands: List[Command]) -> Optional[List[OrderSwap]]:
        for limit in range(self.settings.max_reorders + 1):
            swaps = self._reorder(list(commands), [False] * len(commands), limit)
            if swaps is not None:
                return swaps
        return None

    def _reorder(self, commands: List[Command], swapped: List[bool], limit: int) -> Optional[List[OrderSwap]]:
        available = [idx for idx, is_swapped in enumerate(swapped) if not is_swapped]
        if limit == 0 or len(available) < 2:
            if replay(commands, self.locality, self.hash_algo) == self.expected:
                return []
            return None
        for idx_a, idx_b in combinations(available, 2):
            swapped[idx_a] = swapped[idx_b] = True
            commands[idx_a], commands[idx_b] = commands[idx_b], commands[idx_a]
            swaps = self._reorder(commands, swapped, limit - 1)
            commands[idx_a], commands[idx_b] = commands[idx_b], commands[idx_a]
            swapped[idx_a] = swapped[idx_b] = False
            if swaps is not None:
                return swaps + [OrderSwap(idx_a, idx_b)]
        return None


def reproduce_pcr0(command_log: Sequence[CommandLogEntry], hash_algo: int, expected_digest: bytes,
                   settings: Optional[SettingsReproducePCR0] = None) -> Optional[ReproducePCR0Result]:
    """
    Returns the corrections reproducing `expected_digest` as the final PCR0 value, or None if
    nothing within the `settings` bounds reproduces it.

    Every returned result is replayed once more before it is returned; a mismatch
    raises ReplayConsistencyError.
    """
    if settings is None:
        settings = SettingsReproducePCR0.default()
    expected_digest = bytes(expected_digest)
    measurements = filtered_measurements(command_log, hash_algo)
    logger().log_debug(f'[pcrbruteforcer] expected PCR0 {algorithm_name(hash_algo)} == {expected_digest.hex()}, '
                       f'{len(measurements)} measurements')
    for locality in LOCALITIES:
        result = _Job(measurements, hash_algo, expected_digest, locality, settings).execute()
        if result is None:
            logger().log_debug(f'[pcrbruteforcer] no answer with locality {locality}')
            continue
        corrected = result.apply(command_log)
        tpm = TPM([hash_algo])
        corrected.apply(tpm)
        if tpm.pcr_value(0, hash_algo) != expected_digest:
            raise ReplayConsistencyError(f'{result!r} does not reproduce the expected PCR0 {expected_digest.hex()}')
        logger().log_good(f'[pcrbruteforcer] reproduced PCR0: {result!r}')
        return result
    logger().log_bad(f'[pcrbruteforcer] unable to reproduce PCR0 {expected_digest.hex()}')
    return None
