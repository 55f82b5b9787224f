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
Simulated TPM: PCR banks, command log and event log
"""

from typing import Any, Dict, Iterable, Optional, Tuple

from bootflow.library.exceptions import (TPMAlreadyInitializedError, TPMNotInitializedError,
                                         UnsupportedHashAlgorithmError, UnsupportedPCRError)
from bootflow.library.tpm.tpm_defines import TPM_ALG_SHA1, TPM_ALG_SHA256, algorithm_name, digest_size
from bootflow.tpm.commands import (Command, CommandEventLogAdd, CommandExtend, CommandInit, CommandLog,
                                   CommandLogEntry)
from bootflow.tpm.event_log import EventLog
from bootflow.trustchains import TrustChain

PCR_REGISTERS_AMOUNT = 2

SUPPORTED_HASH_ALGOS = (TPM_ALG_SHA1, TPM_ALG_SHA256)


class TPM(TrustChain):
    def __init__(self, supported_algos: Optional[Iterable[int]] = None) -> None:
        self._default_algos = tuple(supported_algos) if supported_algos is not None else SUPPORTED_HASH_ALGOS
        self.supported_algos = list(self._default_algos)
        self.pcr_values: Dict[Tuple[int, int], bytes] = {}
        self.command_log = CommandLog()
        self.event_log = EventLog()

    def reset(self) -> None:
        self.reset_no_init()
        self.supported_algos = list(self._default_algos)

    def reset_no_init(self) -> None:
        """Drops PCR values and logs, but keeps the supported algorithms; for fast replays."""
        self.pcr_values = {}
        self.command_log = CommandLog()
        self.event_log = EventLog()

    def is_initialized(self) -> bool:
        return len(self.pcr_values) > 0

    def init_pcrs(self, locality: int) -> None:
        if self.is_initialized():
            raise TPMAlreadyInitializedError('TPM is already initialized')
        for hash_algo in self.supported_algos:
            size = digest_size(hash_algo)
            for pcr_index in range(PCR_REGISTERS_AMOUNT):
                value = bytearray(size)
                if pcr_index == 0:
                    value[-1] = locality
                self.pcr_values[(pcr_index, hash_algo)] = bytes(value)

    def _check(self, pcr_index: int, hash_algo: int) -> None:
        if pcr_index < 0 or pcr_index >= PCR_REGISTERS_AMOUNT:
            raise UnsupportedPCRError(f'PCR {pcr_index} is not supported')
        if hash_algo not in self.supported_algos:
            raise UnsupportedHashAlgorithmError(f'Hash algorithm {algorithm_name(hash_algo)} is not supported by the TPM')
        if not self.is_initialized():
            raise TPMNotInitializedError(f'PCR {pcr_index}:{algorithm_name(hash_algo)} is not initialized')

    def pcr_value(self, pcr_index: int, hash_algo: int) -> bytes:
        self._check(pcr_index, hash_algo)
        return self.pcr_values[(pcr_index, hash_algo)]

    def set_pcr_value(self, pcr_index: int, hash_algo: int, value: bytes) -> None:
        self._check(pcr_index, hash_algo)
        self.pcr_values[(pcr_index, hash_algo)] = bytes(value)

    def execute(self, cmd: Command, cause_coordinates: Any = None, cause_action: Any = None) -> None:
        """Logs the command with its cause and applies it."""
        self.command_log.append(CommandLogEntry(cmd, cause_coordinates, cause_action))
        cmd.apply(self)

    def tpm_init(self, locality: int, cause_coordinates: Any = None, cause_action: Any = None) -> None:
        self.execute(CommandInit(locality), cause_coordinates, cause_action)

    def tpm_extend(self, pcr_index: int, hash_algo: int, digest: bytes,
                   cause_coordinates: Any = None, cause_action: Any = None) -> None:
        self.execute(CommandExtend(pcr_index, hash_algo, digest), cause_coordinates, cause_action)

    def tpm_event_log_add(self, pcr_index: int, hash_algo: int, digest: bytes, event_type: int, data: Optional[bytes],
                          cause_coordinates: Any = None, cause_action: Any = None) -> None:
        self.execute(CommandEventLogAdd(pcr_index, hash_algo, digest, event_type, data), cause_coordinates, cause_action)

    def __str__(self) -> str:
        values = ', '.join(f'PCR{p}:{algorithm_name(a)}={v.hex()}' for (p, a), v in sorted(self.pcr_values.items()))
        return f'TPM({values})'
