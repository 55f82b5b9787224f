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
Commands understood by the simulated TPM and the log of executed commands
"""

from collections import namedtuple
from typing import TYPE_CHECKING, Any, Dict, List

from bootflow.library.tpm.tpm_defines import algorithm_name, event_type_name, hash_bytes

if TYPE_CHECKING:
    from bootflow.tpm.tpm import TPM


class Command:
    def apply(self, tpm: 'TPM') -> None:
        raise NotImplementedError()

    def log_string(self) -> str:
        raise NotImplementedError()

    def to_dict(self) -> Dict[str, Any]:
        raise NotImplementedError()

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return vars(self) == vars(other)

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.log_string()))

    def __repr__(self) -> str:
        return self.log_string()


class CommandInit(Command):
    def __init__(self, locality: int) -> None:
        self.locality = locality

    def apply(self, tpm: 'TPM') -> None:
        tpm.init_pcrs(self.locality)

    def log_string(self) -> str:
        return f'TPMInit({self.locality})'

    def to_dict(self) -> Dict[str, Any]:
        return {'command': 'init', 'locality': self.locality}


class CommandExtend(Command):
    def __init__(self, pcr_index: int, hash_algo: int, digest: bytes) -> None:
        self.pcr_index = pcr_index
        self.hash_algo = hash_algo
        self.digest = bytes(digest)

    def apply(self, tpm: 'TPM') -> None:
        old_value = tpm.pcr_value(self.pcr_index, self.hash_algo)
        tpm.set_pcr_value(self.pcr_index, self.hash_algo, hash_bytes(self.hash_algo, old_value + self.digest))

    def log_string(self) -> str:
        return f'TPMExtend({self.pcr_index}, {algorithm_name(self.hash_algo)}, {self.digest.hex()})'

    def to_dict(self) -> Dict[str, Any]:
        return {
            'command': 'extend',
            'pcr': self.pcr_index,
            'hash_algo': algorithm_name(self.hash_algo),
            'digest': self.digest.hex(),
        }


class CommandEventLogAdd(Command):
    """Adds an event log entry; the PCR itself is changed only by the paired CommandExtend."""

    def __init__(self, pcr_index: int, hash_algo: int, digest: bytes, event_type: int, data: bytes) -> None:
        self.pcr_index = pcr_index
        self.hash_algo = hash_algo
        self.digest = bytes(digest)
        self.event_type = event_type
        self.data = bytes(data) if data is not None else None

    def as_extend(self) -> CommandExtend:
        return CommandExtend(self.pcr_index, self.hash_algo, self.digest)

    def apply(self, tpm: 'TPM') -> None:
        tpm.event_log.add(self.pcr_index, self.hash_algo, self.digest, self.event_type, self.data)

    def log_string(self) -> str:
        s = f'TPMEventLogAdd({self.pcr_index}, {algorithm_name(self.hash_algo)}, {self.digest.hex()}, Type: {event_type_name(self.event_type)}'
        if self.data is not None:
            s += f', Data: 0x{self.data.hex().upper()}'
        return s + ')'

    def to_dict(self) -> Dict[str, Any]:
        return {
            'command': 'event_log_add',
            'pcr': self.pcr_index,
            'hash_algo': algorithm_name(self.hash_algo),
            'digest': self.digest.hex(),
            'event_type': event_type_name(self.event_type),
            'data': self.data.hex() if self.data is not None else None,
        }


class Commands(List[Command]):
    def apply(self, tpm: 'TPM') -> None:
        for cmd in self:
            cmd.apply(tpm)

    def log_string(self) -> str:
        return ', '.join(cmd.log_string() for cmd in self)


class CommandLogEntry(namedtuple('CommandLogEntry', 'command cause_coordinates cause_action')):
    """An executed command and the (flow, step, action) that caused it."""
    __slots__ = ()

    def __str__(self) -> str:
        return self.command.log_string()


class CommandLog(List[CommandLogEntry]):
    def commands(self) -> Commands:
        return Commands(entry.command for entry in self)

    def __str__(self) -> str:
        return ''.join(f'{idx}. {entry}\n' for idx, entry in enumerate(self))
