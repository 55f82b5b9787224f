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
Register snapshots exposed as addressable artifacts

usage:
    >>> txt = TXTPublic([acm_policy_status(0x1234)])
    >>> txt.read_at(ACM_POLICY_STATUS_OFFSET, ACM_POLICY_STATUS_SIZE)
"""

from collections import namedtuple
from typing import Iterable, List, Optional

from bootflow.artifacts.artifact import SystemArtifact
from bootflow.library.exceptions import ArtifactReadError

TXT_PUBLIC_SPACE = 0xFED30000
TXT_PUBLIC_SPACE_SIZE = 0x10000

ACM_POLICY_STATUS = 'ACM_POLICY_STATUS'
ACM_POLICY_STATUS_OFFSET = 0x378
ACM_POLICY_STATUS_SIZE = 8

MP0_C2P_MSG_37 = 'MP0_C2P_MSG_37'
MP0_C2P_MSG_38 = 'MP0_C2P_MSG_38'


class Register(namedtuple('Register', 'name address size value')):
    """A register value snapshot; `size` is in bytes, `value` is an unsigned integer."""
    __slots__ = ()

    def to_bytes(self) -> bytes:
        return self.value.to_bytes(self.size, 'little')


def acm_policy_status(value: int) -> Register:
    return Register(ACM_POLICY_STATUS, TXT_PUBLIC_SPACE + ACM_POLICY_STATUS_OFFSET, ACM_POLICY_STATUS_SIZE, value)


def mp0_c2p_msg(name: str, value: int) -> Register:
    return Register(name, 0, 4, value)


class RegisterSet(SystemArtifact):
    registers: List[Register] = []

    def find(self, name: str) -> Optional[Register]:
        for reg in self.registers:
            if reg.name == name:
                return reg
        return None

    def __repr__(self) -> str:
        return f'{type(self).__name__}({", ".join(r.name for r in self.registers)})'


class TXTPublic(RegisterSet):
    """TXT public space registers, addressed by offset from TXT_PUBLIC_SPACE."""

    def __init__(self, registers: Iterable[Register]) -> None:
        self.registers = sorted(
            (r for r in registers if TXT_PUBLIC_SPACE <= r.address < TXT_PUBLIC_SPACE + TXT_PUBLIC_SPACE_SIZE),
            key=lambda r: r.address)

    def size(self) -> int:
        return TXT_PUBLIC_SPACE_SIZE

    def read_at(self, offset: int, length: int) -> bytes:
        for reg in self.registers:
            reg_offset = reg.address - TXT_PUBLIC_SPACE
            if offset < reg_offset or offset >= reg_offset + reg.size:
                continue
            if offset != reg_offset:
                raise ArtifactReadError(f'Read at 0x{offset:X} is not aligned with register {reg.name} at 0x{reg_offset:X}')
            if length > reg.size:
                raise ArtifactReadError(f'Read of {length} bytes exceeds register {reg.name} ({reg.size} bytes)')
            return reg.to_bytes()[:length]
        raise ArtifactReadError(f'No TXT register at offset 0x{offset:X}')


class AMDRegisters(RegisterSet):
    """AMD MP0 C2P message registers laid out back to back in name order."""

    def __init__(self, registers: Iterable[Register]) -> None:
        self.registers = sorted((r for r in registers if r.name in (MP0_C2P_MSG_37, MP0_C2P_MSG_38)),
                                key=lambda r: r.name)

    def size(self) -> int:
        return sum(r.size for r in self.registers)

    def offset_of(self, name: str) -> Optional[int]:
        offset = 0
        for reg in self.registers:
            if reg.name == name:
                return offset
            offset += reg.size
        return None

    def read_at(self, offset: int, length: int) -> bytes:
        buf = b''.join(r.to_bytes() for r in self.registers)
        starts = [self.offset_of(r.name) for r in self.registers]
        if length and offset not in starts:
            raise ArtifactReadError(f'No AMD register at offset {offset}')
        if offset + length > len(buf):
            raise ArtifactReadError(f'Read of 0x{offset:X}:0x{offset + length:X} exceeds the AMD registers (0x{len(buf):X} bytes)')
        return buf[offset:offset + length]
