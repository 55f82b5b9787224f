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
Addressable byte blobs and the address mappers translating between their coordinate systems
"""

from typing import Iterable

from bootflow.library.bytes import Range, Ranges
from bootflow.library.exceptions import ArtifactReadError


class SystemArtifact:
    """An immutable addressable blob of bytes (a firmware image, a register snapshot)."""

    def size(self) -> int:
        raise NotImplementedError()

    def read_at(self, offset: int, length: int) -> bytes:
        raise NotImplementedError()


class RawArtifact(SystemArtifact):
    def __init__(self, content: bytes, name: str = 'raw') -> None:
        self.content = bytes(content)
        self.name = name

    def size(self) -> int:
        return len(self.content)

    def read_at(self, offset: int, length: int) -> bytes:
        if offset < 0 or length < 0 or offset + length > len(self.content):
            raise ArtifactReadError(f'Read out of bounds of {self.name}: 0x{offset:X}:0x{offset + length:X} (size 0x{len(self.content):X})')
        return self.content[offset:offset + length]

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}({self.name}, size=0x{self.size():X})'


class AddressMapper:
    """
    Translates ranges of some coordinate system into native offsets of an artifact (resolve)
    and back (unresolve).
    """

    def resolve(self, artifact: SystemArtifact, ranges: Iterable[Range]) -> Ranges:
        raise NotImplementedError()

    def unresolve(self, artifact: SystemArtifact, ranges: Iterable[Range]) -> Ranges:
        raise NotImplementedError()

    def __repr__(self) -> str:
        return self.__class__.__name__


class IdentityMapper(AddressMapper):
    def resolve(self, artifact: SystemArtifact, ranges: Iterable[Range]) -> Ranges:
        return Ranges(ranges)

    def unresolve(self, artifact: SystemArtifact, ranges: Iterable[Range]) -> Ranges:
        return Ranges(ranges)
