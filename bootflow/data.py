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
Byte references and the Data values flowing between data sources and actions

usage:
    >>> ref = Reference(image, PhysMemMapper(), [Range(0xFFFF0000, 0x10)])
    >>> data = Data(references=[ref], converter=Hasher(TPM_ALG_SHA256))
    >>> data.converted_bytes()
"""

from typing import Any, Callable, Dict, Iterable, List, Optional

from bootflow.artifacts.artifact import AddressMapper, SystemArtifact
from bootflow.library.bytes import Range, Ranges
from bootflow.library.exceptions import ArtifactReadError, InvalidDataError
from bootflow.library.tpm.tpm_defines import algorithm_name, hash_bytes


class Reference:
    """A located slice of an artifact: ranges in the coordinates of `address_mapper`."""

    def __init__(self, artifact: SystemArtifact, address_mapper: Optional[AddressMapper] = None,
                 ranges: Iterable[Range] = ()) -> None:
        self.artifact = artifact
        self.address_mapper = address_mapper
        self.ranges = Ranges(ranges)

    def resolved_ranges(self) -> Ranges:
        """Returns the ranges as native offsets of the artifact."""
        if self.address_mapper is None:
            return Ranges(self.ranges)
        return self.address_mapper.resolve(self.artifact, self.ranges)

    def resolve(self) -> 'Reference':
        return Reference(self.artifact, None, self.resolved_ranges())

    def resolve_and_read(self) -> bytes:
        ranges = self.resolved_ranges()
        ranges.sort_and_merge()
        buf = bytearray()
        for r in ranges:
            chunk = self.artifact.read_at(r.offset, r.length)
            if len(chunk) != r.length:
                raise ArtifactReadError(f'Short read of {r} from {self.artifact!r}: got {len(chunk)} bytes')
            buf += chunk
        return bytes(buf)

    def key(self) -> tuple:
        mapper = type(self.address_mapper).__name__ if self.address_mapper is not None else ''
        return (type(self.artifact).__name__, id(self.artifact), mapper)

    def copy(self) -> 'Reference':
        return Reference(self.artifact, self.address_mapper, self.ranges)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'artifact': repr(self.artifact),
            'address_mapper': repr(self.address_mapper) if self.address_mapper is not None else None,
            'ranges': [str(r) for r in self.ranges],
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Reference):
            return NotImplemented
        return self.key() == other.key() and self.ranges == other.ranges

    def __repr__(self) -> str:
        mapper = f'{self.address_mapper!r}:' if self.address_mapper is not None else ''
        return f'Reference({self.artifact!r}, {mapper}{self.ranges})'


class References(List[Reference]):
    def raw_bytes(self) -> bytes:
        return b''.join(ref.resolve_and_read() for ref in self)

    def resolve(self) -> 'References':
        return References(ref.resolve() for ref in self)

    def sort_and_merge(self) -> None:
        """Groups references by (artifact, address mapper) and merges the ranges of each group in place."""
        groups: Dict[tuple, Reference] = {}
        for ref in self:
            group = groups.get(ref.key())
            if group is None:
                groups[ref.key()] = ref.copy()
            else:
                group.ranges.extend(ref.ranges)
        merged = []
        for key in sorted(groups, key=lambda k: (k[0], k[2], k[1])):
            group = groups[key]
            group.ranges.sort_and_merge()
            if group.ranges:
                merged.append(group)
        self[:] = merged

    def exclude(self, *others: Reference) -> 'References':
        """Returns the parts of these references not covered by `others` of the same artifact and mapper."""
        result = References(ref.copy() for ref in self)
        result.sort_and_merge()
        excluded = References(ref.copy() for ref in others)
        excluded.sort_and_merge()
        by_key = {ref.key(): ref for ref in excluded}
        filtered = References()
        for ref in result:
            other = by_key.get(ref.key())
            if other is not None:
                ref.ranges = ref.ranges.exclude(*other.ranges)
            if ref.ranges:
                filtered.append(ref)
        return filtered

    def ranges(self) -> Ranges:
        result = Ranges()
        for ref in self:
            result.extend(ref.ranges)
        return result

    def __str__(self) -> str:
        return ', '.join(repr(ref) for ref in self)


class Hasher:
    """Converter hashing the raw bytes of a Data with a TPM hash algorithm."""

    def __init__(self, hash_algo: int) -> None:
        self.hash_algo = hash_algo

    def __call__(self, data: bytes) -> bytes:
        return hash_bytes(self.hash_algo, data)

    def __repr__(self) -> str:
        return f'Hasher({algorithm_name(self.hash_algo)})'


class Data:
    """
    Literal bytes or a list of references, optionally passed through a converter.

    Holding literal bytes together with references is an error, and so is
    converting literal bytes.
    """

    def __init__(self, forced_bytes: Optional[bytes] = None, references: Optional[Iterable[Reference]] = None,
                 converter: Optional[Callable[[bytes], bytes]] = None) -> None:
        references = References(references or [])
        if forced_bytes is not None and references:
            raise InvalidDataError('Data cannot hold both literal bytes and references')
        if forced_bytes is not None and converter is not None:
            raise InvalidDataError('Literal bytes cannot be passed through a converter')
        self.forced_bytes = bytes(forced_bytes) if forced_bytes is not None else None
        self.references = references
        self.converter = converter

    @classmethod
    def from_bytes(cls, data: bytes) -> 'Data':
        return cls(forced_bytes=data)

    @classmethod
    def from_references(cls, *references: Reference) -> 'Data':
        return cls(references=references)

    def is_empty(self) -> bool:
        return self.forced_bytes is None and not self.references

    def raw_bytes(self) -> bytes:
        if self.forced_bytes is not None:
            return self.forced_bytes
        return self.references.raw_bytes()

    def converted_bytes(self) -> bytes:
        raw = self.raw_bytes()
        if self.converter is None:
            return raw
        return self.converter(raw)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        if self.forced_bytes is not None:
            result['forced_bytes'] = self.forced_bytes.hex()
        else:
            result['references'] = [ref.to_dict() for ref in self.references]
        if self.converter is not None:
            result['converter'] = repr(self.converter)
        return result

    def __repr__(self) -> str:
        if self.forced_bytes is not None:
            return f'Data(0x{self.forced_bytes.hex().upper()})'
        converter = f', {self.converter!r}' if self.converter is not None else ''
        return f'Data([{self.references}]{converter})'


class TrustedData:
    def __init__(self, data: Data, trust_chain: Any, actor: Any, data_source: Any, action: Any = None) -> None:
        self.data = data
        self.trust_chain = trust_chain
        self.actor = actor
        self.data_source = data_source
        # the action which produced this record
        self.action = action

    def references(self) -> References:
        return self.data.references

    def to_dict(self) -> Dict[str, Any]:
        return {
            'data': self.data.to_dict(),
            'trust_chain': type(self.trust_chain).__name__,
            'actor': repr(self.actor),
            'data_source': repr(self.data_source),
        }

    def __repr__(self) -> str:
        return f'{type(self).__name__}({self.data!r} by {type(self.trust_chain).__name__}, actor {self.actor!r})'


class MeasuredData(TrustedData):
    pass


class VerifiedData(TrustedData):
    pass


def references_of(items: Iterable[TrustedData]) -> References:
    result = References()
    for item in items:
        result.extend(item.references())
    return result
