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
BIOS firmware image artifact and its physical memory mapping
"""

from typing import Dict, Iterable, Iterator, List, Optional
from uuid import UUID

from bootflow.artifacts.amd import AMDFirmware
from bootflow.artifacts.artifact import AddressMapper, RawArtifact, SystemArtifact
from bootflow.artifacts.intel import IntelFirmware
from bootflow.artifacts.uefi import EFI_MODULE, find_by_guid, nodes_containing, walk_efi_tree
from bootflow.library.bytes import Range, Ranges
from bootflow.library.exceptions import MappingError

BIOS_REGION = 'bios'
FOUR_GB = 0x100000000


class BIOSImage(RawArtifact):
    """
    A flash image together with the layout an external parser found in it.

    `regions` maps flash region names to image ranges; with no regions the whole
    image is treated as the BIOS region.
    """

    def __init__(self, content: bytes, regions: Optional[Dict[str, Range]] = None, nodes: Iterable[EFI_MODULE] = (),
                 intel: Optional[IntelFirmware] = None, amd: Optional[AMDFirmware] = None) -> None:
        super(BIOSImage, self).__init__(content, 'BIOSImage')
        self.regions = regions
        self.nodes: List[EFI_MODULE] = list(nodes)
        self.intel = intel
        self.amd = amd

    def bios_region(self) -> Range:
        if self.regions is None:
            return Range(0, self.size())
        regions = [Range(*r) for name, r in self.regions.items() if name.lower() == BIOS_REGION]
        if len(regions) != 1:
            raise MappingError(f'Expected exactly one BIOS region, but found {len(regions)}')
        return regions[0]

    def walk(self) -> Iterator[EFI_MODULE]:
        return walk_efi_tree(self.nodes)

    def find_by_guid(self, guid: UUID) -> List[EFI_MODULE]:
        return find_by_guid(self.nodes, guid)

    def nodes_containing(self, r: Range) -> List[EFI_MODULE]:
        return nodes_containing(self.nodes, r)


class PhysMemMapper(AddressMapper):
    """Maps physical addresses to image offsets; the BIOS region ends at 4 GiB."""

    def _bios_region(self, artifact: SystemArtifact) -> Range:
        if not isinstance(artifact, BIOSImage):
            raise MappingError(f'Artifact {artifact!r} is not a BIOSImage')
        return artifact.bios_region()

    def resolve(self, artifact: SystemArtifact, ranges: Iterable[Range]) -> Ranges:
        bios = self._bios_region(artifact)
        base = FOUR_GB - bios.length
        result = Ranges()
        for r in ranges:
            if r.offset < base or r.offset + r.length > FOUR_GB:
                raise MappingError(f'Physical range {Range(*r)} is outside of the mapped BIOS region 0x{base:X}:0x{FOUR_GB:X}')
            result.append(Range(bios.offset + r.offset - base, r.length))
        return result

    def unresolve(self, artifact: SystemArtifact, ranges: Iterable[Range]) -> Ranges:
        bios = self._bios_region(artifact)
        base = FOUR_GB - bios.length
        result = Ranges()
        for r in ranges:
            if not bios.contains(Range(*r)):
                raise MappingError(f'Image range {Range(*r)} is outside of the BIOS region {bios}')
            result.append(Range(r.offset - bios.offset + base, r.length))
        return result
