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
Data sources: computations resolving to a Data value for the current state

usage:
    >>> ds = SortAndMerge(Concat(UEFIFilesByType(EFI_FV_FILETYPE_PEIM), VolumeOf(UEFIFilesByName('PeiCore'))))
    >>> ds.resolve(state)
"""

from typing import Callable, Iterable
from uuid import UUID

from bootflow.artifacts.bios_image import BIOSImage, PhysMemMapper
from bootflow.artifacts.intel import fit_type_name
from bootflow.artifacts.registers import (ACM_POLICY_STATUS, ACM_POLICY_STATUS_OFFSET, ACM_POLICY_STATUS_SIZE,
                                          MP0_C2P_MSG_37, MP0_C2P_MSG_38)
from bootflow.artifacts.uefi import EFI_FILE, EFI_FV
from bootflow.conditions import IsOCPv0, IsOCPv1
from bootflow.data import Data, Reference, References
from bootflow.library.bytes import Range, Ranges
from bootflow.library.exceptions import AmbiguousMatch, SourceNotFound, UnsupportedComposition
from bootflow.state import State


class DataSource:
    def resolve(self, state: State) -> Data:
        raise NotImplementedError()

    def __repr__(self) -> str:
        return f'{type(self).__name__}()'


def image_reference(image: BIOSImage, image_ranges: Iterable[Range]) -> Reference:
    """References image offsets in physical memory coordinates."""
    mapper = PhysMemMapper()
    return Reference(image, mapper, mapper.unresolve(image, image_ranges))


def _check_composable(name: str, data: Data) -> None:
    if data.forced_bytes is not None:
        raise UnsupportedComposition(f'Data source {name} does not support literal bytes')
    if data.converter is not None:
        raise UnsupportedComposition(f'Data source {name} does not support converted data')


################################################################################################
# Generic
################################################################################################

class StaticData(DataSource):
    def __init__(self, data: Data) -> None:
        self.data = data

    def resolve(self, state: State) -> Data:
        return self.data

    def __repr__(self) -> str:
        return f'StaticData({self.data!r})'


class Bytes(StaticData):
    def __init__(self, data: bytes) -> None:
        super(Bytes, self).__init__(Data.from_bytes(data))


class Concat(DataSource):
    def __init__(self, *sources: DataSource) -> None:
        self.sources = list(sources)

    def resolve(self, state: State) -> Data:
        refs = References()
        for ds in self.sources:
            data = ds.resolve(state)
            _check_composable('Concat', data)
            refs.extend(data.references)
        return Data(references=refs)

    def __repr__(self) -> str:
        return f'Concat({", ".join(repr(ds) for ds in self.sources)})'


class SortAndMerge(DataSource):
    def __init__(self, source: DataSource) -> None:
        self.source = source

    def resolve(self, state: State) -> Data:
        data = self.source.resolve(state)
        _check_composable('SortAndMerge', data)
        refs = References(ref.copy() for ref in data.references)
        refs.sort_and_merge()
        return Data(references=refs)

    def __repr__(self) -> str:
        return f'SortAndMerge({self.source!r})'


class MemRanges(DataSource):
    """Physical memory ranges; they must map into the BIOS image."""

    def __init__(self, *ranges: Range) -> None:
        self.ranges = Ranges(ranges)

    def resolve(self, state: State) -> Data:
        image = state.get_bios_image()
        mapper = PhysMemMapper()
        mapper.resolve(image, self.ranges)
        return Data.from_references(Reference(image, mapper, self.ranges))

    def __repr__(self) -> str:
        return 'MemRanges(' + ','.join(f'{r.offset:08X}:{r.end - 1:08X}' for r in self.ranges) + ')'


class PCDVariable(DataSource):
    def __init__(self, name: str) -> None:
        self.name = name

    def resolve(self, state: State) -> Data:
        if self.name != 'FirmwareVendorVersion':
            raise SourceNotFound(f"Unknown PCD variable '{self.name}'")
        for cond in (IsOCPv0(), IsOCPv1()):
            if cond.check(state):
                return Data.from_bytes(cond.firmware_vendor_version())
        raise SourceNotFound('No PCD parser is defined for this firmware')

    def __repr__(self) -> str:
        return f'PCDVariable("{self.name}")'


################################################################################################
# UEFI
################################################################################################

class UEFIFiles(DataSource):
    """All UEFI files matching `predicate`; an empty result is valid."""

    def __init__(self, predicate: Callable[[EFI_FILE], bool], description: str = '') -> None:
        self.predicate = predicate
        self.description = description

    def resolve(self, state: State) -> Data:
        image = state.get_bios_image()
        ranges = Ranges(node.range() for node in image.walk() if isinstance(node, EFI_FILE) and self.predicate(node))
        ranges.sort_and_merge()
        if not ranges:
            return Data()
        return Data.from_references(image_reference(image, ranges))

    def __repr__(self) -> str:
        return f'UEFIFiles({self.description})'


class UEFIFilesByType(UEFIFiles):
    def __init__(self, *file_types: int) -> None:
        self.file_types = file_types
        super(UEFIFilesByType, self).__init__(lambda f: f.Type in self.file_types,
                                              ', '.join(f'0x{t:02X}' for t in file_types))


class UEFIFilesByName(UEFIFiles):
    def __init__(self, *names: str) -> None:
        self.names = names
        super(UEFIFilesByName, self).__init__(lambda f: f.ui_string in self.names, ', '.join(names))


class UEFIGUIDFirst(DataSource):
    """Nodes with the first of the GUIDs which is present in the image."""

    def __init__(self, *guids: UUID) -> None:
        self.guids = list(guids)

    def resolve(self, state: State) -> Data:
        image = state.get_bios_image()
        for guid in self.guids:
            nodes = image.find_by_guid(guid)
            if nodes:
                return Data.from_references(image_reference(image, [node.range() for node in nodes]))
        raise SourceNotFound(f'No volumes with GUIDs {self._guids()} found')

    def _guids(self) -> str:
        return ', '.join(str(guid).upper() for guid in self.guids)

    def __repr__(self) -> str:
        return f'UEFIGUIDFirst({self._guids()})'


class VolumeOf(DataSource):
    """Lifts every referenced range up to the firmware volume containing it."""

    def __init__(self, source: DataSource) -> None:
        self.source = source

    def resolve(self, state: State) -> Data:
        image = state.get_bios_image()
        data = self.source.resolve(state)
        _check_composable('VolumeOf', data)
        ranges = Ranges()
        for ref in data.references:
            if ref.artifact is not image:
                raise UnsupportedComposition(f'Reference {ref!r} does not point to the BIOS image')
            for r in ref.resolved_ranges():
                volume = next((node for node in image.nodes_containing(r) if isinstance(node, EFI_FV)), None)
                if volume is None:
                    raise SourceNotFound(f'Unable to find the volume for range {r}')
                ranges.append(volume.range())
        ranges.sort_and_merge()
        if not ranges:
            return Data()
        return Data.from_references(image_reference(image, ranges))

    def __repr__(self) -> str:
        return f'VolumeOf({self.source!r})'


################################################################################################
# Intel
################################################################################################

def _intel_firmware(state: State):
    image = state.get_bios_image()
    if image.intel is None:
        raise SourceNotFound('The BIOS image has no Intel FIT')
    return image, image.intel


class IntelFITFirst(DataSource):
    def __init__(self, entry_type: int) -> None:
        self.entry_type = entry_type

    def resolve(self, state: State) -> Data:
        image, intel = _intel_firmware(state)
        entry = intel.fit_first(self.entry_type)
        if entry is None:
            raise SourceNotFound(f'Unable to find FIT entry of type {fit_type_name(self.entry_type)}')
        return Data.from_references(Reference(image, PhysMemMapper(), [entry.range()]))

    def __repr__(self) -> str:
        return f'IntelFITFirst({fit_type_name(self.entry_type)})'


class IBB(DataSource):
    def resolve(self, state: State) -> Data:
        image, intel = _intel_firmware(state)
        if intel.bpm is None:
            raise SourceNotFound('Boot Policy Manifest is not found')
        return Data.from_references(Reference(image, PhysMemMapper(), intel.bpm.ibb_ranges))


class ACMPolicyStatus(DataSource):
    def resolve(self, state: State) -> Data:
        txt_public = state.get_txt_public()
        count = sum(1 for reg in txt_public.registers if reg.name == ACM_POLICY_STATUS)
        if count == 0:
            raise SourceNotFound('ACM_POLICY_STATUS register is not in the TXT public space snapshot')
        if count > 1:
            raise AmbiguousMatch(f'{count} ACM_POLICY_STATUS registers in the TXT public space snapshot')
        return Data.from_references(Reference(txt_public, None, [Range(ACM_POLICY_STATUS_OFFSET, ACM_POLICY_STATUS_SIZE)]))


################################################################################################
# AMD
################################################################################################

def _amd_firmware(state: State):
    image = state.get_bios_image()
    if image.amd is None:
        raise SourceNotFound('The BIOS image has no AMD PSP firmware')
    return image, image.amd


class PSPDirectory(DataSource):
    def resolve(self, state: State) -> Data:
        image, amd = _amd_firmware(state)
        return Data.from_references(image_reference(image, amd.psp_directory_ranges))

    def __repr__(self) -> str:
        return 'AMD_PSP_Directory'


class BIOSDirectory(DataSource):
    """Each BIOS directory level as two ranges: the table header and the entries."""

    def resolve(self, state: State) -> Data:
        image, amd = _amd_firmware(state)
        ranges = Ranges()
        for r, header_size in amd.bios_directory_ranges:
            ranges.append(Range(r.offset, header_size))
            ranges.append(Range(r.offset + header_size, r.length - header_size))
        return Data.from_references(image_reference(image, ranges))

    def __repr__(self) -> str:
        return 'AMD_BIOS_Directory'


class EmbeddedFirmware(DataSource):
    def resolve(self, state: State) -> Data:
        image, amd = _amd_firmware(state)
        if amd.embedded_firmware_range is None:
            raise SourceNotFound('Embedded firmware structure is not found')
        return Data.from_references(image_reference(image, [amd.embedded_firmware_range]))


class BIOSDirectoryEntries(DataSource):
    def __init__(self, level: int, *entry_types: int) -> None:
        self.level = level
        self.entry_types = entry_types

    def resolve(self, state: State) -> Data:
        image, amd = _amd_firmware(state)
        entries = amd.directory_entries(self.level, self.entry_types)
        return Data.from_references(image_reference(image, [e.range() for e in entries]))

    def __repr__(self) -> str:
        types = ', '.join(f'0x{t:02X}' for t in self.entry_types)
        return f'BIOSDirectoryEntries(L: {self.level}, T: [{types}])'


class PSPVersion(DataSource):
    def resolve(self, state: State) -> Data:
        image, amd = _amd_firmware(state)
        if amd.psp_version_range is None:
            raise SourceNotFound('PSP version not found')
        return Data.from_references(image_reference(image, [amd.psp_version_range]))


class RegistersMP0C2PMsg(DataSource):
    def resolve(self, state: State) -> Data:
        registers = state.get_amd_registers()
        ranges = Ranges()
        for name in (MP0_C2P_MSG_37, MP0_C2P_MSG_38):
            offset = registers.offset_of(name)
            if offset is None:
                continue
            ranges.append(Range(offset, registers.find(name).size))
        if not ranges:
            raise SourceNotFound(f'Neither {MP0_C2P_MSG_37} nor {MP0_C2P_MSG_38} is present')
        return Data.from_references(Reference(registers, None, ranges))
