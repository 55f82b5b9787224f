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
AMD PSP steps
"""

from typing import Any, List

from bootflow.actions import Action, Panic, SetFlow, SetPSPVerified, TPMEvent
from bootflow.artifacts.amd import (BIOS_RTM_VOLUME_ENTRY, DIRECTORY_LEVEL_ALL, MICROCODE_PATCH_ENTRY,
                                    PMU_FIRMWARE_DATA_ENTRY, PMU_FIRMWARE_INSTRUCTIONS_ENTRY, VIDEO_INTERPRETER_ENTRY)
from bootflow.conditions import ValidBIOSDirectory, ValidPSPDirectory
from bootflow.data import Data, Reference
from bootflow.datasources import (BIOSDirectory, BIOSDirectoryEntries, DataSource, EmbeddedFirmware, PSPDirectory,
                                  PSPVersion, RegistersMP0C2PMsg, StaticData)
from bootflow.library.exceptions import ArtifactNotFound, DataSourceError, MappingError
from bootflow.library.tpm.tpm_defines import EV_EFI_PLATFORM_FIRMWARE_BLOB
from bootflow.state import State
from bootflow.steps.common import Step


def measure_each_range_separately(state: State, pcr_index: int, data_source: DataSource,
                                  event_type: int, name: str) -> List[Action]:
    """One measurement per range, described as '<name>_<reference index>_<range index>'."""
    try:
        data = data_source.resolve(state)
    except (ArtifactNotFound, DataSourceError, MappingError) as err:
        return [Panic(f'Unable to get data from source {data_source!r}: {err}')]
    actions: List[Action] = []
    for ref_idx, ref in enumerate(data.references):
        for range_idx, r in enumerate(ref.ranges):
            single = Data.from_references(Reference(ref.artifact, ref.address_mapper, [r]))
            actions.append(TPMEvent(pcr_index, StaticData(single), event_type,
                                    f'{name}_{ref_idx}_{range_idx}'.encode()))
    return actions


class _VerifyDirectory(Step):
    def __init__(self, fallback_flow: Any) -> None:
        self.fallback_flow = fallback_flow

    def __repr__(self) -> str:
        return f'{type(self).__name__}({self.fallback_flow.name})'


class VerifyPSPDirectory(_VerifyDirectory):
    def actions(self, state: State) -> List[Action]:
        if ValidPSPDirectory().check(state):
            return [SetPSPVerified(PSPDirectory())]
        return [SetFlow(self.fallback_flow)]


class VerifyBIOSDirectory(_VerifyDirectory):
    def actions(self, state: State) -> List[Action]:
        if ValidBIOSDirectory().check(state):
            return [SetPSPVerified(BIOSDirectory())]
        return [SetFlow(self.fallback_flow)]


class MeasurePSPVersion(Step):
    def actions(self, state: State) -> List[Action]:
        return [TPMEvent(0, PSPVersion(), EV_EFI_PLATFORM_FIRMWARE_BLOB, b'PSP Version')]


class MeasureMP0C2PMsgRegisters(Step):
    def actions(self, state: State) -> List[Action]:
        return [TPMEvent(0, RegistersMP0C2PMsg(), EV_EFI_PLATFORM_FIRMWARE_BLOB, b'MP0C2PMsg')]


class MeasureEmbeddedFirmwareStructure(Step):
    def actions(self, state: State) -> List[Action]:
        return [TPMEvent(0, EmbeddedFirmware(), EV_EFI_PLATFORM_FIRMWARE_BLOB, b'EmbeddedFirmware')]


class MeasureBIOSDirectory(Step):
    def actions(self, state: State) -> List[Action]:
        return measure_each_range_separately(state, 0, BIOSDirectory(), EV_EFI_PLATFORM_FIRMWARE_BLOB, 'BIOSDirectory')


class _MeasureDirectoryEntries(Step):
    entries = ()

    def actions(self, state: State) -> List[Action]:
        actions: List[Action] = []
        for entry_type, name in self.entries:
            actions += measure_each_range_separately(state, 0, BIOSDirectoryEntries(DIRECTORY_LEVEL_ALL, entry_type),
                                                     EV_EFI_PLATFORM_FIRMWARE_BLOB, name)
        return actions


class MeasureBIOSRTMVolume(_MeasureDirectoryEntries):
    entries = ((BIOS_RTM_VOLUME_ENTRY, 'BIOSRTMVolume'),)


class MeasurePMUFirmware(_MeasureDirectoryEntries):
    entries = (
        (PMU_FIRMWARE_INSTRUCTIONS_ENTRY, 'PMUDataInstructions'),
        (PMU_FIRMWARE_DATA_ENTRY, 'PMUFirmwareData'),
    )


class MeasureMicrocodePatch(_MeasureDirectoryEntries):
    entries = ((MICROCODE_PATCH_ENTRY, 'MicrocodePatch'),)


class MeasureVideoInterpreter(_MeasureDirectoryEntries):
    entries = ((VIDEO_INTERPRETER_ENTRY, 'VideoInterpreter'),)
