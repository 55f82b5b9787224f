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
AMD PSP firmware metadata as supplied by a PSP/BIOS directory parser

All ranges are offsets within the firmware image.
"""

from collections import namedtuple
from typing import List, Optional, Tuple

from bootflow.library.bytes import Range

DIRECTORY_LEVEL_ALL = 0
DIRECTORY_LEVEL_1 = 1
DIRECTORY_LEVEL_2 = 2

# PSP directory entry types
PSP_BOOTLOADER_FIRMWARE_ENTRY = 0x01

# BIOS directory entry types
APCB_DATA_ENTRY = 0x60
APOB_BINARY_ENTRY = 0x61
BIOS_RTM_VOLUME_ENTRY = 0x62
PMU_FIRMWARE_INSTRUCTIONS_ENTRY = 0x64
PMU_FIRMWARE_DATA_ENTRY = 0x65
MICROCODE_PATCH_ENTRY = 0x66
APCB_DATA_BACKUP_ENTRY = 0x68
VIDEO_INTERPRETER_ENTRY = 0x69
BIOS_DIRECTORY_TABLE_LEVEL2_ENTRY = 0x70


class BIOSDirectoryEntry(namedtuple('BIOSDirectoryEntry', 'entry_type level source_address size')):
    __slots__ = ()

    def range(self) -> Range:
        return Range(self.source_address, self.size)


class AMDFirmware:
    def __init__(self,
                 psp_directory_ranges: Optional[List[Range]] = None,
                 bios_directory_ranges: Optional[List[Tuple[Range, int]]] = None,
                 embedded_firmware_range: Optional[Range] = None,
                 bios_directory_entries: Optional[List[BIOSDirectoryEntry]] = None,
                 psp_version_range: Optional[Range] = None,
                 valid_psp_directory: bool = True,
                 valid_bios_directory: bool = True) -> None:
        self.psp_directory_ranges = [Range(*r) for r in psp_directory_ranges or []]
        # (directory range, header size) per directory level
        self.bios_directory_ranges = [(Range(*r), header_size) for r, header_size in bios_directory_ranges or []]
        self.embedded_firmware_range = embedded_firmware_range
        self.bios_directory_entries: List[BIOSDirectoryEntry] = list(bios_directory_entries or [])
        self.psp_version_range = psp_version_range
        self.valid_psp_directory = valid_psp_directory
        self.valid_bios_directory = valid_bios_directory

    def directory_entries(self, level: int, entry_types: Tuple[int, ...]) -> List[BIOSDirectoryEntry]:
        return [e for e in self.bios_directory_entries
                if (level == DIRECTORY_LEVEL_ALL or e.level == level) and e.entry_type in entry_types]
