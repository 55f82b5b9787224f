# CHIPSEC: Platform Security Assessment Framework
# Copyright (c) 2010-2021, Intel Corporation
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
UEFI firmware layout model

The layout is supplied by an external firmware parser: every node carries its absolute
offset and size within the image, the GUID of the volume or file, and its children.
"""

from typing import Callable, Iterator, List, Optional
from uuid import UUID

from bootflow.library.bytes import Range

################################################################################################
#
# EFI Firmware Volume Defines
#
################################################################################################

EFI_FV_FILETYPE_ALL = 0x00
EFI_FV_FILETYPE_RAW = 0x01
EFI_FV_FILETYPE_FREEFORM = 0x02
EFI_FV_FILETYPE_SECURITY_CORE = 0x03
EFI_FV_FILETYPE_PEI_CORE = 0x04
EFI_FV_FILETYPE_DXE_CORE = 0x05
EFI_FV_FILETYPE_PEIM = 0x06
EFI_FV_FILETYPE_DRIVER = 0x07
EFI_FV_FILETYPE_COMBINED_PEIM_DRIVER = 0x08
EFI_FV_FILETYPE_APPLICATION = 0x09
EFI_FV_FILETYPE_MM = 0x0a
EFI_FV_FILETYPE_FIRMWARE_VOLUME_IMAGE = 0x0b
EFI_FV_FILETYPE_COMBINED_MM_DXE = 0x0c
EFI_FV_FILETYPE_MM_CORE = 0x0d
EFI_FV_FILETYPE_MM_STANDALONE = 0x0e
EFI_FV_FILETYPE_MM_CORE_STANDALONE = 0x0f
EFI_FV_FILETYPE_FFS_PAD = 0xf0

EFI_SECTION_ALL = 0x00
EFI_SECTION_COMPRESSION = 0x01
EFI_SECTION_GUID_DEFINED = 0x02
EFI_SECTION_PE32 = 0x10
EFI_SECTION_PIC = 0x11
EFI_SECTION_TE = 0x12
EFI_SECTION_DXE_DEPEX = 0x13
EFI_SECTION_VERSION = 0x14
EFI_SECTION_USER_INTERFACE = 0x15
EFI_SECTION_COMPATIBILITY16 = 0x16
EFI_SECTION_FIRMWARE_VOLUME_IMAGE = 0x17
EFI_SECTION_FREEFORM_SUBTYPE_GUID = 0x18
EFI_SECTION_RAW = 0x19
EFI_SECTION_PEI_DEPEX = 0x1B
EFI_SECTION_MM_DEPEX = 0x1C

EFI_SECTIONS_EXE = [EFI_SECTION_PE32, EFI_SECTION_TE, EFI_SECTION_PIC, EFI_SECTION_COMPATIBILITY16]

# Volumes holding the DXE phase; the container is the compressed variant
GUID_DXE = UUID('5C60F367-A505-419A-859E-2A4FF6CA6FE5')
GUID_DXE_CONTAINER = UUID('4F1C52D3-D824-4D2A-A2F0-EC40C23C5916')


class EFI_MODULE:
    def __init__(self, Offset: int, Guid: Optional[UUID], Size: int):
        self.Offset = Offset
        self.Guid = Guid
        self.Size = Size
        self.ui_string = ''

        # a list of children EFI_MODULE nodes to build the EFI_MODULE object model
        self.children: List['EFI_MODULE'] = []

    def range(self) -> Range:
        return Range(self.Offset, self.Size)

    def add(self, *children: 'EFI_MODULE') -> 'EFI_MODULE':
        self.children.extend(children)
        return self

    def name(self) -> str:
        _guid = str(self.Guid).upper() if self.Guid is not None else ''
        return f'{type(self).__name__} {{{_guid}}} {self.ui_string}'.rstrip()

    def __str__(self) -> str:
        return f'+{self.Offset:08X}h {self.name()}: Size {self.Size:08X}h'

    def __repr__(self) -> str:
        return f'<{self}>'


class EFI_FV(EFI_MODULE):
    pass


class EFI_FILE(EFI_MODULE):
    def __init__(self, Offset: int, Guid: UUID, Type: int, Size: int, ui_string: str = ''):
        super(EFI_FILE, self).__init__(Offset, Guid, Size)
        self.Type = Type
        self.ui_string = ui_string


class EFI_SECTION(EFI_MODULE):
    def __init__(self, Offset: int, Type: int, Size: int, Guid: Optional[UUID] = None):
        super(EFI_SECTION, self).__init__(Offset, Guid, Size)
        self.Type = Type


def walk_efi_tree(modules: List[EFI_MODULE]) -> Iterator[EFI_MODULE]:
    """Depth-first, pre-order traversal of the EFI module tree."""
    for module in modules:
        yield module
        yield from walk_efi_tree(module.children)


def search_efi_tree(modules: List[EFI_MODULE], search_callback: Callable[[EFI_MODULE], bool]) -> List[EFI_MODULE]:
    return [module for module in walk_efi_tree(modules) if search_callback(module)]


def find_by_guid(modules: List[EFI_MODULE], guid: UUID) -> List[EFI_MODULE]:
    return search_efi_tree(modules, lambda m: m.Guid == guid)


def nodes_containing(modules: List[EFI_MODULE], r: Range) -> List[EFI_MODULE]:
    """Returns the nodes whose range fully contains `r`, the innermost node first."""
    result = search_efi_tree(modules, lambda m: m.range().contains(r))
    result.reverse()
    return result
