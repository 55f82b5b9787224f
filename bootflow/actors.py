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
Actors: the code executing the current part of the boot flow
"""

from typing import Optional

from bootflow.artifacts.intel import FIT_TYPE_STARTUP_ACM
from bootflow.artifacts.uefi import (EFI_FV_FILETYPE_COMBINED_PEIM_DRIVER, EFI_FV_FILETYPE_PEI_CORE, EFI_FV_FILETYPE_PEIM,
                                     GUID_DXE, GUID_DXE_CONTAINER)
from bootflow.datasources import (Concat, DataSource, IntelFITFirst, SortAndMerge, UEFIFilesByName, UEFIFilesByType,
                                  UEFIGUIDFirst, VolumeOf)


class Actor:
    def responsible_code(self) -> Optional[DataSource]:
        """The code this actor consists of; None if it is not a part of the firmware image."""
        return None

    def __eq__(self, other: object) -> bool:
        return type(other) is type(self)

    def __hash__(self) -> int:
        return hash(type(self).__name__)

    def __repr__(self) -> str:
        return type(self).__name__


class Unknown(Actor):
    pass


class PCH(Actor):
    """Intel PCH hardware executing Boot Guard."""
    pass


class PSP(Actor):
    """AMD PSP executing its on-chip boot ROM."""
    pass


class IntelACM(Actor):
    def responsible_code(self) -> DataSource:
        return IntelFITFirst(FIT_TYPE_STARTUP_ACM)


class PEI(Actor):
    def responsible_code(self) -> DataSource:
        return SortAndMerge(Concat(
            UEFIFilesByType(EFI_FV_FILETYPE_PEI_CORE, EFI_FV_FILETYPE_PEIM, EFI_FV_FILETYPE_COMBINED_PEIM_DRIVER),
            VolumeOf(UEFIFilesByName('PeiCore')),
        ))


class OCPDXE(Actor):
    def responsible_code(self) -> DataSource:
        return UEFIGUIDFirst(GUID_DXE, GUID_DXE_CONTAINER)
