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
OCP (Open Compute Project) firmware measurement steps
"""

from typing import List

from bootflow.datasources import MemRanges, PCDVariable
from bootflow.library.bytes import Range
from bootflow.library.tpm.tpm_defines import EV_EFI_PLATFORM_FIRMWARE_BLOB2, EV_S_CRTM_VERSION
from bootflow.steps.tpm import Measure


def MeasureFirmwareVendorVersion(pcr_index: int = 0) -> Measure:
    """Measures the firmware vendor version PCD as the S-CRTM version."""
    return Measure(pcr_index, EV_S_CRTM_VERSION, PCDVariable('FirmwareVendorVersion'))


def MeasureMemRanges(pcr_index: int, *ranges: Range) -> List[Measure]:
    """One firmware blob measurement per physical memory range."""
    return [Measure(pcr_index, EV_EFI_PLATFORM_FIRMWARE_BLOB2, MemRanges(r)) for r in ranges]
