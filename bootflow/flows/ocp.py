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
OCP firmware PEI and DXE flows
"""

from uuid import UUID

from bootflow.actors import OCPDXE as OCPDXEActor, PEI as PEIActor, Unknown
from bootflow.artifacts.uefi import GUID_DXE, GUID_DXE_CONTAINER
from bootflow.conditions import IsOCPv0, IsOCPv1, ManifestPresent, Not, TPMIsInited
from bootflow.flows.flow import Flow
from bootflow.library.bytes import Range
from bootflow.steps.common import If, Panic, SetActor, SetFlow
from bootflow.steps.ocp import MeasureFirmwareVendorVersion, MeasureMemRanges
from bootflow.steps.tpm import (InitTPM, InitTPMLazy, MeasurePCDVariable, MeasureSeparator, MeasureUEFIGUIDFirst)

GUID_OCP_V1_VOL0_INTEL = UUID('1638673D-EFE6-400B-951F-ABAC2CB31C60')
GUID_OCP_V1_VOL1_INTEL = UUID('14E428FA-1A12-4875-B637-8B3CC87FDF07')
GUID_OCP_V1_VOL2_INTEL = UUID('013B9639-D6D5-410F-B7A9-F9173C56ECDA')

OCP_V0_PEI_BASE = 0xFF562000
# found on a specific AMD firmware
OCP_V1_AMD_PEI_BASE = 0xFF7F1000

OCPDXE = Flow('OCPDXE', [
    SetActor(PEIActor()),
    InitTPMLazy(0),
    MeasurePCDVariable(0, 'FirmwareVendorVersion'),
    MeasureUEFIGUIDFirst(0, GUID_DXE, GUID_DXE_CONTAINER),
    SetActor(OCPDXEActor()),
    MeasureSeparator(0),
])

OCPPEIv0 = Flow('OCPPEIv0', [
    SetActor(PEIActor()),
    If(Not(TPMIsInited()), InitTPM(0)),
    MeasureFirmwareVendorVersion(0),
    *MeasureMemRanges(0, Range(OCP_V0_PEI_BASE + 0xF44, 0x20), Range(OCP_V0_PEI_BASE + 0x1044, 0x20)),
    MeasureSeparator(0),
    SetFlow(OCPDXE),
])

OCPPEIv1AMD = Flow('OCPPEIv1AMD', [
    *MeasureMemRanges(0,
                      Range(OCP_V1_AMD_PEI_BASE + 0x1034, 0x20),
                      Range(OCP_V1_AMD_PEI_BASE + 0x1074, 0x20),
                      Range(OCP_V1_AMD_PEI_BASE + 0x10B4, 0x20),
                      Range(OCP_V1_AMD_PEI_BASE + 0x11D4, 0x20)),
    MeasureSeparator(0),
    SetFlow(OCPDXE),
])

OCPPEIv1 = Flow('OCPPEIv1', [
    SetActor(PEIActor()),
    If(Not(TPMIsInited()), InitTPM(0)),
    MeasureFirmwareVendorVersion(0),
    If(ManifestPresent(), SetFlow(OCPPEIv1AMD)),
    MeasureUEFIGUIDFirst(0, GUID_OCP_V1_VOL0_INTEL),
    MeasureUEFIGUIDFirst(0, GUID_OCP_V1_VOL1_INTEL),
    MeasureUEFIGUIDFirst(0, GUID_OCP_V1_VOL2_INTEL),
    MeasureUEFIGUIDFirst(0, GUID_DXE_CONTAINER, GUID_DXE),
    MeasureSeparator(0),
    SetFlow(OCPDXE),
])


def _pei_steps() -> list:
    return [
        SetActor(Unknown()),
        If(IsOCPv0(), SetFlow(OCPPEIv0)),
        If(IsOCPv1(), SetFlow(OCPPEIv1)),
        Panic('unknown flow: is not OCP'),
    ]


# generic PEI entry, reached from the AMD flows
PEI = Flow('PEI', _pei_steps())

# Intel entry after the reset vector
IntelResetVector = Flow('IntelResetVector', _pei_steps())

FLOWS = (OCPDXE, OCPPEIv0, OCPPEIv1AMD, OCPPEIv1, PEI, IntelResetVector)
