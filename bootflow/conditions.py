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
Conditions: side-effect free predicates over the simulation state

A condition whose artifact is missing returns False instead of raising.
"""

from typing import Optional
from uuid import UUID

from bootflow.artifacts.bios_image import BIOSImage
from bootflow.artifacts.uefi import EFI_SECTION, EFI_SECTION_PE32, EFI_SECTION_TE, walk_efi_tree
from bootflow.library.exceptions import ArtifactReadError
from bootflow.state import State

# OCP firmware vendor version magic values and the modules embedding them
OCP_V0_VENDOR_VERSION = bytes.fromhex('1EFB6B540C1D5540A4AD4EF4BF17B83A')
OCP_V1_VENDOR_VERSION = bytes.fromhex('052B10A7C7D9654181402ADDE94AF63C')
GUID_AMI_TCG_PLATFORM_PEI_AFTER_MEM = UUID('9B3F28D5-10A6-46C8-BA72-BD40B847A71A')
GUID_AMI_TPM20_PLATFORM_PEI = UUID('0D8039FF-49E9-4CC9-A806-BB7C31B0BCB0')


class Condition:
    def check(self, state: State) -> bool:
        raise NotImplementedError()

    def __repr__(self) -> str:
        return f'{type(self).__name__}()'


class Not(Condition):
    def __init__(self, condition: Condition) -> None:
        self.condition = condition

    def check(self, state: State) -> bool:
        return not self.condition.check(state)

    def __repr__(self) -> str:
        return f'Not({self.condition!r})'


################################################################################################
# Intel
################################################################################################

def _intel(state: State):
    if state.bios_image is None:
        return None
    return state.bios_image.intel


class FITPresent(Condition):
    def check(self, state: State) -> bool:
        intel = _intel(state)
        return intel is not None and len(intel.fit_entries) > 0


class BPMPresent(Condition):
    def check(self, state: State) -> bool:
        intel = _intel(state)
        return intel is not None and intel.bpm is not None


class ValidACM(Condition):
    def check(self, state: State) -> bool:
        intel = _intel(state)
        return intel is not None and intel.acm is not None and intel.acm.valid


class ValidKM(Condition):
    def check(self, state: State) -> bool:
        intel = _intel(state)
        return intel is not None and intel.km is not None and intel.km.valid


class ValidBPM(Condition):
    def check(self, state: State) -> bool:
        intel = _intel(state)
        return intel is not None and intel.bpm is not None and intel.bpm.valid


class ValidIBB(Condition):
    def check(self, state: State) -> bool:
        intel = _intel(state)
        return intel is not None and intel.bpm is not None and intel.bpm.valid_ibb


################################################################################################
# AMD
################################################################################################

class ManifestPresent(Condition):
    """AMD PSP embedded firmware structure is present."""

    def check(self, state: State) -> bool:
        return state.bios_image is not None and state.bios_image.amd is not None


class ValidPSPDirectory(Condition):
    def check(self, state: State) -> bool:
        amd = state.bios_image.amd if state.bios_image is not None else None
        return amd is not None and amd.valid_psp_directory


class ValidBIOSDirectory(Condition):
    def check(self, state: State) -> bool:
        amd = state.bios_image.amd if state.bios_image is not None else None
        return amd is not None and amd.valid_bios_directory


################################################################################################
# TPM
################################################################################################

class TPMIsInited(Condition):
    def check(self, state: State) -> bool:
        return state.tpm is not None and state.tpm.is_initialized()


################################################################################################
# OCP
################################################################################################

def _find_executable_section(image: BIOSImage, guid: UUID, include_self: bool) -> Optional[bytes]:
    nodes = image.find_by_guid(guid)
    if len(nodes) != 1:
        return None
    candidates = [nodes[0]] if include_self else []
    candidates += nodes[0].children
    for node in walk_efi_tree(candidates):
        if isinstance(node, EFI_SECTION) and node.Type in (EFI_SECTION_PE32, EFI_SECTION_TE):
            try:
                return image.read_at(node.Offset, node.Size)
            except ArtifactReadError:
                return None
    return None


class IsOCPv0(Condition):
    guid = GUID_AMI_TCG_PLATFORM_PEI_AFTER_MEM
    vendor_version = OCP_V0_VENDOR_VERSION
    include_self = True

    def check(self, state: State) -> bool:
        if state.bios_image is None:
            return False
        section = _find_executable_section(state.bios_image, self.guid, self.include_self)
        if section is None:
            return False
        return self.vendor_version[-4:] in section

    def firmware_vendor_version(self) -> bytes:
        return bytes(self.vendor_version)


class IsOCPv1(IsOCPv0):
    guid = GUID_AMI_TPM20_PLATFORM_PEI
    vendor_version = OCP_V1_VENDOR_VERSION
    include_self = False
