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
Intel Boot Guard / CBnT steps
"""

from typing import Any, List

from bootflow.actions import Action, Panic, SetFlow, SetPCHVerified, TPMEventLogAdd, TPMExtend
from bootflow.actors import IntelACM
from bootflow.artifacts.bios_image import PhysMemMapper
from bootflow.artifacts.intel import FIT_TYPE_BOOT_POLICY_MANIFEST, FIT_TYPE_KEY_MANIFEST
from bootflow.artifacts.registers import ACM_POLICY_STATUS_OFFSET, ACM_POLICY_STATUS_SIZE
from bootflow.conditions import Condition, ValidACM, ValidBPM, ValidIBB, ValidKM
from bootflow.data import Data, Hasher, Reference
from bootflow.datasources import IBB, DataSource, IntelFITFirst, StaticData
from bootflow.library.bytes import Range
from bootflow.library.exceptions import ArtifactNotFound
from bootflow.library.tpm.tpm_defines import EV_S_CRTM_CONTENTS, TPM_ALG_SHA1, TPM_ALG_SHA256, algorithm_name
from bootflow.state import State
from bootflow.steps.common import Step

PCR0_DATA_PREFIX = b'PCR0_DATA '


class _Verify(Step):
    condition: Condition

    def __init__(self, fallback_flow: Any) -> None:
        self.fallback_flow = fallback_flow

    def verified_data(self) -> DataSource:
        raise NotImplementedError()

    def actions(self, state: State) -> List[Action]:
        if self.condition.check(state):
            return [SetPCHVerified(self.verified_data())]
        return [SetFlow(self.fallback_flow)]

    def __repr__(self) -> str:
        return f'{type(self).__name__}({self.fallback_flow.name})'


class VerifyACM(_Verify):
    condition = ValidACM()

    def verified_data(self) -> DataSource:
        return IntelACM().responsible_code()


class VerifyKM(_Verify):
    condition = ValidKM()

    def verified_data(self) -> DataSource:
        return IntelFITFirst(FIT_TYPE_KEY_MANIFEST)


class VerifyBPM(_Verify):
    condition = ValidBPM()

    def verified_data(self) -> DataSource:
        return IntelFITFirst(FIT_TYPE_BOOT_POLICY_MANIFEST)


class VerifyIBB(_Verify):
    condition = ValidIBB()

    def verified_data(self) -> DataSource:
        return IBB()


class MeasurePCR0DATA(Step):
    """
    Measures PCR0_DATA the way the ACM does: the hash of ACM_POLICY_STATUS, ACM SVN,
    ACM/KM/BPM signatures and the IBB digest, for SHA1 and SHA256.
    """

    def actions(self, state: State) -> List[Action]:
        try:
            image = state.get_bios_image()
            txt = state.get_txt_public()
        except ArtifactNotFound as err:
            return [Panic(f'Unable to measure PCR0_DATA: {err}')]
        intel = image.intel
        if intel is None or intel.acm is None or intel.km is None or intel.bpm is None:
            return [Panic('Unable to get ACM, KM and BPM of the BIOS image')]
        if not intel.bpm.ibb_digests:
            return [Panic('IBBDigest list is empty')]

        mapper = PhysMemMapper()
        references = [
            Reference(txt, None, [Range(ACM_POLICY_STATUS_OFFSET, ACM_POLICY_STATUS_SIZE)]),
            Reference(image, mapper, [intel.acm.svn_range()]),
            Reference(image, mapper, [intel.acm.signature_range()]),
            Reference(image, mapper, [intel.km.signature_range()]),
            Reference(image, mapper, [intel.bpm.signature_range()]),
        ]
        actions: List[Action] = []
        for hash_algo in (TPM_ALG_SHA1, TPM_ALG_SHA256):
            ibb_digest = intel.bpm.ibb_digest(hash_algo)
            if ibb_digest is None:
                actions.append(Panic(f'No IBBDigest with hash algorithm: {algorithm_name(hash_algo)}'))
                continue
            data = Data(references=references + [Reference(image, mapper, [ibb_digest.range()])],
                        converter=Hasher(hash_algo))
            actions.append(TPMExtend(0, StaticData(data), hash_algo))
            actions.append(TPMEventLogAdd(0, hash_algo, data.converted_bytes(), EV_S_CRTM_CONTENTS,
                                          PCR0_DATA_PREFIX + algorithm_name(hash_algo).encode()))
        return actions
