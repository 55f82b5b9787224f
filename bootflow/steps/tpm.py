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
TPM steps: initialization and measurements
"""

from typing import List, Optional
from uuid import UUID

from bootflow.actions import Action, TPMEvent, TPMEventLogAdd, TPMInit
from bootflow.datasources import Bytes, DataSource, PCDVariable, UEFIGUIDFirst
from bootflow.library.tpm.tpm_defines import (EV_EFI_PLATFORM_FIRMWARE_BLOB2, EV_NO_ACTION, EV_S_CRTM_VERSION,
                                              EV_SEPARATOR, digest_size)
from bootflow.state import State
from bootflow.steps.common import Step
from bootflow.tpm.tcg_eventlog import STARTUP_LOCALITY_SIGNATURE
from bootflow.tpm.tpm import SUPPORTED_HASH_ALGOS


class InitTPM(Step):
    """
    TPM2_Startup at `locality`.

    With `with_log` the StartupLocality EV_NO_ACTION event is also logged for every
    supported algorithm (the way a non-zero locality startup is reported).
    """

    def __init__(self, locality: int, with_log: bool = False) -> None:
        self.locality = locality
        self.with_log = with_log

    def actions(self, state: State) -> List[Action]:
        actions: List[Action] = [TPMInit(self.locality)]
        if not self.with_log:
            return actions
        algos = state.tpm.supported_algos if state.tpm is not None else SUPPORTED_HASH_ALGOS
        data = STARTUP_LOCALITY_SIGNATURE + bytes([self.locality])
        for hash_algo in algos:
            actions.append(TPMEventLogAdd(0, hash_algo, bytes(digest_size(hash_algo)), EV_NO_ACTION, data))
        return actions

    def __repr__(self) -> str:
        return f'InitTPM({self.locality}, with_log={self.with_log})'


class InitTPMLazy(Step):
    """InitTPM unless the TPM is already initialized."""

    def __init__(self, locality: int) -> None:
        self.locality = locality

    def actions(self, state: State) -> List[Action]:
        if state.tpm is not None and state.tpm.is_initialized():
            return []
        return [TPMInit(self.locality)]

    def __repr__(self) -> str:
        return f'InitTPMLazy({self.locality})'


class Measure(Step):
    def __init__(self, pcr_index: int, event_type: int, data_source: DataSource, description: Optional[bytes] = None) -> None:
        self.pcr_index = pcr_index
        self.event_type = event_type
        self.data_source = data_source
        self.description = description

    def actions(self, state: State) -> List[Action]:
        return [TPMEvent(self.pcr_index, self.data_source, self.event_type, self.description)]

    def __repr__(self) -> str:
        return f'Measure({self.pcr_index}, {self.data_source!r})'


def MeasureSeparator(pcr_index: int) -> Measure:
    return Measure(pcr_index, EV_SEPARATOR, Bytes(b'\x00\x00\x00\x00'))


def MeasurePCDVariable(pcr_index: int, name: str) -> Measure:
    return Measure(pcr_index, EV_S_CRTM_VERSION, PCDVariable(name))


def MeasureUEFIGUIDFirst(pcr_index: int, *guids: UUID) -> Measure:
    return Measure(pcr_index, EV_EFI_PLATFORM_FIRMWARE_BLOB2, UEFIGUIDFirst(*guids))
