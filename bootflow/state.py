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
Mutable state of a boot flow simulation
"""

from collections import namedtuple
from typing import Any, List, Optional

from bootflow.artifacts.artifact import SystemArtifact
from bootflow.artifacts.bios_image import BIOSImage
from bootflow.artifacts.registers import AMDRegisters, TXTPublic
from bootflow.data import Data, MeasuredData, VerifiedData
from bootflow.library.exceptions import ArtifactNotFound, DuplicateSubsystem, SubsystemNotFound
from bootflow.tpm.tpm import TPM
from bootflow.trustchains import PCH, PSP, TrustChain

# artifact/subsystem class -> State attribute holding the single instance of that kind
ARTIFACT_FIELDS = (
    (BIOSImage, 'bios_image'),
    (TXTPublic, 'txt_public'),
    (AMDRegisters, 'amd_registers'),
)

SUBSYSTEM_FIELDS = (
    (TPM, 'tpm'),
    (PCH, 'pch'),
    (PSP, 'psp'),
)


class ActionCoordinates(namedtuple('ActionCoordinates', 'flow step_index action_index')):
    """Position of an action: flow, step index within the flow, action index within the step."""
    __slots__ = ()

    def step(self) -> Any:
        return self.flow.steps[self.step_index]

    def __str__(self) -> str:
        name = self.flow.name if self.flow is not None else None
        return f'{name}:{self.step_index}:{self.action_index}'


class State:
    def __init__(self) -> None:
        self.bios_image: Optional[BIOSImage] = None
        self.txt_public: Optional[TXTPublic] = None
        self.amd_registers: Optional[AMDRegisters] = None
        self.tpm: Optional[TPM] = None
        self.pch: Optional[PCH] = None
        self.psp: Optional[PSP] = None

        self.current_flow = None
        self.current_step_index = -1
        self.current_action_index = 0
        self.current_action = None
        self.current_actor = None

        self.measured_data: List[MeasuredData] = []
        self.verified_data: List[VerifiedData] = []

    def _include(self, obj: Any, fields: tuple, error: type) -> None:
        for kind, field in fields:
            if isinstance(obj, kind):
                if getattr(self, field) is not None:
                    raise DuplicateSubsystem(f'{kind.__name__} is already included into the state')
                setattr(self, field, obj)
                return
        raise error(f'Unknown kind {type(obj).__name__}')

    def include_artifact(self, artifact: SystemArtifact) -> 'State':
        self._include(artifact, ARTIFACT_FIELDS, ArtifactNotFound)
        return self

    def include_subsystem(self, subsystem: TrustChain) -> 'State':
        self._include(subsystem, SUBSYSTEM_FIELDS, SubsystemNotFound)
        return self

    def get_bios_image(self) -> BIOSImage:
        if self.bios_image is None:
            raise ArtifactNotFound('BIOS image is not included into the state')
        return self.bios_image

    def get_txt_public(self) -> TXTPublic:
        if self.txt_public is None:
            raise ArtifactNotFound('TXT public registers are not included into the state')
        return self.txt_public

    def get_amd_registers(self) -> AMDRegisters:
        if self.amd_registers is None:
            raise ArtifactNotFound('AMD registers are not included into the state')
        return self.amd_registers

    def get_tpm(self) -> TPM:
        if self.tpm is None:
            raise SubsystemNotFound('TPM is not included into the state')
        return self.tpm

    def get_pch(self) -> PCH:
        if self.pch is None:
            raise SubsystemNotFound('PCH is not included into the state')
        return self.pch

    def get_psp(self) -> PSP:
        if self.psp is None:
            raise SubsystemNotFound('PSP is not included into the state')
        return self.psp

    def set_flow(self, flow: Any) -> None:
        """Switches to `flow`; the driver advances the cursor to its first step."""
        self.current_flow = flow
        self.current_step_index = -1

    def current_action_coordinates(self) -> ActionCoordinates:
        return ActionCoordinates(self.current_flow, self.current_step_index, self.current_action_index)

    def add_measured_data(self, data: Data, trust_chain: TrustChain, data_source: Any) -> None:
        self.measured_data.append(MeasuredData(data, trust_chain, self.current_actor, data_source, self.current_action))

    def add_verified_data(self, data: Data, trust_chain: TrustChain, data_source: Any) -> None:
        self.verified_data.append(VerifiedData(data, trust_chain, self.current_actor, data_source, self.current_action))

    def __str__(self) -> str:
        flow = self.current_flow.name if self.current_flow is not None else None
        return f'State(flow={flow}, step={self.current_step_index}, actor={self.current_actor!r})'


def new_state(*items: Any) -> State:
    """Builds a state from artifacts and subsystems of distinct kinds."""
    state = State()
    for item in items:
        if isinstance(item, TrustChain):
            state.include_subsystem(item)
        else:
            state.include_artifact(item)
    return state
