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
Actions: atomic mutations of the simulation state produced by steps
"""

from typing import Any, Optional

from bootflow.datasources import DataSource
from bootflow.library.exceptions import PanicError
from bootflow.library.tpm.tpm_defines import algorithm_name, event_type_name, hash_bytes
from bootflow.state import State


class Action:
    def apply(self, state: State) -> None:
        raise NotImplementedError()

    def __repr__(self) -> str:
        return f'{type(self).__name__}()'


class SetActor(Action):
    def __init__(self, actor: Any) -> None:
        self.actor = actor

    def apply(self, state: State) -> None:
        state.current_actor = self.actor

    def __repr__(self) -> str:
        return f'SetActor({self.actor!r})'


class SetFlow(Action):
    def __init__(self, flow: Any) -> None:
        self.flow = flow

    def apply(self, state: State) -> None:
        state.set_flow(self.flow)

    def __repr__(self) -> str:
        return f'SetFlow({self.flow.name})'


class Panic(Action):
    """Aborts the whole run."""

    def __init__(self, reason: str) -> None:
        self.reason = reason

    def apply(self, state: State) -> None:
        raise PanicError(self.reason)

    def __repr__(self) -> str:
        return f'Panic({self.reason!r})'


################################################################################################
# TPM
################################################################################################

class TPMInit(Action):
    def __init__(self, locality: int) -> None:
        self.locality = locality

    def apply(self, state: State) -> None:
        state.get_tpm().tpm_init(self.locality, state.current_action_coordinates(), self)

    def __repr__(self) -> str:
        return f'TPMInit({self.locality})'


class TPMExtend(Action):
    """Extends the converted bytes of the data source as a ready digest."""

    def __init__(self, pcr_index: int, data_source: DataSource, hash_algo: int) -> None:
        self.pcr_index = pcr_index
        self.data_source = data_source
        self.hash_algo = hash_algo

    def apply(self, state: State) -> None:
        data = self.data_source.resolve(state)
        tpm = state.get_tpm()
        tpm.tpm_extend(self.pcr_index, self.hash_algo, data.converted_bytes(), state.current_action_coordinates(), self)
        state.add_measured_data(data, tpm, self.data_source)

    def __repr__(self) -> str:
        return f'TPMExtend(PCR: {self.pcr_index}, {algorithm_name(self.hash_algo)}, DataSource: {self.data_source!r})'


class TPMEventLogAdd(Action):
    def __init__(self, pcr_index: int, hash_algo: int, digest: bytes, event_type: int, event_data: Optional[bytes]) -> None:
        self.pcr_index = pcr_index
        self.hash_algo = hash_algo
        self.digest = digest
        self.event_type = event_type
        self.event_data = event_data

    def apply(self, state: State) -> None:
        state.get_tpm().tpm_event_log_add(self.pcr_index, self.hash_algo, self.digest, self.event_type,
                                          self.event_data, state.current_action_coordinates(), self)

    def __repr__(self) -> str:
        s = f'TPMEventLogAdd(PCR: {self.pcr_index}, {algorithm_name(self.hash_algo)}, Digest: {self.digest.hex()}, Type: {event_type_name(self.event_type)}'
        if self.event_data is not None:
            s += f', EventData: {self.event_data.hex().upper()}'
        return s + ')'


class TPMEvent(Action):
    """Measures a data source: hashes it and extends plus logs the digest for every supported algorithm."""

    def __init__(self, pcr_index: int, data_source: DataSource, event_type: int, event_data: Optional[bytes] = None) -> None:
        self.pcr_index = pcr_index
        self.data_source = data_source
        self.event_type = event_type
        self.event_data = event_data

    def apply(self, state: State) -> None:
        data = self.data_source.resolve(state)
        tpm = state.get_tpm()
        converted = data.converted_bytes()
        coords = state.current_action_coordinates()
        for hash_algo in tpm.supported_algos:
            digest = hash_bytes(hash_algo, converted)
            tpm.tpm_extend(self.pcr_index, hash_algo, digest, coords, self)
            tpm.tpm_event_log_add(self.pcr_index, hash_algo, digest, self.event_type, self.event_data, coords, self)
        state.add_measured_data(data, tpm, self.data_source)

    def __repr__(self) -> str:
        s = f'TPMEvent(PCR: {self.pcr_index}, DataSource: {self.data_source!r}, Type: {event_type_name(self.event_type)}'
        if self.event_data:
            s += f', EventData: {self.event_data.hex().upper()}'
        return s + ')'


################################################################################################
# Verification
################################################################################################

class SetPCHVerified(Action):
    def __init__(self, data_source: DataSource) -> None:
        self.data_source = data_source

    def apply(self, state: State) -> None:
        data = self.data_source.resolve(state)
        state.add_verified_data(data, state.get_pch(), self.data_source)

    def __repr__(self) -> str:
        return f'SetPCHVerified({self.data_source!r})'


class SetPSPVerified(Action):
    def __init__(self, data_source: DataSource) -> None:
        self.data_source = data_source

    def apply(self, state: State) -> None:
        data = self.data_source.resolve(state)
        state.add_verified_data(data, state.get_psp(), self.data_source)

    def __repr__(self) -> str:
        return f'SetPSPVerified({self.data_source!r})'
