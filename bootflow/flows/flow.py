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
Flows: named sequences of steps and the registry mapping flow names to flows
"""

from typing import Dict, Iterable, List, Sequence

from bootflow.library.exceptions import FlowRegistrationError, UnknownFlowError


class Flow:
    def __init__(self, name: str, steps: Sequence) -> None:
        self.name = name
        self.steps = list(steps)

    def __len__(self) -> int:
        return len(self.steps)

    def __repr__(self) -> str:
        return f'Flow({self.name})'


class FlowRegistry:
    """Case-insensitive name -> Flow mapping; registering a name twice is an error."""

    def __init__(self, flows: Iterable[Flow] = ()) -> None:
        self._flows: Dict[str, Flow] = {}
        for flow in flows:
            self.register(flow)

    def register(self, flow: Flow) -> Flow:
        key = flow.name.lower()
        if key in self._flows:
            raise FlowRegistrationError(f"flow '{key}' is already registered")
        self._flows[key] = flow
        return flow

    def get(self, name: str) -> Flow:
        try:
            return self._flows[name.lower()]
        except KeyError:
            raise UnknownFlowError(f"unknown flow '{name}'") from None

    def __contains__(self, name: str) -> bool:
        return name.lower() in self._flows

    def all(self) -> List[Flow]:
        return sorted(self._flows.values(), key=lambda flow: flow.name)

    def names(self) -> List[str]:
        return [flow.name for flow in self.all()]
