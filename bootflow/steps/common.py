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
Common steps: actor and flow switching, conditional branching, panics
"""

from typing import Any, List, Optional

from bootflow.actions import Action, Panic as PanicAction, SetActor as SetActorAction, SetFlow as SetFlowAction
from bootflow.conditions import Condition
from bootflow.state import State


class Step:
    def actions(self, state: State) -> List[Action]:
        """Returns the actions to apply; must not mutate `state`."""
        raise NotImplementedError()

    def __repr__(self) -> str:
        return f'{type(self).__name__}()'


class SetActor(Step):
    def __init__(self, actor: Any) -> None:
        self.actor = actor

    def actions(self, state: State) -> List[Action]:
        return [SetActorAction(self.actor)]

    def __repr__(self) -> str:
        return f'SetActor({self.actor!r})'


class SetFlow(Step):
    def __init__(self, flow: Any) -> None:
        self.flow = flow

    def actions(self, state: State) -> List[Action]:
        return [SetFlowAction(self.flow)]

    def __repr__(self) -> str:
        return f'SetFlow({self.flow.name})'


class If(Step):
    def __init__(self, condition: Condition, step: Step, else_step: Optional[Step] = None) -> None:
        self.condition = condition
        self.step = step
        self.else_step = else_step

    def actions(self, state: State) -> List[Action]:
        if self.condition.check(state):
            return self.step.actions(state)
        if self.else_step is not None:
            return self.else_step.actions(state)
        return []

    def __repr__(self) -> str:
        if self.else_step is None:
            return f'If({self.condition!r}, {self.step!r})'
        return f'If({self.condition!r}, {self.step!r}, {self.else_step!r})'


class Panic(Step):
    def __init__(self, reason: str) -> None:
        self.reason = reason

    def actions(self, state: State) -> List[Action]:
        return [PanicAction(self.reason)]

    def __repr__(self) -> str:
        return f'Panic({self.reason!r})'
