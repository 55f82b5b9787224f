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
Boot process driver: executes the steps of the current flow one by one

usage:
    >>> process = BootProcess(state)
    >>> process.state.set_flow(Root)
    >>> process.finish()
    >>> print(process.log)
"""

from typing import Any, List, Optional

from bootflow.engine.log import (COORDS_ACTION, COORDS_ACTIONS, COORDS_ACTOR, Log, StepIssue, StepIssueCoords,
                                 StepResult)
from bootflow.flows import default_registry
from bootflow.flows.flow import Flow, FlowRegistry
from bootflow.library.exceptions import ExecutionBudgetExceeded, PanicError
from bootflow.library.logger import logger
from bootflow.library.options import options
from bootflow.state import State


class BootProcess:
    def __init__(self, state: State, max_steps: Optional[int] = None) -> None:
        self.state = state
        self.log = Log()
        if max_steps is None:
            max_steps = options().get_section_data('engine', 'max_steps', 10000)
        self.max_steps = max_steps

    def _actor_code(self, issues: List[StepIssue]) -> Any:
        actor = self.state.current_actor
        if actor is None:
            return None
        try:
            source = actor.responsible_code()
            if source is None:
                return None
            return source.resolve(self.state)
        except PanicError:
            raise
        except Exception as err:
            issues.append(StepIssue(StepIssueCoords(COORDS_ACTOR), err))
            return None

    def next_step(self) -> bool:
        """Executes the next step of the current flow. Returns False when there are no steps left."""
        state = self.state
        flow = state.current_flow
        if flow is None:
            return False
        state.current_step_index += 1
        if state.current_step_index >= len(flow.steps):
            return False
        if len(self.log) >= self.max_steps:
            raise ExecutionBudgetExceeded(f'Exceeded the limit of {self.max_steps} steps (flow {flow.name})')

        old_measured_count = len(state.measured_data)
        old_verified_count = len(state.verified_data)
        issues: List[StepIssue] = []
        step = flow.steps[state.current_step_index]
        logger().log_debug(f'[engine] {flow.name}:{state.current_step_index} {step!r}')
        try:
            actions = step.actions(state)
        except PanicError:
            raise
        except Exception as err:
            issues.append(StepIssue(StepIssueCoords(COORDS_ACTIONS), err))
            actions = []

        for idx, action in enumerate(actions):
            state.current_action_index = idx
            state.current_action = action
            try:
                action.apply(state)
            except PanicError:
                logger().log_bad(f'[engine] Panic in {flow.name}:{state.current_step_index}: {action!r}')
                raise
            except Exception as err:
                logger().log_verbose(f'[engine] {action!r} failed: {err}')
                issues.append(StepIssue(StepIssueCoords(COORDS_ACTION, idx), err))
            if state.current_step_index == -1:
                # the flow was switched
                break

        actor_code = self._actor_code(issues)
        self.log.append(StepResult(
            actor=state.current_actor,
            actor_code=actor_code,
            step=step,
            actions=actions,
            measured_data=state.measured_data[old_measured_count:],
            verified_data=state.verified_data[old_verified_count:],
            issues=issues,
        ))
        return True

    def finish(self) -> Log:
        while self.next_step():
            pass
        logger().log_verbose(f'[engine] Finished after {len(self.log)} steps with {self.log.issues_count()} issues')
        return self.log

    def __str__(self) -> str:
        return f'Current state:\n\t{self.state}\nResulting steps:\n{self.log}'


def run_flow(state: State, flow: Any, registry: Optional[FlowRegistry] = None, max_steps: Optional[int] = None) -> Log:
    """
    Runs `flow` (a Flow or, with `registry`, a flow name) on `state` until it is exhausted.

    Raises PanicError on unrecoverable conditions and ExecutionBudgetExceeded when
    more than `max_steps` steps were executed.
    """
    if not isinstance(flow, Flow):
        if registry is None:
            registry = default_registry()
        flow = registry.get(flow)
    state.set_flow(flow)
    process = BootProcess(state, max_steps)
    return process.finish()
