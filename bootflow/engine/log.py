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
Execution log of a boot process: per-step results and the issues found
"""

import json
from collections import namedtuple
from typing import Any, Dict, List, Optional

from bootflow.data import MeasuredData, VerifiedData, references_of
from bootflow.library.file import write_file

COORDS_ACTIONS = 'actions'
COORDS_ACTION = 'action'
COORDS_ACTOR = 'actor'


class StepIssueCoords(namedtuple('StepIssueCoords', 'kind action_index')):
    """Where inside a step an issue happened: getting the actions, applying an action or resolving the actor."""
    __slots__ = ()

    def __new__(cls, kind: str, action_index: Optional[int] = None) -> 'StepIssueCoords':
        return super(StepIssueCoords, cls).__new__(cls, kind, action_index)

    def __str__(self) -> str:
        if self.kind == COORDS_ACTION:
            return f'action#{self.action_index}'
        return self.kind


class StepIssue(namedtuple('StepIssue', 'coords issue')):
    __slots__ = ()

    def __str__(self) -> str:
        return f'{self.coords}: {self.issue}'


class StepResult:
    def __init__(self, actor: Any, actor_code: Any, step: Any, actions: List[Any],
                 measured_data: List[MeasuredData], verified_data: List[VerifiedData], issues: List[StepIssue]) -> None:
        self.actor = actor
        self.actor_code = actor_code
        self.step = step
        self.actions = actions
        self.measured_data = measured_data
        self.verified_data = verified_data
        self.issues = issues

    def to_dict(self) -> Dict[str, Any]:
        return {
            'step': repr(self.step),
            'actor': repr(self.actor) if self.actor is not None else None,
            'actor_code': self.actor_code.to_dict() if self.actor_code is not None else None,
            'actions': [repr(action) for action in self.actions],
            'measured_data': [md.to_dict() for md in self.measured_data],
            'verified_data': [vd.to_dict() for vd in self.verified_data],
            'issues': [{'coords': str(issue.coords), 'issue': str(issue.issue)} for issue in self.issues],
        }

    def __str__(self) -> str:
        return repr(self.step)


class ErroredSteps(RuntimeError):
    """Raised (or returned) when steps of a log have issues."""

    def __init__(self, steps: List[StepResult]) -> None:
        self.steps = steps
        lines = []
        for step in steps:
            lines.append(f'step {step}:')
            lines += [f'\t{issue}' for issue in step.issues]
        super(ErroredSteps, self).__init__('\n'.join(lines))

    def issues(self) -> List[Any]:
        return [issue.issue for step in self.steps for issue in step.issues]


class Log(List[StepResult]):
    def issues_count(self) -> int:
        return sum(len(step.issues) for step in self)

    def error(self) -> Optional[ErroredSteps]:
        errored = [step for step in self if step.issues]
        if not errored:
            return None
        return ErroredSteps(errored)

    def measured_data(self) -> List[MeasuredData]:
        return [md for step in self for md in step.measured_data]

    def verified_data(self) -> List[VerifiedData]:
        return [vd for step in self for vd in step.verified_data]

    def get_data_measured_with(self, trust_chain: Any) -> List[MeasuredData]:
        return [md for md in self.measured_data() if md.trust_chain is trust_chain]

    def measured_references(self):
        return references_of(self.measured_data())

    def to_dict(self) -> Dict[str, Any]:
        return {'steps': [step.to_dict() for step in self]}

    def to_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def write_json(self, filename: str) -> bool:
        return write_file(filename, self.to_json())

    def __str__(self) -> str:
        lines = []
        for idx, step in enumerate(self):
            lines.append(f'{idx}. {step}:')
            if step.measured_data:
                lines.append('\tMeasuredData:')
                lines += [f'\t\t{i}. {md!r}' for i, md in enumerate(step.measured_data)]
            if step.verified_data:
                lines.append('\tVerifiedData:')
                lines += [f'\t\t{i}. {vd!r}' for i, vd in enumerate(step.verified_data)]
            if step.actions:
                lines.append('\tActions:')
                lines += [f'\t\t{i}. {action!r}' for i, action in enumerate(step.actions)]
            if step.issues:
                lines.append('\tIssues:')
                lines += [f'\t\t{i}. {issue}' for i, issue in enumerate(step.issues)]
        return '\n'.join(lines)
