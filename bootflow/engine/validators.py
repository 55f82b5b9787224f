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
Validators of a completed boot process log
"""

from collections import namedtuple
from typing import Any, Iterable, List, Optional

from bootflow.artifacts.uefi import EFI_FILE, EFI_SECTION, EFI_SECTION_PE32, EFI_SECTION_PIC, EFI_SECTION_TE
from bootflow.data import References, references_of
from bootflow.datasources import UEFIFiles
from bootflow.engine.log import COORDS_ACTOR, Log, StepIssue, StepIssueCoords
from bootflow.library.exceptions import ArtifactNotFound, DataSourceError, MappingError
from bootflow.state import State

RESOLVE_ERRORS = (ArtifactNotFound, DataSourceError, MappingError)


class ActorNotProtected(RuntimeError):
    """Raised when an actor starts executing before its code was measured."""
    pass


class CoverageIncomplete(RuntimeError):
    """Raised when executable code of the image was never measured."""
    pass


class ValidatorIssue(namedtuple('ValidatorIssue', 'step_index step_issue')):
    __slots__ = ()

    def sort_key(self) -> tuple:
        return (self.step_index, str(self.step_issue.coords), type(self.step_issue.issue).__name__, str(self.step_issue.issue))

    def __str__(self) -> str:
        return f'step#{self.step_index} {self.step_issue}'


class Validator:
    def validate(self, state: Optional[State], log: Log) -> List[ValidatorIssue]:
        raise NotImplementedError()


def _resolve(refs: References, step_index: int, what: str, issues: List[ValidatorIssue]) -> References:
    try:
        return refs.resolve()
    except RESOLVE_ERRORS as err:
        issues.append(ValidatorIssue(step_index, StepIssue(
            StepIssueCoords(COORDS_ACTOR), RuntimeError(f'unable to resolve the {what} references {refs}: {err}'))))
        return References()


class ValidatorActorsAreProtected(Validator):
    """Every time the actor changes, its code must already be measured."""

    def validate(self, state: Optional[State], log: Log) -> List[ValidatorIssue]:
        issues: List[ValidatorIssue] = []
        measured = References()
        prev_actor = None
        for step_index, step in enumerate(log):
            prev_measured = References(measured)
            measured.extend(_resolve(references_of(step.measured_data), step_index, 'measured', issues))
            measured.sort_and_merge()

            if step.actor is None or step.actor == prev_actor:
                continue
            prev_actor = step.actor
            if step.actor_code is None:
                continue

            actor_refs = _resolve(step.actor_code.references, step_index, 'actor', issues)
            non_measured = actor_refs.exclude(*prev_measured)
            if not non_measured:
                continue
            issues.append(ValidatorIssue(step_index, StepIssue(StepIssueCoords(COORDS_ACTOR), ActorNotProtected(
                f'actor {step.actor!r} executed step {step_index}, while their areas {non_measured} were not protected; '
                f'protected by this moment were only: {measured}'))))
        return issues


def _is_executable(f: EFI_FILE) -> bool:
    return any(isinstance(s, EFI_SECTION) and s.Type in (EFI_SECTION_PE32, EFI_SECTION_PIC, EFI_SECTION_TE)
               for s in f.children)


class ValidatorFinalCoverageIsComplete(Validator):
    """All executable UEFI files must be measured by the end of the boot."""

    def validate(self, state: Optional[State], log: Log) -> List[ValidatorIssue]:
        if not log or state is None:
            return []
        last = len(log) - 1
        issues: List[ValidatorIssue] = []
        measured = _resolve(log.measured_references(), last, 'measured', issues)
        measured.sort_and_merge()
        try:
            data = UEFIFiles(_is_executable, 'executable').resolve(state)
        except RESOLVE_ERRORS as err:
            return issues + [ValidatorIssue(last, StepIssue(None, RuntimeError(f'unable to get UEFI files: {err}')))]
        non_measured = _resolve(data.references, last, 'executable', issues).exclude(*measured)
        if non_measured:
            issues.append(ValidatorIssue(last, StepIssue(None, CoverageIncomplete(
                f'executable areas {non_measured} are not protected; protected areas are only: {measured}'))))
        return issues


class ValidatorNoIssues(Validator):
    def validate(self, state: Optional[State], log: Log) -> List[ValidatorIssue]:
        return [ValidatorIssue(idx, issue) for idx, step in enumerate(log) for issue in step.issues]


def all_validators() -> List[Validator]:
    return [
        ValidatorActorsAreProtected(),
        ValidatorFinalCoverageIsComplete(),
        ValidatorNoIssues(),
    ]


def validate(log: Log, state: Optional[State] = None, validators: Optional[Iterable[Any]] = None) -> List[ValidatorIssue]:
    """Runs the validators independently and returns their issues sorted by step index."""
    if validators is None:
        validators = all_validators()
    issues: List[ValidatorIssue] = []
    for validator in validators:
        issues += validator.validate(state, log)
    return sorted(issues, key=ValidatorIssue.sort_key)
