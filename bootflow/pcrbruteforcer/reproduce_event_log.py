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
Reconciliation of a simulated boot with the TPM event log reported by the firmware

The PCR0 measurements of the boot process are aligned with the events of the
reported log (some events may be unexpected, some measurements may be missing),
then every aligned pair is compared by digest. A mismatching PCR0_DATA
measurement is explained, where possible, by a different ACM_POLICY_STATUS value.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from bootflow.artifacts.registers import ACM_POLICY_STATUS_OFFSET, ACM_POLICY_STATUS_SIZE
from bootflow.bruteforcer.combinations import iter_combinations
from bootflow.data import MeasuredData
from bootflow.library.exceptions import BruteForceError, EventLogParseError
from bootflow.library.logger import logger
from bootflow.library.tpm.tpm_defines import EV_NO_ACTION, event_type_name
from bootflow.pcrbruteforcer.acm_policy_status import bruteforce_pcr0_data_digest, register_bytes
from bootflow.pcrbruteforcer.explain_log_entry import LogEntryExplainer, explain_log_entry
from bootflow.pcrbruteforcer.settings import SettingsReproduceEventLog
from bootflow.state import ActionCoordinates, State
from bootflow.tpm.commands import (Command, CommandEventLogAdd, CommandExtend, CommandInit, CommandLog,
                                   CommandLogEntry)
from bootflow.tpm.event_log import EventLog, EventLogEntry
from bootflow.tpm.tcg_eventlog import TPMEvent, TPMEventLog, parse_locality

# higher than any amount of events and measurements
BIG_N = (1 << 32) - 1


class Status(Enum):
    MATCH = 1
    MISMATCH = 2
    UNEXPECTED = 3
    MISSING = 4


################################################################################################
# Issues
################################################################################################

class ReproduceEventLogIssue(RuntimeError):
    pass


def _explanation(explainer: Optional[LogEntryExplainer]) -> str:
    return f' (explanation: {explainer})' if explainer is not None else ''


class IssueUnexpectedLogEntry(ReproduceEventLogIssue):
    def __init__(self, index: int, event: TPMEvent, explainer: Optional[LogEntryExplainer] = None) -> None:
        self.index = index
        self.event = event
        self.explainer = explainer
        super(IssueUnexpectedLogEntry, self).__init__(
            f'unexpected entry in EventLog at index {index}: {event}' + _explanation(explainer))


class IssueLoggedDigestDoesNotMatch(ReproduceEventLogIssue):
    def __init__(self, index: int, measurement: Optional[MeasuredData], calculated_digest: bytes, event: TPMEvent,
                 explainer: Optional[LogEntryExplainer] = None) -> None:
        self.index = index
        self.measurement = measurement
        self.calculated_digest = calculated_digest
        self.event = event
        self.explainer = explainer
        super(IssueLoggedDigestDoesNotMatch, self).__init__(
            f'EventLog entry {index} digest 0x{event.digest.value.hex().upper()} does not match the calculated '
            f'digest 0x{calculated_digest.hex().upper()} of {measurement!r}' + _explanation(explainer))


class IssueMissingLogEntry(ReproduceEventLogIssue):
    def __init__(self, index: int, measurement: Optional[MeasuredData], calculated: EventLogEntry) -> None:
        self.index = index
        self.measurement = measurement
        self.calculated = calculated
        super(IssueMissingLogEntry, self).__init__(
            f"missing entry (for measurement '{measurement!r}') in EventLog "
            f'(expected event type is: {event_type_name(calculated.event_type)})')


class IssueACMPolicyStatusChanged(ReproduceEventLogIssue):
    def __init__(self, old: bytes, new: bytes) -> None:
        self.old = old
        self.new = new
        super(IssueACMPolicyStatusChanged, self).__init__(
            f'changed ACM_POLICY_STATUS from {old.hex().upper()} to {new.hex().upper()}')


class IssuePCR0DataMismatch(ReproduceEventLogIssue):
    def __init__(self, calculated_digest: bytes, event: TPMEvent) -> None:
        super(IssuePCR0DataMismatch, self).__init__(
            'PCR0_DATA measurement does not match the digest reported in EventLog and unable to brute force a possible '
            f'bitflip: calculated:{calculated_digest.hex().upper()} != given:0x{event.digest.value.hex().upper()}')


################################################################################################
# Result
################################################################################################

class ReproduceEventLogEntry:
    def __init__(self, status: Status, measurement: Optional[MeasuredData] = None,
                 calculated: Optional[EventLogEntry] = None, expected: Optional[TPMEvent] = None,
                 action_coordinates: Optional[ActionCoordinates] = None) -> None:
        self.status = status
        self.measurement = measurement
        self.calculated = calculated
        self.expected = expected
        self.action_coordinates = action_coordinates

    def __repr__(self) -> str:
        return f'ReproduceEventLogEntry({self.status.name}, calculated={self.calculated}, expected={self.expected})'


def event_as_log_entry(ev: TPMEvent) -> EventLogEntry:
    return EventLogEntry(ev.pcr_index, ev.digest.hash_algo, ev.digest.value, ev.event_type, ev.data)


def _extend_or_init(ev: EventLogEntry) -> Command:
    if ev.pcr_index != 0 or ev.event_type != EV_NO_ACTION or any(ev.digest):
        return CommandExtend(ev.pcr_index, ev.hash_algo, ev.digest)
    try:
        locality = parse_locality(ev.data or b'')
    except EventLogParseError:
        locality = 0
    return CommandInit(locality)


def _event_log_add(ev: EventLogEntry) -> CommandEventLogAdd:
    return CommandEventLogAdd(ev.pcr_index, ev.hash_algo, ev.digest, ev.event_type, ev.data)


class ReproduceEventLogResult(List[ReproduceEventLogEntry]):
    def combine_as_event_log(self) -> EventLog:
        """The calculated events, with the reported ones where they differ."""
        result = EventLog()
        for e in self:
            if e.status in (Status.MATCH, Status.MISSING):
                result.append(e.calculated)
            elif e.status == Status.MISMATCH:
                result += [e.calculated, event_as_log_entry(e.expected)]
            elif e.status == Status.UNEXPECTED:
                result.append(event_as_log_entry(e.expected))
        return result

    def combine_as_command_log(self) -> CommandLog:
        result = CommandLog()
        for e in self:
            action = e.measurement.action if e.measurement is not None else None
            coords = e.action_coordinates
            events = []
            if e.status in (Status.MATCH, Status.MISSING, Status.MISMATCH):
                events.append((e.calculated, coords, action))
            if e.status in (Status.MISMATCH, Status.UNEXPECTED):
                events.append((event_as_log_entry(e.expected), None, None))
            for ev, ev_coords, ev_action in events:
                result.append(CommandLogEntry(_extend_or_init(ev), ev_coords, ev_action))
                result.append(CommandLogEntry(_event_log_add(ev), ev_coords, ev_action))
        return result


################################################################################################
# Alignment
################################################################################################

def _same_step(a: Optional[ActionCoordinates], b: Optional[ActionCoordinates]) -> bool:
    if a is None or b is None:
        return a is b
    return a.flow is b.flow and a.step_index == b.step_index


def align_log_and_measurements(state: State, pcr_index: int, hash_algo: int) -> Tuple[
        List[Optional[MeasuredData]], List[EventLogEntry], List[ActionCoordinates]]:
    """
    Pairs the calculated event log entries with the measurements which caused them, step by step.

    A step which only logs events (e.g. the StartupLocality event) gets None measurements.
    """
    tpm = state.get_tpm()
    measured_by_action: Dict[int, MeasuredData] = {}
    for m in state.measured_data:
        if m.trust_chain is not tpm:
            continue
        if m.action is None:
            raise BruteForceError(f'internal error: the action of {m!r} is unknown')
        if id(m.action) in measured_by_action:
            raise BruteForceError(f'internal error: the action {m.action!r} measured twice')
        measured_by_action[id(m.action)] = m

    steps: List[Dict[str, Any]] = []
    prev_coords = None
    event_log_idx = 0
    for log_entry in tpm.command_log:
        coords = log_entry.cause_coordinates
        if not steps or not _same_step(coords, prev_coords):
            steps.append({'measurements': [], 'events': [], 'coords': coords})
            prev_coords = coords
        step = steps[-1]
        cmd = log_entry.command
        if isinstance(cmd, CommandExtend):
            if cmd.pcr_index == pcr_index and cmd.hash_algo == hash_algo:
                step['measurements'].append(measured_by_action.get(id(log_entry.cause_action)))
        elif isinstance(cmd, CommandEventLogAdd):
            ev = tpm.event_log[event_log_idx]
            event_log_idx += 1
            if cmd.pcr_index == pcr_index and cmd.hash_algo == hash_algo:
                step['events'].append(ev)
    if event_log_idx != len(tpm.event_log):
        raise BruteForceError(f'internal error: {event_log_idx} != {len(tpm.event_log)}')

    measurements: List[Optional[MeasuredData]] = []
    events: List[EventLogEntry] = []
    coords_list: List[ActionCoordinates] = []
    for step in steps:
        step_measurements, step_events = step['measurements'], step['events']
        if not step_measurements and not step_events:
            continue
        if step_measurements and not step_events:
            raise BruteForceError(f'measurements {step_measurements} have no EventLog entries, this case is not supported')
        if step_measurements and len(step_measurements) != len(step_events):
            raise BruteForceError(f'do not know how to map measurements {step_measurements} with log entries {step_events}')
        if not step_measurements:
            step_measurements = [None] * len(step_events)
        measurements += step_measurements
        events += step_events
        coords_list += [step['coords']] * len(step_events)
    return measurements, events, coords_list


def event_and_measurements_distance(expected: Sequence[TPMEvent], ev_skipped: Set[int],
                                    calculated: Sequence[EventLogEntry], m_skipped: Set[int]) -> int:
    """
    Alignment cost: a skipped event or measurement costs BIG_N, a digest mismatch 2*BIG_N-1
    and a type mismatch 2, so a skipped pair never outweighs a mismatch of both.
    """
    distance = 0
    idx_c = idx_e = 0
    while idx_c < len(calculated) or idx_e < len(expected):
        if idx_c < len(calculated) and idx_c in m_skipped:
            distance += BIG_N
            idx_c += 1
            continue
        if idx_e < len(expected) and idx_e in ev_skipped:
            distance += BIG_N
            idx_e += 1
            continue
        if idx_c >= len(calculated) or idx_e >= len(expected):
            raise BruteForceError('internal error: unequal amounts of events and measurements after skipping')
        ev_c, ev_e = calculated[idx_c], expected[idx_e]
        idx_c += 1
        idx_e += 1
        if ev_e.digest.value != ev_c.digest:
            distance += 2 * BIG_N - 1
        if ev_e.event_type != ev_c.event_type:
            distance += 2
    return distance


def bruteforce_aligned_event_logs(settings: SettingsReproduceEventLog, calculated: Sequence[EventLogEntry],
                                  expected: Sequence[TPMEvent]) -> Tuple[Set[int], Set[int], int]:
    """Returns the skipped expected events, the skipped calculated events and the alignment distance."""
    best: Tuple[Set[int], Set[int], Optional[int]] = (set(), set(), None)

    def consider(ev_skipped: Set[int], m_skipped: Set[int]) -> bool:
        nonlocal best
        distance = event_and_measurements_distance(expected, ev_skipped, calculated, m_skipped)
        if best[2] is None or distance < best[2]:
            best = (set(ev_skipped), set(m_skipped), distance)
        return distance == 0

    amount_diff = len(expected) - len(calculated)
    if amount_diff == 0 and consider(set(), set()):
        return best[0], best[1], 0
    if amount_diff < 0:
        for combination in iter_combinations(-amount_diff, len(calculated)):
            if consider(set(), set(combination)):
                break
    elif amount_diff > 0:
        for combination in iter_combinations(amount_diff, len(expected)):
            if consider(set(combination), set()):
                break

    if best[2] != 0:
        for ev_count in range(min(settings.disabled_events_max_distance, len(expected)) + 1):
            m_count = ev_count - amount_diff
            if m_count < 0 or m_count > len(calculated):
                continue
            done = False
            for ev_combination in iter_combinations(ev_count, len(expected)):
                for m_combination in iter_combinations(m_count, len(calculated)):
                    if consider(set(ev_combination), set(m_combination)):
                        done = True
                        break
                if done:
                    break
            if done:
                break

    if best[2] is None:
        raise BruteForceError('unable to align the event logs')
    return best


def align_logs(settings: SettingsReproduceEventLog, calculated: List[EventLogEntry], event_log: TPMEventLog,
               hash_algo: int) -> Tuple[List[Optional[EventLogEntry]], List[Optional[TPMEvent]]]:
    """Returns the calculated and the expected events aligned to each other, with None in place of skipped ones."""
    expected = list(event_log.filter_events(0, hash_algo))
    ev_skipped, m_skipped, distance = bruteforce_aligned_event_logs(settings, calculated, expected)
    logger().log_debug(f'[pcrbruteforcer] event log alignment distance: {distance}')
    if distance == 0:
        return list(calculated), list(expected)

    aligned_c: List[Optional[EventLogEntry]] = []
    aligned_e: List[Optional[TPMEvent]] = []
    idx_e = idx_c = 0
    while idx_e < len(expected) or idx_c < len(calculated):
        if idx_e < len(expected) and idx_e in ev_skipped:
            aligned_c.append(None)
            aligned_e.append(expected[idx_e])
            idx_e += 1
        elif idx_c < len(calculated) and idx_c in m_skipped:
            aligned_c.append(calculated[idx_c])
            aligned_e.append(None)
            idx_c += 1
        else:
            aligned_c.append(calculated[idx_c])
            aligned_e.append(expected[idx_e])
            idx_c += 1
            idx_e += 1
    return aligned_c, aligned_e


################################################################################################
# Reproduction
################################################################################################

def acm_policy_status_reference(m: MeasuredData, txt_public: Any) -> bool:
    """True if `m` measures exactly the ACM_POLICY_STATUS register of `txt_public` (i.e. it is PCR0_DATA)."""
    if txt_public is None:
        return False
    refs = [ref for ref in m.references() if ref.artifact is txt_public]
    if len(refs) != 1 or len(refs[0].ranges) != 1:
        return False
    r = refs[0].ranges[0]
    return r.offset == ACM_POLICY_STATUS_OFFSET and r.length == ACM_POLICY_STATUS_SIZE


def reproduce_event_log(process: Any, event_log: TPMEventLog, hash_algo: int,
                        settings: Optional[SettingsReproduceEventLog] = None) -> Tuple[
                            ReproduceEventLogResult, Optional[int], List[ReproduceEventLogIssue]]:
    """
    Compares the PCR0 measurements of a finished boot `process` with the reported `event_log`.

    Returns the per-entry result, the corrected ACM_POLICY_STATUS value (None if it was
    not changed) and the issues found.
    """
    if event_log is None:
        raise BruteForceError('TPM EventLog is not provided')
    if settings is None:
        settings = SettingsReproduceEventLog.default()
    state = process.state

    measurements_unaligned, events_unaligned, coords_unaligned = align_log_and_measurements(state, 0, hash_algo)
    events_calculated, events_expected = align_logs(settings, events_unaligned, event_log, hash_algo)

    measurements: List[Optional[MeasuredData]] = [None] * len(events_calculated)
    coords: List[Optional[ActionCoordinates]] = [None] * len(events_calculated)
    idx_unaligned = 0
    for idx_aligned, ev in enumerate(events_calculated):
        if idx_unaligned < len(events_unaligned) and ev is events_unaligned[idx_unaligned]:
            measurements[idx_aligned] = measurements_unaligned[idx_unaligned]
            coords[idx_aligned] = coords_unaligned[idx_unaligned]
            idx_unaligned += 1

    txt_public = state.txt_public
    acm_policy_status: Optional[int] = None
    issues: List[ReproduceEventLogIssue] = []
    result = ReproduceEventLogResult()
    for idx, (m, ev_c, ev_e) in enumerate(zip(measurements, events_calculated, events_expected)):
        if ev_c is None:
            issues.append(IssueUnexpectedLogEntry(idx, ev_e, explain_log_entry(state, ev_e)))
            result.append(ReproduceEventLogEntry(Status.UNEXPECTED, expected=ev_e))
            continue
        if ev_e is None:
            issues.append(IssueMissingLogEntry(idx, m, ev_c))
            result.append(ReproduceEventLogEntry(Status.MISSING, m, ev_c, action_coordinates=coords[idx]))
            continue
        if ev_e.digest.value == ev_c.digest:
            result.append(ReproduceEventLogEntry(Status.MATCH, m, ev_c, ev_e, coords[idx]))
            continue
        if m is not None and acm_policy_status_reference(m, txt_public):
            pcr0_data = m.data.raw_bytes()
            value = bruteforce_pcr0_data_digest(pcr0_data, hash_algo, ev_e.digest.value, settings)
            if value is not None:
                issues.append(IssueACMPolicyStatusChanged(pcr0_data[:ACM_POLICY_STATUS_SIZE], register_bytes(value)))
                acm_policy_status = value
                result.append(ReproduceEventLogEntry(Status.MATCH, m, ev_c, ev_e, coords[idx]))
                continue
            issues.append(IssuePCR0DataMismatch(ev_c.digest, ev_e))
        else:
            issues.append(IssueLoggedDigestDoesNotMatch(idx, m, ev_c.digest, ev_e, explain_log_entry(state, ev_e)))
        result.append(ReproduceEventLogEntry(Status.MISMATCH, m, ev_c, ev_e, coords[idx]))

    logger().log_verbose(f'[pcrbruteforcer] reproduced the event log with {len(issues)} issues')
    return result, acm_policy_status, issues
