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
Named, opt-in heuristics applied to a command log before PCR0 reproduction
"""

from typing import Callable, Dict, Iterable, Set

from bootflow.library.exceptions import BootflowConfigError
from bootflow.tpm.commands import CommandEventLogAdd, CommandExtend, CommandInit, CommandLog, CommandLogEntry

HROT_MEASUREMENT_PREFIX = 'hrot measurement'


def sanitize_command_log(command_log: CommandLog) -> CommandLog:
    """
    Keeps the first TPM initialization, turns the "HRoT measurement" events into extends
    and drops the extends of all-zero digests and of digests already taken from such events.
    """
    result = CommandLog()
    initialized = False
    denied_digests: Set[bytes] = set()
    for entry in command_log:
        cmd = entry.command
        if isinstance(cmd, CommandInit):
            if initialized:
                continue
            initialized = True
            result.append(entry)
        elif isinstance(cmd, CommandEventLogAdd):
            data = (cmd.data or b'').decode('latin-1').lower()
            if data.startswith(HROT_MEASUREMENT_PREFIX):
                result.append(CommandLogEntry(cmd.as_extend(), entry.cause_coordinates, entry.cause_action))
                denied_digests.add(cmd.digest)
    for entry in command_log:
        cmd = entry.command
        if not isinstance(cmd, CommandExtend):
            continue
        if cmd.digest in denied_digests or not any(cmd.digest):
            continue
        result.append(entry)
    return result


HEURISTICS: Dict[str, Callable[[CommandLog], CommandLog]] = {
    'hrot_sanitize': sanitize_command_log,
}


def apply_heuristics(command_log: CommandLog, names: Iterable[str]) -> CommandLog:
    for name in names:
        heuristic = HEURISTICS.get(name)
        if heuristic is None:
            raise BootflowConfigError(f"Unknown command log heuristic '{name}'; available: {', '.join(sorted(HEURISTICS))}")
        command_log = heuristic(command_log)
    return command_log
