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

import unittest

from bootflow.library.exceptions import BootflowConfigError
from bootflow.library.tpm.tpm_defines import EV_POST_CODE, EV_SEPARATOR, TPM_ALG_SHA256
from bootflow.pcrbruteforcer.heuristics import apply_heuristics, sanitize_command_log
from bootflow.tpm.commands import CommandEventLogAdd, CommandExtend, CommandInit, CommandLog, CommandLogEntry


def _entry(command) -> CommandLogEntry:
    return CommandLogEntry(command, None, None)


HROT_DIGEST = b'\xAA' * 32


class TestHeuristics(unittest.TestCase):

    def setUp(self):
        self.command_log = CommandLog([
            _entry(CommandInit(3)),
            _entry(CommandExtend(0, TPM_ALG_SHA256, b'\x01' * 32)),
            _entry(CommandEventLogAdd(0, TPM_ALG_SHA256, HROT_DIGEST, EV_POST_CODE, b'HRoT Measurement: PSP')),
            _entry(CommandInit(0)),
            _entry(CommandExtend(0, TPM_ALG_SHA256, HROT_DIGEST)),
            _entry(CommandExtend(0, TPM_ALG_SHA256, bytes(32))),
            _entry(CommandEventLogAdd(0, TPM_ALG_SHA256, b'\x02' * 32, EV_SEPARATOR, b'\x00' * 4)),
            _entry(CommandExtend(0, TPM_ALG_SHA256, b'\x03' * 32)),
        ])

    def test_sanitize(self):
        commands = sanitize_command_log(self.command_log).commands()
        self.assertEqual(commands, [
            CommandInit(3),
            CommandExtend(0, TPM_ALG_SHA256, HROT_DIGEST),
            CommandExtend(0, TPM_ALG_SHA256, b'\x01' * 32),
            CommandExtend(0, TPM_ALG_SHA256, b'\x03' * 32),
        ])

    def test_apply_by_name(self):
        self.assertEqual(apply_heuristics(self.command_log, ['hrot_sanitize']).commands(),
                         sanitize_command_log(self.command_log).commands())
        self.assertIs(apply_heuristics(self.command_log, []), self.command_log)

    def test_unknown_heuristic(self):
        with self.assertRaises(BootflowConfigError):
            apply_heuristics(self.command_log, ['no_such_heuristic'])


if __name__ == '__main__':
    unittest.main()
