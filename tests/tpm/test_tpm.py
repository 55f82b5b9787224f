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

import hashlib
import unittest

from bootflow.library.exceptions import (TPMAlreadyInitializedError, TPMNotInitializedError,
                                         UnsupportedHashAlgorithmError, UnsupportedPCRError)
from bootflow.library.tpm.tpm_defines import EV_S_CRTM_VERSION, EV_SEPARATOR, TPM_ALG_SHA1, TPM_ALG_SHA256, TPM_ALG_SHA384
from bootflow.tpm.commands import CommandEventLogAdd, CommandExtend, CommandInit, Commands
from bootflow.tpm.event_log import EventLog
from bootflow.tpm.tpm import TPM


class TestTPM(unittest.TestCase):

    def setUp(self):
        self.tpm = TPM()

    def test_init_locality(self):
        self.tpm.tpm_init(3)
        self.assertEqual(self.tpm.pcr_value(0, TPM_ALG_SHA1), bytes(19) + b'\x03')
        self.assertEqual(self.tpm.pcr_value(1, TPM_ALG_SHA1), bytes(20))
        self.assertEqual(self.tpm.pcr_value(0, TPM_ALG_SHA256), bytes(31) + b'\x03')

    def test_double_init(self):
        self.tpm.tpm_init(0)
        with self.assertRaises(TPMAlreadyInitializedError):
            self.tpm.tpm_init(0)

    def test_extend(self):
        self.tpm.tpm_init(0)
        digest = hashlib.sha1(b'data').digest()
        self.tpm.tpm_extend(0, TPM_ALG_SHA1, digest)
        self.assertEqual(self.tpm.pcr_value(0, TPM_ALG_SHA1), hashlib.sha1(bytes(20) + digest).digest())
        self.assertEqual(self.tpm.pcr_value(0, TPM_ALG_SHA256), bytes(32))

    def test_extend_order(self):
        first, second = hashlib.sha1(b'a').digest(), hashlib.sha1(b'b').digest()
        other = TPM()
        for tpm, digests in ((self.tpm, (first, second)), (other, (second, first))):
            tpm.tpm_init(0)
            for digest in digests:
                tpm.tpm_extend(0, TPM_ALG_SHA1, digest)
        self.assertNotEqual(self.tpm.pcr_value(0, TPM_ALG_SHA1), other.pcr_value(0, TPM_ALG_SHA1))

    def test_extend_errors(self):
        with self.assertRaises(TPMNotInitializedError):
            self.tpm.tpm_extend(0, TPM_ALG_SHA1, bytes(20))
        self.tpm.tpm_init(0)
        with self.assertRaises(UnsupportedPCRError):
            self.tpm.tpm_extend(2, TPM_ALG_SHA1, bytes(20))
        with self.assertRaises(UnsupportedHashAlgorithmError):
            self.tpm.tpm_extend(0, TPM_ALG_SHA384, bytes(48))

    def test_commands_are_logged_before_applied(self):
        self.tpm.tpm_init(0)
        with self.assertRaises(UnsupportedPCRError):
            self.tpm.tpm_extend(5, TPM_ALG_SHA1, bytes(20))
        self.assertEqual(len(self.tpm.command_log), 2)
        self.assertEqual(self.tpm.command_log[1].command, CommandExtend(5, TPM_ALG_SHA1, bytes(20)))

    def test_event_log_add_does_not_extend(self):
        self.tpm.tpm_init(0)
        self.tpm.tpm_event_log_add(0, TPM_ALG_SHA1, b'\x01' * 20, EV_SEPARATOR, None)
        self.assertEqual(self.tpm.pcr_value(0, TPM_ALG_SHA1), bytes(20))
        self.assertEqual(len(self.tpm.event_log), 1)

    def test_reset(self):
        tpm = TPM([TPM_ALG_SHA256])
        tpm.tpm_init(0)
        tpm.supported_algos.append(TPM_ALG_SHA1)
        tpm.reset()
        self.assertFalse(tpm.is_initialized())
        self.assertEqual(tpm.supported_algos, [TPM_ALG_SHA256])
        self.assertEqual(len(tpm.command_log), 0)


class TestCommands(unittest.TestCase):

    def test_as_extend(self):
        cmd = CommandEventLogAdd(0, TPM_ALG_SHA1, b'\x02' * 20, EV_S_CRTM_VERSION, b'ver')
        self.assertEqual(cmd.as_extend(), CommandExtend(0, TPM_ALG_SHA1, b'\x02' * 20))

    def test_apply(self):
        tpm = TPM([TPM_ALG_SHA1])
        digest = hashlib.sha1(b'x').digest()
        Commands([CommandInit(3), CommandExtend(0, TPM_ALG_SHA1, digest)]).apply(tpm)
        self.assertEqual(tpm.pcr_value(0, TPM_ALG_SHA1), hashlib.sha1(bytes(19) + b'\x03' + digest).digest())

    def test_log_string(self):
        self.assertEqual(CommandInit(3).log_string(), 'TPMInit(3)')
        self.assertIn('SHA1', CommandExtend(0, TPM_ALG_SHA1, bytes(20)).log_string())


class TestEventLog(unittest.TestCase):

    def test_replay(self):
        digest = hashlib.sha1(b'a').digest()
        log = EventLog()
        log.add(0, TPM_ALG_SHA1, digest, EV_SEPARATOR, None)
        log.add(0, TPM_ALG_SHA256, bytes(32), EV_SEPARATOR, None)
        log.add(1, TPM_ALG_SHA1, bytes(20), EV_SEPARATOR, None)
        self.assertEqual(log.replay(0, TPM_ALG_SHA1, 3), hashlib.sha1(bytes(19) + b'\x03' + digest).digest())
        with self.assertRaises(UnsupportedPCRError):
            log.replay(1, TPM_ALG_SHA1, 0)


if __name__ == '__main__':
    unittest.main()
