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

from bootflow.library.exceptions import BruteForceError
from bootflow.library.tpm.tpm_defines import TPM_ALG_SHA1
from bootflow.pcrbruteforcer.acm_policy_status import (bruteforce_pcr0_data_digest, combinatorial_search,
                                                       linear_search, pcr0_data_digest, register_bytes,
                                                       register_value, search_acm_policy_status)
from bootflow.pcrbruteforcer.settings import (SettingsBruteforceACMPolicyStatus, SettingsReproduceEventLog,
                                              SettingsReproducePCR0)

VALUE = 0x0000000200108681


class TestACMPolicyStatus(unittest.TestCase):

    def test_register_bytes(self):
        self.assertEqual(register_bytes(0x0102), b'\x02\x01' + bytes(6))
        self.assertEqual(register_value(register_bytes(VALUE)), VALUE)
        self.assertEqual(register_bytes(-1), b'\xFF' * 8)

    def test_linear_search(self):
        initial = register_bytes(VALUE)
        self.assertEqual(linear_search(initial, 8, lambda data: register_value(data) == VALUE - 5), VALUE - 5)
        self.assertIsNone(linear_search(initial, 3, lambda data: register_value(data) == VALUE - 5))

    def test_combinatorial_search(self):
        target = VALUE ^ (1 << 20) ^ (1 << 63)
        found = combinatorial_search(register_bytes(VALUE), 2, lambda data: register_value(data) == target)
        self.assertEqual(found, target)

    def test_strategies(self):
        target = VALUE ^ (1 << 33)

        def check(data):
            return register_value(data) == target

        settings = SettingsBruteforceACMPolicyStatus(enable_combinatorial_strategy=False)
        self.assertIsNone(search_acm_policy_status(register_bytes(VALUE), check, settings))
        settings.enable_combinatorial_strategy = True
        self.assertEqual(search_acm_policy_status(register_bytes(VALUE), check, settings), target)

    def test_register_size(self):
        with self.assertRaises(BruteForceError):
            search_acm_policy_status(b'\x00' * 4, lambda data: True, SettingsBruteforceACMPolicyStatus())

    def test_pcr0_data_digest(self):
        pcr0_data = register_bytes(VALUE) + b'rest of PCR0_DATA'
        new_status = register_bytes(VALUE - 1)
        self.assertEqual(pcr0_data_digest(pcr0_data, new_status, TPM_ALG_SHA1),
                         hashlib.sha1(new_status + b'rest of PCR0_DATA').digest())
        settings = SettingsBruteforceACMPolicyStatus()
        expected = pcr0_data_digest(pcr0_data, new_status, TPM_ALG_SHA1)
        self.assertEqual(bruteforce_pcr0_data_digest(pcr0_data, TPM_ALG_SHA1, expected, settings), VALUE - 1)


class TestSettings(unittest.TestCase):

    def test_defaults_from_options(self):
        settings = SettingsReproducePCR0.default()
        self.assertEqual(settings.max_disabled_measurements, 4)
        self.assertEqual(settings.max_reorders, 0)
        self.assertFalse(settings.enable_combinatorial_strategy)
        self.assertEqual(settings.max_linear_distance, 128)
        self.assertEqual(SettingsReproduceEventLog.default().disabled_events_max_distance, 2)


if __name__ == '__main__':
    unittest.main()
