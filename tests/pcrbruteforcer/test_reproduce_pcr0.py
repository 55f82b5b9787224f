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
from unittest.mock import patch

from bootflow.engine.boot_process import run_flow
from bootflow.flows.root import Root
from bootflow.library.exceptions import ReplayConsistencyError
from bootflow.library.tpm.tpm_defines import TPM_ALG_SHA1, TPM_ALG_SHA256
from bootflow.pcrbruteforcer.reproduce_pcr0 import (OrderSwap, ReproducePCR0Result, filtered_measurements, replay,
                                                    reproduce_pcr0)
from bootflow.pcrbruteforcer.settings import SettingsReproducePCR0
from bootflow.tpm.commands import CommandInit, Commands
from bootflow.tpm.tpm import TPM
from tests.software import firmware


def _settings(**kwargs) -> SettingsReproducePCR0:
    settings = SettingsReproducePCR0(max_disabled_measurements=0, max_reorders=0, max_linear_distance=4)
    for key, value in kwargs.items():
        setattr(settings, key, value)
    return settings


class TestReproducePCR0(unittest.TestCase):

    def setUp(self):
        self.state = firmware.intel_state()
        run_flow(self.state, Root)
        self.command_log = self.state.tpm.command_log
        self.measurements = filtered_measurements(self.command_log, TPM_ALG_SHA1)

    def _replay_with_corrected_log(self, result, hash_algo):
        tpm = TPM([hash_algo])
        result.apply(self.command_log).apply(tpm)
        return tpm.pcr_value(0, hash_algo)

    def test_filtered_measurements(self):
        self.assertEqual(len(self.measurements), 10)

    def test_as_is(self):
        expected = self.state.tpm.pcr_value(0, TPM_ALG_SHA1)
        result = reproduce_pcr0(self.command_log, TPM_ALG_SHA1, expected, _settings())
        self.assertIsNotNone(result)
        self.assertEqual(result.locality, 3)
        self.assertEqual(result.acm_policy_status, firmware.DEFAULT_ACM_POLICY_STATUS)
        self.assertEqual(result.disabled_indexes, [])
        self.assertEqual(result.order_swaps, [])

    def test_acm_policy_status_bit_flip(self):
        flipped = firmware.DEFAULT_ACM_POLICY_STATUS ^ (1 << 20)
        other = firmware.intel_state(flipped)
        run_flow(other, Root)
        expected = other.tpm.pcr_value(0, TPM_ALG_SHA256)
        self.assertNotEqual(expected, self.state.tpm.pcr_value(0, TPM_ALG_SHA256))

        self.assertIsNone(reproduce_pcr0(self.command_log, TPM_ALG_SHA256, expected, _settings()))
        result = reproduce_pcr0(self.command_log, TPM_ALG_SHA256, expected,
                                _settings(enable_combinatorial_strategy=True, max_combinatorial_distance=2))
        self.assertIsNotNone(result)
        self.assertEqual(result.locality, 3)
        self.assertEqual(result.acm_policy_status, flipped)
        self.assertEqual(self._replay_with_corrected_log(result, TPM_ALG_SHA256), expected)

    def test_acm_policy_status_decremented(self):
        other = firmware.intel_state(firmware.DEFAULT_ACM_POLICY_STATUS - 2)
        run_flow(other, Root)
        expected = other.tpm.pcr_value(0, TPM_ALG_SHA1)
        result = reproduce_pcr0(self.command_log, TPM_ALG_SHA1, expected, _settings())
        self.assertEqual(result.acm_policy_status, firmware.DEFAULT_ACM_POLICY_STATUS - 2)

    def test_disabled_measurement(self):
        commands = [entry.command for idx, entry in enumerate(self.measurements) if idx != 2]
        expected = replay(commands, 3, TPM_ALG_SHA1)
        result = reproduce_pcr0(self.command_log, TPM_ALG_SHA1, expected, _settings(max_disabled_measurements=1))
        self.assertIsNotNone(result)
        self.assertEqual(result.disabled_indexes, [2])
        self.assertIs(result.disabled_measurements[0], self.measurements[2])
        self.assertEqual(self._replay_with_corrected_log(result, TPM_ALG_SHA1), expected)

    def test_swapped_measurements(self):
        commands = [entry.command for entry in self.measurements]
        commands[2], commands[3] = commands[3], commands[2]
        expected = replay(commands, 3, TPM_ALG_SHA1)
        self.assertIsNone(reproduce_pcr0(self.command_log, TPM_ALG_SHA1, expected, _settings()))
        result = reproduce_pcr0(self.command_log, TPM_ALG_SHA1, expected, _settings(max_reorders=1))
        self.assertEqual(result.order_swaps, [OrderSwap(2, 3)])
        self.assertEqual(self._replay_with_corrected_log(result, TPM_ALG_SHA1), expected)

    def test_locality_zero(self):
        commands = [entry.command for entry in self.measurements]
        expected = replay(commands, 0, TPM_ALG_SHA1)
        result = reproduce_pcr0(self.command_log, TPM_ALG_SHA1, expected, _settings())
        self.assertEqual(result.locality, 0)

    def test_not_found(self):
        self.assertIsNone(reproduce_pcr0(self.command_log, TPM_ALG_SHA1, bytes(20), _settings(max_disabled_measurements=1)))

    def test_replay_mismatch_is_an_error(self):
        expected = self.state.tpm.pcr_value(0, TPM_ALG_SHA1)
        # the corrected log loses every measurement
        with patch.object(ReproducePCR0Result, 'apply', lambda result, command_log: Commands([CommandInit(result.locality)])):
            with self.assertRaises(ReplayConsistencyError):
                reproduce_pcr0(self.command_log, TPM_ALG_SHA1, expected, _settings())


if __name__ == '__main__':
    unittest.main()
