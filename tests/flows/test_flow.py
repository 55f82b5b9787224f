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

from bootflow.actions import SetFlow, SetPSPVerified
from bootflow.datasources import BIOSDirectory
from bootflow.flows import default_registry
from bootflow.flows.flow import Flow, FlowRegistry
from bootflow.flows.ocp import IntelResetVector, PEI
from bootflow.flows.root import Root
from bootflow.library.exceptions import FlowRegistrationError, UnknownFlowError
from bootflow.steps.amd import VerifyBIOSDirectory
from bootflow.steps.common import Panic
from tests.software import firmware


class TestFlowRegistry(unittest.TestCase):

    def test_register_and_get(self):
        flow = Flow('Custom', [Panic('x')])
        registry = FlowRegistry([flow])
        self.assertIs(registry.get('custom'), flow)
        self.assertIn('CUSTOM', registry)
        self.assertEqual(len(flow), 1)

    def test_duplicate_name(self):
        registry = FlowRegistry([Flow('Custom', [])])
        with self.assertRaises(FlowRegistrationError):
            registry.register(Flow('custom', []))

    def test_unknown_name(self):
        with self.assertRaises(UnknownFlowError):
            FlowRegistry().get('nothing')

    def test_default_registry(self):
        registry = default_registry()
        self.assertIs(registry.get('root'), Root)
        self.assertEqual(registry.names(), sorted(registry.names()))
        for name in ('Intel', 'IntelCBnT', 'IntelLegacyTXT', 'AMD', 'AMDGenoa', 'AMDGenoaLocality0',
                     'AMDGenoaLocality3', 'OCPPEIv0', 'OCPPEIv1', 'OCPPEIv1AMD', 'OCPDXE', 'PEI', 'IntelResetVector'):
            self.assertIn(name, registry)

    def test_pei_entries_share_steps(self):
        self.assertIsNot(PEI, IntelResetVector)
        self.assertEqual([repr(step) for step in PEI.steps], [repr(step) for step in IntelResetVector.steps])


class TestAMDSteps(unittest.TestCase):

    def test_verify_bios_directory(self):
        fallback = Flow('Fallback', [Panic('verification failed')])
        actions = VerifyBIOSDirectory(fallback).actions(firmware.amd_state())
        self.assertEqual(len(actions), 1)
        self.assertIsInstance(actions[0], SetPSPVerified)
        self.assertIsInstance(actions[0].data_source, BIOSDirectory)

        actions = VerifyBIOSDirectory(fallback).actions(firmware.intel_state())
        self.assertIsInstance(actions[0], SetFlow)
        self.assertIs(actions[0].flow, fallback)


if __name__ == '__main__':
    unittest.main()
