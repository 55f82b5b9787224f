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
AMD Genoa flows
"""

from bootflow.actors import PSP
from bootflow.conditions import Not, TPMIsInited
from bootflow.flows.flow import Flow
from bootflow.flows.ocp import PEI
from bootflow.steps.amd import (MeasureBIOSDirectory, MeasureBIOSRTMVolume, MeasureEmbeddedFirmwareStructure,
                                MeasureMicrocodePatch, MeasureMP0C2PMsgRegisters, MeasurePMUFirmware,
                                MeasurePSPVersion, MeasureVideoInterpreter, VerifyPSPDirectory)
from bootflow.steps.common import If, Panic, SetActor, SetFlow
from bootflow.steps.tpm import InitTPM

AMDGenoaLocality0 = Flow('AMDGenoaLocality0', [
    If(Not(TPMIsInited()), InitTPM(0)),
    MeasureMP0C2PMsgRegisters(),
    MeasureEmbeddedFirmwareStructure(),
    MeasureBIOSDirectory(),
    MeasurePMUFirmware(),
    MeasureMicrocodePatch(),
    MeasureVideoInterpreter(),
    SetFlow(PEI),
])

AMDGenoaVerificationFailure = Flow('AMDGenoaVerificationFailure', [
    SetFlow(AMDGenoaLocality0),
])

AMDGenoaLocality3 = Flow('AMDGenoaLocality3', [
    SetActor(PSP()),
    VerifyPSPDirectory(AMDGenoaVerificationFailure),
    InitTPM(3, with_log=True),
    MeasurePSPVersion(),
    MeasureBIOSRTMVolume(),
    SetFlow(AMDGenoaLocality0),
])

AMDGenoa = Flow('AMDGenoa', [
    SetFlow(AMDGenoaLocality3),
    Panic('this case is not implemented, yet'),
])

AMD = Flow('AMD', [
    SetFlow(AMDGenoa),
])

FLOWS = (AMDGenoaLocality0, AMDGenoaVerificationFailure, AMDGenoaLocality3, AMDGenoa, AMD)
