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
Intel flows: CBnT (Boot Guard) and legacy TXT
"""

from bootflow.actors import IntelACM, PCH
from bootflow.conditions import BPMPresent, Not, ValidACM, ValidBPM, ValidIBB, ValidKM
from bootflow.flows.flow import Flow
from bootflow.flows.ocp import IntelResetVector
from bootflow.steps.common import If, Panic, SetActor, SetFlow
from bootflow.steps.intel import MeasurePCR0DATA, VerifyACM, VerifyBPM, VerifyIBB, VerifyKM
from bootflow.steps.tpm import InitTPM

IntelCBnTFailure = Flow('IntelCBnTFailure', [
    SetFlow(IntelResetVector),
])

IntelCBnT = Flow('IntelCBnT', [
    SetActor(PCH()),
    VerifyACM(IntelCBnTFailure),
    VerifyKM(IntelCBnTFailure),
    VerifyBPM(IntelCBnTFailure),
    VerifyIBB(IntelCBnTFailure),
    If(Not(ValidACM()), SetFlow(IntelCBnTFailure)),
    If(Not(ValidKM()), SetFlow(IntelCBnTFailure)),
    If(Not(ValidBPM()), SetFlow(IntelCBnTFailure)),
    If(Not(ValidIBB()), SetFlow(IntelCBnTFailure)),
    SetActor(IntelACM()),
    InitTPM(3),
    MeasurePCR0DATA(),
    SetFlow(IntelResetVector),
])

IntelLegacyTXT = Flow('IntelLegacyTXT', [
    Panic('legacy TXT flow is not implemented'),
])

Intel = Flow('Intel', [
    If(BPMPresent(), SetFlow(IntelCBnT)),
    SetFlow(IntelLegacyTXT),
])

FLOWS = (IntelCBnTFailure, IntelCBnT, IntelLegacyTXT, Intel)
