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
Root flow: dispatches to the Intel or the AMD flow
"""

from bootflow.conditions import FITPresent, ManifestPresent
from bootflow.flows.amd import AMD
from bootflow.flows.flow import Flow
from bootflow.flows.intel import Intel
from bootflow.steps.common import If, Panic, SetFlow

Root = Flow('Root', [
    If(FITPresent(), SetFlow(Intel)),
    If(ManifestPresent(), SetFlow(AMD)),
    Panic('unknown flow: neither AMD nor Intel'),
])

FLOWS = (Root,)
