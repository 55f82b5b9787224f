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

from bootflow.flows import amd, intel, ocp, root
from bootflow.flows.flow import Flow, FlowRegistry


def default_registry() -> FlowRegistry:
    """Registry of every flow shipped with bootflow."""
    registry = FlowRegistry()
    for module in (root, intel, amd, ocp):
        for flow in module.FLOWS:
            registry.register(flow)
    return registry
