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
Settings of the PCR reproduction searches; defaults come from the options files
"""

from dataclasses import dataclass

from bootflow.library.options import options


@dataclass
class SettingsBruteforceACMPolicyStatus:
    """Data class for the ACM_POLICY_STATUS search bounds."""
    enable_combinatorial_strategy: bool = False
    max_combinatorial_distance: int = 2
    max_linear_distance: int = 128

    @classmethod
    def default(cls) -> 'SettingsBruteforceACMPolicyStatus':
        result = cls()
        result.load_acm_policy_status_options()
        return result

    def load_acm_policy_status_options(self) -> None:
        opts = options()
        self.enable_combinatorial_strategy = bool(opts.get_section_data(
            'acm_policy_status', 'enable_combinatorial_strategy', self.enable_combinatorial_strategy))
        self.max_combinatorial_distance = int(opts.get_section_data(
            'acm_policy_status', 'max_combinatorial_distance', self.max_combinatorial_distance))
        self.max_linear_distance = int(opts.get_section_data(
            'acm_policy_status', 'max_linear_distance', self.max_linear_distance))


@dataclass
class SettingsReproducePCR0(SettingsBruteforceACMPolicyStatus):
    """Data class for the reproduce_pcr0 search bounds."""
    max_disabled_measurements: int = 4
    max_reorders: int = 0

    @classmethod
    def default(cls) -> 'SettingsReproducePCR0':
        result = cls()
        result.load_acm_policy_status_options()
        opts = options()
        result.max_disabled_measurements = int(opts.get_section_data(
            'reproduce_pcr0', 'max_disabled_measurements', result.max_disabled_measurements))
        result.max_reorders = int(opts.get_section_data('reproduce_pcr0', 'max_reorders', result.max_reorders))
        return result


@dataclass
class SettingsReproduceEventLog(SettingsBruteforceACMPolicyStatus):
    """Data class for the event log alignment search bounds."""
    disabled_events_max_distance: int = 2

    @classmethod
    def default(cls) -> 'SettingsReproduceEventLog':
        result = cls()
        result.load_acm_policy_status_options()
        result.disabled_events_max_distance = int(options().get_section_data(
            'reproduce_event_log', 'disabled_events_max_distance', result.disabled_events_max_distance))
        return result
