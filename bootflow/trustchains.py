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
Trust chains: the subsystems that measure or verify data during boot
"""


class TrustChain:
    """A subsystem accumulating evidence of code and data integrity."""

    def __repr__(self) -> str:
        return type(self).__name__


class PCH(TrustChain):
    """Intel Platform Controller Hub; a marker for data verified by Boot Guard."""
    pass


class PSP(TrustChain):
    """AMD Platform Security Processor; a marker for data verified by the PSP."""
    pass
