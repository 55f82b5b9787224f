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
Intel Boot Guard / CBnT metadata as supplied by a FIT and manifest parser

All addresses are physical memory addresses (the way FIT pointers are stored).
"""

from collections import namedtuple
from typing import List, Optional

from bootflow.library.bytes import Range, Ranges

FIT_TYPE_HEADER = 0x00
FIT_TYPE_MICROCODE = 0x01
FIT_TYPE_STARTUP_ACM = 0x02
FIT_TYPE_BIOS_STARTUP_MODULE = 0x07
FIT_TYPE_TPM_POLICY = 0x08
FIT_TYPE_BIOS_POLICY = 0x09
FIT_TYPE_TXT_POLICY = 0x0A
FIT_TYPE_KEY_MANIFEST = 0x0B
FIT_TYPE_BOOT_POLICY_MANIFEST = 0x0C
FIT_TYPE_CSE_SECURE_BOOT = 0x10

FIT_TYPE_NAMES = {
    FIT_TYPE_HEADER: 'FIT_HEADER',
    FIT_TYPE_MICROCODE: 'MICROCODE',
    FIT_TYPE_STARTUP_ACM: 'STARTUP_ACM',
    FIT_TYPE_BIOS_STARTUP_MODULE: 'BIOS_STARTUP_MODULE',
    FIT_TYPE_TPM_POLICY: 'TPM_POLICY',
    FIT_TYPE_BIOS_POLICY: 'BIOS_POLICY',
    FIT_TYPE_TXT_POLICY: 'TXT_POLICY',
    FIT_TYPE_KEY_MANIFEST: 'KEY_MANIFEST',
    FIT_TYPE_BOOT_POLICY_MANIFEST: 'BOOT_POLICY_MANIFEST',
    FIT_TYPE_CSE_SECURE_BOOT: 'CSE_SECURE_BOOT',
}


def fit_type_name(entry_type: int) -> str:
    return FIT_TYPE_NAMES.get(entry_type, f'0x{entry_type:02X}')


class FITEntry(namedtuple('FITEntry', 'entry_type address size')):
    __slots__ = ()

    def range(self) -> Range:
        return Range(self.address, self.size)


class IBBDigest(namedtuple('IBBDigest', 'hash_algo offset digest')):
    """An IBB digest of the BPM; `offset` is the physical address of the digest buffer."""
    __slots__ = ()

    def range(self) -> Range:
        return Range(self.offset, len(self.digest))


class ACMInfo:
    def __init__(self, address: int, svn_offset: int, svn_length: int,
                 signature_offset: int, signature_length: int, valid: bool = True) -> None:
        self.address = address
        self.svn_offset = svn_offset
        self.svn_length = svn_length
        self.signature_offset = signature_offset
        self.signature_length = signature_length
        self.valid = valid

    def svn_range(self) -> Range:
        return Range(self.address + self.svn_offset, self.svn_length)

    def signature_range(self) -> Range:
        return Range(self.address + self.signature_offset, self.signature_length)


class KeyManifest:
    def __init__(self, address: int, signature_offset: int, signature_length: int, valid: bool = True) -> None:
        self.address = address
        self.signature_offset = signature_offset
        self.signature_length = signature_length
        self.valid = valid

    def signature_range(self) -> Range:
        return Range(self.address + self.signature_offset, self.signature_length)


class BootPolicyManifest(KeyManifest):
    def __init__(self, address: int, signature_offset: int, signature_length: int,
                 ibb_ranges: Optional[List[Range]] = None, ibb_digests: Optional[List[IBBDigest]] = None,
                 valid_ibb: bool = True, valid: bool = True) -> None:
        super(BootPolicyManifest, self).__init__(address, signature_offset, signature_length, valid)
        self.ibb_ranges = Ranges(ibb_ranges or [])
        self.ibb_digests: List[IBBDigest] = list(ibb_digests or [])
        self.valid_ibb = valid_ibb

    def ibb_digest(self, hash_algo: int) -> Optional[IBBDigest]:
        for digest in self.ibb_digests:
            if digest.hash_algo == hash_algo:
                return digest
        return None


class IntelFirmware:
    """FIT entries and the parsed CBnT structures they point to."""

    def __init__(self, fit_entries: Optional[List[FITEntry]] = None, acm: Optional[ACMInfo] = None,
                 km: Optional[KeyManifest] = None, bpm: Optional[BootPolicyManifest] = None) -> None:
        self.fit_entries: List[FITEntry] = list(fit_entries or [])
        self.acm = acm
        self.km = km
        self.bpm = bpm

    def fit_first(self, entry_type: int) -> Optional[FITEntry]:
        for entry in self.fit_entries:
            if entry.entry_type == entry_type:
                return entry
        return None
