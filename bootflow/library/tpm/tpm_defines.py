# CHIPSEC: Platform Security Assessment Framework
# Copyright (c) 2010-2021, Intel Corporation
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
TPM algorithm identifiers, hash factories and TCG event types
"""

import hashlib
from typing import Callable, Dict

from bootflow.library.exceptions import UnsupportedHashAlgorithmError

# TPM_ALG_ID values (TPM 2.0 Part 2, Table 9)
TPM_ALG_SHA1 = 0x0004
TPM_ALG_SHA256 = 0x000B
TPM_ALG_SHA384 = 0x000C
TPM_ALG_SHA512 = 0x000D
TPM_ALG_SM3_256 = 0x0012

HASH_ALGORITHMS: Dict[int, str] = {
    TPM_ALG_SHA1: 'sha1',
    TPM_ALG_SHA256: 'sha256',
    TPM_ALG_SHA384: 'sha384',
    TPM_ALG_SHA512: 'sha512',
}

ALGORITHM_NAMES: Dict[int, str] = {
    TPM_ALG_SHA1: 'SHA1',
    TPM_ALG_SHA256: 'SHA256',
    TPM_ALG_SHA384: 'SHA384',
    TPM_ALG_SHA512: 'SHA512',
    TPM_ALG_SM3_256: 'SM3_256',
}


def algorithm_name(hash_algo: int) -> str:
    return ALGORITHM_NAMES.get(hash_algo, f'0x{hash_algo:04X}')


def hash_factory(hash_algo: int) -> Callable:
    """Returns a constructor of a streaming hasher for the TPM algorithm ID."""
    name = HASH_ALGORITHMS.get(hash_algo)
    if name is None:
        raise UnsupportedHashAlgorithmError(f'Unsupported hash algorithm: {algorithm_name(hash_algo)}')
    return getattr(hashlib, name)


def digest_size(hash_algo: int) -> int:
    return hash_factory(hash_algo)().digest_size


def hash_bytes(hash_algo: int, data: bytes) -> bytes:
    return hash_factory(hash_algo)(data).digest()


# TCG event types (PC Client Platform Firmware Profile, Table 9)
EV_PREBOOT_CERT = 0x0
EV_POST_CODE = 0x1
EV_UNUSED = 0x2
EV_NO_ACTION = 0x3
EV_SEPARATOR = 0x4
EV_ACTION = 0x5
EV_EVENT_TAG = 0x6
EV_S_CRTM_CONTENTS = 0x7
EV_S_CRTM_VERSION = 0x8
EV_CPU_MICROCODE = 0x9
EV_PLATFORM_CONFIG_FLAGS = 0xA
EV_TABLE_OF_DEVICES = 0xB
EV_COMPACT_HASH = 0xC
EV_IPL = 0xD
EV_IPL_PARTITION_DATA = 0xE
EV_NONHOST_CODE = 0xF
EV_NONHOST_CONFIG = 0x10
EV_NONHOST_INFO = 0x11
EV_OMIT_BOOT_DEVICE_EVENTS = 0x12
EV_EFI_EVENT_BASE = 0x80000000
EV_EFI_VARIABLE_DRIVER_CONFIG = 0x80000001
EV_EFI_VARIABLE_BOOT = 0x80000002
EV_EFI_BOOT_SERVICES_APPLICATION = 0x80000003
EV_EFI_BOOT_SERVICES_DRIVER = 0x80000004
EV_EFI_RUNTIME_SERVICES_DRIVER = 0x80000005
EV_EFI_GPT_EVENT = 0x80000006
EV_EFI_ACTION = 0x80000007
EV_EFI_PLATFORM_FIRMWARE_BLOB = 0x80000008
EV_EFI_HANDOFF_TABLES = 0x80000009
EV_EFI_PLATFORM_FIRMWARE_BLOB2 = 0x8000000A
EV_EFI_VARIABLE_AUTHORITY = 0x800000E0

EVENT_TYPE_NAMES: Dict[int, str] = {
    EV_PREBOOT_CERT: 'EV_PREBOOT_CERT',
    EV_POST_CODE: 'EV_POST_CODE',
    EV_UNUSED: 'EV_UNUSED',
    EV_NO_ACTION: 'EV_NO_ACTION',
    EV_SEPARATOR: 'EV_SEPARATOR',
    EV_ACTION: 'EV_ACTION',
    EV_EVENT_TAG: 'EV_EVENT_TAG',
    EV_S_CRTM_CONTENTS: 'EV_S_CRTM_CONTENTS',
    EV_S_CRTM_VERSION: 'EV_S_CRTM_VERSION',
    EV_CPU_MICROCODE: 'EV_CPU_MICROCODE',
    EV_PLATFORM_CONFIG_FLAGS: 'EV_PLATFORM_CONFIG_FLAGS',
    EV_TABLE_OF_DEVICES: 'EV_TABLE_OF_DEVICES',
    EV_COMPACT_HASH: 'EV_COMPACT_HASH',
    EV_IPL: 'EV_IPL',
    EV_IPL_PARTITION_DATA: 'EV_IPL_PARTITION_DATA',
    EV_NONHOST_CODE: 'EV_NONHOST_CODE',
    EV_NONHOST_CONFIG: 'EV_NONHOST_CONFIG',
    EV_NONHOST_INFO: 'EV_NONHOST_INFO',
    EV_OMIT_BOOT_DEVICE_EVENTS: 'EV_OMIT_BOOT_DEVICE_EVENTS',
    EV_EFI_EVENT_BASE: 'EV_EFI_EVENT_BASE',
    EV_EFI_VARIABLE_DRIVER_CONFIG: 'EV_EFI_VARIABLE_DRIVER_CONFIG',
    EV_EFI_VARIABLE_BOOT: 'EV_EFI_VARIABLE_BOOT',
    EV_EFI_BOOT_SERVICES_APPLICATION: 'EV_EFI_BOOT_SERVICES_APPLICATION',
    EV_EFI_BOOT_SERVICES_DRIVER: 'EV_EFI_BOOT_SERVICES_DRIVER',
    EV_EFI_RUNTIME_SERVICES_DRIVER: 'EV_EFI_RUNTIME_SERVICES_DRIVER',
    EV_EFI_GPT_EVENT: 'EV_EFI_GPT_EVENT',
    EV_EFI_ACTION: 'EV_EFI_ACTION',
    EV_EFI_PLATFORM_FIRMWARE_BLOB: 'EV_EFI_PLATFORM_FIRMWARE_BLOB',
    EV_EFI_HANDOFF_TABLES: 'EV_EFI_HANDOFF_TABLES',
    EV_EFI_PLATFORM_FIRMWARE_BLOB2: 'EV_EFI_PLATFORM_FIRMWARE_BLOB2',
    EV_EFI_VARIABLE_AUTHORITY: 'EV_EFI_VARIABLE_AUTHORITY',
}


def event_type_name(event_type: int) -> str:
    return EVENT_TYPE_NAMES.get(event_type, f'0x{event_type:X}')
