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

import hashlib
import struct
import unittest
from uuid import UUID

from bootflow.library.bytes import Range
from bootflow.library.exceptions import EventLogParseError
from bootflow.library.tpm.tpm_defines import (EV_EFI_PLATFORM_FIRMWARE_BLOB2, EV_NO_ACTION, EV_POST_CODE,
                                              EV_S_CRTM_CONTENTS, EV_SEPARATOR, TPM_ALG_SHA1, TPM_ALG_SHA256)
from bootflow.tpm.tcg_eventlog import (PHYS_ADDR_BASE, STARTUP_LOCALITY_SIGNATURE, Digest, TPMEvent, parse_bytes,
                                       parse_event_data, parse_locality)
from tests.software.firmware import crypto_agile_event, spec_id_event


def _digests(data: bytes):
    return [(TPM_ALG_SHA1, hashlib.sha1(data).digest()), (TPM_ALG_SHA256, hashlib.sha256(data).digest())]


class TestTcgEventLog(unittest.TestCase):

    def setUp(self):
        self.log_bytes = (
            spec_id_event() +
            crypto_agile_event(0, EV_NO_ACTION, [(TPM_ALG_SHA1, bytes(20)), (TPM_ALG_SHA256, bytes(32))],
                               STARTUP_LOCALITY_SIGNATURE + b'\x03') +
            crypto_agile_event(0, EV_S_CRTM_CONTENTS, _digests(b'crtm'), b'crtm') +
            crypto_agile_event(1, EV_POST_CODE, _digests(b'post'), b'') +
            crypto_agile_event(0, EV_SEPARATOR, _digests(bytes(4)), bytes(4))
        )

    def test_parse(self):
        log = parse_bytes(self.log_bytes)
        # the Spec ID event and a pair of digests per other event
        self.assertEqual(len(log), 1 + 4 * 2)
        self.assertIsNone(log[0].digest)
        self.assertEqual(log[3].event_type, EV_S_CRTM_CONTENTS)
        self.assertEqual(log[3].digest.hash_algo, TPM_ALG_SHA1)
        self.assertEqual(log[4].digest.value, hashlib.sha256(b'crtm').digest())

    def test_filter_events(self):
        log = parse_bytes(self.log_bytes)
        events = log.filter_events(0, TPM_ALG_SHA256)
        self.assertEqual([ev.event_type for ev in events], [EV_NO_ACTION, EV_S_CRTM_CONTENTS, EV_SEPARATOR])

    def test_replay_honours_startup_locality(self):
        log = parse_bytes(self.log_bytes)
        self.assertEqual(log.startup_locality(), 3)
        expected = bytes(19) + b'\x03'
        for data in (b'crtm', bytes(4)):
            expected = hashlib.sha1(expected + hashlib.sha1(data).digest()).digest()
        self.assertEqual(log.replay(0, TPM_ALG_SHA1), expected)

    def test_legacy_log(self):
        data = b'legacy'
        log = parse_bytes(struct.pack('<II20sI', 0, EV_POST_CODE, hashlib.sha1(data).digest(), len(data)) + data)
        self.assertEqual(len(log), 1)
        self.assertEqual(log[0].digest.hash_algo, TPM_ALG_SHA1)
        self.assertEqual(log[0].data, data)

    def test_truncated(self):
        with self.assertRaises(EventLogParseError):
            parse_bytes(self.log_bytes[:-2])

    def test_parse_locality(self):
        self.assertEqual(parse_locality(STARTUP_LOCALITY_SIGNATURE + b'\x03'), 3)
        with self.assertRaises(EventLogParseError):
            parse_locality(b'StartupLocality')


class TestEventData(unittest.TestCase):

    IMAGE_SIZE = 0x10000

    def _event(self, event_type, data, pcr_index=0):
        return TPMEvent(pcr_index, event_type, data, Digest(TPM_ALG_SHA1, bytes(20)))

    def test_firmware_blob_ranges_and_fv_guid(self):
        description = b'Fv(14E428FA-1A12-4875-B637-8B3CC87FDF07)'
        data = bytes([len(description)]) + description + struct.pack('<QQ', 0x800, PHYS_ADDR_BASE - 0xC000)
        parsed = parse_event_data(self._event(EV_EFI_PLATFORM_FIRMWARE_BLOB2, data), self.IMAGE_SIZE)
        self.assertEqual(parsed.ranges, [Range(PHYS_ADDR_BASE - 0xC000, 0x800)])
        self.assertEqual(parsed.description, description.decode())
        self.assertEqual(parsed.fv_guids, [UUID('14E428FA-1A12-4875-B637-8B3CC87FDF07')])

    def test_post_code_swapped_offset_and_length(self):
        data = b'\x04PEI0' + struct.pack('<QQ', PHYS_ADDR_BASE - 0x1000, 0x100)
        parsed = parse_event_data(self._event(EV_POST_CODE, data), self.IMAGE_SIZE)
        self.assertEqual(parsed.ranges, [Range(PHYS_ADDR_BASE - 0x1000, 0x100)])
        self.assertEqual(parsed.description, 'PEI0')
        self.assertEqual(parsed.fv_guids, [])

    def test_no_ranges(self):
        parsed = parse_event_data(self._event(EV_POST_CODE, b'extra'), self.IMAGE_SIZE)
        self.assertEqual(parsed.ranges, [])
        self.assertIsNone(parsed.description)

    def test_startup_locality(self):
        parsed = parse_event_data(self._event(EV_NO_ACTION, STARTUP_LOCALITY_SIGNATURE + b'\x03'), self.IMAGE_SIZE)
        self.assertEqual(parsed.locality, 3)

    def test_unsupported(self):
        with self.assertRaises(EventLogParseError):
            parse_event_data(self._event(EV_SEPARATOR, bytes(4)), self.IMAGE_SIZE)
        with self.assertRaises(EventLogParseError):
            parse_event_data(self._event(EV_POST_CODE, b'', pcr_index=1), self.IMAGE_SIZE)


if __name__ == '__main__':
    unittest.main()
