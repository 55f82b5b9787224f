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
Parser of binary TCG event logs (as exported by firmware)

`TCG EFI Protocol Specification, Family "2.0" <https://trustedcomputinggroup.org/wp-content/uploads/EFI-Protocol-Specification-rev13-160330final.pdf>`_

`TCG PC Client Platform Firmware Profile Specification <https://trustedcomputinggroup.org/wp-content/uploads/PC-ClientSpecific_Platform_Profile_for_TPM_2p0_Systems_v51.pdf>`_

Both the legacy (TPM 1.2, SHA1 only) and the crypto agile (TPM 2.0) formats are supported.
A crypto agile event carrying several digests is split into one TPMEvent per digest.
"""

import io
import struct
from collections import namedtuple
from typing import BinaryIO, Dict, List, Optional
from uuid import UUID

from bootflow.artifacts.bios_image import FOUR_GB
from bootflow.library.bytes import Range, Ranges
from bootflow.library.exceptions import EventLogParseError, UnsupportedPCRError
from bootflow.library.logger import logger
from bootflow.library.tpm.tpm_defines import (EV_EFI_PLATFORM_FIRMWARE_BLOB2, EV_NO_ACTION, EV_POST_CODE, TPM_ALG_SHA1,
                                              algorithm_name, digest_size, event_type_name, hash_bytes)

SPEC_ID_EVENT03_SIGNATURE = b'Spec ID Event03\x00'
STARTUP_LOCALITY_SIGNATURE = b'StartupLocality\x00'

# the BIOS region is mapped downwards from here
PHYS_ADDR_BASE = FOUR_GB

Digest = namedtuple('Digest', 'hash_algo value')


class TPMEvent:
    def __init__(self, pcr_index: int, event_type: int, data: bytes, digest: Optional[Digest]) -> None:
        self.pcr_index = pcr_index
        self.event_type = event_type
        self.data = data
        self.digest = digest

    def __str__(self) -> str:
        digest = f'{algorithm_name(self.digest.hash_algo)}:{self.digest.value.hex()}' if self.digest else '-'
        return f'PCR: {self.pcr_index:d}\ttype: {event_type_name(self.event_type)}\tsize: 0x{len(self.data):x}\tdigest: {digest}'

    def __repr__(self) -> str:
        return f'<TPMEvent {self}>'


class TPMEventLog(List[TPMEvent]):
    def filter_events(self, pcr_index: int, hash_algo: int) -> 'TPMEventLog':
        return TPMEventLog(ev for ev in self
                           if ev.pcr_index == pcr_index and ev.digest is not None and ev.digest.hash_algo == hash_algo)

    def startup_locality(self) -> int:
        for ev in self:
            if ev.pcr_index == 0 and ev.event_type == EV_NO_ACTION and ev.data.startswith(STARTUP_LOCALITY_SIGNATURE):
                return parse_locality(ev.data)
        return 0

    def replay(self, pcr_index: int, hash_algo: int) -> bytes:
        """Recomputes the final PCR value; honours the startup locality event of PCR0."""
        if pcr_index != 0:
            raise UnsupportedPCRError('Currently only replay of PCR0 is supported')
        value = bytearray(digest_size(hash_algo))
        value[-1] = self.startup_locality()
        result = bytes(value)
        for ev in self.filter_events(pcr_index, hash_algo):
            if ev.event_type == EV_NO_ACTION:
                continue
            result = hash_bytes(hash_algo, result + ev.digest.value)
        return result


def parse_locality(data: bytes) -> int:
    """Returns the locality recorded in a 'StartupLocality' EV_NO_ACTION event."""
    if not data.startswith(STARTUP_LOCALITY_SIGNATURE) or len(data) < len(STARTUP_LOCALITY_SIGNATURE) + 1:
        raise EventLogParseError(f'Not a StartupLocality event: 0x{data.hex()}')
    return data[len(STARTUP_LOCALITY_SIGNATURE)]


class PcrLogParser:
    """Iterator over the events of a log."""

    _legacy_header_fmt = '<II20sI'
    _legacy_header_size = struct.calcsize(_legacy_header_fmt)

    def __init__(self, log: BinaryIO):
        self.log = log
        self.digest_sizes: Optional[Dict[int, int]] = None
        self._pending: List[TPMEvent] = []
        self._first = True

    def __iter__(self) -> 'PcrLogParser':
        return self

    def __next__(self) -> TPMEvent:
        if not self._pending:
            self._pending = self._parse_next()
            if not self._pending:
                raise StopIteration()
        return self._pending.pop(0)

    def _read(self, size: int) -> bytes:
        buf = self.log.read(size)
        if len(buf) != size:
            raise EventLogParseError(f'Truncated event log: expected {size} bytes, got {len(buf)}')
        return buf

    def _parse_next(self) -> List[TPMEvent]:
        if self.digest_sizes is None:
            header = self.log.read(self._legacy_header_size)
            if not header:
                return []
            if len(header) != self._legacy_header_size:
                raise EventLogParseError('Truncated event header')
            pcr_index, event_type, digest, event_size = struct.unpack(self._legacy_header_fmt, header)
            data = self._read(event_size)
            if self._first and event_type == EV_NO_ACTION and data.startswith(SPEC_ID_EVENT03_SIGNATURE):
                self.digest_sizes = self._parse_spec_id_event(data)
                logger().log_debug(f'[tcg_eventlog] crypto agile log, algorithms: {", ".join(algorithm_name(a) for a in self.digest_sizes)}')
                self._first = False
                return [TPMEvent(pcr_index, event_type, data, None)]
            self._first = False
            return [TPMEvent(pcr_index, event_type, data, Digest(TPM_ALG_SHA1, digest))]
        return self._parse_crypto_agile()

    def _parse_spec_id_event(self, data: bytes) -> Dict[int, int]:
        offset = len(SPEC_ID_EVENT03_SIGNATURE) + struct.calcsize('<IBBBB')
        try:
            (count,) = struct.unpack_from('<I', data, offset)
            offset += 4
            sizes = {}
            for _ in range(count):
                alg_id, size = struct.unpack_from('<HH', data, offset)
                offset += 4
                sizes[alg_id] = size
        except struct.error as err:
            raise EventLogParseError(f'Invalid Spec ID event: {err}') from err
        return sizes

    def _parse_crypto_agile(self) -> List[TPMEvent]:
        header = self.log.read(12)
        if not header:
            return []
        if len(header) != 12:
            raise EventLogParseError('Truncated event header')
        pcr_index, event_type, count = struct.unpack('<III', header)
        digests = []
        for _ in range(count):
            (alg_id,) = struct.unpack('<H', self._read(2))
            size = self.digest_sizes.get(alg_id)
            if size is None:
                raise EventLogParseError(f'Unknown digest algorithm 0x{alg_id:04X} in event')
            digests.append(Digest(alg_id, self._read(size)))
        (event_size,) = struct.unpack('<I', self._read(4))
        data = self._read(event_size)
        if not digests:
            return [TPMEvent(pcr_index, event_type, data, None)]
        return [TPMEvent(pcr_index, event_type, data, digest) for digest in digests]


def parse(log: BinaryIO) -> TPMEventLog:
    return TPMEventLog(PcrLogParser(log))


def parse_bytes(data: bytes) -> TPMEventLog:
    return parse(io.BytesIO(data))

################################################################################################
# PCR0 event data
################################################################################################

class EventDataParsed:
    """What could be recognized in the data of a PCR0 event: byte ranges, a description, FV GUIDs, the locality."""

    def __init__(self) -> None:
        self.ranges = Ranges()
        self.locality: Optional[int] = None
        self.description: Optional[str] = None
        self.fv_guids: List[UUID] = []

    def parse_description(self) -> None:
        # 'Fv(XXXXXXXX-XXXX-XXXX-XXXX-XXXXXXXXXXXX)'
        d = self.description
        if d is None or not d.startswith('Fv(') or not d.endswith(')') or len(d) != 36 + len('Fv()'):
            return
        try:
            self.fv_guids.append(UUID(d[len('Fv('):-1]))
        except ValueError:
            logger().log_debug(f'[tcg_eventlog] not a GUID in event description: {d}')


def _is_phys_addr(addr: int, image_size: int) -> bool:
    return PHYS_ADDR_BASE - image_size <= addr < PHYS_ADDR_BASE


def _parse_firmware_blob(ev: TPMEvent, image_size: int) -> EventDataParsed:
    # e.g. b'\x12FV_BB_AFTER_MEMORY' + <length:u64> + <physical address:u64>, ranges may repeat
    result = EventDataParsed()
    data = ev.data
    while len(data) >= 16:
        length, offset = struct.unpack('<QQ', data[-16:])
        if length > image_size or not _is_phys_addr(offset, image_size):
            offset, length = length, offset
        if length > image_size or not _is_phys_addr(offset, image_size):
            break
        data = data[:-16]
        result.ranges.append(Range(offset, length))
    if data and data[0] == len(data) - 1:
        result.description = data[1:].decode('latin-1')
        result.parse_description()
    return result


def _parse_no_action(ev: TPMEvent, image_size: int) -> EventDataParsed:
    result = EventDataParsed()
    result.locality = parse_locality(ev.data)
    return result


PCR0_EVENT_DATA_PARSERS = {
    EV_NO_ACTION: _parse_no_action,
    EV_POST_CODE: _parse_firmware_blob,
    EV_EFI_PLATFORM_FIRMWARE_BLOB2: _parse_firmware_blob,
}


def parse_event_data(ev: TPMEvent, image_size: int) -> EventDataParsed:
    """Parses the data of a PCR0 event; `image_size` bounds the physical addresses and lengths accepted as ranges."""
    if ev.pcr_index != 0:
        raise EventLogParseError(f'Parsing event data of PCR{ev.pcr_index} is not supported')
    parser = PCR0_EVENT_DATA_PARSERS.get(ev.event_type)
    if parser is None:
        raise EventLogParseError(f'Parsing event data of {event_type_name(ev.event_type)} is not supported')
    return parser(ev, image_size)
