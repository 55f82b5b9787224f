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
Event log kept by the simulated TPM
"""

from collections import namedtuple
from typing import List, Optional

from bootflow.library.exceptions import UnsupportedPCRError
from bootflow.library.tpm.tpm_defines import algorithm_name, digest_size, event_type_name, hash_bytes


class EventLogEntry(namedtuple('EventLogEntry', 'pcr_index hash_algo digest event_type data')):
    __slots__ = ()

    def __str__(self) -> str:
        s = f'PCR: {self.pcr_index}, Algo: {algorithm_name(self.hash_algo)}, Digest: {self.digest.hex()}, Type: {event_type_name(self.event_type)}'
        if self.data:
            s += f', Data: 0x{self.data.hex().upper()}'
        return s


class EventLog(List[EventLogEntry]):
    def add(self, pcr_index: int, hash_algo: int, digest: bytes, event_type: int, data: Optional[bytes]) -> None:
        self.append(EventLogEntry(pcr_index, hash_algo, bytes(digest), event_type, data))

    def replay(self, pcr_index: int, hash_algo: int, locality: int) -> bytes:
        """Recomputes the PCR value from the logged digests, starting from the Init value of `locality`."""
        if pcr_index != 0:
            raise UnsupportedPCRError('Currently only replay of PCR0 is supported')
        result = bytearray(digest_size(hash_algo))
        result[-1] = locality
        value = bytes(result)
        for entry in self:
            if entry.pcr_index != pcr_index or entry.hash_algo != hash_algo:
                continue
            value = hash_bytes(hash_algo, value + entry.digest)
        return value
