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
Hints on where the digest of an EventLog entry may come from

The data of a PCR0 event often names the measured bytes: physical ranges of the
BIOS region, or a firmware volume GUID. The explainer hashes these guesses (and,
failing that, the raw event data) and lists the UEFI nodes they touch.
"""

from typing import List, Optional, Tuple

from bootflow.actors import Unknown
from bootflow.artifacts.artifact import RawArtifact
from bootflow.artifacts.bios_image import BIOSImage, PhysMemMapper
from bootflow.artifacts.uefi import EFI_MODULE
from bootflow.data import Data, Hasher, MeasuredData, Reference
from bootflow.datasources import StaticData
from bootflow.library.bytes import Range, Ranges
from bootflow.library.exceptions import ArtifactReadError, EventLogParseError, MappingError
from bootflow.library.logger import logger
from bootflow.state import State
from bootflow.tpm.tcg_eventlog import EventDataParsed, TPMEvent, parse_event_data


class LogEntryExplainer:
    def __init__(self, event: TPMEvent) -> None:
        self.event = event
        self.event_data_parsed: Optional[EventDataParsed] = None
        # a measurement reproducing the digest of the event
        self.measurement: Optional[MeasuredData] = None
        self.digest_guesses: List[bytes] = []
        self.related_nodes: List[EFI_MODULE] = []

    def __str__(self) -> str:
        details = []
        if self.measurement is not None:
            details.append(f'reproduced the digest using measurement: {self.measurement.data!r}')
        if self.event_data_parsed is not None:
            if self.event_data_parsed.ranges:
                details.append(f'mentioned byte ranges: {self.event_data_parsed.ranges}')
            if self.event_data_parsed.fv_guids:
                details.append(f'mentioned UUIDs: {", ".join(str(g).upper() for g in self.event_data_parsed.fv_guids)}')
        if self.related_nodes:
            details.append(f'related UEFI nodes: {", ".join(n.name() for n in self.related_nodes)}')
        for digest in self.digest_guesses:
            details.append(f'digest guessed from Data field: {digest.hex().upper()}')
        if not details:
            return f'<unable to get any info; event: {self.event}>'
        return '; '.join(details)


def _try_measurement(state: State, ev: TPMEvent, references: List[Reference]) -> Tuple[Optional[MeasuredData], Optional[bytes]]:
    """Hashes `references` with the algorithm of `ev`; returns the measurement if the digest matches, and the digest."""
    data = Data(references=references, converter=Hasher(ev.digest.hash_algo))
    try:
        digest = data.converted_bytes()
    except (ArtifactReadError, MappingError) as err:
        logger().log_debug(f'[pcrbruteforcer] unable to read the guessed measurement {data!r}: {err}')
        return None, None
    if digest != ev.digest.value:
        return None, digest
    return MeasuredData(data, state.tpm, Unknown(), StaticData(data)), digest


def _image_references(image: BIOSImage, ranges: Ranges) -> List[Reference]:
    result = []
    for r in ranges:
        if r.length == 0:
            logger().log_debug(f'[pcrbruteforcer] skipping the empty range {r}')
            continue
        result.append(Reference(image, PhysMemMapper(), [r]))
    return result


def _guess_measurement(explainer: LogEntryExplainer, state: State, image: BIOSImage) -> None:
    ev = explainer.event
    parsed = explainer.event_data_parsed
    if parsed is not None and parsed.ranges:
        measurement, digest = _try_measurement(state, ev, _image_references(image, parsed.ranges))
        if digest is not None:
            explainer.digest_guesses.append(digest)
        if measurement is not None:
            explainer.measurement = measurement
            return
    if ev.data:
        raw = RawArtifact(ev.data, 'EventData')
        measurement, digest = _try_measurement(state, ev, [Reference(raw, None, [Range(0, len(ev.data))])])
        # the raw data is a wild guess, so its digest is only reported when it matches
        if measurement is not None:
            explainer.measurement = measurement
            explainer.digest_guesses.append(digest)


def _related_nodes(explainer: LogEntryExplainer, image: BIOSImage) -> List[EFI_MODULE]:
    ranges = Ranges()
    if explainer.measurement is not None:
        for ref in explainer.measurement.references():
            if ref.artifact is image:
                ranges.extend(ref.resolved_ranges())
    parsed = explainer.event_data_parsed
    if parsed is not None:
        try:
            ranges.extend(PhysMemMapper().resolve(image, [r for r in parsed.ranges if r.length]))
        except MappingError as err:
            logger().log_debug(f'[pcrbruteforcer] {err}')
        for guid in parsed.fv_guids:
            ranges.extend(node.range() for node in image.find_by_guid(guid) if node.Size)
    ranges.sort_and_merge()

    result: List[EFI_MODULE] = []
    for r in ranges:
        for node in image.nodes_containing(r):
            if all(node is not n for n in result):
                result.append(node)
    return result


def explain_log_entry(state: State, ev: TPMEvent) -> LogEntryExplainer:
    """Collects what could be guessed about the origin of the digest of `ev`."""
    explainer = LogEntryExplainer(ev)
    image = state.bios_image
    if image is None:
        return explainer
    try:
        explainer.event_data_parsed = parse_event_data(ev, image.size())
    except EventLogParseError as err:
        logger().log_debug(f'[pcrbruteforcer] {err}')
    _guess_measurement(explainer, state, image)
    explainer.related_nodes = _related_nodes(explainer, image)
    return explainer
