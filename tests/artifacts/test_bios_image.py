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

import unittest
from uuid import UUID

from bootflow.artifacts.artifact import IdentityMapper, RawArtifact
from bootflow.artifacts.bios_image import FOUR_GB, BIOSImage, PhysMemMapper
from bootflow.artifacts.uefi import EFI_FILE, EFI_FV, EFI_FV_FILETYPE_PEIM, EFI_SECTION, EFI_SECTION_PE32
from bootflow.library.bytes import Range
from bootflow.library.exceptions import ArtifactReadError, MappingError

GUID_A = UUID('11111111-2222-3333-4444-555555555555')
GUID_B = UUID('66666666-7777-8888-9999-AAAAAAAAAAAA')


class TestPhysMemMapper(unittest.TestCase):

    def setUp(self):
        self.image = BIOSImage(bytes(0x1000))
        self.mapper = PhysMemMapper()

    def test_resolve_whole_image(self):
        resolved = self.mapper.resolve(self.image, [Range(FOUR_GB - 0x10, 0x10)])
        self.assertEqual(resolved, [Range(0xFF0, 0x10)])

    def test_resolve_bios_region(self):
        image = BIOSImage(bytes(0x3000), regions={'Descriptor': Range(0, 0x1000), 'BIOS': Range(0x1000, 0x2000)})
        self.assertEqual(self.mapper.resolve(image, [Range(FOUR_GB - 0x2000, 4)]), [Range(0x1000, 4)])

    def test_resolve_outside(self):
        with self.assertRaises(MappingError):
            self.mapper.resolve(self.image, [Range(FOUR_GB - 0x1001, 2)])

    def test_unresolve(self):
        self.assertEqual(self.mapper.unresolve(self.image, [Range(0x10, 4)]), [Range(FOUR_GB - 0xFF0, 4)])
        with self.assertRaises(MappingError):
            self.mapper.unresolve(self.image, [Range(0xFFF, 2)])

    def test_unresolve_resolve(self):
        image = BIOSImage(bytes(0x3000), regions={'BIOS': Range(0x1000, 0x2000)})
        for r in (Range(0x1000, 1), Range(0x1800, 0x10), Range(0x2FF0, 0x10)):
            self.assertEqual(self.mapper.resolve(image, self.mapper.unresolve(image, [r])), [r])

    def test_identity_mapper(self):
        artifact = RawArtifact(bytes(range(16)))
        mapper = IdentityMapper()
        ranges = [Range(4, 8)]
        self.assertEqual(mapper.unresolve(artifact, mapper.resolve(artifact, ranges)), ranges)

    def test_not_a_bios_image(self):
        with self.assertRaises(MappingError):
            self.mapper.resolve(RawArtifact(bytes(0x10)), [Range(0, 1)])

    def test_ambiguous_bios_region(self):
        image = BIOSImage(bytes(0x10), regions={'bios': Range(0, 8), 'BIOS': Range(8, 8)})
        with self.assertRaises(MappingError):
            image.bios_region()


class TestBIOSImage(unittest.TestCase):

    def setUp(self):
        self.section = EFI_SECTION(0x120, EFI_SECTION_PE32, 0x40)
        self.file = EFI_FILE(0x100, GUID_B, EFI_FV_FILETYPE_PEIM, 0x100, 'Peim').add(self.section)
        self.volume = EFI_FV(0, GUID_A, 0x400).add(self.file)
        self.image = BIOSImage(bytes(range(256)) * 4, nodes=[self.volume])

    def test_read_at(self):
        self.assertEqual(self.image.read_at(0x10, 2), b'\x10\x11')
        with self.assertRaises(ArtifactReadError):
            self.image.read_at(0x3FF, 2)

    def test_walk(self):
        self.assertEqual(list(self.image.walk()), [self.volume, self.file, self.section])

    def test_find_by_guid(self):
        self.assertEqual(self.image.find_by_guid(GUID_B), [self.file])
        self.assertEqual(self.image.find_by_guid(UUID(int=0)), [])

    def test_nodes_containing_innermost_first(self):
        self.assertEqual(self.image.nodes_containing(Range(0x130, 4)), [self.section, self.file, self.volume])
        self.assertEqual(self.image.nodes_containing(Range(0x300, 0x200)), [])


if __name__ == '__main__':
    unittest.main()
