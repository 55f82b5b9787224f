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

import os
import tempfile
import unittest

from bootflow.library.exceptions import BootflowConfigError
from bootflow.library.options import Options, options


class TestOptions(unittest.TestCase):

    def test_package_defaults(self):
        opts = options()
        self.assertIn('engine', opts.get_sections())
        self.assertEqual(opts.get_section_data('engine', 'max_steps'), 10000)
        self.assertEqual(opts.get_section_data('reproduce_pcr0', 'max_reorders'), 0)

    def test_missing_key_returns_default(self):
        self.assertEqual(options().get_section_data('engine', 'no_such_key', 42), 42)
        self.assertEqual(options().get_section_data('no_such_section', 'key', 'x'), 'x')

    def test_custom_directory(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            with open(os.path.join(temp_dir, 'a.yaml'), 'w') as f:
                f.write('engine:\n  max_steps: 5\n')
            with open(os.path.join(temp_dir, 'ignored.txt'), 'w') as f:
                f.write('engine: {max_steps: 7}\n')
            opts = Options(temp_dir)
        self.assertEqual(opts.get_section_data('engine', 'max_steps'), 5)

    def test_invalid_yaml(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            with open(os.path.join(temp_dir, 'bad.yaml'), 'w') as f:
                f.write('engine: [1, 2\n')
            with self.assertRaises(BootflowConfigError):
                Options(temp_dir)

    def test_missing_directory(self):
        with self.assertRaises(BootflowConfigError):
            Options('/nonexistent/bootflow/options')


if __name__ == '__main__':
    unittest.main()
