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

import logging
import os
import tempfile
import unittest

from bootflow.library.logger import LOGGER_NAME, level, logger


class TestLogger(unittest.TestCase):

    def tearDown(self):
        logger().set_log_file('')
        logger().set_log_level(False, False, False)

    def test_log_file(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            filename = os.path.join(temp_dir, 'bootflow.log')
            logger().set_log_file(filename)
            logger().log_good('reproduced')
            logger().log_bad('not reproduced')
            logger().log_debug('hidden')
            logger().set_log_file('')
            with open(filename) as f:
                lines = f.read().splitlines()
        self.assertEqual(lines, ['[+] reproduced', '[-] not reproduced'])

    def test_log_level(self):
        logger().set_log_level(verbose=True, trace=False, debug=False)
        self.assertEqual(logging.getLogger(LOGGER_NAME).level, level.VERBOSE.value)
        logger().set_log_level(verbose=False, trace=False, debug=True)
        self.assertEqual(logging.getLogger(LOGGER_NAME).level, level.DEBUG.value)
        self.assertTrue(logger().DEBUG)


if __name__ == '__main__':
    unittest.main()
