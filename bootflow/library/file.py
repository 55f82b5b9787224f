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
File helpers for the options files and the JSON step logs

usage:
    >>> read_file(filename)
    >>> write_file(filename, log.to_json())
"""

import os
from typing import Union

from bootflow.library.logger import logger


def get_main_dir() -> str:
    """Directory of the bootflow package."""
    return os.path.abspath(os.path.join(os.path.dirname(__file__), os.path.pardir))


def read_file(filename: str) -> bytes:
    """Returns the whole file, or empty bytes if it cannot be read."""
    if not os.path.isfile(filename):
        logger().log_error(f"File not found: '{filename:.256}'")
        return b''
    try:
        with open(filename, 'rb') as f:
            content = f.read()
    except OSError as err:
        logger().log_error(f"Unable to read '{filename:.256}': {err}")
        return b''
    logger().log_debug(f"[file] Read {len(content):d} bytes from '{filename:.256}'")
    return content


def write_file(filename: str, buffer: Union[str, bytes]) -> bool:
    """Writes `buffer` to `filename`, creating the directory if needed. Returns False on failure."""
    dir_path = os.path.dirname(filename)
    mode = 'wb' if isinstance(buffer, (bytes, bytearray)) else 'w'
    try:
        if dir_path:
            os.makedirs(dir_path, exist_ok=True)
        with open(filename, mode) as f:
            f.write(buffer)
    except OSError as err:
        logger().log_error(f"Unable to write '{filename:.256}': {err}")
        return False
    logger().log_debug(f"[file] Wrote {len(buffer):d} bytes to '{filename:.256}'")
    return True
