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
Logging functions

All bootflow modules log through the `logger()` singleton, which wraps the
'BOOTFLOW' logger of the standard logging module:
    >>> logger().log_debug('[bruteforce] distance 1: 64 combinations, 1 workers')
    >>> logger().set_log_level(verbose=True, trace=False, debug=False)
    >>> logger().set_log_file('bootflow.log')
"""
import logging
import os
import platform
import sys
from enum import Enum
from typing import Optional

LOGGER_NAME = 'BOOTFLOW'


class level(Enum):
    DEBUG = 10
    TRACE = 11
    VERBOSE = 13
    INFO = 20
    GOOD = 21
    BAD = 22
    IMPORTANT = 23
    WARNING = 30
    ERROR = 40
    CRITICAL = 50


PREFIXES = {
    level.ERROR.value: 'ERROR: ',
    level.WARNING.value: 'WARNING: ',
    level.IMPORTANT.value: '[!] ',
    level.GOOD.value: '[+] ',
    level.BAD.value: '[-] ',
    level.DEBUG.value: '[*] [DEBUG] ',
    level.VERBOSE.value: '[*] [VERBOSE] ',
    level.TRACE.value: '[*] [TRACE] ',
}

LEVEL_COLORS = {
    level.DEBUG.value: 'BLUE',
    level.TRACE.value: 'GREY',
    level.VERBOSE.value: 'GREY',
    level.GOOD.value: 'GREEN',
    level.BAD.value: 'RED',
    level.IMPORTANT.value: 'CYAN',
    level.WARNING.value: 'YELLOW',
    level.ERROR.value: 'RED',
    level.CRITICAL.value: 'PURPLE',
}


class bootflowFilter(logging.Filter):
    """Adds the level prefix of a record as `additional`."""

    def filter(self, record):
        record.additional = PREFIXES.get(record.levelno, '')
        return True


def _terminal_colors() -> dict:
    try:
        is_atty = sys.stdout.isatty()
    except AttributeError:
        is_atty = False
    # no colors when redirected or with NO_COLOR set (https://no-color.org/)
    mPlatform = platform.system().lower()
    if not is_atty or os.getenv('NO_COLOR') is not None or mPlatform not in ('windows', 'linux', 'darwin'):
        return {}
    if mPlatform == 'windows':
        _ = os.system('color')
    return {
        'GREY': '\033[90m',
        'RED': '\033[91m',
        'GREEN': '\033[92m',
        'YELLOW': '\033[93m',
        'BLUE': '\033[94m',
        'PURPLE': '\033[95m',
        'CYAN': '\033[96m',
        'WHITE': '\033[97m',
        'END': '\033[0m'}


class bootflowStreamFormatter(logging.Formatter):
    colors = _terminal_colors()

    def format(self, record):
        message = super().format(record)
        color = LEVEL_COLORS.get(record.levelno, 'WHITE')
        if color not in self.colors:
            return message
        return f'{self.colors[color]}{message}{self.colors["END"]}'


class Logger:
    """Console and log file output of bootflow."""

    VERBOSE: bool = False
    TRACE: bool = False
    DEBUG: bool = False

    LOG_FILE_NAME: str = ''

    def __init__(self):
        self.logfile: Optional[logging.FileHandler] = None
        self.logstream = logging.StreamHandler(sys.stdout)
        self.logstream.setFormatter(bootflowStreamFormatter('%(additional)s%(message)s'))
        self.bootflowLogger = logging.getLogger(LOGGER_NAME)
        self.bootflowLogger.setLevel(logging.INFO)
        self.bootflowLogger.propagate = False
        if not self.bootflowLogger.handlers:
            self.bootflowLogger.addHandler(self.logstream)
        if not self.bootflowLogger.filters:
            self.bootflowLogger.addFilter(bootflowFilter(LOGGER_NAME))
        for custom in (level.TRACE, level.VERBOSE, level.GOOD, level.BAD, level.IMPORTANT):
            logging.addLevelName(custom.value, custom.name)

    def log(self, text: str, lvl: level = level.INFO) -> None:
        self.bootflowLogger.log(lvl.value, text)

    def log_verbose(self, text: str) -> None:
        self.log(text, level.VERBOSE)

    def log_trace(self, text: str) -> None:
        """Logs per-candidate details of the searches."""
        self.log(text, level.TRACE)

    def log_debug(self, text: str) -> None:
        self.log(text, level.DEBUG)

    def log_error(self, text: str) -> None:
        self.log(text, level.ERROR)

    def log_warning(self, text: str) -> None:
        self.log(text, level.WARNING)

    def log_bad(self, text: str) -> None:
        """Logs a negative outcome, e.g. a value which could not be reproduced."""
        self.log(text, level.BAD)

    def log_good(self, text: str) -> None:
        """Logs a positive outcome, green when colors are available."""
        self.log(text, level.GOOD)

    def set_log_level(self, verbose: bool, trace: bool, debug: bool) -> None:
        self.VERBOSE, self.TRACE, self.DEBUG = verbose, trace, debug
        if debug:
            self.bootflowLogger.setLevel(level.DEBUG.value)
        elif trace:
            self.bootflowLogger.setLevel(level.TRACE.value)
        elif verbose:
            self.bootflowLogger.setLevel(level.VERBOSE.value)
        else:
            self.bootflowLogger.setLevel(level.INFO.value)

    def set_log_file(self, name: str) -> None:
        """Redirects the output to the file `name`; an empty name restores the console output."""
        self.close()
        if not name:
            if self.logstream not in self.bootflowLogger.handlers:
                self.bootflowLogger.addHandler(self.logstream)
            return
        try:
            self.logfile = logging.FileHandler(filename=name, mode='a')
        except OSError:
            self.log_warning(f'Could not open log file: {name}')
            return
        self.LOG_FILE_NAME = name
        self.logfile.setFormatter(logging.Formatter('%(additional)s%(message)s'))
        self.bootflowLogger.addHandler(self.logfile)
        self.bootflowLogger.removeHandler(self.logstream)

    def close(self) -> None:
        """Closes the log file, if any."""
        self.LOG_FILE_NAME = ''
        if self.logfile is None:
            return
        try:
            self.bootflowLogger.removeHandler(self.logfile)
            self.logfile.close()
        finally:
            self.logfile = None


_logger = Logger()


def logger() -> Logger:
    """Returns the Logger instance."""
    return _logger
