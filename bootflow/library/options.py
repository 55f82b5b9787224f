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
import yaml
from fnmatch import fnmatch
from typing import Any, Dict, KeysView, Optional
from bootflow.library.file import read_file, get_main_dir
from bootflow.library.exceptions import BootflowConfigError
from bootflow.library.logger import logger


class Options(object):
    def __init__(self, options_path: Optional[str] = None):
        self.sections: Dict[str, Any] = {}
        if options_path is None:
            options_path = os.path.join(get_main_dir(), 'options')
        if not os.path.isdir(options_path):
            raise BootflowConfigError(f'Unable to locate configuration options: {options_path}')
        options_files = [f.name for f in sorted(os.scandir(options_path), key=lambda x: x.name)
                         if fnmatch(f.name, '*.yaml')]
        for options in options_files:
            options_name = os.path.join(options_path, options)
            logger().log_debug(f'[*] Importing options: {options_name}')
            data = read_file(options_name)
            try:
                section = yaml.safe_load(data)
            except yaml.YAMLError as err:
                raise BootflowConfigError(f'Unable to parse options file {options_name}: {err}') from err
            if section:
                self.sections.update(section)

    def get_sections(self) -> KeysView:
        return self.sections.keys()

    def get_section_data(self, sect: str, key: Optional[str] = None, default: Any = None) -> Any:
        data = self.sections.get(sect, None)
        if key is None:
            return data if data is not None else default
        if not isinstance(data, dict):
            return default
        return data.get(key, default)


_options = None


def options() -> Options:
    """Returns the Options instance built from the package option files."""
    global _options
    if _options is None:
        _options = Options()
    return _options
