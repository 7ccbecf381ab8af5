# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Host inspection: device nodes, bind sources and capacity for resource limits.
"""
import os
import stat
from dataclasses import dataclass
from typing import Optional

import psutil


@dataclass
class DeviceStatus:
    """What the host has at a device path."""

    path: str
    exists: bool
    is_char_device: bool = False


class HostInspector:
    """
    Reports host facts a deployment depends on.
    Paths can be re-rooted under ``root`` to inspect a mounted image or a test tree.
    """

    def __init__(self, root: str = "/"):
        """
        :param root: Directory absolute paths are resolved under.
        """
        self.root = root

    def _host_path(self, path: str) -> str:
        if self.root in ("", "/"):
            return path
        return os.path.join(self.root, path.lstrip("/"))

    def device_status(self, path: str) -> DeviceStatus:
        """
        Checks whether a device node exists and is a character device.

        :param path: Absolute device path, e.g. /dev/sgx/enclave.
        """
        try:
            mode = os.stat(self._host_path(path)).st_mode
        except (FileNotFoundError, NotADirectoryError):
            return DeviceStatus(path=path, exists=False)
        except PermissionError:
            # Present but unreadable still counts as present
            return DeviceStatus(path=path, exists=True, is_char_device=True)
        return DeviceStatus(path=path, exists=True, is_char_device=stat.S_ISCHR(mode))

    def path_exists(self, path: str) -> bool:
        """Whether a bind source exists on the host."""
        return os.path.exists(self._host_path(path))

    def cpu_count(self) -> Optional[int]:
        """Logical CPUs available on the host."""
        return psutil.cpu_count(logical=True)

    def total_memory(self) -> int:
        """Total physical memory in bytes."""
        return psutil.virtual_memory().total
