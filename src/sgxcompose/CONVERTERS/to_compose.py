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
Converters for writing deployments back out as normalized compose YAML.
"""
import os
from typing import Any, Dict

import yaml

from ..MODELS.deployment_config import DeploymentConfig
from ..MODELS.service_descriptor import DeviceMapping, ServiceDescriptor, VolumeBinding


class ComposeConverter:
    """
    Renders a deployment as compose YAML in short syntax and declaration order.
    """

    def __init__(self, config: DeploymentConfig):
        """
        :param config: The deployment to render.
        """
        self.config = config

    def to_dict(self) -> Dict[str, Any]:
        """
        Builds the compose document as plain data.
        """
        document: Dict[str, Any] = {}
        if self.config.version:
            document["version"] = self.config.version
        document["services"] = {
            name: self._service(svc) for name, svc in self.config.services.items()
        }
        return document

    def render(self) -> str:
        """
        Returns the compose document as YAML text.
        """
        return yaml.safe_dump(self.to_dict(), sort_keys=False, default_flow_style=False)

    def convert(self, output_path: str = "docker-compose.yml") -> str:
        """
        Writes the compose document.

        :param output_path: Destination file.
        :return: The path written.
        """
        parent = os.path.dirname(output_path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        with open(output_path, "w") as f:
            f.write(self.render())
        return output_path

    def _service(self, svc: ServiceDescriptor) -> Dict[str, Any]:
        out: Dict[str, Any] = {"image": svc.image}
        if svc.container_name:
            out["container_name"] = svc.container_name
        if svc.depends_on:
            if svc.dependency_conditions:
                out["depends_on"] = {
                    dep: ({"condition": svc.dependency_conditions[dep].value}
                          if dep in svc.dependency_conditions else {})
                    for dep in svc.depends_on
                }
            else:
                out["depends_on"] = list(svc.depends_on)
        if svc.devices:
            out["devices"] = [_device(d) for d in svc.devices]
        if svc.volumes:
            out["volumes"] = [_volume(v) for v in svc.volumes]
        if svc.stdin_open:
            out["stdin_open"] = True
        if svc.tty:
            out["tty"] = True
        # "$" would be interpolated again on load
        environment = list(svc.env_passthrough) + [
            f"{k}={v}".replace("$", "$$") for k, v in svc.environment.items()
        ]
        if environment:
            out["environment"] = environment
        if svc.expose:
            out["expose"] = [p.port if p.protocol == "tcp" else str(p) for p in svc.expose]
        if svc.resources is not None:
            limits: Dict[str, Any] = {}
            if svc.resources.cpus is not None:
                limits["cpus"] = f"{svc.resources.cpus:g}"
            if svc.resources.memory is not None:
                limits["memory"] = svc.resources.memory
            out["deploy"] = {"resources": {"limits": limits}}
        return out


def _device(dev: DeviceMapping) -> Any:
    # Short syntax splits on ':', so such paths need the long form
    if ":" in dev.host_path or ":" in dev.container_path:
        return {"source": dev.host_path, "target": dev.container_path, "permissions": dev.permissions}
    return dev.short_syntax()


def _volume(vol: VolumeBinding) -> Any:
    if ":" in vol.source or ":" in vol.target:
        return {"type": "bind", "source": vol.source, "target": vol.target, "read_only": vol.read_only}
    return vol.short_syntax()
