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
Converters for generating a `docker run` script from a deployment.
"""
import os
import shlex
import stat
from typing import List, Optional

from jinja2 import Template

from ..MODELS.deployment_config import DeploymentConfig
from ..MODELS.service_descriptor import ServiceDescriptor
from ..RUNNERS.dependency_resolver import DependencyResolver
from ..UTILS.units import format_memory

DOCKER_RUN_TEMPLATE = """#!/usr/bin/env bash
# Generated by sgxcompose for project {{ project }}
set -euo pipefail

docker network inspect {{ network }} >/dev/null 2>&1 || docker network create {{ network }}
{% for svc in services %}
# {{ svc.name }}{% if svc.depends_on %} (after {{ svc.depends_on | join(', ') }}){% endif %}
docker run -d \\
{%- for arg in svc.args %}
  {{ arg }} \\
{%- endfor %}
  {{ svc.image }}
{% endfor %}"""


class DockerRunConverter:
    """
    Converts a deployment into a bash script of `docker run` commands,
    one per service, in startup order.
    """

    def __init__(self, config: DeploymentConfig, project: Optional[str] = None):
        """
        :param config: The deployment to convert.
        :param project: Project name used for container and network names.
        """
        self.config = config
        self.project = project or "sgxcompose"
        self.resolver = DependencyResolver()
        self.template = Template(DOCKER_RUN_TEMPLATE)

    def container_name(self, svc: ServiceDescriptor) -> str:
        """Name the container gets: container_name if set, else <project>-<service>-1."""
        return svc.container_name or f"{self.project}-{svc.name}-1"

    def run_args(self, svc: ServiceDescriptor) -> List[str]:
        """
        The `docker run` options for one service, shell-quoted.
        """
        q = shlex.quote
        args = [
            f"--name {q(self.container_name(svc))}",
            f"--network {q(self.network)}",
            f"--network-alias {q(svc.name)}",
        ]
        if svc.stdin_open:
            args.append("-i")
        if svc.tty:
            args.append("-t")
        for dev in svc.devices:
            args.append(f"--device {q(dev.short_syntax())}")
        for vol in svc.volumes:
            args.append(f"-v {q(vol.short_syntax())}")
        for name in svc.env_passthrough:
            args.append(f"-e {q(name)}")
        for name, value in svc.environment.items():
            args.append(f"-e {q(f'{name}={value}')}")
        for port in svc.expose:
            args.append(f"--expose {q(str(port))}")
        if svc.resources is not None:
            if svc.resources.cpus is not None:
                args.append(f"--cpus {svc.resources.cpus:g}")
            if svc.resources.memory_bytes is not None:
                args.append(f"--memory {format_memory(svc.resources.memory_bytes)}")
        return args

    @property
    def network(self) -> str:
        return f"{self.project}_default"

    def render(self) -> str:
        """
        Returns the script text.
        """
        services = []
        for name in self.resolver.resolve_order(self.config):
            svc = self.config.services[name]
            services.append({
                "name": name,
                "image": shlex.quote(svc.image),
                "depends_on": svc.depends_on,
                "args": self.run_args(svc),
            })
        return self.template.render(
            project=self.project,
            network=shlex.quote(self.network),
            services=services,
        ) + "\n"

    def convert(self, output_path: str = "run.sh") -> str:
        """
        Writes the script and marks it executable.

        :param output_path: Destination file.
        :return: The path written.
        """
        parent = os.path.dirname(output_path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        with open(output_path, "w") as f:
            f.write(self.render())
        mode = os.stat(output_path).st_mode
        os.chmod(output_path, mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return output_path
