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
Parsers for compose YAML files.
"""
import os
from typing import Dict, Any, List, Optional, Tuple

import yaml
from pydantic import ValidationError

from ..errors import ComposeError
from ..MODELS.deployment_config import DeploymentConfig
from ..MODELS.service_descriptor import ServiceDescriptor
from ..UTILS.paths import resolve_host_path
from ..UTILS.string_interpolation import EnvironmentInterpolator, InterpolationError

KNOWN_SERVICE_KEYS = frozenset({
    'image', 'container_name', 'depends_on', 'devices', 'volumes',
    'environment', 'expose', 'deploy', 'cpus', 'mem_limit',
    'stdin_open', 'tty',
})


class ComposeParser:
    """
    Parser for docker-compose.yml files.
    """
    def __init__(self, context: Optional[Dict[str, str]] = None, base_dir: Optional[str] = None):
        """
        Initializes the parser.

        :param context: Environment variables for interpolation, os.environ by default.
        :param base_dir: Directory relative bind sources resolve against.
        """
        self.context = context if context is not None else dict(os.environ)
        self.base_dir = base_dir

    def parse(self, compose_path: str) -> DeploymentConfig:
        """
        Parses a compose file from a path.

        :param compose_path: Path to the compose file.
        :return: Parsed configuration.
        """
        try:
            with open(compose_path, 'r', encoding='utf-8') as f:
                content = f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise ComposeError(f"Cannot read {compose_path}: {e}") from e
        base_dir = self.base_dir or os.path.dirname(os.path.abspath(compose_path))
        return self._parse(content, base_dir)

    def parse_from_string(self, content: str) -> DeploymentConfig:
        """
        Parses a compose file from a string.

        :param content: YAML content of the compose file.
        :return: Parsed configuration.
        :raises ComposeError: If the content is not a valid deployment.
        """
        return self._parse(content, self.base_dir)

    def _parse(self, content: str, base_dir: Optional[str]) -> DeploymentConfig:
        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ComposeError(f"Invalid YAML: {e}") from e
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ComposeError("Compose document must be a mapping")

        interpolator = EnvironmentInterpolator(self.context)
        try:
            data = interpolator.interpolate_data(data)
        except InterpolationError as e:
            raise ComposeError(f"Interpolation failed: {e}") from e
        for name in interpolator.missing:
            print(f"Warning: variable {name} is not set, defaulting to a blank string")

        services_spec = data.get('services') or {}
        if not isinstance(services_spec, dict):
            raise ComposeError("'services' must be a mapping of service name to definition")

        errors: List[str] = []
        services: Dict[str, ServiceDescriptor] = {}
        for name, spec in services_spec.items():
            name = str(name)
            if spec is None:
                spec = {}
            if not isinstance(spec, dict):
                errors.append(f"service {name!r} must be a mapping")
                continue
            try:
                services[name] = self._parse_service(name, spec, base_dir)
            except ValidationError as e:
                errors.extend(_format_validation_error(e, prefix=f"service {name!r}"))
            except (ValueError, TypeError) as e:
                errors.append(f"service {name!r}: {e}")
        if errors:
            raise ComposeError("Invalid compose file", errors)

        version = data.get('version')
        try:
            return DeploymentConfig(
                services=services,
                version=str(version) if version is not None else None,
            )
        except ValidationError as e:
            raise ComposeError("Invalid compose file", _format_validation_error(e)) from e

    def _parse_service(self, name: str, spec: Dict[str, Any], base_dir: Optional[str]) -> ServiceDescriptor:
        """
        Parses a single service definition from a compose file.

        :param name: The name of the service.
        :param spec: The service specification dictionary.
        :param base_dir: Directory relative bind sources resolve against.
        :return: A ServiceDescriptor instance.
        """
        for key in spec:
            if key not in KNOWN_SERVICE_KEYS:
                print(f"Warning: service {name}: ignoring unsupported key '{key}'")

        depends_on, conditions = self._parse_depends_on(spec.get('depends_on'))
        passthrough, environment = self._parse_environment(spec.get('environment'))

        return ServiceDescriptor(
            name=name,
            image=spec.get('image') or '',
            container_name=spec.get('container_name'),
            depends_on=depends_on,
            dependency_conditions=conditions,
            devices=[self._parse_device(d) for d in self._to_list(spec.get('devices'))],
            volumes=[self._parse_volume(v, base_dir) for v in self._to_list(spec.get('volumes'))],
            resources=self._parse_limits(spec),
            env_passthrough=passthrough,
            environment=environment,
            expose=[self._parse_port(p) for p in self._to_list(spec.get('expose'))],
            stdin_open=spec.get('stdin_open') or False,
            tty=spec.get('tty') or False,
        )

    def _parse_depends_on(self, value: Any) -> Tuple[List[str], Dict[str, str]]:
        if value is None:
            return [], {}
        if isinstance(value, dict):
            conditions = {}
            for dep, opts in value.items():
                if isinstance(opts, dict) and opts.get('condition'):
                    conditions[str(dep)] = opts['condition']
            return [str(dep) for dep in value], conditions
        return [str(dep) for dep in self._to_list(value)], {}

    def _parse_environment(self, value: Any) -> Tuple[List[str], Dict[str, str]]:
        passthrough: List[str] = []
        environment: Dict[str, str] = {}
        if value is None:
            return passthrough, environment
        if isinstance(value, dict):
            for k, v in value.items():
                if v is None:
                    passthrough.append(str(k))
                else:
                    environment[str(k)] = _scalar_to_str(v)
            return passthrough, environment
        for entry in self._to_list(value):
            entry = str(entry)
            if '=' in entry:
                k, v = entry.split('=', 1)
                environment[k] = v
            else:
                passthrough.append(entry)
        return passthrough, environment

    def _parse_device(self, value: Any) -> Dict[str, Any]:
        if isinstance(value, dict):
            return {
                'host_path': value.get('source', value.get('host_path', '')),
                'container_path': value.get('target', value.get('container_path', '')),
                'permissions': value.get('permissions', 'rwm'),
            }
        parts = str(value).split(':')
        if len(parts) > 3:
            raise ValueError(f"invalid device mapping {value!r}")
        device = {'host_path': parts[0]}
        if len(parts) >= 2:
            device['container_path'] = parts[1]
        if len(parts) == 3:
            device['permissions'] = parts[2]
        return device

    def _parse_volume(self, value: Any, base_dir: Optional[str]) -> Dict[str, Any]:
        if isinstance(value, dict):
            kind = value.get('type', 'bind')
            if kind != 'bind':
                raise ValueError(f"volume type {kind!r} is not supported, only bind mounts")
            return {
                'source': resolve_host_path(str(value.get('source', '')), base_dir),
                'target': value.get('target', ''),
                'read_only': value.get('read_only') or False,
            }
        parts = str(value).split(':')
        if len(parts) == 2:
            source, target, mode = parts[0], parts[1], 'rw'
        elif len(parts) == 3:
            source, target, mode = parts
        else:
            raise ValueError(f"invalid volume binding {value!r}, expected SRC:TGT[:MODE]")
        modes = set(mode.split(','))
        if not modes <= {'ro', 'rw', 'z', 'Z'}:
            raise ValueError(f"unknown volume mode {mode!r} in {value!r}")
        return {
            'source': resolve_host_path(source, base_dir),
            'target': target,
            'read_only': 'ro' in modes,
        }

    def _parse_limits(self, spec: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        limits: Any = spec.get('deploy')
        for key in ('resources', 'limits'):
            limits = limits.get(key) if isinstance(limits, dict) else None
        if limits is not None and not isinstance(limits, dict):
            raise ValueError("deploy.resources.limits must be a mapping")
        limits = limits or {}
        cpus = limits.get('cpus', spec.get('cpus'))
        memory = limits.get('memory', spec.get('mem_limit'))
        if cpus is None and memory is None:
            return None
        return {'cpus': cpus, 'memory': memory}

    def _parse_port(self, value: Any) -> Dict[str, Any]:
        if isinstance(value, bool):
            raise ValueError(f"invalid port {value!r}")
        if isinstance(value, int):
            return {'port': value}
        text = str(value)
        port, _, protocol = text.partition('/')
        if not port.isdigit():
            raise ValueError(f"invalid port {value!r}")
        result: Dict[str, Any] = {'port': int(port)}
        if protocol:
            result['protocol'] = protocol
        return result

    def _to_list(self, val: Any) -> List[Any]:
        """
        Helper to ensure a value is a list.

        :param val: The value to convert.
        :return: A list.
        """
        if val is None:
            return []
        if isinstance(val, (str, int, dict)):
            return [val]
        return list(val)


def _scalar_to_str(value: Any) -> str:
    if isinstance(value, bool):
        return 'true' if value else 'false'
    return str(value)


def _format_validation_error(error: ValidationError, prefix: Optional[str] = None) -> List[str]:
    lines = []
    for err in error.errors():
        loc = '.'.join(str(p) for p in err['loc'])
        msg = err['msg']
        if msg.startswith('Value error, '):
            msg = msg[len('Value error, '):]
        label = ' '.join(p for p in (prefix, loc) if p)
        lines.append(f"{label}: {msg}" if label else msg)
    return lines
