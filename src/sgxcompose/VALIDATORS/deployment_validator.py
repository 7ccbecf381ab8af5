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
Validation of deployments beyond what the models enforce on construction.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from ..errors import ComposeError, CircularDependencyError
from ..MODELS.deployment_config import DeploymentConfig
from ..PARSERS.compose_parser import ComposeParser
from ..RUNNERS.dependency_resolver import DependencyResolver
from ..MANAGERS.host_inspector import HostInspector


class Severity(str, Enum):
    """How serious a validation issue is."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass
class ValidationIssue:
    """A single problem found in a deployment."""

    severity: Severity
    message: str
    service: Optional[str] = None

    def __str__(self) -> str:
        where = f"[{self.service}] " if self.service else ""
        return f"{self.severity.value.upper():7} {where}{self.message}"


@dataclass
class ValidationReport:
    """All issues found for one deployment."""

    issues: List[ValidationIssue] = field(default_factory=list)
    config: Optional[DeploymentConfig] = None

    def add(self, severity: Severity, message: str, service: Optional[str] = None):
        self.issues.append(ValidationIssue(severity=severity, message=message, service=service))

    @property
    def errors(self) -> List[ValidationIssue]:
        return [i for i in self.issues if i.severity == Severity.ERROR]

    @property
    def warnings(self) -> List[ValidationIssue]:
        return [i for i in self.issues if i.severity == Severity.WARNING]

    @property
    def ok(self) -> bool:
        """True when no errors were found. Warnings do not fail a deployment."""
        return not self.errors


class DeploymentValidator:
    """
    Checks a deployment for problems the runtime would hit at deployment time.

    Structural invariants (dangling dependencies, absolute paths, positive
    limits) are enforced while loading; this class turns load failures into
    report entries and adds checks that look across services or at the host.
    """

    def __init__(self, check_host: bool = False, inspector: Optional[HostInspector] = None,
                 parser: Optional[ComposeParser] = None):
        """
        :param check_host: Also check devices, bind sources and capacity on this host.
        :param inspector: Host inspector to use, a default one when omitted.
        :param parser: Parser used by validate_file and validate_string.
        """
        self.check_host = check_host
        self.inspector = inspector or HostInspector()
        self.parser = parser or ComposeParser()
        self.resolver = DependencyResolver()

    def validate_file(self, compose_path: str) -> ValidationReport:
        """Loads and validates a compose file."""
        try:
            config = self.parser.parse(compose_path)
        except ComposeError as e:
            return self._load_failure(e)
        return self.validate(config)

    def validate_string(self, content: str) -> ValidationReport:
        """Loads and validates compose YAML held in a string."""
        try:
            config = self.parser.parse_from_string(content)
        except ComposeError as e:
            return self._load_failure(e)
        return self.validate(config)

    def validate(self, config: DeploymentConfig) -> ValidationReport:
        """
        Validates an already loaded deployment.

        :param config: The deployment configuration.
        :return: The report, with ``config`` set.
        """
        report = ValidationReport(config=config)
        self._check_cycles(config, report)
        self._check_shared_sources(config, report)
        self._check_exposed_ports(config, report)
        self._check_device_paths(config, report)
        if self.check_host:
            self._check_host(config, report)
        return report

    def _load_failure(self, error: ComposeError) -> ValidationReport:
        report = ValidationReport()
        for line in error.errors:
            report.add(Severity.ERROR, line)
        return report

    def _check_cycles(self, config: DeploymentConfig, report: ValidationReport):
        try:
            self.resolver.resolve_order(config)
        except CircularDependencyError as e:
            report.add(Severity.ERROR, str(e), service=e.cycle[0])

    def _check_shared_sources(self, config: DeploymentConfig, report: ValidationReport):
        # Writable host directories mounted at different places usually mean a typo
        seen: Dict[str, Tuple[str, str]] = {}
        for name, svc in config.services.items():
            for vol in svc.volumes:
                if vol.read_only:
                    continue
                first = seen.setdefault(vol.source, (name, vol.target))
                if first[1] != vol.target:
                    report.add(
                        Severity.WARNING,
                        f"host path {vol.source} is mounted writable at {vol.target}, "
                        f"but at {first[1]} in service {first[0]}",
                        service=name,
                    )

    def _check_exposed_ports(self, config: DeploymentConfig, report: ValidationReport):
        owners: Dict[str, str] = {}
        for name, svc in config.services.items():
            for port in svc.expose:
                key = str(port)
                if key in owners and owners[key] != name:
                    report.add(Severity.WARNING, f"port {key} is also exposed by {owners[key]}", service=name)
                owners.setdefault(key, name)

    def _check_device_paths(self, config: DeploymentConfig, report: ValidationReport):
        for name, svc in config.services.items():
            for dev in svc.devices:
                if dev.container_path != dev.host_path:
                    report.add(
                        Severity.INFO,
                        f"device {dev.host_path} appears as {dev.container_path} inside the container",
                        service=name,
                    )

    def _check_host(self, config: DeploymentConfig, report: ValidationReport):
        checked = {}
        for name, svc in config.services.items():
            for dev in svc.devices:
                if dev.host_path not in checked:
                    checked[dev.host_path] = self.inspector.device_status(dev.host_path)
                status = checked[dev.host_path]
                if not status.exists:
                    report.add(Severity.ERROR, f"device {dev.host_path} does not exist on this host", service=name)
                elif not status.is_char_device:
                    report.add(Severity.ERROR, f"{dev.host_path} is not a character device", service=name)

            for vol in svc.volumes:
                if not self.inspector.path_exists(vol.source):
                    report.add(
                        Severity.WARNING,
                        f"bind source {vol.source} does not exist and will be created by the runtime",
                        service=name,
                    )

            limits = svc.resources
            if limits is None:
                continue
            cpu_count = self.inspector.cpu_count()
            if limits.cpus is not None and cpu_count and limits.cpus > cpu_count:
                report.add(
                    Severity.WARNING,
                    f"cpus limit {limits.cpus:g} exceeds the {cpu_count} CPUs on this host",
                    service=name,
                )
            total = self.inspector.total_memory()
            if limits.memory_bytes is not None and limits.memory_bytes > total:
                report.add(
                    Severity.WARNING,
                    f"memory limit {limits.memory} exceeds host memory ({total / 1024 ** 3:.1f}g)",
                    service=name,
                )
