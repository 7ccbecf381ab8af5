"""
Models for service descriptors: devices, bind volumes, resource limits and ports.
"""
from typing import List, Dict, Optional
from enum import Enum
from pydantic import BaseModel, Field, field_validator, model_validator

from ..UTILS.paths import check_absolute_path
from ..UTILS.units import parse_cpus, parse_memory


class DependencyCondition(str, Enum):
    """
    Conditions a dependency must reach before the dependent service starts.
    """
    STARTED = "service_started"
    HEALTHY = "service_healthy"
    COMPLETED = "service_completed_successfully"


class DeviceMapping(BaseModel):
    """
    A host device node exposed inside the container.
    """
    host_path: str
    container_path: str = ""
    permissions: str = "rwm"

    @field_validator("host_path")
    @classmethod
    def _host_path_absolute(cls, v: str) -> str:
        return check_absolute_path(v)

    @field_validator("permissions")
    @classmethod
    def _known_permissions(cls, v: str) -> str:
        if not v or any(c not in "rwm" for c in v) or len(set(v)) != len(v):
            raise ValueError(f"device permissions {v!r} must be a subset of 'rwm'")
        return v

    @model_validator(mode="after")
    def _default_container_path(self) -> "DeviceMapping":
        if not self.container_path:
            self.container_path = self.host_path
        check_absolute_path(self.container_path)
        return self

    def short_syntax(self) -> str:
        """Renders the mapping as HOST[:CONTAINER[:PERMS]]."""
        if self.permissions != "rwm":
            return f"{self.host_path}:{self.container_path}:{self.permissions}"
        if self.container_path != self.host_path:
            return f"{self.host_path}:{self.container_path}"
        return self.host_path


class VolumeBinding(BaseModel):
    """
    Binds a host path to a path inside the container.
    """
    source: str
    target: str
    read_only: bool = False

    @field_validator("source")
    @classmethod
    def _source_absolute(cls, v: str) -> str:
        if v and not v.startswith(("/", ".", "~")):
            raise ValueError(f"named volume {v!r} is not supported, use an absolute host path")
        return check_absolute_path(v)

    @field_validator("target")
    @classmethod
    def _target_absolute(cls, v: str) -> str:
        return check_absolute_path(v)

    def short_syntax(self) -> str:
        """Renders the binding as SRC:TGT[:ro]."""
        suffix = ":ro" if self.read_only else ""
        return f"{self.source}:{self.target}{suffix}"


class ResourceLimits(BaseModel):
    """
    Upper bounds enforced by the runtime. Unset fields are unlimited.
    """
    cpus: Optional[float] = None
    memory: Optional[str] = None

    @field_validator("cpus", mode="before")
    @classmethod
    def _cpus_positive(cls, v):
        if v is None:
            return v
        v = parse_cpus(v)
        if v <= 0:
            raise ValueError(f"cpus limit must be positive, got {v}")
        return v

    @field_validator("memory", mode="before")
    @classmethod
    def _memory_positive(cls, v):
        if v is None:
            return v
        if parse_memory(v) <= 0:
            raise ValueError(f"memory limit must be positive, got {v!r}")
        return str(v)

    @property
    def memory_bytes(self) -> Optional[int]:
        """Memory limit in bytes."""
        return parse_memory(self.memory) if self.memory is not None else None

    @property
    def is_empty(self) -> bool:
        return self.cpus is None and self.memory is None


class ExposedPort(BaseModel):
    """
    A port reachable by other services, not published on the host.
    """
    port: int
    protocol: str = "tcp"

    @field_validator("port")
    @classmethod
    def _port_in_range(cls, v: int) -> int:
        if not 1 <= v <= 65535:
            raise ValueError(f"port {v} is outside 1-65535")
        return v

    @field_validator("protocol")
    @classmethod
    def _known_protocol(cls, v: str) -> str:
        v = v.lower()
        if v not in ("tcp", "udp", "sctp"):
            raise ValueError(f"unknown protocol {v!r}")
        return v

    def __str__(self) -> str:
        return str(self.port) if self.protocol == "tcp" else f"{self.port}/{self.protocol}"


class ServiceDescriptor(BaseModel):
    """
    The full definition of a single deployable container.
    """
    name: str
    image: str
    container_name: Optional[str] = None

    # Lifecycle
    depends_on: List[str] = []
    dependency_conditions: Dict[str, DependencyCondition] = {}

    # Host bindings
    devices: List[DeviceMapping] = []
    volumes: List[VolumeBinding] = []

    # Resources
    resources: Optional[ResourceLimits] = None

    # Environment
    env_passthrough: List[str] = []
    environment: Dict[str, str] = {}

    # Networking
    expose: List[ExposedPort] = []

    # Interactive session
    stdin_open: bool = False
    tty: bool = False

    @field_validator("name")
    @classmethod
    def _name_present(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("service name must not be empty")
        return v

    @field_validator("image")
    @classmethod
    def _image_present(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("image must not be empty")
        return v

    @field_validator("depends_on", "env_passthrough")
    @classmethod
    def _unique(cls, v: List[str]) -> List[str]:
        return list(dict.fromkeys(v))

    @model_validator(mode="after")
    def _check_self(self) -> "ServiceDescriptor":
        if self.name in self.depends_on:
            raise ValueError(f"service {self.name!r} depends on itself")
        for dep in self.dependency_conditions:
            if dep not in self.depends_on:
                raise ValueError(f"condition given for {dep!r} which is not a dependency")
        if self.resources is not None and self.resources.is_empty:
            self.resources = None
        return self

    def condition_for(self, dependency: str) -> DependencyCondition:
        """Condition the given dependency must reach, service_started by default."""
        return self.dependency_conditions.get(dependency, DependencyCondition.STARTED)
