"""
Models for a complete deployment.
"""
from typing import Dict, List, Optional
from pydantic import BaseModel, model_validator
from .service_descriptor import ServiceDescriptor


class DeploymentConfig(BaseModel):
    """
    Complete configuration for a multi-service deployment.
    Equivalent to a parsed docker-compose.yml file.
    """
    services: Dict[str, ServiceDescriptor]
    version: Optional[str] = None

    @model_validator(mode="after")
    def _check_references(self) -> "DeploymentConfig":
        errors: List[str] = []
        container_names: Dict[str, str] = {}
        for key, svc in self.services.items():
            if svc.name != key:
                errors.append(f"service key {key!r} does not match descriptor name {svc.name!r}")
            for dep in svc.depends_on:
                if dep not in self.services:
                    errors.append(f"service {key!r} depends on undefined service {dep!r}")
            if svc.container_name:
                other = container_names.get(svc.container_name)
                if other:
                    errors.append(
                        f"container_name {svc.container_name!r} is used by both {other!r} and {key!r}"
                    )
                container_names[svc.container_name] = key
        if errors:
            raise ValueError("; ".join(errors))
        return self

    @property
    def names(self) -> List[str]:
        """Service names in declaration order."""
        return list(self.services)

    def get(self, name: str) -> ServiceDescriptor:
        """
        Returns the named service.

        :raises KeyError: If no such service is declared.
        """
        try:
            return self.services[name]
        except KeyError:
            raise KeyError(f"No such service: {name}") from None
