"""
Managers for resolving the environment forwarded into each service.
"""
import os
from typing import Dict, Iterable, List, Optional
from ..MODELS.service_descriptor import ServiceDescriptor
from ..PARSERS.env_parser import EnvParser


class EnvironmentManager:
    """
    Resolves passthrough variables against the host environment and .env files.
    """
    def __init__(self, env_files: Iterable[str] = (), base_env: Optional[Dict[str, str]] = None):
        """
        Initializes the environment manager.

        :param env_files: .env files layered over the host environment, later files win.
        :param base_env: Host environment to start from, os.environ by default.
        """
        self.env_files = list(env_files)
        self.base_env = base_env
        self.parser = EnvParser()

    def host_environment(self) -> Dict[str, str]:
        """
        The environment a deployment engineer's shell would forward.

        :return: Host variables overlaid by the configured .env files.
        """
        env = dict(self.base_env) if self.base_env is not None else os.environ.copy()
        for env_file in self.env_files:
            if os.path.exists(env_file):
                env.update(self.parser.parse(env_file))
            else:
                print(f"Warning: env file {env_file} not found, skipping")
        return env

    def resolve(self, service: ServiceDescriptor) -> Dict[str, str]:
        """
        Environment the service would receive.

        Passthrough names unset on the host are left out, as compose does.
        Explicit entries override forwarded values.

        :param service: The service to resolve.
        :return: Variable names mapped to values.
        """
        host = self.host_environment()
        resolved = {name: host[name] for name in service.env_passthrough if name in host}
        resolved.update(service.environment)
        return resolved

    def missing(self, service: ServiceDescriptor) -> List[str]:
        """
        Passthrough names with no value on the host.
        """
        host = self.host_environment()
        return [name for name in service.env_passthrough
                if name not in host and name not in service.environment]
