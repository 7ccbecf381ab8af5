"""
Dependency resolution for services to determine startup and shutdown order.
"""
from typing import List, Dict, Set
from ..errors import CircularDependencyError
from ..MODELS.deployment_config import DeploymentConfig


class DependencyResolver:
    """
    Resolves the startup and shutdown order of services based on their dependencies.
    Ties are broken by declaration order so results are stable.
    """
    def resolve_order(self, config: DeploymentConfig) -> List[str]:
        """
        Determines the correct order to start services using topological sort.

        :param config: The deployment configuration.
        :return: Service names in the order they should be started.
        :raises CircularDependencyError: If a circular dependency is detected.
        """
        services = config.services
        ordered: List[str] = []
        visited: Set[str] = set()
        path: List[str] = []

        def visit(name: str):
            """
            Recursive function for topological sort.
            """
            if name in path:
                raise CircularDependencyError(path[path.index(name):] + [name])
            if name in visited:
                return
            path.append(name)
            for dep in services[name].depends_on:
                if dep in services:
                    visit(dep)
            path.pop()
            visited.add(name)
            ordered.append(name)

        for name in services:
            visit(name)

        return ordered

    def startup_waves(self, config: DeploymentConfig) -> List[List[str]]:
        """
        Groups services into waves that can start in parallel.
        Every service in a wave depends only on services in earlier waves.

        :param config: The deployment configuration.
        :return: Waves of service names, each in declaration order.
        """
        depth: Dict[str, int] = {}
        for name in self.resolve_order(config):
            deps = [d for d in config.services[name].depends_on if d in config.services]
            depth[name] = 1 + max((depth[d] for d in deps), default=-1)

        waves: List[List[str]] = [[] for _ in range(max(depth.values(), default=-1) + 1)]
        for name in config.services:
            waves[depth[name]].append(name)
        return waves

    def shutdown_order(self, config: DeploymentConfig) -> List[str]:
        """
        Order to stop services in: dependents before their dependencies.
        """
        return list(reversed(self.resolve_order(config)))

    def dependencies_of(self, config: DeploymentConfig, name: str) -> List[str]:
        """
        All services the named service needs, directly or transitively,
        in startup order.

        :raises KeyError: If the service is not declared.
        """
        config.get(name)
        needed: Set[str] = set()
        stack = list(config.services[name].depends_on)
        while stack:
            dep = stack.pop()
            if dep in needed or dep not in config.services:
                continue
            needed.add(dep)
            stack.extend(config.services[dep].depends_on)
        needed.discard(name)
        return [n for n in self.resolve_order(config) if n in needed]

    def dependents_of(self, config: DeploymentConfig, name: str) -> List[str]:
        """
        All services that need the named service, directly or transitively,
        in startup order.

        :raises KeyError: If the service is not declared.
        """
        config.get(name)
        reverse: Dict[str, List[str]] = {n: [] for n in config.services}
        for svc_name, svc in config.services.items():
            for dep in svc.depends_on:
                if dep in reverse:
                    reverse[dep].append(svc_name)

        affected: Set[str] = set()
        stack = list(reverse[name])
        while stack:
            current = stack.pop()
            if current in affected:
                continue
            affected.add(current)
            stack.extend(reverse[current])
        affected.discard(name)
        return [n for n in self.resolve_order(config) if n in affected]
