import pytest
from sgxcompose.errors import CircularDependencyError
from sgxcompose.CATALOG.ci_deployment import build_ci_deployment
from sgxcompose.MODELS.deployment_config import DeploymentConfig
from sgxcompose.MODELS.service_descriptor import ServiceDescriptor
from sgxcompose.RUNNERS.dependency_resolver import DependencyResolver


def make_config(deps):
    """Builds a deployment from {name: [dependencies]} in the given order."""
    return DeploymentConfig(services={
        name: ServiceDescriptor(name=name, image=f"{name}-image", depends_on=d)
        for name, d in deps.items()
    })


def test_resolve_order_ci():
    order = DependencyResolver().resolve_order(build_ci_deployment())
    assert order == ["aesm", "base", "bootstrap", "node", "enclave-test"]


def test_dependencies_come_first():
    config = make_config({"node": ["bootstrap"], "bootstrap": ["aesm"], "aesm": []})
    order = DependencyResolver().resolve_order(config)
    assert order == ["aesm", "bootstrap", "node"]


def test_startup_waves_ci():
    waves = DependencyResolver().startup_waves(build_ci_deployment())
    assert waves == [["aesm"], ["base", "bootstrap", "enclave-test"], ["node"]]


def test_startup_waves_empty():
    assert DependencyResolver().startup_waves(make_config({})) == []


def test_shutdown_order():
    config = make_config({"aesm": [], "bootstrap": ["aesm"], "node": ["bootstrap"]})
    assert DependencyResolver().shutdown_order(config) == ["node", "bootstrap", "aesm"]


def test_cycle_detected():
    config = make_config({"a": ["c"], "b": ["a"], "c": ["b"]})
    with pytest.raises(CircularDependencyError) as excinfo:
        DependencyResolver().resolve_order(config)
    cycle = excinfo.value.cycle
    assert cycle[0] == cycle[-1]
    assert set(cycle) == {"a", "b", "c"}
    assert "Circular dependency" in str(excinfo.value)


def test_cycle_blocks_waves():
    config = make_config({"a": ["b"], "b": ["a"]})
    with pytest.raises(CircularDependencyError):
        DependencyResolver().startup_waves(config)


def test_dependencies_of():
    resolver = DependencyResolver()
    config = build_ci_deployment()
    assert resolver.dependencies_of(config, "node") == ["aesm", "bootstrap"]
    assert resolver.dependencies_of(config, "aesm") == []


def test_dependents_of():
    resolver = DependencyResolver()
    config = build_ci_deployment()
    assert resolver.dependents_of(config, "aesm") == ["base", "bootstrap", "node", "enclave-test"]
    assert resolver.dependents_of(config, "bootstrap") == ["node"]
    assert resolver.dependents_of(config, "node") == []


def test_unknown_service():
    with pytest.raises(KeyError):
        DependencyResolver().dependents_of(build_ci_deployment(), "validator")
