from sgxcompose.MANAGERS.environment_manager import EnvironmentManager
from sgxcompose.MODELS.service_descriptor import ServiceDescriptor

NODE = ServiceDescriptor(
    name="node",
    image="ci-enigma-sgx-node",
    env_passthrough=["http_proxy", "https_proxy"],
    environment={"SGX_MODE": "HW"},
)


def test_resolve_forwards_set_variables():
    manager = EnvironmentManager(base_env={"http_proxy": "http://proxy:3128", "HOME": "/root"})
    assert manager.resolve(NODE) == {"http_proxy": "http://proxy:3128", "SGX_MODE": "HW"}
    assert manager.missing(NODE) == ["https_proxy"]


def test_explicit_values_win():
    manager = EnvironmentManager(base_env={"SGX_MODE": "SW"})
    svc = ServiceDescriptor(name="a", image="x", env_passthrough=["SGX_MODE"], environment={"SGX_MODE": "HW"})
    assert manager.resolve(svc) == {"SGX_MODE": "HW"}
    assert manager.missing(svc) == []


def test_env_files_layer_in_order(tmp_path):
    first = tmp_path / "first.env"
    second = tmp_path / "second.env"
    first.write_text("http_proxy=http://first\nhttps_proxy=https://first\n")
    second.write_text("https_proxy=https://second\n")
    manager = EnvironmentManager(env_files=[str(first), str(second)], base_env={"http_proxy": "http://host"})
    env = manager.resolve(NODE)
    assert env["http_proxy"] == "http://first"
    assert env["https_proxy"] == "https://second"


def test_missing_env_file_warns(tmp_path, capsys):
    manager = EnvironmentManager(env_files=[str(tmp_path / "nope.env")], base_env={})
    assert manager.host_environment() == {}
    assert "nope.env not found" in capsys.readouterr().out


def test_defaults_to_process_environment(monkeypatch):
    monkeypatch.setenv("https_proxy", "https://from-process")
    monkeypatch.delenv("http_proxy", raising=False)
    assert EnvironmentManager().resolve(NODE)["https_proxy"] == "https://from-process"
