import os
import yaml
import pytest
from sgxcompose.errors import ComposeError
from sgxcompose.PARSERS.compose_parser import ComposeParser


def test_parse(tmp_path):
    compose_content = {
        'version': '3',
        'services': {
            'aesm': {
                'image': 'fortanix/aesmd:2.13.103.1-1',
                'devices': ['/dev/sgx/enclave', '/dev/sgx/provision'],
                'volumes': ['/tmp/aesmd:/var/run/aesmd'],
                'stdin_open': True,
                'tty': True,
                'environment': ['http_proxy', 'https_proxy'],
            },
            'base': {
                'image': 'tests-base-image',
                'depends_on': ['aesm'],
                'deploy': {'resources': {'limits': {'cpus': '1', 'memory': '4g'}}},
            },
        },
    }

    compose_file = tmp_path / "docker-compose.yml"
    with open(compose_file, 'w') as f:
        yaml.dump(compose_content, f)

    parser = ComposeParser(context={})
    config = parser.parse(str(compose_file))

    assert config.version == '3'
    assert config.names == ['aesm', 'base']
    aesm = config.services['aesm']
    assert aesm.image == 'fortanix/aesmd:2.13.103.1-1'
    assert [d.host_path for d in aesm.devices] == ['/dev/sgx/enclave', '/dev/sgx/provision']
    assert aesm.devices[0].container_path == '/dev/sgx/enclave'
    assert aesm.volumes[0].source == '/tmp/aesmd'
    assert aesm.volumes[0].target == '/var/run/aesmd'
    assert aesm.env_passthrough == ['http_proxy', 'https_proxy']
    assert aesm.stdin_open and aesm.tty

    base = config.services['base']
    assert base.depends_on == ['aesm']
    assert base.resources.cpus == 1.0
    assert base.resources.memory_bytes == 4 * 1024 ** 3


def test_parse_ci_file(ci_compose_path):
    config = ComposeParser(context={}).parse(ci_compose_path)
    assert set(config.names) == {'aesm', 'base', 'bootstrap', 'node', 'enclave-test'}
    assert config.services['bootstrap'].container_name == 'bootstrap'
    assert [p.port for p in config.services['bootstrap'].expose] == [26656, 26657]
    assert config.services['node'].depends_on == ['bootstrap']


def test_environment_forms():
    content = """
services:
  a:
    image: x
    environment:
      - PASSED
      - EXPLICIT=value=with=equals
  b:
    image: y
    environment:
      PASSED:
      FLAG: true
      COUNT: 3
"""
    config = ComposeParser(context={}).parse_from_string(content)
    a, b = config.services['a'], config.services['b']
    assert a.env_passthrough == ['PASSED']
    assert a.environment == {'EXPLICIT': 'value=with=equals'}
    assert b.env_passthrough == ['PASSED']
    assert b.environment == {'FLAG': 'true', 'COUNT': '3'}


def test_depends_on_long_syntax():
    content = """
services:
  aesm:
    image: aesm
  node:
    image: node
    depends_on:
      aesm:
        condition: service_healthy
"""
    config = ComposeParser(context={}).parse_from_string(content)
    node = config.services['node']
    assert node.depends_on == ['aesm']
    assert node.condition_for('aesm').value == 'service_healthy'


def test_device_and_volume_syntax(tmp_path):
    content = """
services:
  a:
    image: x
    devices:
      - /dev/isgx:/dev/sgx/enclave:rw
      - source: /dev/sgx/provision
        target: /dev/sgx/provision
    volumes:
      - ./data:/data:ro
      - type: bind
        source: /tmp/aesmd
        target: /var/run/aesmd
"""
    config = ComposeParser(context={}, base_dir=str(tmp_path)).parse_from_string(content)
    a = config.services['a']
    assert a.devices[0].host_path == '/dev/isgx'
    assert a.devices[0].container_path == '/dev/sgx/enclave'
    assert a.devices[0].permissions == 'rw'
    assert a.devices[1].permissions == 'rwm'
    assert a.volumes[0].source == os.path.join(str(tmp_path), 'data')
    assert a.volumes[0].read_only is True
    assert a.volumes[1].target == '/var/run/aesmd'


def test_relative_source_resolves_against_file_dir(tmp_path):
    compose_file = tmp_path / "docker-compose.yml"
    compose_file.write_text("services:\n  a:\n    image: x\n    volumes:\n      - ./secretd:/root/.secretd\n")
    config = ComposeParser(context={}).parse(str(compose_file))
    assert config.services['a'].volumes[0].source == str(tmp_path / 'secretd')


def test_interpolation():
    content = """
services:
  node:
    image: ci-enigma-sgx-node:${TAG:-latest}
    volumes:
      - ${SECRETD_HOME}:/tmp/.secretd
    environment:
      - PRICE=$$5
"""
    config = ComposeParser(context={'SECRETD_HOME': '/srv/secretd'}).parse_from_string(content)
    node = config.services['node']
    assert node.image == 'ci-enigma-sgx-node:latest'
    assert node.volumes[0].source == '/srv/secretd'
    assert node.environment == {'PRICE': '$5'}


def test_missing_variable_warns(capsys):
    content = "services:\n  a:\n    image: img${SUFFIX}\n"
    config = ComposeParser(context={}).parse_from_string(content)
    assert config.services['a'].image == 'img'
    assert 'SUFFIX' in capsys.readouterr().out


def test_required_variable_raises():
    content = "services:\n  a:\n    image: ${IMAGE:?IMAGE must be set}\n"
    with pytest.raises(ComposeError, match='IMAGE must be set'):
        ComposeParser(context={}).parse_from_string(content)


def test_dangling_dependency_rejected():
    content = "services:\n  node:\n    image: x\n    depends_on: [bootstrap]\n"
    with pytest.raises(ComposeError) as excinfo:
        ComposeParser(context={}).parse_from_string(content)
    assert any("undefined service 'bootstrap'" in e for e in excinfo.value.errors)


def test_errors_are_collected_across_services():
    content = """
services:
  a:
    image: x
    devices: [dev/sgx/enclave]
  b:
    image: y
    deploy:
      resources:
        limits:
          cpus: "0"
  c:
    volumes: ["/tmp:/tmp"]
"""
    with pytest.raises(ComposeError) as excinfo:
        ComposeParser(context={}).parse_from_string(content)
    errors = excinfo.value.errors
    assert len(errors) == 3
    assert any(e.startswith("service 'a'") and 'not absolute' in e for e in errors)
    assert any(e.startswith("service 'b'") and 'positive' in e for e in errors)
    assert any(e.startswith("service 'c'") and 'image' in e for e in errors)


def test_named_volume_rejected():
    content = "services:\n  a:\n    image: x\n    volumes: ['db_data:/var/lib/data']\n"
    with pytest.raises(ComposeError, match='named volume'):
        ComposeParser(context={}).parse_from_string(content)


def test_unknown_key_is_ignored(capsys):
    config = ComposeParser(context={}).parse_from_string("services:\n  a:\n    image: x\n    restart: always\n")
    assert 'a' in config.services
    assert "ignoring unsupported key 'restart'" in capsys.readouterr().out


@pytest.mark.parametrize('content', [
    '- just\n- a list\n',
    'services: [a, b]\n',
    'services:\n  a: 3\n',
    'services: {a: [unclosed\n',
])
def test_malformed_documents(content):
    with pytest.raises(ComposeError):
        ComposeParser(context={}).parse_from_string(content)


def test_empty_document():
    config = ComposeParser(context={}).parse_from_string('')
    assert config.services == {}


def test_nan_cpus_rejected():
    content = "services:\n  base: {image: x, deploy: {resources: {limits: {cpus: .nan}}}}\n"
    with pytest.raises(ComposeError, match='Invalid CPU count'):
        ComposeParser(context={}).parse_from_string(content)


def test_unreadable_files(tmp_path):
    binary = tmp_path / "docker-compose.yml"
    binary.write_bytes(b"services:\n  a:\n    image: \xff\xfe\n")
    with pytest.raises(ComposeError, match='Cannot read'):
        ComposeParser(context={}).parse(str(binary))
    with pytest.raises(ComposeError, match='Cannot read'):
        ComposeParser(context={}).parse(str(tmp_path))


def test_quoted_booleans():
    content = """
services:
  a:
    image: x
    stdin_open: "false"
    tty: "true"
    volumes:
      - type: bind
        source: /tmp/aesmd
        target: /var/run/aesmd
        read_only: "false"
"""
    a = ComposeParser(context={}).parse_from_string(content).services['a']
    assert a.stdin_open is False
    assert a.tty is True
    assert a.volumes[0].read_only is False
